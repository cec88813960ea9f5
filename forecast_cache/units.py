"""
Unit conversion and display formatting.

Temperatures are stored in Celsius and wind speed in km/h. Conversion to the
user's preferred units happens only here, both for display strings and for the
companion summary, so the two never drift apart.
"""

KMH_TO_MPH = 0.621371192237334

# (lower bound inclusive, label); headings at or past 337.5 wrap to north.
COMPASS_POINTS = [
    (0.0, "N"),
    (22.5, "NE"),
    (67.5, "E"),
    (112.5, "SE"),
    (157.5, "S"),
    (202.5, "SW"),
    (247.5, "W"),
    (292.5, "NW"),
    (337.5, "N"),
]


def celsius_to_fahrenheit(temp_c: float) -> float:
    return (temp_c * 1.8) + 32


def to_preferred_temperature(temp_c: float, metric: bool) -> float:
    if metric:
        return float(temp_c)
    return celsius_to_fahrenheit(float(temp_c))


def to_preferred_wind(speed_kmh: float, metric: bool) -> float:
    if metric:
        return float(speed_kmh)
    return float(speed_kmh) * KMH_TO_MPH


def format_temperature(temp_c: float, metric: bool) -> str:
    return f"{to_preferred_temperature(temp_c, metric):.0f}°"


def format_high_low(high_c: float, low_c: float, metric: bool) -> str:
    return f"{format_temperature(high_c, metric)} / {format_temperature(low_c, metric)}"


def compass_direction(degrees: float | None) -> str:
    if degrees is None:
        return "Unknown"
    try:
        value = float(degrees)
    except (TypeError, ValueError):
        return "Unknown"
    if value < 0 or value >= 360:
        return "Unknown"
    label = "Unknown"
    for lower, name in COMPASS_POINTS:
        if value >= lower:
            label = name
    return label


def format_wind(speed_kmh: float, degrees: float, metric: bool) -> str:
    unit = "km/h" if metric else "mph"
    speed = to_preferred_wind(speed_kmh, metric)
    return f"{speed:.0f} {unit} {compass_direction(degrees)}"
