"""
Condition code lookup tables.

Codes follow the OpenWeatherMap condition list. Each table is a sorted list of
non-overlapping (low, high, value) rows, both bounds inclusive.
"""
from bisect import bisect_right

UNKNOWN_ICON = "storm"

DESCRIPTIONS = [
    (200, 232, "Storm"),
    (300, 321, "Drizzle"),
    (500, 500, "Light Rain"),
    (501, 501, "Moderate Rain"),
    (502, 502, "Heavy Rain"),
    (503, 503, "Intense Rain"),
    (504, 504, "Extreme Rain"),
    (511, 511, "Freezing Rain"),
    (520, 520, "Light Shower"),
    (521, 521, "Shower"),
    (522, 522, "Heavy Shower"),
    (531, 531, "Ragged Shower"),
    (600, 600, "Light Snow"),
    (601, 601, "Snow"),
    (602, 602, "Heavy Snow"),
    (611, 611, "Sleet"),
    (612, 612, "Shower Sleet"),
    (615, 615, "Light Rain and Snow"),
    (616, 616, "Rain and Snow"),
    (620, 620, "Light Shower Snow"),
    (621, 621, "Shower Snow"),
    (622, 622, "Heavy Shower Snow"),
    (701, 701, "Mist"),
    (711, 711, "Smoke"),
    (721, 721, "Haze"),
    (731, 731, "Sand, Dust"),
    (741, 741, "Fog"),
    (751, 751, "Sand"),
    (761, 761, "Dust"),
    (762, 762, "Volcanic Ash"),
    (771, 771, "Squalls"),
    (781, 781, "Tornado"),
    (800, 800, "Clear"),
    (801, 801, "Mostly Clear"),
    (802, 802, "Scattered Clouds"),
    (803, 803, "Broken Clouds"),
    (804, 804, "Overcast Clouds"),
    (900, 900, "Tornado"),
    (901, 901, "Tropical Storm"),
    (902, 902, "Hurricane"),
    (903, 903, "Cold"),
    (904, 904, "Hot"),
    (905, 905, "Windy"),
    (906, 906, "Hail"),
    (951, 951, "Calm"),
    (952, 952, "Light Breeze"),
    (953, 953, "Gentle Breeze"),
    (954, 954, "Breeze"),
    (955, 955, "Fresh Breeze"),
    (956, 956, "Strong Breeze"),
    (957, 957, "High Wind"),
    (958, 958, "Gale"),
    (959, 959, "Severe Gale"),
    (960, 960, "Storm"),
    (961, 961, "Violent Storm"),
    (962, 962, "Hurricane"),
]

ICONS = [
    (200, 232, "storm"),
    (300, 321, "light_rain"),
    (500, 504, "rain"),
    (511, 511, "snow"),
    (520, 531, "rain"),
    (600, 622, "snow"),
    (701, 761, "fog"),
    (762, 762, "storm"),
    (771, 771, "storm"),
    (781, 781, "storm"),
    (800, 800, "clear"),
    (801, 801, "light_clouds"),
    (802, 804, "cloudy"),
    (900, 906, "storm"),
    (951, 957, "clear"),
    (958, 962, "storm"),
]

_DESCRIPTION_LOWS = [row[0] for row in DESCRIPTIONS]
_ICON_LOWS = [row[0] for row in ICONS]


def _lookup(table: list, lows: list[int], code: int):
    idx = bisect_right(lows, code) - 1
    if idx < 0:
        return None
    low, high, value = table[idx]
    if low <= code <= high:
        return value
    return None


def describe_condition(code: int) -> str:
    value = _lookup(DESCRIPTIONS, _DESCRIPTION_LOWS, int(code))
    if value is None:
        return f"Unknown Condition: {code}"
    return value


def icon_for_condition(code: int, large: bool = False) -> str:
    value = _lookup(ICONS, _ICON_LOWS, int(code)) or UNKNOWN_ICON
    prefix = "art" if large else "ic"
    return f"{prefix}_{value}"
