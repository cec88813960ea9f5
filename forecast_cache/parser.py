import json
import math

import pandas as pd

from forecast_cache.dates import DAY_IN_MILLIS, normalized_utc_today
from forecast_cache.errors import SyncParseError
from forecast_cache.records import ForecastRecord

# Daily forecast payload fields -> record attributes.
PAYLOAD_FIELDS = {
    "pressure": "pressure",
    "humidity": "humidity",
    "speed": "wind_speed",
    "deg": "wind_direction",
    "temp.min": "min_temp",
    "temp.max": "max_temp",
}


def load_payload(raw) -> dict:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8", errors="replace")
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise SyncParseError(f"Forecast payload is not JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SyncParseError("Forecast payload is not a JSON object")
    return payload


def _clean(value) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise SyncParseError(f"Non-numeric forecast value: {value!r}") from exc
    if math.isnan(number):
        return None
    return number


def _condition_code(weather) -> int | None:
    if isinstance(weather, list) and weather and isinstance(weather[0], dict):
        code = weather[0].get("id")
        return int(code) if code is not None else None
    return None


def extract_coordinates(raw) -> tuple[float, float] | None:
    payload = load_payload(raw)
    city = payload.get("city")
    if not isinstance(city, dict):
        return None
    coord = city.get("coord")
    if not isinstance(coord, dict):
        return None
    lat = coord.get("lat")
    lon = coord.get("lon")
    if lat is None or lon is None:
        return None
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None


def parse_forecast_payload(raw, today: int | None = None) -> list[ForecastRecord] | None:
    """
    Parse a daily forecast payload into one ForecastRecord per day.

    Day i of the list is stamped with today's UTC midnight plus i days.
    Returns None when the payload carries a non-200 "cod" or no days.
    """
    payload = load_payload(raw)

    code = payload.get("cod")
    if code is not None and str(code) != "200":
        return None

    days_raw = payload.get("list")
    if days_raw is None:
        raise SyncParseError("Forecast payload has no 'list'")
    if not isinstance(days_raw, list):
        raise SyncParseError("Forecast payload 'list' is not an array")
    if not days_raw:
        return None
    bad = [idx for idx, day in enumerate(days_raw) if not isinstance(day, dict)]
    if bad:
        raise SyncParseError(f"Forecast days are not objects at positions: {bad}")

    df = pd.json_normalize(days_raw)
    missing = [name for name in list(PAYLOAD_FIELDS) + ["weather"] if name not in df.columns]
    if missing:
        raise SyncParseError(f"Forecast payload missing fields: {missing}")

    start_day = normalized_utc_today() if today is None else today
    records = []
    for idx, row in enumerate(df.to_dict(orient="records")):
        values = {attr: _clean(row.get(field)) for field, attr in PAYLOAD_FIELDS.items()}
        try:
            condition = _condition_code(row.get("weather"))
        except (TypeError, ValueError) as exc:
            raise SyncParseError(f"Bad condition code on day {idx}: {exc}") from exc
        records.append(
            ForecastRecord(
                day=start_day + DAY_IN_MILLIS * idx,
                condition_code=condition,
                **values,
            )
        )
    return records
