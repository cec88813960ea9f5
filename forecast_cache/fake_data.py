import random

from forecast_cache.dates import DAY_IN_MILLIS, normalized_utc_today
from forecast_cache.records import ForecastRecord

FAKE_CONDITION_CODES = [200, 300, 500, 711, 900, 962]


def build_fake_record(day: int, rng: random.Random | None = None) -> ForecastRecord:
    rng = rng or random.Random()
    max_temp = float(int(rng.random() * 100))
    return ForecastRecord(
        day=day,
        condition_code=rng.choice(FAKE_CONDITION_CODES),
        min_temp=max_temp - int(rng.random() * 10),
        max_temp=max_temp,
        humidity=rng.random() * 100,
        pressure=870 + rng.random() * 100,
        wind_speed=rng.random() * 10,
        wind_direction=rng.random() * 2,
    )


def build_fake_batch(start_day: int | None = None, days: int = 7, seed: int | None = None) -> list[ForecastRecord]:
    """Random forecast rows for `days` consecutive days starting at `start_day`."""
    rng = random.Random(seed)
    first = normalized_utc_today() if start_day is None else start_day
    return [build_fake_record(first + DAY_IN_MILLIS * i, rng) for i in range(days)]


def insert_fake_data(store, days: int = 7) -> int:
    return store.bulk_insert(build_fake_batch(days=days))
