import time

DAY_IN_MILLIS = 24 * 60 * 60 * 1000
HOUR_IN_MILLIS = 60 * 60 * 1000


def now_millis() -> int:
    return int(time.time() * 1000)


def normalize_day(epoch_millis: int) -> int:
    """
    Truncate an epoch-millisecond timestamp to midnight UTC of the same day.
    """
    return (int(epoch_millis) // DAY_IN_MILLIS) * DAY_IN_MILLIS


def normalized_utc_today(now: int | None = None) -> int:
    return normalize_day(now_millis() if now is None else now)


def is_normalized(epoch_millis: int) -> bool:
    return int(epoch_millis) % DAY_IN_MILLIS == 0
