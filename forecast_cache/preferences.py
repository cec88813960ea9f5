import sqlite3
import time
from typing import Any

APP_CONFIG_TABLE = "app_config"

KEY_UNITS = "units"
KEY_NOTIFICATIONS_ENABLED = "notifications_enabled"
KEY_LAST_NOTIFICATION = "last_notification_ms"
KEY_LOCATION = "location"
KEY_LOCATION_LAT = "location_lat"
KEY_LOCATION_LON = "location_lon"

UNITS_METRIC = "metric"
UNITS_IMPERIAL = "imperial"


def _ensure_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {APP_CONFIG_TABLE} (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def get_config(conn: sqlite3.Connection, key: str) -> str | None:
    _ensure_table(conn)
    row = conn.execute(
        f"SELECT value FROM {APP_CONFIG_TABLE} WHERE key = ?",
        (key,),
    ).fetchone()
    return row[0] if row else None


def set_config(conn: sqlite3.Connection, key: str, value: Any) -> None:
    _ensure_table(conn)
    conn.execute(
        f"""
        INSERT INTO {APP_CONFIG_TABLE} (key, value)
        VALUES (?, ?)
        ON CONFLICT(key) DO UPDATE SET
          value=excluded.value
        """,
        (key, str(value)),
    )
    conn.commit()


def delete_config(conn: sqlite3.Connection, key: str) -> None:
    _ensure_table(conn)
    conn.execute(f"DELETE FROM {APP_CONFIG_TABLE} WHERE key = ?", (key,))
    conn.commit()


def get_bool(conn: sqlite3.Connection, key: str) -> bool | None:
    value = get_config(conn, key)
    if value is None:
        return None
    return str(value) == "1"


def set_bool(conn: sqlite3.Connection, key: str, value: bool) -> None:
    set_config(conn, key, "1" if value else "0")


def get_float(conn: sqlite3.Connection, key: str) -> float | None:
    value = get_config(conn, key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def set_float(conn: sqlite3.Connection, key: str, value: float) -> None:
    set_config(conn, key, str(value))


def get_int(conn: sqlite3.Connection, key: str) -> int | None:
    value = get_config(conn, key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class Preferences:
    """
    User preferences backed by the app_config key/value table.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        default_units: str = UNITS_METRIC,
        default_location: str = "94043,USA",
    ):
        self._conn = conn
        self.default_units = default_units
        self.default_location = default_location

    def is_metric(self) -> bool:
        units = get_config(self._conn, KEY_UNITS) or self.default_units
        return units != UNITS_IMPERIAL

    def set_units(self, units: str) -> None:
        if units not in (UNITS_METRIC, UNITS_IMPERIAL):
            raise ValueError(f"Unsupported units: {units}")
        set_config(self._conn, KEY_UNITS, units)

    def notifications_enabled(self) -> bool:
        value = get_bool(self._conn, KEY_NOTIFICATIONS_ENABLED)
        return True if value is None else value

    def set_notifications_enabled(self, enabled: bool) -> None:
        set_bool(self._conn, KEY_NOTIFICATIONS_ENABLED, enabled)

    def last_notification_time(self) -> int:
        return get_int(self._conn, KEY_LAST_NOTIFICATION) or 0

    def last_notification_elapsed(self, now: int | None = None) -> int:
        """Milliseconds since the last notification was shown."""
        now_ms = int(time.time() * 1000) if now is None else int(now)
        return now_ms - self.last_notification_time()

    def save_notification_time(self, timestamp_ms: int) -> None:
        set_config(self._conn, KEY_LAST_NOTIFICATION, int(timestamp_ms))

    def set_location(self, query: str) -> None:
        set_config(self._conn, KEY_LOCATION, query)
        delete_config(self._conn, KEY_LOCATION_LAT)
        delete_config(self._conn, KEY_LOCATION_LON)

    def save_location_details(self, lat: float, lon: float) -> None:
        set_float(self._conn, KEY_LOCATION_LAT, lat)
        set_float(self._conn, KEY_LOCATION_LON, lon)

    def location_params(self) -> dict:
        """
        Coordinates when a previous sync stored them, otherwise the location
        query string.
        """
        lat = get_float(self._conn, KEY_LOCATION_LAT)
        lon = get_float(self._conn, KEY_LOCATION_LON)
        if lat is not None and lon is not None:
            return {"lat": lat, "lon": lon}
        return {"query": get_config(self._conn, KEY_LOCATION) or self.default_location}
