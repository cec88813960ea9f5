import sqlite3
from pathlib import Path

from forecast_cache.errors import SchemaError

DATABASE_NAME = "weather.db"
DATABASE_VERSION = 3

TABLE_NAME = "weather"

COLUMN_ID = "_id"
COLUMN_DATE = "date"
COLUMN_WEATHER_ID = "weather_id"
COLUMN_MIN_TEMP = "min"
COLUMN_MAX_TEMP = "max"
COLUMN_HUMIDITY = "humidity"
COLUMN_PRESSURE = "pressure"
COLUMN_WIND_SPEED = "wind"
COLUMN_DEGREES = "degrees"

# Every column except the id is required.
REQUIRED_COLUMNS = (
    COLUMN_DATE,
    COLUMN_WEATHER_ID,
    COLUMN_MIN_TEMP,
    COLUMN_MAX_TEMP,
    COLUMN_HUMIDITY,
    COLUMN_PRESSURE,
    COLUMN_WIND_SPEED,
    COLUMN_DEGREES,
)
ALL_COLUMNS = (COLUMN_ID,) + REQUIRED_COLUMNS

CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
  {COLUMN_ID} INTEGER PRIMARY KEY AUTOINCREMENT,
  {COLUMN_DATE} INTEGER NOT NULL,
  {COLUMN_WEATHER_ID} INTEGER NOT NULL,
  {COLUMN_MIN_TEMP} REAL NOT NULL,
  {COLUMN_MAX_TEMP} REAL NOT NULL,
  {COLUMN_HUMIDITY} REAL NOT NULL,
  {COLUMN_PRESSURE} REAL NOT NULL,
  {COLUMN_WIND_SPEED} REAL NOT NULL,
  {COLUMN_DEGREES} REAL NOT NULL,
  UNIQUE ({COLUMN_DATE}) ON CONFLICT REPLACE
);
"""


def connect(db_path: str | Path) -> sqlite3.Connection:
    """
    Connect to the SQLite database with basic hardening to avoid lock issues.

    ":memory:" is passed through untouched for tests.
    """
    if str(db_path) == ":memory:":
        conn = sqlite3.connect(":memory:", check_same_thread=False)
    else:
        db_file = Path(db_path)
        if not db_file.is_absolute():
            db_file = Path.cwd() / db_file
        db_file.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(db_file, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")
    return conn


def table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
        (name,),
    ).fetchone()
    return row is not None


def get_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("PRAGMA user_version").fetchone()
    return int(row[0]) if row else 0


def set_version(conn: sqlite3.Connection, version: int) -> None:
    # PRAGMA does not accept bound parameters.
    conn.execute(f"PRAGMA user_version = {int(version)}")
    conn.commit()


def create_schema(conn: sqlite3.Connection, ddl: str = CREATE_TABLE_SQL) -> None:
    try:
        conn.executescript(ddl)
    except sqlite3.Error as exc:
        raise SchemaError(f"Could not create table {TABLE_NAME}: {exc}") from exc
    conn.commit()


def on_upgrade(
    conn: sqlite3.Connection,
    old_version: int,
    new_version: int,
    ddl: str = CREATE_TABLE_SQL,
) -> None:
    """
    Drop and recreate the forecast table.

    The table is a cache of remote data, so any version change simply
    invalidates it; nothing is migrated between versions.
    """
    try:
        conn.execute(f"DROP TABLE IF EXISTS {TABLE_NAME}")
        conn.commit()
    except sqlite3.Error as exc:
        raise SchemaError(
            f"Could not drop {TABLE_NAME} for upgrade {old_version} -> {new_version}: {exc}"
        ) from exc
    create_schema(conn, ddl)


def prepare_database(
    conn: sqlite3.Connection,
    version: int = DATABASE_VERSION,
    ddl: str = CREATE_TABLE_SQL,
) -> int:
    """
    Bring the database to `version`. Returns the version found on disk.
    """
    current = get_version(conn)
    if current == 0:
        # Fresh file, or one written before versions were stamped.
        if table_exists(conn, TABLE_NAME):
            on_upgrade(conn, current, version, ddl)
        else:
            create_schema(conn, ddl)
    elif current != version:
        on_upgrade(conn, current, version, ddl)
    else:
        create_schema(conn, ddl)
    set_version(conn, version)
    return current


def open_store(
    db_path: str | Path,
    version: int = DATABASE_VERSION,
    ddl: str = CREATE_TABLE_SQL,
):
    """
    Open the forecast database at `db_path` and return a ForecastStore.

    Raises SchemaError when the table cannot be created; the connection is
    closed in that case.
    """
    from forecast_cache.store import ForecastStore

    conn = connect(db_path)
    try:
        prepare_database(conn, version, ddl)
    except Exception:
        conn.close()
        raise
    return ForecastStore(conn)
