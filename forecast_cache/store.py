"""
Forecast record store.

One table, one row per day. Writing a record for a day that is already present
replaces that row with a fresh one (new `_id`); ids come from AUTOINCREMENT so a
deleted row's id is never handed out again. All access goes through a single
re-entrant lock, which keeps readers from observing a table that has been
cleared but not yet repopulated.
"""
import sqlite3
import threading
from typing import Iterable

import pandas as pd

from forecast_cache import schema
from forecast_cache.errors import ConstraintViolation
from forecast_cache.records import ForecastRecord, validate_record

INSERT_FAILED = -1

_INSERT_SQL = (
    f"INSERT INTO {schema.TABLE_NAME} ({', '.join(schema.REQUIRED_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in schema.REQUIRED_COLUMNS)})"
)


def _check_columns(columns: Iterable[str] | None) -> tuple[str, ...]:
    if not columns:
        return schema.ALL_COLUMNS
    selected = tuple(columns)
    unknown = [name for name in selected if name not in schema.ALL_COLUMNS]
    if unknown:
        raise ValueError(f"Unknown column(s) for {schema.TABLE_NAME}: {unknown}")
    return selected


class ForecastStore:
    def __init__(self, conn: sqlite3.Connection):
        self._conn = conn
        self._lock = threading.RLock()

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # Writes

    def _write_row(self, record: ForecastRecord) -> int:
        row = validate_record(record)
        cur = self._conn.execute(
            _INSERT_SQL,
            tuple(row[column] for column in schema.REQUIRED_COLUMNS),
        )
        return int(cur.lastrowid)

    def _write_batch(self, records: Iterable[ForecastRecord]) -> int:
        written = 0
        for record in records:
            try:
                self._write_row(record)
            except (ConstraintViolation, sqlite3.IntegrityError):
                continue
            written += 1
        return written

    def insert(self, record: ForecastRecord) -> int:
        """
        Insert one record and return its new id, or INSERT_FAILED when a
        required column is missing.
        """
        with self._lock:
            try:
                with self._conn:
                    return self._write_row(record)
            except (ConstraintViolation, sqlite3.IntegrityError):
                return INSERT_FAILED

    def bulk_insert(self, records: Iterable[ForecastRecord]) -> int:
        """
        Insert each record independently; rejected records are skipped.
        Returns the number of rows written.
        """
        with self._lock:
            with self._conn:
                return self._write_batch(records)

    def delete_all(self) -> int:
        with self._lock:
            with self._conn:
                cur = self._conn.execute(f"DELETE FROM {schema.TABLE_NAME}")
            return cur.rowcount

    def delete(self, day: int | None = None, record_id: int | None = None) -> int:
        """
        Remove the row stored for `day` and/or the row with `record_id`.

        One of the two is required; clearing the table is delete_all's job.
        """
        clauses = []
        params = []
        if day is not None:
            clauses.append(f"{schema.COLUMN_DATE} = ?")
            params.append(int(day))
        if record_id is not None:
            clauses.append(f"{schema.COLUMN_ID} = ?")
            params.append(int(record_id))
        if not clauses:
            raise ValueError("delete() needs a day or a record_id")
        with self._lock:
            with self._conn:
                cur = self._conn.execute(
                    f"DELETE FROM {schema.TABLE_NAME} WHERE {' AND '.join(clauses)}",
                    params,
                )
            return cur.rowcount

    def replace_all(self, records: Iterable[ForecastRecord]) -> int:
        """
        Clear the table and write `records` in a single transaction.
        """
        with self._lock:
            with self._conn:
                self._conn.execute(f"DELETE FROM {schema.TABLE_NAME}")
                return self._write_batch(records)

    def upgrade(self, old_version: int, new_version: int) -> None:
        with self._lock:
            schema.on_upgrade(self._conn, old_version, new_version)
            schema.set_version(self._conn, new_version)

    # Reads

    def query(self, day: int | None = None, columns: Iterable[str] | None = None) -> list[dict]:
        selected = _check_columns(columns)
        sql = f"SELECT {', '.join(selected)} FROM {schema.TABLE_NAME}"
        params: tuple = ()
        if day is not None:
            sql += f" WHERE {schema.COLUMN_DATE} = ?"
            params = (int(day),)
        sql += f" ORDER BY {schema.COLUMN_DATE}"
        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()
        return [dict(zip(selected, row)) for row in rows]

    def query_records(self, day: int | None = None) -> list[ForecastRecord]:
        return [ForecastRecord.from_row(row) for row in self.query(day=day)]

    def count(self) -> int:
        with self._lock:
            row = self._conn.execute(f"SELECT COUNT(*) FROM {schema.TABLE_NAME}").fetchone()
        return int(row[0]) if row else 0

    def query_frame(self, day: int | None = None) -> pd.DataFrame:
        sql = f"SELECT * FROM {schema.TABLE_NAME}"
        params: tuple = ()
        if day is not None:
            sql += f" WHERE {schema.COLUMN_DATE} = ?"
            params = (int(day),)
        sql += f" ORDER BY {schema.COLUMN_DATE}"
        with self._lock:
            df = pd.read_sql_query(sql, self._conn, params=params)
        if not df.empty:
            df["day"] = pd.to_datetime(df[schema.COLUMN_DATE], unit="ms", utc=True)
        return df
