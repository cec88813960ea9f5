from dataclasses import dataclass

from forecast_cache import schema
from forecast_cache.errors import ConstraintViolation

# Record attribute -> table column.
FIELD_COLUMNS = {
    "day": schema.COLUMN_DATE,
    "condition_code": schema.COLUMN_WEATHER_ID,
    "min_temp": schema.COLUMN_MIN_TEMP,
    "max_temp": schema.COLUMN_MAX_TEMP,
    "humidity": schema.COLUMN_HUMIDITY,
    "pressure": schema.COLUMN_PRESSURE,
    "wind_speed": schema.COLUMN_WIND_SPEED,
    "wind_direction": schema.COLUMN_DEGREES,
}
COLUMN_FIELDS = {column: field for field, column in FIELD_COLUMNS.items()}


@dataclass
class ForecastRecord:
    """One day of forecast. Temperatures in Celsius, wind speed in km/h."""

    day: int | None
    condition_code: int | None
    min_temp: float | None
    max_temp: float | None
    humidity: float | None
    pressure: float | None
    wind_speed: float | None
    wind_direction: float | None
    id: int | None = None

    def to_row(self) -> dict:
        return {column: getattr(self, field) for field, column in FIELD_COLUMNS.items()}

    @classmethod
    def from_row(cls, row: dict) -> "ForecastRecord":
        values = {field: row.get(column) for column, field in COLUMN_FIELDS.items()}
        return cls(id=row.get(schema.COLUMN_ID), **values)


def validate_record(record: ForecastRecord) -> dict:
    """
    Return the column values for `record`, or raise ConstraintViolation when a
    required column is absent.
    """
    row = record.to_row()
    for column in schema.REQUIRED_COLUMNS:
        if row.get(column) is None:
            raise ConstraintViolation(f"{column} may not be null", column=column)
    return row
