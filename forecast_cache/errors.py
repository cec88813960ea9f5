class ForecastCacheError(Exception):
    """Base exception for forecast cache failures."""


class SchemaError(ForecastCacheError):
    """Raised when the forecast table cannot be created or upgraded."""


class ConstraintViolation(ForecastCacheError):
    """Raised when a record is missing a required column."""

    def __init__(self, message: str, column: str | None = None):
        super().__init__(message)
        self.column = column


class RouteUnrecognized(ForecastCacheError):
    """Raised when a path does not resolve to a known forecast route."""

    def __init__(self, path: str):
        super().__init__(f"Unrecognized forecast route: {path!r}")
        self.path = path


class SyncFetchError(ForecastCacheError):
    pass


class SyncParseError(ForecastCacheError):
    pass


class PushError(ForecastCacheError):
    pass


class NotifyError(ForecastCacheError):
    pass
