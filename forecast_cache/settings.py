import os
from dataclasses import dataclass
from pathlib import Path

from forecast_cache.routes import DEFAULT_AUTHORITY
from forecast_cache.schema import DATABASE_NAME

PROJECT_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_API_URL = "https://api.openweathermap.org/data/2.5/forecast/daily"


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def resolve_db_path() -> Path:
    raw_path = os.getenv("FORECAST_DB_PATH")
    if raw_path:
        path = Path(raw_path)
        return path if path.is_absolute() else PROJECT_ROOT / path
    return PROJECT_ROOT / "data" / DATABASE_NAME


@dataclass(frozen=True)
class SyncSettings:
    db_path: Path
    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    units: str = "metric"
    days: int = 14
    http_timeout: int = 10
    default_location: str = "94043,USA"
    interval_seconds: int = 3 * 60 * 60
    app_title: str = "Forecast"
    authority: str = DEFAULT_AUTHORITY
    companion_ws_url: str | None = None
    companion_push_path: str = "/weather_info"
    companion_install_path: str = "/weather_installed"
    companion_key_prefix: str = "com.example.forecast.key"
    notify_email_to: str | None = None


def load_settings() -> SyncSettings:
    return SyncSettings(
        db_path=resolve_db_path(),
        api_url=os.getenv("FORECAST_API_URL", DEFAULT_API_URL),
        api_key=os.getenv("FORECAST_API_KEY") or None,
        units=os.getenv("FORECAST_UNITS", "metric"),
        days=_env_int("FORECAST_DAYS", 14),
        http_timeout=_env_int("FORECAST_HTTP_TIMEOUT", 10),
        default_location=os.getenv("FORECAST_LOCATION", "94043,USA"),
        interval_seconds=_env_int("SYNC_INTERVAL_SECONDS", 3 * 60 * 60),
        app_title=os.getenv("FORECAST_APP_TITLE", "Forecast"),
        authority=os.getenv("FORECAST_AUTHORITY", DEFAULT_AUTHORITY),
        companion_ws_url=os.getenv("COMPANION_WS_URL") or None,
        companion_push_path=os.getenv("COMPANION_PUSH_PATH", "/weather_info"),
        companion_install_path=os.getenv("COMPANION_INSTALL_PATH", "/weather_installed"),
        companion_key_prefix=os.getenv("COMPANION_KEY_PREFIX", "com.example.forecast.key"),
        notify_email_to=os.getenv("NOTIFY_EMAIL_TO") or None,
    )
