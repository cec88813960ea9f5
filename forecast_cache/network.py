import requests

from forecast_cache.errors import SyncFetchError
from forecast_cache.settings import SyncSettings


def build_params(location: dict, settings: SyncSettings) -> dict:
    """
    Query parameters for the daily forecast endpoint. Coordinates win over the
    location query string when both are present.
    """
    params = {
        "mode": "json",
        "units": settings.units,
        "cnt": settings.days,
    }
    if location.get("lat") is not None and location.get("lon") is not None:
        params["lat"] = location["lat"]
        params["lon"] = location["lon"]
    elif location.get("query"):
        params["q"] = location["query"]
    else:
        raise SyncFetchError("No location configured for forecast fetch")
    if settings.api_key:
        params["appid"] = settings.api_key
    return params


def fetch_forecast(location: dict, settings: SyncSettings, session=None) -> str:
    """
    Fetch the raw forecast JSON text for `location`.

    Raises SyncFetchError on network failures and non-success statuses.
    """
    params = build_params(location, settings)
    client = session or requests
    try:
        resp = client.get(settings.api_url, params=params, timeout=settings.http_timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise SyncFetchError(f"Forecast fetch failed: {exc}") from exc
    text = resp.text
    if not text:
        raise SyncFetchError("Forecast fetch returned an empty body")
    return text


class ForecastFetcher:
    """Binds settings and an optional requests.Session to fetch_forecast."""

    def __init__(self, settings: SyncSettings, session: requests.Session | None = None):
        self.settings = settings
        self.session = session

    def __call__(self, location: dict) -> str:
        return fetch_forecast(location, self.settings, session=self.session)
