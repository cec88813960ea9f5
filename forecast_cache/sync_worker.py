import sys
import threading
import time
from contextlib import closing

from forecast_cache import schema
from forecast_cache.companion import CompanionListener, WebSocketCompanionChannel
from forecast_cache.fake_data import insert_fake_data
from forecast_cache.network import ForecastFetcher
from forecast_cache.notifications import EmailNotificationSurface, LogNotificationSurface
from forecast_cache.parser import extract_coordinates, load_payload, parse_forecast_payload
from forecast_cache.preferences import Preferences
from forecast_cache.settings import SyncSettings, load_settings
from forecast_cache.sync import STATUS_OK, SyncCoordinator
from forecast_cache.worker_log import build_log

log = build_log("sync_worker")


def build_parser(preferences: Preferences):
    """
    Parse a payload and remember the city coordinates it reports, so later
    fetches use coordinates instead of the location query.
    """

    def parse(raw):
        payload = load_payload(raw)
        records = parse_forecast_payload(payload)
        if records:
            coords = extract_coordinates(payload)
            if coords:
                preferences.save_location_details(*coords)
        return records

    return parse


def build_coordinator(settings: SyncSettings, store, preferences: Preferences) -> SyncCoordinator:
    channel = None
    if settings.companion_ws_url:
        channel = WebSocketCompanionChannel(
            settings.companion_ws_url,
            path=settings.companion_push_path,
            key_prefix=settings.companion_key_prefix,
        )
    if settings.notify_email_to:
        surface = EmailNotificationSurface(settings.notify_email_to)
    else:
        surface = LogNotificationSurface(log)
    return SyncCoordinator(
        store,
        ForecastFetcher(settings),
        build_parser(preferences),
        preferences,
        settings,
        channel=channel,
        surface=surface,
        log=log,
    )


def start_listener(settings: SyncSettings, coordinator: SyncCoordinator) -> CompanionListener | None:
    if not settings.companion_ws_url:
        log("WARN: COMPANION_WS_URL not set, install handshake listener disabled")
        return None
    listener = CompanionListener(
        settings.companion_ws_url,
        settings.companion_install_path,
        coordinator.run_cycle,
        log,
    )
    threading.Thread(target=listener.run, name="companion-listener", daemon=True).start()
    return listener


def main() -> int:
    settings = load_settings()
    store = schema.open_store(settings.db_path)
    with store, closing(schema.connect(settings.db_path)) as prefs_conn:
        preferences = Preferences(
            prefs_conn,
            default_units=settings.units,
            default_location=settings.default_location,
        )
        if "--fake" in sys.argv:
            written = insert_fake_data(store)
            log(f"OK: inserted {written} fake forecast day(s) into {settings.db_path}")
            return 0

        coordinator = build_coordinator(settings, store, preferences)
        if "--once" in sys.argv:
            result = coordinator.run_cycle()
            return 0 if result.status == STATUS_OK else 1

        listener = None
        if "--listen" in sys.argv:
            listener = start_listener(settings, coordinator)

        log(f"Starting sync worker (interval={settings.interval_seconds}s, db={settings.db_path}).")
        try:
            while True:
                try:
                    coordinator.run_cycle()
                except Exception as exc:
                    log(f"ERROR: worker exception ({exc!r}).")
                time.sleep(max(60, settings.interval_seconds))
        except KeyboardInterrupt:
            log("Shutdown requested (KeyboardInterrupt).")
        finally:
            if listener is not None:
                listener.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
