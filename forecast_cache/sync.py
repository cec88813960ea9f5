"""
Sync coordinator.

One cycle: fetch the remote forecast, parse it, replace the stored rows with
the new batch, then (outside the storage transaction) notify the user at most
once a day and push a summary to the companion device.
"""
import threading
from dataclasses import dataclass
from typing import Callable

from forecast_cache.companion import build_summary
from forecast_cache.dates import DAY_IN_MILLIS, now_millis
from forecast_cache.errors import SyncFetchError, SyncParseError
from forecast_cache.notifications import build_today_notification
from forecast_cache.records import ForecastRecord
from forecast_cache.routes import RouteMatcher
from forecast_cache.settings import SyncSettings
from forecast_cache.worker_log import build_log

STATUS_OK = "ok"
STATUS_FETCH_ERROR = "fetch_error"
STATUS_PARSE_ERROR = "parse_error"
STATUS_NO_DATA = "no_data"
STATUS_BUSY = "busy"


@dataclass(frozen=True)
class SyncResult:
    status: str
    rows_written: int = 0
    notified: bool = False
    pushed: bool = False


class SyncCoordinator:
    def __init__(
        self,
        store,
        fetcher: Callable[[dict], str],
        parser: Callable[[str], list[ForecastRecord] | None],
        preferences,
        settings: SyncSettings,
        channel=None,
        surface=None,
        log: Callable[[str], None] | None = None,
        clock: Callable[[], int] = now_millis,
    ):
        self.store = store
        self.fetcher = fetcher
        self.parser = parser
        self.preferences = preferences
        self.settings = settings
        self.channel = channel
        self.surface = surface
        self.log = log or build_log("sync_worker")
        self.clock = clock
        self.matcher = RouteMatcher(settings.authority)
        self._running = threading.Lock()

    def run_cycle(self) -> SyncResult:
        if not self._running.acquire(blocking=False):
            self.log("WARN: sync already in progress, skipping trigger")
            return SyncResult(STATUS_BUSY)
        try:
            return self._run_cycle()
        finally:
            self._running.release()

    def handle_companion_event(self, path: str) -> SyncResult | None:
        if path != self.settings.companion_install_path:
            return None
        return self.run_cycle()

    def _run_cycle(self) -> SyncResult:
        location = self.preferences.location_params()
        try:
            raw = self.fetcher(location)
        except SyncFetchError as exc:
            self.log(f"ERROR: {exc}")
            return SyncResult(STATUS_FETCH_ERROR)

        try:
            batch = self.parser(raw)
        except SyncParseError as exc:
            self.log(f"ERROR: {exc}")
            return SyncResult(STATUS_PARSE_ERROR)

        if not batch:
            self.log("WARN: no forecast data in response, store left unchanged")
            return SyncResult(STATUS_NO_DATA)

        written = self.store.replace_all(batch)
        self.log(f"OK: stored {written} of {len(batch)} forecast day(s)")

        day_zero = batch[0].day
        notified = self._maybe_notify(day_zero)
        pushed = self._push_summary(day_zero)
        return SyncResult(STATUS_OK, rows_written=written, notified=notified, pushed=pushed)

    def _maybe_notify(self, day_zero: int) -> bool:
        if self.surface is None or not self.preferences.notifications_enabled():
            return False
        now = self.clock()
        if self.preferences.last_notification_elapsed(now) < DAY_IN_MILLIS:
            return False
        notification = build_today_notification(
            self.store,
            self.settings.app_title,
            self.preferences.is_metric(),
            self.matcher,
            today=day_zero,
        )
        if notification is None:
            self.log("WARN: no row for today, notification skipped")
            return False
        try:
            self.surface.show(notification.title, notification.text, notification.deep_link)
        except Exception as exc:
            self.log(f"WARN: notification failed ({exc!r})")
            return False
        self.preferences.save_notification_time(now)
        self.log(f"OK: notified '{notification.text}'")
        return True

    def _push_summary(self, day_zero: int) -> bool:
        if self.channel is None:
            return False
        committed = self.store.query_records(day=day_zero)
        if not committed:
            self.log("WARN: no row for today, companion push skipped")
            return False
        try:
            summary = build_summary(committed[0], self.preferences.is_metric(), now=self.clock())
            self.channel.push(summary)
        except Exception as exc:
            self.log(f"WARN: companion push failed ({exc!r})")
            return False
        self.log(
            f"OK: pushed companion summary high={summary.max_temp} low={summary.min_temp} "
            f"code={summary.condition_code}"
        )
        return True
