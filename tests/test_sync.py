import dataclasses
import json
import threading
import unittest
from pathlib import Path

from forecast_cache import schema
from forecast_cache.dates import DAY_IN_MILLIS, HOUR_IN_MILLIS
from forecast_cache.errors import NotifyError, PushError, SyncFetchError
from forecast_cache.fake_data import build_fake_batch
from forecast_cache.parser import parse_forecast_payload
from forecast_cache.preferences import UNITS_IMPERIAL, Preferences
from forecast_cache.routes import RouteKind, query_route, resolve
from forecast_cache.settings import SyncSettings
from forecast_cache.sync import (
    STATUS_BUSY,
    STATUS_FETCH_ERROR,
    STATUS_NO_DATA,
    STATUS_OK,
    STATUS_PARSE_ERROR,
    SyncCoordinator,
)
from forecast_cache.sync_worker import build_parser
from tests.payloads import sample_payload, sample_payload_text

DAY0 = 1_700_006_400_000
NOW = DAY0 + 9 * HOUR_IN_MILLIS


class FakeSurface:
    def __init__(self, error: Exception | None = None):
        self.shown = []
        self.error = error

    def show(self, title, text, deep_link):
        if self.error:
            raise self.error
        self.shown.append((title, text, deep_link))


class FakeChannel:
    def __init__(self, error: Exception | None = None):
        self.pushed = []
        self.error = error

    def push(self, summary):
        if self.error:
            raise self.error
        self.pushed.append(summary)


class SyncCoordinatorTest(unittest.TestCase):
    def setUp(self):
        self.store = schema.open_store(":memory:")
        self.prefs_conn = schema.connect(":memory:")
        self.preferences = Preferences(self.prefs_conn)
        self.settings = SyncSettings(db_path=Path(":memory:"), app_title="Forecast")
        self.surface = FakeSurface()
        self.channel = FakeChannel()
        self.logged = []
        self.payload = sample_payload_text(7)
        self.fetched = []

    def tearDown(self):
        self.store.close()
        self.prefs_conn.close()

    def fetch(self, location):
        self.fetched.append(location)
        return self.payload

    def make_coordinator(self, fetcher=None, parser=None) -> SyncCoordinator:
        return SyncCoordinator(
            self.store,
            fetcher or self.fetch,
            parser or (lambda raw: parse_forecast_payload(raw, today=DAY0)),
            self.preferences,
            self.settings,
            channel=self.channel,
            surface=self.surface,
            log=self.logged.append,
            clock=lambda: NOW,
        )

    def test_cycle_commits_batch(self):
        result = self.make_coordinator().run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertEqual(result.rows_written, 7)
        rows = query_route(self.store, "/forecast")
        self.assertEqual(len(rows), 7)
        self.assertEqual(len({row[schema.COLUMN_DATE] for row in rows}), 7)

        day_rows = query_route(self.store, f"/forecast/{DAY0}")
        self.assertEqual(len(day_rows), 1)
        row = day_rows[0]
        first = sample_payload(7)["list"][0]
        self.assertEqual(row[schema.COLUMN_WEATHER_ID], first["weather"][0]["id"])
        self.assertEqual(row[schema.COLUMN_MAX_TEMP], first["temp"]["max"])
        self.assertEqual(row[schema.COLUMN_MIN_TEMP], first["temp"]["min"])
        self.assertEqual(row[schema.COLUMN_HUMIDITY], first["humidity"])
        self.assertEqual(row[schema.COLUMN_PRESSURE], first["pressure"])
        self.assertEqual(row[schema.COLUMN_WIND_SPEED], first["speed"])
        self.assertEqual(row[schema.COLUMN_DEGREES], first["deg"])
        self.assertEqual(resolve(f"/forecast/{DAY0}").kind, RouteKind.COLLECTION_WITH_DAY)

    def test_cycle_clears_stale_days(self):
        self.store.bulk_insert(build_fake_batch(start_day=DAY0 - 30 * DAY_IN_MILLIS, seed=8))
        self.make_coordinator().run_cycle()
        days = sorted(row[schema.COLUMN_DATE] for row in self.store.query())
        self.assertEqual(days, [DAY0 + i * DAY_IN_MILLIS for i in range(7)])

    def test_notifies_when_last_notification_is_old(self):
        self.preferences.save_notification_time(NOW - 2 * DAY_IN_MILLIS)

        result = self.make_coordinator().run_cycle()

        self.assertTrue(result.notified)
        self.assertEqual(len(self.surface.shown), 1)
        title, text, deep_link = self.surface.shown[0]
        self.assertEqual(title, "Forecast")
        self.assertIn("Clear", text)
        self.assertTrue(deep_link.endswith(f"/forecast/{DAY0}"))
        self.assertEqual(self.preferences.last_notification_time(), NOW)

    def test_no_notification_within_a_day(self):
        self.preferences.save_notification_time(NOW - HOUR_IN_MILLIS)

        result = self.make_coordinator().run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertFalse(result.notified)
        self.assertEqual(self.surface.shown, [])

    def test_no_notification_when_disabled(self):
        self.preferences.set_notifications_enabled(False)
        self.make_coordinator().run_cycle()
        self.assertEqual(self.surface.shown, [])

    def test_fetch_error_leaves_store_untouched(self):
        self.store.bulk_insert(build_fake_batch(start_day=DAY0, seed=9))
        before = self.store.query()

        def failing_fetch(location):
            raise SyncFetchError("boom")

        result = self.make_coordinator(fetcher=failing_fetch).run_cycle()

        self.assertEqual(result.status, STATUS_FETCH_ERROR)
        self.assertEqual(self.store.query(), before)
        self.assertEqual(self.surface.shown, [])
        self.assertEqual(self.channel.pushed, [])
        self.assertTrue(any(line.startswith("ERROR:") for line in self.logged))

    def test_parse_error_leaves_store_untouched(self):
        self.store.bulk_insert(build_fake_batch(start_day=DAY0, seed=10))
        self.payload = "not json"

        result = self.make_coordinator().run_cycle()

        self.assertEqual(result.status, STATUS_PARSE_ERROR)
        self.assertEqual(self.store.count(), 7)

    def test_non_object_days_abort_cycle(self):
        self.store.bulk_insert(build_fake_batch(start_day=DAY0, seed=12))
        self.payload = json.dumps({"cod": "200", "list": [1, 2, 3]})

        result = self.make_coordinator().run_cycle()

        self.assertEqual(result.status, STATUS_PARSE_ERROR)
        self.assertEqual(self.store.count(), 7)
        self.assertTrue(any(line.startswith("ERROR:") for line in self.logged))

    def test_worker_parser_saves_city_coordinates(self):
        result = self.make_coordinator(parser=build_parser(self.preferences)).run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertEqual(self.preferences.location_params(), {"lat": 37.4, "lon": -122.08})

    def test_bad_city_coordinates_do_not_abort_cycle(self):
        payload = sample_payload(7)
        payload["city"]["coord"]["lat"] = "north"
        self.payload = json.dumps(payload)

        result = self.make_coordinator(parser=build_parser(self.preferences)).run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertEqual(self.store.count(), 7)
        self.assertNotIn("lat", self.preferences.location_params())

    def test_rejected_day_zero_skips_push(self):
        def parser(raw):
            batch = parse_forecast_payload(raw, today=DAY0)
            batch[0].humidity = None
            return batch

        result = self.make_coordinator(parser=parser).run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertEqual(result.rows_written, 6)
        self.assertFalse(result.pushed)
        self.assertFalse(result.notified)
        self.assertEqual(self.channel.pushed, [])

    def test_push_reports_committed_day_zero(self):
        def parser(raw):
            batch = parse_forecast_payload(raw, today=DAY0)
            later = dataclasses.replace(batch[0], max_temp=30.0)
            return batch + [later]

        self.make_coordinator(parser=parser).run_cycle()

        self.assertEqual(self.channel.pushed[0].max_temp, 30)
        self.assertEqual(self.store.query_records(day=DAY0)[0].max_temp, 30.0)

    def test_empty_batch_is_a_no_op(self):
        self.store.bulk_insert(build_fake_batch(start_day=DAY0, seed=11))

        for parser in (lambda raw: None, lambda raw: []):
            result = self.make_coordinator(parser=parser).run_cycle()
            self.assertEqual(result.status, STATUS_NO_DATA)
        self.assertEqual(self.store.count(), 7)
        self.assertEqual(self.channel.pushed, [])

    def test_push_failure_does_not_undo_commit(self):
        self.channel = FakeChannel(error=PushError("companion offline"))

        result = self.make_coordinator().run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertFalse(result.pushed)
        self.assertEqual(self.store.count(), 7)
        self.assertTrue(any("companion push failed" in line for line in self.logged))

    def test_notify_failure_is_isolated(self):
        self.surface = FakeSurface(error=NotifyError("smtp down"))

        result = self.make_coordinator().run_cycle()

        self.assertEqual(result.status, STATUS_OK)
        self.assertFalse(result.notified)
        self.assertTrue(result.pushed)
        self.assertEqual(self.preferences.last_notification_time(), 0)

    def test_push_uses_preferred_units(self):
        self.preferences.set_units(UNITS_IMPERIAL)

        self.make_coordinator().run_cycle()

        summary = self.channel.pushed[0]
        first = sample_payload(7)["list"][0]
        self.assertEqual(summary.max_temp, int(first["temp"]["max"] * 1.8 + 32))
        self.assertEqual(summary.min_temp, int(first["temp"]["min"] * 1.8 + 32))
        self.assertEqual(summary.condition_code, 800)
        self.assertEqual(summary.timestamp, NOW)

    def test_fetch_uses_location_params(self):
        self.preferences.set_location("Oslo,NO")
        self.make_coordinator().run_cycle()
        self.assertEqual(self.fetched, [{"query": "Oslo,NO"}])

    def test_overlapping_cycle_is_skipped(self):
        coordinator = self.make_coordinator()
        entered = threading.Event()
        release = threading.Event()
        results = []

        def slow_fetch(location):
            entered.set()
            release.wait(5)
            return self.payload

        coordinator.fetcher = slow_fetch
        worker = threading.Thread(target=lambda: results.append(coordinator.run_cycle()))
        worker.start()
        self.assertTrue(entered.wait(5))

        self.assertEqual(coordinator.run_cycle().status, STATUS_BUSY)

        release.set()
        worker.join(5)
        self.assertEqual(results[0].status, STATUS_OK)

    def test_install_handshake_triggers_sync(self):
        coordinator = self.make_coordinator()
        self.assertIsNone(coordinator.handle_companion_event("/something_else"))
        result = coordinator.handle_companion_event(self.settings.companion_install_path)
        self.assertEqual(result.status, STATUS_OK)


if __name__ == "__main__":
    unittest.main()
