import json
import unittest

import websocket

from forecast_cache.companion import (
    CompanionListener,
    CompanionSummary,
    WebSocketCompanionChannel,
    build_summary,
    is_install_event,
)
from forecast_cache.errors import PushError
from forecast_cache.records import ForecastRecord

RECORD = ForecastRecord(
    day=0,
    condition_code=500,
    min_temp=10.0,
    max_temp=20.0,
    humidity=50.0,
    pressure=1000.0,
    wind_speed=3.0,
    wind_direction=90.0,
)


class FakeSocket:
    def __init__(self, messages=None, fail_send=False):
        self.messages = list(messages or [])
        self.sent = []
        self.closed = False
        self.fail_send = fail_send

    def connect(self, url, timeout=None):
        self.url = url

    def settimeout(self, timeout):
        self.timeout = timeout

    def send(self, payload):
        if self.fail_send:
            raise websocket.WebSocketConnectionClosedException("closed")
        self.sent.append(payload)

    def recv(self):
        if not self.messages:
            return ""
        item = self.messages.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class CompanionTest(unittest.TestCase):
    def test_build_summary_converts_units(self):
        metric = build_summary(RECORD, metric=True, now=123)
        self.assertEqual(metric, CompanionSummary(max_temp=20, min_temp=10, condition_code=500, timestamp=123))
        imperial = build_summary(RECORD, metric=False, now=123)
        self.assertEqual((imperial.max_temp, imperial.min_temp), (68, 50))

    def test_push_sends_keyed_message(self):
        sock = FakeSocket()
        channel = WebSocketCompanionChannel(
            "ws://watch.local/data",
            path="/brand_info",
            key_prefix="brand.key",
            connect=lambda url, timeout: sock,
        )
        channel.push(build_summary(RECORD, metric=True, now=5))

        self.assertTrue(sock.closed)
        message = json.loads(sock.sent[0])
        self.assertEqual(message["path"], "/brand_info")
        self.assertTrue(message["urgent"])
        self.assertEqual(message["data"]["brand.key.max_temp"], 20)
        self.assertEqual(message["data"]["brand.key.condition_code"], 500)
        self.assertEqual(message["data"]["brand.key.timestamp"], 5)

    def test_push_failures_raise_push_error(self):
        def refuse(url, timeout):
            raise ConnectionRefusedError("no companion")

        with self.assertRaises(PushError):
            WebSocketCompanionChannel("ws://x", connect=refuse).push(build_summary(RECORD, True, now=1))

        sock = FakeSocket(fail_send=True)
        with self.assertRaises(PushError):
            WebSocketCompanionChannel("ws://x", connect=lambda url, timeout: sock).push(
                build_summary(RECORD, True, now=1)
            )
        self.assertTrue(sock.closed)

    def test_install_event_detection(self):
        self.assertTrue(is_install_event('{"type": "changed", "path": "/weather_installed"}', "/weather_installed"))
        self.assertFalse(is_install_event('{"type": "deleted", "path": "/weather_installed"}', "/weather_installed"))
        self.assertFalse(is_install_event('{"type": "changed", "path": "/other"}', "/weather_installed"))
        self.assertFalse(is_install_event("garbage", "/weather_installed"))

    def test_listener_triggers_on_install(self):
        calls = []
        sock = FakeSocket(
            messages=[
                '{"type": "changed", "path": "/other"}',
                websocket.WebSocketTimeoutException("idle"),
                '{"type": "changed", "path": "/weather_installed"}',
            ]
        )
        listener = CompanionListener(
            "ws://watch.local/events",
            "/weather_installed",
            lambda: calls.append("sync"),
            log=lambda msg: None,
            socket_factory=lambda: sock,
        )
        listener.listen_once()

        self.assertEqual(calls, ["sync"])
        self.assertTrue(sock.closed)


if __name__ == "__main__":
    unittest.main()
