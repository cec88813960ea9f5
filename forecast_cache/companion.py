"""
Companion device channel.

After each sync a compact summary of today's forecast is pushed to a companion
display over WebSocket. The same socket carries an install handshake: when the
companion reports that it was installed, the listener asks for a fresh sync.
"""
import json
import threading
from dataclasses import asdict, dataclass
from typing import Callable

import websocket

from forecast_cache.dates import now_millis
from forecast_cache.errors import PushError
from forecast_cache.records import ForecastRecord
from forecast_cache.units import to_preferred_temperature

SOCKET_TIMEOUT_SEC = 30

RECONNECT_BASE_SEC = 5
RECONNECT_MAX_SEC = 300

EVENT_CHANGED = "changed"


@dataclass(frozen=True)
class CompanionSummary:
    max_temp: int
    min_temp: int
    condition_code: int
    timestamp: int


def build_summary(record: ForecastRecord, metric: bool, now: int | None = None) -> CompanionSummary:
    return CompanionSummary(
        max_temp=int(to_preferred_temperature(record.max_temp, metric)),
        min_temp=int(to_preferred_temperature(record.min_temp, metric)),
        condition_code=int(record.condition_code),
        timestamp=now_millis() if now is None else int(now),
    )


def summary_message(summary: CompanionSummary, path: str, key_prefix: str) -> dict:
    data = {f"{key_prefix}.{name}": value for name, value in asdict(summary).items()}
    return {"type": "put", "path": path, "urgent": True, "data": data}


def is_install_event(message_text: str, install_path: str) -> bool:
    try:
        data = json.loads(message_text)
    except (TypeError, ValueError):
        return False
    if not isinstance(data, dict):
        return False
    return data.get("type") == EVENT_CHANGED and data.get("path") == install_path


class WebSocketCompanionChannel:
    def __init__(
        self,
        url: str,
        path: str = "/weather_info",
        key_prefix: str = "com.example.forecast.key",
        timeout: int = 10,
        connect: Callable | None = None,
    ):
        self.url = url
        self.path = path
        self.key_prefix = key_prefix
        self.timeout = timeout
        self._connect = connect or websocket.create_connection

    def push(self, summary: CompanionSummary) -> None:
        payload = json.dumps(summary_message(summary, self.path, self.key_prefix), separators=(",", ":"))
        ws = None
        try:
            ws = self._connect(self.url, timeout=self.timeout)
            ws.send(payload)
        except (websocket.WebSocketException, OSError) as exc:
            raise PushError(f"Companion push to {self.url} failed: {exc}") from exc
        finally:
            if ws is not None:
                try:
                    ws.close()
                except (websocket.WebSocketException, OSError):
                    pass


class CompanionListener:
    """
    Listens on the companion socket and calls `on_installed` for each install
    handshake. Reconnects with exponential backoff until `stop()` is called.
    """

    def __init__(
        self,
        url: str,
        install_path: str,
        on_installed: Callable[[], object],
        log: Callable[[str], None],
        socket_factory: Callable | None = None,
    ):
        self.url = url
        self.install_path = install_path
        self.on_installed = on_installed
        self.log = log
        self._socket_factory = socket_factory or websocket.WebSocket
        self._stop = threading.Event()

    def stop(self) -> None:
        self._stop.set()

    def handle_message(self, message_text: str) -> bool:
        if not is_install_event(message_text, self.install_path):
            return False
        self.log(f"Companion install handshake on {self.install_path}; requesting sync")
        self.on_installed()
        return True

    def listen_once(self) -> None:
        ws = self._socket_factory()
        try:
            ws.connect(self.url, timeout=SOCKET_TIMEOUT_SEC)
            ws.settimeout(SOCKET_TIMEOUT_SEC)
            self.log("Companion socket connected")
            while not self._stop.is_set():
                try:
                    message = ws.recv()
                except websocket.WebSocketTimeoutException:
                    continue
                if not message:
                    break
                self.handle_message(message)
        finally:
            try:
                ws.close()
            except (websocket.WebSocketException, OSError):
                pass

    def run(self) -> None:
        reconnect_delay = RECONNECT_BASE_SEC
        while not self._stop.is_set():
            try:
                self.listen_once()
                reconnect_delay = RECONNECT_BASE_SEC
            except (websocket.WebSocketException, OSError) as exc:
                self.log(f"WARN: companion connection error: {exc!r}")
                self.log(f"Reconnecting in {reconnect_delay}s")
                self._stop.wait(reconnect_delay)
                reconnect_delay = min(RECONNECT_MAX_SEC, reconnect_delay * 2)
            else:
                # Clean close from the companion side.
                self._stop.wait(1)
