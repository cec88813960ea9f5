import os
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Callable

from forecast_cache import schema
from forecast_cache.conditions import describe_condition, icon_for_condition
from forecast_cache.dates import normalized_utc_today
from forecast_cache.errors import NotifyError
from forecast_cache.routes import RouteMatcher, query_route
from forecast_cache.units import format_temperature

DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 587

NOTIFICATION_PROJECTION = (
    schema.COLUMN_WEATHER_ID,
    schema.COLUMN_MAX_TEMP,
    schema.COLUMN_MIN_TEMP,
)


@dataclass(frozen=True)
class Notification:
    title: str
    text: str
    deep_link: str
    icon: str = ""


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


def build_notification_text(condition_code: int, high_c: float, low_c: float, metric: bool) -> str:
    return (
        f"Forecast: {describe_condition(condition_code)} - "
        f"High: {format_temperature(high_c, metric)} "
        f"Low: {format_temperature(low_c, metric)}"
    )


def build_today_notification(
    store,
    title: str,
    metric: bool,
    matcher: RouteMatcher,
    today: int | None = None,
) -> Notification | None:
    """
    Build the notification for today's forecast row, or None when the store
    has no row for today.
    """
    day = normalized_utc_today() if today is None else today
    path = matcher.build_path(day)
    rows = query_route(store, path, columns=NOTIFICATION_PROJECTION, matcher=matcher)
    if not rows:
        return None
    row = rows[0]
    condition = int(row[schema.COLUMN_WEATHER_ID])
    text = build_notification_text(
        condition,
        row[schema.COLUMN_MAX_TEMP],
        row[schema.COLUMN_MIN_TEMP],
        metric,
    )
    return Notification(
        title=title,
        text=text,
        deep_link=path,
        icon=icon_for_condition(condition, large=True),
    )


class LogNotificationSurface:
    """Writes notifications to the worker log when no email is configured."""

    def __init__(self, log: Callable[[str], None]):
        self._log = log

    def show(self, title: str, text: str, deep_link: str) -> None:
        self._log(f"NOTIFY: {title} | {text} | {deep_link}")


class EmailNotificationSurface:
    """
    Delivers notifications by email. SMTP settings come from SMTP_HOST,
    SMTP_PORT, SMTP_USERNAME, SMTP_PASSWORD, NOTIFY_EMAIL_FROM, SMTP_USE_TLS
    and SMTP_USE_SSL.
    """

    def __init__(self, to_address: str, smtp_factory=None):
        self.to_address = to_address
        self._smtp_factory = smtp_factory

    def _config(self) -> dict:
        port_value = os.getenv("SMTP_PORT") or str(DEFAULT_SMTP_PORT)
        try:
            port = int(port_value)
        except ValueError:
            port = DEFAULT_SMTP_PORT
        username = (os.getenv("SMTP_USERNAME") or "").strip()
        password = os.getenv("SMTP_PASSWORD")
        from_address = (os.getenv("NOTIFY_EMAIL_FROM") or "").strip() or username
        if not username or not password or not from_address:
            raise NotifyError("Email auth missing (SMTP_USERNAME / SMTP_PASSWORD).")
        return {
            "host": os.getenv("SMTP_HOST") or DEFAULT_SMTP_HOST,
            "port": port,
            "username": username,
            "password": password,
            "from_address": from_address,
            "use_tls": _env_flag("SMTP_USE_TLS", "true"),
            "use_ssl": _env_flag("SMTP_USE_SSL", "false"),
        }

    def _connect(self, config: dict):
        if self._smtp_factory is not None:
            return self._smtp_factory(config)
        if config["use_ssl"]:
            return smtplib.SMTP_SSL(config["host"], config["port"], timeout=10)
        return smtplib.SMTP(config["host"], config["port"], timeout=10)

    def show(self, title: str, text: str, deep_link: str) -> None:
        if not self.to_address:
            raise NotifyError("Recipient missing (NOTIFY_EMAIL_TO).")
        config = self._config()
        message = EmailMessage()
        message["Subject"] = title or ""
        message["From"] = config["from_address"]
        message["To"] = self.to_address
        message.set_content(f"{text}\n\n{deep_link}")
        try:
            with self._connect(config) as server:
                server.ehlo()
                if not config["use_ssl"] and config["use_tls"]:
                    server.starttls()
                    server.ehlo()
                server.login(config["username"], config["password"])
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifyError(f"Email send failed: {exc}") from exc
