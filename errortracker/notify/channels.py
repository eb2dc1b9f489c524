"""Notification sinks — log, SMTP and webhook delivery."""

from __future__ import annotations

import abc
import asyncio
import smtplib
from email.message import EmailMessage

import aiohttp
import structlog

from errortracker.core.config import NotifierConfig

logger = structlog.get_logger(__name__)

_TEST_SUBJECT = "Error Tracker - Notification Configuration Test"
_TEST_BODY = (
    "This is a test notification to verify the alert delivery "
    "configuration is working correctly."
)


class NotificationSink(abc.ABC):
    """Base class for alert delivery sinks."""

    @abc.abstractmethod
    async def send(self, recipient: str, subject: str, body: str) -> bool:
        """Deliver a message. Returns True on success."""

    async def close(self) -> None:
        """Release resources (HTTP sessions, etc.)."""


class LogSink(NotificationSink):
    """Writes alerts to the log instead of delivering them.

    Used when no real transport is configured; every send succeeds.
    """

    def __init__(self, from_address: str = "alerts@errortracker.com") -> None:
        self._from_address = from_address

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        logger.info(
            "notification_logged",
            sender=self._from_address,
            recipient=recipient,
            subject=subject,
            body=body,
        )
        return True


class SmtpSink(NotificationSink):
    """Delivers alerts as plain-text email over SMTP.

    ``smtplib`` is blocking, so each send runs in a worker thread; the
    socket timeout bounds connect and every protocol exchange.
    """

    def __init__(self, config: NotifierConfig, timeout_secs: float = 10.0) -> None:
        self._host = config.smtp_host
        self._port = config.smtp_port
        self._username = config.smtp_username
        self._password = config.smtp_password.get_secret_value()
        self._starttls = config.smtp_starttls
        self._from_address = config.from_address
        self._timeout = timeout_secs

    def _build_message(self, recipient: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._from_address
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            if self._starttls:
                server.starttls()
            if self._username:
                server.login(self._username, self._password)
            server.send_message(msg)

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        msg = self._build_message(recipient, subject, body)
        try:
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning(
                "smtp_send_failed",
                recipient=recipient,
                host=self._host,
                error=str(exc),
            )
            return False
        logger.info("smtp_sent", recipient=recipient, subject=subject)
        return True


class WebhookSink(NotificationSink):
    """Delivers alerts as a JSON POST to a webhook URL."""

    def __init__(self, config: NotifierConfig, timeout_secs: float = 10.0) -> None:
        self._url = config.webhook_url.get_secret_value()
        self._timeout = aiohttp.ClientTimeout(total=timeout_secs)
        self._session: aiohttp.ClientSession | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        payload = {"recipient": recipient, "subject": subject, "body": body}
        try:
            session = self._get_session()
            async with session.post(self._url, json=payload) as resp:
                if 200 <= resp.status < 300:
                    return True
                text = await resp.text()
                logger.warning(
                    "webhook_send_failed",
                    status=resp.status,
                    body=text[:200],
                )
                return False
        except (aiohttp.ClientError, TimeoutError) as exc:
            logger.warning("webhook_send_error", error=str(exc))
            return False

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None


def create_sink(config: NotifierConfig, timeout_secs: float = 10.0) -> NotificationSink:
    """Build the sink selected by ``config.mode``."""
    if config.mode == "smtp":
        return SmtpSink(config, timeout_secs=timeout_secs)
    if config.mode == "webhook":
        return WebhookSink(config, timeout_secs=timeout_secs)
    return LogSink(config.from_address)


async def send_test_notification(sink: NotificationSink, recipient: str) -> bool:
    """Send a fixed test message to check the delivery configuration."""
    try:
        delivered = await sink.send(recipient, _TEST_SUBJECT, _TEST_BODY)
    except Exception:
        logger.exception("test_notification_error", sink=type(sink).__name__)
        return False
    if delivered:
        logger.info("test_notification_sent", sink=type(sink).__name__, recipient=recipient)
    else:
        logger.error("test_notification_failed", sink=type(sink).__name__, recipient=recipient)
    return delivered
