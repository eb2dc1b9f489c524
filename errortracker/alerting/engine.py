"""Alert decision engine — rule evaluation, cooldown suppression, dispatch."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from errortracker.alerting.formatters import (
    format_critical_alert,
    format_high_frequency_alert,
)
from errortracker.core.config import AlertingConfig
from errortracker.core.exceptions import StoreUnavailableError
from errortracker.core.severity import Severity
from errortracker.core.types import (
    AlertKind,
    AlertMessage,
    AlertRecord,
    DeliveryStatus,
    ErrorEvent,
    EvaluationResult,
    utcnow,
)
from errortracker.notify.channels import NotificationSink
from errortracker.store.ports import AlertHistoryStore, ErrorRecordStore

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class AlertDecisionEngine:
    """Decides whether a newly ingested error warrants an alert.

    Two rules are evaluated for every error:

    - CRITICAL fires for 5xx errors, once per error per critical cooldown.
    - HIGH_FREQUENCY fires when at least ``high_frequency_threshold_count``
      errors with the same status, application and api arrived within the
      frequency window, once per error per high-frequency cooldown.

    Before calling the sink the engine claims the (error, kind) slot in the
    alert history store, so evaluators in other processes cannot dispatch
    the same alert concurrently.     Cooldowns only count SENT records, so a failed delivery is retried on the
    next evaluation. Sink failures never escape ``evaluate``; store failures
    do, as ``StoreUnavailableError``.

    Usage::

        engine = AlertDecisionEngine(errors, history, sink, settings.alerting)
        result = await engine.evaluate(event)
    """

    def __init__(
        self,
        errors: ErrorRecordStore,
        history: AlertHistoryStore,
        sink: NotificationSink,
        config: AlertingConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._errors = errors
        self._history = history
        self._sink = sink
        self._config = config or AlertingConfig()
        self._clock = clock
        # (error id, kind) -> lock; entries are dropped once no task holds or awaits them.
        self._locks: dict[tuple[int, AlertKind], _KeyLock] = {}

    @property
    def config(self) -> AlertingConfig:
        return self._config

    async def evaluate(self, event: ErrorEvent) -> EvaluationResult:
        """Evaluate both alert rules for a persisted error event."""
        if event.id is None:
            raise ValueError("error event must be persisted before evaluation")

        now = self._clock()
        critical_fired = False
        if event.severity == Severity.CRITICAL:
            critical_fired = await self._dispatch_once(
                event,
                event.id,
                AlertKind.CRITICAL,
                timedelta(minutes=self._config.critical_cooldown_minutes),
                now,
                lambda: format_critical_alert(event),
            )

        high_frequency_fired = False
        observed = await self._count_similar(event, now)
        threshold = self._config.high_frequency_threshold_count
        if observed >= threshold:
            high_frequency_fired = await self._dispatch_once(
                event,
                event.id,
                AlertKind.HIGH_FREQUENCY,
                timedelta(minutes=self._config.high_frequency_cooldown_minutes),
                now,
                lambda: format_high_frequency_alert(
                    event,
                    observed_count=observed,
                    threshold=threshold,
                    window_minutes=self._config.high_frequency_window_minutes,
                ),
            )

        result = EvaluationResult(
            critical_fired=critical_fired,
            high_frequency_fired=high_frequency_fired,
        )
        if result.any_fired:
            logger.info(
                "alerts_sent",
                error_id=event.id,
                critical=critical_fired,
                high_frequency=high_frequency_fired,
            )
        else:
            logger.debug("no_alerts_sent", error_id=event.id)
        return result

    async def _count_similar(self, event: ErrorEvent, now: datetime) -> int:
        window_start = now - timedelta(minutes=self._config.high_frequency_window_minutes)
        similar = await asyncio.to_thread(
            self._errors.find_by_status_and_app_api_since,
            event.status_code,
            event.application_name,
            event.api_name,
            window_start,
        )
        return len(similar)

    async def _dispatch_once(
        self,
        event: ErrorEvent,
        error_id: int,
        kind: AlertKind,
        cooldown: timedelta,
        now: datetime,
        compose: Callable[[], AlertMessage],
    ) -> bool:
        """Send and record one alert unless a SENT one is within the cooldown.

        The dispatch slot is claimed in the store before the sink is called,
        so evaluators in other processes cannot send the same alert. Returns
        True only when the sink delivered.
        """
        cooldown_start = now - cooldown

        async with self._hold(error_id, kind):
            sent = await asyncio.to_thread(
                self._history.count_sent_since, error_id, kind, cooldown_start,
            )
            if sent > 0:
                logger.debug(
                    "alert_suppressed",
                    error_id=error_id,
                    alert_kind=kind.value,
                    cooldown_minutes=cooldown.total_seconds() / 60,
                )
                return False

            token = await asyncio.to_thread(
                self._history.claim,
                error_id,
                kind,
                cooldown_start,
                now - timedelta(seconds=self._config.claim_timeout_secs),
                now,
            )
            if token is None:
                logger.info(
                    "alert_claimed_elsewhere",
                    error_id=error_id,
                    alert_kind=kind.value,
                )
                return False

            completed = False
            try:
                msg = compose()
                delivered = await self._deliver(event, msg)
                record = AlertRecord(
                    error_id=error_id,
                    alert_kind=kind,
                    recipient=self._config.recipient,
                    subject=msg.subject,
                    body=msg.body,
                    sent_at=self._clock(),
                    delivery_status=DeliveryStatus.SENT if delivered else DeliveryStatus.FAILED,
                )
                record_id = await asyncio.to_thread(self._history.complete, token, record)
                completed = True
            finally:
                if not completed:
                    await self._release(token, error_id, kind)

        if delivered:
            logger.info(
                "alert_dispatched",
                error_id=error_id,
                alert_kind=kind.value,
                recipient=record.recipient,
                alert_id=record_id,
            )
        return delivered

    async def _release(self, token: str, error_id: int, kind: AlertKind) -> None:
        # A claim left behind expires after claim_timeout_secs.
        try:
            await asyncio.to_thread(self._history.release, token)
        except StoreUnavailableError:
            logger.warning(
                "alert_claim_release_failed",
                error_id=error_id,
                alert_kind=kind.value,
            )

    async def _deliver(self, event: ErrorEvent, msg: AlertMessage) -> bool:
        try:
            delivered = await asyncio.wait_for(
                self._sink.send(self._config.recipient, msg.subject, msg.body),
                timeout=self._config.delivery_timeout_secs,
            )
        except TimeoutError:
            logger.warning(
                "alert_delivery_timeout",
                error_id=event.id,
                alert_kind=msg.kind.value,
                timeout_secs=self._config.delivery_timeout_secs,
            )
            return False
        except Exception as exc:
            logger.warning(
                "alert_delivery_failed",
                error_id=event.id,
                alert_kind=msg.kind.value,
                sink=type(self._sink).__name__,
                error=repr(exc),
            )
            return False

        if not delivered:
            logger.warning(
                "alert_delivery_rejected",
                error_id=event.id,
                alert_kind=msg.kind.value,
                sink=type(self._sink).__name__,
            )
        return bool(delivered)

    @asynccontextmanager
    async def _hold(self, error_id: int, kind: AlertKind) -> AsyncIterator[None]:
        key = (error_id, kind)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = _KeyLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._locks[key]
