"""Periodic scanner — re-evaluation, health check and retention timers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import timedelta
from types import TracebackType

import structlog

from errortracker.alerting.engine import AlertDecisionEngine, Clock
from errortracker.alerting.reporting import alert_statistics
from errortracker.core.config import SchedulerConfig
from errortracker.core.types import HealthSnapshot, RetentionResult, ScanResult, utcnow
from errortracker.store.ports import AlertHistoryStore, ErrorRecordStore

logger = structlog.get_logger(__name__)


class AlertScanner:
    """Background timers driving the decision engine and store maintenance.

    Three independent tasks run on their own cadence:

    - scan: re-evaluates every error ingested within the scan window, which
      catches errors whose inline evaluation failed or never happened.
    - health check: logs aggregate volumes; never writes.
    - retention: deletes alert records and error events past the retention age.

    A failing tick is logged and the timer keeps going; one timer being slow
    never delays the others.

    Usage::

        scanner = AlertScanner(engine, errors, history, settings.scheduler)
        async with scanner:
            await stop_event.wait()
    """

    def __init__(
        self,
        engine: AlertDecisionEngine,
        errors: ErrorRecordStore,
        history: AlertHistoryStore,
        config: SchedulerConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._engine = engine
        self._errors = errors
        self._history = history
        self._config = config or SchedulerConfig()
        self._clock = clock
        self._tasks: list[asyncio.Task[None]] = []
        self._running = False
        self._last_scan: ScanResult | None = None
        self._last_health: HealthSnapshot | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_scan(self) -> ScanResult | None:
        return self._last_scan

    @property
    def last_health(self) -> HealthSnapshot | None:
        return self._last_health

    # ── Lifecycle ───────────────────────────────────────────────

    async def start(self) -> None:
        if self._running:
            return
        if not self._config.enabled:
            logger.info("scheduler_disabled")
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(
                self._run_periodic("scan", self._config.scan_interval_secs, self.scan_once),
            ),
            asyncio.create_task(
                self._run_periodic(
                    "health_check",
                    self._config.health_check_interval_secs,
                    self.health_check,
                ),
            ),
            asyncio.create_task(
                self._run_periodic(
                    "retention",
                    self._config.retention_interval_secs,
                    self.cleanup,
                    run_immediately=False,
                ),
            ),
        ]
        logger.info(
            "scheduler_started",
            scan_interval_secs=self._config.scan_interval_secs,
            health_check_interval_secs=self._config.health_check_interval_secs,
            retention_interval_secs=self._config.retention_interval_secs,
        )

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        if self._tasks:
            logger.info("scheduler_stopped")
        self._tasks = []

    async def __aenter__(self) -> AlertScanner:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.stop()

    # ── Cycles ──────────────────────────────────────────────────

    async def scan_once(self) -> ScanResult:
        """Evaluate every error ingested within the scan window."""
        now = self._clock()
        scan_start = now - timedelta(minutes=self._config.scan_window_minutes)
        recent = await asyncio.to_thread(self._errors.find_since, scan_start)

        result = ScanResult(errors_scanned=len(recent))
        for event in recent:
            try:
                outcome = await self._engine.evaluate(event)
            except Exception:
                result.evaluation_failures += 1
                logger.exception("scan_evaluation_error", error_id=event.id)
                continue
            if outcome.critical_fired:
                result.critical_sent += 1
            if outcome.high_frequency_fired:
                result.high_frequency_sent += 1

        self._last_scan = result
        if result.errors_scanned:
            logger.info(
                "scan_completed",
                errors_scanned=result.errors_scanned,
                alerts_sent=result.alerts_sent,
                critical_sent=result.critical_sent,
                high_frequency_sent=result.high_frequency_sent,
                evaluation_failures=result.evaluation_failures,
            )
        else:
            logger.debug("scan_completed_no_recent_errors")
        return result

    async def health_check(self) -> HealthSnapshot:
        """Log aggregate error and alert volumes."""
        now = self._clock()
        snapshot = HealthSnapshot(
            total_errors=await asyncio.to_thread(self._errors.count_all),
            recent_errors=await asyncio.to_thread(
                self._errors.count_since, now - timedelta(hours=1),
            ),
            alerts=await asyncio.to_thread(alert_statistics, self._history, now),
            checked_at=now,
        )
        self._last_health = snapshot

        logger.info(
            "health_check",
            total_errors=snapshot.total_errors,
            recent_errors=snapshot.recent_errors,
            alerts_24h=snapshot.alerts.total_count,
            failed_deliveries_24h=snapshot.alerts.failed_count,
        )
        if (
            snapshot.recent_errors > self._config.health_recent_error_warning
            and snapshot.alerts.total_count == 0
        ):
            logger.warning(
                "health_check_no_alerts",
                recent_errors=snapshot.recent_errors,
            )
        if snapshot.alerts.failed_count:
            logger.warning(
                "health_check_failed_deliveries",
                failed_deliveries_24h=snapshot.alerts.failed_count,
            )
        return snapshot

    async def cleanup(self) -> RetentionResult:
        """Delete alert records and error events older than the retention age."""
        cutoff = self._clock() - timedelta(days=self._config.retention_days)
        logger.info("retention_cleanup_started", cutoff=cutoff.isoformat())
        # Alerts first, so events they referenced become eligible in the same pass.
        alerts_deleted = await asyncio.to_thread(self._history.delete_older_than, cutoff)
        errors_deleted = await asyncio.to_thread(self._errors.delete_older_than, cutoff)
        result = RetentionResult(
            cutoff=cutoff,
            alerts_deleted=alerts_deleted,
            errors_deleted=errors_deleted,
        )
        logger.info(
            "retention_cleanup",
            cutoff=cutoff.isoformat(),
            alerts_deleted=alerts_deleted,
            errors_deleted=errors_deleted,
        )
        return result

    # ── Internal loop ───────────────────────────────────────────

    async def _run_periodic(
        self,
        name: str,
        interval_secs: float,
        tick: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
    ) -> None:
        if not run_immediately:
            await asyncio.sleep(interval_secs)
        while self._running:
            try:
                await tick()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("scheduler_tick_error", timer=name)
            await asyncio.sleep(interval_secs)
