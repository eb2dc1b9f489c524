"""Error report ingestion with best-effort inline alert evaluation."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pydantic
import structlog

from errortracker.alerting.engine import AlertDecisionEngine, Clock
from errortracker.core.exceptions import ErrorReportValidationError
from errortracker.core.types import ErrorEvent, ErrorReport, utcnow
from errortracker.store.ports import ErrorRecordStore

logger = structlog.get_logger(__name__)


class ErrorLogService:
    """Accepts error reports, persists them and kicks off alert evaluation.

    Evaluation runs as a background task so a report is never delayed or
    rejected because of alerting trouble; the periodic scanner picks up
    anything the inline path missed.
    """

    def __init__(
        self,
        errors: ErrorRecordStore,
        engine: AlertDecisionEngine | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._errors = errors
        self._engine = engine
        self._clock = clock
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_evaluations(self) -> int:
        return len(self._pending)

    async def log_error(self, report: ErrorReport | Mapping[str, Any]) -> ErrorEvent:
        """Validate, persist and schedule evaluation of one error report.

        Raises:
            ErrorReportValidationError: the report is malformed.
            StoreUnavailableError: the error could not be persisted.
        """
        if not isinstance(report, ErrorReport):
            try:
                report = ErrorReport.model_validate(report)
            except pydantic.ValidationError as exc:
                raise ErrorReportValidationError(str(exc)) from exc

        try:
            event = report.to_event(now=self._clock())
        except pydantic.ValidationError as exc:
            raise ErrorReportValidationError(str(exc)) from exc

        event_id = await asyncio.to_thread(self._errors.insert, event)
        stored = event.model_copy(update={"id": event_id})
        logger.info(
            "error_logged",
            error_id=event_id,
            application=stored.application_name,
            api=stored.api_name,
            status_code=stored.status_code,
            severity=stored.severity.value,
        )

        if self._engine is not None:
            task = asyncio.create_task(self._evaluate_quietly(self._engine, stored))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return stored

    async def wait_for_pending(self) -> None:
        """Wait until every scheduled inline evaluation has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _evaluate_quietly(self, engine: AlertDecisionEngine, event: ErrorEvent) -> None:
        try:
            await engine.evaluate(event)
        except Exception:
            logger.exception("inline_evaluation_failed", error_id=event.id)
