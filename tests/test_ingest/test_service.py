"""Tests for ErrorLogService — validation, persistence, inline evaluation."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine

from errortracker.alerting.engine import AlertDecisionEngine
from errortracker.core.config import AlertingConfig
from errortracker.core.exceptions import ErrorReportValidationError, StoreUnavailableError
from errortracker.core.severity import Severity
from errortracker.core.types import AlertKind, ErrorReport
from errortracker.ingest.service import ErrorLogService
from errortracker.notify.channels import NotificationSink
from errortracker.store.sqlalchemy_store import SQLAlchemyAlertHistory, SQLAlchemyErrorStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


# ── Helpers ─────────────────────────────────────────────────────


class FakeSink(NotificationSink):
    def __init__(self) -> None:
        self.sent: list[str] = []

    async def send(self, recipient: str, subject: str, body: str) -> bool:
        self.sent.append(subject)
        return True


def _clock() -> datetime:
    return NOW


def _report(**kw: object) -> dict[str, object]:
    defaults: dict[str, object] = {
        "application_name": "payment-service",
        "api_name": "/api/pay",
        "status_code": 503,
        "message": "upstream timeout",
    }
    defaults.update(kw)
    return defaults


# ── Validation and persistence ──────────────────────────────────


class TestLogError:
    async def test_persists_and_returns_event(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)

        event = await service.log_error(_report())

        assert event.id is not None
        assert event.severity == Severity.CRITICAL
        assert event.timestamp == NOW
        assert errors.count_all() == 1

    async def test_accepts_report_model(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)
        event = await service.log_error(ErrorReport(**_report(status_code=404)))  # type: ignore[arg-type]
        assert event.severity == Severity.WARNING

    async def test_client_timestamp_used(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)
        event = await service.log_error(_report(timestamp="2026-03-01T11:30:00Z"))
        assert event.timestamp == NOW - timedelta(minutes=30)

    async def test_bad_timestamp_falls_back(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)
        event = await service.log_error(_report(timestamp="yesterday-ish"))
        assert event.timestamp == NOW

    @pytest.mark.parametrize(
        "override",
        [
            {"application_name": ""},
            {"application_name": "   "},
            {"api_name": ""},
            {"status_code": 99},
            {"status_code": 600},
            {"status_code": "abc"},
        ],
    )
    async def test_invalid_report_rejected(
        self, errors: SQLAlchemyErrorStore, override: dict[str, object],
    ) -> None:
        service = ErrorLogService(errors, clock=_clock)
        with pytest.raises(ErrorReportValidationError):
            await service.log_error(_report(**override))
        assert errors.count_all() == 0

    async def test_missing_field_rejected(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)
        report = _report()
        del report["api_name"]
        with pytest.raises(ErrorReportValidationError):
            await service.log_error(report)

    async def test_validation_error_is_value_error(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)
        with pytest.raises(ValueError):
            await service.log_error(_report(status_code=42))

    async def test_store_failure_propagates(self) -> None:
        service = ErrorLogService(SQLAlchemyErrorStore(create_engine("sqlite://")))
        with pytest.raises(StoreUnavailableError):
            await service.log_error(_report())


# ── Inline evaluation ───────────────────────────────────────────


class TestInlineEvaluation:
    async def test_critical_report_triggers_alert(
        self, errors: SQLAlchemyErrorStore, history: SQLAlchemyAlertHistory,
    ) -> None:
        sink = FakeSink()
        engine = AlertDecisionEngine(errors, history, sink, AlertingConfig(), clock=_clock)
        service = ErrorLogService(errors, engine, clock=_clock)

        event = await service.log_error(_report())
        await service.wait_for_pending()

        assert sink.sent == ["CRITICAL ERROR: payment-service - /api/pay"]
        assert history.count_sent_since(event.id, AlertKind.CRITICAL, NOW - timedelta(hours=1)) == 1
        assert service.pending_evaluations == 0

    async def test_burst_triggers_high_frequency(
        self, errors: SQLAlchemyErrorStore, history: SQLAlchemyAlertHistory,
    ) -> None:
        sink = FakeSink()
        engine = AlertDecisionEngine(errors, history, sink, AlertingConfig(), clock=_clock)
        service = ErrorLogService(errors, engine, clock=_clock)

        for _ in range(5):
            await service.log_error(_report(status_code=404))
            await service.wait_for_pending()

        assert sink.sent == ["HIGH FREQUENCY ERROR: payment-service - /api/pay"]

    async def test_engine_failure_does_not_fail_ingestion(
        self, errors: SQLAlchemyErrorStore,
    ) -> None:
        engine = MagicMock(spec=AlertDecisionEngine)
        engine.evaluate = AsyncMock(side_effect=StoreUnavailableError("history offline"))
        service = ErrorLogService(errors, engine, clock=_clock)

        event = await service.log_error(_report())
        await service.wait_for_pending()

        assert event.id is not None
        engine.evaluate.assert_awaited_once()
        assert errors.count_all() == 1

    async def test_without_engine_no_tasks(self, errors: SQLAlchemyErrorStore) -> None:
        service = ErrorLogService(errors, clock=_clock)
        await service.log_error(_report())
        assert service.pending_evaluations == 0
        await service.wait_for_pending()
