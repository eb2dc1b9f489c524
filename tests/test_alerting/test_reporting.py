"""Tests for alert history reporting queries."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from errortracker.alerting.reporting import alert_statistics, recent_alerts
from errortracker.core.types import AlertKind, AlertRecord, DeliveryStatus
from errortracker.store.sqlalchemy_store import SQLAlchemyAlertHistory

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _record(error_id: int, **kw: object) -> AlertRecord:
    defaults: dict[str, object] = {
        "error_id": error_id,
        "alert_kind": AlertKind.CRITICAL,
        "recipient": "admin@company.com",
        "subject": "s",
        "body": "b",
        "sent_at": NOW,
        "delivery_status": DeliveryStatus.SENT,
    }
    defaults.update(kw)
    return AlertRecord(**defaults)  # type: ignore[arg-type]


class TestRecentAlerts:
    def test_default_window_is_one_hour(self, history: SQLAlchemyAlertHistory) -> None:
        history.insert(_record(1, sent_at=NOW - timedelta(minutes=10)))
        history.insert(_record(2, sent_at=NOW - timedelta(minutes=90)))
        found = recent_alerts(history, now=NOW)
        assert [r.error_id for r in found] == [1]

    def test_custom_window_includes_failed(self, history: SQLAlchemyAlertHistory) -> None:
        history.insert(_record(1, sent_at=NOW - timedelta(minutes=10)))
        history.insert(
            _record(
                2,
                sent_at=NOW - timedelta(minutes=90),
                delivery_status=DeliveryStatus.FAILED,
            ),
        )
        found = recent_alerts(history, minutes=120, now=NOW)
        assert [r.error_id for r in found] == [1, 2]

    def test_empty(self, history: SQLAlchemyAlertHistory) -> None:
        assert list(recent_alerts(history, now=NOW)) == []


class TestAlertStatistics:
    def test_counts_per_kind(self, history: SQLAlchemyAlertHistory) -> None:
        history.insert(_record(1))
        history.insert(_record(2, sent_at=NOW - timedelta(hours=2)))
        history.insert(_record(3, alert_kind=AlertKind.HIGH_FREQUENCY))
        history.insert(_record(4, delivery_status=DeliveryStatus.FAILED))
        history.insert(_record(5, sent_at=NOW - timedelta(hours=30)))

        stats = alert_statistics(history, now=NOW)
        assert stats.critical_count == 2
        assert stats.high_frequency_count == 1
        assert stats.total_count == 3
        assert stats.failed_count == 1

    def test_no_alerts(self, history: SQLAlchemyAlertHistory) -> None:
        stats = alert_statistics(history, now=NOW)
        assert stats.total_count == 0
        assert stats.failed_count == 0
