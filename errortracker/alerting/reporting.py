"""Read-only alert history queries for monitoring surfaces."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from errortracker.core.types import AlertRecord, AlertStatistics, DeliveryStatus, utcnow
from errortracker.store.ports import AlertHistoryStore


def recent_alerts(
    history: AlertHistoryStore,
    minutes: int = 60,
    now: datetime | None = None,
) -> Sequence[AlertRecord]:
    """Alert records from the last *minutes*, newest first."""
    since = (now or utcnow()) - timedelta(minutes=minutes)
    return history.find_since(since)


def alert_statistics(
    history: AlertHistoryStore,
    now: datetime | None = None,
    hours: int = 24,
) -> AlertStatistics:
    """SENT alert counts per kind over the last *hours*, plus FAILED deliveries."""
    end = now or utcnow()
    start = end - timedelta(hours=hours)
    sent = history.count_by_kind_between(start, end, status=DeliveryStatus.SENT)
    failed = history.count_by_kind_between(start, end, status=DeliveryStatus.FAILED)
    return AlertStatistics.from_counts(sent, failed)
