"""Port definitions for the error record and alert history stores."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from errortracker.core.types import AlertKind, AlertRecord, DeliveryStatus, ErrorEvent


class ErrorRecordStore(Protocol):
    """Durable store of ingested errors."""

    def insert(self, event: ErrorEvent) -> int:
        """Persist an event and return its assigned id."""

    def find_since(self, timestamp: datetime) -> Sequence[ErrorEvent]:
        """Return events with ``timestamp`` strictly after the given time."""

    def find_by_status_and_app_api_since(
        self,
        status_code: int,
        application_name: str,
        api_name: str,
        timestamp: datetime,
    ) -> Sequence[ErrorEvent]:
        """Return matching events with ``timestamp`` strictly after the given time."""

    def count_all(self) -> int:
        """Return the total number of stored events."""

    def count_since(self, timestamp: datetime) -> int:
        """Return the number of events strictly after the given time."""

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete unreferenced events strictly older than *cutoff*; return the count."""


class AlertHistoryStore(Protocol):
    """Durable record of every alert dispatch attempt."""

    def count_sent_since(
        self,
        error_id: int,
        alert_kind: AlertKind,
        timestamp: datetime,
    ) -> int:
        """Count SENT records for this error and kind after the given time."""

    def insert(self, record: AlertRecord) -> str:
        """Persist a record and return its id."""

    def claim(
        self,
        error_id: int,
        alert_kind: AlertKind,
        sent_since: datetime,
        stale_before: datetime,
        now: datetime,
    ) -> str | None:
        """Reserve the right to dispatch this error and kind.

        Returns a claim token, or ``None`` when another evaluator holds a
        claim newer than *stale_before* or a SENT record exists after
        *sent_since*. Reserving and checking are one atomic step across
        processes sharing the store.
        """

    def complete(self, token: str, record: AlertRecord) -> str:
        """Persist the outcome of a claimed dispatch and drop the claim."""

    def release(self, token: str) -> None:
        """Drop a claim without recording anything."""

    def find_since(self, timestamp: datetime) -> Sequence[AlertRecord]:
        """Return records sent after the given time, newest first."""

    def count_by_kind_between(
        self,
        start: datetime,
        end: datetime,
        status: DeliveryStatus | None = None,
    ) -> dict[AlertKind, int]:
        """Count records per kind with ``start <= sent_at <= end``."""

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete records strictly older than *cutoff*; return the count."""
