"""Domain types for error events, alert records and evaluation outcomes."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from errortracker.core.severity import Severity, classify


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_client_timestamp(raw: str | None, now: datetime | None = None) -> datetime:
    """Parse an ISO-8601 client timestamp, falling back to *now*.

    Absent, blank or unparseable values all fall back to ingestion time.
    """
    fallback = now or utcnow()
    if raw is None or not raw.strip():
        return fallback
    try:
        parsed = datetime.fromisoformat(raw.strip().replace("Z", "+00:00"))
    except ValueError:
        return fallback
    return ensure_utc(parsed)


class AlertKind(StrEnum):
    """Alert rule that produced a notification."""

    CRITICAL = "CRITICAL"
    HIGH_FREQUENCY = "HIGH_FREQUENCY"


class DeliveryStatus(StrEnum):
    """Outcome of a notification sink call."""

    SENT = "SENT"
    FAILED = "FAILED"


class ErrorEvent(BaseModel):
    """One reported application failure.

    Severity is computed from ``status_code`` on every access, and the model
    is frozen, so the two can never disagree.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    application_name: str = Field(min_length=1)
    api_name: str = Field(min_length=1)
    status_code: int = Field(ge=100, le=599)
    message: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    occurrence_count: int = Field(default=1, ge=1)

    @field_validator("application_name", "api_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("timestamp")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def severity(self) -> Severity:
        return classify(self.status_code)


class ErrorReport(BaseModel):
    """Error report as submitted by a client application."""

    application_name: str = Field(min_length=1)
    api_name: str = Field(min_length=1)
    status_code: int = Field(ge=100, le=599)
    message: str | None = None
    timestamp: str | None = None

    @field_validator("application_name", "api_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    def to_event(self, now: datetime | None = None) -> ErrorEvent:
        """Build the (not yet persisted) ErrorEvent for this report."""
        return ErrorEvent(
            application_name=self.application_name,
            api_name=self.api_name,
            status_code=self.status_code,
            message=self.message,
            timestamp=parse_client_timestamp(self.timestamp, now),
        )


class AlertMessage(BaseModel):
    """Composed notification ready for a sink."""

    kind: AlertKind
    subject: str
    body: str


class AlertRecord(BaseModel):
    """Audit record of one notification dispatch attempt."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    error_id: int
    alert_kind: AlertKind
    recipient: str
    subject: str
    body: str
    sent_at: datetime
    delivery_status: DeliveryStatus

    @field_validator("sent_at")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class EvaluationResult(BaseModel):
    """Which rules fired and were delivered for one evaluated error."""

    critical_fired: bool = False
    high_frequency_fired: bool = False

    @property
    def any_fired(self) -> bool:
        return self.critical_fired or self.high_frequency_fired


class AlertStatistics(BaseModel):
    """Alert counts over a reporting window."""

    critical_count: int = 0
    high_frequency_count: int = 0
    total_count: int = 0
    failed_count: int = 0

    @classmethod
    def from_counts(
        cls,
        sent: Mapping[AlertKind, int],
        failed: Mapping[AlertKind, int] | None = None,
    ) -> AlertStatistics:
        critical = sent.get(AlertKind.CRITICAL, 0)
        high_frequency = sent.get(AlertKind.HIGH_FREQUENCY, 0)
        return cls(
            critical_count=critical,
            high_frequency_count=high_frequency,
            total_count=sum(sent.values()),
            failed_count=sum((failed or {}).values()),
        )


class ScanResult(BaseModel):
    """Aggregate outcome of one scan cycle."""

    errors_scanned: int = 0
    evaluation_failures: int = 0
    critical_sent: int = 0
    high_frequency_sent: int = 0

    @property
    def alerts_sent(self) -> int:
        return self.critical_sent + self.high_frequency_sent


class HealthSnapshot(BaseModel):
    """Read-only view of tracker volume used by the health-check cycle."""

    total_errors: int
    recent_errors: int
    alerts: AlertStatistics
    checked_at: datetime


class RetentionResult(BaseModel):
    """Rows removed by one retention cycle."""

    cutoff: datetime
    alerts_deleted: int = 0
    errors_deleted: int = 0
