"""SQLAlchemy-backed error record and alert history stores."""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import Connection, Engine, Select, delete, func, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errortracker.core.exceptions import StoreUnavailableError
from errortracker.core.types import (
    AlertKind,
    AlertRecord,
    DeliveryStatus,
    ErrorEvent,
    ensure_utc,
)
from errortracker.store.schema import alert_claims, alert_records, error_events


def _to_db(value: datetime) -> datetime:
    # Stored as naive UTC so string-ordered backends (SQLite) compare correctly.
    return ensure_utc(value).replace(tzinfo=None)


def _from_db(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class _SQLAlchemyStore:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[Connection]:
        try:
            with self._engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                f"{type(self).__name__}.{operation} failed: {exc}"
            ) from exc


class SQLAlchemyErrorStore(_SQLAlchemyStore):
    """Error record store over the ``error_events`` table."""

    def insert(self, event: ErrorEvent) -> int:
        with self._transaction("insert") as conn:
            result = conn.execute(
                error_events.insert().values(
                    application_name=event.application_name,
                    api_name=event.api_name,
                    status_code=event.status_code,
                    message=event.message,
                    severity=event.severity.value,
                    timestamp=_to_db(event.timestamp),
                    occurrence_count=event.occurrence_count,
                )
            )
            return int(result.inserted_primary_key[0])

    def find_since(self, timestamp: datetime) -> Sequence[ErrorEvent]:
        stmt = (
            select(error_events)
            .where(error_events.c.timestamp > _to_db(timestamp))
            .order_by(error_events.c.timestamp, error_events.c.id)
        )
        with self._transaction("find_since") as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_event(row) for row in rows]

    def find_by_status_and_app_api_since(
        self,
        status_code: int,
        application_name: str,
        api_name: str,
        timestamp: datetime,
    ) -> Sequence[ErrorEvent]:
        stmt = (
            select(error_events)
            .where(
                error_events.c.status_code == status_code,
                error_events.c.application_name == application_name,
                error_events.c.api_name == api_name,
                error_events.c.timestamp > _to_db(timestamp),
            )
            .order_by(error_events.c.timestamp, error_events.c.id)
        )
        with self._transaction("find_by_status_and_app_api_since") as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_event(row) for row in rows]

    def count_all(self) -> int:
        with self._transaction("count_all") as conn:
            return int(conn.execute(select(func.count()).select_from(error_events)).scalar_one())

    def count_since(self, timestamp: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(error_events)
            .where(error_events.c.timestamp > _to_db(timestamp))
        )
        with self._transaction("count_since") as conn:
            return int(conn.execute(stmt).scalar_one())

    def delete_older_than(self, cutoff: datetime) -> int:
        referenced = (
            select(alert_records.c.id)
            .where(alert_records.c.error_id == error_events.c.id)
            .correlate(error_events)
            .exists()
        )
        stmt = delete(error_events).where(
            error_events.c.timestamp < _to_db(cutoff),
            ~referenced,
        )
        with self._transaction("delete_older_than") as conn:
            return int(conn.execute(stmt).rowcount or 0)


class SQLAlchemyAlertHistory(_SQLAlchemyStore):
    """Alert history store over the ``alert_records`` and ``alert_claims`` tables."""

    def count_sent_since(
        self,
        error_id: int,
        alert_kind: AlertKind,
        timestamp: datetime,
    ) -> int:
        with self._transaction("count_sent_since") as conn:
            return int(conn.execute(_count_sent(error_id, alert_kind, timestamp)).scalar_one())

    def insert(self, record: AlertRecord) -> str:
        with self._transaction("insert") as conn:
            conn.execute(alert_records.insert().values(**_record_values(record)))
        return record.id

    def claim(
        self,
        error_id: int,
        alert_kind: AlertKind,
        sent_since: datetime,
        stale_before: datetime,
        now: datetime,
    ) -> str | None:
        """Reserve the dispatch slot for this error and kind.

        The claim row goes in first and the SENT check runs after it in the
        same transaction, so a competing evaluator either hits the unique key
        or sees the record written by whoever held the slot before it.
        """
        token = uuid.uuid4().hex
        try:
            with self._engine.connect() as conn:
                tx = conn.begin()
                conn.execute(
                    delete(alert_claims).where(
                        alert_claims.c.error_id == error_id,
                        alert_claims.c.alert_kind == alert_kind.value,
                        alert_claims.c.claimed_at <= _to_db(stale_before),
                    )
                )
                conn.execute(
                    alert_claims.insert().values(
                        id=token,
                        error_id=error_id,
                        alert_kind=alert_kind.value,
                        claimed_at=_to_db(now),
                    )
                )
                sent = conn.execute(
                    _count_sent(error_id, alert_kind, sent_since)
                ).scalar_one()
                if sent:
                    tx.rollback()
                    return None
                tx.commit()
        except IntegrityError:
            return None
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(
                f"{type(self).__name__}.claim failed: {exc}"
            ) from exc
        return token

    def complete(self, token: str, record: AlertRecord) -> str:
        """Persist the dispatch outcome and free the slot in one transaction."""
        with self._transaction("complete") as conn:
            conn.execute(alert_records.insert().values(**_record_values(record)))
            conn.execute(delete(alert_claims).where(alert_claims.c.id == token))
        return record.id

    def release(self, token: str) -> None:
        with self._transaction("release") as conn:
            conn.execute(delete(alert_claims).where(alert_claims.c.id == token))

    def find_since(self, timestamp: datetime) -> Sequence[AlertRecord]:
        stmt = (
            select(alert_records)
            .where(alert_records.c.sent_at > _to_db(timestamp))
            .order_by(alert_records.c.sent_at.desc())
        )
        with self._transaction("find_since") as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_record(row) for row in rows]

    def count_by_kind_between(
        self,
        start: datetime,
        end: datetime,
        status: DeliveryStatus | None = None,
    ) -> dict[AlertKind, int]:
        stmt = (
            select(alert_records.c.alert_kind, func.count())
            .where(alert_records.c.sent_at.between(_to_db(start), _to_db(end)))
            .group_by(alert_records.c.alert_kind)
        )
        if status is not None:
            stmt = stmt.where(alert_records.c.delivery_status == status.value)
        with self._transaction("count_by_kind_between") as conn:
            rows = conn.execute(stmt).fetchall()
        return {AlertKind(kind): int(count) for kind, count in rows}

    def delete_older_than(self, cutoff: datetime) -> int:
        stmt = delete(alert_records).where(alert_records.c.sent_at < _to_db(cutoff))
        with self._transaction("delete_older_than") as conn:
            return int(conn.execute(stmt).rowcount or 0)


def _row_to_event(row: Row) -> ErrorEvent:
    return ErrorEvent(
        id=row.id,
        application_name=row.application_name,
        api_name=row.api_name,
        status_code=row.status_code,
        message=row.message,
        timestamp=_from_db(row.timestamp),
        occurrence_count=row.occurrence_count,
    )


def _row_to_record(row: Row) -> AlertRecord:
    return AlertRecord(
        id=row.id,
        error_id=row.error_id,
        alert_kind=AlertKind(row.alert_kind),
        recipient=row.recipient,
        subject=row.subject,
        body=row.body or "",
        sent_at=_from_db(row.sent_at),
        delivery_status=DeliveryStatus(row.delivery_status),
    )


def _count_sent(error_id: int, alert_kind: AlertKind, since: datetime) -> Select:
    return (
        select(func.count())
        .select_from(alert_records)
        .where(
            alert_records.c.error_id == error_id,
            alert_records.c.alert_kind == alert_kind.value,
            alert_records.c.delivery_status == DeliveryStatus.SENT.value,
            alert_records.c.sent_at > _to_db(since),
        )
    )


def _record_values(record: AlertRecord) -> dict[str, object]:
    return {
        "id": record.id,
        "error_id": record.error_id,
        "alert_kind": record.alert_kind.value,
        "recipient": record.recipient,
        "subject": record.subject,
        "body": record.body,
        "sent_at": _to_db(record.sent_at),
        "delivery_status": record.delivery_status.value,
    }
