"""Convenience factory for wiring the alerting stack."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine

from errortracker.alerting.engine import AlertDecisionEngine
from errortracker.alerting.scanner import AlertScanner
from errortracker.core.config import Settings
from errortracker.ingest.service import ErrorLogService
from errortracker.notify.channels import NotificationSink, create_sink
from errortracker.store.schema import create_db_engine, create_schema
from errortracker.store.sqlalchemy_store import SQLAlchemyAlertHistory, SQLAlchemyErrorStore


@dataclass
class TrackerStack:
    """All long-lived components of a running tracker."""

    db_engine: Engine
    errors: SQLAlchemyErrorStore
    history: SQLAlchemyAlertHistory
    sink: NotificationSink
    engine: AlertDecisionEngine
    scanner: AlertScanner
    service: ErrorLogService

    async def close(self) -> None:
        await self.scanner.stop()
        await self.service.wait_for_pending()
        await self.sink.close()
        self.db_engine.dispose()


def create_tracker_stack(settings: Settings, db_engine: Engine | None = None) -> TrackerStack:
    """Build stores, sink, decision engine, scanner and ingestion service.

    The schema is created if missing. Pass *db_engine* to share an existing
    SQLAlchemy engine instead of building one from ``settings.database``.
    """
    db = db_engine if db_engine is not None else create_db_engine(settings.database)
    create_schema(db)

    errors = SQLAlchemyErrorStore(db)
    history = SQLAlchemyAlertHistory(db)
    sink = create_sink(
        settings.notifier,
        timeout_secs=settings.alerting.delivery_timeout_secs,
    )
    engine = AlertDecisionEngine(errors, history, sink, settings.alerting)
    scanner = AlertScanner(engine, errors, history, settings.scheduler)
    service = ErrorLogService(errors, engine)

    return TrackerStack(
        db_engine=db,
        errors=errors,
        history=history,
        sink=sink,
        engine=engine,
        scanner=scanner,
        service=service,
    )
