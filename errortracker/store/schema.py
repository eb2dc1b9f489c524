"""Relational schema for error events and alert records."""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    Engine,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.pool import QueuePool

from errortracker.core.config import DatabaseConfig

metadata = MetaData()

error_events = Table(
    "error_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("application_name", String(100), nullable=False),
    Column("api_name", String(200), nullable=False),
    Column("status_code", Integer, nullable=False),
    Column("message", Text, nullable=True),
    Column("severity", String(20), nullable=False),
    Column("timestamp", DateTime, nullable=False),
    Column("occurrence_count", Integer, nullable=False, default=1),
    Index("ix_error_events_timestamp", "timestamp"),
    Index(
        "ix_error_events_status_app_api",
        "status_code",
        "application_name",
        "api_name",
        "timestamp",
    ),
)

# error_id is a plain reference: retention keeps referenced events alive
# instead of relying on a database-level foreign key.
alert_records = Table(
    "alert_records",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("error_id", Integer, nullable=False),
    Column("alert_kind", String(50), nullable=False),
    Column("recipient", String(255), nullable=False),
    Column("subject", String(255), nullable=False),
    Column("body", Text, nullable=True),
    Column("sent_at", DateTime, nullable=False),
    Column("delivery_status", String(20), nullable=False),
    Index("ix_alert_records_error_kind_sent", "error_id", "alert_kind", "sent_at"),
    Index("ix_alert_records_sent_at", "sent_at"),
)

# One row per in-flight dispatch. The unique key lets exactly one evaluator,
# in any process, hold the slot for an error and kind while it delivers.
alert_claims = Table(
    "alert_claims",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("error_id", Integer, nullable=False),
    Column("alert_kind", String(50), nullable=False),
    Column("claimed_at", DateTime, nullable=False),
    UniqueConstraint("error_id", "alert_kind", name="uq_alert_claims_error_kind"),
)


def create_db_engine(config: DatabaseConfig) -> Engine:
    """Build an engine for *config*.

    SQLite gets a single pooled connection. Store calls run in worker threads,
    so the pool checkout serializes them; an in-memory database also lives
    exactly as long as that one connection.
    """
    if config.url.startswith("sqlite"):
        return create_engine(
            config.url,
            echo=config.echo,
            connect_args={"check_same_thread": False},
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=config.pool_timeout_secs,
        )
    return create_engine(config.url, echo=config.echo)


def create_schema(engine: Engine) -> None:
    """Create any missing tables and indexes."""
    metadata.create_all(engine)
