"""Persistence for error events and alert history."""

from errortracker.store.ports import AlertHistoryStore, ErrorRecordStore
from errortracker.store.schema import create_db_engine, create_schema
from errortracker.store.sqlalchemy_store import SQLAlchemyAlertHistory, SQLAlchemyErrorStore

__all__ = [
    "AlertHistoryStore",
    "ErrorRecordStore",
    "SQLAlchemyAlertHistory",
    "SQLAlchemyErrorStore",
    "create_db_engine",
    "create_schema",
]
