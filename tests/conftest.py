"""Shared fixtures — in-memory SQLite stores."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from sqlalchemy import Engine

from errortracker.core.config import DatabaseConfig
from errortracker.store.schema import create_db_engine, create_schema
from errortracker.store.sqlalchemy_store import SQLAlchemyAlertHistory, SQLAlchemyErrorStore


@pytest.fixture
def db_engine() -> Iterator[Engine]:
    engine = create_db_engine(DatabaseConfig(url="sqlite://"))
    create_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def errors(db_engine: Engine) -> SQLAlchemyErrorStore:
    return SQLAlchemyErrorStore(db_engine)


@pytest.fixture
def history(db_engine: Engine) -> SQLAlchemyAlertHistory:
    return SQLAlchemyAlertHistory(db_engine)
