"""Shared fixtures for coordinator store integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from coordinator_store.config import ConnectionConfig
from coordinator_store.database import CoordinatorDB


@pytest.fixture
def db_config(tmp_path: Path) -> ConnectionConfig:
    """Descriptor for a fresh database file."""
    return ConnectionConfig(database=tmp_path / "coordinator.db")


@pytest.fixture
async def db(db_config: ConnectionConfig):
    """Database with schema initialized."""
    database = CoordinatorDB(db_config)
    await database.maybe_create_db()
    return database


@pytest.fixture
def raw_db(db_config: ConnectionConfig):
    """Uninitialized database handle, for bootstrap tests."""
    return CoordinatorDB(db_config)
