"""
Tests for the persistence substrates.
"""
import sqlite3

import pytest

from taskboard.errors import SubstrateError
from taskboard.schema import EntityKind
from taskboard.store import EntityStore
from taskboard.substrate import MemorySubstrate, SqliteSubstrate


def test_memory_substrate_read_write():
    substrate = MemorySubstrate()
    assert substrate.read("pm_tasks") is None

    substrate.write("pm_tasks", "[]")
    substrate.write("pm_tasks", '[{"id": "1"}]')
    assert substrate.read("pm_tasks") == '[{"id": "1"}]'
    assert substrate.snapshot() == {"pm_tasks": '[{"id": "1"}]'}


def test_sqlite_substrate_read_write(sqlite_substrate):
    assert sqlite_substrate.read("pm_projects") is None

    sqlite_substrate.write("pm_projects", "[]")
    sqlite_substrate.write("pm_projects", '[{"id": "p"}]')
    assert sqlite_substrate.read("pm_projects") == '[{"id": "p"}]'


def test_sqlite_substrate_creates_parent_dirs(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "board.db"
    SqliteSubstrate(str(db_path))
    assert db_path.exists()


def test_store_survives_restart_on_sqlite(tmp_path):
    """Test records persist across store instances sharing a file"""
    db_path = str(tmp_path / "board.db")
    store = EntityStore(SqliteSubstrate(db_path))
    project = store.create(EntityKind.PROJECT, {"name": "Durable", "created_by": "u-1"})
    task = store.create(EntityKind.TASK, {"project_id": project.id, "title": "T", "created_by": "u-1"})

    reopened = EntityStore(SqliteSubstrate(db_path))
    assert reopened.list(EntityKind.PROJECT) == [project]
    assert reopened.get(EntityKind.TASK, task.id) == task


def test_sqlite_failure_raises_substrate_error(sqlite_substrate):
    substrate = sqlite_substrate
    with sqlite3.connect(substrate.db_path) as conn:
        conn.execute("DROP TABLE kv_store")
        conn.commit()

    with pytest.raises(SubstrateError):
        substrate.read("pm_tasks")
    with pytest.raises(SubstrateError):
        substrate.write("pm_tasks", "[]")
