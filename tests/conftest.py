"""Shared test fixtures for the taskboard tests."""

from datetime import datetime, timedelta, timezone

import pytest

from taskboard.board import KanbanBoard
from taskboard.cascade import Relationships
from taskboard.errors import SubstrateError
from taskboard.events import BoardEvents
from taskboard.schema import Actor, EntityKind, Role
from taskboard.store import EntityStore
from taskboard.substrate import MemorySubstrate, SqliteSubstrate
from taskboard.tracker import Tracker


class FakeClock:
    """Strictly increasing clock: every call is one second after the last."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


class FailingSubstrate(MemorySubstrate):
    """Memory substrate that can be told to fail writes to given keys."""

    def __init__(self):
        super().__init__()
        self.fail_keys = set()

    def write(self, key, payload):
        if key in self.fail_keys:
            raise SubstrateError(f"simulated failure writing {key}")
        super().write(key, payload)


@pytest.fixture
def substrate():
    return FailingSubstrate()


@pytest.fixture
def store(substrate):
    return EntityStore(substrate, clock=FakeClock())


@pytest.fixture
def relationships(store):
    return Relationships(store)


@pytest.fixture
def events():
    return BoardEvents()


@pytest.fixture
def board(store, relationships, events):
    return KanbanBoard(store, relationships, events)


@pytest.fixture
def actor():
    return Actor("u-1", Role.USER)


@pytest.fixture
def tracker():
    return Tracker()


@pytest.fixture
def project(store):
    return store.create(EntityKind.PROJECT, {"name": "Website", "created_by": "u-1"})


@pytest.fixture
def sqlite_substrate(tmp_path):
    return SqliteSubstrate(str(tmp_path / "board.db"))
