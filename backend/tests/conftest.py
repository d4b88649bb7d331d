"""Shared test fixtures and configuration for chatsync tests."""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from chatsync.config import SyncSettings
from chatsync.context import SyncContext
from chatsync.engine import ChatSyncEngine
from chatsync.store.memory import InMemoryDocumentStore
from helpers import make_identity


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays and only yields once."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def settings():
    return SyncSettings()


@pytest.fixture
def identity():
    return make_identity()


@pytest.fixture
def context(store, identity, settings, clock, sleeper):
    return SyncContext(store=store, identity=identity, settings=settings, clock=clock, sleep=sleeper)


@pytest.fixture
def engine(context):
    return ChatSyncEngine(context)
