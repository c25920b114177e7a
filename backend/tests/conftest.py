"""Shared fixtures: in-memory stand-ins for everything the queue engine talks to."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from walktrack.models import Measurement
from walktrack.services.errors import PersistenceFailure, Rejected, SourceUnavailable, TransportFailure
from walktrack.services.offline_queue import OfflineQueueEngine


T0 = datetime(2026, 1, 6, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class FakeSource:
    """Step counter that hands out scripted counts, then ``default``."""

    def __init__(self, counts=None, default: int = 0):
        self.counts = list(counts or [])
        self.default = default
        self.fail = False
        self.calls = []
        self.closed = False

    async def read_count(self, start, end):
        self.calls.append((start, end))
        if self.fail:
            raise SourceUnavailable("step counter offline")
        if self.counts:
            return self.counts.pop(0)
        return self.default

    async def close(self):
        self.closed = True


class MemoryQueueStore:
    """Queue store that keeps every saved snapshot."""

    def __init__(self, saved=None):
        self.saved = list(saved) if saved is not None else None
        self.saves = []
        self.fail = False
        self.fail_load = False

    async def load(self):
        if self.fail_load:
            raise PersistenceFailure("queue file unreadable")
        return list(self.saved or [])

    async def save(self, queue):
        if self.fail:
            raise PersistenceFailure("disk full")
        self.saves.append(list(queue))
        self.saved = list(queue)


class FakeProbe:
    def __init__(self, connected: bool = True):
        self.connected = connected
        self.calls = 0

    async def is_connected(self):
        self.calls += 1
        return self.connected


class FakeSink:
    """
    Remote sink that accepts everything except the submission numbers it is
    told to fail (counted from 0 over the sink's lifetime).
    """

    def __init__(self, reject_at: Optional[int] = None, transport_fail_at: Optional[int] = None):
        self.reject_at = reject_at
        self.transport_fail_at = transport_fail_at
        self.gate = None
        self.attempts = 0
        self.accepted = []

    async def submit(self, measurement):
        index = self.attempts
        self.attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        if index == self.reject_at:
            raise Rejected(422, "steps must be a number")
        if index == self.transport_fail_at:
            raise TransportFailure("connection reset")
        self.accepted.append(measurement)


def make_measurement(count: int, seconds: float = 0, subject_id: str = "walker") -> Measurement:
    return Measurement(subject_id=subject_id, count=count, observed_at=T0 + timedelta(seconds=seconds))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def store() -> MemoryQueueStore:
    return MemoryQueueStore()


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def make_engine(source, store, probe, sink, clock):
    """Build an engine wired to the fakes; call it inside the test's event loop."""
    def _make(**overrides) -> OfflineQueueEngine:
        kwargs = dict(source=source, store=store, probe=probe, sink=sink, subject_id="walker", clock=clock)
        kwargs.update(overrides)
        return OfflineQueueEngine(**kwargs)
    return _make


@pytest.fixture
def measure():
    """Factory for measurements ``seconds`` after noon, 2026-01-06 (UTC)."""
    return make_measurement
