"""Shared test fixtures and utilities."""

from datetime import datetime, timezone

import pytest

from versioned_blobstore.storage.memory import InMemoryObjectStore
from versioned_blobstore.version_id import VersionClock
from versioned_blobstore.versioned import VersionedBlobStore


class FakeClock:
    """Settable epoch-millisecond source for version tokens."""

    def __init__(self, now: int = 1000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class FakeWallTime:
    """Settable datetime source for backend modification times."""

    def __init__(self, now: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def fixed_base_id(resource, original_filename=None) -> str:
    """Deterministic base identifier ``<resource id>/u1``."""
    return f"{getattr(resource, 'id', resource)}/u1"


class ExampleResource:
    def __init__(self, id: str):
        self.id = id


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall_time():
    return FakeWallTime()


@pytest.fixture
def backend(wall_time):
    return InMemoryObjectStore(clock=wall_time)


@pytest.fixture
def make_store(backend, clock):
    """Factory fixture for stores sharing the in-memory backend and fake clock."""
    def _make(**kwargs):
        kwargs.setdefault("clock", VersionClock(clock))
        kwargs.setdefault("id_generator", fixed_base_id)
        return VersionedBlobStore(backend, **kwargs)
    return _make


@pytest.fixture
def store(make_store):
    return make_store()


@pytest.fixture
def resource():
    return ExampleResource("r1")
