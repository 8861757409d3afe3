"""
Main pytest configuration for backend tests.

Fixtures and stub cache backends shared by the unit tests.
"""

import os
from typing import Dict, List, Optional, Tuple

import pytest

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["CACHE_BACKEND"] = "memory"
os.environ["LOG_LEVEL"] = "DEBUG"

from consultai.infrastructure.repositories.memory_cache_repository import (  # noqa: E402
    InMemoryCacheRepository,
)


class RecordingCacheBackend:
    """Dictionary backend recording every get/set call."""

    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})
        self.get_calls: List[str] = []
        self.set_calls: List[Tuple[str, str, int]] = []
        self.delete_calls: List[str] = []

    async def get(self, key: str) -> Optional[str]:
        self.get_calls.append(key)
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.set_calls.append((key, value, ttl_seconds))
        self.data[key] = value

    async def delete(self, key: str) -> bool:
        self.delete_calls.append(key)
        return self.data.pop(key, None) is not None


class FailingReadBackend(RecordingCacheBackend):
    """Backend whose reads always fail."""

    async def get(self, key: str) -> Optional[str]:
        self.get_calls.append(key)
        raise ConnectionError("cache unreachable")


class FailingWriteBackend(RecordingCacheBackend):
    """Backend whose writes always fail."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.set_calls.append((key, value, ttl_seconds))
        raise TimeoutError("cache write timed out")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def recording_backend():
    """Empty recording backend."""
    return RecordingCacheBackend()


@pytest.fixture
def failing_read_backend():
    """Backend failing every read."""
    return FailingReadBackend()


@pytest.fixture
def failing_write_backend():
    """Backend failing every write."""
    return FailingWriteBackend()


@pytest.fixture
def fake_clock():
    """Controllable clock for TTL tests."""
    return FakeClock()


@pytest.fixture
def memory_backend(fake_clock):
    """In-memory repository driven by the fake clock."""
    return InMemoryCacheRepository(clock=fake_clock)
