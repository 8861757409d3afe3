"""
Unit tests for the in-memory cache repository.
"""

import pytest

from consultai.infrastructure.repositories.memory_cache_repository import (
    InMemoryCacheRepository,
)
from consultai.services.cache.cache_aside import cache_aside


class TestInMemoryCacheRepository:
    """Test TTL handling and repository operations."""

    @pytest.mark.asyncio
    async def test_set_and_get(self, memory_backend):
        await memory_backend.set("resume:parse:r1", '{"id": "r1"}', 60)
        assert await memory_backend.get("resume:parse:r1") == '{"id": "r1"}'
        assert await memory_backend.get("resume:parse:r2") is None

    @pytest.mark.asyncio
    async def test_entries_expire(self, memory_backend, fake_clock):
        """Expired entries are reported as absent."""
        await memory_backend.set("k", "v", 60)

        fake_clock.advance(59)
        assert await memory_backend.get("k") == "v"

        fake_clock.advance(1)
        assert await memory_backend.get("k") is None
        assert await memory_backend.exists("k") is False

    @pytest.mark.asyncio
    async def test_rejects_invalid_writes(self, memory_backend):
        with pytest.raises(TypeError):
            await memory_backend.set("k", {"not": "a string"}, 60)
        with pytest.raises(ValueError):
            await memory_backend.set("k", "v", 0)

    @pytest.mark.asyncio
    async def test_delete_and_delete_pattern(self, memory_backend):
        await memory_backend.set("resume:parse:r1", "1", 60)
        await memory_backend.set("resume:parse:r2", "2", 60)
        await memory_backend.set("job:parse:j1", "3", 60)

        assert await memory_backend.delete("resume:parse:r1") is True
        assert await memory_backend.delete("resume:parse:r1") is False
        assert await memory_backend.delete_pattern("resume:*") == 1
        assert await memory_backend.exists("job:parse:j1") is True

    @pytest.mark.asyncio
    async def test_expire_extends_lifetime(self, memory_backend, fake_clock):
        await memory_backend.set("k", "v", 10)
        fake_clock.advance(5)

        assert await memory_backend.expire("k", 60) is True
        fake_clock.advance(30)
        assert await memory_backend.get("k") == "v"
        assert await memory_backend.expire("missing", 60) is False

    @pytest.mark.asyncio
    async def test_capacity_evicts_soonest_expiring(self, fake_clock):
        backend = InMemoryCacheRepository(max_entries=2, clock=fake_clock)
        await backend.set("short", "1", 10)
        await backend.set("long", "2", 100)
        await backend.set("new", "3", 50)

        assert await backend.get("short") is None
        assert await backend.get("long") == "2"
        assert await backend.get("new") == "3"

    @pytest.mark.asyncio
    async def test_health_check(self, memory_backend):
        await memory_backend.set("k", "v", 60)
        health = await memory_backend.health_check()
        assert health["status"] == "healthy"
        assert health["entries"] == 1

    @pytest.mark.asyncio
    async def test_expired_entry_recomputed_through_wrapper(self, memory_backend, fake_clock):
        """TTL expiry turns a hit back into a miss."""
        calls = []

        async def match_score(resume_id: str, job_id: str) -> float:
            calls.append((resume_id, job_id))
            return 0.82

        wrapped = cache_aside(match_score, backend=memory_backend, ttl=60)

        await wrapped("r1", "j1")
        await wrapped("r1", "j1")
        fake_clock.advance(61)
        await wrapped("r1", "j1")

        assert len(calls) == 2
