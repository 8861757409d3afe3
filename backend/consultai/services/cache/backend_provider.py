"""
Cache Backend Provider

Builds the process-wide cache backend from settings and hands it to
cacheable operations. Returns None when caching is disabled, which
cacheable operations treat as "run uncached".
"""

from typing import Optional

import structlog

from ...core.config import Settings, get_settings
from ...domain.cache.repository_interfaces import CacheRepository
from ...infrastructure.redis.circuit_breaker import (
    CircuitBreakerConfig,
    RedisCircuitBreaker,
)
from ...infrastructure.redis.redis_service import RedisCacheBackend, RedisServiceConfig
from ...infrastructure.repositories.memory_cache_repository import (
    InMemoryCacheRepository,
)

logger = structlog.get_logger(__name__)

_cache_backend: Optional[CacheRepository] = None
_initialized = False


def create_cache_backend(settings: Optional[Settings] = None) -> Optional[CacheRepository]:
    """
    Create a cache backend according to settings.

    Args:
        settings: Application settings (global settings if omitted)

    Returns:
        Redis or in-memory repository, or None when caching is disabled
    """
    settings = settings or get_settings()

    if not settings.CACHE_ENABLED:
        logger.info("Caching disabled, cacheable operations run uncached")
        return None

    if settings.CACHE_BACKEND == "memory":
        logger.info("Using in-memory cache backend")
        return InMemoryCacheRepository()

    logger.info(
        "Using Redis cache backend",
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
    )
    return RedisCacheBackend(
        config=RedisServiceConfig.from_settings(settings),
        circuit_breaker=RedisCircuitBreaker(CircuitBreakerConfig.from_settings(settings)),
    )


def get_cache_backend() -> Optional[CacheRepository]:
    """Get the shared cache backend, creating it on first use."""
    global _cache_backend, _initialized
    if not _initialized:
        _cache_backend = create_cache_backend()
        _initialized = True
    return _cache_backend


async def close_cache_backend() -> None:
    """Close and forget the shared cache backend."""
    global _cache_backend, _initialized
    if _cache_backend is not None:
        await _cache_backend.close()
    _cache_backend = None
    _initialized = False
