"""
Redis Cache Backend

Redis implementation of the cache repository used by the cache-aside
layer. Commands are guarded by a circuit breaker and translated into
the Redis exception hierarchy; nothing is retried here.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from redis.asyncio import Redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    TimeoutError as RedisTimeoutError,
    RedisError,
)

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from ...domain.cache.repository_interfaces import CacheRepository
from .circuit_breaker import RedisCircuitBreaker, CircuitBreakerConfig
from .exceptions import (
    RedisException,
    RedisConnectionException,
    RedisOperationTimeoutException,
    RedisOperationException,
    RedisConfigurationException,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass
class RedisServiceConfig:
    """Configuration for the Redis cache backend."""

    url: str = "redis://localhost:6379"
    max_connections: int = 10
    socket_timeout: float = 2.0

    # Keys fetched per SCAN round trip during pattern deletion
    scan_batch_size: int = 500

    @classmethod
    def from_settings(cls, settings) -> "RedisServiceConfig":
        """Build backend configuration from application settings."""
        return cls(
            url=settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
        )


class RedisCacheBackend(CacheRepository):
    """
    Cache repository backed by Redis.

    Values are stored as strings with ``SET key value EX ttl``.
    The client is created lazily from the configured URL unless one is
    injected (tests pass a fakeredis client).
    """

    def __init__(
        self,
        config: Optional[RedisServiceConfig] = None,
        client: Optional[Redis] = None,
        circuit_breaker: Optional[RedisCircuitBreaker] = None,
    ):
        self.config = config or RedisServiceConfig()
        self._client = client
        self.circuit_breaker = circuit_breaker or RedisCircuitBreaker(
            CircuitBreakerConfig(operation_timeout=self.config.socket_timeout * 2)
        )

    @property
    def client(self) -> Redis:
        """Get (and lazily create) the Redis client."""
        if self._client is None:
            try:
                self._client = Redis.from_url(
                    self.config.url,
                    max_connections=self.config.max_connections,
                    socket_timeout=self.config.socket_timeout,
                    socket_connect_timeout=self.config.socket_timeout,
                    decode_responses=True,
                )
            except ValueError as e:
                raise RedisConfigurationException(
                    message=f"Invalid Redis URL: {e}",
                    config_key="REDIS_URL",
                    original_error=e,
                )
        return self._client

    async def _execute(self, operation: str, key: Optional[str], command, *args, **kwargs) -> Any:
        """Run one Redis command through the circuit breaker."""
        with tracer.start_as_current_span(f"redis.cache.{operation}") as span:
            span.set_attribute("redis.operation", operation)
            if key is not None:
                span.set_attribute("cache.key", key)

            async def run():
                try:
                    return await command(*args, **kwargs)
                except RedisTimeoutError as e:
                    raise RedisOperationTimeoutException(
                        operation=operation,
                        timeout_seconds=self.config.socket_timeout,
                        key=key,
                        original_error=e,
                    )
                except RedisConnectionError as e:
                    raise RedisConnectionException(
                        message=f"Redis connection failed during '{operation}'",
                        original_error=e,
                    )
                except RedisError as e:
                    raise RedisOperationException(
                        operation=operation, key=key, original_error=e
                    )

            run.__name__ = operation
            try:
                result = await self.circuit_breaker.call(run)
            except RedisException as e:
                span.set_status(Status(StatusCode.ERROR, e.message))
                raise
            span.set_status(Status(StatusCode.OK))
            return result

    async def get(self, key: str) -> Optional[str]:
        """Get cached payload or None."""
        value = await self._execute("get", key, self.client.get, key)
        if value is None:
            return None
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError as e:
                raise RedisOperationException(
                    operation="get", key=key, original_error=e
                )
        if not isinstance(value, str):
            raise RedisOperationException(
                operation="get",
                key=key,
                original_error=TypeError(
                    f"Unexpected Redis reply type: {type(value).__name__}"
                ),
            )
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store payload with expiration."""
        await self._execute("set", key, self.client.set, key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> bool:
        """Delete cached payload."""
        removed = await self._execute("delete", key, self.client.delete, key)
        return bool(removed)

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern using SCAN."""

        async def scan_and_delete() -> int:
            removed = 0
            batch = []
            async for key in self.client.scan_iter(
                match=pattern, count=self.config.scan_batch_size
            ):
                batch.append(key)
                if len(batch) >= self.config.scan_batch_size:
                    removed += await self.client.delete(*batch)
                    batch = []
            if batch:
                removed += await self.client.delete(*batch)
            return removed

        count = await self._execute("delete_pattern", pattern, scan_and_delete)
        logger.info(
            f"Deleted {count} cache entries matching {pattern}",
            extra={"pattern": pattern, "count": count},
        )
        return count

    async def exists(self, key: str) -> bool:
        """Check whether key exists."""
        result = await self._execute("exists", key, self.client.exists, key)
        return result == 1

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Reset key expiration."""
        result = await self._execute("expire", key, self.client.expire, key, ttl_seconds)
        return bool(result)

    async def health_check(self) -> Dict[str, Any]:
        """Ping Redis and report circuit breaker state."""
        start_time = time.time()
        try:
            await self._execute("ping", None, self.client.ping)
            return {
                "status": "healthy",
                "service": "redis",
                "response_time_ms": round((time.time() - start_time) * 1000, 2),
                "circuit_breaker": self.circuit_breaker.get_status(),
            }
        except RedisException as e:
            logger.warning(f"Redis cache backend health check failed: {e}")
            return {
                "status": "unhealthy",
                "service": "redis",
                "error": e.message,
                "error_code": e.error_code,
                "circuit_breaker": self.circuit_breaker.get_status(),
            }

    async def close(self) -> None:
        """Close the Redis client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis cache backend closed")
