"""
Redis Infrastructure Module

Redis cache backend with circuit breaker protection and a
Redis-specific exception hierarchy.
"""

from .redis_service import RedisCacheBackend, RedisServiceConfig
from .circuit_breaker import (
    RedisCircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
    CircuitBreakerMetrics,
)
from .exceptions import (
    RedisException,
    RedisConnectionException,
    RedisOperationTimeoutException,
    RedisOperationException,
    RedisCircuitBreakerOpenException,
    RedisConfigurationException,
)

__all__ = [
    # Cache backend
    "RedisCacheBackend",
    "RedisServiceConfig",
    # Circuit breaker
    "RedisCircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "CircuitBreakerMetrics",
    # Exceptions
    "RedisException",
    "RedisConnectionException",
    "RedisOperationTimeoutException",
    "RedisOperationException",
    "RedisCircuitBreakerOpenException",
    "RedisConfigurationException",
]
