"""
Redis Circuit Breaker

Guards cache backend commands so that an unreachable or slow Redis is
skipped quickly instead of adding its timeout to every cached call.

After ``failure_threshold`` consecutive connection failures or timeouts
the circuit opens and commands are rejected without touching Redis.
Once ``recovery_timeout`` has elapsed one probe command is let through
and concurrent commands are rejected until it completes: success
closes the circuit again, failure reopens it.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from .exceptions import (
    RedisCircuitBreakerOpenException,
    RedisConnectionException,
    RedisOperationTimeoutException,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors meaning "Redis is unavailable"; command errors do not trip the circuit
TRIPPING_ERRORS: Tuple[Type[BaseException], ...] = (
    RedisConnectionException,
    RedisOperationTimeoutException,
    ConnectionError,
    TimeoutError,
    OSError,
)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    # Probe successes required in half-open state
    success_threshold: int = 1
    # Upper bound for a single guarded command
    operation_timeout: float = 5.0
    failure_exceptions: Tuple[Type[BaseException], ...] = TRIPPING_ERRORS

    @classmethod
    def from_settings(cls, settings) -> "CircuitBreakerConfig":
        """Build breaker configuration from application settings."""
        return cls(
            failure_threshold=settings.CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            recovery_timeout=float(settings.CIRCUIT_BREAKER_RECOVERY_TIMEOUT),
            operation_timeout=settings.REDIS_SOCKET_TIMEOUT * 2,
        )


@dataclass
class CircuitBreakerMetrics:
    """Counters reported by health checks."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    timeout_calls: int = 0
    circuit_opens: int = 0


class RedisCircuitBreaker:
    """Circuit breaker for Redis commands."""

    def __init__(self, config: Optional[CircuitBreakerConfig] = None):
        self.config = config or CircuitBreakerConfig()
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.success_count = 0
        self.opened_at: Optional[float] = None
        self.metrics = CircuitBreakerMetrics()
        self._probe_in_flight = False
        self._lock = asyncio.Lock()

    async def call(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        """
        Execute a coroutine function under circuit breaker protection.

        Raises:
            RedisCircuitBreakerOpenException: If the circuit is open
            RedisOperationTimeoutException: If the call exceeds operation_timeout
            Exception: Whatever the function raised
        """
        probe = await self._admit()

        try:
            result = await asyncio.wait_for(
                func(*args, **kwargs), timeout=self.config.operation_timeout
            )
        except asyncio.TimeoutError as e:
            self.metrics.timeout_calls += 1
            await self._on_failure("timeout")
            raise RedisOperationTimeoutException(
                operation=getattr(func, "__name__", "redis_call"),
                timeout_seconds=self.config.operation_timeout,
                original_error=e,
            )
        except self.config.failure_exceptions as e:
            await self._on_failure(type(e).__name__)
            raise
        else:
            await self._on_success()
        finally:
            if probe:
                self._probe_in_flight = False

        return result

    async def _admit(self) -> bool:
        """Admit or reject a call; returns True when it is the half-open probe."""
        async with self._lock:
            self.metrics.total_calls += 1
            if self.state == CircuitState.CLOSED:
                return False
            if self.state == CircuitState.OPEN:
                elapsed = time.monotonic() - (self.opened_at or 0.0)
                if elapsed < self.config.recovery_timeout:
                    self.metrics.rejected_calls += 1
                    raise RedisCircuitBreakerOpenException()
                self._transition(CircuitState.HALF_OPEN)
            elif self._probe_in_flight:
                self.metrics.rejected_calls += 1
                raise RedisCircuitBreakerOpenException(
                    "Redis circuit breaker is half-open, probe in progress"
                )
            self._probe_in_flight = True
            return True

    async def _on_success(self) -> None:
        async with self._lock:
            self.metrics.successful_calls += 1
            if self.state == CircuitState.CLOSED:
                self.failure_count = 0
                return
            if self.state == CircuitState.HALF_OPEN:
                self.success_count += 1
                if self.success_count >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED)

    async def _on_failure(self, failure_type: str) -> None:
        async with self._lock:
            self.metrics.failed_calls += 1
            if self.state == CircuitState.HALF_OPEN:
                logger.warning(
                    "Redis probe failed, reopening circuit",
                    extra={"failure_type": failure_type},
                )
                self._transition(CircuitState.OPEN)
                return
            if self.state == CircuitState.CLOSED:
                self.failure_count += 1
                if self.failure_count >= self.config.failure_threshold:
                    logger.warning(
                        f"Redis failed {self.failure_count} times in a row, opening circuit",
                        extra={"failure_type": failure_type},
                    )
                    self._transition(CircuitState.OPEN)

    def _transition(self, state: CircuitState) -> None:
        """Switch state; caller holds the lock."""
        logger.info(f"Circuit breaker {self.state.value} -> {state.value}")
        self.state = state
        self.success_count = 0
        if state == CircuitState.OPEN:
            self.opened_at = time.monotonic()
            self.metrics.circuit_opens += 1
        elif state == CircuitState.CLOSED:
            self.failure_count = 0
            self.opened_at = None

    def get_status(self) -> Dict[str, Any]:
        """Get current circuit breaker status for health checks."""
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "metrics": asdict(self.metrics),
            "config": {
                "failure_threshold": self.config.failure_threshold,
                "recovery_timeout": self.config.recovery_timeout,
                "operation_timeout": self.config.operation_timeout,
            },
        }

    async def reset(self) -> None:
        """Manually close the circuit."""
        async with self._lock:
            self._transition(CircuitState.CLOSED)
