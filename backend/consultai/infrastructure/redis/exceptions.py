"""
Redis Infrastructure Exceptions

Errors raised by the Redis cache backend. The cache-aside wrapper
recovers from all of them; direct users of the backend see the
redis-py error chained as ``__cause__``.
"""

from typing import Optional, Any, Dict


class RedisException(Exception):
    """Base class for Redis cache backend errors."""

    error_code = "REDIS_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = {k: v for k, v in (details or {}).items() if v is not None}
        if original_error is not None:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
            self.__cause__ = original_error


class RedisConnectionException(RedisException):
    """Redis is unreachable or dropped the connection."""

    error_code = "REDIS_CONNECTION_ERROR"

    def __init__(
        self,
        message: str = "Redis connection failed",
        url: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, details={"url": url}, original_error=original_error)


class RedisOperationTimeoutException(RedisException):
    """A Redis command did not complete in time."""

    error_code = "REDIS_TIMEOUT_ERROR"

    def __init__(
        self,
        operation: str,
        timeout_seconds: float,
        key: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Redis operation '{operation}' timed out after {timeout_seconds}s",
            details={"operation": operation, "timeout_seconds": timeout_seconds, "key": key},
            original_error=original_error,
        )


class RedisOperationException(RedisException):
    """Redis rejected a command or returned an unexpected reply."""

    error_code = "REDIS_OPERATION_ERROR"

    def __init__(
        self,
        operation: str,
        key: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            f"Redis operation '{operation}' failed",
            details={"operation": operation, "key": key},
            original_error=original_error,
        )


class RedisCircuitBreakerOpenException(RedisException):
    """Command rejected because the circuit breaker is open."""

    error_code = "REDIS_CIRCUIT_BREAKER_OPEN"

    def __init__(self, message: str = "Redis circuit breaker is open, command rejected"):
        super().__init__(message)


class RedisConfigurationException(RedisException):
    """Redis client could not be built from configuration."""

    error_code = "REDIS_CONFIGURATION_ERROR"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            message, details={"config_key": config_key}, original_error=original_error
        )
