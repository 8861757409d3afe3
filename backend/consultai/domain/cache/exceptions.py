"""
Cache Domain Exceptions

Failure taxonomy of the cache-aside layer. Every exception here is
recovered locally by the wrapper and only ever reaches a log line;
errors raised by the wrapped operation itself are never wrapped.
"""

from typing import Optional, Any, Dict


class CacheError(Exception):
    """Base exception for cache-aside failures.

    Carries the cache key involved and the backend error that caused it,
    so degraded-mode log lines keep the full context.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[BaseException] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.key = key
        self.details = details or {}
        if key:
            self.details["key"] = key
        if original_error is not None:
            self.details["original_error"] = str(original_error)
            self.details["original_error_type"] = type(original_error).__name__
        super().__init__(self.message)
        # Preserve exception context for debugging (exception chaining)
        if original_error is not None:
            self.__cause__ = original_error


class CacheBackendReadError(CacheError):
    """Backend was unreachable, timed out or misbehaved on read."""

    def __init__(self, key: str, original_error: Optional[BaseException] = None):
        super().__init__(
            message=f"Cache read failed for key: {key}",
            error_code="CACHE_READ_ERROR",
            key=key,
            original_error=original_error,
        )


class CacheBackendWriteError(CacheError):
    """Backend rejected or failed a write."""

    def __init__(
        self,
        key: str,
        ttl_seconds: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            message=f"Cache write failed for key: {key}",
            error_code="CACHE_WRITE_ERROR",
            key=key,
            details={"ttl_seconds": ttl_seconds} if ttl_seconds is not None else None,
            original_error=original_error,
        )


class CacheSerializationError(CacheError):
    """Operation result could not be serialized for storage."""

    def __init__(
        self,
        result_type: str,
        key: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            message=f"Cannot serialize result of type {result_type}",
            error_code="CACHE_SERIALIZATION_ERROR",
            key=key,
            details={"result_type": result_type},
            original_error=original_error,
        )


class CacheDeserializationError(CacheError):
    """Cached payload is corrupt or no longer matches the result schema."""

    def __init__(
        self,
        key: Optional[str] = None,
        payload_size: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(
            message="Cached payload could not be deserialized",
            error_code="CACHE_DESERIALIZATION_ERROR",
            key=key,
            details={"payload_size": payload_size} if payload_size is not None else None,
            original_error=original_error,
        )
