"""
Cache Repository Interfaces

Contracts between the cache-aside layer and key-value storage.

``CacheBackend`` is the minimal capability the wrapper consumes.
``CacheRepository`` is the full contract implemented by the concrete
backends shipped with the platform (Redis, in-memory).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheBackend(Protocol):
    """
    Key-value capability consumed by the cache-aside wrapper.

    Both methods may raise on timeout, connection loss or malformed
    responses; the wrapper recovers from every such failure.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...


class CacheRepository(ABC):
    """
    Abstract cache storage repository.

    Stores serialized entries under opaque string keys with a TTL.
    Expired entries must be reported as absent.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Get entry payload or None if absent/expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store entry payload with expiration."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete entry. Returns True if an entry was removed."""
        pass

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete entries matching a glob pattern. Returns count removed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether a live entry exists."""
        pass

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Reset entry expiration. Returns False if the key is absent."""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Report backend health status."""
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None
