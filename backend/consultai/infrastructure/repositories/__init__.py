"""Storage repositories."""

from .memory_cache_repository import InMemoryCacheRepository

__all__ = ["InMemoryCacheRepository"]
