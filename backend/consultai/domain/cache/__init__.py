"""
Cache Domain Module

Value objects, key derivation, serializers, failure taxonomy and
storage contracts of the cache-aside layer.
"""

from .exceptions import (
    CacheError,
    CacheBackendReadError,
    CacheBackendWriteError,
    CacheSerializationError,
    CacheDeserializationError,
)
from .key_strategy import build_cache_key, canonical_arguments, default_key_fragment
from .repository_interfaces import CacheBackend, CacheRepository
from .serializers import CacheSerializer, JsonSerializer, PydanticSerializer
from .value_objects import CacheConfiguration, CacheKey, CacheNamespace, TTL

__all__ = [
    # Value objects
    "CacheConfiguration",
    "CacheKey",
    "CacheNamespace",
    "TTL",
    # Key derivation
    "build_cache_key",
    "canonical_arguments",
    "default_key_fragment",
    # Serialization
    "CacheSerializer",
    "JsonSerializer",
    "PydanticSerializer",
    # Storage contracts
    "CacheBackend",
    "CacheRepository",
    # Exceptions
    "CacheError",
    "CacheBackendReadError",
    "CacheBackendWriteError",
    "CacheSerializationError",
    "CacheDeserializationError",
]
