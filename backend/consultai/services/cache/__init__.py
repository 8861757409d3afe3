"""
Cache Services

Cache-aside wrapping for expensive operations and the shared backend
provider.
"""

from .cache_aside import CacheAsideWrapper, build_configuration, cache_aside, cacheable
from .backend_provider import close_cache_backend, create_cache_backend, get_cache_backend

__all__ = [
    "CacheAsideWrapper",
    "build_configuration",
    "cache_aside",
    "cacheable",
    "create_cache_backend",
    "get_cache_backend",
    "close_cache_backend",
]
