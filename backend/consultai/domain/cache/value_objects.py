"""
Cache Value Objects

Immutable value objects for the cache-aside layer.
Provides type safety and validation for keys, TTLs and the
per-operation cache configuration.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Pattern

from .serializers import CacheSerializer, default_serializer

# Default key strategy limits
DEFAULT_TTL_SECONDS = 3600
DEFAULT_KEY_NAMESPACE = "cache"
DEFAULT_MAX_ARG_LENGTH = 100
DEFAULT_KEY_SANITIZE_PATTERN = r"[^a-zA-Z0-9]"

MAX_KEY_LENGTH = 1024
MAX_TTL_SECONDS = 86400 * 365

KeyStrategy = Callable[..., str]


class CacheNamespace(str, Enum):
    """Key namespaces for the expensive operations of the platform."""

    DEFAULT = "cache"
    RESUME = "resume"
    JOB = "job"
    OPTIMIZATION = "optimization"
    TEMPLATE = "template"
    AI_RESPONSE = "ai"


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Keys are opaque to the wrapper; only emptiness and length are
    checked. The argument fragment is stored as given, whitespace
    included; namespace and operation name must be whitespace-free
    tokens.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > MAX_KEY_LENGTH:
            raise ValueError(f"Cache key too long (max {MAX_KEY_LENGTH} characters)")

    @classmethod
    def compose(cls, namespace: str, operation_name: str, fragment: str) -> "CacheKey":
        """Join namespace, operation and argument fragment."""
        for part in (namespace, operation_name):
            if not part or any(char.isspace() for char in part):
                raise ValueError(f"Cache key prefix must be a non-empty token: {part!r}")
        return cls(f"{namespace}:{operation_name}:{fragment}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Provides type-safe TTL configuration with validation.
    """

    seconds: int

    # Common TTL presets in seconds
    SHORT = 300
    MEDIUM = 1800
    LONG = 3600
    VERY_LONG = 86400

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if isinstance(self.seconds, bool) or not isinstance(self.seconds, int):
            raise ValueError("TTL must be an integer number of seconds")
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")
        if self.seconds > MAX_TTL_SECONDS:
            raise ValueError("TTL too large (max 1 year)")

    @classmethod
    def minutes(cls, minutes: int) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: int) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    @classmethod
    def days(cls, days: int) -> "TTL":
        """Create TTL from days."""
        return cls(days * 86400)

    @classmethod
    def short(cls) -> "TTL":
        """Short-lived cache (5 minutes)."""
        return cls(cls.SHORT)

    @classmethod
    def medium(cls) -> "TTL":
        """Medium-lived cache (30 minutes)."""
        return cls(cls.MEDIUM)

    @classmethod
    def long(cls) -> "TTL":
        """Long-lived cache (1 hour)."""
        return cls(cls.LONG)

    @classmethod
    def very_long(cls) -> "TTL":
        """Very long-lived cache (24 hours)."""
        return cls(cls.VERY_LONG)

    def __str__(self) -> str:
        return f"{self.seconds}s"


@dataclass(frozen=True)
class CacheConfiguration:
    """
    Per-operation cache-aside configuration.

    Built once when an operation is wrapped and never mutated afterwards.
    ``key_strategy`` replaces only the argument fragment of the key; the
    namespace and operation name are always prefixed around it.
    """

    ttl_seconds: int = DEFAULT_TTL_SECONDS
    key_namespace: str = DEFAULT_KEY_NAMESPACE
    key_strategy: Optional[KeyStrategy] = None
    max_arg_length: int = DEFAULT_MAX_ARG_LENGTH
    key_sanitize_pattern: str = DEFAULT_KEY_SANITIZE_PATTERN
    serializer: CacheSerializer = default_serializer
    single_flight: bool = False
    operation_name: Optional[str] = None
    _sanitize_regex: Pattern[str] = field(
        init=False, repr=False, compare=False, default=None
    )

    def __post_init__(self) -> None:
        """Validate configuration values."""
        # Normalize TTL value objects and enum namespaces
        if isinstance(self.ttl_seconds, TTL):
            object.__setattr__(self, "ttl_seconds", self.ttl_seconds.seconds)
        else:
            TTL(self.ttl_seconds)

        if isinstance(self.key_namespace, Enum):
            object.__setattr__(self, "key_namespace", self.key_namespace.value)
        if not self.key_namespace or any(c.isspace() for c in self.key_namespace):
            raise ValueError("Cache key namespace must be a non-empty token")

        if self.operation_name is not None and (
            not self.operation_name
            or any(c.isspace() for c in self.operation_name)
        ):
            raise ValueError("Operation name must be a non-empty token")

        if self.key_strategy is not None and not callable(self.key_strategy):
            raise ValueError("key_strategy must be callable")

        if self.max_arg_length <= 0:
            raise ValueError("max_arg_length must be positive")

        try:
            regex = re.compile(self.key_sanitize_pattern)
        except re.error as e:
            raise ValueError(f"Invalid key sanitize pattern: {e}") from e
        object.__setattr__(self, "_sanitize_regex", regex)

        if not isinstance(self.serializer, CacheSerializer):
            raise ValueError("serializer must provide serialize() and deserialize()")

    @property
    def sanitize_regex(self) -> Pattern[str]:
        """Compiled pattern of characters stripped from default keys."""
        return self._sanitize_regex

    @classmethod
    def from_settings(cls, settings: Any = None, **overrides: Any) -> "CacheConfiguration":
        """
        Build a configuration from application settings.

        Args:
            settings: Settings instance (uses the global settings if omitted)
            **overrides: Explicit field values taking precedence

        Returns:
            New CacheConfiguration
        """
        if settings is None:
            from ...core.config import get_settings

            settings = get_settings()

        values = {
            "ttl_seconds": settings.CACHE_DEFAULT_TTL,
            "key_namespace": settings.CACHE_KEY_NAMESPACE,
            "max_arg_length": settings.CACHE_KEY_MAX_ARG_LENGTH,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

