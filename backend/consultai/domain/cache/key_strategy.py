"""
Cache Key Strategy

Pure functions deriving cache keys from an operation call.
No I/O and no awaits: the same arguments always give the same key.
"""

import json
import re
from typing import Any, Dict, Optional, Pattern, Tuple

from .value_objects import (
    CacheConfiguration,
    CacheKey,
    DEFAULT_MAX_ARG_LENGTH,
    DEFAULT_KEY_SANITIZE_PATTERN,
)

_DEFAULT_SANITIZE_REGEX = re.compile(DEFAULT_KEY_SANITIZE_PATTERN)


def canonical_arguments(args: Tuple[Any, ...], kwargs: Optional[Dict[str, Any]] = None) -> str:
    """
    Serialize call arguments to a canonical JSON string.

    Positional-only calls serialize as the bare argument list; keyword
    arguments are added as a sorted mapping. Values JSON cannot encode
    fall back to ``str()``. Non-ASCII text is kept as ``\\uXXXX`` escapes
    so it survives alphanumeric sanitization.
    """
    payload: Any = list(args)
    if kwargs:
        payload = {"args": list(args), "kwargs": kwargs}
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def default_key_fragment(
    args: Tuple[Any, ...],
    kwargs: Optional[Dict[str, Any]] = None,
    max_length: int = DEFAULT_MAX_ARG_LENGTH,
    sanitize_regex: Pattern[str] = _DEFAULT_SANITIZE_REGEX,
) -> str:
    """
    Default argument fragment: serialize, truncate, then sanitize.

    Best-effort, not collision-free. Truncation happens before
    sanitization, so argument sets whose serialized forms share the
    first ``max_length`` characters map to the same fragment. Each
    non-ASCII character occupies six characters of the bound as a
    ``\\uXXXX`` escape. Operations taking large or similar-prefixed
    arguments should configure a custom ``key_strategy``.
    """
    serialized = canonical_arguments(args, kwargs)[:max_length]
    return sanitize_regex.sub("", serialized)


def build_cache_key(
    config: CacheConfiguration,
    operation_name: str,
    args: Tuple[Any, ...],
    kwargs: Optional[Dict[str, Any]] = None,
) -> CacheKey:
    """
    Derive the cache key for one call of a wrapped operation.

    Args:
        config: Cache configuration of the operation
        operation_name: Name of the wrapped operation
        args: Positional call arguments (without the bound instance)
        kwargs: Keyword call arguments

    Returns:
        CacheKey of the form ``namespace:operation:fragment``
    """
    kwargs = kwargs or {}
    if config.key_strategy is not None:
        fragment = config.key_strategy(*args, **kwargs)
        if not isinstance(fragment, str):
            raise TypeError(
                f"key_strategy must return str, got {type(fragment).__name__}"
            )
    else:
        fragment = default_key_fragment(
            args,
            kwargs,
            max_length=config.max_arg_length,
            sanitize_regex=config.sanitize_regex,
        )

    name = config.operation_name or operation_name
    return CacheKey.compose(config.key_namespace, name, fragment)
