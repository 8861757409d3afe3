"""
Cache-Aside Service

Opt-in caching for expensive async operations (AI inference, document
parsing). A wrapped call looks its result up in the cache backend,
computes it on a miss and stores it best-effort afterwards.

Cache failures never reach the caller: an absent backend, a failing
read, a corrupt entry or a failing write all degrade to computing the
result directly. Errors raised by the wrapped operation propagate
unchanged and are never cached.

Two entry points share one implementation:

- ``cache_aside`` wraps a plain coroutine function with a backend
  instance or a zero-argument backend provider.
- ``cacheable`` decorates coroutine methods; the backend is resolved
  from the instance through an explicit accessor.
"""

import asyncio
import dataclasses
import functools
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar, Union

import structlog
from opentelemetry import trace

from ...domain.cache.exceptions import (
    CacheError,
    CacheBackendReadError,
    CacheBackendWriteError,
    CacheDeserializationError,
    CacheSerializationError,
)
from ...domain.cache.key_strategy import build_cache_key
from ...domain.cache.repository_interfaces import CacheBackend
from ...domain.cache.serializers import CacheSerializer
from ...domain.cache.value_objects import CacheConfiguration, KeyStrategy, TTL

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")

BackendSource = Union[CacheBackend, Callable[[], Optional[CacheBackend]], None]
BackendAccessor = Union[CacheBackend, Callable[[Any], Optional[CacheBackend]], None]

_MISS: Tuple[bool, Any] = (False, None)


class _InFlightAbandoned(Exception):
    """The call leading a coalesced computation was cancelled."""


def build_configuration(
    config: Optional[CacheConfiguration] = None,
    *,
    ttl: Union[int, TTL, None] = None,
    namespace: Optional[str] = None,
    key_strategy: Optional[KeyStrategy] = None,
    serializer: Optional[CacheSerializer] = None,
    single_flight: Optional[bool] = None,
    operation_name: Optional[str] = None,
) -> CacheConfiguration:
    """Merge keyword overrides into a (possibly default) configuration."""
    overrides: Dict[str, Any] = {
        "ttl_seconds": ttl,
        "key_namespace": namespace,
        "key_strategy": key_strategy,
        "serializer": serializer,
        "single_flight": single_flight,
        "operation_name": operation_name,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if config is None:
        return CacheConfiguration(**overrides)
    if not overrides:
        return config
    return dataclasses.replace(config, **overrides)


def _is_backend(candidate: Any) -> bool:
    return isinstance(candidate, CacheBackend)


class CacheAsideWrapper:
    """
    Cache-aside wrapper around one coroutine function.

    Per call: derive the key, try the backend, return a hit or compute
    the result, store it best-effort and return it. At most one write
    is attempted per miss and nothing is retried.

    Without ``single_flight`` the wrapper keeps no mutable state, so
    concurrent misses on the same key each compute and each write (last
    writer wins). With ``single_flight`` concurrent misses on one key
    in this process share a single computation.
    """

    def __init__(
        self,
        operation: Callable[..., Awaitable[T]],
        config: Optional[CacheConfiguration] = None,
        backend: BackendSource = None,
    ):
        if not inspect.iscoroutinefunction(operation):
            raise TypeError(
                f"Cache-aside wrapping requires a coroutine function, got {operation!r}"
            )
        self.operation = operation
        self.config = config or CacheConfiguration()
        self.operation_name = self.config.operation_name or operation.__name__
        self._backend_source = backend
        self._in_flight: Dict[str, asyncio.Future] = {}
        functools.update_wrapper(self, operation)

    def __repr__(self) -> str:
        return f"<CacheAsideWrapper {self.operation_name} config={self.config!r}>"

    async def __call__(self, *args: Any, **kwargs: Any) -> T:
        backend = self.resolve_backend(self._backend_source)
        return await self.execute(backend, args, kwargs)

    def resolve_backend(self, source: Any, *accessor_args: Any) -> Optional[CacheBackend]:
        """
        Resolve a backend instance from an instance, provider or accessor.

        A provider or accessor that raises is logged and treated as "no
        backend bound".
        """
        if source is None or _is_backend(source):
            return source
        if not callable(source):
            logger.warning(
                "Cache backend source is neither a backend nor callable, skipping cache",
                operation=self.operation_name,
                source_type=type(source).__name__,
            )
            return None
        try:
            backend = source(*accessor_args)
        except Exception as e:
            logger.warning(
                "Cache backend lookup failed, skipping cache",
                operation=self.operation_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
        if backend is not None and not _is_backend(backend):
            logger.warning(
                "Resolved object is not a cache backend, skipping cache",
                operation=self.operation_name,
                backend_type=type(backend).__name__,
            )
            return None
        return backend

    def cache_key(self, *args: Any, **kwargs: Any) -> str:
        """Cache key a call with these arguments reads and writes."""
        return str(build_cache_key(self.config, self.operation_name, args, kwargs))

    async def execute(
        self,
        backend: Optional[CacheBackend],
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
        call: Optional[Callable[[], Awaitable[T]]] = None,
    ) -> T:
        """
        Run one call through the cache-aside flow.

        Args:
            backend: Bound backend, or None to execute directly
            args: Positional arguments used for the key
            kwargs: Keyword arguments used for the key
            call: Zero-argument coroutine factory computing the result
                (defaults to calling the wrapped operation with args/kwargs)

        Returns:
            Cached or freshly computed result

        Raises:
            Exception: Only errors raised by the wrapped operation
        """
        if call is None:
            call = functools.partial(self.operation, *args, **kwargs)

        with tracer.start_as_current_span(f"cache_aside.{self.operation_name}") as span:
            span.set_attribute("cache.operation", self.operation_name)
            span.set_attribute("cache.namespace", self.config.key_namespace)

            if backend is None:
                logger.warning(
                    "No cache backend bound, skipping cache",
                    operation=self.operation_name,
                    namespace=self.config.key_namespace,
                )
                span.set_attribute("cache.enabled", False)
                return await call()

            try:
                key = self.cache_key(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    "Cache key derivation failed, skipping cache",
                    operation=self.operation_name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                span.set_attribute("cache.enabled", False)
                return await call()

            span.set_attribute("cache.enabled", True)
            span.set_attribute("cache.key", key)

            hit, value = await self._lookup(backend, key)
            span.set_attribute("cache.hit", hit)
            if hit:
                return value

            if self.config.single_flight:
                return await self._compute_coalesced(backend, key, call)
            return await self._compute_and_store(backend, key, call)

    async def _lookup(self, backend: CacheBackend, key: str) -> Tuple[bool, Any]:
        """Read and deserialize an entry; every failure counts as a miss."""
        try:
            payload = await backend.get(key)
        except Exception as e:
            self._log_degradation(CacheBackendReadError(key, original_error=e))
            return _MISS

        if payload is None:
            logger.debug("Cache miss", operation=self.operation_name, key=key)
            return _MISS

        try:
            value = self.config.serializer.deserialize(payload)
        except CacheDeserializationError as e:
            e.key = key
            e.details["key"] = key
            self._log_degradation(e)
            return _MISS
        except Exception as e:
            self._log_degradation(CacheDeserializationError(key=key, original_error=e))
            return _MISS

        logger.debug("Cache hit", operation=self.operation_name, key=key)
        return True, value

    async def _compute_and_store(
        self, backend: CacheBackend, key: str, call: Callable[[], Awaitable[T]]
    ) -> T:
        result = await call()
        await self._store(backend, key, result)
        return result

    async def _store(self, backend: CacheBackend, key: str, result: Any) -> bool:
        """Serialize and write a result once; failures are logged only."""
        try:
            payload = self.config.serializer.serialize(result)
        except CacheSerializationError as e:
            e.key = key
            e.details["key"] = key
            self._log_degradation(e)
            return False
        except Exception as e:
            self._log_degradation(
                CacheSerializationError(type(result).__name__, key=key, original_error=e)
            )
            return False

        ttl_seconds = self.config.ttl_seconds
        try:
            write = asyncio.ensure_future(backend.set(key, payload, ttl_seconds))
            # A write already issued completes even if the caller is cancelled
            await asyncio.shield(write)
        except asyncio.CancelledError:
            write.add_done_callback(
                functools.partial(self._log_detached_write, key, ttl_seconds)
            )
            raise
        except Exception as e:
            self._log_degradation(
                CacheBackendWriteError(key, ttl_seconds=ttl_seconds, original_error=e)
            )
            return False

        logger.debug(
            "Cached operation result",
            operation=self.operation_name,
            key=key,
            ttl_seconds=ttl_seconds,
        )
        return True

    async def _compute_coalesced(
        self, backend: CacheBackend, key: str, call: Callable[[], Awaitable[T]]
    ) -> T:
        """Share one computation between concurrent misses on the same key."""
        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug(
                "Joining in-flight computation", operation=self.operation_name, key=key
            )
            try:
                return await asyncio.shield(pending)
            except _InFlightAbandoned:
                return await self._compute_and_store(backend, key, call)

        future = asyncio.get_running_loop().create_future()
        # Mark the outcome as retrieved even when nobody joined
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._in_flight[key] = future
        try:
            result = await self._compute_and_store(backend, key, call)
        except Exception as e:
            future.set_exception(e)
            raise
        except BaseException:
            # Cancelled leader: joined callers compute on their own
            future.set_exception(_InFlightAbandoned())
            raise
        else:
            future.set_result(result)
            return result
        finally:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    async def invalidate(self, *args: Any, **kwargs: Any) -> bool:
        """Delete the cached entry for these arguments, best-effort."""
        backend = self.resolve_backend(self._backend_source)
        return await self.invalidate_with(backend, args, kwargs)

    async def invalidate_with(
        self,
        backend: Optional[CacheBackend],
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> bool:
        """Delete the entry for a call from the given backend."""
        if backend is None:
            return False
        delete = getattr(backend, "delete", None)
        if delete is None:
            logger.warning(
                "Cache backend does not support deletion",
                operation=self.operation_name,
                backend_type=type(backend).__name__,
            )
            return False
        try:
            key = self.cache_key(*args, **kwargs)
            removed = await delete(key)
        except Exception as e:
            logger.warning(
                "Cache invalidation failed",
                operation=self.operation_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        logger.debug(
            "Invalidated cache entry",
            operation=self.operation_name,
            key=key,
            removed=bool(removed),
        )
        return bool(removed)

    def _log_detached_write(self, key: str, ttl_seconds: int, write: asyncio.Future) -> None:
        """Report the outcome of a write whose caller was cancelled."""
        if write.cancelled():
            return
        error = write.exception()
        if error is None:
            return
        failure = CacheBackendWriteError(key, ttl_seconds=ttl_seconds, original_error=error)
        logger.warning(
            "Cache write failed after caller was cancelled",
            operation=self.operation_name,
            key=key,
            error_code=failure.error_code,
            error=failure.details.get("original_error"),
            error_type=failure.details.get("original_error_type"),
        )

    def _log_degradation(self, error: CacheError) -> None:
        logger.warning(
            f"{error.message}, computing result without cache",
            operation=self.operation_name,
            key=error.key,
            error_code=error.error_code,
            error=error.details.get("original_error"),
            error_type=error.details.get("original_error_type"),
        )


def cache_aside(
    operation: Optional[Callable[..., Awaitable[T]]] = None,
    *,
    backend: BackendSource = None,
    config: Optional[CacheConfiguration] = None,
    ttl: Union[int, TTL, None] = None,
    namespace: Optional[str] = None,
    key_strategy: Optional[KeyStrategy] = None,
    serializer: Optional[CacheSerializer] = None,
    single_flight: Optional[bool] = None,
    operation_name: Optional[str] = None,
):
    """
    Wrap a coroutine function with cache-aside semantics.

    Usable directly (``cache_aside(fetch, backend=redis_backend)``) or as a
    decorator (``@cache_aside(backend=get_cache_backend, ttl=60)``). The
    backend may be an instance or a zero-argument provider returning one
    (or None to run uncached).

    Returns:
        CacheAsideWrapper, or a decorator producing one
    """
    resolved = build_configuration(
        config,
        ttl=ttl,
        namespace=namespace,
        key_strategy=key_strategy,
        serializer=serializer,
        single_flight=single_flight,
        operation_name=operation_name,
    )

    def decorator(func: Callable[..., Awaitable[T]]) -> CacheAsideWrapper:
        return CacheAsideWrapper(func, resolved, backend=backend)

    if operation is not None:
        return decorator(operation)
    return decorator


def cacheable(
    *,
    backend: BackendAccessor = None,
    config: Optional[CacheConfiguration] = None,
    ttl: Union[int, TTL, None] = None,
    namespace: Optional[str] = None,
    key_strategy: Optional[KeyStrategy] = None,
    serializer: Optional[CacheSerializer] = None,
    single_flight: Optional[bool] = None,
    operation_name: Optional[str] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator for caching coroutine method results.

    ``backend`` is an accessor receiving the instance, e.g.
    ``backend=lambda self: self.cache_backend``; returning None runs the
    method uncached. The instance itself never takes part in the key.

    Example:
        class ResumeService:
            def __init__(self, cache_backend=None):
                self.cache_backend = cache_backend

            @cacheable(
                backend=lambda self: self.cache_backend,
                namespace=CacheNamespace.RESUME,
                ttl=TTL.long(),
            )
            async def parse_resume(self, document: dict) -> dict:
                ...

    The decorated method exposes ``invalidate(instance, *args, **kwargs)``
    and ``cache_key(*args, **kwargs)``.
    """
    resolved = build_configuration(
        config,
        ttl=ttl,
        namespace=namespace,
        key_strategy=key_strategy,
        serializer=serializer,
        single_flight=single_flight,
        operation_name=operation_name,
    )

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        wrapper = CacheAsideWrapper(func, resolved)

        def backend_for(instance: Any) -> Optional[CacheBackend]:
            if _is_backend(backend):
                return backend
            return wrapper.resolve_backend(backend, instance)

        @functools.wraps(func)
        async def method(self, *args: Any, **kwargs: Any) -> T:
            return await wrapper.execute(
                backend_for(self),
                args,
                kwargs,
                call=functools.partial(func, self, *args, **kwargs),
            )

        async def invalidate(instance: Any, *args: Any, **kwargs: Any) -> bool:
            return await wrapper.invalidate_with(backend_for(instance), args, kwargs)

        method.cache_wrapper = wrapper  # type: ignore[attr-defined]
        method.cache_key = wrapper.cache_key  # type: ignore[attr-defined]
        method.invalidate = invalidate  # type: ignore[attr-defined]
        return method

    return decorator
