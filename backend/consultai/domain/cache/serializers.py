"""
Cache Entry Serializers

Turn operation results into the UTF-8 strings stored by the cache
backend and back. JSON is the default; the pydantic serializer adds
schema validation so entries written by an older result shape are
rejected instead of being returned to the caller.
"""

import json
from typing import Any, Protocol, runtime_checkable

from pydantic import TypeAdapter, ValidationError

from .exceptions import CacheSerializationError, CacheDeserializationError


@runtime_checkable
class CacheSerializer(Protocol):
    """Converts results to cache payloads and back."""

    def serialize(self, value: Any) -> str: ...

    def deserialize(self, payload: str) -> Any: ...


class JsonSerializer:
    """
    Plain JSON serializer.

    Results must be JSON-compatible. Tuples come back as lists and
    dict keys come back as strings, as with any JSON round trip.
    """

    def serialize(self, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(
                result_type=type(value).__name__, original_error=e
            )

    def deserialize(self, payload: str) -> Any:
        try:
            return json.loads(payload)
        except (TypeError, ValueError) as e:
            raise CacheDeserializationError(
                payload_size=len(payload) if isinstance(payload, str) else None,
                original_error=e,
            )

    def __repr__(self) -> str:
        return "JsonSerializer()"


class PydanticSerializer:
    """
    Serializer bound to a result type through a pydantic ``TypeAdapter``.

    Works for models, dataclasses and typed containers such as
    ``list[ParsedResume]``. Validation errors on read surface as
    ``CacheDeserializationError``.
    """

    def __init__(self, result_type: Any):
        self.result_type = result_type
        self._adapter = TypeAdapter(result_type)

    def serialize(self, value: Any) -> str:
        try:
            return self._adapter.dump_json(value).decode("utf-8")
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(
                result_type=type(value).__name__, original_error=e
            )

    def deserialize(self, payload: str) -> Any:
        try:
            return self._adapter.validate_json(payload)
        except (ValidationError, TypeError, ValueError) as e:
            raise CacheDeserializationError(
                payload_size=len(payload) if isinstance(payload, str) else None,
                original_error=e,
            )

    def __repr__(self) -> str:
        return f"PydanticSerializer({self.result_type!r})"


default_serializer = JsonSerializer()
