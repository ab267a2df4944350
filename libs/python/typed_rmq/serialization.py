"""
Message body serialization.

Payloads are UTF-8 JSON documents, one value per message.
"""

from functools import lru_cache
from typing import Any, Protocol, TypeVar

from pydantic import TypeAdapter

T = TypeVar("T")


class Serializer(Protocol):
    """Encodes values to message bodies and back."""

    def encode(self, value: Any) -> bytes:
        ...

    def decode(self, payload: bytes, subject: type[T]) -> T:
        ...


@lru_cache(maxsize=None)
def _adapter(subject: type) -> TypeAdapter:
    return TypeAdapter(subject)


class JsonSerializer:
    """
    JSON serializer backed by pydantic.

    Works with pydantic models, dataclasses, TypedDicts and plain JSON
    compatible types. Decoding validates the payload against the subject type.
    """

    def encode(self, value: Any) -> bytes:
        return _adapter(type(value)).dump_json(value)

    def decode(self, payload: bytes, subject: type[T]) -> T:
        return _adapter(subject).validate_json(payload)
