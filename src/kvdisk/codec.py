"""
Value codecs.

The storage engine only needs an object with ``encode(value) -> bytes`` and
``decode(data) -> value``. A few codecs for common payloads are provided;
anything else can be plugged in by implementing the Codec protocol.
"""

from __future__ import annotations

from typing import Any, Generic, Protocol, TypeVar

import orjson

T = TypeVar("T")


class Codec(Protocol[T]):
    """Turns values into bytes and back.

    ``decode`` may raise any exception on malformed input; the storage treats
    that as a miss.
    """

    def encode(self, value: T) -> bytes: ...

    def decode(self, data: bytes) -> T: ...


class BytesCodec:
    """Stores bytes as-is."""

    def encode(self, value: bytes) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"BytesCodec expects bytes, got {type(value).__name__}")
        return bytes(value)

    def decode(self, data: bytes) -> bytes:
        return data


class StringCodec:
    """Text values encoded with a fixed character set (UTF-8 by default)."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def encode(self, value: str) -> bytes:
        return value.encode(self.encoding)

    def decode(self, data: bytes) -> str:
        return data.decode(self.encoding)


class JSONCodec(Generic[T]):
    """JSON values serialised with orjson.

    Dataclasses, datetimes, UUIDs and enums are accepted on encode (orjson's
    native types); they come back as plain JSON values.
    """

    def __init__(self, sort_keys: bool = False) -> None:
        self._option = orjson.OPT_SORT_KEYS if sort_keys else 0

    def encode(self, value: Any) -> bytes:
        return orjson.dumps(value, option=self._option)

    def decode(self, data: bytes) -> Any:
        return orjson.loads(data)
