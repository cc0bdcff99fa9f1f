"""
GGUF metadata structures and exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

MAGIC = b"GGUF"
SUPPORTED_VERSION = 3
HEADER_SIZE = 24


class ByteOrder(str, Enum):
    """Byte order resolved from the version field."""

    LITTLE = "LE"
    BIG = "BE"

    @property
    def struct_prefix(self) -> str:
        return "<" if self is ByteOrder.LITTLE else ">"


@dataclass(frozen=True)
class FileHeader:
    version: int
    tensor_count: int
    kv_count: int
    byte_order: ByteOrder


@dataclass(frozen=True)
class ArrayPlaceholder:
    """Summary substituted for array contents that were not expanded."""

    element_type: str
    count: int
    nested: bool = False


@dataclass(frozen=True)
class Record:
    key: str
    type: str  # e.g. "uint32", "array[float32]"
    value: Any
    offset_start: int
    offset_end: int


class GGUFDecodeError(Exception):
    """Raised when GGUF metadata cannot be decoded.

    Attributes:
        offset: Absolute byte offset where the failure was detected, if known.
        key: Key of the entry being decoded, if known.
    """

    def __init__(self, message: str, *, offset: Optional[int] = None, key: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.key = key

    def with_key(self, key: str) -> "GGUFDecodeError":
        if self.key is None:
            self.key = key
        return self

    def __str__(self) -> str:
        parts = []
        if self.key is not None:
            parts.append(f"key {self.key!r}")
        if self.offset is not None:
            parts.append(f"offset {self.offset}")
        if not parts:
            return self.message
        return f"{self.message} ({', '.join(parts)})"


class BadMagic(GGUFDecodeError):
    def __init__(self, got: bytes):
        super().__init__(f"bad magic: got {got!r}, expected {MAGIC!r}", offset=0)
        self.got = got


class UnsupportedVersion(GGUFDecodeError):
    def __init__(self, version_le: int, version_be: int):
        super().__init__(
            f"unsupported GGUF version: LE={version_le}, BE={version_be} "
            f"(expected {SUPPORTED_VERSION})",
            offset=4,
        )
        self.version_le = version_le
        self.version_be = version_be


class ShortRead(GGUFDecodeError):
    def __init__(self, *, offset: int, wanted: int, got: int):
        super().__init__(f"short read: wanted {wanted} bytes, got {got}", offset=offset)
        self.wanted = wanted
        self.got = got


class OversizedField(GGUFDecodeError):
    def __init__(self, *, length: int, limit: int, offset: int):
        super().__init__(f"field too large: {length} > {limit}", offset=offset)
        self.length = length
        self.limit = limit


class UnknownType(GGUFDecodeError):
    def __init__(self, raw: int, *, offset: Optional[int] = None):
        super().__init__(f"unknown GGUF value type {raw}", offset=offset)
        self.raw = raw


class NestingTooDeep(GGUFDecodeError):
    def __init__(self, *, limit: int, offset: int):
        super().__init__(f"array nesting deeper than {limit}", offset=offset)
        self.limit = limit


class MalformedString(GGUFDecodeError):
    """Invalid UTF-8 in a string while strict decoding is on."""


class StreamBroken(GGUFDecodeError):
    """The stream failed earlier and cannot be resumed."""
