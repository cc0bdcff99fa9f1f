"""
GGUF metadata decoding: header, scalar values, arrays and the key-value stream.
"""
from __future__ import annotations

from .gguf import (
    ArrayPlaceholder,
    BadMagic,
    ByteOrder,
    FileHeader,
    GGUFDecodeError,
    MalformedString,
    NestingTooDeep,
    OversizedField,
    Record,
    ShortRead,
    StreamBroken,
    UnknownType,
    UnsupportedVersion,
)
from .gguf_types import GGUFValueType, UnknownTag, resolve_tag
from .stream import KVStream

__all__ = [
    "ArrayPlaceholder",
    "BadMagic",
    "ByteOrder",
    "FileHeader",
    "GGUFDecodeError",
    "GGUFValueType",
    "KVStream",
    "MalformedString",
    "NestingTooDeep",
    "OversizedField",
    "Record",
    "ShortRead",
    "StreamBroken",
    "UnknownTag",
    "UnknownType",
    "UnsupportedVersion",
    "resolve_tag",
]
