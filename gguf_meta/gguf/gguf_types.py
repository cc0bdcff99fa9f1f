"""
GGUF value type tags.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Union


class GGUFValueType(IntEnum):
    """Type tags of GGUF metadata values. The numbers are fixed by the format."""

    UINT8 = 0
    INT8 = 1
    UINT16 = 2
    INT16 = 3
    UINT32 = 4
    INT32 = 5
    FLOAT32 = 6
    BOOL = 7
    STRING = 8
    ARRAY = 9
    UINT64 = 10
    INT64 = 11
    FLOAT64 = 12

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class UnknownTag:
    """A tag number outside the known set, kept for error reporting."""

    raw: int

    @property
    def label(self) -> str:
        return f"unknown({self.raw})"


TypeTag = Union[GGUFValueType, UnknownTag]

# struct format characters for fixed-width scalars (without byte-order prefix).
# BOOL is read as a single unsigned byte; any non-zero value is True.
SCALAR_FORMATS: Dict[GGUFValueType, str] = {
    GGUFValueType.UINT8: "B",
    GGUFValueType.INT8: "b",
    GGUFValueType.UINT16: "H",
    GGUFValueType.INT16: "h",
    GGUFValueType.UINT32: "I",
    GGUFValueType.INT32: "i",
    GGUFValueType.FLOAT32: "f",
    GGUFValueType.BOOL: "B",
    GGUFValueType.UINT64: "Q",
    GGUFValueType.INT64: "q",
    GGUFValueType.FLOAT64: "d",
}

SCALAR_WIDTHS: Dict[GGUFValueType, int] = {
    GGUFValueType.UINT8: 1,
    GGUFValueType.INT8: 1,
    GGUFValueType.UINT16: 2,
    GGUFValueType.INT16: 2,
    GGUFValueType.UINT32: 4,
    GGUFValueType.INT32: 4,
    GGUFValueType.FLOAT32: 4,
    GGUFValueType.BOOL: 1,
    GGUFValueType.UINT64: 8,
    GGUFValueType.INT64: 8,
    GGUFValueType.FLOAT64: 8,
}


def resolve_tag(raw: int) -> TypeTag:
    """Map a raw tag number to a known type or an UnknownTag. Never raises."""
    try:
        return GGUFValueType(raw)
    except ValueError:
        return UnknownTag(raw)
