# gguf_meta/reporting/ndjson.py
"""
NDJSON encoding: one header object, then one object per record.
"""

from __future__ import annotations

import json
import math
from typing import Any, Dict, TextIO

from gguf_meta.gguf import ArrayPlaceholder, FileHeader, Record


def to_jsonable(value: Any) -> Any:
    """Convert a decoded value to something json.dumps accepts as strict JSON."""
    if isinstance(value, ArrayPlaceholder):
        return {
            "_placeholder": "nested_array" if value.nested else "array",
            "count": value.count,
            "element_type": value.element_type,
        }
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return "NaN"
        return "Infinity" if value > 0 else "-Infinity"
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    return value


def header_event(header: FileHeader) -> Dict[str, Any]:
    return {
        "kind": "header",
        "gguf": {
            "version": header.version,
            "tensorCount": header.tensor_count,
            "kvCount": header.kv_count,
            "byteOrder": header.byte_order.value,
        },
    }


def record_event(record: Record) -> Dict[str, Any]:
    return {"key": record.key, "type": record.type, "value": to_jsonable(record.value)}


class NDJSONWriter:
    """Writes compact JSON objects, one per line.

    With ``ensure_ascii`` every non-ASCII character is written as a \\u escape,
    which keeps lone surrogates from ``surrogateescape`` decoding encodable.
    """

    def __init__(self, stream: TextIO, *, ensure_ascii: bool = False):
        self.stream = stream
        self.ensure_ascii = ensure_ascii

    def write(self, obj: Dict[str, Any]) -> None:
        self.stream.write(
            json.dumps(
                obj, ensure_ascii=self.ensure_ascii, allow_nan=False, separators=(",", ":")
            )
        )
        self.stream.write("\n")

    def write_header(self, header: FileHeader) -> None:
        self.write(header_event(header))

    def write_record(self, record: Record) -> None:
        self.write(record_event(record))
