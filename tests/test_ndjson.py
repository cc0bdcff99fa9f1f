"""Tests for NDJSON encoding."""

from __future__ import annotations

import io
import json

from gguf_meta.gguf import ArrayPlaceholder, ByteOrder, FileHeader, Record
from gguf_meta.reporting.ndjson import NDJSONWriter, header_event, record_event, to_jsonable


def test_header_event():
    hdr = FileHeader(version=3, tensor_count=1, kv_count=2, byte_order=ByteOrder.BIG)
    assert header_event(hdr) == {
        "kind": "header",
        "gguf": {"version": 3, "tensorCount": 1, "kvCount": 2, "byteOrder": "BE"},
    }


def test_placeholders():
    assert to_jsonable(ArrayPlaceholder("float32", 100)) == {
        "_placeholder": "array",
        "count": 100,
        "element_type": "float32",
    }
    assert to_jsonable([ArrayPlaceholder("uint8", 0, nested=True)]) == [
        {"_placeholder": "nested_array", "count": 0, "element_type": "uint8"}
    ]


def test_non_finite_floats():
    assert to_jsonable([float("nan"), float("inf"), float("-inf"), -0.0]) == [
        "NaN",
        "Infinity",
        "-Infinity",
        -0.0,
    ]


def test_writer_emits_one_object_per_line():
    out = io.StringIO()
    w = NDJSONWriter(out)
    w.write_header(FileHeader(version=3, tensor_count=0, kv_count=2, byte_order=ByteOrder.LITTLE))
    w.write_record(Record("general.name", "string", "héllo\nworld", 24, 60))
    w.write_record(Record("x", "array[float32]", ArrayPlaceholder("float32", 3), 60, 90))

    lines = out.getvalue().splitlines()
    assert len(lines) == 3
    assert json.loads(lines[0])["kind"] == "header"
    assert json.loads(lines[1]) == {"key": "general.name", "type": "string", "value": "héllo\nworld"}
    assert json.loads(lines[2])["value"]["_placeholder"] == "array"


def test_record_event_keeps_big_integers():
    ev = record_event(Record("n", "uint64", 2**64 - 1, 0, 0))
    assert json.loads(json.dumps(ev))["value"] == 2**64 - 1


def test_writer_ascii_escapes_lone_surrogates():
    out = io.StringIO()
    NDJSONWriter(out, ensure_ascii=True).write_record(Record("k", "string", "a\udcffb", 0, 0))
    line = out.getvalue()
    assert line.isascii()
    assert "\\udcff" in line
    assert json.loads(line)["value"].encode("utf-8", "surrogateescape") == b"a\xffb"
