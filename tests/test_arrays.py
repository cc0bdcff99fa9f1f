"""Tests for the two-pass array policy."""

from __future__ import annotations

import io

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from gguf_meta.config import DecodeConfig, Policy
from gguf_meta.gguf import (
    ArrayPlaceholder,
    GGUFValueType as T,
    KVStream,
    NestingTooDeep,
    OversizedField,
    ShortRead,
    UnknownType,
)
from tests.gguf_fixtures import GGUFBuilder, nested


def decode_one(data: bytes, **policy) -> tuple:
    stream = KVStream(io.BytesIO(data), DecodeConfig(policy=Policy(**policy)))
    rec = stream.next_record()
    return rec, stream


def float_array(n: int) -> bytes:
    return GGUFBuilder().add_array("x", T.FLOAT32, [float(i) for i in range(n)]).build()


def test_default_policy_gives_placeholder():
    rec, stream = decode_one(float_array(100), max_array_inline=32)
    assert rec.key == "x"
    assert rec.type == "array[float32]"
    assert rec.value == ArrayPlaceholder(element_type="float32", count=100)
    assert stream.remaining == 0


def test_explicit_key_expands_full_array():
    rec, _ = decode_one(float_array(100), max_array_inline=32, expand_keys=frozenset({"x"}))
    assert rec.type == "array[float32]"
    assert rec.value == [float(i) for i in range(100)]


def test_prefix_rule_expands():
    data = (
        GGUFBuilder()
        .add_array("tokenizer.ggml.tokens", T.STRING, ["<s>", "</s>", "hi"])
        .add_array("general.tags", T.STRING, ["a"])
        .build()
    )
    stream = KVStream(
        io.BytesIO(data),
        DecodeConfig(policy=Policy(expand_prefixes=("tokenizer.",))),
    )
    tokens, tags = list(stream)
    assert tokens.value == ["<s>", "</s>", "hi"]
    assert tags.value == ArrayPlaceholder("string", 1)


def test_prefix_is_not_a_glob():
    rec, _ = decode_one(
        GGUFBuilder().add_array("tokenizer.ggml.tokens", T.UINT8, [1]).build(),
        expand_keys=frozenset({"tokenizer.*"}),
        expand_prefixes=("tok*",),
    )
    assert isinstance(rec.value, ArrayPlaceholder)


@pytest.mark.parametrize("count", [0, 31, 32, 33, 5000])
def test_explicit_rule_wins_regardless_of_count(count):
    data = GGUFBuilder().add_array("x", T.UINT16, [i % 65536 for i in range(count)]).build()
    rec, _ = decode_one(
        data, max_array_inline=32, inline_small_arrays=True, expand_keys=frozenset({"x"})
    )
    assert rec.value == [i % 65536 for i in range(count)]


@pytest.mark.parametrize("count, expanded", [(0, True), (32, True), (33, False)])
def test_inline_threshold_applies_only_when_enabled(count, expanded):
    data = GGUFBuilder().add_array("x", T.INT8, [-1] * count).build()
    rec, _ = decode_one(data, max_array_inline=32, inline_small_arrays=True)
    if expanded:
        assert rec.value == [-1] * count
    else:
        assert rec.value == ArrayPlaceholder("int8", count)

    rec, _ = decode_one(data, max_array_inline=32)
    assert rec.value == ArrayPlaceholder("int8", count)


def test_empty_array_under_both_branches():
    data = GGUFBuilder().add_array("x", T.STRING, []).build()
    rec, stream = decode_one(data)
    assert rec.value == ArrayPlaceholder("string", 0)
    assert rec.type == "array[string]"
    rec, stream = decode_one(data, expand_keys=frozenset({"x"}))
    assert rec.value == []
    assert stream.position == len(data)


def test_array_of_arrays_expands_to_nested_placeholders():
    data = (
        GGUFBuilder()
        .add_array(
            "m",
            T.ARRAY,
            [nested(T.UINT32, [1, 2, 3]), nested(T.STRING, ["a"]), nested(T.ARRAY, [])],
        )
        .add("after", T.UINT8, 7)
        .build()
    )
    stream = KVStream(io.BytesIO(data), DecodeConfig(policy=Policy(expand_keys=frozenset({"m"}))))
    rec = stream.next_record()
    assert rec.type == "array[array]"
    assert rec.value == [
        ArrayPlaceholder("uint32", 3, nested=True),
        ArrayPlaceholder("string", 1, nested=True),
        ArrayPlaceholder("array", 0, nested=True),
    ]
    assert all(not isinstance(v, list) for v in rec.value)
    assert stream.next_record().value == 7


def test_array_of_arrays_placeholder():
    data = (
        GGUFBuilder()
        .add_array("m", T.ARRAY, [nested(T.ARRAY, [nested(T.INT64, [1, 2])]), nested(T.BOOL, [])])
        .add("after", T.STRING, "ok")
        .build()
    )
    stream = KVStream(io.BytesIO(data))
    assert stream.next_record().value == ArrayPlaceholder("array", 2)
    assert stream.next_record().value == "ok"


def test_unknown_element_type_aborts_array():
    b = GGUFBuilder()
    data = b.add_raw(b.string("x") + b.u32(T.ARRAY) + b.u32(99) + b.u64(2) + b"\x00" * 16).build()
    with pytest.raises(UnknownType) as exc:
        decode_one(data)
    assert exc.value.raw == 99
    assert exc.value.key == "x"
    with pytest.raises(UnknownType):
        decode_one(data, expand_keys=frozenset({"x"}))


def test_unknown_element_type_with_zero_count_is_empty():
    b = GGUFBuilder()
    data = b.add_raw(b.string("x") + b.u32(T.ARRAY) + b.u32(99) + b.u64(0)).build()
    rec, _ = decode_one(data)
    assert rec.type == "array[unknown(99)]"
    assert rec.value == ArrayPlaceholder("unknown(99)", 0)
    rec, _ = decode_one(data, expand_keys=frozenset({"x"}))
    assert rec.value == []


def test_declared_count_larger_than_payload_is_a_short_read():
    b = GGUFBuilder()
    data = b.add_raw(b.string("x") + b.u32(T.ARRAY) + b.u32(T.UINT32) + b.u64(10**9) + b"\x00" * 8)
    with pytest.raises(ShortRead):
        decode_one(data.build())
    with pytest.raises(ShortRead):
        decode_one(data.build(), expand_keys=frozenset({"x"}))


@pytest.mark.parametrize("expand_keys", [frozenset(), frozenset({"x"})])
def test_array_count_over_limit_is_rejected_before_reading(expand_keys):
    b = GGUFBuilder()
    data = b.add_raw(b.string("x") + b.u32(T.ARRAY) + b.u32(T.UINT8) + b.u64(1000)).build()
    with pytest.raises(OversizedField) as exc:
        decode_one(data, max_array_length=10, expand_keys=expand_keys)
    assert exc.value.length == 1000
    assert exc.value.limit == 10
    assert exc.value.offset == 37
    assert exc.value.key == "x"


@pytest.mark.parametrize("expand_keys", [frozenset(), frozenset({"x"})])
def test_array_count_at_limit_is_accepted(expand_keys):
    rec, stream = decode_one(float_array(10), max_array_length=10, expand_keys=expand_keys)
    assert stream.remaining == 0
    assert rec.type == "array[float32]"


@pytest.mark.parametrize("expand_keys", [frozenset(), frozenset({"m"})])
def test_nested_array_count_over_limit(expand_keys):
    data = GGUFBuilder().add_array("m", T.ARRAY, [nested(T.UINT32, [1, 2, 3, 4, 5])]).build()
    with pytest.raises(OversizedField) as exc:
        decode_one(data, max_array_length=3, expand_keys=expand_keys)
    assert exc.value.length == 5
    assert exc.value.offset == 49
    assert exc.value.key == "m"


def deep_array(b: GGUFBuilder, levels: int) -> bytes:
    """Entry "d" holding ``levels`` nested single-element arrays, innermost empty."""
    wrappers = (b.u32(T.ARRAY) + b.u64(1)) * (levels - 1)
    return b.string("d") + b.u32(T.ARRAY) + wrappers + b.u32(T.UINT8) + b.u64(0)


@pytest.mark.parametrize("levels, ok", [(1, True), (5, True), (6, False)])
def test_nesting_limit(levels, ok):
    b = GGUFBuilder()
    data = b.add_raw(deep_array(b, levels)).build()
    if ok:
        rec, _ = decode_one(data, max_array_depth=5)
        assert isinstance(rec.value, ArrayPlaceholder)
    else:
        with pytest.raises(NestingTooDeep):
            decode_one(data, max_array_depth=5)


def test_nesting_limit_applies_under_expansion():
    b = GGUFBuilder()
    data = b.add_raw(deep_array(b, 3)).build()
    rec, _ = decode_one(data, max_array_depth=3, expand_keys=frozenset({"d"}))
    assert rec.value == [ArrayPlaceholder("array", 1, nested=True)]
    with pytest.raises(NestingTooDeep):
        decode_one(data, max_array_depth=2, expand_keys=frozenset({"d"}))


def test_deep_nesting_does_not_recurse():
    b = GGUFBuilder()
    data = b.add_raw(deep_array(b, 20000)).build()
    rec, stream = decode_one(data, max_array_depth=50000)
    assert rec.value == ArrayPlaceholder("array", 1)
    assert stream.position == len(data)
    with pytest.raises(NestingTooDeep):
        decode_one(data)


SCALARS = {
    T.UINT8: st.integers(0, 255),
    T.INT32: st.integers(-(2**31), 2**31 - 1),
    T.UINT64: st.integers(0, 2**64 - 1),
    T.FLOAT64: st.floats(allow_nan=False),
    T.BOOL: st.booleans(),
    T.STRING: st.text(max_size=8),
}


@st.composite
def array_values(draw, depth=0):
    if depth < 2 and draw(st.booleans()):
        children = draw(st.lists(array_values(depth=depth + 1), max_size=4))
        return T.ARRAY, children
    elem = draw(st.sampled_from(sorted(SCALARS)))
    return elem, draw(st.lists(SCALARS[elem], max_size=6))


@settings(max_examples=75)
@given(arr=array_values())
def test_skip_and_expand_consume_identical_spans(arr):
    elem, values = arr
    data = GGUFBuilder().add_array("k", elem, values).add("end", T.UINT16, 513).build()

    skipped, s1 = decode_one(data)
    expanded, s2 = decode_one(data, expand_keys=frozenset({"k"}))

    assert s1.position == s2.position
    assert skipped.offset_end == expanded.offset_end
    assert skipped.value.count == len(values)
    assert len(expanded.value) == len(values)
    assert s1.next_record().value == s2.next_record().value == 513
