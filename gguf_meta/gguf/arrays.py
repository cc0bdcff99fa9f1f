"""
Array decoding with the two-pass policy.

Arrays are summarised as placeholders unless the key is explicitly requested.
Expansion is one level deep: inner arrays of an expanded array are always
skipped and replaced by nested placeholders.
"""

from __future__ import annotations

from typing import Any, List, Tuple

from loguru import logger

from .gguf import ArrayPlaceholder, NestingTooDeep, OversizedField
from .gguf_types import GGUFValueType, TypeTag, resolve_tag
from .values import ValueDecoder


class ArrayDecoder:
    def __init__(self, values: ValueDecoder, *, debug: bool = False):
        self.values = values
        self.scn = values.scn
        self.policy = values.policy
        self.debug = debug

    def read_array_header(self) -> Tuple[TypeTag, int]:
        """Read element type (u32) and element count (u64).

        The count is checked against the policy before any element is read.
        """
        start = self.scn.position
        elem = resolve_tag(self.scn.u32())
        count = self.scn.u64()
        if count > self.policy.max_array_length:
            raise OversizedField(length=count, limit=self.policy.max_array_length, offset=start)
        return elem, count

    def should_expand(self, key: str, elem: TypeTag, count: int) -> bool:
        # Explicit rules first; the size threshold only applies without one.
        if self.policy.is_explicit(key):
            return True
        if not self.policy.inline_small_arrays:
            return False
        return elem is not GGUFValueType.ARRAY and count <= self.policy.max_array_inline

    def decode(self, key: str) -> Tuple[Any, str]:
        """Decode the array value of ``key``. Returns ``(value, label)``."""
        elem, count = self.read_array_header()
        label = f"array[{elem.label}]"
        expand = self.should_expand(key, elem, count)

        if self.debug:
            logger.debug(
                "key={key!r} array elem={elem} len={count} expand={expand} pos={pos}",
                key=key,
                elem=elem.label,
                count=count,
                expand=expand,
                pos=self.scn.position,
            )

        if expand:
            return self.expand(elem, count), label
        self.skip(elem, count)
        return ArrayPlaceholder(element_type=elem.label, count=count), label

    def expand(self, elem: TypeTag, count: int) -> List[Any]:
        # Built by appending; the count comes from the file and is not trusted
        # for preallocation.
        results: List[Any] = []
        if elem is GGUFValueType.ARRAY:
            if count and self.policy.max_array_depth < 2:
                raise NestingTooDeep(limit=self.policy.max_array_depth, offset=self.scn.position)
            for _ in range(count):
                nested_elem, nested_count = self.read_array_header()
                self.skip(nested_elem, nested_count, depth=1)
                results.append(
                    ArrayPlaceholder(
                        element_type=nested_elem.label, count=nested_count, nested=True
                    )
                )
            return results
        for _ in range(count):
            v, _ = self.values.decode_scalar(elem)
            results.append(v)
        return results

    def skip(self, elem: TypeTag, count: int, *, depth: int = 0) -> None:
        """Consume ``count`` elements of type ``elem`` without keeping them.

        Nested arrays are walked with an explicit work list so deep nesting
        does not grow the interpreter stack.
        """
        limit = self.policy.max_array_depth
        pending: List[List[Any]] = [[elem, count]]
        while pending:
            top = pending[-1]
            tag, remaining = top
            if remaining == 0:
                pending.pop()
                continue
            if tag is not GGUFValueType.ARRAY:
                self.values.skip_scalars(tag, remaining)
                pending.pop()
                continue
            top[1] = remaining - 1
            if depth + len(pending) + 1 > limit:
                raise NestingTooDeep(limit=limit, offset=self.scn.position)
            nested_elem, nested_count = self.read_array_header()
            pending.append([nested_elem, nested_count])
