"""
Scalar value decoding.
"""

from __future__ import annotations

from typing import Any, Tuple

from gguf_meta.config import Policy

from .gguf import UnknownType
from .gguf_types import SCALAR_FORMATS, SCALAR_WIDTHS, GGUFValueType, TypeTag, UnknownTag
from .scanner import ByteScanner


class ValueDecoder:
    """Decodes one non-array value per call. Values are packed with no padding."""

    def __init__(self, scn: ByteScanner, policy: Policy, *, string_errors: str = "replace"):
        self.scn = scn
        self.policy = policy
        self.string_errors = string_errors

    def decode_scalar(self, tag: TypeTag) -> Tuple[Any, str]:
        """Return ``(value, label)`` for a scalar or string tag."""
        if isinstance(tag, UnknownTag):
            raise UnknownType(tag.raw, offset=self.scn.position)
        if tag is GGUFValueType.STRING:
            s = self.scn.read_string(self.policy.max_string_length, errors=self.string_errors)
            return s, tag.label
        if tag is GGUFValueType.ARRAY:
            raise TypeError("array values must be decoded with ArrayDecoder")
        if tag is GGUFValueType.BOOL:
            return self.scn.u8() != 0, tag.label
        return self.scn.unpack(SCALAR_FORMATS[tag]), tag.label

    def skip_scalars(self, tag: TypeTag, count: int) -> None:
        """Discard ``count`` consecutive values of a non-array type."""
        if count == 0:
            return
        if isinstance(tag, UnknownTag):
            raise UnknownType(tag.raw, offset=self.scn.position)
        if tag is GGUFValueType.STRING:
            for _ in range(count):
                self.scn.skip_string(self.policy.max_string_length)
            return
        if tag is GGUFValueType.ARRAY:
            raise TypeError("array elements must be skipped with ArrayDecoder")
        self.scn.skip(SCALAR_WIDTHS[tag] * count)
