"""
Sequential binary scanner over a readable byte source.

Every read goes through ``read_exact`` so ``position`` is always the number of
bytes consumed from the source.
"""

from __future__ import annotations

import struct
from typing import Dict, Protocol

from .gguf import ByteOrder, MalformedString, OversizedField, ShortRead

_SKIP_CHUNK = 1 << 20


class ByteSource(Protocol):
    def read(self, n: int = -1) -> bytes: ...


class ByteScanner:
    """Reads fixed-width integers, floats and length-prefixed strings."""

    __slots__ = ("_src", "_order", "_order_fixed", "_structs", "position")

    def __init__(self, source: ByteSource, *, position: int = 0):
        self._src = source
        self._order = ByteOrder.LITTLE
        self._order_fixed = False
        self._structs: Dict[str, struct.Struct] = {}
        self.position = position

    @property
    def byte_order(self) -> ByteOrder:
        return self._order

    def set_byte_order(self, order: ByteOrder) -> None:
        """Fix the byte order for all later reads. May only be called once."""
        if self._order_fixed:
            raise RuntimeError("byte order already resolved")
        self._order = order
        self._order_fixed = True
        self._structs.clear()

    def read_exact(self, n: int) -> bytes:
        if n < 0:
            raise ValueError(f"negative read length {n}")
        buf = self._src.read(n)
        if len(buf) < n:
            chunks = [buf]
            got = len(buf)
            while got < n:
                more = self._src.read(n - got)
                if not more:
                    raise ShortRead(offset=self.position, wanted=n, got=got)
                chunks.append(more)
                got += len(more)
            buf = b"".join(chunks)
        self.position += n
        return bytes(buf)

    def skip(self, n: int) -> None:
        """Consume ``n`` bytes without keeping them."""
        start = self.position
        remaining = n
        while remaining > 0:
            step = min(remaining, _SKIP_CHUNK)
            try:
                self.read_exact(step)
            except ShortRead as e:
                raise ShortRead(
                    offset=start, wanted=n, got=self.position - start + e.got
                ) from None
            remaining -= step

    def _struct(self, fmt: str) -> struct.Struct:
        s = self._structs.get(fmt)
        if s is None:
            s = self._structs[fmt] = struct.Struct(self._order.struct_prefix + fmt)
        return s

    def unpack(self, fmt: str):
        """Read one value described by a struct format character."""
        s = self._struct(fmt)
        return s.unpack(self.read_exact(s.size))[0]

    def u8(self) -> int:
        return self.read_exact(1)[0]

    def i8(self) -> int:
        return self.unpack("b")

    def u16(self) -> int:
        return self.unpack("H")

    def i16(self) -> int:
        return self.unpack("h")

    def u32(self) -> int:
        return self.unpack("I")

    def i32(self) -> int:
        return self.unpack("i")

    def u64(self) -> int:
        return self.unpack("Q")

    def i64(self) -> int:
        return self.unpack("q")

    def f32(self) -> float:
        return self.unpack("f")

    def f64(self) -> float:
        return self.unpack("d")

    def read_string(self, max_len: int, *, errors: str = "replace") -> str:
        """Read a u64 length-prefixed UTF-8 string.

        The length is checked against ``max_len`` before any payload byte is read.
        """
        start = self.position
        n = self.u64()
        if n > max_len:
            raise OversizedField(length=n, limit=max_len, offset=start)
        raw = self.read_exact(n)
        try:
            return raw.decode("utf-8", errors)
        except UnicodeDecodeError as e:
            raise MalformedString(
                f"invalid UTF-8 at byte {e.start} of string", offset=start + 8 + e.start
            ) from e

    def skip_string(self, max_len: int) -> None:
        start = self.position
        n = self.u64()
        if n > max_len:
            raise OversizedField(length=n, limit=max_len, offset=start)
        self.skip(n)

    def align_to(self, n: int) -> None:
        """Consume padding up to the next multiple of ``n``."""
        if n <= 0:
            return
        rem = self.position % n
        if rem:
            self.skip(n - rem)

