"""
Sequential key-value stream over GGUF metadata.
"""

from __future__ import annotations

from typing import Iterator, Optional

from loguru import logger

from gguf_meta.config import DecodeConfig

from .arrays import ArrayDecoder
from .gguf import FileHeader, GGUFDecodeError, Record, StreamBroken
from .gguf_types import GGUFValueType, resolve_tag
from .header import decode_header
from .scanner import ByteScanner, ByteSource
from .values import ValueDecoder

VALUE_ALIGNMENT = 8


class KVStream:
    """Decodes the header, then one key-value entry per ``next_record`` call.

    Every entry read decrements ``remaining`` by one, whatever the caller later
    does with the record. Any failure leaves the stream broken: the format has
    no resynchronisation marker.
    """

    def __init__(self, source: ByteSource, config: Optional[DecodeConfig] = None):
        self.config = config or DecodeConfig()
        self.scn = ByteScanner(source)
        self._broken = False
        self.header: FileHeader = decode_header(self.scn, debug=self.config.debug)
        self.remaining = self.header.kv_count
        self.values = ValueDecoder(
            self.scn, self.config.policy, string_errors=self.config.string_errors
        )
        self.arrays = ArrayDecoder(self.values, debug=self.config.debug)

    @property
    def position(self) -> int:
        return self.scn.position

    def next_record(self) -> Optional[Record]:
        """Return the next record, or None once ``kv_count`` entries were read."""
        if self._broken:
            raise StreamBroken(
                "stream is unusable after an earlier decode failure", offset=self.scn.position
            )
        if self.remaining == 0:
            return None

        start = self.scn.position
        key = None
        try:
            key = self.scn.read_string(
                self.config.policy.max_string_length, errors=self.config.string_errors
            )
            # Tag follows the key with no padding.
            tag = resolve_tag(self.scn.u32())
            if self.config.align_before_value:
                self.scn.align_to(VALUE_ALIGNMENT)
            if tag is GGUFValueType.ARRAY:
                value, label = self.arrays.decode(key)
            else:
                value, label = self.values.decode_scalar(tag)
        except GGUFDecodeError as e:
            self._broken = True
            if key is not None:
                e.with_key(key)
            if self.config.debug:
                logger.debug("decode failed after {n} records: {err}", n=self.decoded, err=e)
            raise

        self.remaining -= 1
        return Record(
            key=key, type=label, value=value, offset_start=start, offset_end=self.scn.position
        )

    @property
    def decoded(self) -> int:
        return self.header.kv_count - self.remaining

    def __iter__(self) -> Iterator[Record]:
        while True:
            rec = self.next_record()
            if rec is None:
                return
            yield rec
