"""
GGUF prologue decoding with endianness detection.
"""

from __future__ import annotations

import struct

from loguru import logger

from .gguf import (
    HEADER_SIZE,
    MAGIC,
    SUPPORTED_VERSION,
    BadMagic,
    ByteOrder,
    FileHeader,
    UnsupportedVersion,
)
from .scanner import ByteScanner


def resolve_byte_order(version_bytes: bytes) -> ByteOrder:
    """Trial-decode the 4-byte version field both ways.

    Little-endian is tried first. Raises UnsupportedVersion if neither reading
    gives the supported version.
    """
    version_le = struct.unpack("<I", version_bytes)[0]
    version_be = struct.unpack(">I", version_bytes)[0]
    if version_le == SUPPORTED_VERSION:
        return ByteOrder.LITTLE
    if version_be == SUPPORTED_VERSION:
        return ByteOrder.BIG
    raise UnsupportedVersion(version_le, version_be)


def decode_header(scn: ByteScanner, *, debug: bool = False) -> FileHeader:
    """Consume the 24-byte prologue and fix the scanner's byte order."""
    raw = scn.read_exact(HEADER_SIZE)
    if raw[:4] != MAGIC:
        raise BadMagic(raw[:4])

    order = resolve_byte_order(raw[4:8])
    scn.set_byte_order(order)

    tensor_count, kv_count = struct.unpack(order.struct_prefix + "QQ", raw[8:24])
    header = FileHeader(
        version=SUPPORTED_VERSION,
        tensor_count=tensor_count,
        kv_count=kv_count,
        byte_order=order,
    )
    if debug:
        logger.debug(
            "magic={magic} version={version} endian={endian} tensors={tc} kvs={kv} pos={pos}",
            magic=raw[:4].decode("ascii"),
            version=header.version,
            endian=order.value,
            tc=tensor_count,
            kv=kv_count,
            pos=scn.position,
        )
    return header
