"""
Local file reader using a read-only mmap.
"""

from __future__ import annotations

import io
import mmap
import os
from dataclasses import dataclass
from typing import Optional, Union


@dataclass
class LocalFileSource:
    """Local file source with memory mapping.

    Attributes:
        path: Path to the local file.
    """

    path: str

    def open(self) -> "MappedFile":
        """Open and memory-map the file read-only."""
        return MappedFile(self.path)


class MappedFile:
    """Context manager that wraps an mmapped file and exposes a sequential reader.

    The mmap keeps its own cursor, so each ``MappedFile`` is an independent source.
    """

    __slots__ = ("_fd", "_m", "_empty", "size", "path")

    def __init__(self, path: str):
        self.path = path
        self._fd: Optional[int] = None
        self._m: Optional[mmap.mmap] = None
        self._empty: Optional[io.BytesIO] = None
        self.size: int = 0

    def __enter__(self) -> "MappedFile":
        self._fd = os.open(self.path, os.O_RDONLY)
        self.size = os.fstat(self._fd).st_size
        if self.size == 0:
            # mmap refuses zero-length mappings
            self._empty = io.BytesIO(b"")
        else:
            self._m = mmap.mmap(self._fd, self.size, access=mmap.ACCESS_READ)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._m is not None:
            self._m.close()
            self._m = None
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    @property
    def reader(self) -> Union[mmap.mmap, io.BytesIO]:
        """Readable byte source positioned at the start of the file."""
        if self._m is not None:
            return self._m
        if self._empty is not None:
            return self._empty
        raise RuntimeError("MappedFile is not entered")
