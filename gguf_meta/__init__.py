# gguf_meta/__init__.py
"""
gguf_meta
=========

Pure-Python GGUF metadata decoder: streams the key-value section of a .gguf
file as typed records without touching tensor data, with array placeholders by
default and explicit per-key expansion.
"""
from __future__ import annotations

from importlib.metadata import version as _pkg_version

__all__ = ["__version__"]

try:
    # Read version dynamically from installed package metadata
    __version__: str = _pkg_version("ggufmeta")
except Exception:  # pragma: no cover - fallback for development environments
    __version__ = "0.0.0-dev"
