"""
Metadata extractor: opens a GGUF file, streams its records to callbacks and
applies the key-prefix filter.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from gguf_meta.config import DecodeConfig
from gguf_meta.gguf import FileHeader, KVStream, Record
from gguf_meta.io.file_reader import LocalFileSource
from gguf_meta.observability import Timer


@dataclass
class ExtractionSummary:
    file_path: str
    file_size: int
    header: Optional[FileHeader] = None
    records_decoded: int = 0
    records_emitted: int = 0
    metadata_end_offset: int = 0
    duration_ms: float = 0.0


class MetadataExtractor:
    """Runs a KVStream over a local file.

    Records are handed to ``on_record`` as they are decoded and are not kept.
    Decode errors propagate after the records before them have been emitted.
    """

    def __init__(self, path: str, config: Optional[DecodeConfig] = None):
        self.path = path
        self.config = config or DecodeConfig.from_env()
        self.src = LocalFileSource(path)

    def matches(self, key: str) -> bool:
        prefix = self.config.key_prefix.strip()
        return not prefix or key.startswith(prefix)

    def run(
        self,
        on_header: Callable[[FileHeader], None],
        on_record: Callable[[Record], None],
    ) -> ExtractionSummary:
        with self.src.open() as mf:
            summary = ExtractionSummary(file_path=self.path, file_size=mf.size)
            with Timer("decode_metadata") as t:
                stream = KVStream(mf.reader, self.config)
                summary.header = stream.header
                on_header(stream.header)
                # Filtering happens here, after the stream has counted the entry.
                for rec in stream:
                    summary.records_decoded += 1
                    if not self.matches(rec.key):
                        continue
                    summary.records_emitted += 1
                    on_record(rec)
                summary.metadata_end_offset = stream.position
            summary.duration_ms = t.duration_ms

            if self.config.debug:
                logger.debug(
                    "decoded {n} records ({emitted} emitted) in {ms:.2f}ms",
                    n=summary.records_decoded,
                    emitted=summary.records_emitted,
                    ms=summary.duration_ms,
                )
            return summary
