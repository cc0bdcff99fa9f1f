"""
Console reporting functions for decoded metadata.
"""
from __future__ import annotations

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gguf_meta.extractor import ExtractionSummary
from gguf_meta.gguf import ArrayPlaceholder, FileHeader, Record

console = Console()

MAX_VALUE_WIDTH = 70


def display_text(text: str) -> str:
    """Replace lone surrogates (from surrogateescape decoding) with byte escapes."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def format_value(value) -> str:
    """Short human-readable rendering of a record value."""
    if isinstance(value, ArrayPlaceholder):
        kind = "nested array" if value.nested else "array"
        return f"<{kind} of {value.count} x {value.element_type}>"
    if isinstance(value, list):
        preview = ", ".join(format_value(v) for v in value[:3])
        value_str = f"[{preview}{', ...' if len(value) > 3 else ''}] (Count={len(value)})"
    else:
        value_str = repr(value) if isinstance(value, str) else str(value)

    # Truncate long strings to keep the table clean
    if len(value_str) > MAX_VALUE_WIDTH:
        value_str = value_str[: MAX_VALUE_WIDTH - 3] + "..."
    return value_str


def render_header(header: FileHeader, summary: Optional[ExtractionSummary] = None) -> None:
    """Render the file header as a two-column summary table."""
    t = Table(title="GGUF Header", box=box.SIMPLE_HEAVY)
    t.add_column("Field", style="bold")
    t.add_column("Value")
    if summary is not None:
        t.add_row("Path", escape(display_text(summary.file_path)))
        t.add_row("Size (bytes)", str(summary.file_size))
    t.add_row("Version", f"v{header.version} ({header.byte_order.value})")
    t.add_row("Tensor Count", str(header.tensor_count))
    t.add_row("KV Count", str(header.kv_count))
    if summary is not None:
        t.add_row("Metadata End", str(summary.metadata_end_offset))
        t.add_row("Decode Time (ms)", f"{summary.duration_ms:.2f}")
    console.print(t)


def render_records(records: List[Record]) -> None:
    table = Table(title="Key-Value Metadata", box=box.ROUNDED, title_style="bold magenta")
    table.add_column("Index", justify="right", style="dim")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Type", style="yellow")
    table.add_column("Value", style="white")
    table.add_column("Region", justify="right", style="dim")

    for index, rec in enumerate(records, start=1):
        table.add_row(
            str(index),
            escape(display_text(rec.key)),
            rec.type,
            escape(format_value(rec.value)),
            f"[{rec.offset_start}, {rec.offset_end})",
        )

    console.print(table)
