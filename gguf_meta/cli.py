# gguf_meta/cli.py
"""
cli.py

Console CLI:
- dump:    decode the metadata of a .gguf file as NDJSON (default) or a rich table.
- version: show the package version.
"""
from __future__ import annotations

import argparse
import os
import sys
from typing import List, Optional

from loguru import logger
from rich.console import Console
from rich.markup import escape

from gguf_meta import __version__
from gguf_meta.config import (
    DEFAULT_MAX_ARRAY,
    DEFAULT_MAX_ARRAY_DEPTH,
    DEFAULT_MAX_ARRAY_LENGTH,
    DEFAULT_MAX_STRING,
    STRING_ERROR_MODES,
    DecodeConfig,
    Policy,
    env_bool,
    env_int,
    parse_expand_list,
)
from gguf_meta.extractor import MetadataExtractor
from gguf_meta.gguf import GGUFDecodeError, Record
from gguf_meta.logging import configure_logging
from gguf_meta.reporting import console as console_reporter
from gguf_meta.reporting.ndjson import NDJSONWriter

console = Console()
err_console = Console(stderr=True)

OUTPUT_FORMATS: List[str] = ["ndjson", "table"]


def _build_parser() -> argparse.ArgumentParser:
    env = os.environ
    p = argparse.ArgumentParser(
        prog="ggufmeta",
        description="Extract GGUF metadata. By default shows all keys with array placeholders.",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    sub = p.add_subparsers(dest="cmd", title="Available Commands", metavar="<command>")

    # Subcommand "dump"
    sp = sub.add_parser(
        "dump",
        help="Decode the metadata of a local .gguf file",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "Examples:\n"
            "  ggufmeta dump model.gguf\n"
            "  ggufmeta dump --expand-arrays tokenizer.ggml.tokens model.gguf\n"
            "  ggufmeta dump --keys general. model.gguf"
        ),
    )
    sp.add_argument("path", help="Path to model file (.gguf)")
    sp.add_argument(
        "--keys",
        default="",
        metavar="PREFIX",
        help="Show only keys with this prefix (e.g. 'tokenizer.', 'general.')",
    )
    sp.add_argument(
        "--max-array",
        type=int,
        default=env_int(env, "GGUF_META_MAX_ARRAY", DEFAULT_MAX_ARRAY),
        metavar="N",
        help="Inline threshold for arrays, used with --inline-small-arrays (default: %(default)s)",
    )
    sp.add_argument(
        "--max-string",
        type=int,
        default=env_int(env, "GGUF_META_MAX_STRING", DEFAULT_MAX_STRING),
        metavar="BYTES",
        help="Maximum string length in bytes (default: %(default)s)",
    )
    sp.add_argument(
        "--expand-arrays",
        default="",
        metavar="LIST",
        help=(
            "Comma-separated array keys to expand fully; overrides size limits.\n"
            "A trailing '*' makes an entry a key prefix, e.g. 'tokenizer.*'"
        ),
    )
    sp.add_argument(
        "--inline-small-arrays",
        action="store_true",
        help="Expand arrays of at most --max-array elements without an explicit rule",
    )
    sp.add_argument(
        "--max-depth",
        type=int,
        default=DEFAULT_MAX_ARRAY_DEPTH,
        metavar="N",
        help="Deepest array nesting accepted (default: %(default)s)",
    )
    sp.add_argument(
        "--max-array-length",
        type=int,
        default=DEFAULT_MAX_ARRAY_LENGTH,
        metavar="N",
        help="Largest array element count accepted (default: %(default)s)",
    )
    sp.add_argument(
        "--strings",
        choices=STRING_ERROR_MODES,
        default="replace",
        help="Handling of invalid UTF-8 in strings (default: %(default)s)",
    )
    sp.add_argument(
        "--align-before-value",
        action="store_true",
        help="Experimental: align to 8 bytes before each value payload",
    )
    sp.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="ndjson",
        help="Output format (default: %(default)s)",
    )
    sp.add_argument(
        "--debug",
        action="store_true",
        default=env_bool(env, "GGUF_META_DEBUG", False),
        help="Enable debug logging on stderr",
    )
    # Legacy flags kept for compatibility; arrays are placeholders by default.
    sp.add_argument("--tokens", action="store_true", help="(legacy flag, no effect)")
    sp.add_argument("--tensors", action="store_true", help="(legacy flag, no effect)")

    # Subcommand "version"
    sub.add_parser("version", help="Show the version of ggufmeta")

    return p


def _config_from_args(args: argparse.Namespace) -> DecodeConfig:
    keys, prefixes = parse_expand_list(args.expand_arrays)
    policy = Policy(
        max_array_inline=args.max_array,
        max_string_length=args.max_string,
        expand_keys=keys,
        expand_prefixes=prefixes,
        inline_small_arrays=args.inline_small_arrays,
        max_array_depth=args.max_depth,
        max_array_length=args.max_array_length,
    )
    return DecodeConfig(
        policy=policy,
        align_before_value=args.align_before_value,
        debug=args.debug,
        string_errors=args.strings,
        key_prefix=args.keys,
    )


def _dump(args: argparse.Namespace) -> int:
    configure_logging(debug=args.debug)
    path = args.path
    if not os.path.isfile(path):
        err_console.print(f"[red]File not found:[/red] {escape(path)}")
        return 2
    if args.max_array < 0 or args.max_string < 0 or args.max_array_length < 0 or args.max_depth < 1:
        err_console.print(
            "[red]--max-array, --max-string and --max-array-length must be >= 0, "
            "--max-depth >= 1[/red]"
        )
        return 2

    config = _config_from_args(args)
    extractor = MetadataExtractor(path, config)
    logger.debug("decoding {path} with {config}", path=path, config=config)

    if args.format == "ndjson":
        # Lone surrogates from surrogateescape cannot be written as UTF-8.
        writer = NDJSONWriter(sys.stdout, ensure_ascii=args.strings == "surrogateescape")
        try:
            extractor.run(writer.write_header, writer.write_record)
        except GGUFDecodeError as e:
            sys.stdout.flush()
            err_console.print(f"[bold red]Decode error:[/bold red] {escape(str(e))}")
            return 1
        return 0

    # table output keeps the records for rendering
    records: List[Record] = []
    headers = []
    try:
        summary = extractor.run(headers.append, records.append)
    except GGUFDecodeError as e:
        if headers:
            console_reporter.render_header(headers[0])
        console_reporter.render_records(records)
        err_console.print(f"[bold red]Decode error:[/bold red] {escape(str(e))}")
        return 1
    console_reporter.render_header(summary.header, summary)
    console_reporter.render_records(records)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "version":
        console.print(f"ggufmeta version {__version__}")
        return 0

    if args.cmd == "dump":
        return _dump(args)

    parser.print_help()
    return 1


def run() -> None:
    sys.exit(main())
