#!/usr/bin/env python3
"""
Convert a FigJam board (.jam archive or raw fig-jam stream) into a TikZ
picture.

    python fig_to_tikz.py board.jam -o board.tex
    python fig_to_tikz.py canvas.fig --page 1 --trace-log routing.log

Without ``--output`` the picture goes to stdout. Exit codes:
    0 -> success
    1 -> the board could not be decoded or the page does not exist
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from figtikz.compiler import CompilerOptions, compile_page
from figtikz.emitter import emit_tikz
from figtikz.errors import FigDecodeError, PageNotFoundError
from figtikz.logging import RoutingTraceLogger, log_duplicate_guids
from figtikz.records import NodeRecord
from figtikz.scene import Document, decode_file


def select_page(document: Document, page: int | None) -> NodeRecord:
    if page is None:
        return document.root
    pages = document.root.children
    if not 0 <= page < len(pages):
        raise PageNotFoundError(page, len(pages))
    return pages[page]


def convert_to_tikz(
    source: Path,
    *,
    page: int | None = None,
    options: CompilerOptions | None = None,
    trace_log: Path | None = None,
    duplicate_log: Path | None = None,
) -> str:
    document = decode_file(source)
    if duplicate_log is not None:
        log_duplicate_guids(document.duplicate_guids, duplicate_log)
    trace = RoutingTraceLogger(trace_log) if trace_log is not None else None
    primitives = compile_page(select_page(document, page), options, trace)
    if trace is not None:
        trace.flush()
    return emit_tikz(primitives)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Convert a FigJam board into a TikZ picture.")
    parser.add_argument("input", type=Path, help="Source .jam archive or raw canvas.fig stream")
    parser.add_argument("-o", "--output", type=Path, help="Destination .tex path (default: stdout)")
    parser.add_argument(
        "--page",
        type=int,
        default=None,
        help="Compile the N-th child of the document root instead of the root itself",
    )
    parser.add_argument("--debug-magnets", action="store_true", help="Mark connector anchors in red")
    parser.add_argument(
        "--debug-control-points",
        action="store_true",
        help="Mark raw connector control points in blue",
    )
    parser.add_argument("--trace-log", type=Path, help="Write a per-connector routing trace to this path")
    parser.add_argument("--duplicate-log", type=Path, help="Write duplicate node guids to this path")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    options = CompilerOptions(
        debug_magnets=args.debug_magnets,
        debug_control_points=args.debug_control_points,
    )
    try:
        text = convert_to_tikz(
            args.input,
            page=args.page,
            options=options,
            trace_log=args.trace_log,
            duplicate_log=args.duplicate_log,
        )
    except (FigDecodeError, OSError, PageNotFoundError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1

    if args.output is None:
        sys.stdout.write(text)
        return 0
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(text, encoding="utf-8")
    print(f"[+] TikZ picture written to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
