#!/usr/bin/env python3
"""
Print the decoded scene graph of a FigJam board as an indented tree.

Each line shows guid, node type, display name and, for shapes, the shape
sub-kind. Children appear in drawing order (descending parent position).
Read-only; handy for finding the page index to pass to fig_to_tikz.py.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Sequence

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))

from figtikz.errors import FigDecodeError
from figtikz.records import NodeRecord
from figtikz.scene import decode_file


def describe_node(node: NodeRecord) -> str:
    parts = [str(node.guid), node.type_name or node.type.value]
    if node.name:
        parts.append(repr(node.name))
    if node.shape_with_text_type is not None:
        parts.append(f"shape={node.shape_with_text_type.value}")
    if node.children:
        parts.append(f"children={len(node.children)}")
    return " ".join(parts)


def format_tree(node: NodeRecord, *, max_depth: int | None = None) -> List[str]:
    lines: List[str] = []

    def walk(current: NodeRecord, depth: int) -> None:
        lines.append("  " * depth + describe_node(current))
        if max_depth is not None and depth >= max_depth:
            return
        for child in current.children:
            walk(child, depth + 1)

    walk(node, 0)
    return lines


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Dump the scene graph of a FigJam board.")
    parser.add_argument("input", type=Path, help="Source .jam archive or raw canvas.fig stream")
    parser.add_argument("--depth", type=int, default=None, help="Stop descending below this depth")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        document = decode_file(args.input)
    except (FigDecodeError, OSError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    print(f"{args.input.name}: version={document.version} blobs={len(document.blobs)}")
    for line in format_tree(document.root, max_depth=args.depth):
        print(line)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
