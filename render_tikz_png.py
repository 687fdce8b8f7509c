#!/usr/bin/env python3
"""
Render a FigJam board to a PNG preview without a LaTeX toolchain.

The script compiles the board with the same pipeline as fig_to_tikz.py and
rasterizes the resulting primitives with Pillow, so the preview matches the
TikZ output. Example:

    python render_tikz_png.py board.jam --preview board.png --size 1024
"""

from __future__ import annotations

import argparse
import math
import sys
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw

from figtikz.compiler import CompilerOptions, compile_page
from figtikz.emitter import normalize
from figtikz.errors import FigDecodeError, PageNotFoundError
from figtikz.geometry import Point
from figtikz.primitives import (
    AnchorAttribute,
    AnchoredNode,
    ArrowToAttribute,
    ColorAttribute,
    FilledMark,
    PathDraw,
    PathKind,
    Primitive,
    RotateAroundAttribute,
    ScaleAroundAttribute,
    Shape,
    primitive_points,
)
from figtikz.scene import decode_file
from fig_to_tikz import select_page


def sample_curve(points: Sequence[Point], segments: int = 32) -> List[Point]:
    p0, p1, p2, p3 = (np.array(p, dtype=np.float64) for p in points)
    samples: List[Point] = []
    for step in range(segments + 1):
        t = step / segments
        u = 1.0 - t
        pt = u**3 * p0 + 3 * u**2 * t * p1 + 3 * u * t**2 * p2 + t**3 * p3
        samples.append(Point(float(pt[0]), float(pt[1])))
    return samples


def shape_corners(shape: Shape) -> List[Point]:
    corners = np.array(
        [
            [shape.p1.x, shape.p1.y],
            [shape.p2.x, shape.p1.y],
            [shape.p2.x, shape.p2.y],
            [shape.p1.x, shape.p2.y],
        ],
        dtype=np.float64,
    )
    for attr in shape.attributes:
        if isinstance(attr, RotateAroundAttribute):
            pivot = np.array(attr.position, dtype=np.float64)
            # The picture flips Y, so a positive TikZ angle turns clockwise on the canvas.
            theta = -math.radians(attr.degrees)
            rotation = np.array([[math.cos(theta), -math.sin(theta)], [math.sin(theta), math.cos(theta)]])
            corners = (corners - pivot) @ rotation.T + pivot
        elif isinstance(attr, ScaleAroundAttribute):
            pivot = np.array(attr.position, dtype=np.float64)
            corners = (corners - pivot) * attr.scale + pivot
    return [Point(float(x), float(y)) for x, y in corners]


def _collect_bounds(primitives: Sequence[Primitive]) -> Tuple[float, float, float, float]:
    points: List[Point] = []
    for primitive in primitives:
        if isinstance(primitive, Shape):
            points.extend(shape_corners(primitive))
        else:
            points.extend(primitive_points(primitive))
    if not points:
        raise RuntimeError("Unable to compute bounds for an empty picture.")
    xs = [pt.x for pt in points]
    ys = [pt.y for pt in points]
    return min(xs), max(xs), min(ys), max(ys)


def _build_transform(bounds: Tuple[float, float, float, float], size_px: int, padding_ratio: float):
    min_x, max_x, min_y, max_y = bounds
    width = max(max_x - min_x, 1e-9)
    height = max(max_y - min_y, 1e-9)
    pad = max(width, height) * padding_ratio

    world_min_x = min_x - pad
    world_min_y = min_y - pad
    world_width = width + 2 * pad
    world_height = height + 2 * pad

    scale = min(size_px / world_width, size_px / world_height)
    offset_x = (size_px - world_width * scale) / 2.0
    offset_y = (size_px - world_height * scale) / 2.0

    # Canvas Y already grows downward, like image rows.
    def transform(point: Point) -> Tuple[float, float]:
        return (point.x - world_min_x) * scale + offset_x, (point.y - world_min_y) * scale + offset_y

    return transform, scale


def _draw_arrow_head(draw: ImageDraw.ImageDraw, tail: Tuple[float, float], tip: Tuple[float, float], length: float) -> None:
    angle = math.atan2(tip[1] - tail[1], tip[0] - tail[0])
    spread = math.radians(25)
    left = (tip[0] - length * math.cos(angle - spread), tip[1] - length * math.sin(angle - spread))
    right = (tip[0] - length * math.cos(angle + spread), tip[1] - length * math.sin(angle + spread))
    draw.polygon([tip, left, right], fill="black")


def _draw_label(draw: ImageDraw.ImageDraw, center: Tuple[float, float], text: str, *, south: bool) -> None:
    text = text.replace("\\_", "_")
    if not text:
        return
    left, top, right, bottom = draw.textbbox((0, 0), text)
    x = center[0] - (right - left) / 2.0
    y = center[1] - (bottom - top) if south else center[1] - (bottom - top) / 2.0
    draw.text((x, y), text, fill="black")


def render_png(
    primitives: Sequence[Primitive],
    destination: Path,
    size_px: int,
    *,
    padding_ratio: float = 0.05,
) -> None:
    primitives = normalize(primitives)
    transform, _scale = _build_transform(_collect_bounds(primitives), size_px, padding_ratio)

    image = Image.new("RGBA", (size_px, size_px), (255, 255, 255, 255))
    draw = ImageDraw.Draw(image)
    stroke = max(1, int(size_px / 512))
    head = max(4.0, size_px / 128)

    for primitive in primitives:
        if isinstance(primitive, PathDraw):
            points = primitive.points
            if primitive.kind is PathKind.CURVE:
                points = tuple(sample_curve(points))
            pixels = [transform(pt) for pt in points]
            if len(pixels) >= 2:
                draw.line(pixels, fill="black", width=stroke, joint="curve")
                if any(isinstance(attr, ArrowToAttribute) for attr in primitive.attributes):
                    _draw_arrow_head(draw, pixels[-2], pixels[-1], head)
        elif isinstance(primitive, Shape):
            corners = [transform(pt) for pt in shape_corners(primitive)]
            draw.polygon(corners, outline="black", width=stroke)
            if primitive.text:
                center = transform(primitive.p1.middle_with(primitive.p2))
                _draw_label(draw, center, primitive.text, south=False)
        elif isinstance(primitive, AnchoredNode):
            if primitive.text:
                south = any(
                    isinstance(attr, AnchorAttribute) and attr.value == "south" for attr in primitive.attributes
                )
                _draw_label(draw, transform(primitive.position), primitive.text, south=south)
        elif isinstance(primitive, FilledMark):
            color = next(
                (attr.value for attr in primitive.attributes if isinstance(attr, ColorAttribute)),
                "black",
            )
            cx, cy = transform(primitive.position)
            radius = max(2.0, head / 2.0)
            draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=color)
        else:
            raise TypeError(f"unknown primitive {primitive!r}")

    destination.parent.mkdir(parents=True, exist_ok=True)
    image.save(destination)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a FigJam board to a PNG preview.")
    parser.add_argument("input", type=Path, help="Source .jam archive or raw canvas.fig stream")
    parser.add_argument("--preview", type=Path, required=True, help="Destination PNG path")
    parser.add_argument("--size", type=int, default=1024, help="Preview size in pixels (square)")
    parser.add_argument("--page", type=int, default=None, help="Render the N-th child of the document root")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    try:
        document = decode_file(args.input)
        page = select_page(document, args.page)
    except (FigDecodeError, OSError, PageNotFoundError) as exc:
        print(f"[error] {exc}", file=sys.stderr)
        return 1
    primitives = compile_page(page, CompilerOptions())
    if not primitives:
        raise SystemExit("Nothing renderable was found on the selected page.")
    render_png(primitives, args.preview, args.size)
    print(f"[+] Preview PNG written to {args.preview}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
