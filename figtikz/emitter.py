from __future__ import annotations

import math
from pathlib import Path
from typing import List, Sequence

from .primitives import Primitive, min_x, render_primitive, shift_x

PICTURE_BEGIN = r"\begin{tikzpicture}[yscale=-1]"
PICTURE_END = r"\end{tikzpicture}"


def global_min_x(primitives: Sequence[Primitive]) -> float:
    return min((min_x(primitive) for primitive in primitives), default=math.inf)


def normalize(primitives: Sequence[Primitive]) -> List[Primitive]:
    """Shift every primitive so the smallest X across the picture becomes 0."""

    offset = global_min_x(primitives)
    if not math.isfinite(offset):
        return list(primitives)
    return [shift_x(primitive, offset) for primitive in primitives]


def emit_tikz(primitives: Sequence[Primitive]) -> str:
    """
    Render one statement per primitive, in order, inside a tikzpicture. The
    canvas Y axis points down, so the flip is declared once on the picture.
    """

    lines = [PICTURE_BEGIN]
    lines.extend(render_primitive(primitive) for primitive in normalize(primitives))
    lines.append(PICTURE_END)
    return "\n".join(lines) + "\n"


def write_tikz(primitives: Sequence[Primitive], destination: Path) -> None:
    text = emit_tikz(primitives)
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(text, encoding="utf-8")
