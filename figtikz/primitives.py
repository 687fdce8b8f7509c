"""
Drawing primitives produced by the compiler.

Both the attribute set and the primitive set are closed: every function in
this module dispatches over the ``Attribute`` / ``Primitive`` unions and
raises ``TypeError`` for anything else.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Union

from .geometry import Point


@dataclass(frozen=True)
class ArrowToAttribute:
    pass


@dataclass(frozen=True)
class ThickAttribute:
    pass


@dataclass(frozen=True)
class FillAttribute:
    value: str


@dataclass(frozen=True)
class DrawAttribute:
    value: str


@dataclass(frozen=True)
class ColorAttribute:
    value: str


@dataclass(frozen=True)
class AnchorAttribute:
    value: str


@dataclass(frozen=True)
class RoundedCornersAttribute:
    value: int


@dataclass(frozen=True)
class RotateAroundAttribute:
    degrees: int
    position: Point


@dataclass(frozen=True)
class ScaleAroundAttribute:
    scale: float
    position: Point


Attribute = Union[
    ArrowToAttribute,
    ThickAttribute,
    FillAttribute,
    DrawAttribute,
    ColorAttribute,
    AnchorAttribute,
    RoundedCornersAttribute,
    RotateAroundAttribute,
    ScaleAroundAttribute,
]

ARROW = ArrowToAttribute()
THICK = ThickAttribute()


class PathKind(Enum):
    LINE = "line"
    CURVE = "curve"


@dataclass(frozen=True)
class PathDraw:
    points: Tuple[Point, ...]
    attributes: Tuple[Attribute, ...] = ()
    text: Optional[str] = None
    kind: PathKind = PathKind.LINE


@dataclass(frozen=True)
class Shape:
    p1: Point
    p2: Point
    kind: str
    attributes: Tuple[Attribute, ...] = ()
    text: Optional[str] = None


@dataclass(frozen=True)
class AnchoredNode:
    position: Point
    attributes: Tuple[Attribute, ...] = ()
    text: Optional[str] = None


@dataclass(frozen=True)
class FilledMark:
    position: Point
    shape: str
    size: str
    attributes: Tuple[Attribute, ...] = ()


Primitive = Union[PathDraw, Shape, AnchoredNode, FilledMark]


def attribute_position(attr: Attribute) -> Optional[Point]:
    if isinstance(attr, (RotateAroundAttribute, ScaleAroundAttribute)):
        return attr.position
    return None


def render_attribute(attr: Attribute) -> str:
    if isinstance(attr, ArrowToAttribute):
        return "-To"
    if isinstance(attr, ThickAttribute):
        return "thick"
    if isinstance(attr, FillAttribute):
        return f"fill={attr.value}"
    if isinstance(attr, DrawAttribute):
        return f"draw={attr.value}"
    if isinstance(attr, ColorAttribute):
        return f"color={attr.value}"
    if isinstance(attr, AnchorAttribute):
        return f"anchor={attr.value}"
    if isinstance(attr, RoundedCornersAttribute):
        return f"rounded corners={attr.value:d}"
    if isinstance(attr, RotateAroundAttribute):
        return f"rotate around={{{attr.degrees:d}:({attr.position})}}"
    if isinstance(attr, ScaleAroundAttribute):
        return f"scale around={{{attr.scale:f}:({attr.position})}}"
    raise TypeError(f"unknown attribute {attr!r}")


def _render_attributes(attributes: Tuple[Attribute, ...]) -> str:
    if not attributes:
        return ""
    return "[" + ", ".join(render_attribute(attr) for attr in attributes) + "]"


def _render_points(points: Tuple[Point, ...], kind: PathKind) -> str:
    if kind is PathKind.CURVE:
        start, c1, c2, end = points
        return f"({start}) .. controls ({c1}) and ({c2}) .. ({end})"
    return " -- ".join(f"({point})" for point in points)


def render_primitive(primitive: Primitive) -> str:
    if isinstance(primitive, PathDraw):
        parts = [r"\draw", _render_attributes(primitive.attributes)]
        if primitive.text is not None:
            parts.append(f" node{{{primitive.text}}}")
        if primitive.points:
            parts.append(" " + _render_points(primitive.points, primitive.kind))
    elif isinstance(primitive, Shape):
        parts = [r"\draw", _render_attributes(primitive.attributes), f" ({primitive.p1})", f" {primitive.kind}"]
        if primitive.text is not None:
            parts.append(f" node{{{primitive.text}}}")
        parts.append(f" ({primitive.p2})")
    elif isinstance(primitive, AnchoredNode):
        parts = [r"\node", _render_attributes(primitive.attributes), f" at ({primitive.position})"]
        if primitive.text is not None:
            parts.append(f" {{{primitive.text}}}")
    elif isinstance(primitive, FilledMark):
        parts = [
            r"\filldraw",
            _render_attributes(primitive.attributes),
            f" ({primitive.position})",
            f" {primitive.shape}({primitive.size})",
        ]
    else:
        raise TypeError(f"unknown primitive {primitive!r}")
    parts.append(";")
    return "".join(parts)


def primitive_points(primitive: Primitive) -> Tuple[Point, ...]:
    """Every point owned by ``primitive``, positioned attributes included."""

    if isinstance(primitive, PathDraw):
        own = primitive.points
    elif isinstance(primitive, Shape):
        own = (primitive.p1, primitive.p2)
    elif isinstance(primitive, (AnchoredNode, FilledMark)):
        own = (primitive.position,)
    else:
        raise TypeError(f"unknown primitive {primitive!r}")
    extra = tuple(p for p in map(attribute_position, primitive.attributes) if p is not None)
    return own + extra


def min_x(primitive: Primitive) -> float:
    return min((point.x for point in primitive_points(primitive)), default=math.inf)


def _shift_attribute(attr: Attribute, offset: float) -> Attribute:
    position = attribute_position(attr)
    if position is None:
        return attr
    return replace(attr, position=position.offset(dx=-offset))


def shift_x(primitive: Primitive, offset: float) -> Primitive:
    """Return a copy of ``primitive`` moved left by ``offset``; Y is untouched."""

    if not isinstance(primitive, (PathDraw, Shape, AnchoredNode, FilledMark)):
        raise TypeError(f"unknown primitive {primitive!r}")
    attributes = tuple(_shift_attribute(attr, offset) for attr in primitive.attributes)
    if isinstance(primitive, PathDraw):
        points = tuple(point.offset(dx=-offset) for point in primitive.points)
        return replace(primitive, points=points, attributes=attributes)
    if isinstance(primitive, Shape):
        return replace(
            primitive,
            p1=primitive.p1.offset(dx=-offset),
            p2=primitive.p2.offset(dx=-offset),
            attributes=attributes,
        )
    return replace(primitive, position=primitive.position.offset(dx=-offset), attributes=attributes)
