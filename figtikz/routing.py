"""
Connector routing.

A connector runs between two anchors (points just outside a node's box on the
side chosen by its magnet). Three layouts exist:

* control points present -> orthogonal polyline through the snapped control
  points, then either a straight arrow into the end anchor or a short bend
  that enters it vertically;
* anchors share neither X nor Y -> one cubic curve whose control points leave
  each anchor on its magnet side;
* otherwise -> one straight arrow.

Labels sit on straight arrows by the half-span rule and on routed polylines
by arc length. Curves carry no label.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .geometry import (
    SCALE,
    Direction,
    DrawingNode,
    Point,
    direction_from_magnet,
    is_axis_aligned,
    polyline_length,
)
from .primitives import (
    ARROW,
    THICK,
    AnchorAttribute,
    AnchoredNode,
    DrawAttribute,
    FillAttribute,
    PathDraw,
    PathKind,
    Primitive,
    RoundedCornersAttribute,
)
from .records import ConnectorControlPoint, ConnectorMagnet, ConnectorTextMidpoint, ConnectorTextSection

ANCHOR_PADDING = 0.1
BEND_OFFSET = 0.3
CORNER_RADIUS = 10
CONTROL_POINT_STRETCH = 1.8

STRAIGHT_LABEL_DEFAULT = ConnectorTextMidpoint(ConnectorTextSection.MIDDLE_TO_END, 0.0)
ROUTED_LABEL_DEFAULT = ConnectorTextMidpoint(ConnectorTextSection.MIDDLE_TO_END, 1.0)

ROUNDED = RoundedCornersAttribute(CORNER_RADIUS)
LABEL_STYLE = (DrawAttribute("none"), FillAttribute("white"))


class RouteKind(Enum):
    STRAIGHT = "straight"
    CURVE = "curve"
    ROUTED = "routed"


class Alignment(Enum):
    ALIGNED = "aligned"
    PERPENDICULAR = "perpendicular"
    # Same-direction pairs have no dedicated geometry; they fall back to the
    # straight arrow.
    SAME_DIRECTION = "same-direction"


@dataclass(frozen=True)
class ConnectorRoute:
    kind: RouteKind
    primitives: List[Primitive]
    polyline: Tuple[Point, ...]
    alignment: Optional[Alignment] = None
    label_position: Optional[Point] = None
    bend: Tuple[Point, ...] = field(default=())


def anchor_position(node: DrawingNode, magnet: ConnectorMagnet) -> Point:
    """Point just outside ``node``'s box on the side selected by ``magnet``."""

    half_w = (node.q2.x - node.q1.x) / 2.0
    half_h = (node.q2.y - node.q1.y) / 2.0
    side = direction_from_magnet(magnet)
    if side is Direction.LEFT:
        return Point(node.q1.x - ANCHOR_PADDING, node.q2.y - half_h)
    if side is Direction.BOTTOM:
        return Point(node.q2.x - half_w, node.q2.y + ANCHOR_PADDING)
    if side is Direction.RIGHT:
        return Point(node.q2.x + ANCHOR_PADDING, node.q2.y - half_h)
    return Point(node.q2.x - half_w, node.q1.y - ANCHOR_PADDING)


def end_alignment(current: Point, last: Point, magnet: ConnectorMagnet) -> Alignment:
    """
    Compare the end magnet's side with the direction from the last raw control
    point back to the last snapped point.
    """

    side = direction_from_magnet(magnet)
    incoming = last.direction_to(current)
    if incoming is side.opposite:
        return Alignment.ALIGNED
    if incoming is side:
        return Alignment.SAME_DIRECTION
    return Alignment.PERPENDICULAR


def snap_control_points(
    start: Point,
    control_points: Sequence[ConnectorControlPoint],
    *,
    scale: float = SCALE,
) -> Tuple[List[Point], Point]:
    """
    Walk the control points from ``start``, each one moving along a single
    axis. Returns the snapped points (``start`` first) and the last snapped
    point.
    """

    points = [start]
    current = start
    for control in control_points:
        if control.axis.x == 1:
            current = Point(current.x, control.position.y * scale)
        else:
            current = Point(control.position.x * scale, current.y)
        points.append(current)
    return points, current


def side_control_point(anchor: Point, other: Point, side: Direction, min_distance: float) -> Point:
    if side is Direction.TOP:
        return Point(anchor.x, min((anchor.y + other.y) / 2.0, anchor.y - min_distance))
    if side is Direction.BOTTOM:
        return Point(anchor.x, max((anchor.y + other.y) / 2.0, anchor.y + min_distance))
    if side is Direction.LEFT:
        return Point(min((anchor.x + other.x) / 2.0, anchor.x - min_distance), anchor.y)
    return Point(max((anchor.x + other.x) / 2.0, anchor.x + min_distance), anchor.y)


def straight_label_position(start: Point, end: Point, midpoint: ConnectorTextMidpoint) -> Point:
    vertical = start.direction_to(end).is_vertical
    if vertical:
        lo, hi = start.y, end.y
    else:
        lo, hi = start.x, end.x
    half = abs(hi - lo) / 2.0
    along = hi - half
    if midpoint.section is ConnectorTextSection.MIDDLE_TO_END:
        along += half * midpoint.offset
    else:
        along -= half * midpoint.offset
    if vertical:
        return Point(start.x, along)
    return Point(along, start.y)


def _interpolate(a: Point, b: Point, along: float, length: float) -> Point:
    if length <= 0:
        return a
    if along <= length / 2.0:
        base, toward, dist = a, b, along
    else:
        base, toward, dist = b, a, length - along
    ratio = dist / length
    return Point(base.x + (toward.x - base.x) * ratio, base.y + (toward.y - base.y) * ratio)


def polyline_label_position(points: Sequence[Point], midpoint: ConnectorTextMidpoint) -> Tuple[Point, bool]:
    """
    Place a label on ``points`` by arc length. Returns the position and
    whether the segment hosting it is vertical.
    """

    walk = list(points)
    if midpoint.section is ConnectorTextSection.MIDDLE_TO_END:
        walk.reverse()
    total = polyline_length(walk)
    half = total / 2.0
    target = half - half * abs(midpoint.offset - 1.0)
    target = min(max(target, 0.0), total)

    consumed = 0.0
    for a, b in zip(walk, walk[1:]):
        length = a.distance_to(b)
        if consumed + length >= target:
            vertical = a.x == b.x and a.y != b.y
            return _interpolate(a, b, target - consumed, length), vertical
        consumed += length
    return walk[-1], False


def _label(position: Point, text: str, *, vertical: bool = False) -> AnchoredNode:
    attributes = LABEL_STYLE + ((AnchorAttribute("south"),) if vertical else ())
    return AnchoredNode(position=position, attributes=attributes, text=text)


def route_connector(
    start: Point,
    end: Point,
    *,
    start_magnet: ConnectorMagnet,
    end_magnet: ConnectorMagnet,
    control_points: Sequence[ConnectorControlPoint] = (),
    label: str = "",
    midpoint: Optional[ConnectorTextMidpoint] = None,
    scale: float = SCALE,
    control_point_stretch: float = CONTROL_POINT_STRETCH,
) -> ConnectorRoute:
    if control_points:
        return _route_through_controls(
            start, end, end_magnet, control_points, label, midpoint or ROUTED_LABEL_DEFAULT, scale
        )

    if not is_axis_aligned(start, end):
        c1 = side_control_point(start, end, direction_from_magnet(start_magnet), control_point_stretch)
        c2 = side_control_point(end, start, direction_from_magnet(end_magnet), control_point_stretch)
        curve = PathDraw(points=(start, c1, c2, end), attributes=(ARROW, THICK), kind=PathKind.CURVE)
        return ConnectorRoute(kind=RouteKind.CURVE, primitives=[curve], polyline=(start, c1, c2, end))

    primitives: List[Primitive] = [PathDraw(points=(start, end), attributes=(ARROW, THICK))]
    label_position = None
    if label:
        label_position = straight_label_position(start, end, midpoint or STRAIGHT_LABEL_DEFAULT)
        primitives.append(_label(label_position, label))
    return ConnectorRoute(
        kind=RouteKind.STRAIGHT,
        primitives=primitives,
        polyline=(start, end),
        label_position=label_position,
    )


def _route_through_controls(
    start: Point,
    end: Point,
    end_magnet: ConnectorMagnet,
    control_points: Sequence[ConnectorControlPoint],
    label: str,
    midpoint: ConnectorTextMidpoint,
    scale: float,
) -> ConnectorRoute:
    snapped, current = snap_control_points(start, control_points, scale=scale)
    raw_last = control_points[-1].position
    last = Point(raw_last.x * scale, raw_last.y * scale)
    lead_in = tuple(snapped) + (last,)

    primitives: List[Primitive] = [PathDraw(points=lead_in, attributes=(THICK, ROUNDED))]
    alignment = end_alignment(current, last, end_magnet)
    bend: Tuple[Point, ...] = ()
    if alignment is Alignment.PERPENDICULAR:
        corner = Point(end.x, last.y)
        entry = Point(end.x, end.y + (BEND_OFFSET if last.y > end.y else -BEND_OFFSET))
        bend = (corner, entry)
        primitives.append(PathDraw(points=(last, corner, entry), attributes=(THICK, ROUNDED)))
        primitives.append(PathDraw(points=(entry, end), attributes=(ARROW, THICK)))
    else:
        primitives.append(PathDraw(points=(last, end), attributes=(ARROW, THICK)))

    polyline = lead_in + bend + (end,)
    label_position = None
    if label:
        label_position, vertical = polyline_label_position(polyline, midpoint)
        primitives.append(_label(label_position, label, vertical=vertical))
    return ConnectorRoute(
        kind=RouteKind.ROUTED,
        primitives=primitives,
        polyline=polyline,
        alignment=alignment,
        label_position=label_position,
        bend=bend,
    )
