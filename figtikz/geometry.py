from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Sequence

import numpy as np

from .records import ConnectorMagnet, NodeRecord

# Canvas pixels to TikZ units.
SCALE = 0.018


class Direction(Enum):
    TOP = "top"
    RIGHT = "right"
    BOTTOM = "bottom"
    LEFT = "left"

    @property
    def is_vertical(self) -> bool:
        return self in (Direction.TOP, Direction.BOTTOM)

    @property
    def opposite(self) -> "Direction":
        return _OPPOSITES[self]


_OPPOSITES = {
    Direction.TOP: Direction.BOTTOM,
    Direction.BOTTOM: Direction.TOP,
    Direction.LEFT: Direction.RIGHT,
    Direction.RIGHT: Direction.LEFT,
}


class Point(NamedTuple):
    x: float
    y: float

    def __str__(self) -> str:
        return f"{self.x:f}, {self.y:f}"

    def offset(self, dx: float = 0.0, dy: float = 0.0) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def middle_with(self, other: "Point") -> "Point":
        return Point((self.x + other.x) / 2.0, (self.y + other.y) / 2.0)

    def distance_to(self, other: "Point") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)

    def direction_to(self, other: "Point") -> Direction:
        """Coarse direction of travel; X wins over Y and equal points read as top."""

        if other.x > self.x:
            return Direction.RIGHT
        if other.x < self.x:
            return Direction.LEFT
        if other.y > self.y:
            return Direction.BOTTOM
        return Direction.TOP


def is_axis_aligned(start: Point, end: Point) -> bool:
    return start.x == end.x or start.y == end.y


def polyline_length(points: Sequence[Point]) -> float:
    return sum(a.distance_to(b) for a, b in zip(points, points[1:]))


def direction_from_magnet(magnet: ConnectorMagnet) -> Direction:
    if magnet is ConnectorMagnet.LEFT:
        return Direction.LEFT
    if magnet is ConnectorMagnet.BOTTOM:
        return Direction.BOTTOM
    if magnet is ConnectorMagnet.RIGHT:
        return Direction.RIGHT
    # NONE, AUTO, AUTO_HORIZONTAL, CENTER and TOP all attach to the top edge.
    return Direction.TOP


@dataclass(frozen=True)
class DrawingNode:
    record: NodeRecord
    q1: Point
    q2: Point
    size: Point

    @property
    def center(self) -> Point:
        return self.q1.middle_with(self.q2)


def resolve_geometry(record: NodeRecord, *, scale: float = SCALE) -> DrawingNode:
    """
    Map the record's local box onto output space. Translation and size are
    scaled; the rotation/shear entries are used as stored.
    """

    t = record.transform
    matrix = np.array(
        [
            [t.m00, t.m01, t.m02 * scale],
            [t.m10, t.m11, t.m12 * scale],
        ],
        dtype=np.float64,
    )
    size = np.array([record.size.x * scale, record.size.y * scale], dtype=np.float64)
    q1 = matrix @ np.array([0.0, 0.0, 1.0])
    q2 = matrix @ np.append(size, 1.0)
    return DrawingNode(
        record=record,
        q1=Point(float(q1[0]), float(q1[1])),
        q2=Point(float(q2[0]), float(q2[1])),
        size=Point(float(size[0]), float(size[1])),
    )
