from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from .geometry import SCALE, DrawingNode, Point, resolve_geometry
from .logging import RoutingTraceLogger
from .primitives import (
    AnchoredNode,
    ColorAttribute,
    FilledMark,
    Primitive,
    RotateAroundAttribute,
    ScaleAroundAttribute,
    Shape,
)
from .records import Guid, NodeRecord, NodeType, ShapeWithTextType
from .routing import CONTROL_POINT_STRETCH, Alignment, anchor_position, route_connector

TEXT_X_BIAS = -0.55
DIAMOND_ROTATION = 45
DIAMOND_SCALE = 0.75
MARK_SIZE = "3pt"

# Names FigJam assigns to freshly created objects.
PLACEHOLDER_NAMES = frozenset({"Connector Name", "Shape with text", "Connector line"})

RECTANGLE_SHAPES = frozenset({ShapeWithTextType.SQUARE, ShapeWithTextType.PREDEFINED_PROCESS})


@dataclass(frozen=True)
class CompilerOptions:
    debug_magnets: bool = False
    debug_control_points: bool = False
    control_point_stretch: float = CONTROL_POINT_STRETCH
    scale: float = SCALE


def escape_text(text: str) -> str:
    return text.replace("_", r"\_")


def cleanup_text(text: str) -> str:
    if text in PLACEHOLDER_NAMES:
        return ""
    return escape_text(text)


class Compiler:
    """Turns the direct children of one page into drawing primitives."""

    def __init__(
        self,
        page: NodeRecord,
        options: Optional[CompilerOptions] = None,
        trace: Optional[RoutingTraceLogger] = None,
    ) -> None:
        self.page = page
        self.options = options or CompilerOptions()
        self.trace = trace
        self.nodes: List[DrawingNode] = [resolve_geometry(child, scale=self.options.scale) for child in page.children]
        self.node_map: Dict[Guid, DrawingNode] = {node.record.guid: node for node in self.nodes}

    def find_node(self, guid: Optional[Guid]) -> Optional[DrawingNode]:
        if guid is None:
            return None
        return self.node_map.get(guid)

    def compile(self) -> List[Primitive]:
        primitives: List[Primitive] = []
        for node in self.nodes:
            primitives.extend(self.compile_node(node))
        return primitives

    def compile_node(self, node: DrawingNode) -> List[Primitive]:
        kind = node.record.type
        if kind is NodeType.TEXT:
            return self.draw_text(node)
        if kind is NodeType.SHAPE_WITH_TEXT:
            return self.draw_shape_with_text(node)
        if kind is NodeType.CONNECTOR:
            return self.draw_connector(node)
        return []

    def draw_text(self, node: DrawingNode) -> List[Primitive]:
        width = node.q2.x - node.q1.x
        height = node.q2.y - node.q1.y
        point = Point(node.q1.x + width / 2.0 + TEXT_X_BIAS, node.q1.y + height / 2.0)
        return [AnchoredNode(position=point, text=escape_text(node.record.name))]

    def draw_shape_with_text(self, node: DrawingNode) -> List[Primitive]:
        text = cleanup_text(node.record.name)
        kind = node.record.shape_with_text_type
        if kind in RECTANGLE_SHAPES:
            return [Shape(p1=node.q1, p2=node.q2, kind="rectangle", text=text)]
        if kind is ShapeWithTextType.DIAMOND:
            pivot = node.center
            attributes = (
                RotateAroundAttribute(DIAMOND_ROTATION, pivot),
                ScaleAroundAttribute(DIAMOND_SCALE, pivot),
            )
            return [Shape(p1=node.q1, p2=node.q2, kind="rectangle", attributes=attributes, text=text)]
        # Remaining sub-kinds (ellipse, triangles, database, ...) are not drawn yet.
        return []

    def draw_connector(self, node: DrawingNode) -> List[Primitive]:
        record = node.record
        start, end = record.connector_start, record.connector_end
        if start is None or end is None or start.magnet is None or end.magnet is None:
            self._skip(record, "missing endpoint or magnet")
            return []
        node_from = self.find_node(start.endpoint_node_id)
        node_to = self.find_node(end.endpoint_node_id)
        if node_from is None or node_to is None:
            self._skip(record, "endpoint node is not on this page")
            return []

        position_start = anchor_position(node_from, start.magnet)
        position_end = anchor_position(node_to, end.magnet)
        primitives: List[Primitive] = []
        if self.options.debug_magnets:
            primitives.append(_mark(position_start, "red"))
            primitives.append(_mark(position_end, "red"))
        if self.options.debug_control_points:
            scale = self.options.scale
            for control in record.connector_control_points:
                primitives.append(_mark(Point(control.position.x * scale, control.position.y * scale), "blue"))

        route = route_connector(
            position_start,
            position_end,
            start_magnet=start.magnet,
            end_magnet=end.magnet,
            control_points=record.connector_control_points,
            label=cleanup_text(record.name),
            midpoint=record.connector_text_midpoint,
            scale=self.options.scale,
            control_point_stretch=self.options.control_point_stretch,
        )
        primitives.extend(route.primitives)

        if self.trace is not None:
            self.trace.connector(
                guid=record.guid,
                route=route.kind.value,
                start=position_start,
                end=position_end,
                note=f"magnets {start.magnet.value}->{end.magnet.value}",
            )
            if route.alignment is not None:
                self.trace.detail(f"end alignment: {route.alignment.value}")
                if route.alignment is Alignment.SAME_DIRECTION:
                    self.trace.detail("unsupported configuration, drawing straight into the anchor")
            for point in route.bend:
                self.trace.detail(f"bend ({point.x:.6f},{point.y:.6f})")
            if route.label_position is not None:
                pos = route.label_position
                self.trace.detail(f"label at ({pos.x:.6f},{pos.y:.6f})")
        return primitives

    def _skip(self, record: NodeRecord, reason: str) -> None:
        if self.trace is not None:
            self.trace.connector(guid=record.guid, route="skipped", note=reason)


def _mark(position: Point, color: str) -> FilledMark:
    return FilledMark(position=position, shape="circle", size=MARK_SIZE, attributes=(ColorAttribute(color),))


def compile_page(
    page: NodeRecord,
    options: Optional[CompilerOptions] = None,
    trace: Optional[RoutingTraceLogger] = None,
) -> List[Primitive]:
    return Compiler(page, options, trace).compile()
