from __future__ import annotations

import pytest

from figtikz.compiler import CompilerOptions, cleanup_text, compile_page
from figtikz.emitter import emit_tikz
from figtikz.logging import RoutingTraceLogger
from figtikz.primitives import AnchoredNode, FilledMark, PathDraw, Shape, render_primitive
from figtikz.records import ConnectorMagnet, Guid, NodeType, ShapeWithTextType
from tests.helpers import box, connector, page_of


def _vertical_pair():
    upper = box(1, 1, x=0.0, y=0.0, width=100.0, height=50.0, name="Upper")
    lower = box(1, 2, x=0.0, y=500.0, width=100.0, height=50.0, name="Lower")
    return upper, lower


def test_text_node_is_centered_with_bias() -> None:
    text = box(1, 1, x=100.0, y=200.0, width=50.0, height=20.0, type=NodeType.TEXT, name="A_B")
    primitives = compile_page(page_of(text))
    assert len(primitives) == 1
    (node,) = primitives
    assert isinstance(node, AnchoredNode)
    assert node.text == r"A\_B"
    assert node.position == pytest.approx((1.8 + 0.45 - 0.55, 3.6 + 0.18))


def test_text_scenario_emits_shifted_label() -> None:
    text = box(1, 1, x=100.0, y=200.0, width=50.0, height=20.0, type=NodeType.TEXT, name="A_B")
    output = emit_tikz(compile_page(page_of(text)))
    assert output == "\\begin{tikzpicture}[yscale=-1]\n\\node at (0.000000, 3.780000) {A\\_B};\n\\end{tikzpicture}\n"


def test_straight_vertical_connector_is_one_arrow() -> None:
    upper, lower = _vertical_pair()
    conn = connector(2, 1, upper.guid, lower.guid, start_magnet=ConnectorMagnet.BOTTOM, end_magnet=ConnectorMagnet.TOP)
    primitives = compile_page(page_of(conn))
    assert primitives == []

    primitives = compile_page(page_of(upper, lower, conn))
    paths = [p for p in primitives if isinstance(p, PathDraw)]
    assert len(paths) == 1
    assert len(paths[0].points) == 2
    assert paths[0].points[0] == pytest.approx((0.9, 1.0))
    assert paths[0].points[1] == pytest.approx((0.9, 8.9))
    assert not [p for p in primitives if isinstance(p, AnchoredNode)]


def test_incompatible_control_points_emit_three_paths() -> None:
    start = box(1, 1, x=0.0, y=0.0, width=100.0, height=50.0)
    end = box(1, 2, x=350.0, y=500.0, width=100.0, height=50.0)
    conn = connector(
        2,
        1,
        start.guid,
        end.guid,
        start_magnet=ConnectorMagnet.RIGHT,
        end_magnet=ConnectorMagnet.TOP,
        control_points=[((300.0, 25.0), (0.0, 1.0)), ((400.0, 200.0), (1.0, 0.0))],
    )
    primitives = compile_page(page_of(start, end, conn))
    paths = [p for p in primitives if isinstance(p, PathDraw)]
    assert len(paths) == 3
    lead_in, bend, arrow = paths
    assert len(lead_in.points) == 4
    assert bend.points[0] == lead_in.points[-1]
    assert arrow.points[-1] == pytest.approx((7.2, 8.9))


def test_square_and_predefined_process_are_rectangles() -> None:
    square = box(1, 1, x=0.0, y=0.0, width=100.0, height=50.0, name="Start_here")
    process = box(1, 2, x=0.0, y=0.0, width=100.0, height=50.0, shape=ShapeWithTextType.PREDEFINED_PROCESS)
    first, second = compile_page(page_of(square, process))
    assert isinstance(first, Shape) and isinstance(second, Shape)
    assert render_primitive(first) == r"\draw (0.000000, 0.000000) rectangle node{Start\_here} (1.800000, 0.900000);"
    assert second.kind == "rectangle"


def test_diamond_rotates_around_its_center() -> None:
    diamond = box(1, 1, x=0.0, y=0.0, width=100.0, height=50.0, name="Decide", shape=ShapeWithTextType.DIAMOND)
    (shape,) = compile_page(page_of(diamond))
    assert render_primitive(shape) == (
        r"\draw[rotate around={45:(0.900000, 0.450000)}, scale around={0.750000:(0.900000, 0.450000)}]"
        r" (0.000000, 0.000000) rectangle node{Decide} (1.800000, 0.900000);"
    )


def test_placeholder_names_are_blanked() -> None:
    assert cleanup_text("Shape with text") == ""
    assert cleanup_text("Connector Name") == ""
    assert cleanup_text("Connector line") == ""
    assert cleanup_text("Real_name") == r"Real\_name"
    shape = box(1, 1, x=0.0, y=0.0, width=10.0, height=10.0, name="Shape with text")
    (primitive,) = compile_page(page_of(shape))
    assert primitive.text == ""


def test_unimplemented_shapes_and_other_nodes_emit_nothing() -> None:
    ellipse = box(1, 1, x=0.0, y=0.0, width=10.0, height=10.0, shape=ShapeWithTextType.ELLIPSE)
    star = box(1, 2, x=0.0, y=0.0, width=10.0, height=10.0, shape=ShapeWithTextType.STAR)
    unknown = box(1, 3, x=0.0, y=0.0, width=10.0, height=10.0, shape=None)
    sticky = box(1, 4, x=0.0, y=0.0, width=10.0, height=10.0, type=NodeType.OTHER, name="sticky")
    assert compile_page(page_of(ellipse, star, unknown, sticky)) == []


def test_only_direct_children_are_visited() -> None:
    group = box(1, 1, x=0.0, y=0.0, width=10.0, height=10.0, type=NodeType.OTHER)
    group.children = (box(1, 2, x=0.0, y=0.0, width=10.0, height=10.0, type=NodeType.TEXT, name="nested"),)
    assert compile_page(page_of(group)) == []


def test_debug_marks_for_magnets_and_control_points() -> None:
    upper, lower = _vertical_pair()
    conn = connector(2, 1, upper.guid, lower.guid, control_points=[((50.0, 300.0), (1.0, 0.0))])
    options = CompilerOptions(debug_magnets=True, debug_control_points=True)
    primitives = compile_page(page_of(upper, lower, conn), options)
    marks = [p for p in primitives if isinstance(p, FilledMark)]
    assert [render_primitive(m).split("]")[0] for m in marks] == [
        r"\filldraw[color=red",
        r"\filldraw[color=red",
        r"\filldraw[color=blue",
    ]
    assert marks[2].position == pytest.approx((0.9, 5.4))
    assert render_primitive(marks[0]).endswith(" circle(3pt);")


def test_connector_to_missing_node_is_skipped_and_traced(tmp_path) -> None:
    upper, _ = _vertical_pair()
    conn = connector(2, 1, upper.guid, Guid(7, 7))
    trace = RoutingTraceLogger(tmp_path / "trace.log")
    assert compile_page(page_of(upper, conn), trace=trace) == [
        compile_page(page_of(upper))[0],
    ]
    assert trace.lines == ["Connector 2:1 route=skipped | endpoint node is not on this page"]


def test_trace_records_routing_decisions(tmp_path) -> None:
    start = box(1, 1, x=0.0, y=0.0, width=100.0, height=50.0)
    end = box(1, 2, x=350.0, y=500.0, width=100.0, height=50.0)
    conn = connector(
        2,
        1,
        start.guid,
        end.guid,
        start_magnet=ConnectorMagnet.RIGHT,
        end_magnet=ConnectorMagnet.TOP,
        control_points=[((300.0, 25.0), (0.0, 1.0)), ((400.0, 200.0), (1.0, 0.0))],
        name="flow",
    )
    destination = tmp_path / "logs" / "trace.log"
    trace = RoutingTraceLogger(destination)
    compile_page(page_of(start, end, conn), trace=trace)
    trace.flush()
    text = destination.read_text(encoding="utf-8")
    assert text.startswith("Connector 2:1 route=routed")
    assert "magnets RIGHT->TOP" in text
    assert "  end alignment: perpendicular" in text
    assert "  label at (" in text
