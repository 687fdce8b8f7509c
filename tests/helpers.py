from __future__ import annotations

import io
import struct
import zipfile
import zlib
from typing import Iterable, List, Sequence, Tuple

from figtikz.container import ARCHIVE_ENTRY, RAW_TAG
from figtikz.records import (
    ConnectorControlPoint,
    ConnectorEndpoint,
    ConnectorMagnet,
    ConnectorTextMidpoint,
    DecodedMessage,
    DecodedRecord,
    Guid,
    NodeRecord,
    NodeType,
    ParentIndex,
    ShapeWithTextType,
    Transform,
    Vector,
)


def deflate(data: bytes) -> bytes:
    obj = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return obj.compress(data) + obj.flush()


def make_stream(chunks: Sequence[bytes], *, version: int = 48, tag: bytes = RAW_TAG) -> bytes:
    out = bytearray(tag)
    out += struct.pack("<I", version)
    for chunk in chunks:
        out += struct.pack("<I", len(chunk))
        out += chunk
    return bytes(out)


def make_archive(stream: bytes, *, entry: str = ARCHIVE_ENTRY) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        archive.writestr(entry, stream)
        archive.writestr("meta.json", b"{}")
    return buffer.getvalue()


def box(
    session: int,
    local: int,
    *,
    x: float,
    y: float,
    width: float,
    height: float,
    type: NodeType = NodeType.SHAPE_WITH_TEXT,
    name: str = "",
    shape: ShapeWithTextType | None = ShapeWithTextType.SQUARE,
) -> NodeRecord:
    return NodeRecord(
        guid=Guid(session, local),
        type=type,
        type_name=type.value,
        name=name,
        transform=Transform(m02=x, m12=y),
        size=Vector(width, height),
        shape_with_text_type=shape if type is NodeType.SHAPE_WITH_TEXT else None,
    )


def connector(
    session: int,
    local: int,
    start: Guid,
    end: Guid,
    *,
    start_magnet: ConnectorMagnet = ConnectorMagnet.BOTTOM,
    end_magnet: ConnectorMagnet = ConnectorMagnet.TOP,
    control_points: Iterable[Tuple[Tuple[float, float], Tuple[float, float]]] = (),
    name: str = "Connector line",
    midpoint: ConnectorTextMidpoint | None = None,
) -> NodeRecord:
    return NodeRecord(
        guid=Guid(session, local),
        type=NodeType.CONNECTOR,
        type_name="CONNECTOR",
        name=name,
        connector_start=ConnectorEndpoint(endpoint_node_id=start, magnet=start_magnet),
        connector_end=ConnectorEndpoint(endpoint_node_id=end, magnet=end_magnet),
        connector_control_points=tuple(
            ConnectorControlPoint(position=Vector(*pos), axis=Vector(*axis)) for pos, axis in control_points
        ),
        connector_text_midpoint=midpoint,
    )


def page_of(*children: NodeRecord) -> NodeRecord:
    page = NodeRecord(guid=Guid(0, 1), type=NodeType.OTHER, type_name="CANVAS")
    page.children = tuple(children)
    return page


def attach(node: NodeRecord, parent: Tuple[int, int] = (0, 0), position: float | str = 0.0) -> DecodedRecord:
    return DecodedRecord(node=node, parent_index=ParentIndex(guid=Guid(*parent), position=position))


def root_record() -> DecodedRecord:
    return DecodedRecord(node=NodeRecord(guid=Guid(0, 0), type_name="DOCUMENT"))


class FakeDecoder:
    """Record decoder returning canned records and remembering its input."""

    def __init__(self, records: List[DecodedRecord], blobs: List[bytes] | None = None) -> None:
        self.records = records
        self.blobs = blobs or []
        self.payloads: List[bytes] = []

    def __call__(self, payload: bytes) -> DecodedMessage:
        self.payloads.append(payload)
        return DecodedMessage(records=list(self.records), blobs=list(self.blobs))


# --- Kiwi encoding -------------------------------------------------------

NATIVE = {"bool": -1, "byte": -2, "int": -3, "uint": -4, "float": -5, "string": -6, "int64": -7, "uint64": -8}


def var_uint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def var_int(value: int) -> bytes:
    return var_uint(((value << 1) ^ (value >> 31)) & 0xFFFFFFFF)


def var_float(value: float) -> bytes:
    (bits,) = struct.unpack("<I", struct.pack("<f", value))
    bits = ((bits >> 23) | (bits << 9)) & 0xFFFFFFFF
    if bits & 0xFF == 0:
        return b"\x00"
    return struct.pack("<I", bits)


def kstring(value: str) -> bytes:
    return value.encode("utf-8") + b"\x00"


def encode_schema(definitions: Sequence[Tuple[str, int, Sequence[Tuple[str, int, bool, int]]]]) -> bytes:
    out = bytearray(var_uint(len(definitions)))
    for name, kind, fields in definitions:
        out += kstring(name)
        out.append(kind)
        out += var_uint(len(fields))
        for field_name, type_index, is_array, value in fields:
            out += kstring(field_name)
            out += var_int(type_index)
            out.append(1 if is_array else 0)
            out += var_uint(value)
    return bytes(out)


ENUM, STRUCT, MESSAGE = 0, 1, 2

# Definition indexes in FIG_SCHEMA.
NODE_TYPES = {"DOCUMENT": 0, "CANVAS": 1, "TEXT": 2, "SHAPE_WITH_TEXT": 3, "CONNECTOR": 4}
MAGNETS = {"NONE": 0, "AUTO": 1, "TOP": 2, "LEFT": 3, "BOTTOM": 4, "RIGHT": 5, "CENTER": 6}

FIG_SCHEMA = [
    ("NodeType", ENUM, [(name, 0, False, value) for name, value in NODE_TYPES.items()]),
    ("ConnectorMagnet", ENUM, [(name, 0, False, value) for name, value in MAGNETS.items()]),
    ("GUID", STRUCT, [("sessionID", NATIVE["uint"], False, 1), ("localID", NATIVE["uint"], False, 2)]),
    ("ParentIndex", STRUCT, [("guid", 2, False, 1), ("position", NATIVE["string"], False, 2)]),
    ("Vector", STRUCT, [("x", NATIVE["float"], False, 1), ("y", NATIVE["float"], False, 2)]),
    (
        "Matrix",
        STRUCT,
        [(name, NATIVE["float"], False, idx) for idx, name in enumerate(["m00", "m01", "m02", "m10", "m11", "m12"], 1)],
    ),
    (
        "ConnectorEndpoint",
        MESSAGE,
        [("endpointNodeID", 2, False, 1), ("position", 4, False, 2), ("magnet", 1, False, 3)],
    ),
    (
        "NodeChange",
        MESSAGE,
        [
            ("guid", 2, False, 1),
            ("parentIndex", 3, False, 2),
            ("type", 0, False, 3),
            ("name", NATIVE["string"], False, 4),
            ("transform", 5, False, 5),
            ("size", 4, False, 6),
            ("connectorStart", 6, False, 7),
            ("connectorEnd", 6, False, 8),
        ],
    ),
    ("Blob", MESSAGE, [("bytes", NATIVE["byte"], True, 1)]),
    ("Message", MESSAGE, [("nodeChanges", 7, True, 1), ("blobs", 8, True, 2)]),
]


def k_guid(session: int, local: int) -> bytes:
    return var_uint(session) + var_uint(local)


def k_vector(x: float, y: float) -> bytes:
    return var_float(x) + var_float(y)


def k_matrix(m02: float, m12: float) -> bytes:
    return b"".join(var_float(v) for v in (1.0, 0.0, m02, 0.0, 1.0, m12))


def k_node(
    session: int,
    local: int,
    node_type: str,
    *,
    parent: Tuple[int, int] | None = None,
    position: str = "",
    name: str | None = None,
    at: Tuple[float, float] | None = None,
    size: Tuple[float, float] | None = None,
    start: Tuple[Tuple[int, int], str] | None = None,
    end: Tuple[Tuple[int, int], str] | None = None,
) -> bytes:
    out = bytearray(var_uint(1) + k_guid(session, local))
    if parent is not None:
        out += var_uint(2) + k_guid(*parent) + kstring(position)
    out += var_uint(3) + var_uint(NODE_TYPES[node_type])
    if name is not None:
        out += var_uint(4) + kstring(name)
    if at is not None:
        out += var_uint(5) + k_matrix(*at)
    if size is not None:
        out += var_uint(6) + k_vector(*size)
    for field_id, endpoint in ((7, start), (8, end)):
        if endpoint is not None:
            (target, magnet) = endpoint
            out += var_uint(field_id)
            out += var_uint(1) + k_guid(*target) + var_uint(3) + var_uint(MAGNETS[magnet]) + var_uint(0)
    out += var_uint(0)
    return bytes(out)


def k_message(nodes: Sequence[bytes], blobs: Sequence[bytes] = ()) -> bytes:
    out = bytearray(var_uint(1) + var_uint(len(nodes)))
    for node in nodes:
        out += node
    if blobs:
        out += var_uint(2) + var_uint(len(blobs))
        for blob in blobs:
            out += var_uint(1) + var_uint(len(blob)) + blob + var_uint(0)
    out += var_uint(0)
    return bytes(out)


def sample_board_stream() -> bytes:
    """A small board: one page with a text, two boxes and a vertical connector."""

    nodes = [
        k_node(0, 0, "DOCUMENT"),
        k_node(0, 1, "CANVAS", parent=(0, 0), position="a", name="Page 1"),
        k_node(1, 2, "TEXT", parent=(0, 1), position="c", name="A_B", at=(100.0, 200.0), size=(50.0, 20.0)),
        k_node(1, 3, "SHAPE_WITH_TEXT", parent=(0, 1), position="b", name="Box", at=(0.0, 0.0), size=(100.0, 50.0)),
        k_node(1, 4, "SHAPE_WITH_TEXT", parent=(0, 1), position="a", name="Other", at=(0.0, 500.0), size=(100.0, 50.0)),
        k_node(1, 5, "CONNECTOR", parent=(0, 1), position="0", name="Connector line",
               start=((1, 3), "BOTTOM"), end=((1, 4), "TOP")),
    ]
    schema = encode_schema(FIG_SCHEMA)
    message = k_message(nodes, blobs=[b"\x89PNG-blob"])
    return make_stream([deflate(schema), deflate(message)])
