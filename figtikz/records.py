from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Mapping, NamedTuple, Optional, Tuple, Union

from .container import FigContainer, inflate_chunk
from .errors import KiwiDecodeError, RecordDecodeError
from .kiwi import KiwiSchema, parse_schema

Position = Union[float, str]


class Guid(NamedTuple):
    session_id: int
    local_id: int

    def __str__(self) -> str:
        return f"{self.session_id}:{self.local_id}"


ROOT_GUID = Guid(0, 0)


class NodeType(Enum):
    TEXT = "TEXT"
    SHAPE_WITH_TEXT = "SHAPE_WITH_TEXT"
    CONNECTOR = "CONNECTOR"
    OTHER = "OTHER"


class ConnectorMagnet(Enum):
    NONE = "NONE"
    AUTO = "AUTO"
    TOP = "TOP"
    LEFT = "LEFT"
    BOTTOM = "BOTTOM"
    RIGHT = "RIGHT"
    CENTER = "CENTER"
    AUTO_HORIZONTAL = "AUTO_HORIZONTAL"


class ConnectorTextSection(Enum):
    MIDDLE_TO_START = "MIDDLE_TO_START"
    MIDDLE_TO_END = "MIDDLE_TO_END"


class ShapeWithTextType(Enum):
    SQUARE = "SQUARE"
    ELLIPSE = "ELLIPSE"
    DIAMOND = "DIAMOND"
    TRIANGLE_UP = "TRIANGLE_UP"
    TRIANGLE_DOWN = "TRIANGLE_DOWN"
    ROUNDED_RECTANGLE = "ROUNDED_RECTANGLE"
    PARALLELOGRAM_RIGHT = "PARALLELOGRAM_RIGHT"
    PARALLELOGRAM_LEFT = "PARALLELOGRAM_LEFT"
    ENG_DATABASE = "ENG_DATABASE"
    ENG_QUEUE = "ENG_QUEUE"
    ENG_FILE = "ENG_FILE"
    ENG_FOLDER = "ENG_FOLDER"
    TRAPEZOID = "TRAPEZOID"
    PREDEFINED_PROCESS = "PREDEFINED_PROCESS"
    SHIELD = "SHIELD"
    DOCUMENT_SINGLE = "DOCUMENT_SINGLE"
    DOCUMENT_MULTIPLE = "DOCUMENT_MULTIPLE"
    MANUAL_INPUT = "MANUAL_INPUT"
    HEXAGON = "HEXAGON"
    CHEVRON = "CHEVRON"
    PENTAGON = "PENTAGON"
    OCTAGON = "OCTAGON"
    STAR = "STAR"
    PLUS = "PLUS"
    ARROW_LEFT = "ARROW_LEFT"
    ARROW_RIGHT = "ARROW_RIGHT"
    SUMMING_JUNCTION = "SUMMING_JUNCTION"
    OR = "OR"
    SPEECH_BUBBLE = "SPEECH_BUBBLE"
    INTERNAL_STORAGE = "INTERNAL_STORAGE"


@dataclass(frozen=True)
class Vector:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Transform:
    m00: float = 1.0
    m01: float = 0.0
    m02: float = 0.0
    m10: float = 0.0
    m11: float = 1.0
    m12: float = 0.0


IDENTITY = Transform()


@dataclass(frozen=True)
class ParentIndex:
    guid: Guid
    position: Position


@dataclass(frozen=True)
class ConnectorEndpoint:
    endpoint_node_id: Optional[Guid]
    magnet: Optional[ConnectorMagnet]
    position: Vector = Vector()


@dataclass(frozen=True)
class ConnectorControlPoint:
    position: Vector
    axis: Vector


@dataclass(frozen=True)
class ConnectorTextMidpoint:
    section: ConnectorTextSection
    offset: float


@dataclass(eq=False)
class NodeRecord:
    guid: Guid
    type: NodeType = NodeType.OTHER
    type_name: str = ""
    name: str = ""
    transform: Transform = IDENTITY
    size: Vector = Vector()
    shape_with_text_type: Optional[ShapeWithTextType] = None
    connector_start: Optional[ConnectorEndpoint] = None
    connector_end: Optional[ConnectorEndpoint] = None
    connector_control_points: Tuple[ConnectorControlPoint, ...] = ()
    connector_text_midpoint: Optional[ConnectorTextMidpoint] = None
    children: Tuple["NodeRecord", ...] = field(default=(), repr=False)


@dataclass(frozen=True)
class DecodedRecord:
    """A node as it comes off the wire, with its parent linkage kept beside it."""

    node: NodeRecord
    parent_index: Optional[ParentIndex] = None


@dataclass(frozen=True)
class DecodedMessage:
    records: List[DecodedRecord]
    blobs: List[bytes]


RecordDecoder = Callable[[bytes], DecodedMessage]


def _enum_member(enum_cls, value: Any):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _guid_from_kiwi(raw: Mapping[str, Any] | None) -> Optional[Guid]:
    if not raw:
        return None
    return Guid(int(raw.get("sessionID", 0)), int(raw.get("localID", 0)))


def _vector_from_kiwi(raw: Mapping[str, Any] | None) -> Vector:
    if not raw:
        return Vector()
    return Vector(float(raw.get("x", 0.0)), float(raw.get("y", 0.0)))


def _transform_from_kiwi(raw: Mapping[str, Any] | None) -> Transform:
    if not raw:
        return IDENTITY
    defaults = IDENTITY
    return Transform(
        m00=float(raw.get("m00", defaults.m00)),
        m01=float(raw.get("m01", defaults.m01)),
        m02=float(raw.get("m02", defaults.m02)),
        m10=float(raw.get("m10", defaults.m10)),
        m11=float(raw.get("m11", defaults.m11)),
        m12=float(raw.get("m12", defaults.m12)),
    )


def _endpoint_from_kiwi(raw: Mapping[str, Any] | None) -> Optional[ConnectorEndpoint]:
    if raw is None:
        return None
    return ConnectorEndpoint(
        endpoint_node_id=_guid_from_kiwi(raw.get("endpointNodeID")),
        magnet=_enum_member(ConnectorMagnet, raw.get("magnet")),
        position=_vector_from_kiwi(raw.get("position")),
    )


def _midpoint_from_kiwi(raw: Mapping[str, Any] | None) -> Optional[ConnectorTextMidpoint]:
    if raw is None:
        return None
    section = _enum_member(ConnectorTextSection, raw.get("section"))
    if section is None:
        return None
    return ConnectorTextMidpoint(section=section, offset=float(raw.get("offset", 0.0)))


def node_record_from_kiwi(raw: Mapping[str, Any]) -> DecodedRecord:
    """Map one decoded ``NodeChange`` onto a record plus its parent linkage."""

    guid = _guid_from_kiwi(raw.get("guid"))
    if guid is None:
        raise KiwiDecodeError("node change without a guid")
    type_name = raw.get("type") or ""
    control_points = tuple(
        ConnectorControlPoint(
            position=_vector_from_kiwi(point.get("position")),
            axis=_vector_from_kiwi(point.get("axis")),
        )
        for point in raw.get("connectorControlPoints") or ()
    )
    node = NodeRecord(
        guid=guid,
        type=_enum_member(NodeType, type_name) or NodeType.OTHER,
        type_name=type_name,
        name=raw.get("name") or "",
        transform=_transform_from_kiwi(raw.get("transform")),
        size=_vector_from_kiwi(raw.get("size")),
        shape_with_text_type=_enum_member(ShapeWithTextType, raw.get("shapeWithTextType")),
        connector_start=_endpoint_from_kiwi(raw.get("connectorStart")),
        connector_end=_endpoint_from_kiwi(raw.get("connectorEnd")),
        connector_control_points=control_points,
        connector_text_midpoint=_midpoint_from_kiwi(raw.get("connectorTextMidpoint")),
    )
    parent_index: Optional[ParentIndex] = None
    parent_raw = raw.get("parentIndex")
    if parent_raw:
        parent_guid = _guid_from_kiwi(parent_raw.get("guid"))
        if parent_guid is not None:
            parent_index = ParentIndex(guid=parent_guid, position=parent_raw.get("position", ""))
    return DecodedRecord(node=node, parent_index=parent_index)


class KiwiRecordDecoder:
    """Record decoder backed by the Kiwi schema stored in the canvas itself."""

    def __init__(self, schema: KiwiSchema, *, root: str = "Message") -> None:
        self.schema = schema
        self.root = root

    @classmethod
    def from_container(cls, container: FigContainer) -> "KiwiRecordDecoder":
        return cls(parse_schema(inflate_chunk(container.schema_chunk)))

    def __call__(self, payload: bytes) -> DecodedMessage:
        message = self.schema.decode(payload, root=self.root)
        records = [node_record_from_kiwi(raw) for raw in message.get("nodeChanges") or ()]
        blobs = [bytes(blob.get("bytes") or b"") for blob in message.get("blobs") or ()]
        return DecodedMessage(records=records, blobs=blobs)


def decode_records(decoder: RecordDecoder, payload: bytes) -> DecodedMessage:
    try:
        return decoder(payload)
    except RecordDecodeError:
        raise
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        raise RecordDecodeError(f"error decoding message chunk: {exc}") from exc
