"""
FigJam board decoding and TikZ compilation split into modules for reuse.
"""

from .compiler import CompilerOptions, compile_page, cleanup_text, escape_text
from .container import FigContainer, inflate_chunk, open_container, read_canvas, split_chunks
from .emitter import emit_tikz, normalize, write_tikz
from .errors import (
    ArchiveError,
    FigDecodeError,
    FormatError,
    InflateError,
    KiwiDecodeError,
    MalformedContainerError,
    MissingRootError,
    PageNotFoundError,
    RecordDecodeError,
    SizeMismatchError,
    TooSmallError,
    TruncatedChunkError,
    UnsupportedFormatError,
)
from .geometry import SCALE, DrawingNode, Point, resolve_geometry
from .kiwi import KiwiSchema, parse_schema
from .logging import RoutingTraceLogger, log_duplicate_guids
from .records import (
    DecodedMessage,
    DecodedRecord,
    Guid,
    KiwiRecordDecoder,
    NodeRecord,
    NodeType,
    ParentIndex,
    RecordDecoder,
)
from .routing import route_connector
from .scene import Document, SceneGraph, build_scene_graph, decode_bytes, decode_file

__all__ = [
    "CompilerOptions",
    "compile_page",
    "cleanup_text",
    "escape_text",
    "FigContainer",
    "inflate_chunk",
    "open_container",
    "read_canvas",
    "split_chunks",
    "emit_tikz",
    "normalize",
    "write_tikz",
    "ArchiveError",
    "FigDecodeError",
    "FormatError",
    "InflateError",
    "KiwiDecodeError",
    "MalformedContainerError",
    "MissingRootError",
    "PageNotFoundError",
    "RecordDecodeError",
    "SizeMismatchError",
    "TooSmallError",
    "TruncatedChunkError",
    "UnsupportedFormatError",
    "SCALE",
    "DrawingNode",
    "Point",
    "resolve_geometry",
    "KiwiSchema",
    "parse_schema",
    "RoutingTraceLogger",
    "log_duplicate_guids",
    "DecodedMessage",
    "DecodedRecord",
    "Guid",
    "KiwiRecordDecoder",
    "NodeRecord",
    "NodeType",
    "ParentIndex",
    "RecordDecoder",
    "route_connector",
    "Document",
    "SceneGraph",
    "build_scene_graph",
    "decode_bytes",
    "decode_file",
]
