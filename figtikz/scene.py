from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .container import inflate_chunk, open_container
from .errors import MissingRootError
from .records import (
    ROOT_GUID,
    DecodedRecord,
    Guid,
    KiwiRecordDecoder,
    NodeRecord,
    ParentIndex,
    RecordDecoder,
    decode_records,
)


@dataclass(frozen=True)
class SceneGraph:
    root: NodeRecord
    nodes: Dict[Guid, NodeRecord]
    duplicate_guids: Tuple[Guid, ...] = ()


@dataclass(frozen=True)
class Document:
    version: int
    root: NodeRecord
    blobs: Tuple[bytes, ...]
    duplicate_guids: Tuple[Guid, ...] = ()


def build_scene_graph(records: Sequence[DecodedRecord]) -> SceneGraph:
    """
    Link the flat record list into a tree rooted at guid 0:0.

    Children are attached in input order and then ordered by descending
    parent position. A record whose parent guid is unknown is kept in the
    lookup map but never attached anywhere.
    """

    nodes: Dict[Guid, NodeRecord] = {}
    duplicates: List[Guid] = []
    for entry in records:
        guid = entry.node.guid
        if guid in nodes:
            duplicates.append(guid)
        nodes[guid] = entry.node

    # Parent links stay local to this function; records never carry them.
    parent_links: Dict[int, ParentIndex] = {}
    children: Dict[Guid, List[NodeRecord]] = {}
    for entry in records:
        link = entry.parent_index
        if link is None or link.guid not in nodes:
            continue
        parent_links[id(entry.node)] = link
        children.setdefault(link.guid, []).append(entry.node)

    for parent_guid, kids in children.items():
        kids.sort(key=lambda node: parent_links[id(node)].position, reverse=True)
        nodes[parent_guid].children = tuple(kids)

    root = nodes.get(ROOT_GUID)
    if root is None:
        raise MissingRootError(f"no root record with guid {ROOT_GUID}")
    return SceneGraph(root=root, nodes=nodes, duplicate_guids=tuple(duplicates))


def decode_bytes(blob: bytes, *, record_decoder: Optional[RecordDecoder] = None) -> Document:
    container = open_container(blob)
    decoder = record_decoder or KiwiRecordDecoder.from_container(container)
    message = decode_records(decoder, inflate_chunk(container.message_chunk))
    graph = build_scene_graph(message.records)
    return Document(
        version=container.version,
        root=graph.root,
        blobs=tuple(message.blobs),
        duplicate_guids=graph.duplicate_guids,
    )


def decode_file(path: Path, *, record_decoder: Optional[RecordDecoder] = None) -> Document:
    return decode_bytes(Path(path).read_bytes(), record_decoder=record_decoder)
