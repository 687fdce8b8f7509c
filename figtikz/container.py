from __future__ import annotations

import io
import struct
import zipfile
import zlib
from dataclasses import dataclass
from typing import List, Tuple

from .errors import (
    ArchiveError,
    InflateError,
    MalformedContainerError,
    SizeMismatchError,
    TooSmallError,
    TruncatedChunkError,
    UnsupportedFormatError,
)

ARCHIVE_MAGIC = b"PK"
RAW_TAG = b"fig-jam."
ARCHIVE_ENTRY = "canvas.fig"
HEADER_SIZE = len(RAW_TAG)
VERSION_OFFSET = HEADER_SIZE
CHUNKS_OFFSET = VERSION_OFFSET + 4
MIN_CHUNKS = 2
SCHEMA_CHUNK = 0
MESSAGE_CHUNK = 1

LOCAL_HEADER_MAGIC = b"PK\x03\x04"
LOCAL_HEADER = struct.Struct("<4sHHHHHIIIHH")


@dataclass(frozen=True)
class FigContainer:
    version: int
    chunks: Tuple[bytes, ...]

    @property
    def schema_chunk(self) -> bytes:
        return self.chunks[SCHEMA_CHUNK]

    @property
    def message_chunk(self) -> bytes:
        return self.chunks[MESSAGE_CHUNK]


def read_canvas(blob: bytes) -> bytes:
    """
    Return the raw tagged stream held by ``blob``. Boards saved as ``.jam``
    are zip archives holding a single ``canvas.fig`` entry; older exports are
    the tagged stream itself.
    """

    if len(blob) < HEADER_SIZE:
        raise TooSmallError(f"file size too small: {len(blob)}")
    if blob[:2] == ARCHIVE_MAGIC:
        return _read_archive_entry(blob)
    if blob[:HEADER_SIZE] == RAW_TAG:
        return blob
    raise UnsupportedFormatError("unsupported file format")


def _read_archive_entry(blob: bytes) -> bytes:
    try:
        archive = zipfile.ZipFile(io.BytesIO(blob))
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveError(f"unable to open jam file: {exc}") from exc
    with archive:
        try:
            info = archive.getinfo(ARCHIVE_ENTRY)
        except KeyError:
            raise ArchiveError("unable to locate internal canvas from jam file") from None
    data = _inflate_entry(blob, info)
    # Declared size first, CRC second.
    check_entry_size(info.file_size, data)
    if zlib.crc32(data) & 0xFFFFFFFF != info.CRC:
        raise ArchiveError(f"unable to decompress jam canvas: bad CRC-32 for {info.filename!r}")
    return data


def _inflate_entry(blob: bytes, info: zipfile.ZipInfo) -> bytes:
    """Pull the stored or deflated bytes of ``info`` straight from its local header."""

    if info.flag_bits & 0x1:
        raise ArchiveError("unable to decompress jam canvas: entry is encrypted")
    offset = info.header_offset
    if blob[offset : offset + 4] != LOCAL_HEADER_MAGIC or offset + LOCAL_HEADER.size > len(blob):
        raise ArchiveError(f"unable to decompress jam canvas: bad local header at 0x{offset:X}")
    fields = LOCAL_HEADER.unpack_from(blob, offset)
    name_len, extra_len = fields[-2], fields[-1]
    start = offset + LOCAL_HEADER.size + name_len + extra_len
    end = start + info.compress_size
    if end > len(blob):
        raise ArchiveError("unable to decompress jam canvas: entry data runs past the archive end")
    raw = blob[start:end]
    if info.compress_type == zipfile.ZIP_STORED:
        return raw
    if info.compress_type != zipfile.ZIP_DEFLATED:
        raise ArchiveError(f"unable to decompress jam canvas: compression method {info.compress_type}")
    try:
        return inflate_chunk(raw)
    except InflateError as exc:
        raise ArchiveError(f"unable to decompress jam canvas: {exc}") from exc


def check_entry_size(declared: int, data: bytes) -> None:
    if len(data) != declared:
        raise SizeMismatchError(declared, len(data))


def split_chunks(blob: bytes, *, start_offset: int = CHUNKS_OFFSET) -> List[bytes]:
    """Split ``blob`` into the u32-length-prefixed chunks that follow the header."""

    chunks: List[bytes] = []
    mv = memoryview(blob)
    offset = start_offset
    limit = len(blob)
    while offset < limit:
        if offset + 4 > limit:
            raise TruncatedChunkError(offset, 4, limit - offset)
        (size,) = struct.unpack_from("<I", blob, offset)
        payload_offset = offset + 4
        payload_end = payload_offset + size
        if payload_end > limit:
            raise TruncatedChunkError(offset, size, limit - payload_offset)
        chunks.append(bytes(mv[payload_offset:payload_end]))
        offset = payload_end
    return chunks


def open_container(blob: bytes) -> FigContainer:
    """Detect the framing of ``blob`` and split the tagged stream into chunks."""

    data = read_canvas(blob)
    if data[:HEADER_SIZE] != RAW_TAG:
        raise UnsupportedFormatError(
            f"invalid header; expected {RAW_TAG.decode('ascii')!r}, got {data[:HEADER_SIZE]!r}"
        )
    if len(data) < CHUNKS_OFFSET:
        raise MalformedContainerError("stream ends before the version field")
    (version,) = struct.unpack_from("<I", data, VERSION_OFFSET)
    chunks = split_chunks(data)
    if len(chunks) < MIN_CHUNKS:
        raise MalformedContainerError(
            f"invalid chunk count; expected at least {MIN_CHUNKS}, got {len(chunks)}"
        )
    return FigContainer(version=version, chunks=tuple(chunks))


def inflate_chunk(chunk: bytes) -> bytes:
    """Inflate a raw deflate chunk (no zlib header)."""

    obj = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        payload = obj.decompress(chunk)
        payload += obj.flush()
    except zlib.error as exc:
        raise InflateError(f"error reading chunk data: {exc}") from exc
    if not obj.eof:
        raise InflateError("error reading chunk data: deflate stream is truncated")
    return payload
