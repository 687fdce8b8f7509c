"""
Decoder for the Kiwi binary schema format used by FigJam canvases.

Chunk 0 of a canvas holds the compiled schema (definitions of enums, structs
and messages); chunk 1 holds a single ``Message`` encoded against it. The
wire format, little endian throughout:

    byte / bool    single byte
    uint           LEB128, at most 5 bytes (32 bit)
    int            zig-zag encoded uint
    float          0x00 for zero, else 4 bytes with the exponent rotated
                   into the lowest byte
    string         UTF-8, NUL terminated
    uint64 / int64 LEB128, 9th byte carries 8 bits (int64 zig-zag)
    T[]            uint count followed by the items
    enum           uint value
    struct         every field in declaration order
    message        (uint field id, value)* terminated by field id 0

Decoded values are plain Python objects: messages and structs become dicts
keyed by field name, enums become their member name (``None`` for values the
schema does not list), ``byte[]`` becomes ``bytes``.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Tuple

from .errors import KiwiDecodeError

KIND_ENUM = 0
KIND_STRUCT = 1
KIND_MESSAGE = 2
KIND_NAMES = {KIND_ENUM: "ENUM", KIND_STRUCT: "STRUCT", KIND_MESSAGE: "MESSAGE"}

NATIVE_TYPES = ("bool", "byte", "int", "uint", "float", "string", "int64", "uint64")

_FLOAT_BITS = struct.Struct("<I")
_FLOAT = struct.Struct("<f")


class ByteReader:
    def __init__(self, data: bytes, offset: int = 0) -> None:
        self.data = data
        self.offset = offset

    def _need(self, count: int) -> None:
        if self.offset + count > len(self.data):
            raise KiwiDecodeError(
                f"index out of bounds: need {count} bytes at 0x{self.offset:X}, buffer is {len(self.data)}"
            )

    def read_byte(self) -> int:
        self._need(1)
        value = self.data[self.offset]
        self.offset += 1
        return value

    def read_bool(self) -> bool:
        return self.read_byte() != 0

    def read_bytes(self, count: int) -> bytes:
        self._need(count)
        value = bytes(self.data[self.offset : self.offset + count])
        self.offset += count
        return value

    def read_var_uint(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self.read_byte()
            value |= (byte & 0x7F) << shift
            shift += 7
            if not byte & 0x80 or shift >= 35:
                break
        return value & 0xFFFFFFFF

    def read_var_int(self) -> int:
        value = self.read_var_uint()
        return ~(value >> 1) if value & 1 else value >> 1

    def read_var_uint64(self) -> int:
        value = 0
        shift = 0
        while True:
            byte = self.read_byte()
            if shift >= 56:
                value |= byte << shift
                break
            value |= (byte & 0x7F) << shift
            shift += 7
            if not byte & 0x80:
                break
        return value

    def read_var_int64(self) -> int:
        value = self.read_var_uint64()
        return ~(value >> 1) if value & 1 else value >> 1

    def read_var_float(self) -> float:
        self._need(1)
        if self.data[self.offset] == 0:
            self.offset += 1
            return 0.0
        (bits,) = _FLOAT_BITS.unpack(self.read_bytes(4))
        bits = ((bits << 23) | (bits >> 9)) & 0xFFFFFFFF
        return _FLOAT.unpack(_FLOAT_BITS.pack(bits))[0]

    def read_string(self) -> str:
        end = self.data.find(b"\x00", self.offset)
        if end == -1:
            raise KiwiDecodeError(f"unterminated string at 0x{self.offset:X}")
        raw = bytes(self.data[self.offset : end])
        self.offset = end + 1
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise KiwiDecodeError(f"invalid UTF-8 string: {exc}") from exc


_NATIVE_READERS: Dict[str, Callable[[ByteReader], Any]] = {
    "bool": ByteReader.read_bool,
    "byte": ByteReader.read_byte,
    "int": ByteReader.read_var_int,
    "uint": ByteReader.read_var_uint,
    "float": ByteReader.read_var_float,
    "string": ByteReader.read_string,
    "int64": ByteReader.read_var_int64,
    "uint64": ByteReader.read_var_uint64,
}


@dataclass(frozen=True)
class KiwiField:
    name: str
    type_name: str | None
    is_array: bool
    value: int


@dataclass(frozen=True)
class KiwiDefinition:
    name: str
    kind: int
    fields: Tuple[KiwiField, ...]

    @property
    def kind_name(self) -> str:
        return KIND_NAMES.get(self.kind, str(self.kind))


@dataclass(frozen=True)
class KiwiSchema:
    definitions: Tuple[KiwiDefinition, ...]
    _by_name: Dict[str, KiwiDefinition] = field(init=False, repr=False, compare=False)
    _fields_by_value: Dict[str, Dict[int, KiwiField]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name = {definition.name: definition for definition in self.definitions}
        fields_by_value = {
            definition.name: {f.value: f for f in definition.fields} for definition in self.definitions
        }
        object.__setattr__(self, "_by_name", by_name)
        object.__setattr__(self, "_fields_by_value", fields_by_value)

    def definition(self, name: str) -> KiwiDefinition:
        try:
            return self._by_name[name]
        except KeyError:
            raise KiwiDecodeError(f"schema has no definition named {name!r}") from None

    def decode(self, payload: bytes, root: str = "Message") -> Dict[str, Any]:
        definition = self.definition(root)
        if definition.kind != KIND_MESSAGE:
            raise KiwiDecodeError(f"root definition {root!r} is a {definition.kind_name}, not a MESSAGE")
        reader = ByteReader(payload)
        return self._decode_definition(reader, definition)

    def _decode_field(self, reader: ByteReader, kfield: KiwiField) -> Any:
        type_name = kfield.type_name or ""
        if kfield.is_array:
            count = reader.read_var_uint()
            if type_name == "byte":
                return reader.read_bytes(count)
            return [self._decode_value(reader, type_name) for _ in range(count)]
        return self._decode_value(reader, type_name)

    def _decode_value(self, reader: ByteReader, type_name: str) -> Any:
        native = _NATIVE_READERS.get(type_name)
        if native is not None:
            return native(reader)
        return self._decode_definition(reader, self.definition(type_name))

    def _decode_definition(self, reader: ByteReader, definition: KiwiDefinition) -> Any:
        if definition.kind == KIND_ENUM:
            value = reader.read_var_uint()
            member = self._fields_by_value[definition.name].get(value)
            return member.name if member is not None else None
        if definition.kind == KIND_STRUCT:
            return {f.name: self._decode_field(reader, f) for f in definition.fields}
        result: Dict[str, Any] = {}
        fields = self._fields_by_value[definition.name]
        while True:
            field_id = reader.read_var_uint()
            if field_id == 0:
                return result
            kfield = fields.get(field_id)
            if kfield is None:
                raise KiwiDecodeError(
                    f"attempted to parse invalid field {field_id} of {definition.name} at 0x{reader.offset:X}"
                )
            result[kfield.name] = self._decode_field(reader, kfield)


def parse_schema(blob: bytes) -> KiwiSchema:
    """Decode a compiled (binary) Kiwi schema."""

    reader = ByteReader(blob)
    raw: List[Tuple[str, int, List[Tuple[str, int, bool, int]]]] = []
    for _ in range(reader.read_var_uint()):
        name = reader.read_string()
        kind = reader.read_byte()
        if kind not in KIND_NAMES:
            raise KiwiDecodeError(f"definition {name!r} has invalid kind {kind}")
        fields = []
        for _ in range(reader.read_var_uint()):
            field_name = reader.read_string()
            type_index = reader.read_var_int()
            is_array = bool(reader.read_byte() & 1)
            value = reader.read_var_uint()
            fields.append((field_name, type_index, is_array, value))
        raw.append((name, kind, fields))

    definitions: List[KiwiDefinition] = []
    for name, kind, fields in raw:
        resolved: List[KiwiField] = []
        for field_name, type_index, is_array, value in fields:
            type_name: str | None = None
            if kind != KIND_ENUM:
                type_name = _resolve_type(type_index, raw, name, field_name)
            resolved.append(KiwiField(name=field_name, type_name=type_name, is_array=is_array, value=value))
        definitions.append(KiwiDefinition(name=name, kind=kind, fields=tuple(resolved)))
    return KiwiSchema(definitions=tuple(definitions))


def _resolve_type(type_index: int, raw: list, owner: str, field_name: str) -> str:
    if type_index < 0:
        native = ~type_index
        if native >= len(NATIVE_TYPES):
            raise KiwiDecodeError(f"{owner}.{field_name} has invalid native type {type_index}")
        return NATIVE_TYPES[native]
    if type_index >= len(raw):
        raise KiwiDecodeError(f"{owner}.{field_name} references missing definition {type_index}")
    return raw[type_index][0]
