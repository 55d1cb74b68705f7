from __future__ import annotations

import struct
from typing import Iterator

from .errors import MalformedVarInt, WireFormatError
from .varint import decode_varint, encode_varint

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH = 2
WIRE_FIXED32 = 5

_FIXED64 = struct.Struct("<Q")
_FIXED32 = struct.Struct("<I")


def iter_fields(data: bytes) -> Iterator[tuple[int, int, int | bytes]]:
    """Yield (field_number, wire_type, raw_value) for a protobuf-encoded buffer.

    Varint and fixed-width values come back as unsigned ints, length-delimited
    values as bytes. Interpretation (signedness, floats, nested messages) is
    left to the schema layer.
    """
    offset = 0
    size = len(data)
    while offset < size:
        try:
            key, offset = decode_varint(data, offset)
        except MalformedVarInt as exc:
            raise WireFormatError(f"bad field key: {exc}") from exc
        field_number = key >> 3
        wire_type = key & 0x7
        if field_number == 0:
            raise WireFormatError(f"field number 0 at offset {offset}")
        if wire_type == WIRE_VARINT:
            try:
                value, offset = decode_varint(data, offset)
            except MalformedVarInt as exc:
                raise WireFormatError(f"bad varint for field {field_number}: {exc}") from exc
            yield field_number, wire_type, value
        elif wire_type == WIRE_FIXED64:
            if offset + 8 > size:
                raise WireFormatError(f"truncated fixed64 field {field_number}")
            (value,) = _FIXED64.unpack_from(data, offset)
            offset += 8
            yield field_number, wire_type, value
        elif wire_type == WIRE_LENGTH:
            try:
                length, offset = decode_varint(data, offset)
            except MalformedVarInt as exc:
                raise WireFormatError(f"bad length for field {field_number}: {exc}") from exc
            end = offset + length
            if end > size:
                raise WireFormatError(
                    f"length-delimited field {field_number} needs {length} bytes, "
                    f"{size - offset} remain"
                )
            yield field_number, wire_type, bytes(data[offset:end])
            offset = end
        elif wire_type == WIRE_FIXED32:
            if offset + 4 > size:
                raise WireFormatError(f"truncated fixed32 field {field_number}")
            (value,) = _FIXED32.unpack_from(data, offset)
            offset += 4
            yield field_number, wire_type, value
        else:
            raise WireFormatError(f"unsupported wire type {wire_type} for field {field_number}")


def encode_field(field_number: int, wire_type: int, value: int | bytes) -> bytes:
    key = encode_varint((field_number << 3) | wire_type)
    if wire_type == WIRE_VARINT:
        return key + encode_varint(int(value))
    if wire_type == WIRE_FIXED64:
        return key + _FIXED64.pack(int(value))
    if wire_type == WIRE_FIXED32:
        return key + _FIXED32.pack(int(value))
    if wire_type == WIRE_LENGTH:
        payload = bytes(value)
        return key + encode_varint(len(payload)) + payload
    raise ValueError(f"unsupported wire type {wire_type}")
