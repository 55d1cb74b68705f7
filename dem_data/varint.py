from __future__ import annotations

from typing import BinaryIO

from .errors import MalformedVarInt

MAX_VARINT_SHIFT = 64


def read_varint(cursor: BinaryIO) -> int:
    """Read one base-128 unsigned varint from a binary stream."""
    result = 0
    shift = 0
    while shift < MAX_VARINT_SHIFT:
        raw = cursor.read(1)
        if not raw:
            raise MalformedVarInt("unexpected end of input inside varint")
        byte = raw[0]
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result
        shift += 7
    raise MalformedVarInt("varint exceeds 64 bits")


def decode_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Buffer variant of read_varint; returns (value, next_offset)."""
    result = 0
    shift = 0
    pos = offset
    size = len(data)
    while shift < MAX_VARINT_SHIFT:
        if pos >= size:
            raise MalformedVarInt(f"unexpected end of input inside varint at offset {offset}")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result, pos
        shift += 7
    raise MalformedVarInt(f"varint exceeds 64 bits at offset {offset}")


def encode_varint(value: int) -> bytes:
    if value < 0:
        raise ValueError("varint value must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)
