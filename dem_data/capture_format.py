from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import BinaryIO, Callable, Iterable

import snappy

from .codec import MessageCodec
from .errors import DecompressionFailure, InvalidSignature, TruncatedFrame, UnknownMessageKind
from .messages import DEMO_TYPES, Message
from .varint import encode_varint, read_varint

DEM_SIGNATURE = b"PBUFDEM\x00"
HEADER_STRUCT = struct.Struct("<8sI")
HEADER_LEN = HEADER_STRUCT.size

COMPRESSED_KIND_MASK = 0x70

Decompressor = Callable[[bytes], bytes]


def default_decompress(payload: bytes) -> bytes:
    return snappy.uncompress(payload)


@dataclass(slots=True)
class Frame:
    offset: int
    kind: int
    tick: int
    size: int
    payload: bytes
    compressed: bool


def read_header(cursor: BinaryIO) -> int:
    """Validate the signature and return the reserved little-endian field."""
    data = cursor.read(HEADER_LEN)
    if len(data) < len(DEM_SIGNATURE) or data[: len(DEM_SIGNATURE)] != DEM_SIGNATURE:
        raise InvalidSignature(f"bad signature: {data[:8]!r}")
    if len(data) < HEADER_LEN:
        raise TruncatedFrame(f"truncated header: {len(data)} of {HEADER_LEN} bytes")
    _magic, reserved = HEADER_STRUCT.unpack(data)
    return reserved


def next_frame(cursor: BinaryIO, decompress: Decompressor = default_decompress) -> Frame | None:
    offset = cursor.tell()
    if not cursor.read(1):
        return None
    cursor.seek(offset)
    kind = read_varint(cursor)
    tick = read_varint(cursor)
    size = read_varint(cursor)
    payload = cursor.read(size)
    if len(payload) != size:
        raise TruncatedFrame(
            f"truncated frame at offset {offset}: kind={kind} declared {size} bytes, "
            f"got {len(payload)}"
        )
    compressed = (kind & COMPRESSED_KIND_MASK) != 0
    if compressed:
        raw_kind = kind
        kind -= COMPRESSED_KIND_MASK
        if kind < 0:
            raise UnknownMessageKind(raw_kind, "top-level", offset)
        try:
            payload = decompress(payload)
        except (snappy.UncompressError, ValueError) as exc:
            raise DecompressionFailure(raw_kind, offset, str(exc) or type(exc).__name__) from exc
    return Frame(
        offset=offset,
        kind=kind,
        tick=tick,
        size=size,
        payload=payload,
        compressed=compressed,
    )


def decode_frame(frame: Frame, codec: MessageCodec) -> Message:
    type_name = DEMO_TYPES.get(frame.kind)
    if type_name is None:
        raise UnknownMessageKind(frame.kind, "top-level", frame.offset)
    return Message(
        kind=frame.kind,
        type_name=type_name,
        fields=codec.decode(frame.payload, type_name),
        tick=frame.tick,
        payload_size=frame.size,
        compressed=frame.compressed,
        offset=frame.offset,
    )


def encode_frame(
    kind: int,
    tick: int,
    payload: bytes,
    *,
    compress: Callable[[bytes], bytes] | None = None,
) -> bytes:
    if compress is not None:
        payload = compress(payload)
        kind |= COMPRESSED_KIND_MASK
    return encode_varint(kind) + encode_varint(tick) + encode_varint(len(payload)) + payload


def build_capture(frames: Iterable[bytes], reserved: int = 0) -> bytes:
    return HEADER_STRUCT.pack(DEM_SIGNATURE, reserved) + b"".join(frames)
