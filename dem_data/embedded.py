from __future__ import annotations

from typing import Iterable

from .codec import MessageCodec
from .errors import TruncatedEmbedded, UnknownMessageKind
from .messages import EMBEDDED_TYPES, Message
from .varint import decode_varint, encode_varint


def extract_embedded(data: bytes, codec: MessageCodec) -> list[Message]:
    """Decode the ``varint(kind) varint(size) bytes[size]`` sequence of a carrier blob."""
    messages: list[Message] = []
    offset = 0
    size = len(data)
    while offset < size:
        start = offset
        kind, offset = decode_varint(data, offset)
        length, offset = decode_varint(data, offset)
        end = offset + length
        if end > size:
            raise TruncatedEmbedded(
                f"truncated embedded message at offset {start}: kind={kind} "
                f"declared {length} bytes, {size - offset} remain"
            )
        type_name = EMBEDDED_TYPES.get(kind)
        if type_name is None:
            raise UnknownMessageKind(kind, "embedded", start)
        payload = data[offset:end]
        messages.append(
            Message(
                kind=kind,
                type_name=type_name,
                fields=codec.decode(payload, type_name),
                payload_size=length,
                offset=start,
            )
        )
        offset = end
    return messages


def encode_embedded(items: Iterable[tuple[int, bytes]]) -> bytes:
    chunks: list[bytes] = []
    for kind, payload in items:
        chunks.append(encode_varint(kind) + encode_varint(len(payload)) + payload)
    return b"".join(chunks)
