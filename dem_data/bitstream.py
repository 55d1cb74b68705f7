from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterable

from .errors import MalformedEntryData

MAX_KEY_LENGTH = 1024
KEY_HISTORY_SIZE = 32
HISTORY_SLOT_BITS = 5
HISTORY_PREFIX_BITS = 5
VARIABLE_VALUE_LENGTH_BITS = 14


class BitReader:
    """Little-endian, least-significant-bit-first reader over a byte buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._pos = 0
        self._bit_len = len(self._data) * 8

    def remaining(self) -> int:
        return self._bit_len - self._pos

    def read_bits(self, count: int) -> int:
        if count <= 0:
            return 0
        end = self._pos + count
        if end > self._bit_len:
            raise MalformedEntryData(
                f"bitstream exhausted: need {count} bits at bit {self._pos}, "
                f"{self.remaining()} remain"
            )
        first = self._pos >> 3
        last = (end + 7) >> 3
        chunk = int.from_bytes(self._data[first:last], "little")
        value = (chunk >> (self._pos & 7)) & ((1 << count) - 1)
        self._pos = end
        return value

    def read_bit(self) -> bool:
        return bool(self.read_bits(1))

    def read_bits_as_bytes(self, count: int) -> bytes:
        if count <= 0:
            return b""
        return self.read_bits(count).to_bytes((count + 7) // 8, "little")

    def read_cstring(self, limit: int) -> bytes:
        out = bytearray()
        while len(out) < limit:
            byte = self.read_bits(8)
            if byte == 0:
                break
            out.append(byte)
        return bytes(out)


class BitWriter:
    def __init__(self) -> None:
        self._value = 0
        self._pos = 0

    def write_bits(self, value: int, count: int) -> None:
        if count <= 0:
            return
        self._value |= (int(value) & ((1 << count) - 1)) << self._pos
        self._pos += count

    def write_bit(self, flag: bool) -> None:
        self.write_bits(1 if flag else 0, 1)

    def write_bytes(self, data: bytes) -> None:
        self.write_bits(int.from_bytes(data, "little"), len(data) * 8)

    def write_cstring(self, data: bytes) -> None:
        self.write_bytes(data + b"\x00")

    def getvalue(self) -> bytes:
        return self._value.to_bytes((self._pos + 7) // 8, "little")


@dataclass(frozen=True)
class EntryDiff:
    index: int
    key: str | None
    value: bytes | None


def index_bits(max_entries: int) -> int:
    return max(int(max_entries).bit_length() - 1, 0)


def decode_entries(
    data: bytes,
    num_entries: int,
    max_entries: int,
    *,
    user_data_fixed_size: bool = False,
    user_data_size_bits: int = 0,
) -> list[EntryDiff]:
    """Decode the string-table entry bitstream of a create/update message.

    Keys may be sent in full or as a prefix of one of the last 32 keys plus a
    new suffix. Every entry occupies a history slot, keyless ones as an empty
    key. ``key``/``value`` are None when the entry does not carry them.
    """
    if num_entries <= 0:
        return []
    reader = BitReader(data)
    if reader.read_bit():
        raise MalformedEntryData("dictionary-encoded string table data is not supported")
    bits = index_bits(max_entries)
    history: deque[bytes] = deque(maxlen=KEY_HISTORY_SIZE)
    entries: list[EntryDiff] = []
    index = -1
    for _ in range(num_entries):
        if reader.read_bit():
            index += 1
        else:
            index = reader.read_bits(bits)
        key: str | None = None
        if reader.read_bit():
            if reader.read_bit():
                slot = reader.read_bits(HISTORY_SLOT_BITS)
                prefix_len = reader.read_bits(HISTORY_PREFIX_BITS)
                if slot >= len(history):
                    raise MalformedEntryData(
                        f"key history slot {slot} referenced with {len(history)} keys known"
                    )
                raw_key = history[slot][:prefix_len] + reader.read_cstring(
                    MAX_KEY_LENGTH - prefix_len
                )
            else:
                raw_key = reader.read_cstring(MAX_KEY_LENGTH)
            key = raw_key.decode("utf-8", errors="replace")
        else:
            raw_key = b""
        history.append(raw_key)
        value: bytes | None = None
        if reader.read_bit():
            if user_data_fixed_size:
                bit_len = user_data_size_bits
            else:
                bit_len = reader.read_bits(VARIABLE_VALUE_LENGTH_BITS) * 8
            value = reader.read_bits_as_bytes(bit_len)
        entries.append(EntryDiff(index=index, key=key, value=value))
    return entries


def encode_entries(
    entries: Iterable[EntryDiff],
    max_entries: int,
    *,
    user_data_fixed_size: bool = False,
    user_data_size_bits: int = 0,
) -> bytes:
    writer = BitWriter()
    writer.write_bit(False)
    bits = index_bits(max_entries)
    last_index = -1
    for entry in entries:
        if entry.index == last_index + 1:
            writer.write_bit(True)
        else:
            writer.write_bit(False)
            writer.write_bits(entry.index, bits)
        last_index = entry.index
        writer.write_bit(entry.key is not None)
        if entry.key is not None:
            writer.write_bit(False)
            writer.write_cstring(entry.key.encode("utf-8"))
        writer.write_bit(entry.value is not None)
        if entry.value is not None:
            if user_data_fixed_size:
                writer.write_bits(int.from_bytes(entry.value, "little"), user_data_size_bits)
            else:
                writer.write_bits(len(entry.value), VARIABLE_VALUE_LENGTH_BITS)
                writer.write_bytes(entry.value)
    return writer.getvalue()
