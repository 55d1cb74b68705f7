import pytest

from dem_data.bitstream import (
    BitReader,
    BitWriter,
    EntryDiff,
    decode_entries,
    encode_entries,
    index_bits,
)
from dem_data.errors import MalformedEntryData


def test_bits_are_read_lsb_first() -> None:
    reader = BitReader(b"\xb5\x01")
    assert reader.read_bit() is True
    assert reader.read_bits(3) == 0b010
    assert reader.read_bits(8) == 0b00011011
    assert reader.remaining() == 4


def test_writer_and_reader_agree() -> None:
    writer = BitWriter()
    writer.write_bits(5, 3)
    writer.write_cstring(b"ab")
    writer.write_bits(0x3FFF, 14)
    reader = BitReader(writer.getvalue())
    assert reader.read_bits(3) == 5
    assert reader.read_cstring(64) == b"ab"
    assert reader.read_bits(14) == 0x3FFF


def test_index_bits_is_log2() -> None:
    assert index_bits(64) == 6
    assert index_bits(1024) == 10
    assert index_bits(1) == 0


def test_entries_with_gaps_and_values() -> None:
    entries = [
        EntryDiff(index=10, key="npc_dota_hero_axe", value=b"\x01\x02\x03"),
        EntryDiff(index=11, key=None, value=b""),
        EntryDiff(index=3, key="slot", value=None),
    ]
    data = encode_entries(entries, 64)
    assert decode_entries(data, 3, 64) == entries


def test_fixed_size_values() -> None:
    entries = [
        EntryDiff(index=0, key="a", value=b"\xab\x0c"),
        EntryDiff(index=1, key="b", value=b"\xff\x0f"),
    ]
    data = encode_entries(entries, 16, user_data_fixed_size=True, user_data_size_bits=12)
    decoded = decode_entries(data, 2, 16, user_data_fixed_size=True, user_data_size_bits=12)
    assert decoded == entries


def test_key_history_prefix() -> None:
    writer = BitWriter()
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bit(False)
    writer.write_cstring(b"hero_axe")
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bits(0, 5)
    writer.write_bits(5, 5)
    writer.write_cstring(b"lina")
    writer.write_bit(False)
    decoded = decode_entries(writer.getvalue(), 2, 32)
    assert [entry.key for entry in decoded] == ["hero_axe", "hero_lina"]
    assert [entry.index for entry in decoded] == [0, 1]


def test_keyless_entry_takes_history_slot() -> None:
    writer = BitWriter()
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bit(False)
    writer.write_cstring(b"npc_a")
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bits(1, 14)
    writer.write_bytes(b"\x07")
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bit(False)
    writer.write_cstring(b"item_x")
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bits(2, 5)
    writer.write_bits(5, 5)
    writer.write_cstring(b"y")
    writer.write_bit(False)
    decoded = decode_entries(writer.getvalue(), 4, 32)
    assert [entry.key for entry in decoded] == ["npc_a", None, "item_x", "item_y"]
    assert decoded[1].value == b"\x07"


def test_history_slot_out_of_range() -> None:
    writer = BitWriter()
    writer.write_bit(False)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bit(True)
    writer.write_bits(3, 5)
    writer.write_bits(1, 5)
    with pytest.raises(MalformedEntryData, match="history slot 3"):
        decode_entries(writer.getvalue(), 1, 32)


def test_dictionary_encoding_rejected() -> None:
    with pytest.raises(MalformedEntryData, match="dictionary"):
        decode_entries(b"\x01", 1, 32)


def test_exhausted_bitstream() -> None:
    data = encode_entries([EntryDiff(index=0, key="k", value=b"xyz")], 8)
    with pytest.raises(MalformedEntryData, match="bitstream exhausted"):
        decode_entries(data[:-2], 1, 8)


def test_zero_entries_needs_no_data() -> None:
    assert decode_entries(b"", 0, 64) == []
