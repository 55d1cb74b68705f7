import pytest

from dem_data.bitstream import EntryDiff, encode_entries
from dem_data.codec import WireCodec
from dem_data.errors import DuplicateTableName, UnknownTablePosition
from dem_data.messages import EmbeddedKind, Message
from dem_data.string_tables import StringTableManager, StringTableRow


def test_positions_follow_creation_order() -> None:
    manager = StringTableManager()
    for name in ("A", "B", "C"):
        manager.create(name)
    assert [table.position for table in manager] == [0, 1, 2]
    assert manager.names() == ["A", "B", "C"]
    assert manager.get("C").position == 2


def test_update_addresses_by_position_not_name() -> None:
    manager = StringTableManager()
    for name in ("A", "B", "C"):
        manager.create(name)
    manager.get("C")
    manager.get("A")
    manager.update(1, [EntryDiff(index=0, key="k", value=b"v")])
    assert manager.get("B").rows == {0: StringTableRow(index=0, key="k", value=b"v")}
    assert manager.get("A").rows == {}
    assert manager.get("C").rows == {}


def test_update_before_create_is_fatal() -> None:
    manager = StringTableManager()
    with pytest.raises(UnknownTablePosition, match="position 0 but only 0 tables"):
        manager.update(0, [])
    manager.create("A")
    with pytest.raises(UnknownTablePosition):
        manager.update(1, [])


def test_duplicate_name_is_fatal() -> None:
    manager = StringTableManager()
    manager.create("userinfo")
    with pytest.raises(DuplicateTableName, match="userinfo"):
        manager.create("userinfo")
    assert len(manager) == 1


def test_update_upserts_rows() -> None:
    manager = StringTableManager()
    manager.create(
        "T",
        [EntryDiff(index=0, key="zero", value=b"\x00"), EntryDiff(index=1, key="one", value=None)],
    )
    manager.update(
        0,
        [
            EntryDiff(index=1, key=None, value=b"\x01"),
            EntryDiff(index=0, key="ZERO", value=None),
            EntryDiff(index=5, key=None, value=None),
        ],
    )
    rows = manager.get("T").rows
    assert rows[0] == StringTableRow(index=0, key="ZERO", value=b"\x00")
    assert rows[1] == StringTableRow(index=1, key="one", value=b"\x01")
    assert rows[5] == StringTableRow(index=5, key="", value=None)
    assert len(rows) == 3


def test_mutation_hook_sees_touched_rows() -> None:
    calls = []
    manager = StringTableManager(on_mutation=lambda table, touched: calls.append((table.name, touched)))
    manager.create("T", [EntryDiff(index=2, key="a", value=None)])
    manager.update(0, [EntryDiff(index=4, key="b", value=None), EntryDiff(index=2, key="c", value=None)])
    manager.update(0, [EntryDiff(index=4, key="d", value=None), EntryDiff(index=4, key="e", value=None)])
    assert calls == [("T", [2]), ("T", [4, 2]), ("T", [4])]
    assert manager.get("T").rows[4].key == "e"


def test_create_and_update_from_messages() -> None:
    codec = WireCodec()
    create = Message(
        kind=EmbeddedKind.SVC_CREATE_STRING_TABLE,
        type_name="CSVCMsg_CreateStringTable",
        fields=codec.decode(
            codec.encode(
                "CSVCMsg_CreateStringTable",
                {
                    "name": "modifiernames",
                    "max_entries": 128,
                    "num_entries": 2,
                    "flags": 1,
                    "string_data": encode_entries(
                        [
                            EntryDiff(index=0, key="modifier_stunned", value=None),
                            EntryDiff(index=1, key="modifier_rooted", value=None),
                        ],
                        128,
                    ),
                },
            ),
            "CSVCMsg_CreateStringTable",
        ),
    )
    update = Message(
        kind=EmbeddedKind.SVC_UPDATE_STRING_TABLE,
        type_name="CSVCMsg_UpdateStringTable",
        fields={
            "table_id": 0,
            "num_changed_entries": 1,
            "string_data": encode_entries([EntryDiff(index=7, key="modifier_silenced", value=None)], 128),
        },
    )
    manager = StringTableManager()
    table = manager.create_from_message(create)
    assert table.max_entries == 128
    assert table.flags == 1
    manager.update_from_message(update)
    assert {index: row.key for index, row in table.rows.items()} == {
        0: "modifier_stunned",
        1: "modifier_rooted",
        7: "modifier_silenced",
    }
