from pathlib import Path

import orjson
import pytest

from dem_data.bitstream import EntryDiff
from dem_data.codec import WireCodec
from dem_data.errors import SpecializationDecodeFailure
from dem_data.records import ModifierEntry, UserInfo, encode_user_info
from dem_data.runlog import RunLog
from dem_data.specialize import RowSpecializer
from dem_data.string_tables import StringTableManager, StringTableRow


class _CountingCodec(WireCodec):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    def decode(self, payload: bytes, type_name: str) -> dict:
        self.calls.append(type_name)
        return super().decode(payload, type_name)


def _modifier(codec: WireCodec, **values) -> bytes:
    return codec.encode("CDOTAModifierBuffTableEntry", values)


def _user(name: str, user_id: int) -> UserInfo:
    return UserInfo(
        xuid=76561198000000000 + user_id,
        name=name,
        user_id=user_id,
        guid="STEAM_1:0:1234",
        friends_id=1234,
        friends_name="",
        fake_player=False,
        is_hltv=False,
        custom_files=(0, 0, 0, 0),
        files_downloaded=0,
    )


def test_active_modifiers_decoded_and_accumulated() -> None:
    codec = WireCodec()
    specializer = RowSpecializer(codec)
    manager = StringTableManager(on_mutation=specializer)
    manager.create(
        "ActiveModifiers",
        [EntryDiff(index=0, key="", value=_modifier(codec, parent=5, modifier_class=42, duration=2.5))],
    )
    manager.update(0, [EntryDiff(index=1, key="", value=_modifier(codec, parent=6, stack_count=3))])
    assert [entry.parent for entry in specializer.active_modifiers] == [5, 6]
    row = manager.get("ActiveModifiers").rows[0]
    assert isinstance(row.payload, ModifierEntry)
    assert row.payload.modifier_class == 42
    assert row.payload.duration == 2.5
    assert row.value == _modifier(codec, parent=5, modifier_class=42, duration=2.5)


def test_empty_modifier_rows_never_decoded() -> None:
    codec = _CountingCodec()
    specializer = RowSpecializer(codec)
    manager = StringTableManager(on_mutation=specializer)
    manager.create(
        "activemodifiers",
        [EntryDiff(index=0, key="", value=b""), EntryDiff(index=1, key="", value=None)],
    )
    assert codec.calls == []
    assert specializer.active_modifiers == []
    assert manager.get("activemodifiers").rows[0].payload is None


def test_only_touched_rows_are_respecialized() -> None:
    codec = WireCodec()
    specializer = RowSpecializer(codec)
    manager = StringTableManager(on_mutation=specializer)
    manager.create("activemodifiers", [EntryDiff(index=0, key="", value=_modifier(codec, index=1))])
    manager.update(0, [EntryDiff(index=3, key="", value=_modifier(codec, index=2))])
    manager.update(0, [EntryDiff(index=0, key="", value=_modifier(codec, index=3))])
    assert [entry.index for entry in specializer.active_modifiers] == [1, 2, 3]


def test_user_info_rows_decoded() -> None:
    specializer = RowSpecializer(WireCodec())
    manager = StringTableManager(on_mutation=specializer)
    info = _user("Puppey", 3)
    manager.create("userinfo", [EntryDiff(index=2, key="3", value=encode_user_info(info))])
    payload = manager.get("userinfo").rows[2].payload
    assert payload == info
    assert specializer.active_modifiers == []


def test_unlisted_and_baseline_tables_untouched() -> None:
    codec = _CountingCodec()
    specializer = RowSpecializer(codec)
    manager = StringTableManager(on_mutation=specializer)
    manager.create("instancebaseline", [EntryDiff(index=0, key="42", value=b"\x01\x02")])
    manager.create("lightstyles", [EntryDiff(index=0, key="m", value=b"\x05")])
    assert manager.get("instancebaseline").rows[0] == StringTableRow(index=0, key="42", value=b"\x01\x02")
    assert manager.get("lightstyles").rows[0] == StringTableRow(index=0, key="m", value=b"\x05")
    assert codec.calls == []


def test_registered_hook_applies() -> None:
    specializer = RowSpecializer(WireCodec())
    specializer.register("GameRulesCreation", lambda row: StringTableRow(row.index, row.key, row.value, len(row.value)))
    manager = StringTableManager(on_mutation=specializer)
    manager.create("gamerulescreation", [EntryDiff(index=0, key="x", value=b"abc")])
    assert manager.get("gamerulescreation").rows[0].payload == 3


def test_strict_failure_raises() -> None:
    specializer = RowSpecializer(WireCodec())
    manager = StringTableManager(on_mutation=specializer)
    with pytest.raises(SpecializationDecodeFailure, match=r"userinfo\[0\]: user info needs 140 bytes"):
        manager.create("userinfo", [EntryDiff(index=0, key="", value=b"\x01" * 10)])


def test_lenient_failure_recorded(tmp_path: Path) -> None:
    runlog_path = tmp_path / "runlog.ndjson"
    codec = WireCodec()
    with RunLog(runlog_path) as runlog:
        specializer = RowSpecializer(codec, strict=False, runlog=runlog)
        manager = StringTableManager(on_mutation=specializer)
        manager.create(
            "activemodifiers",
            [
                EntryDiff(index=0, key="", value=b"\xff"),
                EntryDiff(index=1, key="", value=_modifier(codec, parent=9)),
            ],
        )
    rows = manager.get("activemodifiers").rows
    assert rows[0].payload is None
    assert rows[1].payload.parent == 9
    assert [entry.parent for entry in specializer.active_modifiers] == [9]
    assert len(specializer.failures) == 1
    assert specializer.failures[0].index == 0
    assert runlog.records_written == 1
    records = [orjson.loads(line) for line in runlog_path.read_bytes().splitlines()]
    assert records == [
        {
            "record_type": "specialization_error",
            "table": "activemodifiers",
            "index": 0,
            "error_message": specializer.failures[0].reason,
        }
    ]
