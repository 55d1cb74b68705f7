from __future__ import annotations

import struct
from dataclasses import dataclass, field, fields
from typing import Any

from .codec import MessageCodec

MODIFIER_ENTRY_TYPE = "CDOTAModifierBuffTableEntry"

# player_info_t: xuid, name[32], user_id, guid[33], pad, friends_id,
# friends_name[32], fake_player, is_hltv, pad, custom_files[4],
# files_downloaded, pad.
USER_INFO_STRUCT = struct.Struct("<Q32si33s3xI32s??2x4IB3x")
USER_INFO_LEN = USER_INFO_STRUCT.size


@dataclass(frozen=True)
class ModifierEntry:
    entry_type: int = 0
    parent: int = 0
    index: int = 0
    serial_num: int = 0
    modifier_class: int = 0
    ability_level: int = 0
    stack_count: int = 0
    creation_time: float = 0.0
    duration: float = 0.0
    caster: int = 0
    ability: int = 0
    armor: int = 0
    fade_time: float = 0.0
    subtle: bool = False
    channel_time: float = 0.0
    v_start: dict[str, float] | None = None
    v_end: dict[str, float] | None = None
    portal_loop_appear: str = ""
    portal_loop_disappear: str = ""
    hero_loop_appear: str = ""
    hero_loop_disappear: str = ""
    movement_speed: int = 0
    aura: bool = False
    activity: int = 0
    damage: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_fields(cls, decoded: dict[str, Any]) -> "ModifierEntry":
        known = {item.name for item in fields(cls)} - {"extra"}
        kwargs = {name: value for name, value in decoded.items() if name in known}
        extra = {name: value for name, value in decoded.items() if name not in known}
        return cls(**kwargs, extra=extra)


def decode_modifier_entry(data: bytes, codec: MessageCodec) -> ModifierEntry:
    return ModifierEntry.from_fields(codec.decode(data, MODIFIER_ENTRY_TYPE))


@dataclass(frozen=True)
class UserInfo:
    xuid: int
    name: str
    user_id: int
    guid: str
    friends_id: int
    friends_name: str
    fake_player: bool
    is_hltv: bool
    custom_files: tuple[int, int, int, int]
    files_downloaded: int


def _cstr(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def decode_user_info(data: bytes) -> UserInfo:
    if len(data) < USER_INFO_LEN:
        raise ValueError(f"user info needs {USER_INFO_LEN} bytes, got {len(data)}")
    (
        xuid,
        name,
        user_id,
        guid,
        friends_id,
        friends_name,
        fake_player,
        is_hltv,
        file_0,
        file_1,
        file_2,
        file_3,
        files_downloaded,
    ) = USER_INFO_STRUCT.unpack_from(data, 0)
    return UserInfo(
        xuid=xuid,
        name=_cstr(name),
        user_id=user_id,
        guid=_cstr(guid),
        friends_id=friends_id,
        friends_name=_cstr(friends_name),
        fake_player=fake_player,
        is_hltv=is_hltv,
        custom_files=(file_0, file_1, file_2, file_3),
        files_downloaded=files_downloaded,
    )


def encode_user_info(info: UserInfo) -> bytes:
    return USER_INFO_STRUCT.pack(
        info.xuid,
        info.name.encode("utf-8"),
        info.user_id,
        info.guid.encode("utf-8"),
        info.friends_id,
        info.friends_name.encode("utf-8"),
        info.fake_player,
        info.is_hltv,
        *info.custom_files,
        info.files_downloaded,
    )
