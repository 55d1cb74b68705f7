from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class DemoKind(IntEnum):
    STOP = 0
    FILE_HEADER = 1
    FILE_INFO = 2
    SYNC_TICK = 3
    SEND_TABLES = 4
    CLASS_INFO = 5
    STRING_TABLES = 6
    PACKET = 7
    SIGNON_PACKET = 8
    CONSOLE_CMD = 9
    CUSTOM_DATA = 10
    CUSTOM_DATA_CALLBACKS = 11
    USER_CMD = 12
    FULL_PACKET = 13
    SAVE_GAME = 14


class EmbeddedKind(IntEnum):
    NET_TICK = 4
    NET_SET_CONVAR = 6
    NET_SIGNON_STATE = 7
    SVC_SERVER_INFO = 8
    SVC_SEND_TABLE = 9
    SVC_CLASS_INFO = 10
    SVC_CREATE_STRING_TABLE = 12
    SVC_UPDATE_STRING_TABLE = 13
    SVC_VOICE_INIT = 14
    SVC_VOICE_DATA = 15
    SVC_SOUNDS = 17
    SVC_SET_VIEW = 18
    SVC_USER_MESSAGE = 23
    SVC_ENTITY_MESSAGE = 24
    SVC_GAME_EVENT = 25
    SVC_PACKET_ENTITIES = 26
    SVC_TEMP_ENTITIES = 27
    SVC_GAME_EVENT_LIST = 30


DEMO_TYPES: dict[int, str] = {
    DemoKind.STOP: "CDemoStop",
    DemoKind.FILE_HEADER: "CDemoFileHeader",
    DemoKind.FILE_INFO: "CDemoFileInfo",
    DemoKind.SYNC_TICK: "CDemoSyncTick",
    DemoKind.SEND_TABLES: "CDemoSendTables",
    DemoKind.CLASS_INFO: "CDemoClassInfo",
    DemoKind.STRING_TABLES: "CDemoStringTables",
    DemoKind.PACKET: "CDemoPacket",
    DemoKind.SIGNON_PACKET: "CDemoSignonPacket",
    DemoKind.CONSOLE_CMD: "CDemoConsoleCmd",
    DemoKind.CUSTOM_DATA: "CDemoCustomData",
    DemoKind.CUSTOM_DATA_CALLBACKS: "CDemoCustomDataCallbacks",
    DemoKind.USER_CMD: "CDemoUserCmd",
    DemoKind.FULL_PACKET: "CDemoFullPacket",
    DemoKind.SAVE_GAME: "CDemoSaveGame",
}

EMBEDDED_TYPES: dict[int, str] = {
    EmbeddedKind.NET_TICK: "CNETMsg_Tick",
    EmbeddedKind.NET_SET_CONVAR: "CNETMsg_SetConVar",
    EmbeddedKind.NET_SIGNON_STATE: "CNETMsg_SignonState",
    EmbeddedKind.SVC_SERVER_INFO: "CSVCMsg_ServerInfo",
    EmbeddedKind.SVC_SEND_TABLE: "CSVCMsg_SendTable",
    EmbeddedKind.SVC_CLASS_INFO: "CSVCMsg_ClassInfo",
    EmbeddedKind.SVC_CREATE_STRING_TABLE: "CSVCMsg_CreateStringTable",
    EmbeddedKind.SVC_UPDATE_STRING_TABLE: "CSVCMsg_UpdateStringTable",
    EmbeddedKind.SVC_VOICE_INIT: "CSVCMsg_VoiceInit",
    EmbeddedKind.SVC_VOICE_DATA: "CSVCMsg_VoiceData",
    EmbeddedKind.SVC_SOUNDS: "CSVCMsg_Sounds",
    EmbeddedKind.SVC_SET_VIEW: "CSVCMsg_SetView",
    EmbeddedKind.SVC_USER_MESSAGE: "CSVCMsg_UserMessage",
    EmbeddedKind.SVC_ENTITY_MESSAGE: "CSVCMsg_EntityMsg",
    EmbeddedKind.SVC_GAME_EVENT: "CSVCMsg_GameEvent",
    EmbeddedKind.SVC_PACKET_ENTITIES: "CSVCMsg_PacketEntities",
    EmbeddedKind.SVC_TEMP_ENTITIES: "CSVCMsg_TempEntities",
    EmbeddedKind.SVC_GAME_EVENT_LIST: "CSVCMsg_GameEventList",
}

# Top-level kinds whose payload carries a nested embedded-message blob, mapped
# to the decoded field holding that blob.
CARRIER_DATA_FIELDS: dict[int, str] = {
    DemoKind.SEND_TABLES: "data",
    DemoKind.PACKET: "data",
    DemoKind.SIGNON_PACKET: "data",
}


@dataclass(slots=True)
class Message:
    kind: int
    type_name: str
    fields: dict[str, Any]
    tick: int | None = None
    payload_size: int = 0
    compressed: bool = False
    offset: int | None = None
    embedded: list[Message] | None = None

    @property
    def is_carrier(self) -> bool:
        return self.embedded is not None

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)
