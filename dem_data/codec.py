from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Protocol

from .errors import WireFormatError
from .wire import (
    WIRE_FIXED32,
    WIRE_FIXED64,
    WIRE_LENGTH,
    WIRE_VARINT,
    encode_field,
    iter_fields,
)


class MessageCodec(Protocol):
    def decode(self, payload: bytes, type_name: str) -> dict[str, Any]: ...


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str
    repeated: bool = False


def _f(name: str, type_: str, repeated: bool = False) -> FieldSpec:
    return FieldSpec(name=name, type=type_, repeated=repeated)


_PACKET_SCHEMA = {
    1: _f("sequence_in", "int32"),
    2: _f("sequence_out_ack", "int32"),
    3: _f("data", "bytes"),
}

SCHEMAS: dict[str, dict[int, FieldSpec]] = {
    "CDemoStop": {},
    "CDemoSyncTick": {},
    "CDemoFileHeader": {
        1: _f("demo_file_stamp", "string"),
        2: _f("network_protocol", "int32"),
        3: _f("server_name", "string"),
        4: _f("client_name", "string"),
        5: _f("map_name", "string"),
        6: _f("game_directory", "string"),
        7: _f("fullpackets_version", "int32"),
        8: _f("allow_clientside_entities", "bool"),
        9: _f("allow_clientside_particles", "bool"),
    },
    "CDemoFileInfo": {
        1: _f("playback_time", "float"),
        2: _f("playback_ticks", "int32"),
        3: _f("playback_frames", "int32"),
        4: _f("game_info", "bytes"),
    },
    "CDemoSendTables": {1: _f("data", "bytes")},
    "CDemoPacket": _PACKET_SCHEMA,
    "CDemoSignonPacket": _PACKET_SCHEMA,
    "CDemoConsoleCmd": {1: _f("cmdstring", "string")},
    "CNETMsg_Tick": {
        1: _f("tick", "uint32"),
        2: _f("host_frametime", "uint32"),
        3: _f("host_frametime_std_deviation", "uint32"),
    },
    "CNETMsg_SignonState": {
        1: _f("signon_state", "uint32"),
        2: _f("spawn_count", "uint32"),
        3: _f("num_server_players", "uint32"),
        4: _f("players_networkids", "string", repeated=True),
        5: _f("map_name", "string"),
    },
    "CSVCMsg_ServerInfo": {
        1: _f("protocol", "int32"),
        2: _f("server_count", "int32"),
        3: _f("is_dedicated", "bool"),
        4: _f("is_hltv", "bool"),
        5: _f("is_replay", "bool"),
        6: _f("c_os", "int32"),
        7: _f("map_crc", "fixed32"),
        8: _f("client_crc", "fixed32"),
        9: _f("string_table_crc", "fixed32"),
        10: _f("max_clients", "int32"),
        11: _f("max_classes", "int32"),
        12: _f("player_slot", "int32"),
        13: _f("tick_interval", "float"),
        14: _f("game_dir", "string"),
        15: _f("map_name", "string"),
        16: _f("sky_name", "string"),
        17: _f("host_name", "string"),
    },
    "CSVCMsg_CreateStringTable": {
        1: _f("name", "string"),
        2: _f("max_entries", "int32"),
        3: _f("num_entries", "int32"),
        4: _f("user_data_fixed_size", "bool"),
        5: _f("user_data_size", "int32"),
        6: _f("user_data_size_bits", "int32"),
        7: _f("flags", "int32"),
        8: _f("string_data", "bytes"),
    },
    "CSVCMsg_UpdateStringTable": {
        1: _f("table_id", "int32"),
        2: _f("num_changed_entries", "int32"),
        3: _f("string_data", "bytes"),
    },
    "CMsgVector": {
        1: _f("x", "float"),
        2: _f("y", "float"),
        3: _f("z", "float"),
    },
    "CDOTAModifierBuffTableEntry": {
        1: _f("entry_type", "uint32"),
        2: _f("parent", "int32"),
        3: _f("index", "int32"),
        4: _f("serial_num", "int32"),
        5: _f("modifier_class", "int32"),
        6: _f("ability_level", "int32"),
        7: _f("stack_count", "int32"),
        8: _f("creation_time", "float"),
        9: _f("duration", "float"),
        10: _f("caster", "int32"),
        11: _f("ability", "int32"),
        12: _f("armor", "int32"),
        13: _f("fade_time", "float"),
        14: _f("subtle", "bool"),
        15: _f("channel_time", "float"),
        16: _f("v_start", "message:CMsgVector"),
        17: _f("v_end", "message:CMsgVector"),
        18: _f("portal_loop_appear", "string"),
        19: _f("portal_loop_disappear", "string"),
        20: _f("hero_loop_appear", "string"),
        21: _f("hero_loop_disappear", "string"),
        22: _f("movement_speed", "int32"),
        23: _f("aura", "bool"),
        24: _f("activity", "int32"),
        25: _f("damage", "int32"),
    },
}

_WIRE_TYPES = {
    "int32": WIRE_VARINT,
    "int64": WIRE_VARINT,
    "uint32": WIRE_VARINT,
    "uint64": WIRE_VARINT,
    "bool": WIRE_VARINT,
    "float": WIRE_FIXED32,
    "fixed32": WIRE_FIXED32,
    "double": WIRE_FIXED64,
    "fixed64": WIRE_FIXED64,
    "string": WIRE_LENGTH,
    "bytes": WIRE_LENGTH,
}


def _wire_type_for(type_: str) -> int:
    if type_.startswith("message:"):
        return WIRE_LENGTH
    return _WIRE_TYPES[type_]


def _to_signed64(value: int) -> int:
    if value >= 1 << 63:
        return value - (1 << 64)
    return value


class WireCodec:
    """Schema-driven protobuf decoder for the demo and net message types.

    Types without a registered schema still decode; their fields come back
    keyed as ``field_<n>`` with raw wire values.
    """

    def __init__(self, schemas: dict[str, dict[int, FieldSpec]] | None = None) -> None:
        self._schemas = dict(SCHEMAS if schemas is None else schemas)

    def decode(self, payload: bytes, type_name: str) -> dict[str, Any]:
        schema = self._schemas.get(type_name, {})
        out: dict[str, Any] = {}
        for field_number, wire_type, raw in iter_fields(payload):
            spec = schema.get(field_number)
            if spec is None:
                out[f"field_{field_number}"] = raw
                continue
            expected = _wire_type_for(spec.type)
            if wire_type != expected:
                raise WireFormatError(
                    f"{type_name}.{spec.name}: wire type {wire_type}, expected {expected}"
                )
            value = self._convert(spec.type, raw)
            if spec.repeated:
                out.setdefault(spec.name, []).append(value)
            else:
                out[spec.name] = value
        return out

    def _convert(self, type_: str, raw: int | bytes) -> Any:
        if type_ in ("int32", "int64"):
            return _to_signed64(int(raw))
        if type_ in ("uint32", "uint64", "fixed32", "fixed64"):
            return int(raw)
        if type_ == "bool":
            return bool(raw)
        if type_ == "float":
            return struct.unpack("<f", struct.pack("<I", int(raw)))[0]
        if type_ == "double":
            return struct.unpack("<d", struct.pack("<Q", int(raw)))[0]
        if type_ == "string":
            return bytes(raw).decode("utf-8", errors="replace")
        if type_ == "bytes":
            return bytes(raw)
        if type_.startswith("message:"):
            return self.decode(bytes(raw), type_.split(":", 1)[1])
        raise WireFormatError(f"unsupported field type {type_}")

    def encode(self, type_name: str, values: dict[str, Any]) -> bytes:
        """Inverse of decode for schema'd types; used to synthesize captures."""
        schema = self._schemas.get(type_name)
        if schema is None:
            raise KeyError(f"no schema for {type_name}")
        by_name = {spec.name: (number, spec) for number, spec in schema.items()}
        chunks: list[bytes] = []
        for name, value in values.items():
            if name not in by_name:
                raise KeyError(f"{type_name} has no field {name}")
            number, spec = by_name[name]
            items = value if spec.repeated else [value]
            for item in items:
                chunks.append(encode_field(number, _wire_type_for(spec.type), self._raw(spec.type, item)))
        return b"".join(chunks)

    def _raw(self, type_: str, value: Any) -> int | bytes:
        if type_ in ("int32", "int64"):
            return int(value) & 0xFFFFFFFFFFFFFFFF
        if type_ in ("uint32", "uint64", "fixed32", "fixed64", "bool"):
            return int(value)
        if type_ == "float":
            return struct.unpack("<I", struct.pack("<f", float(value)))[0]
        if type_ == "double":
            return struct.unpack("<Q", struct.pack("<d", float(value)))[0]
        if type_ == "string":
            return str(value).encode("utf-8")
        if type_ == "bytes":
            return bytes(value)
        if type_.startswith("message:"):
            return self.encode(type_.split(":", 1)[1], value)
        raise ValueError(f"unsupported field type {type_}")
