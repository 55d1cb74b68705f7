from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

from .capture_format import Decompressor, decode_frame, default_decompress, next_frame, read_header
from .codec import MessageCodec, WireCodec
from .config import Config
from .embedded import extract_embedded
from .errors import SpecializationDecodeFailure
from .messages import CARRIER_DATA_FIELDS, EmbeddedKind, Message
from .phases import Phase, PhaseTracker
from .records import ModifierEntry, decode_user_info
from .runlog import RunLog
from .specialize import RowSpecializer, UserInfoDecoder
from .string_tables import StringTableManager


@dataclass
class ParseResult:
    phases: dict[Phase, list[Message]]
    tables: StringTableManager
    active_modifiers: list[ModifierEntry]
    frames: int = 0
    reserved: int = 0
    specialization_failures: list[SpecializationDecodeFailure] = field(default_factory=list)

    def messages(self) -> list[Message]:
        out: list[Message] = []
        for phase in (Phase.PROLOGUE, Phase.MATCH, Phase.EPILOGUE):
            out.extend(self.phases.get(phase, ()))
        return out


class DemParser:
    """Single-pass decoder for a complete demo capture.

    Each parse call is an independent session: string tables, phase logs and
    the active modifier collection live for exactly one capture.
    """

    def __init__(
        self,
        config: Config | None = None,
        *,
        codec: MessageCodec | None = None,
        decompress: Decompressor = default_decompress,
        user_info_decoder: UserInfoDecoder = decode_user_info,
    ) -> None:
        self.config = config or Config()
        self.codec = codec or WireCodec()
        self.decompress = decompress
        self.user_info_decoder = user_info_decoder

    def parse_path(self, path: Path | str) -> ParseResult:
        with Path(path).open("rb") as handle:
            return self.parse_stream(handle)

    def parse_bytes(self, data: bytes) -> ParseResult:
        return self.parse_stream(io.BytesIO(data))

    def parse_stream(self, cursor: BinaryIO) -> ParseResult:
        with RunLog(self.config.runlog_path) as runlog:
            return self._parse(cursor, runlog)

    def _parse(self, cursor: BinaryIO, runlog: RunLog) -> ParseResult:
        reserved = read_header(cursor)
        specializer = RowSpecializer(
            self.codec,
            strict=self.config.strict_specialization,
            runlog=runlog,
            user_info_decoder=self.user_info_decoder,
        )
        tables = StringTableManager(on_mutation=specializer)
        tracker = PhaseTracker()
        runlog.write("parse_start", reserved=reserved)
        frames = 0
        while True:
            frame = next_frame(cursor, self.decompress)
            if frame is None:
                break
            frames += 1
            message = decode_frame(frame, self.codec)
            entered = tracker.observe(message)
            if entered is not None:
                runlog.write(
                    "phase_change",
                    phase=entered.value,
                    tick=message.tick,
                    offset=message.offset,
                )
            data_field = CARRIER_DATA_FIELDS.get(message.kind)
            if data_field is None or not self.config.parse_embedded:
                continue
            message.embedded = extract_embedded(message.get(data_field, b""), self.codec)
            for inner in message.embedded:
                self._route_table_message(inner, tables, runlog, message.tick)
        runlog.write(
            "parse_stop",
            frames=frames,
            tables=len(tables),
            active_modifiers=len(specializer.active_modifiers),
            specialization_failures=len(specializer.failures),
        )
        return ParseResult(
            phases=tracker.logs,
            tables=tables,
            active_modifiers=specializer.active_modifiers,
            frames=frames,
            reserved=reserved,
            specialization_failures=specializer.failures,
        )

    def _route_table_message(
        self,
        message: Message,
        tables: StringTableManager,
        runlog: RunLog,
        tick: int | None,
    ) -> None:
        if message.kind == EmbeddedKind.SVC_CREATE_STRING_TABLE:
            table = tables.create_from_message(message)
            runlog.write(
                "table_create",
                name=table.name,
                position=table.position,
                rows=len(table.rows),
                tick=tick,
            )
        elif message.kind == EmbeddedKind.SVC_UPDATE_STRING_TABLE:
            table = tables.update_from_message(message)
            runlog.write(
                "table_update",
                name=table.name,
                position=table.position,
                changed=message.get("num_changed_entries", 0),
                tick=tick,
            )
