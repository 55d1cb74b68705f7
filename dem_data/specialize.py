from __future__ import annotations

import dataclasses
from typing import Callable, Iterable

from .codec import MessageCodec
from .errors import SpecializationDecodeFailure
from .records import ModifierEntry, UserInfo, decode_modifier_entry, decode_user_info
from .runlog import RunLog
from .string_tables import StringTable, StringTableRow

RowHook = Callable[[StringTableRow], StringTableRow]
UserInfoDecoder = Callable[[bytes], UserInfo]

# Recognized, but rows stay raw.
PASSTHROUGH_TABLES = frozenset({"instancebaseline"})


class RowSpecializer:
    """Per-table-name post-processing run after every string table mutation.

    Only touched rows with a non-empty value are handed to a hook. Decoded
    modifier entries accumulate in ``active_modifiers`` for the life of the
    specializer, across table re-creation and phases.
    """

    def __init__(
        self,
        codec: MessageCodec,
        *,
        strict: bool = True,
        runlog: RunLog | None = None,
        user_info_decoder: UserInfoDecoder = decode_user_info,
    ) -> None:
        self.codec = codec
        self.strict = strict
        self.runlog = runlog or RunLog()
        self.user_info_decoder = user_info_decoder
        self.active_modifiers: list[ModifierEntry] = []
        self.failures: list[SpecializationDecodeFailure] = []
        self._hooks: dict[str, RowHook] = {
            "activemodifiers": self._active_modifier_row,
            "userinfo": self._user_info_row,
        }

    def register(self, table_name: str, hook: RowHook) -> None:
        self._hooks[table_name.lower()] = hook

    def hook_for(self, table_name: str) -> RowHook | None:
        name = table_name.lower()
        if name in PASSTHROUGH_TABLES:
            return None
        return self._hooks.get(name)

    def __call__(self, table: StringTable, touched: Iterable[int]) -> int:
        hook = self.hook_for(table.name)
        if hook is None:
            return 0
        enriched = 0
        for index in touched:
            row = table.rows.get(index)
            if row is None or not row.has_value:
                continue
            try:
                table.rows[index] = hook(row)
            except SpecializationDecodeFailure as exc:
                failure = exc
            except ValueError as exc:
                failure = SpecializationDecodeFailure(table.name, index, str(exc))
                failure.__cause__ = exc
            else:
                enriched += 1
                continue
            if self.strict:
                raise failure
            self._record_failure(failure)
        return enriched

    def _record_failure(self, failure: SpecializationDecodeFailure) -> None:
        self.failures.append(failure)
        self.runlog.write(
            "specialization_error",
            table=failure.table_name,
            index=failure.index,
            error_message=failure.reason,
        )
        self.runlog.warn(str(failure))

    def _active_modifier_row(self, row: StringTableRow) -> StringTableRow:
        entry = decode_modifier_entry(row.value or b"", self.codec)
        self.active_modifiers.append(entry)
        return dataclasses.replace(row, payload=entry)

    def _user_info_row(self, row: StringTableRow) -> StringTableRow:
        return dataclasses.replace(row, payload=self.user_info_decoder(row.value or b""))
