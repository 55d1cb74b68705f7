from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

from .bitstream import EntryDiff, decode_entries
from .errors import DuplicateTableName, UnknownTablePosition
from .messages import Message


@dataclass(frozen=True)
class StringTableRow:
    index: int
    key: str = ""
    value: bytes | None = None
    payload: Any = None

    @property
    def has_value(self) -> bool:
        return bool(self.value)


@dataclass
class StringTable:
    name: str
    position: int
    max_entries: int = 0
    user_data_fixed_size: bool = False
    user_data_size_bits: int = 0
    flags: int = 0
    rows: dict[int, StringTableRow] = field(default_factory=dict)

    def decode_diffs(self, data: bytes, num_entries: int) -> list[EntryDiff]:
        return decode_entries(
            data,
            num_entries,
            self.max_entries,
            user_data_fixed_size=self.user_data_fixed_size,
            user_data_size_bits=self.user_data_size_bits,
        )

    def apply(self, diffs: Iterable[EntryDiff | StringTableRow]) -> list[int]:
        """Upsert rows by index; return the touched indices in first-touch order."""
        touched: dict[int, None] = {}
        for diff in diffs:
            existing = self.rows.get(diff.index)
            key = diff.key
            value = diff.value
            if existing is not None:
                if key is None:
                    key = existing.key
                if value is None:
                    value = existing.value
            self.rows[diff.index] = StringTableRow(index=diff.index, key=key or "", value=value)
            touched[diff.index] = None
        return list(touched)


MutationHook = Callable[[StringTable, list[int]], Any]


class StringTableManager:
    """Holds string tables in creation order.

    Updates address tables only by creation-order position; the name index is
    a lookup convenience built alongside the ordered list and never reordered.
    """

    def __init__(self, on_mutation: MutationHook | None = None) -> None:
        self._tables: list[StringTable] = []
        self._positions: dict[str, int] = {}
        self._on_mutation = on_mutation

    def create(
        self,
        name: str,
        initial_rows: Iterable[EntryDiff | StringTableRow] = (),
        *,
        max_entries: int = 0,
        user_data_fixed_size: bool = False,
        user_data_size_bits: int = 0,
        flags: int = 0,
    ) -> StringTable:
        if name in self._positions:
            raise DuplicateTableName(
                f"string table {name!r} already exists at position {self._positions[name]}"
            )
        table = StringTable(
            name=name,
            position=len(self._tables),
            max_entries=max_entries,
            user_data_fixed_size=user_data_fixed_size,
            user_data_size_bits=user_data_size_bits,
            flags=flags,
        )
        self._tables.append(table)
        self._positions[name] = table.position
        touched = table.apply(initial_rows)
        self._mutated(table, touched)
        return table

    def update(self, position: int, diffs: Iterable[EntryDiff | StringTableRow]) -> StringTable:
        table = self.by_position(position)
        touched = table.apply(diffs)
        self._mutated(table, touched)
        return table

    def create_from_message(self, message: Message) -> StringTable:
        fields = message.fields
        max_entries = int(fields.get("max_entries", 0))
        fixed = bool(fields.get("user_data_fixed_size", False))
        size_bits = int(fields.get("user_data_size_bits", 0))
        rows = decode_entries(
            fields.get("string_data", b""),
            int(fields.get("num_entries", 0)),
            max_entries,
            user_data_fixed_size=fixed,
            user_data_size_bits=size_bits,
        )
        return self.create(
            fields.get("name", ""),
            rows,
            max_entries=max_entries,
            user_data_fixed_size=fixed,
            user_data_size_bits=size_bits,
            flags=int(fields.get("flags", 0)),
        )

    def update_from_message(self, message: Message) -> StringTable:
        fields = message.fields
        table = self.by_position(int(fields.get("table_id", 0)))
        diffs = table.decode_diffs(
            fields.get("string_data", b""), int(fields.get("num_changed_entries", 0))
        )
        return self.update(table.position, diffs)

    def by_position(self, position: int) -> StringTable:
        if position < 0 or position >= len(self._tables):
            raise UnknownTablePosition(position, len(self._tables))
        return self._tables[position]

    def get(self, name: str) -> StringTable:
        return self._tables[self._positions[name]]

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    def __iter__(self) -> Iterator[StringTable]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def names(self) -> list[str]:
        return [table.name for table in self._tables]

    def _mutated(self, table: StringTable, touched: list[int]) -> None:
        if self._on_mutation is not None:
            self._on_mutation(table, touched)
