from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Any

from .config import Config
from .errors import DemParseError
from .parser import DemParser, ParseResult
from .runlog import normalize_record
from .string_tables import StringTable


def summarize(result: ParseResult, *, max_tables: int | None = None) -> dict[str, Any]:
    kinds: Counter[str] = Counter()
    embedded_kinds: Counter[str] = Counter()
    for message in result.messages():
        kinds[message.type_name] += 1
        for inner in message.embedded or ():
            embedded_kinds[inner.type_name] += 1
    tables = [
        {
            "position": table.position,
            "name": table.name,
            "rows": len(table.rows),
            "specialized_rows": sum(1 for row in table.rows.values() if row.payload is not None),
        }
        for table in result.tables
    ]
    if max_tables is not None and max_tables >= 0:
        tables = tables[:max_tables]
    return {
        "frames": result.frames,
        "reserved": result.reserved,
        "phases": {phase.value: len(log) for phase, log in result.phases.items()},
        "kinds": dict(sorted(kinds.items())),
        "embedded_kinds": dict(sorted(embedded_kinds.items())),
        "tables_total": len(result.tables),
        "tables": tables,
        "active_modifiers": len(result.active_modifiers),
        "specialization_failures": len(result.specialization_failures),
    }


def table_rows(table: StringTable) -> list[dict[str, Any]]:
    return [
        {
            "index": row.index,
            "key": row.key,
            "value": normalize_record(row.value),
            "payload": normalize_record(row.payload),
        }
        for row in sorted(table.rows.values(), key=lambda row: row.index)
    ]


def inspect_capture(path: Path, config: Config) -> dict[str, Any]:
    result = DemParser(config).parse_path(path)
    summary = summarize(result, max_tables=config.inspect_max_tables)
    summary["path"] = str(path)
    return summary


def verify_capture(path: Path, config: Config) -> dict[str, Any]:
    try:
        result = DemParser(config).parse_path(path)
    except DemParseError as exc:
        return {
            "ok": False,
            "path": str(path),
            "error_type": type(exc).__name__,
            "error_message": str(exc),
        }
    return {
        "ok": True,
        "path": str(path),
        "frames": result.frames,
        "tables": len(result.tables),
        "phases": [phase.value for phase in result.phases],
    }
