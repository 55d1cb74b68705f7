from __future__ import annotations

import sys
from dataclasses import asdict, is_dataclass
from pathlib import Path
from typing import Any, BinaryIO

import orjson

_ORJSON_NDJSON_OPTIONS = orjson.OPT_APPEND_NEWLINE


def normalize_record(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, Path):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return normalize_record(asdict(value))
    if isinstance(value, dict):
        return {str(key): normalize_record(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [normalize_record(item) for item in value]
    return str(value)


class RunLog:
    """NDJSON event log; a no-op when constructed without a path."""

    def __init__(self, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self._handle: BinaryIO | None = None
        self.records_written = 0

    def write(self, record_type: str, **payload: Any) -> None:
        if self.path is None:
            return
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("ab")
        record = {"record_type": record_type, **normalize_record(payload)}
        self._handle.write(orjson.dumps(record, option=_ORJSON_NDJSON_OPTIONS))
        self.records_written += 1

    def warn(self, message: str) -> None:
        print(f"dem_data: {message}", file=sys.stderr)

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "RunLog":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()
