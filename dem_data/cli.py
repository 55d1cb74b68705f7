from __future__ import annotations

import argparse
import os
import sys
from dataclasses import fields
from pathlib import Path
from typing import Any

import orjson

from .capture_inspect import inspect_capture, table_rows, verify_capture
from .config import Config, _unwrap_optional
from .errors import DemParseError
from .parser import DemParser

_ORJSON_OUTPUT_OPTIONS = orjson.OPT_INDENT_2 | orjson.OPT_APPEND_NEWLINE


def _str2bool(value: str | bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"invalid bool: {value}")


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    for field in fields(Config):
        name = field.name.replace("_", "-")
        base_type, _is_optional = _unwrap_optional(field.type)
        if base_type is bool:
            group = parser.add_mutually_exclusive_group()
            group.add_argument(f"--{name}", dest=field.name, action="store_true")
            group.add_argument(f"--no-{name}", dest=field.name, action="store_false")
            parser.set_defaults(**{field.name: None})
        else:
            parser.add_argument(f"--{name}", dest=field.name, default=None)


def _cli_overrides(ns: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for field in fields(Config):
        value = getattr(ns, field.name, None)
        if value is None:
            continue
        base_type, _is_optional = _unwrap_optional(field.type)
        if base_type is bool:
            overrides[field.name] = _str2bool(value)
        elif base_type is int:
            overrides[field.name] = int(value)
        else:
            overrides[field.name] = value
    return overrides


def _emit(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=_ORJSON_OUTPUT_OPTIONS).decode("utf-8"))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dem_data")
    subparsers = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    _add_config_args(common)

    inspect = subparsers.add_parser("inspect", parents=[common])
    inspect.add_argument("path")

    tables = subparsers.add_parser("tables", parents=[common])
    tables.add_argument("path")
    tables.add_argument("--name", default=None)

    verify = subparsers.add_parser("verify", parents=[common])
    verify.add_argument("path")

    args = parser.parse_args(argv)
    overrides = _cli_overrides(args)
    config = Config.from_env_and_cli(overrides, os.environ)
    path = Path(args.path)

    if args.command == "verify":
        summary = verify_capture(path, config)
        _emit(summary)
        return 0 if summary["ok"] else 2
    try:
        if args.command == "inspect":
            _emit(inspect_capture(path, config))
            return 0
        if args.command == "tables":
            result = DemParser(config).parse_path(path)
            selected = [
                table for table in result.tables if args.name is None or table.name == args.name
            ]
            if args.name is not None and not selected:
                print(f"no string table named {args.name!r}", file=sys.stderr)
                return 1
            _emit(
                [
                    {"position": table.position, "name": table.name, "rows": table_rows(table)}
                    for table in selected
                ]
            )
            return 0
    except DemParseError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 2
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
