from __future__ import annotations

from dataclasses import dataclass, fields
import types
import typing
from typing import Any, get_args, get_origin

ENV_PREFIX = "DEM_DATA_"


def _parse_bool(value: str) -> bool:
    val = str(value).strip().lower()
    if val in {"1", "true", "yes", "y", "on"}:
        return True
    if val in {"0", "false", "no", "n", "off"}:
        return False
    raise ValueError(f"invalid bool: {value}")


def _resolve_type(field_type: Any) -> Any:
    if isinstance(field_type, str):
        return _STRING_TYPES.get(field_type.replace(" ", ""), field_type)
    return field_type


_STRING_TYPES: dict[str, Any] = {
    "bool": bool,
    "int|None": int | None,
    "str|None": str | None,
}


def _unwrap_optional(field_type: Any) -> tuple[Any, bool]:
    field_type = _resolve_type(field_type)
    origin = get_origin(field_type)
    union_type = getattr(types, "UnionType", None)
    if origin not in (typing.Union, union_type):
        return field_type, False
    args = get_args(field_type)
    if args and type(None) in args and len(args) == 2:
        base = args[0] if args[1] is type(None) else args[1]
        return base, True
    return field_type, False


def _parse_optional(raw: str, target_type: type) -> Any:
    text = str(raw).strip()
    if text == "":
        return None
    lower = text.lower()
    if lower in {"none", "null"}:
        return None
    if target_type is int:
        return int(text)
    return text


@dataclass
class Config:
    parse_embedded: bool = True
    strict_specialization: bool = True
    runlog_path: str | None = None
    inspect_max_tables: int | None = None

    def apply_overrides(self, overrides: dict[str, Any]) -> "Config":
        for field in fields(self):
            name = field.name
            if name in overrides:
                value = overrides[name]
                if value is None:
                    _base_type, is_optional = _unwrap_optional(field.type)
                    if is_optional:
                        setattr(self, name, None)
                    continue
                setattr(self, name, value)
        return self

    @classmethod
    def from_env_and_cli(cls, cli_overrides: dict[str, Any], env: dict[str, str]) -> "Config":
        cfg = cls().apply_overrides(cli_overrides)
        for field in fields(cfg):
            env_key = ENV_PREFIX + field.name.upper()
            if env_key not in env:
                continue
            raw = env[env_key]
            base_type, is_optional = _unwrap_optional(field.type)
            if is_optional:
                value = _parse_optional(raw, base_type)
            elif base_type is bool:
                value = _parse_bool(raw)
            else:
                value = raw
            setattr(cfg, field.name, value)
        return cfg
