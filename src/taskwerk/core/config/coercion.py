"""Value coercion utilities for configuration values typed on the command line."""

from __future__ import annotations

import json
import math
from typing import Any, Optional

from .registry import SchemaField


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not valid JSON")


def decode_json_or_raw(raw: str) -> Any:
    """JSON-decode ``raw``; on failure return it unchanged."""
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError:
        return raw


def _coerce_bool(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
    return value


def _coerce_int(value: Any) -> Any:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return value
    return value


def _coerce_number(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        try:
            return int(trimmed)
        except ValueError:
            pass
        try:
            number = float(trimmed)
        except ValueError:
            return value
        # "nan" and "inf" are left as text for validation to reject.
        return number if math.isfinite(number) else value
    return value


def _coerce_list(value: Any) -> Any:
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        try:
            parsed = json.loads(trimmed)
            if isinstance(parsed, list):
                return parsed
        except json.JSONDecodeError:
            pass
        if trimmed:
            return [item.strip() for item in trimmed.split(",") if item.strip()]
    return value


def _coerce_dict(value: Any) -> Any:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        trimmed = value.strip()
        try:
            parsed = json.loads(trimmed)
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass
    return value


def coerce(raw: Any, field_meta: SchemaField) -> Any:
    """Coerce raw value to the field's type where possible."""
    if raw is None:
        return None
    target = field_meta.type
    if target == "boolean":
        return _coerce_bool(raw)
    if target == "integer":
        return _coerce_int(raw)
    if target == "number":
        return _coerce_number(raw)
    if target == "array":
        return _coerce_list(raw)
    if target == "object":
        return _coerce_dict(raw)
    return raw


def parse_value(raw: str, field_meta: Optional[SchemaField] = None) -> Any:
    """
    Interpret a value typed by the user.

    Known fields are coerced to their declared type; anything else is
    JSON-decoded, falling back to the raw string.
    """
    if field_meta is not None and field_meta.kind == "leaf":
        return coerce(raw, field_meta)
    return decode_json_or_raw(raw)
