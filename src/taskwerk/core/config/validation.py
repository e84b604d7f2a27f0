"""Validation of configuration objects against the schema registry."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional
import math
import re

from .errors import ConfigValidationError
from .registry import ConfigSection, SchemaField, get_schema


@dataclass(frozen=True)
class ConfigViolation:
    path: str
    expected: str
    actual: str
    message: str


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_valid_type(value: Any, expected: str) -> bool:
    if expected == "integer":
        if isinstance(value, float):
            return value.is_integer()
        return isinstance(value, int) and not isinstance(value, bool)
    if expected == "number":
        return _is_number(value)
    return _type_name(value) == expected


@lru_cache(maxsize=None)
def _compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a schema pattern so an unescaped ``$`` outside a character class
    only matches at the very end of the string, not before a trailing newline.
    """
    translated: List[str] = []
    in_class = False
    escaped = False
    for char in pattern:
        if escaped:
            translated.append(char)
            escaped = False
        elif char == "\\":
            translated.append(char)
            escaped = True
        elif in_class:
            translated.append(char)
            if char == "]":
                in_class = False
        elif char == "[":
            translated.append(char)
            in_class = True
        elif char == "$":
            translated.append(r"\Z")
        else:
            translated.append(char)
    return re.compile("".join(translated))


def _join(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def _validate_section(
    data: Mapping[str, Any],
    section: ConfigSection,
    path: str,
    errors: List[ConfigViolation],
) -> None:
    if not section.additional_properties:
        for key in data:
            if key not in section.fields:
                full_key = _join(path, key)
                errors.append(
                    ConfigViolation(
                        full_key,
                        "known property",
                        "unknown property",
                        f"Unknown property: {full_key}",
                    )
                )

    for required in section.required:
        if required not in data:
            full_key = _join(path, required)
            errors.append(
                ConfigViolation(
                    full_key,
                    "required property",
                    "missing",
                    f"Missing required property: {full_key}",
                )
            )

    for key, node in section.fields.items():
        if key not in data:
            continue
        full_key = _join(path, key)
        value = data[key]
        if node.kind == "section":
            if not isinstance(value, dict):
                errors.append(
                    ConfigViolation(
                        full_key,
                        "object",
                        _type_name(value),
                        f"Invalid type for {full_key}: expected object, got {_type_name(value)}",
                    )
                )
                continue
            _validate_section(value, node, full_key, errors)
        else:
            _validate_value(value, node, full_key, errors)


def _validate_value(
    value: Any, field: SchemaField, path: str, errors: List[ConfigViolation]
) -> None:
    actual = _type_name(value)
    if (
        field.type in ("number", "integer")
        and isinstance(value, float)
        and not math.isfinite(value)
    ):
        errors.append(
            ConfigViolation(
                path,
                "finite number",
                repr(value),
                f"Invalid value for {path}: {value!r} is not a finite number",
            )
        )
        return

    if not _is_valid_type(value, field.type):
        if field.type == "integer" and _is_number(value):
            actual = "non-integer number"
        errors.append(
            ConfigViolation(
                path,
                field.type,
                actual,
                f"Invalid type for {path}: expected {field.type}, got {actual}",
            )
        )
        return

    if field.enum is not None and value not in field.enum:
        allowed = ", ".join(map(str, field.enum))
        errors.append(
            ConfigViolation(
                path,
                f"one of {allowed}",
                repr(value),
                f"Invalid value for {path}: must be one of {allowed}",
            )
        )

    if field.pattern is not None and isinstance(value, str):
        if not _compile_pattern(field.pattern).search(value):
            errors.append(
                ConfigViolation(
                    path,
                    f"match for {field.pattern}",
                    repr(value),
                    f"Invalid format for {path}: must match pattern {field.pattern}",
                )
            )

    if _is_number(value):
        if field.minimum is not None and value < field.minimum:
            errors.append(
                ConfigViolation(
                    path,
                    f">= {field.minimum}",
                    repr(value),
                    f"Value for {path} must be >= {field.minimum}",
                )
            )
        if field.maximum is not None and value > field.maximum:
            errors.append(
                ConfigViolation(
                    path,
                    f"<= {field.maximum}",
                    repr(value),
                    f"Value for {path} must be <= {field.maximum}",
                )
            )

    if field.type == "object" and field.properties:
        for key, prop in field.properties.items():
            if key in value:
                _validate_value(value[key], prop, _join(path, key), errors)

    if field.type == "array" and field.items is not None:
        for index, item in enumerate(value):
            _validate_value(item, field.items, f"{path}[{index}]", errors)


def validate_config(
    config: Dict[str, Any], schema: Optional[ConfigSection] = None
) -> List[ConfigViolation]:
    """Validate a nested config dict and return every violation found."""
    schema = schema or get_schema()
    errors: List[ConfigViolation] = []
    if not isinstance(config, dict):
        errors.append(
            ConfigViolation(
                "",
                "object",
                _type_name(config),
                f"Configuration must be an object, got {_type_name(config)}",
            )
        )
        return errors
    _validate_section(config, schema, "", errors)
    return errors


def ensure_valid(config: Dict[str, Any], schema: Optional[ConfigSection] = None) -> None:
    """Raise one ConfigValidationError listing all violations, if any."""
    violations = validate_config(config, schema)
    if violations:
        raise ConfigValidationError(violations)
