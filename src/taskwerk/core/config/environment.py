"""
Environment variable overlay for taskwerk configuration.

Variables are named ``TASKWERK_<SECTION>_<PROPERTY_IN_UPPER_SNAKE_CASE>``:

    TASKWERK_GENERAL_DEFAULT_PRIORITY=high   ->  general.defaultPriority
    TASKWERK_AI_MAX_TOKENS=4000              ->  ai.maxTokens

The forward transform (``get_env_name``) and the reverse one
(``load_from_env``) are not inverses for multi-word section names or
acronyms inside property names; existing variable names depend on this.
"""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
import json

from .coercion import decode_json_or_raw
from .registry import ConfigSection, flatten, get_schema, lookup_node

ENV_PREFIX = "TASKWERK"

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")


def parse_env_key(env_key: str, prefix: str = ENV_PREFIX) -> Optional[List[str]]:
    """
    Map a variable name to a config path.

    TASKWERK_GENERAL_DEFAULT_PRIORITY -> ["general", "defaultPriority"]
    """
    parts = [part for part in env_key[len(prefix) + 1 :].split("_") if part]
    if not parts:
        return None

    section = parts[0].lower()
    property_parts = parts[1:]
    if not property_parts:
        return [section]

    words = [part.lower() for part in property_parts]
    prop = words[0] + "".join(word[:1].upper() + word[1:] for word in words[1:])
    return [section, prop]


def _set_nested(target: Dict[str, Any], path: Sequence[str], value: Any) -> None:
    cursor = target
    for part in path[:-1]:
        # A deeper variable wins over a scalar already sitting at this key.
        if not isinstance(cursor.get(part), dict):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[path[-1]] = value


def load_from_env(
    environ: Optional[Mapping[str, str]] = None, prefix: str = ENV_PREFIX
) -> Dict[str, Any]:
    """Build the ENV layer from prefixed environment variables."""
    source = os.environ if environ is None else environ
    config: Dict[str, Any] = {}
    marker = f"{prefix}_"
    for key in sorted(source):
        if not key.startswith(marker):
            continue
        path = parse_env_key(key, prefix)
        if path is None:
            continue
        _set_nested(config, path, decode_json_or_raw(source[key]))
        logger.debug("Environment variable %s -> %s", key, ".".join(path))
    return config


def get_env_name(path: Union[str, Sequence[str]], prefix: str = ENV_PREFIX) -> str:
    """general.defaultPriority -> TASKWERK_GENERAL_DEFAULT_PRIORITY"""
    segments = path.split(".") if isinstance(path, str) else list(path)
    env_parts = [_CAMEL_BOUNDARY.sub(r"\1_\2", segment).upper() for segment in segments]
    return "_".join([prefix, *env_parts])


def _description_for(path: str, schema: ConfigSection) -> str:
    try:
        node = lookup_node(path, schema)
    except ValueError:
        return ""
    return getattr(node, "description", "") if node is not None else ""


def export_to_env(
    config: Dict[str, Any],
    include_comments: bool = True,
    schema: Optional[ConfigSection] = None,
) -> str:
    """Render a configuration as shell ``export`` lines."""
    schema = schema or get_schema()
    lines: List[str] = []

    if include_comments:
        lines.append("# Taskwerk Configuration Environment Variables")
        lines.append(f"# Generated on {datetime.now(timezone.utc).isoformat()}")
        lines.append("")

    for path, value in flatten(config, schema=schema).items():
        if isinstance(value, str):
            env_value = value
        else:
            env_value = json.dumps(value).replace('"', '\\"')

        description = _description_for(path, schema)
        if include_comments and description:
            lines.append(f"# {description}")

        lines.append(f'export {get_env_name(path)}="{env_value}"')

        if include_comments:
            lines.append("")

    return "\n".join(lines)
