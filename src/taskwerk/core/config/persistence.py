"""Config file location, parsing and persistence utilities."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional
import copy
import json
import logging
import os
import stat

import yaml

from taskwerk.core.utils.logger import log_error, log_file_operation, log_warning
from taskwerk.core.utils.paths import (
    CONFIG_FILENAME,
    CONFIG_JSON_FILENAME,
    home_dir,
    legacy_config_dir,
    project_config_dir,
    user_config_dir,
)

from .errors import ConfigParseError, ConfigPersistenceError, ConfigurationError
from .registry import ConfigSection, get_in, get_sensitive_fields, set_in

MASK_PLACEHOLDER = "********"
SECURE_FILE_MODE = 0o600

YAML_SUFFIXES = (".yml", ".yaml")
JSON_SUFFIXES = (".json",)

logger = logging.getLogger(__name__)


def _prefer_existing(primary: Path, alternative: Path) -> Path:
    """Use ``alternative`` only when it exists and ``primary`` does not."""
    if not primary.exists() and alternative.exists():
        return alternative
    return primary


def resolve_global_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Locate the per-user configuration file.

    Order: ``$XDG_CONFIG_HOME/taskwerk``, ``~/.config/taskwerk``, then the
    legacy ``~/.taskwerk`` when only that one exists. JSON variants are used
    when they are the file actually present.
    """
    source = os.environ if environ is None else environ
    if source.get("XDG_CONFIG_HOME"):
        base = user_config_dir(source)
        return _prefer_existing(base / CONFIG_FILENAME, base / CONFIG_JSON_FILENAME)

    conventional_dir = home_dir() / ".config" / "taskwerk"
    conventional = conventional_dir / CONFIG_FILENAME
    legacy = legacy_config_dir() / CONFIG_FILENAME

    if legacy.exists() and not conventional.exists():
        return legacy
    if not conventional.exists():
        for candidate in (
            conventional_dir / CONFIG_JSON_FILENAME,
            legacy_config_dir() / CONFIG_JSON_FILENAME,
        ):
            if candidate.exists():
                return candidate
    return conventional


def resolve_local_path(project_root: Optional[Path] = None) -> Path:
    """Project-local configuration file under ``.taskwerk/``."""
    base = project_config_dir(project_root)
    return _prefer_existing(base / CONFIG_FILENAME, base / CONFIG_JSON_FILENAME)


def detect_format(path: Path) -> Optional[str]:
    suffix = Path(path).suffix.lower()
    if suffix in YAML_SUFFIXES:
        return "yaml"
    if suffix in JSON_SUFFIXES:
        return "json"
    return None


def parse_layer_text(text: str, path: Path) -> Dict[str, Any]:
    """Parse layer file contents by extension, trying YAML then JSON otherwise."""
    fmt = detect_format(path)
    try:
        if fmt == "yaml":
            data = yaml.safe_load(text)
        elif fmt == "json":
            data = json.loads(text)
        else:
            try:
                data = yaml.safe_load(text)
            except yaml.YAMLError:
                data = json.loads(text)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigParseError(path, e) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigParseError(
            path, f"expected a mapping at the top level, got {type(data).__name__}"
        )
    return data


def serialize_layer(data: Dict[str, Any], path: Path) -> str:
    """Serialize a layer in the format implied by the target extension."""
    if detect_format(path) == "yaml":
        return yaml.safe_dump(
            data,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
            indent=2,
            width=80,
        )
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _write_atomic(target_path: Path, content: str, mode: Optional[int] = None) -> None:
    """
    Write ``content`` through a temp file and replace the target.

    The content is fully serialized before this is called, so a failed write
    never leaves a half-written target.
    """
    temp_path = target_path.with_suffix(target_path.suffix + ".tmp")
    try:
        if mode is not None:
            # The temp file never exists with a looser mode than ``mode``.
            temp_path.unlink(missing_ok=True)
            fd = os.open(temp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            try:
                os.chmod(temp_path, mode)
            except OSError as e:
                log_warning(
                    "config", f"Could not set secure permissions on {target_path}: {e}"
                )
        else:
            temp_path.write_text(content, encoding="utf-8")
            if target_path.exists():
                os.chmod(temp_path, stat.S_IMODE(target_path.stat().st_mode))
        temp_path.replace(target_path)
    except OSError as e:
        log_file_operation("write", str(target_path), False, str(e))
        if temp_path.exists():
            temp_path.unlink()
        raise ConfigPersistenceError(target_path, e) from e
    log_file_operation("write", str(target_path), True)


def mask_sensitive(
    config: Dict[str, Any],
    schema: Optional[ConfigSection] = None,
    sensitive_fields: Optional[Iterable[str]] = None,
) -> Dict[str, Any]:
    """Deep-clone ``config`` and replace every set sensitive leaf with the placeholder."""
    masked = copy.deepcopy(config)
    fields = get_sensitive_fields(schema) if sensitive_fields is None else sensitive_fields
    for field in fields:
        if get_in(masked, field):
            set_in(masked, field, MASK_PLACEHOLDER)
    return masked


def has_sensitive_data(
    config: Optional[Dict[str, Any]], schema: Optional[ConfigSection] = None
) -> bool:
    """True when at least one sensitive leaf holds a real (non-placeholder) value."""
    if not config:
        return False
    for field in get_sensitive_fields(schema):
        value = get_in(config, field)
        if value and value != MASK_PLACEHOLDER:
            return True
    return False


def check_permissions(
    path: Path,
    data: Optional[Dict[str, Any]],
    schema: Optional[ConfigSection] = None,
) -> bool:
    """
    Warn when a layer file holding secrets is readable by group or others.

    Never raises; returns True when a warning was emitted.
    """
    if os.name == "nt":
        return False
    try:
        mode = stat.S_IMODE(Path(path).stat().st_mode)
    except OSError as e:
        logger.debug("Permission check skipped for %s: %s", path, e)
        return False

    if not mode & (stat.S_IRGRP | stat.S_IROTH):
        return False
    if not has_sensitive_data(data, schema):
        return False

    log_warning(
        "config",
        f"Configuration file {path} is readable by other users and may expose sensitive data.",
        context=f'Run: chmod 600 "{path}" to fix',
    )
    return True


class SecretStore:
    """
    Owner-only side file holding the real values behind masked placeholders.

    Layer files only ever contain ``MASK_PLACEHOLDER`` for sensitive fields;
    this store lets a later load put the real value back. Values are kept in
    plain text with ``0o600`` permissions, not encrypted.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @staticmethod
    def _key(layer_path: Path) -> str:
        return str(Path(layer_path).expanduser().resolve())

    def read(self) -> Dict[str, Dict[str, Any]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError as e:
            raise ConfigParseError(self.path, e) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read secret store {self.path}: {e}",
                operation="load",
                context={"path": str(self.path)},
            ) from e
        if not isinstance(data, dict):
            raise ConfigParseError(self.path, "expected a mapping at the top level")
        return data

    def entries_for(self, layer_path: Path) -> Dict[str, Any]:
        return dict(self.read().get(self._key(layer_path), {}))

    def restore(
        self, layer_path: Path, data: Dict[str, Any], sensitive_fields: Iterable[str]
    ) -> None:
        """Swap placeholders in ``data`` for stored values, in place."""
        entries = self.entries_for(layer_path)
        if not entries:
            return
        for field in sensitive_fields:
            if get_in(data, field) == MASK_PLACEHOLDER and field in entries:
                set_in(data, field, entries[field])

    def update(
        self, layer_path: Path, data: Dict[str, Any], sensitive_fields: Iterable[str]
    ) -> None:
        """Record the real sensitive values of a layer about to be saved."""
        store = self.read()
        key = self._key(layer_path)
        entry = dict(store.get(key, {}))
        for field in sensitive_fields:
            value = get_in(data, field)
            if value == MASK_PLACEHOLDER:
                # Unresolved placeholder: keep whatever is already stored.
                continue
            if value:
                entry[field] = value
            else:
                entry.pop(field, None)

        updated = dict(store)
        if entry:
            updated[key] = entry
        else:
            updated.pop(key, None)
        if updated == store:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigPersistenceError(self.path, e) from e
        _write_atomic(
            self.path,
            json.dumps(updated, indent=2, sort_keys=True) + "\n",
            mode=SECURE_FILE_MODE,
        )


def load_layer(
    path: Path,
    secrets: Optional[SecretStore] = None,
    schema: Optional[ConfigSection] = None,
    check: bool = False,
) -> Dict[str, Any]:
    """
    Read one on-disk layer; an absent file is an empty layer.

    With ``check`` the file permissions are checked against what the file
    itself holds, before placeholders are swapped for stored secrets.
    """
    path = Path(path)
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        log_error("config", f"Failed to read configuration file {path}", exception=e)
        raise ConfigurationError(
            f"Failed to read configuration file {path}: {e}",
            operation="load",
            context={"path": str(path)},
        ) from e
    data = parse_layer_text(text, path)
    if check:
        check_permissions(path, data, schema)
    if secrets is not None:
        secrets.restore(path, data, get_sensitive_fields(schema))
    logger.debug("Loaded configuration layer from %s", path)
    return data


def save_layer(
    path: Path,
    data: Dict[str, Any],
    is_global: bool = False,
    secrets: Optional[SecretStore] = None,
    schema: Optional[ConfigSection] = None,
) -> None:
    """
    Persist one layer with sensitive fields masked.

    ``data`` is cloned before masking, so the caller's in-memory layer keeps
    its real values.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigPersistenceError(path, e) from e

    sensitive: List[str] = get_sensitive_fields(schema)
    if secrets is not None:
        secrets.update(path, data, sensitive)

    try:
        content = serialize_layer(mask_sensitive(data, sensitive_fields=sensitive), path)
    except (yaml.YAMLError, TypeError, ValueError) as e:
        raise ConfigPersistenceError(path, e, operation="serialize") from e
    _write_atomic(path, content, mode=SECURE_FILE_MODE if is_global else None)
