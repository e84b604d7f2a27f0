"""
Layered configuration manager.

The effective configuration is resolved from four layers, lowest precedence
first: compiled-in defaults, the per-user (global) file, the project (local)
file and ``TASKWERK_*`` environment variables. Edits go to the global or
local layer and are validated before they become visible.

A manager is built once at process entry and passed to whatever needs
configuration. The module-level holder below exists for that entry point
and for resetting state between tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union
import copy

from taskwerk.core.utils.logger import log_configuration_change, log_debug, log_info
from taskwerk.core.utils.paths import SECRETS_FILENAME

from .environment import load_from_env
from .errors import ConfigurationError
from .merge import ConfigLayer, SourceMap, build_source_map, deep_merge, merge_layers
from .persistence import (
    SecretStore,
    load_layer,
    mask_sensitive,
    resolve_global_path,
    resolve_local_path,
    save_layer,
)
from .registry import (
    ConfigSection,
    SchemaNode,
    child_node,
    delete_in,
    format_path,
    get_defaults,
    get_in,
    get_schema,
    parse_path,
    set_in,
)
from .validation import ensure_valid

PathLike = Union[str, Sequence[str]]

_MISSING = object()


class ConfigManager:
    """Load, merge, validate and persist taskwerk configuration."""

    def __init__(
        self,
        local_path: Optional[Path] = None,
        global_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
        schema: Optional[ConfigSection] = None,
        secrets_path: Optional[Path] = None,
    ):
        """
        Args:
            local_path: Project config file (default ``./.taskwerk/config.yml``)
            global_path: Per-user config file (default resolved from XDG/HOME)
            environ: Environment mapping read on every load (default ``os.environ``)
            schema: Root schema section (default the built-in registry)
            secrets_path: Secret store file (default beside the global file)
        """
        self.schema = schema or get_schema()
        self._environ = environ
        self.local_path = Path(local_path) if local_path else resolve_local_path()
        self.global_path = (
            Path(global_path) if global_path else resolve_global_path(environ)
        )
        self.secrets = SecretStore(
            Path(secrets_path)
            if secrets_path
            else self.global_path.parent / SECRETS_FILENAME
        )

        self._layers: Dict[ConfigLayer, Dict[str, Any]] = {}
        self._merged: Optional[Dict[str, Any]] = None
        self._sources = SourceMap(self.schema)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._merged is not None

    def _ensure_loaded(self) -> None:
        if self._merged is None:
            self.load()

    def _commit(
        self, layers: Dict[ConfigLayer, Dict[str, Any]], merged: Dict[str, Any]
    ) -> None:
        self._layers = layers
        self._merged = merged
        self._sources = build_source_map(layers, self.schema)

    def _propose(
        self, layers: Dict[ConfigLayer, Dict[str, Any]]
    ) -> Dict[str, Any]:
        merged = merge_layers(layers, self.schema)
        ensure_valid(merged, self.schema)
        return merged

    def load(self) -> Dict[str, Any]:
        """
        Read every layer, merge and validate.

        Nothing is replaced unless the whole load succeeds.

        Returns:
            A copy of the effective configuration

        Raises:
            ConfigParseError: If a layer file cannot be parsed
            ConfigValidationError: If the merged configuration breaks the schema
        """
        global_data = load_layer(self.global_path, self.secrets, self.schema, check=True)
        local_data = load_layer(self.local_path, self.secrets, self.schema, check=True)

        layers = {
            ConfigLayer.DEFAULT: get_defaults(self.schema),
            ConfigLayer.GLOBAL: global_data,
            ConfigLayer.LOCAL: local_data,
            ConfigLayer.ENV: load_from_env(self._environ),
        }
        merged = self._propose(layers)
        self._commit(layers, merged)
        log_debug(
            "config",
            "Loaded configuration",
            context=f"global={self.global_path}, local={self.local_path}",
        )
        return copy.deepcopy(merged)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def merged(self) -> Dict[str, Any]:
        self._ensure_loaded()
        return copy.deepcopy(self._merged)

    @property
    def layers(self) -> Dict[ConfigLayer, Dict[str, Any]]:
        self._ensure_loaded()
        return copy.deepcopy(self._layers)

    def layer(self, layer: ConfigLayer) -> Dict[str, Any]:
        """Copy of one layer's raw data (secrets unmasked)."""
        self._ensure_loaded()
        return copy.deepcopy(self._layers.get(ConfigLayer(layer), {}))

    @property
    def sources(self) -> SourceMap:
        self._ensure_loaded()
        return self._sources

    def get(self, path: PathLike, default: Any = None) -> Any:
        """Dotted-path lookup against the effective configuration."""
        self._ensure_loaded()
        try:
            value = get_in(self._merged, path, _MISSING)
        except ValueError:
            # Malformed paths such as "a..b" name nothing.
            return default
        if value is _MISSING:
            return default
        return copy.deepcopy(value)

    def get_source(self, path: PathLike) -> ConfigLayer:
        """Layer that supplied the effective value at ``path``."""
        self._ensure_loaded()
        return self._sources.get(path)

    def get_with_sources(self, masked: bool = False) -> Dict[str, Any]:
        """Effective configuration with ``{"value", "source"}`` at every leaf."""
        self._ensure_loaded()
        data = self.get_masked() if masked else self._merged
        return self._annotate(data, self.schema, "")

    def _annotate(
        self, data: Dict[str, Any], node: Optional[SchemaNode], prefix: str
    ) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for key, value in data.items():
            full_key = f"{prefix}.{key}" if prefix else key
            key_node = child_node(node, key)
            if isinstance(value, dict) and (key_node is None or key_node.kind == "section"):
                result[key] = self._annotate(value, key_node, full_key)
            else:
                result[key] = {
                    "value": copy.deepcopy(value),
                    "source": self._sources.get(full_key),
                }
        return result

    def get_masked(self) -> Dict[str, Any]:
        """Effective configuration with sensitive values replaced by the placeholder."""
        self._ensure_loaded()
        return mask_sensitive(self._merged, self.schema)

    def get_global_masked(self) -> Dict[str, Any]:
        self._ensure_loaded()
        return mask_sensitive(self._layers[ConfigLayer.GLOBAL], self.schema)

    def get_local_masked(self) -> Dict[str, Any]:
        self._ensure_loaded()
        return mask_sensitive(self._layers[ConfigLayer.LOCAL], self.schema)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _display(self, path: PathLike, value: Any) -> Any:
        wrapper: Dict[str, Any] = {}
        set_in(wrapper, path, copy.deepcopy(value))
        return get_in(mask_sensitive(wrapper, self.schema), path)

    def set(self, path: PathLike, value: Any, to_global: bool = False) -> None:
        """
        Set a value in the local (default) or global layer.

        The edit is validated against the schema before it is kept; on
        failure every layer and the effective view stay as they were.

        Raises:
            ConfigValidationError: If the resulting configuration is invalid
        """
        self._ensure_loaded()
        segments = parse_path(path)
        target = ConfigLayer.GLOBAL if to_global else ConfigLayer.LOCAL
        old_value = self.get(segments)

        proposed = copy.deepcopy(self._layers[target])
        set_in(proposed, segments, copy.deepcopy(value))
        layers = {**self._layers, target: proposed}

        merged = self._propose(layers)
        self._commit(layers, merged)
        log_configuration_change(
            format_path(segments),
            self._display(segments, old_value),
            self._display(segments, value),
        )

    def delete(self, path: PathLike, from_global: bool = False) -> bool:
        """Remove a key from the local (default) or global layer; True if it existed."""
        self._ensure_loaded()
        segments = parse_path(path)
        target = ConfigLayer.GLOBAL if from_global else ConfigLayer.LOCAL

        proposed = copy.deepcopy(self._layers[target])
        if not delete_in(proposed, segments):
            return False
        layers = {**self._layers, target: proposed}

        merged = self._propose(layers)
        self._commit(layers, merged)
        log_configuration_change(format_path(segments), f"<{target.value}>", "<unset>")
        return True

    unset = delete

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _path_for(self, to_global: bool) -> Path:
        return self.global_path if to_global else self.local_path

    def save(self, to_global: bool = False) -> None:
        """
        Persist the local (default) or global layer with secrets masked.

        Raises:
            ConfigPersistenceError: If the directory or file cannot be written
        """
        self._ensure_loaded()
        target = ConfigLayer.GLOBAL if to_global else ConfigLayer.LOCAL
        save_layer(
            self._path_for(to_global),
            self._layers[target],
            is_global=to_global,
            secrets=self.secrets,
            schema=self.schema,
        )
        log_info(
            "config",
            f"Saved {target.value.lower()} configuration",
            context=str(self._path_for(to_global)),
        )

    def migrate_to_global(self) -> bool:
        """Merge the local layer into the global one, persist both, empty local."""
        self._ensure_loaded()
        local_data = self._layers[ConfigLayer.LOCAL]
        if not local_data:
            raise ConfigurationError(
                "No local configuration to migrate",
                operation="migrate",
                context={"path": str(self.local_path)},
            )

        global_data = deep_merge(self._layers[ConfigLayer.GLOBAL], local_data, self.schema)
        layers = {**self._layers, ConfigLayer.GLOBAL: global_data, ConfigLayer.LOCAL: {}}
        merged = self._propose(layers)

        save_layer(self.global_path, global_data, True, self.secrets, self.schema)
        save_layer(self.local_path, {}, False, self.secrets, self.schema)
        self._commit(layers, merged)
        return True

    def copy_from_global(self) -> bool:
        """Merge the global layer into the local one and persist local."""
        self._ensure_loaded()
        global_data = self._layers[ConfigLayer.GLOBAL]
        if not global_data:
            raise ConfigurationError(
                "No global configuration to copy",
                operation="copy",
                context={"path": str(self.global_path)},
            )

        local_data = deep_merge(self._layers[ConfigLayer.LOCAL], global_data, self.schema)
        layers = {**self._layers, ConfigLayer.LOCAL: local_data}
        merged = self._propose(layers)

        save_layer(self.local_path, local_data, False, self.secrets, self.schema)
        self._commit(layers, merged)
        return True

    def clear(self, to_global: bool = False) -> None:
        """Empty the local (default) or global layer on disk, then reload."""
        self._ensure_loaded()
        save_layer(self._path_for(to_global), {}, to_global, self.secrets, self.schema)
        self.load()


_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Manager installed by the process entry point (built with defaults if none)."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def set_config_manager(manager: ConfigManager) -> None:
    global _config_manager
    _config_manager = manager


def reset_config_manager_for_tests() -> None:
    """Drop the installed manager so the next caller builds a fresh one."""
    global _config_manager
    _config_manager = None
