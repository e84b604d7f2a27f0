"""Layered configuration: schema registry, merge, validation and persistence."""

from .errors import (
    ConfigParseError,
    ConfigPersistenceError,
    ConfigurationError,
    ConfigValidationError,
)
from .registry import (
    CONFIG_SCHEMA,
    ConfigSection,
    SchemaField,
    flatten,
    format_path,
    get_defaults,
    get_in,
    get_schema,
    get_sensitive_fields,
    lookup_node,
    parse_path,
    unflatten,
)
from .coercion import coerce, parse_value
from .environment import ENV_PREFIX, export_to_env, get_env_name, load_from_env
from .merge import LAYER_ORDER, ConfigLayer, SourceMap, build_source_map, deep_merge, merge_layers
from .validation import ConfigViolation, ensure_valid, validate_config
from .persistence import (
    MASK_PLACEHOLDER,
    SecretStore,
    check_permissions,
    has_sensitive_data,
    load_layer,
    mask_sensitive,
    resolve_global_path,
    resolve_local_path,
    save_layer,
)
from .manager import (
    ConfigManager,
    get_config_manager,
    reset_config_manager_for_tests,
    set_config_manager,
)

__all__ = [
    "CONFIG_SCHEMA",
    "ENV_PREFIX",
    "LAYER_ORDER",
    "MASK_PLACEHOLDER",
    "ConfigLayer",
    "ConfigManager",
    "ConfigParseError",
    "ConfigPersistenceError",
    "ConfigSection",
    "ConfigValidationError",
    "ConfigViolation",
    "ConfigurationError",
    "SchemaField",
    "SecretStore",
    "SourceMap",
    "build_source_map",
    "check_permissions",
    "coerce",
    "deep_merge",
    "ensure_valid",
    "export_to_env",
    "flatten",
    "format_path",
    "get_config_manager",
    "get_defaults",
    "get_env_name",
    "get_in",
    "get_schema",
    "get_sensitive_fields",
    "has_sensitive_data",
    "load_from_env",
    "load_layer",
    "lookup_node",
    "mask_sensitive",
    "merge_layers",
    "parse_path",
    "parse_value",
    "reset_config_manager_for_tests",
    "resolve_global_path",
    "resolve_local_path",
    "save_layer",
    "set_config_manager",
    "unflatten",
    "validate_config",
]
