"""Configuration schema registry and helpers."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import copy

FIELD_TYPES = ("string", "number", "integer", "boolean", "object", "array")

ConfigPath = Tuple[str, ...]

_MISSING = object()


@dataclass(frozen=True)
class SchemaField:
    """Declaration of a single configuration leaf."""

    kind: ClassVar[str] = "leaf"

    type: str
    default: Any = _MISSING
    enum: Optional[Tuple[Any, ...]] = None
    pattern: Optional[str] = None
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    sensitive: bool = False
    description: str = ""
    # Only meaningful for "object" and "array" leaves.
    properties: Optional[Mapping[str, "SchemaField"]] = None
    items: Optional["SchemaField"] = None

    def __post_init__(self) -> None:
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unknown schema type: {self.type}")
        if self.enum is not None:
            object.__setattr__(self, "enum", tuple(self.enum))
        if self.properties is not None:
            object.__setattr__(
                self, "properties", MappingProxyType(dict(self.properties))
            )

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


@dataclass(frozen=True)
class ConfigSection:
    """A named group of fields; sections nest to form the root schema."""

    kind: ClassVar[str] = "section"

    name: str
    fields: Mapping[str, Union[SchemaField, "ConfigSection"]]
    required: Tuple[str, ...] = ()
    additional_properties: bool = False
    description: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))
        object.__setattr__(self, "required", tuple(self.required))

    def child(self, key: str) -> Optional[Union[SchemaField, "ConfigSection"]]:
        return self.fields.get(key)


SchemaNode = Union[SchemaField, ConfigSection]


def _section(name: str, description: str, **fields: SchemaField) -> ConfigSection:
    return ConfigSection(name=name, fields=fields, description=description)


GENERAL = _section(
    "general",
    "General settings",
    defaultPriority=SchemaField(
        type="string",
        enum=("low", "medium", "high", "critical"),
        default="medium",
        description="Default priority for new tasks",
    ),
    defaultStatus=SchemaField(
        type="string",
        enum=("todo", "in-progress", "blocked", "done"),
        default="todo",
        description="Default status for new tasks",
    ),
    taskIdPrefix=SchemaField(
        type="string",
        default="TASK",
        pattern="^[A-Z]+$",
        description="Prefix for generated task IDs",
    ),
    dateFormat=SchemaField(
        type="string",
        default="YYYY-MM-DD",
        description="Date format for display",
    ),
)

DATABASE = _section(
    "database",
    "Database settings",
    path=SchemaField(
        type="string",
        default="~/.taskwerk/taskwerk.db",
        description="Path to the SQLite database file",
    ),
    backupEnabled=SchemaField(
        type="boolean", default=True, description="Enable automatic database backups"
    ),
    backupInterval=SchemaField(
        type="string",
        enum=("hourly", "daily", "weekly", "never"),
        default="daily",
        description="How often to backup the database",
    ),
    backupCount=SchemaField(
        type="integer",
        default=7,
        minimum=1,
        maximum=365,
        description="Number of backups to keep",
    ),
)

GIT = _section(
    "git",
    "Git integration settings",
    enabled=SchemaField(
        type="boolean", default=True, description="Enable git integration features"
    ),
    branchPrefix=SchemaField(
        type="string", default="task/", description="Prefix for task-related git branches"
    ),
    commitPrefix=SchemaField(
        type="string", default="task:", description="Prefix for task-related commits"
    ),
    autoCommit=SchemaField(
        type="boolean", default=False, description="Automatically commit task changes"
    ),
    autoPush=SchemaField(
        type="boolean", default=False, description="Automatically push commits to remote"
    ),
    protectedBranches=SchemaField(
        type="array",
        default=["main", "master"],
        items=SchemaField(type="string"),
        description="Branches that task commands never commit to directly",
    ),
)

AI = _section(
    "ai",
    "AI integration settings",
    enabled=SchemaField(
        type="boolean", default=False, description="Enable AI integration features"
    ),
    provider=SchemaField(
        type="string",
        enum=("openai", "claude", "mistral", "grok", "llama", "lmstudio", "ollama"),
        default="openai",
        description="AI provider to use",
    ),
    model=SchemaField(type="string", default="gpt-3.5-turbo", description="AI model to use"),
    apiKey=SchemaField(
        type="string",
        default="",
        sensitive=True,
        description="API key for the AI provider",
    ),
    baseUrl=SchemaField(
        type="string",
        default="",
        description="Base URL for API calls (for self-hosted models)",
    ),
    temperature=SchemaField(
        type="number",
        default=0.7,
        minimum=0,
        maximum=2,
        description="Temperature for AI responses",
    ),
    maxTokens=SchemaField(
        type="integer",
        default=2000,
        minimum=100,
        maximum=8000,
        description="Maximum tokens for AI responses",
    ),
    headers=SchemaField(
        type="object",
        description="Extra HTTP headers sent with every provider request",
    ),
)

OUTPUT = _section(
    "output",
    "Output settings",
    format=SchemaField(
        type="string",
        enum=("text", "json", "markdown", "csv"),
        default="text",
        description="Default output format",
    ),
    color=SchemaField(type="boolean", default=True, description="Enable colored output"),
    verbose=SchemaField(type="boolean", default=False, description="Enable verbose output"),
    quiet=SchemaField(
        type="boolean", default=False, description="Suppress non-essential output"
    ),
    timestamps=SchemaField(
        type="boolean", default=False, description="Include timestamps in output"
    ),
)

EXPORT = _section(
    "export",
    "Export settings",
    defaultFormat=SchemaField(
        type="string",
        enum=("json", "csv", "markdown", "html"),
        default="json",
        description="Default export format",
    ),
    includeArchived=SchemaField(
        type="boolean", default=False, description="Include archived tasks in exports"
    ),
    includeDeleted=SchemaField(
        type="boolean", default=False, description="Include deleted tasks in exports"
    ),
    exportPath=SchemaField(
        type="string", default="./exports", description="Default path for exports"
    ),
)

DEVELOPER = _section(
    "developer",
    "Developer settings",
    debug=SchemaField(type="boolean", default=False, description="Enable debug mode"),
    telemetry=SchemaField(
        type="boolean", default=False, description="Enable anonymous usage telemetry"
    ),
    experimental=SchemaField(
        type="boolean", default=False, description="Enable experimental features"
    ),
    logLevel=SchemaField(
        type="string",
        enum=("error", "warn", "info", "debug", "trace"),
        default="info",
        description="Logging level",
    ),
    logConsole=SchemaField(type="boolean", default=True, description="Enable console logging"),
    logFile=SchemaField(type="boolean", default=True, description="Enable file logging"),
    logDirectory=SchemaField(
        type="string", default="~/.taskwerk/logs", description="Directory for log files"
    ),
)

# Unknown top-level sections are tolerated; unknown keys inside a section are not.
CONFIG_SCHEMA = ConfigSection(
    name="",
    fields={
        section.name: section
        for section in (GENERAL, DATABASE, GIT, AI, OUTPUT, EXPORT, DEVELOPER)
    },
    additional_properties=True,
    description="taskwerk configuration",
)


def get_schema() -> ConfigSection:
    """Return the full field tree."""
    return CONFIG_SCHEMA


def parse_path(path: Union[str, Sequence[str]]) -> ConfigPath:
    """Turn ``"a.b"`` (or an existing segment sequence) into a typed path."""
    segments = tuple(path.split(".")) if isinstance(path, str) else tuple(path)
    if not segments or any(not isinstance(s, str) or not s for s in segments):
        raise ValueError(f"Invalid configuration path: {path!r}")
    return segments


def format_path(path: Union[str, Sequence[str]]) -> str:
    return path if isinstance(path, str) else ".".join(path)


def child_node(node: Optional[SchemaNode], key: str) -> Optional[SchemaNode]:
    """Schema node for ``key`` below ``node``; leaves have no schema children."""
    if node is None or node.kind != "section":
        return None
    return node.child(key)


def lookup_node(
    path: Union[str, Sequence[str]], schema: Optional[ConfigSection] = None
) -> Optional[SchemaNode]:
    """Walk a typed path against the schema tree; None when unknown."""
    node: Optional[SchemaNode] = schema or CONFIG_SCHEMA
    for segment in parse_path(path):
        node = child_node(node, segment)
        if node is None:
            return None
    return node


def get_in(data: Any, path: Union[str, Sequence[str]], default: Any = None) -> Any:
    """Value at ``path`` inside nested dicts, or ``default`` when any segment is absent."""
    cursor = data
    for segment in parse_path(path):
        if not isinstance(cursor, dict) or segment not in cursor:
            return default
        cursor = cursor[segment]
    return cursor


def has_in(data: Any, path: Union[str, Sequence[str]]) -> bool:
    return get_in(data, path, _MISSING) is not _MISSING


def set_in(data: Dict[str, Any], path: Union[str, Sequence[str]], value: Any) -> None:
    """Set ``value`` at ``path``, creating (or replacing non-dict) intermediates."""
    segments = parse_path(path)
    cursor = data
    for segment in segments[:-1]:
        if not isinstance(cursor.get(segment), dict):
            cursor[segment] = {}
        cursor = cursor[segment]
    cursor[segments[-1]] = value


def delete_in(data: Dict[str, Any], path: Union[str, Sequence[str]]) -> bool:
    """Remove the key at ``path``; returns whether it existed."""
    segments = parse_path(path)
    cursor: Any = data
    for segment in segments[:-1]:
        if not isinstance(cursor, dict) or segment not in cursor:
            return False
        cursor = cursor[segment]
    if isinstance(cursor, dict) and segments[-1] in cursor:
        del cursor[segments[-1]]
        return True
    return False


def _collect_defaults(section: ConfigSection) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, node in section.fields.items():
        if node.kind == "section":
            result[key] = _collect_defaults(node)
        elif node.has_default:
            result[key] = copy.deepcopy(node.default)
    return result


def get_defaults(schema: Optional[ConfigSection] = None) -> Dict[str, Any]:
    """
    Build the DEFAULT layer from the schema.

    Fields without a declared default are left out rather than set to None.
    """
    return _collect_defaults(schema or CONFIG_SCHEMA)


def _collect_sensitive(section: ConfigSection, prefix: str, out: List[str]) -> None:
    for key, node in section.fields.items():
        full_key = f"{prefix}.{key}" if prefix else key
        if node.kind == "section":
            _collect_sensitive(node, full_key, out)
        elif node.sensitive:
            out.append(full_key)


def get_sensitive_fields(schema: Optional[ConfigSection] = None) -> List[str]:
    """Dotted paths of every field flagged sensitive."""
    sensitive: List[str] = []
    _collect_sensitive(schema or CONFIG_SCHEMA, "", sensitive)
    return sensitive


def flatten(
    nested: Dict[str, Any],
    prefix: str = "",
    schema: Optional[SchemaNode] = None,
) -> Dict[str, Any]:
    """Flatten nested dict to dotpath map, keeping schema leaves whole."""
    items: Dict[str, Any] = {}
    for key, value in nested.items():
        full_key = f"{prefix}.{key}" if prefix else key
        node = child_node(schema, key)
        if isinstance(value, dict) and value and (node is None or node.kind == "section"):
            items.update(flatten(value, full_key, node))
        else:
            items[full_key] = value
    return items


def unflatten(dotmap: Dict[str, Any]) -> Dict[str, Any]:
    """Convert dotpath map to nested dict."""
    nested: Dict[str, Any] = {}
    for key, value in dotmap.items():
        parts = key.split(".")
        cursor = nested
        for part in parts[:-1]:
            if part not in cursor or not isinstance(cursor[part], dict):
                cursor[part] = {}
            cursor = cursor[part]
        cursor[parts[-1]] = value
    return nested
