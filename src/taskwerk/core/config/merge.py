"""Layer precedence, deep merge and per-path source attribution."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Union
import copy

from .registry import ConfigSection, SchemaNode, child_node, format_path, get_schema


class ConfigLayer(str, Enum):
    """Configuration sources, lowest precedence first."""

    DEFAULT = "DEFAULT"
    GLOBAL = "GLOBAL"
    LOCAL = "LOCAL"
    ENV = "ENV"

    @property
    def priority(self) -> int:
        return LAYER_ORDER.index(self)

    def __str__(self) -> str:
        return self.value


LAYER_ORDER = (ConfigLayer.DEFAULT, ConfigLayer.GLOBAL, ConfigLayer.LOCAL, ConfigLayer.ENV)


def _is_branch(node: Optional[SchemaNode]) -> bool:
    # Unknown keys fall back to structural merging.
    return node is None or node.kind == "section"


def deep_merge(
    target: Mapping[str, Any],
    source: Mapping[str, Any],
    node: Optional[SchemaNode] = None,
) -> Dict[str, Any]:
    """
    Merge ``source`` over ``target`` into a new dict.

    Mappings under section keys merge key-wise; leaves (arrays, scalars and
    object-typed fields) are replaced wholesale. Neither input is mutated.
    """
    output = copy.deepcopy(dict(target))
    for key, value in source.items():
        key_node = child_node(node, key)
        if (
            isinstance(value, dict)
            and isinstance(output.get(key), dict)
            and _is_branch(key_node)
        ):
            output[key] = deep_merge(output[key], value, key_node)
        else:
            output[key] = copy.deepcopy(value)
    return output


def merge_layers(
    layers: Mapping[ConfigLayer, Optional[Mapping[str, Any]]],
    schema: Optional[ConfigSection] = None,
) -> Dict[str, Any]:
    """Merge the loaded layers in precedence order: DEFAULT, GLOBAL, LOCAL, ENV."""
    schema = schema or get_schema()
    merged: Dict[str, Any] = {}
    for layer in LAYER_ORDER:
        data = layers.get(layer)
        if data:
            merged = deep_merge(merged, data, schema)
    return merged


class SourceMap:
    """
    Tracks which layer supplied each effective leaf.

    Claims are monotonic within a load cycle: a lower-precedence layer never
    takes over a path already claimed by a higher-precedence one.
    """

    def __init__(self, schema: Optional[ConfigSection] = None):
        self.schema = schema or get_schema()
        self._sources: Dict[str, ConfigLayer] = {}

    def reset(self) -> None:
        self._sources.clear()

    def claim(self, path: Union[str, Sequence[str]], layer: ConfigLayer) -> bool:
        key = format_path(path)
        current = self._sources.get(key)
        if current is not None and current.priority > layer.priority:
            return False
        self._sources[key] = layer
        return True

    def track(self, layer_data: Optional[Mapping[str, Any]], layer: ConfigLayer) -> None:
        """Walk every leaf path in ``layer_data`` and attribute it to ``layer``."""
        if layer_data:
            self._track(layer_data, layer, "", self.schema)

    def _track(
        self,
        data: Mapping[str, Any],
        layer: ConfigLayer,
        prefix: str,
        node: Optional[SchemaNode],
    ) -> None:
        for key, value in data.items():
            full_key = f"{prefix}.{key}" if prefix else key
            key_node = child_node(node, key)
            if isinstance(value, dict) and _is_branch(key_node):
                self._track(value, layer, full_key, key_node)
            else:
                self.claim(full_key, layer)

    def get(self, path: Union[str, Sequence[str]]) -> ConfigLayer:
        return self._sources.get(format_path(path), ConfigLayer.DEFAULT)

    def as_dict(self) -> Dict[str, ConfigLayer]:
        return dict(self._sources)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and path in self._sources

    def __len__(self) -> int:
        return len(self._sources)


def build_source_map(
    layers: Mapping[ConfigLayer, Optional[Mapping[str, Any]]],
    schema: Optional[ConfigSection] = None,
) -> SourceMap:
    """Attribute every leaf of the given layers from scratch."""
    sources = SourceMap(schema)
    for layer in LAYER_ORDER:
        sources.track(layers.get(layer), layer)
    return sources
