"""
Tests for the configuration schema registry and path helpers.
"""

import pytest

from taskwerk.core.config.registry import (
    CONFIG_SCHEMA,
    ConfigSection,
    SchemaField,
    delete_in,
    flatten,
    get_defaults,
    get_in,
    get_sensitive_fields,
    has_in,
    lookup_node,
    parse_path,
    set_in,
    unflatten,
)


class TestSchemaDeclarations:
    def test_sections_and_leaves_are_tagged(self):
        assert CONFIG_SCHEMA.kind == "section"
        assert CONFIG_SCHEMA.child("ai").kind == "section"
        assert lookup_node("ai.apiKey").kind == "leaf"
        assert lookup_node("git.protectedBranches").type == "array"

    def test_unknown_field_type_is_rejected(self):
        with pytest.raises(ValueError):
            SchemaField(type="date")

    def test_lookup_unknown_path_returns_none(self):
        assert lookup_node("general.nope") is None
        assert lookup_node("ai.apiKey.deeper") is None
        assert lookup_node("plugins") is None


class TestDefaults:
    def test_every_section_present(self):
        defaults = get_defaults()
        assert set(defaults) == set(CONFIG_SCHEMA.fields)

    def test_declared_defaults(self):
        defaults = get_defaults()
        assert defaults["general"]["defaultPriority"] == "medium"
        assert defaults["database"]["backupCount"] == 7
        assert defaults["git"]["protectedBranches"] == ["main", "master"]
        assert defaults["ai"]["apiKey"] == ""

    def test_fields_without_default_are_omitted(self):
        assert "headers" not in get_defaults()["ai"]

    def test_defaults_are_fresh_copies(self):
        first = get_defaults()
        first["git"]["protectedBranches"].append("develop")
        assert get_defaults()["git"]["protectedBranches"] == ["main", "master"]

    def test_custom_schema(self):
        schema = ConfigSection(
            name="",
            fields={
                "svc": ConfigSection(
                    name="svc",
                    fields={"port": SchemaField(type="integer", default=8080)},
                )
            },
        )
        assert get_defaults(schema) == {"svc": {"port": 8080}}


def test_sensitive_fields():
    assert get_sensitive_fields() == ["ai.apiKey"]


class TestPathHelpers:
    def test_parse_path(self):
        assert parse_path("ai.apiKey") == ("ai", "apiKey")
        assert parse_path(["ai", "apiKey"]) == ("ai", "apiKey")

    @pytest.mark.parametrize("bad", ["", "ai..apiKey", ".ai", "ai.", []])
    def test_parse_path_rejects_empty_segments(self, bad):
        with pytest.raises(ValueError):
            parse_path(bad)

    def test_get_in(self):
        data = {"a": {"b": {"c": 1}}, "s": "x"}
        assert get_in(data, "a.b.c") == 1
        assert get_in(data, "a.missing", "fallback") == "fallback"
        assert get_in(data, "s.deeper") is None
        assert has_in(data, "a.b")
        assert not has_in(data, "a.z")

    def test_set_in_creates_and_replaces_intermediates(self):
        data = {"a": "scalar"}
        set_in(data, "a.b.c", 3)
        assert data == {"a": {"b": {"c": 3}}}

    def test_delete_in(self):
        data = {"a": {"b": 1, "c": 2}}
        assert delete_in(data, "a.b") is True
        assert data == {"a": {"c": 2}}
        assert delete_in(data, "a.b") is False
        assert delete_in(data, "x.y") is False


class TestFlatten:
    def test_stops_at_schema_leaves(self):
        data = {"ai": {"headers": {"X-Trace": "1"}, "model": "m"}}
        flat = flatten(data, schema=CONFIG_SCHEMA)
        assert flat == {"ai.headers": {"X-Trace": "1"}, "ai.model": "m"}

    def test_without_schema_descends_into_every_mapping(self):
        assert flatten({"a": {"b": {"c": 1}}}) == {"a.b.c": 1}

    def test_empty_mapping_is_kept(self):
        assert flatten({"a": {}}) == {"a": {}}

    def test_unflatten(self):
        assert unflatten({"a.b": 1, "a.c": 2, "d": 3}) == {"a": {"b": 1, "c": 2}, "d": 3}
