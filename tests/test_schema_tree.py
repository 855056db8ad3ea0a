"""Tests for schema tree helpers."""

import pytest

from helm_values.models.ref_mapping import RefMapping
from helm_values.services.schema_tree import (
    escape_pointer_segment,
    find_ref_parents,
    global_or_none,
    is_full_uri,
    is_simple_file,
    normalize_uri,
    object_node,
    prepare_embedded_schema,
    resolve_pointer,
    resolve_ref,
    split_not_blanks,
    to_uri_from,
    update_references_for,
)


class TestObjectNode:
    def test_creates_missing_nodes(self):
        schema = {}
        object_node(schema, "properties", "a")["type"] = "string"
        assert schema == {"properties": {"a": {"type": "string"}}}

    def test_replaces_non_object_nodes(self):
        schema = {"properties": True}
        object_node(schema, "properties", "a")
        assert schema == {"properties": {"a": {}}}

    def test_global_or_none(self):
        assert global_or_none({}) is None
        assert global_or_none({"properties": {"global": {"type": "object"}}}) == {"type": "object"}


class TestRefs:
    def test_find_ref_parents(self):
        schema = {
            "$ref": "#/a",
            "properties": {"b": {"$ref": "b.json"}},
            "allOf": [{"$ref": "c.json"}, {"type": "string"}],
        }
        assert [p["$ref"] for p in find_ref_parents(schema)] == ["#/a", "b.json", "c.json"]

    def test_update_references_with_first_matching_mapping(self):
        schema = {"properties": {"a": {"$ref": "http://repo/a/0.1.0/values.schema.json"}, "b": {"$ref": "#/b"}}}
        update_references_for(schema, [
            RefMapping(base_uri="http://repo/a/0.1.0/", mapped_base_uri="#/$defs/downloads/a/"),
            RefMapping(base_uri="http://repo/", mapped_base_uri="#/$defs/other/"),
        ])
        assert schema["properties"]["a"]["$ref"] == "#/$defs/downloads/a/values.schema.json"
        assert schema["properties"]["b"]["$ref"] == "#/b"

    @pytest.mark.parametrize("ref, expected", [
        ("http://repo/a.json", True),
        ("https://repo/a.json#/b", True),
        ("a.json", False),
        ("../a.json", False),
    ])
    def test_is_full_uri(self, ref, expected):
        assert is_full_uri(ref) is expected

    def test_is_simple_file(self):
        assert is_simple_file("a.json#/b")
        assert is_simple_file("other.schema.json#/$defs/x")
        assert not is_simple_file("../a.json")


class TestUris:
    @pytest.mark.parametrize("ref, expected", [
        ("other.json", "http://repo/apps/a/0.1.0/other.json"),
        ("other.json#/properties/b", "http://repo/apps/a/0.1.0/other.json#/properties/b"),
        ("../../b/0.2.0/values.schema.json", "http://repo/apps/b/0.2.0/values.schema.json"),
        ("http://other/c.json", "http://other/c.json"),
        ("http://other/../x/./c.json#/a", "http://other/x/c.json#/a"),
        ("http://localhost:1980/../../../../escaped.json", "http://localhost:1980/escaped.json"),
    ])
    def test_to_uri_from(self, ref, expected):
        assert to_uri_from(ref, "http://repo/apps/a/0.1.0/values.schema.json") == expected

    def test_to_uri_from_with_illegal_character(self):
        with pytest.raises(ValueError, match="Illegal character"):
            to_uri_from("other file.json", "http://repo/a/values.schema.json")

    def test_normalize_uri(self):
        assert normalize_uri("http://repo/a/./b/../c.json") == "http://repo/a/c.json"

    def test_split_not_blanks(self):
        assert split_not_blanks("a,, b,", ",") == ["a", " b"]


class TestPointers:
    def test_resolve_pointer(self):
        schema = {"$defs": {"downloads": {"a": {"values.schema.json": {"type": "object"}}}}}
        assert resolve_pointer(schema, "/$defs/downloads/a/values.schema.json") == {"type": "object"}
        assert resolve_pointer(schema, "/$defs/downloads/b") is None
        assert resolve_pointer(schema, "http://repo/a.json") is None

    def test_resolve_ref_unquotes_pointer(self):
        schema = {"$defs": {"a b": {"type": "string"}, "c%d": {"type": "integer"}}}
        assert resolve_ref(schema, "#/$defs/a%20b") == {"type": "string"}
        assert resolve_ref(schema, "#/$defs/c%25d") == {"type": "integer"}
        assert resolve_ref(schema, "#/$defs/missing") is None

    def test_escape_pointer_segment(self):
        assert escape_pointer_segment("a/b~c") == "a~1b~0c"

    def test_prepare_embedded_schema(self):
        schema = {
            "$schema": "https://json-schema.org/draft/2020-12/schema",
            "$id": "a/0.1.0/values.schema.json",
            "additionalProperties": False,
            "unevaluatedProperties": False,
            "properties": {"global": {"additionalProperties": False, "type": "object"}},
        }
        assert prepare_embedded_schema(schema) == {"properties": {"global": {"type": "object"}}}
