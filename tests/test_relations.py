"""
tests/test_relations.py
Unit tests for modulegen.relations.

Tests cover:
- Relation kind normalisation and default accessor names
- Aliases and comma-separated relation lists
- Unknown relation kinds
- Nested-request tree construction across several levels
- Cycle protection for self- and mutually-referencing entities
- Unknown nested requests and non-nestable relations
- Related-model collection for imports
"""

from __future__ import annotations

from typing import Any, Dict, List

from modulegen.models import RelationKind
from modulegen.relations import (
    RelationResolver,
    default_relation_name,
    normalize_relation_kind,
    parse_relations,
)
from modulegen.validators import parse_entities


def _resolver(raw: Dict[str, Any]) -> RelationResolver:
    return RelationResolver(parse_entities(raw))


# ===========================================================================
# Tests for parse_relations
# ===========================================================================


class TestParseRelations:
    """Tests for turning a relations block into descriptors."""

    def test_kind_normalisation(self) -> None:
        assert normalize_relation_kind("has_many") == "hasMany"
        assert normalize_relation_kind("HasOne") == "hasOne"
        assert normalize_relation_kind("belongsToMany") == "belongsToMany"

    def test_default_names(self) -> None:
        assert default_relation_name("hasMany", "Book") == "books"
        assert default_relation_name("belongsToMany", "Tag") == "tags"
        assert default_relation_name("hasOne", "Profile") == "profile"
        assert default_relation_name("belongsTo", "OrderItem") == "orderItem"

    def test_comma_list_and_alias(self) -> None:
        relations = parse_relations({"hasMany": "Book, Chapter:sections"})
        assert list(relations) == ["books", "sections"]
        assert relations["sections"].target == "Chapter"
        assert relations["sections"].kind == RelationKind.HAS_MANY.value

    def test_list_form(self) -> None:
        relations = parse_relations({"belongs_to": ["Author", "Category"]})
        assert set(relations) == {"author", "category"}
        assert all(r.kind == RelationKind.BELONGS_TO.value for r in relations.values())

    def test_unknown_kind_is_skipped_with_warning(self) -> None:
        warnings: List[str] = []
        relations = parse_relations({"morphTo": "Image", "hasOne": "Profile"}, warnings, "Post")
        assert list(relations) == ["profile"]
        assert len(warnings) == 1
        assert "morphTo" in warnings[0]

    def test_empty_block(self) -> None:
        assert parse_relations(None) == {}
        assert parse_relations({}) == {}

    def test_request_key_is_snake_case(self) -> None:
        relations = parse_relations({"hasMany": "OrderItem"})
        assert relations["orderItems"].request_key == "order_items"


# ===========================================================================
# Tests for the nested-request tree
# ===========================================================================


class TestNestedTree:
    """Tests for RelationResolver.nested_tree()."""

    def test_example_schema_tree(self, schema_dict: Dict[str, Any]) -> None:
        resolver = _resolver(schema_dict)
        tree = resolver.nested_tree("Author")

        assert [node.relation.name for node in tree] == ["books", "profile"]
        books = tree[0]
        assert books.parent == "Author"
        assert books.back_reference == "author_id"
        assert "title" in books.fields
        assert books.attachment_fields == ["cover"]
        assert [child.relation.name for child in books.children] == ["chapters", "tags"]
        assert books.depth() == 2

    def test_belongs_to_many_is_a_leaf_without_fields(self, schema_dict: Dict[str, Any]) -> None:
        tree = _resolver(schema_dict).nested_tree("Book")
        tags = [node for node in tree if node.relation.name == "tags"][0]
        assert tags.relation.kind == RelationKind.BELONGS_TO_MANY.value
        assert tags.fields == {}
        assert tags.children == ()

    def test_self_reference_stops_at_first_level(self) -> None:
        raw = {
            "Category": {
                "fields": {"name": "string", "category_id": "foreignId:categories:nullable"},
                "relations": {"hasMany": "Category:children"},
                "nested_requests": ["children"],
            }
        }
        tree = _resolver(raw).nested_tree("Category")
        assert len(tree) == 1
        assert tree[0].children == (), "A target already on the path must become a leaf."
        assert "name" in tree[0].fields

    def test_mutual_cycle_terminates(self) -> None:
        raw = {
            "Team": {
                "fields": {"name": "string"},
                "relations": {"hasMany": "Member"},
                "nested_requests": ["members"],
            },
            "Member": {
                "fields": {"team_id": "foreignId:teams", "name": "string"},
                "relations": {"hasMany": "Team"},
                "nested_requests": ["teams"],
            },
        }
        tree = _resolver(raw).nested_tree("Team")
        members = tree[0]
        assert [child.relation.name for child in members.children] == ["teams"]
        assert members.children[0].children == ()
        assert members.depth() == 2

    def test_unknown_nested_request_warns(self) -> None:
        raw = {
            "Post": {
                "fields": {"title": "string"},
                "relations": {"hasMany": "Comment"},
                "nested_requests": ["comments", "ghosts"],
            },
            "Comment": {"fields": {"body": "text"}},
        }
        resolver = _resolver(raw)
        tree = resolver.nested_tree("Post")
        assert [node.relation.name for node in tree] == ["comments"]
        assert any("'ghosts'" in w for w in resolver.warnings)

    def test_belongs_to_cannot_be_nested(self) -> None:
        raw = {
            "Book": {
                "fields": {"title": "string"},
                "relations": {"belongsTo": "Author"},
                "nested_requests": ["author"],
            },
            "Author": {"fields": {"name": "string"}},
        }
        resolver = _resolver(raw)
        assert resolver.nested_tree("Book") == ()
        assert any("cannot be nested" in w for w in resolver.warnings)

    def test_undefined_target_warns_and_has_no_fields(self) -> None:
        raw = {
            "Post": {
                "fields": {"title": "string"},
                "relations": {"hasMany": "Comment"},
                "nested_requests": ["comments"],
            },
        }
        resolver = _resolver(raw)
        tree = resolver.nested_tree("Post")
        assert tree[0].fields == {}
        assert any("not defined in the schema" in w for w in resolver.warnings)

    def test_warnings_are_not_duplicated(self) -> None:
        raw = {
            "Post": {
                "fields": {"title": "string"},
                "nested_requests": ["ghosts"],
            },
        }
        resolver = _resolver(raw)
        resolver.nested_tree("Post")
        resolver.nested_tree("Post")
        assert len(resolver.warnings) == 1


# ===========================================================================
# Tests for collect_related_models
# ===========================================================================


class TestCollectRelatedModels:
    """Tests for the list of entities touched by nested logic."""

    def test_example_schema(self, schema_dict: Dict[str, Any]) -> None:
        related = _resolver(schema_dict).collect_related_models("Author")
        assert related == ["Book", "Chapter", "Profile"]

    def test_no_nested_requests(self, schema_dict: Dict[str, Any]) -> None:
        assert _resolver(schema_dict).collect_related_models("Tag") == []

    def test_cycle_does_not_recurse_forever(self) -> None:
        raw = {
            "Team": {
                "fields": {"name": "string"},
                "relations": {"hasMany": "Member"},
                "nested_requests": ["members"],
            },
            "Member": {
                "fields": {"name": "string"},
                "relations": {"hasMany": "Team"},
                "nested_requests": ["teams"],
            },
        }
        assert _resolver(raw).collect_related_models("Team") == ["Member"]
