"""
tests/test_synthesizers.py
Unit tests for the pure synthesizers and the stub layer.

Tests cover:
- Stub placeholder substitution and resolution order
- Migration column statements, modifier order, defaults, unique constraints
- Migration fallback when no stub resolves
- Validation rules, including nested dotted paths and back-reference skipping
- Model placeholders (fillable, casts, relations, accessors)
- Resource projection
- Factory fields and example payloads
"""

from __future__ import annotations

import pathlib
from typing import Dict

import pytest

from modulegen.fields import parse_field_spec
from modulegen.migration import (
    build_column,
    build_columns,
    render_default,
    render_migration,
    render_modifier,
)
from modulegen.models import ModelConfiguration
from modulegen.persistence import synthesize_model
from modulegen.resources import build_projection, synthesize_collection
from modulegen.rules import build_rules, field_rule, format_rules
from modulegen.samples import (
    UPLOAD_PLACEHOLDER,
    build_example_payload,
    build_factory_fields,
    sample_for,
)
from modulegen.stubs import (
    DEFAULT_STUBS,
    StubNotFoundError,
    StubResolver,
    placeholders_in,
    render_stub,
)


# ===========================================================================
# Tests for stubs
# ===========================================================================


class TestStubs:
    """Tests for placeholder rendering and stub lookup."""

    def test_render_bare_and_braced_keys(self) -> None:
        text = render_stub("{{ a }}-{{b}}-{{ c }}", {"a": "1", "{{ b }}": "2"})
        assert text == "1-2-{{ c }}", "Unknown placeholders must be left untouched."

    def test_placeholders_in(self) -> None:
        assert placeholders_in("{{ model }} {{ class }} {{model}}") == ["model", "class"]

    def test_every_default_stub_exists(self) -> None:
        for key in (
            "model", "migration", "request", "resource", "collection", "service",
            "service-relation", "controller", "controller-relation",
            "controller-without-service", "factory", "seeder",
        ):
            assert key in DEFAULT_STUBS, f"Missing default stub '{key}'."

    def test_custom_stub_wins(self, tmp_path: pathlib.Path) -> None:
        (tmp_path / "model.stub").write_text("custom {{ model }}", encoding="utf-8")
        resolver = StubResolver(tmp_path)
        assert resolver.render("model", {"model": "Author"}) == "custom Author"
        assert resolver.source("model") == str(tmp_path / "model.stub")
        assert resolver.source("seeder") == "default"

    def test_missing_stub_without_defaults(self, tmp_path: pathlib.Path) -> None:
        resolver = StubResolver(tmp_path, use_defaults=False)
        assert not resolver.has("model")
        assert resolver.source("model") == "missing"
        with pytest.raises(StubNotFoundError):
            resolver.resolve("model")


# ===========================================================================
# Tests for the migration synthesizer
# ===========================================================================


class TestMigration:
    """Tests for column statements and migration rendering."""

    def test_foreign_id_is_constrained_with_cascade(self) -> None:
        line = build_column(parse_field_spec("foreignId:categories", "category_id"))
        assert line.strip() == (
            "$table->foreignId('category_id')->constrained('categories')->cascadeOnDelete();"
        )

    def test_nullable_foreign_id(self) -> None:
        line = build_column(parse_field_spec("foreignId:categories:nullable", "category_id"))
        assert "->nullable()->constrained('categories')->cascadeOnDelete();" in line

    def test_foreign_id_without_table(self) -> None:
        line = build_column(parse_field_spec("foreignId", "user_id"))
        assert "->constrained()->cascadeOnDelete();" in line

    def test_modifiers_follow_declared_order(self) -> None:
        first = build_column(parse_field_spec("string:unique:nullable", "code"))
        second = build_column(parse_field_spec("string:nullable:unique", "code"))
        assert "$table->string('code')->unique()->nullable();" in first
        assert "$table->string('code')->nullable()->unique();" in second

    def test_attachment_is_string_column(self) -> None:
        line = build_column(parse_field_spec("image:nullable", "photo"))
        assert line.strip() == "$table->string('photo')->nullable();"

    def test_defaults(self) -> None:
        assert render_default("default:0") == "->default(0)"
        assert render_default("default:1.5") == "->default(1.5)"
        assert render_default("default:active") == "->default('active')"
        assert render_default("default:'draft'") == "->default('draft')"
        assert render_default("default:null") == "->default(null)"
        assert render_default("default:true") == "->default(true)"
        assert render_modifier("default(5)") == "->default(5)"
        assert render_modifier("index") == ""

    def test_book_columns(self, configs: Dict[str, ModelConfiguration]) -> None:
        lines = [line.strip() for line in build_columns(configs["Book"]).splitlines()]
        assert lines == [
            "$table->foreignId('author_id')->constrained('authors')->cascadeOnDelete();",
            "$table->foreignId('category_id')->nullable()->constrained('categories')"
            "->cascadeOnDelete();",
            "$table->string('title');",
            "$table->string('cover')->nullable();",
            "$table->decimal('price')->default(0);",
        ]

    def test_composite_unique_constraint(self, configs: Dict[str, ModelConfiguration]) -> None:
        columns = build_columns(configs["Chapter"])
        assert columns.endswith("$table->unique(['book_id', 'number']);")

    def test_render_with_default_stub(self, configs: Dict[str, ModelConfiguration]) -> None:
        text, fallback = render_migration(configs["Book"], StubResolver())
        assert not fallback
        assert "Schema::create('books'" in text
        assert "$table->string('title');" in text
        assert "Schema::dropIfExists('books');" in text

    def test_fallback_when_no_stub(self, configs: Dict[str, ModelConfiguration]) -> None:
        text, fallback = render_migration(configs["Book"], StubResolver(None, use_defaults=False))
        assert fallback
        assert "Schema::create('books'" in text
        assert "title" not in text, "Fallback migration must be a bare table."


# ===========================================================================
# Tests for the rules synthesizer
# ===========================================================================


class TestRules:
    """Tests for form request validation rules."""

    def test_field_rules(self) -> None:
        assert field_rule(parse_field_spec("string", "title")) == "required|string"
        assert field_rule(parse_field_spec("text:nullable", "bio")) == "nullable|string"
        assert field_rule(parse_field_spec("boolean", "active")) == "required|boolean"
        assert field_rule(parse_field_spec("json", "meta")) == "required|array"
        assert field_rule(parse_field_spec("file:nullable", "pdf")) == "nullable|file|max:10240"
        assert field_rule(parse_field_spec("uuid", "ref")) == "required"

    def test_foreign_id_rule(self) -> None:
        spec = parse_field_spec("foreignId:categories", "category_id")
        assert field_rule(spec) == "required|exists:categories,id"

    def test_foreign_id_rule_guesses_table(self) -> None:
        spec = parse_field_spec("foreignId", "user_id")
        assert field_rule(spec) == "required|exists:users,id"

    def test_book_rules(self, configs: Dict[str, ModelConfiguration]) -> None:
        rules = build_rules(configs["Book"])
        assert rules["author_id"] == "required|exists:authors,id"
        assert rules["category_id"] == "nullable|exists:categories,id"
        assert rules["cover"] == "nullable|image|mimes:jpeg,jpg,png,gif,webp,svg|max:2048"
        assert rules["price"] == "required|numeric"
        assert rules["tags"] == "nullable|array"
        assert rules["tags.*"] == "exists:tags,id"
        assert rules["chapters.*"] == "required|array"
        assert rules["chapters.*.number"] == "required|integer"
        assert "chapters.*.book_id" not in rules, "Back-reference must be left out."

    def test_deep_nested_paths(self, configs: Dict[str, ModelConfiguration]) -> None:
        rules = build_rules(configs["Author"])
        assert list(rules)[:3] == ["name", "email", "photo"]
        assert rules["books"] == "nullable|array"
        assert rules["books.*.title"] == "required|string"
        assert rules["books.*.category_id"] == "nullable|exists:categories,id"
        assert rules["books.*.chapters.*.title"] == "required|string"
        assert rules["books.*.tags.*"] == "exists:tags,id"
        assert rules["profile"] == "nullable|array"
        assert rules["profile.bio"] == "nullable|string"
        assert "books.*.author_id" not in rules
        assert "profile.author_id" not in rules

    def test_has_many_items_keep_their_id(self, configs: Dict[str, ModelConfiguration]) -> None:
        rules = build_rules(configs["Author"])
        assert rules["books.*.id"] == "sometimes|integer|exists:books,id"
        assert rules["books.*.chapters.*.id"] == "sometimes|integer|exists:chapters,id"
        assert list(rules).index("books.*.id") == list(rules).index("books.*") + 1
        assert "profile.id" not in rules
        assert "books.*.tags.*.id" not in rules

    def test_format_rules_indents_continuation_lines(self) -> None:
        text = format_rules({"name": "required|string", "email": "required|string"})
        first, second = text.split("\n")
        assert first == "'name' => 'required|string',"
        assert second == " " * 12 + "'email' => 'required|string',"


# ===========================================================================
# Tests for model and resource synthesizers
# ===========================================================================


class TestModelAndResource:
    """Tests for the model and resource placeholder maps."""

    def test_model_placeholders(self, configs: Dict[str, ModelConfiguration]) -> None:
        placeholders = synthesize_model(configs["Author"])
        assert placeholders["fillable"] == "'name',\n        'email',\n        'photo'"
        assert "public function books()" in placeholders["relations"]
        assert "return $this->hasMany(Book::class);" in placeholders["relations"]
        assert "return $this->hasOne(Profile::class);" in placeholders["relations"]
        assert "getPhotoAttribute" in placeholders["getter"]
        assert placeholders["use_statements"] == "", "HasFactory only with a seeder."

    def test_model_with_factory(self, configs: Dict[str, ModelConfiguration]) -> None:
        placeholders = synthesize_model(configs["Book"])
        assert "HasFactory" in placeholders["use_statements"]
        assert "'price' => 'float'" in placeholders["casts"]
        assert "belongsToMany(Tag::class)" in placeholders["relations"]

    def test_rendered_model(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = StubResolver().render("model", synthesize_model(configs["Author"]))
        assert "class Author extends Model" in text
        assert "{{" not in text, "Every model placeholder must be filled."

    def test_resource_projection(self, configs: Dict[str, ModelConfiguration]) -> None:
        lines = build_projection(configs["Author"])
        assert lines[0] == "'id' => $this->id,"
        assert "'email' => $this->email," in lines
        assert "'books' => $this->whenLoaded('books')," in lines

    def test_collection(self, configs: Dict[str, ModelConfiguration]) -> None:
        placeholders = synthesize_collection(configs["Author"])
        assert placeholders["class"] == "AuthorCollection"
        assert placeholders["modelVar"] == "author"


# ===========================================================================
# Tests for samples
# ===========================================================================


class TestSamples:
    """Tests for factory fields and example payloads."""

    def test_sample_lookup_order(self) -> None:
        assert sample_for(parse_field_spec("foreignId:authors", "author_id")) == (
            "\\App\\Models\\Author::factory()",
            1,
        )
        assert sample_for(parse_field_spec("image", "avatar_name"))[1] == UPLOAD_PLACEHOLDER
        assert sample_for(parse_field_spec("string", "contact_email"))[1] == "jane.doe@example.com"
        assert sample_for(parse_field_spec("integer", "stock")) == (
            "$this->faker->numberBetween(1, 100)",
            10,
        )
        assert sample_for(parse_field_spec("uuid", "ref"))[1] == "sample"

    def test_factory_fields(self, configs: Dict[str, ModelConfiguration]) -> None:
        fields = build_factory_fields(configs["Book"])
        assert "'author_id' => \\App\\Models\\Author::factory()," in fields
        assert "'category_id' => \\App\\Models\\Category::factory()," in fields
        assert "'title' => $this->faker->sentence(3)," in fields
        assert "'cover' => null," in fields

    def test_factory_is_deterministic(self, configs: Dict[str, ModelConfiguration]) -> None:
        assert build_factory_fields(configs["Author"]) == build_factory_fields(configs["Author"])

    def test_example_payload(self, configs: Dict[str, ModelConfiguration]) -> None:
        payload = build_example_payload(configs["Author"])
        assert payload == {
            "name": "Jane Doe",
            "email": "jane.doe@example.com",
            "photo": UPLOAD_PLACEHOLDER,
            "books": [
                {
                    "category_id": 1,
                    "title": "A sample title",
                    "cover": UPLOAD_PLACEHOLDER,
                    "price": 99.5,
                    "chapters": [{"number": 10, "title": "A sample title"}],
                    "tags": [1, 2],
                }
            ],
            "profile": {
                "bio": "Lorem ipsum dolor sit amet.",
                "website": "https://example.com",
            },
        }
