"""
tests/test_configuration.py
Unit tests for modulegen.configuration and GeneratorSettings.

Tests cover:
- Generation toggle normalisation (every accepted form)
- Unknown toggle names
- Name variants and class names of a ModelConfiguration
- Default eager-load list and unique constraints
- Artifact paths, migration lookup and fresh migration names
- Settings path resolution
"""

from __future__ import annotations

import pathlib
from datetime import datetime
from typing import Any, Dict

import pytest
from pydantic import ValidationError

from modulegen.configuration import (
    ArtifactPaths,
    build_configurations,
    find_migrations,
    new_migration_name,
    normalize_generate_toggles,
)
from modulegen.models import GeneratorSettings, ModelConfiguration
from modulegen.validators import parse_entities


# ===========================================================================
# Tests for normalize_generate_toggles
# ===========================================================================


class TestGenerateToggles:
    """Every accepted ``generate`` form resolves to the right components."""

    def test_omitted_enables_defaults(self) -> None:
        toggles = normalize_generate_toggles(None)
        assert toggles.model and toggles.migration and toggles.controller
        assert not toggles.seeder, "Seeder must be opt-in."

    def test_true_and_all_match_defaults(self) -> None:
        assert normalize_generate_toggles(True) == normalize_generate_toggles(None)
        assert normalize_generate_toggles("all") == normalize_generate_toggles(None)

    def test_false_disables_everything(self) -> None:
        assert normalize_generate_toggles(False).enabled_components() == []

    def test_list_enables_exactly_listed(self) -> None:
        toggles = normalize_generate_toggles(["model", "seeder"])
        assert toggles.enabled_components() == ["model", "seeder"]

    def test_mapping_merges_over_defaults(self) -> None:
        toggles = normalize_generate_toggles({"seeder": True, "service": False})
        assert toggles.seeder
        assert not toggles.service
        assert toggles.controller

    def test_generate_except_applies_last(self) -> None:
        toggles = normalize_generate_toggles(["model", "migration"], ["migration"])
        assert toggles.enabled_components() == ["model"]

    def test_unknown_key_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown generation component 'views'"):
            normalize_generate_toggles({"views": True})

    def test_unknown_except_key_raises(self) -> None:
        with pytest.raises(ValueError):
            normalize_generate_toggles(None, ["policy"])

    def test_enabled_lookup(self) -> None:
        toggles = normalize_generate_toggles(None)
        assert toggles.enabled("request")
        assert not toggles.enabled("seeder")
        assert not toggles.enabled("nonexistent")


# ===========================================================================
# Tests for build_model_configuration
# ===========================================================================


class TestModelConfiguration:
    """Tests for the canonical configuration of one entity."""

    def test_name_variants(self) -> None:
        raw = {"OrderItem": {"fields": {"qty": "integer"}}}
        config = build_configurations(parse_entities(raw))[0]
        assert config.studly_name == "OrderItem"
        assert config.camel_name == "orderItem"
        assert config.plural_studly_name == "OrderItems"
        assert config.plural_camel_name == "orderItems"
        assert config.table_name == "order_items"

    def test_snake_entity_name_is_normalised(self) -> None:
        config = build_configurations(parse_entities({"order_item": {}}))[0]
        assert config.original_name == "order_item"
        assert config.studly_name == "OrderItem"

    def test_class_names(self, configs: Dict[str, ModelConfiguration]) -> None:
        classes = configs["Author"].classes
        assert classes.controller == "AuthorController"
        assert classes.service == "AuthorService"
        assert classes.request == "AuthorRequest"
        assert classes.resource == "AuthorResource"
        assert classes.collection == "AuthorCollection"
        assert classes.factory == "AuthorFactory"
        assert classes.seeder == "AuthorSeeder"

    def test_schema_order_is_kept(self, schema_dict: Dict[str, Any]) -> None:
        built = build_configurations(parse_entities(schema_dict))
        assert [c.studly_name for c in built] == list(schema_dict)

    def test_default_with_list_follows_nested_requests(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        assert configs["Author"].with_relations == ("books", "profile")
        assert configs["Category"].with_relations == ()

    def test_explicit_with_list_wins(self) -> None:
        raw = {
            "Post": {
                "relations": {"hasMany": "Comment", "belongsTo": "User"},
                "nested_requests": ["comments"],
                "with": ["comments", "user"],
            },
            "Comment": {"fields": {"body": "text"}},
            "User": {"fields": {"name": "string"}},
        }
        config = build_configurations(parse_entities(raw))[0]
        assert config.with_relations == ("comments", "user")

    def test_unique_constraints(self, configs: Dict[str, ModelConfiguration]) -> None:
        assert configs["Chapter"].unique_constraints == (("book_id", "number"),)

    def test_attachment_fields_and_nesting(self, configs: Dict[str, ModelConfiguration]) -> None:
        author = configs["Author"]
        assert author.attachment_fields == ["photo"]
        assert author.has_nested_requests
        assert not configs["Tag"].has_nested_requests

    def test_toggles_from_schema(self, configs: Dict[str, ModelConfiguration]) -> None:
        assert configs["Book"].toggles.seeder
        assert configs["Tag"].toggles.enabled_components() == ["model", "migration"]

    def test_configuration_is_frozen(self, configs: Dict[str, ModelConfiguration]) -> None:
        with pytest.raises(ValidationError):
            configs["Author"].table_name = "writers"  # type: ignore[misc]


# ===========================================================================
# Tests for ArtifactPaths
# ===========================================================================


class TestArtifactPaths:
    """Tests for project-relative artifact paths."""

    def test_fixed_paths(self, configs: Dict[str, ModelConfiguration]) -> None:
        paths = ArtifactPaths.for_config(configs["Author"])
        assert paths.model.as_posix() == "app/Models/Author.php"
        assert paths.controller.as_posix() == "app/Http/Controllers/AuthorController.php"
        assert paths.service.as_posix() == "app/Services/AuthorService.php"
        assert paths.request.as_posix() == "app/Http/Requests/AuthorRequest.php"
        assert paths.resource.as_posix() == "app/Http/Resources/Author/AuthorResource.php"
        assert paths.collection.as_posix() == "app/Http/Resources/Author/AuthorCollection.php"
        assert paths.factory.as_posix() == "database/factories/AuthorFactory.php"
        assert paths.seeder.as_posix() == "database/seeders/AuthorSeeder.php"

    def test_for_type(self, configs: Dict[str, ModelConfiguration]) -> None:
        paths = ArtifactPaths.for_config(configs["Author"])
        assert paths.for_type("model") == paths.model
        assert paths.for_type("migration") is None
        assert "migration" not in paths.fixed_paths()
        assert len(paths.fixed_paths()) == 8

    def test_fresh_migration_name(self) -> None:
        moment = datetime(2024, 5, 1, 12, 30, 5)
        assert new_migration_name("authors", moment) == "2024_05_01_123005_create_authors_table.php"

    def test_migration_uses_fresh_path_when_none_exists(
        self, configs: Dict[str, ModelConfiguration], project_root: pathlib.Path
    ) -> None:
        paths = ArtifactPaths.for_config(configs["Author"])
        relative = paths.migration(project_root, datetime(2024, 1, 2, 3, 4, 5))
        assert relative.as_posix() == (
            "database/migrations/2024_01_02_030405_create_authors_table.php"
        )

    def test_migration_reuses_existing_file(
        self, configs: Dict[str, ModelConfiguration], project_root: pathlib.Path
    ) -> None:
        directory = project_root / "database" / "migrations"
        directory.mkdir(parents=True)
        (directory / "2023_01_01_000000_create_authors_table.php").write_text("old")
        (directory / "2022_01_01_000000_create_authors_table.php").write_text("older")
        (directory / "2022_01_01_000000_create_author_books_table.php").write_text("other")

        found = find_migrations(project_root, "authors")
        assert [p.name for p in found] == [
            "2022_01_01_000000_create_authors_table.php",
            "2023_01_01_000000_create_authors_table.php",
        ]
        paths = ArtifactPaths.for_config(configs["Author"])
        assert paths.migration(project_root).name == "2022_01_01_000000_create_authors_table.php"

    def test_migration_glob(self, configs: Dict[str, ModelConfiguration]) -> None:
        paths = ArtifactPaths.for_config(configs["Book"])
        assert paths.migration_glob == "database/migrations/*_create_books_table.php"


# ===========================================================================
# Tests for GeneratorSettings
# ===========================================================================


class TestGeneratorSettings:
    """Tests for settings defaults and path resolution."""

    def test_defaults(self) -> None:
        settings = GeneratorSettings()
        assert settings.api
        assert settings.conflict_policy == "skip"
        assert settings.backup
        assert settings.keep_backups == 5
        assert settings.routes_file == "routes/api.php"

    def test_relative_paths_resolve_against_base(self, tmp_path: pathlib.Path) -> None:
        settings = GeneratorSettings(base_path=str(tmp_path), api=False)
        assert settings.schema_file == tmp_path / "module" / "models.yaml"
        assert settings.backup_root == tmp_path / "storage" / "app" / "backups"
        assert settings.stub_directory == tmp_path / "module" / "stubs"
        assert settings.routes_file == "routes/web.php"

    def test_absolute_path_is_kept(self, tmp_path: pathlib.Path) -> None:
        settings = GeneratorSettings(base_path="/srv/app", backup_path=str(tmp_path))
        assert settings.backup_root == tmp_path

    def test_invalid_policy_rejected(self) -> None:
        with pytest.raises(ValueError):
            GeneratorSettings(conflict_policy="overwrite")

    def test_keep_backups_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            GeneratorSettings(keep_backups=0)
