# File: modulegen/__init__.py
"""
ModuleGen — Declarative CRUD Module Generator
===============================================

Turns a YAML schema of entities (fields, relations, nested requests) into
the source files of a Laravel-style CRUD module: Eloquent models, schema
migrations, form requests, JSON resources and collections, services,
controllers, factories, seeders and resource routes.  Every run can be
snapshotted and rolled back.

Architecture overview::

    ┌──────────────┐     ┌─────────────────┐     ┌──────────────────┐
    │  CLI / Entry │────▶│ ModuleGenerator │────▶│   synthesizers   │
    │   (cli.py)   │     │ (generator.py)  │     │ migration, rules,│
    └──────────────┘     └────────┬────────┘     │ crud, samples, … │
                                  │              └──────────────────┘
               ┌─────────────┬────┴──────┬─────────────┐
               ▼             ▼           ▼             ▼
        ┌────────────┐ ┌───────────┐ ┌────────┐ ┌───────────┐
        │ validators │ │ relations │ │ writer │ │  backup   │
        │ configura- │ │  fields   │ │ routes │ │ (rollback)│
        │    tion    │ │           │ │        │ │           │
        └────────────┘ └───────────┘ └────────┘ └───────────┘

Usage::

    # As a library
    from modulegen import ModuleGenerator, GeneratorSettings
    gen = ModuleGenerator(GeneratorSettings(base_path="./backend"))
    report = gen.generate_from_file()

    # From the command line
    python -m modulegen generate -f module/models.yaml -v

Public API:
    - ModuleGenerator    — Master orchestrator
    - GeneratorSettings  — Project-level settings model
    - ModelConfiguration — Canonical per-entity configuration
    - BackupManager      — Snapshot / rollback
    - parse_field_spec   — Field DSL parser
    - validate_schema    — Schema validation entry point
"""

from __future__ import annotations

__version__: str = "1.0.0"
__author__: str = "ModuleGen Team"
__license__: str = "MIT"

from modulegen.models import (
    ArtifactStatus,
    ArtifactType,
    ConflictPolicy,
    EntityDefinition,
    FieldSpec,
    FieldType,
    GenerateToggles,
    GeneratorSettings,
    ModelConfiguration,
    NestedRelation,
    RelationDescriptor,
    RelationKind,
)
from modulegen.fields import FieldSpecError, parse_field_spec, parse_fields
from modulegen.relations import RelationResolver, parse_relations
from modulegen.validators import SchemaValidationError, ValidationResult, validate_schema
from modulegen.configuration import (
    ArtifactPaths,
    build_configurations,
    build_model_configuration,
    normalize_generate_toggles,
)
from modulegen.stubs import StubNotFoundError, StubResolver, render_stub
from modulegen.samples import build_example_payload
from modulegen.routes import RouteRegistry, RouteResult
from modulegen.backup import BackupManager, BackupManifest, RollbackResult
from modulegen.writer import ArtifactOutcome, ArtifactWriter
from modulegen.generator import (
    GenerationReport,
    ModuleGenerator,
    load_schema_file,
    load_settings,
)
from modulegen.utils import Timer, to_camel_case, to_plural, to_snake_case, to_studly_case

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    # Version info
    "__version__",
    "__author__",
    "__license__",
    # Core orchestrator
    "ModuleGenerator",
    "GenerationReport",
    "load_schema_file",
    "load_settings",
    # Models
    "ArtifactStatus",
    "ArtifactType",
    "ConflictPolicy",
    "EntityDefinition",
    "FieldSpec",
    "FieldType",
    "GenerateToggles",
    "GeneratorSettings",
    "ModelConfiguration",
    "NestedRelation",
    "RelationDescriptor",
    "RelationKind",
    # Parsing & configuration
    "FieldSpecError",
    "parse_field_spec",
    "parse_fields",
    "RelationResolver",
    "parse_relations",
    "ArtifactPaths",
    "build_configurations",
    "build_model_configuration",
    "normalize_generate_toggles",
    # Validation
    "SchemaValidationError",
    "ValidationResult",
    "validate_schema",
    # Rendering
    "StubNotFoundError",
    "StubResolver",
    "render_stub",
    "build_example_payload",
    # File system
    "ArtifactOutcome",
    "ArtifactWriter",
    "RouteRegistry",
    "RouteResult",
    "BackupManager",
    "BackupManifest",
    "RollbackResult",
    # Utilities
    "Timer",
    "to_snake_case",
    "to_studly_case",
    "to_camel_case",
    "to_plural",
]
