# File: modulegen/models.py
"""
ModuleGen - Core Data Models
==============================
Pydantic V2 models for everything that flows through the pipeline:

    Schema file → EntityDefinition → ModelConfiguration → synthesizers

``EntityDefinition`` mirrors one raw schema entry exactly as the user wrote
it.  ``ModelConfiguration`` is the canonical, name-derived and frozen view
that every synthesizer consumes.  ``GeneratorSettings`` carries the
project-level knobs (paths, route mode, conflict policy).
"""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)

from modulegen.utils import to_snake_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.models")

# ---------------------------------------------------------------------------
# Enums - fixed sets used across the entire project
# ---------------------------------------------------------------------------


class FieldType(str, Enum):
    """Column types the synthesizers know about.  Others pass through."""

    STRING = "string"
    TEXT = "text"
    INTEGER = "integer"
    BIG_INTEGER = "bigInteger"
    BOOLEAN = "boolean"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    DATETIME = "dateTime"
    TIMESTAMP = "timestamp"
    JSON = "json"
    FOREIGN_ID = "foreignId"
    IMAGE = "image"
    FILE = "file"


class RelationKind(str, Enum):
    """Relation kinds accepted in a ``relations`` block."""

    BELONGS_TO = "belongsTo"
    HAS_ONE = "hasOne"
    HAS_MANY = "hasMany"
    BELONGS_TO_MANY = "belongsToMany"


class ArtifactType(str, Enum):
    """Every file kind the engine can place on disk for one entity."""

    MODEL = "model"
    MIGRATION = "migration"
    REQUEST = "request"
    RESOURCE = "resource"
    COLLECTION = "collection"
    SERVICE = "service"
    CONTROLLER = "controller"
    FACTORY = "factory"
    SEEDER = "seeder"


class ConflictPolicy(str, Enum):
    """What to do when an artifact already exists."""

    SKIP = "skip"
    PROMPT = "prompt"
    FORCE = "force"


class ArtifactStatus(str, Enum):
    """Outcome of one artifact write."""

    CREATED = "created"
    REPLACED = "replaced"
    SKIPPED = "skipped"
    FAILED = "failed"


ATTACHMENT_TYPES: Tuple[str, ...] = (FieldType.IMAGE.value, FieldType.FILE.value)

NESTABLE_KINDS: Tuple[str, ...] = (
    RelationKind.HAS_ONE.value,
    RelationKind.HAS_MANY.value,
    RelationKind.BELONGS_TO_MANY.value,
)

# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    use_enum_values=True,
    frozen=True,
    extra="forbid",
)


# ---------------------------------------------------------------------------
# Field & relation descriptors
# ---------------------------------------------------------------------------


class FieldSpec(BaseModel):
    """
    A parsed ``type:modifier:modifier`` field definition.

    ``modifiers`` keeps the declared order; the migration synthesizer emits
    modifier clauses in exactly this order.
    """

    model_config = _FROZEN_CONFIG

    name: str = Field(default="", description="Column name the spec belongs to.")
    raw: str = Field(..., description="The spec string as written.")
    base_type: str = Field(..., min_length=1, description="First token, e.g. 'string'.")
    references: Optional[str] = Field(
        default=None,
        description="Referenced table for foreignId (second token).",
    )
    modifiers: Tuple[str, ...] = Field(
        default=(), description="Remaining tokens in declared order."
    )

    @computed_field  # type: ignore[misc]
    @property
    def is_nullable(self) -> bool:
        return "nullable" in self.modifiers

    @computed_field  # type: ignore[misc]
    @property
    def is_unique(self) -> bool:
        return "unique" in self.modifiers

    @computed_field  # type: ignore[misc]
    @property
    def is_foreign_id(self) -> bool:
        return self.base_type == FieldType.FOREIGN_ID.value

    @computed_field  # type: ignore[misc]
    @property
    def is_attachment(self) -> bool:
        """image / file fields are uploaded rather than stored verbatim."""
        return self.base_type in ATTACHMENT_TYPES

    @computed_field  # type: ignore[misc]
    @property
    def default_expression(self) -> Optional[str]:
        """The first ``default`` modifier, if any."""
        for modifier in self.modifiers:
            if modifier.startswith("default"):
                return modifier
        return None

    def render(self) -> str:
        """Re-emit the DSL string (inverse of ``parse_field_spec``)."""
        tokens: List[str] = [self.base_type]
        if self.references is not None:
            tokens.append(self.references)
        tokens.extend(self.modifiers)
        return ":".join(tokens)

    def __repr__(self) -> str:
        return f"<FieldSpec {self.name}={self.render()}>"


class RelationDescriptor(BaseModel):
    """One named relation resolved from a ``relations`` block."""

    model_config = _FROZEN_CONFIG

    name: str = Field(..., min_length=1, description="Accessor / payload name.")
    kind: RelationKind = Field(..., description="Relation kind.")
    target: str = Field(..., min_length=1, description="Related entity (Studly).")

    @computed_field  # type: ignore[misc]
    @property
    def request_key(self) -> str:
        """Key the nested payload travels under (snake case)."""
        return to_snake_case(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def is_nestable(self) -> bool:
        return self.kind in NESTABLE_KINDS

    def __repr__(self) -> str:
        return f"<Relation {self.name}: {self.kind} {self.target}>"


class NestedRelation(BaseModel):
    """
    Node of a nested-request tree.

    ``parent`` is the entity that declared the nested request; ``children``
    are the related entity's own nested requests.
    """

    model_config = _FROZEN_CONFIG

    parent: str = Field(..., description="Entity declaring this nested request.")
    relation: RelationDescriptor
    fields: Dict[str, FieldSpec] = Field(
        default_factory=dict, description="Parsed fields of the related entity."
    )
    children: Tuple["NestedRelation", ...] = Field(default=())

    @computed_field  # type: ignore[misc]
    @property
    def attachment_fields(self) -> List[str]:
        return [name for name, spec in self.fields.items() if spec.is_attachment]

    @property
    def back_reference(self) -> str:
        """Column on the related entity pointing back at ``parent``."""
        return f"{to_snake_case(self.parent)}_id"

    def depth(self) -> int:
        if not self.children:
            return 1
        return 1 + max(child.depth() for child in self.children)


NestedRelation.model_rebuild()


# ---------------------------------------------------------------------------
# Raw schema entry
# ---------------------------------------------------------------------------

GenerateValue = Union[bool, str, List[str], Dict[str, bool], None]


class EntityDefinition(BaseModel):
    """
    One schema entry as written in the YAML file.

    Only shape is checked here; cross-entity checks (unknown toggle names,
    dangling nested requests) live in ``modulegen.validators``.
    """

    model_config = _SHARED_CONFIG

    fields: Dict[str, str] = Field(default_factory=dict)
    relations: Dict[str, Union[str, List[str], None]] = Field(default_factory=dict)
    nested_requests: List[str] = Field(default_factory=list)
    generate: GenerateValue = Field(default=None)
    generate_except: List[str] = Field(default_factory=list)
    with_relations: List[str] = Field(default_factory=list, alias="with")
    unique: List[Union[str, List[str]]] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def _stringify_field_specs(cls, v: object) -> object:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): "" if spec is None else str(spec) for k, spec in v.items()}
        return v

    @field_validator("relations", mode="before")
    @classmethod
    def _none_relations(cls, v: object) -> object:
        return {} if v is None else v

    @field_validator("nested_requests", "generate_except", "with_relations", mode="before")
    @classmethod
    def _listify(cls, v: object) -> object:
        if v is None:
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("generate")
    @classmethod
    def _only_all_string(cls, v: GenerateValue) -> GenerateValue:
        if isinstance(v, str) and v != "all":
            raise ValueError(f"generate must be a bool, 'all', a list or a map, got '{v}'.")
        return v


# ---------------------------------------------------------------------------
# Canonical configuration
# ---------------------------------------------------------------------------


class GenerateToggles(BaseModel):
    """Per-entity generation switches.  Unknown names are rejected."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    model: bool = True
    migration: bool = True
    controller: bool = True
    service: bool = True
    request: bool = True
    resource: bool = True
    collection: bool = True
    seeder: bool = False

    def enabled(self, component: str) -> bool:
        return bool(getattr(self, component, False))

    def enabled_components(self) -> List[str]:
        return [name for name, value in self.model_dump().items() if value]


GENERATE_COMPONENTS: Tuple[str, ...] = tuple(GenerateToggles.model_fields.keys())
DEFAULT_COMPONENTS: Tuple[str, ...] = tuple(
    name for name, info in GenerateToggles.model_fields.items() if info.default
)


class ArtifactClasses(BaseModel):
    """Class names of every artifact generated for one entity."""

    model_config = _FROZEN_CONFIG

    model: str
    controller: str
    service: str
    request: str
    resource: str
    collection: str
    factory: str
    seeder: str


class ModelConfiguration(BaseModel):
    """
    Canonical configuration for one entity.

    Immutable once built; every synthesizer reads from it and none of them
    touches the file system.
    """

    model_config = _FROZEN_CONFIG

    original_name: str
    studly_name: str
    camel_name: str
    plural_studly_name: str
    table_name: str
    classes: ArtifactClasses
    fields: Dict[str, FieldSpec] = Field(default_factory=dict)
    relations: Dict[str, RelationDescriptor] = Field(default_factory=dict)
    nested: Tuple[NestedRelation, ...] = Field(default=())
    toggles: GenerateToggles = Field(default_factory=GenerateToggles)
    with_relations: Tuple[str, ...] = Field(default=())
    unique_constraints: Tuple[Tuple[str, ...], ...] = Field(default=())

    @computed_field  # type: ignore[misc]
    @property
    def attachment_fields(self) -> List[str]:
        return [name for name, spec in self.fields.items() if spec.is_attachment]

    @computed_field  # type: ignore[misc]
    @property
    def has_nested_requests(self) -> bool:
        return len(self.nested) > 0

    @computed_field  # type: ignore[misc]
    @property
    def plural_camel_name(self) -> str:
        return self.plural_studly_name[0].lower() + self.plural_studly_name[1:]

    def __repr__(self) -> str:
        return (
            f"<ModelConfiguration {self.studly_name} "
            f"({len(self.fields)} fields, {len(self.relations)} relations, "
            f"{len(self.nested)} nested)>"
        )


# ---------------------------------------------------------------------------
# Project-level settings
# ---------------------------------------------------------------------------


class GeneratorSettings(BaseModel):
    """
    Project-wide settings.

    Relative paths are resolved against ``base_path``.
    """

    model_config = _SHARED_CONFIG

    base_path: str = Field(default=".", description="Project root artifacts are written under.")
    models_path: str = Field(
        default="module/models.yaml", description="Default schema file."
    )
    backup_path: str = Field(
        default="storage/app/backups", description="Backup root directory."
    )
    stub_path: Optional[str] = Field(
        default="module/stubs", description="Directory holding caller-supplied <key>.stub files."
    )
    use_default_stubs: bool = Field(
        default=True, description="Fall back to the packaged stubs when a file is missing."
    )
    api: bool = Field(default=True, description="Register api routes instead of web routes.")
    conflict_policy: ConflictPolicy = Field(
        default=ConflictPolicy.SKIP, description="Existing-artifact policy."
    )
    backup: bool = Field(default=True, description="Snapshot artifacts before writing.")
    keep_backups: int = Field(default=5, ge=1, description="Backups kept by cleanup.")

    def _resolve(self, value: str) -> Path:
        path: Path = Path(value)
        if path.is_absolute():
            return path
        return Path(self.base_path) / path

    @property
    def root(self) -> Path:
        return Path(self.base_path)

    @property
    def backup_root(self) -> Path:
        return self._resolve(self.backup_path)

    @property
    def schema_file(self) -> Path:
        return self._resolve(self.models_path)

    @property
    def stub_directory(self) -> Optional[Path]:
        return self._resolve(self.stub_path) if self.stub_path else None

    @property
    def routes_file(self) -> str:
        """Project-relative route registration file for the current mode."""
        return "routes/api.php" if self.api else "routes/web.php"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldType",
    "RelationKind",
    "ArtifactType",
    "ConflictPolicy",
    "ArtifactStatus",
    "ATTACHMENT_TYPES",
    "NESTABLE_KINDS",
    "FieldSpec",
    "RelationDescriptor",
    "NestedRelation",
    "EntityDefinition",
    "GenerateToggles",
    "GENERATE_COMPONENTS",
    "DEFAULT_COMPONENTS",
    "ArtifactClasses",
    "ModelConfiguration",
    "GeneratorSettings",
]

logger.debug("modulegen.models loaded.")
