# File: modulegen/configuration.py
"""
ModuleGen - Model Configuration Builder
=========================================
Normalises one schema entry into the frozen ``ModelConfiguration`` every
synthesizer consumes, and derives the project-relative path of every
artifact an entity can produce.

Name variants for ``OrderItem``::

    studly_name         OrderItem
    camel_name          orderItem
    plural_studly_name  OrderItems
    table_name          order_items

Paths follow the usual Laravel layout (``app/Models``, ``app/Services``,
``app/Http/...``, ``database/...``).  Both the orchestrator and the backup
manager read them from here so they can never disagree.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from modulegen.fields import parse_fields
from modulegen.models import (
    DEFAULT_COMPONENTS,
    GENERATE_COMPONENTS,
    ArtifactClasses,
    ArtifactType,
    EntityDefinition,
    GenerateToggles,
    ModelConfiguration,
    NestedRelation,
)
from modulegen.relations import RelationResolver
from modulegen.utils import to_camel_case, to_plural, to_studly_case, to_table_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.configuration")

MIGRATION_DIRECTORY: str = "database/migrations"
MIGRATION_TIMESTAMP_FORMAT: str = "%Y_%m_%d_%H%M%S"


# ---------------------------------------------------------------------------
# Generation toggles
# ---------------------------------------------------------------------------


def _check_components(names: Iterable[str], source: str) -> List[str]:
    checked: List[str] = []
    for name in names:
        component: str = str(name).strip()
        if component not in GENERATE_COMPONENTS:
            raise ValueError(
                f"Unknown generation component '{component}' in {source}. "
                f"Expected one of: {', '.join(GENERATE_COMPONENTS)}."
            )
        checked.append(component)
    return checked


def normalize_generate_toggles(
    generate: Any = None,
    generate_except: Optional[Iterable[str]] = None,
) -> GenerateToggles:
    """
    Resolve every accepted ``generate`` form into a ``GenerateToggles``.

    * omitted / ``True`` / ``"all"`` → default components (seeder stays off)
    * ``False`` → nothing
    * list → exactly the listed components
    * mapping → merged over the defaults

    ``generate_except`` is applied last.  Unknown component names raise
    ``ValueError`` whatever form they arrive in.
    """
    enabled: Dict[str, bool] = {name: name in DEFAULT_COMPONENTS for name in GENERATE_COMPONENTS}

    if generate is None or generate is True or generate == "all":
        pass
    elif generate is False:
        enabled = {name: False for name in GENERATE_COMPONENTS}
    elif isinstance(generate, Mapping):
        for name in _check_components(generate.keys(), "generate"):
            enabled[name] = bool(generate[name])
    elif isinstance(generate, (list, tuple, set)):
        listed: List[str] = _check_components(generate, "generate")
        enabled = {name: name in listed for name in GENERATE_COMPONENTS}
    else:
        raise ValueError(
            f"generate must be a bool, 'all', a list or a mapping, got {generate!r}."
        )

    for name in _check_components(generate_except or (), "generate_except"):
        enabled[name] = False

    return GenerateToggles(**enabled)


# ---------------------------------------------------------------------------
# Configuration builder
# ---------------------------------------------------------------------------


def build_artifact_classes(studly: str) -> ArtifactClasses:
    return ArtifactClasses(
        model=studly,
        controller=f"{studly}Controller",
        service=f"{studly}Service",
        request=f"{studly}Request",
        resource=f"{studly}Resource",
        collection=f"{studly}Collection",
        factory=f"{studly}Factory",
        seeder=f"{studly}Seeder",
    )


def _unique_constraints(definition: EntityDefinition) -> Tuple[Tuple[str, ...], ...]:
    constraints: List[Tuple[str, ...]] = []
    for entry in definition.unique:
        columns: Tuple[str, ...] = (entry,) if isinstance(entry, str) else tuple(entry)
        if columns:
            constraints.append(columns)
    return tuple(constraints)


def build_model_configuration(
    name: str,
    definition: EntityDefinition,
    resolver: RelationResolver,
) -> ModelConfiguration:
    """
    Build the canonical configuration for one entity.

    Raises:
        FieldSpecError: A field spec is empty.
        ValueError: ``generate`` names an unknown component.
    """
    studly: str = to_studly_case(name)
    nested: Tuple[NestedRelation, ...] = resolver.nested_tree(studly)

    with_relations: List[str] = list(definition.with_relations)
    if not with_relations:
        with_relations = [node.relation.name for node in nested]

    config: ModelConfiguration = ModelConfiguration(
        original_name=name,
        studly_name=studly,
        camel_name=to_camel_case(studly),
        plural_studly_name=to_plural(studly),
        table_name=to_table_name(studly),
        classes=build_artifact_classes(studly),
        fields=parse_fields(definition.fields),
        relations=resolver.relations_for(studly),
        nested=nested,
        toggles=normalize_generate_toggles(definition.generate, definition.generate_except),
        with_relations=tuple(with_relations),
        unique_constraints=_unique_constraints(definition),
    )
    logger.debug("Built %r", config)
    return config


def build_configurations(
    schema: Mapping[str, EntityDefinition],
    resolver: Optional[RelationResolver] = None,
) -> List[ModelConfiguration]:
    """Configurations for every entity, in schema (file) order."""
    active: RelationResolver = resolver or RelationResolver(schema)
    return [build_model_configuration(name, entry, active) for name, entry in schema.items()]


# ---------------------------------------------------------------------------
# Artifact paths
# ---------------------------------------------------------------------------


def find_migrations(base: Path, table: str) -> List[Path]:
    """Existing ``*_create_{table}_table.php`` migrations, oldest first."""
    directory: Path = Path(base) / MIGRATION_DIRECTORY
    if not directory.is_dir():
        return []
    return sorted(directory.glob(migration_pattern(table)))


def migration_pattern(table: str) -> str:
    return f"*_create_{table}_table.php"


def new_migration_name(table: str, moment: Optional[datetime] = None) -> str:
    stamp: str = (moment or datetime.now()).strftime(MIGRATION_TIMESTAMP_FORMAT)
    return f"{stamp}_create_{table}_table.php"


@dataclass(frozen=True)
class ArtifactPaths:
    """
    Project-relative paths of every file one entity can produce.

    Migrations carry a timestamp, so only their glob pattern is fixed here;
    :meth:`migration` resolves the concrete path against a project root.
    """

    model: Path
    controller: Path
    service: Path
    request: Path
    resource: Path
    collection: Path
    factory: Path
    seeder: Path
    table: str

    @classmethod
    def for_config(cls, config: ModelConfiguration) -> "ArtifactPaths":
        classes: ArtifactClasses = config.classes
        studly: str = config.studly_name
        return cls(
            model=Path("app/Models") / f"{classes.model}.php",
            controller=Path("app/Http/Controllers") / f"{classes.controller}.php",
            service=Path("app/Services") / f"{classes.service}.php",
            request=Path("app/Http/Requests") / f"{classes.request}.php",
            resource=Path("app/Http/Resources") / studly / f"{classes.resource}.php",
            collection=Path("app/Http/Resources") / studly / f"{classes.collection}.php",
            factory=Path("database/factories") / f"{classes.factory}.php",
            seeder=Path("database/seeders") / f"{classes.seeder}.php",
            table=config.table_name,
        )

    @property
    def migration_glob(self) -> str:
        return f"{MIGRATION_DIRECTORY}/{migration_pattern(self.table)}"

    def migration(self, root: Path, moment: Optional[datetime] = None) -> Path:
        """Existing migration (first match) or a fresh timestamped path."""
        existing: List[Path] = find_migrations(root, self.table)
        if existing:
            return existing[0].relative_to(Path(root))
        return Path(MIGRATION_DIRECTORY) / new_migration_name(self.table, moment)

    def for_type(self, artifact: str) -> Optional[Path]:
        """Fixed path for *artifact*; ``None`` for migrations."""
        if artifact == ArtifactType.MIGRATION.value:
            return None
        return getattr(self, artifact)

    def fixed_paths(self) -> Dict[str, Path]:
        return {
            artifact.value: getattr(self, artifact.value)
            for artifact in ArtifactType
            if artifact is not ArtifactType.MIGRATION
        }


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "MIGRATION_DIRECTORY",
    "normalize_generate_toggles",
    "build_artifact_classes",
    "build_model_configuration",
    "build_configurations",
    "find_migrations",
    "migration_pattern",
    "new_migration_name",
    "ArtifactPaths",
]

logger.debug("modulegen.configuration loaded.")
