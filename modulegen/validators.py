# File: modulegen/validators.py
"""
ModuleGen - Schema Validators
===============================
Pure-function validation pipeline run over the raw, YAML-loaded schema
mapping **before** any configuration is built or any file is touched.

Pydantic (``EntityDefinition``) checks the shape of a single entry.  This
module adds the cross-entity checks: unknown generation components, unknown
relation kinds, nested requests that point nowhere, ``foreignId`` fields
without a referenced table, and so on.

Errors abort the run (``SchemaValidationError``); warnings are carried into
the generation report.

Usage:
    from modulegen.validators import validate_schema
    result = validate_schema(raw_schema)
    if not result.is_valid:
        raise SchemaValidationError(result)
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from modulegen.fields import KNOWN_MODIFIERS, FieldSpecError, parse_field_spec
from modulegen.models import (
    GENERATE_COMPONENTS,
    EntityDefinition,
    FieldSpec,
    RelationDescriptor,
    RelationKind,
)
from modulegen.relations import normalize_relation_kind, parse_relations
from modulegen.utils import to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor (no Pydantic overhead)."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates ``ValidationError`` instances produced by the pipeline."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> Set[str]:
        return {item.code for item in self._items}

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are NO errors (i.e. valid)."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            prefix: str = "❌" if item.is_error else "⚠️"
            lines.append(f"  {prefix} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"       {k}: {v}")
        return "\n".join(lines)


class SchemaValidationError(ValueError):
    """Raised when a schema fails validation; carries the full result."""

    def __init__(self, result: ValidationResult) -> None:
        self.result: ValidationResult = result
        first: str = result.errors[0].message if result.errors else "invalid schema"
        super().__init__(f"Schema validation failed: {first}")


# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_STUDLY_RE: re.Pattern[str] = re.compile(r"^[A-Z][A-Za-z0-9]*$")

_KIND_VALUES: Set[str] = {kind.value for kind in RelationKind}


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_entity_names(schema: Mapping[str, Any]) -> ValidationResult:
    """Entity keys must be identifiers; non-Studly names get a warning."""
    result: ValidationResult = ValidationResult()
    seen: Dict[str, str] = {}

    for name in schema:
        key: str = str(name)
        ctx: Dict[str, Any] = {"entity": key}
        if not _IDENTIFIER_RE.match(key):
            result.add_error(
                "INVALID_ENTITY_NAME",
                f"Entity name '{key}' is not a valid identifier.",
                ctx,
            )
            continue
        if not _STUDLY_RE.match(key):
            result.add_warning(
                "ENTITY_NAME_NOT_STUDLY",
                f"Entity name '{key}' will be generated as '{to_studly_case(key)}'.",
                ctx,
            )
        studly: str = to_studly_case(key)
        if studly in seen:
            result.add_error(
                "DUPLICATE_ENTITY",
                f"Entities '{seen[studly]}' and '{key}' both map to '{studly}'.",
                ctx,
            )
        seen[studly] = key

    return result


def validate_entity_shapes(schema: Mapping[str, Any]) -> ValidationResult:
    """Every entry must be a mapping that ``EntityDefinition`` accepts."""
    result: ValidationResult = ValidationResult()

    for name, entry in schema.items():
        ctx: Dict[str, Any] = {"entity": name}
        if entry is None:
            entry = {}
        if not isinstance(entry, Mapping):
            result.add_error(
                "ENTITY_NOT_MAPPING",
                f"Entity '{name}' must be a mapping, got {type(entry).__name__}.",
                ctx,
            )
            continue
        try:
            EntityDefinition.model_validate(dict(entry))
        except PydanticValidationError as exc:
            for err in exc.errors():
                location: str = ".".join(str(part) for part in err.get("loc", ()))
                result.add_error(
                    "INVALID_ENTITY",
                    f"Entity '{name}' → {location or 'entry'}: {err.get('msg')}",
                    ctx,
                )

    return result


def _collect_components(generate: Any) -> List[str]:
    if isinstance(generate, Mapping):
        return [str(key) for key in generate]
    if isinstance(generate, (list, tuple)):
        return [str(item) for item in generate]
    return []


def validate_generate_toggles(
    schema: Mapping[str, EntityDefinition],
) -> ValidationResult:
    """Unknown component names in ``generate`` / ``generate_except`` are errors."""
    result: ValidationResult = ValidationResult()
    known: Set[str] = set(GENERATE_COMPONENTS)

    for name, definition in schema.items():
        names: List[str] = _collect_components(definition.generate)
        names.extend(definition.generate_except)
        for component in names:
            if component not in known:
                result.add_error(
                    "UNKNOWN_GENERATE_COMPONENT",
                    f"Entity '{name}': unknown generation component '{component}'. "
                    f"Expected one of: {', '.join(GENERATE_COMPONENTS)}.",
                    {"entity": name, "component": component},
                )

    return result


def validate_fields(schema: Mapping[str, EntityDefinition]) -> ValidationResult:
    """Field specs must parse; ``foreignId`` must name its table up front."""
    result: ValidationResult = ValidationResult()

    for name, definition in schema.items():
        if not definition.fields:
            result.add_warning(
                "NO_FIELDS",
                f"Entity '{name}' declares no fields.",
                {"entity": name},
            )
        for field_name, text in definition.fields.items():
            ctx: Dict[str, Any] = {"entity": name, "field": field_name}
            try:
                spec: FieldSpec = parse_field_spec(text, field_name)
            except FieldSpecError as exc:
                result.add_error("EMPTY_FIELD_SPEC", str(exc), ctx)
                continue

            if not spec.is_foreign_id:
                continue
            if spec.references is None:
                result.add_warning(
                    "FOREIGN_ID_WITHOUT_TABLE",
                    f"Entity '{name}': foreignId field '{field_name}' names no "
                    f"referenced table; the table will be guessed from the column.",
                    ctx,
                )
            elif spec.references.split("(", 1)[0] in KNOWN_MODIFIERS:
                result.add_warning(
                    "FOREIGN_ID_MODIFIER_AS_TABLE",
                    f"Entity '{name}': foreignId field '{field_name}' uses "
                    f"'{spec.references}' as its referenced table. Put the table "
                    f"name directly after 'foreignId'.",
                    ctx,
                )

    return result


def validate_relations(schema: Mapping[str, EntityDefinition]) -> ValidationResult:
    """Relation kinds must be known; targets should exist in the schema."""
    result: ValidationResult = ValidationResult()
    entities: Set[str] = {to_studly_case(name) for name in schema}

    for name, definition in schema.items():
        for raw_kind in definition.relations:
            if normalize_relation_kind(raw_kind) not in _KIND_VALUES:
                result.add_warning(
                    "UNKNOWN_RELATION_KIND",
                    f"Entity '{name}': unknown relation kind '{raw_kind}' is ignored.",
                    {"entity": name, "kind": raw_kind},
                )

        relations: Dict[str, RelationDescriptor] = parse_relations(definition.relations)
        for relation in relations.values():
            if relation.target not in entities:
                result.add_warning(
                    "UNKNOWN_RELATION_TARGET",
                    f"Entity '{name}': relation '{relation.name}' targets "
                    f"'{relation.target}', which is not defined in this schema.",
                    {"entity": name, "relation": relation.name},
                )

        keys: Set[str] = set(relations) | {r.request_key for r in relations.values()}

        for requested in definition.nested_requests:
            if requested not in keys:
                result.add_warning(
                    "DANGLING_NESTED_REQUEST",
                    f"Entity '{name}': nested request '{requested}' does not match "
                    f"any relation and will be skipped.",
                    {"entity": name, "nested_request": requested},
                )

        for relation_name in definition.with_relations:
            if relation_name not in keys:
                result.add_warning(
                    "UNKNOWN_WITH_RELATION",
                    f"Entity '{name}': eager-load relation '{relation_name}' is not "
                    f"declared.",
                    {"entity": name, "relation": relation_name},
                )

    return result


def validate_unique_constraints(
    schema: Mapping[str, EntityDefinition],
) -> ValidationResult:
    """Columns named in ``unique`` should be declared fields."""
    result: ValidationResult = ValidationResult()

    for name, definition in schema.items():
        for constraint in definition.unique:
            columns: List[str] = [constraint] if isinstance(constraint, str) else list(constraint)
            if not columns:
                result.add_error(
                    "EMPTY_UNIQUE_CONSTRAINT",
                    f"Entity '{name}' declares an empty unique constraint.",
                    {"entity": name},
                )
                continue
            for column in columns:
                if column not in definition.fields:
                    result.add_warning(
                        "UNIQUE_UNKNOWN_COLUMN",
                        f"Entity '{name}': unique constraint column '{column}' is "
                        f"not a declared field.",
                        {"entity": name, "column": column},
                    )

    return result


# ---------------------------------------------------------------------------
# Master entry point
# ---------------------------------------------------------------------------


def parse_entities(raw: Mapping[str, Any]) -> Dict[str, EntityDefinition]:
    """
    Build ``EntityDefinition`` objects for every entry in file order.

    Call only on a schema that passed :func:`validate_schema`.
    """
    return {
        str(name): EntityDefinition.model_validate(dict(entry or {}))
        for name, entry in raw.items()
    }


def validate_schema(raw: Any) -> ValidationResult:
    """
    Run every validator over a raw schema mapping.

    Shape errors stop the pipeline early because the cross-entity checks
    need well-formed ``EntityDefinition`` objects.
    """
    result: ValidationResult = ValidationResult()

    if not isinstance(raw, Mapping):
        result.add_error(
            "SCHEMA_NOT_MAPPING",
            f"Expected a mapping of entities at top level, got {type(raw).__name__}.",
        )
        return result
    if not raw:
        result.add_error("EMPTY_SCHEMA", "The schema defines no entities.")
        return result

    result.merge(validate_entity_names(raw))
    result.merge(validate_entity_shapes(raw))
    if result.has_errors:
        logger.error("Schema shape validation failed. %s", result.summary())
        return result

    entities: Dict[str, EntityDefinition] = parse_entities(raw)

    validators: List[Callable[[Mapping[str, EntityDefinition]], ValidationResult]] = [
        validate_generate_toggles,
        validate_fields,
        validate_relations,
        validate_unique_constraints,
    ]
    for validator_fn in validators:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(entities))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())
    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "SchemaValidationError",
    "validate_entity_names",
    "validate_entity_shapes",
    "validate_generate_toggles",
    "validate_fields",
    "validate_relations",
    "validate_unique_constraints",
    "parse_entities",
    "validate_schema",
]

logger.debug("modulegen.validators loaded — %d public symbols.", len(__all__))
