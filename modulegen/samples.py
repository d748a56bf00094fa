# File: modulegen/samples.py
"""
ModuleGen - Sample-Data Synthesizer
=====================================
Maps a field's name and type to a representative value.  The same
heuristics feed two consumers:

* the factory ``definition()`` body (PHP faker expressions), and
* example request payloads (plain JSON-ready Python values), including
  nested relation payloads.

Lookup order: ``foreignId``, attachments, name hints, then the base type.
Output is deterministic so re-running generation yields identical files.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from modulegen.models import (
    FieldSpec,
    FieldType,
    ModelConfiguration,
    NestedRelation,
    RelationKind,
)
from modulegen.utils import to_singular, to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.samples")

SKIPPED_COLUMNS: Tuple[str, ...] = ("id", "created_at", "updated_at", "deleted_at")
FACTORY_INDENT: str = " " * 12
UPLOAD_PLACEHOLDER: str = "<file upload>"

# (name fragments, faker expression, example value); first match wins.
_NAME_HINTS: Sequence[Tuple[Tuple[str, ...], str, Any]] = (
    (("email",), "$this->faker->unique()->safeEmail()", "jane.doe@example.com"),
    (("phone",), "$this->faker->phoneNumber()", "+1-555-0100"),
    (("url", "website"), "$this->faker->url()", "https://example.com"),
    (("address",), "$this->faker->address()", "221B Baker Street"),
    (("city",), "$this->faker->city()", "Springfield"),
    (("state",), "$this->faker->state()", "Oregon"),
    (("country",), "$this->faker->country()", "Canada"),
    (("postal", "zip"), "$this->faker->postcode()", "90210"),
    (("name",), "$this->faker->name()", "Jane Doe"),
    (("title",), "$this->faker->sentence(3)", "A sample title"),
    (("slug",), "$this->faker->unique()->slug()", "a-sample-title"),
    (("description", "comment"), "$this->faker->paragraph()", "Lorem ipsum dolor sit amet."),
    (("color",), "$this->faker->hexColor()", "#3366ff"),
)

_TYPE_SAMPLES: Dict[str, Tuple[str, Any]] = {
    FieldType.STRING.value: ("$this->faker->word()", "sample"),
    FieldType.TEXT.value: ("$this->faker->paragraph()", "Lorem ipsum dolor sit amet."),
    FieldType.INTEGER.value: ("$this->faker->numberBetween(1, 100)", 10),
    FieldType.BIG_INTEGER.value: ("$this->faker->numberBetween(1, 100000)", 1000),
    FieldType.BOOLEAN.value: ("$this->faker->boolean()", True),
    FieldType.DATE.value: ("$this->faker->date()", "2024-01-15"),
    FieldType.DATETIME.value: ("$this->faker->dateTime()", "2024-01-15 10:30:00"),
    FieldType.TIMESTAMP.value: ("$this->faker->dateTime()", "2024-01-15 10:30:00"),
    FieldType.DOUBLE.value: ("$this->faker->randomFloat(2, 0, 1000)", 99.5),
    FieldType.DECIMAL.value: ("$this->faker->randomFloat(2, 0, 1000)", 99.5),
    FieldType.FLOAT.value: ("$this->faker->randomFloat(2, 0, 1000)", 99.5),
    FieldType.JSON.value: ("[]", {}),
}
_FALLBACK_SAMPLE: Tuple[str, Any] = ("$this->faker->word()", "sample")


def _name_hint(name: str) -> Optional[Tuple[str, Any]]:
    lowered: str = name.lower()
    for fragments, faker, example in _NAME_HINTS:
        if any(fragment in lowered for fragment in fragments):
            return faker, example
    return None


def sample_for(spec: FieldSpec) -> Tuple[str, Any]:
    """``(faker expression, example value)`` for one field."""
    if spec.is_foreign_id:
        if spec.references:
            related: str = to_studly_case(to_singular(spec.references))
            return f"\\App\\Models\\{related}::factory()", 1
        return "1", 1
    if spec.is_attachment:
        return "null", UPLOAD_PLACEHOLDER
    return _name_hint(spec.name) or _TYPE_SAMPLES.get(spec.base_type, _FALLBACK_SAMPLE)


# ---------------------------------------------------------------------------
# Factory / seeder
# ---------------------------------------------------------------------------


def build_factory_fields(config: ModelConfiguration) -> str:
    lines: List[str] = [
        f"'{name}' => {sample_for(spec)[0]}"
        for name, spec in config.fields.items()
        if name not in SKIPPED_COLUMNS
    ]
    if not lines:
        return ""
    return FACTORY_INDENT + f",\n{FACTORY_INDENT}".join(lines) + ","


def synthesize_factory(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``factory`` stub."""
    return {"model": config.studly_name, "fields": build_factory_fields(config)}


def synthesize_seeder(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``seeder`` stub."""
    return {"model": config.studly_name}


# ---------------------------------------------------------------------------
# Example payloads
# ---------------------------------------------------------------------------


def _example_fields(fields: Dict[str, FieldSpec], skip: Sequence[str] = ()) -> Dict[str, Any]:
    return {
        name: sample_for(spec)[1]
        for name, spec in fields.items()
        if name not in SKIPPED_COLUMNS and name not in skip
    }


def _example_nested(nodes: Sequence[NestedRelation]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for node in nodes:
        key: str = node.relation.request_key
        if node.relation.kind == RelationKind.BELONGS_TO_MANY.value:
            payload[key] = [1, 2]
            continue
        item: Dict[str, Any] = _example_fields(node.fields, (node.back_reference,))
        item.update(_example_nested(node.children))
        payload[key] = [item] if node.relation.kind == RelationKind.HAS_MANY.value else item
    return payload


def build_example_payload(config: ModelConfiguration) -> Dict[str, Any]:
    """
    Example create payload for *config*, nested relations included.

    hasMany relations become a one-item list, hasOne an object and
    belongsToMany a list of ids.
    """
    payload: Dict[str, Any] = _example_fields(config.fields)
    payload.update(_example_nested(config.nested))
    return payload


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SKIPPED_COLUMNS",
    "UPLOAD_PLACEHOLDER",
    "sample_for",
    "build_factory_fields",
    "synthesize_factory",
    "synthesize_seeder",
    "build_example_payload",
]

logger.debug("modulegen.samples loaded.")
