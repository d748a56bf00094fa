# File: modulegen/persistence.py
"""
ModuleGen - Persistence Model Synthesizer
===========================================
Fragments for the Eloquent model class: the ``$fillable`` list, one typed
accessor per relation, attribute casts, file-URL accessors for attachment
fields and the ``HasFactory`` trait when seeders are generated.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from modulegen.models import FieldType, ModelConfiguration, RelationDescriptor, RelationKind
from modulegen.utils import to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.persistence")

_RELATION_CLASS: Dict[str, str] = {
    RelationKind.HAS_ONE.value: "HasOne",
    RelationKind.HAS_MANY.value: "HasMany",
    RelationKind.BELONGS_TO.value: "BelongsTo",
    RelationKind.BELONGS_TO_MANY.value: "BelongsToMany",
}

_CASTS: Dict[str, str] = {
    FieldType.JSON.value: "array",
    FieldType.BOOLEAN.value: "boolean",
    FieldType.INTEGER.value: "integer",
    FieldType.FLOAT.value: "float",
    FieldType.DOUBLE.value: "float",
    FieldType.DECIMAL.value: "float",
    FieldType.DATE.value: "date",
    FieldType.DATETIME.value: "datetime",
    "datetime": "datetime",
    FieldType.TIMESTAMP.value: "datetime",
}

HAS_FACTORY_IMPORT: str = "use Illuminate\\Database\\Eloquent\\Factories\\HasFactory;"


def build_fillable(config: ModelConfiguration) -> str:
    return ",\n        ".join(f"'{name}'" for name in config.fields)


def build_relation_method(relation: RelationDescriptor) -> str:
    kind: str = relation.kind
    return (
        "\n\n"
        f"    public function {relation.name}(): "
        f"\\Illuminate\\Database\\Eloquent\\Relations\\{_RELATION_CLASS[kind]}\n"
        "    {\n"
        f"        return $this->{kind}({relation.target}::class);\n"
        "    }"
    )


def build_relations(config: ModelConfiguration) -> str:
    return "".join(build_relation_method(rel) for rel in config.relations.values())


def build_casts(config: ModelConfiguration) -> str:
    casts: List[str] = [
        f"'{name}' => '{_CASTS[spec.base_type]}'"
        for name, spec in config.fields.items()
        if spec.base_type in _CASTS
    ]
    if not casts:
        return ""
    return "\n            " + ",\n            ".join(casts) + ",\n        "


def build_getters(config: ModelConfiguration) -> str:
    """``getPhotoAttribute`` style accessors returning a public URL."""
    parts: List[str] = []
    for name in config.attachment_fields:
        parts.append(
            "\n\n"
            f"    public function get{to_studly_case(name)}Attribute($value): ?string\n"
            "    {\n"
            "        return getFileUrl($value);\n"
            "    }"
        )
    return "".join(parts)


def synthesize_model(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``model`` stub."""
    with_factory: bool = config.toggles.seeder
    return {
        "model": config.studly_name,
        "fillable": build_fillable(config),
        "relations": build_relations(config),
        "casts": build_casts(config),
        "getter": build_getters(config),
        "setter": "",
        "use_statements": f"{HAS_FACTORY_IMPORT}\n" if with_factory else "",
        "traits": "\n    use HasFactory;\n" if with_factory else "",
        "primary_key": "",
    }


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "build_fillable",
    "build_relation_method",
    "build_relations",
    "build_casts",
    "build_getters",
    "synthesize_model",
]

logger.debug("modulegen.persistence loaded.")
