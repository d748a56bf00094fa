# File: modulegen/migration.py
"""
ModuleGen - Migration Synthesizer
===================================
Turns an entity's fields into ``Schema::create`` column statements.

One statement per field, in declaration order::

    $table->string('title')->unique();
    $table->decimal('price')->nullable()->default(0);
    $table->foreignId('category_id')->constrained('categories')->cascadeOnDelete();

Modifier clauses are appended in exactly the order they were declared.
Unique constraints from the entity's ``unique`` list follow the columns.

Placement (replace an existing ``*_create_{table}_table.php`` wholesale,
otherwise create a fresh timestamped file) is decided by the orchestrator;
this module never touches the file system.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Sequence, Tuple

from modulegen.models import FieldSpec, FieldType, ModelConfiguration
from modulegen.stubs import MIGRATION_FALLBACK_STUB, StubNotFoundError, StubResolver, render_stub

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.migration")

COLUMN_INDENT: str = " " * 12

# Schema types that are stored as a plain column of another type.
_COLUMN_TYPE_MAP: Dict[str, str] = {
    FieldType.IMAGE.value: "string",
    FieldType.FILE.value: "string",
}

_NUMERIC_RE: re.Pattern[str] = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")


def map_column_type(base_type: str) -> str:
    return _COLUMN_TYPE_MAP.get(base_type, base_type)


def render_default(modifier: str) -> str:
    """
    ``default:<value>`` → ``->default(<php literal>)``.

    ``null`` / ``true`` / ``false`` and numbers are emitted bare, anything
    else is single-quoted after stripping surrounding quotes.
    """
    value: str = modifier[len("default"):].strip().strip(":").strip()
    lowered: str = value.lower()

    if lowered == "null":
        return "->default(null)"
    if lowered in ("true", "false"):
        return f"->default({value})"
    if _NUMERIC_RE.match(value):
        return f"->default({value})"
    unquoted: str = value.strip("'\"")
    return f"->default('{unquoted}')"


def render_modifier(modifier: str) -> str:
    """One modifier clause; unsupported modifiers render as nothing."""
    if modifier.startswith("default("):
        return f"->{modifier}"
    if modifier.startswith("default"):
        return render_default(modifier)
    if modifier in ("nullable", "unique"):
        return f"->{modifier}()"
    return ""


def build_column(spec: FieldSpec) -> str:
    """A single ``$table->...;`` line, newline-terminated."""
    clauses: str = "".join(render_modifier(m) for m in spec.modifiers)

    if spec.is_foreign_id:
        constrained: str = (
            f"->constrained('{spec.references}')" if spec.references else "->constrained()"
        )
        line: str = f"$table->foreignId('{spec.name}'){clauses}{constrained}->cascadeOnDelete()"
    else:
        line = f"$table->{map_column_type(spec.base_type)}('{spec.name}'){clauses}"

    return f"{COLUMN_INDENT}{line};\n"


def build_unique_constraints(constraints: Sequence[Tuple[str, ...]]) -> str:
    lines: List[str] = []
    for columns in constraints:
        if len(columns) == 1:
            lines.append(f"{COLUMN_INDENT}$table->unique('{columns[0]}');\n")
        else:
            joined: str = "', '".join(columns)
            lines.append(f"{COLUMN_INDENT}$table->unique(['{joined}']);\n")
    return "".join(lines)


def build_columns(config: ModelConfiguration) -> str:
    body: str = "".join(build_column(spec) for spec in config.fields.values())
    body += build_unique_constraints(config.unique_constraints)
    return body.rstrip()


def synthesize_migration(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``migration`` stub."""
    return {
        "table": config.table_name,
        "columns": build_columns(config),
    }


def render_migration(config: ModelConfiguration, stubs: StubResolver) -> Tuple[str, bool]:
    """
    Rendered migration text and whether the bare-table fallback was used.

    A missing migration stub is not an error here: the table is still
    created, just without the declared columns.
    """
    try:
        template: str = stubs.resolve("migration")
        fallback: bool = False
    except StubNotFoundError as exc:
        logger.warning("Using fallback migration stub for %s: %s", config.studly_name, exc)
        template = MIGRATION_FALLBACK_STUB
        fallback = True
    return render_stub(template, synthesize_migration(config)), fallback


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "map_column_type",
    "render_default",
    "render_modifier",
    "build_column",
    "build_unique_constraints",
    "build_columns",
    "synthesize_migration",
    "render_migration",
]

logger.debug("modulegen.migration loaded.")
