# File: modulegen/rules.py
"""
ModuleGen - Validation Rule Synthesizer
=========================================
Builds the flat ``{dotted.path: "rule|rule"}`` map of a form request.

For ``Author`` nesting ``books`` (hasMany) which nests ``chapters``::

    'name'                   => 'required|string',
    'books'                  => 'nullable|array',
    'books.*'                => 'required|array',
    'books.*.id'             => 'sometimes|integer|exists:books,id',
    'books.*.title'          => 'required|string',
    'books.*.chapters'       => 'nullable|array',
    'books.*.chapters.*'     => 'required|array',
    'books.*.chapters.*.id'  => 'sometimes|integer|exists:chapters,id',
    'books.*.chapters.*.no'  => 'required|integer',

Depth follows the nested-request tree, which already stops at cycles.  On
every level the related entity's back-reference column
(``snake(parent)_id``) is left out because the parent supplies it.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from modulegen.fields import guess_referenced_table
from modulegen.models import FieldSpec, FieldType, ModelConfiguration, NestedRelation, RelationKind
from modulegen.utils import to_table_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.rules")

RULE_INDENT: str = " " * 12

_TYPE_RULES: Dict[str, List[str]] = {
    FieldType.IMAGE.value: ["image", "mimes:jpeg,jpg,png,gif,webp,svg", "max:2048"],
    FieldType.FILE.value: ["file", "max:10240"],
    FieldType.STRING.value: ["string"],
    FieldType.TEXT.value: ["string"],
    FieldType.INTEGER.value: ["integer"],
    FieldType.BIG_INTEGER.value: ["integer"],
    FieldType.DECIMAL.value: ["numeric"],
    FieldType.DOUBLE.value: ["numeric"],
    FieldType.FLOAT.value: ["numeric"],
    FieldType.BOOLEAN.value: ["boolean"],
    FieldType.DATE.value: ["date"],
    FieldType.DATETIME.value: ["date"],
    FieldType.TIMESTAMP.value: ["date"],
    FieldType.JSON.value: ["array"],
}


def field_rule(spec: FieldSpec) -> str:
    """``required|string``, ``nullable|exists:users,id`` and so on."""
    rules: List[str] = ["nullable" if spec.is_nullable else "required"]
    if spec.is_foreign_id:
        table: str = spec.references or guess_referenced_table(spec.name)
        rules.append(f"exists:{table},id")
    else:
        rules.extend(_TYPE_RULES.get(spec.base_type, []))
    return "|".join(rules)


def _nested_rules(
    nodes: Sequence[NestedRelation],
    prefix: str,
    rules: Dict[str, str],
) -> None:
    for node in nodes:
        path: str = f"{prefix}{node.relation.request_key}"
        kind: str = node.relation.kind
        rules[path] = "nullable|array"

        if kind == RelationKind.BELONGS_TO_MANY.value:
            rules[f"{path}.*"] = f"exists:{to_table_name(node.relation.target)},id"
            continue

        if kind == RelationKind.HAS_MANY.value:
            rules[f"{path}.*"] = "required|array"
            # update() matches existing children on this key
            rules[f"{path}.*.id"] = (
                f"sometimes|integer|exists:{to_table_name(node.relation.target)},id"
            )
            item_prefix: str = f"{path}.*."
        else:
            item_prefix = f"{path}."

        for name, spec in node.fields.items():
            if name == node.back_reference:
                continue
            rules[f"{item_prefix}{name}"] = field_rule(spec)

        _nested_rules(node.children, item_prefix, rules)


def build_rules(config: ModelConfiguration) -> Dict[str, str]:
    """Ordered rule map: own fields first, then nested paths depth-first."""
    rules: Dict[str, str] = {name: field_rule(spec) for name, spec in config.fields.items()}
    _nested_rules(config.nested, "", rules)
    logger.debug("%s: %d validation rule(s).", config.studly_name, len(rules))
    return rules


def format_rules(rules: Dict[str, str]) -> str:
    """First line bare, continuation lines indented to sit inside ``return [``."""
    lines: List[str] = []
    for index, (path, rule) in enumerate(rules.items()):
        indent: str = "" if index == 0 else RULE_INDENT
        lines.append(f"{indent}'{path}' => '{rule}',")
    return "\n".join(lines).rstrip()


def synthesize_rules(config: ModelConfiguration) -> Dict[str, str]:
    """Placeholder map for the ``request`` stub."""
    return {
        "model": config.studly_name,
        "class": config.classes.request,
        "rules": format_rules(build_rules(config)),
    }


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "field_rule",
    "build_rules",
    "format_rules",
    "synthesize_rules",
]

logger.debug("modulegen.rules loaded.")
