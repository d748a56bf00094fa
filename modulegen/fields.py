# File: modulegen/fields.py
"""
ModuleGen - Field DSL Parser
==============================
Parses the compact ``type:modifier:modifier`` grammar used in the
``fields`` block of a schema entry::

    title:        string:unique
    price:        decimal:nullable:default(0)
    category_id:  foreignId:categories:nullable
    cover:        image:nullable

Rules:
    - Tokens are split on ``:`` outside parentheses, so
      ``default('a:b')`` stays one token.
    - The first token is the base type.  Unknown types pass through
      untouched so new column types need no parser change.
    - For ``foreignId`` the second token is always the referenced table.
    - ``default(...)`` is recognised by prefix only.  A bare ``default``
      token directly followed by a value (``default:0``) is folded into a
      single ``default:0`` modifier.
    - Modifier order is preserved exactly.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional

from modulegen.models import FieldSpec, FieldType
from modulegen.utils import to_table_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.fields")


class FieldSpecError(ValueError):
    """Raised for a field spec that cannot be parsed at all."""


KNOWN_MODIFIERS: frozenset = frozenset({"nullable", "unique", "default"})


# ---------------------------------------------------------------------------
# Tokeniser
# ---------------------------------------------------------------------------


def split_tokens(text: str) -> List[str]:
    """
    Split *text* on ``:`` while ignoring colons inside parentheses.

    An unclosed ``(`` swallows the rest of the string into one token.
    """
    tokens: List[str] = []
    current: List[str] = []
    depth: int = 0

    for char in text:
        if char == "(":
            depth += 1
        elif char == ")" and depth > 0:
            depth -= 1

        if char == ":" and depth == 0:
            tokens.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tokens.append("".join(current).strip())
    return tokens


def _fold_bare_defaults(tokens: List[str]) -> List[str]:
    """Merge ``default`` + value token pairs into ``default:value``."""
    folded: List[str] = []
    i: int = 0
    while i < len(tokens):
        token: str = tokens[i]
        if token == "default" and i + 1 < len(tokens):
            folded.append(f"default:{tokens[i + 1]}")
            i += 2
            continue
        folded.append(token)
        i += 1
    return folded


# ---------------------------------------------------------------------------
# Public parser
# ---------------------------------------------------------------------------


def parse_field_spec(text: str, name: str = "") -> FieldSpec:
    """
    Parse one field definition string.

    Args:
        text: The DSL string, e.g. ``"foreignId:users:nullable"``.
        name: Column name, carried on the result for later lookups.

    Returns:
        A frozen ``FieldSpec``.

    Raises:
        FieldSpecError: If *text* is empty.
    """
    if text is None or not str(text).strip():
        raise FieldSpecError(f"Field '{name}' has an empty type definition.")

    tokens: List[str] = split_tokens(str(text).strip())
    base_type: str = tokens[0]
    if not base_type:
        raise FieldSpecError(f"Field '{name}' has no base type: '{text}'.")

    rest: List[str] = tokens[1:]
    references: Optional[str] = None

    if base_type == FieldType.FOREIGN_ID.value and rest:
        references = rest.pop(0)

    modifiers: List[str] = _fold_bare_defaults([t for t in rest if t])

    for modifier in modifiers:
        head: str = modifier.split("(", 1)[0].split(":", 1)[0]
        if head not in KNOWN_MODIFIERS:
            logger.debug(
                "Field '%s': modifier '%s' is not rendered by the migration synthesizer.",
                name,
                modifier,
            )

    return FieldSpec(
        name=name,
        raw=str(text).strip(),
        base_type=base_type,
        references=references,
        modifiers=tuple(modifiers),
    )


def parse_fields(fields: Mapping[str, str]) -> Dict[str, FieldSpec]:
    """Parse a whole ``fields`` block, keeping declaration order."""
    return {name: parse_field_spec(spec, name) for name, spec in fields.items()}


def guess_referenced_table(field_name: str) -> str:
    """
    Table a ``*_id`` column points at when its definition names none.

    ``category_id`` → ``categories``; ``author`` → ``authors``.
    """
    stem: str = field_name[:-3] if field_name.endswith("_id") else field_name
    return to_table_name(stem)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldSpecError",
    "KNOWN_MODIFIERS",
    "split_tokens",
    "parse_field_spec",
    "parse_fields",
    "guess_referenced_table",
]

logger.debug("modulegen.fields loaded.")
