# File: modulegen/relations.py
"""
ModuleGen - Relation Resolver
===============================
Turns the ``relations`` block of a schema entry into named
``RelationDescriptor`` objects and expands ``nested_requests`` into
``NestedRelation`` trees.

Relations block shape::

    relations:
      hasMany: Book:books, Review
      belongsTo: Publisher
      belongsToMany: [Tag]

Each entry is ``Target`` or ``Target:alias``.  Without an alias the name is
``camel(Target)`` for belongsTo / hasOne and ``camel(plural(Target))`` for
hasMany / belongsToMany.

Nesting is driven by each entity on its own: the children of a nested
``books`` relation are whatever ``Book`` lists in *its* ``nested_requests``.
A visited set of entity names is threaded through every recursive walk so
two entities nesting each other terminate.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Mapping, Optional, Set, Tuple, Union

from modulegen.fields import parse_fields
from modulegen.models import (
    EntityDefinition,
    FieldSpec,
    NestedRelation,
    RelationDescriptor,
    RelationKind,
)
from modulegen.utils import to_camel_case, to_plural, to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.relations")

_KIND_VALUES: FrozenSet[str] = frozenset(kind.value for kind in RelationKind)
_PLURAL_KINDS: FrozenSet[str] = frozenset(
    {RelationKind.HAS_MANY.value, RelationKind.BELONGS_TO_MANY.value}
)

RelationBlock = Mapping[str, Union[str, List[str], None]]


# ---------------------------------------------------------------------------
# Relations block parsing
# ---------------------------------------------------------------------------


def normalize_relation_kind(kind: str) -> str:
    """``has_many`` / ``HasMany`` / ``hasMany`` → ``hasMany``."""
    return to_camel_case(str(kind).strip())


def _split_entries(value: Union[str, List[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [entry.strip() for entry in value.split(",") if entry.strip()]
    entries: List[str] = []
    for item in value:
        entries.extend(_split_entries(str(item)))
    return entries


def default_relation_name(kind: str, target: str) -> str:
    """Accessor name used when no ``:alias`` is given."""
    if kind in _PLURAL_KINDS:
        return to_camel_case(to_plural(target))
    return to_camel_case(target)


def parse_relations(
    block: Optional[RelationBlock],
    warnings: Optional[List[str]] = None,
    owner: str = "",
) -> Dict[str, RelationDescriptor]:
    """
    Parse a relations block into ``{name: RelationDescriptor}``.

    Unknown kinds are skipped; a message is appended to *warnings* when a
    list is supplied.  Later entries with the same name replace earlier
    ones, mirroring how the accessor methods would collide.
    """
    relations: Dict[str, RelationDescriptor] = {}
    if not block:
        return relations

    for raw_kind, value in block.items():
        kind: str = normalize_relation_kind(raw_kind)
        if kind not in _KIND_VALUES:
            message: str = (
                f"{owner or 'Entity'}: unknown relation kind '{raw_kind}' skipped."
            )
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            continue

        for entry in _split_entries(value):
            target_part, _, alias = entry.partition(":")
            target: str = to_studly_case(target_part.strip())
            if not target:
                continue
            name: str = alias.strip() or default_relation_name(kind, target)
            relations[name] = RelationDescriptor(name=name, kind=kind, target=target)

    return relations


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class RelationResolver:
    """
    Schema-wide view used to resolve nested requests across entities.

    Parsed relations and fields are cached per entity.  ``warnings`` holds
    every distinct non-fatal message produced so far, in order.
    """

    def __init__(self, schema: Mapping[str, EntityDefinition]) -> None:
        self._schema: Mapping[str, EntityDefinition] = schema
        self._index: Dict[str, str] = {to_studly_case(key): key for key in schema}
        self._relations: Dict[str, Dict[str, RelationDescriptor]] = {}
        self._fields: Dict[str, Dict[str, FieldSpec]] = {}
        self.warnings: List[str] = []
        self._seen_warnings: Set[str] = set()

    # -- Lookup -------------------------------------------------------------

    def _warn(self, message: str) -> None:
        if message in self._seen_warnings:
            return
        self._seen_warnings.add(message)
        self.warnings.append(message)
        logger.warning(message)

    def has_entity(self, name: str) -> bool:
        return to_studly_case(name) in self._index

    def definition(self, name: str) -> Optional[EntityDefinition]:
        key: Optional[str] = self._index.get(to_studly_case(name))
        return self._schema[key] if key is not None else None

    def relations_for(self, name: str) -> Dict[str, RelationDescriptor]:
        studly: str = to_studly_case(name)
        if studly not in self._relations:
            definition: Optional[EntityDefinition] = self.definition(studly)
            collected: List[str] = []
            self._relations[studly] = parse_relations(
                definition.relations if definition else None, collected, studly
            )
            for message in collected:
                self._warn(message)
        return self._relations[studly]

    def fields_for(self, name: str) -> Dict[str, FieldSpec]:
        studly: str = to_studly_case(name)
        if studly not in self._fields:
            definition: Optional[EntityDefinition] = self.definition(studly)
            self._fields[studly] = parse_fields(definition.fields) if definition else {}
        return self._fields[studly]

    # -- Nested requests ----------------------------------------------------

    def resolve_nested_requests(self, name: str) -> List[RelationDescriptor]:
        """
        Descriptors for the entity's ``nested_requests``, in declared order.

        Names are matched against relation names and their snake-case
        request keys.  Unknown names and ``belongsTo`` relations are skipped
        with a warning.
        """
        studly: str = to_studly_case(name)
        definition: Optional[EntityDefinition] = self.definition(studly)
        if definition is None:
            return []

        relations: Dict[str, RelationDescriptor] = self.relations_for(studly)
        by_key: Dict[str, RelationDescriptor] = {
            rel.request_key: rel for rel in relations.values()
        }

        resolved: List[RelationDescriptor] = []
        for requested in definition.nested_requests:
            descriptor: Optional[RelationDescriptor] = relations.get(requested) or by_key.get(
                requested
            )
            if descriptor is None:
                self._warn(
                    f"{studly}: nested request '{requested}' does not match any "
                    f"relation; skipped."
                )
                continue
            if not descriptor.is_nestable:
                self._warn(
                    f"{studly}: nested request '{requested}' is a {descriptor.kind} "
                    f"relation and cannot be nested; skipped."
                )
                continue
            if descriptor not in resolved:
                resolved.append(descriptor)
        return resolved

    def nested_tree(
        self,
        name: str,
        visited: Optional[FrozenSet[str]] = None,
    ) -> Tuple[NestedRelation, ...]:
        """
        Build the nested-request tree rooted at *name*.

        *visited* holds the entities on the current path; a target already on
        the path becomes a leaf.  belongsToMany relations never nest further
        because their payload is a list of ids.
        """
        studly: str = to_studly_case(name)
        path: FrozenSet[str] = (visited or frozenset()) | {studly}
        nodes: List[NestedRelation] = []

        for descriptor in self.resolve_nested_requests(studly):
            target: str = descriptor.target
            fields: Dict[str, FieldSpec] = {}
            children: Tuple[NestedRelation, ...] = ()

            if descriptor.kind != RelationKind.BELONGS_TO_MANY.value:
                if not self.has_entity(target):
                    self._warn(
                        f"{studly}: nested relation '{descriptor.name}' targets "
                        f"'{target}', which is not defined in the schema."
                    )
                else:
                    fields = self.fields_for(target)
                    if target in path:
                        logger.debug(
                            "Nested cycle %s -> %s stopped at depth %d.",
                            studly,
                            target,
                            len(path),
                        )
                    else:
                        children = self.nested_tree(target, path)

            nodes.append(
                NestedRelation(
                    parent=studly,
                    relation=descriptor,
                    fields=fields,
                    children=children,
                )
            )
        return tuple(nodes)

    def collect_related_models(
        self,
        name: str,
        visited: Optional[Set[str]] = None,
    ) -> List[str]:
        """
        Every entity touched by nested create/update logic below *name*.

        Order is first-seen, without duplicates.  *visited* is shared across
        the whole walk so each entity is expanded at most once.
        """
        studly: str = to_studly_case(name)
        seen: Set[str] = visited if visited is not None else set()
        seen.add(studly)
        collected: List[str] = []

        for descriptor in self.resolve_nested_requests(studly):
            if descriptor.kind == RelationKind.BELONGS_TO_MANY.value:
                continue
            target: str = descriptor.target
            if target not in collected:
                collected.append(target)
            if target in seen:
                continue
            for deeper in self.collect_related_models(target, seen):
                if deeper not in collected and deeper != studly:
                    collected.append(deeper)
        return collected


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "normalize_relation_kind",
    "default_relation_name",
    "parse_relations",
    "RelationResolver",
]

logger.debug("modulegen.relations loaded.")
