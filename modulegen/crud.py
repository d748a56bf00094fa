# File: modulegen/crud.py
"""
ModuleGen - CRUD Orchestration Synthesizer
============================================
Emits the ``store`` / ``update`` / ``destroy`` method bodies of the service
(or of the controller when no service is generated).

Contract of the emitted code:

* nested-request keys are split off the payload (``Arr::only`` /
  ``Arr::except``) before the primary record is persisted;
* everything runs inside one ``DB::transaction``;
* per nested relation:

  ========== ============================ ===================================
  kind       store                        update
  ========== ============================ ===================================
  hasMany    create each item, recurse    update by id or create, keep-list,
                                          ``whereNotIn('id', keep)->delete()``
  hasOne     create one object, recurse   update-or-create, recurse
  belongsTo… ``sync`` the id list         ``sync`` the id list
  ========== ============================ ===================================

* attachment fields are uploaded at every level, replaced files are
  deleted only after the new row is persisted (see ``attachments``).

Variable names are derived from the relation path (``$booksChaptersData``)
so deeper levels never shadow their parents.  Every function here is pure:
configuration in, text out.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Sequence

from modulegen.attachments import (
    attachment_fields,
    capture_lines,
    image_name_lines,
    purge_lines,
    release_lines,
    upload_lines,
)
from modulegen.models import FieldSpec, ModelConfiguration, NestedRelation, RelationKind
from modulegen.utils import indent_lines, php_list, to_camel_case, to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.crud")

METHOD_LEVEL: int = 2  # method bodies sit 8 spaces deep
RESERVED_VARIABLES = frozenset({"data", "nested", "this", "imageName"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def record_variable(config: ModelConfiguration) -> str:
    """PHP variable (without ``$``) holding the primary record."""
    name: str = config.camel_name
    return f"{name}Record" if name in RESERVED_VARIABLES else name


def _path_name(prefix: str, key: str) -> str:
    return to_camel_case(f"{prefix}_{key}") if prefix else to_camel_case(key)


def _blocks(*blocks: Sequence[str]) -> List[str]:
    """Concatenate non-empty line blocks separated by one blank line."""
    lines: List[str] = []
    for block in blocks:
        if not block:
            continue
        if lines:
            lines.append("")
        lines.extend(block)
    return lines


def _split_lines(
    source: str,
    keys: Sequence[str],
    nested_var: str,
    data_var: str,
    extra_except: Sequence[str] = (),
) -> List[str]:
    except_keys: List[str] = list(keys) + list(extra_except)
    lines: List[str] = []
    if keys:
        lines.append(f"{nested_var} = Arr::only({source}, {php_list(keys)});")
    if except_keys:
        lines.append(f"{data_var} = Arr::except({source}, {php_list(except_keys)});")
    else:
        lines.append(f"{data_var} = {source};")
    return lines


def _child_keys(nodes: Sequence[NestedRelation]) -> List[str]:
    return [node.relation.request_key for node in nodes]


def _sync_lines(node: NestedRelation, parent_var: str, nested_var: str, verb: str) -> List[str]:
    key: str = node.relation.request_key
    return [
        f"// {verb} {node.relation.name}",
        f"if (array_key_exists('{key}', {nested_var})) {{",
        f"    {parent_var}->{node.relation.name}()->sync({nested_var}['{key}'] ?? []);",
        "}",
    ]


def has_attachments(fields: Mapping[str, FieldSpec], children: Sequence[NestedRelation]) -> bool:
    """True when the record or anything nested below it stores files."""
    if attachment_fields(fields):
        return True
    return any(
        has_attachments(child.fields, child.children)
        for child in children
        if child.relation.kind != RelationKind.BELONGS_TO_MANY.value
    )


def _purge_tree(
    fields: Mapping[str, FieldSpec],
    children: Sequence[NestedRelation],
    record_expr: str,
    prefix: str,
) -> List[str]:
    """Delete stored files of a record and of its nested records."""
    lines: List[str] = purge_lines(fields, record_expr)
    for child in children:
        if child.relation.kind == RelationKind.BELONGS_TO_MANY.value:
            continue
        if not has_attachments(child.fields, child.children):
            continue
        name: str = _path_name(prefix, child.relation.request_key)
        accessor: str = f"{record_expr}->{child.relation.name}"
        if child.relation.kind == RelationKind.HAS_MANY.value:
            item: str = f"${name}Item"
            inner: List[str] = _purge_tree(child.fields, child.children, item, name)
            lines.extend([f"foreach ({accessor} as {item}) {{", *indent_lines(inner), "}"])
        else:
            inner = _purge_tree(child.fields, child.children, accessor, name)
            lines.extend([f"if ({accessor}) {{", *indent_lines(inner), "}"])
    return lines


# ---------------------------------------------------------------------------
# store
# ---------------------------------------------------------------------------


def _store_node(node: NestedRelation, parent_var: str, nested_var: str, prefix: str) -> List[str]:
    relation = node.relation
    if relation.kind == RelationKind.BELONGS_TO_MANY.value:
        return _sync_lines(node, parent_var, nested_var, "Attach")

    name: str = _path_name(prefix, relation.request_key)
    source: str = f"{nested_var}['{relation.request_key}']"
    item_var: str = f"${name}Item"
    data_var: str = f"${name}Data"
    child_nested: str = f"${name}Nested"
    created: str = f"$created{to_studly_case(name)}"
    image_var: str = f"${name}ImageName"
    is_many: bool = relation.kind == RelationKind.HAS_MANY.value

    inner: List[str] = _blocks(
        _split_lines(item_var if is_many else source, _child_keys(node.children), child_nested, data_var),
        image_name_lines(node.fields, data_var, image_var)
        + upload_lines(node.fields, relation.target, data_var, image_var),
        [f"{created} = {parent_var}->{relation.name}()->create({data_var});"],
        store_relation_lines(node.children, created, child_nested, name),
    )

    if is_many:
        head: str = f"foreach ({source} ?? [] as {item_var}) {{"
    else:
        head = f"if (!empty({source})) {{"
    return [f"// Create {relation.name}", head, *indent_lines(inner), "}"]


def store_relation_lines(
    nodes: Sequence[NestedRelation],
    parent_var: str,
    nested_var: str = "$nested",
    prefix: str = "",
) -> List[str]:
    """Nested create logic for *nodes*, executed after the parent exists."""
    return _blocks(*(_store_node(node, parent_var, nested_var, prefix) for node in nodes))


def build_store_body(config: ModelConfiguration) -> List[str]:
    record: str = f"${record_variable(config)}"
    keys: List[str] = _child_keys(config.nested)
    uses: str = "$data, $nested" if keys else "$data"
    loaded: str = (
        f"return {record}->load([{with_list(config)}]);" if keys else f"return {record};"
    )

    inner: List[str] = _blocks(
        image_name_lines(config.fields, "$data") + upload_lines(config.fields, config.studly_name, "$data"),
        [f"{record} = {config.studly_name}::create($data);"],
        store_relation_lines(config.nested, record),
        [loaded],
    )
    return _blocks(
        _split_lines("$data", keys, "$nested", "$data") if keys else [],
        [f"return DB::transaction(function () use ({uses}) {{", *indent_lines(inner), "});"],
    )


# ---------------------------------------------------------------------------
# update
# ---------------------------------------------------------------------------


def _update_node(node: NestedRelation, parent_var: str, nested_var: str, prefix: str) -> List[str]:
    relation = node.relation
    if relation.kind == RelationKind.BELONGS_TO_MANY.value:
        return _sync_lines(node, parent_var, nested_var, "Sync")

    name: str = _path_name(prefix, relation.request_key)
    studly: str = to_studly_case(name)
    source: str = f"{nested_var}['{relation.request_key}']"
    item_var: str = f"${name}Item"
    data_var: str = f"${name}Data"
    child_nested: str = f"${name}Nested"
    record: str = f"${name}Record"
    image_var: str = f"${name}ImageName"
    accessor: str = f"{parent_var}->{relation.name}"
    is_many: bool = relation.kind == RelationKind.HAS_MANY.value

    if is_many:
        lookup: str = (
            f"{record} = isset({item_var}['id']) ? {accessor}()->find({item_var}['id']) : null;"
        )
    else:
        lookup = f"{record} = {accessor};"

    persist: List[str] = [
        f"if ({record}) {{",
        f"    {record}->update({data_var});",
        "} else {",
        f"    {record} = {accessor}()->create({data_var});",
        "}",
    ]

    inner: List[str] = _blocks(
        _split_lines(
            item_var if is_many else source,
            _child_keys(node.children),
            child_nested,
            data_var,
            extra_except=("id",),
        )
        + [lookup]
        + capture_lines(node.fields, f"{record}?", name),
        image_name_lines(node.fields, data_var, image_var, fallback_expr=f"{record}?")
        + upload_lines(node.fields, relation.target, data_var, image_var),
        persist + release_lines(node.fields, data_var, name),
        [f"$keep{studly}Ids[] = {record}->id;"] if is_many else [],
        update_relation_lines(node.children, record, child_nested, name),
    )

    if not is_many:
        return [
            f"// Sync {relation.name}",
            f"if (!empty({source})) {{",
            *indent_lines(inner),
            "}",
        ]

    keep: str = f"$keep{studly}Ids"
    stale_query: str = f"{accessor}()->whereNotIn('id', {keep})"
    cleanup: List[str] = []
    if has_attachments(node.fields, node.children):
        stale: str = f"$stale{studly}"
        cleanup = [
            f"foreach ({stale_query}->get() as {stale}) {{",
            *indent_lines(_purge_tree(node.fields, node.children, stale, f"stale_{name}")),
            "}",
        ]

    body: List[str] = _blocks(
        [f"{keep} = [];"],
        [f"foreach ({source} ?? [] as {item_var}) {{", *indent_lines(inner), "}"],
        cleanup + [f"{stale_query}->delete();"],
    )
    return [
        f"// Sync {relation.name}",
        f"if (array_key_exists('{relation.request_key}', {nested_var})) {{",
        *indent_lines(body),
        "}",
    ]


def update_relation_lines(
    nodes: Sequence[NestedRelation],
    parent_var: str,
    nested_var: str = "$nested",
    prefix: str = "",
) -> List[str]:
    """Nested reconcile logic for *nodes*, executed after the parent is saved."""
    return _blocks(*(_update_node(node, parent_var, nested_var, prefix) for node in nodes))


def build_update_body(config: ModelConfiguration) -> List[str]:
    record: str = f"${record_variable(config)}"
    keys: List[str] = _child_keys(config.nested)
    uses: str = f"{record}, $data, $nested" if keys else f"{record}, $data"
    loaded: str = (
        f"return {record}->load([{with_list(config)}]);" if keys else f"return {record};"
    )

    inner: List[str] = _blocks(
        capture_lines(config.fields, record),
        image_name_lines(config.fields, "$data", fallback_expr=record)
        + upload_lines(config.fields, config.studly_name, "$data"),
        [f"{record}->update($data);"] + release_lines(config.fields, "$data"),
        update_relation_lines(config.nested, record),
        [loaded],
    )
    return _blocks(
        _split_lines("$data", keys, "$nested", "$data") if keys else [],
        [f"return DB::transaction(function () use ({uses}) {{", *indent_lines(inner), "});"],
    )


# ---------------------------------------------------------------------------
# destroy
# ---------------------------------------------------------------------------


def build_destroy_body(config: ModelConfiguration) -> List[str]:
    record: str = f"${record_variable(config)}"
    inner: List[str] = _blocks(
        _purge_tree(config.fields, config.nested, record, ""),
        [f"{record}->delete();"],
    )
    return [f"DB::transaction(function () use ({record}) {{", *indent_lines(inner), "});"]


# ---------------------------------------------------------------------------
# Placeholder maps
# ---------------------------------------------------------------------------


def with_list(config: ModelConfiguration) -> str:
    return ", ".join(f"'{name}'" for name in config.with_relations)


def relation_imports(config: ModelConfiguration, related: Sequence[str]) -> str:
    """``use App\\Models\\X;`` lines for nested entities, newline-terminated."""
    lines: List[str] = [
        f"use App\\Models\\{model};" for model in related if model != config.studly_name
    ]
    return "".join(f"{line}\n" for line in lines)


def _render(lines: Sequence[str], level: int) -> str:
    return "\n".join(indent_lines(list(lines), level))


def service_stub_key(config: ModelConfiguration) -> str:
    return "service-relation" if config.has_nested_requests else "service"


def controller_stub_key(config: ModelConfiguration) -> str:
    if not config.toggles.service:
        return "controller-without-service"
    if config.has_nested_requests:
        return "controller-relation"
    return "controller"


def synthesize_crud(config: ModelConfiguration, related: Sequence[str] = ()) -> Dict[str, str]:
    """
    Shared placeholder map for the service and controller stubs.

    *related* lists the entities reached through nested requests (see
    ``RelationResolver.collect_related_models``).
    """
    record: str = f"${record_variable(config)}"
    placeholders: Dict[str, str] = {
        "model": config.studly_name,
        "variable": record_variable(config),
        "modelPlural": config.plural_studly_name,
        "route": config.table_name,
        "storeBody": _render(build_store_body(config), METHOD_LEVEL),
        "updateBody": _render(build_update_body(config), METHOD_LEVEL),
        "destroyBody": _render(build_destroy_body(config), METHOD_LEVEL),
        "relationStore": _render(store_relation_lines(config.nested, record), METHOD_LEVEL + 1),
        "relationUpdate": _render(update_relation_lines(config.nested, record), METHOD_LEVEL + 1),
        "relationImports": relation_imports(config, related),
        "with": with_list(config),
        "serviceUsage": "service" if config.toggles.service else "model",
    }
    logger.debug(
        "%s: CRUD bodies for %d nested relation(s).",
        config.studly_name,
        len(config.nested),
    )
    return placeholders


def synthesize_service(config: ModelConfiguration, related: Sequence[str] = ()) -> Dict[str, str]:
    return {**synthesize_crud(config, related), "class": config.classes.service}


def synthesize_controller(config: ModelConfiguration, related: Sequence[str] = ()) -> Dict[str, str]:
    return {**synthesize_crud(config, related), "class": config.classes.controller}


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "record_variable",
    "has_attachments",
    "store_relation_lines",
    "update_relation_lines",
    "build_store_body",
    "build_update_body",
    "build_destroy_body",
    "with_list",
    "relation_imports",
    "service_stub_key",
    "controller_stub_key",
    "synthesize_crud",
    "synthesize_service",
    "synthesize_controller",
]

logger.debug("modulegen.crud loaded.")
