# File: modulegen/attachments.py
"""
ModuleGen - Attachment Code Fragments
=======================================
PHP line fragments for ``image`` / ``file`` fields, shared by every level
of the CRUD synthesizer.

Replacement order is always **upload, persist, then delete the old file**:

    $oldPhoto = $author->photo;                       // capture first
    if (... instanceof UploadedFile) { upload }       // new file stored
    $author->update($data);                           // row persisted
    if ($data['photo'] !== $oldPhoto) deleteFile();   // old file released

The old reference is captured before anything is reassigned, so a failed
upload never costs the stored file.

All helpers return lists of un-indented lines; callers indent them.
"""

from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Sequence

from modulegen.models import FieldSpec, FieldType
from modulegen.utils import to_plural, to_snake_case, to_studly_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.attachments")

NAME_FIELD_PRIORITY: Sequence[str] = (
    "name",
    "title",
    "business_name",
    "company_name",
    "product_name",
)
MAX_NAME_LENGTH: int = 20


def attachment_fields(fields: Mapping[str, FieldSpec]) -> List[str]:
    return [name for name, spec in fields.items() if spec.is_attachment]


def find_name_field(fields: Mapping[str, FieldSpec]) -> Optional[str]:
    """Field whose value seeds uploaded file names, if any."""
    for candidate in NAME_FIELD_PRIORITY:
        if candidate in fields:
            return candidate
    for name, spec in fields.items():
        if spec.base_type == FieldType.STRING.value and "_id" not in name:
            return name
    return None


def upload_folder(entity: str) -> str:
    """Storage folder for an entity's uploads: ``BlogPost`` → ``blog_posts``."""
    return to_snake_case(to_plural(to_studly_case(entity)))


def old_variable(prefix: str, field: str) -> str:
    """``$oldPhoto`` / ``$oldBooksCover``."""
    return f"$old{to_studly_case(prefix)}{to_studly_case(field)}"


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------


def image_name_lines(
    fields: Mapping[str, FieldSpec],
    data_var: str,
    name_var: str = "$imageName",
    fallback_expr: Optional[str] = None,
) -> List[str]:
    """
    Compute a short slug used as the uploaded file's base name.

    *fallback_expr* (e.g. ``$author->name``) is consulted on update when the
    payload omits the name field.
    """
    if not attachment_fields(fields):
        return []

    name_field: Optional[str] = find_name_field(fields)
    if name_field is None:
        source: str = "Str::random(10)"
    elif fallback_expr:
        source = f"{data_var}['{name_field}'] ?? {fallback_expr}->{name_field} ?? Str::random(10)"
    else:
        source = f"{data_var}['{name_field}'] ?? Str::random(10)"

    return [
        f"{name_var} = (string) ({source});",
        f"if (strlen({name_var}) > {MAX_NAME_LENGTH}) {{",
        f"    {name_var} = substr({name_var}, 0, {MAX_NAME_LENGTH});",
        "}",
        f"{name_var} = Str::slug({name_var});",
    ]


def upload_lines(
    fields: Mapping[str, FieldSpec],
    entity: str,
    data_var: str,
    name_var: str = "$imageName",
) -> List[str]:
    """Replace uploaded files in *data_var* with their stored reference."""
    folder: str = upload_folder(entity)
    lines: List[str] = []
    for field in attachment_fields(fields):
        value: str = f"{data_var}['{field}']"
        lines.extend(
            [
                f"if (isset({value}) && {value} instanceof UploadedFile) {{",
                f"    {value} = uploadFile({value}, '{folder}', {name_var} . '_{field}');",
                "}",
            ]
        )
    return lines


def capture_lines(
    fields: Mapping[str, FieldSpec],
    record_expr: str,
    prefix: str = "",
) -> List[str]:
    """
    Remember current attachment references before anything changes.

    Use a nullsafe *record_expr* (``$profileRecord?``) when the record may
    not exist yet.
    """
    return [
        f"{old_variable(prefix, field)} = {record_expr}->{field};"
        for field in attachment_fields(fields)
    ]


def release_lines(
    fields: Mapping[str, FieldSpec],
    data_var: str,
    prefix: str = "",
) -> List[str]:
    """Delete captured references that the persisted payload replaced."""
    lines: List[str] = []
    for field in attachment_fields(fields):
        old: str = old_variable(prefix, field)
        value: str = f"{data_var}['{field}']"
        lines.extend(
            [
                f"if (isset({value}) && {old} && {value} !== {old}) {{",
                f"    deleteFile({old});",
                "}",
            ]
        )
    return lines


def purge_lines(fields: Mapping[str, FieldSpec], record_var: str) -> List[str]:
    """Delete every stored attachment of a record that is going away."""
    lines: List[str] = []
    for field in attachment_fields(fields):
        lines.extend(
            [
                f"if ({record_var}->{field}) {{",
                f"    deleteFile({record_var}->{field});",
                "}",
            ]
        )
    return lines


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "attachment_fields",
    "find_name_field",
    "upload_folder",
    "old_variable",
    "image_name_lines",
    "upload_lines",
    "capture_lines",
    "release_lines",
    "purge_lines",
]

logger.debug("modulegen.attachments loaded.")
