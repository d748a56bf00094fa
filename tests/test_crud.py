"""
tests/test_crud.py
Unit tests for modulegen.crud and modulegen.attachments.

Tests cover:
- store / update / destroy bodies for a flat entity
- Nested payload splitting with Arr::only / Arr::except
- Transaction wrapping
- hasMany keep-list reconciliation with whereNotIn
- hasOne update-or-create and belongsToMany sync
- Upload -> persist -> delete-old-file ordering
- Stale attachment purge before stale rows are deleted
- Variable naming for deep levels and reserved names
- Stub selection and rendered service/controller text
"""

from __future__ import annotations

from typing import Any, Dict, List

from modulegen.attachments import find_name_field, image_name_lines, upload_folder
from modulegen.configuration import build_configurations
from modulegen.crud import (
    build_destroy_body,
    build_store_body,
    build_update_body,
    controller_stub_key,
    record_variable,
    relation_imports,
    service_stub_key,
    synthesize_controller,
    synthesize_crud,
    synthesize_service,
)
from modulegen.fields import parse_fields
from modulegen.models import ModelConfiguration
from modulegen.stubs import StubResolver
from modulegen.validators import parse_entities


def _config(raw: Dict[str, Any], name: str) -> ModelConfiguration:
    for config in build_configurations(parse_entities(raw)):
        if config.studly_name == name:
            return config
    raise KeyError(name)


def _text(lines: List[str]) -> str:
    return "\n".join(lines)


# ===========================================================================
# Tests for a flat entity
# ===========================================================================


class TestFlatEntity:
    """Bodies for an entity without nested requests or attachments."""

    def test_store_body(self, minimal_schema_dict: Dict[str, Any]) -> None:
        config = _config(minimal_schema_dict, "Post")
        assert build_store_body(config) == [
            "return DB::transaction(function () use ($data) {",
            "    $post = Post::create($data);",
            "",
            "    return $post;",
            "});",
        ]

    def test_update_body(self, minimal_schema_dict: Dict[str, Any]) -> None:
        config = _config(minimal_schema_dict, "Post")
        assert build_update_body(config) == [
            "return DB::transaction(function () use ($post, $data) {",
            "    $post->update($data);",
            "",
            "    return $post;",
            "});",
        ]

    def test_destroy_body(self, minimal_schema_dict: Dict[str, Any]) -> None:
        config = _config(minimal_schema_dict, "Post")
        assert build_destroy_body(config) == [
            "DB::transaction(function () use ($post) {",
            "    $post->delete();",
            "});",
        ]

    def test_reserved_variable_is_suffixed(self) -> None:
        config = _config({"Data": {"fields": {"value": "string"}}}, "Data")
        assert record_variable(config) == "dataRecord"
        assert "    $dataRecord = Data::create($data);" in build_store_body(config)

    def test_stub_keys(self, configs: Dict[str, ModelConfiguration]) -> None:
        assert service_stub_key(configs["Category"]) == "service"
        assert controller_stub_key(configs["Category"]) == "controller"

    def test_controller_without_service(self) -> None:
        config = _config(
            {"Post": {"fields": {"title": "string"}, "generate_except": ["service"]}}, "Post"
        )
        assert controller_stub_key(config) == "controller-without-service"
        assert synthesize_crud(config)["serviceUsage"] == "model"


# ===========================================================================
# Tests for nested store
# ===========================================================================


class TestNestedStore:
    """store() for Author -> books (-> chapters, tags) and profile."""

    def test_payload_is_split_before_transaction(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        lines = build_store_body(configs["Author"])
        assert lines[:4] == [
            "$nested = Arr::only($data, ['books', 'profile']);",
            "$data = Arr::except($data, ['books', 'profile']);",
            "",
            "return DB::transaction(function () use ($data, $nested) {",
        ]
        assert lines[-1] == "});"
        assert lines[-2] == "    return $author->load(['books', 'profile']);"

    def test_has_many_items_are_created(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_store_body(configs["Author"]))
        assert "foreach ($nested['books'] ?? [] as $booksItem) {" in text
        assert "$booksNested = Arr::only($booksItem, ['chapters', 'tags']);" in text
        assert "$booksData = Arr::except($booksItem, ['chapters', 'tags']);" in text
        assert "$createdBooks = $author->books()->create($booksData);" in text

    def test_deep_levels_use_path_names(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_store_body(configs["Author"]))
        assert "foreach ($booksNested['chapters'] ?? [] as $booksChaptersItem) {" in text
        assert "$booksChaptersData = $booksChaptersItem;" in text
        assert (
            "$createdBooksChapters = $createdBooks->chapters()->create($booksChaptersData);"
            in text
        )

    def test_belongs_to_many_is_synced(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_store_body(configs["Author"]))
        assert "if (array_key_exists('tags', $booksNested)) {" in text
        assert "$createdBooks->tags()->sync($booksNested['tags'] ?? []);" in text

    def test_has_one_is_created(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_store_body(configs["Author"]))
        assert "if (!empty($nested['profile'])) {" in text
        assert "$profileData = $nested['profile'];" in text
        assert "$createdProfile = $author->profile()->create($profileData);" in text

    def test_uploads_happen_before_create(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_store_body(configs["Author"]))
        upload = "$data['photo'] = uploadFile($data['photo'], 'authors', $imageName . '_photo');"
        assert upload in text
        assert text.index(upload) < text.index("$author = Author::create($data);")
        nested_upload = (
            "$booksData['cover'] = uploadFile($booksData['cover'], 'books', "
            "$booksImageName . '_cover');"
        )
        assert text.index(nested_upload) < text.index("$createdBooks = ")


# ===========================================================================
# Tests for nested update
# ===========================================================================


class TestNestedUpdate:
    """update() reconciliation for Author."""

    def test_transaction_uses_record(self, configs: Dict[str, ModelConfiguration]) -> None:
        lines = build_update_body(configs["Author"])
        assert "return DB::transaction(function () use ($author, $data, $nested) {" in lines

    def test_upload_persist_then_delete_old_file(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        text = _text(build_update_body(configs["Author"]))
        capture = text.index("$oldPhoto = $author->photo;")
        upload = text.index("instanceof UploadedFile")
        persist = text.index("$author->update($data);")
        release = text.index("deleteFile($oldPhoto);")
        assert capture < upload < persist < release

    def test_image_name_falls_back_to_record(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_update_body(configs["Author"]))
        assert "$imageName = (string) ($data['name'] ?? $author->name ?? Str::random(10));" in text

    def test_has_many_keep_list(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_update_body(configs["Author"]))
        assert "if (array_key_exists('books', $nested)) {" in text
        assert "$keepBooksIds = [];" in text
        assert "$booksData = Arr::except($booksItem, ['chapters', 'tags', 'id']);" in text
        assert (
            "$booksRecord = isset($booksItem['id']) ? $author->books()->find($booksItem['id']) "
            ": null;" in text
        )
        assert "$booksRecord->update($booksData);" in text
        assert "$booksRecord = $author->books()->create($booksData);" in text
        assert "$keepBooksIds[] = $booksRecord->id;" in text
        assert "$author->books()->whereNotIn('id', $keepBooksIds)->delete();" in text

    def test_nested_old_files_use_nullsafe_capture(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        text = _text(build_update_body(configs["Author"]))
        assert "$oldBooksCover = $booksRecord?->cover;" in text
        assert "deleteFile($oldBooksCover);" in text
        assert text.index("$booksRecord->update($booksData);") < text.index(
            "deleteFile($oldBooksCover);"
        )

    def test_stale_files_purged_before_rows_deleted(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        text = _text(build_update_body(configs["Author"]))
        stale_loop = "foreach ($author->books()->whereNotIn('id', $keepBooksIds)->get() as $staleBooks) {"
        assert stale_loop in text
        assert "deleteFile($staleBooks->cover);" in text
        assert text.index(stale_loop) < text.index(
            "$author->books()->whereNotIn('id', $keepBooksIds)->delete();"
        )

    def test_grandchildren_are_reconciled(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_update_body(configs["Author"]))
        assert "$keepBooksChaptersIds = [];" in text
        assert "$booksChaptersData = Arr::except($booksChaptersItem, ['id']);" in text
        assert "$booksRecord->chapters()->whereNotIn('id', $keepBooksChaptersIds)->delete();" in text
        assert "$booksRecord->tags()->sync($booksNested['tags'] ?? []);" in text

    def test_stale_cleanup_only_with_attachments(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        text = _text(build_update_body(configs["Author"]))
        assert "->get() as $staleBooksChapters" not in text

    def test_has_one_update_or_create(self, configs: Dict[str, ModelConfiguration]) -> None:
        text = _text(build_update_body(configs["Author"]))
        assert "if (!empty($nested['profile'])) {" in text
        assert "$profileData = Arr::except($nested['profile'], ['id']);" in text
        assert "$profileRecord = $author->profile;" in text
        assert "$profileRecord = $author->profile()->create($profileData);" in text


# ===========================================================================
# Tests for destroy
# ===========================================================================


class TestDestroy:
    """destroy() removes stored files of the record and its children."""

    def test_author_destroy(self, configs: Dict[str, ModelConfiguration]) -> None:
        lines = build_destroy_body(configs["Author"])
        assert lines[0] == "DB::transaction(function () use ($author) {"
        text = _text(lines)
        assert "deleteFile($author->photo);" in text
        assert "foreach ($author->books as $booksItem) {" in text
        assert "deleteFile($booksItem->cover);" in text
        assert "$author->profile" not in text, "Profile stores no files."
        assert text.index("deleteFile($booksItem->cover);") < text.index("$author->delete();")


# ===========================================================================
# Tests for attachment helpers
# ===========================================================================


class TestAttachments:
    """Tests for the attachment fragments."""

    def test_name_field_priority(self) -> None:
        fields = parse_fields({"code": "string", "title": "string", "photo": "image"})
        assert find_name_field(fields) == "title"

    def test_name_field_falls_back_to_first_string(self) -> None:
        fields = parse_fields({"user_id": "string", "code": "string", "photo": "image"})
        assert find_name_field(fields) == "code"

    def test_random_name_without_string_fields(self) -> None:
        fields = parse_fields({"photo": "image"})
        assert image_name_lines(fields, "$data")[0] == "$imageName = (string) (Str::random(10));"

    def test_no_lines_without_attachments(self) -> None:
        assert image_name_lines(parse_fields({"name": "string"}), "$data") == []

    def test_upload_folder(self) -> None:
        assert upload_folder("BlogPost") == "blog_posts"


# ===========================================================================
# Tests for placeholder maps and rendering
# ===========================================================================


class TestCrudPlaceholders:
    """Tests for the service/controller placeholder maps."""

    def test_relation_stub_keys(self, configs: Dict[str, ModelConfiguration]) -> None:
        assert service_stub_key(configs["Author"]) == "service-relation"
        assert controller_stub_key(configs["Author"]) == "controller-relation"

    def test_relation_imports_skip_self(self, configs: Dict[str, ModelConfiguration]) -> None:
        imports = relation_imports(configs["Author"], ["Book", "Author", "Profile"])
        assert imports == "use App\\Models\\Book;\nuse App\\Models\\Profile;\n"

    def test_bodies_are_indented_for_methods(
        self, configs: Dict[str, ModelConfiguration]
    ) -> None:
        placeholders = synthesize_crud(configs["Author"], ["Book", "Chapter", "Profile"])
        assert placeholders["storeBody"].startswith(" " * 8 + "$nested = Arr::only(")
        assert placeholders["relationStore"].startswith(" " * 12 + "// Create books")
        assert placeholders["with"] == "'books', 'profile'"
        assert placeholders["route"] == "authors"

    def test_rendered_service(self, configs: Dict[str, ModelConfiguration]) -> None:
        config = configs["Author"]
        text = StubResolver().render(
            service_stub_key(config), synthesize_service(config, ["Book", "Chapter", "Profile"])
        )
        assert "class AuthorService" in text
        assert "use App\\Models\\Chapter;" in text
        assert "public function update(Author $author, array $data): Author" in text
        assert "->with(['books', 'profile'])" in text
        assert "{{" not in text

    def test_rendered_controller(self, configs: Dict[str, ModelConfiguration]) -> None:
        config = configs["Category"]
        text = StubResolver().render(controller_stub_key(config), synthesize_controller(config))
        assert "class CategoryController extends Controller" in text
        assert "$this->service->store($request->validated());" in text
        assert "{{" not in text
