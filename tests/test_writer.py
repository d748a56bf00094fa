"""
tests/test_writer.py
Unit tests for modulegen.writer.

Tests cover:
- Creating new artifacts and the write manifest
- skip / force / prompt conflict policies
- Lazy content that is never rendered for skipped artifacts
- FileRecord metadata
"""

from __future__ import annotations

import json
import pathlib
from typing import List

from modulegen.models import ConflictPolicy
from modulegen.utils import sha256_hex
from modulegen.writer import ArtifactWriter

MODEL_PATH = pathlib.Path("app/Models/Author.php")


def _existing(root: pathlib.Path, text: str = "old") -> None:
    target = root / MODEL_PATH
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")


# ===========================================================================
# Tests for new files
# ===========================================================================


class TestCreate:
    """Writing artifacts that do not exist yet."""

    def test_creates_file_and_parents(self, project_root: pathlib.Path) -> None:
        writer = ArtifactWriter(project_root)
        outcome = writer.write("Author", "model", MODEL_PATH, "<?php\nclass Author {}\n")

        assert outcome.status == "created"
        assert outcome.written
        assert outcome.path == "app/Models/Author.php"
        assert (project_root / MODEL_PATH).read_text(encoding="utf-8") == "<?php\nclass Author {}\n"

    def test_file_record(self, project_root: pathlib.Path) -> None:
        writer = ArtifactWriter(project_root)
        outcome = writer.write("Author", "model", MODEL_PATH, "a\nb\n")

        assert outcome.record is not None
        assert outcome.record.line_count == 2
        assert outcome.record.size_bytes == 4
        assert outcome.record.sha256 == sha256_hex("a\nb\n")

    def test_manifest_totals(self, project_root: pathlib.Path) -> None:
        writer = ArtifactWriter(project_root)
        writer.write("Author", "model", MODEL_PATH, "a\n")
        writer.write("Author", "service", pathlib.Path("app/Services/AuthorService.php"), "b\nc\n")

        assert writer.manifest.total_files == 2
        assert writer.manifest.total_lines == 3
        data = json.loads(writer.manifest.to_json())
        assert [f["relative_path"] for f in data["files"]] == [
            "app/Models/Author.php",
            "app/Services/AuthorService.php",
        ]

    def test_non_atomic_write(self, project_root: pathlib.Path) -> None:
        writer = ArtifactWriter(project_root, atomic_writes=False)
        writer.write("Author", "model", MODEL_PATH, "x")
        assert (project_root / MODEL_PATH).read_text(encoding="utf-8") == "x"


# ===========================================================================
# Tests for conflict policies
# ===========================================================================


class TestConflictPolicies:
    """Existing artifacts under each policy."""

    def test_skip_leaves_file_untouched(self, project_root: pathlib.Path) -> None:
        _existing(project_root)
        writer = ArtifactWriter(project_root, policy=ConflictPolicy.SKIP)
        outcome = writer.write("Author", "model", MODEL_PATH, "new")

        assert outcome.status == "skipped"
        assert not outcome.written
        assert outcome.message == "app/Models/Author.php already exists"
        assert (project_root / MODEL_PATH).read_text(encoding="utf-8") == "old"
        assert writer.manifest.total_files == 0

    def test_skip_never_renders(self, project_root: pathlib.Path) -> None:
        _existing(project_root)
        calls: List[int] = []

        def render() -> str:
            calls.append(1)
            return "new"

        ArtifactWriter(project_root).write("Author", "model", MODEL_PATH, render)
        assert calls == [], "Skipped artifacts must not be rendered."

    def test_lazy_content_rendered_once_on_write(self, project_root: pathlib.Path) -> None:
        calls: List[int] = []

        def render() -> str:
            calls.append(1)
            return "lazy"

        ArtifactWriter(project_root).write("Author", "model", MODEL_PATH, render)
        assert calls == [1]
        assert (project_root / MODEL_PATH).read_text(encoding="utf-8") == "lazy"

    def test_force_replaces(self, project_root: pathlib.Path) -> None:
        _existing(project_root)
        writer = ArtifactWriter(project_root, policy=ConflictPolicy.FORCE)
        outcome = writer.write("Author", "model", MODEL_PATH, "new")

        assert outcome.status == "replaced"
        assert (project_root / MODEL_PATH).read_text(encoding="utf-8") == "new"

    def test_prompt_yes_replaces(self, project_root: pathlib.Path) -> None:
        _existing(project_root)
        questions: List[str] = []

        def confirm(question: str) -> bool:
            questions.append(question)
            return True

        writer = ArtifactWriter(project_root, policy=ConflictPolicy.PROMPT, confirm=confirm)
        outcome = writer.write("Author", "model", MODEL_PATH, "new")

        assert outcome.status == "replaced"
        assert questions == ["app/Models/Author.php already exists. Overwrite?"]

    def test_prompt_no_skips(self, project_root: pathlib.Path) -> None:
        _existing(project_root)
        writer = ArtifactWriter(
            project_root, policy=ConflictPolicy.PROMPT, confirm=lambda question: False
        )
        outcome = writer.write("Author", "model", MODEL_PATH, "new")

        assert outcome.status == "skipped"
        assert (project_root / MODEL_PATH).read_text(encoding="utf-8") == "old"

    def test_prompt_without_callback_skips(self, project_root: pathlib.Path) -> None:
        _existing(project_root)
        writer = ArtifactWriter(project_root, policy=ConflictPolicy.PROMPT)
        assert writer.write("Author", "model", MODEL_PATH, "new").status == "skipped"

    def test_new_file_never_prompts(self, project_root: pathlib.Path) -> None:
        def confirm(question: str) -> bool:
            raise AssertionError("confirm must not be called for new files")

        writer = ArtifactWriter(project_root, policy=ConflictPolicy.PROMPT, confirm=confirm)
        assert writer.write("Author", "model", MODEL_PATH, "new").status == "created"

    def test_policy_accepts_plain_string(self, project_root: pathlib.Path) -> None:
        writer = ArtifactWriter(project_root, policy="force")  # type: ignore[arg-type]
        assert writer.policy == "force"
