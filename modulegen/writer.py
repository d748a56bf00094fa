# File: modulegen/writer.py
"""
ModuleGen - Artifact Writer (File-System Manager)
===================================================
Places rendered artifacts under the project root according to the
conflict policy:

    ========  ==========================================================
    policy    artifact already exists
    ========  ==========================================================
    skip      leave it alone, report ``skipped`` ("already exists")
    prompt    ask the ``confirm`` callable; overwrite only on yes
    force     overwrite it (migrations are replaced at their own path)
    ========  ==========================================================

Writes are atomic (temp file + ``os.replace``) so an interrupted run never
leaves a half-written artifact.  Every write yields a ``FileRecord`` with a
checksum for the run manifest.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from modulegen.models import ArtifactStatus, ConflictPolicy
from modulegen.utils import count_lines, sha256_hex, write_file

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.writer")

ConfirmCallback = Callable[[str], bool]
Content = Union[str, Callable[[], str]]


# ---------------------------------------------------------------------------
# Data classes for write results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Immutable record of a single written file."""

    relative_path: str
    absolute_path: str
    size_bytes: int
    line_count: int
    sha256: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relative_path": self.relative_path,
            "absolute_path": self.absolute_path,
            "size_bytes": self.size_bytes,
            "line_count": self.line_count,
            "sha256": self.sha256,
        }


@dataclass(frozen=True, slots=True)
class ArtifactOutcome:
    """What happened to one artifact of one entity."""

    entity: str
    artifact: str
    path: str
    status: str
    message: str = ""
    record: Optional[FileRecord] = None

    @property
    def written(self) -> bool:
        return self.status in (ArtifactStatus.CREATED.value, ArtifactStatus.REPLACED.value)


@dataclass(frozen=False, slots=True)
class WriteManifest:
    """All files written during one run.  Serialisable to JSON."""

    base_path: str = ""
    total_files: int = 0
    total_bytes: int = 0
    total_lines: int = 0
    files: List[FileRecord] = field(default_factory=list)

    def add(self, record: FileRecord) -> None:
        self.files.append(record)
        self.total_files += 1
        self.total_bytes += record.size_bytes
        self.total_lines += record.line_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_path": self.base_path,
            "total_files": self.total_files,
            "total_bytes": self.total_bytes,
            "total_lines": self.total_lines,
            "files": [f.to_dict() for f in self.files],
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)


# ---------------------------------------------------------------------------
# ArtifactWriter
# ---------------------------------------------------------------------------


class ArtifactWriter:
    """
    Writes artifacts under *root* honouring a ``ConflictPolicy``.

    Usage::

        writer = ArtifactWriter(Path("."), policy=ConflictPolicy.SKIP)
        outcome = writer.write("Author", "model", Path("app/Models/Author.php"), text)

    Thread-safety: NOT thread-safe.  Use one writer per run.
    """

    def __init__(
        self,
        root: Path,
        *,
        policy: ConflictPolicy = ConflictPolicy.SKIP,
        confirm: Optional[ConfirmCallback] = None,
        atomic_writes: bool = True,
    ) -> None:
        self._root: Path = Path(root)
        self._policy: str = ConflictPolicy(policy).value
        self._confirm: Optional[ConfirmCallback] = confirm
        self._atomic_writes: bool = atomic_writes
        self.manifest: WriteManifest = WriteManifest(base_path=str(self._root))

        logger.debug(
            "ArtifactWriter initialised: root=%s, policy=%s, atomic=%s.",
            self._root,
            self._policy,
            self._atomic_writes,
        )

    @property
    def policy(self) -> str:
        return self._policy

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def should_write(self, relative: Path) -> bool:
        """Whether an artifact at *relative* may be (over)written."""
        if not (self._root / relative).exists():
            return True
        if self._policy == ConflictPolicy.FORCE.value:
            return True
        if self._policy == ConflictPolicy.PROMPT.value and self._confirm is not None:
            return bool(self._confirm(f"{relative.as_posix()} already exists. Overwrite?"))
        return False

    def write(self, entity: str, artifact: str, relative: Path, content: Content) -> ArtifactOutcome:
        """
        Place *content* at *relative* unless the conflict policy says no.

        *content* may be a zero-argument callable; it is only invoked once
        the write is decided, so skipped artifacts are never rendered.

        Raises:
            OSError: The file could not be written.
        """
        path: str = relative.as_posix()
        existed: bool = (self._root / relative).exists()

        if existed and not self.should_write(relative):
            message: str = f"{path} already exists"
            logger.warning("%s %s skipped: %s.", entity, artifact, message)
            return ArtifactOutcome(entity, artifact, path, ArtifactStatus.SKIPPED.value, message)

        text: str = content() if callable(content) else content
        record: FileRecord = self._write_single_file(relative, text)
        self.manifest.add(record)
        status: str = ArtifactStatus.REPLACED.value if existed else ArtifactStatus.CREATED.value
        logger.info("%s %s %s: %s", entity, artifact, status, path)
        return ArtifactOutcome(entity, artifact, path, status, record=record)

    # -----------------------------------------------------------------
    # Internal: file writing
    # -----------------------------------------------------------------

    def _write_single_file(self, relative: Path, content: str) -> FileRecord:
        full_path: Path = self._root / relative
        size_bytes: int = write_file(full_path, content, atomic=self._atomic_writes)
        return FileRecord(
            relative_path=relative.as_posix(),
            absolute_path=str(full_path.resolve()),
            size_bytes=size_bytes,
            line_count=count_lines(content),
            sha256=sha256_hex(content),
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ConfirmCallback",
    "Content",
    "FileRecord",
    "ArtifactOutcome",
    "WriteManifest",
    "ArtifactWriter",
]

logger.debug("modulegen.writer loaded.")
