# File: modulegen/backup.py
"""
ModuleGen - Backup & Rollback
===============================
Snapshots every artifact a generation run may touch and restores the
snapshot on demand.

Backup layout under the backup root::

    2024-05-01_12-30-00/
        backup_manifest.json
        migrations/2024_04_01_000000_create_authors_table.php
        model/Author.php
        resource/Author/AuthorResource.php
        collection/Author/AuthorCollection.php
        routes/api.php

The manifest records, for every candidate path, whether the file existed
and whether it was copied.  Rollback uses it to restore backed-up files and
to delete files that did not exist before the run (including migrations
created under a fresh timestamp, matched through their ``pattern``).

Every per-file failure is captured on its record; nothing inside the
backup or restore loops raises.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from modulegen.configuration import ArtifactPaths, find_migrations
from modulegen.models import ArtifactType, GeneratorSettings, ModelConfiguration
from modulegen.routes import API_ROUTES_FILE
from modulegen.utils import Timer, copy_file, directory_size, format_bytes

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.backup")

BACKUP_TIMESTAMP_FORMAT: str = "%Y-%m-%d_%H-%M-%S"
MANIFEST_FILENAME: str = "backup_manifest.json"
MIGRATION_BACKUP_DIRECTORY: str = "migrations"
SHARED_BACKUP_DIRECTORY: str = "routes"
_PER_ENTITY_DIRECTORIES = frozenset({ArtifactType.RESOURCE.value, ArtifactType.COLLECTION.value})

# Backup order mirrors the generation order.
BACKUP_ARTIFACTS: Sequence[str] = (
    ArtifactType.MODEL.value,
    ArtifactType.SERVICE.value,
    ArtifactType.REQUEST.value,
    ArtifactType.RESOURCE.value,
    ArtifactType.COLLECTION.value,
    ArtifactType.CONTROLLER.value,
    ArtifactType.MIGRATION.value,
    ArtifactType.FACTORY.value,
    ArtifactType.SEEDER.value,
)


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class BackupEntry:
    """
    Snapshot state of one candidate path.

    ``original_path`` and ``backup_path`` are relative to the project root
    and the backup directory respectively.  ``pattern`` is set for
    migrations that did not exist yet, whose final name is only known after
    generation.
    """

    original_path: Optional[str] = None
    backup_path: Optional[str] = None
    backed_up: bool = False
    existed: bool = False
    error: Optional[str] = None
    pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "original_path": self.original_path,
            "backup_path": self.backup_path,
            "backed_up": self.backed_up,
            "existed": self.existed,
            "error": self.error,
            "pattern": self.pattern,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackupEntry":
        return cls(
            original_path=data.get("original_path"),
            backup_path=data.get("backup_path"),
            backed_up=bool(data.get("backed_up", False)),
            existed=bool(data.get("existed", False)),
            error=data.get("error"),
            pattern=data.get("pattern"),
        )


@dataclass(frozen=False, slots=True)
class BackupManifest:
    """Everything rollback needs, serialised as ``backup_manifest.json``."""

    timestamp: str = ""
    directory: str = ""
    entities: Dict[str, Dict[str, BackupEntry]] = field(default_factory=dict)
    shared_artifact_path: str = API_ROUTES_FILE
    shared_artifact_backup: Optional[str] = None
    shared_artifact_existed: bool = False

    @property
    def files_backed_up(self) -> int:
        count: int = sum(
            1
            for entries in self.entities.values()
            for entry in entries.values()
            if entry.backed_up
        )
        return count + (1 if self.shared_artifact_backup else 0)

    @property
    def errors(self) -> List[str]:
        return [
            f"{name}.{artifact}: {entry.error}"
            for name, entries in self.entities.items()
            for artifact, entry in entries.items()
            if entry.error
        ]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "entities": {
                name: {artifact: entry.to_dict() for artifact, entry in entries.items()}
                for name, entries in self.entities.items()
            },
            "shared_artifact_path": self.shared_artifact_path,
            "shared_artifact_backup": self.shared_artifact_backup,
            "shared_artifact_existed": self.shared_artifact_existed,
        }

    def to_json(self, indent_size: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent_size, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], directory: str = "") -> "BackupManifest":
        return cls(
            timestamp=str(data.get("timestamp", "")),
            directory=directory,
            entities={
                name: {
                    artifact: BackupEntry.from_dict(entry)
                    for artifact, entry in entries.items()
                }
                for name, entries in (data.get("entities") or {}).items()
            },
            shared_artifact_path=str(data.get("shared_artifact_path") or API_ROUTES_FILE),
            shared_artifact_backup=data.get("shared_artifact_backup"),
            shared_artifact_existed=bool(data.get("shared_artifact_existed", False)),
        )


@dataclass(frozen=True, slots=True)
class BackupInfo:
    """One row of ``BackupManager.list_backups()``."""

    timestamp: str
    path: str
    has_manifest: bool
    size: int
    entities_count: int = 0
    files_backed_up: int = 0

    @property
    def size_label(self) -> str:
        return format_bytes(self.size)


# ---------------------------------------------------------------------------
# Rollback results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FileResult:
    """What rollback did to one path."""

    path: str
    action: str  # restored | deleted | failed
    entity: str = ""
    artifact: str = ""
    error: Optional[str] = None


@dataclass(frozen=False, slots=True)
class RollbackResult:
    """Collected outcome of a rollback."""

    backup: str = ""
    files: List[FileResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return not self.errors and not self.failed

    @property
    def restored(self) -> List[FileResult]:
        return [f for f in self.files if f.action == "restored"]

    @property
    def deleted(self) -> List[FileResult]:
        return [f for f in self.files if f.action == "deleted"]

    @property
    def failed(self) -> List[FileResult]:
        return [f for f in self.files if f.action == "failed"]

    def summary(self) -> str:
        lines: List[str] = [
            "=" * 60,
            "  Rollback Summary",
            "=" * 60,
            f"  Backup:    {self.backup or '-'}",
            f"  Restored:  {len(self.restored)}",
            f"  Deleted:   {len(self.deleted)}",
            f"  Failed:    {len(self.failed)}",
            f"  Time:      {self.elapsed_seconds:.3f}s",
        ]
        for result in self.files:
            mark: str = "✗" if result.action == "failed" else "✓"
            suffix: str = f" ({result.error})" if result.error else ""
            lines.append(f"  {mark} {result.action:<9} {result.path}{suffix}")
        for error in self.errors:
            lines.append(f"  ✗ {error}")
        lines.append("=" * 60)
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class BackupManager:
    """
    Creates, lists, restores and prunes backup snapshots.

    Usage::

        manager = BackupManager.from_settings(settings)
        manifest = manager.create_backup(configs)
        ...
        result = manager.rollback()           # latest snapshot
    """

    def __init__(
        self,
        root: Path,
        backup_root: Path,
        *,
        shared_artifact: str = API_ROUTES_FILE,
        keep: int = 5,
    ) -> None:
        self.root: Path = Path(root)
        self.backup_root: Path = Path(backup_root)
        self.shared_artifact: str = shared_artifact
        self.keep: int = keep

    @classmethod
    def from_settings(cls, settings: GeneratorSettings) -> "BackupManager":
        return cls(
            settings.root,
            settings.backup_root,
            shared_artifact=settings.routes_file,
            keep=settings.keep_backups,
        )

    # -----------------------------------------------------------------
    # Backup
    # -----------------------------------------------------------------

    def _session_directory(self, moment: Optional[datetime]) -> Path:
        stamp: str = (moment or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
        candidate: Path = self.backup_root / stamp
        counter: int = 1
        while candidate.exists():
            candidate = self.backup_root / f"{stamp}_{counter}"
            counter += 1
        return candidate

    @staticmethod
    def _backup_location(artifact: str, entity: str, original: Path) -> Path:
        if artifact == ArtifactType.MIGRATION.value:
            return Path(MIGRATION_BACKUP_DIRECTORY) / original.name
        if artifact in _PER_ENTITY_DIRECTORIES:
            return Path(artifact) / entity / original.name
        return Path(artifact) / original.name

    def _backup_file(
        self,
        session: Path,
        artifact: str,
        entity: str,
        relative: Optional[Path],
    ) -> BackupEntry:
        entry: BackupEntry = BackupEntry(
            original_path=relative.as_posix() if relative is not None else None
        )
        if relative is None or not (self.root / relative).exists():
            return entry

        entry.existed = True
        location: Path = self._backup_location(artifact, entity, relative)
        try:
            copy_file(self.root / relative, session / location)
        except OSError as exc:
            entry.error = str(exc)
            logger.warning("Failed to back up %s for %s: %s", artifact, entity, exc)
            return entry

        entry.backup_path = location.as_posix()
        entry.backed_up = True
        logger.info("Backed up %s: %s → %s", artifact, entity, location.as_posix())
        return entry

    def _backup_entity(self, session: Path, config: ModelConfiguration) -> Dict[str, BackupEntry]:
        paths: ArtifactPaths = ArtifactPaths.for_config(config)
        entries: Dict[str, BackupEntry] = {}
        for artifact in BACKUP_ARTIFACTS:
            if artifact == ArtifactType.MIGRATION.value:
                existing: List[Path] = find_migrations(self.root, config.table_name)
                if not existing:
                    entries[artifact] = BackupEntry(pattern=paths.migration_glob)
                    continue
                relative: Optional[Path] = existing[0].relative_to(self.root)
            else:
                relative = paths.for_type(artifact)
            entries[artifact] = self._backup_file(session, artifact, config.studly_name, relative)
        return entries

    def create_backup(
        self,
        configs: Sequence[ModelConfiguration],
        moment: Optional[datetime] = None,
    ) -> BackupManifest:
        """
        Snapshot every candidate artifact of *configs* plus the route file.

        Raises:
            OSError: The session directory or the manifest could not be
                written.  Per-file copy failures are recorded instead.
        """
        with Timer("backup") as timer:
            session: Path = self._session_directory(moment)
            session.mkdir(parents=True, exist_ok=False)
            manifest: BackupManifest = BackupManifest(
                timestamp=session.name,
                directory=str(session),
                shared_artifact_path=self.shared_artifact,
            )

            for config in configs:
                manifest.entities[config.studly_name] = self._backup_entity(session, config)

            shared: Path = self.root / self.shared_artifact
            if shared.exists():
                manifest.shared_artifact_existed = True
                location: Path = Path(SHARED_BACKUP_DIRECTORY) / shared.name
                try:
                    copy_file(shared, session / location)
                    manifest.shared_artifact_backup = location.as_posix()
                    logger.info("Backed up %s", self.shared_artifact)
                except OSError as exc:
                    logger.warning("Failed to back up %s: %s", self.shared_artifact, exc)

            (session / MANIFEST_FILENAME).write_text(manifest.to_json(), encoding="utf-8")

        logger.info(
            "Backup completed: %d file(s) in %s (%.3fs).",
            manifest.files_backed_up,
            session,
            timer.elapsed,
        )
        return manifest

    # -----------------------------------------------------------------
    # Discovery
    # -----------------------------------------------------------------

    def _session_directories(self) -> List[Path]:
        if not self.backup_root.is_dir():
            return []
        return sorted(
            (p for p in self.backup_root.iterdir() if p.is_dir()),
            key=lambda p: p.name,
            reverse=True,
        )

    def latest_backup(self) -> Optional[Path]:
        """Newest session directory, by name."""
        sessions: List[Path] = self._session_directories()
        return sessions[0] if sessions else None

    def load_manifest(self, directory: Optional[Path] = None) -> Optional[BackupManifest]:
        """Manifest of *directory* (default: latest), or None if unreadable."""
        directory = directory if directory is not None else self.latest_backup()
        if directory is None:
            return None
        manifest_path: Path = Path(directory) / MANIFEST_FILENAME
        if not manifest_path.is_file():
            return None
        try:
            data: Any = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load backup manifest %s: %s", manifest_path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Backup manifest %s is not an object.", manifest_path)
            return None
        return BackupManifest.from_dict(data, directory=str(directory))

    def list_backups(self) -> List[BackupInfo]:
        """All sessions, newest first."""
        backups: List[BackupInfo] = []
        for directory in self._session_directories():
            manifest: Optional[BackupManifest] = self.load_manifest(directory)
            backups.append(
                BackupInfo(
                    timestamp=directory.name,
                    path=str(directory),
                    has_manifest=(directory / MANIFEST_FILENAME).is_file(),
                    size=directory_size(directory),
                    entities_count=len(manifest.entities) if manifest else 0,
                    files_backed_up=manifest.files_backed_up if manifest else 0,
                )
            )
        return backups

    def cleanup(self, keep: Optional[int] = None) -> int:
        """
        Delete all but the newest *keep* sessions; returns the number deleted.

        Raises:
            ValueError: *keep* is smaller than 1.
        """
        keep = self.keep if keep is None else keep
        if keep < 1:
            raise ValueError("Must keep at least 1 backup.")

        deleted: int = 0
        for directory in self._session_directories()[keep:]:
            try:
                shutil.rmtree(directory)
            except OSError as exc:
                logger.warning("Failed to delete backup %s: %s", directory.name, exc)
                continue
            deleted += 1
            logger.info("Deleted old backup: %s", directory.name)
        return deleted

    # -----------------------------------------------------------------
    # Rollback
    # -----------------------------------------------------------------

    def _restore(self, source: Path, target: Path, entity: str, artifact: str) -> FileResult:
        relative: str = target.relative_to(self.root).as_posix()
        try:
            copy_file(source, target)
        except OSError as exc:
            logger.warning("Failed to restore %s: %s", relative, exc)
            return FileResult(relative, "failed", entity, artifact, str(exc))
        logger.info("Restored %s", relative)
        return FileResult(relative, "restored", entity, artifact)

    def _delete(self, target: Path, entity: str, artifact: str) -> FileResult:
        relative: str = target.relative_to(self.root).as_posix()
        try:
            target.unlink()
        except OSError as exc:
            logger.warning("Failed to remove %s: %s", relative, exc)
            return FileResult(relative, "failed", entity, artifact, str(exc))
        logger.info("Removed generated file %s", relative)
        return FileResult(relative, "deleted", entity, artifact)

    def _rollback_entry(
        self,
        session: Path,
        entity: str,
        artifact: str,
        entry: BackupEntry,
    ) -> List[FileResult]:
        if entry.backed_up and entry.backup_path and entry.original_path:
            return [
                self._restore(
                    session / entry.backup_path,
                    self.root / entry.original_path,
                    entity,
                    artifact,
                )
            ]
        if entry.existed:
            # Existed but could not be copied: leave the current file alone.
            return []
        if entry.original_path:
            target: Path = self.root / entry.original_path
            return [self._delete(target, entity, artifact)] if target.exists() else []
        if entry.pattern:
            return [
                self._delete(match, entity, artifact)
                for match in sorted(self.root.glob(entry.pattern))
            ]
        return []

    def _rollback_shared(self, session: Path, manifest: BackupManifest) -> List[FileResult]:
        target: Path = self.root / manifest.shared_artifact_path
        if manifest.shared_artifact_backup:
            return [self._restore(session / manifest.shared_artifact_backup, target, "", "routes")]
        if not manifest.shared_artifact_existed and target.exists():
            return [self._delete(target, "", "routes")]
        return []

    def rollback(self, timestamp: Optional[str] = None) -> RollbackResult:
        """
        Restore the snapshot named *timestamp* (default: the latest).

        Backed-up files are copied back, files that did not exist at
        backup time are deleted, and the route file is restored or removed.
        """
        result: RollbackResult = RollbackResult(backup=timestamp or "")
        with Timer("rollback") as timer:
            session: Optional[Path] = (
                self.backup_root / timestamp if timestamp else self.latest_backup()
            )
            if session is None:
                result.errors.append("No backups found. Cannot rollback.")
            else:
                result.backup = session.name
                manifest: Optional[BackupManifest] = self.load_manifest(session)
                if manifest is None:
                    result.errors.append("Invalid backup or missing manifest file.")
                else:
                    for entity, entries in manifest.entities.items():
                        for artifact, entry in entries.items():
                            result.files.extend(
                                self._rollback_entry(session, entity, artifact, entry)
                            )
                    result.files.extend(self._rollback_shared(session, manifest))

        result.elapsed_seconds = timer.elapsed
        for error in result.errors:
            logger.error(error)
        logger.info(
            "Rollback of %s: %d restored, %d deleted, %d failed.",
            result.backup or "-",
            len(result.restored),
            len(result.deleted),
            len(result.failed),
        )
        return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "BACKUP_TIMESTAMP_FORMAT",
    "MANIFEST_FILENAME",
    "BackupEntry",
    "BackupManifest",
    "BackupInfo",
    "FileResult",
    "RollbackResult",
    "BackupManager",
]

logger.debug("modulegen.backup loaded.")
