# File: modulegen/generator.py
"""
ModuleGen - Generation Pipeline (Orchestrator)
================================================
Connects every phase together:

    Schema file → Validation → Configuration → Backup → Synthesis → Write → Routes

The ``ModuleGenerator`` class provides both a programmatic API and the
backend for the CLI.

Workflow::

    1. Load the YAML schema (``load_schema_file``).
    2. Validate it (validators.py); errors abort before any file is touched.
    3. Build one ``ModelConfiguration`` per entity, in file order.
    4. Snapshot every candidate artifact (backup.py), unless disabled.
    5. For each enabled component render its stub and hand the text to
       ``ArtifactWriter`` (skip / prompt / force).
    6. Append the resource route for every entity with a controller.
    7. Return a ``GenerationReport`` with step metrics and per-artifact
       outcomes.

Error handling strategy:
    - Validation errors are collected and surfaced, not swallowed.
    - A missing stub or a failed write marks that artifact ``failed``; the
      remaining artifacts of the entity still generate.
    - Existing artifacts under the ``skip`` policy are reported as skipped,
      never as errors.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from modulegen.backup import BackupManager, BackupManifest
from modulegen.configuration import ArtifactPaths, build_configurations
from modulegen.crud import (
    controller_stub_key,
    service_stub_key,
    synthesize_controller,
    synthesize_service,
)
from modulegen.migration import render_migration
from modulegen.models import (
    ArtifactStatus,
    ArtifactType,
    ConflictPolicy,
    EntityDefinition,
    GeneratorSettings,
    ModelConfiguration,
)
from modulegen.persistence import synthesize_model
from modulegen.relations import RelationResolver
from modulegen.resources import synthesize_collection, synthesize_resource
from modulegen.routes import RouteRegistry, RouteResult
from modulegen.rules import synthesize_rules
from modulegen.samples import build_example_payload, synthesize_factory, synthesize_seeder
from modulegen.stubs import StubNotFoundError, StubResolver
from modulegen.utils import Timer, to_studly_case
from modulegen.validators import (
    SchemaValidationError,
    ValidationResult,
    parse_entities,
    validate_schema,
)
from modulegen.writer import ArtifactOutcome, ArtifactWriter, ConfirmCallback, WriteManifest

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen.generator")

# Generation order; the seeder toggle covers both factory and seeder.
COMPONENT_ARTIFACTS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("model", (ArtifactType.MODEL.value,)),
    ("migration", (ArtifactType.MIGRATION.value,)),
    ("request", (ArtifactType.REQUEST.value,)),
    ("resource", (ArtifactType.RESOURCE.value,)),
    ("collection", (ArtifactType.COLLECTION.value,)),
    ("service", (ArtifactType.SERVICE.value,)),
    ("controller", (ArtifactType.CONTROLLER.value,)),
    ("seeder", (ArtifactType.FACTORY.value, ArtifactType.SEEDER.value)),
)


# ---------------------------------------------------------------------------
# Generation report
# ---------------------------------------------------------------------------


@dataclass(frozen=False, slots=True)
class GenerationStepMetric:
    """Timing and outcome for a single pipeline step."""

    step_name: str = ""
    success: bool = True
    elapsed_seconds: float = 0.0
    detail: str = ""


@dataclass(frozen=False, slots=True)
class GenerationReport:
    """
    Comprehensive report produced by ``ModuleGenerator.generate()``.

    Contains timing information, per-artifact outcomes, validation results
    and any errors/warnings encountered.
    """

    success: bool = False
    base_path: str = ""
    schema_file: str = ""

    # Metrics
    total_entities: int = 0
    total_elapsed_seconds: float = 0.0

    # Sub-reports
    step_metrics: List[GenerationStepMetric] = field(default_factory=list)
    validation_errors: List[str] = field(default_factory=list)
    validation_warnings: List[str] = field(default_factory=list)
    generation_errors: List[str] = field(default_factory=list)
    generation_warnings: List[str] = field(default_factory=list)
    backup_errors: List[str] = field(default_factory=list)
    outcomes: List[ArtifactOutcome] = field(default_factory=list)
    routes: List[RouteResult] = field(default_factory=list)

    backup: Optional[BackupManifest] = None
    manifest: Optional[WriteManifest] = None

    def _with_status(self, status: ArtifactStatus) -> List[ArtifactOutcome]:
        return [o for o in self.outcomes if o.status == status.value]

    @property
    def created(self) -> List[ArtifactOutcome]:
        return self._with_status(ArtifactStatus.CREATED)

    @property
    def replaced(self) -> List[ArtifactOutcome]:
        return self._with_status(ArtifactStatus.REPLACED)

    @property
    def skipped(self) -> List[ArtifactOutcome]:
        return self._with_status(ArtifactStatus.SKIPPED)

    @property
    def failed(self) -> List[ArtifactOutcome]:
        return self._with_status(ArtifactStatus.FAILED)

    def summary(self) -> str:
        """Return a human-readable summary string."""
        lines: List[str] = []
        status: str = "✅ SUCCESS" if self.success else "❌ FAILED"
        lines.append(f"{'='*60}")
        lines.append("  ModuleGen — Generation Report")
        lines.append(f"{'='*60}")
        lines.append(f"  Status:           {status}")
        lines.append(f"  Schema:           {self.schema_file or '-'}")
        lines.append(f"  Project root:     {self.base_path}")
        lines.append(f"  Entities:         {self.total_entities}")
        lines.append(f"  Created:          {len(self.created)}")
        lines.append(f"  Replaced:         {len(self.replaced)}")
        lines.append(f"  Skipped:          {len(self.skipped)}")
        lines.append(f"  Failed:           {len(self.failed)}")
        if self.backup is not None:
            lines.append(f"  Backup:           {self.backup.timestamp}")
        lines.append(f"  Total time:       {self.total_elapsed_seconds:.3f}s")
        lines.append(f"{'─'*60}")

        if self.step_metrics:
            lines.append("  Pipeline Steps:")
            for step in self.step_metrics:
                icon: str = "✓" if step.success else "✗"
                lines.append(
                    f"    {icon} {step.step_name:<28s} "
                    f"{step.elapsed_seconds:>7.3f}s  "
                    f"{step.detail}"
                )

        if self.outcomes:
            lines.append(f"{'─'*60}")
            lines.append("  Artifacts:")
            icons: Dict[str, str] = {
                ArtifactStatus.CREATED.value: "✓",
                ArtifactStatus.REPLACED.value: "✓",
                ArtifactStatus.SKIPPED.value: "⊘",
                ArtifactStatus.FAILED.value: "✗",
            }
            for outcome in self.outcomes:
                lines.append(
                    f"    {icons.get(outcome.status, '?')} {outcome.status:<9s}"
                    f"{outcome.path}"
                )

        sections: Sequence[Tuple[str, List[str], str]] = (
            ("Validation Errors", self.validation_errors, "✗"),
            ("Validation Warnings", self.validation_warnings, "⚠"),
            ("Backup Errors", self.backup_errors, "✗"),
            ("Generation Errors", self.generation_errors, "✗"),
            ("Generation Warnings", self.generation_warnings, "⚠"),
        )
        for title, items, icon in sections:
            if not items:
                continue
            lines.append(f"{'─'*60}")
            lines.append(f"  {title} ({len(items)}):")
            for item in items:
                lines.append(f"    {icon} {item}")

        lines.append(f"{'='*60}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Loader helpers
# ---------------------------------------------------------------------------


def _load_yaml_mapping(path: Path, what: str) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")
    if not path.is_file():
        raise ValueError(f"{what} path is not a file: {path}")

    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a YAML mapping at top level, got {type(data).__name__}."
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Load a YAML schema file mapping entity names to definitions.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed or is not a mapping.
    """
    return _load_yaml_mapping(Path(path), "Schema")


def load_settings(path: Optional[Path] = None, **overrides: Any) -> GeneratorSettings:
    """
    Build ``GeneratorSettings`` from an optional YAML file plus overrides.

    Overrides whose value is ``None`` are ignored so CLI flags that were not
    given never mask the file.

    Raises:
        FileNotFoundError: *path* was given but does not exist.
        ValueError: The file is malformed or a value is invalid.
    """
    data: Dict[str, Any] = _load_yaml_mapping(Path(path), "Settings") if path else {}
    data.update({key: value for key, value in overrides.items() if value is not None})
    return GeneratorSettings.model_validate(data)


# ---------------------------------------------------------------------------
# ModuleGenerator - Master orchestrator
# ---------------------------------------------------------------------------


class ModuleGenerator:
    """
    Master pipeline orchestrator.

    Usage::

        generator = ModuleGenerator(GeneratorSettings(base_path="./app"))

        # From the configured schema file
        report = generator.generate_from_file()

        # From an in-memory mapping
        report = generator.generate({"Author": {"fields": {"name": "string"}}})

        print(report.summary())

    The generator is reusable: create once, call generate() many times.
    """

    def __init__(
        self,
        settings: Optional[GeneratorSettings] = None,
        *,
        confirm: Optional[ConfirmCallback] = None,
        routes: Optional[RouteRegistry] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        """
        Initialise the generator.

        Args:
            settings: Project settings; defaults apply when omitted.
            confirm: Asked before overwriting under the ``prompt`` policy.
            routes: Route file the controllers are appended to; defaults to
                ``routes/api.php`` or ``routes/web.php`` under the root.
            clock: Source of the run timestamp (migrations and backups).
        """
        self.settings: GeneratorSettings = settings or GeneratorSettings()
        self._confirm: Optional[ConfirmCallback] = confirm
        self._clock: Callable[[], datetime] = clock
        self.routes: RouteRegistry = (
            routes if routes is not None
            else RouteRegistry(self.settings.root, api=self.settings.api)
        )
        self.stubs: StubResolver = StubResolver(
            self.settings.stub_directory, self.settings.use_default_stubs
        )

        logger.debug(
            "ModuleGenerator initialised: root=%s, policy=%s, api=%s, backup=%s.",
            self.settings.root,
            self.settings.conflict_policy,
            self.settings.api,
            self.settings.backup,
        )

    @property
    def root(self) -> Path:
        return self.settings.root

    # -----------------------------------------------------------------
    # Public: generate from file
    # -----------------------------------------------------------------

    def generate_from_file(self, schema_path: Optional[Path] = None) -> GenerationReport:
        """
        Full pipeline: load file → validate → back up → generate → routes.

        Args:
            schema_path: YAML schema; defaults to ``settings.schema_file``.
        """
        path: Path = Path(schema_path) if schema_path else self.settings.schema_file
        report: GenerationReport = GenerationReport(
            base_path=str(self.root.resolve()), schema_file=str(path)
        )

        with Timer("load_schema") as t_load:
            try:
                raw: Dict[str, Any] = load_schema_file(path)
            except (FileNotFoundError, ValueError) as exc:
                report.generation_errors.append(str(exc))
                raw = {}

        report.step_metrics.append(GenerationStepMetric(
            step_name="Load Schema File",
            success=not report.generation_errors,
            elapsed_seconds=t_load.elapsed,
            detail=report.generation_errors[0] if report.generation_errors else f"from {path.name}",
        ))
        if report.generation_errors:
            logger.error("Could not load schema: %s", report.generation_errors[0])
            return self._finalise_report(report, t_load.elapsed)

        logger.info("Loaded schema file: %s (%d entities).", path, len(raw))
        return self._run_pipeline(raw, report)

    # -----------------------------------------------------------------
    # Public: generate from an in-memory mapping
    # -----------------------------------------------------------------

    def generate(self, raw: Mapping[str, Any]) -> GenerationReport:
        """Full pipeline from an already-loaded schema mapping."""
        report: GenerationReport = GenerationReport(base_path=str(self.root.resolve()))
        return self._run_pipeline(raw, report)

    def configurations(self, raw: Mapping[str, Any]) -> List[ModelConfiguration]:
        """
        Validated configurations for *raw*, without touching the disk.

        Raises:
            SchemaValidationError: The schema has errors.
        """
        result: ValidationResult = validate_schema(raw)
        if result.has_errors:
            raise SchemaValidationError(result)
        return build_configurations(parse_entities(raw))

    def example_payload(self, raw: Mapping[str, Any], entity: str) -> Dict[str, Any]:
        """
        Example create payload for *entity*, nested relations included.

        Raises:
            SchemaValidationError: The schema has errors.
            ValueError: *entity* is not defined in the schema.
        """
        wanted: str = to_studly_case(entity)
        for config in self.configurations(raw):
            if config.studly_name == wanted:
                return build_example_payload(config)
        raise ValueError(f"Unknown entity '{entity}'.")

    # -----------------------------------------------------------------
    # Internal: master pipeline
    # -----------------------------------------------------------------

    def _run_pipeline(self, raw: Mapping[str, Any], report: GenerationReport) -> GenerationReport:
        pipeline_start: float = time.perf_counter()
        moment: datetime = self._clock()

        entities: Optional[Dict[str, EntityDefinition]] = self._step_validate(raw, report)
        if entities is None:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        configured: Optional[Tuple[List[ModelConfiguration], RelationResolver]] = (
            self._step_configure(entities, report)
        )
        if configured is None:
            return self._finalise_report(report, time.perf_counter() - pipeline_start)
        configs, resolver = configured

        if self.settings.backup and not self._step_backup(configs, moment, report):
            return self._finalise_report(report, time.perf_counter() - pipeline_start)

        writer: ArtifactWriter = ArtifactWriter(
            self.root,
            policy=ConflictPolicy(self.settings.conflict_policy),
            confirm=self._confirm,
        )
        self._step_generate(configs, resolver, writer, moment, report)
        self._step_routes(configs, report)
        report.manifest = writer.manifest

        return self._finalise_report(report, time.perf_counter() - pipeline_start)

    # -----------------------------------------------------------------
    # Pipeline step: Validation
    # -----------------------------------------------------------------

    def _step_validate(
        self,
        raw: Mapping[str, Any],
        report: GenerationReport,
    ) -> Optional[Dict[str, EntityDefinition]]:
        """Validate *raw*; returns parsed entities, or None on errors."""
        with Timer("validation") as t:
            result: ValidationResult = validate_schema(raw)

        report.validation_errors.extend(str(e) for e in result.errors)
        report.validation_warnings.extend(str(w) for w in result.warnings)

        if result.has_errors:
            detail: str = f"{result.error_count} error(s)"
        elif result.warning_count:
            detail = f"{result.warning_count} warning(s)"
        else:
            detail = "all checks passed"

        report.step_metrics.append(GenerationStepMetric(
            step_name="Validate Schema",
            success=result.is_valid,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))

        if result.has_errors:
            for err in result.errors:
                logger.error("  ✗ %s", err)
            return None
        for warn in result.warnings:
            logger.warning("  ⚠ %s", warn)
        return parse_entities(raw)

    # -----------------------------------------------------------------
    # Pipeline step: Configuration
    # -----------------------------------------------------------------

    def _step_configure(
        self,
        entities: Dict[str, EntityDefinition],
        report: GenerationReport,
    ) -> Optional[Tuple[List[ModelConfiguration], RelationResolver]]:
        with Timer("configuration") as t:
            resolver: RelationResolver = RelationResolver(entities)
            try:
                configs: List[ModelConfiguration] = build_configurations(entities, resolver)
            except ValueError as exc:
                report.generation_errors.append(str(exc))
                configs = []

        report.generation_warnings.extend(
            w for w in resolver.warnings if w not in report.validation_warnings
        )
        report.total_entities = len(configs)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Build Configurations",
            success=not report.generation_errors,
            elapsed_seconds=t.elapsed,
            detail=f"{len(configs)} entities",
        ))
        if report.generation_errors:
            logger.error("Configuration failed: %s", report.generation_errors[-1])
            return None
        return configs, resolver

    # -----------------------------------------------------------------
    # Pipeline step: Backup
    # -----------------------------------------------------------------

    def _step_backup(
        self,
        configs: List[ModelConfiguration],
        moment: datetime,
        report: GenerationReport,
    ) -> bool:
        """Snapshot candidate artifacts; False aborts the run."""
        with Timer("backup") as t:
            manager: BackupManager = BackupManager.from_settings(self.settings)
            manager.shared_artifact = self.routes.relative_path
            try:
                manifest: Optional[BackupManifest] = manager.create_backup(configs, moment)
            except OSError as exc:
                report.backup_errors.append(f"Backup failed: {exc}")
                manifest = None

        if manifest is not None:
            report.backup = manifest
            report.generation_warnings.extend(f"Backup: {e}" for e in manifest.errors)

        report.step_metrics.append(GenerationStepMetric(
            step_name="Backup",
            success=manifest is not None,
            elapsed_seconds=t.elapsed,
            detail=(
                f"{manifest.files_backed_up} file(s) → {manifest.timestamp}"
                if manifest is not None
                else report.backup_errors[-1]
            ),
        ))
        if manifest is None:
            logger.error("%s", report.backup_errors[-1])
        return manifest is not None

    # -----------------------------------------------------------------
    # Pipeline step: Synthesis + write
    # -----------------------------------------------------------------

    def _render(
        self,
        artifact: str,
        config: ModelConfiguration,
        related: List[str],
        report: GenerationReport,
    ) -> str:
        """
        Rendered text of one artifact.

        Raises:
            StubNotFoundError: No stub resolves for the artifact.
        """
        if artifact == ArtifactType.MIGRATION.value:
            text, fallback = render_migration(config, self.stubs)
            if fallback:
                report.generation_warnings.append(
                    f"{config.studly_name}: migration stub missing, bare table generated"
                )
            return text
        if artifact == ArtifactType.MODEL.value:
            return self.stubs.render("model", synthesize_model(config))
        if artifact == ArtifactType.REQUEST.value:
            return self.stubs.render("request", synthesize_rules(config))
        if artifact == ArtifactType.RESOURCE.value:
            return self.stubs.render("resource", synthesize_resource(config))
        if artifact == ArtifactType.COLLECTION.value:
            return self.stubs.render("collection", synthesize_collection(config))
        if artifact == ArtifactType.SERVICE.value:
            return self.stubs.render(service_stub_key(config), synthesize_service(config, related))
        if artifact == ArtifactType.CONTROLLER.value:
            return self.stubs.render(
                controller_stub_key(config), synthesize_controller(config, related)
            )
        if artifact == ArtifactType.FACTORY.value:
            return self.stubs.render("factory", synthesize_factory(config))
        return self.stubs.render("seeder", synthesize_seeder(config))

    def _generate_entity(
        self,
        config: ModelConfiguration,
        resolver: RelationResolver,
        writer: ArtifactWriter,
        moment: datetime,
        report: GenerationReport,
    ) -> None:
        paths: ArtifactPaths = ArtifactPaths.for_config(config)
        related: List[str] = resolver.collect_related_models(config.studly_name)

        for component, artifacts in COMPONENT_ARTIFACTS:
            if not config.toggles.enabled(component):
                continue
            for artifact in artifacts:
                relative: Path = (
                    paths.migration(self.root, moment)
                    if artifact == ArtifactType.MIGRATION.value
                    else getattr(paths, artifact)
                )
                try:
                    outcome: ArtifactOutcome = writer.write(
                        config.studly_name,
                        artifact,
                        relative,
                        partial(self._render, artifact, config, related, report),
                    )
                except (StubNotFoundError, OSError) as exc:
                    message: str = f"{config.studly_name} {artifact}: {exc}"
                    report.generation_errors.append(message)
                    logger.error(message)
                    outcome = ArtifactOutcome(
                        config.studly_name,
                        artifact,
                        relative.as_posix(),
                        ArtifactStatus.FAILED.value,
                        str(exc),
                    )
                report.outcomes.append(outcome)
                if outcome.status == ArtifactStatus.SKIPPED.value:
                    report.generation_warnings.append(
                        f"{config.studly_name} {artifact}: {outcome.message}"
                    )

    def _step_generate(
        self,
        configs: List[ModelConfiguration],
        resolver: RelationResolver,
        writer: ArtifactWriter,
        moment: datetime,
        report: GenerationReport,
    ) -> None:
        with Timer("code_generation") as t:
            for index, config in enumerate(configs):
                # One second apart keeps migration file order equal to schema order.
                self._generate_entity(
                    config, resolver, writer, moment + timedelta(seconds=index), report
                )

        detail: str = (
            f"{len(report.created)} created, {len(report.replaced)} replaced, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        report.step_metrics.append(GenerationStepMetric(
            step_name="Generate Artifacts",
            success=not report.failed,
            elapsed_seconds=t.elapsed,
            detail=detail,
        ))
        logger.info("Artifact generation complete: %s in %.3fs.", detail, t.elapsed)

    # -----------------------------------------------------------------
    # Pipeline step: Routes
    # -----------------------------------------------------------------

    def _step_routes(self, configs: List[ModelConfiguration], report: GenerationReport) -> None:
        registry: RouteRegistry = self.routes
        with Timer("routes") as t:
            for config in configs:
                if not config.toggles.controller:
                    continue
                try:
                    result: RouteResult = registry.register(
                        config.table_name, config.classes.controller
                    )
                except OSError as exc:
                    report.generation_errors.append(f"Route for {config.studly_name}: {exc}")
                    continue
                report.routes.append(result)
                if not result.added:
                    report.generation_warnings.append(result.message)

        added: int = sum(1 for r in report.routes if r.added)
        report.step_metrics.append(GenerationStepMetric(
            step_name="Register Routes",
            success=True,
            elapsed_seconds=t.elapsed,
            detail=f"{added} added, {len(report.routes) - added} present in {registry.relative_path}",
        ))

    # -----------------------------------------------------------------
    # Internal: finalise report
    # -----------------------------------------------------------------

    def _finalise_report(self, report: GenerationReport, total_elapsed: float) -> GenerationReport:
        """Set final status and timing on the report."""
        report.total_elapsed_seconds = total_elapsed
        report.success = not (
            report.validation_errors or report.generation_errors or report.backup_errors
        )
        return report


def payload_json(payload: Mapping[str, Any]) -> str:
    """Pretty JSON for an example payload."""
    return json.dumps(payload, indent=2, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ModuleGenerator",
    "GenerationReport",
    "GenerationStepMetric",
    "COMPONENT_ARTIFACTS",
    "load_schema_file",
    "load_settings",
    "payload_json",
]

logger.debug("modulegen.generator loaded.")
