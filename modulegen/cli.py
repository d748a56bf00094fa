# File: modulegen/cli.py
"""
ModuleGen - Command-Line Interface
====================================

CLI built with the standard-library ``argparse`` module.

Usage examples::

    # Generate every entity of module/models.yaml
    python -m modulegen generate

    # Another schema, overwrite existing artifacts without asking
    python -m modulegen generate -f schema.yaml --force --yes

    # Ask before each overwrite, register web routes, no backup
    python -m modulegen generate --prompt --web --skip-backup

    # Validate only (no file output)
    python -m modulegen validate -f schema.yaml

    # Restore the latest backup / list / prune backups
    python -m modulegen rollback --yes
    python -m modulegen rollback --list
    python -m modulegen rollback --cleanup 3

    # Example request payload for one entity
    python -m modulegen payload Author

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — backup/rollback error
    4 — input/argument error
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, NoReturn, Optional, Sequence

if TYPE_CHECKING:
    from modulegen.models import GeneratorSettings

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modulegen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_BACKUP_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4

_CLEANUP_DEFAULT: int = -1


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the root modulegen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("modulegen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_project_arguments(parser: argparse.ArgumentParser, with_schema: bool = True) -> None:
    group = parser.add_argument_group("project")
    if with_schema:
        group.add_argument(
            "-f", "--file",
            type=str,
            default=None,
            metavar="PATH",
            help="Schema file (default: models_path from the settings).",
        )
    group.add_argument(
        "--config",
        type=str,
        default=None,
        metavar="PATH",
        help="YAML settings file.",
    )
    group.add_argument(
        "--base-path",
        type=str,
        default=None,
        metavar="DIR",
        help="Project root artifacts are written under (default: '.').",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from modulegen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="modulegen",
        description=(
            "ModuleGen — declarative CRUD module generator.\n\n"
            "Turns a YAML entity schema into models, migrations, requests, "
            "resources, services, controllers, factories, seeders and routes."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s generate -f module/models.yaml\n"
            "  %(prog)s generate --force --yes\n"
            "  %(prog)s rollback --list\n"
            "  %(prog)s payload Author\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"ModuleGen v{__version__}",
    )

    verbosity_group = parser.add_argument_group("verbosity")
    verbosity_group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    verbosity_group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # --- generate ---
    generate = commands.add_parser("generate", help="Generate artifacts from a schema.")
    _add_project_arguments(generate)
    generate.add_argument(
        "--stubs",
        type=str,
        default=None,
        metavar="DIR",
        help="Directory holding <key>.stub overrides.",
    )
    conflict_group = generate.add_argument_group("existing artifacts")
    policy = conflict_group.add_mutually_exclusive_group()
    policy.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite existing artifacts.",
    )
    policy.add_argument(
        "--prompt",
        action="store_true",
        default=False,
        help="Ask before overwriting each existing artifact.",
    )
    conflict_group.add_argument(
        "-y", "--yes",
        action="store_true",
        default=False,
        help="Do not ask for confirmation before a forced run.",
    )
    behaviour_group = generate.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--skip-backup",
        action="store_true",
        default=False,
        help="Do not snapshot existing artifacts first.",
    )
    behaviour_group.add_argument(
        "--web",
        action="store_true",
        default=False,
        help="Register routes in routes/web.php with Route::resource.",
    )

    # --- validate ---
    validate = commands.add_parser("validate", help="Validate a schema without writing files.")
    _add_project_arguments(validate)

    # --- rollback ---
    rollback = commands.add_parser("rollback", help="Restore, list or prune backups.")
    _add_project_arguments(rollback, with_schema=False)
    rollback_mode = rollback.add_mutually_exclusive_group()
    rollback_mode.add_argument(
        "--backup",
        type=str,
        default=None,
        metavar="TIMESTAMP",
        help="Backup to restore (default: the latest).",
    )
    rollback_mode.add_argument(
        "--list",
        action="store_true",
        default=False,
        help="List available backups.",
    )
    rollback_mode.add_argument(
        "--cleanup",
        type=int,
        nargs="?",
        const=_CLEANUP_DEFAULT,
        default=None,
        metavar="KEEP",
        help="Delete old backups, keeping the newest KEEP (default: keep_backups).",
    )
    rollback.add_argument(
        "-y", "--yes",
        action="store_true",
        default=False,
        help="Do not ask for confirmation.",
    )

    # --- payload ---
    payload = commands.add_parser("payload", help="Print an example request payload.")
    payload.add_argument("entity", metavar="ENTITY", help="Entity name, e.g. Author.")
    _add_project_arguments(payload)

    return parser


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _ask(question: str) -> bool:
    """Blocking yes/no question on stdin; anything but yes means no."""
    try:
        answer: str = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {"base_path": args.base_path}

    if getattr(args, "stubs", None) is not None:
        overrides["stub_path"] = args.stubs
    if getattr(args, "force", False):
        overrides["conflict_policy"] = "force"
    elif getattr(args, "prompt", False):
        overrides["conflict_policy"] = "prompt"
    if getattr(args, "skip_backup", False):
        overrides["backup"] = False
    if getattr(args, "web", False):
        overrides["api"] = False

    return overrides


def _load_settings(args: argparse.Namespace) -> Optional[GeneratorSettings]:
    from modulegen.generator import load_settings

    try:
        return load_settings(
            Path(args.config) if args.config else None, **_settings_overrides(args)
        )
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Invalid settings: %s", exc)
        return None


def _schema_path(args: argparse.Namespace, settings: GeneratorSettings) -> Optional[Path]:
    path: Path = Path(args.file) if args.file else settings.schema_file
    if not path.is_file():
        logger.error("Schema file not found: %s", path)
        return None
    return path


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _run_generate(args: argparse.Namespace) -> int:
    from modulegen.generator import GenerationReport, ModuleGenerator
    from modulegen.models import ConflictPolicy

    settings = _load_settings(args)
    if settings is None:
        return EXIT_INPUT_ERROR
    schema_path: Optional[Path] = _schema_path(args, settings)
    if schema_path is None:
        return EXIT_INPUT_ERROR

    policy: str = ConflictPolicy(settings.conflict_policy).value
    if policy == ConflictPolicy.FORCE.value and not args.yes:
        if not _ask("Existing artifacts will be overwritten. Continue?"):
            print("Aborted.")
            return EXIT_SUCCESS

    logger.info("Schema:  %s", schema_path)
    logger.info("Root:    %s", settings.root.resolve())
    logger.info("Policy:  %s", policy)

    generator: ModuleGenerator = ModuleGenerator(
        settings, confirm=_ask if policy == ConflictPolicy.PROMPT.value else None
    )
    report: GenerationReport = generator.generate_from_file(schema_path)
    print(report.summary())

    if report.success:
        return EXIT_SUCCESS
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.backup_errors:
        return EXIT_BACKUP_ERROR
    return EXIT_GENERATION_ERROR


def _run_validate(args: argparse.Namespace) -> int:
    from modulegen.generator import load_schema_file
    from modulegen.utils import Timer
    from modulegen.validators import ValidationResult, validate_schema

    settings = _load_settings(args)
    if settings is None:
        return EXIT_INPUT_ERROR
    schema_path: Optional[Path] = _schema_path(args, settings)
    if schema_path is None:
        return EXIT_INPUT_ERROR

    try:
        raw: Dict[str, Any] = load_schema_file(schema_path)
    except (FileNotFoundError, ValueError) as exc:
        logger.error("Failed to load schema: %s", exc)
        return EXIT_INPUT_ERROR

    with Timer("validation") as t:
        result: ValidationResult = validate_schema(raw)

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:      {schema_path.name}")
    print(f"  Entities:  {len(raw)}")
    print(f"  Time:      {t.elapsed:.3f}s")
    print(f"  Valid:     {'Yes' if result.is_valid else 'No'}")
    if len(result):
        print()
        print(result.format_report())
    elif result.is_valid:
        print("\n  ✅ All validations passed!")
    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


def _run_rollback(args: argparse.Namespace) -> int:
    from modulegen.backup import BackupInfo, BackupManager, RollbackResult

    settings = _load_settings(args)
    if settings is None:
        return EXIT_INPUT_ERROR
    manager: BackupManager = BackupManager.from_settings(settings)

    if args.list:
        backups: List[BackupInfo] = manager.list_backups()
        if not backups:
            print("No backups found.")
            return EXIT_SUCCESS
        print(f"{'Timestamp':<24}{'Entities':>10}{'Files':>8}{'Size':>12}  Manifest")
        for info in backups:
            print(
                f"{info.timestamp:<24}{info.entities_count:>10}{info.files_backed_up:>8}"
                f"{info.size_label:>12}  {'yes' if info.has_manifest else 'no'}"
            )
        return EXIT_SUCCESS

    if args.cleanup is not None:
        keep: Optional[int] = None if args.cleanup == _CLEANUP_DEFAULT else args.cleanup
        try:
            deleted: int = manager.cleanup(keep)
        except ValueError as exc:
            logger.error("%s", exc)
            return EXIT_INPUT_ERROR
        print(f"Deleted {deleted} old backup(s).")
        return EXIT_SUCCESS

    target: str = args.backup or "the latest backup"
    if not args.yes and not _ask(f"Restore {target}? Generated files will be removed."):
        print("Aborted.")
        return EXIT_SUCCESS

    result: RollbackResult = manager.rollback(args.backup)
    print(result.summary())
    return EXIT_SUCCESS if result.success else EXIT_BACKUP_ERROR


def _run_payload(args: argparse.Namespace) -> int:
    from modulegen.generator import ModuleGenerator, load_schema_file, payload_json
    from modulegen.validators import SchemaValidationError

    settings = _load_settings(args)
    if settings is None:
        return EXIT_INPUT_ERROR
    schema_path: Optional[Path] = _schema_path(args, settings)
    if schema_path is None:
        return EXIT_INPUT_ERROR

    try:
        raw: Dict[str, Any] = load_schema_file(schema_path)
        payload: Dict[str, Any] = ModuleGenerator(settings).example_payload(raw, args.entity)
    except SchemaValidationError as exc:
        print(exc.result.format_report(), file=sys.stderr)
        return EXIT_VALIDATION_ERROR
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return EXIT_INPUT_ERROR

    print(payload_json(payload))
    return EXIT_SUCCESS


_COMMANDS = {
    "generate": _run_generate,
    "validate": _run_validate,
    "rollback": _run_rollback,
    "payload": _run_payload,
}


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
        logging.disable(logging.NOTSET)

    _setup_logging(verbosity)

    exit_code: int = _COMMANDS[args.command](args)

    if exit_code == EXIT_SUCCESS:
        logger.info("%s completed successfully.", args.command)
    else:
        logger.error("%s failed with exit code %d.", args.command, exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_BACKUP_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("modulegen.cli loaded.")
