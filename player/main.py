"""Player -- command-line entry point for the import/repair/sync pipeline."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from player.core.importer import ImportBatch, LibraryImporter
from player.core.repair import ProblemRepairer, ProgressCallback, RepairProgress, RepairReport
from player.db.manifest import ManifestStore
from player.models.config import AppConfig, RootPaths
from player.models.errors import DataInvariantViolation, ManifestCorruptionError, NoDurationError
from player.models.library import Library
from player.utils.constants import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_REPAIR_WORKERS,
)
from player.utils.file_utils import has_any_file
from player.utils.logger import get_logger, setup_logger

logger = get_logger("main")

# Directories that must never hold the player root (exact matches).
_DANGEROUS_PATHS = frozenset(
    {
        "/",
        "/bin",
        "/boot",
        "/etc",
        "/lib",
        "/opt",
        "/sbin",
        "/tmp",
        "/usr",
        "/usr/bin",
        "/var",
        "/System",
        "/Library",
        "/Applications",
        "c:/",
        "c:/windows",
        "c:/windows/system32",
        "c:/program files",
        "c:/program files (x86)",
    }
)

_VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _root_path_problem(raw: str) -> str | None:
    """Explain why *raw* is unsafe as a player root, or return None.

    The check runs on the normalized string rather than a resolved Path so
    Windows drive paths are judged correctly on any platform.
    """
    normalized = raw.replace("\\", "/").rstrip("/")
    if not normalized or (len(normalized) == 2 and normalized[1] == ":"):
        return "is a filesystem root. Files are moved under this directory."

    candidates = {normalized.lower()}
    if ":" not in normalized:
        candidates.add(str(Path(normalized).expanduser().resolve()).replace("\\", "/").lower())
    dangerous = {d.lower() for d in _DANGEROUS_PATHS}
    if candidates & dangerous:
        return "is a system directory. Files are moved under this directory."
    return None


def validate_config(config: dict) -> list[str]:
    """Validate configuration values and return a list of warnings.

    Invalid values are repaired in place so ``AppConfig.from_dict`` can
    consume the dict afterwards.

    Checks:
    - root_path is not a filesystem root or a known system directory
    - repair_workers is a positive integer
    - log_level is a known logging level

    Args:
        config: Raw configuration dictionary.

    Returns:
        Human-readable warnings. Empty if all checks pass.
    """
    warnings: list[str] = []

    root_path = config.get("root_path") or ""
    if root_path:
        reason = _root_path_problem(str(root_path))
        if reason:
            warnings.append(f"root_path '{root_path}' {reason}")

    workers = config.get("repair_workers", DEFAULT_REPAIR_WORKERS)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        warnings.append(
            f"repair_workers must be a positive integer, got {workers!r}. "
            f"Using default ({DEFAULT_REPAIR_WORKERS})."
        )
        config["repair_workers"] = DEFAULT_REPAIR_WORKERS

    level = config.get("log_level", "INFO")
    if not isinstance(level, str) or level.upper() not in _VALID_LOG_LEVELS:
        warnings.append(f"log_level {level!r} is not a logging level. Using INFO.")
        config["log_level"] = "INFO"
    else:
        config["log_level"] = level.upper()

    return warnings


def load_config(path: Path | str | None = None) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Explicit config file. When omitted, ``config/config.yaml``
            next to the project is used if it exists.

    Returns:
        Configuration dictionary (suitable for ``AppConfig.from_dict()``).

    Raises:
        FileNotFoundError: An explicit *path* does not exist.
        ValueError: The file does not hold a YAML mapping.
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = Path(__file__).parent.parent / "config" / DEFAULT_CONFIG_FILENAME
        if not config_path.exists():
            return {}

    with open(config_path, encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return config


# =============================================================================
# Pipeline
# =============================================================================


@dataclass
class SyncReport:
    """What one sync pass did.

    Attributes:
        repair: Repair outcomes (None when the problem tree was empty).
        imports: Import outcomes.
        saved: Whether the manifest was rewritten.
    """

    repair: RepairReport | None = None
    imports: ImportBatch = field(default_factory=ImportBatch)
    saved: bool = False


def open_library(paths: RootPaths, store: ManifestStore) -> Library:
    """Load the catalog, migrating a legacy ``lib.json`` on first use.

    Raises:
        DataInvariantViolation: The manifest holds an impossible entry.
        ManifestCorruptionError: The legacy file is unreadable as JSON.
    """
    legacy = paths.legacy_manifest_path
    if not store.exists() and legacy.is_file():
        logger.info("Migrating legacy library %s -> %s", legacy, store.path)
        library = ManifestStore.load_legacy(legacy)
        store.save(library)
        return library
    return store.load_library()


def sync_library(
    paths: RootPaths,
    library: Library,
    store: ManifestStore,
    *,
    repairer: ProblemRepairer | None = None,
    importer: LibraryImporter | None = None,
    progress_callback: ProgressCallback | None = None,
) -> SyncReport:
    """Repair problem files, import everything pending, and persist.

    Repair only runs when the problem tree holds at least one file. The
    manifest is saved only if at least one file was imported.

    Args:
        paths: Directory layout.
        library: Catalog to extend (mutated in place).
        store: Manifest to save to.
        repairer: Repair pool (a default one is built if omitted).
        importer: Importer (a default one is built if omitted).
        progress_callback: Receives repair progress on this thread.

    Returns:
        Summary of the pass.
    """
    report = SyncReport()

    if has_any_file(paths.problem_dir):
        repairer = repairer or ProblemRepairer(paths)
        report.repair = repairer.repair_all(progress_callback)

    importer = importer or LibraryImporter(paths)
    report.imports = importer.import_all_pending(library)

    if report.imports.success_count > 0:
        store.save(library)
        report.saved = True

    return report


# =============================================================================
# CLI
# =============================================================================


def _print_progress(progress: RepairProgress) -> None:
    print(
        f"Repairing [{progress.current}/{progress.total}] {progress.current_file.name}",
        file=sys.stderr,
    )


def _print_repair(report: RepairReport) -> None:
    print(f"Repaired {len(report.successes)} file(s), {len(report.failures)} failed")
    for failure in report.failures:
        print(f"  {failure.path.name}: {failure.reason}")


def _print_imports(batch: ImportBatch) -> None:
    print(f"Imported {batch.success_count} file(s), {batch.error_count} failed")
    for failure in batch.failed:
        name = failure.path.name if failure.path else "?"
        if isinstance(failure, NoDurationError):
            print(f"  {name}: no duration, moved to {failure.moved_to}")
        else:
            print(f"  {name}: {failure.message}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="player",
        description="Import audio files into the Player library.",
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", type=Path, help="Path to a YAML config file")
    common.add_argument("--root", type=Path, help="Player root (overrides root_path)")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("sync", parents=[common], help="Repair problem files, then import")
    sub.add_parser("import", parents=[common], help="Import files waiting in Import/")
    sub.add_parser("repair", parents=[common], help="Recover durations for Problem/ files")
    sub.add_parser("init", parents=[common], help="Create the player directories")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Application entry point. Loads config, sets up logging, runs a command.

    Returns:
        Process exit code.
    """
    args = _build_parser().parse_args(argv)

    try:
        raw_config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: could not load config: {e}", file=sys.stderr)
        return 2

    config_warnings = validate_config(raw_config)
    if args.root is not None:
        raw_config["root_path"] = str(args.root)
    config = AppConfig.from_dict(raw_config)

    setup_logger(log_level=config.log_level, log_file=config.log_file)
    logger.info("%s v%s starting", APP_NAME, APP_VERSION)
    for warning in config_warnings:
        logger.warning("Config: %s", warning)

    paths = config.root_paths()
    try:
        paths.ensure_directories()
    except OSError as e:
        logger.error("Cannot create player directories under %s: %s", paths.root, e)
        return 1

    if args.command == "init":
        print(f"Initialized {paths.root}")
        return 0

    store = ManifestStore(paths.manifest_path)
    try:
        library = open_library(paths, store)
    except (DataInvariantViolation, ManifestCorruptionError) as e:
        logger.error("Library manifest is corrupt: %s", e)
        return 1
    except OSError as e:
        logger.error("Cannot read library manifest: %s", e)
        return 1

    repairer = ProblemRepairer(paths, max_workers=config.repair_workers)
    try:
        if args.command == "repair":
            _print_repair(repairer.repair_all(_print_progress))
        elif args.command == "import":
            batch = LibraryImporter(paths).import_all_pending(library)
            if batch.success_count > 0:
                store.save(library)
            _print_imports(batch)
        else:
            report = sync_library(
                paths, library, store,
                repairer=repairer,
                progress_callback=_print_progress,
            )
            if report.repair is not None:
                _print_repair(report.repair)
            _print_imports(report.imports)
    except OSError as e:
        logger.error("Could not save library manifest: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
