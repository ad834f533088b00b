"""Typed configuration model for Player.

``AppConfig`` mirrors the YAML config file. ``RootPaths`` is the resolved
directory layout that every pipeline component receives explicitly; nothing
in the pipeline looks up a global root.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path

from player.utils.constants import (
    DEFAULT_MANIFEST_FILENAME,
    DEFAULT_REPAIR_WORKERS,
    DEFAULT_ROOT_DIRNAME,
    IMPORTED_DIRNAME,
    IMPORT_DIRNAME,
    LEGACY_MANIFEST_FILENAME,
    MUSIC_DIRNAME,
    PROBLEM_DIRNAME,
)


@dataclass
class AppConfig:
    """Strongly-typed configuration for the Player pipeline.

    Attributes:
        root_path: Directory holding Import/, Music/, Imported/, Problem/
            and the manifest. Empty means ``~/Player``.
        manifest_filename: Name of the manifest file inside ``root_path``.
        repair_workers: Number of parallel decode workers used by repair.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file (None = console only).
    """

    root_path: str = ""
    manifest_filename: str = DEFAULT_MANIFEST_FILENAME
    repair_workers: int = DEFAULT_REPAIR_WORKERS
    log_level: str = "INFO"
    log_file: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> AppConfig:
        """Create an AppConfig from a raw dictionary (e.g., from YAML).

        Unknown keys and ``None`` values are ignored so older config files
        keep working.

        Args:
            data: Dictionary of configuration values.

        Returns:
            Populated AppConfig instance.
        """
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in known_fields and v is not None}
        return cls(**filtered)

    def to_dict(self) -> dict:
        """Serialize the config to a dictionary."""
        return asdict(self)

    @property
    def root_path_resolved(self) -> Path:
        """The configured root as an absolute path (``~/Player`` by default)."""
        if not self.root_path:
            return Path.home() / DEFAULT_ROOT_DIRNAME
        return Path(self.root_path).expanduser().resolve()

    def root_paths(self) -> RootPaths:
        """Derive the directory layout from this config."""
        return RootPaths.from_root(self.root_path_resolved, self.manifest_filename)


@dataclass(frozen=True)
class RootPaths:
    """Resolved locations of the four pipeline directories and the manifest.

    Attributes:
        root: The player root.
        import_dir: Inbound files dropped by the user.
        music_dir: Canonical library tree (artist/album/file).
        imported_dir: Archive of originals, mirroring Import/.
        problem_dir: Files whose duration is unknown, mirroring Import/.
        manifest_path: The JSON Lines catalog.
    """

    root: Path
    import_dir: Path
    music_dir: Path
    imported_dir: Path
    problem_dir: Path
    manifest_path: Path

    @classmethod
    def from_root(
        cls,
        root: Path | str,
        manifest_filename: str = DEFAULT_MANIFEST_FILENAME,
    ) -> RootPaths:
        """Build the standard layout under *root*, made absolute."""
        root = Path(root).absolute()
        return cls(
            root=root,
            import_dir=root / IMPORT_DIRNAME,
            music_dir=root / MUSIC_DIRNAME,
            imported_dir=root / IMPORTED_DIRNAME,
            problem_dir=root / PROBLEM_DIRNAME,
            manifest_path=root / manifest_filename,
        )

    @property
    def legacy_manifest_path(self) -> Path:
        """Location of the pre-JSON-Lines manifest, used for migration."""
        return self.root / LEGACY_MANIFEST_FILENAME

    def ensure_directories(self) -> None:
        """Create the four pipeline directories if they are missing."""
        for directory in (self.import_dir, self.music_dir, self.imported_dir, self.problem_dir):
            directory.mkdir(parents=True, exist_ok=True)
