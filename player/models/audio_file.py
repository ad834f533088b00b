"""Audio file reference and container format detection."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from player.utils.constants import FORMAT_EXTENSIONS


class AudioFormat(Enum):
    """Recognized audio containers.

    MP3 carries ID3 tags and is the primary import format. M4B is the
    chapter-bearing audiobook container (``.m4a`` files are treated as M4B).
    """

    MP3 = "mp3"
    M4B = "m4b"

    @classmethod
    def from_extension(cls, ext: str) -> AudioFormat | None:
        """Map a file extension to a format.

        Args:
            ext: Extension with or without the leading dot, any case.

        Returns:
            The matching AudioFormat, or None for unrecognized extensions.
        """
        value = FORMAT_EXTENSIONS.get(ext.lower().lstrip("."))
        return cls(value) if value else None

    @classmethod
    def from_path(cls, path: Path | str) -> AudioFormat | None:
        """Detect the format of a file from its extension."""
        suffix = Path(path).suffix
        if not suffix:
            return None
        return cls.from_extension(suffix)

    @classmethod
    def from_name(cls, name: str) -> AudioFormat:
        """Parse a serialized format name (as stored in the manifest).

        Raises:
            ValueError: If *name* is not a known format value.
        """
        return cls(name)

    @property
    def extension(self) -> str:
        """Canonical file extension (without the dot) for this format."""
        return self.value


@dataclass(frozen=True)
class AudioFile:
    """An absolute path paired with its detected format.

    Attributes:
        path: Absolute path to the file on disk.
        format: Container format.
    """

    path: Path
    format: AudioFormat

    def __post_init__(self) -> None:
        if isinstance(self.path, str):
            object.__setattr__(self, "path", Path(self.path))

    @classmethod
    def from_path(cls, path: Path | str) -> AudioFile | None:
        """Build a reference for *path*, or None if the format is unknown."""
        fmt = AudioFormat.from_path(path)
        if fmt is None:
            return None
        return cls(path=Path(path), format=fmt)
