"""Path planner -- pure functions deciding where imported files go.

Standard structure:
    <Music>/Artist Name/Album Name/03 - Track Title.mp3

Archive and problem copies mirror the file's place under Import:
    <Import>/sub/track.mp3  ->  <Imported>/sub/track.mp3
                            ->  <Problem>/sub/track.mp3

Identical metadata always produces identical paths.
"""

from __future__ import annotations

from pathlib import Path

from player.models.audio_file import AudioFormat
from player.models.metadata import Metadata
from player.utils.constants import (
    INVALID_PATH_CHARS,
    PATH_CHAR_REPLACEMENT,
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    UNKNOWN_TITLE,
)
from player.utils.file_utils import rebase

_TRANSLATION = str.maketrans({c: PATH_CHAR_REPLACEMENT for c in INVALID_PATH_CHARS})


def sanitize_component(name: str) -> str:
    """Make a metadata string safe to use as one path component.

    Each of ``/ \\ : * ? " < > |`` becomes ``_``; surrounding whitespace
    is trimmed.

    Args:
        name: Raw metadata string.

    Returns:
        Sanitized string (may be empty).
    """
    return name.translate(_TRANSLATION).strip()


def _component_or(value: str | None, fallback: str) -> str:
    """Sanitize *value*, using *fallback* when it is missing, blank or only dots."""
    if value is None:
        return fallback
    component = sanitize_component(value)
    if not component.strip("."):
        return fallback
    return component


def library_filename(metadata: Metadata, fmt: AudioFormat) -> str:
    """Build ``NN - Title.ext`` (or ``Title.ext`` without a track number)."""
    title = _component_or(metadata.title, UNKNOWN_TITLE)
    if metadata.track_number is not None:
        return f"{metadata.track_number:02d} - {title}.{fmt.extension}"
    return f"{title}.{fmt.extension}"


def library_path(metadata: Metadata, fmt: AudioFormat, music_root: Path) -> Path:
    """Canonical location of a track inside the library tree.

    Args:
        metadata: Tag values for the track.
        fmt: Container format (decides the extension).
        music_root: Root of the library tree.

    Returns:
        ``<music_root>/<artist>/<album>/<filename>``.
    """
    artist = _component_or(metadata.effective_artist, UNKNOWN_ARTIST)
    album = _component_or(metadata.album, UNKNOWN_ALBUM)
    return music_root / artist / album / library_filename(metadata, fmt)


def archive_path(source: Path, import_root: Path, archive_root: Path) -> Path:
    """Where the original of an imported file is kept."""
    return rebase(source, import_root, archive_root)


def problem_path(source: Path, import_root: Path, problem_root: Path) -> Path:
    """Where a file whose duration is unknown is parked."""
    return rebase(source, import_root, problem_root)
