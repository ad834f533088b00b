"""Manifest store -- the catalog persisted as JSON Lines.

File layout (one JSON object per line):
    {"type": "meta", "next_song_id": 4, "next_audiobook_id": 1}
    {"type": "song", "id": 1, "path": "...", "format": "mp3", ...}
    {"type": "audiobook", "id": 1, "path": "...", "chapters": [...], ...}

Saves go to a temporary sibling file which is then renamed over the
manifest, so readers always see either the old or the new complete file.
Loads stream line by line: a malformed line becomes a ``SkippedLine`` and
reading continues, but an entry with an impossible duration aborts the load.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterator

from player.models.audio_file import AudioFile, AudioFormat
from player.models.errors import DataInvariantViolation, ManifestCorruptionError
from player.models.library import Audiobook, Chapter, Library, Song
from player.utils.constants import MANIFEST_ENCODING, MANIFEST_TEMP_SUFFIX
from player.utils.logger import get_logger

logger = get_logger("db.manifest")

_MAX_ID = 2 ** 64


@dataclass(frozen=True)
class ManifestMeta:
    """Counters recorded at save time. Informational only."""

    next_song_id: int
    next_audiobook_id: int


@dataclass(frozen=True)
class SkippedLine:
    """A manifest line that could not be parsed.

    Attributes:
        line_number: 1-based line number in the manifest file.
        error: Description of the parse failure.
    """

    line_number: int
    error: str


LoadedEntry = Song | Audiobook | ManifestMeta | SkippedLine
SkippedLineCallback = Callable[[SkippedLine], None]


class ManifestStore:
    """Reads and writes the JSONL manifest at a fixed path.

    Only one save may run at a time against a given path; the store does
    not lock.

    Usage:
        store = ManifestStore(paths.manifest_path)
        library = store.load_library()
        store.save(library)
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @property
    def temp_path(self) -> Path:
        """Sibling file that receives a save before it is renamed into place."""
        return self.path.with_name(self.path.name + MANIFEST_TEMP_SUFFIX)

    def exists(self) -> bool:
        return self.path.is_file()

    # --- Saving ---

    def save(self, library: Library) -> None:
        """Atomically replace the manifest with the contents of *library*.

        Args:
            library: Catalog to persist.

        Raises:
            OSError: If the temporary file cannot be written or renamed.
                The existing manifest is left untouched.
            ValueError: An entry holds a non-finite number.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = [_meta_record(library)]
        lines.extend(_song_record(library.songs[i]) for i in sorted(library.songs))
        lines.extend(_audiobook_record(library.audiobooks[i]) for i in sorted(library.audiobooks))

        tmp = self.temp_path
        try:
            with open(tmp, "w", encoding=MANIFEST_ENCODING, newline="\n") as f:
                for record in lines:
                    f.write(json.dumps(record, ensure_ascii=False, allow_nan=False))
                    f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except (OSError, ValueError):
            tmp.unlink(missing_ok=True)
            raise

        logger.info(
            "Saved manifest %s: %d songs, %d audiobooks",
            self.path, len(library.songs), len(library.audiobooks),
        )

    # --- Loading ---

    def load(self) -> Iterator[LoadedEntry]:
        """Stream the manifest one entry at a time.

        A missing manifest yields nothing. Blank lines are ignored. The
        returned iterator is single-pass.

        Yields:
            Song, Audiobook, ManifestMeta or SkippedLine, in file order.

        Raises:
            DataInvariantViolation: An entry holds an impossible duration.
            OSError: The manifest exists but cannot be read.
        """
        if not self.path.is_file():
            logger.debug("No manifest at %s", self.path)
            return

        with open(self.path, "rb") as f:
            for line_number, raw in enumerate(f, start=1):
                if not raw.strip():
                    continue
                try:
                    entry = _parse_line(raw, line_number)
                except ManifestCorruptionError as e:
                    entry = SkippedLine(line_number=line_number, error=e.reason)
                yield entry

    def load_library(self, on_skip: SkippedLineCallback | None = None) -> Library:
        """Load the whole manifest into a fresh Library.

        Args:
            on_skip: Optional hook called for each unparseable line.

        Returns:
            The populated catalog. Meta lines are ignored; counters are
            recomputed from the loaded identifiers.
        """
        library = Library()
        skipped = 0
        for entry in self.load():
            if isinstance(entry, Song):
                library.add_song(entry)
            elif isinstance(entry, Audiobook):
                library.add_audiobook(entry)
            elif isinstance(entry, SkippedLine):
                skipped += 1
                logger.warning("Skipped manifest line %d: %s", entry.line_number, entry.error)
                if on_skip:
                    on_skip(entry)

        logger.info(
            "Loaded %d songs and %d audiobooks from %s (%d lines skipped)",
            len(library.songs), len(library.audiobooks), self.path, skipped,
        )
        return library

    @staticmethod
    def load_legacy(path: Path | str) -> Library:
        """Read a single-document JSON library written by older versions.

        The legacy format is one object holding ``songs`` and ``audiobooks``
        maps keyed by identifier. Malformed entries are skipped with a
        warning; impossible durations still abort.

        Args:
            path: Location of the legacy ``lib.json``.

        Returns:
            The catalog it describes.

        Raises:
            ManifestCorruptionError: The document itself is not valid JSON
                or is not an object.
            DataInvariantViolation: An entry holds an impossible duration.
        """
        path = Path(path)
        with open(path, "r", encoding=MANIFEST_ENCODING) as f:
            try:
                document = json.load(f)
            except json.JSONDecodeError as e:
                raise ManifestCorruptionError(e.lineno, f"invalid JSON: {e.msg}") from e
            except UnicodeDecodeError as e:
                raise ManifestCorruptionError(1, f"invalid {MANIFEST_ENCODING}") from e
            except RecursionError as e:
                raise ManifestCorruptionError(1, "JSON nested too deeply") from e
        if not isinstance(document, dict):
            raise ManifestCorruptionError(1, "legacy library must be a JSON object")

        library = Library()
        for kind, parse, add in (
            ("songs", _parse_song, library.add_song),
            ("audiobooks", _parse_audiobook, library.add_audiobook),
        ):
            entries = document.get(kind) or {}
            if not isinstance(entries, dict):
                logger.warning("Legacy library field '%s' is not an object, ignored", kind)
                continue
            for key, record in entries.items():
                try:
                    if not isinstance(record, dict):
                        raise ManifestCorruptionError(0, "entry is not an object")
                    record = {**record, "id": _legacy_id(key)}
                    add(parse(record, 0))
                except ManifestCorruptionError as e:
                    logger.warning("Skipped legacy %s entry %s: %s", kind, key, e.reason)

        logger.info(
            "Loaded legacy library %s: %d songs, %d audiobooks",
            path, len(library.songs), len(library.audiobooks),
        )
        return library


# =============================================================================
# Serialization
# =============================================================================


def _meta_record(library: Library) -> dict[str, Any]:
    return {
        "type": "meta",
        "next_song_id": library.first_free_song_id,
        "next_audiobook_id": library.first_free_audiobook_id,
    }


def _song_record(song: Song) -> dict[str, Any]:
    return {
        "type": "song",
        "id": song.id,
        "path": str(song.file.path),
        "format": song.file.format.value,
        "title": song.title,
        "artist": song.artist,
        "album": song.album,
        "track_number": song.track_number,
        "duration": song.duration,
    }


def _audiobook_record(book: Audiobook) -> dict[str, Any]:
    return {
        "type": "audiobook",
        "id": book.id,
        "path": str(book.file.path),
        "format": book.file.format.value,
        "title": book.title,
        "author": book.author,
        "chapters": [
            {"title": ch.title, "start": ch.start, "end": ch.end}
            for ch in book.chapters
        ],
        "total_duration": book.total_duration,
    }


# =============================================================================
# Parsing
# =============================================================================


def _parse_line(raw: bytes, line_number: int) -> Song | Audiobook | ManifestMeta:
    """Parse one raw manifest line.

    Raises:
        ManifestCorruptionError: The line is not a well-formed entry.
        DataInvariantViolation: The entry is well-formed but impossible.
    """
    try:
        line = raw.decode(MANIFEST_ENCODING)
    except UnicodeDecodeError as e:
        raise ManifestCorruptionError(
            line_number, f"invalid {MANIFEST_ENCODING} at byte {e.start}"
        ) from e
    try:
        record = json.loads(line)
    except json.JSONDecodeError as e:
        raise ManifestCorruptionError(line_number, f"invalid JSON: {e.msg}") from e
    except RecursionError as e:
        raise ManifestCorruptionError(line_number, "JSON nested too deeply") from e
    if not isinstance(record, dict):
        raise ManifestCorruptionError(line_number, "entry is not a JSON object")

    kind = record.get("type")
    if kind == "meta":
        return ManifestMeta(
            next_song_id=_id_field(record, "next_song_id", line_number),
            next_audiobook_id=_id_field(record, "next_audiobook_id", line_number),
        )
    if kind == "song":
        return _parse_song(record, line_number)
    if kind == "audiobook":
        return _parse_audiobook(record, line_number)
    raise ManifestCorruptionError(line_number, f"unknown entry type {kind!r}")


def _parse_song(record: dict[str, Any], line_number: int) -> Song:
    track_number = _optional(record, "track_number", int, line_number)
    if track_number is not None and track_number < 0:
        raise ManifestCorruptionError(line_number, f"negative track_number {track_number}")
    values = dict(
        id=_id_field(record, "id", line_number),
        file=_file_field(record, line_number),
        title=_required(record, "title", str, line_number),
        artist=_optional(record, "artist", str, line_number),
        album=_optional(record, "album", str, line_number),
        track_number=track_number,
        duration=_number_field(record, "duration", line_number),
    )
    try:
        return Song(**values)
    except DataInvariantViolation as e:
        raise DataInvariantViolation(e.message, line_number=line_number or None) from e


def _parse_audiobook(record: dict[str, Any], line_number: int) -> Audiobook:
    raw_chapters = _required(record, "chapters", list, line_number)
    chapters = []
    for raw in raw_chapters:
        if not isinstance(raw, dict):
            raise ManifestCorruptionError(line_number, "chapter is not a JSON object")
        start = _number_field(raw, "start", line_number)
        end = _number_field(raw, "end", line_number)
        if not (math.isfinite(start) and math.isfinite(end)):
            raise ManifestCorruptionError(line_number, "chapter bounds must be finite")
        chapters.append(Chapter(
            title=_required(raw, "title", str, line_number),
            start=start,
            end=end,
        ))
    values = dict(
        id=_id_field(record, "id", line_number),
        file=_file_field(record, line_number),
        title=_required(record, "title", str, line_number),
        author=_optional(record, "author", str, line_number),
        chapters=chapters,
        total_duration=_number_field(record, "total_duration", line_number),
    )
    try:
        return Audiobook(**values)
    except DataInvariantViolation as e:
        raise DataInvariantViolation(e.message, line_number=line_number or None) from e


def _required(record: dict[str, Any], key: str, kind: type, line_number: int) -> Any:
    if key not in record:
        raise ManifestCorruptionError(line_number, f"missing field '{key}'")
    value = record[key]
    if not isinstance(value, kind) or isinstance(value, bool):
        raise ManifestCorruptionError(
            line_number, f"field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


def _optional(record: dict[str, Any], key: str, kind: type, line_number: int) -> Any:
    if record.get(key) is None:
        return None
    return _required(record, key, kind, line_number)


def _number_field(record: dict[str, Any], key: str, line_number: int) -> float:
    if key not in record:
        raise ManifestCorruptionError(line_number, f"missing field '{key}'")
    value = record[key]
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise ManifestCorruptionError(
            line_number, f"field '{key}' must be a number, got {type(value).__name__}"
        )
    return float(value)


def _id_field(record: dict[str, Any], key: str, line_number: int) -> int:
    value = _required(record, key, int, line_number)
    if not 0 <= value < _MAX_ID:
        raise ManifestCorruptionError(line_number, f"field '{key}' out of range: {value}")
    return value


def _file_field(record: dict[str, Any], line_number: int) -> AudioFile:
    path = _required(record, "path", str, line_number)
    name = _required(record, "format", str, line_number)
    try:
        fmt = AudioFormat.from_name(name)
    except ValueError as e:
        raise ManifestCorruptionError(line_number, f"unknown format {name!r}") from e
    return AudioFile(path=Path(path), format=fmt)


def _legacy_id(key: str) -> int:
    try:
        return int(key)
    except ValueError as e:
        raise ManifestCorruptionError(0, f"identifier {key!r} is not an integer") from e
