"""Catalog data model -- songs, audiobooks, and the in-memory library."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from player.models.audio_file import AudioFile
from player.models.errors import DataInvariantViolation
from player.utils.constants import FIRST_CATALOG_ID, MAX_DURATION_SECONDS


def validate_duration(duration: float, what: str = "duration") -> float:
    """Enforce the catalog duration invariant.

    Args:
        duration: Duration in seconds.
        what: Field name used in the error message.

    Returns:
        The duration, unchanged.

    Raises:
        DataInvariantViolation: If the duration is not strictly positive or
            is not below the 24 hour ceiling.
    """
    if not isinstance(duration, (int, float)) or isinstance(duration, bool):
        raise DataInvariantViolation(f"{what} must be a number, got {duration!r}")
    if not math.isfinite(duration):
        raise DataInvariantViolation(f"{what} must be finite, got {duration}")
    if duration <= 0:
        raise DataInvariantViolation(f"{what} must be positive, got {duration}s")
    if duration >= MAX_DURATION_SECONDS:
        raise DataInvariantViolation(
            f"{what} {duration}s exceeds the {MAX_DURATION_SECONDS}s ceiling"
        )
    return float(duration)


@dataclass
class Song:
    """A catalog entry for a track in the library tree.

    Attributes:
        id: Catalog identifier, unique among songs.
        file: Reference to the library copy (never the import or archive copy).
        title: Resolved title (defaulted when untagged).
        artist: Track artist, or album artist when the track artist is missing.
        album: Album name.
        track_number: Position within the album.
        duration: Duration in seconds (0 < duration < 24h).
    """

    id: int
    file: AudioFile
    title: str
    artist: str | None
    album: str | None
    track_number: int | None
    duration: float

    def __post_init__(self) -> None:
        self.duration = validate_duration(self.duration)


@dataclass
class Chapter:
    """A chapter of an audiobook, in seconds from the start of the file."""

    title: str
    start: float
    end: float


@dataclass
class Audiobook:
    """A chapter-bearing catalog entry.

    Attributes:
        id: Catalog identifier, unique among audiobooks.
        file: Reference to the library copy.
        title: Resolved title.
        author: Author name.
        chapters: Chapter markers in playback order.
        total_duration: Length of the whole book in seconds.
    """

    id: int
    file: AudioFile
    title: str
    author: str | None
    chapters: list[Chapter]
    total_duration: float

    def __post_init__(self) -> None:
        self.total_duration = validate_duration(self.total_duration, "total_duration")


@dataclass
class Library:
    """In-memory catalog of songs and audiobooks keyed by identifier.

    The next-identifier counters are always at least one greater than the
    largest identifier added, whatever a manifest meta line claims.
    """

    songs: dict[int, Song] = field(default_factory=dict)
    audiobooks: dict[int, Audiobook] = field(default_factory=dict)
    _next_song_id: int = field(default=FIRST_CATALOG_ID, init=False, repr=False)
    _next_audiobook_id: int = field(default=FIRST_CATALOG_ID, init=False, repr=False)

    def add_song(self, song: Song) -> None:
        """Insert or replace a song, bumping the song counter if needed."""
        if song.id >= self._next_song_id:
            self._next_song_id = song.id + 1
        self.songs[song.id] = song

    def add_audiobook(self, audiobook: Audiobook) -> None:
        """Insert or replace an audiobook, bumping the audiobook counter."""
        if audiobook.id >= self._next_audiobook_id:
            self._next_audiobook_id = audiobook.id + 1
        self.audiobooks[audiobook.id] = audiobook

    def next_song_id(self) -> int:
        """Hand out the next free song identifier and advance the counter."""
        song_id = self._next_song_id
        self._next_song_id += 1
        return song_id

    def next_audiobook_id(self) -> int:
        """Hand out the next free audiobook identifier and advance the counter."""
        audiobook_id = self._next_audiobook_id
        self._next_audiobook_id += 1
        return audiobook_id

    @property
    def max_song_id(self) -> int | None:
        """Largest song identifier present, or None for an empty catalog."""
        return max(self.songs) if self.songs else None

    @property
    def max_audiobook_id(self) -> int | None:
        """Largest audiobook identifier present, or None."""
        return max(self.audiobooks) if self.audiobooks else None

    @property
    def first_free_song_id(self) -> int:
        """One greater than the largest song identifier (1 when empty)."""
        return (self.max_song_id or 0) + 1

    @property
    def first_free_audiobook_id(self) -> int:
        """One greater than the largest audiobook identifier (1 when empty)."""
        return (self.max_audiobook_id or 0) + 1

    def is_empty(self) -> bool:
        """Check whether the catalog holds no entries at all."""
        return not self.songs and not self.audiobooks

    def __len__(self) -> int:
        return len(self.songs) + len(self.audiobooks)
