"""Metadata read from an audio file's embedded tags."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DurationSource(Enum):
    """Which fallback produced a duration."""

    PROBE = "probe"
    TAG = "tag"
    DECODE = "decode"


@dataclass
class ChapterMeta:
    """A chapter marker inside an audiobook container.

    Attributes:
        title: Chapter title, if tagged.
        start: Start offset in seconds.
        end: End offset in seconds.
    """

    title: str | None
    start: float
    end: float


@dataclass
class Metadata:
    """Tag values for one file. Every field is optional.

    Attributes:
        title: Track title.
        artist: Track artist.
        album_artist: Album artist (used when artist is missing).
        album: Album name.
        track_number: Position within the album.
        duration: Duration in seconds.
        duration_source: Which fallback produced ``duration``.
        chapters: Chapter markers (audiobooks only; empty for songs).
    """

    title: str | None = None
    artist: str | None = None
    album_artist: str | None = None
    album: str | None = None
    track_number: int | None = None
    duration: float | None = None
    duration_source: DurationSource | None = None
    chapters: list[ChapterMeta] = field(default_factory=list)

    @property
    def needs_backfill(self) -> bool:
        """True when the duration was only recoverable by a full decode."""
        return self.duration_source is DurationSource.DECODE

    @property
    def effective_artist(self) -> str | None:
        """Track artist, falling back to the album artist."""
        return self.artist or self.album_artist
