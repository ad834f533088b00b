"""Data models for Player."""

from player.models.audio_file import AudioFile, AudioFormat
from player.models.config import AppConfig, RootPaths
from player.models.library import Audiobook, Chapter, Library, Song
from player.models.metadata import ChapterMeta, DurationSource, Metadata

__all__ = [
    "AppConfig",
    "AudioFile",
    "AudioFormat",
    "Audiobook",
    "Chapter",
    "ChapterMeta",
    "DurationSource",
    "Library",
    "Metadata",
    "RootPaths",
    "Song",
]
