"""Shared fixtures: a temporary player root and tagged stand-in MP3 files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest
from mutagen.easyid3 import EasyID3

from player.models.config import RootPaths
from player.utils.constants import APP_NAME


@pytest.fixture
def paths(tmp_path: Path) -> RootPaths:
    """Return a RootPaths layout under a fresh temp directory, created on disk."""
    root_paths = RootPaths.from_root(tmp_path / "Player")
    root_paths.ensure_directories()
    return root_paths


def _write_mp3(
    path: Path,
    *,
    title: str | None = None,
    artist: str | None = None,
    album_artist: str | None = None,
    album: str | None = None,
    track: int | str | None = None,
    length_ms: int | None = None,
    tagged: bool = True,
) -> Path:
    """Create a stand-in MP3: an ID3 tag followed by bytes with no MPEG frames.

    The MPEG probe always fails on these files, so the duration comes from
    ``length_ms`` (TLEN) or from whatever decoder the test injects.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x00" * 128)
    if not tagged:
        return path

    tags = EasyID3()
    if title is not None:
        tags["title"] = title
    if artist is not None:
        tags["artist"] = artist
    if album_artist is not None:
        tags["albumartist"] = album_artist
    if album is not None:
        tags["album"] = album
    if track is not None:
        tags["tracknumber"] = str(track)
    if length_ms is not None:
        tags["length"] = str(length_ms)
    tags.save(path)
    return path


@pytest.fixture
def make_mp3() -> Callable[..., Path]:
    """Factory fixture writing a tagged stand-in MP3 (see ``_write_mp3``)."""
    return _write_mp3


@pytest.fixture(autouse=True)
def _detach_app_log_handlers():
    """Drop handlers attached by ``main()`` so they never outlive a test's streams."""
    yield
    app_logger = logging.getLogger(APP_NAME)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
