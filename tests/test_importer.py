"""Tests for LibraryImporter -- file lifecycle, identifiers, backfill."""

from __future__ import annotations

from pathlib import Path

import pytest
from mutagen.easyid3 import EasyID3

from player.core.importer import ImportResult, LibraryImporter
from player.core.metadata_reader import MetadataReader
from player.core.tag_writer import TagWriter
from player.models.config import RootPaths
from player.models.errors import NoDurationError, TagWriteError, UnknownFormatError
from player.models.library import Library, Song
from player.models.audio_file import AudioFile, AudioFormat


def _importer(paths: RootPaths, decoded: float | None = None, **kwargs) -> LibraryImporter:
    reader = MetadataReader(decoder=lambda path: decoded)
    return LibraryImporter(paths, reader=reader, **kwargs)


class _FailingTagWriter(TagWriter):
    def backfill_duration(self, path: Path, duration: float) -> None:
        raise TagWriteError(path, "read-only")


# ------------------------------------------------------------------
# import_one
# ------------------------------------------------------------------


class TestImportOne:
    def test_tagged_track_scenario(self, paths: RootPaths, make_mp3):
        source = make_mp3(
            paths.import_dir / "track.mp3",
            title="A", artist="B", album="C", track=3, length_ms=200000,
        )

        result = _importer(paths).import_one(source, next_id=1)

        assert result.library_path == paths.music_dir / "B" / "C" / "03 - A.mp3"
        assert result.archived_path == paths.imported_dir / "track.mp3"
        assert result.library_path.exists()
        assert result.archived_path.exists()
        assert not source.exists()

        song = result.song
        assert song.id == 1
        assert (song.title, song.artist, song.album, song.track_number) == ("A", "B", "C", 3)
        assert song.duration == 200.0
        assert song.file == AudioFile(path=result.library_path, format=AudioFormat.MP3)

    def test_relative_root_is_made_absolute(self, tmp_path: Path, monkeypatch, make_mp3):
        monkeypatch.chdir(tmp_path)
        root = tmp_path.resolve() / "Player"
        paths = RootPaths.from_root("Player")
        paths.ensure_directories()
        make_mp3(Path("Player") / "Import" / "track.mp3",
                 title="A", artist="B", album="C", track=3, length_ms=200000)

        batch = _importer(paths).import_all_pending(Library())

        assert batch.success_count == 1
        result = batch.succeeded[0]
        assert result.archived_path == root / "Imported" / "track.mp3"
        assert result.archived_path.exists()
        assert result.song.file.path.is_absolute()
        assert result.song.file.path == root / "Music" / "B" / "C" / "03 - A.mp3"

    def test_no_duration_moves_to_problem(self, paths: RootPaths, make_mp3):
        source = make_mp3(paths.import_dir / "sub" / "silent.mp3", title="S")

        with pytest.raises(NoDurationError) as exc_info:
            _importer(paths, decoded=None).import_one(source, next_id=1)

        expected = paths.problem_dir / "sub" / "silent.mp3"
        assert exc_info.value.moved_to == expected
        assert expected.exists()
        assert not source.exists()
        assert list(paths.music_dir.rglob("*.mp3")) == []

    def test_unknown_format_untouched(self, paths: RootPaths):
        source = paths.import_dir / "readme.txt"
        source.write_text("x")

        with pytest.raises(UnknownFormatError):
            _importer(paths).import_one(source, next_id=1)

        assert source.exists()

    def test_untitled_track_gets_default_title(self, paths: RootPaths, make_mp3):
        source = make_mp3(paths.import_dir / "x.mp3", artist="B", length_ms=1000)
        result = _importer(paths).import_one(source, next_id=7)
        assert result.song.title == "Unknown Title"
        assert result.song.id == 7


# ------------------------------------------------------------------
# Backfill
# ------------------------------------------------------------------


class TestBackfill:
    def test_decoded_duration_written_before_copy(self, paths: RootPaths, make_mp3):
        source = make_mp3(paths.import_dir / "t.mp3", title="T", artist="B", album="C")

        result = _importer(paths, decoded=180.0).import_one(source, next_id=1)

        assert result.song.duration == 180.0
        assert EasyID3(result.library_path)["length"] == ["180000"]
        assert EasyID3(result.archived_path)["length"] == ["180000"]

    def test_backfill_failure_does_not_block_import(self, paths: RootPaths, make_mp3):
        source = make_mp3(paths.import_dir / "t.mp3", title="T")

        result = _importer(
            paths, decoded=180.0, tag_writer=_FailingTagWriter(),
        ).import_one(source, next_id=1)

        assert result.song.duration == 180.0
        assert result.library_path.exists()

    def test_tag_duration_not_rewritten(self, paths: RootPaths, make_mp3):
        source = make_mp3(paths.import_dir / "t.mp3", title="T", length_ms=200000)
        result = _importer(paths, tag_writer=_FailingTagWriter()).import_one(source, next_id=1)
        assert result.song.duration == 200.0


# ------------------------------------------------------------------
# import_all_pending
# ------------------------------------------------------------------


class TestImportAllPending:
    def test_identical_files_get_sequential_ids(self, paths: RootPaths, make_mp3):
        for name in ("one.mp3", "two.mp3"):
            make_mp3(paths.import_dir / name, title="Same", artist="B", album="C", length_ms=1000)
        library = Library()

        batch = _importer(paths).import_all_pending(library)

        assert batch.success_count == 2
        assert [r.song.id for r in batch.succeeded] == [1, 2]
        assert sorted(library.songs) == [1, 2]

    def test_ids_continue_from_existing_maximum(self, paths: RootPaths, make_mp3):
        library = Library()
        library.add_song(Song(
            id=41, file=AudioFile(paths.music_dir / "old.mp3", AudioFormat.MP3),
            title="Old", artist=None, album=None, track_number=None, duration=10.0,
        ))
        make_mp3(paths.import_dir / "new.mp3", title="New", length_ms=1000)

        batch = _importer(paths).import_all_pending(library)

        assert batch.succeeded[0].song.id == 42

    def test_failures_do_not_consume_ids(self, paths: RootPaths, make_mp3):
        make_mp3(paths.import_dir / "a.mp3", title="A", length_ms=1000)
        make_mp3(paths.import_dir / "b.mp3", title="B")  # no duration
        make_mp3(paths.import_dir / "c.mp3", title="C", length_ms=1000)
        library = Library()

        batch = _importer(paths, decoded=None).import_all_pending(library)

        assert batch.success_count == 2
        assert batch.error_count == 1
        assert isinstance(batch.failed[0], NoDurationError)
        assert [r.song.id for r in batch.succeeded] == [1, 2]
        assert (paths.problem_dir / "b.mp3").exists()

    def test_one_outcome_per_file_in_scan_order(self, paths: RootPaths, make_mp3):
        make_mp3(paths.import_dir / "a.mp3", title="A", length_ms=1000)
        make_mp3(paths.import_dir / "b.mp3", title="B")

        batch = _importer(paths, decoded=None).import_all_pending(Library())

        assert len(batch.outcomes) == 2
        assert isinstance(batch.outcomes[0], ImportResult)
        assert isinstance(batch.outcomes[1], NoDurationError)

    def test_idempotent(self, paths: RootPaths, make_mp3):
        make_mp3(paths.import_dir / "a.mp3", title="A", length_ms=1000)
        library = Library()
        importer = _importer(paths)

        first = importer.import_all_pending(library)
        second = importer.import_all_pending(library)

        assert first.success_count == 1
        assert second.outcomes == []
        assert len(library) == 1

    def test_empty_subdirectories_removed(self, paths: RootPaths, make_mp3):
        make_mp3(paths.import_dir / "album" / "disc1" / "a.mp3", title="A", length_ms=1000)
        (paths.import_dir / "empty").mkdir()

        _importer(paths).import_all_pending(Library())

        assert paths.import_dir.is_dir()
        assert list(paths.import_dir.iterdir()) == []
        assert (paths.imported_dir / "album" / "disc1" / "a.mp3").exists()

    def test_unreadable_files_stay_in_import(self, paths: RootPaths, make_mp3):
        untagged = make_mp3(paths.import_dir / "raw.mp3", tagged=False)

        batch = _importer(paths).import_all_pending(Library())

        assert batch.outcomes == []
        assert untagged.exists()

    def test_creates_missing_import_dir(self, tmp_path: Path):
        paths = RootPaths.from_root(tmp_path / "fresh")

        batch = _importer(paths).import_all_pending(Library())

        assert batch.outcomes == []
        assert paths.import_dir.is_dir()
