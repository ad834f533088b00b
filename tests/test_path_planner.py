"""Tests for path_planner -- sanitization and destination paths."""

from __future__ import annotations

from pathlib import Path

from player.core import path_planner
from player.models.audio_file import AudioFormat
from player.models.metadata import Metadata


class TestSanitizeComponent:
    def test_replaces_each_invalid_character(self):
        assert path_planner.sanitize_component('a/b\\c:d*e?f"g<h>i|j') == "a_b_c_d_e_f_g_h_i_j"

    def test_trims_whitespace(self):
        assert path_planner.sanitize_component("  Album  ") == "Album"

    def test_normal_string_unchanged(self):
        assert path_planner.sanitize_component("Café del Mar") == "Café del Mar"

    def test_can_become_empty(self):
        assert path_planner.sanitize_component("   ") == ""


class TestLibraryPath:
    def test_standard_track(self, tmp_path: Path):
        meta = Metadata(title="A", artist="B", album="C", track_number=3)
        dest = path_planner.library_path(meta, AudioFormat.MP3, tmp_path / "Music")
        assert dest == tmp_path / "Music" / "B" / "C" / "03 - A.mp3"

    def test_without_track_number(self, tmp_path: Path):
        meta = Metadata(title="A", artist="B", album="C")
        dest = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        assert dest.name == "A.mp3"

    def test_album_artist_fallback(self, tmp_path: Path):
        meta = Metadata(title="A", album_artist="Band", album="C", track_number=1)
        dest = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        assert dest == tmp_path / "Band" / "C" / "01 - A.mp3"

    def test_missing_fields_use_unknown(self, tmp_path: Path):
        dest = path_planner.library_path(Metadata(), AudioFormat.MP3, tmp_path)
        assert dest == tmp_path / "Unknown Artist" / "Unknown Album" / "Unknown Title.mp3"

    def test_blank_after_sanitizing_uses_unknown(self, tmp_path: Path):
        meta = Metadata(title="T", artist="  ", album="C")
        dest = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        assert dest.parent.parent.name == "Unknown Artist"

    def test_separators_cannot_escape_tree(self, tmp_path: Path):
        meta = Metadata(title="../x", artist="AC/DC", album="Back/In")
        dest = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        assert dest == tmp_path / "AC_DC" / "Back_In" / ".._x.mp3"

    def test_dot_components_fall_back_to_unknown(self, tmp_path: Path):
        meta = Metadata(title="..", artist="..", album=".", track_number=1)
        dest = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        assert dest == tmp_path / "Unknown Artist" / "Unknown Album" / "01 - Unknown Title.mp3"
        assert dest.resolve().is_relative_to(tmp_path.resolve())

    def test_audiobook_extension(self, tmp_path: Path):
        meta = Metadata(title="Book", artist="Author", album="Series")
        dest = path_planner.library_path(meta, AudioFormat.M4B, tmp_path)
        assert dest.suffix == ".m4b"

    def test_deterministic(self, tmp_path: Path):
        meta = Metadata(title="A", artist="B", album="C", track_number=12)
        first = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        second = path_planner.library_path(meta, AudioFormat.MP3, tmp_path)
        assert first == second
        assert first.name == "12 - A.mp3"


class TestMirroredPaths:
    def test_archive_mirrors_subdirectories(self, tmp_path: Path):
        source = tmp_path / "Import" / "sub" / "track.mp3"
        dest = path_planner.archive_path(source, tmp_path / "Import", tmp_path / "Imported")
        assert dest == tmp_path / "Imported" / "sub" / "track.mp3"

    def test_problem_mirrors_top_level(self, tmp_path: Path):
        source = tmp_path / "Import" / "track.mp3"
        dest = path_planner.problem_path(source, tmp_path / "Import", tmp_path / "Problem")
        assert dest == tmp_path / "Problem" / "track.mp3"

    def test_outside_import_root_nested_under_target(self, tmp_path: Path):
        source = tmp_path / "elsewhere" / "track.mp3"
        dest = path_planner.archive_path(source, tmp_path / "Import", tmp_path / "Imported")
        assert dest.is_relative_to(tmp_path / "Imported")
        assert dest.name == "track.mp3"
        assert dest != source
