"""Tests for MetadataReader -- ID3 fields and the duration fallback chain."""

from __future__ import annotations

from pathlib import Path

import pytest
from mutagen.easyid3 import EasyID3

from player.core.metadata_reader import MetadataReader, read_metadata
from player.models.audio_file import AudioFormat
from player.models.errors import IoFailureError, TagParseError, UnknownFormatError
from player.models.metadata import DurationSource


class _CountingDecoder:
    """Fake decoder returning a fixed duration and counting calls."""

    def __init__(self, duration: float | None) -> None:
        self.duration = duration
        self.calls: list[Path] = []

    def __call__(self, path: Path) -> float | None:
        self.calls.append(path)
        return self.duration


class TestTagFields:
    def test_reads_basic_fields(self, tmp_path: Path, make_mp3):
        path = make_mp3(
            tmp_path / "t.mp3", title="A", artist="B", album="C", track=3, length_ms=200000,
        )
        scanned = MetadataReader(decoder=_CountingDecoder(None)).read_path(path)

        assert scanned.file.format is AudioFormat.MP3
        meta = scanned.metadata
        assert (meta.title, meta.artist, meta.album, meta.track_number) == ("A", "B", "C", 3)
        assert meta.chapters == []

    def test_track_number_fraction(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A", track="5/12", length_ms=1000)
        meta = MetadataReader().read_path(path).metadata
        assert meta.track_number == 5

    def test_invalid_track_number_is_none(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A", track="abc", length_ms=1000)
        meta = MetadataReader().read_path(path).metadata
        assert meta.track_number is None

    def test_album_artist_fallback(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A", album_artist="Band", length_ms=1000)
        meta = MetadataReader().read_path(path).metadata
        assert meta.artist is None
        assert meta.effective_artist == "Band"


class TestDurationFallback:
    def test_stream_headers_win_over_tag(self, tmp_path: Path):
        path = tmp_path / "t.mp3"
        # MPEG-1 Layer III, 128 kbit/s, 44.1 kHz, joint stereo: 417-byte frames
        frame = b"\xff\xfb\x90\x64" + b"\x00" * 413
        path.write_bytes(frame * 400)
        tags = EasyID3()
        tags["title"] = "A"
        tags["length"] = "200000"
        tags.save(path)
        decoder = _CountingDecoder(999.0)

        meta = MetadataReader(decoder=decoder).read_path(path).metadata

        assert meta.duration_source is DurationSource.PROBE
        assert meta.duration == pytest.approx(400 * 1152 / 44100, abs=0.5)
        assert meta.needs_backfill is False
        assert decoder.calls == []

    def test_tag_duration_used_before_decode(self, tmp_path: Path, make_mp3):
        decoder = _CountingDecoder(999.0)
        path = make_mp3(tmp_path / "t.mp3", title="A", length_ms=200000)

        meta = MetadataReader(decoder=decoder).read_path(path).metadata

        assert meta.duration == 200.0
        assert meta.duration_source is DurationSource.TAG
        assert meta.needs_backfill is False
        assert decoder.calls == []

    def test_decode_when_no_tag_duration(self, tmp_path: Path, make_mp3):
        decoder = _CountingDecoder(180.0)
        path = make_mp3(tmp_path / "t.mp3", title="A")

        meta = MetadataReader(decoder=decoder).read_path(path).metadata

        assert meta.duration == 180.0
        assert meta.duration_source is DurationSource.DECODE
        assert meta.needs_backfill is True
        assert decoder.calls == [path]

    def test_read_does_not_modify_file(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A")
        before = path.read_bytes()

        MetadataReader(decoder=_CountingDecoder(180.0)).read_path(path)

        assert path.read_bytes() == before
        assert "length" not in EasyID3(path)

    def test_decode_disabled(self, tmp_path: Path, make_mp3):
        decoder = _CountingDecoder(180.0)
        path = make_mp3(tmp_path / "t.mp3", title="A")

        meta = MetadataReader(decoder=decoder, allow_decode=False).read_path(path).metadata

        assert meta.duration is None
        assert decoder.calls == []

    def test_undecodable_has_no_duration(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A")
        meta = MetadataReader(decoder=_CountingDecoder(None)).read_path(path).metadata
        assert meta.duration is None
        assert meta.duration_source is None

    @pytest.mark.parametrize("length_ms", [0, 86400000, 100000000])
    def test_insane_tag_duration_falls_through(self, tmp_path: Path, make_mp3, length_ms):
        path = make_mp3(tmp_path / "t.mp3", title="A", length_ms=length_ms)
        meta = MetadataReader(decoder=_CountingDecoder(42.0)).read_path(path).metadata
        assert meta.duration == 42.0
        assert meta.duration_source is DurationSource.DECODE

    def test_insane_decoded_duration_ignored(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A")
        meta = MetadataReader(decoder=_CountingDecoder(0.0)).read_path(path).metadata
        assert meta.duration is None


class TestFailures:
    def test_unknown_extension(self, tmp_path: Path):
        path = tmp_path / "notes.txt"
        path.write_text("hi")
        with pytest.raises(UnknownFormatError):
            MetadataReader().read_path(path)

    def test_untagged_mp3(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "raw.mp3", tagged=False)
        with pytest.raises(TagParseError):
            MetadataReader(decoder=_CountingDecoder(100.0)).read_path(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(IoFailureError):
            MetadataReader().read_path(tmp_path / "gone.mp3")


class TestAudiobookContainer:
    def test_m4b_yields_empty_metadata(self, tmp_path: Path):
        path = tmp_path / "book.m4b"
        path.write_bytes(b"\x00" * 64)
        scanned = MetadataReader(decoder=_CountingDecoder(100.0)).read_path(path)
        assert scanned.file.format is AudioFormat.M4B
        assert scanned.metadata.duration is None
        assert scanned.metadata.chapters == []


class TestReadMetadata:
    def test_convenience_function(self, tmp_path: Path, make_mp3):
        path = make_mp3(tmp_path / "t.mp3", title="A", length_ms=5000)
        scanned = read_metadata(path)
        assert scanned.metadata.duration == 5.0
        assert scanned.file.path == path
