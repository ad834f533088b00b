"""Metadata reader -- extracts tags and recovers durations via mutagen.

Reading is strictly read-only. When the only way to learn a duration is a
full decode, the result is flagged with ``DurationSource.DECODE`` and the
caller decides whether to write it back (see ``TagWriter.backfill_duration``).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import mutagen
from mutagen.easyid3 import EasyID3
from mutagen.id3 import ID3NoHeaderError
from mutagen.mp3 import MP3

from player.core.decoder import DurationDecoder, decode_duration
from player.models.audio_file import AudioFile, AudioFormat
from player.models.errors import IoFailureError, TagParseError, UnknownFormatError
from player.models.metadata import DurationSource, Metadata
from player.utils.constants import MAX_DURATION_SECONDS, MILLISECONDS_PER_SECOND
from player.utils.logger import get_logger

logger = get_logger("core.metadata_reader")


@dataclass(frozen=True)
class ScannedFile:
    """A file whose metadata was read successfully."""

    file: AudioFile
    metadata: Metadata


class MetadataReader:
    """Reads tag metadata for recognized audio formats.

    MP3 durations are resolved through an ordered fallback chain:

    1. Probe the MPEG stream (Xing/VBRI header or bitrate estimate).
    2. The ``TLEN`` tag frame, converted from milliseconds.
    3. A full decode through *decoder*, unless ``allow_decode`` is False.

    A duration that is zero or not below the 24 hour ceiling is treated as
    unknown so the next fallback gets a chance.

    M4B/M4A metadata extraction is not implemented yet; such files yield
    empty metadata (and so no duration).
    """

    def __init__(
        self,
        decoder: DurationDecoder | None = None,
        allow_decode: bool = True,
    ) -> None:
        """Initialize the reader.

        Args:
            decoder: Callable computing a duration by decoding the whole
                file. Defaults to the pydub/ffmpeg decoder.
            allow_decode: If False, fallback 3 is skipped entirely.
        """
        self._decoder = decoder or decode_duration
        self._allow_decode = allow_decode

    def read_path(self, path: Path | str) -> ScannedFile:
        """Detect the format of *path* and read its metadata.

        Args:
            path: File to read.

        Returns:
            The file reference with its metadata.

        Raises:
            UnknownFormatError: If the extension is not recognized.
            IoFailureError: If the file cannot be accessed.
            TagParseError: If the tags are missing or malformed.
        """
        path = Path(path)
        audio_file = AudioFile.from_path(path)
        if audio_file is None:
            raise UnknownFormatError(path)
        return ScannedFile(file=audio_file, metadata=self.read(audio_file))

    def read(self, audio_file: AudioFile) -> Metadata:
        """Read metadata for an already-classified file.

        Args:
            audio_file: File reference.

        Returns:
            Populated Metadata.

        Raises:
            IoFailureError: If the file cannot be accessed.
            TagParseError: If the tags are missing or malformed.
        """
        if audio_file.format is AudioFormat.MP3:
            return self._read_mp3(audio_file.path)
        # TODO: read M4B chapter atoms and the mvhd duration so audiobooks can import.
        return Metadata()

    # --- Private: MP3 ---

    def _read_mp3(self, path: Path) -> Metadata:
        """Read ID3 fields and resolve the duration for an MP3 file."""
        if not path.is_file():
            raise IoFailureError(
                path, FileNotFoundError(f"No such file: {path}"), operation="read",
            )

        try:
            tags = EasyID3(path)
        except ID3NoHeaderError:
            raise TagParseError(path, "no ID3 tag") from None
        except mutagen.MutagenError as e:
            if isinstance(e.__cause__, OSError):
                raise IoFailureError(path, e.__cause__, operation="read") from e
            raise TagParseError(path, str(e)) from e

        metadata = Metadata(
            title=self._get_tag(tags, "title"),
            artist=self._get_tag(tags, "artist"),
            album_artist=self._get_tag(tags, "albumartist"),
            album=self._get_tag(tags, "album"),
            track_number=self._parse_track_number(self._get_tag(tags, "tracknumber")),
        )

        duration = self._probe_duration(path)
        if duration is not None:
            metadata.duration, metadata.duration_source = duration, DurationSource.PROBE
            return metadata

        duration = self._tag_duration(tags)
        if duration is not None:
            metadata.duration, metadata.duration_source = duration, DurationSource.TAG
            return metadata

        if self._allow_decode:
            duration = self._sane(self._decoder(path))
            if duration is not None:
                logger.info("Recovered duration %.0fs for %s by full decode", duration, path.name)
                metadata.duration, metadata.duration_source = duration, DurationSource.DECODE

        return metadata

    def _probe_duration(self, path: Path) -> float | None:
        """Ask the MPEG stream headers for the total duration."""
        try:
            audio = MP3(path)
        except (mutagen.MutagenError, OSError) as e:
            logger.debug("MPEG probe failed for %s: %s", path.name, e)
            return None
        length = getattr(audio.info, "length", None)
        return self._sane(length)

    def _tag_duration(self, tags: EasyID3) -> float | None:
        """Read the TLEN frame (milliseconds) as seconds."""
        raw = self._get_tag(tags, "length")
        if raw is None:
            return None
        try:
            millis = int(float(raw))
        except ValueError:
            logger.debug("Ignoring malformed TLEN value: %r", raw)
            return None
        return self._sane(millis / MILLISECONDS_PER_SECOND)

    @staticmethod
    def _sane(duration: float | None) -> float | None:
        """Drop durations that could never become a catalog entry."""
        if duration is None or not (0 < duration < MAX_DURATION_SECONDS):
            return None
        return float(duration)

    # --- Private: Tag helpers ---

    def _get_tag(self, tags: EasyID3, key: str) -> str | None:
        """Extract a single text value from EasyID3.

        Args:
            tags: Open EasyID3 mapping.
            key: Easy tag key name.

        Returns:
            First value, stripped, or None when missing or blank.
        """
        try:
            value = tags.get(key)
        except (KeyError, ValueError):
            return None
        if not value:
            return None
        first = str(value[0]).strip() if isinstance(value, list) else str(value).strip()
        return first or None

    def _parse_track_number(self, raw: str | None) -> int | None:
        """Parse a track number from '5' or '5/12'."""
        if not raw:
            return None
        try:
            number = int(raw.split("/")[0].strip())
        except (ValueError, IndexError):
            return None
        return number if number >= 0 else None


def read_metadata(path: Path | str, reader: MetadataReader | None = None) -> ScannedFile:
    """Read metadata for a single file with a default (decoding) reader."""
    return (reader or MetadataReader()).read_path(path)
