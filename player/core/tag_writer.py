"""Tag writer -- writes recovered durations back into audio files."""

from __future__ import annotations

from pathlib import Path

import mutagen
from mutagen.easyid3 import EasyID3
from mutagen.id3 import ID3NoHeaderError

from player.models.audio_file import AudioFormat
from player.models.errors import TagWriteError
from player.utils.constants import MILLISECONDS_PER_SECOND
from player.utils.logger import get_logger

logger = get_logger("core.tag_writer")


class TagWriter:
    """Backfills durations into embedded tags.

    Only MP3 (ID3v2.4 ``TLEN``) is supported. Writing to the audiobook
    container is refused rather than risking a corrupt file.
    """

    def backfill_duration(self, path: Path, duration: float) -> None:
        """Store *duration* in the file's tag so later reads skip decoding.

        An MP3 without an ID3 header gets a fresh tag.

        Args:
            path: File to modify.
            duration: Duration in seconds.

        Raises:
            TagWriteError: If the format is unsupported or the write fails.
        """
        fmt = AudioFormat.from_path(path)
        if fmt is not AudioFormat.MP3:
            raise TagWriteError(path, f"duration tags are not supported for {path.suffix or 'this file'}")

        millis = int(round(duration * MILLISECONDS_PER_SECOND))
        try:
            try:
                tags = EasyID3(path)
            except ID3NoHeaderError:
                tags = EasyID3()
            tags["length"] = str(millis)
            tags.save(path, v2_version=4)
        except (mutagen.MutagenError, OSError, ValueError) as e:
            raise TagWriteError(path, str(e)) from e

        logger.debug("Wrote TLEN=%dms to %s", millis, path.name)

    def try_backfill_duration(self, path: Path, duration: float) -> bool:
        """Best-effort variant of ``backfill_duration``.

        Returns:
            True if the tag was written, False if it failed (logged).
        """
        try:
            self.backfill_duration(path, duration)
        except TagWriteError as e:
            logger.warning("%s", e)
            return False
        logger.info("Wrote calculated duration %.0fs to %s", duration, path.name)
        return True
