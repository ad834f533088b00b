"""Full-decode duration recovery via pydub (ffmpeg).

Used when neither the container nor the tag knows how long a file is.
Decoding the whole stream is slow, so callers only reach for it last.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from pydub import AudioSegment
from pydub.exceptions import PydubException

from player.utils.logger import get_logger

logger = get_logger("core.decoder")

# (path) -> duration in whole seconds, or None when the file cannot be decoded
DurationDecoder = Callable[[Path], "float | None"]


def decode_duration(path: Path) -> float | None:
    """Decode *path* completely and compute its duration from the samples.

    ``duration = total_samples / (sample_rate * channels)``, rounded to the
    nearest second.

    Args:
        path: Audio file to decode.

    Returns:
        Duration in seconds, or None if the file could not be decoded or
        reports a zero sample rate or channel count.
    """
    try:
        segment = AudioSegment.from_file(str(path))
    except (PydubException, OSError, IndexError, KeyError) as e:
        # IndexError/KeyError: ffprobe found no audio stream to describe
        logger.debug("Decode failed for %s: %s", path, e)
        return None

    sample_rate = segment.frame_rate
    channels = segment.channels
    if not sample_rate or not channels:
        logger.debug("Decoder reported no audio parameters for %s", path)
        return None

    total_samples = int(segment.frame_count()) * channels
    seconds = total_samples / (sample_rate * channels)
    return float(round(seconds))
