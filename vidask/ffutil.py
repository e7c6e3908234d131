"""FFmpeg/ffprobe subprocess helpers."""

import json
import logging
import shutil
import subprocess
from pathlib import Path

from vidask.errors import ConfigurationError, InputValidationError
from vidask.models import MediaProbe, SegmentDescriptor

logger = logging.getLogger(__name__)


class FFmpegNotFoundError(ConfigurationError):
    pass


class NoAudioStreamError(InputValidationError):
    """Raised when the input file has no audio stream."""
    pass


def check_ffmpeg() -> None:
    """Raise FFmpegNotFoundError if ffmpeg/ffprobe are not on PATH."""
    for cmd in ("ffmpeg", "ffprobe"):
        if shutil.which(cmd) is None:
            raise FFmpegNotFoundError(f"{cmd} not found on PATH")


def probe(input_path: Path) -> MediaProbe:
    """Extract duration and bitrate via ffprobe.

    Raises InputValidationError when ffprobe reports a non-positive duration
    or bitrate, since the segment planner cannot work with either.
    """
    cmd = [
        "ffprobe",
        "-v", "quiet",
        "-print_format", "json",
        "-show_format",
        "-show_streams",
        str(input_path),
    ]
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    data = json.loads(result.stdout)

    audio_stream = next(
        (s for s in data.get("streams", []) if s.get("codec_type") == "audio"), None
    )
    if audio_stream is None:
        raise NoAudioStreamError(f"No audio stream found in {input_path}")

    fmt = data.get("format", {})
    duration = float(fmt.get("duration") or 0)
    # Some containers only report bit_rate on the stream
    bit_rate = float(fmt.get("bit_rate") or audio_stream.get("bit_rate") or 0)

    if duration <= 0:
        raise InputValidationError(f"ffprobe reported non-positive duration for {input_path}")
    if bit_rate <= 0:
        raise InputValidationError(f"ffprobe reported non-positive bitrate for {input_path}")

    return MediaProbe(
        duration=duration,
        bit_rate=bit_rate,
        codec_audio=audio_stream.get("codec_name", ""),
        size_bytes=int(fmt.get("size") or 0),
    )


def segment_path(scratch_dir: Path, video_id: str, index: int) -> Path:
    """Where the transient file for segment *index* of *video_id* lives."""
    return Path(scratch_dir) / f"{video_id}_{index}.mp3"


def cut_segment(
    input_path: Path, segment: SegmentDescriptor, output_path: Path
) -> Path:
    """Write one segment of *input_path* to *output_path*.

    The audio stream is copied, not re-encoded, so the segment keeps the
    source bitrate the planner assumed. ffmpeg stops at end-of-stream, so
    the last segment may come out shorter than requested.
    """
    cmd = [
        "ffmpeg", "-y",
        "-ss", f"{segment.start:.3f}",
        "-i", str(input_path),
        "-t", f"{segment.duration:.3f}",
        "-vn",
        "-acodec", "copy",
        str(output_path),
    ]
    logger.debug("Cutting segment %d: %s", segment.index, " ".join(cmd))
    subprocess.run(cmd, capture_output=True, check=True)
    return output_path
