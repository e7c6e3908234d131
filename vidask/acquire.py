"""Media acquisition: resolve a YouTube reference and download its audio track."""

import asyncio
import logging
import re
from pathlib import Path
from typing import Protocol
from urllib.parse import parse_qs, urlparse

from vidask.errors import CollaboratorError, InputValidationError

logger = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
_YOUTUBE_HOSTS = {"youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com"}


class Acquirer(Protocol):
    async def acquire(self, source: str, video_id: str, target: Path) -> str: ...


def parse_video_id(source: str) -> str:
    """Extract the video id from a YouTube URL or a bare id.

    Accepts ``watch?v=ID``, ``youtu.be/ID``, ``/shorts/ID`` and ``/embed/ID``.
    """
    source = source.strip()
    if _VIDEO_ID_RE.match(source):
        return source

    parsed = urlparse(source)
    host = (parsed.hostname or "").lower()
    candidate = None

    if host in _YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            candidate = parse_qs(parsed.query).get("v", [None])[0]
        else:
            parts = [p for p in parsed.path.split("/") if p]
            if len(parts) >= 2 and parts[0] in ("shorts", "embed", "live", "v"):
                candidate = parts[1]
    elif host == "youtu.be":
        candidate = parsed.path.lstrip("/").split("/")[0] or None

    if candidate is None or not _VIDEO_ID_RE.match(candidate):
        raise InputValidationError(f"Not a recognizable YouTube video reference: {source!r}")
    return candidate


def audio_path(scratch_dir: Path, video_id: str) -> Path:
    return Path(scratch_dir) / f"{video_id}.mp3"


class YtDlpAcquirer:
    """Downloads the best audio stream with yt-dlp and converts it to MP3."""

    def __init__(self, audio_format: str = "mp3"):
        self.audio_format = audio_format

    def _options(self, target: Path) -> dict:
        return {
            "format": "bestaudio/best",
            "outtmpl": str(target.with_suffix(".%(ext)s")),
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "postprocessors": [
                {"key": "FFmpegExtractAudio", "preferredcodec": self.audio_format}
            ],
        }

    def fetch(self, source: str, target: Path) -> str:
        """Blocking download; returns the video title.

        When *target* already exists only metadata is fetched.
        """
        import yt_dlp

        download = not target.exists()
        if download:
            target.parent.mkdir(parents=True, exist_ok=True)
            logger.info("Downloading audio for %s to %s", source, target)
        else:
            logger.info("Audio already present at %s, fetching metadata only", target)

        try:
            with yt_dlp.YoutubeDL(self._options(target)) as ydl:
                info = ydl.extract_info(source, download=download)
        except (yt_dlp.utils.YoutubeDLError, OSError) as e:
            raise CollaboratorError("acquire", f"yt-dlp failed for {source}: {e}") from e

        if download and not target.exists():
            raise CollaboratorError("acquire", f"yt-dlp finished but {target} was not written")
        return (info or {}).get("title", "")

    async def acquire(self, source: str, video_id: str, target: Path) -> str:
        return await asyncio.to_thread(self.fetch, source, target)
