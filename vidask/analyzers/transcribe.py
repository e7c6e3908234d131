"""Speech-to-text: the OpenAI transcription API or a local Whisper model."""

import asyncio
import logging
import tempfile
from pathlib import Path
from typing import Protocol

import openai
from openai import AsyncOpenAI

from vidask.errors import CollaboratorError, ConfigurationError, VidaskError

logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    async def transcribe(self, audio: bytes, filename: str) -> str: ...


def error_detail(exc: openai.OpenAIError) -> object:
    """The structured payload of an API error, falling back to its message."""
    body = getattr(exc, "body", None)
    return body if body is not None else str(exc)


class OpenAITranscriber:
    """Uploads audio to the OpenAI transcription endpoint."""

    def __init__(self, client: AsyncOpenAI, model: str = "whisper-1"):
        self.client = client
        self.model = model

    async def transcribe(self, audio: bytes, filename: str) -> str:
        try:
            result = await self.client.audio.transcriptions.create(
                model=self.model,
                file=(filename, audio),
            )
        except openai.OpenAIError as e:
            detail = error_detail(e)
            logger.error("Transcription of %s failed: %s", filename, detail)
            raise CollaboratorError(
                "transcribe", f"OpenAI transcription failed for {filename}: {e}", detail
            ) from e
        return result.text.strip()


class WhisperTranscriber:
    """Runs a local openai-whisper model (``pip install vidask[local]``)."""

    def __init__(self, model: str = "base", language: str | None = None):
        self.model_name = model
        self.language = language
        self._model = None

    def _transcribe_sync(self, audio: bytes, filename: str) -> str:
        try:
            import whisper
        except ImportError as e:
            raise ConfigurationError(
                "Local transcription needs openai-whisper: pip install vidask[local]"
            ) from e

        if self._model is None:
            self._model = whisper.load_model(self.model_name)

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / filename
            path.write_bytes(audio)
            result = self._model.transcribe(str(path), language=self.language)

        return result["text"].strip()

    async def transcribe(self, audio: bytes, filename: str) -> str:
        try:
            return await asyncio.to_thread(self._transcribe_sync, audio, filename)
        except VidaskError:
            raise
        except Exception as e:
            raise CollaboratorError(
                "transcribe", f"Local Whisper failed for {filename}: {e}"
            ) from e
