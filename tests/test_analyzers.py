"""Tests for the OpenAI-backed transcription and chat collaborators."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from vidask.analyzers.answer import ChatAnswerer
from vidask.analyzers.transcribe import OpenAITranscriber, WhisperTranscriber
from vidask.errors import CollaboratorError, ConfigurationError

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")


def _bad_request() -> openai.BadRequestError:
    body = {"error": {"message": "File too large", "type": "invalid_request_error"}}
    return openai.BadRequestError(
        "File too large", response=httpx.Response(400, request=REQUEST), body=body
    )


def _client() -> MagicMock:
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestOpenAITranscriber:
    def test_returns_stripped_text(self):
        client = _client()
        client.audio.transcriptions.create.return_value = SimpleNamespace(text="  hello world \n")

        text = asyncio.run(OpenAITranscriber(client).transcribe(b"ID3...", "vid_1.mp3"))

        assert text == "hello world"
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"] == ("vid_1.mp3", b"ID3...")

    def test_api_error_carries_payload(self):
        client = _client()
        client.audio.transcriptions.create.side_effect = _bad_request()

        with pytest.raises(CollaboratorError) as exc:
            asyncio.run(OpenAITranscriber(client).transcribe(b"x", "vid_1.mp3"))

        assert exc.value.stage == "transcribe"
        assert exc.value.detail["error"]["message"] == "File too large"

    def test_connection_error(self):
        client = _client()
        client.audio.transcriptions.create.side_effect = openai.APIConnectionError(request=REQUEST)
        with pytest.raises(CollaboratorError, match="transcription failed"):
            asyncio.run(OpenAITranscriber(client).transcribe(b"x", "vid_1.mp3"))


class TestWhisperTranscriber:
    def test_loads_model_once(self):
        model = MagicMock()
        model.transcribe.return_value = {"text": " local text "}
        fake_whisper = MagicMock()
        fake_whisper.load_model.return_value = model

        transcriber = WhisperTranscriber(model="tiny")
        with patch.dict("sys.modules", {"whisper": fake_whisper}):
            first = asyncio.run(transcriber.transcribe(b"a", "vid_1.mp3"))
            second = asyncio.run(transcriber.transcribe(b"b", "vid_2.mp3"))

        assert first == second == "local text"
        fake_whisper.load_model.assert_called_once_with("tiny")
        assert model.transcribe.call_count == 2
        assert model.transcribe.call_args[0][0].endswith("vid_2.mp3")

    def test_model_failure_is_collaborator_error(self):
        fake_whisper = MagicMock()
        fake_whisper.load_model.return_value.transcribe.side_effect = ValueError("bad audio")

        with patch.dict("sys.modules", {"whisper": fake_whisper}):
            with pytest.raises(CollaboratorError, match="bad audio") as exc:
                asyncio.run(WhisperTranscriber().transcribe(b"a", "vid_1.mp3"))
        assert exc.value.stage == "transcribe"

    def test_missing_package_is_configuration_error(self):
        with patch.dict("sys.modules", {"whisper": None}):
            with pytest.raises(ConfigurationError, match="openai-whisper"):
                asyncio.run(WhisperTranscriber().transcribe(b"a", "vid_1.mp3"))


class TestChatAnswerer:
    def test_answer_prompt_shape(self):
        client = _client()
        client.chat.completions.create.return_value = _completion(" It is about rockets. ")

        answer = asyncio.run(
            ChatAnswerer(client, model="gpt-4", temperature=0.3).answer("the transcript", "What?")
        )

        assert answer == "It is about rockets."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"] == [
            {"role": "system", "content": "Transcript: the transcript"},
            {"role": "user", "content": "What?"},
        ]

    def test_summarize_sends_chunk_as_user_message(self):
        client = _client()
        client.chat.completions.create.return_value = _completion("short")

        assert asyncio.run(ChatAnswerer(client).summarize("long chunk")) == "short"
        messages = client.chat.completions.create.call_args.kwargs["messages"]
        assert messages[1] == {"role": "user", "content": "long chunk"}

    def test_empty_completion_raises(self):
        client = _client()
        client.chat.completions.create.return_value = _completion(None)
        with pytest.raises(CollaboratorError, match="empty completion") as exc:
            asyncio.run(ChatAnswerer(client).answer("t", "q"))
        assert exc.value.stage == "answer"

    def test_api_error_is_collaborator_error(self):
        client = _client()
        client.chat.completions.create.side_effect = _bad_request()
        with pytest.raises(CollaboratorError) as exc:
            asyncio.run(ChatAnswerer(client).summarize("t"))
        assert exc.value.stage == "summarize"
        assert "error" in exc.value.detail
