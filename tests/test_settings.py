"""Tests for settings loading and validation."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from vidask.errors import ConfigurationError
from vidask.settings import MAX_SEGMENT_BYTES, Settings, load_settings


def _config(tmp_path: Path, data) -> Path:
    cfg = tmp_path / "vidask.json"
    cfg.write_text(json.dumps(data))
    return cfg


class TestSettings:
    def test_defaults(self):
        s = Settings()
        assert s.max_segment_bytes == 20 * 1024 * 1024 == MAX_SEGMENT_BYTES
        assert s.temperature == 0.3
        assert s.transcription_model == "whisper-1"
        assert s.summarize is False
        assert s.transcriber == "openai"
        assert s.transcript_cache_path == Path("transcriptions.json")
        assert s.qa_cache_path == Path("qa.json")

    def test_require_credentials(self):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            Settings().require_credentials()
        Settings(openai_api_key="sk-x").require_credentials()

    def test_keyword_beats_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert Settings(openai_api_key="sk-kw").openai_api_key == "sk-kw"

    def test_frozen_but_copyable(self):
        s = Settings()
        with pytest.raises(ValidationError):
            s.summarize = True
        assert s.model_copy(update={"summarize": True}).summarize is True


class TestLoadSettings:
    def test_env_only(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("VIDASK_SUMMARIZE", "true")
        s = load_settings(env_file=None)
        assert s.openai_api_key == "sk-env"
        assert s.summarize is True

    def test_prefixed_key_accepted(self, monkeypatch):
        monkeypatch.setenv("VIDASK_OPENAI_API_KEY", "sk-prefixed")
        assert load_settings(env_file=None).openai_api_key == "sk-prefixed"

    def test_empty_env_keeps_defaults(self):
        assert load_settings(env_file=None) == Settings()

    def test_dotenv_file(self, tmp_path: Path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("OPENAI_API_KEY=sk-dotenv\nVIDASK_CHAT_MODEL=gpt-4o\nUNRELATED=1\n")
        s = load_settings(env_file=env_file)
        assert s.openai_api_key == "sk-dotenv"
        assert s.chat_model == "gpt-4o"

    def test_file_then_env(self, tmp_path: Path, monkeypatch):
        cfg = _config(tmp_path, {
            "chat_model": "gpt-4o",
            "cache_dir": "data",
            "chunk_tokens": 1500,
        })
        monkeypatch.setenv("VIDASK_CHAT_MODEL", "gpt-4-turbo")
        s = load_settings(cfg, env_file=None)
        assert s.chat_model == "gpt-4-turbo"
        assert s.cache_dir == Path("data")
        assert s.chunk_tokens == 1500
        assert s.transcript_cache_path == Path("data") / "transcriptions.json"

    def test_file_values_are_coerced(self, tmp_path: Path):
        cfg = _config(tmp_path, {"summarize": "false", "max_segment_bytes": "20971520"})
        s = load_settings(cfg, env_file=None)
        assert s.summarize is False
        assert s.max_segment_bytes == 20971520

    @pytest.mark.parametrize("data, field", [
        ({"summarize": "maybe"}, "summarize"),
        ({"max_segment_bytes": 0}, "max_segment_bytes"),
        ({"chunk_tokens": "many"}, "chunk_tokens"),
        ({"temperature": 5}, "temperature"),
        ({"transcriber": "cloud"}, "transcriber"),
    ])
    def test_invalid_values(self, tmp_path: Path, data, field):
        with pytest.raises(ConfigurationError, match=f"Invalid settings: {field}"):
            load_settings(_config(tmp_path, data), env_file=None)

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("VIDASK_TRANSCRIBER", "cloud")
        with pytest.raises(ConfigurationError, match="transcriber"):
            load_settings(env_file=None)

    def test_unknown_key(self, tmp_path: Path):
        cfg = _config(tmp_path, {"chunk_size": 10})
        with pytest.raises(ConfigurationError, match="Unknown config keys: chunk_size"):
            load_settings(cfg, env_file=None)

    def test_invalid_json(self, tmp_path: Path):
        cfg = tmp_path / "vidask.json"
        cfg.write_text("not json")
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_settings(cfg, env_file=None)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="Cannot read"):
            load_settings(tmp_path / "nope.json", env_file=None)

    def test_non_object(self, tmp_path: Path):
        cfg = tmp_path / "vidask.json"
        cfg.write_text("[]")
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_settings(cfg, env_file=None)
