"""Run configuration: defaults, optional JSON config file, environment overrides."""

import json
from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, PositiveInt, ValidationError
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from vidask.errors import ConfigurationError

DEFAULT_QUESTION = "Please summarize the video"
MAX_SEGMENT_BYTES = 20 * 1024 * 1024


class Settings(BaseSettings):
    """Configuration for one vidask run.

    Values come from, highest first: keyword arguments, ``VIDASK_*``
    environment variables, the .env file, the JSON config file, defaults.
    The OpenAI key is read from plain ``OPENAI_API_KEY``.
    """

    openai_api_key: str = Field(
        "", validation_alias=AliasChoices("openai_api_key", "vidask_openai_api_key")
    )
    transcription_model: str = "whisper-1"
    chat_model: str = "gpt-4"
    temperature: float = Field(0.3, ge=0.0, le=2.0)
    max_segment_bytes: PositiveInt = MAX_SEGMENT_BYTES
    summarize: bool = False
    summarize_threshold_tokens: PositiveInt = 6000
    chunk_tokens: PositiveInt = 2000
    cache_dir: Path = Path(".")
    scratch_dir: Path = Path(".vidask")
    transcript_cache_name: str = "transcriptions.json"
    qa_cache_name: str = "qa.json"
    transcriber: Literal["openai", "local"] = "openai"
    whisper_model: str = "base"

    model_config = SettingsConfigDict(
        env_prefix="VIDASK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            JsonConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def transcript_cache_path(self) -> Path:
        return Path(self.cache_dir) / self.transcript_cache_name

    @property
    def qa_cache_path(self) -> Path:
        return Path(self.cache_dir) / self.qa_cache_name

    def require_credentials(self) -> None:
        """Raise ConfigurationError if the OpenAI key is missing."""
        if not self.openai_api_key:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set; export it or add it to a .env file"
            )


def _read_config_file(path: Path) -> dict:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a JSON object")

    unknown = sorted(set(data) - set(Settings.model_fields))
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(unknown)}")
    return data


def load_settings(
    path: str | Path | None = None, env_file: str | Path | None = ".env"
) -> Settings:
    """Build Settings from an optional JSON config file and the environment.

    File values override defaults; environment values override both.
    Pass ``env_file=None`` to ignore any .env file.
    """
    settings_cls: type[Settings] = Settings
    if path is not None:
        path = Path(path)
        _read_config_file(path)

        class FileSettings(Settings):
            model_config = SettingsConfigDict(json_file=path, json_file_encoding="utf-8")

        settings_cls = FileSettings

    try:
        return settings_cls(_env_file=env_file)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigurationError(f"Invalid settings: {problems}") from e
