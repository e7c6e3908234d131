"""Shared test fixtures."""

import os
from pathlib import Path
from typing import Sequence

import pytest

from vidask.settings import Settings


class CharTokenizer:
    """One token per character; '.' is the sentence boundary."""

    boundary_token = ord(".")

    def encode(self, text: str) -> list[int]:
        return [ord(c) for c in text]

    def decode(self, tokens: Sequence[int]) -> str:
        return "".join(chr(t) for t in tokens)

    def is_complete(self, tokens: Sequence[int]) -> bool:
        return True


class ByteTokenizer:
    """One token per UTF-8 byte, decoding partial characters as U+FFFD like tiktoken."""

    boundary_token = ord(".")

    def encode(self, text: str) -> list[int]:
        return list(text.encode("utf-8"))

    def decode(self, tokens: Sequence[int]) -> str:
        return bytes(tokens).decode("utf-8", errors="replace")

    def is_complete(self, tokens: Sequence[int]) -> bool:
        try:
            bytes(tokens).decode("utf-8")
        except UnicodeDecodeError:
            return False
        return True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path: Path):
    """Keep the developer's environment and .env file out of settings."""
    for name in list(os.environ):
        if name == "OPENAI_API_KEY" or name.startswith("VIDASK_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def tokenizer() -> CharTokenizer:
    return CharTokenizer()


@pytest.fixture
def byte_tokenizer() -> ByteTokenizer:
    return ByteTokenizer()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        openai_api_key="sk-test",
        cache_dir=tmp_path / "cache",
        scratch_dir=tmp_path / "scratch",
    )
