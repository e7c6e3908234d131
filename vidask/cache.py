"""Persistent result caches for transcripts and answers.

Each cache sits on a ``KeyValueStore``. ``JsonDocumentStore`` keeps the whole
cache in one JSON document: it is read in full before every lookup and
rewritten in full (through a temp file and ``os.replace``) on every update.
There is no locking; two processes writing the same document can lose an
update.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from vidask.errors import CacheCorruptionError
from vidask.models import QAEntry, TranscriptRecord

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any) -> None: ...

    def exists(self, key: str) -> bool: ...


class MemoryStore:
    """Dict-backed store, for tests and throwaway runs."""

    def __init__(self, data: dict[str, Any] | None = None):
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value

    def exists(self, key: str) -> bool:
        return key in self._data


class JsonDocumentStore:
    """Store backed by a single JSON object on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        """Read the whole document. A missing file is an empty document."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CacheCorruptionError(self.path, f"invalid JSON document ({e})") from e
        if not isinstance(data, dict):
            raise CacheCorruptionError(
                self.path, f"expected a JSON object, found {type(data).__name__}"
            )
        return data

    def get(self, key: str) -> Any | None:
        return self.load().get(key)

    def exists(self, key: str) -> bool:
        return key in self.load()

    def put(self, key: str, value: Any) -> None:
        data = self.load()
        data[key] = value
        self._write(data)

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class TranscriptCache:
    """video id -> TranscriptRecord. Records are written once, never changed."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def get(self, video_id: str) -> TranscriptRecord | None:
        data = self.store.get(video_id)
        if data is None:
            return None
        try:
            return TranscriptRecord.from_dict(video_id, data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CacheCorruptionError(
                getattr(self.store, "path", "transcript cache"),
                f"malformed entry for {video_id!r} ({e})",
            ) from e

    def put(self, record: TranscriptRecord) -> None:
        self.store.put(record.video_id, record.to_dict())
        logger.info("Cached transcript for %s", record.video_id)

    async def get_or_compute(
        self, video_id: str, compute: Callable[[], Awaitable[TranscriptRecord]]
    ) -> TranscriptRecord:
        """Return the cached record, computing and storing it on a miss."""
        record = self.get(video_id)
        if record is not None:
            return record
        record = await compute()
        self.put(record)
        return record


class AnswerCache:
    """video id -> ordered list of question/answer pairs. Append-only."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    def entries(self, video_id: str) -> list[QAEntry]:
        raw = self.store.get(video_id) or []
        try:
            if not isinstance(raw, list):
                raise TypeError(f"expected a list, found {type(raw).__name__}")
            return [QAEntry.from_dict(e) for e in raw]
        except (KeyError, TypeError) as e:
            raise CacheCorruptionError(
                getattr(self.store, "path", "answer cache"),
                f"malformed entry for {video_id!r} ({e})",
            ) from e

    def find(self, video_id: str, question: str) -> str | None:
        """Answer previously stored for exactly *question*, or None."""
        for entry in self.entries(video_id):
            if entry.question == question:
                return entry.answer
        return None

    def put(self, video_id: str, question: str, answer: str) -> None:
        """Append a pair. A question that already has an answer is left as is."""
        entries = self.entries(video_id)
        if any(e.question == question for e in entries):
            logger.debug("Answer for %r on %s already cached", question, video_id)
            return
        entries.append(QAEntry(question=question, answer=answer))
        self.store.put(video_id, [e.to_dict() for e in entries])

    async def get_or_compute(
        self, video_id: str, question: str, compute: Callable[[], Awaitable[str]]
    ) -> str:
        answer = self.find(video_id, question)
        if answer is not None:
            return answer
        answer = await compute()
        self.put(video_id, question, answer)
        return answer


def open_caches(transcript_path: Path, qa_path: Path) -> tuple[TranscriptCache, AnswerCache]:
    """Document-backed transcript and answer caches."""
    return (
        TranscriptCache(JsonDocumentStore(transcript_path)),
        AnswerCache(JsonDocumentStore(qa_path)),
    )
