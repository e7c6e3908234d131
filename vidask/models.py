"""Shared data types used across vidask."""

from dataclasses import dataclass, field

from vidask.settings import Settings


@dataclass(frozen=True)
class MediaProbe:
    """Metadata extracted from an audio file via ffprobe."""

    duration: float
    bit_rate: float
    codec_audio: str = ""
    size_bytes: int = 0


@dataclass(frozen=True)
class SegmentDescriptor:
    """One time slice of a media file, 1-based, in seconds."""

    index: int
    start: float
    duration: float


@dataclass(frozen=True)
class TextChunk:
    """A token-bounded slice of a transcript."""

    index: int
    text: str
    token_count: int = 0


@dataclass(frozen=True)
class TranscriptRecord:
    """A finished transcript for one video, as stored in the transcript cache."""

    video_id: str
    title: str
    transcript: str
    token_count: int = 0
    summarized_chunks: list[str] = field(default_factory=list)

    @property
    def effective_text(self) -> str:
        """Text sent for answering: joined summaries if any, else the transcript."""
        if self.summarized_chunks:
            return " ".join(self.summarized_chunks)
        return self.transcript

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "transcript": self.transcript,
            "tokenCount": self.token_count,
            "summarizedChunks": list(self.summarized_chunks),
        }

    @classmethod
    def from_dict(cls, video_id: str, data: dict | str) -> "TranscriptRecord":
        # Older documents stored the bare transcript string under the id.
        if isinstance(data, str):
            return cls(video_id=video_id, title="", transcript=data)
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, found {type(data).__name__}")
        transcript = data["transcript"]
        title = data.get("title", "")
        token_count = data.get("tokenCount", 0)
        chunks = data.get("summarizedChunks", [])
        if not isinstance(transcript, str) or not isinstance(title, str):
            raise TypeError("transcript and title must be strings")
        if isinstance(token_count, bool) or not isinstance(token_count, int):
            raise TypeError(f"tokenCount must be an integer, found {token_count!r}")
        if not isinstance(chunks, list) or not all(isinstance(c, str) for c in chunks):
            raise TypeError("summarizedChunks must be a list of strings")
        return cls(
            video_id=video_id,
            title=title,
            transcript=transcript,
            token_count=token_count,
            summarized_chunks=list(chunks),
        )


@dataclass(frozen=True)
class QAEntry:
    """A question and the answer generated for it."""

    question: str
    answer: str

    def to_dict(self) -> dict:
        return {"question": self.question, "answer": self.answer}

    @classmethod
    def from_dict(cls, data: dict) -> "QAEntry":
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, found {type(data).__name__}")
        question, answer = data["question"], data["answer"]
        if not isinstance(question, str) or not isinstance(answer, str):
            raise TypeError("question and answer must be strings")
        return cls(question=question, answer=answer)


@dataclass
class RunContext:
    """Everything a single invocation needs, threaded through the engine."""

    source: str
    video_id: str
    question: str
    settings: Settings
    title: str = ""


@dataclass
class RunResult:
    video_id: str
    title: str
    question: str
    answer: str
    transcript_cached: bool = False
    answer_cached: bool = False
    segments_transcribed: int = 0
    summarized: bool = False
