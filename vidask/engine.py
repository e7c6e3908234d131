"""Orchestrator — resolves a transcript and an answer for one video, reusing caches."""

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from openai import AsyncOpenAI

from vidask import ffutil
from vidask.acquire import Acquirer, YtDlpAcquirer, audio_path
from vidask.analyzers.answer import Answerer, ChatAnswerer
from vidask.analyzers.transcribe import OpenAITranscriber, Transcriber, WhisperTranscriber
from vidask.cache import AnswerCache, TranscriptCache
from vidask.errors import CollaboratorError, VidaskError
from vidask.models import RunContext, RunResult, SegmentDescriptor, TranscriptRecord
from vidask.settings import Settings
from vidask.splitters.chunks import TiktokenTokenizer, Tokenizer, chunk_text
from vidask.splitters.segments import plan_segments

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, float], None]


@dataclass
class Collaborators:
    """The external services a run talks to."""

    acquirer: Acquirer
    transcriber: Transcriber
    answerer: Answerer
    tokenizer: Tokenizer


def default_collaborators(settings: Settings) -> Collaborators:
    """Production collaborators: yt-dlp, OpenAI (or local Whisper), tiktoken."""
    client = AsyncOpenAI(api_key=settings.openai_api_key)

    if settings.transcriber == "local":
        transcriber: Transcriber = WhisperTranscriber(model=settings.whisper_model)
    else:
        transcriber = OpenAITranscriber(client, model=settings.transcription_model)

    return Collaborators(
        acquirer=YtDlpAcquirer(),
        transcriber=transcriber,
        answerer=ChatAnswerer(
            client, model=settings.chat_model, temperature=settings.temperature
        ),
        tokenizer=TiktokenTokenizer(settings.chat_model),
    )


async def run(
    ctx: RunContext,
    collaborators: Collaborators,
    transcripts: TranscriptCache,
    answers: AnswerCache,
    on_progress: ProgressCallback | None = None,
) -> RunResult:
    """Produce an answer to ``ctx.question`` about ``ctx.video_id``.

    Each stage is skipped when its cache already holds the result. Any
    failure aborts the run; results of completed stages stay cached.
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    try:
        return await _run(ctx, collaborators, transcripts, answers, _progress)
    except VidaskError as e:
        logger.error("Run for %s failed during %s: %s", ctx.video_id, e.stage, e)
        raise


async def _run(
    ctx: RunContext,
    collaborators: Collaborators,
    transcripts: TranscriptCache,
    answers: AnswerCache,
    progress: ProgressCallback,
) -> RunResult:
    # --- Transcript ---
    progress("Looking up transcript", 0.0)
    record = transcripts.get(ctx.video_id)
    transcript_cached = record is not None
    segments_transcribed = 0

    if record is None:
        record, segments_transcribed = await build_transcript(ctx, collaborators, progress)
        transcripts.put(record)
    else:
        logger.info("Transcript for %s found in cache", ctx.video_id)

    ctx.title = record.title

    # --- Answer ---
    progress("Looking up answer", 0.9)
    answer = answers.find(ctx.video_id, ctx.question)
    answer_cached = answer is not None

    if answer is None:
        progress("Asking the model", 0.92)
        answer = await collaborators.answerer.answer(record.effective_text, ctx.question)
        answers.put(ctx.video_id, ctx.question, answer)

    progress("Done", 1.0)
    return RunResult(
        video_id=ctx.video_id,
        title=record.title,
        question=ctx.question,
        answer=answer,
        transcript_cached=transcript_cached,
        answer_cached=answer_cached,
        segments_transcribed=segments_transcribed,
        summarized=bool(record.summarized_chunks),
    )


async def build_transcript(
    ctx: RunContext,
    collaborators: Collaborators,
    progress: ProgressCallback,
) -> tuple[TranscriptRecord, int]:
    """Download, split, transcribe, merge and optionally summarize one video."""
    settings = ctx.settings
    scratch = Path(settings.scratch_dir)
    ffutil.check_ffmpeg()
    scratch.mkdir(parents=True, exist_ok=True)

    # --- Acquire ---
    progress("Downloading audio", 0.05)
    source_audio = audio_path(scratch, ctx.video_id)
    ctx.title = await collaborators.acquirer.acquire(ctx.source, ctx.video_id, source_audio)

    # --- Split ---
    progress("Splitting audio", 0.15)
    segment_files = await split_media(source_audio, ctx.video_id, scratch, settings.max_segment_bytes)

    # --- Transcribe, strictly one segment at a time ---
    texts: list[str] = []
    total = len(segment_files)
    for n, (segment, path) in enumerate(segment_files):
        progress(f"Transcribing segment {segment.index} of {total}", 0.2 + 0.6 * n / total)
        try:
            audio = path.read_bytes()
        except OSError as e:
            raise CollaboratorError("transcribe", f"Cannot read segment {path}: {e}") from e
        texts.append(await collaborators.transcriber.transcribe(audio, path.name))
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove segment %s: %s", path, e)
    logger.info("Transcribed %d segments for %s", total, ctx.video_id)

    transcript = " ".join(texts)
    token_count = len(collaborators.tokenizer.encode(transcript))

    # --- Summarize ---
    summaries: list[str] = []
    if settings.summarize and token_count > settings.summarize_threshold_tokens:
        chunks = chunk_text(transcript, collaborators.tokenizer, settings.chunk_tokens)
        for chunk in chunks:
            progress(
                f"Summarizing chunk {chunk.index} of {len(chunks)}",
                0.8 + 0.1 * (chunk.index - 1) / len(chunks),
            )
            summaries.append(await collaborators.answerer.summarize(chunk.text))
        logger.info(
            "Summarized %d tokens into %d chunks for %s", token_count, len(chunks), ctx.video_id
        )

    record = TranscriptRecord(
        video_id=ctx.video_id,
        title=ctx.title,
        transcript=transcript,
        token_count=token_count,
        summarized_chunks=summaries,
    )
    return record, total


async def split_media(
    source: Path, video_id: str, scratch: Path, max_segment_bytes: int
) -> list[tuple[SegmentDescriptor, Path]]:
    """Probe *source* and cut it into size-bounded segment files."""
    try:
        probe = await asyncio.to_thread(ffutil.probe, source)
    except subprocess.CalledProcessError as e:
        raise CollaboratorError("probe", f"ffprobe failed on {source}", e.stderr) from e
    except OSError as e:
        raise CollaboratorError("probe", f"Cannot run ffprobe on {source}: {e}") from e

    segments = plan_segments(probe, max_segment_bytes)
    logger.info(
        "%s: %s, %d bytes, %.1fs at %.0f bit/s -> %d segment(s) of %.3fs",
        source.name, probe.codec_audio or "unknown codec", probe.size_bytes,
        probe.duration, probe.bit_rate, len(segments), segments[0].duration,
    )

    files: list[tuple[SegmentDescriptor, Path]] = []
    for segment in segments:
        out = ffutil.segment_path(scratch, video_id, segment.index)
        try:
            await asyncio.to_thread(ffutil.cut_segment, source, segment, out)
        except OSError as e:
            raise CollaboratorError("split", f"Cannot cut segment {segment.index}: {e}") from e
        except subprocess.CalledProcessError as e:
            raise CollaboratorError(
                "split", f"ffmpeg failed cutting segment {segment.index}", e.stderr
            ) from e
        files.append((segment, out))
    return files
