"""Thin CLI entry point — builds a RunContext and calls the engine."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from vidask.acquire import parse_video_id
from vidask.cache import open_caches
from vidask.engine import default_collaborators, run
from vidask.errors import VidaskError
from vidask.models import RunContext
from vidask.settings import DEFAULT_QUESTION, load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vidask",
        description="vidask — transcribe a YouTube video once, then ask it questions.",
    )
    parser.add_argument("source", nargs="?", help="YouTube URL or video id")
    parser.add_argument(
        "question", nargs="?", default=DEFAULT_QUESTION,
        help=f'Question to ask (default: "{DEFAULT_QUESTION}")',
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to a JSON config file")
    parser.add_argument(
        "--summarize", action="store_true", default=None,
        help="Summarize long transcripts chunk by chunk before answering",
    )
    parser.add_argument(
        "--transcriber", choices=["openai", "local"],
        help="Speech-to-text backend (default: openai)",
    )
    parser.add_argument("--cache-dir", type=Path, help="Directory holding the cache documents")
    parser.add_argument("--scratch-dir", type=Path, help="Directory for downloaded audio and segments")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log pipeline details")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.source:
        print("Error: provide a YouTube URL or video id.", file=sys.stderr)
        parser.print_usage(sys.stderr)
        sys.exit(1)

    try:
        settings = load_settings(args.config)
        overrides = {
            "summarize": args.summarize,
            "transcriber": args.transcriber,
            "cache_dir": args.cache_dir,
            "scratch_dir": args.scratch_dir,
        }
        settings = settings.model_copy(
            update={k: v for k, v in overrides.items() if v is not None}
        )
        settings.require_credentials()

        source = args.source.strip()
        ctx = RunContext(
            source=source,
            video_id=parse_video_id(source),
            question=args.question,
            settings=settings,
        )
        transcripts, answers = open_caches(
            settings.transcript_cache_path, settings.qa_cache_path
        )
        collaborators = default_collaborators(settings)

        def on_progress(stage: str, frac: float) -> None:
            print(f"  [{frac:3.0%}] {stage}")

        result = asyncio.run(run(ctx, collaborators, transcripts, answers, on_progress=on_progress))
    except VidaskError as e:
        print(f"Error ({e.stage}): {e}", file=sys.stderr)
        sys.exit(1)

    print()
    if result.title:
        print(f"Video: {result.title} ({result.video_id})")
    if result.transcript_cached:
        print("  Transcript: cached")
    else:
        print(f"  Transcript: {result.segments_transcribed} segment(s) transcribed")
    if result.summarized:
        print("  Answered from chunk summaries")
    print()
    label = "Existing Answer" if result.answer_cached else "Answer"
    print(f"{label}: {result.answer}")
