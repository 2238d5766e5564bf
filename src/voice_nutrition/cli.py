"""Command-line entry point: extract food items from a recorded meal description."""

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from dataclasses import asdict
from pathlib import Path

from voice_nutrition.app_logging import configure_logging
from voice_nutrition.containers import build_container
from voice_nutrition.domain.attempts import StrategyName
from voice_nutrition.domain.errors import ExtractionError, TranscriptionError
from voice_nutrition.domain.transcripts import AudioClip, TranscriptionBackend
from voice_nutrition.services.pipeline import ExtractionOptions, PipelineResult

_logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="voice-nutrition",
        description="Transcribe a meal recording and estimate its nutrition.",
    )
    parser.add_argument("audio", type=Path, help="Path to the recording")
    parser.add_argument(
        "--duration",
        type=float,
        default=0.0,
        help="Recording length in seconds, checked against the configured limit",
    )
    parser.add_argument(
        "--backend",
        choices=[backend.value for backend in TranscriptionBackend],
        help="Transcription backend (defaults to settings)",
    )
    parser.add_argument(
        "--strategy",
        choices=[strategy.value for strategy in StrategyName],
        help="Preferred extraction strategy (defaults to settings)",
    )
    parser.add_argument("--language", help="Language hint, e.g. ar or en")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logs")
    return parser


def result_payload(result: PipelineResult) -> dict[str, object]:
    """Render a pipeline result as JSON-ready data."""
    return {
        "transcript": result.transcript.text,
        "items": [asdict(item) for item in result.items],
        "review_count": result.review_count,
        "outcome": result.attempt.outcome,
        "latency_ms": {
            "transcription": round(result.latencies.transcription_ms),
            "extraction": round(result.latencies.extraction_ms),
        },
    }


async def run(args: argparse.Namespace) -> int:
    """Extract food items from one recording and print them as JSON."""
    container = build_container()
    defaults = container.pipeline.default_options
    options = ExtractionOptions(
        transcription_backend=TranscriptionBackend(args.backend)
        if args.backend
        else defaults.transcription_backend,
        strategy=StrategyName(args.strategy) if args.strategy else defaults.strategy,
        language_hint=args.language or defaults.language_hint,
    )
    content_type = mimetypes.guess_type(args.audio.name)[0] or "audio/m4a"
    audio = AudioClip(
        data=args.audio.read_bytes(),
        duration_seconds=args.duration,
        filename=args.audio.name,
        content_type=content_type,
    )
    try:
        result = await container.pipeline.extract(audio, options)
    except TranscriptionError as exc:
        _logger.error("Transcription failed (%s): %s", exc.kind, exc)
        print(str(exc), file=sys.stderr)
        return 1
    except ExtractionError as exc:
        _logger.error("Extraction failed (%s): %s", exc.kind, exc)
        print(exc.user_message, file=sys.stderr)
        return 1
    finally:
        await container.close_resources()
    print(json.dumps(result_payload(result), ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the command line and return the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
