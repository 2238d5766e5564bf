"""Voice-to-nutrition pipeline entry point."""

import logging
import time
from dataclasses import dataclass

from voice_nutrition.domain.attempts import ExtractionAttempt, StrategyName
from voice_nutrition.domain.errors import ExtractionError, ExtractionErrorKind
from voice_nutrition.domain.items import ParsedFoodItem, Provenance
from voice_nutrition.domain.transcripts import (
    AudioClip,
    RawTranscript,
    TranscriptionBackend,
)
from voice_nutrition.services.assembler import ResultAssembler
from voice_nutrition.services.orchestrator import ExtractionOrchestrator
from voice_nutrition.services.transcription import TranscriptionService

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionOptions:
    """Per-call choices for transcription backend, strategy and language."""

    transcription_backend: TranscriptionBackend = TranscriptionBackend.WHISPER
    strategy: StrategyName = StrategyName.STRUCTURED
    language_hint: str | None = None


@dataclass(frozen=True)
class StageLatencies:
    transcription_ms: float
    extraction_ms: float

    @property
    def total_ms(self) -> float:
        return self.transcription_ms + self.extraction_ms


@dataclass(frozen=True)
class PipelineResult:
    """Items ready for confirmation plus how they were produced."""

    items: tuple[ParsedFoodItem, ...]
    transcript: RawTranscript
    attempt: ExtractionAttempt
    latencies: StageLatencies

    @property
    def review_count(self) -> int:
        return sum(item.needs_review for item in self.items)

    def require_items(self) -> tuple[ParsedFoodItem, ...]:
        """Return the items, treating an empty result as a failure."""
        if not self.items:
            raise ExtractionError(
                ExtractionErrorKind.NO_FOOD_DETECTED,
                "No food items found. Please describe what you ate.",
            )
        return self.items


@dataclass
class VoiceMealPipeline:
    """Transcribe a recording, extract foods and assemble reviewable items."""

    transcription: TranscriptionService
    orchestrator: ExtractionOrchestrator
    assembler: ResultAssembler
    default_options: ExtractionOptions = ExtractionOptions()

    async def extract(
        self, audio: AudioClip, options: ExtractionOptions | None = None
    ) -> PipelineResult:
        """Run the whole chain for one recording.

        Transcription errors propagate unchanged; extraction errors surface
        only after the orchestrator's single fallback also failed.
        """
        resolved = options or self.default_options
        started = time.perf_counter()
        transcript = await self.transcription.transcribe(
            audio,
            language_hint=resolved.language_hint,
            backend=resolved.transcription_backend,
        )
        transcribed = time.perf_counter()
        run = await self.orchestrator.run(transcript.text, resolved.strategy)
        provenance = Provenance(
            strategy=run.strategy.name,
            backend=run.strategy.backend,
            transcription_backend=transcript.backend,
        )
        items = self.assembler.assemble(run.candidates, run.estimates, provenance)
        finished = time.perf_counter()
        result = PipelineResult(
            items=tuple(items),
            transcript=transcript,
            attempt=run.attempt,
            latencies=StageLatencies(
                transcription_ms=(transcribed - started) * 1000.0,
                extraction_ms=(finished - transcribed) * 1000.0,
            ),
        )
        _logger.info(
            "Pipeline finished: items=%s review=%s strategy=%s total_ms=%.0f",
            len(result.items),
            result.review_count,
            run.strategy.name,
            result.latencies.total_ms,
        )
        return result
