"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from voice_nutrition.adapters.openai_completion_client import OpenAICompletionClient
from voice_nutrition.adapters.openai_transcription_client import (
    OpenAITranscriptionClient,
)
from voice_nutrition.config import Settings, parse_language_hint
from voice_nutrition.services.assembler import ResultAssembler
from voice_nutrition.services.attempts import InMemoryAttemptLog
from voice_nutrition.services.lexicon import (
    FoodLexicon,
    load_food_lexicon,
    load_review_keywords,
)
from voice_nutrition.services.orchestrator import ExtractionOrchestrator
from voice_nutrition.services.pipeline import ExtractionOptions, VoiceMealPipeline
from voice_nutrition.services.review import ConfidenceModalEvaluator
from voice_nutrition.services.strategies import build_strategies
from voice_nutrition.services.transcription import TranscriptionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    lexicon: FoodLexicon
    attempt_log: InMemoryAttemptLog
    transcription_service: TranscriptionService
    orchestrator: ExtractionOrchestrator
    assembler: ResultAssembler
    pipeline: VoiceMealPipeline
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    lexicon = load_food_lexicon(resolved_settings.food_lexicon_path)
    keywords = load_review_keywords(resolved_settings.review_keywords_path)
    attempt_log = InMemoryAttemptLog(capacity=resolved_settings.attempt_log_capacity)

    transcription_client = OpenAITranscriptionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.transcription_timeout_seconds,
    )
    completion_client = OpenAICompletionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=max(
            resolved_settings.detect_timeout_seconds,
            resolved_settings.estimate_timeout_seconds,
        ),
    )
    transcription_service = TranscriptionService(
        client=transcription_client,
        models=resolved_settings.transcription_models(),
        max_recording_seconds=resolved_settings.max_recording_seconds,
        timeout_seconds=resolved_settings.transcription_timeout_seconds,
    )
    strategies = build_strategies(
        client=completion_client,
        lexicon=lexicon,
        two_stage_model=resolved_settings.two_stage_model,
        structured_model=resolved_settings.structured_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        tolerance=resolved_settings.macro_tolerance,
    )
    orchestrator = ExtractionOrchestrator(
        strategies=strategies,
        attempt_log=attempt_log,
        detect_timeout_seconds=resolved_settings.detect_timeout_seconds,
        estimate_timeout_seconds=resolved_settings.estimate_timeout_seconds,
    )
    assembler = ResultAssembler(
        evaluator=ConfidenceModalEvaluator(
            keywords=keywords,
            threshold=resolved_settings.review_confidence_threshold,
        ),
        lexicon=lexicon,
    )
    pipeline = VoiceMealPipeline(
        transcription=transcription_service,
        orchestrator=orchestrator,
        assembler=assembler,
        default_options=ExtractionOptions(
            transcription_backend=resolved_settings.transcription_backend,
            strategy=resolved_settings.default_strategy,
            language_hint=parse_language_hint(resolved_settings.language_hint),
        ),
    )

    async def close_resources() -> None:
        await transcription_client.close()
        await completion_client.close()

    return AppContainer(
        settings=resolved_settings,
        lexicon=lexicon,
        attempt_log=attempt_log,
        transcription_service=transcription_service,
        orchestrator=orchestrator,
        assembler=assembler,
        pipeline=pipeline,
        close_resources=close_resources,
    )
