"""Shared test fixtures."""

import asyncio
import json
from dataclasses import dataclass, field

import pytest

from voice_nutrition.config import Settings
from voice_nutrition.domain.attempts import StrategyName
from voice_nutrition.domain.foods import AlimentaryType, CookingMethod, FoodCandidate
from voice_nutrition.domain.nutrition import (
    MacroProfile,
    MacroVerdict,
    NutritionEstimate,
)
from voice_nutrition.domain.transcripts import AudioClip
from voice_nutrition.services.assembler import ResultAssembler
from voice_nutrition.services.attempts import InMemoryAttemptLog
from voice_nutrition.services.lexicon import (
    FoodLexicon,
    ReviewKeywords,
    load_food_lexicon,
    load_review_keywords,
)
from voice_nutrition.services.orchestrator import ExtractionOrchestrator
from voice_nutrition.services.pipeline import ExtractionOptions, VoiceMealPipeline
from voice_nutrition.services.prompts import CompletionClient
from voice_nutrition.services.review import ConfidenceModalEvaluator
from voice_nutrition.services.strategies import ExtractionStrategy, build_strategies
from voice_nutrition.services.transcription import (
    TranscriptionClient,
    TranscriptionService,
)


@dataclass
class ScriptedCompletionClient(CompletionClient):
    """Fake completion client replaying queued replies per prompt name."""

    replies: dict[str, list[object]] = field(default_factory=dict)
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        instructions: str,
        prompt: str,
        schema: dict[str, object] | None,
        schema_name: str,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "prompt": prompt,
                "schema": schema,
                "schema_name": schema_name,
            }
        )
        queue = self.replies.get(schema_name)
        if not queue:
            raise AssertionError(f"unexpected completion call: {schema_name}")
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def count(self, schema_name: str) -> int:
        return sum(call["schema_name"] == schema_name for call in self.calls)


@dataclass
class FakeTranscriptionClient(TranscriptionClient):
    """Fake transcription client returning a fixed response."""

    response: object = field(default_factory=lambda: {"text": "نص كيلو فراخ مشوي"})
    error: Exception | None = None
    delay_seconds: float = 0.0
    calls: list[dict[str, object]] = field(default_factory=list)

    async def transcribe(  # noqa: PLR0913
        self,
        *,
        model: str,
        audio: AudioClip,
        language: str | None,
        response_format: str,
        include_logprobs: bool,
    ) -> object:
        self.calls.append(
            {
                "model": model,
                "language": language,
                "response_format": response_format,
                "include_logprobs": include_logprobs,
            }
        )
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.response


@dataclass
class FakeStrategy(ExtractionStrategy):
    """Strategy returning canned results, optionally failing or stalling."""

    name: StrategyName
    backend: str = "fake-model"
    candidates: list[FoodCandidate] = field(default_factory=list)
    estimates: list[NutritionEstimate] = field(default_factory=list)
    detect_error: Exception | None = None
    estimate_error: Exception | None = None
    delay_seconds: float = 0.0
    detect_calls: int = 0
    estimate_calls: int = 0

    async def detect(self, text: str) -> list[FoodCandidate]:
        self.detect_calls += 1
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.detect_error is not None:
            raise self.detect_error
        return list(self.candidates)

    async def estimate(
        self, candidates: list[FoodCandidate]
    ) -> list[NutritionEstimate]:
        self.estimate_calls += 1
        if self.estimate_error is not None:
            raise self.estimate_error
        return list(self.estimates)


def detection_row(**overrides: object) -> dict[str, object]:
    """Backend food mention with sensible defaults."""
    row: dict[str, object] = {
        "name": "chicken",
        "original_phrase": "نص كيلو فراخ مشوي",
        "quantity_phrase": "نص كيلو",
        "quantity": 0.5,
        "unit": "kilo",
        "grams_low": 450,
        "grams_estimate": 500,
        "grams_high": 550,
        "cooking_method": "grilled",
        "quantity_is_gross": False,
        "brand": None,
        "assumptions": [],
        "confidence": 0.9,
    }
    row.update(overrides)
    return row


def nutrition_row(**overrides: object) -> dict[str, object]:
    """Backend nutrition entry for 500 g of plain grilled chicken."""
    row: dict[str, object] = {
        "name": "chicken",
        "quantity": 500,
        "unit": "g",
        "nutrition_basis": "500 g edible",
        "calories": 825,
        "protein": 155,
        "carbs": 0,
        "fat": 18,
        "calories_per_100g": None,
        "quality": {"passed_sanity_checks": True, "notes": "", "confidence": 0.8},
    }
    row.update(overrides)
    return row


def as_reply(rows: list[dict[str, object]], wrapper: str | None = None) -> str:
    payload: object = {wrapper: rows} if wrapper else rows
    return json.dumps(payload, ensure_ascii=False)


def make_candidate(**overrides: object) -> FoodCandidate:
    values: dict[str, object] = {
        "name": "chicken",
        "original_phrase": "فراخ",
        "spoken_quantity": None,
        "spoken_unit": None,
        "cooking_method": CookingMethod.UNKNOWN,
        "alimentary_type": AlimentaryType.SOLID,
        "category": "poultry",
        "grams_low": 120.0,
        "grams_estimate": 150.0,
        "grams_high": 180.0,
        "unit": "g",
        "confidence": 0.8,
    }
    values.update(overrides)
    return FoodCandidate(**values)


def make_estimate(**overrides: object) -> NutritionEstimate:
    values: dict[str, object] = {
        "macros": MacroProfile(
            calories=247.5, protein_g=46.5, fat_g=5.4, carbs_g=0.0
        ),
        "verdict": MacroVerdict.PASSED,
        "confidence": 0.8,
        "calories_per_100": 165.0,
    }
    values.update(overrides)
    return NutritionEstimate(**values)


def make_pipeline(
    transcriber: FakeTranscriptionClient,
    completions: ScriptedCompletionClient,
    lexicon: FoodLexicon,
    keywords: ReviewKeywords,
    attempt_log: InMemoryAttemptLog | None = None,
    options: ExtractionOptions | None = None,
) -> VoiceMealPipeline:
    """Wire a pipeline over fake backends and the bundled lookup tables."""
    strategies = build_strategies(
        client=completions,
        lexicon=lexicon,
        two_stage_model="gpt-4o-mini",
        structured_model="gpt-4o",
    )
    return VoiceMealPipeline(
        transcription=TranscriptionService(client=transcriber),
        orchestrator=ExtractionOrchestrator(
            strategies=strategies,
            attempt_log=(
                attempt_log if attempt_log is not None else InMemoryAttemptLog()
            ),
        ),
        assembler=ResultAssembler(
            evaluator=ConfidenceModalEvaluator(keywords=keywords),
            lexicon=lexicon,
        ),
        default_options=options or ExtractionOptions(),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(openai_api_key="openai-key")


@pytest.fixture
def lexicon() -> FoodLexicon:
    return load_food_lexicon()


@pytest.fixture
def keywords() -> ReviewKeywords:
    return load_review_keywords()


@pytest.fixture
def evaluator(keywords: ReviewKeywords) -> ConfidenceModalEvaluator:
    return ConfidenceModalEvaluator(keywords=keywords)


@pytest.fixture
def audio() -> AudioClip:
    return AudioClip(data=b"fake-audio-bytes", duration_seconds=4.2)
