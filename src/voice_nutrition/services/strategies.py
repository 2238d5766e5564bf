"""Interchangeable extraction strategies."""

from dataclasses import dataclass
from typing import Protocol

from voice_nutrition.domain.attempts import StrategyName
from voice_nutrition.domain.foods import FoodCandidate
from voice_nutrition.domain.nutrition import NutritionEstimate
from voice_nutrition.services.lexicon import FoodLexicon
from voice_nutrition.services.nutrition import (
    DEFAULT_MACRO_TOLERANCE,
    NutritionEstimator,
)
from voice_nutrition.services.prompts import (
    STRUCTURED_DETECTION,
    STRUCTURED_NUTRITION,
    TWO_STAGE_DETECTION,
    TWO_STAGE_NUTRITION,
    CompletionClient,
)
from voice_nutrition.services.quantities import QuantityNormalizer


class ExtractionStrategy(Protocol):
    """Detect foods in a transcript and estimate their nutrition."""

    name: StrategyName
    backend: str

    async def detect(self, text: str) -> list[FoodCandidate]:
        """Return normalized candidates mentioned in the text."""

    async def estimate(
        self, candidates: list[FoodCandidate]
    ) -> list[NutritionEstimate]:
        """Return one estimate per candidate."""


@dataclass
class ModelStrategy(ExtractionStrategy):
    """Strategy pairing a quantity normalizer with a nutrition estimator."""

    name: StrategyName
    backend: str
    normalizer: QuantityNormalizer
    estimator: NutritionEstimator

    async def detect(self, text: str) -> list[FoodCandidate]:
        return await self.normalizer.detect_quantities(text)

    async def estimate(
        self, candidates: list[FoodCandidate]
    ) -> list[NutritionEstimate]:
        return await self.estimator.estimate(candidates)


def alternate(name: StrategyName) -> StrategyName:
    """Return the other member of the closed strategy set."""
    if name == StrategyName.TWO_STAGE:
        return StrategyName.STRUCTURED
    return StrategyName.TWO_STAGE


def build_strategies(  # noqa: PLR0913
    *,
    client: CompletionClient,
    lexicon: FoodLexicon,
    two_stage_model: str,
    structured_model: str,
    reasoning_effort: str | None = None,
    store: bool = False,
    tolerance: float = DEFAULT_MACRO_TOLERANCE,
) -> dict[StrategyName, ExtractionStrategy]:
    """Create both strategies over one completion client."""
    specs = {
        StrategyName.TWO_STAGE: (
            two_stage_model,
            TWO_STAGE_DETECTION,
            TWO_STAGE_NUTRITION,
        ),
        StrategyName.STRUCTURED: (
            structured_model,
            STRUCTURED_DETECTION,
            STRUCTURED_NUTRITION,
        ),
    }
    strategies: dict[StrategyName, ExtractionStrategy] = {}
    for name, (model, detection, nutrition) in specs.items():
        strategies[name] = ModelStrategy(
            name=name,
            backend=model,
            normalizer=QuantityNormalizer(
                client=client,
                model=model,
                prompt=detection,
                lexicon=lexicon,
                reasoning_effort=reasoning_effort,
                store=store,
            ),
            estimator=NutritionEstimator(
                client=client,
                model=model,
                prompt=nutrition,
                lexicon=lexicon,
                tolerance=tolerance,
                reasoning_effort=reasoning_effort,
                store=store,
            ),
        )
    return strategies
