"""Merge candidates, estimates and review flags into food items."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from voice_nutrition.domain.foods import (
    AlimentaryType,
    CookingMethod,
    CookingOption,
    FoodCandidate,
)
from voice_nutrition.domain.items import OriginalEstimate, ParsedFoodItem, Provenance
from voice_nutrition.domain.nutrition import (
    ATWATER_FAT,
    COOKING_FAT_PREMIUM_PER_100G,
    NutritionEstimate,
)
from voice_nutrition.services.lexicon import FoodLexicon
from voice_nutrition.services.review import ConfidenceModalEvaluator

_logger = logging.getLogger(__name__)

ConfidenceAggregator = Callable[[FoodCandidate, NutritionEstimate], float]

_SUGGESTED_METHODS = (
    CookingMethod.GRILLED,
    CookingMethod.BOILED,
    CookingMethod.BAKED,
    CookingMethod.FRIED,
    CookingMethod.RAW,
)
_WHOLE_QUANTITY_FROM = 10


def mean_confidence(candidate: FoodCandidate, estimate: NutritionEstimate) -> float:
    """Average the normalizer and estimator confidences."""
    return (candidate.confidence + estimate.confidence) / 2


def min_confidence(candidate: FoodCandidate, estimate: NutritionEstimate) -> float:
    """Take the weaker of the normalizer and estimator confidences."""
    return min(candidate.confidence, estimate.confidence)


@dataclass
class ResultAssembler:
    """Build user-facing items in candidate order."""

    evaluator: ConfidenceModalEvaluator
    lexicon: FoodLexicon
    aggregate: ConfidenceAggregator = mean_confidence

    def assemble(
        self,
        candidates: list[FoodCandidate],
        estimates: list[NutritionEstimate],
        provenance: Provenance,
    ) -> list[ParsedFoodItem]:
        """Pair candidates with estimates by index; unmatched candidates are dropped."""
        if len(candidates) != len(estimates):
            _logger.warning(
                "Inconsistent extraction: %s candidates, %s estimates; "
                "dropping unmatched entries",
                len(candidates),
                len(estimates),
            )
        for dropped in candidates[len(estimates) :]:
            _logger.warning("Dropping %s: no nutrition estimate", dropped.name)
        return [
            self._item(candidate, estimate, provenance)
            for candidate, estimate in zip(candidates, estimates, strict=False)
        ]

    def _item(
        self,
        candidate: FoodCandidate,
        estimate: NutritionEstimate,
        provenance: Provenance,
    ) -> ParsedFoodItem:
        flags = self.evaluator.evaluate(candidate)
        quantity = _round_quantity(candidate.grams_estimate)
        calories = round(estimate.calories)
        protein = round(estimate.protein_g, 1)
        carbs = round(estimate.carbs_g, 1)
        fat = round(estimate.fat_g, 1)
        match = self.lexicon.match_food(candidate.name)
        cooking_options: tuple[CookingOption, ...] = ()
        if flags.needs_cooking_method_review:
            cooking_options = cooking_options_for(candidate, estimate)
        return ParsedFoodItem(
            name=candidate.name,
            spoken_quantity=candidate.spoken_quantity,
            spoken_unit=candidate.spoken_unit,
            quantity=quantity,
            unit=candidate.unit,
            grams_low=_round_quantity(candidate.grams_low),
            grams_high=_round_quantity(candidate.grams_high),
            cooking_method=candidate.cooking_method,
            alimentary_type=candidate.alimentary_type,
            calories=calories,
            protein_g=protein,
            carbs_g=carbs,
            fat_g=fat,
            macro_verdict=estimate.verdict,
            overall_confidence=round(self.aggregate(candidate, estimate), 3),
            needs_quantity_review=flags.needs_quantity_review,
            needs_cooking_method_review=flags.needs_cooking_method_review,
            provenance=provenance,
            original_estimate=OriginalEstimate(
                quantity=quantity,
                unit=candidate.unit,
                calories=calories,
                protein_g=protein,
                carbs_g=carbs,
                fat_g=fat,
                cooking_method=candidate.cooking_method,
            ),
            assumptions=candidate.assumptions + estimate.notes,
            suggested_units=self.lexicon.suggested_units(
                match, candidate.alimentary_type
            ),
            suggested_cooking_methods=cooking_options,
        )


def cooking_options_for(
    candidate: FoodCandidate, estimate: NutritionEstimate
) -> tuple[CookingOption, ...]:
    """Offer each cooking method with its calorie multiplier for this item."""
    per_100 = estimate.calories_per_100
    current = COOKING_FAT_PREMIUM_PER_100G.get(candidate.cooking_method, 0.0)
    options = []
    for method in _SUGGESTED_METHODS:
        multiplier = 1.0
        if per_100 > 0 and candidate.alimentary_type == AlimentaryType.SOLID:
            premium = COOKING_FAT_PREMIUM_PER_100G.get(method, 0.0)
            multiplier = (per_100 + (premium - current) * ATWATER_FAT) / per_100
        options.append(
            CookingOption(method=method, calorie_multiplier=round(multiplier, 2))
        )
    return tuple(options)


def _round_quantity(value: float) -> float:
    if value >= _WHOLE_QUANTITY_FROM:
        return float(round(value))
    return round(value, 1)
