"""Nutrition estimation with per-100 normalization and 4-4-9 reconciliation."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from voice_nutrition.domain.backend import RawNutritionItem
from voice_nutrition.domain.errors import ExtractionError, ExtractionErrorKind
from voice_nutrition.domain.foods import AlimentaryType, CookingMethod, FoodCandidate
from voice_nutrition.domain.nutrition import (
    ATWATER_CARBS,
    ATWATER_FAT,
    ATWATER_PROTEIN,
    COOKING_FAT_PREMIUM_PER_100G,
    ZERO_MACROS,
    MacroProfile,
    MacroVerdict,
    NutritionEstimate,
)
from voice_nutrition.services.lexicon import FoodLexicon
from voice_nutrition.services.parsing import extract_json_array
from voice_nutrition.services.prompts import CompletionClient, PromptSpec

_logger = logging.getLogger(__name__)

DEFAULT_MACRO_TOLERANCE = 0.10
FAILED_CONFIDENCE_CAP = 0.3
_UNCHECKED_CONFIDENCE_FACTOR = 0.8
_FALLBACK_SPLIT = {"protein": 0.2, "carbs": 0.5, "fat": 0.3}


def reconcile_macros(
    macros: MacroProfile,
    *,
    tolerance: float = DEFAULT_MACRO_TOLERANCE,
    default_split: dict[str, float] | None = None,
) -> tuple[MacroProfile, MacroVerdict]:
    """Bring calories and macros into agreement with the 4-4-9 rule.

    Calories are authoritative: macros outside tolerance are rescaled
    proportionally. When calories come with no macros at all they are split
    by ``default_split`` (energy shares) and the verdict is ``failed``.
    Applying the function to its own output leaves the macros unchanged.
    """
    macro_calories = macros.calories_from_macros
    if macros.calories <= 0 and macro_calories <= 0:
        return ZERO_MACROS, MacroVerdict.PASSED
    if macros.calories <= 0:
        return (
            MacroProfile(
                calories=macro_calories,
                protein_g=macros.protein_g,
                fat_g=macros.fat_g,
                carbs_g=macros.carbs_g,
            ),
            MacroVerdict.ADJUSTED,
        )
    if macro_calories <= 0:
        shares = default_split or _FALLBACK_SPLIT
        if sum(shares.values()) <= 0:
            shares = _FALLBACK_SPLIT
        total = sum(shares.values())
        energy = {key: macros.calories * value / total for key, value in shares.items()}
        return (
            MacroProfile(
                calories=macros.calories,
                protein_g=energy.get("protein", 0.0) / ATWATER_PROTEIN,
                fat_g=energy.get("fat", 0.0) / ATWATER_FAT,
                carbs_g=energy.get("carbs", 0.0) / ATWATER_CARBS,
            ),
            MacroVerdict.FAILED,
        )

    deviation = abs(macros.calories - macro_calories) / macros.calories
    if deviation <= tolerance:
        return macros, MacroVerdict.PASSED
    factor = macros.calories / macro_calories
    return (
        MacroProfile(
            calories=macros.calories,
            protein_g=macros.protein_g * factor,
            fat_g=macros.fat_g * factor,
            carbs_g=macros.carbs_g * factor,
        ),
        MacroVerdict.ADJUSTED,
    )


def apply_cooking_premium(
    per_100: MacroProfile, method: CookingMethod, alimentary_type: AlimentaryType
) -> MacroProfile:
    """Add the cooking-fat premium of a method to a plain per-100 profile."""
    if alimentary_type != AlimentaryType.SOLID:
        return per_100
    fat = COOKING_FAT_PREMIUM_PER_100G.get(method, 0.0)
    if not fat:
        return per_100
    return MacroProfile(
        calories=per_100.calories + fat * ATWATER_FAT,
        protein_g=per_100.protein_g,
        fat_g=per_100.fat_g + fat,
        carbs_g=per_100.carbs_g,
    )


def clamp_to_band(
    per_100: MacroProfile, band: tuple[float, float]
) -> tuple[MacroProfile, bool]:
    """Clamp calories per 100 into a plausibility band, scaling macros along."""
    low, high = band
    calories = min(max(per_100.calories, low), high)
    if calories == per_100.calories:
        return per_100, False
    return with_calories(per_100, calories), True


def with_calories(profile: MacroProfile, calories: float) -> MacroProfile:
    """Set calories, scaling macros along when the profile has energy."""
    if profile.calories <= 0:
        return MacroProfile(
            calories=calories,
            protein_g=profile.protein_g,
            fat_g=profile.fat_g,
            carbs_g=profile.carbs_g,
        )
    return profile.scaled(calories / profile.calories)


@dataclass
class NutritionEstimator:
    """Estimate calories and macros for normalized candidates."""

    client: CompletionClient
    model: str
    prompt: PromptSpec
    lexicon: FoodLexicon
    tolerance: float = DEFAULT_MACRO_TOLERANCE
    reasoning_effort: str | None = None
    store: bool = False

    async def estimate(
        self, candidates: list[FoodCandidate]
    ) -> list[NutritionEstimate]:
        """Return one estimate per candidate, in candidate order."""
        if not candidates:
            return []
        raw_text = await self.client.complete(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            instructions=self.prompt.instructions,
            prompt=build_nutrition_request(candidates),
            schema=self.prompt.schema,
            schema_name=self.prompt.name,
        )
        parsed = extract_json_array(raw_text)
        if not parsed.ok:
            _logger.warning("Nutrition estimation returned no array: %s", parsed.error)
            raise ExtractionError(
                ExtractionErrorKind.BACKEND_PROTOCOL_ERROR,
                f"Nutrition response unreadable: {parsed.error}",
            )
        try:
            raw_items = [RawNutritionItem.model_validate(row) for row in parsed.value]
        except ValidationError as exc:
            raise ExtractionError(
                ExtractionErrorKind.VALIDATION_FAILED,
                f"Nutrition entry invalid: {exc.error_count()} errors",
            ) from exc
        if len(raw_items) != len(candidates):
            raise ExtractionError(
                ExtractionErrorKind.VALIDATION_FAILED,
                f"Nutrition returned {len(raw_items)} items "
                f"for {len(candidates)} foods",
            )
        return [
            self.finalize(candidate, raw)
            for candidate, raw in zip(candidates, raw_items, strict=True)
        ]

    def finalize(
        self, candidate: FoodCandidate, raw: RawNutritionItem
    ) -> NutritionEstimate:
        """Turn backend totals into a checked estimate for the candidate's grams."""
        notes: list[str] = []
        if raw.quality.notes:
            notes.append(raw.quality.notes)
        basis = self.basis_amount(raw)
        if basis is None:
            basis = candidate.grams_estimate
            if raw.quantity:
                notes.append(
                    f"totals given per {raw.quantity:g} {raw.unit}; "
                    f"read as {basis:g} {candidate.unit}"
                )
        per_100 = MacroProfile(
            calories=raw.calories,
            protein_g=raw.protein,
            fat_g=raw.fat,
            carbs_g=raw.carbs,
        ).scaled(100.0 / basis)
        if raw.calories_per_100g:
            per_100 = with_calories(per_100, raw.calories_per_100g)

        with_premium = apply_cooking_premium(
            per_100, candidate.cooking_method, candidate.alimentary_type
        )
        if with_premium is not per_100:
            notes.append(
                f"{candidate.cooking_method} adds "
                f"{with_premium.fat_g - per_100.fat_g:g} g fat per 100 g"
            )

        category = self.lexicon.category(candidate.category)
        fried = (
            candidate.cooking_method == CookingMethod.FRIED
            and candidate.alimentary_type == AlimentaryType.SOLID
        )
        band = self.lexicon.document.fried_band if fried else category.kcal_per_100
        clamped, was_clamped = clamp_to_band(with_premium, band)
        if was_clamped:
            notes.append(
                f"calories per 100 g clamped from {with_premium.calories:.0f} "
                f"to {clamped.calories:.0f}"
            )

        totals = clamped.scaled(candidate.grams_estimate / 100.0)
        macros, verdict = reconcile_macros(
            totals, tolerance=self.tolerance, default_split=category.default_split
        )
        if verdict != MacroVerdict.PASSED:
            _logger.debug(
                "Macros %s for %s: calories=%.0f from_macros=%.0f",
                verdict,
                candidate.name,
                totals.calories,
                totals.calories_from_macros,
            )
            notes.append(f"macros {verdict} to match calories")

        confidence = raw.quality.confidence
        if not raw.quality.passed_sanity_checks:
            confidence *= _UNCHECKED_CONFIDENCE_FACTOR
        if verdict == MacroVerdict.FAILED:
            confidence = min(confidence, FAILED_CONFIDENCE_CAP)

        return NutritionEstimate(
            macros=macros,
            verdict=verdict,
            confidence=confidence,
            calories_per_100=clamped.calories,
            notes=tuple(notes),
        )

    def basis_amount(self, raw: RawNutritionItem) -> float | None:
        """Grams or milliliters the backend totals refer to, if stated by weight."""
        if not raw.quantity:
            return None
        unit = self.lexicon.unit_by_name(raw.unit)
        if unit is None or unit.entry.kind not in {"mass", "volume"}:
            return None
        return raw.quantity * unit.entry.grams


def build_nutrition_request(candidates: list[FoodCandidate]) -> str:
    """Render one request line per candidate, numbered in candidate order."""
    lines = []
    for index, candidate in enumerate(candidates, start=1):
        line = (
            f"{index}. {candidate.name} | {candidate.grams_estimate:g} "
            f"{candidate.unit} | {candidate.cooking_method}"
        )
        if candidate.components:
            line += " | " + ", ".join(
                f"{component} {grams:g} {candidate.unit}"
                for component, grams in candidate.components
            )
        lines.append(line)
    return "\n".join(lines)
