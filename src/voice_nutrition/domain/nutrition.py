"""Nutrition domain models."""

from dataclasses import dataclass, field
from enum import StrEnum

from voice_nutrition.domain.foods import CookingMethod

ATWATER_PROTEIN = 4.0
ATWATER_CARBS = 4.0
ATWATER_FAT = 9.0

# Added cooking fat per 100 g of solid food, on top of the plain-prepared basis.
COOKING_FAT_PREMIUM_PER_100G: dict[CookingMethod, float] = {
    CookingMethod.FRIED: 8.0,
    CookingMethod.BAKED: 2.0,
}


@dataclass(frozen=True)
class MacroProfile:
    """Macronutrient profile for a food item."""

    calories: float
    protein_g: float
    fat_g: float
    carbs_g: float

    @property
    def calories_from_macros(self) -> float:
        """Energy implied by the 4-4-9 rule."""
        return (
            ATWATER_PROTEIN * self.protein_g
            + ATWATER_CARBS * self.carbs_g
            + ATWATER_FAT * self.fat_g
        )

    def scaled(self, factor: float) -> "MacroProfile":
        """Return the profile multiplied by a factor."""
        return MacroProfile(
            calories=self.calories * factor,
            protein_g=self.protein_g * factor,
            fat_g=self.fat_g * factor,
            carbs_g=self.carbs_g * factor,
        )


ZERO_MACROS = MacroProfile(0.0, 0.0, 0.0, 0.0)


class MacroVerdict(StrEnum):
    """Outcome of the macro-consistency check."""

    PASSED = "passed"
    ADJUSTED = "adjusted"
    FAILED = "failed"


@dataclass(frozen=True)
class NutritionEstimate:
    """Calories and macros for one food candidate."""

    macros: MacroProfile
    verdict: MacroVerdict
    confidence: float
    calories_per_100: float
    notes: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        values = (
            self.macros.calories,
            self.macros.protein_g,
            self.macros.fat_g,
            self.macros.carbs_g,
        )
        if any(value < 0 for value in values):
            raise ValueError("nutrition values must be non-negative")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("confidence out of range")

    @property
    def calories(self) -> float:
        return self.macros.calories

    @property
    def protein_g(self) -> float:
        return self.macros.protein_g

    @property
    def carbs_g(self) -> float:
        return self.macros.carbs_g

    @property
    def fat_g(self) -> float:
        return self.macros.fat_g
