"""User-facing food items produced by the pipeline."""

from dataclasses import dataclass, field, replace

from voice_nutrition.domain.foods import (
    AlimentaryType,
    CookingMethod,
    CookingOption,
    UnitOption,
)
from voice_nutrition.domain.nutrition import (
    ATWATER_FAT,
    COOKING_FAT_PREMIUM_PER_100G,
    MacroVerdict,
)


@dataclass(frozen=True)
class ReviewFlags:
    """Whether a human must confirm quantity or cooking method."""

    needs_quantity_review: bool
    needs_cooking_method_review: bool


@dataclass(frozen=True)
class Provenance:
    """Which strategy and backends produced an item."""

    strategy: str
    backend: str
    transcription_backend: str | None = None


@dataclass(frozen=True)
class OriginalEstimate:
    """Snapshot of the automated estimate kept for audit and diffing."""

    quantity: float
    unit: str
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    cooking_method: CookingMethod


@dataclass(frozen=True)
class ParsedFoodItem:
    """Food item with quantity, macros and review flags."""

    name: str
    spoken_quantity: float | None
    spoken_unit: str | None
    quantity: float
    unit: str
    grams_low: float
    grams_high: float
    cooking_method: CookingMethod
    alimentary_type: AlimentaryType
    calories: float
    protein_g: float
    carbs_g: float
    fat_g: float
    macro_verdict: MacroVerdict
    overall_confidence: float
    needs_quantity_review: bool
    needs_cooking_method_review: bool
    provenance: Provenance
    original_estimate: OriginalEstimate
    assumptions: tuple[str, ...] = field(default_factory=tuple)
    suggested_units: tuple[UnitOption, ...] = field(default_factory=tuple)
    suggested_cooking_methods: tuple[CookingOption, ...] = field(
        default_factory=tuple
    )
    user_modified: bool = False

    @property
    def needs_review(self) -> bool:
        return self.needs_quantity_review or self.needs_cooking_method_review

    def apply_user_edit(
        self,
        *,
        quantity: float | None = None,
        cooking_method: CookingMethod | None = None,
        name: str | None = None,
    ) -> "ParsedFoodItem":
        """Return a copy edited by the user, keeping the original snapshot.

        Quantity changes rescale macros linearly. Cooking method changes swap
        the fat premium of the old method for the new one on solid foods.
        """
        new_quantity = self.quantity if quantity is None else quantity
        if new_quantity <= 0:
            raise ValueError("quantity must be positive")
        factor = new_quantity / self.quantity
        calories = self.calories * factor
        protein = self.protein_g * factor
        carbs = self.carbs_g * factor
        fat = self.fat_g * factor

        new_method = self.cooking_method if cooking_method is None else cooking_method
        if (
            new_method != self.cooking_method
            and self.alimentary_type == AlimentaryType.SOLID
        ):
            delta_per_100 = COOKING_FAT_PREMIUM_PER_100G.get(
                new_method, 0.0
            ) - COOKING_FAT_PREMIUM_PER_100G.get(self.cooking_method, 0.0)
            fat_delta = max(delta_per_100 * new_quantity / 100.0, -fat)
            fat += fat_delta
            calories = max(calories + fat_delta * ATWATER_FAT, 0.0)

        return replace(
            self,
            name=self.name if name is None else name,
            quantity=new_quantity,
            grams_low=min(self.grams_low, new_quantity),
            grams_high=max(self.grams_high, new_quantity),
            cooking_method=new_method,
            calories=round(calories),
            protein_g=round(protein, 1),
            carbs_g=round(carbs, 1),
            fat_g=round(fat, 1),
            needs_quantity_review=(
                self.needs_quantity_review if quantity is None else False
            ),
            needs_cooking_method_review=(
                self.needs_cooking_method_review if cooking_method is None else False
            ),
            user_modified=True,
        )
