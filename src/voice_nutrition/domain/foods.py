"""Food candidate models produced by quantity normalization."""

from dataclasses import dataclass, field
from enum import StrEnum


class CookingMethod(StrEnum):
    """Cooking methods that change a food's calorie profile."""

    GRILLED = "grilled"
    FRIED = "fried"
    BOILED = "boiled"
    BAKED = "baked"
    RAW = "raw"
    UNKNOWN = "unknown"


class AlimentaryType(StrEnum):
    """Physical form of a food, which decides grams vs milliliters."""

    SOLID = "solid"
    LIQUID = "liquid"
    MIXED_BEVERAGE = "mixed_beverage"
    SOUP = "soup"
    SAUCE = "sauce"

    @property
    def is_liquid(self) -> bool:
        """Return True when the food is measured in milliliters."""
        return self in {
            AlimentaryType.LIQUID,
            AlimentaryType.MIXED_BEVERAGE,
            AlimentaryType.SOUP,
        }


@dataclass(frozen=True)
class UnitOption:
    """A unit the user can pick when correcting a quantity."""

    unit: str
    grams_per_unit: float
    recommended: bool = False


@dataclass(frozen=True)
class FoodCandidate:
    """A food mention with a normalized edible-weight estimate."""

    name: str
    original_phrase: str
    spoken_quantity: float | None
    spoken_unit: str | None
    cooking_method: CookingMethod
    alimentary_type: AlimentaryType
    category: str
    grams_low: float
    grams_estimate: float
    grams_high: float
    unit: str
    confidence: float
    assumptions: tuple[str, ...] = field(default_factory=tuple)
    quantity_confidence: float | None = None
    cooking_confidence: float | None = None
    brand: str | None = None
    components: tuple[tuple[str, float], ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.grams_estimate <= 0:
            raise ValueError(f"{self.name}: estimate must be positive")
        if not self.grams_low <= self.grams_estimate <= self.grams_high:
            raise ValueError(
                f"{self.name}: estimate {self.grams_estimate} outside "
                f"[{self.grams_low}, {self.grams_high}]"
            )
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"{self.name}: confidence out of range")


@dataclass(frozen=True)
class CookingOption:
    """A cooking method offered for correction, with its calorie effect."""

    method: CookingMethod
    calorie_multiplier: float
