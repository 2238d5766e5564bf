"""Models for untrusted language-backend payloads."""

from pydantic import BaseModel, ConfigDict, Field


class RawCandidate(BaseModel):
    """Single food mention as reported by a quantity-detection backend."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    original_phrase: str = ""
    quantity_phrase: str = ""
    quantity: float | None = Field(default=None, ge=0.0)
    unit: str
    grams_low: float = Field(ge=0.0)
    grams_high: float = Field(ge=0.0)
    grams_estimate: float = Field(ge=0.0)
    assumptions: list[str]
    confidence: float = Field(ge=0.0, le=1.0)
    cooking_method: str | None = None
    quantity_is_gross: bool = False
    brand: str | None = None
    quantity_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    cooking_confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class RawQuality(BaseModel):
    """Backend self-assessment of a nutrition estimate."""

    model_config = ConfigDict(extra="ignore")

    passed_sanity_checks: bool = True
    notes: str = ""
    confidence: float = Field(default=0.7, ge=0.0, le=1.0)


class RawNutritionItem(BaseModel):
    """Macros for one food as reported by a nutrition backend."""

    model_config = ConfigDict(extra="ignore")

    name: str = ""
    quantity: float | None = Field(default=None, ge=0.0)
    unit: str = "g"
    nutrition_basis: str = ""
    calories: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    calories_per_100g: float | None = Field(default=None, ge=0.0)
    quality: RawQuality = Field(default_factory=RawQuality)
