"""Prompts, schemas and the completion client interface."""

from dataclasses import dataclass
from typing import Protocol

_COOKING_METHODS = ["grilled", "fried", "boiled", "baked", "raw", "unknown"]


class CompletionClient(Protocol):
    """Interface for a text-in, text-out language backend."""

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
        """Return the raw text produced by the backend."""


@dataclass(frozen=True)
class PromptSpec:
    """Instructions plus an optional strict output schema for one stage."""

    name: str
    instructions: str
    schema: dict[str, object] | None = None
    reports_field_confidence: bool = False


def _nullable(schema: dict[str, object]) -> dict[str, object]:
    return {"anyOf": [schema, {"type": "null"}]}


_CANDIDATE_PROPERTIES: dict[str, object] = {
    "name": {"type": "string"},
    "original_phrase": {"type": "string"},
    "quantity_phrase": {"type": "string"},
    "quantity": _nullable({"type": "number", "minimum": 0}),
    "unit": {"type": "string"},
    "grams_low": {"type": "number", "minimum": 0},
    "grams_estimate": {"type": "number", "minimum": 0},
    "grams_high": {"type": "number", "minimum": 0},
    "cooking_method": {"type": "string", "enum": _COOKING_METHODS},
    "quantity_is_gross": {"type": "boolean"},
    "brand": _nullable({"type": "string"}),
    "assumptions": {"type": "array", "items": {"type": "string"}},
    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
    "quantity_confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
    "cooking_confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
}

DETECTION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": _CANDIDATE_PROPERTIES,
                "required": list(_CANDIDATE_PROPERTIES),
                "additionalProperties": False,
            },
        }
    },
    "required": ["foods"],
    "additionalProperties": False,
}

_QUALITY_PROPERTIES: dict[str, object] = {
    "passed_sanity_checks": {"type": "boolean"},
    "notes": {"type": "string"},
    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
}

_NUTRITION_PROPERTIES: dict[str, object] = {
    "name": {"type": "string"},
    "quantity": {"type": "number", "minimum": 0},
    "unit": {"type": "string"},
    "nutrition_basis": {"type": "string"},
    "calories": {"type": "number", "minimum": 0},
    "protein": {"type": "number", "minimum": 0},
    "carbs": {"type": "number", "minimum": 0},
    "fat": {"type": "number", "minimum": 0},
    "calories_per_100g": {"type": "number", "minimum": 0},
    "quality": {
        "type": "object",
        "properties": _QUALITY_PROPERTIES,
        "required": list(_QUALITY_PROPERTIES),
        "additionalProperties": False,
    },
}

NUTRITION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": _NUTRITION_PROPERTIES,
                "required": list(_NUTRITION_PROPERTIES),
                "additionalProperties": False,
            },
        }
    },
    "required": ["items"],
    "additionalProperties": False,
}

_DETECTION_RULES = """\
You normalize spoken meal logs in Arabic, Egyptian Arabic or English.
List every food or drink the speaker says they ate. Ignore anything that is not food.
For each food report:
- name: short canonical English name (e.g. "chicken", "rice", "water").
- original_phrase: the exact words used for this food, quantity included.
- quantity_phrase: only the quantity words (e.g. "نص كيلو", "2 cups", "شوية"), or "".
- quantity and unit: the spoken number and unit if any.
- grams_low, grams_estimate, grams_high: edible cooked grams (ml for drinks).
- cooking_method: grilled, fried, boiled, baked, raw or unknown. Never guess.
- quantity_is_gross: true when the amount includes bones or shells
  (e.g. "نص فرخة", "ورك", "جناح", a whole fish). Explicit net weights such as
  "نص كيلو" are not gross.
- assumptions: every assumption you made, one short sentence each.
Dialect measures: نص=0.5, ربع=0.25, تلت=1/3, نص كيلو=500 g, ربع كيلو=250 g,
مية=100 g. Vague words such as شوية, "a little" or "some" mean a small or
unspecified portion: give a wide range.
If no food is mentioned return an empty list."""

TWO_STAGE_DETECTION = PromptSpec(
    name="two_stage_detect",
    instructions=(
        _DETECTION_RULES
        + "\nAnswer with a JSON array of objects using exactly these keys: "
        + ", ".join(
            key
            for key in _CANDIDATE_PROPERTIES
            if key not in {"quantity_confidence", "cooking_confidence"}
        )
        + ". No prose."
    ),
)

STRUCTURED_DETECTION = PromptSpec(
    name="structured_detect",
    instructions=(
        _DETECTION_RULES
        + "\nAlso rate quantity_confidence (how sure you are of the amount) and "
        "cooking_confidence (how sure you are of the cooking method, 1.0 when the "
        "food never needs one) from 0 to 1."
    ),
    schema=DETECTION_SCHEMA,
    reports_field_confidence=True,
)

_NUTRITION_RULES = """\
You estimate nutrition for foods with known edible quantities.
Each input line is: index. name | amount unit | cooking method [| components].
For every line, in the same order, return calories, protein, carbs and fat for
the stated amount of the food prepared plainly (no added oil or butter), plus
calories_per_100g on the same basis, the quantity and unit you used as
nutrition_basis, and a quality block. Check that calories are close to
4*protein + 4*carbs + 9*fat and that calories per 100 g are plausible for the
food; set passed_sanity_checks accordingly and explain corrections in notes."""

TWO_STAGE_NUTRITION = PromptSpec(
    name="two_stage_nutrition",
    instructions=(
        _NUTRITION_RULES
        + "\nAnswer with a JSON array of objects using exactly these keys: "
        + ", ".join(_NUTRITION_PROPERTIES)
        + ". No prose."
    ),
)

STRUCTURED_NUTRITION = PromptSpec(
    name="structured_nutrition",
    instructions=_NUTRITION_RULES,
    schema=NUTRITION_SCHEMA,
)
