"""Data-driven lookup tables for foods, units and review keywords."""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from voice_nutrition.domain.foods import AlimentaryType, CookingMethod, UnitOption

_DATA_DIR = Path(__file__).resolve().parent.parent / "data"
DEFAULT_LEXICON_PATH = _DATA_DIR / "food_lexicon.json"
DEFAULT_KEYWORDS_PATH = _DATA_DIR / "review_keywords.json"

_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹٫", "01234567890123456789.")
_LETTER_FOLDS = str.maketrans(
    {"أ": "ا", "إ": "ا", "آ": "ا", "ى": "ي", "ة": "ه", "ـ": None}
)
_DIACRITICS = re.compile(r"[\u064b-\u0652\u0670]")
_SLASH_FRACTION = re.compile(r"(\d+)\s*/\s*(\d+)")
_DECIMAL_COMMA = re.compile(r"(\d),(\d)")
_MIN_STEM_LENGTH = 2
_TOKEN = re.compile(r"\d+(?:\.\d+)?|[^\W\d_]+(?:-[^\W\d_]+)*")


def normalize_text(text: str) -> str:
    """Fold case, Arabic letter variants and digits into space-joined tokens."""
    folded = text.lower().translate(_DIGITS).translate(_LETTER_FOLDS)
    folded = _DIACRITICS.sub("", folded)
    folded = _SLASH_FRACTION.sub(_slash_to_decimal, folded)
    folded = _DECIMAL_COMMA.sub(r"\1.\2", folded)
    return " ".join(_TOKEN.findall(folded))


def tokenize(text: str) -> list[str]:
    """Split normalized text into words."""
    return normalize_text(text).split()


def contains_term(normalized: str, term: str) -> bool:
    """Return True when a normalized term occurs on token boundaries."""
    return bool(term) and f" {term} " in f" {normalized} "


def strip_affixes(normalized: str) -> str:
    """Drop conjunction and article prefixes (و, ال, بال) from each token."""
    tokens = []
    for token in normalized.split():
        stem = token
        for prefix in ("وال", "بال", "ال", "و"):
            rest = token[len(prefix) :]
            if token.startswith(prefix) and len(rest) >= _MIN_STEM_LENGTH:
                stem = rest
                break
        tokens.append(stem)
    return " ".join(tokens)


def _slash_to_decimal(match: re.Match[str]) -> str:
    numerator, denominator = int(match.group(1)), int(match.group(2))
    if denominator == 0:
        return match.group(0)
    return f"{numerator / denominator:.4g}"


class FoodEntry(BaseModel):
    """Lexicon row describing one canonical food."""

    model_config = ConfigDict(extra="forbid")

    aliases: list[str] = Field(min_length=1)
    category: str
    alimentary_type: AlimentaryType
    typical_portion_g: float = Field(gt=0.0)
    whole_weight_g: float | None = Field(default=None, gt=0.0)
    bone_in_piece_g: float | None = Field(default=None, gt=0.0)
    edible_yield: float = Field(default=1.0, gt=0.0, le=1.0)
    containers: dict[str, float] = Field(default_factory=dict)
    components: dict[str, float] = Field(default_factory=dict)
    default_method: CookingMethod | None = None
    recommended_unit: str = "g"


class UnitEntry(BaseModel):
    """Spoken unit and how it converts to grams or milliliters."""

    model_config = ConfigDict(extra="forbid")

    aliases: list[str] = Field(min_length=1)
    kind: Literal["mass", "volume", "container", "count"]
    grams: float = Field(default=1.0, gt=0.0)


class CategoryEntry(BaseModel):
    """Plausibility band and fallback macro split for a food category."""

    model_config = ConfigDict(extra="forbid")

    kcal_per_100: tuple[float, float]
    default_split: dict[str, float]


class LexiconDocument(BaseModel):
    """Schema of ``food_lexicon.json``."""

    model_config = ConfigDict(extra="forbid")

    default_category: str
    default_portion_g: float = Field(gt=0.0)
    bare_number_grams_threshold: float = Field(gt=0.0)
    fried_band: tuple[float, float]
    numbers: dict[str, float]
    fractions: dict[str, float]
    plus_half_markers: list[str]
    vague_terms: dict[str, float]
    cooking_words: dict[str, CookingMethod]
    whole_markers: list[str]
    bone_in_markers: list[str]
    units: dict[str, UnitEntry]
    categories: dict[str, CategoryEntry]
    foods: dict[str, FoodEntry]


class ReviewKeywords(BaseModel):
    """Word lists driving the keyword review heuristic."""

    model_config = ConfigDict(extra="forbid")

    vague_quantity_terms: list[str]
    cooking_words: list[str]
    requires_cooking_categories: list[str]
    no_cooking_needed_categories: list[str]
    processed_markers: list[str]

    @field_validator("vague_quantity_terms", "cooking_words", "processed_markers")
    @classmethod
    def _normalize_terms(cls, terms: list[str]) -> list[str]:
        return [normalize_text(term) for term in terms]


@dataclass(frozen=True)
class FoodMatch:
    """A lexicon food resolved from a spoken or backend name."""

    key: str
    entry: FoodEntry
    aliases: frozenset[str]


@dataclass(frozen=True)
class UnitMatch:
    key: str
    entry: UnitEntry
    length: int


@dataclass(frozen=True)
class FoodLexicon:
    """Normalized indexes over a validated lexicon document."""

    document: LexiconDocument
    food_aliases: dict[str, str]
    unit_aliases: dict[str, str]
    numbers: dict[str, float]
    fractions: dict[str, float]
    vague_terms: dict[str, float]
    cooking_words: dict[str, CookingMethod]
    plus_half_markers: tuple[str, ...]
    whole_markers: tuple[str, ...]
    bone_in_markers: tuple[str, ...]
    max_unit_words: int

    @classmethod
    def from_document(cls, document: LexiconDocument) -> "FoodLexicon":
        """Build lookup indexes with every key normalized."""
        food_aliases = {
            normalize_text(alias): key
            for key, entry in document.foods.items()
            for alias in [key, *entry.aliases]
        }
        unit_aliases = {
            normalize_text(alias): key
            for key, entry in document.units.items()
            for alias in entry.aliases
        }
        return cls(
            document=document,
            food_aliases=food_aliases,
            unit_aliases=unit_aliases,
            numbers=_normalize_keys(document.numbers),
            fractions=_normalize_keys(document.fractions),
            vague_terms=_normalize_keys(document.vague_terms),
            cooking_words=_normalize_keys(document.cooking_words),
            plus_half_markers=_normalize_terms(document.plus_half_markers),
            whole_markers=_normalize_terms(document.whole_markers),
            bone_in_markers=_normalize_terms(document.bone_in_markers),
            max_unit_words=max(len(alias.split()) for alias in unit_aliases),
        )

    def match_food(self, name: str) -> FoodMatch | None:
        """Resolve a food name by exact alias, then by the longest contained alias."""
        normalized = normalize_text(name)
        variants = (normalized, strip_affixes(normalized))
        for variant in variants:
            key = self.food_aliases.get(variant)
            if key is not None:
                return self._food(key)
        for alias in sorted(self.food_aliases, key=len, reverse=True):
            if any(contains_term(variant, alias) for variant in variants):
                return self._food(self.food_aliases[alias])
        return None

    def match_unit(self, tokens: list[str], start: int) -> UnitMatch | None:
        """Return the longest unit alias beginning at ``tokens[start]``."""
        longest = min(self.max_unit_words, len(tokens) - start)
        for length in range(longest, 0, -1):
            phrase = " ".join(tokens[start : start + length])
            key = self.unit_aliases.get(phrase) or self.unit_aliases.get(
                strip_affixes(phrase)
            )
            if key is not None:
                return UnitMatch(key=key, entry=self.document.units[key], length=length)
        return None

    def unit_by_name(self, name: str | None) -> UnitMatch | None:
        """Resolve a whole unit name such as "cup" or "kg"."""
        if not name:
            return None
        tokens = tokenize(name)
        if not tokens:
            return None
        match = self.match_unit(tokens, 0)
        if match is None or match.length != len(tokens):
            return None
        return match

    def category(self, name: str | None) -> CategoryEntry:
        """Return a category entry, falling back to the default category."""
        categories = self.document.categories
        return categories.get(name or "") or categories[self.document.default_category]

    def cooking_method_in(self, text: str) -> CookingMethod | None:
        """Return the cooking method named by the longest cooking word in text."""
        normalized = normalize_text(text)
        variants = (normalized, strip_affixes(normalized))
        for word in sorted(self.cooking_words, key=len, reverse=True):
            if any(contains_term(variant, word) for variant in variants):
                return self.cooking_words[word]
        return None

    def vague_term_in(self, text: str) -> tuple[str, float] | None:
        normalized = normalize_text(text)
        for term in sorted(self.vague_terms, key=len, reverse=True):
            if contains_term(normalized, term):
                return term, self.vague_terms[term]
        return None

    def has_whole_marker(self, text: str) -> bool:
        return _contains_any(text, self.whole_markers)

    def has_bone_in_marker(self, text: str) -> bool:
        return _contains_any(text, self.bone_in_markers)

    def suggested_units(
        self, match: FoodMatch | None, alimentary_type: AlimentaryType
    ) -> tuple[UnitOption, ...]:
        """List unit choices for correcting a quantity, one of them recommended."""
        base_unit = "ml" if alimentary_type.is_liquid else "g"
        if match is None:
            return (
                UnitOption(base_unit, 1.0, recommended=True),
                UnitOption("serving", self.document.default_portion_g),
            )
        entry = match.entry
        recommended = entry.recommended_unit
        if recommended == "g" and base_unit == "ml":
            recommended = "ml"
        options = [UnitOption(base_unit, 1.0, recommended=recommended == base_unit)]
        for unit, grams in entry.containers.items():
            options.append(UnitOption(unit, grams, recommended=recommended == unit))
        if "piece" not in entry.containers:
            options.append(
                UnitOption(
                    "piece", entry.typical_portion_g, recommended=recommended == "piece"
                )
            )
        return tuple(options)

    def _food(self, key: str) -> FoodMatch:
        entry = self.document.foods[key]
        aliases = frozenset(normalize_text(alias) for alias in [key, *entry.aliases])
        return FoodMatch(key=key, entry=entry, aliases=aliases)


def _normalize_keys(values: dict) -> dict:
    return {normalize_text(key): value for key, value in values.items()}


def _normalize_terms(terms: list[str]) -> tuple[str, ...]:
    return tuple(normalize_text(term) for term in terms)


def _contains_any(text: str, terms: tuple[str, ...]) -> bool:
    normalized = normalize_text(text)
    variants = (normalized, strip_affixes(normalized))
    return any(contains_term(variant, term) for term in terms for variant in variants)


def load_food_lexicon(path: Path | None = None) -> FoodLexicon:
    """Load and validate the food lexicon, defaulting to the bundled table."""
    source = path or DEFAULT_LEXICON_PATH
    document = LexiconDocument.model_validate(
        json.loads(source.read_text(encoding="utf-8"))
    )
    return FoodLexicon.from_document(document)


def load_review_keywords(path: Path | None = None) -> ReviewKeywords:
    """Load and validate review keywords, defaulting to the bundled table."""
    source = path or DEFAULT_KEYWORDS_PATH
    return ReviewKeywords.model_validate(
        json.loads(source.read_text(encoding="utf-8"))
    )
