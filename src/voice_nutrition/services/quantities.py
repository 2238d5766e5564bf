"""Quantity detection and deterministic normalization to edible grams."""

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from voice_nutrition.domain.backend import RawCandidate
from voice_nutrition.domain.errors import ExtractionError, ExtractionErrorKind
from voice_nutrition.domain.foods import AlimentaryType, CookingMethod, FoodCandidate
from voice_nutrition.services.lexicon import (
    FoodLexicon,
    FoodMatch,
    UnitMatch,
    contains_term,
    normalize_text,
)
from voice_nutrition.services.parsing import extract_json_array
from voice_nutrition.services.prompts import CompletionClient, PromptSpec

_logger = logging.getLogger(__name__)

VAGUE_CONFIDENCE_CAP = 0.45
MIN_AMOUNT = 0.1
_VAGUE_LOW_FACTOR = 0.4
_VAGUE_HIGH_FACTOR = 1.8
_MIN_DUAL_STEM = 2
_LIQUID_UNITS = {"ml", "milliliter", "milliliters", "l", "liter", "liters", "litre"}

# Relative half-width of the gram range for each way a quantity was read.
_SPREAD = {
    "mass": 0.05,
    "volume": 0.05,
    "container": 0.15,
    "count": 0.20,
    "gross": 0.15,
    "backend": 0.0,
    "typical": 0.30,
}


@dataclass(frozen=True)
class QuantityReading:
    """Numbers and unit read from a spoken quantity phrase."""

    amount: float | None
    unit: UnitMatch | None


@dataclass(frozen=True)
class _Grams:
    estimate: float
    spread: str
    assumptions: tuple[str, ...] = ()
    low: float | None = None
    high: float | None = None


def read_quantity(
    phrase: str, lexicon: FoodLexicon, ignored: frozenset[str] = frozenset()
) -> QuantityReading:
    """Read an amount and a unit from a phrase.

    Tokens listed in ``ignored`` (the food's own aliases) are skipped so that a
    food name such as "مية" (water) is not read as a number. Dual forms such as
    "رغيفين" count as two of the unit or food they are built on.
    """
    normalized = normalize_text(phrase)
    plus_half = False
    for marker in lexicon.plus_half_markers:
        if contains_term(normalized, marker):
            plus_half = True
            normalized = f" {normalized} ".replace(f" {marker} ", " ").strip()
    tokens = normalized.split()

    amount: float | None = None
    fraction = 0.0
    unit: UnitMatch | None = None
    index = 0
    while index < len(tokens):
        token = tokens[index]
        dual = _dual_stem(token)
        if dual is not None and token not in lexicon.numbers:
            dual_unit = lexicon.match_unit([dual], 0)
            if dual_unit is not None or dual in ignored:
                amount = 2.0 if amount is None else amount
                unit = unit or dual_unit
                index += 1
                continue
        if token in ignored:
            index += 1
            continue
        unit_match = lexicon.match_unit(tokens, index)
        if unit_match is not None:
            unit = unit or unit_match
            index += unit_match.length
            continue
        number = _number(token, lexicon)
        if number is not None:
            amount = _combine(amount, number)
        elif token in lexicon.fractions:
            fraction += lexicon.fractions[token]
        index += 1

    if fraction:
        amount = fraction if amount is None else amount + fraction
    if plus_half:
        amount = (amount or 1.0) + 0.5
    return QuantityReading(amount=amount, unit=unit)


def _dual_stem(token: str) -> str | None:
    """Return the singular stem of an Arabic dual ("رغيفين" -> "رغيف")."""
    for suffix, replacement in (("تين", "ه"), ("ين", "")):
        stem = token.removesuffix(suffix)
        if stem != token and len(stem) >= _MIN_DUAL_STEM:
            return stem + replacement
    return None


def _number(token: str, lexicon: FoodLexicon) -> float | None:
    """Read a digit string or number word, if the token is one."""
    if token in lexicon.numbers:
        return lexicon.numbers[token]
    try:
        return float(token)
    except ValueError:
        return None


def _combine(amount: float | None, number: float) -> float:
    """Join consecutive numbers ("two hundred", "2 0.5")."""
    if amount is None:
        return number
    if number in {100.0, 1000.0}:
        return amount * number
    if number < 1:
        return amount + number
    return amount


@dataclass
class QuantityNormalizer:
    """Detect food mentions with a language backend and normalize their grams."""

    client: CompletionClient
    model: str
    prompt: PromptSpec
    lexicon: FoodLexicon
    reasoning_effort: str | None = None
    store: bool = False

    async def detect_quantities(self, text: str) -> list[FoodCandidate]:
        """Return normalized food candidates mentioned in a transcript."""
        raw_text = await self.client.complete(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            instructions=self.prompt.instructions,
            prompt=text,
            schema=self.prompt.schema,
            schema_name=self.prompt.name,
        )
        parsed = extract_json_array(raw_text)
        if not parsed.ok:
            _logger.warning("Quantity detection returned no array: %s", parsed.error)
            raise ExtractionError(
                ExtractionErrorKind.BACKEND_PROTOCOL_ERROR,
                f"Quantity detection response unreadable: {parsed.error}",
            )
        try:
            raw_candidates = [RawCandidate.model_validate(row) for row in parsed.value]
        except ValidationError as exc:
            raise ExtractionError(
                ExtractionErrorKind.VALIDATION_FAILED,
                f"Quantity detection entry invalid: {exc.error_count()} errors",
            ) from exc
        return [self.normalize(raw) for raw in raw_candidates]

    def normalize(self, raw: RawCandidate) -> FoodCandidate:
        """Turn one validated backend mention into a candidate in edible grams."""
        match = self.lexicon.match_food(raw.name) or self.lexicon.match_food(
            raw.original_phrase
        )
        name = match.key if match else raw.name.strip()
        entry = match.entry if match else None
        alimentary_type = _alimentary_type(match, raw)
        category = entry.category if entry else self.lexicon.document.default_category
        phrase = raw.original_phrase or " ".join(
            part for part in (raw.quantity_phrase, raw.name) if part
        )
        full_text = " ".join((raw.quantity_phrase, phrase, raw.name))

        vague = self.lexicon.vague_term_in(
            " ".join((raw.quantity_phrase, raw.original_phrase))
        )
        reading = read_quantity(
            raw.quantity_phrase or phrase,
            self.lexicon,
            match.aliases if match else frozenset(),
        )
        if vague is not None:
            grams = self._vague_grams(vague, reading, match)
        else:
            grams = self._grams(reading, match, raw, full_text)
        if grams.estimate <= 0:
            portion = entry.typical_portion_g if entry else self._default_portion()
            grams = _Grams(portion, "typical", ("assumed one typical portion",))

        spread = _SPREAD[grams.spread]
        estimate = grams.estimate
        low = grams.low if grams.low is not None else estimate * (1 - spread)
        high = grams.high if grams.high is not None else estimate * (1 + spread)
        estimate = max(round(estimate, 1), MIN_AMOUNT)
        low = min(round(low, 1), estimate)
        high = max(round(high, 1), estimate)

        confidence = raw.confidence
        quantity_confidence = raw.quantity_confidence
        if vague is not None:
            confidence = min(confidence, VAGUE_CONFIDENCE_CAP)
            if quantity_confidence is not None:
                quantity_confidence = min(quantity_confidence, VAGUE_CONFIDENCE_CAP)

        cooking_method, spoken_method = self._cooking_method(raw, phrase, match)
        cooking_confidence = raw.cooking_confidence
        if spoken_method and cooking_confidence is not None:
            cooking_confidence = max(cooking_confidence, 0.9)

        assumptions = [*raw.assumptions, *grams.assumptions]
        components: tuple[tuple[str, float], ...] = ()
        if entry and entry.components:
            components = tuple(
                (component, round(estimate * share, 1))
                for component, share in entry.components.items()
            )
            assumptions.append(
                f"{name} split as "
                + ", ".join(
                    f"{share:.0%} {component}"
                    for component, share in entry.components.items()
                )
            )

        return FoodCandidate(
            name=name,
            original_phrase=phrase,
            spoken_quantity=reading.amount
            if reading.amount is not None
            else raw.quantity,
            spoken_unit=reading.unit.key if reading.unit else _clean(raw.unit),
            cooking_method=cooking_method,
            alimentary_type=alimentary_type,
            category=category,
            grams_low=low,
            grams_estimate=estimate,
            grams_high=high,
            unit="ml" if alimentary_type.is_liquid else "g",
            confidence=confidence,
            assumptions=tuple(assumptions),
            quantity_confidence=quantity_confidence
            if self.prompt.reports_field_confidence
            else None,
            cooking_confidence=cooking_confidence
            if self.prompt.reports_field_confidence
            else None,
            brand=_clean(raw.brand),
            components=components,
        )

    def _grams(
        self,
        reading: QuantityReading,
        match: FoodMatch | None,
        raw: RawCandidate,
        full_text: str,
    ) -> _Grams:
        unit = reading.unit
        if unit is None and reading.amount is None and raw.quantity:
            fallback_unit = self.lexicon.unit_by_name(raw.unit)
            if fallback_unit is not None or raw.unit.strip() == "":
                reading = QuantityReading(amount=raw.quantity, unit=fallback_unit)
                unit = fallback_unit
        amount = reading.amount if reading.amount is not None else 1.0
        entry = match.entry if match else None
        bone_in = self.lexicon.has_bone_in_marker(full_text)
        whole = self.lexicon.has_whole_marker(full_text)

        if unit is not None and unit.entry.kind in {"mass", "volume"}:
            grams = amount * unit.entry.grams
            if entry and (bone_in or whole) and entry.edible_yield < 1:
                return self._edible(grams, entry.edible_yield, match.key)
            return _Grams(grams, unit.entry.kind)

        if unit is not None and unit.entry.kind == "container":
            per_unit = entry.containers.get(unit.key) if entry else None
            grams = amount * (per_unit or unit.entry.grams)
            assumption = f"1 {unit.key} taken as {per_unit or unit.entry.grams:g} g"
            return _Grams(grams, "container", (assumption,))

        if reading.amount is None and unit is None:
            if raw.grams_estimate > 0 and raw.grams_high >= raw.grams_estimate:
                return _Grams(
                    raw.grams_estimate,
                    "backend",
                    low=min(raw.grams_low, raw.grams_estimate),
                    high=raw.grams_high,
                )
            portion = entry.typical_portion_g if entry else self._default_portion()
            return _Grams(portion, "typical", ("assumed one typical portion",))

        if (
            unit is None
            and reading.amount is not None
            and reading.amount >= self.lexicon.document.bare_number_grams_threshold
        ):
            assumption = f"bare amount {reading.amount:g} read as grams"
            return _Grams(reading.amount, "mass", (assumption,))

        gross = bone_in or whole or raw.quantity_is_gross
        if entry and gross and entry.edible_yield < 1:
            if whole and entry.whole_weight_g:
                per_piece = entry.whole_weight_g
            elif entry.bone_in_piece_g:
                per_piece = entry.bone_in_piece_g
            else:
                per_piece = entry.typical_portion_g / entry.edible_yield
            return self._edible(amount * per_piece, entry.edible_yield, match.key)

        portion = entry.typical_portion_g if entry else self._default_portion()
        return _Grams(
            amount * portion,
            "count",
            (f"1 piece taken as a typical portion of {portion:g} g",),
        )

    def _vague_grams(
        self,
        vague: tuple[str, float],
        reading: QuantityReading,
        match: FoodMatch | None,
    ) -> _Grams:
        term, factor = vague
        entry = match.entry if match else None
        portion = entry.typical_portion_g if entry else self._default_portion()
        if reading.unit is not None and reading.unit.entry.kind == "container":
            per_unit = entry.containers.get(reading.unit.key) if entry else None
            portion = per_unit or reading.unit.entry.grams
        estimate = portion * factor
        return _Grams(
            estimate,
            "typical",
            (f"vague amount '{term}' read as about {factor:.0%} of {portion:g} g",),
            low=estimate * _VAGUE_LOW_FACTOR,
            high=estimate * _VAGUE_HIGH_FACTOR,
        )

    def _edible(self, gross_grams: float, edible_yield: float, name: str) -> _Grams:
        edible = gross_grams * edible_yield
        assumption = (
            f"{name}: {gross_grams:.0f} g gross reduced to {edible:.0f} g edible "
            f"(yield {edible_yield:.0%})"
        )
        return _Grams(edible, "gross", (assumption,))

    def _default_portion(self) -> float:
        return self.lexicon.document.default_portion_g

    def _cooking_method(
        self, raw: RawCandidate, phrase: str, match: FoodMatch | None
    ) -> tuple[CookingMethod, bool]:
        spoken = self.lexicon.cooking_method_in(phrase)
        if spoken is not None:
            return spoken, True
        if raw.cooking_method:
            reported = self.lexicon.cooking_method_in(raw.cooking_method)
            if reported is not None:
                return reported, False
        if match and match.entry.default_method is not None:
            return match.entry.default_method, False
        return CookingMethod.UNKNOWN, False


def _alimentary_type(match: FoodMatch | None, raw: RawCandidate) -> AlimentaryType:
    if match is not None:
        return match.entry.alimentary_type
    if raw.unit.strip().lower() in _LIQUID_UNITS:
        return AlimentaryType.LIQUID
    return AlimentaryType.SOLID


def _clean(value: str | None) -> str | None:
    """Strip a backend string, mapping blanks to None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
