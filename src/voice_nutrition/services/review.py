"""Decide which parts of a candidate need human confirmation."""

from dataclasses import dataclass

from voice_nutrition.domain.foods import CookingMethod, FoodCandidate
from voice_nutrition.domain.items import ReviewFlags
from voice_nutrition.services.lexicon import (
    ReviewKeywords,
    contains_term,
    normalize_text,
    strip_affixes,
)

DEFAULT_REVIEW_THRESHOLD = 0.6


@dataclass
class ConfidenceModalEvaluator:
    """Flag quantity and cooking-method review for a candidate.

    Field confidences reported by the strategy win. Without them a keyword
    heuristic decides: quantities are only questioned when a vague word was
    used, and cooking methods only for raw animal protein with no cooking
    word, brand or processed marker anywhere in the phrase.
    """

    keywords: ReviewKeywords
    threshold: float = DEFAULT_REVIEW_THRESHOLD

    def evaluate(self, candidate: FoodCandidate) -> ReviewFlags:
        """Decide which parts of a candidate the user should confirm."""
        text = normalize_text(f"{candidate.original_phrase} {candidate.name}")
        if candidate.quantity_confidence is not None:
            needs_quantity = candidate.quantity_confidence < self.threshold
        else:
            needs_quantity = _mentions(text, self.keywords.vague_quantity_terms)
        if candidate.cooking_confidence is not None:
            needs_cooking = candidate.cooking_confidence < self.threshold
        else:
            needs_cooking = self._cooking_unclear(candidate, text)
        return ReviewFlags(
            needs_quantity_review=needs_quantity,
            needs_cooking_method_review=needs_cooking,
        )

    def _cooking_unclear(self, candidate: FoodCandidate, text: str) -> bool:
        if candidate.category in self.keywords.no_cooking_needed_categories:
            return False
        if candidate.category not in self.keywords.requires_cooking_categories:
            return False
        if candidate.cooking_method != CookingMethod.UNKNOWN:
            return False
        if candidate.brand:
            return False
        if _mentions(text, self.keywords.cooking_words):
            return False
        return not _mentions(text, self.keywords.processed_markers)


def _mentions(text: str, terms: list[str]) -> bool:
    variants = (text, strip_affixes(text))
    return any(contains_term(variant, term) for term in terms for variant in variants)
