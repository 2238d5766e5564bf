"""Tests for the food lexicon and review keywords."""

import json

import pytest
from pydantic import ValidationError

from voice_nutrition.domain.foods import AlimentaryType, CookingMethod
from voice_nutrition.services.lexicon import (
    contains_term,
    load_food_lexicon,
    normalize_text,
    strip_affixes,
)


def test_normalize_text_folds_arabic() -> None:
    assert normalize_text("نُص كيلو ٢٥٠") == "نص كيلو 250"
    assert normalize_text("كوباية مية") == "كوبايه ميه"
    assert normalize_text("أرز") == "ارز"


def test_normalize_text_fractions_and_commas() -> None:
    assert normalize_text("1/2 cup") == "0.5 cup"
    assert normalize_text("2,5 kg") == "2.5 kg"


def test_contains_term_uses_token_boundaries() -> None:
    assert contains_term("نص كيلو فراخ", "كيلو")
    assert not contains_term("كيلوات", "كيلو")
    assert not contains_term("anything", "")


def test_strip_affixes() -> None:
    assert strip_affixes("الرز والفراخ") == "رز فراخ"
    assert strip_affixes("ول") == "ول"


def test_match_food_by_alias(lexicon) -> None:
    assert lexicon.match_food("فراخ مشوية").key == "chicken"
    assert lexicon.match_food("Grilled Chicken").key == "chicken"
    assert lexicon.match_food("الرز").key == "rice"
    assert lexicon.match_food("spaceship") is None


def test_match_unit_prefers_longest(lexicon) -> None:
    tokens = normalize_text("نص كيلو").split()

    assert lexicon.match_unit(tokens, 0) is None
    match = lexicon.match_unit(tokens, 1)
    assert match.key == "kilo"
    assert match.entry.grams == 1000


def test_unit_by_name(lexicon) -> None:
    assert lexicon.unit_by_name("grams").key == "gram"
    assert lexicon.unit_by_name("") is None
    assert lexicon.unit_by_name("kilo of rice") is None


def test_cooking_method_in(lexicon) -> None:
    assert lexicon.cooking_method_in("فراخ مشوية") == CookingMethod.GRILLED
    assert lexicon.cooking_method_in("fried eggs") == CookingMethod.FRIED
    assert lexicon.cooking_method_in("فراخ") is None


def test_vague_term_in(lexicon) -> None:
    term, factor = lexicon.vague_term_in("شوية رز")

    assert term == "شويه"
    assert 0 < factor < 1
    assert lexicon.vague_term_in("طبق رز") is None


def test_category_falls_back_to_default(lexicon) -> None:
    default = lexicon.category(lexicon.document.default_category)

    assert lexicon.category("no-such-category") == default
    assert lexicon.category(None) == default
    assert lexicon.category("water").kcal_per_100 == (0, 0)


def test_suggested_units_recommend_one(lexicon) -> None:
    options = lexicon.suggested_units(
        lexicon.match_food("rice"), AlimentaryType.SOLID
    )

    recommended = [option.unit for option in options if option.recommended]
    assert recommended == ["cup"]
    assert options[0].unit == "g"


def test_suggested_units_for_liquids_and_unknown_foods(lexicon) -> None:
    water = lexicon.suggested_units(
        lexicon.match_food("water"), AlimentaryType.LIQUID
    )
    unknown = lexicon.suggested_units(None, AlimentaryType.SOLID)

    assert water[0].unit == "ml"
    assert unknown[0].recommended
    assert unknown[1].unit == "serving"


def test_review_keywords_are_normalized(keywords) -> None:
    assert "شويه" in keywords.vague_quantity_terms
    assert "poultry" in keywords.requires_cooking_categories


def test_invalid_lexicon_file_is_rejected(tmp_path) -> None:
    path = tmp_path / "lexicon.json"
    path.write_text(json.dumps({"foods": {}}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_food_lexicon(path)
