"""Unit tests for keyword combo generation."""

from __future__ import annotations

import pytest

from aso_engine.core.exceptions import LocaleIsolationError
from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.generator import generate_combos, is_consecutive, strategic_value
from aso_engine.services.combos.types import SourcePattern, Tier
from aso_engine.services.tokenizer import FieldRole, tokenize

PIMSLEUR_TITLE = "Pimsleur Language Learning"
PIMSLEUR_SUBTITLE = "Speak Spanish Fluently Fast"


def _pimsleur(**kwargs):
    return generate_combos(
        tokenize(PIMSLEUR_TITLE, FieldRole.TITLE, locale="en-US"),
        tokenize(PIMSLEUR_SUBTITLE, FieldRole.SUBTITLE, locale="en-US"),
        locale="en-US",
        **kwargs,
    )


def test_strategic_value_grows_with_length() -> None:
    assert [strategic_value(length) for length in (2, 3, 4)] == [60, 70, 80]


def test_is_consecutive_uses_raw_positions() -> None:
    tokens = tokenize("Learn the Spanish language", FieldRole.TITLE)

    assert not is_consecutive(tokens[:2])
    assert is_consecutive(tokens[1:])


def test_generates_every_single_and_cross_field_combo() -> None:
    generation = _pimsleur()

    # 7 tokens, lengths 2-4, no repeated words
    assert len(generation.combos) == 91
    assert generation.candidates_by_source == {
        "title": 4,
        "subtitle": 11,
        "keywords": 0,
        "cross": 76,
    }
    assert generation.capped_sources == []


def test_patterns_and_tiers_for_pimsleur_metadata() -> None:
    combos = {combo.text: combo for combo in _pimsleur().combos}

    assert combos["language learning"].source_pattern is SourcePattern.TITLE_CONSECUTIVE
    assert combos["language learning"].tier is Tier.TITLE_CONSECUTIVE
    assert combos["pimsleur learning"].source_pattern is SourcePattern.TITLE_NON_CONSECUTIVE
    assert combos["speak spanish"].source_pattern is SourcePattern.SUBTITLE_CONSECUTIVE
    assert combos["speak spanish"].tier is Tier.SECONDARY_CONSECUTIVE
    assert combos["speak fast"].source_pattern is SourcePattern.SUBTITLE_NON_CONSECUTIVE
    assert combos["learning speak"].source_pattern is SourcePattern.CROSS_ELEMENT
    assert combos["learning speak"].tier is Tier.TITLE_SUBTITLE_CROSS


def test_combos_are_sorted_strongest_first() -> None:
    combos = _pimsleur().combos

    assert [combo.text for combo in combos[:3]] == [
        "pimsleur language learning",
        "language learning",
        "pimsleur language",
    ]
    tiers = [int(combo.tier) for combo in combos]
    assert tiers == sorted(tiers)


def test_single_field_combos_exist_and_cross_combos_are_missing() -> None:
    combos = {combo.text: combo for combo in _pimsleur().combos}

    assert combos["language learning"].exists
    assert combos["speak fluently"].exists
    assert not combos["learning speak"].exists


def test_existing_set_overrides_inferred_existence() -> None:
    combos = {
        combo.text: combo
        for combo in _pimsleur(existing_combos={"Language Learning", "learning speak"}).combos
    }

    assert combos["language learning"].exists
    assert combos["learning speak"].exists
    assert not combos["speak spanish"].exists


def test_brand_classification_is_applied() -> None:
    combos = {
        combo.text: combo
        for combo in _pimsleur(brand_matcher=BrandMatcher("Pimsleur")).combos
    }

    assert combos["pimsleur language"].is_brand
    assert combos["pimsleur language"].matched_brand_alias == "pimsleur"
    assert not combos["language learning"].is_brand


def test_duplicate_text_keeps_strongest_pattern() -> None:
    generation = generate_combos(
        tokenize("Learn Spanish", FieldRole.TITLE),
        tokenize("Learn Spanish", FieldRole.SUBTITLE),
    )
    combos = {combo.text: combo for combo in generation.combos}

    assert combos["learn spanish"].source_pattern is SourcePattern.TITLE_CONSECUTIVE
    assert "spanish learn" in combos
    assert all(len(set(combo.words)) == combo.length for combo in generation.combos)


def test_cap_keeps_highest_relevance_then_longest() -> None:
    """Capped sources keep the most relevant candidates."""
    tokens = tokenize("alpha bravo charlie delta echo foxtrot", FieldRole.TITLE)
    generation = generate_combos(tokens, max_per_source=5)

    assert generation.candidates_by_source["title"] == 50
    assert generation.capped_sources == ["title"]
    assert len(generation.combos) == 5
    assert all(combo.length == 4 for combo in generation.combos)


def test_generation_is_deterministic() -> None:
    first = [combo.to_dict() for combo in _pimsleur().combos]
    second = [combo.to_dict() for combo in _pimsleur().combos]

    assert first == second


def test_tokens_from_another_locale_are_rejected() -> None:
    title = tokenize("Learn Spanish", FieldRole.TITLE, locale="en-US")

    with pytest.raises(LocaleIsolationError):
        generate_combos(title, locale="es-MX")


def test_mixed_locale_fields_are_rejected() -> None:
    title = tokenize("Learn Spanish", FieldRole.TITLE, locale="en-US")
    subtitle = tokenize("Aprende Ingles", FieldRole.SUBTITLE, locale="es-MX")

    with pytest.raises(AssertionError):
        generate_combos(title, subtitle, locale="en-US")


def test_no_combos_from_a_single_token() -> None:
    generation = generate_combos(tokenize("Spanish", FieldRole.TITLE))

    assert generation.combos == []


def test_existing_texts_are_tokenized_before_matching() -> None:
    combos = {
        combo.text: combo
        for combo in _pimsleur(existing_combos={"Language  Learning", "learning: speak!"}).combos
    }

    assert combos["language learning"].exists
    assert combos["learning speak"].exists
    assert not combos["speak spanish"].exists
