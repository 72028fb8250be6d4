"""Unit tests for existing vs missing combo analysis."""

from __future__ import annotations

from aso_engine.services.combos.analysis import (
    BRAND_TOKEN_RELEVANCE,
    analyze_combos,
    build_stats,
    tokenize_metadata,
)
from aso_engine.services.combos.brand import BrandMatcher


def _analysis(**kwargs):
    return analyze_combos(
        "Pimsleur Language Learning",
        "Speak Spanish Fluently Fast",
        brand_name="Pimsleur",
        locale="en-US",
        **kwargs,
    )


def test_stats_for_pimsleur_metadata() -> None:
    stats = _analysis().stats

    assert stats.total_possible == 91
    assert stats.existing == 15
    assert stats.missing == 76
    assert stats.coverage == 16
    assert stats.brand == 41
    assert stats.generic == 50
    assert stats.by_tier == {1: 3, 2: 1, 3: 76, 4: 6, 6: 5}


def test_existing_and_missing_partition_all_combos() -> None:
    analysis = _analysis()
    existing = {combo.text for combo in analysis.existing_combos}
    missing = {combo.text for combo in analysis.missing_combos}

    assert not existing & missing
    assert existing | missing == {combo.text for combo in analysis.all_possible_combos}


def test_recommendations_are_generic_missing_and_longest_first() -> None:
    analysis = _analysis()

    assert len(analysis.recommended_to_add) == 10
    for combo in analysis.recommended_to_add:
        assert not combo.is_brand
        assert not combo.exists
        assert combo.length == 4


def test_brand_words_are_scored_as_core_terms() -> None:
    tokens = tokenize_metadata(
        "Pimsleur Method",
        None,
        brand_matcher=BrandMatcher("Pimsleur"),
    )

    assert tokens.title[0].text == "pimsleur"
    assert tokens.title[0].relevance == BRAND_TOKEN_RELEVANCE
    assert tokens.subtitle == []


def test_extra_stopwords_drop_tokens() -> None:
    tokens = tokenize_metadata("Acme Spanish Lessons", None, extra_stopwords=["Acme"])

    assert [token.text for token in tokens.title] == ["spanish", "lessons"]


def test_empty_metadata_yields_empty_analysis() -> None:
    analysis = analyze_combos("", "")

    assert analysis.all_possible_combos == []
    assert analysis.stats.coverage == 0
    assert build_stats([]).total_possible == 0


def test_to_dict_is_json_ready() -> None:
    payload = _analysis().to_dict()

    assert payload["locale"] == "en-US"
    assert payload["stats"]["by_tier"]["1"] == 3
    assert payload["all_possible_combos"][0]["text"] == "pimsleur language learning"
