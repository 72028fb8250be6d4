"""Unit tests for brand/generic classification."""

from __future__ import annotations

from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.strength import classify_strength
from aso_engine.services.combos.types import BrandClassification, Combo, SourcePattern
from aso_engine.services.tokenizer import FieldRole, Token


def _combo(text: str) -> Combo:
    tier, score = classify_strength(SourcePattern.TITLE_CONSECUTIVE)
    tokens = tuple(
        Token(text=word, relevance=1, source_field=FieldRole.TITLE, position=index)
        for index, word in enumerate(text.split())
    )
    return Combo(
        text=text,
        keywords=tokens,
        source_pattern=SourcePattern.TITLE_CONSECUTIVE,
        tier=tier,
        strength_score=score,
        strategic_value=60,
    )


def test_whole_word_match_only() -> None:
    matcher = BrandMatcher("Cat")

    assert matcher.match(["category", "games"]) is None
    assert matcher.match(["cat", "games"]) == "cat"


def test_matching_is_case_insensitive() -> None:
    matcher = BrandMatcher("PIMSLEUR")

    assert matcher.match(["Pimsleur", "method"]) == "pimsleur"
    assert matcher.text_mentions_brand("Pimsleur: Language Learning")
    assert not matcher.text_mentions_brand("Language Learning")


def test_empty_and_stopword_aliases_never_match() -> None:
    matcher = BrandMatcher("", ["  ", "the"])

    assert matcher.is_empty
    assert matcher.match(["the", "app"]) is None
    combo = matcher.classify(_combo("learn spanish"))
    assert combo.brand_classification is BrandClassification.GENERIC


def test_longer_alias_wins() -> None:
    matcher = BrandMatcher("Duolingo", ["Duolingo ABC"])
    combo = matcher.classify(_combo("duolingo abc kids"))

    assert combo.is_brand
    assert combo.matched_brand_alias == "duolingo abc"


def test_classification_is_exclusive() -> None:
    matcher = BrandMatcher("Pimsleur")
    combos = matcher.classify_all(
        [_combo("pimsleur language"), _combo("language learning")]
    )

    assert [combo.brand_classification for combo in combos] == [
        BrandClassification.BRAND,
        BrandClassification.GENERIC,
    ]
    assert combos[1].matched_brand_alias is None


def test_brand_words_collects_all_aliases() -> None:
    matcher = BrandMatcher("Rosetta Stone", ["Rosetta"])

    assert matcher.brand_words == {"rosetta", "stone"}
