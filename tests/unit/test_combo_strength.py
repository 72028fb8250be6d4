"""Unit tests for the source pattern to tier table."""

from __future__ import annotations

import pytest

from aso_engine.services.combos.strength import (
    PATTERN_STRENGTH,
    classify_strength,
    resolve_source_pattern,
    strengthening_suggestion,
    tier_label,
    tier_rank_score,
)
from aso_engine.services.combos.types import SourcePattern, Tier
from aso_engine.services.tokenizer import FieldRole


def test_every_source_pattern_has_a_tier() -> None:
    assert set(PATTERN_STRENGTH) == set(SourcePattern)


@pytest.mark.parametrize(
    ("fields", "consecutive", "expected"),
    [
        ({FieldRole.TITLE}, True, SourcePattern.TITLE_CONSECUTIVE),
        ({FieldRole.TITLE}, False, SourcePattern.TITLE_NON_CONSECUTIVE),
        ({FieldRole.SUBTITLE}, True, SourcePattern.SUBTITLE_CONSECUTIVE),
        ({FieldRole.SUBTITLE}, False, SourcePattern.SUBTITLE_NON_CONSECUTIVE),
        ({FieldRole.KEYWORDS}, True, SourcePattern.KEYWORDS_CONSECUTIVE),
        ({FieldRole.KEYWORDS}, False, SourcePattern.KEYWORDS_NON_CONSECUTIVE),
        ({FieldRole.TITLE, FieldRole.SUBTITLE}, False, SourcePattern.CROSS_ELEMENT),
        ({FieldRole.TITLE, FieldRole.KEYWORDS}, True, SourcePattern.TITLE_KEYWORDS_CROSS),
        ({FieldRole.SUBTITLE, FieldRole.KEYWORDS}, False, SourcePattern.KEYWORDS_SUBTITLE_CROSS),
        (
            {FieldRole.TITLE, FieldRole.SUBTITLE, FieldRole.KEYWORDS},
            False,
            SourcePattern.THREE_WAY_CROSS,
        ),
    ],
)
def test_resolve_source_pattern(
    fields: set[FieldRole],
    consecutive: bool,
    expected: SourcePattern,
) -> None:
    assert resolve_source_pattern(fields, consecutive) is expected


def test_resolve_source_pattern_requires_a_field() -> None:
    with pytest.raises(ValueError):
        resolve_source_pattern(set(), True)


def test_title_consecutive_beats_every_subtitle_and_cross_pattern() -> None:
    strongest, _ = classify_strength(SourcePattern.TITLE_CONSECUTIVE)
    weaker_patterns = [
        SourcePattern.SUBTITLE_CONSECUTIVE,
        SourcePattern.SUBTITLE_NON_CONSECUTIVE,
        SourcePattern.CROSS_ELEMENT,
        SourcePattern.KEYWORDS_SUBTITLE_CROSS,
        SourcePattern.THREE_WAY_CROSS,
    ]

    for pattern in weaker_patterns:
        tier, _ = classify_strength(pattern)
        assert strongest.is_stronger_than(tier)


def test_patterns_sharing_a_tier_are_ordered_by_strength_score() -> None:
    tier_a, score_a = classify_strength(SourcePattern.TITLE_NON_CONSECUTIVE)
    tier_b, score_b = classify_strength(SourcePattern.TITLE_KEYWORDS_CROSS)

    assert tier_a == tier_b == Tier.TITLE_SUPPORTED
    assert score_a > score_b


def test_tier_rank_score_decreases_with_tier() -> None:
    scores = [tier_rank_score(tier) for tier in sorted(Tier)]

    assert scores == sorted(scores, reverse=True)
    assert tier_rank_score(Tier.TITLE_CONSECUTIVE) == 100


def test_tier_labels() -> None:
    assert tier_label(Tier.TITLE_CONSECUTIVE) == "Excellent"
    assert tier_label(Tier.TITLE_SUPPORTED) == "Good"
    assert tier_label(Tier.SECONDARY_CONSECUTIVE) == "Medium"
    assert tier_label(Tier.THREE_WAY_CROSS) == "Poor"


def test_strengthening_suggestion() -> None:
    assert strengthening_suggestion(SourcePattern.TITLE_CONSECUTIVE) is None
    assert "title" in (strengthening_suggestion(SourcePattern.SUBTITLE_CONSECUTIVE) or "")
