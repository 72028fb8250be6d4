"""Strength classification: source pattern to tier lookup."""

from __future__ import annotations

from collections.abc import Collection
from types import MappingProxyType

from aso_engine.services.combos.types import SourcePattern, Tier
from aso_engine.services.tokenizer import FieldRole

# pattern -> (tier, strength score). Closed table; tiers must not be derived.
PATTERN_STRENGTH = MappingProxyType(
    {
        SourcePattern.TITLE_CONSECUTIVE: (Tier.TITLE_CONSECUTIVE, 100),
        SourcePattern.TITLE_NON_CONSECUTIVE: (Tier.TITLE_SUPPORTED, 85),
        SourcePattern.TITLE_KEYWORDS_CROSS: (Tier.TITLE_SUPPORTED, 70),
        SourcePattern.CROSS_ELEMENT: (Tier.TITLE_SUBTITLE_CROSS, 70),
        SourcePattern.KEYWORDS_CONSECUTIVE: (Tier.SECONDARY_CONSECUTIVE, 50),
        SourcePattern.SUBTITLE_CONSECUTIVE: (Tier.SECONDARY_CONSECUTIVE, 50),
        SourcePattern.KEYWORDS_SUBTITLE_CROSS: (Tier.SECONDARY_CROSS, 35),
        SourcePattern.KEYWORDS_NON_CONSECUTIVE: (Tier.SECONDARY_NON_CONSECUTIVE, 30),
        SourcePattern.SUBTITLE_NON_CONSECUTIVE: (Tier.SECONDARY_NON_CONSECUTIVE, 30),
        SourcePattern.THREE_WAY_CROSS: (Tier.THREE_WAY_CROSS, 20),
    }
)

# Numeric rank used when fusing keywords across locales (higher is better)
TIER_RANK_SCORE = MappingProxyType(
    {
        Tier.TITLE_CONSECUTIVE: 100,
        Tier.TITLE_SUPPORTED: 85,
        Tier.TITLE_SUBTITLE_CROSS: 70,
        Tier.SECONDARY_CONSECUTIVE: 50,
        Tier.SECONDARY_CROSS: 35,
        Tier.SECONDARY_NON_CONSECUTIVE: 25,
        Tier.THREE_WAY_CROSS: 15,
    }
)

_SINGLE_FIELD_PATTERNS = {
    (FieldRole.TITLE, True): SourcePattern.TITLE_CONSECUTIVE,
    (FieldRole.TITLE, False): SourcePattern.TITLE_NON_CONSECUTIVE,
    (FieldRole.SUBTITLE, True): SourcePattern.SUBTITLE_CONSECUTIVE,
    (FieldRole.SUBTITLE, False): SourcePattern.SUBTITLE_NON_CONSECUTIVE,
    (FieldRole.KEYWORDS, True): SourcePattern.KEYWORDS_CONSECUTIVE,
    (FieldRole.KEYWORDS, False): SourcePattern.KEYWORDS_NON_CONSECUTIVE,
}

_CROSS_FIELD_PATTERNS = {
    frozenset({FieldRole.TITLE, FieldRole.SUBTITLE}): SourcePattern.CROSS_ELEMENT,
    frozenset({FieldRole.TITLE, FieldRole.KEYWORDS}): SourcePattern.TITLE_KEYWORDS_CROSS,
    frozenset({FieldRole.SUBTITLE, FieldRole.KEYWORDS}): SourcePattern.KEYWORDS_SUBTITLE_CROSS,
    frozenset({FieldRole.TITLE, FieldRole.SUBTITLE, FieldRole.KEYWORDS}): SourcePattern.THREE_WAY_CROSS,
}


def resolve_source_pattern(fields: Collection[FieldRole], consecutive: bool) -> SourcePattern:
    """Map the fields a combo draws from to its source pattern."""
    distinct = frozenset(fields)
    if not distinct:
        raise ValueError("A combo needs at least one source field")
    if len(distinct) == 1:
        (only,) = distinct
        return _SINGLE_FIELD_PATTERNS[(only, consecutive)]
    return _CROSS_FIELD_PATTERNS[distinct]


def classify_strength(pattern: SourcePattern) -> tuple[Tier, int]:
    """Return the (tier, strength score) for a source pattern."""
    return PATTERN_STRENGTH[pattern]


def tier_rank_score(tier: Tier) -> int:
    """Numeric rank of a tier on the 0-100 fusion scale."""
    return TIER_RANK_SCORE[tier]


def tier_label(tier: Tier) -> str:
    """Human-readable quality label for a tier."""
    if tier is Tier.TITLE_CONSECUTIVE:
        return "Excellent"
    if tier is Tier.TITLE_SUPPORTED:
        return "Good"
    if tier.value <= Tier.SECONDARY_CONSECUTIVE.value:
        return "Medium"
    return "Poor"


def strengthening_suggestion(pattern: SourcePattern) -> str | None:
    """Suggest how a combo could move to a stronger tier."""
    if pattern is SourcePattern.TITLE_CONSECUTIVE:
        return None
    if pattern in (SourcePattern.TITLE_NON_CONSECUTIVE, SourcePattern.TITLE_KEYWORDS_CROSS):
        return "Make words consecutive in title for maximum ranking power"
    if pattern is SourcePattern.CROSS_ELEMENT:
        return "Move all keywords to title to strengthen"
    if pattern in (SourcePattern.KEYWORDS_CONSECUTIVE, SourcePattern.SUBTITLE_CONSECUTIVE):
        return "Move to title to strengthen"
    if pattern is SourcePattern.KEYWORDS_SUBTITLE_CROSS:
        return "Move all keywords to title"
    if pattern is SourcePattern.THREE_WAY_CROSS:
        return "Consolidate all keywords into title"
    return "Move to title and make consecutive"
