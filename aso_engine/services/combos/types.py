"""Domain types for keyword combinations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any

from aso_engine.services.tokenizer import FieldRole, Token


class SourcePattern(str, Enum):
    """Where the words of a combo come from and how they are arranged."""

    TITLE_CONSECUTIVE = "title_consecutive"
    TITLE_NON_CONSECUTIVE = "title_non_consecutive"
    TITLE_KEYWORDS_CROSS = "title_keywords_cross"
    CROSS_ELEMENT = "cross_element"
    KEYWORDS_CONSECUTIVE = "keywords_consecutive"
    SUBTITLE_CONSECUTIVE = "subtitle_consecutive"
    KEYWORDS_SUBTITLE_CROSS = "keywords_subtitle_cross"
    KEYWORDS_NON_CONSECUTIVE = "keywords_non_consecutive"
    SUBTITLE_NON_CONSECUTIVE = "subtitle_non_consecutive"
    THREE_WAY_CROSS = "three_way_cross"


class Tier(IntEnum):
    """Ranking strength tiers. Lower value means stronger."""

    TITLE_CONSECUTIVE = 1
    TITLE_SUPPORTED = 2
    TITLE_SUBTITLE_CROSS = 3
    SECONDARY_CONSECUTIVE = 4
    SECONDARY_CROSS = 5
    SECONDARY_NON_CONSECUTIVE = 6
    THREE_WAY_CROSS = 7

    def is_stronger_than(self, other: "Tier") -> bool:
        return self.value < other.value


class BrandClassification(str, Enum):
    BRAND = "brand"
    GENERIC = "generic"


@dataclass(slots=True)
class Combo:
    """A 2-4 word keyword combination from one locale's metadata."""

    text: str
    keywords: tuple[Token, ...]
    source_pattern: SourcePattern
    tier: Tier
    strength_score: int
    strategic_value: int
    exists: bool = False
    brand_classification: BrandClassification = BrandClassification.GENERIC
    matched_brand_alias: str | None = None
    locale: str | None = None

    @property
    def length(self) -> int:
        return len(self.keywords)

    @property
    def words(self) -> tuple[str, ...]:
        return tuple(token.text for token in self.keywords)

    @property
    def source_fields(self) -> tuple[FieldRole, ...]:
        seen: list[FieldRole] = []
        for token in self.keywords:
            if token.source_field not in seen:
                seen.append(token.source_field)
        return tuple(seen)

    @property
    def is_brand(self) -> bool:
        return self.brand_classification is BrandClassification.BRAND

    def to_dict(self) -> dict[str, Any]:
        """Serialize combo to JSON-compatible dict."""
        return {
            "text": self.text,
            "keywords": list(self.words),
            "length": self.length,
            "source_pattern": self.source_pattern.value,
            "tier": int(self.tier),
            "strength_score": self.strength_score,
            "strategic_value": self.strategic_value,
            "exists": self.exists,
            "brand_classification": self.brand_classification.value,
            "matched_brand_alias": self.matched_brand_alias,
            "locale": self.locale,
        }


def combo_sort_key(combo: Combo) -> tuple[int, int, int, str]:
    """Stable ranking key: strongest tier first, then longer combos."""
    return (int(combo.tier), -combo.strength_score, -combo.length, combo.text)


@dataclass(slots=True)
class ComboStats:
    """Aggregate counts for one combo analysis."""

    total_possible: int = 0
    existing: int = 0
    missing: int = 0
    coverage: int = 0
    by_tier: dict[int, int] = field(default_factory=dict)
    by_pattern: dict[str, int] = field(default_factory=dict)
    brand: int = 0
    generic: int = 0
    capped_sources: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_possible": self.total_possible,
            "existing": self.existing,
            "missing": self.missing,
            "coverage": self.coverage,
            "by_tier": {str(tier): count for tier, count in sorted(self.by_tier.items())},
            "by_pattern": dict(sorted(self.by_pattern.items())),
            "brand": self.brand,
            "generic": self.generic,
            "capped_sources": list(self.capped_sources),
        }


@dataclass(slots=True)
class ComboAnalysis:
    """Existing vs missing combos for one locale's metadata."""

    all_possible_combos: list[Combo] = field(default_factory=list)
    existing_combos: list[Combo] = field(default_factory=list)
    missing_combos: list[Combo] = field(default_factory=list)
    recommended_to_add: list[Combo] = field(default_factory=list)
    stats: ComboStats = field(default_factory=ComboStats)
    locale: str | None = None

    def by_text(self) -> dict[str, Combo]:
        return {combo.text: combo for combo in self.all_possible_combos}

    def to_dict(self) -> dict[str, Any]:
        return {
            "locale": self.locale,
            "all_possible_combos": [combo.to_dict() for combo in self.all_possible_combos],
            "existing_combos": [combo.text for combo in self.existing_combos],
            "missing_combos": [combo.text for combo in self.missing_combos],
            "recommended_to_add": [combo.to_dict() for combo in self.recommended_to_add],
            "stats": self.stats.to_dict(),
        }
