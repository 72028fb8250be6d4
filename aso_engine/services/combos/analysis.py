"""Existing vs missing combo analysis for one locale."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field

from aso_engine.config import settings
from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.generator import generate_combos
from aso_engine.services.combos.types import Combo, ComboAnalysis, ComboStats, combo_sort_key
from aso_engine.services.tokenizer import FieldRole, Token, tokenize

logger = logging.getLogger(__name__)

BRAND_TOKEN_RELEVANCE = 3


@dataclass(slots=True)
class MetadataTokens:
    """Tokens of the three metadata fields of one locale."""

    title: list[Token] = field(default_factory=list)
    subtitle: list[Token] = field(default_factory=list)
    keywords: list[Token] = field(default_factory=list)

    @property
    def all_tokens(self) -> list[Token]:
        return [*self.title, *self.subtitle, *self.keywords]


def tokenize_metadata(
    title: str | None,
    subtitle: str | None,
    keywords: str | None = None,
    *,
    locale: str | None = None,
    brand_matcher: BrandMatcher | None = None,
    relevance_overrides: Mapping[str, int] | None = None,
    extra_stopwords: Iterable[str] = (),
) -> MetadataTokens:
    """Tokenize title, subtitle and keyword field with shared settings.

    Brand words are scored as core terms unless the caller overrides them.
    """
    overrides: dict[str, int] = {}
    if brand_matcher is not None:
        overrides.update({word: BRAND_TOKEN_RELEVANCE for word in brand_matcher.brand_words})
    if relevance_overrides:
        overrides.update({word.lower(): value for word, value in relevance_overrides.items()})

    stopwords = tuple(extra_stopwords)
    options = {
        "locale": locale,
        "relevance_overrides": overrides,
        "extra_stopwords": stopwords,
    }
    return MetadataTokens(
        title=tokenize(title, FieldRole.TITLE, **options),
        subtitle=tokenize(subtitle, FieldRole.SUBTITLE, **options),
        keywords=tokenize(keywords, FieldRole.KEYWORDS, **options),
    )


def analyze_combos(
    title: str | None,
    subtitle: str | None,
    keywords: str | None = None,
    *,
    brand_name: str | None = None,
    brand_aliases: Iterable[str] = (),
    existing_combos: Collection[str] | None = None,
    locale: str | None = None,
    relevance_overrides: Mapping[str, int] | None = None,
    extra_stopwords: Iterable[str] = (),
    tokens: MetadataTokens | None = None,
    brand_matcher: BrandMatcher | None = None,
) -> ComboAnalysis:
    """Generate every combo for the metadata and split existing from missing.

    ``recommended_to_add`` holds the most valuable missing generic combos;
    branded combos are never suggested.
    """
    matcher = brand_matcher or BrandMatcher(brand_name, brand_aliases)
    if tokens is None:
        tokens = tokenize_metadata(
            title,
            subtitle,
            keywords,
            locale=locale,
            brand_matcher=matcher,
            relevance_overrides=relevance_overrides,
            extra_stopwords=extra_stopwords,
        )

    generation = generate_combos(
        tokens.title,
        tokens.subtitle,
        tokens.keywords,
        locale=locale,
        existing_combos=existing_combos,
        brand_matcher=matcher,
    )
    combos = generation.combos
    existing = [combo for combo in combos if combo.exists]
    missing = [combo for combo in combos if not combo.exists]

    analysis = ComboAnalysis(
        all_possible_combos=combos,
        existing_combos=existing,
        missing_combos=missing,
        recommended_to_add=recommend_combos(missing, settings.recommended_combo_limit),
        stats=build_stats(combos, generation.capped_sources),
        locale=locale,
    )
    logger.debug(
        "Combo analysis complete",
        extra={
            "locale": locale,
            "total": analysis.stats.total_possible,
            "existing": analysis.stats.existing,
            "coverage": analysis.stats.coverage,
        },
    )
    return analysis


def recommend_combos(missing: Iterable[Combo], limit: int) -> list[Combo]:
    """Top missing generic combos by strategic value, strongest first on ties."""
    generic = [combo for combo in missing if not combo.is_brand]
    generic.sort(key=lambda combo: (-combo.strategic_value, *combo_sort_key(combo)))
    return generic[:limit]


def build_stats(combos: list[Combo], capped_sources: Iterable[str] = ()) -> ComboStats:
    total = len(combos)
    existing = sum(1 for combo in combos if combo.exists)
    brand = sum(1 for combo in combos if combo.is_brand)
    return ComboStats(
        total_possible=total,
        existing=existing,
        missing=total - existing,
        coverage=round(existing / total * 100) if total else 0,
        by_tier=dict(Counter(int(combo.tier) for combo in combos)),
        by_pattern=dict(Counter(combo.source_pattern.value for combo in combos)),
        brand=brand,
        generic=total - brand,
        capped_sources=list(capped_sources),
    )
