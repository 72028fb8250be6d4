"""Multi-locale indexation: per-locale pipelines, rank fusion and coverage.

A store market can index several locales for the same app. Each locale is
processed on its own; tokens of different locales never meet in one combo.
Fusion then keeps, per keyword, the best rank any locale achieves.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aso_engine.config import settings
from aso_engine.core.exceptions import LocaleIsolationError, ValidationError
from aso_engine.services.combos.analysis import MetadataTokens, analyze_combos, tokenize_metadata
from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.strength import strengthening_suggestion, tier_rank_score
from aso_engine.services.combos.types import Combo, ComboAnalysis, SourcePattern, Tier

logger = logging.getLogger(__name__)


class FusionStrategy(str, Enum):
    PRIMARY_STRONGEST = "primary_strongest"
    SECONDARY_STRONGER = "secondary_stronger"
    EQUAL_RANK = "equal_rank"


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class ActionType(str, Enum):
    ADD = "add"
    MOVE = "move"
    REDISTRIBUTE = "redistribute"


SEVERITY_ORDER = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


@dataclass(slots=True)
class LocaleMetadata:
    """Raw metadata text of one locale."""

    locale: str
    title: str = ""
    subtitle: str = ""
    keywords: str = ""

    @property
    def chars_used(self) -> int:
        return len(self.title or "") + len(self.subtitle or "") + len(self.keywords or "")


@dataclass(slots=True)
class LocaleStats:
    unique_tokens: int
    total_combos: int
    tier1_combos: int
    tier2_combos: int
    tier3_plus_combos: int
    duplicated_tokens: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "unique_tokens": self.unique_tokens,
            "total_combos": self.total_combos,
            "tier1_combos": self.tier1_combos,
            "tier2_combos": self.tier2_combos,
            "tier3_plus_combos": self.tier3_plus_combos,
            "duplicated_tokens": list(self.duplicated_tokens),
        }


@dataclass(slots=True)
class ProcessedLocale:
    """One locale after tokenization, combo generation and classification."""

    metadata: LocaleMetadata
    tokens: MetadataTokens
    analysis: ComboAnalysis
    stats: LocaleStats

    @property
    def locale(self) -> str:
        return self.metadata.locale

    @property
    def combos(self) -> list[Combo]:
        return self.analysis.all_possible_combos

    @property
    def token_words(self) -> list[str]:
        return [token.text for token in self.tokens.all_tokens]

    def to_dict(self) -> dict[str, Any]:
        return {
            "locale": self.locale,
            "title": self.metadata.title,
            "subtitle": self.metadata.subtitle,
            "keywords": self.metadata.keywords,
            "tokens": self.token_words,
            "combos": [combo.to_dict() for combo in self.combos],
            "stats": self.stats.to_dict(),
        }


@dataclass(slots=True)
class LocaleRank:
    """Best rank of one keyword inside one locale."""

    score: int
    tier: Tier
    source_pattern: SourcePattern

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "tier": int(self.tier), "source_pattern": self.source_pattern.value}


@dataclass(slots=True)
class FusedRanking:
    keyword: str
    best_score: int
    best_tier: Tier
    best_locale: str
    appears_in: list[str]
    ranks_by_locale: dict[str, LocaleRank]
    fusion_strategy: FusionStrategy

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "best_score": self.best_score,
            "best_tier": int(self.best_tier),
            "best_locale": self.best_locale,
            "appears_in": list(self.appears_in),
            "ranks_by_locale": {locale: rank.to_dict() for locale, rank in self.ranks_by_locale.items()},
            "fusion_strategy": self.fusion_strategy.value,
        }


@dataclass(slots=True)
class LocaleCoverage:
    locale: str
    unique_tokens: int
    total_combos: int
    contribution_pct: float
    duplicate_tokens: int
    chars_used: int
    chars_available: int

    @property
    def utilization_pct(self) -> float:
        return round(self.chars_used / self.chars_available * 100, 2) if self.chars_available else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "locale": self.locale,
            "unique_tokens": self.unique_tokens,
            "total_combos": self.total_combos,
            "contribution_pct": self.contribution_pct,
            "duplicate_tokens": self.duplicate_tokens,
            "chars_used": self.chars_used,
            "chars_available": self.chars_available,
            "utilization_pct": self.utilization_pct,
        }


@dataclass(slots=True)
class DuplicatedKeyword:
    keyword: str
    appears_in: list[str]
    is_wasted: bool

    def to_dict(self) -> dict[str, Any]:
        return {"keyword": self.keyword, "appears_in": list(self.appears_in), "is_wasted": self.is_wasted}


@dataclass(slots=True)
class CoverageAnalysis:
    locales: list[LocaleCoverage] = field(default_factory=list)
    duplicated_keywords: list[DuplicatedKeyword] = field(default_factory=list)
    empty_locales: list[str] = field(default_factory=list)
    underutilized_locales: list[str] = field(default_factory=list)

    def for_locale(self, locale: str) -> LocaleCoverage | None:
        return next((entry for entry in self.locales if entry.locale == locale), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "locales": [entry.to_dict() for entry in self.locales],
            "duplicated_keywords": [entry.to_dict() for entry in self.duplicated_keywords],
            "empty_locales": list(self.empty_locales),
            "underutilized_locales": list(self.underutilized_locales),
        }


@dataclass(slots=True)
class RecommendationAction:
    type: ActionType
    expected_impact: str
    keyword: str | None = None
    from_locale: str | None = None
    to_locale: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "keyword": self.keyword,
            "from_locale": self.from_locale,
            "to_locale": self.to_locale,
            "expected_impact": self.expected_impact,
        }


@dataclass(slots=True)
class Recommendation:
    id: str
    type: str
    severity: Severity
    title: str
    message: str
    action: RecommendationAction
    affected_locales: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "action": self.action.to_dict(),
            "affected_locales": list(self.affected_locales),
        }


@dataclass(slots=True)
class MultiLocaleIndexation:
    primary_locale: str
    locales: list[ProcessedLocale]
    coverage: CoverageAnalysis
    fused_rankings: list[FusedRanking]
    recommendations: list[Recommendation]

    @property
    def total_unique_keywords(self) -> int:
        return len({word for locale in self.locales for word in locale.token_words})

    @property
    def total_combinations(self) -> int:
        return sum(len(locale.combos) for locale in self.locales)

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary_locale": self.primary_locale,
            "total_unique_keywords": self.total_unique_keywords,
            "total_combinations": self.total_combinations,
            "locales": [locale.to_dict() for locale in self.locales],
            "coverage": self.coverage.to_dict(),
            "fused_rankings": [ranking.to_dict() for ranking in self.fused_rankings],
            "recommendations": [recommendation.to_dict() for recommendation in self.recommendations],
        }


def process_locale(
    metadata: LocaleMetadata,
    *,
    brand_matcher: BrandMatcher | None = None,
    existing_combos: Collection[str] | None = None,
) -> ProcessedLocale:
    """Run the single-locale pipeline with every token tagged by its locale."""
    matcher = brand_matcher or BrandMatcher()
    tokens = tokenize_metadata(
        metadata.title,
        metadata.subtitle,
        metadata.keywords,
        locale=metadata.locale,
        brand_matcher=matcher,
    )
    analysis = analyze_combos(
        metadata.title,
        metadata.subtitle,
        metadata.keywords,
        locale=metadata.locale,
        existing_combos=existing_combos,
        tokens=tokens,
        brand_matcher=matcher,
    )
    processed = ProcessedLocale(
        metadata=metadata,
        tokens=tokens,
        analysis=analysis,
        stats=_locale_stats(tokens, analysis.all_possible_combos),
    )
    verify_locale_isolation(processed)
    return processed


def verify_locale_isolation(processed: ProcessedLocale) -> None:
    """Raise if any combo of a locale carries a token from elsewhere."""
    for combo in processed.combos:
        token_locales = {token.locale for token in combo.keywords}
        if combo.locale != processed.locale or token_locales != {processed.locale}:
            raise LocaleIsolationError(combo.text, processed.locale, token_locales)


def fuse_rankings(locales: Sequence[ProcessedLocale], primary_locale: str) -> list[FusedRanking]:
    """Best rank per keyword across locales: ``max`` over per-locale ranks."""
    ranks: dict[str, dict[str, LocaleRank]] = {}
    for processed in locales:
        for combo in processed.combos:
            score = tier_rank_score(combo.tier)
            for word in combo.words:
                by_locale = ranks.setdefault(word, {})
                current = by_locale.get(processed.locale)
                if current is None or score > current.score:
                    by_locale[processed.locale] = LocaleRank(score, combo.tier, combo.source_pattern)

    order = {processed.locale: index for index, processed in enumerate(locales)}
    fused: list[FusedRanking] = []
    for keyword, by_locale in ranks.items():
        # Ties go to the primary locale, then to input order
        ordered = sorted(
            by_locale.items(),
            key=lambda item: (-item[1].score, item[0] != primary_locale, order[item[0]]),
        )
        best_locale, best = ordered[0]
        fused.append(
            FusedRanking(
                keyword=keyword,
                best_score=best.score,
                best_tier=best.tier,
                best_locale=best_locale,
                appears_in=sorted(by_locale, key=order.__getitem__),
                ranks_by_locale={
                    locale: by_locale[locale] for locale in sorted(by_locale, key=order.__getitem__)
                },
                fusion_strategy=_fusion_strategy(by_locale, best.score, primary_locale),
            )
        )

    fused.sort(key=lambda ranking: (-ranking.best_score, ranking.keyword))
    return fused


def calculate_coverage(locales: Sequence[ProcessedLocale]) -> CoverageAnalysis:
    """Per-locale contribution plus empty, underutilized and duplicated findings."""
    total_combos = sum(len(processed.combos) for processed in locales)
    budget = settings.locale_char_budget
    coverage = CoverageAnalysis()

    for processed in locales:
        combos = len(processed.combos)
        coverage.locales.append(
            LocaleCoverage(
                locale=processed.locale,
                unique_tokens=processed.stats.unique_tokens,
                total_combos=combos,
                contribution_pct=round(combos / total_combos * 100, 2) if total_combos else 0.0,
                duplicate_tokens=len(processed.stats.duplicated_tokens),
                chars_used=processed.metadata.chars_used,
                chars_available=budget,
            )
        )

    coverage.empty_locales = [processed.locale for processed in locales if not processed.combos]

    non_empty = [processed for processed in locales if processed.combos]
    for processed in non_empty:
        peers = [len(other.combos) for other in non_empty if other is not processed]
        if not peers:
            continue
        peer_mean = sum(peers) / len(peers)
        if len(processed.combos) < settings.locale_underutilized_ratio * peer_mean:
            coverage.underutilized_locales.append(processed.locale)

    appears_in: dict[str, list[str]] = {}
    for processed in locales:
        for word in dict.fromkeys(processed.token_words):
            appears_in.setdefault(word, []).append(processed.locale)
    coverage.duplicated_keywords = sorted(
        (
            DuplicatedKeyword(
                keyword=word,
                appears_in=found_in,
                is_wasted=len(found_in) >= settings.locale_wasted_duplicate_threshold,
            )
            for word, found_in in appears_in.items()
            if len(found_in) > 1
        ),
        key=lambda duplicate: (-len(duplicate.appears_in), duplicate.keyword),
    )
    return coverage


def generate_recommendations(
    coverage: CoverageAnalysis,
    fused_rankings: Iterable[FusedRanking],
    primary_locale: str,
) -> list[Recommendation]:
    """Rule-based suggestions, most severe first."""
    limit = settings.max_locale_recommendations_per_rule
    recommendations: list[Recommendation] = []

    for locale in coverage.empty_locales:
        recommendations.append(
            Recommendation(
                id=f"empty-{locale}",
                type="empty_locale",
                severity=Severity.WARNING,
                title=f"{locale} locale is empty",
                message=(
                    f"The {locale} locale produces no keyword combinations but is still "
                    "indexed. Adding metadata here expands keyword coverage."
                ),
                action=RecommendationAction(
                    type=ActionType.ADD,
                    to_locale=locale,
                    expected_impact="Additional combinations from new keywords",
                ),
                affected_locales=[locale],
            )
        )

    for locale in coverage.underutilized_locales:
        entry = coverage.for_locale(locale)
        combos = entry.total_combos if entry else 0
        recommendations.append(
            Recommendation(
                id=f"underutilized-{locale}",
                type="underutilized_locale",
                severity=Severity.INFO,
                title=f"{locale} is underutilized",
                message=f"{locale} contributes only {combos} combinations, well below its peer locales.",
                action=RecommendationAction(
                    type=ActionType.ADD,
                    to_locale=locale,
                    expected_impact=(
                        f"{entry.chars_available - entry.chars_used} characters available"
                        if entry
                        else "More combinations from new keywords"
                    ),
                ),
                affected_locales=[locale],
            )
        )

    wasted = [duplicate for duplicate in coverage.duplicated_keywords if duplicate.is_wasted]
    for duplicate in wasted[:limit]:
        recommendations.append(
            Recommendation(
                id=f"duplicate-{duplicate.keyword}",
                type="duplicated_keyword",
                severity=Severity.WARNING,
                title=f'"{duplicate.keyword}" is duplicated across {len(duplicate.appears_in)} locales',
                message=(
                    f'The keyword "{duplicate.keyword}" repeats verbatim in '
                    f"{', '.join(duplicate.appears_in)}. Keep it in one or two locales."
                ),
                action=RecommendationAction(
                    type=ActionType.REDISTRIBUTE,
                    keyword=duplicate.keyword,
                    expected_impact="Free up character space for new keywords",
                ),
                affected_locales=list(duplicate.appears_in),
            )
        )

    primary = coverage.for_locale(primary_locale)
    if primary is not None and primary.utilization_pct < settings.primary_locale_utilization_target:
        recommendations.append(
            Recommendation(
                id=f"primary-underutilized-{primary_locale}",
                type="underutilized_locale",
                severity=Severity.CRITICAL,
                title=f"{primary_locale} (primary) is not fully utilized",
                message=(
                    f"Primary locale {primary_locale} uses {primary.utilization_pct:.0f}% of its "
                    "character budget. It is the strongest ranking locale; fill it first."
                ),
                action=RecommendationAction(
                    type=ActionType.ADD,
                    to_locale=primary_locale,
                    expected_impact=(
                        f"{primary.chars_available - primary.chars_used} characters available "
                        "for tier 1 combos"
                    ),
                ),
                affected_locales=[primary_locale],
            )
        )

    movable = [
        ranking
        for ranking in fused_rankings
        if ranking.fusion_strategy is FusionStrategy.SECONDARY_STRONGER
        and primary_locale in ranking.ranks_by_locale
    ]
    for ranking in movable[:limit]:
        primary_rank = ranking.ranks_by_locale[primary_locale]
        recommendations.append(
            Recommendation(
                id=f"move-{ranking.keyword}",
                type="tier_upgrade_possible",
                severity=Severity.INFO,
                title=f'"{ranking.keyword}" ranks stronger in {ranking.best_locale}',
                message=(
                    f'"{ranking.keyword}" reaches tier {int(ranking.best_tier)} in '
                    f"{ranking.best_locale} but only tier {int(primary_rank.tier)} in {primary_locale}."
                ),
                action=RecommendationAction(
                    type=ActionType.MOVE,
                    keyword=ranking.keyword,
                    from_locale=ranking.best_locale,
                    to_locale=primary_locale,
                    expected_impact=(
                        strengthening_suggestion(primary_rank.source_pattern)
                        or "Already at the strongest tier"
                    ),
                ),
                affected_locales=[primary_locale, ranking.best_locale],
            )
        )

    recommendations.sort(key=lambda recommendation: (SEVERITY_ORDER[recommendation.severity], recommendation.id))
    return recommendations


def build_multi_locale_indexation(
    locales: Sequence[LocaleMetadata],
    *,
    brand_name: str | None = None,
    brand_aliases: Iterable[str] = (),
    primary_locale: str | None = None,
) -> MultiLocaleIndexation:
    """Process every locale independently, then fuse and analyze coverage.

    Raises:
        ValidationError: If no locales are given, a locale repeats, or the
            primary locale is not among them.
    """
    if not locales:
        raise ValidationError("At least one locale is required")
    codes = [metadata.locale for metadata in locales]
    if len(set(codes)) != len(codes):
        raise ValidationError("Locale codes must be unique", details={"locales": codes})
    primary = primary_locale or codes[0]
    if primary not in codes:
        raise ValidationError(
            f"Primary locale {primary} is not among the supplied locales",
            details={"locales": codes},
        )

    matcher = BrandMatcher(brand_name, brand_aliases)
    processed = [process_locale(metadata, brand_matcher=matcher) for metadata in locales]
    coverage = calculate_coverage(processed)
    fused = fuse_rankings(processed, primary)
    recommendations = generate_recommendations(coverage, fused, primary)

    logger.info(
        "Built multi-locale indexation",
        extra={
            "locales": codes,
            "primary_locale": primary,
            "keywords": len(fused),
            "recommendations": len(recommendations),
        },
    )
    return MultiLocaleIndexation(
        primary_locale=primary,
        locales=processed,
        coverage=coverage,
        fused_rankings=fused,
        recommendations=recommendations,
    )


def _locale_stats(tokens: MetadataTokens, combos: list[Combo]) -> LocaleStats:
    words = [token.text for token in tokens.all_tokens]
    seen: set[str] = set()
    duplicated: list[str] = []
    for word in words:
        if word in seen and word not in duplicated:
            duplicated.append(word)
        seen.add(word)
    return LocaleStats(
        unique_tokens=len(set(words)),
        total_combos=len(combos),
        tier1_combos=sum(1 for combo in combos if combo.tier is Tier.TITLE_CONSECUTIVE),
        tier2_combos=sum(1 for combo in combos if combo.tier is Tier.TITLE_SUPPORTED),
        tier3_plus_combos=sum(1 for combo in combos if combo.tier >= Tier.TITLE_SUBTITLE_CROSS),
        duplicated_tokens=duplicated,
    )


def _fusion_strategy(by_locale: dict[str, LocaleRank], best_score: int, primary_locale: str) -> FusionStrategy:
    primary = by_locale.get(primary_locale)
    if primary is None or primary.score < best_score:
        return FusionStrategy.SECONDARY_STRONGER
    if any(locale != primary_locale and rank.score == best_score for locale, rank in by_locale.items()):
        return FusionStrategy.EQUAL_RANK
    return FusionStrategy.PRIMARY_STRONGEST
