"""One-call metadata audit: combos, classification, KPIs and optional comparison."""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from typing import Any

from aso_engine.config import settings
from aso_engine.services.combo_diff import (
    ComboDiff,
    KeywordImpactAnalysis,
    KpiDiff,
    TierDistribution,
    analyze_keyword_impact,
    calculate_tier_distribution,
    diff_combos,
    diff_kpi_results,
)
from aso_engine.services.combos.analysis import analyze_combos, tokenize_metadata
from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.types import ComboAnalysis
from aso_engine.services.kpi.engine import evaluate_kpis
from aso_engine.services.kpi.registry import load_registry
from aso_engine.services.kpi.types import KpiEngineInput, KpiEngineResult, KpiRegistry, Platform

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuditRequest:
    """Metadata to audit, plus an optional proposed revision to compare."""

    title: str | None
    subtitle: str | None
    keywords: str | None = None
    locale: str | None = None
    platform: Platform = Platform.PRIMARY
    brand_name: str | None = None
    brand_aliases: Sequence[str] = ()
    existing_combos: Collection[str] | None = None
    compare_title: str | None = None
    compare_subtitle: str | None = None
    compare_keywords: str | None = None
    registry_version: str | None = None

    @property
    def has_comparison(self) -> bool:
        return any(
            value is not None
            for value in (self.compare_title, self.compare_subtitle, self.compare_keywords)
        )


@dataclass(slots=True)
class MetadataSnapshot:
    """Combos and KPIs of one title/subtitle/keywords version."""

    combo_analysis: ComboAnalysis
    kpis: KpiEngineResult

    def to_dict(self) -> dict[str, Any]:
        return {"combos": self.combo_analysis.to_dict(), "kpis": self.kpis.to_dict()}


@dataclass(slots=True)
class MetadataComparison:
    combo_diff: ComboDiff
    tier_distribution: TierDistribution
    keyword_impact: KeywordImpactAnalysis
    kpi_diff: KpiDiff

    def to_dict(self) -> dict[str, Any]:
        return {
            "combo_diff": self.combo_diff.to_dict(),
            "tier_distribution": self.tier_distribution.to_dict(),
            "keyword_impact": self.keyword_impact.to_dict(),
            "kpi_diff": self.kpi_diff.to_dict(),
        }


@dataclass(slots=True)
class MetadataAuditResult:
    locale: str | None
    platform: Platform
    current: MetadataSnapshot
    proposed: MetadataSnapshot | None = None
    comparison: MetadataComparison | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "locale": self.locale,
            "platform": self.platform.value,
            "current": self.current.to_dict(),
            "proposed": self.proposed.to_dict() if self.proposed else None,
            "comparison": self.comparison.to_dict() if self.comparison else None,
            "warnings": list(self.warnings),
        }


def run_metadata_audit(request: AuditRequest) -> MetadataAuditResult:
    """Audit current metadata and, when given, compare it with a proposal."""
    registry = load_registry(request.registry_version or settings.kpi_registry_version)
    matcher = BrandMatcher(request.brand_name, request.brand_aliases)

    current = _snapshot(
        request,
        request.title,
        request.subtitle,
        request.keywords,
        matcher=matcher,
        existing_combos=request.existing_combos,
        registry=registry,
    )
    result = MetadataAuditResult(locale=request.locale, platform=request.platform, current=current)
    result.warnings.extend(_length_warnings(request.title, request.subtitle, request.platform))

    if request.has_comparison:
        proposed = _snapshot(
            request,
            request.compare_title if request.compare_title is not None else request.title,
            request.compare_subtitle if request.compare_subtitle is not None else request.subtitle,
            request.compare_keywords if request.compare_keywords is not None else request.keywords,
            matcher=matcher,
            existing_combos=None,
            registry=registry,
        )
        baseline_combos = current.combo_analysis.all_possible_combos
        candidate_combos = proposed.combo_analysis.all_possible_combos
        result.proposed = proposed
        result.comparison = MetadataComparison(
            combo_diff=diff_combos(baseline_combos, candidate_combos),
            tier_distribution=calculate_tier_distribution(baseline_combos, candidate_combos),
            keyword_impact=analyze_keyword_impact(baseline_combos, candidate_combos),
            kpi_diff=diff_kpi_results(current.kpis, proposed.kpis),
        )

    logger.info(
        "Metadata audit complete",
        extra={
            "locale": request.locale,
            "platform": request.platform.value,
            "overall_score": current.kpis.overall_score,
            "compared": request.has_comparison,
        },
    )
    return result


def _snapshot(
    request: AuditRequest,
    title: str | None,
    subtitle: str | None,
    keywords: str | None,
    *,
    matcher: BrandMatcher,
    existing_combos: Collection[str] | None,
    registry: KpiRegistry,
) -> MetadataSnapshot:
    tokens = tokenize_metadata(
        title, subtitle, keywords, locale=request.locale, brand_matcher=matcher
    )
    analysis = analyze_combos(
        title,
        subtitle,
        keywords,
        locale=request.locale,
        existing_combos=existing_combos,
        tokens=tokens,
        brand_matcher=matcher,
    )
    kpis = evaluate_kpis(
        KpiEngineInput(
            title=title,
            subtitle=subtitle,
            locale=request.locale,
            platform=request.platform,
            keywords=keywords,
            tokens_title=tokens.title,
            tokens_subtitle=tokens.subtitle,
            combo_analysis=analysis,
            brand_name=request.brand_name,
            brand_aliases=request.brand_aliases,
        ),
        registry=registry,
    )
    return MetadataSnapshot(combo_analysis=analysis, kpis=kpis)


def _length_warnings(title: str | None, subtitle: str | None, platform: Platform) -> list[str]:
    title_limit, subtitle_limit = settings.get_char_limits(platform)
    warnings = []
    if len(title or "") > title_limit:
        warnings.append(f"Title exceeds {title_limit} characters ({len(title or '')})")
    if len(subtitle or "") > subtitle_limit:
        warnings.append(f"Subtitle exceeds {subtitle_limit} characters ({len(subtitle or '')})")
    return warnings
