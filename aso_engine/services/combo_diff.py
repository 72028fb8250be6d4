"""Before/after comparison of combo sets and KPI results."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from aso_engine.core.exceptions import KpiVersionMismatchError, ValidationError
from aso_engine.services.combos.strength import tier_label
from aso_engine.services.combos.types import Combo, Tier
from aso_engine.services.kpi.types import KpiEngineResult

ComboSet = Mapping[str, Combo] | Iterable[Combo]

IMPACT_SAMPLE_SIZE = 3


@dataclass(slots=True)
class TierChange:
    """A combo present in both sets whose tier moved."""

    text: str
    combo: Combo
    from_tier: Tier
    to_tier: Tier

    @property
    def improvement(self) -> int:
        """Positive when the candidate tier is stronger."""
        return int(self.from_tier) - int(self.to_tier)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "from_tier": int(self.from_tier),
            "to_tier": int(self.to_tier),
            "from_label": tier_label(self.from_tier),
            "to_label": tier_label(self.to_tier),
            "improvement": self.improvement,
            "combo": self.combo.to_dict(),
        }


@dataclass(slots=True)
class ComboDiff:
    added: list[Combo] = field(default_factory=list)
    removed: list[Combo] = field(default_factory=list)
    tier_upgrades: list[TierChange] = field(default_factory=list)
    tier_downgrades: list[TierChange] = field(default_factory=list)
    unchanged: list[Combo] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.tier_upgrades or self.tier_downgrades)

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": [combo.to_dict() for combo in self.added],
            "removed": [combo.to_dict() for combo in self.removed],
            "tier_upgrades": [change.to_dict() for change in self.tier_upgrades],
            "tier_downgrades": [change.to_dict() for change in self.tier_downgrades],
            "unchanged": [combo.text for combo in self.unchanged],
            "summary": {
                "added": len(self.added),
                "removed": len(self.removed),
                "tier_upgrades": len(self.tier_upgrades),
                "tier_downgrades": len(self.tier_downgrades),
                "unchanged": len(self.unchanged),
            },
        }


@dataclass(slots=True)
class TierCounts:
    tier1: int = 0
    tier2: int = 0
    tier3_plus: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"tier1": self.tier1, "tier2": self.tier2, "tier3_plus": self.tier3_plus}


@dataclass(slots=True)
class TierDistribution:
    baseline: TierCounts
    candidate: TierCounts

    @property
    def delta(self) -> TierCounts:
        return TierCounts(
            tier1=self.candidate.tier1 - self.baseline.tier1,
            tier2=self.candidate.tier2 - self.baseline.tier2,
            tier3_plus=self.candidate.tier3_plus - self.baseline.tier3_plus,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "baseline": self.baseline.to_dict(),
            "candidate": self.candidate.to_dict(),
            "delta": self.delta.to_dict(),
        }


@dataclass(slots=True)
class KeywordImpact:
    """Effect of one keyword entering or leaving the metadata."""

    keyword: str
    combo_count: int
    average_tier: float
    sample_combos: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword": self.keyword,
            "combo_count": self.combo_count,
            "average_tier": self.average_tier,
            "sample_combos": list(self.sample_combos),
        }


@dataclass(slots=True)
class KeywordImpactAnalysis:
    added_keywords: list[KeywordImpact] = field(default_factory=list)
    removed_keywords: list[KeywordImpact] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "added_keywords": [impact.to_dict() for impact in self.added_keywords],
            "removed_keywords": [impact.to_dict() for impact in self.removed_keywords],
        }


@dataclass(slots=True)
class ValueDelta:
    before: float
    after: float

    @property
    def delta(self) -> float:
        return round(self.after - self.before, 2)

    def to_dict(self) -> dict[str, float]:
        return {"before": self.before, "after": self.after, "delta": self.delta}


@dataclass(slots=True)
class KpiDiff:
    version: str
    kpis: dict[str, ValueDelta] = field(default_factory=dict)
    families: dict[str, ValueDelta] = field(default_factory=dict)
    overall: ValueDelta = field(default_factory=lambda: ValueDelta(0.0, 0.0))

    def improved_kpi_ids(self) -> list[str]:
        return [kpi_id for kpi_id, value in self.kpis.items() if value.delta > 0]

    def regressed_kpi_ids(self) -> list[str]:
        return [kpi_id for kpi_id, value in self.kpis.items() if value.delta < 0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "kpis": {kpi_id: value.to_dict() for kpi_id, value in self.kpis.items()},
            "families": {family_id: value.to_dict() for family_id, value in self.families.items()},
            "overall": self.overall.to_dict(),
            "improved": self.improved_kpi_ids(),
            "regressed": self.regressed_kpi_ids(),
        }


def _diff_sort_key(combo: Combo) -> tuple[int, int, str]:
    return (int(combo.tier), -combo.length, combo.text)


def index_combos(combos: ComboSet) -> dict[str, Combo]:
    """Key combos by lower-cased text.

    Raises:
        ValidationError: If two combos share the same text.
    """
    items = combos.values() if isinstance(combos, Mapping) else combos
    indexed: dict[str, Combo] = {}
    for combo in items:
        key = combo.text.strip().lower()
        if key in indexed:
            raise ValidationError(f"Duplicate combo text in set: {combo.text!r}")
        indexed[key] = combo
    return indexed


def diff_combos(baseline: ComboSet, candidate: ComboSet) -> ComboDiff:
    """Compare two combo sets by text and report additions, removals and tier moves."""
    before = index_combos(baseline)
    after = index_combos(candidate)
    diff = ComboDiff()

    for key, combo in after.items():
        previous = before.get(key)
        if previous is None:
            diff.added.append(combo)
        elif combo.tier.is_stronger_than(previous.tier):
            diff.tier_upgrades.append(TierChange(combo.text, combo, previous.tier, combo.tier))
        elif previous.tier.is_stronger_than(combo.tier):
            diff.tier_downgrades.append(TierChange(combo.text, combo, previous.tier, combo.tier))
        else:
            diff.unchanged.append(combo)
    diff.removed = [combo for key, combo in before.items() if key not in after]

    diff.added.sort(key=_diff_sort_key)
    diff.removed.sort(key=_diff_sort_key)
    diff.unchanged.sort(key=_diff_sort_key)
    diff.tier_upgrades.sort(key=lambda change: _diff_sort_key(change.combo))
    diff.tier_downgrades.sort(key=lambda change: _diff_sort_key(change.combo))
    return diff


def _tier_counts(combos: Iterable[Combo]) -> TierCounts:
    counts = TierCounts()
    for combo in combos:
        if combo.tier is Tier.TITLE_CONSECUTIVE:
            counts.tier1 += 1
        elif combo.tier is Tier.TITLE_SUPPORTED:
            counts.tier2 += 1
        else:
            counts.tier3_plus += 1
    return counts


def calculate_tier_distribution(baseline: ComboSet, candidate: ComboSet) -> TierDistribution:
    return TierDistribution(
        baseline=_tier_counts(index_combos(baseline).values()),
        candidate=_tier_counts(index_combos(candidate).values()),
    )


def analyze_keyword_impact(baseline: ComboSet, candidate: ComboSet) -> KeywordImpactAnalysis:
    """Which keywords enter or leave, and how many combos ride on each."""
    before = list(index_combos(baseline).values())
    after = list(index_combos(candidate).values())
    before_words = {word for combo in before for word in combo.words}
    after_words = {word for combo in after for word in combo.words}

    return KeywordImpactAnalysis(
        added_keywords=[_keyword_impact(word, after) for word in sorted(after_words - before_words)],
        removed_keywords=[_keyword_impact(word, before) for word in sorted(before_words - after_words)],
    )


def _keyword_impact(keyword: str, combos: list[Combo]) -> KeywordImpact:
    related = sorted((combo for combo in combos if keyword in combo.words), key=_diff_sort_key)
    average = sum(int(combo.tier) for combo in related) / len(related) if related else 0.0
    return KeywordImpact(
        keyword=keyword,
        combo_count=len(related),
        average_tier=round(average, 2),
        sample_combos=[combo.text for combo in related[:IMPACT_SAMPLE_SIZE]],
    )


def diff_kpi_results(before: KpiEngineResult, after: KpiEngineResult) -> KpiDiff:
    """Per-KPI, per-family and overall deltas between two evaluations.

    Raises:
        KpiVersionMismatchError: If the results come from different registries.
    """
    if before.version != after.version:
        raise KpiVersionMismatchError(before.version, after.version)

    return KpiDiff(
        version=after.version,
        kpis={
            kpi_id: ValueDelta(result.normalized_value, after.kpis[kpi_id].normalized_value)
            for kpi_id, result in before.kpis.items()
            if kpi_id in after.kpis
        },
        families={
            family_id: ValueDelta(result.score, after.families[family_id].score)
            for family_id, result in before.families.items()
            if family_id in after.families
        },
        overall=ValueDelta(before.overall_score, after.overall_score),
    )
