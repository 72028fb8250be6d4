"""KPI evaluation: raw formulas, normalization and weighted aggregation."""

from __future__ import annotations

import logging
import math

from aso_engine.config import settings
from aso_engine.services.kpi.formulas import KPI_FORMULAS, KpiFormula, KpiPrimitives, build_primitives
from aso_engine.services.kpi.registry import load_registry
from aso_engine.services.kpi.types import (
    KpiDefinition,
    KpiDirection,
    KpiEngineInput,
    KpiEngineResult,
    KpiFamilyResult,
    KpiRegistry,
    KpiResult,
)

logger = logging.getLogger(__name__)

SCORE_PRECISION = 2


def normalize_value(definition: KpiDefinition, value: float) -> float:
    """Map a raw value onto 0-100 using the definition's direction.

    The raw value is clamped to ``[min_value, max_value]`` first, so the
    result always lies in ``[0, 100]``.
    """
    low, high = definition.min_value, definition.max_value
    clamped = min(max(value, low), high)
    span = high - low

    if definition.direction is KpiDirection.HIGHER_IS_BETTER:
        score = 100 * (clamped - low) / span
    elif definition.direction is KpiDirection.LOWER_IS_BETTER:
        score = 100 * (high - clamped) / span
    else:
        target = definition.target_value if definition.target_value is not None else low
        tolerance = definition.target_tolerance or 0.0
        distance = abs(clamped - target)
        if distance <= tolerance:
            return 100.0
        max_distance = max(abs(high - target), abs(low - target))
        if max_distance <= 0:
            return 0.0
        score = 100 * (max_distance - distance) / max_distance

    return min(100.0, max(0.0, score))


def evaluate_kpis(
    data: KpiEngineInput,
    registry: KpiRegistry | None = None,
    formulas: dict[str, KpiFormula] | None = None,
) -> KpiEngineResult:
    """Evaluate every registry KPI for one piece of metadata.

    A formula that raises or yields a non-finite value contributes zero and is
    flagged in the result; the vector always has one entry per definition.
    """
    registry = registry or load_registry(settings.kpi_registry_version)
    formulas = formulas if formulas is not None else KPI_FORMULAS
    primitives = build_primitives(data)

    kpis: dict[str, KpiResult] = {}
    for definition in registry.kpis:
        kpis[definition.id] = _evaluate_one(definition, formulas, primitives, registry.version)

    families: dict[str, KpiFamilyResult] = {}
    for family in registry.families:
        members = registry.kpis_for_family(family.id)
        score = math.fsum(member.weight * kpis[member.id].normalized_value for member in members)
        families[family.id] = KpiFamilyResult(
            id=family.id,
            label=family.label,
            score=round(score, SCORE_PRECISION),
            weight=family.weight,
            kpi_ids=[member.id for member in members],
        )

    overall = math.fsum(family.weight * families[family.id].score for family in registry.families)
    result = KpiEngineResult(
        version=registry.version,
        vector=[kpis[definition.id].normalized_value for definition in registry.kpis],
        kpis=kpis,
        families=families,
        overall_score=round(overall, SCORE_PRECISION),
    )
    logger.debug(
        "Evaluated KPIs",
        extra={
            "version": registry.version,
            "locale": data.locale,
            "overall_score": result.overall_score,
            "failed": len(result.failed_kpi_ids),
        },
    )
    return result


def _evaluate_one(
    definition: KpiDefinition,
    formulas: dict[str, KpiFormula],
    primitives: KpiPrimitives,
    version: str,
) -> KpiResult:
    try:
        raw = float(formulas[definition.id](primitives))
        if not math.isfinite(raw):
            raise ValueError(f"formula returned non-finite value {raw}")
    except Exception as exc:
        logger.warning(
            "KPI formula failed",
            extra={"kpi_id": definition.id, "version": version, "error": str(exc)},
        )
        return KpiResult(
            id=definition.id,
            family_id=definition.family_id,
            raw_value=0.0,
            normalized_value=0.0,
            failed=True,
            error=str(exc) or type(exc).__name__,
        )

    return KpiResult(
        id=definition.id,
        family_id=definition.family_id,
        raw_value=raw,
        normalized_value=normalize_value(definition, raw),
    )
