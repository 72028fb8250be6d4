"""Versioned KPI registry loaded from YAML files.

Each version lives in ``registries/<version>.yaml``. A registry is validated
once when loaded and never mutated afterwards, so a loaded instance can be
shared freely between evaluations.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Collection
from functools import lru_cache
from pathlib import Path
from typing import Any

import pydantic
import yaml

from aso_engine.core.exceptions import RegistryConfigError, UnknownRegistryVersionError
from aso_engine.services.kpi.formulas import KPI_FORMULAS
from aso_engine.services.kpi.types import (
    KpiDefinition,
    KpiDirection,
    KpiFamilyDefinition,
    KpiRegistry,
)

logger = logging.getLogger(__name__)

KPI_ENGINE_VERSION = "v1"
REGISTRY_DIR = Path(__file__).resolve().parent / "registries"
WEIGHT_TOLERANCE = 1e-6


def registry_path(version: str, registry_dir: Path | None = None) -> Path:
    return (registry_dir or REGISTRY_DIR) / f"{version}.yaml"


@lru_cache
def load_registry(version: str = KPI_ENGINE_VERSION) -> KpiRegistry:
    """Load and validate a bundled registry version, once per process."""
    path = registry_path(version)
    if not path.is_file():
        raise UnknownRegistryVersionError(version)

    registry = load_registry_file(path, version=version)
    logger.info(
        "Loaded KPI registry",
        extra={"version": version, "kpis": registry.size, "families": len(registry.families)},
    )
    return registry


def load_registry_file(
    path: Path,
    *,
    version: str | None = None,
    formula_ids: Collection[str] | None = None,
) -> KpiRegistry:
    """Parse a registry YAML file and validate it."""
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    return parse_registry(payload, version=version or path.stem, formula_ids=formula_ids)


def parse_registry(
    payload: Any,
    *,
    version: str,
    formula_ids: Collection[str] | None = None,
) -> KpiRegistry:
    """Build a registry from a decoded YAML document.

    Raises:
        RegistryConfigError: On any structural, bound or weight problem.
    """
    if not isinstance(payload, dict):
        raise RegistryConfigError(version, "registry document must be a mapping")

    declared = payload.get("version")
    if declared is not None and str(declared) != version:
        raise RegistryConfigError(version, f"file declares version {declared!r}")

    families_payload = payload.get("families")
    kpis_payload = payload.get("kpis")
    if not isinstance(families_payload, list) or not families_payload:
        raise RegistryConfigError(version, "registry must include a non-empty 'families' list")
    if not isinstance(kpis_payload, list) or not kpis_payload:
        raise RegistryConfigError(version, "registry must include a non-empty 'kpis' list")

    families = tuple(_parse_item(KpiFamilyDefinition, item, version) for item in families_payload)
    kpis = tuple(_parse_item(KpiDefinition, item, version) for item in kpis_payload)

    if formula_ids is None:
        formula_ids = KPI_FORMULAS.keys()

    _check_unique(version, [family.id for family in families])
    _check_unique(version, [kpi.id for kpi in kpis])

    family_ids = {family.id for family in families}
    for kpi in kpis:
        _check_definition(version, kpi, family_ids, formula_ids)

    _check_weight_sum(version, "families", [family.weight for family in families])
    for family in families:
        members = [kpi.weight for kpi in kpis if kpi.family_id == family.id]
        if not members:
            raise RegistryConfigError(version, "family has no KPIs", family.id)
        _check_weight_sum(version, family.id, members)

    return KpiRegistry(version=version, families=families, kpis=kpis)


def _parse_item(model: type[pydantic.BaseModel], item: Any, version: str) -> Any:
    item_id = item.get("id") if isinstance(item, dict) else None
    try:
        return model.model_validate(item)
    except pydantic.ValidationError as exc:
        errors = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise RegistryConfigError(version, errors, item_id) from exc


def _check_unique(version: str, ids: list[str]) -> None:
    seen: set[str] = set()
    for item_id in ids:
        if item_id in seen:
            raise RegistryConfigError(version, "duplicate id", item_id)
        seen.add(item_id)


def _check_definition(
    version: str,
    kpi: KpiDefinition,
    family_ids: set[str],
    formula_ids: Collection[str],
) -> None:
    if kpi.family_id not in family_ids:
        raise RegistryConfigError(version, f"unknown family '{kpi.family_id}'", kpi.id)
    if not (math.isfinite(kpi.min_value) and math.isfinite(kpi.max_value)):
        raise RegistryConfigError(version, "bounds must be finite", kpi.id)
    if kpi.max_value <= kpi.min_value:
        raise RegistryConfigError(
            version,
            f"max_value ({kpi.max_value}) must be greater than min_value ({kpi.min_value})",
            kpi.id,
        )
    if kpi.direction is KpiDirection.TARGET_RANGE:
        if kpi.target_value is None or kpi.target_tolerance is None:
            raise RegistryConfigError(
                version, "target_range requires target_value and target_tolerance", kpi.id
            )
        if kpi.target_tolerance < 0:
            raise RegistryConfigError(version, "target_tolerance must not be negative", kpi.id)
    if kpi.id not in formula_ids:
        raise RegistryConfigError(version, "no formula registered for this KPI", kpi.id)


def _check_weight_sum(version: str, scope: str, weights: list[float]) -> None:
    total = math.fsum(weights)
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise RegistryConfigError(version, f"weights sum to {total:.6f}, expected 1.0", scope)
