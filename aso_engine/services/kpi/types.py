"""Domain types for the KPI registry and evaluator."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from aso_engine.services.combos.types import ComboAnalysis
from aso_engine.services.intent import IntentSignals
from aso_engine.services.tokenizer import Token


class Platform(str, Enum):
    """Store convention that decides character limits."""

    PRIMARY = "primary"
    SECONDARY = "secondary"


class KpiDirection(str, Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"
    TARGET_RANGE = "target_range"


class KpiFamilyDefinition(BaseModel):
    """A group of KPIs scored together."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(min_length=1)
    label: str = ""
    weight: float = Field(ge=0)


class KpiDefinition(BaseModel):
    """One registry entry: bounds, direction and weight within its family."""

    model_config = {"frozen": True, "extra": "forbid"}

    id: str = Field(min_length=1)
    family_id: str = Field(min_length=1)
    label: str = ""
    direction: KpiDirection
    min_value: float
    max_value: float
    target_value: float | None = None
    target_tolerance: float | None = None
    weight: float = Field(ge=0)


@dataclass(frozen=True, slots=True)
class KpiRegistry:
    """Immutable, ordered set of KPI and family definitions for one version."""

    version: str
    families: tuple[KpiFamilyDefinition, ...]
    kpis: tuple[KpiDefinition, ...]

    @property
    def size(self) -> int:
        return len(self.kpis)

    @property
    def kpi_ids(self) -> list[str]:
        return [kpi.id for kpi in self.kpis]

    def get_kpi(self, kpi_id: str) -> KpiDefinition | None:
        return next((kpi for kpi in self.kpis if kpi.id == kpi_id), None)

    def kpis_for_family(self, family_id: str) -> list[KpiDefinition]:
        return [kpi for kpi in self.kpis if kpi.family_id == family_id]


@dataclass(slots=True)
class BrandSignals:
    """Whether the brand appears in each metadata field."""

    brand_in_title: bool = False
    brand_in_subtitle: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "brand_in_title": self.brand_in_title,
            "brand_in_subtitle": self.brand_in_subtitle,
        }


@dataclass(slots=True)
class KpiEngineInput:
    """Input bundle for one KPI evaluation.

    Only title and subtitle are required. Tokens, combo analysis, brand and
    intent signals are computed from the text when not supplied.
    """

    title: str | None
    subtitle: str | None
    locale: str | None = None
    platform: Platform = Platform.PRIMARY
    keywords: str | None = None
    tokens_title: Sequence[Token] | None = None
    tokens_subtitle: Sequence[Token] | None = None
    combo_analysis: ComboAnalysis | None = None
    brand_signals: BrandSignals | None = None
    intent_signals: IntentSignals | None = None
    brand_name: str | None = None
    brand_aliases: Sequence[str] = ()


@dataclass(slots=True)
class KpiResult:
    """Raw and normalized value of one KPI."""

    id: str
    family_id: str
    raw_value: float
    normalized_value: float
    failed: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "family_id": self.family_id,
            "raw_value": self.raw_value,
            "normalized_value": self.normalized_value,
            "failed": self.failed,
        }
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class KpiFamilyResult:
    """Weighted score of one family."""

    id: str
    label: str
    score: float
    weight: float
    kpi_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "score": self.score,
            "weight": self.weight,
            "kpi_ids": list(self.kpi_ids),
        }


@dataclass(slots=True)
class KpiEngineResult:
    """Full KPI evaluation: ordered vector, per-KPI and per-family results."""

    version: str
    vector: list[float]
    kpis: dict[str, KpiResult]
    families: dict[str, KpiFamilyResult]
    overall_score: float

    @property
    def failed_kpi_ids(self) -> list[str]:
        return [kpi_id for kpi_id, result in self.kpis.items() if result.failed]

    def to_dict(self) -> dict[str, Any]:
        """Serialize result to JSON-compatible dict."""
        return {
            "version": self.version,
            "vector": list(self.vector),
            "kpis": {kpi_id: result.to_dict() for kpi_id, result in self.kpis.items()},
            "families": {family_id: result.to_dict() for family_id, result in self.families.items()},
            "overall_score": self.overall_score,
            "failed_kpi_ids": self.failed_kpi_ids,
        }
