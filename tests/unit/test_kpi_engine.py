"""Unit tests for KPI normalization and evaluation."""

from __future__ import annotations

import math

import pytest

from aso_engine.core.exceptions import ValidationError
from aso_engine.services.combos.types import ComboAnalysis
from aso_engine.services.intent import IntentSignals
from aso_engine.services.kpi.engine import evaluate_kpis, normalize_value
from aso_engine.services.kpi.formulas import KPI_FORMULAS
from aso_engine.services.kpi.types import (
    BrandSignals,
    KpiDefinition,
    KpiDirection,
    KpiEngineInput,
    Platform,
)
from aso_engine.services.tokenizer import FieldRole, tokenize


def _definition(direction: KpiDirection, **kwargs) -> KpiDefinition:
    return KpiDefinition(
        id="k",
        family_id="f",
        direction=direction,
        min_value=0,
        max_value=10,
        weight=1,
        **kwargs,
    )


def _pimsleur_input(**kwargs) -> KpiEngineInput:
    return KpiEngineInput(
        title="Pimsleur Language Learning",
        subtitle="Speak Spanish Fluently Fast",
        locale="en-US",
        brand_name="Pimsleur",
        **kwargs,
    )


def test_higher_is_better_normalization() -> None:
    definition = _definition(KpiDirection.HIGHER_IS_BETTER)

    assert normalize_value(definition, 5) == 50.0
    assert normalize_value(definition, 15) == 100.0
    assert normalize_value(definition, -3) == 0.0


def test_lower_is_better_normalization() -> None:
    definition = _definition(KpiDirection.LOWER_IS_BETTER)

    assert normalize_value(definition, 2) == 80.0
    assert normalize_value(definition, 10) == 0.0


def test_target_range_normalization() -> None:
    definition = _definition(KpiDirection.TARGET_RANGE, target_value=4, target_tolerance=1)

    assert normalize_value(definition, 3) == 100.0
    assert normalize_value(definition, 5) == 100.0
    assert normalize_value(definition, 7) == pytest.approx(50.0)
    assert normalize_value(definition, 10) == 0.0
    assert normalize_value(definition, -5) == pytest.approx(100 * 2 / 6)


@pytest.mark.parametrize("direction", list(KpiDirection))
@pytest.mark.parametrize("value", [-1e9, -1, 0, 3.3, 10, 1e9])
def test_normalized_values_stay_in_range(direction: KpiDirection, value: float) -> None:
    definition = _definition(direction, target_value=4, target_tolerance=1)

    assert 0.0 <= normalize_value(definition, value) <= 100.0


def test_pimsleur_title_word_count() -> None:
    """Three title words sit inside the 4 +/- 1 target band."""
    result = evaluate_kpis(_pimsleur_input())

    assert result.kpis["title_word_count"].raw_value == 3.0
    assert result.kpis["title_word_count"].normalized_value == 100.0
    assert result.kpis["brand_presence_title"].raw_value == 1.0


def test_vector_follows_registry_order() -> None:
    result = evaluate_kpis(_pimsleur_input())

    assert result.version == "v1"
    assert len(result.vector) == 36
    assert result.vector == [kpi.normalized_value for kpi in result.kpis.values()]
    assert all(0.0 <= value <= 100.0 for value in result.vector)
    assert result.failed_kpi_ids == []


def test_scores_are_weighted_sums() -> None:
    result = evaluate_kpis(_pimsleur_input())

    for family in result.families.values():
        assert 0.0 <= family.score <= 100.0
    expected = sum(family.weight * family.score for family in result.families.values())
    assert result.overall_score == pytest.approx(expected, abs=0.01)


def test_evaluation_is_deterministic() -> None:
    first = evaluate_kpis(_pimsleur_input())
    second = evaluate_kpis(_pimsleur_input())

    assert first.to_dict() == second.to_dict()


def test_platform_changes_character_limits() -> None:
    primary = evaluate_kpis(_pimsleur_input())
    secondary = evaluate_kpis(_pimsleur_input(platform=Platform.SECONDARY))

    assert primary.kpis["title_char_usage"].raw_value == pytest.approx(26 / 30 * 100)
    assert secondary.kpis["title_char_usage"].raw_value == pytest.approx(52.0)


def test_failing_formula_is_flagged_and_scored_zero() -> None:
    """A broken formula never drops a KPI from the vector."""
    formulas = dict(KPI_FORMULAS)
    formulas["title_char_usage"] = lambda primitives: 1 / 0
    formulas["subtitle_char_usage"] = lambda primitives: math.nan

    result = evaluate_kpis(_pimsleur_input(), formulas=formulas)

    assert len(result.vector) == 36
    assert result.failed_kpi_ids == ["title_char_usage", "subtitle_char_usage"]
    failed = result.kpis["title_char_usage"]
    assert failed.failed
    assert failed.normalized_value == 0.0
    assert failed.error
    assert result.to_dict()["kpis"]["subtitle_char_usage"]["failed"] is True


def test_empty_metadata_still_scores_every_kpi() -> None:
    result = evaluate_kpis(KpiEngineInput(title="", subtitle=None))

    assert len(result.vector) == 36
    assert result.failed_kpi_ids == []


def test_supplied_signals_override_computed_ones() -> None:
    result = evaluate_kpis(
        _pimsleur_input(
            brand_signals=BrandSignals(brand_in_title=False, brand_in_subtitle=True),
            intent_signals=IntentSignals(informational=1, commercial=1, transactional=2),
        )
    )

    assert result.kpis["brand_presence_title"].raw_value == 0.0
    assert result.kpis["brand_presence_subtitle"].raw_value == 1.0
    assert result.kpis["informational_intent_coverage_score"].raw_value == 25.0
    assert result.kpis["commercial_intent_coverage_score"].raw_value == 25.0
    assert result.kpis["transactional_intent_coverage_score"].raw_value == 50.0


def test_supplied_combo_analysis_is_used() -> None:
    result = evaluate_kpis(_pimsleur_input(combo_analysis=ComboAnalysis()))

    assert result.kpis["title_combo_count_generic"].raw_value == 0.0
    assert result.kpis["brand_combo_ratio"].raw_value == 0.0


@pytest.mark.parametrize("token_locale", [None, "en-US"])
def test_precomputed_tokens_match_text_only_evaluation(token_locale: str | None) -> None:
    """Tokens with or without a locale score like the text they came from."""
    title, subtitle = "Learn Spanish Daily", "Speak Fluently Fast"
    text_only = evaluate_kpis(KpiEngineInput(title=title, subtitle=subtitle, locale="en-US"))

    result = evaluate_kpis(
        KpiEngineInput(
            title=title,
            subtitle=subtitle,
            locale="en-US",
            tokens_title=tokenize(title, FieldRole.TITLE, locale=token_locale),
            tokens_subtitle=tokenize(subtitle, FieldRole.SUBTITLE, locale=token_locale),
        )
    )

    assert len(result.vector) == 36
    assert result.failed_kpi_ids == []
    assert result.vector == text_only.vector


def test_precomputed_tokens_lend_their_locale_to_the_input() -> None:
    title = "Learn Spanish Daily"
    result = evaluate_kpis(
        KpiEngineInput(
            title=title,
            subtitle=None,
            tokens_title=tokenize(title, FieldRole.TITLE, locale="es-MX"),
        )
    )

    assert result.kpis["title_combo_count_generic"].raw_value == 4.0


def test_conflicting_token_locale_is_rejected() -> None:
    title = "Learn Spanish Daily"

    with pytest.raises(ValidationError, match="conflicts with precomputed token locales"):
        evaluate_kpis(
            KpiEngineInput(
                title=title,
                subtitle=None,
                locale="en-US",
                tokens_title=tokenize(title, FieldRole.TITLE, locale="es-MX"),
            )
        )
