"""Unit tests for the one-call metadata audit."""

from __future__ import annotations

import json

from aso_engine.services.kpi.types import Platform
from aso_engine.services.metadata_audit import AuditRequest, run_metadata_audit


def test_audit_without_comparison() -> None:
    result = run_metadata_audit(
        AuditRequest(
            title="Pimsleur Language Learning",
            subtitle="Speak Spanish Fluently Fast",
            locale="en-US",
            brand_name="Pimsleur",
        )
    )

    assert result.proposed is None
    assert result.comparison is None
    assert result.warnings == []
    assert result.current.combo_analysis.stats.total_possible == 91
    assert result.current.kpis.version == "v1"


def test_audit_with_comparison_is_json_serializable() -> None:
    request = AuditRequest(
        title="Language Lessons",
        subtitle="Learn Spanish Daily",
        compare_title="Learn Spanish Lessons",
    )
    assert request.has_comparison

    result = run_metadata_audit(request)
    payload = json.loads(json.dumps(result.to_dict()))

    assert result.comparison is not None
    assert result.proposed.combo_analysis.by_text()["learn spanish"].tier == 1
    upgrades = {change.text for change in result.comparison.combo_diff.tier_upgrades}
    assert "learn spanish" in upgrades
    assert payload["comparison"]["kpi_diff"]["version"] == "v1"
    assert payload["platform"] == "primary"


def test_unchanged_fields_fall_back_to_current_values() -> None:
    result = run_metadata_audit(
        AuditRequest(title="Learn Spanish", subtitle="Daily Lessons", compare_subtitle="Daily Lessons")
    )

    assert not result.comparison.combo_diff.has_changes
    assert result.comparison.kpi_diff.overall.delta == 0.0


def test_length_warnings_follow_platform_limits() -> None:
    title = "Learn Spanish French German Italian Fast"

    primary = run_metadata_audit(AuditRequest(title=title, subtitle=""))
    secondary = run_metadata_audit(
        AuditRequest(title=title, subtitle="", platform=Platform.SECONDARY)
    )

    assert primary.warnings == [f"Title exceeds 30 characters ({len(title)})"]
    assert secondary.warnings == []
