"""Audit app store metadata and print a JSON report.

Single locale:
    python scripts/audit_metadata.py --title "Pimsleur Language Learning" \
        --subtitle "Speak Spanish Fluently Fast" --brand Pimsleur

Several locales of one market, read from a YAML file:
    python scripts/audit_metadata.py --locales-file locales.yaml --brand Pimsleur
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from aso_engine.core.exceptions import AsoEngineError
from aso_engine.core.logging import setup_logging
from aso_engine.services.kpi.types import Platform
from aso_engine.services.metadata_audit import AuditRequest, run_metadata_audit
from aso_engine.services.multi_locale import (
    LocaleMetadata,
    build_multi_locale_indexation,
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--title", default="", help="Current title")
    parser.add_argument("--subtitle", default="", help="Current subtitle")
    parser.add_argument("--keywords", default=None, help="Comma separated keyword field")
    parser.add_argument("--brand", default=None, help="Canonical brand name")
    parser.add_argument(
        "--alias",
        action="append",
        default=[],
        help="Brand alias (repeatable)",
    )
    parser.add_argument("--locale", default=None, help="Locale code, e.g. en-US")
    parser.add_argument(
        "--platform",
        choices=[platform.value for platform in Platform],
        default=Platform.PRIMARY.value,
        help="Character-limit convention (default: primary)",
    )
    parser.add_argument(
        "--existing",
        action="append",
        default=None,
        help="Combo already live in the store listing (repeatable)",
    )
    parser.add_argument("--compare-title", default=None, help="Proposed title")
    parser.add_argument("--compare-subtitle", default=None, help="Proposed subtitle")
    parser.add_argument("--compare-keywords", default=None, help="Proposed keyword field")
    parser.add_argument(
        "--locales-file",
        default=None,
        help="YAML file with a 'locales' list (locale/title/subtitle/keywords)",
    )
    parser.add_argument("--primary-locale", default=None, help="Primary locale for fusion")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation")
    return parser.parse_args(argv)


def load_locales(path: Path) -> list[LocaleMetadata]:
    """Read per-locale metadata from YAML."""
    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError("locales file must be a mapping")

    entries = payload.get("locales")
    if not isinstance(entries, list) or not entries:
        raise ValueError("locales file must include a non-empty 'locales' list")

    locales: list[LocaleMetadata] = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("locale"):
            raise ValueError(f"invalid locale entry: {entry!r}")
        locales.append(
            LocaleMetadata(
                locale=str(entry["locale"]),
                title=str(entry.get("title") or ""),
                subtitle=str(entry.get("subtitle") or ""),
                keywords=str(entry.get("keywords") or ""),
            )
        )
    return locales


def build_report(args: argparse.Namespace) -> dict[str, Any]:
    if args.locales_file:
        indexation = build_multi_locale_indexation(
            load_locales(Path(args.locales_file)),
            brand_name=args.brand,
            brand_aliases=args.alias,
            primary_locale=args.primary_locale,
        )
        return indexation.to_dict()

    result = run_metadata_audit(
        AuditRequest(
            title=args.title,
            subtitle=args.subtitle,
            keywords=args.keywords,
            locale=args.locale,
            platform=Platform(args.platform),
            brand_name=args.brand,
            brand_aliases=args.alias,
            existing_combos=args.existing,
            compare_title=args.compare_title,
            compare_subtitle=args.compare_subtitle,
            compare_keywords=args.compare_keywords,
        )
    )
    return result.to_dict()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        report = build_report(args)
    except (AsoEngineError, ValueError, OSError) as exc:
        print(f"Metadata audit failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(report, indent=args.indent, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
