"""Keyword combination generation for one locale's metadata.

Combos are ordered subsets (left to right) of 2-4 tokens, drawn either from a
single field or across fields. Every combo is classified on creation so the
caller receives a ranked, de-duplicated list.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass, field
from itertools import combinations

from aso_engine.config import settings
from aso_engine.core.exceptions import LocaleIsolationError
from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.strength import classify_strength, resolve_source_pattern
from aso_engine.services.combos.types import Combo, combo_sort_key
from aso_engine.services.tokenizer import FieldRole, Token, tokenize_text

logger = logging.getLogger(__name__)

CROSS_SOURCE = "cross"


@dataclass(slots=True)
class ComboGeneration:
    """Output of one generation pass."""

    combos: list[Combo] = field(default_factory=list)
    candidates_by_source: dict[str, int] = field(default_factory=dict)
    capped_sources: list[str] = field(default_factory=list)


def strategic_value(length: int) -> int:
    """Heuristic value of a combo, increasing with its length."""
    return 50 + 10 * (length - 1)


def is_consecutive(tokens: Sequence[Token]) -> bool:
    """True when the tokens sat next to each other in the raw field text."""
    return all(
        current.position + 1 == following.position
        for current, following in zip(tokens, tokens[1:])
    )


def generate_combos(
    title_tokens: Sequence[Token],
    subtitle_tokens: Sequence[Token] = (),
    keyword_tokens: Sequence[Token] = (),
    *,
    locale: str | None = None,
    existing_combos: Collection[str] | None = None,
    brand_matcher: BrandMatcher | None = None,
    max_per_source: int | None = None,
    min_length: int | None = None,
    max_length: int | None = None,
) -> ComboGeneration:
    """Generate, classify and rank every combo for one locale.

    Args:
        title_tokens: Tokens of the title field.
        subtitle_tokens: Tokens of the subtitle field.
        keyword_tokens: Tokens of the keyword field, if any.
        locale: Locale every token must belong to.
        existing_combos: Combo texts already live. When omitted, a combo
            exists if its words occur in order within a single field.
        brand_matcher: Matcher used for brand/generic classification.
        max_per_source: Cap per source (title, subtitle, keywords, cross).
        min_length: Smallest combo length.
        max_length: Largest combo length.

    Raises:
        LocaleIsolationError: If a token does not carry ``locale``.
    """
    cap = max_per_source or settings.max_combos_per_source
    low = min_length or settings.combo_min_length
    high = max_length or settings.combo_max_length
    matcher = brand_matcher or BrandMatcher()

    fields = {
        FieldRole.TITLE: list(title_tokens),
        FieldRole.SUBTITLE: list(subtitle_tokens),
        FieldRole.KEYWORDS: list(keyword_tokens),
    }
    result = ComboGeneration()

    candidates: list[tuple[Token, ...]] = []
    for role, tokens in fields.items():
        source_candidates = [
            group
            for length in range(low, high + 1)
            for group in combinations(tokens, length)
            if _has_unique_words(group)
        ]
        candidates.extend(_apply_cap(role.value, source_candidates, cap, result))

    populated = [tokens for tokens in fields.values() if tokens]
    if len(populated) >= 2:
        stream = [token for tokens in populated for token in tokens]
        cross_candidates = [
            group
            for length in range(low, high + 1)
            for group in combinations(stream, length)
            if len({token.source_field for token in group}) >= 2 and _has_unique_words(group)
        ]
        candidates.extend(_apply_cap(CROSS_SOURCE, cross_candidates, cap, result))

    existing: set[str] | None = None
    if existing_combos is not None:
        existing = {" ".join(tokenize_text(text)) for text in existing_combos}
    field_words = [[token.text for token in tokens] for tokens in populated]

    by_text: dict[str, Combo] = {}
    for group in candidates:
        combo = _build_combo(group, locale)
        _check_locale(combo)
        previous = by_text.get(combo.text)
        if previous is None or (combo.tier, -combo.strength_score) < (previous.tier, -previous.strength_score):
            by_text[combo.text] = combo

    for combo in by_text.values():
        if existing is not None:
            combo.exists = combo.text in existing
        else:
            combo.exists = any(_occurs_in_order(combo.words, words) for words in field_words)
        matcher.classify(combo)

    result.combos = sorted(by_text.values(), key=combo_sort_key)
    logger.debug(
        "Generated keyword combos",
        extra={
            "locale": locale,
            "combos": len(result.combos),
            "candidates": result.candidates_by_source,
        },
    )
    return result


def _apply_cap(
    source: str,
    candidates: list[tuple[Token, ...]],
    cap: int,
    result: ComboGeneration,
) -> list[tuple[Token, ...]]:
    result.candidates_by_source[source] = len(candidates)
    if len(candidates) <= cap:
        return candidates

    # sorted() is stable, so generation order breaks the remaining ties
    ranked = sorted(
        candidates,
        key=lambda group: (
            -sum(token.relevance for token in group),
            -strategic_value(len(group)),
        ),
    )
    result.capped_sources.append(source)
    logger.warning(
        "Combo generation cap reached",
        extra={"source": source, "candidates": len(candidates), "cap": cap},
    )
    return ranked[:cap]


def _build_combo(group: tuple[Token, ...], locale: str | None) -> Combo:
    roles = {token.source_field for token in group}
    pattern = resolve_source_pattern(roles, is_consecutive(group))
    tier, score = classify_strength(pattern)
    return Combo(
        text=" ".join(token.text for token in group),
        keywords=group,
        source_pattern=pattern,
        tier=tier,
        strength_score=score,
        strategic_value=strategic_value(len(group)),
        locale=locale,
    )


def _check_locale(combo: Combo) -> None:
    token_locales = {token.locale for token in combo.keywords}
    if token_locales != {combo.locale}:
        raise LocaleIsolationError(combo.text, combo.locale, token_locales)


def _has_unique_words(group: Iterable[Token]) -> bool:
    words = [token.text for token in group]
    return len(words) == len(set(words))


def _occurs_in_order(words: Sequence[str], field_words: Sequence[str]) -> bool:
    remaining = iter(field_words)
    return all(word in remaining for word in words)
