"""Brand vs generic classification of keyword combinations."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from aso_engine.services.combos.types import BrandClassification, Combo
from aso_engine.services.tokenizer import is_ignored_token, tokenize_text

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class BrandAlias:
    """A brand name or alias reduced to its word sequence."""

    label: str
    words: tuple[str, ...]


class BrandMatcher:
    """Whole-word, case-insensitive matcher for a brand name and its aliases."""

    def __init__(self, brand_name: str | None = None, aliases: Iterable[str] | None = None) -> None:
        self.aliases: tuple[BrandAlias, ...] = _build_aliases(brand_name, aliases or ())

    @property
    def is_empty(self) -> bool:
        return not self.aliases

    @property
    def brand_words(self) -> set[str]:
        """All words that belong to any alias."""
        return {word for alias in self.aliases for word in alias.words}

    def match(self, words: Sequence[str]) -> str | None:
        """Return the first alias whose words appear contiguously in ``words``."""
        lowered = [word.lower() for word in words]
        for alias in self.aliases:
            if _contains_run(lowered, alias.words):
                return alias.label
        return None

    def text_mentions_brand(self, text: str | None) -> bool:
        """Return True when raw text contains the brand as whole words."""
        return self.match(_alias_words(text)) is not None

    def classify(self, combo: Combo) -> Combo:
        """Set brand classification fields on a combo and return it."""
        matched = self.match(combo.words)
        if matched is None:
            combo.brand_classification = BrandClassification.GENERIC
            combo.matched_brand_alias = None
        else:
            combo.brand_classification = BrandClassification.BRAND
            combo.matched_brand_alias = matched
        return combo

    def classify_all(self, combos: Iterable[Combo]) -> list[Combo]:
        return [self.classify(combo) for combo in combos]


def _build_aliases(brand_name: str | None, aliases: Iterable[str]) -> tuple[BrandAlias, ...]:
    built: list[BrandAlias] = []
    seen: set[tuple[str, ...]] = set()
    candidates = [brand_name] if brand_name is not None else []
    candidates.extend(aliases)

    for raw in candidates:
        label = (raw or "").strip()
        words = _alias_words(label)
        if not words:
            logger.warning(
                "Ignoring empty brand alias",
                extra={"alias": raw},
            )
            continue
        if words in seen:
            continue
        seen.add(words)
        built.append(BrandAlias(label=label.lower(), words=words))

    # Longer aliases first so "duolingo abc" wins over "duolingo"
    built.sort(key=lambda alias: (-len(alias.words), alias.label))
    return tuple(built)


def _contains_run(words: Sequence[str], run: Sequence[str]) -> bool:
    if not run or len(run) > len(words):
        return False
    width = len(run)
    return any(tuple(words[index:index + width]) == tuple(run) for index in range(len(words) - width + 1))


def _alias_words(text: str | None) -> tuple[str, ...]:
    # Same filtering as combo tokens, otherwise stopwords inside an alias could never match
    return tuple(word for word in tokenize_text(text) if not is_ignored_token(word))
