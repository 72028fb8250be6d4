"""Deterministic search-intent labeling for metadata tokens."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any


class SearchIntent(str, Enum):
    INFORMATIONAL = "informational"
    COMMERCIAL = "commercial"
    TRANSACTIONAL = "transactional"
    NAVIGATIONAL = "navigational"
    UNCLASSIFIED = "unclassified"


# Checked in order; the first matching intent wins
INTENT_RULES = {
    "transactional": [
        r"^(buy|download|get|install|subscribe|order|book|shop|purchase)$",
        r"^(try|start|join|unlock|upgrade)$",
        r"^(trial|discount|deal|coupon|offer|price|pricing)s?$",
    ],
    "commercial": [
        r"^(best|top|premium|pro|vs|versus|alternative|alternatives)$",
        r"^(review|reviews|rated|compare|comparison|ranking)$",
        r"^(fast|fastest|easy|easiest|ultimate|smart|powerful)$",
    ],
    "informational": [
        r"^(learn|learning|study|guide|guides|tutorial|tutorials|lesson|lessons)$",
        r"^(course|courses|tips|how|what|why|understand|practice|explained)$",
        r"^(grammar|vocabulary|pronunciation|facts|knowledge|education)$",
    ],
    "navigational": [
        r"^(login|signin|account|official|app|website|dashboard)$",
    ],
}

COMPILED_INTENT_RULES = {
    intent: [re.compile(pattern) for pattern in patterns]
    for intent, patterns in INTENT_RULES.items()
}


@dataclass(slots=True)
class IntentSignals:
    """Token counts per search intent for one piece of metadata."""

    informational: int = 0
    commercial: int = 0
    transactional: int = 0
    navigational: int = 0
    unclassified: int = 0

    @property
    def total(self) -> int:
        return (
            self.informational
            + self.commercial
            + self.transactional
            + self.navigational
            + self.unclassified
        )

    @property
    def classified_counts(self) -> dict[str, int]:
        """Counts for the four real intents, in a fixed order."""
        return {
            SearchIntent.INFORMATIONAL.value: self.informational,
            SearchIntent.COMMERCIAL.value: self.commercial,
            SearchIntent.TRANSACTIONAL.value: self.transactional,
            SearchIntent.NAVIGATIONAL.value: self.navigational,
        }

    def add(self, intent: SearchIntent) -> None:
        setattr(self, intent.value, getattr(self, intent.value) + 1)

    def to_dict(self) -> dict[str, Any]:
        return {**self.classified_counts, "unclassified": self.unclassified, "total": self.total}


def classify_token_intent(token: str, brand_words: Iterable[str] = ()) -> SearchIntent:
    """Label a single word with a search intent. Brand words are navigational."""
    lowered = token.lower()
    if lowered in set(brand_words):
        return SearchIntent.NAVIGATIONAL

    for intent, patterns in COMPILED_INTENT_RULES.items():
        if any(pattern.match(lowered) for pattern in patterns):
            return SearchIntent(intent)
    return SearchIntent.UNCLASSIFIED


def compute_intent_signals(words: Iterable[str], brand_words: Iterable[str] = ()) -> IntentSignals:
    """Count intents over a word sequence."""
    brand = {word.lower() for word in brand_words}
    signals = IntentSignals()
    for word in words:
        signals.add(classify_token_intent(word, brand))
    return signals
