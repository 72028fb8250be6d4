"""ASO-aware tokenization, stopword filtering and token relevance."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum


class FieldRole(str, Enum):
    """Metadata field a token was read from."""

    TITLE = "title"
    SUBTITLE = "subtitle"
    KEYWORDS = "keywords"


# Function words that never carry ranking value on their own
STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "been", "but", "by", "can",
        "could", "did", "do", "does", "for", "from", "had", "has", "have", "he",
        "in", "into", "is", "it", "its", "may", "might", "must", "of", "on", "or",
        "our", "over", "shall", "should", "so", "than", "that", "the", "their",
        "this", "to", "up", "was", "we", "were", "will", "with", "would", "you",
        "your",
    }
)

# Store-listing filler that the App Store ignores or that dilutes relevance
ASO_NOISE_WORDS = frozenset(
    {
        "app", "apps", "best", "free", "new", "top", "great", "good", "latest",
        "lite", "plus", "pro", "premium", "official", "one", "two", "three",
    }
)

LANGUAGES = frozenset(
    {
        "english", "spanish", "french", "german", "italian", "chinese", "japanese",
        "korean", "portuguese", "russian", "arabic", "hindi", "mandarin",
    }
)

CORE_INTENT_VERBS = frozenset(
    {
        "learn", "speak", "study", "master", "practice", "improve", "understand",
        "read", "write", "listen", "teach", "track", "plan", "edit", "scan",
    }
)

DOMAIN_NOUNS = frozenset(
    {
        "lesson", "lessons", "course", "courses", "class", "classes", "grammar",
        "vocabulary", "pronunciation", "conversation", "fluency", "language",
        "languages", "learning", "tutorial", "training", "education", "skill",
        "skills", "method", "techniques", "guide", "workout", "fitness", "budget",
        "finance", "recipes", "meditation", "sleep", "photo", "video", "music",
        "editor", "tracker", "planner", "scanner", "game", "puzzle", "habit",
    }
)

LOW_VALUE_PATTERN = re.compile(
    r"^(best|top|great|good|new|latest|free|premium|pro|plus|lite|\d+|one|two|three)$"
)
SEPARATOR_PATTERN = re.compile(r"[|–—\-:;,&/+_.!?()\[\]{}\"“”«»…]")
APOSTROPHE_PATTERN = re.compile(r"['’`]")
NON_WORD_PATTERN = re.compile(r"[^\w\s]", re.UNICODE)


@dataclass(slots=True, frozen=True)
class Token:
    """Normalized token read from one metadata field."""

    text: str
    relevance: int
    source_field: FieldRole
    position: int
    locale: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Serialize token to JSON-compatible dict."""
        return {
            "text": self.text,
            "relevance": self.relevance,
            "source_field": self.source_field.value,
            "position": self.position,
            "locale": self.locale,
        }


@dataclass(slots=True)
class TextAnalysis:
    """Split of raw tokens into keywords and ignored noise."""

    all_tokens: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    ignored: list[str] = field(default_factory=list)

    @property
    def noise_ratio(self) -> float:
        if not self.all_tokens:
            return 0.0
        return len(self.ignored) / len(self.all_tokens)


def tokenize_text(text: str | None) -> list[str]:
    """Lower-case text and split it into raw word tokens."""
    if not text:
        return []
    lowered = text.lower()
    lowered = APOSTROPHE_PATTERN.sub("", lowered)
    lowered = SEPARATOR_PATTERN.sub(" ", lowered)
    lowered = NON_WORD_PATTERN.sub(" ", lowered)
    return [part for part in lowered.split() if part]


def is_ignored_token(token: str, extra_stopwords: Iterable[str] = ()) -> bool:
    """Return True for stopwords, ASO filler, numbers and single characters."""
    if len(token) < 2 or token.isdigit():
        return True
    if token in STOPWORDS or token in ASO_NOISE_WORDS:
        return True
    return token in set(extra_stopwords)


def analyze_text(text: str | None, extra_stopwords: Iterable[str] = ()) -> TextAnalysis:
    """Tokenize text and separate meaningful keywords from ignored tokens."""
    extra = {word.lower() for word in extra_stopwords}
    analysis = TextAnalysis(all_tokens=tokenize_text(text))
    for token in analysis.all_tokens:
        if is_ignored_token(token, extra):
            analysis.ignored.append(token)
        else:
            analysis.keywords.append(token)
    return analysis


def get_token_relevance(token: str, overrides: Mapping[str, int] | None = None) -> int:
    """Score a token on the 0 (noise) .. 3 (core term) relevance scale."""
    lowered = token.lower()
    if overrides and lowered in overrides:
        return max(0, min(3, int(overrides[lowered])))

    if LOW_VALUE_PATTERN.match(lowered) or lowered in STOPWORDS:
        return 0
    if lowered in LANGUAGES or lowered in CORE_INTENT_VERBS:
        return 3
    if lowered in DOMAIN_NOUNS:
        return 2
    return 1


def tokenize(
    text: str | None,
    field_role: FieldRole,
    *,
    locale: str | None = None,
    relevance_overrides: Mapping[str, int] | None = None,
    extra_stopwords: Iterable[str] = (),
) -> list[Token]:
    """Produce ordered, stopword-free tokens for one metadata field.

    Positions refer to the raw token stream so callers can tell whether two
    kept tokens were adjacent in the original text.
    """
    extra = {word.lower() for word in extra_stopwords}
    tokens: list[Token] = []
    for position, raw in enumerate(tokenize_text(text)):
        if is_ignored_token(raw, extra):
            continue
        tokens.append(
            Token(
                text=raw,
                relevance=get_token_relevance(raw, relevance_overrides),
                source_field=field_role,
                position=position,
                locale=locale,
            )
        )
    return tokens
