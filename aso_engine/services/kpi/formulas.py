"""Raw-value formulas for every KPI, keyed by KPI id.

Formulas are pure functions of :class:`KpiPrimitives`, which are computed once
per evaluation. The word lists below are tuning parameters; changing one
changes KPI output and therefore needs a new registry version.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field, replace

from aso_engine.config import settings
from aso_engine.core.exceptions import ValidationError
from aso_engine.services.combos.analysis import analyze_combos, tokenize_metadata
from aso_engine.services.combos.brand import BrandMatcher
from aso_engine.services.combos.types import Combo, ComboAnalysis
from aso_engine.services.intent import IntentSignals, compute_intent_signals
from aso_engine.services.kpi.types import BrandSignals, KpiEngineInput
from aso_engine.services.tokenizer import (
    LANGUAGES,
    FieldRole,
    Token,
    analyze_text,
)

ACTION_VERBS = frozenset(
    {
        "learn", "master", "speak", "practice", "improve", "discover", "unlock",
        "transform", "achieve", "build", "create", "track", "save", "boost",
        "gain", "reach", "grow", "start", "get",
    }
)

BENEFIT_KEYWORDS = frozenset(
    {
        "free", "easy", "fast", "simple", "powerful", "advanced", "professional",
        "complete", "ultimate", "perfect", "quick", "effective", "proven",
        "guaranteed", "unlimited", "premium",
    }
)

URGENCY_WORDS = frozenset(
    {
        "now", "today", "instant", "instantly", "immediate", "immediately",
        "quick", "quickly", "fast", "rapid", "rapidly",
    }
)

SOCIAL_PROOF_WORDS = frozenset(
    {
        "million", "millions", "thousand", "thousands", "top", "best", "trusted",
        "popular", "leading", "rated", "award",
    }
)

HIGH_VALUE_RELEVANCE = 2
OVERBRANDING_RATIO = 0.7
REDUNDANCY_PENALTY_PER_TOKEN = 10


@dataclass(slots=True)
class KpiPrimitives:
    """Shared measurements every formula reads from."""

    title_char_count: int
    subtitle_char_count: int
    title_char_limit: int
    subtitle_char_limit: int
    title_words: list[str]
    subtitle_words: list[str]
    title_tokens: list[Token]
    subtitle_tokens: list[Token]
    title_noise_ratio: float
    subtitle_noise_ratio: float
    combo_analysis: ComboAnalysis
    brand_signals: BrandSignals
    intent_signals: IntentSignals
    metadata_combos: list[Combo] = field(default_factory=list)

    @property
    def title_keywords(self) -> list[str]:
        return [token.text for token in self.title_tokens]

    @property
    def subtitle_keywords(self) -> list[str]:
        return [token.text for token in self.subtitle_tokens]

    @property
    def all_words(self) -> list[str]:
        return [*self.title_words, *self.subtitle_words]

    @property
    def title_combos(self) -> list[Combo]:
        return [combo for combo in self.metadata_combos if combo.source_fields == (FieldRole.TITLE,)]

    @property
    def subtitle_combos(self) -> list[Combo]:
        return [combo for combo in self.metadata_combos if FieldRole.SUBTITLE in combo.source_fields]

    def high_value_title_keywords(self) -> set[str]:
        return {token.text for token in self.title_tokens if token.relevance >= HIGH_VALUE_RELEVANCE}

    def high_value_subtitle_incremental(self) -> set[str]:
        subtitle = {
            token.text for token in self.subtitle_tokens if token.relevance >= HIGH_VALUE_RELEVANCE
        }
        return subtitle - self.high_value_title_keywords()


def build_primitives(data: KpiEngineInput) -> KpiPrimitives:
    """Compute every measurement, filling in optional inputs from the text."""
    title = data.title or ""
    subtitle = data.subtitle or ""
    title_limit, subtitle_limit = settings.get_char_limits(data.platform)
    matcher = BrandMatcher(data.brand_name, data.brand_aliases)

    title_analysis = analyze_text(title)
    subtitle_analysis = analyze_text(subtitle)

    locale = resolve_input_locale(data)
    tokens = tokenize_metadata(
        title, subtitle, data.keywords, locale=locale, brand_matcher=matcher
    )
    if data.tokens_title is not None:
        tokens.title = _with_locale(data.tokens_title, locale)
    if data.tokens_subtitle is not None:
        tokens.subtitle = _with_locale(data.tokens_subtitle, locale)

    combo_analysis = data.combo_analysis
    if combo_analysis is None:
        combo_analysis = analyze_combos(
            title,
            subtitle,
            data.keywords,
            locale=locale,
            tokens=tokens,
            brand_matcher=matcher,
        )

    brand_signals = data.brand_signals or BrandSignals(
        brand_in_title=matcher.text_mentions_brand(title),
        brand_in_subtitle=matcher.text_mentions_brand(subtitle),
    )
    intent_signals = data.intent_signals or compute_intent_signals(
        [*title_analysis.all_tokens, *subtitle_analysis.all_tokens],
        matcher.brand_words,
    )

    return KpiPrimitives(
        title_char_count=len(title.strip()),
        subtitle_char_count=len(subtitle.strip()),
        title_char_limit=title_limit,
        subtitle_char_limit=subtitle_limit,
        title_words=title_analysis.all_tokens,
        subtitle_words=subtitle_analysis.all_tokens,
        title_tokens=tokens.title,
        subtitle_tokens=tokens.subtitle,
        title_noise_ratio=title_analysis.noise_ratio,
        subtitle_noise_ratio=subtitle_analysis.noise_ratio,
        combo_analysis=combo_analysis,
        brand_signals=brand_signals,
        intent_signals=intent_signals,
        metadata_combos=[
            combo
            for combo in combo_analysis.all_possible_combos
            if FieldRole.KEYWORDS not in combo.source_fields
        ],
    )


def resolve_input_locale(data: KpiEngineInput) -> str | None:
    """Locale shared by the input and any precomputed tokens.

    Tokens without a locale adopt the input locale, and an input without a
    locale adopts the one the tokens carry.

    Raises:
        ValidationError: If the input and its tokens name different locales.
    """
    locales = {data.locale} if data.locale is not None else set()
    for tokens in (data.tokens_title or (), data.tokens_subtitle or ()):
        locales.update(token.locale for token in tokens if token.locale is not None)
    if len(locales) > 1:
        raise ValidationError(
            f"Input locale {data.locale} conflicts with precomputed token locales {sorted(locales)}",
            details={"locale": data.locale, "token_locales": sorted(locales)},
        )
    return next(iter(locales), None)


def _with_locale(tokens: Sequence[Token], locale: str | None) -> list[Token]:
    return [token if token.locale == locale else replace(token, locale=locale) for token in tokens]


def _ratio(part: float, whole: float) -> float:
    return part / whole if whole else 0.0


def _count_in(words: list[str], vocabulary: frozenset[str]) -> int:
    return sum(1 for word in words if word in vocabulary)


def _log_scaled_signal(count: int) -> float:
    return min(100, round(math.log(count + 1) * 40))


def count_language_verb_pairs(words: list[str]) -> int:
    """Adjacent word pairs that join an action verb with a language."""
    pairs = 0
    for first, second in zip(words, words[1:]):
        has_language = first in LANGUAGES or second in LANGUAGES
        has_verb = first in ACTION_VERBS or second in ACTION_VERBS
        if has_language and has_verb:
            pairs += 1
    return pairs


def hook_strength(words: list[str], meaningful: list[str]) -> float:
    """0-100 score for how strongly a field opens with verbs and benefits."""
    if not words:
        return 0.0
    verbs = _count_in(words, ACTION_VERBS)
    benefits = _count_in(words, BENEFIT_KEYWORDS)
    score = min(verbs * 30, 50) + min(benefits * 20, 30)
    if meaningful:
        score += min((verbs + benefits) / len(meaningful) * 100, 20)
    return float(min(score, 100))


def specificity_score(p: KpiPrimitives) -> float:
    high_value = len(p.high_value_title_keywords()) + len(p.high_value_subtitle_incremental())
    pairs = count_language_verb_pairs(p.title_words)
    return float(min(high_value * 15, 60) + min(pairs * 20, 40))


def redundancy_penalty(p: KpiPrimitives) -> float:
    counts = Counter([*p.title_keywords, *p.subtitle_keywords])
    repeated = sum(1 for count in counts.values() if count > 1)
    return float(repeated * REDUNDANCY_PENALTY_PER_TOKEN)


def brand_combo_ratio(p: KpiPrimitives) -> float:
    combos = p.metadata_combos
    return _ratio(sum(1 for combo in combos if combo.is_brand), len(combos))


def generic_combo_ratio(p: KpiPrimitives) -> float:
    combos = p.metadata_combos
    return _ratio(sum(1 for combo in combos if not combo.is_brand), len(combos))


def low_value_combo_ratio(p: KpiPrimitives) -> float:
    combos = p.subtitle_combos
    low_value = sum(
        1
        for combo in combos
        if all(token.relevance < HIGH_VALUE_RELEVANCE for token in combo.keywords)
    )
    return _ratio(low_value, len(combos))


def intent_share(count: int, signals: IntentSignals) -> float:
    return _ratio(count, signals.total) * 100


def intent_balance(signals: IntentSignals) -> float:
    """Shannon entropy of the four intents, scaled to 0-100."""
    counts = [count for count in signals.classified_counts.values() if count > 0]
    total = sum(counts)
    if not total:
        return 0.0
    entropy = -sum((count / total) * math.log2(count / total) for count in counts)
    return float(round(entropy / math.log2(4) * 100))


def intent_diversity(signals: IntentSignals) -> float:
    present = sum(1 for count in signals.classified_counts.values() if count > 0)
    return float(round(present / 4 * 100))


def intent_gap_index(signals: IntentSignals) -> float:
    """Share of the discovery intents (navigational excluded) that are absent."""
    important = [signals.informational, signals.commercial, signals.transactional]
    missing = sum(1 for count in important if count == 0)
    return float(round(missing / 3 * 100))


KpiFormula = Callable[[KpiPrimitives], float]

KPI_FORMULAS: dict[str, KpiFormula] = {
    # Clarity & structure
    "title_char_usage": lambda p: min(100.0, _ratio(p.title_char_count, p.title_char_limit) * 100),
    "subtitle_char_usage": lambda p: min(
        100.0, _ratio(p.subtitle_char_count, p.subtitle_char_limit) * 100
    ),
    "title_word_count": lambda p: float(len(p.title_words)),
    "subtitle_word_count": lambda p: float(len(p.subtitle_words)),
    "title_token_density": lambda p: _ratio(len(p.title_keywords), len(p.title_words)),
    "subtitle_token_density": lambda p: _ratio(len(p.subtitle_keywords), len(p.subtitle_words)),
    # Keyword architecture
    "title_high_value_keyword_count": lambda p: float(len(p.high_value_title_keywords())),
    "subtitle_high_value_incremental_keywords": lambda p: float(
        len(p.high_value_subtitle_incremental())
    ),
    "title_noise_ratio": lambda p: p.title_noise_ratio,
    "subtitle_noise_ratio": lambda p: p.subtitle_noise_ratio,
    "title_combo_count_generic": lambda p: float(
        sum(1 for combo in p.title_combos if not combo.is_brand)
    ),
    "subtitle_combo_incremental_generic": lambda p: float(
        sum(1 for combo in p.subtitle_combos if not combo.is_brand)
    ),
    "subtitle_low_value_combo_ratio": low_value_combo_ratio,
    "title_semantic_keyword_pairs": lambda p: float(count_language_verb_pairs(p.title_words)),
    "total_unique_keyword_coverage": lambda p: float(
        len({*p.title_keywords, *p.subtitle_keywords})
    ),
    # Hook strength
    "hook_strength_title": lambda p: hook_strength(p.title_words, p.title_keywords),
    "hook_strength_subtitle": lambda p: hook_strength(p.subtitle_words, p.subtitle_keywords),
    "specificity_score": specificity_score,
    "benefit_density": lambda p: _ratio(_count_in(p.all_words, BENEFIT_KEYWORDS), len(p.all_words)),
    "redundancy_penalty": redundancy_penalty,
    # Brand vs generic
    "brand_presence_title": lambda p: float(p.brand_signals.brand_in_title),
    "brand_presence_subtitle": lambda p: float(p.brand_signals.brand_in_subtitle),
    "brand_combo_ratio": brand_combo_ratio,
    "generic_discovery_combo_ratio": generic_combo_ratio,
    "overbranding_indicator": lambda p: float(brand_combo_ratio(p) > OVERBRANDING_RATIO),
    # Psychology alignment
    "urgency_signal": lambda p: float(_log_scaled_signal(_count_in(p.all_words, URGENCY_WORDS))),
    "social_proof_signal": lambda p: float(
        _log_scaled_signal(_count_in(p.all_words, SOCIAL_PROOF_WORDS))
    ),
    "benefit_keyword_count": lambda p: float(_count_in(p.all_words, BENEFIT_KEYWORDS)),
    "action_verb_density": lambda p: _ratio(
        _count_in(p.all_words, ACTION_VERBS), len(p.title_keywords) + len(p.subtitle_keywords)
    ),
    # Intent alignment
    "informational_intent_coverage_score": lambda p: intent_share(
        p.intent_signals.informational, p.intent_signals
    ),
    "commercial_intent_coverage_score": lambda p: intent_share(
        p.intent_signals.commercial, p.intent_signals
    ),
    "transactional_intent_coverage_score": lambda p: intent_share(
        p.intent_signals.transactional, p.intent_signals
    ),
    # Navigational and unclassified tokens both count as noise
    "navigational_noise_ratio": lambda p: intent_share(
        p.intent_signals.navigational + p.intent_signals.unclassified, p.intent_signals
    ),
    "intent_balance_score": lambda p: intent_balance(p.intent_signals),
    "intent_diversity_score": lambda p: intent_diversity(p.intent_signals),
    "intent_gap_index": lambda p: intent_gap_index(p.intent_signals),
}
