"""Heuristic recovery of scores and narrative from free-text LLM output.

Used when a response is not parseable as a JSON object even after fence
stripping.  Each concern is a separate extractor so it can be exercised
against fixed text fixtures:

- :data:`SCORE_PATTERNS` -- ranked regex strategies for a metric's score.
- :func:`extract_confidence` -- the declared confidence, with a default.
- :func:`extract_feedback` / :func:`extract_strengths` /
  :func:`extract_weaknesses` / :func:`extract_recommendations` --
  bullet/sentence fragments, labelled sections, keyword classification.
- :func:`fallback_score` -- deterministic sentiment estimate used when no
  score can be read at all.

Nothing here raises on odd input; every extractor returns a populated value.
"""

import re
from collections.abc import Callable

from pydantic import BaseModel

from grading_consensus.consensus.numeric import clamp_score, coerce_number
from grading_consensus.models.agent import Metric
from grading_consensus.policy import (
    DEFAULT_METRIC_CONFIDENCE,
    DEFAULT_REPORT_TEXT_CONFIDENCE,
    FEEDBACK_MIN_LENGTH,
    HEURISTIC_BASE_SCORE,
    HEURISTIC_FEEDBACK_BONUS,
    HEURISTIC_FEEDBACK_LENGTH,
    HEURISTIC_NEGATIVE_DECREMENT,
    HEURISTIC_POSITIVE_INCREMENT,
    HEURISTIC_SCORE_MAX,
    HEURISTIC_SCORE_MIN,
    HEURISTIC_STRENGTHS_BONUS,
    HEURISTIC_STRENGTHS_LENGTH,
    ITEM_MIN_LENGTH,
    MAX_FEEDBACK_ITEMS,
    MAX_RECOMMENDATION_ITEMS,
    MAX_STRENGTH_ITEMS,
    MAX_WEAKNESS_ITEMS,
    NEGATIVE_WORDS,
    PLACEHOLDER_FEEDBACK,
    PLACEHOLDER_REASONING,
    PLACEHOLDER_RECOMMENDATION,
    PLACEHOLDER_STRENGTH,
    PLACEHOLDER_WEAKNESS,
    POSITIVE_WORDS,
    RECOMMENDATION_KEYWORDS,
    STRENGTH_KEYWORDS,
    WEAKNESS_KEYWORDS,
)

_NUMBER = r"(\d+(?:\.\d+)?)"

# ---------------------------------------------------------------------------
# Score extraction
# ---------------------------------------------------------------------------

ScorePattern = Callable[[Metric], re.Pattern[str]]


def _quoted_key(metric: Metric) -> re.Pattern[str]:
    return re.compile(rf'"{re.escape(metric.key)}"\s*:\s*"?{_NUMBER}', re.IGNORECASE)


def _name_value(metric: Metric) -> re.Pattern[str]:
    return re.compile(rf"{re.escape(metric.name)}[:\s]*{_NUMBER}")


def _out_of_100(metric: Metric) -> re.Pattern[str]:
    return re.compile(
        rf"{_NUMBER}\s*(?:out of 100|/\s*100)\s*(?:(?:for|in|on)\s+)?(?:the\s+)?"
        rf"{re.escape(metric.name)}",
        re.IGNORECASE,
    )


def _lowercase_name_value(metric: Metric) -> re.Pattern[str]:
    return re.compile(rf"{re.escape(metric.name.lower())}[:\s]*{_NUMBER}", re.IGNORECASE)


# Priority order: first pattern that matches wins.
SCORE_PATTERNS: list[tuple[str, ScorePattern]] = [
    ("quoted_key", _quoted_key),
    ("name_value", _name_value),
    ("out_of_100", _out_of_100),
    ("lowercase_name_value", _lowercase_name_value),
]

_CONSENSUS_SCORE_RE = re.compile(
    rf'"?consensus[_\s]?score"?\s*[:=]\s*"?{_NUMBER}', re.IGNORECASE
)


def match_score(text: str, metric: Metric) -> int | None:
    """Return the first score found for *metric* by :data:`SCORE_PATTERNS`."""
    for _name, build in SCORE_PATTERNS:
        match = build(metric).search(text)
        if match:
            number = coerce_number(match.group(1))
            if number is not None:
                return clamp_score(number)
    return None


def extract_score(
    text: str,
    metric: Metric,
    feedback: str = "",
    strengths: str = "",
    improvements: str = "",
) -> tuple[int, bool]:
    """Extract *metric*'s score from *text*, estimating it if absent.

    Returns:
        ``(score, estimated)`` where *estimated* is ``True`` when the score
        came from :func:`fallback_score` rather than the text.
    """
    score = match_score(text, metric)
    if score is not None:
        return score, False
    return fallback_score(feedback or text, strengths, improvements), True


# ---------------------------------------------------------------------------
# Confidence extraction
# ---------------------------------------------------------------------------

_CONFIDENCE_RE = re.compile(r"confidence[:\s]*([0-9]+)", re.IGNORECASE)


def extract_confidence(text: str, default: int = DEFAULT_METRIC_CONFIDENCE) -> int:
    match = _CONFIDENCE_RE.search(text)
    if match is None:
        return default
    number = coerce_number(match.group(1))
    return default if number is None else clamp_score(number)


# ---------------------------------------------------------------------------
# Fragment splitting and classification
# ---------------------------------------------------------------------------

_BULLET_SPLIT_RE = re.compile(r"(?:\n|^)\s*(?:\d+\.|•|-|\*)\s*")
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")

_SECTION_LABELS: dict[str, str] = {
    "strengths": r"strengths?|positives?",
    "weaknesses": (
        r"weakness(?:es)?|negatives?|areas?\s+(?:for|of)\s+improvement|improvements?"
    ),
    "recommendations": r"recommendations?|suggestions?|next\s+steps",
}
_ANY_LABEL = "|".join(_SECTION_LABELS.values())


def split_fragments(text: str, min_length: int = FEEDBACK_MIN_LENGTH) -> list[str]:
    """Split *text* on bullet/numbering markers, or on sentences.

    Sentence splitting is used when the text has no list structure (at most
    one bullet-delimited fragment survives).  Fragments shorter than
    *min_length* are dropped.
    """
    parts = [p.strip() for p in _BULLET_SPLIT_RE.split(text)]
    fragments = [p for p in parts if len(p) >= min_length]
    if len(fragments) <= 1:
        sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text.strip())]
        fragments = [s for s in sentences if len(s) >= min_length]
    return fragments


def extract_section(text: str, category: str) -> str | None:
    """Return the body of a ``<Label>:`` section, up to the next label."""
    label = _SECTION_LABELS[category]
    pattern = re.compile(
        rf"\b(?:{label})\s*\**\s*:\s*(.*?)(?=\b(?:{_ANY_LABEL})\s*\**\s*:|\Z)",
        re.IGNORECASE | re.DOTALL,
    )
    match = pattern.search(text)
    if match is None:
        return None
    body = match.group(1).strip()
    return body or None


def _contains_any(fragment: str, keywords: tuple[str, ...]) -> bool:
    lowered = fragment.lower()
    return any(keyword in lowered for keyword in keywords)


def _classified(
    text: str,
    category: str,
    keywords: tuple[str, ...],
    limit: int,
    placeholder: str,
) -> list[str]:
    section = extract_section(text, category)
    if section is not None:
        items = split_fragments(section, FEEDBACK_MIN_LENGTH)
    else:
        items = [
            fragment
            for fragment in split_fragments(text, ITEM_MIN_LENGTH)
            if _contains_any(fragment, keywords)
        ]
    return items[:limit] or [placeholder]


def extract_feedback(text: str, limit: int = MAX_FEEDBACK_ITEMS) -> list[str]:
    return split_fragments(text, FEEDBACK_MIN_LENGTH)[:limit] or [PLACEHOLDER_FEEDBACK]


def extract_strengths(text: str, limit: int = MAX_STRENGTH_ITEMS) -> list[str]:
    return _classified(text, "strengths", STRENGTH_KEYWORDS, limit, PLACEHOLDER_STRENGTH)


def extract_weaknesses(text: str, limit: int = MAX_WEAKNESS_ITEMS) -> list[str]:
    return _classified(text, "weaknesses", WEAKNESS_KEYWORDS, limit, PLACEHOLDER_WEAKNESS)


def extract_recommendations(text: str, limit: int = MAX_RECOMMENDATION_ITEMS) -> list[str]:
    return _classified(
        text,
        "recommendations",
        RECOMMENDATION_KEYWORDS,
        limit,
        PLACEHOLDER_RECOMMENDATION,
    )


# ---------------------------------------------------------------------------
# Fallback-score heuristic
# ---------------------------------------------------------------------------


def _count_words(text: str, words: tuple[str, ...]) -> int:
    return sum(1 for word in words if re.search(rf"\b{word}\b", text))


def fallback_score(feedback: str, strengths: str = "", improvements: str = "") -> int:
    """Estimate a score from the tone of the evaluator's text.

    Starts at the base score, adds a fixed increment for each positive word
    present in feedback + strengths, subtracts a fixed decrement for each
    negative word present in feedback + improvements, adds small bonuses for
    long feedback / strengths text, and clamps to the heuristic range.
    Deterministic for identical input.
    """
    positive_text = f"{feedback} {strengths}".lower()
    negative_text = f"{feedback} {improvements}".lower()

    score = HEURISTIC_BASE_SCORE
    score += HEURISTIC_POSITIVE_INCREMENT * _count_words(positive_text, POSITIVE_WORDS)
    score -= HEURISTIC_NEGATIVE_DECREMENT * _count_words(negative_text, NEGATIVE_WORDS)
    if len(feedback) > HEURISTIC_FEEDBACK_LENGTH:
        score += HEURISTIC_FEEDBACK_BONUS
    if len(strengths) > HEURISTIC_STRENGTHS_LENGTH:
        score += HEURISTIC_STRENGTHS_BONUS
    return clamp_score(score, HEURISTIC_SCORE_MIN, HEURISTIC_SCORE_MAX)


# ---------------------------------------------------------------------------
# Composite extractors
# ---------------------------------------------------------------------------


def extract_agent_result(text: str, metrics: list[Metric]) -> dict:
    """Recover a raw agent result from prose, ready for normalization.

    Every metric gets a score; heuristic estimates are listed under
    ``estimatedScores`` so the normalizer and engine can tell them apart.
    """
    feedback = extract_feedback(text)
    strengths = extract_strengths(text)
    weaknesses = extract_weaknesses(text)
    scores: dict[str, int] = {}
    estimated: list[str] = []
    for metric in metrics:
        score, was_estimated = extract_score(
            text, metric, " ".join(feedback), " ".join(strengths), " ".join(weaknesses)
        )
        scores[metric.key] = score
        if was_estimated:
            estimated.append(metric.key)
    return {
        "scores": scores,
        "estimatedScores": estimated,
        "confidence": extract_confidence(text, DEFAULT_REPORT_TEXT_CONFIDENCE),
        "feedback": feedback,
        "strengths": strengths,
        "weaknesses": weaknesses,
        "recommendations": extract_recommendations(text),
        "reasoning": text.strip() or PLACEHOLDER_REASONING,
    }


class ExtractedConsensus(BaseModel):
    """Metric-level consensus pieces recovered from oracle prose."""

    score: int
    score_estimated: bool
    confidence: int
    feedback: list[str]
    strengths: list[str]
    weaknesses: list[str]
    recommendations: list[str]


def extract_metric_consensus(text: str, metric: Metric) -> ExtractedConsensus:
    """Recover a single-metric consensus from unstructured oracle output.

    A ``consensusScore`` mention is preferred; otherwise the metric's own
    :data:`SCORE_PATTERNS` apply, then the heuristic.
    """
    feedback = extract_feedback(text)
    strengths = extract_strengths(text)
    weaknesses = extract_weaknesses(text)

    match = _CONSENSUS_SCORE_RE.search(text)
    stated = coerce_number(match.group(1)) if match is not None else None
    if stated is not None:
        score, estimated = clamp_score(stated), False
    else:
        score, estimated = extract_score(
            text, metric, " ".join(feedback), " ".join(strengths), " ".join(weaknesses)
        )

    return ExtractedConsensus(
        score=score,
        score_estimated=estimated,
        confidence=extract_confidence(text, DEFAULT_METRIC_CONFIDENCE),
        feedback=feedback,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=extract_recommendations(text),
    )
