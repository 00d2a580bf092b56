"""Coercion of untrusted agent and oracle output into complete models.

:func:`normalize_agent_result` is total: whatever an agent returned (a
dict with wrong types, a bare string, ``None``), the result is a fully
populated :class:`AgentResult` with a score for every requested metric.

:func:`validate_oracle_consensus` and :func:`validate_oracle_metric_consensus`
do the same for an oracle's parsed consensus JSON, cross-checking omitted
metric scores against the agents' own scores.
"""

from collections.abc import Sequence
from statistics import mean

from grading_consensus.consensus.numeric import clamp_score, coerce_number
from grading_consensus.consensus.text_extraction import fallback_score
from grading_consensus.models.agent import AgentResult, Metric, lookup_score, metric_key
from grading_consensus.models.consensus import (
    ConsensusResult,
    ConsensusSource,
    MetricConsensus,
)
from grading_consensus.policy import (
    DEFAULT_AGENT_CONFIDENCE,
    DEFAULT_ORACLE_CONFIDENCE,
    NEUTRAL_SCORE,
    PLACEHOLDER_AGREEMENT,
    PLACEHOLDER_FEEDBACK,
    PLACEHOLDER_META_FEEDBACK,
    PLACEHOLDER_ORACLE_METHODOLOGY,
    PLACEHOLDER_REASONING,
)


def _first(raw: dict, *names: str) -> object | None:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return None


def _string_list(value: object) -> list[str] | None:
    """Coerce *value* to a list of non-empty strings, or ``None`` if unusable."""
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return None


def _bounded(value: object, default: int) -> int:
    number = coerce_number(value)
    return default if number is None else clamp_score(number)


def normalize_agent_result(
    raw: object,
    metrics: Sequence[Metric],
    agent_id: str = "",
) -> AgentResult:
    """Coerce one agent's raw output into a complete :class:`AgentResult`.

    Args:
        raw: Parsed agent output.  Anything that is not a dict is treated as
            an empty result (a string is kept as the reasoning text).
        metrics: Metrics that must all receive a score.
        agent_id: Identifier used when *raw* does not carry ``agentId``.

    Returns:
        An ``AgentResult`` whose ``scores`` covers every metric in *metrics*.
        Scores that could not be read are estimated with
        :func:`fallback_score` and listed in ``estimated_scores``.
    """
    if isinstance(raw, AgentResult):
        raw = raw.model_dump(by_alias=True)
    if isinstance(raw, str):
        raw = {"reasoning": raw}
    if not isinstance(raw, dict):
        raw = {}

    feedback = _string_list(raw.get("feedback"))
    if not feedback:
        feedback = [PLACEHOLDER_FEEDBACK]
    strengths = _string_list(raw.get("strengths")) or []
    weaknesses = _string_list(_first(raw, "weaknesses", "improvements")) or []
    recommendations = _string_list(raw.get("recommendations")) or []

    reasoning = raw.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = PLACEHOLDER_REASONING

    declared_estimates = _string_list(_first(raw, "estimatedScores", "estimated_scores")) or []
    raw_scores = raw.get("scores")
    if raw_scores is None and "score" in raw and len(metrics) == 1:
        # Single-metric evaluations carry a bare ``score``.
        raw_scores = {metrics[0].key: raw["score"]}
    scores: dict[str, int] = {}
    estimated: list[str] = []
    for metric in metrics:
        number = coerce_number(lookup_score(raw_scores, metric))
        if number is None:
            scores[metric.key] = fallback_score(
                " ".join(feedback),
                " ".join(strengths),
                " ".join(weaknesses),
            )
            estimated.append(metric.key)
        else:
            scores[metric.key] = clamp_score(number)
            if metric.key in {metric_key(k) for k in declared_estimates}:
                estimated.append(metric.key)

    resolved_id = _first(raw, "agentId", "agent_id")
    return AgentResult(
        agent_id=str(resolved_id) if resolved_id is not None else agent_id,
        scores=scores,
        confidence=_bounded(raw.get("confidence"), DEFAULT_AGENT_CONFIDENCE),
        feedback=feedback,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        reasoning=reasoning,
        is_primary=_first(raw, "isPrimary", "is_primary") is True,
        estimated_scores=estimated,
    )


def normalize_agent_results(
    raw_results: object,
    metrics: Sequence[Metric],
) -> list[AgentResult]:
    """Normalize an ``agentResults`` mapping (id -> raw) or list of raw results.

    Raises:
        TypeError: If *raw_results* is neither a mapping nor a list.
    """
    if isinstance(raw_results, dict):
        return [
            normalize_agent_result(raw, metrics, agent_id=str(agent_id))
            for agent_id, raw in raw_results.items()
        ]
    if isinstance(raw_results, (list, tuple)):
        return [
            normalize_agent_result(raw, metrics, agent_id=f"agent_{index + 1}")
            for index, raw in enumerate(raw_results)
        ]
    msg = f"agent results must be a mapping or a list, got {type(raw_results).__name__}"
    raise TypeError(msg)


# ---------------------------------------------------------------------------
# Oracle output validation
# ---------------------------------------------------------------------------


def has_numeric_scores(response: dict, metrics: Sequence[Metric]) -> bool:
    """Whether an oracle response carries at least one usable consensus score."""
    scores = response.get("consensusScores")
    if not isinstance(scores, dict):
        return False
    return any(coerce_number(lookup_score(scores, m)) is not None for m in metrics)


def _agent_mean(results: Sequence[AgentResult], metric: Metric) -> int:
    values = [s for s in (r.score_for(metric) for r in results) if s is not None]
    return clamp_score(mean(values)) if values else NEUTRAL_SCORE


def validate_oracle_consensus(
    response: dict,
    results: Sequence[AgentResult],
    metrics: Sequence[Metric],
) -> ConsensusResult:
    """Turn a parsed oracle consensus into a complete :class:`ConsensusResult`.

    Scores are clamped and rounded; a metric the oracle omitted (or scored
    with a non-number) takes the rounded mean of the agents' scores.
    Narrative fields missing from the response get documented defaults, and
    an empty agreements list gets the general-alignment placeholder.
    """
    oracle_scores = response.get("consensusScores")
    consensus_scores: dict[str, int] = {}
    for metric in metrics:
        number = coerce_number(lookup_score(oracle_scores, metric))
        if number is None:
            consensus_scores[metric.key] = _agent_mean(results, metric)
        else:
            consensus_scores[metric.key] = clamp_score(number)

    agreements = _string_list(response.get("agreements")) or []
    meta_feedback = response.get("metaFeedback")
    methodology = response.get("methodology")
    return ConsensusResult(
        consensus_scores=consensus_scores,
        agreements=agreements or [PLACEHOLDER_AGREEMENT],
        disagreements=_string_list(response.get("disagreements")) or [],
        confidence=_bounded(response.get("confidence"), DEFAULT_ORACLE_CONFIDENCE),
        flags_for_review=_string_list(response.get("flagsForReview")) or [],
        meta_feedback=meta_feedback
        if isinstance(meta_feedback, str) and meta_feedback.strip()
        else PLACEHOLDER_META_FEEDBACK,
        methodology=methodology
        if isinstance(methodology, str) and methodology.strip()
        else PLACEHOLDER_ORACLE_METHODOLOGY,
        source=ConsensusSource.ORACLE,
    )


def validate_oracle_metric_consensus(
    response: dict,
    metric: Metric,
    fallback: MetricConsensus,
) -> MetricConsensus:
    """Merge a parsed metric-level oracle answer over the statistical *fallback*.

    The caller guarantees ``consensusScore`` is numeric.  Narrative fields
    the oracle left out are taken from *fallback*, so the result is always
    complete.
    """
    score = clamp_score(coerce_number(response.get("consensusScore")))

    def _list(name: str, default: list[str]) -> list[str]:
        values = _string_list(response.get(name))
        return values if values else default

    feedback = response.get("synthesizedFeedback")
    methodology = response.get("methodology")
    return MetricConsensus(
        metric=metric.name,
        consensus_score=score,
        agreements=_list("agreements", fallback.agreements),
        disagreements=_list("disagreements", fallback.disagreements),
        confidence=_bounded(response.get("confidence"), fallback.confidence),
        flags_for_review=_list("flagsForReview", fallback.flags_for_review),
        synthesized_feedback=feedback
        if isinstance(feedback, str) and feedback.strip()
        else fallback.synthesized_feedback,
        methodology=methodology
        if isinstance(methodology, str) and methodology.strip()
        else PLACEHOLDER_ORACLE_METHODOLOGY,
        key_strengths=_list("keyStrengths", fallback.key_strengths),
        key_weaknesses=_list("keyWeaknesses", fallback.key_weaknesses),
        priority_recommendations=_list(
            "priorityRecommendations", fallback.priority_recommendations
        ),
        source=ConsensusSource.ORACLE,
        statistics=fallback.statistics,
    )
