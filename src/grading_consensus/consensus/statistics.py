"""Deterministic statistical consensus over agent scores.

This is both the fallback when the oracle cannot be used and a supported
mode in its own right.  It is pure Python arithmetic: identical inputs
always produce identical outputs.
"""

from collections.abc import Iterable, Sequence
from statistics import mean, median

from grading_consensus.consensus.numeric import clamp, clamp_score, round_half_up
from grading_consensus.models.agent import AgentResult, Metric
from grading_consensus.models.consensus import (
    AgreementLevel,
    ConsensusResult,
    ConsensusSource,
    MetricConsensus,
    MetricStatistics,
)
from grading_consensus.policy import (
    AGREEMENT_CONFIDENCE_FACTOR,
    BASE_CONFIDENCE,
    CONFIDENCE_CEILING,
    CONFIDENCE_FLOOR,
    DEFAULT_AGENT_CONFIDENCE,
    FLAG_CONFIDENCE_PENALTY,
    LOW_AGENT_COUNT_PENALTY,
    MAX_KEY_STRENGTHS,
    MAX_KEY_WEAKNESSES,
    MAX_PRIORITY_RECOMMENDATIONS,
    MEAN_WEIGHT,
    MEDIAN_WEIGHT,
    MIN_AGENTS_FOR_QUALITY,
    MODERATE_AGREEMENT_RANGE,
    NEUTRAL_SCORE,
    NOTICEABLE_DISAGREEMENT_RANGE,
    PLACEHOLDER_AGREEMENT,
    PRIMARY_WEIGHT,
    REVIEW_SCORE_FLOOR,
    STRONG_AGREEMENT_RANGE,
    SUPPORTING_WEIGHT,
)


def _fmt(value: float) -> str:
    return f"{value:g}"


def _dedupe(groups: Iterable[Sequence[str]], limit: int) -> list[str]:
    """First *limit* distinct items across *groups*, in order of appearance."""
    seen: set[str] = set()
    unique: list[str] = []
    for group in groups:
        for item in group:
            marker = item.strip().casefold()
            if not marker or marker in seen:
                continue
            seen.add(marker)
            unique.append(item.strip())
            if len(unique) == limit:
                return unique
    return unique


class StatisticalConsensus:
    """Reconcile agent scores without any external oracle.

    All methods are classmethods.  No instance state is needed.
    """

    @classmethod
    def classify(cls, score_range: float) -> AgreementLevel:
        """Map a score range onto an agreement bucket."""
        if score_range <= STRONG_AGREEMENT_RANGE:
            return AgreementLevel.STRONG
        if score_range <= MODERATE_AGREEMENT_RANGE:
            return AgreementLevel.MODERATE
        if score_range <= NOTICEABLE_DISAGREEMENT_RANGE:
            return AgreementLevel.NOTICEABLE
        return AgreementLevel.SIGNIFICANT

    @classmethod
    def resolved_scores(
        cls,
        results: Sequence[AgentResult],
        metric: Metric,
    ) -> list[int | None]:
        """One score per result for *metric*, ``None`` where it is unusable.

        Heuristic estimates only stand in when no result states a score for
        *metric* explicitly.
        """
        stated = any(
            r.score_for(metric) is not None and not r.is_estimated(metric)
            for r in results
        )
        return [
            None if stated and r.is_estimated(metric) else r.score_for(metric)
            for r in results
        ]

    @classmethod
    def analyze_metric(
        cls,
        results: Sequence[AgentResult],
        metric: Metric,
        *,
        fill_missing: bool = True,
    ) -> MetricStatistics:
        """Collect one score per agent for *metric* and describe the spread.

        Args:
            results: Contributing agent results.
            metric: The metric to analyze.
            fill_missing: When ``True`` an agent without a score contributes
                the neutral placeholder; otherwise it is left out, as are
                estimated scores outvoted by stated ones
                (see :meth:`resolved_scores`).

        Returns:
            :class:`MetricStatistics`.  With no resolvable score at all the
            agreement is ``NO_DATA`` and every statistic is the neutral score.
        """
        if fill_missing:
            scores = [r.score_for(metric) for r in results]
        else:
            scores = cls.resolved_scores(results, metric)

        values: list[float] = []
        missing = 0
        estimated = 0
        for result, score in zip(results, scores):
            if score is None:
                missing += 1
                if fill_missing:
                    values.append(NEUTRAL_SCORE)
                continue
            values.append(score)
            if result.is_estimated(metric):
                estimated += 1

        if missing == len(results):
            return MetricStatistics(
                metric=metric.name,
                scores=[],
                mean=NEUTRAL_SCORE,
                median=NEUTRAL_SCORE,
                minimum=NEUTRAL_SCORE,
                maximum=NEUTRAL_SCORE,
                range=0,
                agreement=AgreementLevel.NO_DATA,
                missing=missing,
                estimated=0,
            )

        low, high = min(values), max(values)
        return MetricStatistics(
            metric=metric.name,
            scores=values,
            mean=mean(values),
            median=median(values),
            minimum=low,
            maximum=high,
            range=high - low,
            agreement=cls.classify(high - low),
            missing=missing,
            estimated=estimated,
        )

    # ------------------------------------------------------------------
    # Shared classification / flagging
    # ------------------------------------------------------------------

    @classmethod
    def describe(
        cls,
        stats: MetricStatistics,
        score: int,
        agreements: list[str],
        disagreements: list[str],
        flags: list[str],
        *,
        placeholder_used: bool = True,
    ) -> None:
        """Append the agreement line and review flags for one metric."""
        name = stats.metric
        spread = _fmt(stats.range)
        listed = ", ".join(_fmt(s) for s in stats.scores)

        if stats.agreement is AgreementLevel.NO_DATA:
            flags.append(f"No valid scores found for {name}")
            return
        if stats.agreement is AgreementLevel.STRONG:
            agreements.append(
                f"Strong agreement on {name} (range: {spread} points, consensus: {score}%)"
            )
        elif stats.agreement is AgreementLevel.MODERATE:
            agreements.append(
                f"Moderate agreement on {name} (range: {spread} points, consensus: {score}%)"
            )
        elif stats.agreement is AgreementLevel.NOTICEABLE:
            disagreements.append(
                f"Noticeable disagreement on {name} (range: {spread} points, scores: {listed})"
            )
        else:
            disagreements.append(
                f"Significant disagreement on {name} (range: {spread} points, scores: {listed})"
            )
            flags.append(f"Large score variance in {name} requires human review")

        if stats.missing and placeholder_used:
            flags.append(
                f"{stats.missing} evaluator(s) did not score {name}; "
                f"neutral placeholder of {NEUTRAL_SCORE} used"
            )
        elif stats.missing:
            flags.append(
                f"{stats.missing} evaluation(s) for {name} had no usable score "
                f"and were excluded"
            )
        if score < REVIEW_SCORE_FLOOR:
            flags.append(
                f"{name} consensus score of {score} is below the review "
                f"threshold of {REVIEW_SCORE_FLOOR}"
            )

    # ------------------------------------------------------------------
    # Report-level
    # ------------------------------------------------------------------

    @classmethod
    def blend(cls, stats: MetricStatistics) -> int:
        """Mean/median blend of one metric's scores, clamped to [0, 100]."""
        if stats.agreement is AgreementLevel.NO_DATA:
            return NEUTRAL_SCORE
        return clamp_score(MEAN_WEIGHT * stats.mean + MEDIAN_WEIGHT * stats.median)

    @classmethod
    def aggregate_confidence(
        cls,
        n_agreements: int,
        n_disagreements: int,
        n_flags: int,
        n_agents: int,
    ) -> int:
        """Overall confidence for a report-level consensus.

        Base confidence, shifted by how many metrics agreed, penalized per
        review flag and when fewer than the minimum number of agents
        contributed, then clamped.
        """
        classified = n_agreements + n_disagreements
        ratio = n_agreements / classified if classified else 0.5
        quality = -LOW_AGENT_COUNT_PENALTY if n_agents < MIN_AGENTS_FOR_QUALITY else 0
        raw = (
            BASE_CONFIDENCE
            + AGREEMENT_CONFIDENCE_FACTOR * (ratio - 0.5)
            - FLAG_CONFIDENCE_PENALTY * n_flags
            + quality
        )
        return round_half_up(clamp(raw, CONFIDENCE_FLOOR, CONFIDENCE_CEILING))

    @classmethod
    def reconcile(
        cls,
        results: Sequence[AgentResult],
        metrics: Sequence[Metric],
    ) -> ConsensusResult:
        """Report-level consensus: every agent weighted equally per metric.

        Metric weights are not consulted, and need not sum to 100; each
        metric is reconciled on its own.
        """
        consensus_scores: dict[str, int] = {}
        statistics: dict[str, MetricStatistics] = {}
        agreements: list[str] = []
        disagreements: list[str] = []
        flags: list[str] = []
        estimated_total = 0

        for metric in metrics:
            stats = cls.analyze_metric(results, metric)
            score = cls.blend(stats)
            consensus_scores[metric.key] = score
            statistics[metric.key] = stats
            estimated_total += stats.estimated
            cls.describe(stats, score, agreements, disagreements, flags)

        confidence = cls.aggregate_confidence(
            len(agreements), len(disagreements), len(flags), len(results)
        )

        meta = (
            f"Consensus reached through statistical analysis. "
            f"{len(agreements)} areas of agreement, "
            f"{len(disagreements)} areas of disagreement. "
        )
        meta += (
            "Some areas flagged for review."
            if flags
            else "No major concerns identified."
        )
        if estimated_total:
            meta += (
                f" {estimated_total} agent score(s) were estimated from "
                f"feedback text rather than stated explicitly."
            )

        methodology = (
            f"Weighted average of agent scores ({MEAN_WEIGHT:.0%} mean, "
            f"{MEDIAN_WEIGHT:.0%} median) across {len(results)} agent(s), "
            f"with outlier detection and range-based agreement analysis "
            f"(strong <= {STRONG_AGREEMENT_RANGE}, moderate <= "
            f"{MODERATE_AGREEMENT_RANGE}, noticeable <= "
            f"{NOTICEABLE_DISAGREEMENT_RANGE} points)"
        )

        return ConsensusResult(
            consensus_scores=consensus_scores,
            agreements=agreements or [PLACEHOLDER_AGREEMENT],
            disagreements=disagreements,
            confidence=confidence,
            flags_for_review=flags,
            meta_feedback=meta,
            methodology=methodology,
            source=ConsensusSource.STATISTICAL,
            statistics=statistics,
        )

    # ------------------------------------------------------------------
    # Metric-level (primary + supporting evaluators)
    # ------------------------------------------------------------------

    @classmethod
    def weighted_score(
        cls,
        results: Sequence[AgentResult],
        metric: Metric,
    ) -> tuple[int, str]:
        """Primary/supporting weighting for one metric.

        The first result marked ``is_primary`` that has a score carries
        :data:`PRIMARY_WEIGHT`; the remaining scored results share
        :data:`SUPPORTING_WEIGHT` equally.  A primary with no supporters
        counts in full.  Without a scored primary the resolvable scores are
        pooled with equal weight.  Scores are resolved by
        :meth:`resolved_scores`.

        Returns:
            ``(score, methodology)``.
        """
        scored = [
            (result, score)
            for result, score in zip(results, cls.resolved_scores(results, metric))
            if score is not None
        ]
        primary_score: int | None = None
        supporting: list[int] = []
        for result, score in scored:
            if result.is_primary and primary_score is None:
                primary_score = score
            else:
                supporting.append(score)

        if primary_score is not None:
            if not supporting:
                return (
                    clamp_score(primary_score),
                    f"Primary evaluator score used in full (no supporting "
                    f"evaluations for {metric.name})",
                )
            share = SUPPORTING_WEIGHT / len(supporting)
            blended = PRIMARY_WEIGHT * primary_score + sum(share * s for s in supporting)
            return (
                clamp_score(blended),
                f"Weighted consensus: primary evaluator {PRIMARY_WEIGHT:.0%}, "
                f"{len(supporting)} supporting evaluator(s) sharing "
                f"{SUPPORTING_WEIGHT:.0%} ({share:.1%} each)",
            )

        if supporting:
            return (
                clamp_score(mean(supporting)),
                f"No primary evaluator score; equal-weight average of "
                f"{len(supporting)} evaluator score(s)",
            )
        return (
            NEUTRAL_SCORE,
            f"No scores available for {metric.name}; neutral default of "
            f"{NEUTRAL_SCORE} applied",
        )

    @classmethod
    def reconcile_metric(
        cls,
        results: Sequence[AgentResult],
        metric: Metric,
        *,
        include_narrative: bool = True,
    ) -> MetricConsensus:
        """Metric-level consensus from a primary evaluator and supporters."""
        stats = cls.analyze_metric(results, metric, fill_missing=False)
        score, methodology = cls.weighted_score(results, metric)

        agreements: list[str] = []
        disagreements: list[str] = []
        flags: list[str] = []
        cls.describe(
            stats, score, agreements, disagreements, flags, placeholder_used=False
        )

        contributing = [
            r
            for r, s in zip(results, cls.resolved_scores(results, metric))
            if s is not None
        ] or list(results)
        confidence = (
            round_half_up(mean(r.confidence for r in contributing))
            if contributing
            else DEFAULT_AGENT_CONFIDENCE
        )

        ordered = sorted(results, key=lambda r: not r.is_primary)
        key_strengths: list[str] = []
        key_weaknesses: list[str] = []
        recommendations: list[str] = []
        if include_narrative:
            key_strengths = _dedupe((r.strengths for r in results), MAX_KEY_STRENGTHS)
            key_weaknesses = _dedupe((r.weaknesses for r in results), MAX_KEY_WEAKNESSES)
            recommendations = _dedupe(
                (r.recommendations for r in results), MAX_PRIORITY_RECOMMENDATIONS
            )

        lead_feedback = _dedupe((r.feedback for r in ordered), 1)
        synthesized = (
            f"{metric.name}: consensus score of {score} from "
            f"{len(stats.scores)} evaluation(s)"
        )
        if stats.agreement is not AgreementLevel.NO_DATA:
            synthesized += f" ({stats.agreement.value} agreement)."
        else:
            synthesized += "."
        if lead_feedback:
            synthesized += f" {lead_feedback[0]}"

        return MetricConsensus(
            metric=metric.name,
            consensus_score=score,
            agreements=agreements or [PLACEHOLDER_AGREEMENT],
            disagreements=disagreements,
            confidence=clamp_score(confidence),
            flags_for_review=flags,
            synthesized_feedback=synthesized,
            methodology=methodology,
            key_strengths=key_strengths,
            key_weaknesses=key_weaknesses,
            priority_recommendations=recommendations,
            source=ConsensusSource.STATISTICAL,
            statistics=stats,
        )
