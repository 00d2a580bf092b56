"""Tests for the deterministic statistical consensus engine."""

import pytest

from conftest import make_result
from grading_consensus.consensus.statistics import StatisticalConsensus
from grading_consensus.models.agent import Metric
from grading_consensus.models.consensus import AgreementLevel, ConsensusSource


class TestClassify:
    @pytest.mark.parametrize(
        ("score_range", "expected"),
        [
            (0, AgreementLevel.STRONG),
            (5, AgreementLevel.STRONG),
            (6, AgreementLevel.MODERATE),
            (10, AgreementLevel.MODERATE),
            (11, AgreementLevel.NOTICEABLE),
            (20, AgreementLevel.NOTICEABLE),
            (21, AgreementLevel.SIGNIFICANT),
            (100, AgreementLevel.SIGNIFICANT),
        ],
    )
    def test_bucket_boundaries(self, score_range: int, expected: AgreementLevel) -> None:
        assert StatisticalConsensus.classify(score_range) is expected

    def test_agreement_property(self) -> None:
        assert AgreementLevel.STRONG.is_agreement
        assert AgreementLevel.MODERATE.is_agreement
        assert not AgreementLevel.NOTICEABLE.is_agreement
        assert not AgreementLevel.SIGNIFICANT.is_agreement
        assert not AgreementLevel.NO_DATA.is_agreement


class TestReconcile:
    def test_close_scores_reach_strong_agreement(self, agreeing_results, clarity) -> None:
        result = StatisticalConsensus.reconcile(agreeing_results, [clarity])

        assert result.consensus_scores == {"clarity": 81}
        assert result.agreements == [
            "Strong agreement on Clarity (range: 2 points, consensus: 81%)"
        ]
        assert result.disagreements == []
        assert result.flags_for_review == []
        assert result.confidence == 95
        assert result.source is ConsensusSource.STATISTICAL
        assert "No major concerns identified." in result.meta_feedback

    def test_wide_spread_is_flagged(self, disagreeing_results, clarity) -> None:
        result = StatisticalConsensus.reconcile(disagreeing_results, [clarity])

        # 0.6 * mean(75) + 0.4 * median(70)
        assert result.consensus_scores == {"clarity": 73}
        assert result.disagreements == [
            "Significant disagreement on Clarity (range: 35 points, scores: 60, 95, 70)"
        ]
        assert "Large score variance in Clarity requires human review" in result.flags_for_review
        assert result.confidence == 70
        assert "Some areas flagged for review." in result.meta_feedback

    def test_weights_need_not_sum_to_100(self) -> None:
        metrics = [Metric(name="Depth", weight=100), Metric(name="Style", weight=50)]
        results = [
            make_result("a", {"depth": 80, "style": 70}),
            make_result("b", {"depth": 84, "style": 72}),
            make_result("c", {"depth": 82, "style": 74}),
        ]

        result = StatisticalConsensus.reconcile(results, metrics)

        assert set(result.consensus_scores) == {"depth", "style"}
        assert result.consensus_scores["depth"] == 82
        assert result.consensus_scores["style"] == 72

    def test_scores_stay_within_observed_range(self, disagreeing_results, clarity) -> None:
        result = StatisticalConsensus.reconcile(disagreeing_results, [clarity])
        assert 60 <= result.consensus_scores["clarity"] <= 95

    def test_identical_scores_give_that_score(self, clarity) -> None:
        results = [make_result(a, {"clarity": 77}) for a in ("a", "b", "c")]
        result = StatisticalConsensus.reconcile(results, [clarity])
        assert result.consensus_scores["clarity"] == 77
        assert result.statistics["clarity"].range == 0

    def test_deterministic(self, disagreeing_results, clarity) -> None:
        first = StatisticalConsensus.reconcile(disagreeing_results, [clarity])
        second = StatisticalConsensus.reconcile(disagreeing_results, [clarity])
        assert first == second

    def test_raising_one_score_never_lowers_consensus(self, clarity) -> None:
        base = [make_result(a, {"clarity": s}) for a, s in (("a", 60), ("b", 70), ("c", 90))]
        raised = [make_result(a, {"clarity": s}) for a, s in (("a", 60), ("b", 85), ("c", 90))]

        low = StatisticalConsensus.reconcile(base, [clarity]).consensus_scores["clarity"]
        high = StatisticalConsensus.reconcile(raised, [clarity]).consensus_scores["clarity"]
        assert high >= low

    def test_missing_score_uses_neutral_placeholder(self, clarity) -> None:
        results = [
            make_result("a", {"clarity": 80}),
            make_result("b", {"clarity": 80}),
            make_result("c", {}),
        ]

        result = StatisticalConsensus.reconcile(results, [clarity])

        assert result.statistics["clarity"].scores == [80, 80, 75]
        assert result.statistics["clarity"].missing == 1
        assert any("did not score Clarity" in f for f in result.flags_for_review)

    def test_no_scores_at_all(self, clarity) -> None:
        results = [make_result("a", {}), make_result("b", {})]

        result = StatisticalConsensus.reconcile(results, [clarity])

        assert result.consensus_scores["clarity"] == 75
        assert result.statistics["clarity"].agreement is AgreementLevel.NO_DATA
        assert "No valid scores found for Clarity" in result.flags_for_review
        assert result.agreements == ["General alignment observed among evaluators"]

    def test_empty_result_list(self, clarity) -> None:
        result = StatisticalConsensus.reconcile([], [clarity])
        assert result.consensus_scores == {"clarity": 75}
        assert result.statistics["clarity"].agreement is AgreementLevel.NO_DATA

    def test_low_score_flagged(self, clarity) -> None:
        results = [make_result(a, {"clarity": 55}) for a in ("a", "b", "c")]
        result = StatisticalConsensus.reconcile(results, [clarity])
        assert (
            "Clarity consensus score of 55 is below the review threshold of 70"
            in result.flags_for_review
        )

    def test_score_keys_matched_across_naming_variants(self, report_metrics) -> None:
        results = [
            make_result("a", {"Technical Accuracy": 90, "clarity": 80}),
            make_result("b", {"technical accuracy": 90, "CLARITY": 80}),
            make_result("c", {"technical-accuracy": 90, "Clarity": 80}),
        ]

        result = StatisticalConsensus.reconcile(results, report_metrics)

        assert result.consensus_scores == {"technical_accuracy": 90, "clarity": 80}
        assert result.flags_for_review == []

    def test_methodology_names_the_blend(self, agreeing_results, clarity) -> None:
        result = StatisticalConsensus.reconcile(agreeing_results, [clarity])
        assert result.methodology.startswith(
            "Weighted average of agent scores (60% mean, 40% median) across 3 agent(s)"
        )


class TestAggregateConfidence:
    def test_all_agree(self) -> None:
        assert StatisticalConsensus.aggregate_confidence(3, 0, 0, 3) == 95

    def test_nothing_classified_is_neutral(self) -> None:
        assert StatisticalConsensus.aggregate_confidence(0, 0, 0, 3) == 85

    def test_few_agents_penalized(self) -> None:
        assert StatisticalConsensus.aggregate_confidence(1, 0, 0, 2) == 85

    def test_clamped_to_floor(self) -> None:
        assert StatisticalConsensus.aggregate_confidence(0, 5, 10, 1) == 50

    def test_clamped_to_ceiling(self) -> None:
        assert StatisticalConsensus.aggregate_confidence(10, 0, 0, 10) <= 98


class TestWeightedScore:
    def test_primary_carries_sixty_percent(self, clarity) -> None:
        results = [
            make_result("lead", {"clarity": 90}, is_primary=True),
            make_result("s1", {"clarity": 70}),
            make_result("s2", {"clarity": 80}),
        ]

        score, methodology = StatisticalConsensus.weighted_score(results, clarity)

        # 0.6 * 90 + 0.2 * 70 + 0.2 * 80
        assert score == 84
        assert methodology.startswith("Weighted consensus: primary evaluator 60%")

    def test_primary_alone_counts_in_full(self, clarity) -> None:
        results = [make_result("lead", {"clarity": 88}, is_primary=True)]
        score, _ = StatisticalConsensus.weighted_score(results, clarity)
        assert score == 88

    def test_no_primary_pools_scores(self, clarity) -> None:
        results = [make_result("a", {"clarity": 70}), make_result("b", {"clarity": 81})]
        score, methodology = StatisticalConsensus.weighted_score(results, clarity)
        assert score == 76
        assert "No primary evaluator" in methodology

    def test_unscored_primary_is_ignored(self, clarity) -> None:
        results = [
            make_result("lead", {}, is_primary=True),
            make_result("a", {"clarity": 70}),
            make_result("b", {"clarity": 80}),
        ]
        score, _ = StatisticalConsensus.weighted_score(results, clarity)
        assert score == 75

    def test_estimated_primary_outvoted_by_stated_scores(self, clarity) -> None:
        results = [
            make_result("lead", {"clarity": 75}, is_primary=True, estimated_scores=["clarity"]),
            make_result("a", {"clarity": 90}),
            make_result("b", {"clarity": 92}),
        ]

        score, methodology = StatisticalConsensus.weighted_score(results, clarity)

        assert score == 91
        assert "equal-weight average of 2" in methodology

    def test_estimates_used_when_nothing_stated(self, clarity) -> None:
        results = [
            make_result("lead", {"clarity": 80}, is_primary=True, estimated_scores=["clarity"]),
            make_result("a", {"clarity": 70}, estimated_scores=["clarity"]),
        ]
        score, _ = StatisticalConsensus.weighted_score(results, clarity)
        # 0.6 * 80 + 0.4 * 70
        assert score == 76

    def test_nothing_resolvable(self, clarity) -> None:
        score, methodology = StatisticalConsensus.weighted_score([make_result("a", {})], clarity)
        assert score == 75
        assert "neutral default" in methodology


class TestReconcileMetric:
    def test_narrative_aggregated_in_order(self, clarity) -> None:
        results = [
            make_result(
                "lead",
                {"clarity": 90},
                is_primary=True,
                confidence=90,
                strengths=["Clear structure", "Good figures"],
                weaknesses=["Short conclusion"],
                recommendations=["Expand the conclusion"],
            ),
            make_result(
                "support",
                {"clarity": 86},
                confidence=80,
                strengths=["clear structure", "Strong abstract"],
                weaknesses=["Dense tables", "Typos"],
                recommendations=["Proofread", "Split tables", "Add a glossary"],
            ),
        ]

        result = StatisticalConsensus.reconcile_metric(results, clarity)

        assert result.consensus_score == 88
        assert result.confidence == 85
        assert result.key_strengths == ["Clear structure", "Good figures"]
        assert result.key_weaknesses == ["Short conclusion", "Dense tables"]
        assert result.priority_recommendations == [
            "Expand the conclusion",
            "Proofread",
            "Split tables",
        ]
        assert result.synthesized_feedback.startswith("Clarity: consensus score of 88")
        assert "lead feedback" in result.synthesized_feedback

    def test_narrative_can_be_suppressed(self, clarity) -> None:
        results = [make_result("a", {"clarity": 80}, strengths=["Tidy"])]
        result = StatisticalConsensus.reconcile_metric(results, clarity, include_narrative=False)
        assert result.key_strengths == []

    def test_unscored_evaluation_excluded_and_flagged(self, clarity) -> None:
        results = [make_result("a", {"clarity": 80}), make_result("b", {})]

        result = StatisticalConsensus.reconcile_metric(results, clarity)

        assert result.statistics.scores == [80]
        assert result.consensus_score == 80
        assert any("were excluded" in f for f in result.flags_for_review)

    def test_estimated_evaluation_excluded_alongside_stated(self, clarity) -> None:
        results = [
            make_result(
                "lead",
                {"clarity": 75},
                is_primary=True,
                confidence=50,
                estimated_scores=["clarity"],
            ),
            make_result("a", {"clarity": 90}, confidence=90),
            make_result("b", {"clarity": 92}, confidence=80),
        ]

        result = StatisticalConsensus.reconcile_metric(results, clarity)

        assert result.statistics.scores == [90, 92]
        assert result.statistics.missing == 1
        assert result.consensus_score == 91
        assert result.confidence == 85
        assert any("were excluded" in f for f in result.flags_for_review)
