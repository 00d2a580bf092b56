"""Tests for free-text score and narrative extraction."""

import pytest

from grading_consensus.consensus.text_extraction import (
    extract_agent_result,
    extract_confidence,
    extract_metric_consensus,
    extract_recommendations,
    extract_score,
    extract_section,
    extract_strengths,
    extract_weaknesses,
    fallback_score,
    match_score,
    split_fragments,
)
from grading_consensus.models.agent import Metric
from grading_consensus.policy import PLACEHOLDER_STRENGTH

TECHNICAL = Metric(name="Technical Accuracy", weight=60)
CLARITY = Metric(name="Clarity", weight=40)

# ---------------------------------------------------------------------------
# Score patterns
# ---------------------------------------------------------------------------


class TestMatchScore:
    def test_quoted_key(self) -> None:
        assert match_score('{"technical_accuracy": 88, broken', TECHNICAL) == 88

    def test_name_value(self) -> None:
        assert match_score("Clarity: 77 - mostly readable", CLARITY) == 77

    def test_out_of_100(self) -> None:
        assert match_score("I would give 64 out of 100 for Clarity.", CLARITY) == 64

    def test_lowercase_name(self) -> None:
        assert match_score("overall clarity 71 is fair", CLARITY) == 71

    def test_first_pattern_wins(self) -> None:
        text = 'Earlier draft: Clarity: 50. Final: "clarity": 90'
        assert match_score(text, CLARITY) == 90

    def test_clamped(self) -> None:
        assert match_score("Clarity: 150", CLARITY) == 100

    def test_no_match(self) -> None:
        assert match_score("Nothing numeric about readability here.", CLARITY) is None

    def test_oversized_number_ignored(self) -> None:
        assert match_score("Clarity: " + "9" * 5000, CLARITY) is None

    def test_extract_score_marks_estimates(self) -> None:
        assert extract_score("Clarity: 80", CLARITY) == (80, False)
        score, estimated = extract_score("An excellent report.", CLARITY)
        assert estimated is True
        assert score == 78


class TestExtractConfidence:
    def test_declared(self) -> None:
        assert extract_confidence("Confidence: 92%") == 92

    def test_default(self) -> None:
        assert extract_confidence("no such keyword") == 80
        assert extract_confidence("no such keyword", default=85) == 85

    def test_oversized_number_gives_default(self) -> None:
        assert extract_confidence("confidence " + "9" * 5000) == 80


# ---------------------------------------------------------------------------
# Fragments and sections
# ---------------------------------------------------------------------------


class TestSplitFragments:
    def test_bullets(self) -> None:
        text = "- First point is here\n- Second point is here\n* Third point is here"
        assert split_fragments(text) == [
            "First point is here",
            "Second point is here",
            "Third point is here",
        ]

    def test_numbered(self) -> None:
        text = "1. Expand the results\n2. Shorten the abstract"
        assert split_fragments(text) == ["Expand the results", "Shorten the abstract"]

    def test_sentences_when_no_list(self) -> None:
        text = "The first sentence is here. The second one follows!"
        assert split_fragments(text) == [
            "The first sentence is here.",
            "The second one follows!",
        ]

    def test_short_fragments_dropped(self) -> None:
        text = "- ok\n- This one is long enough\n- And this one as well"
        assert split_fragments(text) == [
            "This one is long enough",
            "And this one as well",
        ]


class TestSections:
    TEXT = (
        "Strengths: Clear writing and careful figures.\n"
        "Weaknesses: The conclusion is thin.\n"
        "Recommendations: Add a summary table."
    )

    def test_section_bodies(self) -> None:
        assert extract_section(self.TEXT, "strengths") == "Clear writing and careful figures."
        assert extract_section(self.TEXT, "weaknesses") == "The conclusion is thin."
        assert extract_section(self.TEXT, "recommendations") == "Add a summary table."

    def test_sections_take_priority_over_keywords(self) -> None:
        assert extract_strengths(self.TEXT) == ["Clear writing and careful figures."]
        assert extract_weaknesses(self.TEXT) == ["The conclusion is thin."]
        assert extract_recommendations(self.TEXT) == ["Add a summary table."]

    def test_missing_section(self) -> None:
        assert extract_section("plain text only", "strengths") is None

    def test_keyword_classification(self, moderator_prose) -> None:
        assert extract_strengths(moderator_prose) == [
            "A key strength is the thorough methodology section."
        ]
        assert extract_weaknesses(moderator_prose) == [
            "The discussion could improve its treatment of error sources.",
            "Consider adding more figures to support the results.",
        ]
        assert extract_recommendations(moderator_prose) == [
            "I recommend a short summary table at the end of each section."
        ]

    def test_placeholder_when_nothing_matches(self) -> None:
        assert extract_strengths("Nothing of note in this text at all.") == [
            PLACEHOLDER_STRENGTH
        ]


# ---------------------------------------------------------------------------
# Fallback-score heuristic
# ---------------------------------------------------------------------------


class TestFallbackScore:
    def test_neutral(self) -> None:
        assert fallback_score("") == 75

    def test_positive_words(self) -> None:
        assert fallback_score("A clear and thorough report") == 81

    def test_negative_words_from_improvements(self) -> None:
        assert fallback_score("Fine", improvements="Analysis is weak and unclear") == 71

    def test_whole_words_only(self) -> None:
        assert fallback_score("strongly worded, unwell") == 75

    def test_length_bonuses(self) -> None:
        assert fallback_score("x" * 201) == 77
        assert fallback_score("", strengths="y" * 101) == 76

    def test_clamped_high(self) -> None:
        text = (
            "excellent outstanding strong clear thorough comprehensive "
            "well good effective impressive"
        )
        assert fallback_score(text) == 95

    def test_clamped_low(self) -> None:
        text = "weak unclear lacking insufficient poor missing inadequate confusing limited"
        assert fallback_score(text) == 60

    def test_deterministic(self) -> None:
        text = "A strong but limited analysis"
        assert fallback_score(text) == fallback_score(text)


# ---------------------------------------------------------------------------
# Composite extractors
# ---------------------------------------------------------------------------


class TestExtractAgentResult:
    def test_scores_read_from_text(self) -> None:
        text = "Technical Accuracy: 88\nClarity: 72\nConfidence: 90"

        raw = extract_agent_result(text, [TECHNICAL, CLARITY])

        assert raw["scores"] == {"technical_accuracy": 88, "clarity": 72}
        assert raw["estimatedScores"] == []
        assert raw["confidence"] == 90

    def test_missing_score_estimated(self) -> None:
        raw = extract_agent_result("Technical Accuracy: 88. Nothing else.", [TECHNICAL, CLARITY])

        assert raw["scores"]["technical_accuracy"] == 88
        assert raw["estimatedScores"] == ["clarity"]
        assert raw["confidence"] == 85


class TestExtractMetricConsensus:
    def test_prose_without_json(self, moderator_prose) -> None:
        extracted = extract_metric_consensus(moderator_prose, CLARITY)

        assert extracted.confidence == 80
        assert extracted.score_estimated is True
        assert 60 <= extracted.score <= 95
        assert extracted.strengths
        assert extracted.weaknesses
        assert len(extracted.feedback) == 5

    @pytest.mark.parametrize(
        "text",
        ["consensusScore: 81", '"consensus_score": 81,', "Consensus score = 81"],
    )
    def test_consensus_score_mention(self, text: str) -> None:
        extracted = extract_metric_consensus(text, CLARITY)
        assert extracted.score == 81
        assert extracted.score_estimated is False

    def test_oversized_numbers_fall_back_to_estimate(self) -> None:
        huge = "9" * 5000
        text = f"The report is fine. consensusScore: {huge} confidence {huge}"

        extracted = extract_metric_consensus(text, CLARITY)

        assert extracted.score_estimated is True
        assert 60 <= extracted.score <= 95
        assert extracted.confidence == 80


@pytest.mark.parametrize("text", ["", "   ", "!!!", "{", "Clarity:", "\n- \n* \n1."])
class TestArbitraryText:
    def test_metric_consensus_fully_populated(self, text: str) -> None:
        extracted = extract_metric_consensus(text, CLARITY)

        assert 60 <= extracted.score <= 95
        assert extracted.score_estimated is True
        assert extracted.confidence == 80
        assert extracted.feedback
        assert extracted.strengths
        assert extracted.weaknesses
        assert extracted.recommendations

    def test_agent_result_fully_populated(self, text: str) -> None:
        raw = extract_agent_result(text, [TECHNICAL, CLARITY])

        assert set(raw["scores"]) == {"technical_accuracy", "clarity"}
        assert raw["estimatedScores"] == ["technical_accuracy", "clarity"]
        assert raw["confidence"] == 85
        for field in ("feedback", "strengths", "weaknesses", "recommendations"):
            assert raw[field], field
        assert raw["reasoning"]
