"""Scoring policy constants shared by the normalizer, extractor and engine.

Every default, clamp range and threshold used while reconciling agent
scores lives here so the taxonomy can be audited and tested in one place.
"""

# ---------------------------------------------------------------------------
# Score and confidence bounds
# ---------------------------------------------------------------------------

SCORE_MIN = 0
SCORE_MAX = 100

# Neutral placeholder for a metric an agent did not score.
NEUTRAL_SCORE = 75

DEFAULT_AGENT_CONFIDENCE = 85
DEFAULT_METRIC_CONFIDENCE = 80
DEFAULT_REPORT_TEXT_CONFIDENCE = 85
DEFAULT_ORACLE_CONFIDENCE = 75

# ---------------------------------------------------------------------------
# Statistical blend
# ---------------------------------------------------------------------------

MEAN_WEIGHT = 0.6
MEDIAN_WEIGHT = 0.4

PRIMARY_WEIGHT = 0.6
SUPPORTING_WEIGHT = 0.4

# Upper bounds (inclusive) of each agreement bucket, in score points.
STRONG_AGREEMENT_RANGE = 5
MODERATE_AGREEMENT_RANGE = 10
NOTICEABLE_DISAGREEMENT_RANGE = 20

# Consensus scores below this floor are flagged for human review.
REVIEW_SCORE_FLOOR = 70

# ---------------------------------------------------------------------------
# Aggregate confidence (report-level)
# ---------------------------------------------------------------------------

BASE_CONFIDENCE = 85
AGREEMENT_CONFIDENCE_FACTOR = 20
FLAG_CONFIDENCE_PENALTY = 5
MIN_AGENTS_FOR_QUALITY = 3
LOW_AGENT_COUNT_PENALTY = 10
CONFIDENCE_FLOOR = 50
CONFIDENCE_CEILING = 98

# ---------------------------------------------------------------------------
# Fallback-score heuristic
# ---------------------------------------------------------------------------

HEURISTIC_BASE_SCORE = 75
HEURISTIC_POSITIVE_INCREMENT = 3
HEURISTIC_NEGATIVE_DECREMENT = 2
HEURISTIC_FEEDBACK_LENGTH = 200
HEURISTIC_FEEDBACK_BONUS = 2
HEURISTIC_STRENGTHS_LENGTH = 100
HEURISTIC_STRENGTHS_BONUS = 1
HEURISTIC_SCORE_MIN = 60
HEURISTIC_SCORE_MAX = 95

POSITIVE_WORDS: tuple[str, ...] = (
    "excellent",
    "outstanding",
    "strong",
    "clear",
    "thorough",
    "comprehensive",
    "well",
    "good",
    "effective",
    "impressive",
)

NEGATIVE_WORDS: tuple[str, ...] = (
    "weak",
    "unclear",
    "lacking",
    "insufficient",
    "poor",
    "missing",
    "inadequate",
    "confusing",
    "limited",
)

# ---------------------------------------------------------------------------
# Free-text classification
# ---------------------------------------------------------------------------

STRENGTH_KEYWORDS: tuple[str, ...] = ("strength", "positive", "good", "excellent")
WEAKNESS_KEYWORDS: tuple[str, ...] = (
    "improve",
    "enhance",
    "develop",
    "consider",
    "weakness",
    "negative",
)
RECOMMENDATION_KEYWORDS: tuple[str, ...] = ("recommend", "suggest", "should")

FEEDBACK_MIN_LENGTH = 10
ITEM_MIN_LENGTH = 20

MAX_FEEDBACK_ITEMS = 5
MAX_STRENGTH_ITEMS = 3
MAX_WEAKNESS_ITEMS = 3
MAX_RECOMMENDATION_ITEMS = 3

# Metric-level aggregation of contributing agents' narrative lists.
MAX_KEY_STRENGTHS = 2
MAX_KEY_WEAKNESSES = 2
MAX_PRIORITY_RECOMMENDATIONS = 3

# ---------------------------------------------------------------------------
# Placeholders
# ---------------------------------------------------------------------------

PLACEHOLDER_FEEDBACK = "Evaluation completed; no detailed feedback was provided."
PLACEHOLDER_REASONING = "No reasoning was provided by the evaluator."
PLACEHOLDER_STRENGTH = "Demonstrates a reasonable grasp of the subject matter."
PLACEHOLDER_WEAKNESS = "Consider expanding the depth of analysis and supporting evidence."
PLACEHOLDER_RECOMMENDATION = "Review the evaluator feedback and revise the weakest sections first."
PLACEHOLDER_AGREEMENT = "General alignment observed among evaluators"
PLACEHOLDER_META_FEEDBACK = "Consensus analysis completed."
PLACEHOLDER_ORACLE_METHODOLOGY = "AI-based consensus analysis"
