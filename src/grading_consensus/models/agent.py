"""Evaluation metric and per-agent result models.

An ``AgentResult`` is what one expert persona produced for one report.
Scores are keyed by :func:`metric_key`; lookups go through
:meth:`AgentResult.score_for` so that agents which echo a metric's display
name (or some casing of it) still resolve.
"""

import re

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

_SEPARATOR_RE = re.compile(r"[\s\-]+")


def metric_key(name: str) -> str:
    """Return the lookup key for a metric name.

    ``"Technical Accuracy"`` -> ``"technical_accuracy"``.  Leading and
    trailing whitespace is dropped and inner runs of whitespace or hyphens
    collapse to a single underscore.
    """
    return _SEPARATOR_RE.sub("_", name.strip().lower())


class Metric(BaseModel):
    """A named, weighted evaluation dimension.

    ``weight`` is a percentage.  Weights across a report are expected to sum
    to roughly 100 but nothing here enforces it; each metric is reconciled
    independently.
    """

    name: str
    weight: float = 0.0
    description: str = ""

    @property
    def key(self) -> str:
        return metric_key(self.name)


class AgentResult(BaseModel):
    """Normalized output of one expert agent.

    Attributes:
        agent_id: Persona identifier ("technical", "language", ...).
        scores: Metric key -> integer score in [0, 100].  May be partial
            when constructed directly; the normalizer always fills every
            requested metric.
        confidence: Declared self-confidence in [0, 100].
        feedback: Ordered free-text observations.
        strengths: Ordered strengths noted by the agent.
        weaknesses: Ordered weaknesses / areas to improve.
        recommendations: Ordered recommendations for the student.
        reasoning: Free-text rationale.
        is_primary: Marks the lead evaluator in metric-level reconciliation.
        estimated_scores: Metric keys whose score was synthesized by the
            fallback heuristic rather than read from the agent's output.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    agent_id: str = ""
    scores: dict[str, int] = {}
    confidence: int = 85
    feedback: list[str] = []
    strengths: list[str] = []
    weaknesses: list[str] = []
    recommendations: list[str] = []
    reasoning: str = ""
    is_primary: bool = False
    estimated_scores: list[str] = []

    def score_for(self, metric: Metric) -> int | None:
        """Resolve this agent's score for *metric*, or ``None`` if absent."""
        return lookup_score(self.scores, metric)

    def is_estimated(self, metric: Metric) -> bool:
        return metric.key in self.estimated_scores


def lookup_score(scores: object, metric: Metric) -> object | None:
    """Find the value stored for *metric* in an arbitrary score mapping.

    Tries, in order: the metric key, the raw display name, the lower-cased
    name, then any key whose :func:`metric_key` matches.  Returns the raw
    value (which may not be numeric) or ``None``.
    """
    if not isinstance(scores, dict):
        return None
    for candidate in (metric.key, metric.name, metric.name.lower()):
        if candidate in scores and scores[candidate] is not None:
            return scores[candidate]
    for key, value in scores.items():
        if isinstance(key, str) and metric_key(key) == metric.key and value is not None:
            return value
    return None
