"""Consensus result models.

Defines the reconciled output for a whole report (``ConsensusResult``) and
for a single metric evaluated by a primary agent plus supporting agents
(``MetricConsensus``), along with the per-metric statistics both are
derived from and the response envelope returned to callers.
"""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class AgreementLevel(StrEnum):
    """How tightly agent scores for one metric clustered."""

    STRONG = "strong"
    MODERATE = "moderate"
    NOTICEABLE = "noticeable"
    SIGNIFICANT = "significant"
    NO_DATA = "no_data"

    @property
    def is_agreement(self) -> bool:
        return self in (AgreementLevel.STRONG, AgreementLevel.MODERATE)


class ConsensusSource(StrEnum):
    """Which path produced a consensus."""

    ORACLE = "oracle"
    TEXT_EXTRACTION = "text_extraction"
    STATISTICAL = "statistical"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MetricStatistics(_CamelModel):
    """Descriptive statistics of the agent scores for one metric.

    ``scores`` holds one value per contributing agent, in input order, with
    missing scores already replaced by the neutral placeholder.  ``missing``
    counts those placeholders; ``estimated`` counts scores synthesized by
    the fallback heuristic.
    """

    metric: str
    scores: list[float]
    mean: float
    median: float
    minimum: float
    maximum: float
    range: float
    agreement: AgreementLevel
    missing: int = 0
    estimated: int = 0


class ConsensusResult(_CamelModel):
    """Report-level consensus across every metric."""

    consensus_scores: dict[str, int]
    agreements: list[str]
    disagreements: list[str] = []
    confidence: int
    flags_for_review: list[str] = []
    meta_feedback: str
    methodology: str
    source: ConsensusSource = ConsensusSource.STATISTICAL
    statistics: dict[str, MetricStatistics] = {}


class MetricConsensus(_CamelModel):
    """Metric-level consensus from a primary evaluator and its supporters."""

    metric: str
    consensus_score: int
    agreements: list[str]
    disagreements: list[str] = []
    confidence: int
    flags_for_review: list[str] = []
    synthesized_feedback: str
    methodology: str
    key_strengths: list[str] = []
    key_weaknesses: list[str] = []
    priority_recommendations: list[str] = []
    source: ConsensusSource = ConsensusSource.STATISTICAL
    statistics: MetricStatistics | None = None


class ConsensusResponse(_CamelModel):
    """Envelope returned to the caller: a full consensus or an error."""

    success: bool
    consensus: ConsensusResult | MetricConsensus | None = None
    error: str | None = None

    def to_payload(self) -> dict:
        """Serialize with wire (camelCase) names, dropping unset branches."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
