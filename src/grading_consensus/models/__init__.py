"""Data models for agent results and consensus output."""

from grading_consensus.models.agent import AgentResult, Metric, lookup_score, metric_key
from grading_consensus.models.consensus import (
    AgreementLevel,
    ConsensusResponse,
    ConsensusResult,
    ConsensusSource,
    MetricConsensus,
    MetricStatistics,
)

__all__ = [
    "AgentResult",
    "AgreementLevel",
    "ConsensusResponse",
    "ConsensusResult",
    "ConsensusSource",
    "Metric",
    "MetricConsensus",
    "MetricStatistics",
    "lookup_score",
    "metric_key",
]
