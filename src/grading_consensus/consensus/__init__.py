"""Consensus reconciliation: normalization, extraction, statistics, oracle."""

from grading_consensus.consensus.handler import (
    ConsensusRequest,
    RequestValidationError,
    handle_consensus_request,
)
from grading_consensus.consensus.logging import setup_logging
from grading_consensus.consensus.normalizer import (
    normalize_agent_result,
    normalize_agent_results,
)
from grading_consensus.consensus.orchestrator import ConsensusOrchestrator
from grading_consensus.consensus.statistics import StatisticalConsensus

__all__ = [
    "ConsensusOrchestrator",
    "ConsensusRequest",
    "RequestValidationError",
    "StatisticalConsensus",
    "handle_consensus_request",
    "normalize_agent_result",
    "normalize_agent_results",
    "setup_logging",
]
