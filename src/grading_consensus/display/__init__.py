"""Console rendering for consensus results."""

from grading_consensus.display.consensus_display import ConsensusDisplay

__all__ = ["ConsensusDisplay"]
