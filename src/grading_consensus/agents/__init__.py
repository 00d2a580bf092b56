"""Expert-persona graders that produce agent results."""

from grading_consensus.agents.grader import PERSONA_ROLES, AgentGrader

__all__ = ["AgentGrader", "PERSONA_ROLES"]
