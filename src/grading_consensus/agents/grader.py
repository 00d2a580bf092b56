"""Expert-persona grading of a report against weighted metrics.

Each persona is a stateless worker: it receives the report and metrics,
calls the LLM once, and returns a normalized :class:`AgentResult`.  JSON
output is preferred; prose is mined with the text-extraction fallback.
Consensus across personas is the orchestrator's job, not the grader's.
"""

import asyncio
from collections.abc import Mapping, Sequence
from pathlib import Path

from jinja2 import Template
from loguru import logger

from grading_consensus.consensus.normalizer import normalize_agent_result
from grading_consensus.consensus.text_extraction import extract_agent_result
from grading_consensus.llm.base import BaseLLM, LLMError
from grading_consensus.llm.response_parser import extract_json
from grading_consensus.models.agent import AgentResult, Metric

PERSONA_ROLES: dict[str, str] = {
    "technical": (
        "Content Expert - Focus on technical accuracy, depth of analysis, "
        "and engineering methodology"
    ),
    "language": (
        "Language Expert - Focus on grammar, vocabulary, writing clarity, "
        "and professional communication"
    ),
    "structure": (
        "Structure Expert - Focus on document organization, formatting, "
        "logical flow, and citation standards"
    ),
    "innovation": (
        "Innovation Expert - Focus on creative problem-solving, critical "
        "thinking, and innovative insights"
    ),
    "holistic": (
        "Holistic Evaluator - Weigh the report as a whole and give a "
        "balanced overall assessment across every metric"
    ),
}

GENERAL_ROLE = "General Evaluator"


class AgentGrader:
    """Grades a report as one of the expert personas.

    Args:
        llm: Any :class:`BaseLLM` adapter.
        prompt_dir: Directory containing ``agent_grader.j2``.
    """

    TEMPLATE_NAME = "agent_grader.j2"

    def __init__(self, llm: BaseLLM, prompt_dir: Path) -> None:
        self.llm = llm
        self.prompt_dir = prompt_dir

    def build_system_prompt(
        self,
        agent_id: str,
        metrics: Sequence[Metric],
        guidelines: str | None = None,
        custom_instructions: str | None = None,
    ) -> str:
        template_text = (self.prompt_dir / self.TEMPLATE_NAME).read_text()
        return Template(template_text).render(
            role=PERSONA_ROLES.get(agent_id, GENERAL_ROLE),
            metrics=metrics,
            guidelines=guidelines,
            custom_instructions=custom_instructions,
        )

    async def grade(
        self,
        agent_id: str,
        report: str,
        metrics: Sequence[Metric],
        guidelines: str | None = None,
        custom_instructions: str | None = None,
    ) -> AgentResult:
        """Grade *report* as persona *agent_id*.

        Returns:
            A normalized ``AgentResult`` covering every metric.

        Raises:
            LLMError: If the LLM call itself fails.
        """
        system_prompt = self.build_system_prompt(
            agent_id, metrics, guidelines, custom_instructions
        )
        user_prompt = f"Engineering Report to Evaluate:\n\n{report}"
        response = await self.llm.generate(system_prompt, user_prompt)

        raw = extract_json(response.raw_text)
        if raw is None:
            with logger.contextualize(component=agent_id):
                logger.warning("Grader returned prose; extracting scores from text")
            raw = extract_agent_result(response.raw_text, list(metrics))
        return normalize_agent_result(raw, metrics, agent_id=agent_id)

    async def grade_all(
        self,
        report: str,
        metrics: Sequence[Metric],
        guidelines: str | None = None,
        personas: Sequence[str] | None = None,
        custom_instructions: str | Mapping[str, str] | None = None,
    ) -> dict[str, AgentResult]:
        """Grade *report* with every persona concurrently.

        *custom_instructions* is either one text shared by every persona or
        a mapping from persona id to its own text.  A persona whose LLM call
        fails is logged and left out of the returned mapping.
        """
        agent_ids = list(personas or PERSONA_ROLES)
        if isinstance(custom_instructions, Mapping):
            instructions = {a: custom_instructions.get(a) for a in agent_ids}
        else:
            instructions = dict.fromkeys(agent_ids, custom_instructions)
        outcomes = await asyncio.gather(
            *(
                self.grade(agent_id, report, metrics, guidelines, instructions[agent_id])
                for agent_id in agent_ids
            ),
            return_exceptions=True,
        )
        results: dict[str, AgentResult] = {}
        for agent_id, outcome in zip(agent_ids, outcomes, strict=True):
            if isinstance(outcome, LLMError):
                with logger.contextualize(component=agent_id):
                    logger.error("Grading failed: {error}", error=str(outcome))
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            results[agent_id] = outcome
        return results
