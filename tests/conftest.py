"""Shared pytest fixtures for the grading-consensus test suite."""

from pathlib import Path

import pytest

from grading_consensus.llm.base import LLMResponse
from grading_consensus.models.agent import AgentResult, Metric

PROMPT_DIR = (
    Path(__file__).resolve().parent.parent
    / "src"
    / "grading_consensus"
    / "templates"
    / "prompts"
)


def make_result(agent_id: str, scores: dict[str, int], **extra: object) -> AgentResult:
    """Build an ``AgentResult`` with sensible narrative defaults."""
    fields: dict[str, object] = {
        "agent_id": agent_id,
        "scores": scores,
        "feedback": [f"{agent_id} feedback"],
    }
    fields.update(extra)
    return AgentResult(**fields)


def make_response(text: str) -> LLMResponse:
    return LLMResponse(raw_text=text, model="test-model", input_tokens=10, output_tokens=20)


@pytest.fixture
def prompt_dir() -> Path:
    return PROMPT_DIR


@pytest.fixture
def clarity() -> Metric:
    return Metric(name="Clarity", weight=100, description="How clearly the report reads")


@pytest.fixture
def report_metrics() -> list[Metric]:
    """Two metrics whose weights sum to 100."""
    return [
        Metric(name="Technical Accuracy", weight=60, description="Correctness"),
        Metric(name="Clarity", weight=40, description="Readability"),
    ]


@pytest.fixture
def agreeing_results(clarity: Metric) -> list[AgentResult]:
    """Three agents within two points of each other on Clarity."""
    return [
        make_result("technical", {clarity.key: 80}),
        make_result("language", {clarity.key: 82}),
        make_result("structure", {clarity.key: 81}),
    ]


@pytest.fixture
def disagreeing_results(clarity: Metric) -> list[AgentResult]:
    """Three agents spread 35 points apart on Clarity."""
    return [
        make_result("technical", {clarity.key: 60}),
        make_result("language", {clarity.key: 95}),
        make_result("structure", {clarity.key: 70}),
    ]


@pytest.fixture
def moderator_prose() -> str:
    """Oracle prose with no JSON object and no confidence keyword."""
    return (
        "The report demonstrates strong technical analysis and a clear "
        "structure throughout.\n"
        "- A key strength is the thorough methodology section.\n"
        "- The discussion could improve its treatment of error sources.\n"
        "- Consider adding more figures to support the results.\n"
        "- I recommend a short summary table at the end of each section."
    )
