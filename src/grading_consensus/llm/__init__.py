"""LLM provider adapters for OpenAI and Gemini."""

from grading_consensus.config import OracleConfig
from grading_consensus.llm.base import BaseLLM, LLMError, LLMResponse
from grading_consensus.llm.gemini import GeminiAdapter
from grading_consensus.llm.openai_adapter import OpenAIAdapter
from grading_consensus.llm.response_parser import extract_json, strip_code_fences


def create_llm(config: OracleConfig | None) -> BaseLLM | None:
    """Build the adapter named by *config*, or ``None`` when no oracle is set.

    A provider without credentials is treated as "no oracle" rather than an
    error so the statistical path can still serve requests.
    """
    if config is None:
        return None
    if config.provider == "openai" and config.openai is not None:
        return OpenAIAdapter(config.openai)
    if config.provider == "gemini" and config.gemini is not None:
        return GeminiAdapter(config.gemini)
    return None


__all__ = [
    "BaseLLM",
    "GeminiAdapter",
    "LLMError",
    "LLMResponse",
    "OpenAIAdapter",
    "create_llm",
    "extract_json",
    "strip_code_fences",
]
