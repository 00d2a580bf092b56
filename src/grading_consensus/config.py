"""Pydantic settings models for all configuration."""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel


class OpenAIConfig(BaseModel):
    """OpenAI Chat Completions configuration."""

    api_key: str
    model: str = "gpt-4o"
    temperature: float = 0.2
    max_tokens: int = 2500


class GeminiConfig(BaseModel):
    """Google Gemini API configuration."""

    api_key: str
    model: str = "gemini-2.5-pro"
    temperature: float = 0.2
    max_output_tokens: int = 2500


class OracleConfig(BaseModel):
    """Which text-generation service backs the consensus oracle.

    Only the section named by ``provider`` is used.  Leaving the whole
    ``oracle`` block out of the settings disables the oracle, and every
    consensus is computed statistically.
    """

    provider: Literal["openai", "gemini"] = "openai"
    openai: OpenAIConfig | None = None
    gemini: GeminiConfig | None = None


class ConsensusConfig(BaseModel):
    """Reconciliation behaviour.

    Attributes:
        oracle_timeout_seconds: Upper bound on the single oracle call.
        include_narrative: Populate ``keyStrengths`` / ``keyWeaknesses`` /
            ``priorityRecommendations`` in metric-level results.
    """

    oracle_timeout_seconds: float = 60.0
    include_narrative: bool = True


class Settings(BaseModel):
    """Root configuration model for grading-consensus."""

    oracle: OracleConfig | None = None
    consensus: ConsensusConfig = ConsensusConfig()
    log_dir: str | None = None

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load and validate settings from a YAML configuration file.

        Environment variable substitution is supported for API keys and other
        sensitive values: if a YAML value starts with ``$``, the corresponding
        environment variable is resolved at load time.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            Validated Settings instance.

        Raises:
            FileNotFoundError: If the YAML file does not exist.
            ValueError: If a referenced environment variable is not set.
        """
        raw = yaml.safe_load(path.read_text()) or {}
        resolved = _resolve_env_vars(raw)
        return cls.model_validate(resolved)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``OPENAI_API_KEY`` / ``GEMINI_API_KEY``.

        OpenAI wins when both are set.  With neither set the oracle is
        disabled, which is a supported mode rather than an error.
        """
        openai_key = os.environ.get("OPENAI_API_KEY")
        gemini_key = os.environ.get("GEMINI_API_KEY")
        if openai_key:
            oracle = OracleConfig(provider="openai", openai=OpenAIConfig(api_key=openai_key))
        elif gemini_key:
            oracle = OracleConfig(provider="gemini", gemini=GeminiConfig(api_key=gemini_key))
        else:
            oracle = None
        return cls(oracle=oracle)


def _resolve_env_vars(data: object) -> object:
    """Recursively resolve environment variable references in config data.

    Any string value starting with ``$`` is treated as an environment variable
    reference and replaced with the value of that variable.

    Args:
        data: Configuration data (dict, list, or scalar).

    Returns:
        Data with environment variable references resolved.

    Raises:
        ValueError: If a referenced environment variable is not set.
    """
    if isinstance(data, dict):
        return {k: _resolve_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_resolve_env_vars(item) for item in data]
    if isinstance(data, str) and data.startswith("$"):
        var_name = data[1:]
        value = os.environ.get(var_name)
        if value is None:
            msg = (
                f"Environment variable '{var_name}' is not set "
                f"(referenced as '{data}' in config)"
            )
            raise ValueError(msg)
        return value
    return data
