"""OpenAI async LLM adapter using the official openai SDK."""

from openai import APIError, AsyncOpenAI

from grading_consensus.config import OpenAIConfig
from grading_consensus.llm.base import BaseLLM, LLMError, LLMResponse


class OpenAIAdapter(BaseLLM):
    """Async adapter for the OpenAI Chat Completions API.

    Uses ``AsyncOpenAI`` for native async support with ``asyncio``.  The
    SDK's own retries are disabled: the consensus oracle gets exactly one
    attempt before the statistical fallback takes over.

    Args:
        config: OpenAI-specific configuration (API key, model, temperature).
    """

    def __init__(self, config: OpenAIConfig) -> None:
        self.client = AsyncOpenAI(api_key=config.api_key, max_retries=0)
        self._model = config.model
        self.temperature = config.temperature
        self.max_tokens = config.max_tokens

    @property
    def provider(self) -> str:  # noqa: D401
        """The provider identifier."""
        return "openai"

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """Generate a response from the OpenAI Chat Completions API.

        Args:
            system_prompt: System message for the model.
            user_prompt: User message / task description.

        Returns:
            ``LLMResponse`` with the raw text and token usage metadata.

        Raises:
            LLMError: If the OpenAI API call fails, including non-success
                HTTP statuses and connection timeouts.
        """
        try:
            response = await self.client.chat.completions.create(
                model=self._model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except APIError as exc:
            raise LLMError(
                provider="openai",
                message=str(exc),
                original_error=exc,
            ) from exc

        # Extract token counts when available.
        input_tokens: int | None = None
        output_tokens: int | None = None
        if response.usage:
            input_tokens = response.usage.prompt_tokens
            output_tokens = response.usage.completion_tokens

        raw_text = ""
        if response.choices and response.choices[0].message.content:
            raw_text = response.choices[0].message.content

        return LLMResponse(
            raw_text=raw_text,
            model=self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
