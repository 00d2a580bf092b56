"""Google Gemini async LLM adapter using the google-genai SDK."""

from google import genai
from google.genai import types

from grading_consensus.config import GeminiConfig
from grading_consensus.llm.base import BaseLLM, LLMError, LLMResponse

# One HTTP attempt per call; the caller owns retry and fallback.
_SINGLE_ATTEMPT = types.HttpOptions(retry_options=types.HttpRetryOptions(attempts=1))


class GeminiAdapter(BaseLLM):
    """Async adapter for the Google Gemini API, used by graders and oracle.

    Uses the ``google-genai`` SDK (not the deprecated ``google-generativeai``
    package).  Async calls are made via ``client.aio``.  The SDK's retry
    loop is pinned to a single attempt so a failing oracle hands over to the
    statistical fallback at once instead of backing off.

    Args:
        config: Gemini-specific configuration (API key, model, temperature,
            output token cap).
    """

    def __init__(self, config: GeminiConfig) -> None:
        self.client = genai.Client(api_key=config.api_key, http_options=_SINGLE_ATTEMPT)
        self._model = config.model
        self.temperature = config.temperature
        self.max_output_tokens = config.max_output_tokens

    @property
    def provider(self) -> str:  # noqa: D401
        """The provider identifier."""
        return "gemini"

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """Generate a response from the Gemini API.

        Args:
            system_prompt: Persona or moderator instructions, sent as the
                system instruction.
            user_prompt: The report or evaluations to work on.

        Returns:
            ``LLMResponse`` with the raw text and token usage metadata.  A
            response with no text (e.g. blocked by safety filters) yields an
            empty ``raw_text``, which callers treat as unstructured output.

        Raises:
            LLMError: If the Gemini API call fails.
        """
        try:
            response = await self.client.aio.models.generate_content(
                model=self._model,
                contents=user_prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_prompt,
                    temperature=self.temperature,
                    max_output_tokens=self.max_output_tokens,
                ),
            )
        except Exception as exc:
            raise LLMError(
                provider="gemini",
                message=str(exc),
                original_error=exc,
            ) from exc

        input_tokens: int | None = None
        output_tokens: int | None = None
        if response.usage_metadata:
            input_tokens = getattr(response.usage_metadata, "prompt_token_count", None)
            output_tokens = getattr(response.usage_metadata, "candidates_token_count", None)

        return LLMResponse(
            raw_text=response.text or "",
            model=self._model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
