"""Abstract LLM adapter interface and shared types."""

from abc import ABC, abstractmethod

from pydantic import BaseModel


class LLMResponse(BaseModel):
    """Raw LLM response text before any JSON parsing."""

    raw_text: str
    model: str
    input_tokens: int | None = None
    output_tokens: int | None = None


class LLMError(Exception):
    """Error raised by LLM adapters on API failures.

    Attributes:
        provider: The LLM provider that raised the error ("gemini" or "openai").
        message: Human-readable error description.
        original_error: The underlying exception from the provider SDK, if any.
    """

    def __init__(
        self,
        provider: str,
        message: str,
        original_error: Exception | None = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.original_error = original_error
        super().__init__(f"[{provider}] {message}")


class BaseLLM(ABC):
    """Abstract base class for LLM provider adapters.

    All concrete adapters (Gemini, OpenAI) must implement ``provider``,
    ``model`` and ``generate``.  Adapters make a single attempt per call;
    retry and fallback policy belongs to the caller.
    """

    @property
    @abstractmethod
    def provider(self) -> str:
        """Return the provider identifier (e.g. ``"gemini"`` or ``"openai"``)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Return the model identifier sent with each request."""

    @abstractmethod
    async def generate(self, system_prompt: str, user_prompt: str) -> LLMResponse:
        """Send a prompt to the LLM and return the raw response.

        Args:
            system_prompt: The system-level instruction for the LLM.
            user_prompt: The user-level message / task description.

        Returns:
            An ``LLMResponse`` containing the raw text and token counts.

        Raises:
            LLMError: If the underlying API call fails.
        """
