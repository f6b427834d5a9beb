"""
LLMProvider interface. The analysis source and the article writer are
the only callers; both ask for JSON and both treat the answer as untrusted.

SDK imports and vendor error types stay inside llm/*. Everything else
sees LLMResponse or LLMError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Appended to the system prompt by providers without a native JSON mode.
JSON_INSTRUCTION = (
    "\n\nRespond with a single valid JSON value only. "
    "No markdown fences, no commentary before or after."
)


@dataclass
class LLMResponse:
    """What comes back from any LLM call."""
    text: str
    input_tokens: int
    output_tokens: int
    model: str
    truncated: bool = False


class LLMProvider(ABC):
    """
    One completion per call: system prompt + user prompt, no history.

    Drafting runs warm (0.5), quality review and trend analysis run cold.
    json_mode asks for structured output where the vendor supports it; the
    text is still parsed with llm.jsonparse.extract_json.
    `truncated` is set when the vendor stopped at max_tokens, which usually
    means the JSON is cut off.
    """

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        json_mode: bool = False,
        timeout: float | None = None,
    ) -> LLMResponse:
        """
        Send a prompt to the LLM and get a response.

        Args:
            system_prompt: Sets the LLM's behavior/role.
            user_prompt: The actual content to process.
            temperature: 0.0-1.0, lower = more deterministic.
            max_tokens: Upper bound on response length.
            json_mode: Force a JSON response where the provider supports it.
            timeout: Seconds for this request. None keeps the client default.

        Returns:
            LLMResponse with text and usage stats.

        Raises:
            LLMError: On any provider-specific failure.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        """Return provider name for logging."""
        ...


class LLMError(Exception):
    """Raised when an LLM call fails."""
    pass
