"""
OpenAI LLM provider implementation.

Also the base for OpenAI-compatible endpoints (see openrouter_provider).
"""

from llm.provider import JSON_INSTRUCTION, LLMProvider, LLMResponse, LLMError


class OpenAIProvider(LLMProvider):
    label = "OpenAI"
    key_env = "OPENAI_API_KEY"
    base_url: str | None = None

    def __init__(self, api_key: str, model: str = "gpt-4o-mini"):
        if not api_key:
            raise LLMError(f"{self.key_env} not set")
        try:
            import openai
        except ImportError:
            raise LLMError("openai package not installed: pip install openai")
        if self.base_url:
            self._client = openai.OpenAI(api_key=api_key, base_url=self.base_url)
        else:
            self._client = openai.OpenAI(api_key=api_key)
        self._model = model

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2000,
        json_mode: bool = False,
        timeout: float | None = None,
    ) -> LLMResponse:
        kwargs = {}
        if json_mode:
            # response_format requires the word "JSON" somewhere in the messages
            kwargs["response_format"] = {"type": "json_object"}
            system_prompt = system_prompt + JSON_INSTRUCTION
        if timeout is not None:
            kwargs["timeout"] = timeout
        try:
            response = self._client.chat.completions.create(
                model=self._model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                **kwargs,
            )
            choice = response.choices[0]
            usage = response.usage
            return LLMResponse(
                text=choice.message.content or "",
                input_tokens=usage.prompt_tokens if usage else 0,
                output_tokens=usage.completion_tokens if usage else 0,
                model=self._model,
                truncated=choice.finish_reason == "length",
            )
        except Exception as e:
            raise LLMError(f"{self.label} API error: {e}") from e

    def name(self) -> str:
        return f"openai/{self._model}"
