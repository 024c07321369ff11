from __future__ import annotations

try:
    import openai as _openai
except ImportError:
    _openai = None  # type: ignore[assignment]

from diffsentry_core.providers.base import (
    MAX_OUTPUT_TOKENS,
    REQUEST_TIMEOUT,
    TEMPERATURE,
    BaseModelClient,
    EmptyResponse,
    ModelResponse,
    ProviderError,
    SafetyBlocked,
    Unreachable,
)


class OpenAIClient(BaseModelClient):
    DEFAULT_MODEL = "gpt-4o"

    def __init__(self, api_key: str, model: str | None = None):
        if _openai is None:
            raise ImportError(
                "The 'openai' package is required for this provider. "
                "Install it with: pip install 'diffsentry[openai]'"
            )
        super().__init__(model)
        self.client = _openai.OpenAI(api_key=api_key, timeout=REQUEST_TIMEOUT, max_retries=0)

    def _call_api(self, prompt: str) -> ModelResponse:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=TEMPERATURE,
                top_p=1,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
        except _openai.APIConnectionError as e:
            raise Unreachable(f"OpenAI API request failed: {e}") from e
        except _openai.APIStatusError as e:
            raise ProviderError(f"OpenAI API HTTP {e.status_code}: {e.message}") from e

        if not response.choices:
            raise EmptyResponse("No choices returned from OpenAI API")

        choice = response.choices[0]
        finish_reason = choice.finish_reason
        text = (choice.message.content or "").strip()
        if not text:
            if finish_reason == "content_filter" or getattr(choice.message, "refusal", None):
                raise SafetyBlocked("OpenAI API withheld the output (content filter)")
            raise EmptyResponse(f"No text content returned from OpenAI API (finish reason {finish_reason})")

        return ModelResponse(text=text, finish_reason=finish_reason, truncated=finish_reason == "length")
