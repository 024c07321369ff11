from __future__ import annotations

from diffsentry_core.providers.base import (
    MAX_OUTPUT_TOKENS,
    REQUEST_TIMEOUT,
    TEMPERATURE,
    TOP_K,
    BaseModelClient,
    EmptyResponse,
    ModelResponse,
    ProviderError,
    SafetyBlocked,
    Unreachable,
)


class AnthropicClient(BaseModelClient):
    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def __init__(self, api_key: str, model: str | None = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. "
                "Install it with: pip install 'diffsentry[anthropic]'"
            )
        super().__init__(model)
        # SDK retries are disabled: a failed call must surface as one typed error.
        self.client = Anthropic(api_key=api_key, timeout=REQUEST_TIMEOUT, max_retries=0)

    def _call_api(self, prompt: str) -> ModelResponse:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        import anthropic
        from anthropic.types import TextBlock

        try:
            response = self.client.messages.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=TEMPERATURE,
                top_k=TOP_K,
                max_tokens=MAX_OUTPUT_TOKENS,
            )
        except anthropic.APIConnectionError as e:
            raise Unreachable(f"Anthropic API request failed: {e}") from e
        except anthropic.APIStatusError as e:
            raise ProviderError(f"Anthropic API HTTP {e.status_code}: {e.message}") from e

        stop_reason = response.stop_reason
        text = "".join(block.text for block in response.content if isinstance(block, TextBlock)).strip()
        if not text:
            if stop_reason == "refusal":
                raise SafetyBlocked("Anthropic API refused to answer")
            raise EmptyResponse(f"No text content returned from Anthropic API (stop reason {stop_reason})")

        return ModelResponse(text=text, finish_reason=stop_reason, truncated=stop_reason == "max_tokens")
