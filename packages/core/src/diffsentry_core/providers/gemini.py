from __future__ import annotations

import json
import logging

import requests

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

logger = logging.getLogger(__name__)

API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

_SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)


class GeminiClient(BaseModelClient):
    DEFAULT_MODEL = "gemini-2.5-flash"

    def __init__(self, api_key: str, model: str | None = None, session: requests.Session | None = None):
        super().__init__(model)
        self._api_key = api_key
        self._session = session or requests.Session()

    def _request_body(self, prompt: str) -> dict:
        return {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "topK": TOP_K,
                "topP": 1,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
            "safetySettings": [{"category": c, "threshold": "BLOCK_NONE"} for c in _SAFETY_CATEGORIES],
        }

    def _call_api(self, prompt: str) -> ModelResponse:
        try:
            response = self._session.post(
                API_URL.format(model=self.model),
                json=self._request_body(prompt),
                headers={"Content-Type": "application/json", "x-goog-api-key": self._api_key},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise Unreachable(f"Gemini API request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if not isinstance(data, dict):
            raise ProviderError(f"Gemini API HTTP {response.status_code}: {response.text[:200]}")

        logger.debug("Gemini API response: %s", json.dumps(data)[:2000])

        if data.get("error"):
            error = data["error"]
            raise ProviderError(f"Gemini API error {error.get('code', response.status_code)}: {error.get('message')}")
        if not response.ok:
            raise ProviderError(f"Gemini API HTTP {response.status_code}: {response.text[:200]}")

        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise SafetyBlocked(f"Gemini API safety block: {block_reason}")

        candidates = data.get("candidates") or []
        if not candidates:
            raise EmptyResponse("No candidates returned from Gemini API")

        candidate = candidates[0]
        finish_reason = candidate.get("finishReason")
        parts = (candidate.get("content") or {}).get("parts") or []
        text = parts[0].get("text") if parts else None

        if not text:
            if finish_reason == "SAFETY":
                raise SafetyBlocked("Gemini API withheld the candidate for safety reasons")
            raise EmptyResponse(f"No text content returned from Gemini API (finish reason {finish_reason})")

        return ModelResponse(text=text, finish_reason=finish_reason, truncated=finish_reason == "MAX_TOKENS")
