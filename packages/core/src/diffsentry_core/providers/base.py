"""Model client interface and the failure taxonomy shared by every provider.

All providers follow the same shape:
    complete() → _call_api()   ← only this differs per provider
              → log truncation

A provider makes exactly one attempt per call. Retries, where configured,
belong to the orchestrator so that each failure kind surfaces here unchanged.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Deterministic generation settings shared by all providers.
TEMPERATURE = 0.1
TOP_K = 1
MAX_OUTPUT_TOKENS = 8192
REQUEST_TIMEOUT = 30


class ModelError(Exception):
    """Base class for a model call that produced no usable text."""


class ProviderError(ModelError):
    """The provider answered with a structured error payload."""


class SafetyBlocked(ModelError):
    """The provider's safety filter withheld the output entirely."""


class EmptyResponse(ModelError):
    """No candidates, or a candidate without any text."""


class Unreachable(ModelError):
    """Network failure or timeout reaching the provider."""


@dataclass
class ModelResponse:
    """Raw model text plus how generation ended.

    ``truncated`` marks a token-limit cutoff. The text is still returned in
    that case because the parser can usually recover the complete prefix of
    a cut-off JSON array.
    """

    text: str
    finish_reason: str | None = None
    truncated: bool = False


class BaseModelClient(ABC):
    DEFAULT_MODEL: str = ""

    def __init__(self, model: str | None = None):
        self.model = model or self.DEFAULT_MODEL

    def complete(self, prompt: str) -> ModelResponse:
        """Send one prompt and return the raw response text.

        Raises a ModelError subclass on failure.
        """
        response = self._call_api(prompt)
        if response.truncated:
            logger.warning(
                "%s response truncated (finish reason %s); parsing partial output",
                self.__class__.__name__,
                response.finish_reason,
            )
        return response

    @abstractmethod
    def _call_api(self, prompt: str) -> ModelResponse:
        """Make a single API call.

        Subclasses translate every provider-specific failure into one of the
        ModelError subclasses above.
        """
