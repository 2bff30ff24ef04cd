"""
OptSolv Backend — Abstract Generative Model Interface
=======================================================

What:  The contract both gateways use to talk to a generative model.
How:   One call, `generate(model_name, parts, generation_config)`, where
       `parts` mixes prompt strings and inline image blobs. The OCR gateway
       and the classification gateway differ only in model, parts and config.
Who:   GeminiClient implements it; tests substitute an AsyncMock.

Contract:
    - Exactly one upstream attempt per call; no retries
    - Provider errors are translated to ServiceError
    - A missing API key is a ConfigurationError, raised before any network call
    - Returns the raw response text ("" when the model produced none);
      trimming and interpretation belong to the caller
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union

# A prompt string or an inline blob: {"mime_type": "image/png", "data": b"..."}
ContentPart = Union[str, Dict[str, Any]]


class LLMService(ABC):

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when credentials are present; gateways check this before fetching input."""
        ...

    @abstractmethod
    async def generate(
        self,
        model_name: str,
        parts: List[ContentPart],
        generation_config: Dict[str, Any],
    ) -> str:
        """
        Send one request to the model and return its text.

        Raises:
            ConfigurationError: No credentials configured.
            CircuitBreakerOpenError: Too many recent consecutive failures.
            ServiceError: The provider call failed or returned an unusable response.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability test that spends no generation quota."""
        ...
