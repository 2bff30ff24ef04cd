"""
OptSolv Backend — Google Gemini Client
========================================

What:  The single LLMService implementation, shared by OCR and classification.
How:   Configures the google-generativeai SDK once, builds a GenerativeModel
       per call (model name and generation config differ per gateway) and
       awaits `generate_content_async` with a request timeout. Every call
       passes through one shared circuit breaker.
Who:   Module-level singleton `gemini_client`, injected into both gateways.

Resilience Strategy:
    1. No retries: a failed call is reported to the user, who may re-upload
    2. Circuit breaker: after N consecutive failures calls fail fast (503)
       until the recovery timeout elapses
    3. Timeout: settings.gemini_timeout seconds per call
"""

import logging
import time
import uuid
from typing import Any, Dict, List, Optional

import google.generativeai as genai

from optsolv.config import settings
from optsolv.exceptions import CircuitBreakerOpenError, ConfigurationError, ServiceError
from optsolv.services.llm_base import ContentPart, LLMService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Circuit Breaker
# ══════════════════════════════════════════════════════════════════════════

class CircuitBreaker:
    """
    State Machine:
        CLOSED     → failure_count reaches threshold → OPEN
        OPEN       → recovery_timeout elapsed        → HALF_OPEN (one test call)
        HALF_OPEN  → success → CLOSED; failure → OPEN

    Single-process state: each uvicorn worker keeps its own breaker.
    """

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(self, failure_threshold: int = 5, recovery_timeout: int = 60):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time: Optional[float] = None

    def can_execute(self) -> bool:
        """
        Raises:
            CircuitBreakerOpenError: OPEN and the recovery timeout has not elapsed.
        """
        if self.state == self.OPEN:
            elapsed = time.time() - (self.last_failure_time or 0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(
                    recovery_time=max(1, int(self.recovery_timeout - elapsed))
                )
            logger.info("Circuit breaker transitioning to HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
        return True

    def record_success(self) -> None:
        if self.state == self.HALF_OPEN:
            logger.info("Circuit breaker transitioning to CLOSED (service recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.last_failure_time = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker returning to OPEN (test request failed)")
            self.state = self.OPEN
        elif self.failure_count >= self.failure_threshold and self.state != self.OPEN:
            logger.warning(
                "Circuit breaker OPENING after %d consecutive failures",
                self.failure_count,
            )
            self.state = self.OPEN


# ══════════════════════════════════════════════════════════════════════════
# Gemini Client
# ══════════════════════════════════════════════════════════════════════════

class GeminiClient(LLMService):
    def __init__(self, api_key: Optional[str] = None, timeout: Optional[int] = None):
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.timeout = timeout or settings.gemini_timeout
        self._sdk_configured = False
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )
        logger.info(
            "GeminiClient initialized: ocr_model=%s analysis_model=%s "
            "circuit_breaker(threshold=%d, recovery=%ds)",
            settings.gemini_ocr_model,
            settings.gemini_analysis_model,
            settings.cb_failure_threshold,
            settings.cb_recovery_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key) and self.api_key != "your_gemini_api_key_here"

    def _configure_sdk(self) -> None:
        if not self.is_configured:
            raise ConfigurationError()
        if not self._sdk_configured:
            # The SDK keeps credentials in module-level state
            genai.configure(api_key=self.api_key)
            self._sdk_configured = True

    async def generate(
        self,
        model_name: str,
        parts: List[ContentPart],
        generation_config: Dict[str, Any],
    ) -> str:
        """
        Flow:
            1. Configuration check → ConfigurationError (no network call)
            2. Circuit breaker check → CircuitBreakerOpenError
            3. One generate_content_async call with timeout
            4. Record success / failure in the breaker
        """
        self._configure_sdk()
        self.circuit_breaker.can_execute()

        call_id = uuid.uuid4().hex[:8]
        start_time = time.perf_counter()
        logger.info("[%s] Gemini call started: model=%s parts=%d", call_id, model_name, len(parts))

        try:
            model = genai.GenerativeModel(model_name, generation_config=generation_config)
            response = await model.generate_content_async(
                parts,
                request_options={"timeout": self.timeout},
            )
            # .text raises ValueError when the response was blocked or has no parts
            text = response.text or ""
        except Exception as e:
            self.circuit_breaker.record_failure()
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "[%s] Gemini call failed after %.0fms: %s: %s",
                call_id,
                duration_ms,
                type(e).__name__,
                str(e),
            )
            raise ServiceError(
                context={"call_id": call_id, "model": model_name, "error_type": type(e).__name__},
            ) from e

        self.circuit_breaker.record_success()
        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] Gemini call completed in %.0fms, %d chars",
            call_id,
            duration_ms,
            len(text),
        )
        return text

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify the key and connectivity."""
        if not self.is_configured:
            return False
        try:
            self._configure_sdk()
            models = genai.list_models()
            return any(True for _ in models)
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
# One breaker for the whole process: both gateways share this instance
gemini_client = GeminiClient()
