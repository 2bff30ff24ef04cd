"""
OptSolv Backend — Gemini Client Tests (Mocked SDK)
====================================================

What we test:
    ✅ Circuit breaker state machine (closed → open → half-open → closed)
    ✅ generate() returns the model text and passes model/config through
    ✅ SDK failures become ServiceError and count toward the breaker
    ✅ Open breaker fails fast without calling the SDK
    ✅ Missing API key is a ConfigurationError before any SDK call
    ❌ Real API calls
"""

import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from optsolv.exceptions import CircuitBreakerOpenError, ConfigurationError, ServiceError
from optsolv.services.gemini_client import CircuitBreaker, GeminiClient


class TestCircuitBreaker:

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker(failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.can_execute()

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()

        assert cb.state == CircuitBreaker.OPEN
        with pytest.raises(CircuitBreakerOpenError) as exc_info:
            cb.can_execute()
        assert 1 <= exc_info.value.recovery_time <= 60

    def test_half_open_then_closed_on_success(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)

        assert cb.can_execute()
        assert cb.state == CircuitBreaker.HALF_OPEN

        cb.record_success()
        assert cb.state == CircuitBreaker.CLOSED
        assert cb.failure_count == 0

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker(failure_threshold=1, recovery_timeout=0)
        cb.record_failure()
        time.sleep(0.01)
        cb.can_execute()

        cb.record_failure()
        assert cb.state == CircuitBreaker.OPEN


def _mock_model(text="Hello", side_effect=None):
    model = MagicMock()
    if side_effect is not None:
        model.generate_content_async = AsyncMock(side_effect=side_effect)
    else:
        response = MagicMock()
        response.text = text
        model.generate_content_async = AsyncMock(return_value=response)
    return model


class TestGeminiClient:

    @pytest.mark.asyncio
    async def test_generate_returns_text(self):
        with patch("optsolv.services.gemini_client.genai") as mock_genai:
            model = _mock_model("Buy milk")
            mock_genai.GenerativeModel.return_value = model
            client = GeminiClient(api_key="k")

            result = await client.generate("gemini-2.5-flash", ["prompt"], {"temperature": 0.4})

        assert result == "Buy milk"
        mock_genai.configure.assert_called_once_with(api_key="k")
        mock_genai.GenerativeModel.assert_called_once_with(
            "gemini-2.5-flash", generation_config={"temperature": 0.4}
        )
        args, kwargs = model.generate_content_async.await_args
        assert args[0] == ["prompt"]
        assert kwargs["request_options"] == {"timeout": client.timeout}

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_service_error(self):
        with patch("optsolv.services.gemini_client.genai") as mock_genai:
            mock_genai.GenerativeModel.return_value = _mock_model(
                side_effect=RuntimeError("quota exceeded")
            )
            client = GeminiClient(api_key="k")

            with pytest.raises(ServiceError):
                await client.generate("m", ["p"], {})

        assert client.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_single_attempt_per_call(self):
        with patch("optsolv.services.gemini_client.genai") as mock_genai:
            model = _mock_model(side_effect=TimeoutError())
            mock_genai.GenerativeModel.return_value = model
            client = GeminiClient(api_key="k")

            with pytest.raises(ServiceError):
                await client.generate("m", ["p"], {})

        assert model.generate_content_async.await_count == 1

    @pytest.mark.asyncio
    async def test_open_circuit_skips_sdk(self):
        with patch("optsolv.services.gemini_client.genai") as mock_genai:
            client = GeminiClient(api_key="k")
            for _ in range(client.circuit_breaker.failure_threshold):
                client.circuit_breaker.record_failure()

            with pytest.raises(CircuitBreakerOpenError):
                await client.generate("m", ["p"], {})

        mock_genai.GenerativeModel.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_key_is_configuration_error(self):
        with patch("optsolv.services.gemini_client.genai") as mock_genai:
            client = GeminiClient(api_key="")
            assert client.is_configured is False

            with pytest.raises(ConfigurationError):
                await client.generate("m", ["p"], {})

        mock_genai.configure.assert_not_called()

    @pytest.mark.asyncio
    async def test_health_check_returns_bool(self):
        with patch("optsolv.services.gemini_client.genai") as mock_genai:
            mock_genai.list_models.return_value = [MagicMock()]
            assert await GeminiClient(api_key="k").health_check() is True

            mock_genai.list_models.side_effect = RuntimeError("offline")
            assert await GeminiClient(api_key="k").health_check() is False
