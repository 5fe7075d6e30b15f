"""Tests for the retry controller."""

import pytest

from lp_api.deployment.errors import DeploymentError, ErrorKind
from lp_api.deployment.retry import calculate_backoff_delay, with_retry


class TestBackoff:
    """Test backoff delay calculation."""

    def test_exponential_delays(self):
        assert calculate_backoff_delay(0) == 0
        assert calculate_backoff_delay(1) == 2000
        assert calculate_backoff_delay(2) == 4000
        assert calculate_backoff_delay(3) == 8000

    def test_delay_is_capped(self):
        assert calculate_backoff_delay(5) == 30000
        assert calculate_backoff_delay(20) == 30000

    def test_custom_base(self):
        assert calculate_backoff_delay(3, base_delay_ms=100) == 400


class TestWithRetry:
    """Test with_retry behavior."""

    @pytest.mark.asyncio
    async def test_success_on_first_try(self, no_sleep):
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            return "ok"

        assert await with_retry(operation, sleep=no_sleep) == "ok"
        assert calls == 1
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, no_sleep):
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            if calls < 3:
                raise DeploymentError("flaky", ErrorKind.NETWORK_ERROR)
            return "deployed"

        assert await with_retry(operation, sleep=no_sleep) == "deployed"
        assert calls == 3
        assert no_sleep.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_exhausts_attempts(self, no_sleep):
        """Test one initial try plus max_attempts retries, then the last error."""
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            raise DeploymentError(f"failure {calls}", ErrorKind.RATE_LIMIT)

        with pytest.raises(DeploymentError, match="failure 4"):
            await with_retry(operation, max_attempts=3, sleep=no_sleep)

        assert calls == 4
        assert no_sleep.delays == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self, no_sleep):
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            raise DeploymentError("bad token", ErrorKind.AUTH_FAILED)

        with pytest.raises(DeploymentError, match="bad token"):
            await with_retry(operation, sleep=no_sleep)

        assert calls == 1
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_unclassified_exception_is_not_retried(self, no_sleep):
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await with_retry(operation, sleep=no_sleep)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_custom_predicate_and_cap(self, no_sleep):
        calls = 0

        async def operation():
            nonlocal calls
            calls += 1
            raise ValueError("always")

        with pytest.raises(ValueError):
            await with_retry(
                operation,
                is_retryable=lambda e: isinstance(e, ValueError),
                max_attempts=6,
                base_delay_ms=10000,
                sleep=no_sleep,
            )

        assert calls == 7
        assert no_sleep.delays == [10.0, 20.0, 30.0, 30.0, 30.0, 30.0]

    @pytest.mark.asyncio
    async def test_zero_retries(self, no_sleep):
        async def operation():
            raise DeploymentError("down", ErrorKind.NETWORK_ERROR)

        with pytest.raises(DeploymentError):
            await with_retry(operation, max_attempts=0, sleep=no_sleep)
        assert no_sleep.delays == []

    @pytest.mark.asyncio
    async def test_lambda_returning_coroutine_is_awaited(self, no_sleep):
        calls = []

        async def attempt(target: str) -> str:
            calls.append(target)
            if len(calls) == 1:
                raise DeploymentError("reset", ErrorKind.NETWORK_ERROR)
            return f"deployed {target}"

        result = await with_retry(lambda: attempt("site"), sleep=no_sleep)

        assert result == "deployed site"
        assert calls == ["site", "site"]
        assert no_sleep.delays == [2.0]
