"""Tests for the bounded retry decorator."""

import pytest

from repo_migrator.core.exceptions import ApiError
from repo_migrator.core.retry import MAX_TRIES, retrying
from repo_migrator.migration.classifier import is_transient


class Flaky:
    """Coroutine that fails with queued errors before succeeding."""

    def __init__(self, *errors: Exception):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def retry_fast(operation):
    @retrying("test op", should_retry=is_transient, initial_delay=0)
    async def call():
        return await operation()

    return call


class TestRetrying:
    """Retry of transient failures with exponential backoff."""

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self):
        """Test that transient failures are retried until the call succeeds."""
        operation = Flaky(
            ApiError("GitHub API error: 503 Service Unavailable", status_code=503),
            ApiError("GitHub API error: 502 Bad Gateway", status_code=502),
        )

        assert await retry_fast(operation)() == "ok"
        assert operation.calls == 3

    @pytest.mark.asyncio
    async def test_permanent_error_is_raised_immediately(self):
        """Test that an error the predicate rejects is not retried."""
        operation = Flaky(ApiError("Codeberg API error: 403 Forbidden", status_code=403))

        with pytest.raises(ApiError, match="403"):
            await retry_fast(operation)()
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self):
        """Test that the last error is raised once all attempts are used."""
        errors = [ApiError(f"Codeberg API error: 500 attempt {n}", status_code=500) for n in range(5)]
        operation = Flaky(*errors)

        with pytest.raises(ApiError, match=f"attempt {MAX_TRIES - 1}"):
            await retry_fast(operation)()
        assert operation.calls == MAX_TRIES
