import logging
import time

import pytest

from meeting_wizard.services.retry import (
    RateLimitError,
    RateLimitExhaustedError,
    is_rate_limit_error,
    retry_with_backoff,
)


class FlakyOperation:
    """Fails with the queued errors, then returns ``result``."""

    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_rate_limit_detection():
    assert is_rate_limit_error(RateLimitError("slow down"))
    assert is_rate_limit_error(RuntimeError("Rate limit nådd. Försök igen"))
    assert not is_rate_limit_error(RuntimeError("rate limit"))
    assert not is_rate_limit_error(ValueError("boom"))


@pytest.mark.asyncio
async def test_returns_result_of_third_attempt_after_backoff():
    operation = FlakyOperation([RateLimitError("429"), RuntimeError("Rate limit nådd")], "done")

    started = time.monotonic()
    result = await retry_with_backoff(operation, max_retries=3, base_delay_ms=20)
    elapsed = time.monotonic() - started

    assert result == "done"
    assert operation.calls == 3
    assert elapsed >= 0.06


@pytest.mark.asyncio
async def test_other_errors_propagate_immediately():
    error = ValueError("broken payload")
    operation = FlakyOperation([error])

    started = time.monotonic()
    with pytest.raises(ValueError) as excinfo:
        await retry_with_backoff(operation, max_retries=3, base_delay_ms=500)

    assert excinfo.value is error
    assert operation.calls == 1
    assert time.monotonic() - started < 0.5


@pytest.mark.asyncio
async def test_gives_up_after_max_retries():
    errors = [RateLimitError(f"429 #{n}") for n in range(5)]
    operation = FlakyOperation(errors)

    with pytest.raises(RateLimitExhaustedError) as excinfo:
        await retry_with_backoff(operation, max_retries=3, base_delay_ms=1)

    assert operation.calls == 3
    assert excinfo.value.attempts == 3
    assert str(excinfo.value.last_error) == "429 #2"
    assert excinfo.value.__cause__ is excinfo.value.last_error
    assert excinfo.value.status_code == 429


@pytest.mark.asyncio
async def test_zero_retries_still_calls_once():
    operation = FlakyOperation([RateLimitError("429")])

    with pytest.raises(RateLimitExhaustedError):
        await retry_with_backoff(operation, max_retries=0, base_delay_ms=1)

    assert operation.calls == 1


@pytest.mark.asyncio
async def test_each_retry_is_logged(caplog):
    operation = FlakyOperation([RateLimitError("429"), RateLimitError("429")])

    with caplog.at_level(logging.WARNING, logger="meeting_wizard.retry"):
        await retry_with_backoff(operation, max_retries=3, base_delay_ms=1)

    retries = [r for r in caplog.records if r.name == "meeting_wizard.retry"]
    assert [(r.args[0], r.args[1]) for r in retries] == [(1, 1), (2, 2)]


@pytest.mark.asyncio
async def test_waits_double_without_jitter(caplog):
    operation = FlakyOperation([RateLimitError("429")] * 3, "done")

    with caplog.at_level(logging.WARNING, logger="meeting_wizard.retry"):
        result = await retry_with_backoff(operation, max_retries=4, base_delay_ms=5)

    delays = [r.args[0] for r in caplog.records if r.name == "meeting_wizard.retry"]
    assert result == "done"
    assert delays == [5, 10, 20]
