"""Retry-with-backoff around flaky external API calls.

Only rate-limit failures are retried; everything else surfaces to the caller
on first occurrence.  Delays grow as ``base_delay_ms * 2**attempt`` with no
jitter, and tenacity waits with ``asyncio.sleep`` so other requests keep
running.
"""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

T = TypeVar("T")

RATE_LIMIT_MARKER = "Rate limit"
RATE_LIMIT_STATUS = 429

_logger = logging.getLogger("meeting_wizard.retry")


class RateLimitError(RuntimeError):
    """An external API answered with HTTP 429."""

    def __init__(
        self, message: str, status_code: int = RATE_LIMIT_STATUS, raw: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw


class RateLimitExhaustedError(RuntimeError):
    """Still rate limited after the last allowed attempt."""

    def __init__(self, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"{last_error} (gave up after {attempts} attempts)")
        self.attempts = attempts
        self.last_error = last_error
        self.status_code = getattr(last_error, "status_code", RATE_LIMIT_STATUS)


def is_rate_limit_error(exc: BaseException) -> bool:
    # Message matching is kept alongside the status code: upstream proxies
    # sometimes only forward the text.
    if getattr(exc, "status_code", None) == RATE_LIMIT_STATUS:
        return True
    return RATE_LIMIT_MARKER in str(exc)


def _log_retry(attempts: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        _logger.warning(
            "Rate limit hit, retrying in %sms (attempt %s/%s): %s",
            round(retry_state.next_action.sleep * 1000),
            retry_state.attempt_number,
            attempts,
            retry_state.outcome.exception(),
        )

    return before_sleep


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay_ms: int = 1000,
) -> T:
    """Await ``operation()`` up to ``max_retries`` times.

    Args:
        operation: Zero-argument callable returning an awaitable.
        max_retries: Maximum number of invocations (values below 1 mean one).
        base_delay_ms: Delay before the second attempt; doubles each retry.

    Returns:
        The first successful result.

    Raises:
        RateLimitExhaustedError: The final allowed attempt was rate limited.
        Exception: Any other failure of ``operation``, unchanged.
    """
    attempts = max(1, max_retries)
    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay_ms / 1000, exp_base=2),
        retry=retry_if_exception(is_rate_limit_error),
        before_sleep=_log_retry(attempts),
        reraise=False,
    )
    try:
        return await retrying(operation)
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        raise RateLimitExhaustedError(attempts, last_error) from last_error
