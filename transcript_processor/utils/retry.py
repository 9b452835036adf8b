"""Retry utilities with capped exponential backoff and jitter.

with_retry() drives a Result-returning attempt function and branches on
the returned value. retry_with_backoff() is the decorator form for
coroutines that raise, used for storage writes.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import replace
from functools import wraps
from typing import Any

from transcript_processor.utils.errors import TranscriptionCancelled
from transcript_processor.utils.result import Err, ErrorKind, Result

logger = logging.getLogger(__name__)

AttemptFn = Callable[[], Awaitable[Result]]


def compute_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float | None = None,
    jitter: float = 0.0,
) -> float:
    """Delay before the retry that follows failed attempt number `attempt`.

    Formula: min(base_delay * 2^attempt, max_delay) + uniform(0, jitter).
    Attempts are counted from 0.
    """
    delay = base_delay * (2**attempt)
    if max_delay is not None:
        delay = min(delay, max_delay)
    if jitter > 0:
        delay += random.uniform(0, jitter)
    return delay


def _cancelled(attempts: int) -> Err:
    return Err(
        kind=ErrorKind.CANCELLED,
        error=TranscriptionCancelled("Transcription cancelled"),
        attempts=attempts,
    )


async def sleep_or_abort(delay: float, abort: asyncio.Event | None) -> bool:
    """Sleep for `delay` seconds. Returns True if the abort signal fired."""
    if abort is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(abort.wait(), timeout=delay)
    except TimeoutError:
        return False
    return True


async def _run_or_abort(attempt_fn: AttemptFn, abort: asyncio.Event | None) -> Result:
    """Run one attempt, abandoning it as soon as the abort signal fires."""
    if abort is None:
        return await attempt_fn()
    if abort.is_set():
        return _cancelled(attempts=0)

    attempt_task = asyncio.ensure_future(attempt_fn())
    abort_task = asyncio.ensure_future(abort.wait())
    try:
        done, _ = await asyncio.wait(
            {attempt_task, abort_task}, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        abort_task.cancel()
        if not attempt_task.done():
            attempt_task.cancel()

    if attempt_task in done:
        return attempt_task.result()

    await asyncio.gather(attempt_task, return_exceptions=True)
    return _cancelled(attempts=0)


async def with_retry(
    attempt_fn: AttemptFn,
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float | None = 8.0,
    jitter: float = 1.0,
    abort: asyncio.Event | None = None,
    label: str = "attempt",
) -> Result:
    """Run `attempt_fn` until it returns Ok or the attempt budget is spent.

    Args:
        attempt_fn: Zero-argument coroutine function returning Ok or Err.
            It performs exactly one remote call per invocation.
        max_retries: Total number of attempts allowed (at least 1).
        base_delay: Base delay in seconds for the exponential backoff.
        max_delay: Cap on the exponential part of the delay.
        jitter: Upper bound in seconds of the random jitter added per wait.
        abort: Optional shared abort signal. When set, the in-flight attempt
            or backoff sleep is abandoned and a CANCELLED Err is returned
            without consuming a retry slot.
        label: Name used in log messages (e.g., "chunk 3").

    Returns:
        The Ok from the first successful attempt, the first non-retryable
        Err, or the last Err once attempts are exhausted. `attempts` on the
        returned value counts the remote calls made.
    """
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")

    outcome: Result = _cancelled(attempts=0)
    for attempt in range(max_retries):
        try:
            outcome = await _run_or_abort(attempt_fn, abort)
        except Exception as exc:
            outcome = Err(kind=ErrorKind.UNEXPECTED, error=exc)

        if not outcome.is_ok and outcome.kind is ErrorKind.CANCELLED:
            return replace(outcome, attempts=attempt)
        outcome = replace(outcome, attempts=attempt + 1)
        if outcome.is_ok or not outcome.kind.retryable:
            return outcome

        if attempt + 1 < max_retries:
            delay = compute_backoff_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "Retry %d/%d for %s after %.1fs: %s",
                attempt + 1,
                max_retries - 1,
                label,
                delay,
                outcome.message,
                extra={"attempt": attempt + 1, "error": outcome.kind.value},
            )
            if await sleep_or_abort(delay, abort):
                return _cancelled(attempts=attempt + 1)

    logger.error(
        "All %d attempts failed for %s: %s", max_retries, label, outcome.message
    )
    return outcome


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float | None = None,
    jitter: float = 0.0,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
) -> Callable:
    """Decorator for retrying async functions with exponential backoff.

    Delay follows compute_backoff_delay(). Here `max_retries` counts the
    retries after the initial call.

    Args:
        max_retries: Maximum number of retry attempts (default 3).
        base_delay: Base delay in seconds before first retry (default 1.0).
        max_delay: Optional cap on the exponential part of the delay.
        jitter: Upper bound of uniform random jitter in seconds.
        retryable_exceptions: Tuple of exception types eligible for retry.
            If None, all exceptions are retried. Non-retryable exceptions
            are re-raised immediately with _retry_count attached.

    Returns:
        Decorator that wraps an async function with retry logic.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            last_error: Exception | None = None
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as exc:
                    last_error = exc
                    if retryable_exceptions is not None and not isinstance(
                        exc, retryable_exceptions
                    ):
                        exc._retry_count = attempt  # type: ignore[attr-defined]
                        raise
                    if attempt < max_retries:
                        delay = compute_backoff_delay(
                            attempt, base_delay, max_delay, jitter
                        )
                        logger.warning(
                            "Retry %d/%d for %s after %.1fs: %s",
                            attempt + 1,
                            max_retries,
                            func.__name__,
                            delay,
                            exc,
                        )
                        await asyncio.sleep(delay)
            last_error._retry_count = max_retries  # type: ignore[union-attr]
            raise last_error  # type: ignore[misc]

        return wrapper

    return decorator
