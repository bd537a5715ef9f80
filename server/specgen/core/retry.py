# specgen/core/retry.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from specgen.core.errors import RETRYABLE_KINDS

logger = logging.getLogger(__name__)

BASE_DELAY_MS = 1000
MAX_DELAY_MS = 10000
RETRYABLE_MESSAGES = ("timeout", "network", "connection", "temporary", "service unavailable")


@dataclass
class RetryOutcome:
    value: Any
    attempts: int


def is_retryable(error: BaseException) -> bool:
    if getattr(error, "retryable", False):
        return True
    if getattr(error, "kind", None) in RETRYABLE_KINDS:
        return True
    message = str(error).lower()
    return any(m in message for m in RETRYABLE_MESSAGES)


def backoff_delay(attempt: int) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based)."""
    return min((2 ** attempt) * BASE_DELAY_MS, MAX_DELAY_MS) / 1000.0


async def call_with_retries(operation: Callable[[], Awaitable[Any]],
                            max_retries: int = 3,
                            sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                            request_id: Optional[str] = None) -> RetryOutcome:
    """
    Run `operation` up to `max_retries` times.

    Retryable failures back off exponentially (2s, 4s, 8s, capped at 10s).
    Anything else, or the last failure, is re-raised with an `attempts`
    attribute so the caller can report how far it got.
    """
    prefix = f"[{request_id}] " if request_id else ""
    attempt = 0
    while True:
        attempt += 1
        try:
            value = await operation()
            if attempt > 1:
                logger.info("%sSucceeded on attempt %d/%d", prefix, attempt, max_retries)
            return RetryOutcome(value=value, attempts=attempt)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            e.attempts = attempt
            if attempt >= max_retries or not is_retryable(e):
                logger.warning("%sAttempt %d/%d failed, giving up: %s", prefix, attempt, max_retries, e)
                raise
            delay = backoff_delay(attempt)
            logger.warning("%sAttempt %d/%d failed (%s), retrying in %.1fs",
                           prefix, attempt, max_retries, getattr(e, "kind", type(e).__name__), delay)
            await sleep(delay)
