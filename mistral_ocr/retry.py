"""Rate-limit aware retry around a single provider call"""

from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Optional

from .config import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_RETRIES
from .errors import RateLimitExceeded
from .logging import get_logger
from .types import RequestSpec

logger = get_logger(__name__)

RATE_LIMIT_MESSAGE = (
    "Mistral API rate limit exceeded. Service tier capacity exceeded for this model. "
    "Please try again later or consider upgrading your Mistral API plan."
)
RATE_LIMIT_DESCRIPTION = (
    "The Mistral OCR API is receiving too many requests. This usually happens when "
    "your API plan's rate limits are exceeded."
)


def is_rate_limit_error(exc: Exception) -> bool:
    """An HTTP status decides when present; the message is only read for errors without one."""
    status = getattr(exc, "status", None)
    if status is not None:
        return str(status) == "429"
    return "429" in str(exc)


def backoff_delay_ms(attempt: int, base_delay_ms: int, jitter: float) -> float:
    """base * 2^attempt plus up to one second of jitter (jitter in [0, 1))."""
    return base_delay_ms * 2 ** attempt + jitter * 1000


async def call_with_retry(
    call: Callable[[RequestSpec], Awaitable[Any]],
    request: RequestSpec,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    jitter: Callable[[], float] = random.random,
) -> Any:
    """
    Run `call(request)`, retrying only on HTTP 429.

    At most `max_retries + 1` attempts are made. Any other error propagates
    on the first occurrence.

    Raises:
        RateLimitExceeded: still rate limited after the last attempt
    """
    last_error: Optional[Exception] = None

    for attempt in range(max_retries + 1):
        try:
            return await call(request)
        except Exception as e:
            if not is_rate_limit_error(e):
                raise
            last_error = e

            if attempt < max_retries:
                delay = backoff_delay_ms(attempt, base_delay_ms, jitter())
                logger.warning(
                    f"Rate limit hit on {request.method} {request.url}, retrying in "
                    f"{round(delay)}ms (attempt {attempt + 1}/{max_retries + 1})"
                )
                await sleep(delay / 1000)
                continue

    raise RateLimitExceeded(
        RATE_LIMIT_MESSAGE,
        description=RATE_LIMIT_DESCRIPTION,
        cause=last_error,
    )


__all__ = [
    "RATE_LIMIT_MESSAGE",
    "is_rate_limit_error",
    "backoff_delay_ms",
    "call_with_retry",
]
