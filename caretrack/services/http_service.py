"""Outbound HTTP helper with bounded retry/backoff for transient failures."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_RETRY_STATUSES = frozenset({429, 500, 502, 503, 504})


def _backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    delay = min(max_delay, base_delay * (2**attempt))
    if delay:
        delay += random.uniform(0, delay / 2)
    return delay


async def request_with_retries(
    request_fn: Callable[[], Awaitable[httpx.Response]],
    *,
    max_attempts: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 4.0,
    retry_statuses: frozenset[int] | set[int] | None = None,
) -> httpx.Response:
    """
    Call request_fn until it returns a non-retryable response.

    Transport errors on the final attempt propagate. A retryable status on
    the final attempt is returned to the caller as-is.
    """
    statuses = retry_statuses or DEFAULT_RETRY_STATUSES
    last_attempt = max_attempts - 1

    for attempt in range(max_attempts):
        try:
            response = await request_fn()
        except httpx.RequestError as exc:
            if attempt >= last_attempt:
                raise
            logger.warning(
                "HTTP request failed (attempt %s/%s), retrying: %s",
                attempt + 1,
                max_attempts,
                exc.__class__.__name__,
            )
        else:
            if response.status_code not in statuses or attempt >= last_attempt:
                return response
            logger.warning(
                "HTTP request returned %s (attempt %s/%s), retrying",
                response.status_code,
                attempt + 1,
                max_attempts,
            )

        delay = _backoff_delay(attempt, base_delay, max_delay)
        if delay:
            await asyncio.sleep(delay)

    raise RuntimeError("request_with_retries requires max_attempts >= 1")
