"""Caller-side retry with linear backoff for Result-returning calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from liftsync.core.errors import RequestFailed
from liftsync.core.result import Result

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 1.0) -> None:
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


async def retry_request(
    call: Callable[[], Awaitable[Result[T]]],
    retry_config: RetryConfig | None = None,
) -> Result[T]:
    """Re-invoke ``call`` while it fails with ``RequestFailed``.

    Any other outcome, success or failure, is returned as soon as it arrives.
    """
    config = retry_config or RetryConfig()
    attempt = 0
    while True:
        result = await call()
        attempt += 1
        if result.ok or not isinstance(result.error, RequestFailed):
            return result
        if attempt >= config.attempts:
            logger.warning("Giving up after %d attempt(s): %s", attempt, result.error)
            return result
        await asyncio.sleep(config.backoff_seconds * attempt)


__all__ = ["RetryConfig", "retry_request"]
