"""
Generic retry layer for provider streams.

Sits above the adapter: the adapter owns the single inline 503 retry, this
layer owns backoff for rate limits and connection failures. A stream is only
retried while it has produced nothing; once the first fragment reaches the
caller, failures propagate unchanged.

Usage:
    async for fragment in stream_with_retry(
        lambda: adapter.create_message(system_prompt, messages)
    ):
        ...
"""

import logging
from contextlib import aclosing
from typing import AsyncGenerator, Callable, Optional, TypeVar

import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

from targon_provider.adapters.targon import TargonAPIError
from targon_provider.config import get_retry_attempts, get_retry_min_wait, get_retry_max_wait

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if an adapter error is worth retrying with backoff.

    Retryable errors:
    - 429 rate limits
    - Connection/timeout failures (no HTTP status)

    503 is excluded; the adapter has already retried it once.
    """
    if not isinstance(exception, TargonAPIError):
        return False
    if exception.status_code == 429:
        return True
    return exception.status_code is None and isinstance(
        exception.__cause__, httpx.TransportError
    )


async def stream_with_retry(
    factory: Callable[[], AsyncGenerator[T, None]],
    attempts: Optional[int] = None,
    min_wait: Optional[float] = None,
    max_wait: Optional[float] = None,
) -> AsyncGenerator[T, None]:
    """
    Re-open a stream with exponential backoff until it yields its first item.

    Args:
        factory: Zero-argument callable returning a fresh async generator
        attempts: Max attempts (default from TARGON_RETRY_ATTEMPTS)
        min_wait: Min backoff seconds (default from TARGON_RETRY_MIN_WAIT)
        max_wait: Max backoff seconds (default from TARGON_RETRY_MAX_WAIT)
    """
    attempts = attempts if attempts is not None else get_retry_attempts()
    min_wait = min_wait if min_wait is not None else get_retry_min_wait()
    max_wait = max_wait if max_wait is not None else get_retry_max_wait()

    @retry(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=2, min=min_wait, max=max_wait),
        retry=retry_if_exception(is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def open_stream() -> tuple[AsyncGenerator[T, None], list[T]]:
        """Start the stream and pull its first item (empty list if exhausted)."""
        stream = factory()
        try:
            return stream, [await stream.__anext__()]
        except StopAsyncIteration:
            return stream, []

    stream, head = await open_stream()
    async with aclosing(stream):
        for item in head:
            yield item
        async for item in stream:
            yield item
