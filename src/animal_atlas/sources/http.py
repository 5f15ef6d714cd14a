"""Shared HTTP client and retry helpers for source adapters."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from animal_atlas.config.models import HttpConfig
from animal_atlas.sources.errors import SourceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def create_http_client(config: HttpConfig | None = None) -> httpx.AsyncClient:
    """Create the single AsyncClient shared by every adapter.

    Args:
        config: HTTP settings; defaults apply when omitted

    Returns:
        Configured httpx.AsyncClient
    """
    config = config or HttpConfig()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        limits=httpx.Limits(
            max_keepalive_connections=config.max_keepalive_connections,
            max_connections=config.max_connections,
        ),
        headers={"User-Agent": config.user_agent, "Accept": "application/json"},
        follow_redirects=True,
    )


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff parameters."""

    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 10.0

    @classmethod
    def from_config(cls, config: HttpConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.retry_max_attempts,
            base_delay=config.retry_base_delay,
            max_delay=config.retry_max_delay,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay in seconds before the retry following the given 0-based attempt."""
        return min(self.base_delay * (self.multiplier**attempt), self.max_delay)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await operation, retrying retryable SourceErrors with exponential backoff.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        policy: Backoff parameters
        sleep: Awaitable sleep used between attempts

    Returns:
        The first successful result

    Raises:
        SourceError: The last error when attempts run out or it is not retryable
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except SourceError as e:
            attempt += 1
            if not e.retryable or attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt - 1)
            logger.debug(
                "Retrying %s after %s (attempt %d/%d, %.1fs)",
                e.source or "request",
                e.error_type.value,
                attempt,
                policy.max_attempts,
                delay,
            )
            await sleep(delay)
