"""Fan-out helpers for concurrent source calls."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SettledResults:
    """Outcome of an all-settled fan-out, keyed by branch name."""

    values: dict[str, Any] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[Any]:
        return list(self.values.values())

    @property
    def failed(self) -> list[Exception]:
        return list(self.errors.values())

    def get(self, name: str, default: Any = None) -> Any:  # noqa: ANN401
        """Value of a fulfilled branch, or default when it failed or was not run."""
        return self.values.get(name, default)


async def all_settled(branches: dict[str, Awaitable[Any]]) -> SettledResults:
    """Await every branch concurrently and collect both outcomes.

    All awaitables are scheduled before any is awaited. A failing branch never
    cancels or fails the others; cancellation of the caller still propagates.

    Args:
        branches: Mapping of branch name to awaitable

    Returns:
        SettledResults with fulfilled values and errors per branch
    """
    names = list(branches)
    outcomes = await asyncio.gather(*branches.values(), return_exceptions=True)

    settled = SettledResults()
    for name, outcome in zip(names, outcomes, strict=True):
        if isinstance(outcome, Exception):
            logger.debug("Branch %s failed: %s", name, type(outcome).__name__)
            settled.errors[name] = outcome
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            settled.values[name] = outcome
    return settled


async def with_timeout(awaitable: Awaitable[T], seconds: float, default: T) -> T:
    """Race an awaitable against a timer; the timer yields default.

    Args:
        awaitable: Source call to race
        seconds: Timeout in seconds
        default: Value returned when the timer wins

    Returns:
        The awaitable's result, or default on timeout
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=seconds)
    except TimeoutError:
        logger.debug("Source call exceeded %.1fs, using fallback value", seconds)
        return default
