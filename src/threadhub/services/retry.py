"""Exponential backoff for calls to the identity provider.

Every remote call made by the reconciliation engine goes through
:func:`with_retry`. Only failures classified as transient are retried; a
permanent failure such as "organization not found" is raised at once.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from threadhub.core.settings import settings
from threadhub.services.identity import IdentityProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


def is_transient_error(exc: BaseException) -> bool:
    """Return True for failures that may succeed when retried.

    Network and timeout errors are transient. Provider errors carry their own
    classification. Anything else (programming errors, bad payloads) is not.
    """
    if isinstance(exc, IdentityProviderError):
        return exc.transient
    return isinstance(exc, (httpx.TransportError, OSError, TimeoutError))


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry budget: ``retries`` extra attempts after the first."""

    retries: int = 3
    delay: float = 0.5
    multiplier: float = 2.0

    @classmethod
    def from_settings(cls) -> RetryPolicy:
        return cls(
            retries=settings.retry_attempts,
            delay=settings.retry_initial_delay_seconds,
            multiplier=settings.retry_multiplier,
        )

    def delays(self) -> list[float]:
        """Waits applied between attempts when every attempt fails."""
        return [self.delay * self.multiplier**i for i in range(self.retries)]


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    retries: int = 3,
    delay: float = 0.5,
    multiplier: float = 2.0,
    *,
    is_transient: Callable[[BaseException], bool] = is_transient_error,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Run ``operation`` and retry transient failures with exponential backoff.

    Args:
        operation: Zero-argument callable returning a fresh awaitable per attempt.
        retries: How many times to retry after the first failure.
        delay: Seconds to wait before the first retry.
        multiplier: Factor applied to the delay after each retry.
        is_transient: Predicate deciding whether a failure is worth retrying.
        sleep: Awaitable sleep function, replaceable in tests.

    Returns:
        The operation's result.

    Raises:
        The last error raised by ``operation`` once the budget is exhausted,
        or the first non-transient error.
    """
    remaining = retries
    wait = delay
    while True:
        try:
            return await operation()
        except Exception as exc:
            if remaining <= 0 or not is_transient(exc):
                raise
            logger.warning(
                "Retrying after %.0fms, %d retries left: %s",
                wait * 1000,
                remaining,
                exc,
            )
            await sleep(wait)
            remaining -= 1
            wait *= multiplier


async def call_with_policy(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """Shorthand for :func:`with_retry` driven by a :class:`RetryPolicy`."""
    return await with_retry(
        operation,
        policy.retries,
        policy.delay,
        policy.multiplier,
        sleep=sleep,
    )
