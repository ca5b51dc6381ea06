"""Resilience primitives: timeout by cancellation, retry with linear backoff.

Designed for wrapping the client's HTTP calls.  Everything here is
asyncio-native; the only cancellation primitive is the timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from risksurface.defaults import MS_PER_SECOND

log = logging.getLogger("risksurface.resilience")

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Timeout
# ---------------------------------------------------------------------------

class OperationTimeout(Exception):
    """Raised when an operation exceeds its configured timeout."""

    def __init__(self, seconds: float) -> None:
        super().__init__(f"Request timeout after {round(seconds * MS_PER_SECOND)}ms")
        self.seconds = seconds


async def with_timeout(aw: Awaitable[T], seconds: float) -> T:
    """Await *aw*, cancelling it and raising ``OperationTimeout`` after *seconds*."""
    try:
        return await asyncio.wait_for(aw, timeout=seconds)
    except asyncio.TimeoutError as e:
        raise OperationTimeout(seconds) from e


# ---------------------------------------------------------------------------
# Retry with linear backoff
# ---------------------------------------------------------------------------

def linear_backoff(attempt: int, base_delay: float) -> float:
    """Delay before retry number *attempt* (1-based): ``base_delay * attempt``."""
    return base_delay * attempt


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    exceptions: tuple[type[BaseException], ...] = (Exception,),
    sleep: Sleep = asyncio.sleep,
    label: str = "",
) -> T:
    """Call *func* until it succeeds, with bounded linear backoff.

    Parameters
    ----------
    func:
        Zero-argument coroutine function performing one attempt.
    max_attempts:
        Total number of attempts (including the first).
    base_delay:
        Delay unit in seconds; retry *n* waits ``base_delay * n``.
    exceptions:
        Exception classes that trigger a retry.  ``OperationTimeout`` is
        never retried, even when it matches.
    sleep:
        Awaitable sleep, injectable for tests.
    """
    last_exc: BaseException | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            return await func()
        except OperationTimeout:
            raise
        except exceptions as e:
            last_exc = e
            if attempt == max_attempts:
                break
            delay = linear_backoff(attempt, base_delay)
            log.warning(
                "Retry %d/%d for %s: %s (delay %.1fs)",
                attempt, max_attempts - 1, label or getattr(func, "__name__", "call"), e, delay,
                extra={"attempt": attempt},
            )
            await sleep(delay)
    raise last_exc  # type: ignore[misc]
