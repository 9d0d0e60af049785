"""Cooperative waiting: clock abstraction, run tokens and the poll-until loop."""
from __future__ import annotations

import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Protocol, TypeVar, Union

T = TypeVar("T")

Condition = Callable[[], Union[T, Awaitable[T]]]


class Clock(Protocol):
    def monotonic(self) -> float: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock backed by the running event loop."""

    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


SYSTEM_CLOCK = SystemClock()


class RunToken:
    """Cooperative cancellation flag shared by every wait of one automation run."""

    def __init__(self):
        self._cancelled = False

    @property
    def running(self) -> bool:
        return not self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


async def poll_until(
    condition: Condition,
    timeout: float,
    interval: float,
    *,
    clock: Clock = SYSTEM_CLOCK,
    token: Optional[RunToken] = None,
) -> Optional[Any]:
    """Evaluate ``condition`` now and then every ``interval`` seconds.

    Args:
        condition: Sync or async callable; the first truthy result is returned.
        timeout: Seconds before giving up. Sleeps are clipped so the loop never
            overshoots by more than one interval.
        interval: Seconds between evaluations.
        clock: Time source; every wait suspends on it rather than blocking.
        token: Checked on every tick. A cancelled token ends the loop at once.

    Returns:
        The truthy value, or None on timeout or cancellation (callers tell the two
        apart through their own token).
    """
    start = clock.monotonic()
    while token is None or token.running:
        result = condition()
        if inspect.isawaitable(result):
            result = await result
        if result:
            return result
        elapsed = clock.monotonic() - start
        if elapsed >= timeout:
            break
        await clock.sleep(min(interval, timeout - elapsed))
    return None


async def pause(seconds: float, *, clock: Clock = SYSTEM_CLOCK, token: Optional[RunToken] = None) -> bool:
    """Sleep, then report whether the run should continue."""
    await clock.sleep(seconds)
    return token is None or token.running
