"""Backoff utilities.

Provides an async generator for fixed-delay retry strategies.
`fixed_delay` yields the 1-based attempt number for the caller to attempt an
operation, then waits the delay before the next attempt. No wait happens before
the first attempt or after the last one. When a cancel event is given, the wait
ends early as soon as the event is set and `RetryCancelled` is raised.
"""
import asyncio
from datetime import timedelta
from typing import AsyncIterator


class RetryCancelled(Exception):
    """Raised when the cancel event fires while waiting between attempts."""


def to_seconds(delay: float | timedelta) -> float:
    seconds = delay.total_seconds() if isinstance(delay, timedelta) else float(delay)
    if seconds < 0:
        raise ValueError(f"retry delay must be >= 0, got {seconds}")
    return seconds


async def _wait(delay_seconds: float, cancel_event: asyncio.Event | None) -> None:
    if cancel_event is None:
        await asyncio.sleep(delay_seconds)
        return
    try:
        await asyncio.wait_for(cancel_event.wait(), timeout=delay_seconds)
    except asyncio.TimeoutError:
        return
    raise RetryCancelled()


async def fixed_delay(
    delay_seconds: float,
    max_attempts: int,
    *,
    cancel_event: asyncio.Event | None = None,
) -> AsyncIterator[int]:
    for attempt in range(1, max_attempts + 1):
        yield attempt
        if attempt < max_attempts:
            await _wait(delay_seconds, cancel_event)
