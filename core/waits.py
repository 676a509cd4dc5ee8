"""
Cooperative wait primitives.
Every wait yields to the event loop between polls. Bounded waits return a status;
unbounded waits take an optional cancellation event.
"""

from __future__ import annotations
import asyncio
import inspect
from typing import Awaitable, Callable, Optional, Union

Predicate = Callable[[], Union[bool, Awaitable[bool]]]


async def _check(predicate: Predicate) -> bool:
    result = predicate()
    if inspect.isawaitable(result):
        result = await result
    return bool(result)


async def wait_until(
    predicate: Predicate,
    timeout: Optional[float],
    interval: float = 0.1,
    cancel: Optional[asyncio.Event] = None,
) -> bool:
    """
    Poll predicate until it holds.
    Returns False on timeout or cancellation; timeout=None waits forever.
    """
    loop = asyncio.get_running_loop()
    deadline = None if timeout is None else loop.time() + timeout

    while True:
        if await _check(predicate):
            return True
        if cancel is not None and cancel.is_set():
            return False
        if deadline is not None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                return False
            step = min(interval, remaining)
        else:
            step = interval
        await sleep_or_cancel(step, cancel)


async def sleep_or_cancel(seconds: float, cancel: Optional[asyncio.Event] = None) -> bool:
    """Sleep, waking early if cancel is set. Returns True when cancelled."""
    if cancel is None:
        await asyncio.sleep(seconds)
        return False
    try:
        await asyncio.wait_for(cancel.wait(), timeout=seconds)
        return True
    except asyncio.TimeoutError:
        return False
