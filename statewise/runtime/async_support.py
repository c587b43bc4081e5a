# statewise/runtime/async_support.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


async def maybe_await(fn: Callable[..., Any], *args: Any) -> Any:
    """
    Call `fn` with the given arguments and await the result when it is
    awaitable. Lets guards, hooks and factories be plain or async callables.
    """
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


async def run_to_completion(aw: Awaitable[Any]) -> Any:
    """
    Run `aw` in its own task and wait for it. Cancelling the caller does not
    cancel the task: the caller keeps waiting until the task finishes and then
    re-raises CancelledError.

    :return: The task's result. Exceptions from the task propagate.
    """
    task = asyncio.ensure_future(aw)
    cancelled = False
    while not task.done():
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            cancelled = True
    if cancelled:
        error = None if task.cancelled() else task.exception()
        if error is not None:
            logger.debug(f"Task finished after its caller was cancelled: {type(error).__name__}: {error}")
        raise asyncio.CancelledError()
    return task.result()


class LazyAsyncLock:
    """
    asyncio.Lock created on first use, so a machine can be constructed outside
    a running event loop.
    """

    def __init__(self) -> None:
        self._lock: Optional[asyncio.Lock] = None

    @property
    def lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def locked(self) -> bool:
        return self._lock is not None and self._lock.locked()

    async def __aenter__(self) -> None:
        await self.lock.acquire()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.lock.release()


class DispatchLock(LazyAsyncLock):
    """
    Serializes dispatches on one machine. Waiters are woken in FIFO order, so
    queued transitions run in the order they were requested.
    """

    def __init__(self) -> None:
        super().__init__()
        self._waiting = 0

    @property
    def waiting(self) -> int:
        """Number of dispatches queued behind the one in flight."""
        return self._waiting

    async def __aenter__(self) -> None:
        self._waiting += 1
        try:
            await self.lock.acquire()
        finally:
            self._waiting -= 1
