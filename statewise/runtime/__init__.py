"""
Runtime helpers for asynchronous execution.

Architecture:
- Awaits guards, hooks and factories that return awaitables
- Serializes dispatches per machine with a FIFO lock
- Finishes committed work even when the caller stops waiting
"""

from .async_support import DispatchLock, LazyAsyncLock, maybe_await, run_to_completion

__all__ = ["DispatchLock", "LazyAsyncLock", "maybe_await", "run_to_completion"]
