# statewise/core/dependencies.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import inspect
import logging
from enum import Enum, auto
from typing import Any, Dict, List, Optional

from statewise.core.context import Context
from statewise.interfaces.types import DependencyFactory
from statewise.runtime.async_support import LazyAsyncLock, maybe_await

logger = logging.getLogger(__name__)

_UNSET = object()


class InitStatus(Enum):
    """One-shot initialization status of a machine's context."""

    UNINITIALIZED = auto()  # Nothing resolved yet, or the last attempt failed
    RESOLVING = auto()  # Initializer and factories running
    READY = auto()  # Context resolved and memoized


class _Resolver:
    """A registered dependency: a factory to call, or a plain value."""

    __slots__ = ("name", "factory", "value", "awaitable")

    def __init__(
        self,
        name: str,
        factory: Optional[DependencyFactory] = None,
        value: Any = _UNSET,
        awaitable: Any = None,
    ) -> None:
        self.name = name
        self.factory = factory
        self.value = value
        self.awaitable = awaitable

    @property
    def deferred(self) -> bool:
        """True if resolving needs an event loop."""
        return self.awaitable is not None or inspect.iscoroutinefunction(self.factory)

    def resolve_now(self) -> Any:
        if self.factory is None:
            return self.value
        return self.factory()

    async def resolve(self) -> Any:
        if self.awaitable is not None:
            return await self.awaitable
        if self.factory is None:
            return self.value
        return await maybe_await(self.factory)


class DependencyContainer:
    """
    Lazily resolves the context of a machine: its data initializer and every
    named dependency. Nothing runs until `ensure_ready()` is first awaited;
    results are stored in the context and reused for the machine's lifetime.

    A failed resolution puts the container back to UNINITIALIZED and the error
    propagates; the next `ensure_ready()` retries whatever is still pending.
    """

    def __init__(self, context: Context, data: Any = None) -> None:
        """
        :param context: The context receiving the resolved values.
        :param data: Data initializer; a callable (sync or async) or a plain value.
        """
        self._context = context
        self._data_initializer = data
        self._data_resolved = False
        self._pending: Dict[str, _Resolver] = {}
        self._status = InitStatus.UNINITIALIZED
        self._lock = LazyAsyncLock()

    @property
    def status(self) -> InitStatus:
        return self._status

    @property
    def pending(self) -> List[str]:
        """Names of dependencies registered but not yet resolved."""
        return list(self._pending)

    def inject(self, name: str, factory_or_value: Any) -> None:
        """
        Register a dependency. A callable is treated as a factory (its result is
        awaited if awaitable), anything else as the value itself. Once the
        context is ready, values and synchronous factories resolve immediately.
        """
        if callable(factory_or_value):
            resolver = _Resolver(name, factory=factory_or_value)
        else:
            resolver = _Resolver(name, value=factory_or_value)

        if self._status is not InitStatus.READY or resolver.deferred:
            self._pending[name] = resolver
            return

        value = resolver.resolve_now()
        if inspect.isawaitable(value):
            # Awaited at the start of the next dispatch
            self._pending[name] = _Resolver(name, awaitable=value)
            return
        self._context.injected[name] = value
        self._pending.pop(name, None)
        logger.debug(f"Dependency '{name}' resolved on registration")

    def inject_async(self, name: str, factory: DependencyFactory) -> None:
        """
        Register an asynchronous factory. It is awaited at the start of the next
        dispatch, together with any other pending dependency.
        """
        if not callable(factory):
            raise TypeError(f"Dependency factory for '{name}' must be callable")
        self._pending[name] = _Resolver(name, factory=factory)

    def needs_resolution(self) -> bool:
        return self._status is not InitStatus.READY or bool(self._pending)

    async def ensure_ready(self) -> Context:
        """
        Resolve the data initializer and every pending dependency, once.

        :return: The resolved context.
        """
        if not self.needs_resolution():
            return self._context

        async with self._lock:
            if not self.needs_resolution():
                return self._context

            was_ready = self._status is InitStatus.READY
            self._status = InitStatus.RESOLVING
            try:
                if not self._data_resolved:
                    self._context.data = await self._resolve_data()
                    self._data_resolved = True

                for name in list(self._pending):
                    resolver = self._pending[name]
                    self._context.injected[name] = await resolver.resolve()
                    # Only drop the entry if it was not replaced while awaiting
                    if self._pending.get(name) is resolver:
                        del self._pending[name]
                    logger.debug(f"Dependency '{name}' resolved")
            except BaseException as e:
                self._status = InitStatus.READY if was_ready else InitStatus.UNINITIALIZED
                logger.debug(f"Context resolution failed: {type(e).__name__}: {e}")
                raise

            self._status = InitStatus.READY
            return self._context

    async def _resolve_data(self) -> Any:
        initializer = self._data_initializer
        if callable(initializer):
            return await maybe_await(initializer)
        if inspect.isawaitable(initializer):
            return await initializer
        return initializer
