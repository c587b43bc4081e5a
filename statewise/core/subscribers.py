# statewise/core/subscribers.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

from statewise.interfaces.types import ALL, EventID, StateID, SubscriberFunc
from statewise.runtime.async_support import maybe_await

if TYPE_CHECKING:
    from statewise.core.state_machine import StateMachine


class SubscriberRegistry:
    """
    Per-event and global listener lists, notified after a transition commits.

    Callbacks are called as ``callback(machine, event, new_state)``; the machine
    is passed explicitly rather than bound as a receiver. Event-scoped
    listeners fire before global ones, each group in registration order.
    """

    def __init__(self, subscribers: Optional[Mapping[Any, Sequence[SubscriberFunc]]] = None) -> None:
        self._scoped: Dict[EventID, List[SubscriberFunc]] = {}
        self._global: List[SubscriberFunc] = []
        for event, callbacks in (subscribers or {}).items():
            if callable(callbacks):
                callbacks = [callbacks]
            for callback in callbacks:
                self.add(event, callback)

    def add(self, event: Any, callback: SubscriberFunc) -> None:
        """
        Register `callback` for `event`, or for every event when `event` is ALL.
        """
        if not callable(callback):
            raise TypeError("Subscriber callback must be callable")
        if event is ALL:
            self._global.append(callback)
        else:
            self._scoped.setdefault(event, []).append(callback)

    def remove(self, event: Any, callback: SubscriberFunc) -> bool:
        """
        Remove the first registration of `callback`. Functions compare by
        identity; bound methods compare equal when bound to the same object.

        :return: True if a registration was removed.
        """
        callbacks = self._global if event is ALL else self._scoped.get(event)
        if not callbacks:
            return False
        for index, registered in enumerate(callbacks):
            if registered == callback:
                del callbacks[index]
                if event is not ALL and not callbacks:
                    del self._scoped[event]
                return True
        return False

    def listeners(self, event: EventID) -> List[SubscriberFunc]:
        """Callbacks to notify for `event`, in notification order."""
        return list(self._scoped.get(event, ())) + list(self._global)

    async def notify(self, machine: "StateMachine", event: EventID, state: StateID) -> None:
        """
        Call every listener for `event` in order. An exception from a callback
        propagates and the remaining callbacks are not called.
        """
        for callback in self.listeners(event):
            await maybe_await(callback, machine, event, state)

    def clear(self) -> None:
        self._scoped.clear()
        self._global.clear()

    def __len__(self) -> int:
        return len(self._global) + sum(len(c) for c in self._scoped.values())
