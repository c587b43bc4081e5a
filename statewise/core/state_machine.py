# statewise/core/state_machine.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from statewise.core.config import MachineConfig
from statewise.core.context import Context
from statewise.core.dependencies import DependencyContainer, InitStatus
from statewise.core.errors import GuardFailed, InvalidTransition, MachineDestroyedError
from statewise.core.nesting import NestedMachines
from statewise.core.registry import TransitionRegistry
from statewise.core.subscribers import SubscriberRegistry
from statewise.core.transitions import Sources, Transition, select_transition
from statewise.interfaces.types import ALL, DependencyFactory, EventID, StateID, SubscriberFunc
from statewise.runtime.async_support import DispatchLock, run_to_completion

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


class StateMachine:
    """
    A finite state machine driven by a declarative transition table.

    Dispatch order for ``await machine.transition(event, *args)``:

    1. resolve the context (data initializer and pending dependencies);
    2. hand the event to the active nested machine if it recognizes it;
    3. pick the first candidate, in registration order, whose guard passes;
    4. ``on_leave`` of the previous successful transition;
    5. deactivate the nested machine of the state being left;
    6. ``on_enter`` of the winner;
    7. commit the new state;
    8. notify event subscribers, then global subscribers;
    9. ``on_exit`` of the winner;
    10. reset and activate the nested machine of the new state.

    Step 7 is the only commit point. An exception raised before it leaves the
    state unchanged; an exception raised by a subscriber or by ``on_exit``
    propagates with the new state already committed, and step 10 is skipped.
    Dispatches on one machine run one at a time, in the order requested.

    Cancelling the caller of ``transition`` stops the dispatch only before the
    commit. Once the state is committed, steps 8 to 10 still run to the end
    and the dispatch lock is held until they finish; the caller then gets
    CancelledError.
    """

    def __init__(
        self,
        initial: StateID,
        transitions: Sequence[Transition],
        *,
        id: Optional[str] = None,
        data: Any = None,
        subscribers: Optional[Mapping[Any, Sequence[SubscriberFunc]]] = None,
        states: Optional[Callable[[], Mapping[StateID, Any]]] = None,
        inject: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """
        :param initial: The state the machine starts in.
        :param transitions: Ordered transition table; may be empty.
        :param id: Label used in logs and error messages.
        :param data: Context data initializer, a value or a (sync or async) callable.
        :param subscribers: Mapping from event (or ALL) to callbacks registered up front.
        :param states: Factory returning a mapping from hosting state to nested machine config.
        :param inject: Mapping from dependency name to factory or value.
        """
        if transitions is not None:
            transitions = list(transitions)
        MachineConfig(
            initial=initial,
            transitions=transitions,
            id=id,
            data=data,
            states=states,
            inject=inject or {},
        ).validate()

        self._id = id if id is not None else f"machine-{next(_ids)}"
        self._initial = initial
        self._current = initial
        self._last_transition: Optional[Transition] = None
        self._destroyed = False

        self._registry = TransitionRegistry()
        for transition in transitions:
            self._registry.add(transition)

        self._context = Context()
        self._dependencies = DependencyContainer(self._context, data)
        for name, factory in (inject or {}).items():
            self._dependencies.inject(name, factory)

        self._subscribers = SubscriberRegistry(subscribers)
        self._dispatch_lock = DispatchLock()

        self._nested = NestedMachines(self, type(self).from_config)
        self._nested.load(states)
        self._nested.activate(initial)

    @classmethod
    def from_config(cls, config: MachineConfig) -> "StateMachine":
        """Build a machine from a MachineConfig."""
        config.validate()
        return cls(**config.as_kwargs())

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def id(self) -> str:
        return self._id

    @property
    def current_state(self) -> StateID:
        """The state this machine is in. Nested machines report their own."""
        return self._current

    @property
    def initial_state(self) -> StateID:
        return self._initial

    @property
    def context(self) -> Context:
        """
        The shared context. Callers outside a transition should treat it as
        read-only.
        """
        return self._context

    @property
    def status(self) -> InitStatus:
        """Initialization status of the context."""
        return self._dependencies.status

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    @property
    def pending(self) -> int:
        """Number of dispatches waiting behind the one in flight."""
        return self._dispatch_lock.waiting

    @property
    def active_child(self) -> Optional["StateMachine"]:
        """The nested machine running in the current state, if any."""
        return self._nested.active

    def child(self, state: StateID) -> Optional["StateMachine"]:
        """The nested machine hosted by `state`, if any."""
        return self._nested.get(state)

    def transitions(self) -> List[Transition]:
        return self._registry.transitions()

    def events(self) -> List[EventID]:
        return self._registry.events()

    def states(self) -> List[StateID]:
        """Known states: the initial state, transition states and hosting states."""
        known = [self._initial]
        for state in self._registry.states():
            if state not in known:
                known.append(state)
        for state, _ in self._nested.items():
            if state not in known:
                known.append(state)
        return known

    def is_state(self, state: StateID) -> bool:
        """
        True if this machine or, recursively, its active nested machine is in
        `state`.
        """
        if self._current == state:
            return True
        child = self._nested.active
        return child is not None and child.is_state(state)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def transition(self, event: EventID, *args: Any) -> StateID:
        """
        Dispatch `event`. Concurrent calls are queued and run in FIFO order.

        :param event: The event to process.
        :param args: Extra arguments handed to guards and hooks after the context.
        :return: The new state (of the nested machine if it handled the event).
        :raises InvalidTransition: If no transition matches the current state.
        :raises GuardFailed: If every candidate's guard rejected.
        """
        self._ensure_alive(event)
        async with self._dispatch_lock:
            self._ensure_alive(event)
            return await self._dispatch(event, args)

    async def can(self, event: EventID, *args: Any) -> bool:
        """
        True if `transition(event, *args)` would currently find a transition
        whose guard passes. Runs guards only: no hooks, no subscribers, no
        state change. Resolves the context on first use.
        """
        if self._destroyed:
            return False
        context = await self._dependencies.ensure_ready()
        child = self._nested.active
        if child is not None and child._recognizes(event):
            return await child.can(event, *args)
        candidates = self._registry.resolve_candidates(self._current, event)
        return await select_transition(candidates, context, args) is not None

    async def _dispatch(self, event: EventID, args: Tuple[Any, ...]) -> StateID:
        logger.debug(f"[{self._id}] Dispatching '{event}' from '{self._current}'")
        context = await self._dependencies.ensure_ready()

        child = self._nested.active
        if child is not None and child._recognizes(event):
            logger.debug(f"[{self._id}] '{event}' handled by nested machine '{child.id}'")
            return await child.transition(event, *args)

        candidates = self._registry.resolve_candidates(self._current, event)
        if not candidates:
            raise InvalidTransition(
                f"No transition for event '{event}' from state '{self._current}' in machine '{self._id}'",
                event=event,
                state=self._current,
            )

        winner = await select_transition(candidates, context, args)
        if winner is None:
            raise GuardFailed(
                f"Guards rejected event '{event}' from state '{self._current}' in machine '{self._id}'",
                event=event,
                state=self._current,
            )
        logger.debug(f"[{self._id}] Selected {winner!r} from {len(candidates)} candidate(s)")

        if self._last_transition is not None:
            await self._last_transition.run_hook("on_leave", context, args)

        left_host = self._nested.deactivate()
        try:
            await winner.run_hook("on_enter", context, args)
        except BaseException:
            if left_host is not None:
                self._nested.resume(left_host)
            raise

        previous = self._current
        self._current = winner.to
        self._last_transition = winner
        logger.debug(f"[{self._id}] '{previous}' --{event}--> '{winner.to}'")

        return await run_to_completion(self._settle(winner, event, context, args))

    async def _settle(self, winner: Transition, event: EventID, context: Context, args: Tuple[Any, ...]) -> StateID:
        """Steps 8 to 10, after the commit."""
        await self._subscribers.notify(self, event, winner.to)
        await winner.run_hook("on_exit", context, args)
        self._nested.activate(winner.to)
        return winner.to

    def _recognizes(self, event: EventID) -> bool:
        if self._destroyed:
            return False
        if self._registry.recognizes(self._current, event):
            return True
        child = self._nested.active
        return child is not None and child._recognizes(event)

    def _reset(self) -> None:
        """Return to the initial state, discarding progress (nested re-entry)."""
        self._current = self._initial
        self._last_transition = None
        self._nested.deactivate()
        self._nested.activate(self._initial)

    def _ensure_alive(self, event: EventID) -> None:
        if self._destroyed:
            raise MachineDestroyedError(
                f"Machine '{self._id}' has been destroyed", event=event, state=self._current
            )

    # ------------------------------------------------------------------
    # Runtime configuration
    # ------------------------------------------------------------------

    def add_transition(self, transition: Any, *args: Any, **kwargs: Any) -> Transition:
        """
        Register a transition at the end of the table.

        Accepts a Transition, or the Transition constructor arguments:
        ``add_transition(from_states, event, to, guard=..., on_enter=...)``.
        """
        if not isinstance(transition, Transition):
            transition = Transition(transition, *args, **kwargs)
        elif args or kwargs:
            raise TypeError("Extra arguments are not allowed when passing a Transition")
        self._registry.add(transition)
        return transition

    def remove_transition(self, from_states: Sources, event: EventID, to: Optional[StateID] = None) -> None:
        """
        Remove transitions for the given sources and event (optionally only
        those leading to `to`). Removing an unknown transition is a no-op.
        """
        removed = self._registry.remove(from_states, event, to)
        logger.debug(f"[{self._id}] Removed {removed} transition(s) for '{event}'")

    def add_state(self, state: StateID, config: Any) -> "StateMachine":
        """
        Make `state` host a nested machine. If the machine is already in
        `state` the nested machine starts right away.

        :param config: A MachineConfig, a mapping of construction parameters,
            or a StateMachine.
        :raises ValidationError: If `state` already hosts a nested machine.
        """
        child = self._nested.attach(state, config)
        if self._current == state:
            self._nested.activate(state)
        return child

    def remove_state(self, state: StateID) -> None:
        """Stop and discard the nested machine hosted by `state`, if any."""
        self._nested.detach(state)

    def on(self, event: Any, callback: Optional[SubscriberFunc] = None) -> SubscriberFunc:
        """
        Subscribe to committed transitions.

        ``on(event, callback)`` listens to one event; ``on(callback)`` listens
        to every event. Callbacks are called as ``callback(machine, event, state)``.
        """
        event, callback = self._subscription_args(event, callback)
        self._subscribers.add(event, callback)
        return callback

    def off(self, event: Any, callback: Optional[SubscriberFunc] = None) -> None:
        """Unsubscribe; ``off(event, callback)`` or ``off(callback)``."""
        event, callback = self._subscription_args(event, callback)
        self._subscribers.remove(event, callback)

    @staticmethod
    def _subscription_args(event: Any, callback: Optional[SubscriberFunc]) -> Tuple[Any, SubscriberFunc]:
        if callback is None:
            if not callable(event):
                raise TypeError("on()/off() needs a callback")
            return ALL, event
        return event, callback

    def inject(self, name: str, factory_or_value: Any) -> None:
        """Register a dependency resolved into ``context.injected[name]``."""
        self._dependencies.inject(name, factory_or_value)

    def inject_async(self, name: str, factory: DependencyFactory) -> None:
        """Register an async dependency factory, awaited before the next dispatch."""
        self._dependencies.inject_async(name, factory)

    def destroy(self) -> None:
        """
        Tear the machine down: nested machines are destroyed, subscribers are
        dropped and further dispatches raise MachineDestroyedError.
        """
        if self._destroyed:
            return
        self._nested.destroy()
        self._subscribers.clear()
        self._destroyed = True
        logger.debug(f"[{self._id}] Destroyed")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._id!r}, state={self._current!r})"
