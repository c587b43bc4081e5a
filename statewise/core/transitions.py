# statewise/core/transitions.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from collections import abc
from typing import Any, Iterable, Optional, Tuple, Union

from statewise.core.context import Context
from statewise.core.errors import ValidationError
from statewise.interfaces.types import ALL, AllStates, EventID, GuardFunc, HookFunc, StateID
from statewise.runtime.async_support import maybe_await

Sources = Union[StateID, Iterable[StateID], AllStates]


def normalize_sources(from_states: Any) -> Union[Tuple[StateID, ...], AllStates]:
    """
    Turn the source states of a transition into either ALL or an ordered tuple
    of distinct states. Strings, bytes and other non-iterables are a single
    state; any other iterable (list, set, dict keys, range, generator) is
    several.
    """
    if from_states is ALL:
        return ALL
    if isinstance(from_states, abc.Iterable) and not isinstance(from_states, (str, bytes)):
        sources = []
        for state in from_states:
            if state is ALL:
                return ALL
            if state not in sources:
                sources.append(state)
        if not sources:
            raise ValidationError("Transition must have at least one source state")
        return tuple(sources)
    return (from_states,)


class Transition:
    """
    Defines a path from one or more source states to a target state, triggered
    by an event and optionally gated by a guard. The hooks receive the machine
    context followed by the arguments passed to `transition()`.
    """

    def __init__(
        self,
        from_states: Sources,
        event: EventID,
        to: StateID,
        guard: Optional[GuardFunc] = None,
        on_enter: Optional[HookFunc] = None,
        on_exit: Optional[HookFunc] = None,
        on_leave: Optional[HookFunc] = None,
    ) -> None:
        """
        :param from_states: A state, an iterable of states, or ALL.
        :param event: The event triggering this transition.
        :param to: The destination state.
        :param guard: Predicate deciding whether the transition may fire.
        :param on_enter: Runs before the state changes.
        :param on_exit: Runs after the state changed and subscribers were notified.
        :param on_leave: Runs when the next transition supersedes this one.
        """
        for name, fn in (("guard", guard), ("on_enter", on_enter), ("on_exit", on_exit), ("on_leave", on_leave)):
            if fn is not None and not callable(fn):
                raise ValidationError(f"Transition '{event}' {name} must be callable")
        self._sources = normalize_sources(from_states)
        self._event = event
        self._to = to
        self._guard = guard
        self._on_enter = on_enter
        self._on_exit = on_exit
        self._on_leave = on_leave

    @property
    def sources(self) -> Union[Tuple[StateID, ...], AllStates]:
        """Source states in declaration order, or ALL."""
        return self._sources

    @property
    def from_any(self) -> bool:
        """True if this transition fires from every state."""
        return self._sources is ALL

    @property
    def event(self) -> EventID:
        return self._event

    @property
    def to(self) -> StateID:
        return self._to

    @property
    def guard(self) -> Optional[GuardFunc]:
        return self._guard

    @property
    def on_enter(self) -> Optional[HookFunc]:
        return self._on_enter

    @property
    def on_exit(self) -> Optional[HookFunc]:
        return self._on_exit

    @property
    def on_leave(self) -> Optional[HookFunc]:
        return self._on_leave

    def leaves(self, state: StateID) -> bool:
        """True if this transition may fire while the machine is in `state`."""
        return self.from_any or state in self._sources

    async def evaluate_guard(self, context: Context, args: Tuple[Any, ...]) -> bool:
        """
        Evaluate the guard. A transition without a guard always passes.

        :return: True if the transition may fire.
        """
        if self._guard is None:
            return True
        return bool(await maybe_await(self._guard, context, *args))

    async def run_hook(self, name: str, context: Context, args: Tuple[Any, ...]) -> None:
        """
        Run one of the lifecycle hooks (on_enter, on_exit, on_leave) if set.
        Exceptions propagate unchanged.
        """
        hook = getattr(self, f"_{name}")
        if hook is not None:
            await maybe_await(hook, context, *args)

    def __repr__(self) -> str:
        return f"Transition({self._sources!r} --{self._event!r}--> {self._to!r})"


class _CandidateSelector:
    """
    Internal helper picking the first candidate whose guard passes, in order.
    Later guards are never evaluated once a candidate wins.
    """

    async def select(
        self, candidates: Iterable[Transition], context: Context, args: Tuple[Any, ...]
    ) -> Optional[Transition]:
        for candidate in candidates:
            if await candidate.evaluate_guard(context, args):
                return candidate
        return None


async def select_transition(
    candidates: Iterable[Transition], context: Context, args: Tuple[Any, ...]
) -> Optional[Transition]:
    """Return the winning candidate or None if every guard rejected."""
    return await _CandidateSelector().select(candidates, context, args)
