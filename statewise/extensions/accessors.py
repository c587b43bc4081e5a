# statewise/extensions/accessors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
"""
Named accessors for a machine's events and states.

The table is built once from the known events and states and only closes
over the public ``transition``, ``can`` and ``is_state`` operations:

    accessors = build_accessors(order_machine)
    await accessors.create()          # transition("create")
    await accessors.can_ship()        # can("ship")
    accessors.is_draft()              # is_state("draft")
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Iterator, Optional

from statewise.core.errors import ValidationError

if TYPE_CHECKING:
    from statewise.core.state_machine import StateMachine

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_WORD = re.compile(r"\W+")


def accessor_name(identifier: Any) -> str:
    """
    Snake-case name for an event or state identifier: ``dontWalk`` becomes
    ``dont_walk``, ``in-transit`` becomes ``in_transit``.
    """
    text = _CAMEL_BOUNDARY.sub("_", str(identifier))
    text = _NON_WORD.sub("_", text).strip("_").lower()
    if not text:
        raise ValidationError(f"Cannot derive an accessor name from {identifier!r}")
    return text


class Accessors(Mapping):
    """
    Read-only mapping from accessor name to closure, with attribute access.
    """

    def __init__(self, entries: Dict[str, Callable[..., Any]]) -> None:
        self._entries = dict(entries)

    def __getitem__(self, name: str) -> Callable[..., Any]:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        try:
            return self.__dict__["_entries"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __dir__(self) -> Iterable[str]:
        return list(super().__dir__()) + list(self._entries)


def _transition_closure(machine: "StateMachine", event: Any) -> Callable[..., Any]:
    async def fire(*args: Any) -> Any:
        return await machine.transition(event, *args)

    return fire


def _can_closure(machine: "StateMachine", event: Any) -> Callable[..., Any]:
    async def check(*args: Any) -> bool:
        return await machine.can(event, *args)

    return check


def _is_closure(machine: "StateMachine", state: Any) -> Callable[[], bool]:
    def check() -> bool:
        return machine.is_state(state)

    return check


def build_accessors(
    machine: "StateMachine",
    states: Optional[Iterable[Any]] = None,
    events: Optional[Iterable[Any]] = None,
) -> Accessors:
    """
    Build the accessor table for `machine`.

    :param states: States to expose; defaults to every state known to the
        machine and, recursively, to its nested machines.
    :param events: Events to expose; defaults to the same recursive walk.
    :raises ValidationError: If two identifiers map to the same name, or a name
        would be shadowed by a Mapping method such as `get` or `items`.
    """
    if states is None:
        states = _walk(machine, lambda m: m.states())
    if events is None:
        events = _walk(machine, lambda m: m.events())

    entries: Dict[str, Callable[..., Any]] = {}
    owners: Dict[str, Any] = {}

    def register(name: str, owner: Any, fn: Callable[..., Any]) -> None:
        if hasattr(Accessors, name):
            raise ValidationError(f"Accessor '{name}' for {owner!r} collides with a mapping method")
        if name in entries and owners[name] != owner:
            raise ValidationError(f"Accessor '{name}' is ambiguous between {owners[name]!r} and {owner!r}")
        entries[name] = fn
        owners[name] = owner

    for event in events:
        name = accessor_name(event)
        register(name, ("event", event), _transition_closure(machine, event))
        register(f"can_{name}", ("event", event), _can_closure(machine, event))
    for state in states:
        register(f"is_{accessor_name(state)}", ("state", state), _is_closure(machine, state))

    return Accessors(entries)


def _walk(machine: "StateMachine", collect: Callable[["StateMachine"], Iterable[Any]]) -> list:
    found: list = []
    pending = [machine]
    while pending:
        current = pending.pop(0)
        for item in collect(current):
            if item not in found:
                found.append(item)
        for state in current.states():
            child = current.child(state)
            if child is not None:
                pending.append(child)
    return found
