# statewise/core/registry.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from statewise.core.transitions import Sources, Transition, normalize_sources
from statewise.interfaces.types import ALL, EventID, StateID

_Key = Tuple[StateID, EventID]


class TransitionRegistry:
    """
    Stores transition definitions indexed by (source state, event). A
    transition with several sources is one shared object listed under each
    source key; wildcard transitions are kept in a per-event list of their own.
    """

    def __init__(self) -> None:
        self._exact: Dict[_Key, List[Transition]] = {}
        self._wildcard: Dict[EventID, List[Transition]] = {}
        # Registration order across all keys, for introspection
        self._ordered: List[Transition] = []

    def add(self, transition: Transition) -> None:
        """
        Append a transition to the end of the list of each of its keys.

        :param transition: The transition to register.
        """
        if transition.from_any:
            self._wildcard.setdefault(transition.event, []).append(transition)
        else:
            for state in transition.sources:
                self._exact.setdefault((state, transition.event), []).append(transition)
        self._ordered.append(transition)

    def remove(self, from_states: Sources, event: EventID, to: Optional[StateID] = None) -> int:
        """
        Remove transitions for the given sources and event, optionally only
        those leading to `to`. Removing something that is not registered is a
        no-op.

        :return: Number of index entries removed.
        """
        removed = 0
        sources = normalize_sources(from_states)
        if sources is ALL:
            removed += self._remove_from(self._wildcard, event, to)
        else:
            for state in sources:
                removed += self._remove_from(self._exact, (state, event), to)
        if removed:
            self._ordered = [t for t in self._ordered if self._is_registered(t)]
        return removed

    @staticmethod
    def _remove_from(index: Dict, key, to: Optional[StateID]) -> int:
        entries = index.get(key)
        if not entries:
            return 0
        kept = [t for t in entries if to is not None and t.to != to]
        removed = len(entries) - len(kept)
        if kept:
            index[key] = kept
        else:
            del index[key]
        return removed

    def _is_registered(self, transition: Transition) -> bool:
        if transition.from_any:
            return transition in self._wildcard.get(transition.event, ())
        return any(transition in self._exact.get((s, transition.event), ()) for s in transition.sources)

    def resolve_candidates(self, state: StateID, event: EventID) -> List[Transition]:
        """
        Return the transitions that may fire for `event` while in `state`:
        exact-state matches first, wildcard matches second, each group in
        registration order.
        """
        return list(self._exact.get((state, event), ())) + list(self._wildcard.get(event, ()))

    def recognizes(self, state: StateID, event: EventID) -> bool:
        """True if at least one transition is registered for `state` and `event`."""
        return bool(self._exact.get((state, event)) or self._wildcard.get(event))

    def transitions(self) -> List[Transition]:
        """All registered transitions in registration order."""
        return list(self._ordered)

    def events(self) -> List[EventID]:
        """Distinct events in order of first registration."""
        seen: List[EventID] = []
        for transition in self._ordered:
            if transition.event not in seen:
                seen.append(transition.event)
        return seen

    def states(self) -> List[StateID]:
        """Distinct states mentioned by registered transitions, in order of appearance."""
        seen: List[StateID] = []
        for transition in self._ordered:
            mentioned = [] if transition.from_any else list(transition.sources)
            for state in mentioned + [transition.to]:
                if state not in seen:
                    seen.append(state)
        return seen

    def __len__(self) -> int:
        return len(self._ordered)
