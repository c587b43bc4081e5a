# statewise/core/config.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from statewise.core.errors import ValidationError
from statewise.core.transitions import Transition
from statewise.interfaces.types import StateID, SubscriberFunc

_UNSET = object()


@dataclass
class MachineConfig:
    """
    Construction parameters of a state machine.

    `initial` and `transitions` are required; everything else is optional.
    `states` is a factory returning a mapping from hosting state to the
    configuration of its nested machine; it is invoked once, at construction.
    """

    initial: Any = _UNSET
    transitions: Sequence[Transition] = field(default_factory=list)
    id: Optional[str] = None
    data: Any = None
    subscribers: Mapping[Any, Sequence[SubscriberFunc]] = field(default_factory=dict)
    states: Optional[Callable[[], Mapping[StateID, Any]]] = None
    inject: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "MachineConfig":
        """
        Build a config from a plain mapping of construction parameters.

        :raises ValidationError: If the mapping holds unknown keys.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(k) for k in values if k not in known)
        if unknown:
            raise ValidationError(f"Unknown state machine parameters: {', '.join(unknown)}")
        config = cls(**dict(values))
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check the config for basic correctness.

        :raises ValidationError: If the initial state is missing or a transition
            is not a Transition instance.
        """
        if self.initial is _UNSET:
            raise ValidationError("State machine requires an initial state")
        if self.transitions is None or isinstance(self.transitions, (str, bytes, Mapping)):
            raise ValidationError("State machine requires a transition list (may be empty)")
        for transition in self.transitions:
            if not isinstance(transition, Transition):
                raise ValidationError(f"Expected a Transition, got {type(transition).__name__}")
        if self.states is not None and not callable(self.states):
            raise ValidationError("'states' must be a factory returning a mapping of nested machines")
        if self.inject is not None and not isinstance(self.inject, Mapping):
            raise ValidationError("'inject' must be a mapping from dependency name to factory")

    def as_kwargs(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def transitions_from_rows(rows: Sequence[Sequence[Any]]) -> List[Transition]:
    """
    Build transitions from ``(from, event, to)`` rows, the compact table form
    used in tests and examples.
    """
    return [Transition(*row) for row in rows]
