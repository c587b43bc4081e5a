# statewise/core/nesting.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from statewise.core.config import MachineConfig
from statewise.core.errors import ValidationError
from statewise.interfaces.types import StateID

if TYPE_CHECKING:
    from statewise.core.state_machine import StateMachine

logger = logging.getLogger(__name__)


class NestedMachines:
    """
    Child machines of one parent, keyed by hosting state. Each state hosts at
    most one child; children are built once and reset, never rebuilt, when
    their hosting state is entered again.
    """

    def __init__(self, parent: "StateMachine", factory: Callable[[MachineConfig], "StateMachine"]) -> None:
        """
        :param parent: The owning machine.
        :param factory: Builds a child machine from a MachineConfig.
        """
        self._parent = parent
        self._build = factory
        self._children: Dict[StateID, "StateMachine"] = {}
        self._active: Optional[StateID] = None

    def load(self, states: Optional[Callable[[], Mapping[StateID, Any]]]) -> None:
        """Invoke the `states` factory once and attach every child it declares."""
        if states is None:
            return
        declared = states()
        if not isinstance(declared, Mapping):
            raise ValidationError("'states' factory must return a mapping of hosting state to machine config")
        for state, config in declared.items():
            self.attach(state, config)

    def attach(self, state: StateID, config: Any) -> "StateMachine":
        """
        Attach a child machine to `state`.

        :param config: A MachineConfig, a mapping of construction parameters,
            or an already built StateMachine.
        :raises ValidationError: If the state already hosts a child.
        """
        if state in self._children:
            raise ValidationError(f"State '{state}' already hosts a nested machine")
        child = self._coerce(state, config)
        self._children[state] = child
        logger.debug(f"Nested machine '{child.id}' attached to state '{state}'")
        return child

    def _coerce(self, state: StateID, config: Any) -> "StateMachine":
        from statewise.core.state_machine import StateMachine

        if isinstance(config, StateMachine):
            if config is self._parent:
                raise ValidationError(f"State '{state}' cannot host its own machine")
            return config
        if isinstance(config, MachineConfig):
            config.validate()
        elif isinstance(config, Mapping):
            config = MachineConfig.from_mapping(config)
        else:
            raise ValidationError(f"Unsupported nested machine configuration for state '{state}'")
        if config.id is None:
            config = replace(config, id=f"{self._parent.id}.{state}")
        return self._build(config)

    def detach(self, state: StateID) -> Optional["StateMachine"]:
        """
        Deactivate and discard the child hosted by `state`. Unknown states are a
        no-op.
        """
        child = self._children.pop(state, None)
        if child is None:
            return None
        if self._active == state:
            self._active = None
        child.destroy()
        logger.debug(f"Nested machine '{child.id}' detached from state '{state}'")
        return child

    def get(self, state: StateID) -> Optional["StateMachine"]:
        return self._children.get(state)

    @property
    def active(self) -> Optional["StateMachine"]:
        """The child currently running, if any."""
        if self._active is None:
            return None
        return self._children.get(self._active)

    def activate(self, state: StateID) -> Optional["StateMachine"]:
        """
        Reset and run the child hosted by `state`, discarding its progress.
        """
        child = self._children.get(state)
        if child is None:
            return None
        child._reset()
        self._active = state
        logger.debug(f"Nested machine '{child.id}' activated at '{child.current_state}'")
        return child

    def deactivate(self) -> Optional[StateID]:
        """
        Stop the running child without resetting it.

        :return: The hosting state of the child that was stopped, if any.
        """
        state = self._active
        child = self.active
        self._active = None
        if child is None:
            return None
        logger.debug(f"Nested machine '{child.id}' deactivated")
        return state

    def resume(self, state: StateID) -> None:
        """Reactivate a child stopped by `deactivate()` without resetting it."""
        if state in self._children:
            self._active = state

    def destroy(self) -> None:
        for state in list(self._children):
            self.detach(state)

    def items(self) -> Iterator[Tuple[StateID, "StateMachine"]]:
        return iter(list(self._children.items()))

    def __contains__(self, state: object) -> bool:
        return state in self._children

    def __len__(self) -> int:
        return len(self._children)
