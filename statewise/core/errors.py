# statewise/core/errors.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Optional


class FSMError(Exception):
    """
    Base exception class for errors raised by the state machine library.
    """


class StateMachineError(FSMError):
    """
    Raised when a dispatch cannot be carried out. Carries the attempted event,
    the state the machine was in and a human-readable message.
    """

    def __init__(self, message: str, event: Any = None, state: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.event = event
        self.state = state

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, event={self.event!r}, state={self.state!r})"


class InvalidTransition(StateMachineError):
    """
    Raised when no transition is registered for the current state and event.
    """


class GuardFailed(StateMachineError):
    """
    Raised when transitions exist for the current state and event, but every
    guard rejected them.
    """


class MachineDestroyedError(StateMachineError):
    """
    Raised when a destroyed machine is asked to dispatch an event.
    """


class ValidationError(FSMError):
    """
    Raised when a machine, transition or accessor table is misconfigured.
    """


def is_state_machine_error(error: Optional[BaseException]) -> bool:
    """Return True if `error` is a dispatch error raised by the engine."""
    return isinstance(error, StateMachineError)
