"""statewise: an embeddable finite state machine engine

This package tracks the current state of an entity, dispatches named events
against a declarative transition table and runs ordered lifecycle hooks around
each transition.

Responsibilities:
    - Transition registry with multiple and wildcard sources
    - Guard evaluation and hook ordering
    - Subscriber notification
    - Nested state machines hosted by a parent state
    - Lazy context and dependency resolution

Interactions:
    - Client code through the StateMachine facade
    - asyncio for hooks, guards and subscribers that suspend
    - Logging system for diagnostics

Cross-cutting Concerns:
    Concurrency:
        - One dispatch in flight per machine
        - Queued dispatches run in FIFO order

    Error Handling:
        - StateMachineError carries event, state and message
        - Hook errors propagate unwrapped

    Logging:
        - Module level loggers under the "statewise" namespace
        - No handlers installed by the library
"""

from .core import (
    ALL,
    Context,
    FSMError,
    GuardFailed,
    InitStatus,
    InvalidTransition,
    MachineConfig,
    MachineDestroyedError,
    StateMachine,
    StateMachineError,
    Transition,
    ValidationError,
    is_state_machine_error,
)
from .extensions import Accessors, build_accessors

__version__ = "0.1.0"

__all__ = [
    "ALL",
    "Accessors",
    "Context",
    "FSMError",
    "GuardFailed",
    "InitStatus",
    "InvalidTransition",
    "MachineConfig",
    "MachineDestroyedError",
    "StateMachine",
    "StateMachineError",
    "Transition",
    "ValidationError",
    "build_accessors",
    "is_state_machine_error",
]
