"""
Core package providing the dispatch engine.

Architecture:
- Transition registry indexed by (source state, event)
- Guard/hook pipeline run by the StateMachine facade
- Lazy dependency container feeding the shared context
- Subscriber registry notified after each commit
- Nested machines hosted by parent states

Design Patterns:
- Facade Pattern for the state machine
- Observer Pattern for subscribers
- Composite Pattern for nested machines
"""

# Import order matters to avoid circular dependencies
from statewise.interfaces.types import ALL
from .errors import (
    FSMError,
    GuardFailed,
    InvalidTransition,
    MachineDestroyedError,
    StateMachineError,
    ValidationError,
    is_state_machine_error,
)
from .context import Context
from .transitions import Transition
from .registry import TransitionRegistry
from .dependencies import DependencyContainer, InitStatus
from .subscribers import SubscriberRegistry
from .config import MachineConfig
from .state_machine import StateMachine

__all__ = [
    # Errors
    "FSMError",
    "StateMachineError",
    "InvalidTransition",
    "GuardFailed",
    "MachineDestroyedError",
    "ValidationError",
    "is_state_machine_error",
    # Components
    "ALL",
    "Context",
    "Transition",
    "TransitionRegistry",
    "DependencyContainer",
    "InitStatus",
    "SubscriberRegistry",
    "MachineConfig",
    "StateMachine",
]
