"""
Identifier and callback types shared across the package.
"""

from .types import ALL, AllStates, EventID, StateID

__all__ = ["ALL", "AllStates", "EventID", "StateID"]
