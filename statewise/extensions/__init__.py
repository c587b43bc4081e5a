"""
Extensions layered on the public StateMachine API.

Architecture:
- Accessor table mapping event and state names to closures
"""

from .accessors import Accessors, accessor_name, build_accessors

__all__ = ["Accessors", "accessor_name", "build_accessors"]
