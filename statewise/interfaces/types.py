# statewise/interfaces/types.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details
from typing import Any, Awaitable, Callable, Hashable, Union

StateID = Hashable
EventID = Hashable


class AllStates:
    """
    Wildcard marker used as a transition source ("from any state") and as the
    subscriber key for global listeners.
    """

    _instance = None

    def __new__(cls) -> "AllStates":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ALL"

    def __reduce__(self):
        return (AllStates, ())


ALL = AllStates()

MaybeAwaitable = Union[Any, Awaitable[Any]]

# Callback Types
GuardFunc = Callable[..., Union[bool, Awaitable[bool]]]
HookFunc = Callable[..., MaybeAwaitable]
SubscriberFunc = Callable[..., MaybeAwaitable]
DependencyFactory = Callable[[], MaybeAwaitable]
