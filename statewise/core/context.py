# statewise/core/context.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass(eq=False)
class Context:
    """
    Mutable data shared by the guards and hooks of one machine.

    `data` is the application payload produced by the machine's data
    initializer; `injected` maps dependency names to their resolved values.
    """

    data: Any = None
    injected: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        """Return a resolved dependency, or `default` if it is not resolved."""
        return self.injected.get(name, default)

    def __getitem__(self, name: str) -> Any:
        return self.injected[name]

    def __contains__(self, name: object) -> bool:
        return name in self.injected
