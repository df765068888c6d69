"""Detection of cyclic references along the active descent path."""

from __future__ import annotations

from typing import Any, Optional


class CycleTracker:
    """
    Ordered set of `(identity, declared type)` pairs from the root to the node
    being visited.

    Only ancestors count: an object reachable through two sibling branches is
    not a cycle, because the first visit has been popped before the second.
    """

    def __init__(self):
        self._stack: dict[tuple[int, Optional[type]], Any] = {}

    def __len__(self) -> int:
        return len(self._stack)

    @staticmethod
    def _key(value: Any, declared_type: Optional[type]) -> tuple[int, Optional[type]]:
        return (id(value), declared_type or type(value))

    def is_cyclic(self, value: Any, declared_type: Optional[type] = None) -> bool:
        return self._key(value, declared_type) in self._stack

    def push(self, value: Any, declared_type: Optional[type] = None) -> bool:
        """Push an ancestor; returns False (and pushes nothing) if it is already on the path."""
        key = self._key(value, declared_type)
        if key in self._stack:
            return False
        # the value is kept alive so its id cannot be reused while on the path
        self._stack[key] = value
        return True

    def pop(self, value: Any, declared_type: Optional[type] = None) -> None:
        key = self._key(value, declared_type)
        if next(reversed(self._stack), None) != key:
            raise RuntimeError("Cycle tracker entries must be popped in reverse order")
        del self._stack[key]
