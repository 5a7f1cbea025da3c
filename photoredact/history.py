"""
Bounded undo/redo history.

The manager keeps an ordered run of snapshots and a cursor pointing at the
current one. Saving after an undo discards the redo branch; saving at
capacity drops the oldest snapshot. Not thread-safe: one editing session
drives one manager.
"""

from collections import deque
from typing import Deque, Generic, Optional, TypeVar

from .config import DEFAULT_HISTORY_LIMIT

T = TypeVar("T")


class UndoRedoManager(Generic[T]):
    """Undo/redo over immutable state snapshots."""

    def __init__(self, max_size: int = DEFAULT_HISTORY_LIMIT):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self._history: Deque[T] = deque(maxlen=max_size)
        self._index = -1

    def save_state(self, state: T) -> None:
        """
        Save a new state as the current one.

        States after the cursor (the redo branch) are discarded first. At
        capacity the deque drops the oldest entry, so the cursor always ends
        on the state just saved.
        """
        while len(self._history) > self._index + 1:
            self._history.pop()

        self._history.append(state)
        self._index = len(self._history) - 1

    def undo(self) -> Optional[T]:
        """Step back one state; None when there is nothing to undo."""
        if not self.can_undo():
            return None
        self._index -= 1
        return self._history[self._index]

    def redo(self) -> Optional[T]:
        """Step forward one state; None when there is nothing to redo."""
        if not self.can_redo():
            return None
        self._index += 1
        return self._history[self._index]

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._history) - 1

    def current_state(self) -> Optional[T]:
        if self._index < 0:
            return None
        return self._history[self._index]

    def clear(self) -> None:
        self._history.clear()
        self._index = -1

    def size(self) -> int:
        return len(self._history)

    @property
    def current_index(self) -> int:
        return self._index

    def is_empty(self) -> bool:
        return not self._history

    def __len__(self) -> int:
        return len(self._history)
