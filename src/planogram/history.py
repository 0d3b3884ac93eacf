"""Linear undo/redo stack of actions."""

from __future__ import annotations

from typing import List, Optional

from src.planogram.actions import PlanogramAction


class HistoryStack:
    def __init__(self) -> None:
        self._past: List[PlanogramAction] = []
        self._future: List[PlanogramAction] = []

    def push(self, action: PlanogramAction) -> None:
        self._past.append(action)
        self._future.clear()

    def replace_last(self, action: PlanogramAction) -> None:
        """Squash ``action`` into the newest entry; pushes when empty."""
        if not self._past:
            self.push(action)
            return
        self._past[-1] = action
        self._future.clear()

    def undo(self) -> bool:
        if not self._past:
            return False
        self._future.append(self._past.pop())
        return True

    def redo(self) -> bool:
        if not self._future:
            return False
        self._past.append(self._future.pop())
        return True

    def clear(self) -> None:
        self._past.clear()
        self._future.clear()

    def active_actions(self) -> List[PlanogramAction]:
        return list(self._past)

    def last_action(self) -> Optional[PlanogramAction]:
        return self._past[-1] if self._past else None

    @property
    def can_undo(self) -> bool:
        return bool(self._past)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    @property
    def undo_size(self) -> int:
        return len(self._past)

    @property
    def redo_size(self) -> int:
        return len(self._future)
