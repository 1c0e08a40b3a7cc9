"""Linear undo/redo over paint surface mutations.

The history keeps two stacks of full raster snapshots. A snapshot is taken
once before each discrete action (stroke start, full clear), never per
stamp, so a whole stroke is one undoable unit::

    record_before_change()   push current -> undo (newest N kept), clear redo
    undo()                   push current -> redo, restore popped undo entry
    redo()                   push current -> undo, restore popped redo entry

Undo and redo on an empty stack are no-ops that return False; hosts should
disable the matching affordance using :attr:`HistoryManager.can_undo` and
:attr:`HistoryManager.can_redo`.
"""

import logging
from collections import deque

import numpy as np

from .surface import RasterSurface

logger = logging.getLogger(__name__)


class HistoryManager:
    """Bounded undo/redo stacks of deep-copied surface snapshots.

    Attributes
    ----------
    limit : int
        Maximum number of undo entries; the oldest is dropped on overflow
    """

    def __init__(self, limit: int = 30) -> None:
        if limit < 1:
            raise ValueError(f"History limit must be positive, got {limit}")
        self.limit = limit
        self._undo: deque[np.ndarray] = deque(maxlen=limit)
        self._redo: list[np.ndarray] = []

    @property
    def can_undo(self) -> bool:
        """Whether an undo entry is available."""
        return len(self._undo) > 0

    @property
    def can_redo(self) -> bool:
        """Whether a redo entry is available."""
        return len(self._redo) > 0

    @property
    def undo_depth(self) -> int:
        """Number of stored undo entries."""
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        """Number of stored redo entries."""
        return len(self._redo)

    def record_before_change(self, surface: RasterSurface) -> None:
        """Snapshot the surface ahead of a mutating action.

        Starting a new branch invalidates all forward history.
        """
        self._undo.append(surface.snapshot())
        self._redo.clear()

    def undo(self, surface: RasterSurface) -> bool:
        """Restore the most recent undo entry onto the surface.

        Returns:
            False if there was nothing to undo
        """
        if not self._undo:
            return False
        self._redo.append(surface.snapshot())
        surface.restore(self._undo.pop())
        logger.debug(f"Undo (undo={len(self._undo)}, redo={len(self._redo)})")
        return True

    def redo(self, surface: RasterSurface) -> bool:
        """Restore the most recent redo entry onto the surface.

        Returns:
            False if there was nothing to redo
        """
        if not self._redo:
            return False
        self._undo.append(surface.snapshot())
        surface.restore(self._redo.pop())
        logger.debug(f"Redo (undo={len(self._undo)}, redo={len(self._redo)})")
        return True

    def reset(self) -> None:
        """Drop both stacks (image or version switch, surface reallocation)."""
        self._undo.clear()
        self._redo.clear()
