"""
Bounded undo/redo history for coloring edits.

Two kinds of edits are recorded, each with its own inverse:

- FillAction: a raster FillDiff. Undo writes the previous colors back, redo
  writes the fill color again over the same pixels.
- StrokeAction: before/after snapshots of the vector stroke list, for drawing
  a stroke ("draw") or wiping all strokes ("clear"). Undo and redo swap the
  whole list.

The log keeps at most max_depth undo entries; recording past the cap evicts
the oldest. Recording any new action empties the redo stack.

Example:
    >>> log = UndoRedoLog()
    >>> canvas = CanvasState(color_layer=layer, strokes=[])
    >>> diff = flood_fill(layer, outline, 16, 16, (255, 0, 0, 255))
    >>> log.record(FillAction(diff))
    >>> log.undo(canvas)   # layer is back to its pre-fill pixels
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Literal, Optional, Tuple, Union

from CB_Libs.FillLib.flood_fill import FillDiff, apply_fill_diff, reapply_fill_diff
from CB_Libs.FillLib.strokes import Stroke
from CB_Libs.RasterLib.raster_buffer import RasterBuffer
from CB_Libs.constants import MAX_UNDO_DEPTH
from CB_Libs.errors import EmptyHistoryError

logger = logging.getLogger(__name__)

StrokeActionKind = Literal["draw", "clear"]


@dataclass
class CanvasState:
    """The editable state an undo action operates on.

    Attributes:
        color_layer: Mutable color layer
        strokes: Current vector stroke overlay
    """
    color_layer: RasterBuffer
    strokes: List[Stroke] = field(default_factory=list)


@dataclass(frozen=True)
class FillAction:
    """Undoable flood fill (or color reset)."""
    diff: FillDiff

    @property
    def kind(self) -> str:
        return "fill"

    def revert(self, canvas: CanvasState) -> None:
        apply_fill_diff(canvas.color_layer, self.diff)

    def reapply(self, canvas: CanvasState) -> None:
        reapply_fill_diff(canvas.color_layer, self.diff)

    def describe(self) -> str:
        return f"fill at ({self.diff.x}, {self.diff.y}), {len(self.diff)} pixels"


@dataclass(frozen=True)
class StrokeAction:
    """Undoable change to the stroke list."""
    before: Tuple[Stroke, ...]
    after: Tuple[Stroke, ...]
    kind: StrokeActionKind = "draw"

    def __post_init__(self):
        if self.kind not in ("draw", "clear"):
            raise ValueError(f"Unsupported stroke action kind: {self.kind}")
        object.__setattr__(self, "before", tuple(self.before))
        object.__setattr__(self, "after", tuple(self.after))

    def revert(self, canvas: CanvasState) -> None:
        canvas.strokes = list(self.before)

    def reapply(self, canvas: CanvasState) -> None:
        canvas.strokes = list(self.after)

    def describe(self) -> str:
        return f"{self.kind} strokes {len(self.before)} -> {len(self.after)}"


UndoAction = Union[FillAction, StrokeAction]


class UndoRedoLog:
    """Two bounded stacks of undo actions."""

    def __init__(self, max_depth: int = MAX_UNDO_DEPTH):
        if max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {max_depth}")
        self.max_depth = max_depth
        self._undo: Deque[UndoAction] = deque(maxlen=max_depth)
        self._redo: Deque[UndoAction] = deque(maxlen=max_depth)

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    def undo_actions(self) -> List[UndoAction]:
        """Undo stack, oldest first."""
        return list(self._undo)

    def redo_actions(self) -> List[UndoAction]:
        """Redo stack, oldest first."""
        return list(self._redo)

    def record(self, action: UndoAction) -> None:
        """
        Push a new action, evicting the oldest past the cap.

        Always clears the redo stack.
        """
        if not isinstance(action, (FillAction, StrokeAction)):
            raise TypeError(f"Expected FillAction or StrokeAction, got {type(action)}")
        if len(self._undo) == self.max_depth:
            evicted = self._undo[0]
            logger.debug(f"Undo history full, evicting oldest: {evicted.describe()}")
        self._undo.append(action)
        self._redo.clear()

    def pop_undo(self) -> UndoAction:
        """
        Move the newest undo action to the redo stack without applying it.

        Raises:
            EmptyHistoryError: If there is nothing to undo
        """
        if not self._undo:
            raise EmptyHistoryError("Nothing to undo")
        action = self._undo.pop()
        self._redo.append(action)
        return action

    def pop_redo(self) -> UndoAction:
        """
        Move the newest redo action to the undo stack without applying it.

        Raises:
            EmptyHistoryError: If there is nothing to redo
        """
        if not self._redo:
            raise EmptyHistoryError("Nothing to redo")
        action = self._redo.pop()
        self._undo.append(action)
        return action

    def undo(self, canvas: CanvasState) -> Optional[UndoAction]:
        """
        Revert the newest action on the canvas.

        Returns:
            The reverted action, or None when the undo stack is empty
        """
        try:
            action = self.pop_undo()
        except EmptyHistoryError:
            logger.debug("Undo requested with empty history, ignoring")
            return None
        action.revert(canvas)
        logger.debug(f"Undid {action.describe()}")
        return action

    def redo(self, canvas: CanvasState) -> Optional[UndoAction]:
        """
        Re-apply the most recently undone action on the canvas.

        Returns:
            The re-applied action, or None when the redo stack is empty
        """
        try:
            action = self.pop_redo()
        except EmptyHistoryError:
            logger.debug("Redo requested with empty history, ignoring")
            return None
        action.reapply(canvas)
        logger.debug(f"Redid {action.describe()}")
        return action

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()
