"""
FillLib - Flood fill, freehand strokes and undo/redo history.
"""

from CB_Libs.FillLib.flood_fill import (
    FillConfig,
    FillDiff,
    WallMap,
    apply_fill_diff,
    create_empty_color_layer,
    fill_png,
    flood_fill,
    reapply_fill_diff,
    reset_color_layer,
)
from CB_Libs.FillLib.strokes import Stroke, StrokeRecorder, strokes_snapshot
from CB_Libs.FillLib.undo_history import (
    CanvasState,
    FillAction,
    StrokeAction,
    UndoAction,
    UndoRedoLog,
)

__all__ = [
    "FillConfig",
    "FillDiff",
    "WallMap",
    "apply_fill_diff",
    "create_empty_color_layer",
    "fill_png",
    "flood_fill",
    "reapply_fill_diff",
    "reset_color_layer",
    "Stroke",
    "StrokeRecorder",
    "strokes_snapshot",
    "CanvasState",
    "FillAction",
    "StrokeAction",
    "UndoAction",
    "UndoRedoLog",
]
