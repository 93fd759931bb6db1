"""
Interactive coloring session for one page.

A ColoringSession owns the mutable color layer of a page together with the
stroke overlay and the undo/redo history. It is the surface the UI talks to:
taps become fills, drags become strokes, and the toolbar drives undo, redo,
clearing and finalization.

The session is single-owner. Exactly one fill, stroke or history operation
runs at a time and nothing else writes to the color layer.

Example:
    >>> session = ColoringSession.from_png(outline_bytes)
    >>> session.fill(120, 80, (255, 0, 0, 255))
    >>> session.undo()
    >>> page_png = session.render_png()
"""

import logging
from typing import Optional, Sequence, Tuple

from CB_Libs.FillLib.flood_fill import (
    FillConfig,
    FillDiff,
    WallMap,
    create_empty_color_layer,
    flood_fill,
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
from CB_Libs.RasterLib.raster_buffer import RasterBuffer
from CB_Libs.RasterLib.raster_models import ImagePoint, RgbaColor
from CB_Libs.RenderLib.page_renderer import composite, render_strokes_into
from CB_Libs.RenderLib.viewport import ViewTransform, canvas_to_image
from CB_Libs.constants import DEFAULT_STROKE_WIDTH, MAX_UNDO_DEPTH
from CB_Libs.errors import FillRejected, NoOpFillError

logger = logging.getLogger(__name__)


class ColoringSession:
    """Editing state of one coloring page."""

    def __init__(
        self,
        outline_layer: RasterBuffer,
        color_layer: Optional[RasterBuffer] = None,
        fill_config: Optional[FillConfig] = None,
        history_depth: int = MAX_UNDO_DEPTH,
        strokes: Optional[Sequence[Stroke]] = None,
    ):
        """
        Args:
            outline_layer: Line art of the page (copied, never modified)
            color_layer: Existing fill state; a blank layer is created if None
            fill_config: Wall predicate settings
            history_depth: Maximum number of undoable actions
            strokes: Strokes restored from a previous session

        Raises:
            ValueError: If the layers differ in size
        """
        if color_layer is None:
            color_layer = create_empty_color_layer(outline_layer.width, outline_layer.height)
        if color_layer.size != outline_layer.size:
            raise ValueError(
                f"Layer size mismatch: color {color_layer.size} vs outline {outline_layer.size}"
            )

        self._outline = outline_layer.copy()
        self._walls = WallMap(self._outline, fill_config)
        self._canvas = CanvasState(color_layer=color_layer, strokes=list(strokes or []))
        self._history = UndoRedoLog(history_depth)
        self._recorder = StrokeRecorder()

    @classmethod
    def from_png(
        cls,
        outline_bytes: bytes,
        color_bytes: Optional[bytes] = None,
        fill_config: Optional[FillConfig] = None,
        history_depth: int = MAX_UNDO_DEPTH,
    ) -> "ColoringSession":
        """
        Open a session from encoded layers.

        Raises:
            DecodeFailure: If either layer cannot be decoded
            ValueError: If the layers differ in size
        """
        outline = RasterBuffer.from_png(outline_bytes)
        color = RasterBuffer.from_png(color_bytes) if color_bytes else None
        return cls(outline, color, fill_config, history_depth)

    # Read-only views

    @property
    def outline_layer(self) -> RasterBuffer:
        return self._outline

    @property
    def color_layer(self) -> RasterBuffer:
        return self._canvas.color_layer

    @property
    def strokes(self) -> Tuple[Stroke, ...]:
        return strokes_snapshot(self._canvas.strokes)

    @property
    def history(self) -> UndoRedoLog:
        return self._history

    @property
    def size(self) -> Tuple[int, int]:
        return self._outline.size

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def drawing(self) -> bool:
        return self._recorder.active

    # Fills

    def fill(self, x: int, y: int, color: RgbaColor) -> FillDiff:
        """
        Flood fill the region under (x, y) and record it for undo.

        Raises:
            OutOfBoundsError: Seed outside the page
            BoundaryHitError: Seed on a line
            NoOpFillError: Region already has this color
        """
        try:
            diff = flood_fill(
                self._canvas.color_layer,
                self._outline,
                x,
                y,
                color,
                wall_map=self._walls,
            )
        except FillRejected as e:
            logger.debug(f"Fill rejected: {e}")
            raise
        self._history.record(FillAction(diff))
        return diff

    def reset_colors(self) -> Optional[FillDiff]:
        """
        Clear every fill on the page as one undoable action.

        Returns:
            The recorded diff, or None if the color layer was already blank
        """
        try:
            diff = reset_color_layer(self._canvas.color_layer)
        except NoOpFillError:
            logger.debug("Color layer already blank, nothing to reset")
            return None
        self._history.record(FillAction(diff))
        return diff

    # History

    def undo(self) -> Optional[UndoAction]:
        return self._history.undo(self._canvas)

    def redo(self) -> Optional[UndoAction]:
        return self._history.redo(self._canvas)

    # Strokes

    def begin_stroke(
        self,
        point: ImagePoint,
        color: RgbaColor,
        width: float = DEFAULT_STROKE_WIDTH,
    ) -> Stroke:
        """Start a freehand stroke at an image coordinate."""
        return self._recorder.begin(point, color, width)

    def extend_stroke(self, point: ImagePoint) -> bool:
        """Append a point to the stroke in progress; False if none is in progress."""
        return self._recorder.extend(point)

    def end_stroke(self) -> Optional[StrokeAction]:
        """
        Commit the stroke in progress.

        Returns:
            The recorded StrokeAction, or None if no stroke was in progress
        """
        stroke = self._recorder.end()
        if stroke is None:
            return None

        before = strokes_snapshot(self._canvas.strokes)
        after = before + (stroke,)
        self._canvas.strokes = list(after)
        action = StrokeAction(before=before, after=after, kind="draw")
        self._history.record(action)
        return action

    def clear_strokes(self) -> Optional[StrokeAction]:
        """Remove every stroke as one undoable action."""
        self._recorder.cancel()
        if not self._canvas.strokes:
            return None

        action = StrokeAction(before=strokes_snapshot(self._canvas.strokes), after=(), kind="clear")
        self._canvas.strokes = []
        self._history.record(action)
        return action

    # Output

    def _visible_strokes(self) -> Tuple[Stroke, ...]:
        current = self._recorder.current
        strokes = strokes_snapshot(self._canvas.strokes)
        return strokes + (current,) if current is not None else strokes

    def render(self) -> RasterBuffer:
        """Render the page, including a stroke still being drawn."""
        return composite(self._canvas.color_layer, self._outline, self._visible_strokes())

    def render_png(self) -> bytes:
        return self.render().to_png()

    def color_layer_png(self) -> bytes:
        return self._canvas.color_layer.to_png()

    def finalize(self) -> bytes:
        """
        Bake strokes into the color layer and start a fresh history.

        Finalization is not undoable.

        Returns:
            PNG bytes of the updated color layer
        """
        self._recorder.cancel()
        stroke_count = len(self._canvas.strokes)
        render_strokes_into(self._canvas.color_layer, self._canvas.strokes)
        self._canvas.strokes = []
        self._history.clear()
        logger.info(f"Finalized page {self.size[0]}x{self.size[1]} with {stroke_count} strokes")
        return self._canvas.color_layer.to_png()

    # Input mapping

    def map_canvas_point(
        self,
        point: Tuple[float, float],
        canvas_size: Tuple[float, float],
        view: Optional[ViewTransform] = None,
    ) -> Optional[Tuple[int, int]]:
        """Image pixel under a canvas point, or None outside the page."""
        return canvas_to_image(point, canvas_size, self.size, view)
