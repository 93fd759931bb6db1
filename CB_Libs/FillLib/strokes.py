"""
Freehand strokes recorded as vector data.

Strokes live as an overlay between the color layer and the outline layer and
are only rasterized into the color layer when a page is finalized.

Classes:
    Stroke: One continuous drag (points, color, width)
    StrokeRecorder: Accumulates points between begin and end of a drag
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from CB_Libs.RasterLib.raster_models import ImagePoint, RgbaColor, normalize_rgba
from CB_Libs.constants import MAX_STROKE_WIDTH, MIN_STROKE_WIDTH

logger = logging.getLogger(__name__)


def _normalize_point(point: Sequence[float]) -> ImagePoint:
    px, py = point
    return float(px), float(py)


@dataclass(frozen=True)
class Stroke:
    """A freehand stroke in image coordinates.

    Attributes:
        points: Ordered image-space points of the drag
        color: RGBA draw color
        width: Line width in image pixels
    """
    points: Tuple[ImagePoint, ...]
    color: RgbaColor
    width: float

    def __post_init__(self):
        if not self.points:
            raise ValueError("Stroke must have at least one point")
        if not MIN_STROKE_WIDTH <= self.width <= MAX_STROKE_WIDTH:
            raise ValueError(
                f"width must be {MIN_STROKE_WIDTH}-{MAX_STROKE_WIDTH}, got {self.width}"
            )
        object.__setattr__(self, "points", tuple(_normalize_point(p) for p in self.points))
        object.__setattr__(self, "color", normalize_rgba(self.color))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "points": [list(p) for p in self.points],
            "color": list(self.color),
            "width": self.width,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stroke":
        """Create from dictionary."""
        return cls(
            points=tuple(tuple(p) for p in data.get("points", [])),
            color=tuple(data.get("color", (0, 0, 0, 255))),
            width=float(data.get("width", MIN_STROKE_WIDTH)),
        )


class StrokeRecorder:
    """
    Builds one stroke at a time from begin/extend/end calls.

    Example:
        >>> recorder = StrokeRecorder()
        >>> recorder.begin((10, 10), (255, 0, 0, 255), 6.0)
        >>> recorder.extend((12, 14))
        >>> stroke = recorder.end()
    """

    def __init__(self):
        self._points: List[ImagePoint] = []
        self._color: Optional[RgbaColor] = None
        self._width = 0.0

    @property
    def active(self) -> bool:
        return self._color is not None

    @property
    def point_count(self) -> int:
        return len(self._points)

    @property
    def current(self) -> Optional[Stroke]:
        """Snapshot of the stroke in progress, or None."""
        if self._color is None:
            return None
        return Stroke(tuple(self._points), self._color, self._width)

    def begin(self, point: Sequence[float], color: RgbaColor, width: float) -> Stroke:
        if self.active:
            logger.debug("Discarding unfinished stroke before starting a new one")
        # Validates color and width once for the whole drag
        stroke = Stroke((_normalize_point(point),), color, float(width))
        self._points = list(stroke.points)
        self._color = stroke.color
        self._width = stroke.width
        return stroke

    def extend(self, point: Sequence[float]) -> bool:
        """Append a point; returns False when no drag is in progress."""
        if not self.active:
            return False
        self._points.append(_normalize_point(point))
        return True

    def end(self) -> Optional[Stroke]:
        stroke = self.current
        self.cancel()
        return stroke

    def cancel(self) -> None:
        self._points = []
        self._color = None
        self._width = 0.0


def strokes_snapshot(strokes: Sequence[Stroke]) -> Tuple[Stroke, ...]:
    """Immutable copy of a stroke list, safe to keep in history."""
    return tuple(strokes)


def strokes_from_dicts(items: List[Dict[str, Any]]) -> List[Stroke]:
    return [Stroke.from_dict(item) for item in items]
