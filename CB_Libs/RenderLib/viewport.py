"""
Mapping between canvas (screen) coordinates and image coordinates.

The page is drawn aspect-fit and centered inside the canvas, then optionally
zoomed and panned by a ViewTransform. Taps and drags arrive in canvas
coordinates and must be mapped back to image pixels before they reach the
fill engine or the stroke recorder.

Example:
    >>> canvas_to_image((200.0, 150.0), canvas_size=(400, 300), image_size=(64, 64))
    (32, 32)
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

Size = Tuple[float, float]
Point = Tuple[float, float]


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in canvas coordinates."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    def contains(self, point: Point) -> bool:
        px, py = point
        return self.left <= px < self.right and self.top <= py < self.bottom


@dataclass(frozen=True)
class ViewTransform:
    """Zoom and pan applied on top of the aspect fit.

    canvas = fitted * scale + offset

    Attributes:
        scale: Zoom factor (> 0)
        offset_x: Horizontal pan in canvas pixels
        offset_y: Vertical pan in canvas pixels
    """
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    def __post_init__(self):
        if self.scale <= 0:
            raise ValueError(f"scale must be > 0, got {self.scale}")

    def apply(self, point: Point) -> Point:
        px, py = point
        return px * self.scale + self.offset_x, py * self.scale + self.offset_y

    def invert(self, point: Point) -> Point:
        px, py = point
        return (px - self.offset_x) / self.scale, (py - self.offset_y) / self.scale


def fit_destination_rect(canvas_size: Size, image_size: Size) -> Rect:
    """
    Largest rectangle with the image's aspect ratio centered in the canvas.

    Raises:
        ValueError: If either size is not positive
    """
    canvas_w, canvas_h = canvas_size
    image_w, image_h = image_size
    if canvas_w <= 0 or canvas_h <= 0 or image_w <= 0 or image_h <= 0:
        raise ValueError(f"Sizes must be positive, got canvas {canvas_size}, image {image_size}")

    canvas_aspect = canvas_w / canvas_h
    image_aspect = image_w / image_h

    if image_aspect > canvas_aspect:
        width = float(canvas_w)
        height = width / image_aspect
        return Rect(0.0, (canvas_h - height) / 2, width, height)

    height = float(canvas_h)
    width = height * image_aspect
    return Rect((canvas_w - width) / 2, 0.0, width, height)


def canvas_to_image(
    point: Point,
    canvas_size: Size,
    image_size: Tuple[int, int],
    view: Optional[ViewTransform] = None,
) -> Optional[Tuple[int, int]]:
    """
    Map a canvas point to the image pixel under it.

    Returns:
        (x, y) pixel coordinates, or None when the point falls in the
        letterbox area outside the drawn page
    """
    if view is not None:
        point = view.invert(point)

    rect = fit_destination_rect(canvas_size, image_size)
    if not rect.contains(point):
        return None

    image_w, image_h = image_size
    rel_x = (point[0] - rect.left) / rect.width
    rel_y = (point[1] - rect.top) / rect.height
    # Truncate to the pixel under the point; float error can reach the far edge
    x = min(int(np.floor(rel_x * image_w)), image_w - 1)
    y = min(int(np.floor(rel_y * image_h)), image_h - 1)
    return x, y


def image_to_canvas(
    point: Point,
    canvas_size: Size,
    image_size: Tuple[int, int],
    view: Optional[ViewTransform] = None,
) -> Point:
    """Map an image coordinate to its canvas position."""
    rect = fit_destination_rect(canvas_size, image_size)
    image_w, image_h = image_size
    canvas_point = (
        rect.left + point[0] / image_w * rect.width,
        rect.top + point[1] / image_h * rect.height,
    )
    if view is not None:
        canvas_point = view.apply(canvas_point)
    return canvas_point
