"""
Error kinds raised by the coloring book core.

Fill rejections (out of bounds, wall hit, no-op) are expected conditions that
callers report as "no change". Decode failures are fatal to the operation
that hit them except inside the compositor, which falls back to the
background image.
"""


class ColoringError(Exception):
    """Base class for all coloring core errors."""


class FillRejected(ColoringError):
    """A fill request that changes nothing.

    Attributes:
        x: Seed x coordinate
        y: Seed y coordinate
    """

    def __init__(self, x: int, y: int, message: str = ""):
        self.x = x
        self.y = y
        super().__init__(message or f"Fill rejected at ({x}, {y})")


class OutOfBoundsError(FillRejected):
    """Seed coordinate lies outside the image."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(x, y, f"Coordinate ({x}, {y}) is outside {width}x{height} image")


class BoundaryHitError(FillRejected):
    """Seed pixel is a wall of the outline layer."""

    def __init__(self, x: int, y: int):
        super().__init__(x, y, f"Coordinate ({x}, {y}) is a line pixel")


class NoOpFillError(FillRejected):
    """Seed pixel already has the requested color."""

    def __init__(self, x: int, y: int):
        super().__init__(x, y, f"Coordinate ({x}, {y}) already has the fill color")


class DecodeFailure(ColoringError, ValueError):
    """Image bytes could not be decoded."""


class EmptyHistoryError(ColoringError):
    """Undo or redo requested with nothing on the stack."""


class PipelineCancelled(ColoringError):
    """A background ingest job was abandoned between stages."""
