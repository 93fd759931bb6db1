"""
Raster data models for the coloring book core.

This module defines small value types shared by every component.

Classes:
    BoundingBox: Integer rectangle (x, y, width, height) in image space

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
    ImagePoint: A tuple of 2 floats representing an image-space coordinate
"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

RgbaColor = Tuple[int, int, int, int]
ImagePoint = Tuple[float, float]


def normalize_rgba(color: Sequence[int]) -> RgbaColor:
    """
    Validate and normalize a color to an RGBA tuple.

    Args:
        color: Sequence of 3 (RGB, alpha assumed opaque) or 4 channel values

    Returns:
        RGBA tuple of ints

    Raises:
        ValueError: If the channel count or any channel value is invalid
    """
    values = [int(channel) for channel in color]
    if len(values) == 3:
        values.append(255)
    if len(values) != 4:
        raise ValueError(f"Expected 3 or 4 channels, got {len(values)}")
    for channel in values:
        if not 0 <= channel <= 255:
            raise ValueError(f"Channel values must be 0-255, got {tuple(values)}")
    return values[0], values[1], values[2], values[3]


@dataclass(frozen=True)
class BoundingBox:
    """Integer rectangle in image coordinates.

    Attributes:
        x: Left column
        y: Top row
        width: Number of columns (>= 1)
        height: Number of rows (>= 1)
    """
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self):
        if self.width < 1 or self.height < 1:
            raise ValueError(f"BoundingBox must be non-empty, got {self.width}x{self.height}")

    @property
    def right(self) -> int:
        """Exclusive right edge."""
        return self.x + self.width

    @property
    def bottom(self) -> int:
        """Exclusive bottom edge."""
        return self.y + self.height

    def contains(self, x: int, y: int) -> bool:
        return self.x <= x < self.right and self.y <= y < self.bottom

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoundingBox":
        """Create from dictionary."""
        return cls(
            x=int(data["x"]),
            y=int(data["y"]),
            width=int(data["width"]),
            height=int(data["height"]),
        )
