"""
Boundary-respecting flood fill for coloring pages.

The outline layer is a wall map: any pixel whose luminance is at or below the
configured threshold blocks the fill. The color layer is mutated in place and
every changed pixel is recorded in a FillDiff so the edit can be undone.

The fill is a queue-driven scanline fill. Each popped seed is widened to the
full horizontal run of fillable pixels on its row, the run is painted in one
slice assignment, and the rows above and below are probed across the run
with one new seed enqueued per fillable run found there. Enqueues are
proportional to the number of spans, not the filled area.

Classes:
    FillConfig: Wall predicate parameters
    WallMap: Precomputed wall mask for an outline layer
    FillDiff: Sparse before-state of the pixels one fill changed

Functions:
    flood_fill: Fill the region around a seed and return its diff
    fill_png: Byte-level wrapper around flood_fill
    apply_fill_diff: Restore the pixels recorded in a diff
    reapply_fill_diff: Write the diff's fill color back over its pixels
    reset_color_layer: Clear the whole color layer and return the diff
    create_empty_color_layer: New transparent color layer
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np

from CB_Libs.RasterLib.raster_buffer import RasterBuffer, pack_color
from CB_Libs.RasterLib.raster_models import RgbaColor, normalize_rgba
from CB_Libs.constants import (
    EMPTY_COLOR_LAYER_RGBA,
    WALL_LUMINANCE_THRESHOLD,
    WALL_THRESHOLD_INCLUSIVE,
)
from CB_Libs.errors import BoundaryHitError, NoOpFillError, OutOfBoundsError

logger = logging.getLogger(__name__)

PixelRecord = Tuple[int, int, int, int, int, int]


@dataclass
class FillConfig:
    """Configuration for the wall predicate.

    Attributes:
        wall_threshold: Luminance cutoff (0-255) separating lines from paper
        inclusive: Treat luminance equal to the threshold as a wall
    """
    wall_threshold: float = WALL_LUMINANCE_THRESHOLD
    inclusive: bool = WALL_THRESHOLD_INCLUSIVE

    def __post_init__(self):
        if not 0 <= self.wall_threshold <= 255:
            raise ValueError(f"wall_threshold must be 0-255, got {self.wall_threshold}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "wall_threshold": self.wall_threshold,
            "inclusive": self.inclusive,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FillConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)


class WallMap:
    """
    Boolean wall mask derived from an outline layer.

    The outline layer never changes during a session, so one WallMap can be
    shared by every fill on the same page.
    """

    def __init__(self, outline_layer: RasterBuffer, config: Optional[FillConfig] = None):
        config = config or FillConfig()
        luminance = outline_layer.luminance()
        if config.inclusive:
            self.walls = luminance <= config.wall_threshold
        else:
            self.walls = luminance < config.wall_threshold
        self.config = config

    @property
    def width(self) -> int:
        return int(self.walls.shape[1])

    @property
    def height(self) -> int:
        return int(self.walls.shape[0])

    def is_wall(self, x: int, y: int) -> bool:
        return bool(self.walls[y, x])

    def wall_count(self) -> int:
        return int(np.count_nonzero(self.walls))


@dataclass(frozen=True, eq=False)
class FillDiff:
    """Pixels changed by one fill, with their previous colors.

    Attributes:
        x: Seed x coordinate (kept for logging)
        y: Seed y coordinate
        fill_color: Color written to every recorded pixel
        xs: Column of each changed pixel
        ys: Row of each changed pixel
        previous: (N, 4) uint8 array of the colors before the fill
    """
    x: int
    y: int
    fill_color: RgbaColor
    xs: np.ndarray
    ys: np.ndarray
    previous: np.ndarray

    def __len__(self) -> int:
        return int(self.xs.shape[0])

    def __iter__(self) -> Iterator[PixelRecord]:
        for px, py, (r, g, b, a) in zip(self.xs.tolist(), self.ys.tolist(), self.previous.tolist()):
            yield px, py, r, g, b, a

    @property
    def pixel_count(self) -> int:
        return len(self)

    def to_flat_list(self) -> List[int]:
        """Flatten to [x, y, r, g, b, a, x, y, r, g, b, a, ...]."""
        flat: List[int] = []
        for record in self:
            flat.extend(record)
        return flat


def create_empty_color_layer(width: int, height: int) -> RasterBuffer:
    """Create a transparent-white color layer of the given size."""
    return RasterBuffer.blank(width, height, EMPTY_COLOR_LAYER_RGBA)


def _row_runs(fillable_row: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Start and inclusive end columns of every True run in a row."""
    padded = np.concatenate(([False], fillable_row, [False]))
    edges = np.flatnonzero(padded[1:] != padded[:-1])
    return edges[0::2], edges[1::2] - 1


def flood_fill(
    color_layer: RasterBuffer,
    outline_layer: RasterBuffer,
    x: int,
    y: int,
    fill_color: RgbaColor,
    config: Optional[FillConfig] = None,
    wall_map: Optional[WallMap] = None,
) -> FillDiff:
    """
    Fill the 4-connected region around (x, y) with fill_color.

    A pixel is fillable when it is not a wall and its color exactly matches
    the seed's original color on all four channels.

    Args:
        color_layer: Mutable color layer, modified in place
        outline_layer: Outline layer used as the wall map (never modified)
        x: Seed column
        y: Seed row
        fill_color: RGBA fill color
        config: Wall predicate settings (ignored when wall_map is given)
        wall_map: Precomputed walls for outline_layer

    Returns:
        FillDiff of exactly the pixels that changed

    Raises:
        ValueError: If the layers differ in size
        OutOfBoundsError: If the seed lies outside the image
        BoundaryHitError: If the seed is a wall pixel
        NoOpFillError: If the seed already has fill_color
    """
    if color_layer.size != outline_layer.size:
        raise ValueError(
            f"Layer size mismatch: color {color_layer.size} vs outline {outline_layer.size}"
        )

    fill_color = normalize_rgba(fill_color)
    width, height = color_layer.size

    if not color_layer.in_bounds(x, y):
        raise OutOfBoundsError(x, y, width, height)

    if wall_map is None:
        wall_map = WallMap(outline_layer, config)
    walls = wall_map.walls

    if walls[y, x]:
        raise BoundaryHitError(x, y)

    packed = color_layer.packed()
    target = int(packed[y, x])
    new_value = pack_color(fill_color)
    if target == new_value:
        raise NoOpFillError(x, y)

    target_rgba = color_layer.get_pixel(x, y)
    fillable = ~walls & (packed == target)
    runs: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}
    spans: List[Tuple[int, int, int]] = []

    queue = deque([(x, y)])
    while queue:
        sx, sy = queue.popleft()
        if not fillable[sy, sx]:
            continue

        if sy not in runs:
            runs[sy] = _row_runs(fillable[sy])
        starts, ends = runs[sy]
        index = int(np.searchsorted(starts, sx, side="right")) - 1
        x1, x2 = int(starts[index]), int(ends[index])

        packed[sy, x1:x2 + 1] = new_value
        fillable[sy, x1:x2 + 1] = False
        spans.append((sy, x1, x2))

        for ny in (sy - 1, sy + 1):
            if ny < 0 or ny >= height:
                continue
            if ny not in runs:
                runs[ny] = _row_runs(fillable[ny])
            n_starts, n_ends = runs[ny]
            lo = int(np.searchsorted(n_ends, x1, side="left"))
            hi = int(np.searchsorted(n_starts, x2, side="right"))
            for run_index in range(lo, hi):
                seed_x = max(int(n_starts[run_index]), x1)
                if fillable[ny, seed_x]:
                    queue.append((seed_x, ny))

    xs = np.concatenate([np.arange(x1, x2 + 1, dtype=np.int32) for _, x1, x2 in spans])
    ys = np.concatenate([np.full(x2 - x1 + 1, sy, dtype=np.int32) for sy, x1, x2 in spans])
    previous = np.empty((xs.shape[0], 4), dtype=np.uint8)
    previous[:] = target_rgba

    logger.debug(
        f"Filled {xs.shape[0]} pixels in {len(spans)} spans from ({x}, {y}) with {fill_color}"
    )
    return FillDiff(x=x, y=y, fill_color=fill_color, xs=xs, ys=ys, previous=previous)


def fill_png(
    color_bytes: bytes,
    outline_bytes: bytes,
    x: int,
    y: int,
    fill_color: RgbaColor,
    config: Optional[FillConfig] = None,
) -> Tuple[bytes, FillDiff]:
    """
    Byte-level flood fill.

    Args:
        color_bytes: Encoded color layer
        outline_bytes: Encoded outline layer
        x: Seed column
        y: Seed row
        fill_color: RGBA fill color
        config: Wall predicate settings

    Returns:
        Tuple of (new color layer PNG bytes, FillDiff)

    Raises:
        DecodeFailure: If either layer cannot be decoded
        FillRejected: Any of the fill rejection kinds from flood_fill
    """
    color_layer = RasterBuffer.from_png(color_bytes)
    outline_layer = RasterBuffer.from_png(outline_bytes)
    diff = flood_fill(color_layer, outline_layer, x, y, fill_color, config)
    return color_layer.to_png(), diff


def _in_bounds_mask(layer: RasterBuffer, diff: FillDiff) -> np.ndarray:
    return (
        (diff.xs >= 0) & (diff.xs < layer.width)
        & (diff.ys >= 0) & (diff.ys < layer.height)
    )


def apply_fill_diff(color_layer: RasterBuffer, diff: FillDiff) -> None:
    """Write every recorded previous color back into the color layer."""
    keep = _in_bounds_mask(color_layer, diff)
    color_layer.pixels[diff.ys[keep], diff.xs[keep]] = diff.previous[keep]


def reapply_fill_diff(color_layer: RasterBuffer, diff: FillDiff) -> None:
    """Write the diff's fill color over every recorded pixel."""
    keep = _in_bounds_mask(color_layer, diff)
    color_layer.pixels[diff.ys[keep], diff.xs[keep]] = diff.fill_color


def reset_color_layer(
    color_layer: RasterBuffer,
    blank: RgbaColor = EMPTY_COLOR_LAYER_RGBA,
) -> FillDiff:
    """
    Clear the whole color layer to a single color.

    Returns:
        FillDiff of every pixel that was not already blank, seeded at (0, 0)

    Raises:
        NoOpFillError: If the layer is already blank
    """
    blank = normalize_rgba(blank)
    changed = color_layer.packed() != pack_color(blank)
    ys, xs = np.nonzero(changed)
    if ys.size == 0:
        raise NoOpFillError(0, 0)

    previous = color_layer.pixels[ys, xs].copy()
    color_layer.pixels[:, :] = blank
    logger.debug(f"Reset {ys.size} color layer pixels to {blank}")
    return FillDiff(
        x=0,
        y=0,
        fill_color=blank,
        xs=xs.astype(np.int32),
        ys=ys.astype(np.int32),
        previous=previous,
    )
