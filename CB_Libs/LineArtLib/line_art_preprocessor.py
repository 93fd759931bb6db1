"""
Photo to line art preprocessing.

Turns an arbitrary photo into pure black lines on pure white paper, sized to
the working resolution, ready to be used as an outline layer.

Pipeline (each stage feeds the next):
    1. resize: longer edge = working_size, aspect ratio preserved
    2. grayscale: luminance, transparency read as paper
    3. blur: small Gaussian blur against sensor noise
    4. edges: Sobel gradient magnitude above a strength-derived threshold
    5. polarity: invert when dark pixels dominate a sample grid
    6. denoise: drop dark pixels with too few dark neighbours
    7. dilate: thicken lines by one ring so fills cannot leak through them

The central property is that closed shapes stay closed: flood fill relies on
the dilated lines having no single-pixel gaps.

Example:
    >>> outline_png = preprocess(photo_bytes, outline_strength=60)
    >>> outline = RasterBuffer.from_png(outline_png)
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
from PIL import Image

from CB_Libs.LineArtLib import edge_detection
from CB_Libs.RasterLib.raster_buffer import RasterBuffer, decode_image
from CB_Libs.constants import (
    DEFAULT_OUTLINE_STRENGTH,
    DILATION_PASSES,
    LINE_ART_BLUR_RADIUS,
    LINE_ART_WORKING_SIZE,
    MAX_EDGE_THRESHOLD,
    MAX_OUTLINE_STRENGTH,
    MIN_DARK_NEIGHBORS,
    MIN_EDGE_THRESHOLD,
    MIN_OUTLINE_STRENGTH,
    POLARITY_DARK_RATIO,
    POLARITY_SAMPLE_GRID,
)
from CB_Libs.errors import PipelineCancelled

logger = logging.getLogger(__name__)


@dataclass
class LineArtConfig:
    """Tuning parameters for the preprocessing pipeline.

    Attributes:
        working_size: Output length of the longer image edge in pixels
        blur_radius: Gaussian blur radius applied before edge detection
        min_edge_threshold: Gradient threshold at outline strength 100
        max_edge_threshold: Gradient threshold at outline strength 0
        polarity_sample_grid: Samples per axis for the polarity check
        polarity_dark_ratio: Invert when dark samples exceed light * ratio
        min_dark_neighbors: Dark pixels with fewer dark 8-neighbours are removed
        dilation_passes: Number of one-pixel rings added to every line
    """
    working_size: int = LINE_ART_WORKING_SIZE
    blur_radius: float = LINE_ART_BLUR_RADIUS
    min_edge_threshold: float = MIN_EDGE_THRESHOLD
    max_edge_threshold: float = MAX_EDGE_THRESHOLD
    polarity_sample_grid: int = POLARITY_SAMPLE_GRID
    polarity_dark_ratio: float = POLARITY_DARK_RATIO
    min_dark_neighbors: int = MIN_DARK_NEIGHBORS
    dilation_passes: int = DILATION_PASSES

    def __post_init__(self):
        if self.working_size < 3:
            raise ValueError(f"working_size must be >= 3, got {self.working_size}")
        if self.blur_radius < 0:
            raise ValueError(f"blur_radius must be >= 0, got {self.blur_radius}")
        if not 0 <= self.min_edge_threshold <= self.max_edge_threshold:
            raise ValueError(
                f"Edge thresholds must satisfy 0 <= min <= max, got "
                f"{self.min_edge_threshold}, {self.max_edge_threshold}"
            )
        if self.polarity_sample_grid < 1:
            raise ValueError(f"polarity_sample_grid must be >= 1, got {self.polarity_sample_grid}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {name: getattr(self, name) for name in self.__dataclass_fields__}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LineArtConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)


def edge_threshold_for_strength(strength: float, config: Optional[LineArtConfig] = None) -> float:
    """
    Map outline strength (0-100) to a gradient threshold.

    Higher strength gives a lower threshold, so more pixels become lines.

    Raises:
        ValueError: If strength is outside 0-100
    """
    config = config or LineArtConfig()
    if not MIN_OUTLINE_STRENGTH <= strength <= MAX_OUTLINE_STRENGTH:
        raise ValueError(
            f"outline_strength must be {MIN_OUTLINE_STRENGTH}-{MAX_OUTLINE_STRENGTH}, got {strength}"
        )
    span = config.max_edge_threshold - config.min_edge_threshold
    return config.max_edge_threshold - strength * span / MAX_OUTLINE_STRENGTH


def resize_to_working_size(image: Any, working_size: int) -> Any:
    """Scale so the longer edge equals working_size, keeping aspect ratio."""
    width, height = image.size
    if max(width, height) == working_size:
        return image
    if width >= height:
        new_size = (working_size, max(1, round(height * working_size / width)))
    else:
        new_size = (max(1, round(width * working_size / height)), working_size)
    return image.resize(new_size, Image.Resampling.LANCZOS)


def ensure_black_on_white(dark: np.ndarray, config: LineArtConfig) -> np.ndarray:
    """
    Invert an edge map whose sampled pixels are mostly dark.

    Samples a regular grid of polarity_sample_grid x polarity_sample_grid
    points; the map is inverted when dark samples outnumber light ones by
    more than polarity_dark_ratio.
    """
    height, width = dark.shape
    grid = config.polarity_sample_grid
    dark_count = 0
    light_count = 0
    for i in range(grid * grid):
        x = round((i % grid) * width / grid)
        y = round((i // grid) * height / grid)
        if x < width and y < height:
            if dark[y, x]:
                dark_count += 1
            else:
                light_count += 1

    if dark_count > light_count * config.polarity_dark_ratio:
        logger.debug(f"Edge map mostly dark ({dark_count} vs {light_count}), inverting")
        return ~dark
    return dark


def _build_stages(
    outline_strength: float,
    config: LineArtConfig,
) -> List[Tuple[str, Callable[[Any], Any]]]:
    threshold = edge_threshold_for_strength(outline_strength, config)

    return [
        ("resize", lambda image: resize_to_working_size(image, config.working_size)),
        ("grayscale", edge_detection.grayscale),
        ("blur", lambda gray: edge_detection.gaussian_blur(gray, config.blur_radius)),
        ("edges", lambda gray: edge_detection.gradient_magnitude(gray) > threshold),
        ("polarity", lambda dark: ensure_black_on_white(dark, config)),
        ("denoise", lambda dark: edge_detection.remove_isolated_pixels(dark, config.min_dark_neighbors)),
        ("dilate", lambda dark: edge_detection.dilate(dark, config.dilation_passes)),
    ]


def preprocess_image(
    image: Any,
    outline_strength: float = DEFAULT_OUTLINE_STRENGTH,
    config: Optional[LineArtConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> RasterBuffer:
    """
    Run the full line art pipeline on a decoded image.

    Args:
        image: PIL Image or RasterBuffer
        outline_strength: 0-100, higher keeps more edges
        config: Pipeline tuning (defaults from constants)
        cancel_event: Checked between stages; when set the run is abandoned

    Returns:
        Opaque black-on-white RasterBuffer at the working resolution

    Raises:
        ValueError: If outline_strength is out of range
        PipelineCancelled: If cancel_event was set before the run finished
    """
    config = config or LineArtConfig()
    if isinstance(image, RasterBuffer):
        image = image.to_image()
    if not hasattr(image, "convert"):
        raise TypeError(f"Expected PIL Image or RasterBuffer, got {type(image)}")

    stages = _build_stages(outline_strength, config)

    value: Any = image.convert("RGBA")
    for name, stage in stages:
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelled(f"Line art preprocessing cancelled before '{name}'")
        value = stage(value)

    result = RasterBuffer(edge_detection.binary_to_rgba(value))
    logger.info(
        f"Preprocessed {image.size[0]}x{image.size[1]} photo to "
        f"{result.width}x{result.height} line art (strength {outline_strength})"
    )
    return result


def preprocess(
    photo_bytes: bytes,
    outline_strength: float = DEFAULT_OUTLINE_STRENGTH,
    config: Optional[LineArtConfig] = None,
    cancel_event: Optional[threading.Event] = None,
) -> bytes:
    """
    Convert encoded photo bytes into PNG line art bytes.

    Raises:
        DecodeFailure: If the photo cannot be decoded
        ValueError: If outline_strength is out of range
        PipelineCancelled: If cancel_event was set mid-run
    """
    image = decode_image(photo_bytes)
    return preprocess_image(image, outline_strength, config, cancel_event).to_png()
