"""
RGBA raster buffer shared by every component of the coloring core.

A RasterBuffer wraps a (height, width, 4) uint8 NumPy array. Pillow is used
at the edges to decode incoming image bytes and to encode results as PNG;
all pixel work in between happens on the array.

Example:
    >>> outline = RasterBuffer.from_png(outline_bytes)
    >>> color = RasterBuffer.blank(outline.width, outline.height)
    >>> color.set_pixel(4, 4, (255, 0, 0, 255))
    >>> png_bytes = color.to_png()
"""

import io
from dataclasses import dataclass
from typing import Any, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from CB_Libs.RasterLib.raster_models import RgbaColor, normalize_rgba
from CB_Libs.constants import EMPTY_COLOR_LAYER_RGBA, LUMINANCE_WEIGHTS, PNG_FORMAT
from CB_Libs.errors import DecodeFailure


@dataclass
class RasterBuffer:
    """RGBA pixel grid.

    Attributes:
        pixels: uint8 array of shape (height, width, 4)
    """
    pixels: np.ndarray

    def __post_init__(self):
        if not isinstance(self.pixels, np.ndarray):
            raise TypeError(f"Expected numpy array, got {type(self.pixels)}")
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) array, got shape {self.pixels.shape}")
        self.pixels = np.ascontiguousarray(self.pixels, dtype=np.uint8)

    @classmethod
    def blank(
        cls,
        width: int,
        height: int,
        color: RgbaColor = EMPTY_COLOR_LAYER_RGBA,
    ) -> "RasterBuffer":
        """Create a buffer filled with a single color."""
        if width < 1 or height < 1:
            raise ValueError(f"Raster size must be positive, got {width}x{height}")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = normalize_rgba(color)
        return cls(pixels)

    @classmethod
    def from_image(cls, image: Any) -> "RasterBuffer":
        """Create a buffer from a PIL Image (converted to RGBA)."""
        if not hasattr(image, "convert"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_png(cls, data: bytes) -> "RasterBuffer":
        """Decode image bytes (any format Pillow reads) into a buffer."""
        return cls.from_image(decode_image(data))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), matching PIL's ordering."""
        return self.width, self.height

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_pixel(self, x: int, y: int) -> RgbaColor:
        r, g, b, a = (int(v) for v in self.pixels[y, x])
        return r, g, b, a

    def set_pixel(self, x: int, y: int, color: RgbaColor) -> None:
        self.pixels[y, x] = normalize_rgba(color)

    def copy(self) -> "RasterBuffer":
        return RasterBuffer(self.pixels.copy())

    def packed(self) -> np.ndarray:
        """
        View the buffer as one uint32 per pixel.

        Two pixels are equal on all four channels exactly when their packed
        values are equal. The returned array shares memory with the buffer.
        """
        return self.pixels.view(np.uint32)[:, :, 0]

    def luminance(self) -> np.ndarray:
        """Per-pixel luminance as a float32 (height, width) array."""
        return luminance_of(self.pixels)

    def to_image(self) -> Any:
        """Convert to a PIL Image in RGBA mode."""
        return Image.fromarray(self.pixels)

    def to_png(self) -> bytes:
        """Encode as lossless PNG bytes."""
        return encode_png(self.to_image())

    def same_pixels(self, other: "RasterBuffer") -> bool:
        return self.pixels.shape == other.pixels.shape and np.array_equal(self.pixels, other.pixels)


def pack_color(color: RgbaColor) -> int:
    """Pack an RGBA tuple the same way RasterBuffer.packed() packs pixels."""
    return int(np.array(normalize_rgba(color), dtype=np.uint8).view(np.uint32)[0])


def luminance_of(pixels: np.ndarray) -> np.ndarray:
    """
    Weighted luminance of the RGB channels of an (H, W, >=3) array.

    Alpha is ignored, so a transparent black pixel still reads as dark.
    """
    wr, wg, wb = LUMINANCE_WEIGHTS
    rgb = pixels[..., :3].astype(np.float32)
    return rgb[..., 0] * wr + rgb[..., 1] * wg + rgb[..., 2] * wb


def decode_image(data: bytes) -> Any:
    """
    Decode image bytes with Pillow.

    Args:
        data: Encoded image bytes (PNG, JPEG, ...)

    Returns:
        Fully loaded PIL Image

    Raises:
        DecodeFailure: If the bytes are empty or not a readable image
    """
    if not data:
        raise DecodeFailure("Could not decode image: no data")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise DecodeFailure(f"Could not decode image: {e}") from e
    return image


def encode_png(image: Any) -> bytes:
    """Encode a PIL Image as PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format=PNG_FORMAT)
    return buffer.getvalue()
