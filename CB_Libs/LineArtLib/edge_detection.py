"""
Edge detection and binary morphology helpers.

Shared by the line art preprocessor and the subject masking step. All
functions work on 2D NumPy arrays: float32 for intensities, bool for masks
where True marks a "dark" (line or subject) pixel.
"""

from typing import Any

import numpy as np
from PIL import Image, ImageFilter
from scipy import ndimage

from CB_Libs.RasterLib.raster_buffer import luminance_of
from CB_Libs.constants import LINE_COLOR_RGBA, PAPER_COLOR_RGBA, SOBEL_X, SOBEL_Y

_SOBEL_X = np.array(SOBEL_X, dtype=np.float32)
_SOBEL_Y = np.array(SOBEL_Y, dtype=np.float32)
_EIGHT_NEIGHBORS = np.array(
    [[1, 1, 1],
     [1, 0, 1],
     [1, 1, 1]],
    dtype=np.uint8,
)
_SQUARE = np.ones((3, 3), dtype=bool)


def flatten_on_paper(image: Any) -> Any:
    """Composite an image over opaque white so transparency reads as paper."""
    rgba = image.convert("RGBA")
    paper = Image.new("RGBA", rgba.size, PAPER_COLOR_RGBA)
    return Image.alpha_composite(paper, rgba)


def grayscale(image: Any) -> np.ndarray:
    """
    Luminance of a PIL Image as a float32 array.

    Transparent areas are treated as white paper.
    """
    return luminance_of(np.asarray(flatten_on_paper(image)))


def gaussian_blur(gray: np.ndarray, radius: float) -> np.ndarray:
    """
    Blur a grayscale array with Pillow's Gaussian filter.

    Args:
        gray: float array of intensities (0-255)
        radius: Blur radius in pixels; 0 returns the input unchanged

    Returns:
        Blurred float32 array
    """
    if radius <= 0:
        return gray.astype(np.float32)
    image = Image.fromarray(np.clip(np.rint(gray), 0, 255).astype(np.uint8))
    blurred = image.filter(ImageFilter.GaussianBlur(radius=radius))
    return np.asarray(blurred, dtype=np.float32)


def gradient_magnitude(gray: np.ndarray) -> np.ndarray:
    """
    Sobel gradient magnitude.

    The 3x3 horizontal and vertical derivative kernels are correlated with
    the image (edges replicate the border pixel, so flat images give zero).
    """
    gray = gray.astype(np.float32)
    gx = ndimage.correlate(gray, _SOBEL_X, mode="nearest")
    gy = ndimage.correlate(gray, _SOBEL_Y, mode="nearest")
    return np.hypot(gx, gy)


def count_dark_neighbors(dark: np.ndarray) -> np.ndarray:
    """Number of dark pixels among each pixel's 8 neighbours."""
    return ndimage.correlate(dark.astype(np.uint8), _EIGHT_NEIGHBORS, mode="constant", cval=0)


def remove_isolated_pixels(dark: np.ndarray, min_neighbors: int) -> np.ndarray:
    """Drop dark pixels with fewer than min_neighbors dark 8-neighbours."""
    if min_neighbors <= 0:
        return dark.copy()
    return dark & (count_dark_neighbors(dark) >= min_neighbors)


def dilate(dark: np.ndarray, passes: int = 1) -> np.ndarray:
    """Grow dark regions by one 8-connected ring per pass."""
    if passes <= 0:
        return dark.copy()
    return ndimage.binary_dilation(dark, structure=_SQUARE, iterations=passes)


def close_mask(mask: np.ndarray) -> np.ndarray:
    """
    Morphological closing (3x3 dilate then erode).

    Pixels outside the image are ignored rather than treated as background,
    so regions touching the border are not eaten away by the erosion.
    """
    dilated = ndimage.binary_dilation(mask, structure=_SQUARE)
    return ndimage.binary_erosion(dilated, structure=_SQUARE, border_value=1)


def largest_component(mask: np.ndarray) -> np.ndarray:
    """
    Keep only the largest 8-connected True region of a mask.

    Returns an all-False mask when the input has no True pixels.
    """
    labels, count = ndimage.label(mask, structure=_SQUARE)
    if count == 0:
        return np.zeros_like(mask, dtype=bool)
    areas = np.bincount(labels.ravel())
    areas[0] = 0
    return labels == int(np.argmax(areas))


def binary_to_rgba(dark: np.ndarray) -> np.ndarray:
    """Render a dark mask as opaque black-on-white RGBA pixels."""
    height, width = dark.shape
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = PAPER_COLOR_RGBA
    pixels[dark] = LINE_COLOR_RGBA
    return pixels
