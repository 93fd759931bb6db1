"""
LineArtLib - Photo to line art conversion and shared edge operations.
"""

from CB_Libs.LineArtLib.edge_detection import (
    binary_to_rgba,
    close_mask,
    dilate,
    gaussian_blur,
    gradient_magnitude,
    grayscale,
    largest_component,
    remove_isolated_pixels,
)
from CB_Libs.LineArtLib.line_art_preprocessor import (
    LineArtConfig,
    edge_threshold_for_strength,
    ensure_black_on_white,
    preprocess,
    preprocess_image,
    resize_to_working_size,
)

__all__ = [
    "binary_to_rgba",
    "close_mask",
    "dilate",
    "gaussian_blur",
    "gradient_magnitude",
    "grayscale",
    "largest_component",
    "remove_isolated_pixels",
    "LineArtConfig",
    "edge_threshold_for_strength",
    "ensure_black_on_white",
    "preprocess",
    "preprocess_image",
    "resize_to_working_size",
]
