"""
Pytest configuration and shared fixtures for the coloring core tests.

The central fixture is the square page: a 32x32 white outline layer with a
one pixel wide black square outline running from (8, 8) to (23, 23), paired
with a blank color layer.
"""

import pytest
import numpy as np

from CB_Libs.FillLib.flood_fill import create_empty_color_layer
from CB_Libs.RasterLib.raster_buffer import RasterBuffer


SQUARE_SIZE = 32
SQUARE_START = 8
SQUARE_END = 23


@pytest.fixture
def square_outline():
    """
    Provide the 32x32 square outline layer.

    Returns:
        RasterBuffer, opaque white with a black square ring
    """
    pixels = np.full((SQUARE_SIZE, SQUARE_SIZE, 4), 255, dtype=np.uint8)
    black = (0, 0, 0, 255)
    pixels[SQUARE_START, SQUARE_START:SQUARE_END + 1] = black
    pixels[SQUARE_END, SQUARE_START:SQUARE_END + 1] = black
    pixels[SQUARE_START:SQUARE_END + 1, SQUARE_START] = black
    pixels[SQUARE_START:SQUARE_END + 1, SQUARE_END] = black
    return RasterBuffer(pixels)


@pytest.fixture
def square_outline_png(square_outline):
    return square_outline.to_png()


@pytest.fixture
def blank_color_layer():
    """Provide a transparent 32x32 color layer."""
    return create_empty_color_layer(SQUARE_SIZE, SQUARE_SIZE)


@pytest.fixture
def interior_mask():
    """Boolean (32, 32) mask of the pixels strictly inside the square."""
    mask = np.zeros((SQUARE_SIZE, SQUARE_SIZE), dtype=bool)
    mask[SQUARE_START + 1:SQUARE_END, SQUARE_START + 1:SQUARE_END] = True
    return mask

