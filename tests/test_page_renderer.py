"""
Tests for page compositing and canvas coordinate mapping.
"""

import numpy as np
import pytest

from CB_Libs.FillLib.flood_fill import create_empty_color_layer, flood_fill
from CB_Libs.FillLib.strokes import Stroke
from CB_Libs.RasterLib.raster_buffer import RasterBuffer
from CB_Libs.RenderLib.page_renderer import composite, composite_png, render_strokes_into
from CB_Libs.RenderLib.viewport import (
    Rect,
    ViewTransform,
    canvas_to_image,
    fit_destination_rect,
    image_to_canvas,
)

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


class TestComposite:
    """Layer order and blending."""

    def test_blank_page_is_paper_and_lines(self, square_outline, blank_color_layer):
        page = composite(blank_color_layer, square_outline)

        assert page.get_pixel(0, 0) == (255, 255, 255, 255)
        assert page.get_pixel(8, 8) == (0, 0, 0, 255)

    def test_fill_shows_under_lines(self, square_outline, blank_color_layer):
        flood_fill(blank_color_layer, square_outline, 16, 16, RED)

        page = composite(blank_color_layer, square_outline)

        assert page.get_pixel(16, 16) == RED
        assert page.get_pixel(8, 16) == (0, 0, 0, 255)
        assert page.get_pixel(2, 2) == (255, 255, 255, 255)

    def test_strokes_drawn_below_outline(self, square_outline, blank_color_layer):
        stroke = Stroke(points=((0, 16), (31, 16)), color=BLUE, width=3)

        page = composite(blank_color_layer, square_outline, [stroke])

        assert page.get_pixel(4, 16) == BLUE
        assert page.get_pixel(8, 16) == (0, 0, 0, 255)
        assert page.get_pixel(4, 4) == (255, 255, 255, 255)

    def test_single_point_stroke_is_a_dot(self, blank_color_layer, square_outline):
        stroke = Stroke(points=((3, 3),), color=BLUE, width=4)

        page = composite(blank_color_layer, square_outline, [stroke])

        assert page.get_pixel(3, 3) == BLUE

    def test_outline_is_opaque_output(self, square_outline, blank_color_layer):
        page = composite(blank_color_layer, square_outline)
        assert np.all(page.pixels[..., 3] == 255)

    def test_png_matches_buffer(self, square_outline, blank_color_layer):
        page = composite(blank_color_layer, square_outline)
        assert RasterBuffer.from_png(composite_png(blank_color_layer, square_outline)).same_pixels(page)

    def test_size_mismatch(self, square_outline):
        with pytest.raises(ValueError):
            composite(create_empty_color_layer(4, 4), square_outline)

    def test_render_strokes_into(self, blank_color_layer, square_outline):
        stroke = Stroke(points=((2, 2), (2, 6)), color=BLUE, width=3)

        render_strokes_into(blank_color_layer, [stroke])

        assert blank_color_layer.get_pixel(2, 4) == BLUE
        assert blank_color_layer.get_pixel(20, 20) == (255, 255, 255, 0)


class TestViewport:
    """Aspect fit and point mapping."""

    def test_fit_wide_image(self):
        assert fit_destination_rect((400, 400), (200, 100)) == Rect(0.0, 100.0, 400.0, 200.0)

    def test_fit_tall_image(self):
        assert fit_destination_rect((400, 300), (64, 64)) == Rect(50.0, 0.0, 300.0, 300.0)

    def test_invalid_sizes(self):
        with pytest.raises(ValueError):
            fit_destination_rect((0, 10), (10, 10))

    def test_canvas_center_maps_to_image_center(self):
        assert canvas_to_image((200.0, 150.0), (400, 300), (64, 64)) == (32, 32)

    def test_letterbox_returns_none(self):
        assert canvas_to_image((10.0, 150.0), (400, 300), (64, 64)) is None
        assert canvas_to_image((360.0, 150.0), (400, 300), (64, 64)) is None

    def test_far_edge_clamped(self):
        assert canvas_to_image((349.9, 299.9), (400, 300), (64, 64)) == (63, 63)

    def test_off_center_tap_truncates(self):
        # 10 canvas px per image px; 75 is the right half of pixel 7
        assert canvas_to_image((75.0, 160.0), (320, 320), (32, 32)) == (7, 16)
        assert canvas_to_image((79.9, 169.9), (320, 320), (32, 32)) == (7, 16)
        assert canvas_to_image((80.0, 170.0), (320, 320), (32, 32)) == (8, 17)

    def test_round_trip_through_canvas(self):
        point = image_to_canvas((10.5, 20.5), (400, 300), (64, 64))
        assert canvas_to_image(point, (400, 300), (64, 64)) == (10, 20)

    def test_view_transform(self):
        view = ViewTransform(scale=2.0, offset_x=-200.0, offset_y=-150.0)

        point = image_to_canvas((32, 32), (400, 300), (64, 64), view)

        assert point == (200.0, 150.0)
        assert canvas_to_image(point, (400, 300), (64, 64), view) == (32, 32)

    def test_view_transform_rejects_zero_scale(self):
        with pytest.raises(ValueError):
            ViewTransform(scale=0)
