"""
Tests for the photo to line art preprocessor.

Tests cover:
- Pure white input stays white
- Closed outlines stay closed and fillable
- Strength to threshold mapping
- Resizing, polarity and denoising stages
- Cancellation and error handling
"""

import threading
import unittest

import numpy as np
import pytest
from PIL import Image

from CB_Libs.FillLib.flood_fill import create_empty_color_layer, flood_fill
from CB_Libs.LineArtLib import edge_detection
from CB_Libs.LineArtLib.line_art_preprocessor import (
    LineArtConfig,
    edge_threshold_for_strength,
    ensure_black_on_white,
    preprocess,
    preprocess_image,
    resize_to_working_size,
)
from CB_Libs.RasterLib.raster_buffer import RasterBuffer, encode_png
from CB_Libs.errors import BoundaryHitError, DecodeFailure, PipelineCancelled

RED = (255, 0, 0, 255)
SMALL = LineArtConfig(working_size=32)


class TestPreprocessProperties:
    """Whole-pipeline properties."""

    def test_pure_white_stays_white(self):
        photo = encode_png(Image.new("RGB", (40, 30), (255, 255, 255)))

        result = RasterBuffer.from_png(preprocess(photo, 50, SMALL))

        assert result.size == (32, 24)
        assert np.all(result.pixels == 255)

    @pytest.mark.parametrize("strength", [0, 50, 100])
    def test_output_is_binary_and_opaque(self, square_outline, strength):
        result = preprocess_image(square_outline, strength, SMALL)

        rgb = result.pixels[..., :3]
        assert np.all(result.pixels[..., 3] == 255)
        assert set(np.unique(rgb).tolist()) <= {0, 255}
        assert np.all(rgb == rgb[..., :1])

    def test_closed_square_stays_closed(self, square_outline):
        outline = preprocess_image(square_outline, 50, SMALL)

        inside = create_empty_color_layer(32, 32)
        diff = flood_fill(inside, outline, 16, 16, RED)
        assert len(diff) > 0

        outside = create_empty_color_layer(32, 32)
        flood_fill(outside, outline, 1, 1, RED)
        assert outside.get_pixel(16, 16) != RED
        assert inside.get_pixel(1, 1) != RED

    def test_square_line_becomes_wall(self, square_outline):
        outline = preprocess_image(square_outline, 50, SMALL)

        with pytest.raises(BoundaryHitError):
            flood_fill(create_empty_color_layer(32, 32), outline, 8, 16, RED)

    def test_higher_strength_keeps_more_edges(self):
        # A soft edge: its gradient sits between the two strengths' thresholds
        pixels = np.full((32, 32), 100, dtype=np.uint8)
        pixels[:, 16:] = 140
        photo = Image.fromarray(pixels)

        weak = preprocess_image(photo, 0, SMALL)
        strong = preprocess_image(photo, 100, SMALL)

        weak_dark = np.count_nonzero(weak.pixels[..., 0] == 0)
        strong_dark = np.count_nonzero(strong.pixels[..., 0] == 0)
        assert weak_dark == 0
        assert strong_dark > weak_dark


class TestStrengthMapping(unittest.TestCase):
    """Outline strength to gradient threshold."""

    def test_endpoints(self):
        self.assertEqual(edge_threshold_for_strength(0), 200.0)
        self.assertEqual(edge_threshold_for_strength(100), 50.0)
        self.assertEqual(edge_threshold_for_strength(50), 125.0)

    def test_out_of_range(self):
        for strength in (-1, 101):
            with self.assertRaises(ValueError):
                edge_threshold_for_strength(strength)

    def test_preprocess_rejects_bad_strength(self):
        photo = encode_png(Image.new("RGB", (8, 8), (255, 255, 255)))
        with self.assertRaises(ValueError):
            preprocess(photo, 150, SMALL)


class TestStages(unittest.TestCase):
    """Individual stages."""

    def test_resize_keeps_aspect(self):
        image = Image.new("RGB", (100, 50))
        self.assertEqual(resize_to_working_size(image, 64).size, (64, 32))

        tall = Image.new("RGB", (30, 120))
        self.assertEqual(resize_to_working_size(tall, 60).size, (15, 60))

    def test_resize_skipped_at_working_size(self):
        image = Image.new("RGB", (64, 20))
        self.assertIs(resize_to_working_size(image, 64), image)

    def test_flat_image_has_no_gradient(self):
        gray = np.full((10, 10), 128.0, dtype=np.float32)
        self.assertEqual(float(edge_detection.gradient_magnitude(gray).max()), 0.0)

    def test_step_edge_gradient(self):
        gray = np.zeros((5, 6), dtype=np.float32)
        gray[:, 3:] = 100.0
        magnitude = edge_detection.gradient_magnitude(gray)

        self.assertAlmostEqual(float(magnitude[2, 2]), 400.0)
        self.assertAlmostEqual(float(magnitude[2, 0]), 0.0)

    def test_polarity_inverts_mostly_dark(self):
        dark = np.ones((20, 20), dtype=bool)
        dark[5, 5] = False

        result = ensure_black_on_white(dark, LineArtConfig(working_size=20))

        self.assertFalse(result[0, 0])
        self.assertTrue(result[5, 5])

    def test_polarity_keeps_mostly_light(self):
        dark = np.zeros((20, 20), dtype=bool)
        dark[0, :] = True

        result = ensure_black_on_white(dark, LineArtConfig(working_size=20))

        self.assertTrue(np.array_equal(result, dark))

    def test_isolated_pixels_removed(self):
        dark = np.zeros((7, 7), dtype=bool)
        dark[1, 1] = True
        dark[4, 3:6] = True

        cleaned = edge_detection.remove_isolated_pixels(dark, 2)

        self.assertFalse(cleaned[1, 1])
        self.assertTrue(cleaned[4, 4])
        # Line ends have a single neighbour
        self.assertFalse(cleaned[4, 3])

    def test_dilate_adds_one_ring(self):
        dark = np.zeros((5, 5), dtype=bool)
        dark[2, 2] = True

        grown = edge_detection.dilate(dark, 1)

        self.assertEqual(int(grown.sum()), 9)
        self.assertTrue(grown[1, 1])
        self.assertFalse(grown[0, 0])

    def test_transparent_pixels_read_as_paper(self):
        image = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        self.assertTrue(np.allclose(edge_detection.grayscale(image), 255.0, atol=0.01))


class TestCancellationAndErrors(unittest.TestCase):
    """Cancellation and decode failures."""

    def test_cancelled_before_start(self):
        event = threading.Event()
        event.set()

        with self.assertRaises(PipelineCancelled):
            preprocess_image(Image.new("RGB", (8, 8)), 50, SMALL, cancel_event=event)

    def test_undecodable_photo(self):
        with self.assertRaises(DecodeFailure):
            preprocess(b"not an image", 50, SMALL)

    def test_config_validation(self):
        with self.assertRaises(ValueError):
            LineArtConfig(working_size=2)
        with self.assertRaises(ValueError):
            LineArtConfig(min_edge_threshold=150, max_edge_threshold=100)

    def test_config_dict_round_trip(self):
        config = LineArtConfig(working_size=256, blur_radius=2.0)
        self.assertEqual(LineArtConfig.from_dict(config.to_dict()), config)
