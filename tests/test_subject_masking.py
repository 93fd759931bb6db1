"""
Tests for subject masking and two-pass compositing.

Tests cover:
- Center circle composite scenario
- Bounding box derivation and fallback
- Largest connected component selection
- Mask generation on synthetic photos
- Fallback to the background on corrupt input
"""

import unittest

import numpy as np
from PIL import Image

from CB_Libs.LineArtLib.edge_detection import close_mask, largest_component
from CB_Libs.MaskingLib.subject_masking import (
    MaskingConfig,
    SaliencyMask,
    composite_line_art,
    composite_line_art_png,
    create_center_circle_mask,
    crop_to_subject,
    generate_subject_mask,
    mask_and_composite,
    prepare_subject_pass,
    subject_bounding_box,
)
from CB_Libs.RasterLib.raster_buffer import RasterBuffer, encode_png
from CB_Libs.RasterLib.raster_models import BoundingBox
from CB_Libs.errors import DecodeFailure

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def square_photo(size: int = 64, start: int = 20, end: int = 44) -> Image.Image:
    pixels = np.full((size, size, 3), 255, dtype=np.uint8)
    pixels[start:end, start:end] = 0
    return Image.fromarray(pixels)


class TestCircleComposite(unittest.TestCase):
    """White background, black subject, centered circle mask."""

    def test_black_exactly_inside_circle(self):
        background = RasterBuffer.blank(40, 30, WHITE)
        subject = RasterBuffer.blank(10, 10, BLACK)
        mask = create_center_circle_mask(40, 30)

        result = composite_line_art(background, subject, mask, BoundingBox(0, 0, 40, 30))

        black = np.all(result.pixels == BLACK, axis=2)
        white = np.all(result.pixels == WHITE, axis=2)
        self.assertTrue(np.array_equal(black, mask.mask))
        self.assertTrue(np.all(black | white))

    def test_composite_with_derived_bbox(self):
        background = RasterBuffer.blank(50, 50, WHITE)
        subject = RasterBuffer.blank(7, 3, BLACK)
        mask = create_center_circle_mask(50, 50)
        bbox = subject_bounding_box(mask, margin=0)

        result = composite_line_art(background, subject, mask, bbox)

        black = np.all(result.pixels == BLACK, axis=2)
        self.assertTrue(np.array_equal(black, mask.mask))

    def test_background_not_modified(self):
        background = RasterBuffer.blank(20, 20, WHITE)
        composite_line_art(background, RasterBuffer.blank(4, 4, BLACK),
                           create_center_circle_mask(20, 20), BoundingBox(0, 0, 20, 20))
        self.assertTrue(np.all(background.pixels == 255))

    def test_subject_pixels_are_shifted_into_box(self):
        background = RasterBuffer.blank(10, 10, WHITE)
        subject = RasterBuffer.blank(2, 2, WHITE)
        subject.set_pixel(0, 0, (255, 0, 0, 255))
        mask = SaliencyMask(np.ones((10, 10), dtype=bool))

        result = composite_line_art(background, subject, mask, BoundingBox(4, 6, 2, 2))

        self.assertEqual(result.get_pixel(4, 6), (255, 0, 0, 255))
        self.assertEqual(result.get_pixel(5, 7), WHITE)
        self.assertEqual(result.get_pixel(0, 0), WHITE)

    def test_mask_size_mismatch(self):
        with self.assertRaises(ValueError):
            composite_line_art(RasterBuffer.blank(10, 10), RasterBuffer.blank(2, 2),
                               create_center_circle_mask(8, 8), BoundingBox(0, 0, 2, 2))


class TestBoundingBox(unittest.TestCase):
    """Bounding box padding, clamping and fallback."""

    def test_padded_box(self):
        mask = np.zeros((60, 100), dtype=bool)
        mask[30, 50] = True

        bbox = subject_bounding_box(SaliencyMask(mask), margin=20)

        self.assertEqual(bbox, BoundingBox(30, 10, 41, 41))

    def test_box_clamped_to_image(self):
        mask = np.zeros((60, 100), dtype=bool)
        mask[5, 5] = True
        mask[58, 97] = True

        bbox = subject_bounding_box(SaliencyMask(mask), margin=20)

        self.assertEqual(bbox, BoundingBox(0, 0, 100, 60))

    def test_empty_mask_falls_back_to_center_half(self):
        bbox = subject_bounding_box(SaliencyMask(np.zeros((60, 100), dtype=bool)))

        self.assertEqual(bbox, BoundingBox(25, 15, 50, 30))

    def test_crop_to_subject(self):
        photo = RasterBuffer.blank(20, 20, WHITE)
        photo.set_pixel(5, 6, BLACK)

        cropped = crop_to_subject(photo, BoundingBox(5, 6, 4, 3))

        self.assertEqual(cropped.size, (4, 3))
        self.assertEqual(cropped.get_pixel(0, 0), BLACK)

    def test_crop_outside_image(self):
        with self.assertRaises(ValueError):
            crop_to_subject(RasterBuffer.blank(10, 10), BoundingBox(20, 20, 5, 5))


class TestComponents(unittest.TestCase):
    """Morphology and connected components."""

    def test_largest_component_kept(self):
        mask = np.zeros((20, 20), dtype=bool)
        mask[2:4, 2:4] = True
        mask[10:16, 10:16] = True

        result = largest_component(mask)

        self.assertEqual(int(result.sum()), 36)
        self.assertFalse(result[2, 2])

    def test_diagonal_pixels_are_connected(self):
        mask = np.zeros((5, 5), dtype=bool)
        mask[0, 0] = mask[1, 1] = mask[2, 2] = True
        mask[4, 4] = True

        self.assertEqual(int(largest_component(mask).sum()), 3)

    def test_largest_component_of_empty_mask(self):
        self.assertFalse(largest_component(np.zeros((4, 4), dtype=bool)).any())

    def test_closing_fills_single_pixel_hole(self):
        mask = np.ones((7, 7), dtype=bool)
        mask[3, 3] = False

        self.assertTrue(close_mask(mask).all())


class TestGenerateSubjectMask(unittest.TestCase):
    """Mask generation on synthetic photos."""

    def setUp(self):
        self.config = MaskingConfig(working_size=64)

    def test_mask_matches_photo_size(self):
        mask = generate_subject_mask(Image.new("RGB", (80, 50), (255, 255, 255)), self.config)

        self.assertEqual(mask.size, (80, 50))
        self.assertTrue(mask.is_empty())

    def test_central_square_detected(self):
        mask = generate_subject_mask(square_photo(), self.config)

        self.assertTrue(mask.mask[16:48, 16:48].any())
        self.assertFalse(mask.mask[0:8, 0:8].any())
        self.assertTrue(subject_bounding_box(mask).contains(32, 32))

    def test_tiny_photo_uses_circle(self):
        mask = generate_subject_mask(Image.new("RGB", (2, 2)), self.config)

        self.assertEqual(mask.size, (2, 2))

    def test_accepts_raster_buffer(self):
        photo = RasterBuffer.from_image(square_photo())
        self.assertEqual(generate_subject_mask(photo, self.config).size, (64, 64))

    def test_mask_png_round_trip(self):
        mask = create_center_circle_mask(16, 12)
        restored = SaliencyMask.from_png(mask.to_png())

        self.assertTrue(np.array_equal(restored.mask, mask.mask))

    def test_config_validation(self):
        with self.assertRaises(ValueError):
            MaskingConfig(center_bias=1.5)
        with self.assertRaises(ValueError):
            MaskingConfig(bbox_margin=-1)


class TestFallbacks(unittest.TestCase):
    """Corrupt inputs degrade to the background."""

    def setUp(self):
        self.background_png = RasterBuffer.blank(32, 32, WHITE).to_png()
        self.subject_png = RasterBuffer.blank(8, 8, BLACK).to_png()
        self.photo_png = encode_png(square_photo(32, 10, 22))

    def test_corrupt_mask_returns_background(self):
        result = composite_line_art_png(self.background_png, self.subject_png,
                                        b"garbage", BoundingBox(0, 0, 8, 8))
        self.assertEqual(result, self.background_png)

    def test_corrupt_subject_returns_background(self):
        result = mask_and_composite(self.photo_png, self.background_png, b"\x00\x01")
        self.assertEqual(result, self.background_png)

    def test_corrupt_photo_returns_background(self):
        result = mask_and_composite(b"", self.background_png, self.subject_png)
        self.assertEqual(result, self.background_png)

    def test_mask_and_composite_produces_png(self):
        config = MaskingConfig(working_size=32)
        result = mask_and_composite(self.photo_png, self.background_png, self.subject_png, config)

        merged = RasterBuffer.from_png(result)
        self.assertEqual(merged.size, (32, 32))

    def test_composite_png_success(self):
        mask_png = create_center_circle_mask(32, 32).to_png()
        result = composite_line_art_png(self.background_png, self.subject_png,
                                        mask_png, BoundingBox(0, 0, 32, 32))

        merged = RasterBuffer.from_png(result)
        self.assertEqual(merged.get_pixel(16, 16), BLACK)
        self.assertEqual(merged.get_pixel(0, 0), WHITE)


class TestPrepareSubjectPass(unittest.TestCase):
    """Subject cutout for the second generation pass."""

    def test_cutout_matches_bbox(self):
        cutout = prepare_subject_pass(encode_png(square_photo()), MaskingConfig(working_size=64))
        subject = RasterBuffer.from_png(cutout.subject_png)

        self.assertEqual(subject.size, (cutout.bbox.width, cutout.bbox.height))
        self.assertEqual(cutout.mask.size, (64, 64))

    def test_undecodable_photo(self):
        with self.assertRaises(DecodeFailure):
            prepare_subject_pass(b"nope")


if __name__ == "__main__":
    unittest.main()
