"""
Tests for tone operations.

Covers grayscale conversion, brightness/contrast around an anchor,
levels (including the adaptive black point for line art) and invert.
"""

import unittest

import numpy as np

from photoburn.core.params import ImageType
from photoburn.core.pixel_buffer import PixelBuffer
from photoburn.image.histogram import calculate_histogram
from photoburn.image.tone import (
    adaptive_black_point, apply_brightness_contrast, apply_levels, invert, to_grayscale
)


def gray_image(values) -> PixelBuffer:
    return PixelBuffer.from_array(np.asarray(values, dtype=np.uint8))


def ramp() -> PixelBuffer:
    return gray_image(np.arange(256, dtype=np.uint8).reshape(1, 256))


class TestGrayscale(unittest.TestCase):
    """Test luminance conversion."""

    def test_primary_colors(self):
        """Test luma weights on pure red, green and blue."""
        rgba = np.array([[[255, 0, 0, 255], [0, 255, 0, 255], [0, 0, 255, 128]]], dtype=np.uint8)
        result = to_grayscale(PixelBuffer.from_array(rgba))
        self.assertEqual(list(result.gray[0]), [76, 150, 29])

    def test_channels_equal_and_alpha_kept(self):
        """Test R=G=B after conversion and alpha passes through."""
        rgba = np.array([[[200, 100, 50, 31]]], dtype=np.uint8)
        result = to_grayscale(PixelBuffer.from_array(rgba))
        r, g, b, a = result.pixels[0, 0]
        self.assertEqual(r, g)
        self.assertEqual(g, b)
        self.assertEqual(a, 31)

    def test_input_not_modified(self):
        """Test the source buffer is left untouched."""
        rgba = np.array([[[200, 100, 50, 255]]], dtype=np.uint8)
        image = PixelBuffer.from_array(rgba)
        to_grayscale(image)
        self.assertEqual(list(image.pixels[0, 0]), [200, 100, 50, 255])


class TestBrightnessContrast(unittest.TestCase):
    """Test brightness and anchor-pivot contrast."""

    def test_identity(self):
        """Test brightness 0, contrast 1 and anchor 128 change nothing."""
        rng = np.random.default_rng(7)
        image = gray_image(rng.integers(0, 256, size=(16, 16), dtype=np.uint8))
        result = apply_brightness_contrast(image, 0, 1.0, 128)
        self.assertEqual(result, image)

    def test_brightness_scaled(self):
        """Test brightness is scaled by 2.55."""
        result = apply_brightness_contrast(gray_image([[100]]), 40, 1.0)
        self.assertEqual(result.gray[0, 0], 202)

    def test_contrast_pivots_on_anchor(self):
        """Test contrast stretches distances from the anchor."""
        result = apply_brightness_contrast(gray_image([[50, 100, 150]]), 0, 2.0, anchor_gray=100)
        self.assertEqual(list(result.gray[0]), [0, 100, 200])

    def test_inputs_clamped(self):
        """Test out-of-range brightness is clamped to 100."""
        result = apply_brightness_contrast(gray_image([[0]]), 500, 1.0)
        self.assertEqual(result.gray[0, 0], 255)

    def test_output_range(self):
        """Test extreme settings stay within 0..255."""
        result = apply_brightness_contrast(ramp(), -100, 3.0, anchor_gray=0)
        self.assertGreaterEqual(int(result.gray.min()), 0)
        self.assertLessEqual(int(result.gray.max()), 255)


class TestLevels(unittest.TestCase):
    """Test the levels remap."""

    def test_linear_mapping(self):
        """Test clipping below/above the input range and interpolation inside."""
        result = apply_levels(gray_image([[20, 50, 125, 200, 230]]), 50, 200)
        self.assertEqual(list(result.gray[0]), [0, 0, 128, 255, 255])

    def test_monotonic(self):
        """Test levels never reverse the order of gray values."""
        result = apply_levels(ramp(), 30, 220)
        self.assertTrue(np.all(np.diff(result.gray[0].astype(int)) >= 0))

    def test_invalid_range_is_noop(self):
        """Test an empty input range returns the input and logs a warning."""
        image = ramp()
        with self.assertLogs('photoburn.image.tone', level='WARNING'):
            result = apply_levels(image, 200, 100)
        self.assertIs(result, image)

    def test_adaptive_black_point_for_cartoons(self):
        """Test line art gets its black point raised to its darkest tones."""
        image = gray_image([[60, 200] * 8])
        photo = apply_levels(image, 10, 235)
        cartoon = apply_levels(image, 10, 235, image_type=ImageType.CARTOON)
        self.assertEqual(list(photo.gray[0, :2]), [57, 215])
        self.assertEqual(list(cartoon.gray[0, :2]), [0, 204])

    def test_adaptive_black_point_capped(self):
        """Test the raised black point stays below the white point."""
        image = gray_image([[240] * 4])
        result = apply_levels(image, 10, 235, image_type=ImageType.CARTOON)
        self.assertTrue(np.all(result.gray == 255))


class TestAdaptiveBlackPoint(unittest.TestCase):
    """Test the darkest-pixel average."""

    def test_dark_images_have_no_black_point(self):
        """Test near-black shadows leave the black point alone."""
        histogram = np.zeros(256, dtype=np.int64)
        histogram[5] = 100
        histogram[200] = 100
        self.assertIsNone(adaptive_black_point(histogram))

    def test_light_shadows(self):
        """Test the average of the darkest 0.5% is returned."""
        histogram = calculate_histogram(gray_image([[60, 200] * 8]))
        self.assertEqual(adaptive_black_point(histogram), 60)

    def test_empty_histogram(self):
        """Test an empty histogram yields no black point."""
        self.assertIsNone(adaptive_black_point(np.zeros(256, dtype=np.int64)))


class TestInvert(unittest.TestCase):
    """Test inversion."""

    def test_invert_values(self):
        """Test RGB is flipped and alpha kept."""
        rgba = np.array([[[0, 100, 255, 40]]], dtype=np.uint8)
        result = invert(PixelBuffer.from_array(rgba))
        self.assertEqual(list(result.pixels[0, 0]), [255, 155, 0, 40])

    def test_self_inverse(self):
        """Test inverting twice restores the image."""
        rng = np.random.default_rng(3)
        image = PixelBuffer.from_array(rng.integers(0, 256, size=(8, 8, 4), dtype=np.uint8))
        self.assertEqual(invert(invert(image)), image)


if __name__ == '__main__':
    unittest.main()
