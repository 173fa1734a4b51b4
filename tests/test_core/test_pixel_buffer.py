"""
Tests for the PixelBuffer raster type.
"""

import unittest

import numpy as np

from photoburn.core.errors import InvalidImageData
from photoburn.core.pixel_buffer import PixelBuffer, round_half_up


class TestRoundHalfUp(unittest.TestCase):
    """Test the rounding helper shared by all tone operations."""

    def test_halves_round_up(self):
        """Test .5 values always round toward +infinity."""
        self.assertEqual(round_half_up(0.5), 1)
        self.assertEqual(round_half_up(1.5), 2)
        self.assertEqual(round_half_up(2.5), 3)
        self.assertEqual(round_half_up(-0.5), 0)
        self.assertEqual(round_half_up(-2.5), -2)

    def test_array_input(self):
        """Test rounding works element-wise on arrays."""
        result = round_half_up(np.array([0.4, 127.5, 254.6]))
        np.testing.assert_array_equal(result, [0, 128, 255])


class TestPixelBufferCreation(unittest.TestCase):
    """Test building PixelBuffers."""

    def test_from_bytes(self):
        """Test interleaved RGBA bytes are laid out row by row."""
        data = bytes([1, 2, 3, 4, 5, 6, 7, 8])
        image = PixelBuffer.from_bytes(2, 1, data)
        self.assertEqual(image.width, 2)
        self.assertEqual(image.height, 1)
        self.assertEqual(list(image.pixels[0, 1]), [5, 6, 7, 8])
        self.assertEqual(image.to_bytes(), data)

    def test_from_bytes_not_multiple_of_four(self):
        """Test a truncated pixel raises InvalidImageData."""
        with self.assertRaises(InvalidImageData):
            PixelBuffer.from_bytes(1, 1, bytes([1, 2, 3]))

    def test_from_bytes_wrong_length(self):
        """Test a length that disagrees with the dimensions is rejected."""
        with self.assertRaises(InvalidImageData):
            PixelBuffer.from_bytes(2, 2, bytes(8))

    def test_invalid_data_is_value_error(self):
        """Test callers can catch InvalidImageData as ValueError."""
        with self.assertRaises(ValueError):
            PixelBuffer.from_bytes(3, 3, bytes(4))

    def test_negative_dimensions(self):
        """Test negative dimensions are rejected."""
        with self.assertRaises(InvalidImageData):
            PixelBuffer(-1, 1, np.zeros((1, 1, 4), dtype=np.uint8))

    def test_wrong_dtype(self):
        """Test non-uint8 arrays are rejected."""
        with self.assertRaises(InvalidImageData):
            PixelBuffer.from_array(np.zeros((2, 2, 4), dtype=np.float32))

    def test_from_array_grayscale(self):
        """Test a 2D array becomes an opaque gray image."""
        image = PixelBuffer.from_array(np.array([[10, 20]], dtype=np.uint8))
        self.assertEqual(list(image.pixels[0, 0]), [10, 10, 10, 255])
        self.assertEqual(list(image.pixels[0, 1]), [20, 20, 20, 255])

    def test_from_array_rgb(self):
        """Test a 3-channel array gets an opaque alpha channel."""
        image = PixelBuffer.from_array(np.array([[[1, 2, 3]]], dtype=np.uint8))
        self.assertEqual(list(image.pixels[0, 0]), [1, 2, 3, 255])

    def test_filled(self):
        """Test uniform buffers."""
        image = PixelBuffer.filled(3, 2, 100, alpha=50)
        self.assertEqual(image.pixel_count, 6)
        self.assertTrue(np.all(image.gray == 100))
        self.assertTrue(np.all(image.alpha == 50))

    def test_empty_image(self):
        """Test zero-sized images are allowed."""
        image = PixelBuffer.from_bytes(0, 0, b"")
        self.assertEqual(image.pixel_count, 0)


class TestPixelBufferBehavior(unittest.TestCase):
    """Test PixelBuffer immutability and helpers."""

    def test_pixels_are_read_only(self):
        """Test the pixel array cannot be modified in place."""
        image = PixelBuffer.filled(2, 2, 0)
        with self.assertRaises(ValueError):
            image.pixels[0, 0, 0] = 255

    def test_source_array_is_copied(self):
        """Test changing the source array does not change the buffer."""
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        image = PixelBuffer.from_array(source)
        source[0, 0, 0] = 99
        self.assertEqual(image.pixels[0, 0, 0], 0)

    def test_constructor_leaves_caller_array_writable(self):
        """Test the direct constructor copies instead of freezing the caller's array."""
        source = np.zeros((2, 3, 4), dtype=np.uint8)
        image = PixelBuffer(3, 2, source)
        self.assertTrue(source.flags.writeable)
        source[0, 0, 0] = 99
        self.assertEqual(image.pixels[0, 0, 0], 0)
        self.assertFalse(image.pixels.flags.writeable)

    def test_with_gray_rounds_and_clamps(self):
        """Test with_gray rounds half up, clamps and keeps alpha."""
        image = PixelBuffer.filled(3, 1, 0, alpha=7)
        result = image.with_gray(np.array([[-20.0, 12.5, 300.0]]))
        self.assertEqual(list(result.gray[0]), [0, 13, 255])
        self.assertTrue(np.all(result.pixels[..., 1] == result.gray))
        self.assertTrue(np.all(result.alpha == 7))

    def test_equality(self):
        """Test buffers compare by content."""
        self.assertEqual(PixelBuffer.filled(2, 2, 5), PixelBuffer.filled(2, 2, 5))
        self.assertNotEqual(PixelBuffer.filled(2, 2, 5), PixelBuffer.filled(2, 2, 6))

    def test_copy_is_independent_equal_buffer(self):
        """Test copy produces an equal buffer with its own array."""
        image = PixelBuffer.filled(2, 2, 5)
        duplicate = image.copy()
        self.assertEqual(image, duplicate)
        self.assertIsNot(image.pixels, duplicate.pixels)


if __name__ == '__main__':
    unittest.main()
