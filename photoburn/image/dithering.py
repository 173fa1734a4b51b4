"""
Image Dithering Module

Implements the dithering algorithms used to turn tone-mapped grayscale
images into binary patterns suitable for laser engraving.

Error diffusion is inherently sequential (each pixel's quantization
error feeds the next), so those algorithms walk the image row by row.
Ordered and Bayer dithering are plain per-pixel maps.
"""

import math
from typing import List

import numpy as np

from ..core.params import DitheringMethod, ProcessingParams, clamp
from ..core.pixel_buffer import PixelBuffer, round_half_up

BAYER_8X8 = np.array([
    [0, 32, 8, 40, 2, 34, 10, 42],
    [48, 16, 56, 24, 50, 18, 58, 26],
    [12, 44, 4, 36, 14, 46, 6, 38],
    [60, 28, 52, 20, 62, 30, 54, 22],
    [3, 35, 11, 43, 1, 33, 9, 41],
    [51, 19, 59, 27, 49, 17, 57, 25],
    [15, 47, 7, 39, 13, 45, 5, 37],
    [63, 31, 55, 23, 61, 29, 53, 21],
], dtype=np.float64)

# (dy, dx, weight) offsets for the diffusion kernels
FLOYD_STEINBERG_KERNEL = (
    (0, 1, 7 / 16),
    (1, -1, 3 / 16), (1, 0, 5 / 16), (1, 1, 1 / 16),
)

JARVIS_JUDICE_NINKE_KERNEL = (
    (0, 1, 7 / 48), (0, 2, 5 / 48),
    (1, -2, 3 / 48), (1, -1, 5 / 48), (1, 0, 7 / 48), (1, 1, 5 / 48), (1, 2, 3 / 48),
    (2, -2, 1 / 48), (2, -1, 3 / 48), (2, 0, 5 / 48), (2, 1, 3 / 48), (2, 2, 1 / 48),
)

# Atkinson spreads 6/8 of the error; the rest is dropped on purpose
ATKINSON_OFFSETS = ((0, 1), (0, 2), (1, -1), (1, 0), (1, 1), (2, 0))


class ImageDitherer:
    """Dither grayscale images for laser engraving."""

    def __init__(self, method: DitheringMethod = DitheringMethod.FLOYD_STEINBERG,
                 levels: int = 2):
        """
        Args:
            method: Dithering algorithm (unknown ids fall back to Floyd-Steinberg)
            levels: Output gray levels for Bayer dithering (2-6)
        """
        self.method = DitheringMethod.parse(method)
        self.levels = int(clamp(levels, 2, 6))

    def dither(self, image: PixelBuffer, threshold: int = 128) -> PixelBuffer:
        """
        Apply dithering to a grayscale image.

        Reads the R channel (R=G=B is assumed), writes the result to
        R, G and B and passes alpha through.
        """
        gray = image.gray

        if self.method == DitheringMethod.JARVIS_JUDICE_NINKE:
            result = self._diffuse(gray, threshold, JARVIS_JUDICE_NINKE_KERNEL)
        elif self.method == DitheringMethod.ATKINSON:
            result = self._atkinson(gray, threshold)
        elif self.method == DitheringMethod.ORDERED:
            result = self._ordered(gray)
        elif self.method == DitheringMethod.BAYER:
            result = self._bayer(gray, self.levels)
        else:
            result = self._diffuse(gray, threshold, FLOYD_STEINBERG_KERNEL)

        return image.with_gray(result)

    @staticmethod
    def _quantize(value: float, threshold: int) -> int:
        return 0 if value < threshold else 255

    def _diffuse(self, gray: np.ndarray, threshold: int, kernel) -> np.ndarray:
        rows: List[List[float]] = gray.astype(np.float64).tolist()
        height, width = gray.shape

        for y in range(height):
            row = rows[y]
            for x in range(width):
                old_pixel = row[x]
                new_pixel = self._quantize(old_pixel, threshold)
                row[x] = new_pixel
                error = old_pixel - new_pixel
                if error == 0:
                    continue

                for dy, dx, weight in kernel:
                    ny, nx = y + dy, x + dx
                    if ny < height and 0 <= nx < width:
                        rows[ny][nx] += error * weight

        return np.array(rows, dtype=np.float64).reshape(height, width)

    def _atkinson(self, gray: np.ndarray, threshold: int) -> np.ndarray:
        rows: List[List[float]] = gray.astype(np.float64).tolist()
        height, width = gray.shape

        for y in range(height):
            row = rows[y]
            for x in range(width):
                old_pixel = row[x]
                new_pixel = self._quantize(old_pixel, threshold)
                row[x] = new_pixel
                error = math.floor((old_pixel - new_pixel) / 8)
                if error == 0:
                    continue

                for dy, dx in ATKINSON_OFFSETS:
                    ny, nx = y + dy, x + dx
                    if ny < height and 0 <= nx < width:
                        rows[ny][nx] += error

        return np.array(rows, dtype=np.float64).reshape(height, width)

    def _threshold_map(self, shape) -> np.ndarray:
        height, width = shape
        reps = (height // 8 + 1, width // 8 + 1)
        return np.tile(BAYER_8X8, reps)[:height, :width]

    def _ordered(self, gray: np.ndarray) -> np.ndarray:
        thresholds = self._threshold_map(gray.shape) / 64 * 255
        return np.where(gray > thresholds, 255, 0).astype(np.float64)

    def _bayer(self, gray: np.ndarray, levels: int) -> np.ndarray:
        step = 255 / (levels - 1)
        thresholds = self._threshold_map(gray.shape) / 64
        value = gray.astype(np.float64) / 255.0 + (thresholds - 0.5) / levels
        value = np.clip(value, 0, 0.999)
        level = np.floor(value * levels)
        return round_half_up(level * step)


def apply_dithering(image: PixelBuffer, params: ProcessingParams) -> PixelBuffer:
    """Dither ``image`` as configured in ``params``; no-op when disabled."""
    if not params.dither_enabled:
        return image
    ditherer = ImageDitherer(params.dither_type)
    return ditherer.dither(image, int(clamp(params.dither_threshold, 0, 255)))
