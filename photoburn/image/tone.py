"""
Tone Operations Module

Grayscale conversion, brightness/contrast around an anchor gray,
levels remapping and inversion. Every function returns a new
PixelBuffer and leaves alpha untouched.
"""

import logging
from typing import Optional

import numpy as np

from ..core.params import ImageType, clamp
from ..core.pixel_buffer import PixelBuffer, round_half_up
from .histogram import calculate_histogram

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.299, 0.587, 0.114)

# Adaptive black point for line art
BLACK_POINT_FRACTION = 0.005   # darkest 0.5% of pixels
BLACK_POINT_MIN_AVERAGE = 30


def to_grayscale(image: PixelBuffer) -> PixelBuffer:
    """Convert to luminance: round(0.299R + 0.587G + 0.114B) into R, G and B."""
    rgb = image.pixels[..., :3].astype(np.float64)
    r_weight, g_weight, b_weight = LUMA_WEIGHTS
    gray = r_weight * rgb[..., 0] + g_weight * rgb[..., 1] + b_weight * rgb[..., 2]
    return image.with_gray(gray)


def apply_brightness_contrast(image: PixelBuffer, brightness: float, contrast: float,
                              anchor_gray: float = 128) -> PixelBuffer:
    """
    Adjust brightness, then scale contrast around ``anchor_gray``.

    Contrast stretches the distance from the anchor rather than from
    mid-gray, so a low anchor pushes detail into the highlights and a
    high anchor into the shadows.

    Args:
        image: Grayscale image (R=G=B)
        brightness: -100 to 100, mapped to -255..255
        contrast: 0.1 to 3.0
        anchor_gray: Contrast pivot, 0 to 255

    Returns:
        Adjusted image
    """
    brightness = clamp(brightness, -100, 100)
    contrast = clamp(contrast, 0.1, 3.0)
    anchor_gray = clamp(anchor_gray, 0, 255)

    gray = image.gray.astype(np.float64)
    gray = gray + brightness * 2.55
    gray = (gray - anchor_gray) * contrast + anchor_gray
    return image.with_gray(gray)


def adaptive_black_point(histogram: np.ndarray) -> Optional[int]:
    """
    Average gray of the darkest 0.5% of pixels.

    Returns:
        The rounded average when it is at least 30, otherwise None
    """
    histogram = np.asarray(histogram, dtype=np.int64)
    total = int(histogram.sum())
    if total == 0:
        return None

    target = max(1, int(np.ceil(total * BLACK_POINT_FRACTION)))
    remaining = target
    weighted_sum = 0
    for level in range(256):
        if remaining <= 0:
            break
        taken = min(int(histogram[level]), remaining)
        weighted_sum += taken * level
        remaining -= taken

    average = weighted_sum / target
    if average < BLACK_POINT_MIN_AVERAGE:
        return None
    return int(round_half_up(average))


def apply_levels(image: PixelBuffer, in_low: int, in_high: int,
                 out_low: int = 0, out_high: int = 255,
                 image_type: Optional[ImageType] = None) -> PixelBuffer:
    """
    Remap [in_low, in_high] linearly onto [out_low, out_high].

    Values at or below ``in_low`` become ``out_low`` and values at or
    above ``in_high`` become ``out_high``. An empty input range or an
    inverted output range leaves the image unchanged.

    For cartoon images the black point is raised to the average of the
    darkest pixels when those are not already near black, so dark ink
    lines keep their tone instead of being crushed.
    """
    if image_type is ImageType.CARTOON:
        black_point = adaptive_black_point(calculate_histogram(image))
        if black_point is not None and black_point > in_low:
            adjusted = min(black_point, in_high - 1)
            logger.debug(f"Adaptive black point raised level_in_low {in_low} -> {adjusted}")
            in_low = max(in_low, adjusted)

    in_range = in_high - in_low
    out_range = out_high - out_low
    if in_range <= 0 or out_range < 0:
        logger.warning(
            f"Ignoring invalid levels range in=({in_low}, {in_high}) out=({out_low}, {out_high})"
        )
        return image

    gray = image.gray.astype(np.float64)
    mapped = out_low + (gray - in_low) / in_range * out_range
    mapped = np.where(gray <= in_low, out_low, mapped)
    mapped = np.where(gray >= in_high, out_high, mapped)
    return image.with_gray(mapped)


def invert(image: PixelBuffer) -> PixelBuffer:
    """Invert R, G and B (255 - v); alpha unchanged."""
    rgba = image.pixels.copy()
    rgba[..., :3] = 255 - rgba[..., :3]
    return PixelBuffer(image.width, image.height, rgba)
