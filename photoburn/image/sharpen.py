"""
Sharpening Module

3x3 unsharp-mask convolution applied per RGB channel.
"""

import numpy as np

from ..core.params import clamp
from ..core.pixel_buffer import PixelBuffer


def sharpen_kernel(amount: float) -> np.ndarray:
    """
    Build the unsharp-mask kernel for ``amount`` in 0..100.

    The kernel always sums to 1, so flat areas are unchanged.
    """
    factor = clamp(amount, 0, 100) / 100
    kernel = np.full((3, 3), -factor, dtype=np.float64)
    kernel[1, 1] = 1 + 8 * factor
    return kernel


def apply_sharpening(image: PixelBuffer, amount: float = 50) -> PixelBuffer:
    """
    Sharpen an image with a 3x3 unsharp mask.

    Border rows and columns are copied from the source unchanged; there
    is no padding or wraparound. Alpha is untouched.

    Args:
        image: Source image
        amount: Strength 0-100; 0 or less returns ``image`` itself

    Returns:
        Sharpened image
    """
    if amount <= 0:
        return image
    if image.width < 3 or image.height < 3:
        return image.copy()

    kernel = sharpen_kernel(amount)
    source = image.pixels[..., :3].astype(np.float64)
    height, width = image.height, image.width

    total = np.zeros((height - 2, width - 2, 3), dtype=np.float64)
    for ky in range(3):
        for kx in range(3):
            total += kernel[ky, kx] * source[ky:ky + height - 2, kx:kx + width - 2]

    rgba = image.pixels.copy()
    rgba[1:-1, 1:-1, :3] = np.clip(np.rint(total), 0, 255).astype(np.uint8)
    return PixelBuffer(width, height, rgba)
