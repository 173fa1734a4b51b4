"""
Image Importer for PhotoBurn

Loads raster files into RGBA PixelBuffers and writes processed results
back to disk.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from ..core.errors import ImageLoadError
from ..core.pixel_buffer import PixelBuffer

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ImageImporter:
    """
    Import raster images for processing.

    Any format Pillow reads is accepted; palette, grayscale and RGB
    images are converted to RGBA.
    """

    def __init__(self, max_dimension: Optional[int] = None):
        """
        Initialize image importer.

        Args:
            max_dimension: Downscale images whose width or height exceeds
                this many pixels. None keeps the original size.
        """
        self.max_dimension = max_dimension

    def load(self, filepath: PathLike) -> PixelBuffer:
        """
        Load an image file.

        Args:
            filepath: Path to image file

        Returns:
            PixelBuffer with the image as RGBA

        Raises:
            ImageLoadError: If the file is missing or not a readable image
        """
        try:
            with Image.open(filepath) as img:
                img = img.convert("RGBA")
        except (OSError, UnidentifiedImageError) as e:
            raise ImageLoadError(f"Cannot load image '{filepath}': {e}") from e

        if self.max_dimension:
            original_width, original_height = img.size
            if max(original_width, original_height) > self.max_dimension:
                scale = self.max_dimension / max(original_width, original_height)
                new_width = max(1, int(original_width * scale))
                new_height = max(1, int(original_height * scale))
                img = img.resize((new_width, new_height), Image.Resampling.LANCZOS)
                logger.info(f"Downscaled image from {original_width}x{original_height} "
                            f"to {new_width}x{new_height} pixels")

        return PixelBuffer.from_array(np.asarray(img, dtype=np.uint8))


def load_image(filepath: PathLike, max_dimension: Optional[int] = None) -> PixelBuffer:
    """Load ``filepath`` as an RGBA PixelBuffer."""
    return ImageImporter(max_dimension).load(filepath)


def save_image(image: PixelBuffer, filepath: PathLike) -> None:
    """
    Save a PixelBuffer.

    Formats without an alpha channel (JPEG, BMP) are written as
    grayscale, which is what the pipeline produces.

    Raises:
        ImageLoadError: If the file cannot be written
    """
    img = Image.fromarray(np.ascontiguousarray(image.pixels))
    suffix = Path(filepath).suffix.lower()
    if suffix in (".jpg", ".jpeg", ".bmp"):
        img = img.convert("L")

    try:
        img.save(filepath)
    except (OSError, ValueError) as e:
        raise ImageLoadError(f"Cannot save image '{filepath}': {e}") from e
    logger.debug(f"Saved {image.width}x{image.height} image to {filepath}")
