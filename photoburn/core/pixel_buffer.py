"""
PhotoBurn Pixel Buffer

The raster type every processing step consumes and produces.
Pixels are stored as an RGBA8 numpy array of shape (height, width, 4).
"""

from dataclasses import dataclass
from typing import Union

import numpy as np

from .errors import InvalidImageData


def round_half_up(value):
    """
    Round to the nearest integer with halves going up.

    numpy's ``round`` uses banker's rounding; tone curves here expect
    2.5 -> 3 the way ``Math.round`` behaves.
    """
    return np.floor(np.asarray(value, dtype=np.float64) + 0.5)


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """
    Immutable RGBA8 raster.

    The constructor stores a read-only copy of ``pixels``; the array
    passed in is left untouched.

    Attributes:
        width: Image width in pixels
        height: Image height in pixels
        pixels: uint8 array shaped (height, width, 4)
    """
    width: int
    height: int
    pixels: np.ndarray

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise InvalidImageData(
                f"Image dimensions must be non-negative, got {self.width}x{self.height}"
            )
        if not isinstance(self.pixels, np.ndarray):
            raise InvalidImageData("Pixel data must be a numpy array")
        if self.pixels.dtype != np.uint8:
            raise InvalidImageData(f"Pixel data must be uint8, got {self.pixels.dtype}")
        expected = (self.height, self.width, 4)
        if self.pixels.shape != expected:
            raise InvalidImageData(
                f"Pixel array shape {self.pixels.shape} does not match {expected}"
            )
        pixels = self.pixels.copy()
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_bytes(cls, width: int, height: int,
                   data: Union[bytes, bytearray, memoryview, np.ndarray]) -> "PixelBuffer":
        """
        Build a buffer from interleaved RGBA8 bytes.

        Raises:
            InvalidImageData: if the length is not a multiple of 4 or does
                not equal width * height * 4. The data is never truncated.
        """
        flat = np.frombuffer(bytes(data), dtype=np.uint8) if not isinstance(data, np.ndarray) \
            else np.asarray(data, dtype=np.uint8).reshape(-1)
        if flat.size % 4 != 0:
            raise InvalidImageData(f"Buffer length {flat.size} is not a multiple of 4")
        if flat.size != width * height * 4:
            raise InvalidImageData(
                f"Buffer length {flat.size} does not match {width}x{height}x4"
            )
        return cls(width, height, flat.reshape(height, width, 4))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from a numpy array.

        Accepts (H, W) grayscale, (H, W, 3) RGB or (H, W, 4) RGBA.
        Missing channels are filled in; alpha defaults to opaque.
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise InvalidImageData(f"Pixel data must be uint8, got {array.dtype}")
        if array.ndim == 2:
            height, width = array.shape
            rgba = np.empty((height, width, 4), dtype=np.uint8)
            rgba[..., :3] = array[..., None]
            rgba[..., 3] = 255
        elif array.ndim == 3 and array.shape[2] == 3:
            height, width = array.shape[:2]
            rgba = np.empty((height, width, 4), dtype=np.uint8)
            rgba[..., :3] = array
            rgba[..., 3] = 255
        elif array.ndim == 3 and array.shape[2] == 4:
            height, width = array.shape[:2]
            rgba = array
        else:
            raise InvalidImageData(f"Unsupported pixel array shape {array.shape}")
        return cls(width, height, rgba)

    @classmethod
    def filled(cls, width: int, height: int, gray: int, alpha: int = 255) -> "PixelBuffer":
        """Create a uniform gray buffer."""
        rgba = np.empty((height, width, 4), dtype=np.uint8)
        rgba[..., :3] = gray
        rgba[..., 3] = alpha
        return cls(width, height, rgba)

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    @property
    def gray(self) -> np.ndarray:
        """The R channel, read as luminance for grayscale buffers."""
        return self.pixels[..., 0]

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[..., 3]

    def with_gray(self, values: np.ndarray) -> "PixelBuffer":
        """
        Return a new buffer with R=G=B=values and this buffer's alpha.

        Values are rounded half up and clamped to 0..255.
        """
        gray = np.clip(round_half_up(values), 0, 255).astype(np.uint8)
        rgba = np.empty_like(self.pixels)
        rgba[..., 0] = gray
        rgba[..., 1] = gray
        rgba[..., 2] = gray
        rgba[..., 3] = self.alpha
        return PixelBuffer(self.width, self.height, rgba)

    def to_bytes(self) -> bytes:
        return self.pixels.tobytes()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.pixels)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PixelBuffer):
            return NotImplemented
        return (self.width == other.width and self.height == other.height
                and np.array_equal(self.pixels, other.pixels))

    __hash__ = None
