"""
PhotoBurn Core Module

Contains the core data structures:
- PixelBuffer: RGBA8 raster passed between every processing step
- ProcessingParams: Tone-mapping and dithering parameter record
- ImageType / DitheringMethod: Enumerations shared across modules
- PipelineSettings: Environment-driven pipeline settings
"""

from .errors import (
    PhotoBurnError, InvalidImageData, FaceDetectorUnavailable, ImageLoadError
)
from .pixel_buffer import PixelBuffer, round_half_up
from .params import ProcessingParams, ImageType, DitheringMethod, clamp
from .settings import PipelineSettings, configure_logging

__all__ = [
    'PhotoBurnError', 'InvalidImageData', 'FaceDetectorUnavailable', 'ImageLoadError',
    'PixelBuffer', 'round_half_up',
    'ProcessingParams', 'ImageType', 'DitheringMethod', 'clamp',
    'PipelineSettings', 'configure_logging',
]
