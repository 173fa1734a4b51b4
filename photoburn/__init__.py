"""
PhotoBurn - Image preparation for laser engraving

Converts photos, portraits and line art into tone-mapped grayscale or
dithered images tuned for a material, shade variant and laser source.
"""

__version__ = "0.1.0"

from .core import PixelBuffer, ProcessingParams, ImageType, DitheringMethod, PipelineSettings
from .materials import LaserType
from .pipeline import (
    ProcessingOverrides, ProcessingResult,
    process_image, process_image_async, process_image_with_custom_params
)

__all__ = [
    '__version__',
    'PixelBuffer', 'ProcessingParams', 'ImageType', 'DitheringMethod', 'PipelineSettings',
    'LaserType',
    'ProcessingOverrides', 'ProcessingResult',
    'process_image', 'process_image_async', 'process_image_with_custom_params',
]
