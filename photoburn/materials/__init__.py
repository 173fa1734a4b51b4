"""
PhotoBurn Materials Module

Material/laser preset table and image-based parameter tuning.
"""

from .presets import (
    MATERIALS, VARIANTS, LaserType, Material, Analysis,
    list_materials, is_metal, get_material_params, adjust_params_for_image_stats
)

__all__ = [
    'MATERIALS',
    'VARIANTS',
    'LaserType',
    'Material',
    'Analysis',
    'list_materials',
    'is_metal',
    'get_material_params',
    'adjust_params_for_image_stats',
]
