"""
PhotoBurn Image Processing Module

Contains the analysis and transformation steps:
- Tone operations (grayscale, brightness/contrast, levels, invert)
- Sharpening convolution
- Histogram statistics and feature extraction
- Image type classification and anchor gray selection
- Dithering algorithms for binary engraving
"""

from .tone import (
    to_grayscale, apply_brightness_contrast, apply_levels,
    adaptive_black_point, invert
)
from .sharpen import apply_sharpening
from .histogram import (
    Peak, HistogramFeatures, ImageStats,
    calculate_histogram, calculate_image_stats, analyze_histogram_features,
    smooth_histogram, median_gray, measure_valley_depth
)
from .features import FeatureSet, extract_features
from .classifier import (
    ClassificationInputs, classify_features, classify_image, classify_image_sync
)
from .face_detection import FaceDetection, FaceDetector, HaarCascadeFaceDetector
from .anchor import (
    calculate_optimal_anchor_gray, adjust_anchor_for_material, describe_anchor_strategy
)
from .dithering import ImageDitherer, apply_dithering

__all__ = [
    'to_grayscale', 'apply_brightness_contrast', 'apply_levels',
    'adaptive_black_point', 'invert',
    'apply_sharpening',
    'Peak', 'HistogramFeatures', 'ImageStats',
    'calculate_histogram', 'calculate_image_stats', 'analyze_histogram_features',
    'smooth_histogram', 'median_gray', 'measure_valley_depth',
    'FeatureSet', 'extract_features',
    'ClassificationInputs', 'classify_features', 'classify_image', 'classify_image_sync',
    'FaceDetection', 'FaceDetector', 'HaarCascadeFaceDetector',
    'calculate_optimal_anchor_gray', 'adjust_anchor_for_material', 'describe_anchor_strategy',
    'ImageDitherer', 'apply_dithering',
]
