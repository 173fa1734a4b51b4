"""
Image Classification Module

Decides whether an image is a photo, a cartoon/line drawing or a
portrait. The cartoon checks are an ordered list of named rules, each
a pure predicate over the extracted features; the first one that
matches wins. When none matches, an optional face detector can turn
the result into a portrait. Otherwise the image is a photo.

The thresholds were tuned by hand on sample images and are kept as-is.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from ..core.params import ImageType
from ..core.pixel_buffer import PixelBuffer
from .face_detection import FaceDetector
from .features import FeatureSet, extract_features
from .histogram import HistogramFeatures, analyze_histogram_features, calculate_image_stats
from .tone import to_grayscale

logger = logging.getLogger(__name__)

DEFAULT_FACE_TIMEOUT = 5.0

# Mid-tone images with (almost) no tonal spread carry no line-art signal.
# Uniform black or white pages still go through the rules.
UNIFORM_STD_DEV = 1.0
UNIFORM_MAX_BW_RATIO = 0.001


@dataclass(frozen=True)
class ClassificationInputs:
    """Everything the rules look at."""
    histogram: HistogramFeatures
    features: FeatureSet
    std_dev: float


@dataclass(frozen=True)
class ClassificationRule:
    name: str
    predicate: Callable[[ClassificationInputs], bool]
    result: ImageType


@dataclass(frozen=True)
class Classification:
    """Rule-stage outcome: the matched rule, or None to defer to face detection."""
    image_type: Optional[ImageType]
    rule: Optional[str] = None


def _strong_cartoon(i: ClassificationInputs) -> bool:
    # peak_count == 0 only happens for degenerate histograms; kept for completeness
    return i.histogram.peak_count in (0, 1, 2, 3) and i.histogram.bw_ratio > 0.8


def _near_binary_flat(i: ClassificationInputs) -> bool:
    low_var = i.features.low_variance_area_ratio
    return low_var > 0.95 or (low_var > 0.92 and i.histogram.bw_ratio > 0.001)


def _bw_dominance(i: ClassificationInputs) -> bool:
    bw = i.histogram.bw_ratio
    return bw > 0.7 or (bw > 0.5 and i.features.low_variance_area_ratio > 0.7)


def _geometric_shapes(i: ClassificationInputs) -> bool:
    f = i.features
    return (f.long_edge_ratio > 0.15 and f.color_block_count < 10
            and f.color_simplicity > 0.7 and f.low_variance_area_ratio > 0.8)


def _color_consistency(i: ClassificationInputs) -> bool:
    f = i.features
    return (f.color_simplicity > 0.85 and f.low_variance_area_ratio > 0.75
            and i.histogram.peak_count <= 4)


def _sharp_flat_borderline(i: ClassificationInputs) -> bool:
    f = i.features
    peaks = i.histogram.peak_count
    if not (f.low_variance_area_ratio > 0.85 and i.histogram.bw_ratio > 0.01
            and f.distinct_edge_ratio > 0.04 and f.edge_contrast > 50):
        return False
    # Photo-like signals override the flat/sharp combination
    if peaks == 1 and i.std_dev < 50:
        return False
    if peaks > 5 or f.skin_tone_ratio > 0.3:
        return False
    return True


RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule("strong_cartoon", _strong_cartoon, ImageType.CARTOON),
    ClassificationRule("near_binary_flat", _near_binary_flat, ImageType.CARTOON),
    ClassificationRule("bw_dominance", _bw_dominance, ImageType.CARTOON),
    ClassificationRule("geometric_shapes", _geometric_shapes, ImageType.CARTOON),
    ClassificationRule("color_consistency", _color_consistency, ImageType.CARTOON),
    ClassificationRule("sharp_flat_borderline", _sharp_flat_borderline, ImageType.CARTOON),
)


def classify_features(inputs: ClassificationInputs) -> Classification:
    """
    Run the rule list.

    Returns:
        The first matching rule's result, or an empty Classification
        when the image should go on to face detection.
    """
    if inputs.std_dev < UNIFORM_STD_DEV and inputs.histogram.bw_ratio <= UNIFORM_MAX_BW_RATIO:
        return Classification(None, "uniform_tone")
    for rule in RULES:
        if rule.predicate(inputs):
            return Classification(rule.result, rule.name)
    return Classification(None)


def gather_inputs(image: PixelBuffer, gray_image: Optional[PixelBuffer] = None) -> ClassificationInputs:
    """Compute the histogram and image features for ``image``."""
    gray_image = gray_image if gray_image is not None else to_grayscale(image)
    stats = calculate_image_stats(gray_image)
    histogram = analyze_histogram_features(stats.histogram)
    features = extract_features(image, gray_image, histogram)
    return ClassificationInputs(histogram=histogram, features=features, std_dev=stats.std_dev)


async def _has_faces(image: PixelBuffer, face_detector: FaceDetector, timeout: float) -> bool:
    try:
        faces = await asyncio.wait_for(face_detector.detect_faces(image), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Face detection timed out after {timeout:.1f}s; continuing without it")
        return False
    except Exception as e:
        logger.warning(f"Face detection failed ({e}); continuing without it")
        return False
    return len(faces) > 0


async def classify_image(image: PixelBuffer,
                         gray_image: Optional[PixelBuffer] = None,
                         face_detector: Optional[FaceDetector] = None,
                         timeout: float = DEFAULT_FACE_TIMEOUT) -> ImageType:
    """
    Classify an image as photo, cartoon or portrait.

    Args:
        image: Original (color) image
        gray_image: Precomputed grayscale version, if available
        face_detector: Optional detector consulted when no cartoon rule fires
        timeout: Seconds to wait for the detector

    Returns:
        The detected ImageType. Detector errors never propagate.
    """
    inputs = gather_inputs(image, gray_image)
    outcome = classify_features(inputs)

    logger.debug(
        f"Classification features: peaks={inputs.histogram.peak_count}, "
        f"bw={inputs.histogram.bw_ratio:.3f}, low_var={inputs.features.low_variance_area_ratio:.2f}, "
        f"simplicity={inputs.features.color_simplicity:.2f}, "
        f"long_edges={inputs.features.long_edge_ratio:.3f}, blocks={inputs.features.color_block_count}"
    )

    if outcome.image_type is not None:
        logger.info(f"Classified as {outcome.image_type.value} by rule '{outcome.rule}'")
        return outcome.image_type

    if face_detector is not None and await _has_faces(image, face_detector, timeout):
        logger.info("Classified as portrait: face detected")
        return ImageType.PORTRAIT

    logger.info("Classified as photo")
    return ImageType.PHOTO


def classify_image_sync(image: PixelBuffer,
                        gray_image: Optional[PixelBuffer] = None,
                        face_detector: Optional[FaceDetector] = None,
                        timeout: float = DEFAULT_FACE_TIMEOUT) -> ImageType:
    """
    Blocking wrapper around :func:`classify_image`.

    Must not be called from inside a running event loop; await
    ``classify_image`` there instead.

    The loop is closed without joining its executor, so a detector
    thread that outlives ``timeout`` does not hold up the caller.
    """
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(
            classify_image(image, gray_image, face_detector, timeout)
        )
    finally:
        loop.run_until_complete(loop.shutdown_asyncgens())
        loop.close()
