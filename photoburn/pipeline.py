"""
Processing Pipeline

Turns a source image into an engraving-ready grayscale or dithered
image for a material, variant and laser:

    grayscale -> stats -> type -> preset -> stat adjustment -> anchor
    -> brightness/contrast -> levels -> sharpen -> dither -> invert

Every step returns a new PixelBuffer; the caller's image is never
modified.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Union

from .core.params import DitheringMethod, ImageType, ProcessingParams, clamp, recognized_fields
from .core.pixel_buffer import PixelBuffer
from .core.settings import PipelineSettings
from .image.anchor import (
    adjust_anchor_for_material, calculate_optimal_anchor_gray, describe_anchor_strategy
)
from .image.classifier import classify_image, classify_image_sync
from .image.dithering import apply_dithering
from .image.face_detection import FaceDetector
from .image.histogram import ImageStats, calculate_image_stats
from .image.sharpen import apply_sharpening
from .image.tone import apply_brightness_contrast, apply_levels, invert, to_grayscale
from .materials.presets import (
    RELAXED_DITHER_MATERIALS, Analysis, LaserType,
    adjust_params_for_image_stats, get_material_params, is_metal
)

logger = logging.getLogger(__name__)

_DITHER_KEYS = ("dither_enabled", "dither_type", "dither_threshold")

_TYPE_LABELS = {
    ImageType.PHOTO: "photo",
    ImageType.CARTOON: "cartoon/line art",
    ImageType.PORTRAIT: "portrait",
}


@dataclass
class ProcessingOverrides:
    """
    Caller-supplied overrides for one processing call.

    Attributes:
        anchor_gray: Fixed contrast pivot; skips automatic anchor selection
        known_image_type: Previously detected type; skips classification
        invert: Invert the final image
        params: Any other ProcessingParams keys, applied after the
            image-based adjustment
    """
    anchor_gray: Optional[int] = None
    known_image_type: Optional[ImageType] = None
    invert: bool = False
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.known_image_type is not None:
            self.known_image_type = ImageType.parse(self.known_image_type)
        self.params = recognized_fields(self.params)
        self.params.pop("anchor_gray", None)

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> "ProcessingOverrides":
        """Build overrides from a flat mapping (snake_case or camelCase keys)."""
        values = dict(values or {})
        anchor_gray = values.pop("anchor_gray", values.pop("anchorGray", None))
        known_type = values.pop("known_image_type", values.pop("knownImageType", None))
        invert_image = bool(values.pop("invert", False))
        return cls(
            anchor_gray=anchor_gray,
            known_image_type=known_type,
            invert=invert_image,
            params=values,
        )

    @property
    def forces_dither(self) -> bool:
        return "dither_enabled" in self.params


@dataclass
class ProcessingResult:
    """Output of one pipeline run."""
    processed_image: PixelBuffer
    gray_image: PixelBuffer
    image_stats: ImageStats
    params: ProcessingParams
    analysis: Analysis
    was_inverted: bool = False
    image_type: Optional[ImageType] = None
    info: str = ""


def _coerce_overrides(overrides: Union[ProcessingOverrides, Mapping[str, Any], None]) -> ProcessingOverrides:
    if isinstance(overrides, ProcessingOverrides):
        return overrides
    return ProcessingOverrides.from_dict(overrides)


def process_image(image: PixelBuffer,
                  material_id: str,
                  variant: str = "neutral",
                  laser_type: Union[LaserType, str] = LaserType.CO2,
                  overrides: Union[ProcessingOverrides, Mapping[str, Any], None] = None,
                  face_detector: Optional[FaceDetector] = None,
                  settings: Optional[PipelineSettings] = None) -> ProcessingResult:
    """
    Process an image for engraving.

    Args:
        image: Source image (any colors; alpha is passed through)
        material_id: Material preset id, e.g. "walnut"
        variant: "dark", "neutral" or "light"
        laser_type: Laser source; Fiber lasers never auto-dither
        overrides: ProcessingOverrides or a flat mapping of override keys
        face_detector: Optional detector used to recognize portraits
        settings: Pipeline settings; read from the environment if omitted

    Returns:
        ProcessingResult

    Must not be called from inside a running event loop when no
    known image type is supplied; use process_image_async there.
    """
    settings = settings or PipelineSettings.from_env()
    overrides = _coerce_overrides(overrides)
    gray_image = to_grayscale(image)

    image_type = overrides.known_image_type
    if image_type is None:
        image_type = classify_image_sync(image, gray_image, face_detector,
                                         settings.face_detection_timeout)

    return _finish(image, gray_image, image_type, material_id, variant,
                   laser_type, overrides, settings)


async def process_image_async(image: PixelBuffer,
                              material_id: str,
                              variant: str = "neutral",
                              laser_type: Union[LaserType, str] = LaserType.CO2,
                              overrides: Union[ProcessingOverrides, Mapping[str, Any], None] = None,
                              face_detector: Optional[FaceDetector] = None,
                              settings: Optional[PipelineSettings] = None) -> ProcessingResult:
    """Awaitable form of :func:`process_image`."""
    settings = settings or PipelineSettings.from_env()
    overrides = _coerce_overrides(overrides)
    gray_image = to_grayscale(image)

    image_type = overrides.known_image_type
    if image_type is None:
        image_type = await classify_image(image, gray_image, face_detector,
                                          settings.face_detection_timeout)

    return _finish(image, gray_image, image_type, material_id, variant,
                   laser_type, overrides, settings)


def _apply_tone(gray_image: PixelBuffer, params: ProcessingParams,
                image_type: Optional[ImageType]) -> PixelBuffer:
    adjusted = apply_brightness_contrast(gray_image, params.brightness, params.contrast,
                                         params.anchor_gray)
    adjusted = apply_levels(adjusted, params.level_in_low, params.level_in_high,
                            params.level_out_low, params.level_out_high, image_type=image_type)
    if params.sharpness > 0:
        adjusted = apply_sharpening(adjusted, params.sharpness)
    return adjusted


def _choose_dither(adjusted: PixelBuffer, image_type: ImageType, material_id: str,
                   laser: LaserType, settings: PipelineSettings, reasons: List[str]):
    """
    Decide whether the tone-mapped image still needs dithering.

    Returns:
        (DitheringMethod or None, info string)
    """
    if laser is LaserType.FIBER:
        reasons.append("[Dither] Fiber lasers are not dithered automatically")
        return None, "no automatic dithering on fiber lasers"

    std_dev = calculate_image_stats(adjusted).std_dev
    threshold = settings.dither_std_threshold
    if image_type is ImageType.CARTOON or material_id in RELAXED_DITHER_MATERIALS:
        threshold = settings.dither_std_threshold_relaxed

    if std_dev >= threshold:
        reasons.append(f"[Dither] Adjusted contrast high ({std_dev:.1f}), no dithering")
        return None, f"adjusted contrast {std_dev:.1f} >= {threshold:g}, dithering off"

    if image_type is ImageType.CARTOON:
        method = DitheringMethod.ORDERED
        reasons.append(f"[Dither] Line art with contrast {std_dev:.1f}, ordered dithering for texture")
    elif std_dev < settings.dither_low_contrast_std:
        method = DitheringMethod.FLOYD_STEINBERG
        reasons.append(f"[Dither] Low adjusted contrast ({std_dev:.1f}), "
                       f"Floyd-Steinberg to simulate gray levels")
    else:
        method = DitheringMethod.ORDERED
        reasons.append(f"[Dither] Moderate adjusted contrast ({std_dev:.1f}), ordered dithering")
    return method, f"adjusted contrast {std_dev:.1f} < {threshold:g}, {method.value} dithering on"


def _finish(image: PixelBuffer, gray_image: PixelBuffer, image_type: ImageType,
            material_id: str, variant: str, laser_type, overrides: ProcessingOverrides,
            settings: PipelineSettings) -> ProcessingResult:
    laser = LaserType.parse(laser_type)
    image_stats = calculate_image_stats(gray_image)

    base_params = get_material_params(material_id, variant)
    params, initial_info, analysis = adjust_params_for_image_stats(base_params, image_stats, laser)

    type_label = _TYPE_LABELS[image_type]
    analysis.image_summary = f"Detected type: {type_label}. {analysis.image_summary}"
    analysis.adjustment_reasons.append(f"[Image analysis] Detected image type: {type_label}")

    if overrides.anchor_gray is None:
        anchor_gray = calculate_optimal_anchor_gray(image_stats, image_type)
        anchor_gray = adjust_anchor_for_material(anchor_gray, is_metal(material_id), variant)
        analysis.adjustment_reasons.append(f"[Anchor] Automatic anchor gray {anchor_gray}")
    else:
        anchor_gray = int(clamp(round(overrides.anchor_gray), 0, 255))
        analysis.adjustment_reasons.append(f"[Override] Anchor gray set manually to {anchor_gray}")

    params = replace(params, anchor_gray=anchor_gray).merged(overrides.params).clamped()

    adjusted = _apply_tone(gray_image, params, image_type)

    info_parts = [initial_info] if initial_info else []
    if overrides.forces_dither:
        state = "on" if params.dither_enabled else "off"
        analysis.adjustment_reasons.append(f"[Override] Dithering forced {state}")
        info_parts.append(f"dithering forced {state}")
    elif settings.auto_dither:
        method, dither_info = _choose_dither(adjusted, image_type, material_id, laser,
                                             settings, analysis.adjustment_reasons)
        info_parts.append(dither_info)
        if method is None:
            params = replace(params, dither_enabled=False)
        else:
            params = replace(
                params,
                dither_enabled=True,
                dither_type=params.dither_type if "dither_type" in overrides.params else method,
                dither_threshold=overrides.params.get("dither_threshold",
                                                      settings.default_dither_threshold),
            ).clamped()

    processed = apply_dithering(adjusted, params)

    if overrides.invert:
        processed = invert(processed)
        analysis.adjustment_reasons.append("[Override] Output inverted")

    strategy = describe_anchor_strategy(image_stats, image_type, params.anchor_gray)
    analysis.image_type_detection = {
        'image_type': image_type.value,
        'summary': f"Detected image type: {type_label}",
        'source': "caller" if overrides.known_image_type is not None else "classifier",
    }
    analysis.adjustment_strategy = {
        'strategy_type': image_type.value,
        'description': strategy,
    }
    analysis.image_summary += f" {strategy}"
    analysis.adjustment_reasons.append(f"[Anchor] {strategy}")

    info = "; ".join(info_parts)
    logger.info(f"Processed {image.width}x{image.height} image for {material_id}/{variant} "
                f"({laser.value}, {image_type.value}): {info}")

    return ProcessingResult(
        processed_image=processed,
        gray_image=gray_image,
        image_stats=image_stats,
        params=params,
        analysis=analysis,
        was_inverted=overrides.invert,
        image_type=image_type,
        info=info,
    )


def process_image_with_custom_params(image: PixelBuffer,
                                     params: Union[ProcessingParams, Mapping[str, Any]],
                                     image_type: Optional[ImageType] = None) -> ProcessingResult:
    """
    Process an image with a caller-supplied parameter record.

    No classification, preset lookup or automatic decisions are made;
    the parameters are only clamped to their valid ranges.
    """
    if not isinstance(params, ProcessingParams):
        params = ProcessingParams.from_dict(params)
    params = params.clamped()
    if image_type is not None:
        image_type = ImageType.parse(image_type)

    gray_image = to_grayscale(image)
    image_stats = calculate_image_stats(gray_image)
    processed = apply_dithering(_apply_tone(gray_image, params, image_type), params)

    return ProcessingResult(
        processed_image=processed,
        gray_image=gray_image,
        image_stats=image_stats,
        params=params,
        analysis=Analysis(image_summary="Processed with custom parameters"),
        image_type=image_type,
        info="processed with custom parameters",
    )
