"""
Material Presets

Base tone parameters per engraving material and shade variant, and the
adjustment that tunes them to an image's brightness and contrast and to
the laser source.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Tuple

from ..core.params import ProcessingParams
from ..image.histogram import ImageStats

logger = logging.getLogger(__name__)

VARIANTS = ("dark", "neutral", "light")
DEFAULT_VARIANT = "neutral"


class LaserType(Enum):
    """Laser source types."""
    CO2 = "CO2"
    DIODE = "Diode"
    INFRARED = "Infrared"
    FIBER = "Fiber"

    @classmethod
    def parse(cls, value) -> "LaserType":
        if isinstance(value, cls):
            return value
        for laser in cls:
            if laser.value.lower() == str(value).strip().lower():
                return laser
        logger.warning(f"Unknown laser type '{value}', assuming CO2")
        return cls.CO2


@dataclass(frozen=True)
class Material:
    """An engraving material and its per-variant base parameters."""
    id: str
    name: str
    description: str
    is_metal: bool = False
    variants: Dict[str, Dict[str, Any]] = field(default_factory=dict)


def _variant(**values) -> Dict[str, Any]:
    return dict(values, dither_enabled=False)


MATERIALS: Dict[str, Material] = {
    "stainless_steel": Material(
        id="stainless_steel",
        name="Stainless steel",
        description="Smooth, reflective metal surface",
        is_metal=True,
        variants={
            "dark": _variant(brightness=-10, contrast=1.3, level_in_low=5, level_in_high=240, sharpness=35),
            "neutral": _variant(brightness=-5, contrast=1.3, level_in_low=10, level_in_high=240, sharpness=40),
            "light": _variant(brightness=-5, contrast=2.0, level_in_low=10, level_in_high=250, sharpness=15),
        },
    ),
    "walnut": Material(
        id="walnut",
        name="Wood",
        description="General wood settings",
        variants={
            "dark": _variant(brightness=-15, contrast=1.4, level_in_low=10, level_in_high=230, sharpness=40),
            "neutral": _variant(brightness=-5, contrast=1.4, level_in_low=15, level_in_high=235, sharpness=45),
            "light": _variant(brightness=-5, contrast=2.2, level_in_low=15, level_in_high=250, sharpness=15),
        },
    ),
    "metal_card": Material(
        id="metal_card",
        name="Metal card",
        description="Coated metal business card",
        is_metal=True,
        variants={
            "dark": _variant(brightness=-15, contrast=1.5, level_in_low=5, level_in_high=220, sharpness=50),
            "neutral": _variant(brightness=-5, contrast=1.5, level_in_low=10, level_in_high=230, sharpness=50),
            "light": _variant(brightness=-5, contrast=2.5, level_in_low=10, level_in_high=245, sharpness=20),
        },
    ),
    "acrylic": Material(
        id="acrylic",
        name="Acrylic",
        description="Clear or translucent plastic",
        variants={
            "dark": _variant(brightness=-15, contrast=1.4, level_in_low=10, level_in_high=245, sharpness=40),
            "neutral": _variant(brightness=0, contrast=1.3, level_in_low=20, level_in_high=245, sharpness=40),
            "light": _variant(brightness=0, contrast=2.0, level_in_low=15, level_in_high=255, sharpness=10),
        },
    ),
    "leather": Material(
        id="leather",
        name="Leather",
        description="Natural or synthetic leather",
        variants={
            "dark": _variant(brightness=-10, contrast=1.5, level_in_low=10, level_in_high=230, sharpness=40),
            "neutral": _variant(brightness=0, contrast=1.4, level_in_low=20, level_in_high=235, sharpness=40),
            "light": _variant(brightness=0, contrast=2.2, level_in_low=15, level_in_high=250, sharpness=15),
        },
    ),
}

# Materials that tolerate more contrast before auto-dithering kicks in
RELAXED_DITHER_MATERIALS = ("walnut", "leather")


def list_materials() -> List[Material]:
    return list(MATERIALS.values())


def is_metal(material_id: str) -> bool:
    material = MATERIALS.get(material_id)
    return material is not None and material.is_metal


def get_material_params(material_id: str, variant: str = DEFAULT_VARIANT) -> ProcessingParams:
    """
    Get base parameters for a material variant.

    Unknown materials get default parameters; unknown variants fall back
    to the neutral variant. Both cases are logged, not raised.
    """
    material = MATERIALS.get(material_id)
    if material is None:
        logger.warning(f"Material '{material_id}' not found, using default parameters")
        return ProcessingParams()

    if variant not in material.variants:
        logger.warning(f"Material '{material_id}' has no variant '{variant}', using neutral")
        variant = DEFAULT_VARIANT

    return ProcessingParams.from_dict(material.variants[variant])


@dataclass
class Analysis:
    """Explanation of how parameters were chosen for an image."""
    image_summary: str = ""
    adjustment_reasons: List[str] = field(default_factory=list)
    technical_details: Dict[str, Any] = field(default_factory=dict)
    image_type_detection: Dict[str, Any] = field(default_factory=dict)
    adjustment_strategy: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'image_summary': self.image_summary,
            'adjustment_reasons': list(self.adjustment_reasons),
            'technical_details': dict(self.technical_details),
            'image_type_detection': dict(self.image_type_detection),
            'adjustment_strategy': dict(self.adjustment_strategy),
        }


def _summarize(stats: ImageStats) -> str:
    mean, std_dev = stats.mean, stats.std_dev

    if mean < 60:
        summary = "Image is dark overall"
    elif mean < 100:
        summary = "Image is on the dark side, low key"
    elif mean > 200:
        summary = "Image is very bright"
    elif mean > 150:
        summary = "Image is on the bright side, high key"
    else:
        summary = "Image is balanced in tone"

    if std_dev < 30:
        summary += ", very low contrast with flat detail"
    elif std_dev < 50:
        summary += ", low contrast"
    elif std_dev > 80:
        summary += ", very high contrast with clear light/dark separation"
    elif std_dev > 65:
        summary += ", high contrast"
    else:
        summary += ", moderate contrast"

    if len(stats.peaks) == 1:
        position = stats.peaks[0].position
        if position < 85:
            summary += ", information concentrated in the shadows"
        elif position > 170:
            summary += ", information concentrated in the highlights"
        else:
            summary += ", information concentrated in the midtones"
    elif len(stats.peaks) > 1:
        summary += ", several distinct brightness clusters"

    return summary


def adjust_params_for_image_stats(params: ProcessingParams, stats: ImageStats,
                                  laser_type=LaserType.CO2) -> Tuple[ProcessingParams, str, Analysis]:
    """
    Tune base material parameters to an image and laser.

    Very dark or very bright images get a mild brightness correction,
    low-contrast images a gentle contrast boost (stronger on diode and
    infrared lasers), and sharpness is nudged by contrast except on
    fiber lasers.

    Returns:
        (adjusted params, short info string, Analysis)
    """
    laser = LaserType.parse(laser_type)
    boosts_low_contrast = laser in (LaserType.DIODE, LaserType.INFRARED)
    mean, std_dev = stats.mean, stats.std_dev

    analysis = Analysis()
    reasons = analysis.adjustment_reasons
    info: List[str] = []
    brightness = params.brightness
    contrast = params.contrast
    sharpness = params.sharpness

    # Brightness: only for extreme exposures
    if mean < 60:
        brightness += 10
        info.append("very dark image, brightness raised")
        reasons.append(f"Image very dark ({mean:.1f}), brightness +10 to recover shadows")
    elif mean > 190:
        brightness -= 10
        info.append("very bright image, brightness lowered")
        reasons.append(f"Image very bright ({mean:.1f}), brightness -10 to protect highlights")
    else:
        reasons.append("Overall brightness is moderate, brightness unchanged")

    # Contrast
    if std_dev < 30:
        factor = 1.2 if boosts_low_contrast else 1.15
        info.append(f"very low contrast ({std_dev:.1f}), contrast x{factor:.2f}")
        reasons.append(f"Very low contrast, contrast {contrast:.2f} -> {contrast * factor:.2f}")
    elif std_dev < 50:
        factor = 1.1 if boosts_low_contrast else 1.05
        info.append(f"low contrast ({std_dev:.1f}), contrast x{factor:.2f}")
        reasons.append(f"Low contrast, contrast {contrast:.2f} -> {contrast * factor:.2f}")
    elif std_dev > 65:
        factor = 1.0 if laser is LaserType.FIBER else 0.99
        info.append(f"high contrast ({std_dev:.1f}), contrast x{factor:.2f}")
        reasons.append(f"Contrast already high, contrast {contrast:.2f} -> {contrast * factor:.2f}")
    else:
        factor = 1.0
        reasons.append(f"Moderate contrast ({std_dev:.1f}), contrast unchanged")
    if boosts_low_contrast and std_dev < 50:
        reasons.append(f"[{laser.value}] stronger low-contrast boost")
    contrast *= factor

    # Sharpness
    if laser is LaserType.FIBER:
        reasons.append("[Fiber] no automatic sharpness adjustment")
    else:
        if std_dev < 40:
            delta = 5
        elif std_dev > 70:
            delta = -3
        else:
            delta = 0
        if delta:
            new_sharpness = max(0, min(100, sharpness + delta))
            info.append(f"sharpness {sharpness} -> {new_sharpness}")
            reasons.append(f"Sharpness adjusted ({sharpness} -> {new_sharpness})")
            sharpness = new_sharpness
        else:
            reasons.append("Sharpness unchanged")

    analysis.image_summary = _summarize(stats)
    analysis.technical_details = {
        'mean_brightness': round(mean, 2),
        'standard_deviation': round(std_dev, 2),
        'peaks': [p.position for p in stats.peaks],
        'valleys': list(stats.valleys),
    }
    reasons.append(f"Parameters tuned for the selected material and {laser.value} laser")

    adjusted = replace(params, brightness=brightness, contrast=contrast, sharpness=sharpness).clamped()
    return adjusted, "; ".join(info), analysis
