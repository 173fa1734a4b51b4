"""
PhotoBurn Processing Parameters

The parameter record that flows from the material presets through the
tone pipeline. Values outside their documented ranges are clamped,
never rejected.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ImageType(Enum):
    """Image categories produced by the classifier."""
    PHOTO = "photo"
    CARTOON = "cartoon"
    PORTRAIT = "portrait"

    @classmethod
    def parse(cls, value) -> "ImageType":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class DitheringMethod(Enum):
    """Available dithering algorithms."""
    FLOYD_STEINBERG = "floydSteinberg"
    JARVIS_JUDICE_NINKE = "jarvis"
    ATKINSON = "atkinson"
    ORDERED = "ordered"
    BAYER = "bayer"

    @classmethod
    def parse(cls, value) -> "DitheringMethod":
        """Resolve a method id; unknown ids fall back to Floyd-Steinberg."""
        if isinstance(value, cls):
            return value
        for method in cls:
            if method.value == value or method.name == str(value).upper():
                return method
        return cls.FLOYD_STEINBERG


# camelCase keys of the external preset record
_ALIASES = {
    "anchorGray": "anchor_gray",
    "levelInLow": "level_in_low",
    "levelInHigh": "level_in_high",
    "levelOutLow": "level_out_low",
    "levelOutHigh": "level_out_high",
    "ditherEnabled": "dither_enabled",
    "ditherThreshold": "dither_threshold",
    "ditherType": "dither_type",
}


def clamp(value, low, high):
    return max(low, min(high, value))


@dataclass
class ProcessingParams:
    """
    Tone-mapping and dithering parameters for one processing call.

    Attributes:
        brightness: Brightness shift (-100 to 100), scaled by 2.55
        contrast: Contrast multiplier (0.1 to 3.0)
        anchor_gray: Gray value contrast pivots around (0 to 255)
        level_in_low: Input black point (0 to 254)
        level_in_high: Input white point (1 to 255)
        level_out_low: Output black point (fixed 0)
        level_out_high: Output white point (fixed 255)
        sharpness: Unsharp-mask strength (0 to 100)
        dither_enabled: Whether to dither the result
        dither_type: Dithering algorithm
        dither_threshold: Quantization threshold for error diffusion
    """
    brightness: int = 0
    contrast: float = 1.0
    anchor_gray: int = 128
    level_in_low: int = 0
    level_in_high: int = 255
    level_out_low: int = 0
    level_out_high: int = 255
    sharpness: int = 0
    dither_enabled: bool = False
    dither_type: DitheringMethod = DitheringMethod.FLOYD_STEINBERG
    dither_threshold: int = 128

    def __post_init__(self):
        if not isinstance(self.dither_type, DitheringMethod):
            self.dither_type = DitheringMethod.parse(self.dither_type)

    def clamped(self) -> "ProcessingParams":
        """Return a copy with every value inside its documented range."""
        level_in_low = int(clamp(round(self.level_in_low), 0, 254))
        return replace(
            self,
            brightness=int(clamp(round(self.brightness), -100, 100)),
            contrast=float(clamp(self.contrast, 0.1, 3.0)),
            anchor_gray=int(clamp(round(self.anchor_gray), 0, 255)),
            level_in_low=level_in_low,
            level_in_high=int(clamp(round(self.level_in_high), 1, 255)),
            level_out_low=0,
            level_out_high=255,
            sharpness=int(clamp(round(self.sharpness), 0, 100)),
            dither_enabled=bool(self.dither_enabled),
            dither_threshold=int(clamp(round(self.dither_threshold), 0, 255)),
        )

    def merged(self, values: Optional[Mapping[str, Any]]) -> "ProcessingParams":
        """Return a copy with recognized keys from ``values`` applied."""
        if not values:
            return replace(self)
        return replace(self, **recognized_fields(values))

    @classmethod
    def from_dict(cls, values: Optional[Mapping[str, Any]]) -> "ProcessingParams":
        """
        Build params from a configuration record.

        Accepts snake_case keys and the camelCase keys used by preset
        records. Unknown keys are ignored.
        """
        return cls(**recognized_fields(values or {}))

    def to_dict(self) -> Dict[str, Any]:
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result['dither_type'] = self.dither_type.value
        return result


_FIELD_NAMES = frozenset(f.name for f in fields(ProcessingParams))


def recognized_fields(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Map known parameter keys (snake or camelCase) to field names, dropping the rest."""
    result = {}
    for key, value in values.items():
        name = _ALIASES.get(key, key)
        if name in _FIELD_NAMES and value is not None:
            result[name] = value
    return result
