"""
Anchor Gray Module

Chooses the gray value that contrast scaling pivots around. Each
image type uses its own formula so that contrast leans toward the
tones that matter: face shadows in portraits, ink lines in cartoons
and overall depth in photos.
"""

from ..core.params import ImageType, clamp
from ..core.pixel_buffer import round_half_up
from .histogram import ImageStats, median_gray

CARTOON_PEAK_GAP = 50
CARTOON_PEAK_ANCHOR_MAX = 100
CARTOON_BLACK_PULL = 0.35

METAL_BOOST = 1.10
DARK_VARIANT_BOOST = 1.05


def _round(value: float) -> int:
    return int(round_half_up(value))


def weighted_gray(stats: ImageStats) -> float:
    """Blend of median and mean gray, weighted equally."""
    return 0.5 * median_gray(stats.histogram) + 0.5 * stats.mean


def _two_peaks_far_apart(stats: ImageStats) -> bool:
    if len(stats.peaks) < 2:
        return False
    return abs(stats.peaks[0].position - stats.peaks[1].position) > CARTOON_PEAK_GAP


def calculate_optimal_anchor_gray(stats: ImageStats, image_type: ImageType) -> int:
    """
    Compute the contrast pivot for an image.

    Args:
        stats: Statistics of the grayscale image
        image_type: Detected or caller-supplied image type

    Returns:
        Anchor gray value in 0..255
    """
    weighted = weighted_gray(stats)

    if image_type is ImageType.PORTRAIT:
        anchor = max(_round(weighted * 0.6), 65)

    elif image_type is ImageType.CARTOON:
        if _two_peaks_far_apart(stats):
            low, high = sorted((stats.peaks[0].position, stats.peaks[1].position))
            base = min(_round((low + high) / 2), CARTOON_PEAK_ANCHOR_MAX)
        else:
            base = max(_round(weighted * 0.62), 65)
        # Pull toward black so line density survives
        anchor = _round(base * CARTOON_BLACK_PULL)

    else:
        if stats.std_dev < 40:
            anchor = max(_round(weighted * 0.66), 72)
        elif stats.std_dev > 60:
            anchor = max(_round(weighted * 0.69), 75)
        else:
            anchor = max(_round(weighted * 0.72), 77)

    return int(clamp(anchor, 0, 255))


def adjust_anchor_for_material(anchor_gray: float, is_metal: bool, variant: str) -> int:
    """Raise the anchor 10% for metals and 5% for dark variants, clamped to 0..255."""
    anchor = float(anchor_gray)
    if is_metal:
        anchor *= METAL_BOOST
    if variant == "dark":
        anchor *= DARK_VARIANT_BOOST
    return int(clamp(_round(anchor), 0, 255))


def describe_anchor_strategy(stats: ImageStats, image_type: ImageType, anchor_gray: int) -> str:
    """Human-readable note on how the anchor was chosen."""
    if image_type is ImageType.PORTRAIT:
        return (f"Portrait strategy: low anchor gray ({anchor_gray}) keeps facial shadow detail "
                f"(mean {stats.mean:.0f})")
    if image_type is ImageType.CARTOON:
        if _two_peaks_far_apart(stats):
            return (f"Line-art strategy: anchor between the two main peaks, pulled toward black "
                    f"({anchor_gray}) to separate lines from fills, std-dev {stats.std_dev:.0f}")
        return (f"Line-art strategy: dark anchor ({anchor_gray}) keeps lines crisp, "
                f"std-dev {stats.std_dev:.0f}")
    if stats.std_dev < 40:
        detail = "low-contrast image"
    elif stats.std_dev > 60:
        detail = "high-contrast image"
    else:
        detail = "medium-contrast image"
    return (f"Photo strategy: {detail}, anchor gray {anchor_gray} below mean {stats.mean:.0f} "
            f"to deepen tonal layering")
