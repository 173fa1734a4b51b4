"""
Histogram Analysis Module

256-bin luminance histograms, image statistics and the smoothed
peak/valley features the classifier and anchor calculator work from.
"""

import math
from dataclasses import dataclass, field
from typing import List, Sequence

import numpy as np

from ..core.pixel_buffer import PixelBuffer

# Peak detection tuning
SMOOTHING_WINDOW = 5
PEAK_MIN_HEIGHT = 0.002        # fraction of total mass
PEAK_PROMINENCE = 1.1          # peak must be 10% above both flanking minima
PEAK_WINDOW = 2
MAX_REPORTED_PEAKS = 3
VALLEY_MIN_SEPARATION = 5
VALLEY_MAX_FLOOR = 0.9         # valley floor must sit below 90% of the lower peak
BW_DARK_MAX = 10
BW_LIGHT_MIN = 245
EMPTY_BIN_LEVEL = 0.0005
EMPTY_BIN_COUNT = 100

_PLATEAU_TOLERANCE = 1e-12


@dataclass(frozen=True)
class Peak:
    """A histogram peak: gray position and smoothed normalized height."""
    position: int
    height: float


@dataclass(frozen=True)
class HistogramFeatures:
    """Shape features of a normalized, smoothed histogram."""
    peak_count: int = 0
    peaks: List[Peak] = field(default_factory=list)
    valley_depth: float = 0.0
    bw_ratio: float = 0.0
    is_empty: bool = False


@dataclass(frozen=True)
class ImageStats:
    """
    Statistics of a grayscale image.

    Derived from the histogram and recomputed whenever the gray image
    changes.
    """
    mean: float
    std_dev: float
    histogram: np.ndarray
    peaks: List[Peak] = field(default_factory=list)
    valleys: List[int] = field(default_factory=list)

    @property
    def pixel_count(self) -> int:
        return int(self.histogram.sum())


def calculate_histogram(image: PixelBuffer) -> np.ndarray:
    """Count the R channel (R=G=B for gray images) into 256 bins."""
    return np.bincount(image.gray.reshape(-1), minlength=256).astype(np.int64)


def smooth_histogram(values: Sequence[float], window: int = SMOOTHING_WINDOW) -> np.ndarray:
    """
    Centered moving average.

    Edge bins average only the neighbours that exist, so a spike at
    bin 0 stays a maximum after smoothing.
    """
    values = np.asarray(values, dtype=np.float64)
    half = window // 2
    padded = np.concatenate([np.zeros(half), values, np.zeros(half)])
    counts = np.concatenate([np.zeros(half), np.ones(values.size), np.zeros(half)])
    kernel = np.ones(2 * half + 1)
    sums = np.convolve(padded, kernel, mode='valid')
    counts = np.convolve(counts, kernel, mode='valid')
    return sums / counts


def _find_peaks(smoothed: np.ndarray) -> List[Peak]:
    """
    Locate local maxima of a smoothed, normalized histogram.

    Runs of equal height are treated as one plateau reported at its
    middle bin. A plateau qualifies when it is the highest value within
    ``PEAK_WINDOW`` bins on each side, clears ``PEAK_MIN_HEIGHT`` and is
    ``PEAK_PROMINENCE`` times higher than the lowest bin of each
    flanking window.
    """
    size = smoothed.size
    peaks: List[Peak] = []
    start = 0
    while start < size:
        end = start
        while end + 1 < size and abs(smoothed[end + 1] - smoothed[start]) <= _PLATEAU_TOLERANCE:
            end += 1
        value = smoothed[start]

        left = smoothed[max(0, start - PEAK_WINDOW):start]
        right = smoothed[end + 1:min(size, end + 1 + PEAK_WINDOW)]
        is_max = (
            value > PEAK_MIN_HEIGHT
            and (left.size == 0 or value > left.max())
            and (right.size == 0 or value > right.max())
        )
        if is_max:
            left_min = left.min() if left.size else 0.0
            right_min = right.min() if right.size else 0.0
            if value >= PEAK_PROMINENCE * left_min and value >= PEAK_PROMINENCE * right_min:
                peaks.append(Peak(position=(start + end) // 2, height=float(value)))
        start = end + 1
    return peaks


def _find_valleys(smoothed: np.ndarray) -> List[int]:
    interior = smoothed[1:-1]
    mask = (interior < smoothed[:-2]) & (interior < smoothed[2:])
    return [int(i) + 1 for i in np.flatnonzero(mask)]


def measure_valley_depth(smoothed: np.ndarray, peaks: Sequence[Peak]) -> float:
    """
    Depth of the dip between the two highest peaks, relative to the lower one.

    Returns 0 when there are fewer than two peaks, when they sit closer
    than ``VALLEY_MIN_SEPARATION`` bins, or when the floor between them
    does not drop below ``VALLEY_MAX_FLOOR`` of the lower peak.
    """
    if len(peaks) < 2:
        return 0.0
    first, second = peaks[0], peaks[1]
    low, high = sorted((first.position, second.position))
    if high - low < VALLEY_MIN_SEPARATION:
        return 0.0
    lower_peak = min(first.height, second.height)
    min_between = float(np.asarray(smoothed)[low + 1:high].min())
    if min_between >= VALLEY_MAX_FLOOR * lower_peak:
        return 0.0
    return 1.0 - min_between / lower_peak


def analyze_histogram_features(histogram: Sequence[int]) -> HistogramFeatures:
    """
    Extract peak count, top peaks, valley depth and black/white ratio.

    Args:
        histogram: 256-bin gray histogram

    Returns:
        HistogramFeatures; an empty histogram yields all-zero features
    """
    histogram = np.asarray(histogram, dtype=np.float64)
    total = histogram.sum()
    if total <= 0:
        return HistogramFeatures()

    normalized = histogram / total
    smoothed = smooth_histogram(normalized)

    peaks = sorted(_find_peaks(smoothed), key=lambda p: p.height, reverse=True)

    valley_depth = measure_valley_depth(smoothed, peaks)

    bw_ratio = float(normalized[:BW_DARK_MAX + 1].sum() + normalized[BW_LIGHT_MIN:].sum())
    empty_bins = int(np.count_nonzero(normalized[10:245] < EMPTY_BIN_LEVEL))

    return HistogramFeatures(
        peak_count=len(peaks),
        peaks=peaks[:MAX_REPORTED_PEAKS],
        valley_depth=valley_depth,
        bw_ratio=bw_ratio,
        is_empty=empty_bins > EMPTY_BIN_COUNT,
    )


def calculate_image_stats(image: PixelBuffer) -> ImageStats:
    """
    Compute mean, standard deviation, peaks and valleys of a gray image.

    An image without pixels falls back to mean=128, std_dev=0.
    """
    histogram = calculate_histogram(image)
    count = int(histogram.sum())
    levels = np.arange(256, dtype=np.float64)

    if count > 0:
        mean = float((levels * histogram).sum() / count)
        std_dev = math.sqrt(float((((levels - mean) ** 2) * histogram).sum() / count))
    else:
        mean, std_dev = 128.0, 0.0

    features = analyze_histogram_features(histogram)
    valleys = _find_valleys(smooth_histogram(histogram / count)) if count else []

    return ImageStats(
        mean=mean,
        std_dev=std_dev,
        histogram=histogram,
        peaks=features.peaks,
        valleys=valleys,
    )


def median_gray(histogram: Sequence[int]) -> int:
    """First bin at which the cumulative count reaches half the pixels."""
    histogram = np.asarray(histogram)
    total = histogram.sum()
    if total <= 0:
        return 128
    cumulative = np.cumsum(histogram)
    return int(np.argmax(cumulative >= total / 2))
