"""
Feature Extraction Module

Measures the image properties that separate line art from
photographs:

- Edge density and contrast from a Sobel gradient
- "Long edge" components found by flood fill
- Flat-area, color-block and gray-level simplicity texture measures
- A heuristic skin-tone ratio on the original RGB data
"""

from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Tuple

import numpy as np

from ..core.pixel_buffer import PixelBuffer, round_half_up
from .histogram import HistogramFeatures

# Edge detection
EDGE_THRESHOLD = 20
DISTINCT_EDGE_THRESHOLD = 50

# Connected components
FLOOD_FILL_CAP = 1000
LONG_EDGE_MIN_SIZE = 15
LONG_EDGE_MIN_EXTENT = 20
LONG_EDGE_MAX_DENSITY = 0.5
LONG_EDGE_SOLID_SIZE = 30

# Texture
TEXTURE_BLOCK = 4
TEXTURE_LEVEL_WIDTH = 32       # 8 quantized levels
MIN_COLOR_BLOCK = 4
SIMPLICITY_SAMPLE_STEP = 4
SIMPLICITY_LEVEL_WIDTH = 8     # 32 gray levels
VARIANCE_BLOCK = 3
LOW_VARIANCE_THRESHOLD = 30

# Skin tone heuristics. These thresholds are hand-tuned, not derived
# from a color model.
SKIN_SAMPLE_STEP = 4
SKIN_STANDARD = dict(min_r=60, min_g=40, min_b=20, min_rg=15, min_rb=20, max_rb=120)
SKIN_BRIGHT = dict(min_r=200, min_g=160, min_b=130, min_rg=5, max_rg=15, min_rb=15)
SKIN_PINK = dict(min_r=150, min_g=90, min_b=100, min_rg=15, max_rb=20)

_NEIGHBORS_4 = ((-1, 0), (1, 0), (0, -1), (0, 1))
_NEIGHBORS_8 = _NEIGHBORS_4 + ((-1, -1), (1, -1), (-1, 1), (1, 1))


@dataclass(frozen=True)
class EdgeFeatures:
    edge_ratio: float = 0.0
    distinct_edge_ratio: float = 0.0
    long_edge_ratio: float = 0.0
    edge_contrast: float = 0.0


@dataclass(frozen=True)
class TextureFeatures:
    color_block_count: int = 0
    low_variance_area_ratio: float = 0.0
    color_simplicity: float = 0.0


@dataclass(frozen=True)
class FeatureSet:
    """
    Everything the classifier looks at besides the histogram.

    ``edge_contrast`` is a mean gradient magnitude rather than a ratio,
    and ``long_edge_ratio`` counts long edges per 1% of the image area.
    """
    edge_ratio: float = 0.0
    distinct_edge_ratio: float = 0.0
    long_edge_ratio: float = 0.0
    edge_contrast: float = 0.0
    low_variance_area_ratio: float = 0.0
    color_simplicity: float = 0.0
    skin_tone_ratio: float = 0.0
    color_block_count: int = 0
    bw_ratio: float = 0.0


def flood_fill(start: Tuple[int, int], width: int, height: int,
               matches: Callable[[int, int], bool], visited: bytearray,
               neighbors=_NEIGHBORS_8, cap: int = FLOOD_FILL_CAP) -> List[Tuple[int, int]]:
    """
    Breadth-first flood fill from ``start``.

    Pixels are marked visited when queued. The fill stops once ``cap``
    pixels have been taken from the queue; anything still queued stays
    visited and is not counted.

    Returns:
        The (x, y) pixels of the component, at most ``cap`` of them
    """
    x0, y0 = start
    visited[y0 * width + x0] = 1
    queue = deque([start])
    component = []

    while queue and len(component) < cap:
        cx, cy = queue.popleft()
        component.append((cx, cy))
        for dx, dy in neighbors:
            nx, ny = cx + dx, cy + dy
            if 0 <= nx < width and 0 <= ny < height:
                index = ny * width + nx
                if not visited[index] and matches(nx, ny):
                    visited[index] = 1
                    queue.append((nx, ny))

    return component


def sobel_magnitude(gray: np.ndarray) -> np.ndarray:
    """
    3x3 Sobel gradient magnitude.

    Border pixels have no full neighbourhood and are left at zero.
    """
    gray = gray.astype(np.float64)
    height, width = gray.shape
    magnitude = np.zeros((height, width), dtype=np.float64)
    if height < 3 or width < 3:
        return magnitude

    p00, p01, p02 = gray[:-2, :-2], gray[:-2, 1:-1], gray[:-2, 2:]
    p10, p12 = gray[1:-1, :-2], gray[1:-1, 2:]
    p20, p21, p22 = gray[2:, :-2], gray[2:, 1:-1], gray[2:, 2:]

    gx = (p02 + 2 * p12 + p22) - (p00 + 2 * p10 + p20)
    gy = (p20 + 2 * p21 + p22) - (p00 + 2 * p01 + p02)
    magnitude[1:-1, 1:-1] = np.sqrt(gx * gx + gy * gy)
    return magnitude


def count_long_edges(edge_map: np.ndarray) -> int:
    """
    Count edge components that look like long strokes.

    A component counts when it has more than 15 pixels, its bounding
    box exceeds 20px in either direction, and it is either sparse
    (density below 0.5) or larger than 30 pixels.
    """
    height, width = edge_map.shape
    edges = edge_map.reshape(-1).tolist()
    visited = bytearray(width * height)

    def is_edge(x: int, y: int) -> bool:
        return edges[y * width + x]

    long_edges = 0
    for y in range(height):
        for x in range(width):
            index = y * width + x
            if not edges[index] or visited[index]:
                continue
            component = flood_fill((x, y), width, height, is_edge, visited, _NEIGHBORS_8)
            size = len(component)
            if size <= LONG_EDGE_MIN_SIZE:
                continue

            xs = [px for px, _ in component]
            ys = [py for _, py in component]
            box_width = max(xs) - min(xs) + 1
            box_height = max(ys) - min(ys) + 1
            density = size / (box_width * box_height)
            if ((box_width > LONG_EDGE_MIN_EXTENT or box_height > LONG_EDGE_MIN_EXTENT)
                    and (density < LONG_EDGE_MAX_DENSITY or size > LONG_EDGE_SOLID_SIZE)):
                long_edges += 1

    return long_edges


def analyze_edge_features(gray_image: PixelBuffer) -> EdgeFeatures:
    """Sobel edge ratios, mean edge contrast and long-edge density."""
    total = gray_image.pixel_count
    if total == 0:
        return EdgeFeatures()

    magnitude = sobel_magnitude(gray_image.gray)
    edge_map = magnitude > EDGE_THRESHOLD
    edge_count = int(np.count_nonzero(edge_map))
    distinct_count = int(np.count_nonzero(magnitude > DISTINCT_EDGE_THRESHOLD))
    edge_contrast = float(magnitude[edge_map].mean()) if edge_count else 0.0

    long_edges = count_long_edges(edge_map)

    return EdgeFeatures(
        edge_ratio=edge_count / total,
        distinct_edge_ratio=distinct_count / total,
        long_edge_ratio=long_edges / (total * 0.01),
        edge_contrast=edge_contrast,
    )


def quantize_blocks(gray: np.ndarray) -> np.ndarray:
    """Average 4x4 blocks and quantize the means to 8 levels (0-7)."""
    height, width = gray.shape
    rows, cols = height // TEXTURE_BLOCK, width // TEXTURE_BLOCK
    if rows == 0 or cols == 0:
        return np.zeros((rows, cols), dtype=np.uint8)
    blocks = gray[:rows * TEXTURE_BLOCK, :cols * TEXTURE_BLOCK].astype(np.float64)
    blocks = blocks.reshape(rows, TEXTURE_BLOCK, cols, TEXTURE_BLOCK)
    means = round_half_up(blocks.mean(axis=(1, 3)))
    return (means // TEXTURE_LEVEL_WIDTH).astype(np.uint8)


def count_color_blocks(quantized: np.ndarray) -> int:
    """Count 4-connected same-level regions of at least 4 blocks."""
    height, width = quantized.shape
    levels = quantized.reshape(-1).tolist()
    visited = bytearray(width * height)
    count = 0

    for y in range(height):
        for x in range(width):
            index = y * width + x
            if visited[index]:
                continue
            level = levels[index]
            component = flood_fill(
                (x, y), width, height,
                lambda nx, ny: levels[ny * width + nx] == level,
                visited, _NEIGHBORS_4,
            )
            if len(component) >= MIN_COLOR_BLOCK:
                count += 1

    return count


def low_variance_area_ratio(gray: np.ndarray) -> float:
    """Fraction of all pixels that sit in 3x3 blocks with variance below 30."""
    height, width = gray.shape
    total = height * width
    rows, cols = height // VARIANCE_BLOCK, width // VARIANCE_BLOCK
    if total == 0 or rows == 0 or cols == 0:
        return 0.0
    blocks = gray[:rows * VARIANCE_BLOCK, :cols * VARIANCE_BLOCK].astype(np.float64)
    blocks = blocks.reshape(rows, VARIANCE_BLOCK, cols, VARIANCE_BLOCK)
    variance = blocks.var(axis=(1, 3))
    low_blocks = int(np.count_nonzero(variance < LOW_VARIANCE_THRESHOLD))
    return low_blocks * VARIANCE_BLOCK * VARIANCE_BLOCK / total


def color_simplicity(gray: np.ndarray) -> float:
    """1 - (distinct 32-level grays among every 4th pixel) / 32."""
    samples = gray.reshape(-1)[::SIMPLICITY_SAMPLE_STEP]
    if samples.size == 0:
        return 0.0
    distinct = np.unique(samples // SIMPLICITY_LEVEL_WIDTH).size
    return 1.0 - distinct / 32


def analyze_texture_features(gray_image: PixelBuffer) -> TextureFeatures:
    """Color-block count, low-variance area ratio and gray-level simplicity."""
    if gray_image.pixel_count == 0:
        return TextureFeatures()
    gray = gray_image.gray
    return TextureFeatures(
        color_block_count=count_color_blocks(quantize_blocks(gray)),
        low_variance_area_ratio=low_variance_area_ratio(gray),
        color_simplicity=color_simplicity(gray),
    )


def skin_tone_mask(rgb: np.ndarray) -> np.ndarray:
    """
    Boolean mask of skin-like pixels for an (N, 3) RGB array.

    Three disjoint rules cover typical, brightly lit and pinkish skin.
    """
    r, g, b = (rgb[:, channel].astype(np.int32) for channel in range(3))
    rg = r - g
    rb = r - b

    s = SKIN_STANDARD
    standard = ((r > s['min_r']) & (g > s['min_g']) & (b > s['min_b'])
                & (r > g) & (r > b) & (rg > s['min_rg'])
                & (rb > s['min_rb']) & (rb < s['max_rb']))

    s = SKIN_BRIGHT
    bright = ((r > s['min_r']) & (g > s['min_g']) & (b > s['min_b'])
              & (rg > s['min_rg']) & (rg <= s['max_rg']) & (rb > s['min_rb']))

    s = SKIN_PINK
    pink = ((r > s['min_r']) & (g > s['min_g']) & (b > s['min_b'])
            & (rg > s['min_rg']) & (rb > 0) & (rb <= s['max_rb']))

    return standard | bright | pink


def skin_tone_ratio(image: PixelBuffer) -> float:
    """Share of sampled pixels (every 4th) matching a skin-tone rule."""
    samples = image.pixels.reshape(-1, 4)[::SKIN_SAMPLE_STEP, :3]
    if samples.shape[0] == 0:
        return 0.0
    return float(np.count_nonzero(skin_tone_mask(samples))) / samples.shape[0]


def extract_features(original: PixelBuffer, gray_image: PixelBuffer,
                     histogram_features: HistogramFeatures) -> FeatureSet:
    """
    Build the full feature set for classification.

    Args:
        original: Source image; skin tone is measured on its raw RGB
        gray_image: Grayscale version of ``original``
        histogram_features: Features of ``gray_image``'s histogram
    """
    edges = analyze_edge_features(gray_image)
    texture = analyze_texture_features(gray_image)
    return FeatureSet(
        edge_ratio=edges.edge_ratio,
        distinct_edge_ratio=edges.distinct_edge_ratio,
        long_edge_ratio=edges.long_edge_ratio,
        edge_contrast=edges.edge_contrast,
        low_variance_area_ratio=texture.low_variance_area_ratio,
        color_simplicity=texture.color_simplicity,
        skin_tone_ratio=skin_tone_ratio(original),
        color_block_count=texture.color_block_count,
        bw_ratio=histogram_features.bw_ratio,
    )
