#!/usr/bin/env python3
"""
Recover saturated accent colors that median cut averages away.

Both passes re-scan the raw pixels by hue. The vibrant pass looks for broad
accent regions; the brand pass looks for the handful of most saturated pixels
per hue family (buttons, icons, logos) regardless of how few there are.
"""

import logging

import numpy as np

from color_math import distance, hue_similar, rgb_to_hsl, rgb_to_hsl_array, round_half_up, saturation
from extract_colors import Swatch, as_pixel_array

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Vibrant pass
VIBRANT_HUE_SLICES = 18  # 20 degrees each
VIBRANT_MIN_SATURATION = 0.25
VIBRANT_LIGHTNESS = (0.10, 0.90)
VIBRANT_MIN_PIXELS = 5
VIBRANT_TOP_FRACTION = 0.05
VIBRANT_MIN_DISTANCE = 35
VIBRANT_HUE_RANGE = 25
VIBRANT_SATURATION_RATIO = 0.85  # Existing entry this saturated already covers the hue
VIBRANT_KEEP_SATURATION = 0.35

# Brand pass
BRAND_HUE_RANGES = [
    ('red', 0, 30),
    ('orange', 30, 60),
    ('yellow', 60, 90),
    ('green', 90, 180),
    ('blue', 180, 270),
    ('purple', 270, 330),
    ('red', 330, 360),
]
BRAND_MIN_SATURATION = 0.45
BRAND_LIGHTNESS = (0.12, 0.88)
BRAND_TOP_PIXELS = 3
BRAND_MIN_DISTANCE = 30
BRAND_HUE_RANGE = 20
BRAND_KEEP_SATURATION = 0.40


# =============================================================================
# Helpers
# =============================================================================

def _admitted(pixels: np.ndarray, min_saturation: float, lightness: tuple) -> tuple:
    """Return (pixels, hue, saturation) for pixels inside the saturation/lightness gate."""
    h, s, l = rgb_to_hsl_array(pixels)
    mask = (s >= min_saturation) & (l >= lightness[0]) & (l <= lightness[1])
    return pixels[mask], h[mask], s[mask]


def _average_most_saturated(pixels: np.ndarray, sat: np.ndarray, count: int) -> tuple:
    order = np.argsort(-sat, kind='stable')
    top = pixels[order[:count]]
    n = len(top)
    return tuple(round_half_up(total / n) for total in top.sum(axis=0))


def _covered(candidate: tuple, existing: list, min_distance: float,
             hue_range: float, saturation_ratio: float) -> bool:
    """True if the palette already holds this candidate or a saturated enough hue twin."""
    cand_h, cand_s, _ = rgb_to_hsl(*candidate)

    for swatch in existing:
        if distance(candidate, swatch.rgb) < min_distance:
            return True

        h, s, _ = rgb_to_hsl(*swatch.rgb)
        if hue_similar(h, cand_h, hue_range) and s >= cand_s * saturation_ratio:
            return True

    return False


# =============================================================================
# Vibrant Pass
# =============================================================================

def extract_vibrant_colors(pixels, existing_palette: list) -> list:
    """
    Find saturated colors per 20 degree hue slice that the palette lacks.

    Args:
        pixels: Raw image pixels (sequence of triples or (N, 3) array)
        existing_palette: Swatches the candidates are checked against

    Returns:
        New swatches flagged is_vibrant, population = slice size.
    """
    pixels = as_pixel_array(pixels)
    if len(pixels) == 0:
        return []

    admitted, hue, sat = _admitted(pixels, VIBRANT_MIN_SATURATION, VIBRANT_LIGHTNESS)
    slices = np.floor(hue / (360 / VIBRANT_HUE_SLICES)).astype(np.int64) % VIBRANT_HUE_SLICES

    vibrant = []
    for index in range(VIBRANT_HUE_SLICES):
        mask = slices == index
        count = int(mask.sum())
        if count < VIBRANT_MIN_PIXELS:
            continue

        top_count = max(VIBRANT_MIN_PIXELS, int(count * VIBRANT_TOP_FRACTION))
        rgb = _average_most_saturated(admitted[mask], sat[mask], top_count)

        if _covered(rgb, existing_palette, VIBRANT_MIN_DISTANCE,
                    VIBRANT_HUE_RANGE, VIBRANT_SATURATION_RATIO):
            continue
        if saturation(*rgb) <= VIBRANT_KEEP_SATURATION:
            continue

        vibrant.append(Swatch(*rgb, population=count, is_vibrant=True))

    logger.debug("Vibrant pass recovered %d colors", len(vibrant))
    return vibrant


# =============================================================================
# Brand Pass
# =============================================================================

def extract_brand_colors(pixels, existing_palette: list) -> list:
    """
    Find the most saturated color of each hue family, ignoring population.

    Args:
        pixels: Raw image pixels (sequence of triples or (N, 3) array)
        existing_palette: Swatches the candidates are checked against

    Returns:
        New swatches flagged is_vibrant and is_brand_color.
    """
    pixels = as_pixel_array(pixels)
    if len(pixels) == 0:
        return []

    admitted, hue, sat = _admitted(pixels, BRAND_MIN_SATURATION, BRAND_LIGHTNESS)

    brand = []
    for name, low, high in BRAND_HUE_RANGES:
        mask = (hue >= low) & (hue < high)
        count = int(mask.sum())
        if count == 0:
            continue

        rgb = _average_most_saturated(admitted[mask], sat[mask], BRAND_TOP_PIXELS)

        if _covered(rgb, existing_palette, BRAND_MIN_DISTANCE, BRAND_HUE_RANGE, 1.0):
            continue
        if saturation(*rgb) <= BRAND_KEEP_SATURATION:
            continue

        logger.debug("Brand color %s from %s range (%d px)", rgb, name, count)
        brand.append(Swatch(*rgb, population=count, is_vibrant=True, is_brand_color=True))

    return brand
