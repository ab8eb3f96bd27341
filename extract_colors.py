#!/usr/bin/env python3
"""
Extract representative colors from an image as swatches with pixel counts.

Pixel loading (decode, downscale, alpha filter), median-cut quantization and
saturation-preserving duplicate removal.
"""

import logging
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np
from PIL import Image

from color_math import distance, luminance, rgb_to_hex, round_half_up, saturation

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side

DEFAULT_MAX_SIZE = 200  # Longest edge after downscaling
MIN_ALPHA = 128  # Pixels more transparent than this are ignored


# =============================================================================
# Data Model
# =============================================================================

@dataclass(frozen=True)
class Swatch:
    """A representative color with its pixel population and class flags."""
    r: int
    g: int
    b: int
    population: int
    is_vibrant: bool = False
    is_brand_color: bool = False

    @property
    def rgb(self) -> tuple:
        return (self.r, self.g, self.b)

    @property
    def hex(self) -> str:
        return rgb_to_hex(self.r, self.g, self.b)

    def to_dict(self) -> dict:
        return {
            'r': self.r,
            'g': self.g,
            'b': self.b,
            'population': self.population,
            'isVibrant': self.is_vibrant,
            'isBrandColor': self.is_brand_color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Swatch':
        return cls(
            r=int(data['r']),
            g=int(data['g']),
            b=int(data['b']),
            population=int(data.get('population', 0)),
            is_vibrant=bool(data.get('isVibrant', False)),
            is_brand_color=bool(data.get('isBrandColor', False)),
        )


@dataclass(frozen=True)
class AnalyzedColor:
    """Read-only view of a swatch with the metrics token selection filters on."""
    r: int
    g: int
    b: int
    population: int
    is_vibrant: bool
    is_brand_color: bool
    hex: str
    luminance: float
    saturation: float

    @property
    def rgb(self) -> tuple:
        return (self.r, self.g, self.b)

    @classmethod
    def from_swatch(cls, swatch: Swatch) -> 'AnalyzedColor':
        return cls(
            r=swatch.r,
            g=swatch.g,
            b=swatch.b,
            population=swatch.population,
            is_vibrant=swatch.is_vibrant,
            is_brand_color=swatch.is_brand_color,
            hex=swatch.hex,
            luminance=luminance(swatch.r, swatch.g, swatch.b),
            saturation=saturation(swatch.r, swatch.g, swatch.b),
        )

    @classmethod
    def from_rgb(cls, rgb: tuple) -> 'AnalyzedColor':
        """Analyze a color that is not part of the palette (e.g. a lock)."""
        return cls.from_swatch(Swatch(rgb[0], rgb[1], rgb[2], population=0))


def analyze_palette(palette: list) -> list:
    """Compute the analyzed view of every swatch, in palette order."""
    return [AnalyzedColor.from_swatch(swatch) for swatch in palette]


# =============================================================================
# Pixel Source
# =============================================================================

def as_pixel_array(pixels) -> np.ndarray:
    """Coerce a sequence of RGB triples (or an (N, 3) array) to an int array."""
    array = np.asarray(pixels, dtype=np.int64)
    if array.size == 0:
        return np.empty((0, 3), dtype=np.int64)
    return array.reshape(-1, 3)


def load_pixels(image_path: str, max_size: Optional[int] = DEFAULT_MAX_SIZE) -> np.ndarray:
    """
    Load an image as an (N, 3) uint8 array of opaque pixels.

    The image is downscaled so its longest edge is at most max_size (pass
    None to keep full resolution). Pixels with alpha below MIN_ALPHA are
    dropped.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    width, height = img.size
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ValueError(
            f"Image dimensions {width}x{height} exceed maximum "
            f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ValueError(
            f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
        )

    img = img.convert('RGBA')

    if max_size is not None and max(width, height) > max_size:
        if width > height:
            new_w, new_h = max_size, height * max_size / width
        else:
            new_w, new_h = width * max_size / height, max_size
        size = (max(1, round_half_up(new_w)), max(1, round_half_up(new_h)))
        img = img.resize(size, Image.Resampling.BILINEAR)
        logger.debug("Downscaled %dx%d to %dx%d", width, height, *size)

    rgba = np.array(img).reshape(-1, 4)
    opaque = rgba[rgba[:, 3] >= MIN_ALPHA]
    logger.debug("Loaded %d opaque pixels of %d", len(opaque), len(rgba))

    return opaque[:, :3]


# =============================================================================
# Median Cut
# =============================================================================

def _channel_ranges(bucket: np.ndarray) -> np.ndarray:
    return bucket.max(axis=0) - bucket.min(axis=0)


def _is_splittable(bucket: np.ndarray) -> bool:
    """A bucket can split if it has 2+ pixels that are not all identical."""
    return len(bucket) > 1 and bool(_channel_ranges(bucket).max() > 0)


def _bucket_swatch(bucket: np.ndarray) -> Swatch:
    n = len(bucket)
    r, g, b = bucket.sum(axis=0)
    return Swatch(
        r=round_half_up(r / n),
        g=round_half_up(g / n),
        b=round_half_up(b / n),
        population=n,
    )


def median_cut(pixels, target_colors: int) -> list:
    """
    Quantize pixels into at most target_colors swatches.

    The most populous splittable bucket is always the one split, along its
    widest channel at the median index, so detail follows population.

    Args:
        pixels: Sequence of (r, g, b) triples or an (N, 3) array
        target_colors: Maximum number of swatches

    Returns:
        List of Swatch, population = bucket size, flags unset.
    """
    pixels = as_pixel_array(pixels)
    if len(pixels) == 0 or target_colors < 1:
        return []

    buckets = [pixels]

    while len(buckets) < target_colors:
        splittable = [i for i, bucket in enumerate(buckets) if _is_splittable(bucket)]
        if not splittable:
            break

        # max() keeps the first of equally large buckets
        index = max(splittable, key=lambda i: len(buckets[i]))
        bucket = buckets[index]

        channel = int(np.argmax(_channel_ranges(bucket)))
        bucket = bucket[np.argsort(bucket[:, channel], kind='stable')]

        median = len(bucket) // 2
        buckets[index:index + 1] = [bucket[:median], bucket[median:]]

    return [_bucket_swatch(bucket) for bucket in buckets if len(bucket) > 0]


# =============================================================================
# Duplicate Removal
# =============================================================================

def _nearest(color: Swatch, swatches: list) -> tuple:
    """Return (index, distance) of the nearest swatch, (-1, inf) if empty."""
    best_index, best_dist = -1, float('inf')
    for index, existing in enumerate(swatches):
        dist = distance(color.rgb, existing.rgb)
        if dist < best_dist:
            best_index, best_dist = index, dist
    return best_index, best_dist


def remove_duplicates(colors: list, threshold: float = 25) -> list:
    """
    Merge near-duplicate swatches.

    A swatch within threshold of its nearest kept swatch is merged into it.
    The more saturated of the two keeps its color, so rare brand colors are
    not averaged away; populations are always summed.
    """
    merged = []

    for color in colors:
        index, dist = _nearest(color, merged)

        if dist >= threshold:
            merged.append(color)
            continue

        existing = merged[index]
        combined = existing.population + color.population
        if saturation(*color.rgb) > saturation(*existing.rgb):
            merged[index] = replace(color, population=combined)
        else:
            merged[index] = replace(existing, population=combined)

    return merged
