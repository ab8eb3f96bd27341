#!/usr/bin/env python3
"""
Color math shared by the palette and token stages.

All functions are pure. Scalar forms work on 0-255 channel values; the array
forms apply the same arithmetic to an (N, 3) pixel array so the accent passes
see exactly the numbers the scalar checks see.
"""

import math
import re
from typing import Optional

import numpy as np


# =============================================================================
# Constants
# =============================================================================

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)

HEX_PATTERN = re.compile(r'#?([0-9a-fA-F]{2})([0-9a-fA-F]{2})([0-9a-fA-F]{2})')


# =============================================================================
# Conversion
# =============================================================================

def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive values (np.round rounds to even)."""
    return int(math.floor(value + 0.5))


def rgb_to_hex(r: float, g: float, b: float) -> str:
    """Convert RGB (0-255) to a lower-case #rrggbb string."""
    return '#' + ''.join(f"{round_half_up(c):02x}" for c in (r, g, b))


def hex_to_rgb(hex_color: Optional[str]) -> Optional[tuple]:
    """Parse #rrggbb (hash optional, any case). Returns None if malformed."""
    if not isinstance(hex_color, str):
        return None
    match = HEX_PATTERN.fullmatch(hex_color.strip())
    if match is None:
        return None
    return tuple(int(part, 16) for part in match.groups())


def normalize_hex(hex_color: Optional[str]) -> Optional[str]:
    """Return the canonical #rrggbb form, or None if it doesn't parse."""
    rgb = hex_to_rgb(hex_color)
    if rgb is None:
        return None
    return rgb_to_hex(*rgb)


def rgb_to_hsl(r: float, g: float, b: float) -> tuple:
    """Convert RGB (0-255) to (hue 0-360, saturation 0-1, lightness 0-1)."""
    r, g, b = r / 255, g / 255, b / 255
    mx = max(r, g, b)
    mn = min(r, g, b)
    l = (mx + mn) / 2

    if mx == mn:
        return 0.0, 0.0, l

    d = mx - mn
    s = d / (2 - mx - mn) if l > 0.5 else d / (mx + mn)
    if mx == r:
        h = ((g - b) / d + (6 if g < b else 0)) / 6
    elif mx == g:
        h = ((b - r) / d + 2) / 6
    else:
        h = ((r - g) / d + 4) / 6

    return h * 360, s, l


def rgb_to_hsl_array(rgb: np.ndarray) -> tuple:
    """Vectorized rgb_to_hsl for an (N, 3) array. Returns (h, s, l) arrays."""
    rgb_norm = rgb.astype(np.float64) / 255
    r, g, b = rgb_norm[:, 0], rgb_norm[:, 1], rgb_norm[:, 2]
    mx = rgb_norm.max(axis=1)
    mn = rgb_norm.min(axis=1)
    l = (mx + mn) / 2
    d = mx - mn
    gray = d == 0

    with np.errstate(divide='ignore', invalid='ignore'):
        s = np.where(l > 0.5, d / (2 - mx - mn), d / (mx + mn))
        h_r = ((g - b) / d + np.where(g < b, 6, 0)) / 6
        h_g = ((b - r) / d + 2) / 6
        h_b = ((r - g) / d + 4) / 6

    # Same precedence as the scalar form: red wins ties, then green
    h = np.where(mx == r, h_r, np.where(mx == g, h_g, h_b))
    h = np.where(gray, 0.0, h) * 360
    s = np.where(gray, 0.0, s)

    return h, s, l


# =============================================================================
# Metrics
# =============================================================================

def _linear_channel(c: float) -> float:
    c = c / 255
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def luminance(r: float, g: float, b: float) -> float:
    """WCAG 2.1 relative luminance (0 black, 1 white)."""
    return (0.2126 * _linear_channel(r)
            + 0.7152 * _linear_channel(g)
            + 0.0722 * _linear_channel(b))


def contrast_ratio(rgb1: tuple, rgb2: tuple) -> float:
    """WCAG contrast ratio between two RGB triples, in [1, 21]."""
    l1 = luminance(*rgb1[:3])
    l2 = luminance(*rgb2[:3])
    lighter = max(l1, l2)
    darker = min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def saturation(r: float, g: float, b: float) -> float:
    """HSL saturation (0-1)."""
    mx = max(r, g, b) / 255
    mn = min(r, g, b) / 255
    l = (mx + mn) / 2

    if mx == mn:
        return 0.0

    d = mx - mn
    return d / (2 - mx - mn) if l > 0.5 else d / (mx + mn)


def circular_hue_distance(hue1: float, hue2: float) -> float:
    """Compute minimum angular distance between two hues (0-180)."""
    diff = abs(hue1 - hue2)
    return min(diff, 360 - diff)


def hue_similar(hue1: float, hue2: float, threshold: float = 30) -> bool:
    """True if two hues are closer than threshold degrees around the wheel."""
    return circular_hue_distance(hue1, hue2) < threshold


def distance(c1: tuple, c2: tuple) -> float:
    """Redmean-weighted RGB distance, a cheap approximation of perceived difference."""
    r_mean = (c1[0] + c2[0]) / 2
    dr = c1[0] - c2[0]
    dg = c1[1] - c2[1]
    db = c1[2] - c2[2]

    return math.sqrt(
        (2 + r_mean / 256) * dr * dr
        + 4 * dg * dg
        + (2 + (255 - r_mean) / 256) * db * db
    )
