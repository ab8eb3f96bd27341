#!/usr/bin/env python3
"""
WCAG contrast checks for derived tokens.

ensure_contrast() is the one "guarantee contrast" rule shared by every text
token; the background helpers re-check a bg once the text tokens exist.
"""

from dataclasses import dataclass

from color_math import contrast_ratio, hex_to_rgb


# =============================================================================
# Constants
# =============================================================================

TEXT_MIN_CONTRAST = 4.5  # WCAG AA body text
MUTED_MIN_CONTRAST = 3.0  # WCAG AA large/secondary text

# Background candidates must sit at the right luminance extreme for the mode
LIGHT_BG_MIN_LUMINANCE = 0.65
DARK_BG_MAX_LUMINANCE = 0.15


@dataclass
class ContrastCheck:
    """One foreground/background pair and how it scores."""
    label: str
    ratio: float
    required: float
    passed: bool
    warn: bool = False


def hex_contrast(hex1: str, hex2: str) -> float:
    """Contrast ratio between two #rrggbb colors."""
    return contrast_ratio(hex_to_rgb(hex1), hex_to_rgb(hex2))


def ensure_contrast(candidate_hex, background_rgb: tuple, min_contrast: float,
                    fallback_first: str, fallback_second: str) -> str:
    """
    Return a color that reaches min_contrast against background_rgb if possible.

    The candidate wins if it passes; otherwise the first fallback that passes;
    otherwise whichever fallback has the higher ratio.
    """
    candidate_rgb = hex_to_rgb(candidate_hex)
    if candidate_rgb is not None and contrast_ratio(candidate_rgb, background_rgb) >= min_contrast:
        return candidate_hex

    first_contrast = contrast_ratio(hex_to_rgb(fallback_first), background_rgb)
    second_contrast = contrast_ratio(hex_to_rgb(fallback_second), background_rgb)

    if first_contrast >= min_contrast:
        return fallback_first
    if second_contrast >= min_contrast:
        return fallback_second
    return fallback_first if first_contrast > second_contrast else fallback_second


# =============================================================================
# Background Validation
# =============================================================================

def background_passes(bg_rgb: tuple, heading: str, text: str, muted_text: str) -> bool:
    """True if heading and text reach 4.5:1 and muted text 3:1 on bg_rgb."""
    if contrast_ratio(hex_to_rgb(heading), bg_rgb) < TEXT_MIN_CONTRAST:
        return False
    if contrast_ratio(hex_to_rgb(text), bg_rgb) < TEXT_MIN_CONTRAST:
        return False
    return contrast_ratio(hex_to_rgb(muted_text), bg_rgb) >= MUTED_MIN_CONTRAST


def passing_backgrounds(palette: list, mode: str, heading: str, text: str, muted_text: str) -> list:
    """Palette colors at the mode's luminance extreme that keep all text readable."""
    if mode == 'light':
        in_range = [c for c in palette if c.luminance >= LIGHT_BG_MIN_LUMINANCE]
    else:
        in_range = [c for c in palette if c.luminance <= DARK_BG_MAX_LUMINANCE]

    passing = [c for c in in_range if background_passes(c.rgb, heading, text, muted_text)]
    return sorted(passing, key=lambda c: c.luminance, reverse=(mode == 'light'))


def background_candidates(palette: list, tokens, mode: str) -> list:
    """
    Palette colors usable as the mode's background with the given text tokens.

    Args:
        palette: Analyzed colors (need rgb and luminance)
        tokens: TokenSet whose heading/text/muted_text must stay readable
        mode: 'light' or 'dark'

    Returns:
        Passing colors, most extreme luminance first (lightest for light mode,
        darkest for dark mode).
    """
    return passing_backgrounds(palette, mode, tokens.heading, tokens.text, tokens.muted_text)


# =============================================================================
# Reporting
# =============================================================================

def contrast_checks(tokens) -> list:
    """Check the text and button pairs a rendered theme actually shows."""
    checks = []

    def add(label, foreground, background, required, warn_below=None):
        ratio = hex_contrast(foreground, background)
        warn = warn_below is not None and required <= ratio < warn_below
        checks.append(ContrastCheck(label, ratio, required, ratio >= required, warn))

    # Main preview area
    add('heading/bg', tokens.heading, tokens.bg, TEXT_MIN_CONTRAST)
    add('text/bg', tokens.text, tokens.bg, TEXT_MIN_CONTRAST)
    add('mutedText/bg', tokens.muted_text, tokens.bg, MUTED_MIN_CONTRAST,
        warn_below=TEXT_MIN_CONTRAST)

    # Cards
    add('heading/surface', tokens.heading, tokens.surface, TEXT_MIN_CONTRAST)
    add('text/surface', tokens.text, tokens.surface, TEXT_MIN_CONTRAST)

    # Primary button
    add('onPrimary/primary', tokens.on_primary, tokens.primary, TEXT_MIN_CONTRAST)

    return checks
