#!/usr/bin/env python3
"""
Derive light and dark design tokens from a palette.

Each token is picked by, in order: a user lock, the best palette color inside
the token's luminance/saturation band, or a fixed fallback. Tokens are chosen
in dependency order (bg → surface → border → heading/text → muted text → bg
re-check → primary → onPrimary) and every text token is passed through
ensure_contrast(), so the result is complete and readable for any palette.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Optional

from color_math import (
    BLACK, WHITE, contrast_ratio, hex_to_rgb, hue_similar, luminance,
    normalize_hex, rgb_to_hsl,
)
from contrast import TEXT_MIN_CONTRAST, background_passes, ensure_contrast, passing_backgrounds
from extract_colors import AnalyzedColor, analyze_palette

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

LIGHT = 'light'
DARK = 'dark'
MODES = (LIGHT, DARK)

# Canonical export names, in export order, and the matching TokenSet fields
TOKEN_NAMES = ('bg', 'surface', 'border', 'text', 'heading', 'mutedText', 'primary', 'onPrimary')
TOKEN_FIELDS = ('bg', 'surface', 'border', 'text', 'heading', 'muted_text', 'primary', 'on_primary')

# Text
TEXT_MAX_SATURATION = 0.25
MUTED_COMFORT_CONTRAST = 5.5  # Above the AA minimum for comfortable reading

# Primary
PRIMARY_MIN_SATURATION = 0.20
PRIMARY_RELAXED_SATURATION = 0.15
PRIMARY_MIN_CONTRAST = 2.5
PRIMARY_RELAXED_CONTRAST = 2.0
PRIMARY_TARGET_LUMINANCE = 0.45
VIBRANT_BONUS = 2.5

# Brand fidelity: swap a dull primary for a more saturated same-hue palette color
VARIANT_HUE_RANGE = 35
VARIANT_LIGHTNESS = (0.25, 0.75)
VARIANT_SATURATION_GAIN = 1.2
VARIANT_MIN_CONTRAST = 3.0
DARK_VARIANT_MIN_LUMINANCE = 0.2

# onPrimary
ON_PRIMARY_MIN_CONTRAST = 4.5
ALTERNATE_PRIMARY_MIN_SATURATION = 0.2


# =============================================================================
# Data Model
# =============================================================================

@dataclass(frozen=True)
class TokenSet:
    """The eight semantic colors of one theme, as #rrggbb strings."""
    bg: str
    surface: str
    border: str
    text: str
    heading: str
    muted_text: str
    primary: str
    on_primary: str

    def as_dict(self) -> dict:
        """Export names in canonical order."""
        return {name: getattr(self, field) for name, field in zip(TOKEN_NAMES, TOKEN_FIELDS)}

    @classmethod
    def from_dict(cls, data: dict) -> 'TokenSet':
        return cls(**{field: data[name] for name, field in zip(TOKEN_NAMES, TOKEN_FIELDS)})


@dataclass(frozen=True)
class ThemeTokens:
    """Light and dark token sets derived from one palette."""
    light: TokenSet
    dark: TokenSet

    def for_mode(self, mode: str) -> TokenSet:
        return self.light if mode == LIGHT else self.dark

    def as_dict(self) -> dict:
        return {LIGHT: self.light.as_dict(), DARK: self.dark.as_dict()}

    @classmethod
    def from_dict(cls, data: dict) -> 'ThemeTokens':
        return cls(light=TokenSet.from_dict(data[LIGHT]), dark=TokenSet.from_dict(data[DARK]))


def _same_color(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return (normalize_hex(a) or a.lower()) == (normalize_hex(b) or b.lower())


@dataclass(frozen=True)
class Locks:
    """User-pinned colors. Each is a hex string or None."""
    primary: Optional[str] = None
    light_bg: Optional[str] = None
    dark_bg: Optional[str] = None

    def background(self, mode: str) -> Optional[str]:
        return self.light_bg if mode == LIGHT else self.dark_bg

    def is_primary(self, hex_color: str) -> bool:
        return _same_color(self.primary, hex_color)

    def toggle_primary(self, hex_color: str) -> 'Locks':
        """Lock hex_color as primary, or unlock it if it is already the lock."""
        return replace(self, primary=None if self.is_primary(hex_color) else hex_color)

    def toggle_background(self, mode: str, hex_color: str) -> 'Locks':
        """Lock hex_color as the mode's bg, or unlock it if it is already the lock."""
        field = 'light_bg' if mode == LIGHT else 'dark_bg'
        current = getattr(self, field)
        return replace(self, **{field: None if _same_color(current, hex_color) else hex_color})


# =============================================================================
# Per-Mode Rules
# =============================================================================

def _light_penalty(lum: float) -> float:
    """Light mode: washed-out colors cost a little, murky ones a lot."""
    too_light = 2.0 if lum > 0.85 else 0.8 if lum > 0.75 else 0.3 if lum > 0.65 else 0
    too_dark = 3.0 if lum < 0.15 else 1.0 if lum < 0.25 else 0
    return too_light + too_dark


def _dark_penalty(lum: float) -> float:
    """Dark mode: both extremes cost the same."""
    too_dark = 1.5 if lum < 0.15 else 0.5 if lum < 0.25 else 0
    too_light = 1.5 if lum > 0.8 else 0.5 if lum > 0.7 else 0
    return too_dark + too_light


@dataclass(frozen=True)
class ThemeRules:
    """Bands, fallbacks and scoring for one theme."""
    mode: str
    heading_darker: bool  # Heading sits further from the background than text
    is_bg: Callable  # (color) -> bool
    is_surface: Callable  # (color, bg_luminance) -> bool
    is_border: Callable  # (color, surface_luminance) -> bool
    text_score: Callable  # (color) -> float
    luminance_penalty: Callable  # (luminance) -> float
    muted_contrast: tuple  # [low, high) vs surface
    muted_target_luminance: float
    primary_luminance: tuple  # Inclusive range for the relaxed strategies
    fallback_bg: str
    fallback_surface: str
    fallback_border: str
    fallback_primary: str
    heading_fallbacks: tuple
    text_fallbacks: tuple
    muted_fallbacks: tuple
    distinct_pair: tuple  # (heading, text) when both resolve to one color


LIGHT_RULES = ThemeRules(
    mode=LIGHT,
    heading_darker=True,
    is_bg=lambda c: c.luminance > 0.75 and c.saturation < 0.20,
    is_surface=lambda c, bg_lum: c.luminance > 0.85 and c.saturation < 0.12,
    is_border=lambda c, surface_lum: (c.luminance < surface_lum and 0.5 < c.luminance < 0.95
                                      and c.saturation < 0.15),
    text_score=lambda c: (1 - c.luminance) * 2 - c.saturation * 2,
    luminance_penalty=_light_penalty,
    muted_contrast=(4.0, 7.0),
    muted_target_luminance=0.4,
    primary_luminance=(0.15, 0.85),
    fallback_bg='#f7f7f7',
    fallback_surface='#ffffff',
    fallback_border='#e0e0e0',
    fallback_primary='#0071e3',
    heading_fallbacks=('#1a1a1a', '#000000'),
    text_fallbacks=('#333333', '#111111'),
    muted_fallbacks=('#555555', '#444444'),
    distinct_pair=('#1a1a1a', '#444444'),
)

DARK_RULES = ThemeRules(
    mode=DARK,
    heading_darker=False,
    is_bg=lambda c: c.luminance < 0.06 and c.saturation < 0.20,
    is_surface=lambda c, bg_lum: bg_lum < c.luminance < 0.05 and c.saturation < 0.15,
    is_border=lambda c, surface_lum: surface_lum < c.luminance < 0.35 and c.saturation < 0.20,
    text_score=lambda c: c.luminance * 2 - c.saturation * 2,
    luminance_penalty=_dark_penalty,
    muted_contrast=(4.0, 10.0),
    muted_target_luminance=0.5,
    primary_luminance=(0.2, 0.8),
    fallback_bg='#0b0b0b',
    fallback_surface='#141414',
    fallback_border='#2a2a2a',
    fallback_primary='#409cff',
    heading_fallbacks=('#ffffff', '#e8e8e8'),
    text_fallbacks=('#f0f0f0', '#d4d4d4'),
    muted_fallbacks=('#d0d0d0', '#b8b8b8'),
    distinct_pair=('#ffffff', '#c0c0c0'),
)

RULES = {LIGHT: LIGHT_RULES, DARK: DARK_RULES}


# =============================================================================
# Primary Strategies
# =============================================================================

@dataclass(frozen=True)
class PrimaryStrategy:
    """One step of the primary cascade: who may compete, and how they rank."""
    name: str
    admits: Callable  # (color, contrast_vs_surface) -> bool
    score: Callable  # (color, contrast_vs_surface) -> float


def primary_score(color: AnalyzedColor, contrast: float, rules: ThemeRules) -> float:
    """Favor saturated, mid-luminance, recovered accent colors."""
    return (
        color.saturation * 4
        + (VIBRANT_BONUS if color.is_vibrant else 0)
        + (1 - abs(color.luminance - PRIMARY_TARGET_LUMINANCE))
        + math.log(color.population + 1) / 12
        + min(contrast / 10, 0.5)
        - rules.luminance_penalty(color.luminance)
    )


def primary_strategies(rules: ThemeRules) -> list:
    """The ordered primary cascade for a theme; the first non-empty step wins."""
    low, high = rules.primary_luminance

    def relaxed(min_contrast):
        return lambda c, contrast: (c.saturation >= PRIMARY_RELAXED_SATURATION
                                    and contrast >= min_contrast
                                    and low <= c.luminance <= high)

    return [
        PrimaryStrategy(
            'scored',
            lambda c, contrast: c.saturation >= PRIMARY_MIN_SATURATION and contrast >= PRIMARY_MIN_CONTRAST,
            lambda c, contrast: primary_score(c, contrast, rules),
        ),
        PrimaryStrategy(
            'relaxed saturation',
            relaxed(PRIMARY_MIN_CONTRAST),
            lambda c, contrast: c.saturation,
        ),
        PrimaryStrategy(
            'relaxed contrast',
            relaxed(PRIMARY_RELAXED_CONTRAST),
            lambda c, contrast: c.saturation,
        ),
    ]


# =============================================================================
# Token Selection
# =============================================================================

def _best_by_population(analyzed: list, predicate) -> Optional[AnalyzedColor]:
    matches = [c for c in analyzed if predicate(c)]
    if not matches:
        return None
    return max(matches, key=lambda c: c.population)


def _lum(hex_color: str) -> float:
    return luminance(*hex_to_rgb(hex_color))


def resolve_lock(hex_color: Optional[str], analyzed: list) -> Optional[AnalyzedColor]:
    """Palette entry with the locked hex, else the parsed hex. None if unusable."""
    if not hex_color:
        return None

    normalized = normalize_hex(hex_color)
    if normalized is None:
        logger.warning("Ignoring unparseable lock %r", hex_color)
        return None

    for color in analyzed:
        if color.hex == normalized:
            return color
    return AnalyzedColor.from_rgb(hex_to_rgb(normalized))


def _select_text(analyzed: list, rules: ThemeRules, surface_rgb: tuple) -> tuple:
    """Pick (heading, text): the two most text-like colors readable on surface."""
    candidates = [
        c for c in analyzed
        if c.saturation <= TEXT_MAX_SATURATION
        and contrast_ratio(c.rgb, surface_rgb) >= TEXT_MIN_CONTRAST
    ]
    ranked = sorted(candidates, key=rules.text_score, reverse=True)

    heading_pick = ranked[0].hex if ranked else None
    text_pick = next((c.hex for c in ranked if c.hex != heading_pick), heading_pick)

    heading = ensure_contrast(heading_pick, surface_rgb, TEXT_MIN_CONTRAST, *rules.heading_fallbacks)
    text = ensure_contrast(text_pick, surface_rgb, TEXT_MIN_CONTRAST, *rules.text_fallbacks)

    heading_lum, text_lum = _lum(heading), _lum(text)
    inverted = text_lum < heading_lum if rules.heading_darker else text_lum > heading_lum
    if inverted:
        heading, text = text, heading

    if heading == text:
        heading, text = rules.distinct_pair

    return heading, text


def _select_muted(analyzed: list, rules: ThemeRules, surface_rgb: tuple,
                  heading: str, text: str) -> str:
    """Pick muted text: dimmer than text, still comfortably readable."""
    low, high = rules.muted_contrast
    text_lum = _lum(text)

    def admits(c):
        if c.saturation > TEXT_MAX_SATURATION:
            return False
        if not low <= contrast_ratio(c.rgb, surface_rgb) < high:
            return False
        dimmer = c.luminance > text_lum if rules.heading_darker else c.luminance < text_lum
        return dimmer and c.hex not in (heading, text)

    candidates = [c for c in analyzed if admits(c)]
    best = None
    if candidates:
        best = max(candidates, key=lambda c: (1 - abs(c.luminance - rules.muted_target_luminance))
                   - c.saturation).hex

    return ensure_contrast(best, surface_rgb, MUTED_COMFORT_CONTRAST, *rules.muted_fallbacks)


def _revalidate_background(analyzed: list, rules: ThemeRules, bg: str,
                           heading: str, text: str, muted_text: str) -> str:
    """Replace bg if the text tokens chosen after it are not readable on it."""
    if background_passes(hex_to_rgb(bg), heading, text, muted_text):
        return bg

    replacements = passing_backgrounds(analyzed, rules.mode, heading, text, muted_text)
    if replacements:
        logger.debug("%s bg %s fails text contrast, using %s", rules.mode, bg, replacements[0].hex)
        return replacements[0].hex

    logger.debug("%s bg %s fails text contrast, using fallback", rules.mode, bg)
    return rules.fallback_bg


def _vibrant_variant(color: AnalyzedColor, analyzed: list, rules: ThemeRules,
                     surface_rgb: tuple) -> AnalyzedColor:
    """Swap color for a clearly more saturated same-hue palette color, if readable."""
    hue, best_sat, _ = rgb_to_hsl(*color.rgb)
    best = color

    for candidate in analyzed:
        h, s, l = rgb_to_hsl(*candidate.rgb)
        if hue_similar(hue, h, VARIANT_HUE_RANGE) and s > best_sat \
                and VARIANT_LIGHTNESS[0] < l < VARIANT_LIGHTNESS[1]:
            best, best_sat = candidate, s

    if best.saturation <= color.saturation * VARIANT_SATURATION_GAIN:
        return color
    if contrast_ratio(best.rgb, surface_rgb) < VARIANT_MIN_CONTRAST:
        return color
    if rules.mode == DARK and best.luminance <= DARK_VARIANT_MIN_LUMINANCE:
        return color

    logger.debug("%s primary %s -> more vibrant %s", rules.mode, color.hex, best.hex)
    return best


def _select_primary(analyzed: list, rules: ThemeRules, surface_rgb: tuple,
                    excluded: tuple, light_primary: Optional[AnalyzedColor]) -> AnalyzedColor:
    """Run the primary cascade; never returns None."""
    pool = [c for c in analyzed if c.hex not in excluded]
    chosen = None

    for strategy in primary_strategies(rules):
        scored = []
        for color in pool:
            contrast = contrast_ratio(color.rgb, surface_rgb)
            if strategy.admits(color, contrast):
                scored.append((strategy.score(color, contrast), color))
        if scored:
            chosen = max(scored, key=lambda pair: pair[0])[1]
            logger.debug("%s primary %s via %s", rules.mode, chosen.hex, strategy.name)
            break

    if chosen is None and light_primary is not None:
        if contrast_ratio(light_primary.rgb, surface_rgb) >= PRIMARY_MIN_CONTRAST:
            chosen = light_primary
            logger.debug("%s primary reuses light primary %s", rules.mode, chosen.hex)

    if chosen is None:
        logger.debug("%s primary falls back to %s", rules.mode, rules.fallback_primary)
        return AnalyzedColor.from_rgb(hex_to_rgb(rules.fallback_primary))

    if not chosen.is_vibrant:
        chosen = _vibrant_variant(chosen, analyzed, rules, surface_rgb)
    return chosen


def _select_on_primary(analyzed: list, rules: ThemeRules, primary: str, locked: bool) -> tuple:
    """Return (primary, on_primary); light mode may swap an unreadable primary."""
    rgb = hex_to_rgb(primary)
    on_white = contrast_ratio(rgb, WHITE)
    on_black = contrast_ratio(rgb, BLACK)

    if on_white >= ON_PRIMARY_MIN_CONTRAST:
        return primary, '#ffffff'
    if on_black >= ON_PRIMARY_MIN_CONTRAST:
        return primary, '#000000'

    if rules.mode == LIGHT and not locked:
        for color in analyzed:
            white = contrast_ratio(color.rgb, WHITE)
            black = contrast_ratio(color.rgb, BLACK)
            if (white >= ON_PRIMARY_MIN_CONTRAST or black >= ON_PRIMARY_MIN_CONTRAST) \
                    and color.saturation > ALTERNATE_PRIMARY_MIN_SATURATION:
                return color.hex, '#ffffff' if white >= ON_PRIMARY_MIN_CONTRAST else '#000000'
        return rules.fallback_primary, '#ffffff'

    return primary, '#ffffff' if on_white > on_black else '#000000'


def derive_theme(analyzed: list, rules: ThemeRules, locks: Locks,
                 light_primary: Optional[AnalyzedColor] = None) -> TokenSet:
    """Derive one theme's tokens from an analyzed palette."""
    # Background
    bg_color = resolve_lock(locks.background(rules.mode), analyzed)
    bg_locked = bg_color is not None
    if not bg_locked:
        bg_color = _best_by_population(analyzed, rules.is_bg)
    bg = bg_color.hex if bg_color else rules.fallback_bg
    bg_lum = _lum(bg)

    # Surface
    surface_color = _best_by_population(
        analyzed,
        lambda c: rules.is_surface(c, bg_lum) and (bg_color is None or c.hex != bg_color.hex),
    )
    surface = surface_color.hex if surface_color else rules.fallback_surface
    if surface == bg:
        surface = rules.fallback_surface
    surface_rgb = hex_to_rgb(surface)
    surface_lum = luminance(*surface_rgb)

    # Border
    border_color = _best_by_population(
        analyzed,
        lambda c: rules.is_border(c, surface_lum) and c.hex not in (bg, surface),
    )
    border = border_color.hex if border_color else rules.fallback_border

    # Text
    heading, text = _select_text(analyzed, rules, surface_rgb)
    muted_text = _select_muted(analyzed, rules, surface_rgb, heading, text)

    if not bg_locked:
        bg = _revalidate_background(analyzed, rules, bg, heading, text, muted_text)

    # Primary
    primary_color = resolve_lock(locks.primary, analyzed)
    primary_locked = primary_color is not None
    if not primary_locked:
        primary_color = _select_primary(analyzed, rules, surface_rgb,
                                        (heading, text, muted_text), light_primary)

    primary, on_primary = _select_on_primary(analyzed, rules, primary_color.hex, primary_locked)

    return TokenSet(
        bg=bg,
        surface=surface,
        border=border,
        text=text,
        heading=heading,
        muted_text=muted_text,
        primary=primary,
        on_primary=on_primary,
    )


def derive_tokens(palette: list, locks: Optional[Locks] = None) -> ThemeTokens:
    """
    Derive light and dark tokens for a palette.

    A pure function of its arguments: callers re-invoke it whenever the
    palette or a lock changes.

    Args:
        palette: Swatches, ordered as assembled or as saved
        locks: Optional user-pinned colors

    Returns:
        ThemeTokens with complete light and dark TokenSets.
    """
    locks = locks or Locks()
    analyzed = analyze_palette(palette)

    light = derive_theme(analyzed, LIGHT_RULES, locks)

    # Dark mode may fall back to light's primary, but only a real palette color
    reusable = next((c for c in analyzed if c.hex == light.primary), None)
    dark = derive_theme(analyzed, DARK_RULES, locks, light_primary=reusable)

    return ThemeTokens(light=light, dark=dark)
