#!/usr/bin/env python3
"""
Unified image-to-design-tokens pipeline.

Extracts a palette from an image and derives accessible light and dark theme
tokens from it. Four stages: Pixel Source → Palette Assembly → Token
Derivation → Render
"""

import json
import logging
from typing import Optional

from accent_colors import extract_brand_colors, extract_vibrant_colors
from contrast import background_candidates, contrast_checks
from extract_colors import (
    DEFAULT_MAX_SIZE, analyze_palette, as_pixel_array, load_pixels, median_cut,
    remove_duplicates,
)
from tokens import MODES, TOKEN_FIELDS, TOKEN_NAMES, Locks, ThemeTokens, derive_tokens

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

QUANTIZE_COLORS = 20  # Median cut target before deduplication
PALETTE_SIZE = 16  # Swatches kept after ranking

# Dedup thresholds (redmean distance). Each accent pass is followed by a looser
# merge so near-identical accent variants collapse into one.
INITIAL_DEDUP_THRESHOLD = 30
VIBRANT_DEDUP_THRESHOLD = 45
BRAND_DEDUP_THRESHOLD = 40

# Ranking boosts so recovered accents outrank large neutral areas
BRAND_BOOST = 2.5
VIBRANT_BOOST = 2.0

CSS_PREFIX = 'dt'
CSS_NAMES = {
    'bg': 'bg',
    'surface': 'surface',
    'border': 'border',
    'text': 'text',
    'heading': 'heading',
    'mutedText': 'muted-text',
    'primary': 'primary',
    'onPrimary': 'on-primary',
}


# =============================================================================
# Stage 2: Palette Assembly
# =============================================================================

def class_boost(swatch) -> float:
    if swatch.is_brand_color:
        return BRAND_BOOST
    if swatch.is_vibrant:
        return VIBRANT_BOOST
    return 1.0


def merge_accents(palette: list, accents: list, threshold: float) -> list:
    """Append recovered accents and re-merge. With no accents the re-merge is skipped."""
    if not accents:
        return palette
    return remove_duplicates(palette + accents, threshold)


def rank_palette(palette: list) -> list:
    """Order by boosted population, largest first (stable for ties)."""
    return sorted(palette, key=lambda s: s.population * class_boost(s), reverse=True)


def assemble_palette(pixels) -> list:
    """
    Stage 2: Build the final palette from raw pixels.

    Median cut → dedup → vibrant accents → dedup → brand accents → dedup →
    rank → truncate. Accent passes scan the raw pixels, not the palette.

    Returns:
        Up to PALETTE_SIZE swatches, most important first.
    """
    pixels = as_pixel_array(pixels)

    palette = median_cut(pixels, QUANTIZE_COLORS)
    palette = remove_duplicates(palette, INITIAL_DEDUP_THRESHOLD)
    logger.debug("Quantized %d pixels to %d colors", len(pixels), len(palette))

    palette = merge_accents(palette, extract_vibrant_colors(pixels, palette), VIBRANT_DEDUP_THRESHOLD)
    palette = merge_accents(palette, extract_brand_colors(pixels, palette), BRAND_DEDUP_THRESHOLD)

    return rank_palette(palette)[:PALETTE_SIZE]


# =============================================================================
# Stage 4: Render
# =============================================================================

def _flags(swatch) -> str:
    if swatch.is_brand_color:
        return ' [brand]'
    if swatch.is_vibrant:
        return ' [vibrant]'
    return ''


def render(palette: list, tokens: ThemeTokens, locks: Optional[Locks] = None) -> str:
    """Stage 4: Render palette and tokens as prose."""
    locks = locks or Locks()
    lines = []

    total = sum(s.population for s in palette)
    lines.append(f"PALETTE: {len(palette)} colors")
    lines.append("")
    for swatch in palette:
        coverage = swatch.population / total * 100 if total else 0
        locked = ' (locked primary)' if locks.is_primary(swatch.hex) else ''
        lines.append(f"  {swatch.hex} | RGB{swatch.rgb} | {swatch.population:,} px ({coverage:.1f}%)"
                     f"{_flags(swatch)}{locked}")
    lines.append("")

    analyzed = analyze_palette(palette)
    for mode in MODES:
        token_set = tokens.for_mode(mode)
        lines.append(f"{mode.upper()} TOKENS:")
        for name, field in zip(TOKEN_NAMES, TOKEN_FIELDS):
            lines.append(f"  {name:<10} {getattr(token_set, field)}")

        lines.append("  Contrast:")
        for check in contrast_checks(token_set):
            status = 'pass' if check.passed else 'FAIL'
            if check.warn:
                status = 'pass (large text only)'
            lines.append(f"    {check.label:<18} {check.ratio:5.2f}:1 "
                         f"(needs {check.required:g}) {status}")

        candidates = background_candidates(analyzed, token_set, mode)
        if candidates:
            lines.append(f"  Background options: {', '.join(c.hex for c in candidates)}")
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_css(tokens: ThemeTokens, prefix: str = CSS_PREFIX) -> str:
    """Render tokens as CSS custom properties: light on :root, dark on a theme selector."""
    blocks = []
    for selector, token_set in ((':root', tokens.light), ('[data-theme="dark"]', tokens.dark)):
        lines = [f"{selector} {{"]
        for name, value in token_set.as_dict().items():
            lines.append(f"  --{prefix}-{CSS_NAMES[name]}: {value};")
        lines.append("}")
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks) + "\n"


def render_json(palette: list, tokens: ThemeTokens) -> str:
    return json.dumps({
        'palette': [swatch.to_dict() for swatch in palette],
        'tokens': tokens.as_dict(),
    }, indent=2)


# =============================================================================
# Main Pipeline
# =============================================================================

def run_pipeline(image_path: str, locks: Optional[Locks] = None,
                 max_size: Optional[int] = DEFAULT_MAX_SIZE) -> tuple:
    """Run stages 1-3 on an image.

    Returns:
        Tuple of (palette, theme_tokens).
    """
    # Stage 1: Pixel Source
    pixels = load_pixels(image_path, max_size=max_size)

    # Stage 2: Palette Assembly
    palette = assemble_palette(pixels)

    # Stage 3: Token Derivation
    tokens = derive_tokens(palette, locks)

    return palette, tokens


# =============================================================================
# CLI
# =============================================================================

def build_parser():
    import argparse

    from palette_store import DEFAULT_STORE_PATH

    parser = argparse.ArgumentParser(
        description='Extract a palette from an image and derive light/dark design tokens.'
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument('--input', '-i', help='Path to the image file')
    source.add_argument('--load', metavar='ID', help='Derive tokens from a saved palette')
    source.add_argument('--list', action='store_true', help='List saved palettes and exit')

    parser.add_argument(
        '--output', '-o',
        nargs='?',
        const=True,
        default=None,
        help='Write CSS variables. Optionally specify path, otherwise auto-names from input.'
    )
    parser.add_argument('--json', action='store_true', help='Print palette and tokens as JSON')
    parser.add_argument('--lock-primary', metavar='HEX', help='Pin the primary color in both modes')
    parser.add_argument('--lock-light-bg', metavar='HEX', help='Pin the light mode background')
    parser.add_argument('--lock-dark-bg', metavar='HEX', help='Pin the dark mode background')
    parser.add_argument('--max-size', type=int, default=DEFAULT_MAX_SIZE,
                        help=f'Downscale so the longest edge is at most this (default {DEFAULT_MAX_SIZE})')
    parser.add_argument('--no-downscale', action='store_true',
                        help='Process at full resolution')
    parser.add_argument('--save', nargs='?', const='', default=None, metavar='NAME',
                        help='Save the palette and tokens (keeps the 5 most recent)')
    parser.add_argument('--store', default=str(DEFAULT_STORE_PATH),
                        help='Saved palette file (default %(default)s)')
    parser.add_argument('--verbose', action='store_true')
    parser.add_argument('--quiet', action='store_true')
    return parser


def main(argv=None):
    import sys
    from datetime import datetime
    from pathlib import Path

    from palette_store import PaletteStore

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.INFO,
        format="%(levelname)s:%(message)s",
    )

    store = PaletteStore(args.store)

    if args.list:
        for saved in store.entries():
            when = datetime.fromtimestamp(saved.timestamp / 1000).strftime('%Y-%m-%d %H:%M')
            print(f"{saved.id}  {when}  {saved.name} ({len(saved.palette)} colors)")
        return

    if not args.input and not args.load:
        parser.error('one of --input, --load or --list is required')

    locks = Locks(
        primary=args.lock_primary,
        light_bg=args.lock_light_bg,
        dark_bg=args.lock_dark_bg,
    )

    try:
        if args.input:
            max_size = None if args.no_downscale else args.max_size
            palette, tokens = run_pipeline(args.input, locks=locks, max_size=max_size)
            stem = Path(args.input).stem
            output_dir = Path(args.input).parent
        else:
            saved = store.get(args.load)
            palette = saved.palette
            tokens = derive_tokens(palette, locks)
            stem = saved.id
            output_dir = Path('.')
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyError:
        print(f"Error: No saved palette with id {args.load}", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        sys.exit(1)

    if args.json:
        print(render_json(palette, tokens))
    else:
        print(render(palette, tokens, locks))

    if args.output:
        if args.output is True:
            output_path = output_dir / f"{stem}-tokens.css"
        else:
            output_path = Path(args.output)

        try:
            output_path.write_text(render_css(tokens))
            print(f"Wrote: {output_path}")
        except OSError as e:
            print(f"Error writing output: {e}", file=sys.stderr)
            sys.exit(1)

    if args.save is not None:
        try:
            record = store.save(args.save or None, palette, tokens)
        except OSError as e:
            print(f"Error saving palette: {e}", file=sys.stderr)
            sys.exit(1)
        print(f"Saved: {record.id} ({record.name})")


if __name__ == '__main__':
    main()
