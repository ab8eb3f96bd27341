#!/usr/bin/env python3
"""Profile analyze.py to find which stage dominates for an image."""

import cProfile
import io
import pstats
import sys
import time
from pathlib import Path

from analyze import assemble_palette, render
from extract_colors import DEFAULT_MAX_SIZE, load_pixels
from tokens import derive_tokens


def profile_image(image_path: str, verbose: bool = True, max_size=DEFAULT_MAX_SIZE):
    """Time each pipeline stage for one image.

    Returns:
        Tuple of (timings dict in seconds, pixel count, palette size).
    """
    if verbose:
        print(f"\n{'='*60}")
        print(f"Profiling: {Path(image_path).name}")
        print(f"{'='*60}")

    timings = {}

    # Stage 1: Pixel Source
    start = time.perf_counter()
    pixels = load_pixels(image_path, max_size=max_size)
    timings['load_pixels'] = time.perf_counter() - start

    if verbose:
        print(f"  Opaque pixels: {len(pixels):,}")

    # Stage 2: Palette Assembly
    start = time.perf_counter()
    palette = assemble_palette(pixels)
    timings['assemble_palette'] = time.perf_counter() - start

    if verbose:
        print(f"  Palette colors: {len(palette)}")
        print(f"  Accents: {sum(1 for s in palette if s.is_vibrant or s.is_brand_color)}")

    # Stage 3: Token Derivation
    start = time.perf_counter()
    tokens = derive_tokens(palette)
    timings['derive_tokens'] = time.perf_counter() - start

    # Stage 4: Render
    start = time.perf_counter()
    render(palette, tokens)
    timings['render'] = time.perf_counter() - start

    total = sum(timings.values())
    timings['total'] = total

    if verbose:
        print("\nStage timings:")
        for stage, t in timings.items():
            pct = (t / total * 100) if stage != 'total' and total else 100
            print(f"  {stage:20s}: {t:6.3f}s ({pct:5.1f}%)")

    return timings, len(pixels), len(palette)


def detailed_profile(image_path: str, top: int = 30) -> str:
    """Run cProfile on assemble_palette (the main compute stage)."""
    pixels = load_pixels(image_path)

    profiler = cProfile.Profile()
    profiler.enable()
    assemble_palette(pixels)
    profiler.disable()

    stream = io.StringIO()
    stats = pstats.Stats(profiler, stream=stream)
    stats.sort_stats('cumulative')
    stats.print_stats(top)
    return stream.getvalue()


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description='Time each stage of the tokens pipeline.')
    parser.add_argument('images', nargs='+', help='Image files to profile')
    parser.add_argument('--detailed', action='store_true',
                        help='Print a cProfile breakdown for the first image')
    parser.add_argument('--top', type=int, default=30, help='Functions shown with --detailed')
    args = parser.parse_args(argv)

    results = []
    for image in args.images:
        try:
            timings, pixel_count, palette_size = profile_image(image)
        except (FileNotFoundError, ValueError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        results.append((Path(image).name, timings, pixel_count, palette_size))

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")
    print(f"{'Image':<35} {'Pixels':>8} {'Colors':>7} {'Total':>8}")
    print("-" * 60)
    for name, timings, pixel_count, palette_size in results:
        print(f"{name:<35} {pixel_count:>8,} {palette_size:>7} {timings['total']:>7.3f}s")

    if args.detailed:
        print(f"\n{'='*60}")
        print("Detailed profile of assemble_palette()")
        print(f"{'='*60}")
        print(detailed_profile(args.images[0], args.top))


if __name__ == "__main__":
    main()
