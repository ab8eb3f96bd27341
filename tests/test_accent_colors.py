from accent_colors import extract_brand_colors, extract_vibrant_colors
from color_math import rgb_to_hsl
from extract_colors import Swatch


GRAY_PALETTE = [Swatch(128, 128, 128, 5000)]


def _gray_with_red(red_count=40):
    return [(128, 128, 128)] * 5000 + [(255, 0, 0)] * red_count


def test_vibrant_recovers_rare_red():
    found = extract_vibrant_colors(_gray_with_red(), GRAY_PALETTE)
    assert len(found) == 1
    assert found[0].rgb == (255, 0, 0)
    assert found[0].population == 40
    assert found[0].is_vibrant and not found[0].is_brand_color


def test_brand_recovers_rare_red():
    found = extract_brand_colors(_gray_with_red(), GRAY_PALETTE)
    assert len(found) == 1
    assert found[0].rgb == (255, 0, 0)
    assert found[0].is_vibrant and found[0].is_brand_color


def test_vibrant_ignores_too_few_pixels():
    assert extract_vibrant_colors(_gray_with_red(red_count=3), GRAY_PALETTE) == []


def test_brand_keeps_even_a_single_pixel():
    found = extract_brand_colors(_gray_with_red(red_count=1), GRAY_PALETTE)
    assert [s.rgb for s in found] == [(255, 0, 0)]


def test_accents_skip_colors_already_in_palette():
    palette = GRAY_PALETTE + [Swatch(250, 5, 5, 40)]
    assert extract_vibrant_colors(_gray_with_red(), palette) == []
    assert extract_brand_colors(_gray_with_red(), palette) == []


def test_gray_image_has_no_accents():
    pixels = [(128, 128, 128)] * 1000
    assert extract_vibrant_colors(pixels, GRAY_PALETTE) == []
    assert extract_brand_colors(pixels, GRAY_PALETTE) == []


def test_empty_pixels_have_no_accents():
    assert extract_vibrant_colors([], []) == []
    assert extract_brand_colors([], []) == []


def test_brand_finds_one_color_per_hue_family():
    pixels = [(200, 200, 200)] * 2000 + [(230, 30, 30)] * 10 + [(30, 60, 230)] * 10
    found = extract_brand_colors(pixels, [Swatch(200, 200, 200, 2000)])
    hues = sorted(round(rgb_to_hsl(*s.rgb)[0]) for s in found)
    assert len(found) == 2
    assert hues[0] == 0
    assert 180 <= hues[1] < 270
