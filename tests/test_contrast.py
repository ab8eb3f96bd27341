from color_math import WHITE
from contrast import (
    background_candidates, background_passes, contrast_checks, ensure_contrast, hex_contrast,
)
from extract_colors import Swatch, analyze_palette
from tokens import TokenSet


LIGHT_TOKENS = TokenSet(
    bg='#f7f7f7', surface='#ffffff', border='#e0e0e0', text='#333333',
    heading='#1a1a1a', muted_text='#555555', primary='#0071e3', on_primary='#ffffff',
)
DARK_TOKENS = TokenSet(
    bg='#0b0b0b', surface='#141414', border='#808080', text='#c0c0c0',
    heading='#ffffff', muted_text='#d0d0d0', primary='#409cff', on_primary='#000000',
)


def test_hex_contrast_matches_known_values():
    assert abs(hex_contrast('#ffffff', '#000000') - 21.0) < 1e-6
    assert hex_contrast('#123456', '#123456') == 1.0


def test_ensure_contrast_keeps_passing_candidate():
    assert ensure_contrast('#222222', WHITE, 4.5, '#333333', '#000000') == '#222222'


def test_ensure_contrast_falls_back_in_order():
    # #777777 on white is just under 4.5
    assert ensure_contrast('#777777', WHITE, 4.5, '#333333', '#000000') == '#333333'
    assert ensure_contrast(None, WHITE, 4.5, '#eeeeee', '#000000') == '#000000'


def test_ensure_contrast_unreachable_picks_higher_fallback():
    assert ensure_contrast(None, (128, 128, 128), 21, '#ffffff', '#000000') == '#000000'


def test_background_passes():
    assert background_passes((255, 255, 255), '#1a1a1a', '#333333', '#555555')
    assert not background_passes((128, 128, 128), '#1a1a1a', '#333333', '#555555')


def test_background_candidates_light_lightest_first():
    palette = analyze_palette([
        Swatch(240, 240, 240, 10), Swatch(255, 255, 255, 5),
        Swatch(0, 0, 0, 10), Swatch(128, 128, 128, 50),
    ])
    candidates = background_candidates(palette, LIGHT_TOKENS, 'light')
    assert [c.hex for c in candidates] == ['#ffffff', '#f0f0f0']


def test_background_candidates_dark_darkest_first():
    palette = analyze_palette([
        Swatch(30, 30, 30, 10), Swatch(0, 0, 0, 5), Swatch(255, 255, 255, 10),
    ])
    candidates = background_candidates(palette, DARK_TOKENS, 'dark')
    assert [c.hex for c in candidates] == ['#000000', '#1e1e1e']


def test_contrast_checks_cover_rendered_pairs():
    checks = contrast_checks(LIGHT_TOKENS)
    assert [c.label for c in checks] == [
        'heading/bg', 'text/bg', 'mutedText/bg', 'heading/surface', 'text/surface', 'onPrimary/primary',
    ]
    assert all(c.passed for c in checks)
    assert not any(c.warn for c in checks)


def test_contrast_checks_warn_for_large_text_only_muted():
    tokens = TokenSet(
        bg='#ffffff', surface='#ffffff', border='#e0e0e0', text='#333333',
        heading='#1a1a1a', muted_text='#888888', primary='#0071e3', on_primary='#ffffff',
    )
    muted = contrast_checks(tokens)[2]
    assert muted.label == 'mutedText/bg'
    assert muted.passed
    assert muted.warn
    assert muted.required == 3.0


def test_contrast_checks_report_failure():
    tokens = TokenSet(
        bg='#ffffff', surface='#ffffff', border='#e0e0e0', text='#eeeeee',
        heading='#1a1a1a', muted_text='#555555', primary='#ffff00', on_primary='#ffffff',
    )
    failed = [c.label for c in contrast_checks(tokens) if not c.passed]
    assert failed == ['text/bg', 'text/surface', 'onPrimary/primary']
