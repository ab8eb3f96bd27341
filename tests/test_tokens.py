import logging

from analyze import assemble_palette
from color_math import contrast_ratio, hex_to_rgb, normalize_hex, rgb_to_hsl
from extract_colors import Swatch
from tokens import (
    DARK, LIGHT, LIGHT_RULES, MODES, TOKEN_FIELDS, TOKEN_NAMES, Locks, ThemeTokens, TokenSet,
    derive_tokens, primary_strategies,
)


PALETTES = [
    [],
    [Swatch(128, 128, 128, 1000)],
    [Swatch(255, 255, 255, 100)],
    [Swatch(0, 0, 0, 100)],
    [Swatch(200, 200, 200, 5000), Swatch(255, 0, 0, 40)],
    [
        Swatch(250, 250, 250, 900), Swatch(230, 230, 230, 400), Swatch(20, 20, 20, 300),
        Swatch(30, 90, 200, 120, is_vibrant=True), Swatch(240, 140, 20, 60, is_brand_color=True),
        Swatch(100, 100, 100, 80), Swatch(8, 10, 12, 50),
    ],
    [Swatch(255, 255, 0, 300), Swatch(0, 255, 255, 200), Swatch(255, 0, 255, 100)],
]


def _contrast(hex1, hex2):
    return contrast_ratio(hex_to_rgb(hex1), hex_to_rgb(hex2))


def test_every_token_is_a_valid_hex():
    for palette in PALETTES:
        tokens = derive_tokens(palette)
        for mode in MODES:
            token_set = tokens.for_mode(mode)
            for field in TOKEN_FIELDS:
                value = getattr(token_set, field)
                assert normalize_hex(value) == value, (mode, field, value)


def test_heading_and_text_differ_and_read_on_surface():
    for palette in PALETTES:
        tokens = derive_tokens(palette)
        for mode in MODES:
            t = tokens.for_mode(mode)
            assert t.heading != t.text
            assert _contrast(t.heading, t.surface) >= 4.5
            assert _contrast(t.text, t.surface) >= 4.5
            assert _contrast(t.muted_text, t.surface) >= 3.0


def test_single_gray_uses_fallbacks():
    palette = assemble_palette([(128, 128, 128)] * 5000)
    assert len(palette) == 1
    assert palette[0].population == 5000

    tokens = derive_tokens(palette)
    assert tokens.light == TokenSet(
        bg='#f7f7f7', surface='#ffffff', border='#e0e0e0', text='#333333',
        heading='#1a1a1a', muted_text='#555555', primary='#0071e3', on_primary='#ffffff',
    )
    assert tokens.dark == TokenSet(
        bg='#0b0b0b', surface='#141414', border='#808080', text='#c0c0c0',
        heading='#ffffff', muted_text='#d0d0d0', primary='#409cff', on_primary='#000000',
    )


def test_empty_palette_gets_fallback_backgrounds():
    tokens = derive_tokens([])
    assert tokens.light.bg == '#f7f7f7'
    assert tokens.dark.bg == '#0b0b0b'
    assert tokens.light.primary == '#0071e3'
    assert tokens.dark.primary == '#409cff'


def test_rare_red_becomes_light_primary():
    palette = assemble_palette([(200, 200, 200)] * 5000 + [(255, 0, 0)] * 40)
    assert '#ff0000' in [s.hex for s in palette]

    tokens = derive_tokens(palette)
    h, s, _ = rgb_to_hsl(*hex_to_rgb(tokens.light.primary))
    assert min(h, 360 - h) <= 20
    assert s > 0.40
    assert tokens.light.on_primary == '#000000'


def test_locked_primary_used_in_both_modes():
    palette = [Swatch(128, 128, 128, 1000)]
    tokens = derive_tokens(palette, Locks(primary='#FF0000'))
    assert tokens.light.primary == '#ff0000'
    assert tokens.dark.primary == '#ff0000'
    assert tokens.light.on_primary == '#000000'
    assert tokens.dark.on_primary == '#000000'


def test_locked_backgrounds_are_kept():
    palette = PALETTES[5]
    tokens = derive_tokens(palette, Locks(light_bg='#fafafa', dark_bg='#080a0c'))
    assert tokens.light.bg == '#fafafa'
    assert tokens.dark.bg == '#080a0c'


def test_toggling_primary_twice_restores_unlocked_choice():
    palette = PALETTES[5]
    locks = Locks().toggle_primary('#ff0000')
    assert locks.primary == '#ff0000'
    assert locks.is_primary('#FF0000')

    unlocked = locks.toggle_primary('#FF0000')
    assert unlocked.primary is None
    assert derive_tokens(palette, unlocked) == derive_tokens(palette)


def test_toggle_background_per_mode():
    locks = Locks().toggle_background(DARK, '#101010')
    assert locks.dark_bg == '#101010'
    assert locks.light_bg is None
    assert locks.background(DARK) == '#101010'
    assert locks.toggle_background(DARK, '#101010').dark_bg is None
    assert locks.toggle_background(LIGHT, '#fafafa').light_bg == '#fafafa'


def test_unparseable_lock_is_ignored(caplog):
    palette = PALETTES[4]
    with caplog.at_level(logging.WARNING, logger='tokens'):
        tokens = derive_tokens(palette, Locks(primary='not-a-color'))
    assert tokens == derive_tokens(palette)
    assert 'not-a-color' in caplog.text


def test_primary_cascade_order():
    names = [strategy.name for strategy in primary_strategies(LIGHT_RULES)]
    assert names == ['scored', 'relaxed saturation', 'relaxed contrast']


def test_low_saturation_primary_and_dark_reuse():
    # Saturation ~0.18: only the relaxed step admits it in light mode, and its
    # luminance is below the dark range so dark mode reuses the light pick
    palette = [Swatch(90, 130, 90, 100)]
    tokens = derive_tokens(palette)
    assert tokens.light.primary == '#5a825a'
    assert tokens.light.on_primary == '#000000'
    assert tokens.dark.primary == '#5a825a'


def test_derive_tokens_is_deterministic():
    palette = PALETTES[5]
    assert derive_tokens(palette) == derive_tokens(list(palette))


def test_theme_tokens_dict_round_trip():
    tokens = derive_tokens(PALETTES[5])
    data = tokens.as_dict()
    assert list(data) == [LIGHT, DARK]
    assert list(data[LIGHT]) == list(TOKEN_NAMES)
    assert ThemeTokens.from_dict(data) == tokens


def test_light_bg_replaced_when_text_fails_on_it():
    # #707070 reads on the #fafafa surface (4.7:1) but not on #e2e2e2 (3.8:1)
    palette = [
        Swatch(226, 226, 226, 1000), Swatch(250, 250, 250, 50),
        Swatch(20, 20, 20, 200), Swatch(112, 112, 112, 100),
    ]
    light = derive_tokens(palette).light
    assert light.surface == '#fafafa'
    assert light.heading == '#141414'
    assert light.text == '#707070'
    assert light.bg == '#fafafa'


def test_light_bg_falls_back_when_no_palette_color_passes():
    palette = [Swatch(226, 226, 226, 1000), Swatch(20, 20, 20, 200), Swatch(112, 112, 112, 100)]
    light = derive_tokens(palette).light
    assert light.text == '#707070'
    assert light.bg == '#f7f7f7'


def test_dark_bg_falls_back_when_text_fails_on_it():
    # #808080 reads on the #141414 surface but not on #3c3c3c
    palette = [Swatch(60, 60, 60, 1000), Swatch(255, 255, 255, 200), Swatch(128, 128, 128, 100)]
    dark = derive_tokens(palette).dark
    assert dark.heading == '#ffffff'
    assert dark.text == '#808080'
    assert dark.bg == '#0b0b0b'


def test_locked_bg_is_not_revalidated():
    palette = [Swatch(226, 226, 226, 1000), Swatch(20, 20, 20, 200), Swatch(112, 112, 112, 100)]
    light = derive_tokens(palette, Locks(light_bg='#e2e2e2')).light
    assert light.bg == '#e2e2e2'


def test_dull_primary_swapped_for_vivid_same_hue_in_light_only():
    # The dull blue wins on score; the vivid blue is 1.55x as saturated but its
    # luminance (~0.17) is too low for a dark mode primary
    palette = [Swatch(112, 144, 224, 10_000_000), Swatch(40, 100, 255, 10)]
    tokens = derive_tokens(palette)
    assert tokens.light.primary == '#2864ff'
    assert tokens.light.on_primary == '#ffffff'
    assert tokens.dark.primary == '#7090e0'
    assert tokens.dark.on_primary == '#000000'


def test_vibrant_primary_is_not_swapped():
    palette = [Swatch(112, 144, 224, 10_000_000, is_vibrant=True), Swatch(40, 100, 255, 10)]
    assert derive_tokens(palette).light.primary == '#7090e0'
