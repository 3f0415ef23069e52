#!/usr/bin/env python3
"""
Unit tests for label formatting and style parsing.

Run with:
    python3 -m pytest artwork_renderer/test_labels.py -v
"""

import unittest

from artwork_renderer.errors import ConfigurationError
from artwork_renderer.labels import format_label, format_regular_label
from artwork_renderer.style import (
    ProjectTemplate,
    StyleConfig,
    color_with_opacity,
    parse_color,
)


class TestFormatLabel(unittest.TestCase):
    """Tests for format_label and format_regular_label"""

    def test_number_format(self):
        self.assertEqual(format_label('42', StyleConfig(label_format='number')), '42')

    def test_ep_format(self):
        self.assertEqual(format_label('42', StyleConfig(label_format='ep')), 'Ep. 42')

    def test_episode_format(self):
        self.assertEqual(format_label('7', StyleConfig(label_format='episode')), 'Episode 7')

    def test_custom_format(self):
        style = StyleConfig(label_format='custom', custom_prefix='#', custom_suffix=' ★')
        self.assertEqual(format_label('12', style), '#12 ★')

    def test_custom_format_with_missing_prefix_and_suffix(self):
        """None prefixes/suffixes are treated as empty strings"""
        style = StyleConfig(label_format='custom', custom_prefix=None, custom_suffix=None)
        self.assertEqual(format_label('12', style), '12')
        self.assertEqual(format_regular_label('12', 'custom', None, None), '12')

    def test_unknown_format_falls_back_to_number(self):
        self.assertEqual(format_label('9', StyleConfig(label_format='roman')), '9')

    def test_bonus_none_drops_number(self):
        style = StyleConfig(bonus_mode='none', bonus_label='Bonus')
        self.assertEqual(format_label('3', style, is_bonus=True), 'Bonus')
        self.assertEqual(format_label('999', style, is_bonus=True), 'Bonus')

    def test_bonus_separate(self):
        style = StyleConfig(bonus_mode='separate', bonus_label='Bonus')
        self.assertEqual(format_label('3', style, is_bonus=True), 'Bonus 3')

    def test_bonus_separate_with_prefix_and_suffix(self):
        style = StyleConfig(
            bonus_mode='separate', bonus_label='Extra', bonus_prefix='[', bonus_suffix=']'
        )
        self.assertEqual(format_label('3', style, is_bonus=True), '[Extra 3]')

    def test_bonus_included_uses_regular_path(self):
        style = StyleConfig(bonus_mode='included', label_format='ep')
        self.assertEqual(
            format_label('5', style, is_bonus=True),
            format_label('5', style, is_bonus=False),
        )

    def test_bonus_mode_ignored_for_regular_episodes(self):
        style = StyleConfig(bonus_mode='none', label_format='episode')
        self.assertEqual(format_label('5', style), 'Episode 5')


class TestStyleConfig(unittest.TestCase):
    """Tests for StyleConfig construction and validation"""

    def test_defaults(self):
        style = StyleConfig()
        self.assertEqual(style.position, 'top-right')
        self.assertEqual(style.font_size, 120)
        self.assertAlmostEqual(style.background_opacity, 0.8)
        self.assertTrue(style.show_navigation)
        self.assertEqual(style.navigation_position, 'bottom-center')

    def test_from_template_coerces_product_keys(self):
        """camelCase keys with string values are coerced to typed fields"""
        style = StyleConfig.from_template({
            'episodeNumberPosition': 'custom',
            'customPositionX': '0.4',
            'episodeNumberSize': '96',
            'episodeNumberBgOpacity': '0.5',
            'showNavigation': 'false',
            'labelFormat': 'ep',
            'customPrefix': None,
        })
        self.assertEqual(style.position, 'custom')
        self.assertAlmostEqual(style.custom_x, 0.4)
        self.assertAlmostEqual(style.custom_y, 0.25)
        self.assertEqual(style.font_size, 96)
        self.assertAlmostEqual(style.background_opacity, 0.5)
        self.assertFalse(style.show_navigation)
        self.assertEqual(style.label_format, 'ep')
        self.assertEqual(style.custom_prefix, '')

    def test_from_template_rejects_bad_number(self):
        with self.assertRaises(ConfigurationError):
            StyleConfig.from_template({'font_size': 'huge'})

    def test_with_changes_leaves_original_untouched(self):
        style = StyleConfig()
        changed = style.with_changes(position='center')
        self.assertEqual(style.position, 'top-right')
        self.assertEqual(changed.position, 'center')

    def test_validate_accepts_defaults(self):
        StyleConfig().validate()

    def test_validate_rejects_invalid_color(self):
        with self.assertRaises(ConfigurationError):
            StyleConfig(text_color='not-a-color').validate()

    def test_validate_rejects_out_of_range_opacity(self):
        with self.assertRaises(ConfigurationError):
            StyleConfig(background_opacity=1.5).validate()

    def test_validate_rejects_unknown_position(self):
        with self.assertRaises(ConfigurationError):
            StyleConfig(position='middle-ish').validate()

    def test_validate_ignores_navigation_values_when_disabled(self):
        StyleConfig(show_navigation=False, navigation_style='sparkles').validate()

    def test_template_round_trip(self):
        template = ProjectTemplate(
            name='Show',
            base_artwork_url='https://example.com/cover.png',
            style=StyleConfig(position='bottom-left', label_format='ep'),
        )
        restored = ProjectTemplate.from_dict(template.to_dict())
        self.assertEqual(restored, template)

    def test_template_from_flat_mapping(self):
        template = ProjectTemplate.from_dict({
            'name': 'Flat',
            'baseArtworkUrl': 'cover.png',
            'episodeNumberPosition': 'center',
        })
        self.assertEqual(template.base_artwork_url, 'cover.png')
        self.assertEqual(template.style.position, 'center')


class TestColors(unittest.TestCase):
    """Tests for color parsing"""

    def test_hex_colors(self):
        self.assertEqual(parse_color('#FFFFFF'), (255, 255, 255))
        self.assertEqual(parse_color('#f00'), (255, 0, 0))

    def test_bare_hex(self):
        self.assertEqual(parse_color('00ff00'), (0, 255, 0))

    def test_named_color(self):
        self.assertEqual(parse_color('black'), (0, 0, 0))

    def test_invalid_color(self):
        with self.assertRaises(ConfigurationError):
            parse_color('#GGGGGG')
        with self.assertRaises(ConfigurationError):
            parse_color('')

    def test_opacity_to_alpha(self):
        self.assertEqual(color_with_opacity('#000000', 0.8), (0, 0, 0, 204))
        self.assertEqual(color_with_opacity('#000000', 0), (0, 0, 0, 0))


if __name__ == '__main__':
    unittest.main()
