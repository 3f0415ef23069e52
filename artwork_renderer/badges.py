"""
Badge and navigation drawing for episode artwork.

The badge is a rounded, alpha-blended chip with the episode label on top.
The navigation caption is an optional second line of text centered near the
top or bottom edge.
"""

from typing import Tuple

from PIL import Image, ImageDraw

from .constants import (
    NAVIGATION_ARROWS_TEXT,
    NAVIGATION_FONT_SIZE,
    NAVIGATION_SWIPE_TEXT,
)
from .fonts import get_font
from .overlay_positioning import Layout, chip_box, chip_padding, navigation_layout
from .style import StyleConfig, color_with_opacity, parse_color


def measure_label(draw: ImageDraw.ImageDraw, label: str, font) -> Tuple[int, int, int, int]:
    """Ink box of the label when drawn at the origin with a left/top anchor."""
    if not label:
        return (0, 0, 0, 0)
    return draw.textbbox((0, 0), label, font=font, anchor='lt')


def draw_badge(canvas: Image.Image, layout: Layout, label: str, style: StyleConfig) -> None:
    """
    Draw the chip and the label onto an RGBA canvas in place.

    The chip is skipped entirely when the background opacity is 0, leaving
    the label directly over the artwork.

    Raises:
        ConfigurationError: if either color cannot be parsed
    """
    text_fill = parse_color(style.text_color, 'text_color') + (255,)
    chip_fill = color_with_opacity(style.background_color, style.background_opacity, 'background_color')

    font = get_font(style.font_family, style.font_size)
    draw = ImageDraw.Draw(canvas)
    bx0, by0, bx1, by1 = measure_label(draw, label, font)
    text_width, text_height = bx1 - bx0, by1 - by0

    padding = chip_padding(canvas.width, canvas.height)
    x0, y0, x1, y1 = chip_box(layout, text_width, text_height, padding)

    if style.background_opacity > 0:
        radius = max(0, min(style.corner_radius, (x1 - x0) / 2, (y1 - y0) / 2))
        chip_layer = Image.new('RGBA', canvas.size, (0, 0, 0, 0))
        ImageDraw.Draw(chip_layer).rounded_rectangle(
            (round(x0), round(y0), round(x1), round(y1)),
            radius=int(radius),
            fill=chip_fill,
        )
        canvas.alpha_composite(chip_layer)
        draw = ImageDraw.Draw(canvas)

    if label:
        # Place the ink box exactly inside the chip's padding
        text_x = x0 + padding - bx0
        text_y = y0 + padding - by0
        draw.text((text_x, text_y), label, font=font, fill=text_fill, anchor='lt')


def navigation_text(style: StyleConfig) -> str:
    """Caption for the navigation style; 'both' renders like 'arrows'."""
    if style.navigation_style == 'text':
        return NAVIGATION_SWIPE_TEXT
    return NAVIGATION_ARROWS_TEXT


def draw_navigation(canvas: Image.Image, style: StyleConfig) -> None:
    """Draw the navigation caption if the template enables it."""
    if not style.show_navigation:
        return

    fill = parse_color(style.text_color, 'text_color') + (255,)
    font = get_font(style.font_family, NAVIGATION_FONT_SIZE)
    layout = navigation_layout(canvas.width, canvas.height, style.navigation_position, NAVIGATION_FONT_SIZE)

    draw = ImageDraw.Draw(canvas)
    draw.text(
        (layout.anchor_x, layout.anchor_y),
        navigation_text(style),
        font=font,
        fill=fill,
        anchor=layout.pillow_anchor,
    )
