"""
Overlay positioning for Podcast Artwork Studio.

Resolves where the episode badge and the navigation caption sit on a canvas,
and how the badge chip is laid out around the label.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .constants import (
    CHIP_PADDING_FRACTION,
    DEFAULT_CUSTOM_POSITION,
    LAYOUT_PADDING_FRACTION,
)


@dataclass(frozen=True)
class Layout:
    """Anchor point plus the text alignment that hangs off it."""

    anchor_x: float
    anchor_y: float
    align: str      # left, center, right
    baseline: str   # top, middle, bottom

    @property
    def pillow_anchor(self) -> str:
        """Two-letter anchor understood by ImageDraw.text()."""
        horizontal = {'left': 'l', 'center': 'm', 'right': 'r'}[self.align]
        vertical = {'top': 't', 'middle': 'm', 'bottom': 'b'}[self.baseline]
        return horizontal + vertical


def layout_padding(width: int, height: int) -> float:
    """Outer padding between the badge anchor and the canvas edge."""
    return min(width, height) * LAYOUT_PADDING_FRACTION


def chip_padding(width: int, height: int) -> float:
    """Inner padding between the label and the chip edge."""
    return min(width, height) * CHIP_PADDING_FRACTION


def resolve_layout(
    width: int,
    height: int,
    position: str,
    custom_x: Optional[float] = None,
    custom_y: Optional[float] = None
) -> Layout:
    """
    Resolve a badge position to an anchor point and alignment.

    Preset corners are edge-anchored (a right-aligned badge grows leftward
    from its anchor). Custom positions and the center are always anchored
    on the middle of the badge.

    Args:
        width: Canvas width in pixels
        height: Canvas height in pixels
        position: top-left, top-right, bottom-left, bottom-right, center or custom
        custom_x: Horizontal fraction of the width (custom only)
        custom_y: Vertical fraction of the height (custom only)

    Returns:
        Layout for the badge
    """
    padding = layout_padding(width, height)

    if position == 'top-left':
        return Layout(padding, padding, 'left', 'top')
    if position == 'top-right':
        return Layout(width - padding, padding, 'right', 'top')
    if position == 'bottom-left':
        return Layout(padding, height - padding, 'left', 'bottom')
    if position == 'bottom-right':
        return Layout(width - padding, height - padding, 'right', 'bottom')
    if position == 'custom':
        fx = DEFAULT_CUSTOM_POSITION if custom_x is None else custom_x
        fy = DEFAULT_CUSTOM_POSITION if custom_y is None else custom_y
        return Layout(fx * width, fy * height, 'center', 'middle')

    # center, and anything unrecognised
    return Layout(width / 2, height / 2, 'center', 'middle')


def chip_box(
    layout: Layout,
    text_width: float,
    text_height: float,
    inner_padding: float
) -> Tuple[float, float, float, float]:
    """
    Calculate the chip rectangle behind a label.

    The chip is the text box expanded by inner_padding on every side, shifted
    so that the label's alignment point stays on the layout anchor.

    Returns: (x0, y0, x1, y1)
    """
    x, y = layout.anchor_x, layout.anchor_y

    if layout.align == 'right':
        left = x - text_width
    elif layout.align == 'center':
        left = x - text_width / 2
    else:
        left = x

    if layout.baseline == 'bottom':
        top = y - text_height
    elif layout.baseline == 'middle':
        top = y - text_height / 2
    else:
        top = y

    return (
        left - inner_padding,
        top - inner_padding,
        left + text_width + inner_padding,
        top + text_height + inner_padding,
    )


def navigation_layout(width: int, height: int, position: str, font_size: int) -> Layout:
    """
    Anchor for the navigation caption.

    The caption is centered horizontally; bottom-center sits one layout
    padding above the bottom edge, top-center one padding plus one line below
    the top edge.
    """
    padding = layout_padding(width, height)
    if position == 'top-center':
        y = padding + font_size
    else:
        y = height - padding
    return Layout(width / 2, y, 'center', 'middle')
