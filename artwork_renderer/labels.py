"""
Episode label formatting.

Turns an already-resolved episode number into the text drawn on the badge.
"""

from .style import StyleConfig


def format_regular_label(number: str, label_format: str, prefix: str = '', suffix: str = '') -> str:
    """Apply a regular label format; unknown formats fall back to the bare number."""
    if label_format == 'ep':
        return f"Ep. {number}"
    if label_format == 'episode':
        return f"Episode {number}"
    if label_format == 'custom':
        return f"{prefix or ''}{number}{suffix or ''}"
    return number


def format_label(number: str, style: StyleConfig, is_bonus: bool = False) -> str:
    """
    Resolve the display label for an episode.

    Bonus episodes follow the template's bonus mode:
    - none: only the bonus label, the number is dropped
    - separate: bonus prefix + label + space + number + bonus suffix
    - included: same path as regular episodes
    """
    number = '' if number is None else str(number)

    if is_bonus:
        if style.bonus_mode == 'none':
            return style.bonus_label
        if style.bonus_mode == 'separate':
            return f"{style.bonus_prefix}{style.bonus_label} {number}{style.bonus_suffix}"

    return format_regular_label(number, style.label_format, style.custom_prefix, style.custom_suffix)
