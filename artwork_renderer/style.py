"""
Style configuration for episode artwork.

A StyleConfig is built once per render or batch call and never mutated.
Templates stored by the product are loosely typed (most values are strings
such as "0.8" or "true"); from_template() coerces them and fills defaults.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from PIL import ImageColor

from .constants import (
    DEFAULT_CUSTOM_POSITION,
    NAVIGATION_POSITIONS,
    NAVIGATION_STYLES,
    POSITIONS,
)
from .errors import ConfigurationError


# Template keys as stored by the web product -> StyleConfig field names
TEMPLATE_FIELD_ALIASES = {
    'episodeNumberPosition': 'position',
    'customPositionX': 'custom_x',
    'customPositionY': 'custom_y',
    'episodeNumberSize': 'font_size',
    'episodeNumberFont': 'font_family',
    'episodeNumberColor': 'text_color',
    'episodeNumberBgColor': 'background_color',
    'episodeNumberBgOpacity': 'background_opacity',
    'borderRadius': 'corner_radius',
    'labelFormat': 'label_format',
    'customPrefix': 'custom_prefix',
    'customSuffix': 'custom_suffix',
    'bonusNumberingMode': 'bonus_mode',
    'bonusLabel': 'bonus_label',
    'bonusPrefix': 'bonus_prefix',
    'bonusSuffix': 'bonus_suffix',
    'showNavigation': 'show_navigation',
    'navigationPosition': 'navigation_position',
    'navigationStyle': 'navigation_style',
}

_STRING_FIELDS = {'custom_prefix', 'custom_suffix', 'bonus_prefix', 'bonus_suffix'}


@dataclass(frozen=True)
class StyleConfig:
    """Every styling and labeling option applied uniformly across a batch."""

    position: str = 'top-right'
    custom_x: float = DEFAULT_CUSTOM_POSITION
    custom_y: float = DEFAULT_CUSTOM_POSITION
    font_size: int = 120
    font_family: str = 'Arial'
    text_color: str = '#FFFFFF'
    background_color: str = '#000000'
    background_opacity: float = 0.8
    corner_radius: int = 8
    label_format: str = 'number'
    custom_prefix: str = ''
    custom_suffix: str = ''
    bonus_mode: str = 'included'
    bonus_label: str = 'Bonus'
    bonus_prefix: str = ''
    bonus_suffix: str = ''
    show_navigation: bool = True
    navigation_position: str = 'bottom-center'
    navigation_style: str = 'arrows'

    def __post_init__(self):
        # Prefixes and suffixes are always concatenated, never None
        for name in _STRING_FIELDS:
            if getattr(self, name) is None:
                object.__setattr__(self, name, '')

    @classmethod
    def from_template(cls, template: Optional[Mapping[str, Any]]) -> 'StyleConfig':
        """
        Build a StyleConfig from a template mapping.

        Accepts both snake_case field names and the product's camelCase
        template keys. Missing and empty values fall back to the defaults.

        Raises:
            ConfigurationError: if a numeric or boolean value cannot be parsed
        """
        if not template:
            return cls()

        defaults = cls()
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}

        for raw_key, raw_value in template.items():
            name = TEMPLATE_FIELD_ALIASES.get(raw_key, raw_key)
            if name not in known:
                continue
            if raw_value is None or (raw_value == '' and name not in _STRING_FIELDS):
                continue

            default = getattr(defaults, name)
            if isinstance(default, bool):
                values[name] = _as_bool(raw_value, name)
            elif isinstance(default, int):
                values[name] = int(_as_float(raw_value, name))
            elif isinstance(default, float):
                values[name] = _as_float(raw_value, name)
            else:
                values[name] = str(raw_value)

        return cls(**values)

    def with_changes(self, **changes: Any) -> 'StyleConfig':
        """Return a copy with some fields replaced (live preview re-renders)."""
        return replace(self, **changes)

    def to_template(self) -> Dict[str, Any]:
        """Serialise to a plain mapping using snake_case field names."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def validate(self) -> 'StyleConfig':
        """
        Check that this style can be rendered.

        Unknown label formats are allowed (they render the bare number).

        Raises:
            ConfigurationError: describing the first invalid field
        """
        if self.position not in POSITIONS:
            raise ConfigurationError(
                f"Unknown position '{self.position}' (expected one of {', '.join(POSITIONS)})"
            )
        if self.position == 'custom':
            for name in ('custom_x', 'custom_y'):
                value = getattr(self, name)
                if not 0.0 <= value <= 1.0:
                    raise ConfigurationError(f"{name} must be between 0 and 1, got {value}")
        if self.font_size <= 0:
            raise ConfigurationError(f"font_size must be positive, got {self.font_size}")
        if not 0.0 <= self.background_opacity <= 1.0:
            raise ConfigurationError(
                f"background_opacity must be between 0 and 1, got {self.background_opacity}"
            )
        if self.corner_radius < 0:
            raise ConfigurationError(f"corner_radius must not be negative, got {self.corner_radius}")
        if self.show_navigation:
            if self.navigation_position not in NAVIGATION_POSITIONS:
                raise ConfigurationError(f"Unknown navigation_position '{self.navigation_position}'")
            if self.navigation_style not in NAVIGATION_STYLES:
                raise ConfigurationError(f"Unknown navigation_style '{self.navigation_style}'")

        parse_color(self.text_color, 'text_color')
        parse_color(self.background_color, 'background_color')
        return self


@dataclass
class ProjectTemplate:
    """A project's template: the base artwork plus its style."""

    name: str = 'Default Template'
    base_artwork_url: Optional[str] = None
    style: StyleConfig = field(default_factory=StyleConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProjectTemplate':
        data = dict(data or {})
        name = data.pop('name', None) or 'Default Template'
        base_artwork_url = data.pop('base_artwork_url', None) or data.pop('baseArtworkUrl', None)
        style_data = data.pop('style', None)
        if style_data is None:
            style_data = data
        return cls(
            name=str(name),
            base_artwork_url=base_artwork_url,
            style=StyleConfig.from_template(style_data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'base_artwork_url': self.base_artwork_url,
            'style': self.style.to_template(),
        }


def parse_color(value: str, field_name: str = 'color') -> Tuple[int, int, int]:
    """
    Parse a CSS-style color string into an RGB tuple.

    Accepts #RGB, #RRGGBB, #RRGGBBAA (alpha ignored), rgb() and color names.
    A bare hex string without '#' is accepted as well.

    Raises:
        ConfigurationError: if the value is not a renderable color
    """
    text = str(value or '').strip()
    if text and not text.startswith('#') and _is_hex(text):
        text = f"#{text}"
    try:
        rgb = ImageColor.getrgb(text)
    except ValueError as e:
        raise ConfigurationError(f"Invalid {field_name} '{value}': {e}") from e
    return rgb[0], rgb[1], rgb[2]


def color_with_opacity(value: str, opacity: float, field_name: str = 'color') -> Tuple[int, int, int, int]:
    """Convert a color string plus a 0-1 opacity into an RGBA fill."""
    r, g, b = parse_color(value, field_name)
    alpha = max(0, min(255, round(opacity * 255)))
    return r, g, b, alpha


def _is_hex(text: str) -> bool:
    return len(text) in (3, 6, 8) and all(c in '0123456789abcdefABCDEF' for c in text)


def _as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    lower = str(value).strip().lower()
    if lower in ('true', '1', 'yes', 'on', 'enabled'):
        return True
    if lower in ('false', '0', 'no', 'off', 'disabled'):
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: '{value}'")


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid number for {name}: '{value}'") from e
