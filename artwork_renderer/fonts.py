"""
Font handling for Podcast Artwork Studio.

This module provides font discovery, family-name resolution with fallbacks,
and a per-size font cache for badge and navigation rendering.
"""

import re
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PIL import ImageFont

from .constants import (
    logger,
    ARTWORK_STRICT_FONTS,
    DEFAULT_FALLBACK_FONT,
    COMMON_FONT_PATHS,
    FALLBACK_FONT_CANDIDATES,
)
from .errors import ConfigurationError

FONT_SUFFIXES = ('.ttf', '.otf', '.ttc')

# ============================================================================
# Font Caching - fonts are loaded once per (family, size) and shared by threads
# ============================================================================
_font_cache: Dict[Tuple[str, int], ImageFont.FreeTypeFont] = {}
_font_index: Optional[List[Path]] = None
_font_lock = threading.Lock()


def validate_fonts_at_startup() -> List[str]:
    """
    Validate font availability at startup.

    Checks the common font directories and logs warnings for missing fonts.
    Returns a list of available font directories.
    """
    available_dirs = []

    for font_path in COMMON_FONT_PATHS:
        if not Path(font_path).exists():
            continue
        available_dirs.append(font_path)
        fonts = [p for p in Path(font_path).rglob('*') if p.suffix.lower() in FONT_SUFFIXES]
        if fonts:
            logger.info(f"FONT_DIR_FOUND: {font_path} ({len(fonts)} fonts)")
            for font in fonts[:5]:
                logger.debug(f"  - {font.name}")
            if len(fonts) > 5:
                logger.debug(f"  - ... and {len(fonts) - 5} more")
        else:
            logger.warning(f"FONT_DIR_EMPTY: {font_path} exists but contains no fonts")

    if not available_dirs:
        logger.warning("FONT_WARNING: No font directories found!")
        logger.warning(f"  Checked: {', '.join(COMMON_FONT_PATHS)}")
        logger.warning("  Labels will use Pillow's built-in font.")
        logger.warning("  To fix: Mount font files to /fonts or set ARTWORK_FALLBACK_FONT")

    fallback_font = get_fallback_font_path()
    if fallback_font and Path(fallback_font).exists():
        logger.info(f"FALLBACK_FONT_OK: {fallback_font}")
    else:
        logger.warning(f"FALLBACK_FONT_MISSING: {DEFAULT_FALLBACK_FONT}")

    return available_dirs


def get_fallback_font_path() -> Optional[str]:
    """Get the path to the first fallback font that exists."""
    for candidate in FALLBACK_FONT_CANDIDATES:
        if candidate and Path(candidate).exists():
            return candidate
    return None


def _normalize_family(name: str) -> str:
    return re.sub(r'[^a-z0-9]', '', name.lower())


def _installed_fonts() -> List[Path]:
    """List font files under the common font directories (scanned once)."""
    global _font_index
    if _font_index is None:
        found: List[Path] = []
        for root in COMMON_FONT_PATHS:
            root_path = Path(root)
            if root_path.exists():
                found.extend(
                    p for p in root_path.rglob('*') if p.suffix.lower() in FONT_SUFFIXES
                )
        _font_index = sorted(found)
    return _font_index


def _variant_rank(stem: str, family_key: str) -> int:
    """Prefer the bold face, then the regular face, then anything else."""
    rest = _normalize_family(stem)[len(family_key):]
    if rest in ('bold', 'bd', 'b'):
        return 0
    if rest in ('', 'regular'):
        return 1
    if 'bold' in rest and 'italic' not in rest and 'oblique' not in rest:
        return 2
    return 3


def find_font_file(family: str) -> Optional[Path]:
    """
    Find an installed font file for a family name such as "Arial".

    A value that is already a path to a font file is used directly.
    """
    if not family:
        return None

    if family.lower().endswith(FONT_SUFFIXES):
        path = Path(family)
        return path if path.exists() else None

    family_key = _normalize_family(family)
    if not family_key:
        return None

    matches = [p for p in _installed_fonts() if _normalize_family(p.stem).startswith(family_key)]
    if not matches:
        return None
    return min(matches, key=lambda p: (_variant_rank(p.stem, family_key), str(p)))


def resolve_font_path(family: str) -> Optional[str]:
    """
    Resolve a family name to a font file, falling back when it is missing.

    Returns the resolved path, or None when only Pillow's built-in font is left.

    Raises:
        ConfigurationError: in strict mode when the family is not installed
    """
    found = find_font_file(family)
    if found is not None:
        return str(found)

    if ARTWORK_STRICT_FONTS:
        raise ConfigurationError(
            f"Font family not found: {family}. "
            f"Set ARTWORK_STRICT_FONTS=0 to continue with the fallback font."
        )

    fallback = get_fallback_font_path()
    logger.warning(f"FONT_FALLBACK requested={family} fallback={fallback or 'builtin'}")
    return fallback


def get_font(family: str, font_size: int) -> ImageFont.FreeTypeFont:
    """
    Get a cached font instance for the given family and size.

    Fonts are expensive to load from disk, so they are cached by
    (family, size) and shared across batch worker threads.
    """
    key = (family, int(font_size))
    with _font_lock:
        cached = _font_cache.get(key)
    if cached is not None:
        return cached

    path = resolve_font_path(family)
    font = None
    if path:
        try:
            font = ImageFont.truetype(path, int(font_size))
        except OSError as e:
            logger.warning(f"FONT_LOAD_FAILED path={path} error={e}")

    if font is None:
        font = ImageFont.load_default(size=int(font_size))

    with _font_lock:
        _font_cache.setdefault(key, font)
        return _font_cache[key]


def clear_font_cache() -> None:
    """Forget loaded fonts and the installed-font index."""
    global _font_index
    with _font_lock:
        _font_cache.clear()
        _font_index = None
