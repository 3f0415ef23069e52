"""
Constants and configuration for Podcast Artwork Studio.

This module contains the logger, layout constants, and environment-based
configuration used throughout the artwork rendering system.
"""

import logging
import os
import sys
from pathlib import Path

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='| %(levelname)-8s | %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger('ArtworkStudio')

# ============================================================================
# Layout
# ============================================================================
# All spacing is a fraction of the shorter canvas side so thumbnails and
# full-resolution exports agree. At the 600x600 reference size this gives
# 30px outer padding and 15px chip padding.
LAYOUT_PADDING_FRACTION = 0.05
CHIP_PADDING_FRACTION = 0.025

# Fallback for custom positions saved without coordinates
DEFAULT_CUSTOM_POSITION = 0.25

# Navigation caption uses its own fixed size, independent of the badge
NAVIGATION_FONT_SIZE = int(os.environ.get('ARTWORK_NAV_FONT_SIZE', '24'))
NAVIGATION_ARROWS_TEXT = '← Prev | Next →'
NAVIGATION_SWIPE_TEXT = 'Swipe for more episodes'

# ============================================================================
# Style vocabulary
# ============================================================================
POSITIONS = ('top-left', 'top-right', 'bottom-left', 'bottom-right', 'center', 'custom')
NAVIGATION_POSITIONS = ('top-center', 'bottom-center')
NAVIGATION_STYLES = ('arrows', 'text', 'both')
NUMBERING_POLICIES = ('feed', 'sequential', 'custom-start')

# ============================================================================
# Font Configuration
# ============================================================================
# ARTWORK_STRICT_FONTS: If true, fail when the requested family cannot be found
# Default: false (log a warning and fall back)
ARTWORK_STRICT_FONTS = os.environ.get('ARTWORK_STRICT_FONTS', '0') == '1'

DEFAULT_FALLBACK_FONT = os.environ.get(
    'ARTWORK_FALLBACK_FONT', '/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf'
)

COMMON_FONT_PATHS = [
    '/config/fonts',
    '/fonts',
    '/usr/share/fonts',
    '/usr/local/share/fonts',
    str(Path.home() / '.fonts'),
]

FALLBACK_FONT_CANDIDATES = [
    DEFAULT_FALLBACK_FONT,
    '/fonts/Inter-Bold.ttf',
    '/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf',
    '/usr/share/fonts/TTF/DejaVuSans-Bold.ttf',
    '/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf',
]

# ============================================================================
# Batch generation
# ============================================================================
# 1 = one episode at a time (cancellation is observed after every episode)
DEFAULT_BATCH_SIZE = int(os.environ.get('ARTWORK_BATCH_SIZE', '1'))
MAX_COMPOSITE_WORKERS = int(os.environ.get('ARTWORK_MAX_WORKERS', '4'))
# Total attempts per episode; transient failures only
RENDER_ATTEMPTS = int(os.environ.get('ARTWORK_RENDER_ATTEMPTS', '1'))

# ============================================================================
# Storage and fetching
# ============================================================================
STORE_DIR = Path(os.environ.get('ARTWORK_STORE_DIR', './artwork-data/projects'))

# 'local' or 's3'
BLOB_BACKEND = os.environ.get('ARTWORK_BLOB_BACKEND', 'local').lower()
BLOB_DIR = Path(os.environ.get('ARTWORK_BLOB_DIR', './artwork-data/blobs'))
BLOB_BASE_URL = os.environ.get('ARTWORK_BLOB_BASE_URL', '')

S3_BUCKET = os.environ.get('ARTWORK_S3_BUCKET', '')
S3_REGION = os.environ.get('ARTWORK_S3_REGION', 'us-west-002')
S3_ENDPOINT = os.environ.get('ARTWORK_S3_ENDPOINT', f'https://s3.{S3_REGION}.backblazeb2.com')
S3_KEY_ID = os.environ.get('ARTWORK_S3_KEY_ID', '')
S3_SECRET_KEY = os.environ.get('ARTWORK_S3_SECRET_KEY', '')

IMAGE_CACHE_DIR = Path(os.environ.get('ARTWORK_IMAGE_CACHE_DIR', './artwork-data/image-cache'))
IMAGE_CACHE_TTL_DAYS = int(os.environ.get('ARTWORK_IMAGE_CACHE_TTL_DAYS', '7'))
FETCH_TIMEOUT = int(os.environ.get('ARTWORK_FETCH_TIMEOUT', '30'))
USER_AGENT = 'Mozilla/5.0 (compatible; PodcastArtworkStudio/1.0)'
