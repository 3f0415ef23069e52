"""
Podcast Artwork Studio - Renderer Package

This package renders numbered episode artwork from a single podcast cover,
including:
- Episode label formatting and badge layout
- Badge and navigation caption drawing with Pillow
- Batch generation with progress and cancellation
- Feed import and episode numbering
- Project storage (YAML) and artwork publishing (local or S3)
"""

from .constants import (
    logger,
    DEFAULT_BATCH_SIZE,
    MAX_COMPOSITE_WORKERS,
    RENDER_ATTEMPTS,
)

from .errors import (
    ArtworkError,
    ConfigurationError,
    ImageDecodeError,
    RenderError,
    StorageError,
    FeedFetchError,
)

from .style import (
    StyleConfig,
    ProjectTemplate,
    parse_color,
)

from .models import (
    EpisodeInput,
    RenderResult,
    RawFeedEpisode,
    Feed,
    PersistedEpisode,
    NumberCorrection,
)

from .labels import format_label, format_regular_label

from .overlay_positioning import (
    Layout,
    resolve_layout,
    chip_box,
    navigation_layout,
)

from .fonts import validate_fonts_at_startup, get_font

from .badges import draw_badge, draw_navigation

from .artwork_compositor import (
    render_artwork,
    composite_artwork,
    render_preview,
)

from .numbering import (
    extract_number_from_title,
    partition_episodes,
    assign_numbers,
    auto_number,
    fill_missing_numbers,
    fix_numbers_from_feed,
)

from .batch import (
    BatchState,
    BatchProgress,
    BatchSummary,
    BatchGenerationOrchestrator,
    CancellationToken,
)

from .export import ArtworkLink, UpdatedFeed, build_artwork_zip, build_updated_feed, format_url_list

from .storage import LocalBlobStore, S3BlobStore, StoredBlob, get_blob_store
from .feeds import FeedparserSource
from .project_store import YamlProjectStore
from .service import ArtworkStudio

__all__ = [
    # Constants
    'logger',
    'DEFAULT_BATCH_SIZE',
    'MAX_COMPOSITE_WORKERS',
    'RENDER_ATTEMPTS',
    # Errors
    'ArtworkError',
    'ConfigurationError',
    'ImageDecodeError',
    'RenderError',
    'StorageError',
    'FeedFetchError',
    # Style
    'StyleConfig',
    'ProjectTemplate',
    'parse_color',
    # Models
    'EpisodeInput',
    'RenderResult',
    'RawFeedEpisode',
    'Feed',
    'PersistedEpisode',
    'NumberCorrection',
    # Labels and layout
    'format_label',
    'format_regular_label',
    'Layout',
    'resolve_layout',
    'chip_box',
    'navigation_layout',
    # Drawing
    'validate_fonts_at_startup',
    'get_font',
    'draw_badge',
    'draw_navigation',
    'render_artwork',
    'composite_artwork',
    'render_preview',
    # Numbering
    'extract_number_from_title',
    'partition_episodes',
    'assign_numbers',
    'auto_number',
    'fill_missing_numbers',
    'fix_numbers_from_feed',
    # Batch
    'BatchState',
    'BatchProgress',
    'BatchSummary',
    'BatchGenerationOrchestrator',
    'CancellationToken',
    # Export
    'ArtworkLink',
    'UpdatedFeed',
    'build_updated_feed',
    'format_url_list',
    'build_artwork_zip',
    # Adapters
    'LocalBlobStore',
    'S3BlobStore',
    'StoredBlob',
    'get_blob_store',
    'FeedparserSource',
    'YamlProjectStore',
    'ArtworkStudio',
]
