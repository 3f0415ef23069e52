"""
Episode Artwork Compositor

Renders one episode's artwork: the base cover at its native resolution with
the episode badge and optional navigation caption drawn on top, encoded as
PNG and published through the blob store.

Pipeline:
  decode base image -> copy onto an RGBA surface (no resizing) ->
  format label -> resolve layout -> draw badge -> draw navigation ->
  encode PNG -> blob_store.put() -> URL

No retries happen here; the batch orchestrator decides about retrying.
"""

import hashlib
import re
from io import BytesIO
from typing import Optional, Union

from PIL import Image

from .badges import draw_badge, draw_navigation
from .base_images import BaseImageCache, ImageHandle, load_base_image
from .constants import logger
from .errors import ConfigurationError, RenderError, StorageError
from .labels import format_label
from .models import EpisodeInput
from .overlay_positioning import resolve_layout
from .storage import BlobStore
from .style import StyleConfig

PNG_CONTENT_TYPE = 'image/png'

# Preview renders are downscaled to fit inside this box
PREVIEW_MAX_DIMENSION = 600


def render_artwork(base_image: Image.Image, episode: EpisodeInput, style: StyleConfig) -> Image.Image:
    """
    Draw the badge and navigation caption over a copy of the base image.

    The output has exactly the base image's pixel dimensions.

    Raises:
        ConfigurationError: for un-renderable style values
        RenderError: if any drawing or measuring step fails
    """
    try:
        canvas = base_image.convert('RGBA') if base_image.mode != 'RGBA' else base_image.copy()

        label = format_label(episode.number, style, episode.is_bonus)
        layout = resolve_layout(
            canvas.width,
            canvas.height,
            style.position,
            style.custom_x,
            style.custom_y,
        )

        draw_badge(canvas, layout, label, style)
        draw_navigation(canvas, style)
    except ConfigurationError:
        raise
    except (OSError, ValueError, TypeError, KeyError) as e:
        raise RenderError(f"Failed to render episode {episode.number}: {e}") from e

    return canvas


def encode_png(image: Image.Image) -> bytes:
    """
    Encode a rendered surface as PNG.

    Fully opaque images are written without an alpha channel.

    Raises:
        StorageError: if encoding fails
    """
    try:
        if image.mode == 'RGBA' and image.getchannel('A').getextrema() == (255, 255):
            image = image.convert('RGB')
        buffer = BytesIO()
        image.save(buffer, 'PNG')
    except (OSError, ValueError) as e:
        raise StorageError(f"Failed to encode artwork as PNG: {e}") from e
    return buffer.getvalue()


def artwork_key(episode: EpisodeInput, data: bytes, key_prefix: str = 'artwork') -> str:
    """
    Storage key for a rendered artwork.

    Keys are content-addressed, so re-rendering an unchanged episode writes
    the same object instead of piling up copies.
    """
    slug = re.sub(r'[^A-Za-z0-9._-]+', '-', episode.number or 'unnumbered').strip('-') or 'unnumbered'
    if episode.is_bonus:
        slug = f"bonus-{slug}"
    digest = hashlib.sha256(data).hexdigest()[:16]
    return f"{key_prefix.strip('/')}/episode-{slug}-{digest}.png"


def composite_artwork(
    base: Union[ImageHandle, Image.Image],
    episode: EpisodeInput,
    style: StyleConfig,
    blob_store: BlobStore,
    key_prefix: str = 'artwork',
    base_cache: Optional[BaseImageCache] = None
) -> str:
    """
    Render one episode's artwork and publish it.

    Args:
        base: Base image handle (URL, path, bytes) or an already decoded image
        episode: Episode number, bonus flag and identifier
        style: Template style
        blob_store: Destination for the encoded PNG
        key_prefix: Storage key prefix (usually per project)
        base_cache: Shared decode cache for batch runs

    Returns:
        The published artwork URL

    Raises:
        ImageDecodeError: base image unreachable or corrupt
        ConfigurationError: un-renderable style values
        RenderError: a drawing step failed
        StorageError: encoding or upload failed
    """
    if isinstance(base, Image.Image):
        base_image = base
    elif base_cache is not None:
        base_image = base_cache.get(base)
    else:
        base_image = load_base_image(base)

    rendered = render_artwork(base_image, episode, style)
    data = encode_png(rendered)
    key = artwork_key(episode, data, key_prefix)

    stored = blob_store.put(key, data, PNG_CONTENT_TYPE)
    logger.info(
        f"ARTWORK_RENDERED episode={episode.id} number={episode.number} "
        f"size={rendered.width}x{rendered.height} url={stored.url}"
    )
    return stored.url


def render_preview(
    base: Union[ImageHandle, Image.Image],
    episode: EpisodeInput,
    style: StyleConfig,
    max_dimension: int = PREVIEW_MAX_DIMENSION
) -> bytes:
    """
    Render a downscaled PNG preview without publishing it.

    The preview is rendered at full resolution first and then shrunk, so it
    always matches the published artwork.
    """
    base_image = base if isinstance(base, Image.Image) else load_base_image(base)
    rendered = render_artwork(base_image, episode, style)
    if max(rendered.size) > max_dimension:
        rendered.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return encode_png(rendered)
