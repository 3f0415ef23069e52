"""
Base Artwork Loading

Fetches and decodes the base cover artwork that episode badges are drawn on.

Handles can be http(s) URLs, file:// URLs, local paths or raw bytes. Remote
downloads are cached on disk (keyed by URL hash) so re-running a batch does
not re-download the same artwork.

Environment Variables:
  ARTWORK_IMAGE_CACHE_DIR: Disk cache directory (default: ./artwork-data/image-cache)
  ARTWORK_IMAGE_CACHE_TTL_DAYS: Days before re-downloading cached artwork (default: 7)
"""

import hashlib
import json
import secrets
import threading
import time
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Optional, Union
from urllib.error import HTTPError, URLError
from urllib.parse import unquote, urlparse
from urllib.request import Request, urlopen

from PIL import Image, UnidentifiedImageError

from .constants import (
    logger,
    FETCH_TIMEOUT,
    IMAGE_CACHE_DIR,
    IMAGE_CACHE_TTL_DAYS,
    USER_AGENT,
)
from .errors import ImageDecodeError, StorageError

CACHE_METADATA_FILE = 'cache_metadata.json'

ImageHandle = Union[str, Path, bytes]


def get_cache_path(url: str, cache_dir: Path = IMAGE_CACHE_DIR) -> Path:
    """Get local cache path for a downloaded image."""
    safe_name = hashlib.sha256(url.encode()).hexdigest()[:32] + '.img'
    return cache_dir / safe_name


def load_cache_metadata(cache_dir: Path = IMAGE_CACHE_DIR) -> Dict[str, Any]:
    """Load cache metadata from disk."""
    metadata_path = cache_dir / CACHE_METADATA_FILE
    if metadata_path.exists():
        try:
            return json.loads(metadata_path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(f"IMAGE_CACHE_METADATA_UNREADABLE path={metadata_path} error={e}")
    return {'images': {}}


def save_cache_metadata(metadata: Dict[str, Any], cache_dir: Path = IMAGE_CACHE_DIR) -> None:
    """Save cache metadata to disk."""
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        (cache_dir / CACHE_METADATA_FILE).write_text(json.dumps(metadata, indent=2))
    except OSError as e:
        logger.warning(f"IMAGE_CACHE_METADATA_SAVE_FAILED error={e}")


def is_cached_copy_fresh(url: str, cache_dir: Path = IMAGE_CACHE_DIR) -> bool:
    """True if a cached download exists and is younger than the TTL."""
    if not get_cache_path(url, cache_dir).exists():
        return False
    entry = load_cache_metadata(cache_dir).get('images', {}).get(url)
    if not entry:
        return False
    age_days = (time.time() - entry.get('downloaded_at', 0)) / (24 * 3600)
    return age_days <= IMAGE_CACHE_TTL_DAYS


def download_image(url: str, cache_dir: Optional[Path] = IMAGE_CACHE_DIR) -> bytes:
    """
    Download an image over http(s), using the disk cache when fresh.

    Args:
        url: Image URL
        cache_dir: Disk cache directory, or None to bypass the cache

    Returns:
        Raw image bytes

    Raises:
        ImageDecodeError: if the image cannot be downloaded
    """
    if cache_dir is not None and is_cached_copy_fresh(url, cache_dir):
        try:
            return get_cache_path(url, cache_dir).read_bytes()
        except OSError as e:
            logger.warning(f"IMAGE_CACHE_READ_FAILED url={url} error={e}")

    try:
        req = Request(url, headers={'User-Agent': USER_AGENT})
        with urlopen(req, timeout=FETCH_TIMEOUT) as response:
            data = response.read()
    except HTTPError as e:
        raise ImageDecodeError(f"Failed to download base image {url}: HTTP {e.code}") from e
    except URLError as e:
        raise ImageDecodeError(f"Failed to download base image {url}: {e.reason}") from e
    except OSError as e:
        raise ImageDecodeError(f"Failed to download base image {url}: {e}") from e

    if cache_dir is not None:
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
            get_cache_path(url, cache_dir).write_bytes(data)
            metadata = load_cache_metadata(cache_dir)
            metadata.setdefault('images', {})[url] = {
                'downloaded_at': time.time(),
                'size': len(data),
            }
            save_cache_metadata(metadata, cache_dir)
        except OSError as e:
            logger.warning(f"IMAGE_CACHE_WRITE_FAILED url={url} error={e}")

    logger.info(f"BASE_IMAGE_DOWNLOADED url={url} bytes={len(data)}")
    return data


def read_image_bytes(handle: ImageHandle, cache_dir: Optional[Path] = IMAGE_CACHE_DIR) -> bytes:
    """
    Read raw image bytes from any supported handle.

    Raises:
        ImageDecodeError: if the handle cannot be read
    """
    if isinstance(handle, (bytes, bytearray)):
        return bytes(handle)

    text = str(handle)
    if not text:
        raise ImageDecodeError("Base image handle is empty")

    parsed = urlparse(text)
    if parsed.scheme in ('http', 'https'):
        return download_image(text, cache_dir)

    path = Path(unquote(parsed.path)) if parsed.scheme == 'file' else Path(text)
    try:
        return path.read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Failed to read base image {path}: {e}") from e


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded RGBA image.

    Raises:
        ImageDecodeError: if the bytes are not a readable image
    """
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageDecodeError(f"Failed to decode base image: {e}") from e
    return img.convert('RGBA')


def load_base_image(handle: ImageHandle, cache_dir: Optional[Path] = IMAGE_CACHE_DIR) -> Image.Image:
    """Fetch and decode a base image handle."""
    return decode_image(read_image_bytes(handle, cache_dir))


class BaseImageCache:
    """
    Per-batch memo of decoded base images.

    The template's base artwork is decoded once and shared by every episode
    in the batch. Failures are not memoized, so each episode that needs a
    broken image reports its own ImageDecodeError.
    """

    def __init__(self, cache_dir: Optional[Path] = IMAGE_CACHE_DIR):
        self.cache_dir = cache_dir
        self._images: Dict[str, Image.Image] = {}
        self._lock = threading.Lock()

    def get(self, handle: ImageHandle) -> Image.Image:
        """Return the shared decoded image; callers copy it before drawing."""
        if isinstance(handle, (bytes, bytearray)):
            key = 'bytes:' + hashlib.sha256(handle).hexdigest()
        else:
            key = str(handle)

        with self._lock:
            cached = self._images.get(key)
            if cached is None:
                cached = load_base_image(handle, self.cache_dir)
                self._images[key] = cached
                logger.info(f"BASE_IMAGE_DECODED key={key[:80]} size={cached.width}x{cached.height}")
        return cached

    def clear(self) -> None:
        with self._lock:
            self._images.clear()


def cache_artwork(artwork_url: str, project_id: str, blob_store) -> Optional[str]:
    """
    Download external show artwork and re-host it in the blob store.

    Args:
        artwork_url: External artwork URL from the feed
        project_id: Project ID used to name the cached file
        blob_store: Blob store with put(key, data, content_type)

    Returns:
        The blob store URL, or None if caching failed
    """
    logger.info(f"ARTWORK_CACHE_DOWNLOAD url={artwork_url}")
    try:
        req = Request(artwork_url, headers={'User-Agent': USER_AGENT})
        with urlopen(req, timeout=FETCH_TIMEOUT) as response:
            data = response.read()
            content_type = response.headers.get('Content-Type') or 'image/png'
    except (HTTPError, URLError, OSError) as e:
        logger.error(f"ARTWORK_CACHE_FAILED url={artwork_url} error={e}")
        return None

    if 'jpeg' in content_type or 'jpg' in content_type:
        ext = 'jpg'
    elif 'webp' in content_type:
        ext = 'webp'
    else:
        ext = 'png'

    key = f"podcast-artwork/{project_id}-{secrets.token_urlsafe(6)}.{ext}"
    try:
        stored = blob_store.put(key, data, content_type)
    except StorageError as e:
        logger.error(f"ARTWORK_CACHE_UPLOAD_FAILED key={key} error={e}")
        return None

    logger.info(f"ARTWORK_CACHED key={key} url={stored.url}")
    return stored.url
