"""
Podcast feed fetching.

FeedparserSource downloads an RSS feed with requests and maps the entries
(including the iTunes episode/season/image tags) onto Feed/RawFeedEpisode.
"""

import re
from datetime import datetime, timezone
from io import BytesIO
from typing import Optional, Protocol

import feedparser
import requests

from .constants import logger, FETCH_TIMEOUT, USER_AGENT
from .errors import FeedFetchError
from .models import Feed, RawFeedEpisode

# Numbers written into titles as "Episode 12" / "Ep. 12" count as feed numbers
TITLE_EPISODE_PATTERN = re.compile(r'(?:episode|ep\.?)\s*(\d+)', re.IGNORECASE)


class FeedSource(Protocol):
    def fetch(self, url: str) -> Feed:
        ...


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_datetime(parsed) -> Optional[datetime]:
    if not parsed:
        return None
    try:
        return datetime(*parsed[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _find_audio_url(entry) -> Optional[str]:
    """Audio URL from the enclosures, falling back to typed links."""
    for enclosure in entry.get('enclosures', []):
        href = enclosure.get('href')
        if href:
            return href
    for link in entry.get('links', []):
        if 'audio' in link.get('type', '').lower():
            return link.get('href')
    return None


def _image_href(container) -> Optional[str]:
    image = container.get('image')
    if not image:
        return None
    if isinstance(image, str):
        return _clean(image)
    return _clean(image.get('href') or image.get('url'))


def parse_entry(entry) -> RawFeedEpisode:
    """Map one feedparser entry onto a RawFeedEpisode."""
    title = _clean(entry.get('title')) or 'Untitled Episode'

    number = _clean(entry.get('itunes_episode'))
    if number is None:
        match = TITLE_EPISODE_PATTERN.search(title)
        if match:
            number = match.group(1)

    return RawFeedEpisode(
        title=title,
        number=number,
        season=_clean(entry.get('itunes_season')),
        description=_clean(entry.get('summary')),
        audio_url=_find_audio_url(entry),
        artwork_url=_image_href(entry),
        published_at=_to_datetime(entry.get('published_parsed')),
        guid=_clean(entry.get('id')) or _clean(entry.get('link')),
    )


def parse_feed(content) -> Feed:
    """
    Parse raw RSS content (bytes or str).

    Raises:
        FeedFetchError: if the content is not a readable feed
    """
    if isinstance(content, (bytes, bytearray)):
        content = BytesIO(bytes(content))
    parsed = feedparser.parse(content)
    channel = parsed.get('feed', {})

    if parsed.get('bozo') and not parsed.get('entries') and not channel.get('title'):
        raise FeedFetchError(f"Unreadable feed: {parsed.get('bozo_exception')}")
    if parsed.get('bozo'):
        logger.warning(f"FEED_PARSE_WARNING error={parsed.get('bozo_exception')}")

    episodes = [parse_entry(entry) for entry in parsed.get('entries', [])]
    return Feed(
        title=_clean(channel.get('title')) or 'Untitled Podcast',
        description=_clean(channel.get('subtitle') or channel.get('description')),
        artwork_url=_image_href(channel),
        link=_clean(channel.get('link')),
        language=_clean(channel.get('language')),
        episodes=episodes,
    )


class FeedparserSource:
    """Fetch feeds over HTTP with requests and parse them with feedparser."""

    def __init__(self, session: Optional[requests.Session] = None, timeout: int = FETCH_TIMEOUT):
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': USER_AGENT})
        self.timeout = timeout

    def fetch(self, url: str) -> Feed:
        """
        Download and parse a podcast feed.

        Raises:
            FeedFetchError: on network errors, HTTP errors or unreadable content
        """
        logger.info(f"FEED_FETCH url={url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FeedFetchError(f"Failed to fetch feed {url}: {e}") from e

        feed = parse_feed(response.content)
        logger.info(f"FEED_PARSED url={url} title={feed.title!r} episodes={len(feed.episodes)}")
        return feed
