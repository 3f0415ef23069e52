"""
Artwork export for Podcast Artwork Studio.

Gets generated artwork back to the podcast host in three forms: an RSS feed
whose episode <itunes:image> tags point at the generated artwork (matched by
GUID), a plain-text URL list for hosts that only allow manual edits, and a
ZIP archive of every generated PNG.
"""

import re
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional, Tuple
from xml.sax.saxutils import escape

from .base_images import read_image_bytes
from .constants import logger
from .errors import ArtworkError
from .models import Feed, PersistedEpisode

RSS_NAMESPACES = (
    'xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd" '
    'xmlns:content="http://purl.org/rss/1.0/modules/content/"'
)
URL_LIST_HEADER = 'ARTWORK URLs FOR MANUAL UPDATE'

_XML_QUOTES = {'"': '&quot;', "'": '&apos;'}


@dataclass(frozen=True)
class ArtworkLink:
    """One generated artwork URL with the episode it belongs to"""
    number: str
    title: str
    artwork_url: str

    def to_dict(self) -> Dict[str, str]:
        return {'number': self.number, 'title': self.title, 'artwork_url': self.artwork_url}


@dataclass
class UpdatedFeed:
    """A rewritten RSS feed plus the artwork links it now contains"""
    feed_url: str
    xml: str
    artwork_links: List[ArtworkLink]
    episodes_updated: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'feed_url': self.feed_url,
            'episodes_updated': self.episodes_updated,
            'artwork_links': [link.to_dict() for link in self.artwork_links],
        }


def _xml(value: Any) -> str:
    return escape(str(value), _XML_QUOTES)


def _rfc822(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def _leading_int(number: Optional[str]) -> int:
    """Integer prefix of an episode number; 0 when there is none."""
    match = re.match(r'\s*(-?\d+)', number or '')
    return int(match.group(1)) if match else 0


def _link(episode: PersistedEpisode) -> ArtworkLink:
    return ArtworkLink(
        number=episode.number or 'N/A',
        title=episode.title,
        artwork_url=episode.generated_artwork_url,
    )


# ============================================================================
# RSS feed
# ============================================================================

def render_feed_xml(feed: Feed, artwork_by_guid: Dict[str, str]) -> str:
    """
    Serialise a feed as RSS 2.0 with iTunes tags.

    An episode whose GUID has generated artwork gets that URL as its
    <itunes:image>; every other episode keeps its original artwork.
    """
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<rss version="2.0" {RSS_NAMESPACES}>',
        '  <channel>',
        f'    <title>{_xml(feed.title or "Podcast")}</title>',
        f'    <link>{_xml(feed.link or "")}</link>',
        f'    <description>{_xml(feed.description or "")}</description>',
        f'    <language>{_xml(feed.language or "en")}</language>',
    ]
    if feed.artwork_url:
        lines.append(f'    <itunes:image href="{_xml(feed.artwork_url)}"/>')

    for episode in feed.episodes:
        lines.append('    <item>')
        lines.append(f'      <title>{_xml(episode.title or "Untitled Episode")}</title>')
        if episode.description:
            lines.append(f'      <description>{_xml(episode.description)}</description>')
        if episode.guid:
            lines.append(f'      <guid isPermaLink="false">{_xml(episode.guid)}</guid>')
        if episode.published_at:
            lines.append(f'      <pubDate>{_rfc822(episode.published_at)}</pubDate>')

        artwork_url = artwork_by_guid.get(episode.guid) if episode.guid else None
        artwork_url = artwork_url or episode.artwork_url
        if artwork_url:
            lines.append(f'      <itunes:image href="{_xml(artwork_url)}"/>')

        if episode.audio_url:
            lines.append(f'      <enclosure url="{_xml(episode.audio_url)}" type="audio/mpeg"/>')
        if episode.number:
            lines.append(f'      <itunes:episode>{_xml(episode.number)}</itunes:episode>')
        if episode.season:
            lines.append(f'      <itunes:season>{_xml(episode.season)}</itunes:season>')
        lines.append('    </item>')

    lines.append('  </channel>')
    lines.append('</rss>')
    return '\n'.join(lines)


def build_updated_feed(feed: Feed, episodes: List[PersistedEpisode], feed_url: str) -> UpdatedFeed:
    """Rewrite a fetched feed with the project's generated artwork."""
    artwork_by_guid: Dict[str, str] = {}
    links: List[ArtworkLink] = []
    for episode in episodes:
        if episode.guid and episode.generated_artwork_url:
            artwork_by_guid[episode.guid] = episode.generated_artwork_url
            links.append(_link(episode))

    matched = sum(1 for episode in feed.episodes if episode.guid in artwork_by_guid)
    logger.info(
        f"FEED_EXPORT url={feed_url} episodes={len(feed.episodes)} "
        f"with_artwork={len(artwork_by_guid)} matched={matched}"
    )
    return UpdatedFeed(
        feed_url=feed_url,
        xml=render_feed_xml(feed, artwork_by_guid),
        artwork_links=links,
        episodes_updated=len(artwork_by_guid),
    )


# ============================================================================
# URL list
# ============================================================================

def artwork_links(episodes: List[PersistedEpisode]) -> List[ArtworkLink]:
    """Episodes with generated artwork, ordered by episode number."""
    with_artwork = [episode for episode in episodes if episode.generated_artwork_url]
    with_artwork.sort(key=lambda episode: _leading_int(episode.number))
    return [_link(episode) for episode in with_artwork]


def format_url_list(episodes: List[PersistedEpisode]) -> str:
    """Plain-text artwork URL list for updating a hosting platform by hand."""
    lines = [URL_LIST_HEADER, '=' * 60, '']
    for link in artwork_links(episodes):
        lines.append(f"Episode {link.number}: {link.title}")
        lines.append(link.artwork_url)
        lines.append('')
    return '\n'.join(lines) + '\n'


# ============================================================================
# ZIP archive
# ============================================================================

def archive_filename(project_name: str) -> str:
    slug = re.sub(r'[^a-z0-9]', '-', project_name or 'podcast', flags=re.IGNORECASE).lower()
    return f"{slug}-artwork.zip"


def archive_entry_name(episode: PersistedEpisode) -> str:
    """episode-007.png, or bonus-007.png for bonus episodes."""
    prefix = 'bonus' if episode.is_bonus else 'episode'
    return f"{prefix}-{str(episode.number or 0).zfill(3)}.png"


def _fetch_artwork(url: str) -> bytes:
    return read_image_bytes(url, cache_dir=None)


def build_artwork_zip(
    episodes: List[PersistedEpisode],
    fetch: Callable[[str], bytes] = _fetch_artwork
) -> Tuple[bytes, int]:
    """
    Pack every generated artwork file into a ZIP archive.

    Episodes without generated artwork are left out. An artwork file that
    cannot be fetched is logged and skipped; the rest of the archive is
    still written.

    Returns:
        (zip bytes, number of files in the archive)
    """
    buffer = BytesIO()
    used_names = set()
    written = 0

    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
        for episode in episodes:
            if not episode.generated_artwork_url:
                continue
            try:
                data = fetch(episode.generated_artwork_url)
            except ArtworkError as e:
                logger.warning(f"ZIP_EXPORT_SKIPPED episode={episode.id} error={e}")
                continue

            name = archive_entry_name(episode)
            stem = name[:-len('.png')]
            suffix = 2
            while name in used_names:
                name = f"{stem}-{suffix}.png"
                suffix += 1
            used_names.add(name)

            archive.writestr(name, data)
            written += 1

    logger.info(f"ZIP_EXPORT files={written}")
    return buffer.getvalue(), written
