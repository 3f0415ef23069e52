"""
Data models for Podcast Artwork Studio.

Shared data classes for episodes, feeds and render results.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class EpisodeInput:
    """One episode handed to the compositor"""
    id: str
    number: str
    is_bonus: bool = False
    title: Optional[str] = None

    @property
    def display_title(self) -> str:
        return self.title or self.id


@dataclass(frozen=True)
class RenderResult:
    """Outcome of rendering one episode: a URL or an error message"""
    id: str
    artwork_url: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RawFeedEpisode:
    """An episode as it appears in the podcast feed"""
    title: str = 'Untitled Episode'
    number: Optional[str] = None
    season: Optional[str] = None
    description: Optional[str] = None
    audio_url: Optional[str] = None
    artwork_url: Optional[str] = None
    published_at: Optional[datetime] = None
    guid: Optional[str] = None


@dataclass
class Feed:
    """A fetched podcast feed"""
    title: str = 'Untitled Podcast'
    description: Optional[str] = None
    artwork_url: Optional[str] = None
    link: Optional[str] = None
    language: Optional[str] = None
    episodes: List[RawFeedEpisode] = field(default_factory=list)


@dataclass
class PersistedEpisode:
    """An episode stored for a project"""
    id: str
    project_id: str
    title: str = 'Untitled Episode'
    number: Optional[str] = None
    season: Optional[str] = None
    is_bonus: bool = False
    guid: Optional[str] = None
    published_at: Optional[datetime] = None
    description: Optional[str] = None
    audio_url: Optional[str] = None
    original_artwork_url: Optional[str] = None
    generated_artwork_url: Optional[str] = None

    def to_input(self) -> EpisodeInput:
        return EpisodeInput(
            id=self.id,
            number=self.number or '',
            is_bonus=self.is_bonus,
            title=self.title,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'project_id': self.project_id,
            'title': self.title,
            'number': self.number,
            'season': self.season,
            'is_bonus': self.is_bonus,
            'guid': self.guid,
            'published_at': self.published_at.isoformat() if self.published_at else None,
            'description': self.description,
            'audio_url': self.audio_url,
            'original_artwork_url': self.original_artwork_url,
            'generated_artwork_url': self.generated_artwork_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PersistedEpisode':
        published = data.get('published_at')
        if isinstance(published, str):
            published = datetime.fromisoformat(published)
        number = data.get('number')
        season = data.get('season')
        return cls(
            id=str(data['id']),
            project_id=str(data.get('project_id', '')),
            title=str(data.get('title') or 'Untitled Episode'),
            number=None if number is None else str(number),
            season=None if season is None else str(season),
            is_bonus=bool(data.get('is_bonus', False)),
            guid=data.get('guid') or None,
            published_at=published,
            description=data.get('description'),
            audio_url=data.get('audio_url'),
            original_artwork_url=data.get('original_artwork_url'),
            generated_artwork_url=data.get('generated_artwork_url'),
        )


@dataclass(frozen=True)
class NumberCorrection:
    """A number/season overwrite taken from the feed"""
    episode_id: str
    number: Optional[str] = None
    season: Optional[str] = None
