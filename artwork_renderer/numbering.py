"""
Episode numbering.

Decides which feed episodes are new, what number each one gets, and how to
renumber or correct the episodes already stored for a project.
"""

import re
from datetime import timezone
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .constants import logger, NUMBERING_POLICIES
from .errors import ConfigurationError
from .models import Feed, NumberCorrection, PersistedEpisode, RawFeedEpisode

# Title patterns in priority order; the flag says whether to drop leading zeros
TITLE_NUMBER_PATTERNS = [
    (re.compile(r'(?:episode|ep\.?)\s*(\d+)', re.IGNORECASE), False),
    (re.compile(r'\bE(\d+)\b', re.IGNORECASE), True),
    (re.compile(r'#\s*(\d+)'), False),
    (re.compile(r'^(\d+)[\s.\-:]'), True),
]

AUTO_NUMBER_ORDERS = ('published', 'number')


def extract_number_from_title(title: Optional[str]) -> Optional[str]:
    """
    Pull an episode number out of a title.

    Recognizes "Episode 5", "Ep. 5", "E05", "#5" and a leading "005 - Title".
    """
    if not title:
        return None
    for pattern, strip_zeros in TITLE_NUMBER_PATTERNS:
        match = pattern.search(title)
        if match:
            return str(int(match.group(1))) if strip_zeros else match.group(1)
    return None


def partition_episodes(
    feed: Feed,
    existing_guids: Iterable[str],
    replace_existing: bool = False
) -> Tuple[List[RawFeedEpisode], List[RawFeedEpisode]]:
    """
    Split feed episodes into new and already imported ones.

    An episode without a GUID is always new. With replace_existing every
    episode is new because the caller clears the stored ones first.

    Returns:
        (new_episodes, already_imported), both in feed order
    """
    if replace_existing:
        return list(feed.episodes), []

    known: Set[str] = {guid for guid in existing_guids if guid}
    new, existing = [], []
    for episode in feed.episodes:
        if episode.guid and episode.guid in known:
            existing.append(episode)
        else:
            new.append(episode)
    return new, existing


def assign_numbers(
    episodes: Sequence[RawFeedEpisode],
    policy: str = 'feed',
    start_number: int = 1
) -> List[str]:
    """
    Number new episodes according to the import policy.

    Args:
        episodes: New episodes in feed order
        policy: 'feed' (feed number, then title, then 1-based position),
            'sequential' (1, 2, ...) or 'custom-start' (start_number, +1, ...)
        start_number: First number for 'custom-start'

    Returns:
        One number string per episode, in the same order
    """
    if policy not in NUMBERING_POLICIES:
        raise ConfigurationError(f"Unknown numbering policy: {policy}")

    if policy == 'sequential':
        return [str(1 + index) for index in range(len(episodes))]
    if policy == 'custom-start':
        return [str(start_number + index) for index in range(len(episodes))]

    numbers = []
    for index, episode in enumerate(episodes):
        number = episode.number or extract_number_from_title(episode.title) or str(index + 1)
        numbers.append(number)
    return numbers


def _published_key(episode: PersistedEpisode) -> Tuple[int, float]:
    # Undated episodes sort after dated ones; sorted() keeps input order for ties
    if episode.published_at is None:
        return (1, 0.0)
    published = episode.published_at
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    return (0, published.timestamp())


def _number_key(episode: PersistedEpisode) -> Tuple[int, float]:
    if episode.number is None:
        return (2, 0.0)
    try:
        return (0, float(episode.number))
    except ValueError:
        return (1, 0.0)


def auto_number(
    episodes: Sequence[PersistedEpisode],
    start_number: int = 1,
    order: str = 'published'
) -> Dict[str, str]:
    """
    Renumber episodes consecutively.

    Args:
        episodes: Stored episodes of one project
        start_number: Number given to the first episode
        order: 'published' (oldest first) or 'number' (ascending current number)

    Returns:
        Mapping of episode ID to its new number
    """
    if order not in AUTO_NUMBER_ORDERS:
        raise ConfigurationError(f"Unknown renumber order: {order}")

    key = _published_key if order == 'published' else _number_key
    ordered = sorted(episodes, key=key)
    return {episode.id: str(start_number + index) for index, episode in enumerate(ordered)}


def fill_missing_numbers(episodes: Sequence[PersistedEpisode]) -> Dict[str, str]:
    """
    Number only the episodes that have none.

    Titles are tried first; whatever is left is numbered 1, 2, ... in
    publish order among the remaining episodes.
    """
    assignments: Dict[str, str] = {}
    remaining = []
    for episode in episodes:
        if episode.number:
            continue
        extracted = extract_number_from_title(episode.title)
        if extracted:
            assignments[episode.id] = extracted
        else:
            remaining.append(episode)

    for index, episode in enumerate(sorted(remaining, key=_published_key)):
        assignments[episode.id] = str(index + 1)

    logger.info(
        f"NUMBERS_FILLED from_title={len(assignments) - len(remaining)} by_date={len(remaining)}"
    )
    return assignments


def fix_numbers_from_feed(
    persisted: Sequence[PersistedEpisode],
    feed: Feed
) -> List[NumberCorrection]:
    """
    Overwrite stored numbers and seasons with what the feed now says.

    Only GUID matches whose feed entry carries a number or a season produce a
    correction; everything else is left untouched.
    """
    by_guid = {episode.guid: episode for episode in feed.episodes if episode.guid}

    corrections = []
    for episode in persisted:
        if not episode.guid:
            continue
        match = by_guid.get(episode.guid)
        if match is None or not (match.number or match.season):
            continue
        corrections.append(NumberCorrection(
            episode_id=episode.id,
            number=match.number or episode.number,
            season=match.season or episode.season,
        ))

    logger.info(f"NUMBERS_FROM_FEED matched={len(corrections)} stored={len(persisted)}")
    return corrections
