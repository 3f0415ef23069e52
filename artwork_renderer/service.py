"""
Artwork Studio service layer.

Ties the project store, blob store, feed source and renderer together into
the operations the CLI exposes: feed import, numbering, single and batch
generation, cancellation, progress queries and artwork export.
"""

import threading
from dataclasses import fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from .artwork_compositor import composite_artwork, render_preview
from .base_images import BaseImageCache, cache_artwork
from .batch import BatchGenerationOrchestrator, BatchProgress, BatchSummary, CancellationToken
from .constants import (
    logger,
    DEFAULT_BATCH_SIZE,
    IMAGE_CACHE_DIR,
    MAX_COMPOSITE_WORKERS,
    RENDER_ATTEMPTS,
)
from .errors import ConfigurationError
from .export import (
    UpdatedFeed,
    archive_filename,
    build_artwork_zip,
    build_updated_feed,
    format_url_list,
)
from .feeds import FeedparserSource, FeedSource
from .models import EpisodeInput, PersistedEpisode
from .numbering import (
    assign_numbers,
    auto_number,
    fill_missing_numbers,
    fix_numbers_from_feed,
    partition_episodes,
)
from .project_store import YamlProjectStore, new_id
from .storage import BlobStore, get_blob_store
from .style import TEMPLATE_FIELD_ALIASES, ProjectTemplate, StyleConfig


class ArtworkStudio:
    """
    Operations on podcast artwork projects.

    Args:
        store: Project/template/episode store (default: YamlProjectStore)
        blob_store: Destination for rendered and cached artwork
        feed_source: RSS feed fetcher (default: FeedparserSource)
        batch_size: Default episodes per wave for batch runs
        max_workers: Thread pool size for waves
        attempts: Render attempts per episode for transient failures
        image_cache_dir: Disk cache for downloaded base artwork
    """

    def __init__(
        self,
        store: Optional[YamlProjectStore] = None,
        blob_store: Optional[BlobStore] = None,
        feed_source: Optional[FeedSource] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = MAX_COMPOSITE_WORKERS,
        attempts: int = RENDER_ATTEMPTS,
        image_cache_dir: Optional[Path] = IMAGE_CACHE_DIR
    ):
        self.store = store or YamlProjectStore()
        self.blob_store = blob_store or get_blob_store()
        self.feed_source = feed_source or FeedparserSource()
        self.batch_size = batch_size
        self.max_workers = max_workers
        self.attempts = attempts
        self.image_cache_dir = image_cache_dir
        self._tokens: Dict[str, CancellationToken] = {}
        self._tokens_lock = threading.Lock()

    # ========================================================================
    # Templates
    # ========================================================================

    def load_template(self, project_id: str) -> ProjectTemplate:
        """
        Load and validate a project's template.

        Raises:
            ConfigurationError: no template, no base artwork, or invalid style
        """
        template = self.store.get_template(project_id)
        if template is None:
            raise ConfigurationError(f"Project {project_id} has no template")
        if not template.base_artwork_url:
            raise ConfigurationError(f"Template for project {project_id} has no base artwork")
        template.style.validate()
        return template

    def update_template(
        self,
        project_id: str,
        base_artwork_url: Optional[str] = None,
        **style_changes: Any
    ) -> ProjectTemplate:
        """
        Change the base artwork and/or style fields of a project's template.

        Raises:
            ConfigurationError: unknown style field or invalid resulting style
        """
        known = {f.name for f in fields(StyleConfig)} | set(TEMPLATE_FIELD_ALIASES)
        unknown = sorted(set(style_changes) - known)
        if unknown:
            raise ConfigurationError(f"Unknown style field(s): {', '.join(unknown)}")

        template = self.store.get_template(project_id) or ProjectTemplate()
        if base_artwork_url:
            template.base_artwork_url = base_artwork_url
        if style_changes:
            # Values may arrive as strings from the CLI; from_template coerces them
            template.style = StyleConfig.from_template({**template.style.to_template(), **style_changes})
        template.style.validate()
        return self.store.save_template(project_id, template)

    # ========================================================================
    # Generation
    # ========================================================================

    def _key_prefix(self, project_id: str) -> str:
        return f"artwork/{project_id}"

    def _episode_renderer(
        self,
        project_id: str,
        template: ProjectTemplate,
        base_cache: BaseImageCache
    ) -> Callable[[EpisodeInput], str]:
        """Render + persist callable; a failed store write fails the episode."""

        def render(episode: EpisodeInput) -> str:
            url = composite_artwork(
                template.base_artwork_url,
                episode,
                template.style,
                self.blob_store,
                key_prefix=self._key_prefix(project_id),
                base_cache=base_cache,
            )
            try:
                self.store.update_episode(project_id, episode.id, generated_artwork_url=url)
            except Exception:
                # The PNG is already in the blob store and is left there
                logger.error(f"ARTWORK_ORPHANED project={project_id} episode={episode.id} url={url}")
                raise
            return url

        return render

    def generate_single(self, project_id: str, episode_id: str) -> str:
        """
        Render and store the artwork of one episode.

        Returns:
            The artwork URL

        Raises:
            ConfigurationError: missing template/base artwork, unknown or unnumbered episode
            ImageDecodeError, RenderError, StorageError: the render failed
        """
        template = self.load_template(project_id)
        episode = self.store.get_episode(project_id, episode_id)
        if episode is None:
            raise ConfigurationError(f"Episode not found: {episode_id}")
        if not episode.number:
            raise ConfigurationError(f"Episode {episode.title!r} has no number")

        render = self._episode_renderer(project_id, template, BaseImageCache(self.image_cache_dir))
        return render(episode.to_input())

    def select_episodes(
        self,
        project_id: str,
        episode_ids: Optional[List[str]] = None
    ) -> List[PersistedEpisode]:
        """
        Episodes a batch should render, in stored order.

        Unknown IDs are ignored; episodes without a number are skipped.
        """
        episodes = self.store.list_episodes(project_id)
        if episode_ids is not None:
            wanted = set(episode_ids)
            unknown = wanted - {episode.id for episode in episodes}
            if unknown:
                logger.warning(f"BATCH_UNKNOWN_EPISODES project={project_id} ids={','.join(sorted(unknown))}")
            episodes = [episode for episode in episodes if episode.id in wanted]

        numbered = [episode for episode in episodes if episode.number]
        if len(numbered) < len(episodes):
            logger.warning(
                f"BATCH_SKIP_UNNUMBERED project={project_id} skipped={len(episodes) - len(numbered)}"
            )
        return numbered

    def generate_batch(
        self,
        project_id: str,
        episode_ids: Optional[List[str]] = None,
        batch_size: Optional[int] = None,
        on_progress: Optional[Callable[[BatchProgress], None]] = None
    ) -> BatchSummary:
        """
        Render artwork for many episodes of a project.

        Template and episode list problems raise before any episode is
        attempted; per-episode failures end up in the summary's errors.
        """
        template = self.load_template(project_id)
        episodes = self.select_episodes(project_id, episode_ids)

        token = CancellationToken()
        with self._tokens_lock:
            if project_id in self._tokens:
                raise ConfigurationError(f"A batch is already running for project {project_id}")
            self._tokens[project_id] = token

        try:
            orchestrator = BatchGenerationOrchestrator(
                self._episode_renderer(project_id, template, BaseImageCache(self.image_cache_dir)),
                batch_size=batch_size or self.batch_size,
                max_workers=self.max_workers,
                attempts=self.attempts,
            )
            return orchestrator.run(
                [episode.to_input() for episode in episodes],
                token=token,
                on_progress=on_progress,
            )
        finally:
            with self._tokens_lock:
                self._tokens.pop(project_id, None)

    def cancel(self, project_id: str) -> bool:
        """Ask a running batch to stop after the current episode."""
        with self._tokens_lock:
            token = self._tokens.get(project_id)
        if token is None:
            return False
        token.cancel()
        logger.info(f"BATCH_CANCEL_REQUESTED project={project_id}")
        return True

    def get_progress(self, project_id: str) -> Dict[str, int]:
        """Episodes in the project and how many already have artwork."""
        episodes = self.store.list_episodes(project_id)
        return {
            'total': len(episodes),
            'completed': sum(1 for episode in episodes if episode.generated_artwork_url),
        }

    def preview(self, project_id: str, episode_id: str) -> bytes:
        """Downscaled PNG preview of one episode without publishing it."""
        template = self.load_template(project_id)
        episode = self.store.get_episode(project_id, episode_id)
        if episode is None:
            raise ConfigurationError(f"Episode not found: {episode_id}")
        base_image = BaseImageCache(self.image_cache_dir).get(template.base_artwork_url)
        return render_preview(base_image, episode.to_input(), template.style)

    # ========================================================================
    # Feeds and numbering
    # ========================================================================

    def import_feed(
        self,
        project_id: str,
        feed_url: str,
        policy: str = 'feed',
        start_number: int = 1,
        replace_existing: bool = False
    ) -> Dict[str, int]:
        """
        Import episodes from a podcast feed.

        The show artwork becomes the template's base artwork. Episodes whose
        GUID is already stored are skipped unless replace_existing is set,
        in which case stored episodes are deleted first.

        Returns:
            {'count': imported, 'total': feed episodes, 'skipped': already stored}
        """
        self.store.get_project(project_id)
        feed = self.feed_source.fetch(feed_url)

        if feed.artwork_url:
            base_url = cache_artwork(feed.artwork_url, project_id, self.blob_store)
            if base_url is None:
                logger.warning(f"ARTWORK_CACHE_FALLBACK project={project_id} url={feed.artwork_url}")
                base_url = feed.artwork_url
            self.update_template(project_id, base_artwork_url=base_url)

        if replace_existing:
            self.store.clear_episodes(project_id)
            existing_guids = []
        else:
            existing_guids = [episode.guid for episode in self.store.list_episodes(project_id)]

        new, skipped = partition_episodes(feed, existing_guids, replace_existing)
        numbers = assign_numbers(new, policy, start_number)

        self.store.add_episodes(project_id, [
            PersistedEpisode(
                id=new_id(),
                project_id=project_id,
                title=episode.title,
                number=number,
                season=episode.season,
                guid=episode.guid,
                published_at=episode.published_at,
                description=episode.description,
                audio_url=episode.audio_url,
                original_artwork_url=episode.artwork_url,
            )
            for episode, number in zip(new, numbers)
        ])
        self.store.update_project(project_id, feed_url=feed_url, podcast_title=feed.title)

        logger.info(
            f"FEED_IMPORTED project={project_id} imported={len(new)} "
            f"skipped={len(skipped)} total={len(feed.episodes)} policy={policy}"
        )
        return {'count': len(new), 'total': len(feed.episodes), 'skipped': len(skipped)}

    def auto_number(self, project_id: str, start_number: int = 1, order: str = 'published') -> int:
        """Renumber every episode consecutively; returns the count renumbered."""
        assignments = auto_number(self.store.list_episodes(project_id), start_number, order)
        if assignments:
            self.store.update_episodes(
                project_id,
                {episode_id: {'number': number} for episode_id, number in assignments.items()},
            )
        logger.info(f"EPISODES_RENUMBERED project={project_id} count={len(assignments)} order={order}")
        return len(assignments)

    def fill_missing_numbers(self, project_id: str) -> int:
        """Number only the episodes that have none; returns the count filled."""
        assignments = fill_missing_numbers(self.store.list_episodes(project_id))
        if assignments:
            self.store.update_episodes(
                project_id,
                {episode_id: {'number': number} for episode_id, number in assignments.items()},
            )
        return len(assignments)

    def fix_numbers(self, project_id: str) -> int:
        """
        Re-read the project's feed and overwrite numbers/seasons by GUID.

        Raises:
            ConfigurationError: the project was never imported from a feed
            FeedFetchError: the feed could not be fetched
        """
        project = self.store.get_project(project_id)
        feed_url = project.get('feed_url')
        if not feed_url:
            raise ConfigurationError(f"Project {project_id} has no feed URL")

        feed = self.feed_source.fetch(feed_url)
        corrections = fix_numbers_from_feed(self.store.list_episodes(project_id), feed)
        if corrections:
            self.store.update_episodes(project_id, {
                correction.episode_id: {'number': correction.number, 'season': correction.season}
                for correction in corrections
            })
        logger.info(f"EPISODE_NUMBERS_FIXED project={project_id} updated={len(corrections)}")
        return len(corrections)

    def set_bonus(self, project_id: str, episode_id: str, is_bonus: bool = True) -> PersistedEpisode:
        """Mark or unmark an episode as bonus content."""
        return self.store.update_episode(project_id, episode_id, is_bonus=is_bonus)

    # ========================================================================
    # Export
    # ========================================================================

    def _episodes_with_artwork(self, project_id: str) -> List[PersistedEpisode]:
        episodes = self.store.list_episodes(project_id)
        if not any(episode.generated_artwork_url for episode in episodes):
            raise ConfigurationError(
                f"Project {project_id} has no generated artwork; generate artwork first"
            )
        return episodes

    def export_feed(self, project_id: str) -> UpdatedFeed:
        """
        Re-read the project's feed and point each episode's artwork at the
        generated PNG with the same GUID.

        Raises:
            ConfigurationError: no feed URL, or no generated artwork yet
            FeedFetchError: the feed could not be fetched
        """
        project = self.store.get_project(project_id)
        feed_url = project.get('feed_url')
        if not feed_url:
            raise ConfigurationError(f"Project {project_id} has no feed URL")

        episodes = self._episodes_with_artwork(project_id)
        return build_updated_feed(self.feed_source.fetch(feed_url), episodes, feed_url)

    def export_url_list(self, project_id: str) -> str:
        """Text list of generated artwork URLs ordered by episode number."""
        return format_url_list(self._episodes_with_artwork(project_id))

    def export_zip(self, project_id: str) -> Tuple[str, bytes, int]:
        """
        ZIP archive of every generated artwork file.

        Returns:
            (suggested file name, zip bytes, files in the archive)
        """
        project = self.store.get_project(project_id)
        episodes = self._episodes_with_artwork(project_id)
        data, count = build_artwork_zip(episodes)
        return archive_filename(project.get('name') or project_id), data, count
