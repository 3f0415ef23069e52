"""
Batch artwork generation.

Runs the compositor across a list of episodes with per-episode failure
capture, progress reporting after every episode, and cooperative
cancellation observed between episodes (or between waves when episodes are
rendered several at a time).

State machine per run: idle -> running -> completed | cancelled
"""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .constants import (
    logger,
    DEFAULT_BATCH_SIZE,
    MAX_COMPOSITE_WORKERS,
    RENDER_ATTEMPTS,
)
from .errors import ConfigurationError, TRANSIENT_ERRORS
from .models import EpisodeInput, RenderResult


class BatchState:
    """Lifecycle of one batch run."""
    IDLE = 'idle'
    RUNNING = 'running'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class CancellationToken:
    """Cooperative cancellation signal shared between a batch and its caller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class BatchProgress:
    """Live counters for one batch run; safe to read from other threads."""
    total: int
    completed: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_success(self) -> None:
        with self._lock:
            self.completed += 1

    def record_failure(self, message: str) -> None:
        with self._lock:
            self.failed += 1
            self.errors.append(message)

    def snapshot(self) -> 'BatchProgress':
        with self._lock:
            return BatchProgress(self.total, self.completed, self.failed, list(self.errors))

    @property
    def remaining(self) -> int:
        return self.total - self.completed - self.failed


@dataclass
class BatchSummary:
    """Final outcome of a batch run."""
    state: str
    total: int
    processed: int
    failed: int
    errors: List[str]
    results: Dict[str, RenderResult]

    @property
    def success(self) -> bool:
        # Partial failures still count as a successful run
        return True

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'state': self.state,
            'processed': self.processed,
            'total': self.total,
            'failed': self.failed,
            'errors': list(self.errors),
        }


class BatchGenerationOrchestrator:
    """
    Drive a render callable over many episodes.

    Args:
        render: Callable taking an EpisodeInput and returning the artwork URL
        batch_size: Episodes rendered per wave; 1 renders strictly one at a time
        max_workers: Thread pool size for waves
        attempts: Total attempts for transient failures (configuration errors
            are never retried)
    """

    def __init__(
        self,
        render: Callable[[EpisodeInput], str],
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_workers: int = MAX_COMPOSITE_WORKERS,
        attempts: int = RENDER_ATTEMPTS
    ):
        self.render = render
        self.batch_size = max(1, int(batch_size))
        self.max_workers = max(1, int(max_workers))
        self.attempts = max(1, int(attempts))
        self.state = BatchState.IDLE
        self.progress = BatchProgress(total=0)
        self._results: Dict[str, RenderResult] = {}

    def run(
        self,
        episodes: Iterable[EpisodeInput],
        token: Optional[CancellationToken] = None,
        on_progress: Optional[Callable[[BatchProgress], None]] = None,
        on_result: Optional[Callable[[RenderResult], None]] = None
    ) -> BatchSummary:
        """
        Render every episode in input order until done or cancelled.

        Episodes that were never started because of cancellation have no
        entry in the results.
        """
        if self.state == BatchState.RUNNING:
            raise RuntimeError("Batch is already running")

        token = token or CancellationToken()
        ordered = self._unique(episodes)

        self.progress = BatchProgress(total=len(ordered))
        self._results = {}
        self.state = BatchState.RUNNING
        logger.info(f"BATCH_START total={len(ordered)} batch_size={self.batch_size}")

        try:
            if self.batch_size == 1:
                cancelled = self._run_sequential(ordered, token, on_progress, on_result)
            else:
                cancelled = self._run_waves(ordered, token, on_progress, on_result)
        except BaseException as e:
            # A failing callback stops the run; it must not stay 'running'
            self.state = BatchState.CANCELLED
            logger.error(f"BATCH_ABORTED error={type(e).__name__}: {e}")
            raise

        self.state = BatchState.CANCELLED if cancelled else BatchState.COMPLETED
        final = self.progress.snapshot()
        logger.info(
            f"BATCH_{self.state.upper()} completed={final.completed} failed={final.failed} "
            f"total={final.total}"
        )
        return BatchSummary(
            state=self.state,
            total=final.total,
            processed=final.completed,
            failed=final.failed,
            errors=final.errors,
            results=dict(self._results),
        )

    def _run_sequential(self, episodes, token, on_progress, on_result) -> bool:
        for index, episode in enumerate(episodes):
            if token.cancelled:
                logger.info(f"BATCH_CANCEL_OBSERVED before={episode.id} skipped={len(episodes) - index}")
                return True
            self._record(episode, self._attempt(episode), on_progress, on_result)
        return False

    def _run_waves(self, episodes, token, on_progress, on_result) -> bool:
        with ThreadPoolExecutor(max_workers=min(self.max_workers, self.batch_size)) as executor:
            for start in range(0, len(episodes), self.batch_size):
                if token.cancelled:
                    logger.info(f"BATCH_CANCEL_OBSERVED skipped={len(episodes) - start}")
                    return True
                wave = episodes[start:start + self.batch_size]
                futures = {executor.submit(self._attempt, episode): episode for episode in wave}
                for future in as_completed(futures):
                    self._record(futures[future], future.result(), on_progress, on_result)
        return False

    def _attempt(self, episode: EpisodeInput) -> RenderResult:
        """Render one episode, converting any failure into a result."""
        for attempt in range(1, self.attempts + 1):
            try:
                url = self.render(episode)
                return RenderResult(id=episode.id, artwork_url=url)
            except ConfigurationError as e:
                return RenderResult(id=episode.id, error=str(e))
            except TRANSIENT_ERRORS as e:
                if attempt < self.attempts:
                    logger.warning(
                        f"RENDER_RETRY episode={episode.id} attempt={attempt} error={e}"
                    )
                    continue
                return RenderResult(id=episode.id, error=str(e))
            except Exception as e:
                logger.exception(f"RENDER_UNEXPECTED_ERROR episode={episode.id}")
                return RenderResult(id=episode.id, error=str(e) or type(e).__name__)
        return RenderResult(id=episode.id, error='No render attempt was made')

    def _record(self, episode, result, on_progress, on_result) -> None:
        self._results[episode.id] = result
        if result.ok:
            self.progress.record_success()
            logger.info(f"  [OK] {episode.display_title}")
        else:
            self.progress.record_failure(f"{episode.display_title}: {result.error}")
            logger.warning(f"  [FAIL] {episode.display_title}: {result.error}")

        if on_result is not None:
            on_result(result)
        if on_progress is not None:
            on_progress(self.progress.snapshot())

    @staticmethod
    def _unique(episodes: Iterable[EpisodeInput]) -> List[EpisodeInput]:
        seen = set()
        ordered = []
        for episode in episodes:
            if episode.id in seen:
                logger.warning(f"BATCH_DUPLICATE_EPISODE id={episode.id}")
                continue
            seen.add(episode.id)
            ordered.append(episode)
        return ordered
