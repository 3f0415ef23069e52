#!/usr/bin/env python3
"""
Unit tests for the batch generation orchestrator.

The render step is replaced with plain callables so the tests exercise
ordering, failure capture, progress and cancellation only.

Run with:
    python3 -m pytest artwork_renderer/test_batch.py -v
"""

import threading
import unittest

from artwork_renderer.batch import (
    BatchGenerationOrchestrator,
    BatchState,
    CancellationToken,
)
from artwork_renderer.errors import ConfigurationError, ImageDecodeError, RenderError
from artwork_renderer.models import EpisodeInput


def episodes(count=5):
    return [EpisodeInput(id=f"ep{n}", number=str(n), title=f"Episode {n}") for n in range(1, count + 1)]


class RecordingRenderer:
    """Render callable that records calls and fails for chosen numbers"""

    def __init__(self, fail_numbers=(), error=RenderError):
        self.fail_numbers = set(fail_numbers)
        self.error = error
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, episode):
        with self._lock:
            self.calls.append(episode.id)
        if episode.number in self.fail_numbers:
            raise self.error('font exploded')
        return f"https://cdn.example.com/{episode.id}.png"


class TestSequentialBatch(unittest.TestCase):
    """Tests for the default one-at-a-time mode"""

    def test_all_succeed(self):
        render = RecordingRenderer()
        summary = BatchGenerationOrchestrator(render, batch_size=1).run(episodes())

        self.assertTrue(summary.success)
        self.assertEqual(summary.state, BatchState.COMPLETED)
        self.assertEqual((summary.processed, summary.failed, summary.total), (5, 0, 5))
        self.assertEqual(summary.errors, [])
        self.assertEqual(render.calls, ['ep1', 'ep2', 'ep3', 'ep4', 'ep5'])
        self.assertEqual(summary.results['ep2'].artwork_url, 'https://cdn.example.com/ep2.png')

    def test_one_failure_does_not_stop_the_batch(self):
        """Episode 3 fails; episodes 4 and 5 are still attempted"""
        render = RecordingRenderer(fail_numbers={'3'})
        summary = BatchGenerationOrchestrator(render, batch_size=1).run(episodes())

        self.assertTrue(summary.success)
        self.assertEqual(summary.processed, 4)
        self.assertEqual(summary.failed, 1)
        self.assertEqual(len(summary.errors), 1)
        self.assertTrue(summary.errors[0].startswith('Episode 3:'))
        self.assertIn('font exploded', summary.errors[0])
        self.assertEqual(render.calls, ['ep1', 'ep2', 'ep3', 'ep4', 'ep5'])
        self.assertFalse(summary.results['ep3'].ok)
        self.assertEqual(set(summary.results), {f"ep{n}" for n in range(1, 6)})

    def test_progress_after_every_episode(self):
        snapshots = []
        render = RecordingRenderer(fail_numbers={'2'})
        BatchGenerationOrchestrator(render, batch_size=1).run(episodes(), on_progress=snapshots.append)

        self.assertEqual(len(snapshots), 5)
        for index, snapshot in enumerate(snapshots, start=1):
            self.assertEqual(snapshot.completed + snapshot.failed, index)
            self.assertLessEqual(snapshot.completed + snapshot.failed, snapshot.total)
            self.assertEqual(len(snapshot.errors), snapshot.failed)

    def test_cancel_after_two(self):
        token = CancellationToken()
        render = RecordingRenderer()

        def on_progress(progress):
            if progress.completed == 2:
                token.cancel()

        summary = BatchGenerationOrchestrator(render, batch_size=1).run(
            episodes(), token=token, on_progress=on_progress
        )

        self.assertEqual(summary.state, BatchState.CANCELLED)
        self.assertEqual((summary.processed, summary.failed), (2, 0))
        self.assertEqual(render.calls, ['ep1', 'ep2'])
        self.assertEqual(set(summary.results), {'ep1', 'ep2'})

    def test_cancel_before_start(self):
        token = CancellationToken()
        token.cancel()
        render = RecordingRenderer()
        summary = BatchGenerationOrchestrator(render).run(episodes(), token=token)
        self.assertEqual(summary.state, BatchState.CANCELLED)
        self.assertEqual(summary.processed, 0)
        self.assertEqual(render.calls, [])

    def test_on_result_receives_every_result(self):
        results = []
        BatchGenerationOrchestrator(RecordingRenderer(fail_numbers={'1'})).run(
            episodes(3), on_result=results.append
        )
        self.assertEqual([r.id for r in results], ['ep1', 'ep2', 'ep3'])
        self.assertFalse(results[0].ok)

    def test_unexpected_exception_is_captured(self):
        summary = BatchGenerationOrchestrator(RecordingRenderer({'1'}, error=ValueError)).run(episodes(2))
        self.assertEqual((summary.processed, summary.failed), (1, 1))

    def test_failing_callback_does_not_leave_batch_running(self):
        orchestrator = BatchGenerationOrchestrator(RecordingRenderer(), batch_size=1)

        def explode(progress):
            raise ValueError('progress sink closed')

        with self.assertRaises(ValueError):
            orchestrator.run(episodes(3), on_progress=explode)
        self.assertEqual(orchestrator.state, BatchState.CANCELLED)

        summary = orchestrator.run(episodes(3))
        self.assertEqual(summary.state, BatchState.COMPLETED)
        self.assertEqual(summary.processed, 3)

    def test_empty_batch(self):
        summary = BatchGenerationOrchestrator(RecordingRenderer()).run([])
        self.assertEqual(summary.state, BatchState.COMPLETED)
        self.assertEqual(summary.to_dict()['total'], 0)

    def test_duplicate_ids_rendered_once(self):
        render = RecordingRenderer()
        items = episodes(2) + [EpisodeInput(id='ep1', number='1')]
        summary = BatchGenerationOrchestrator(render).run(items)
        self.assertEqual(summary.total, 2)
        self.assertEqual(render.calls, ['ep1', 'ep2'])

    def test_to_dict(self):
        summary = BatchGenerationOrchestrator(RecordingRenderer({'2'})).run(episodes(3))
        data = summary.to_dict()
        self.assertEqual(data['success'], True)
        self.assertEqual((data['processed'], data['total'], data['failed']), (2, 3, 1))
        self.assertEqual(len(data['errors']), 1)


class TestRetries(unittest.TestCase):
    """Tests for transient failure retries"""

    def test_transient_error_is_retried(self):
        attempts = []

        def flaky(episode):
            attempts.append(episode.id)
            if len(attempts) == 1:
                raise ImageDecodeError('connection reset')
            return 'https://cdn.example.com/ok.png'

        summary = BatchGenerationOrchestrator(flaky, attempts=2).run(episodes(1))
        self.assertEqual(summary.processed, 1)
        self.assertEqual(attempts, ['ep1', 'ep1'])

    def test_configuration_error_is_not_retried(self):
        render = RecordingRenderer({'1'}, error=ConfigurationError)
        summary = BatchGenerationOrchestrator(render, attempts=3).run(episodes(1))
        self.assertEqual(summary.failed, 1)
        self.assertEqual(render.calls, ['ep1'])

    def test_single_attempt_by_default(self):
        render = RecordingRenderer({'1'})
        BatchGenerationOrchestrator(render, attempts=1).run(episodes(1))
        self.assertEqual(render.calls, ['ep1'])


class TestWaveBatch(unittest.TestCase):
    """Tests for batch_size > 1"""

    def test_all_episodes_rendered(self):
        render = RecordingRenderer(fail_numbers={'4'})
        summary = BatchGenerationOrchestrator(render, batch_size=2, max_workers=2).run(episodes())
        self.assertEqual((summary.processed, summary.failed), (4, 1))
        self.assertEqual(sorted(render.calls), ['ep1', 'ep2', 'ep3', 'ep4', 'ep5'])
        self.assertEqual(summary.state, BatchState.COMPLETED)

    def test_cancel_observed_at_wave_boundary(self):
        """The in-flight wave finishes; later waves never start"""
        token = CancellationToken()
        render = RecordingRenderer()
        summary = BatchGenerationOrchestrator(render, batch_size=2, max_workers=2).run(
            episodes(), token=token, on_progress=lambda progress: token.cancel()
        )
        self.assertEqual(summary.state, BatchState.CANCELLED)
        self.assertEqual(summary.processed, 2)
        self.assertEqual(sorted(render.calls), ['ep1', 'ep2'])


if __name__ == '__main__':
    unittest.main()
