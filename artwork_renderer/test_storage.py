#!/usr/bin/env python3
"""
Unit tests for blob stores and the YAML project store.

Run with:
    python3 -m pytest artwork_renderer/test_storage.py -v
"""

import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from botocore.exceptions import ClientError

from artwork_renderer.errors import ConfigurationError, StorageError
from artwork_renderer.models import PersistedEpisode
from artwork_renderer.project_store import YamlProjectStore
from artwork_renderer.storage import LocalBlobStore, S3BlobStore, normalize_key
from artwork_renderer.style import ProjectTemplate, StyleConfig


class FakeS3Client:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.calls.append(kwargs)
        return {}


class TestLocalBlobStore(unittest.TestCase):
    """Tests for LocalBlobStore"""

    def test_put_writes_file_and_returns_url(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = LocalBlobStore(Path(tmpdir), 'https://files.example.com/')
            stored = store.put('artwork/p1/a.png', b'data', 'image/png')

            self.assertEqual(stored.key, 'artwork/p1/a.png')
            self.assertEqual(stored.url, 'https://files.example.com/artwork/p1/a.png')
            self.assertEqual((Path(tmpdir) / 'artwork/p1/a.png').read_bytes(), b'data')
            self.assertFalse((Path(tmpdir) / 'artwork/p1/a.png.part').exists())

    def test_file_url_without_base_url(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            stored = LocalBlobStore(Path(tmpdir)).put('a.png', b'x')
            self.assertTrue(stored.url.startswith('file://'))

    def test_rejects_escaping_keys(self):
        with self.assertRaises(StorageError):
            normalize_key('../outside.png')
        with self.assertRaises(StorageError):
            normalize_key('/')
        self.assertEqual(normalize_key('/artwork/a.png'), 'artwork/a.png')


class TestS3BlobStore(unittest.TestCase):
    """Tests for S3BlobStore with a fake client"""

    def test_put_object_is_public(self):
        client = FakeS3Client()
        store = S3BlobStore('bucket', endpoint_url='https://s3.example.com', client=client)
        stored = store.put('artwork/a.png', b'png', 'image/png')

        self.assertEqual(client.calls[0]['Bucket'], 'bucket')
        self.assertEqual(client.calls[0]['Key'], 'artwork/a.png')
        self.assertEqual(client.calls[0]['ContentType'], 'image/png')
        self.assertEqual(client.calls[0]['ACL'], 'public-read')
        self.assertEqual(stored.url, 'https://s3.example.com/bucket/artwork/a.png')

    def test_public_base_url(self):
        store = S3BlobStore('bucket', public_base_url='https://cdn.example.com', client=FakeS3Client())
        self.assertEqual(store.put('a.png', b'x').url, 'https://cdn.example.com/a.png')

    def test_client_error_becomes_storage_error(self):
        error = ClientError({'Error': {'Code': 'AccessDenied', 'Message': 'nope'}}, 'PutObject')
        store = S3BlobStore('bucket', client=FakeS3Client(error))
        with self.assertRaises(StorageError):
            store.put('a.png', b'x')

    def test_bucket_required(self):
        with self.assertRaises(ConfigurationError):
            S3BlobStore('', client=FakeS3Client())


class TestYamlProjectStore(unittest.TestCase):
    """Tests for YamlProjectStore"""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = YamlProjectStore(Path(self.tmpdir.name))
        self.store.create_project('My Show', 'show')

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_project_round_trip(self):
        self.store.update_project('show', feed_url='https://example.com/feed.xml')
        project = self.store.get_project('show')
        self.assertEqual(project['name'], 'My Show')
        self.assertEqual(project['feed_url'], 'https://example.com/feed.xml')
        self.assertEqual([p['id'] for p in self.store.list_projects()], ['show'])

    def test_missing_project(self):
        with self.assertRaises(ConfigurationError):
            self.store.get_project('nope')

    def test_invalid_project_id(self):
        with self.assertRaises(ConfigurationError):
            self.store.create_project('Bad', '../escape')

    def test_duplicate_project(self):
        with self.assertRaises(ConfigurationError):
            self.store.create_project('Again', 'show')

    def test_template_round_trip(self):
        self.assertIsNone(self.store.get_template('show'))
        template = ProjectTemplate(
            base_artwork_url='https://example.com/cover.png',
            style=StyleConfig(position='bottom-left', background_opacity=0.5, label_format='custom',
                              custom_prefix='#'),
        )
        self.store.save_template('show', template)
        self.assertEqual(self.store.get_template('show'), template)

    def test_episode_round_trip(self):
        episode = PersistedEpisode(
            id='e1',
            project_id='show',
            title='Episode 1: Hello',
            number='1',
            season='2',
            guid='guid-1',
            published_at=datetime(2024, 3, 1, 12, 30, tzinfo=timezone.utc),
        )
        self.assertEqual(self.store.add_episodes('show', [episode]), 1)

        loaded = self.store.get_episode('show', 'e1')
        self.assertEqual(loaded, episode)
        self.assertIsNone(self.store.get_episode('show', 'missing'))

    def test_update_episodes(self):
        self.store.add_episodes('show', [
            PersistedEpisode(id='e1', project_id='show', number='1'),
            PersistedEpisode(id='e2', project_id='show', number='2'),
        ])
        self.store.update_episodes('show', {'e1': {'number': '10'}, 'e2': {'is_bonus': True}})
        self.store.update_episode('show', 'e2', generated_artwork_url='https://cdn/e2.png')

        episodes = {e.id: e for e in self.store.list_episodes('show')}
        self.assertEqual(episodes['e1'].number, '10')
        self.assertTrue(episodes['e2'].is_bonus)
        self.assertEqual(episodes['e2'].generated_artwork_url, 'https://cdn/e2.png')

    def test_update_unknown_episode_or_field(self):
        self.store.add_episodes('show', [PersistedEpisode(id='e1', project_id='show')])
        with self.assertRaises(ConfigurationError):
            self.store.update_episode('show', 'nope', number='1')
        with self.assertRaises(ConfigurationError):
            self.store.update_episode('show', 'e1', colour='red')

    def test_clear_episodes(self):
        self.store.add_episodes('show', [PersistedEpisode(id='e1', project_id='show')])
        self.assertEqual(self.store.clear_episodes('show'), 1)
        self.assertEqual(self.store.list_episodes('show'), [])


if __name__ == '__main__':
    unittest.main()
