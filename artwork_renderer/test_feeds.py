#!/usr/bin/env python3
"""
Unit tests for feed parsing.

Run with:
    python3 -m pytest artwork_renderer/test_feeds.py -v
"""

import unittest
from datetime import datetime, timezone

import requests

from artwork_renderer.errors import FeedFetchError
from artwork_renderer.feeds import FeedparserSource, parse_feed

SAMPLE_FEED = b'''<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Test Podcast</title>
    <description>A podcast for tests</description>
    <itunes:image href="https://example.com/show.jpg"/>
    <item>
      <title>Season opener</title>
      <guid>guid-3</guid>
      <itunes:episode>3</itunes:episode>
      <itunes:season>2</itunes:season>
      <pubDate>Mon, 04 Mar 2024 10:00:00 GMT</pubDate>
      <enclosure url="https://example.com/3.mp3" type="audio/mpeg" length="1"/>
    </item>
    <item>
      <title>Ep. 2 - Second</title>
      <guid>guid-2</guid>
      <description>Second episode</description>
    </item>
    <item>
      <title>No number here</title>
      <link>https://example.com/episodes/1</link>
    </item>
  </channel>
</rss>
'''


class FakeResponse:
    def __init__(self, content, status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class FakeSession:
    def __init__(self, response=None, error=None):
        self.headers = {}
        self.response = response
        self.error = error
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return self.response


class TestParseFeed(unittest.TestCase):
    """Tests for parse_feed"""

    def setUp(self):
        self.feed = parse_feed(SAMPLE_FEED)

    def test_channel(self):
        self.assertEqual(self.feed.title, 'Test Podcast')
        self.assertEqual(self.feed.artwork_url, 'https://example.com/show.jpg')
        self.assertEqual(len(self.feed.episodes), 3)

    def test_itunes_tags(self):
        first = self.feed.episodes[0]
        self.assertEqual(first.number, '3')
        self.assertEqual(first.season, '2')
        self.assertEqual(first.guid, 'guid-3')
        self.assertEqual(first.audio_url, 'https://example.com/3.mp3')
        self.assertEqual(first.published_at, datetime(2024, 3, 4, 10, 0, tzinfo=timezone.utc))

    def test_number_from_title(self):
        self.assertEqual(self.feed.episodes[1].number, '2')
        self.assertEqual(self.feed.episodes[1].description, 'Second episode')

    def test_missing_guid_falls_back_to_link(self):
        last = self.feed.episodes[2]
        self.assertIsNone(last.number)
        self.assertEqual(last.guid, 'https://example.com/episodes/1')

    def test_garbage_is_rejected(self):
        with self.assertRaises(FeedFetchError):
            parse_feed(b'\x00\x01 definitely not xml <<<')


class TestFeedparserSource(unittest.TestCase):
    """Tests for FeedparserSource with a fake HTTP session"""

    def test_fetch(self):
        session = FakeSession(FakeResponse(SAMPLE_FEED))
        feed = FeedparserSource(session=session).fetch('https://example.com/feed.xml')
        self.assertEqual(session.requested, ['https://example.com/feed.xml'])
        self.assertIn('User-Agent', session.headers)
        self.assertEqual(len(feed.episodes), 3)

    def test_http_error(self):
        session = FakeSession(FakeResponse(b'', status_code=404))
        with self.assertRaises(FeedFetchError):
            FeedparserSource(session=session).fetch('https://example.com/missing.xml')

    def test_network_error(self):
        session = FakeSession(error=requests.ConnectionError('unreachable'))
        with self.assertRaises(FeedFetchError):
            FeedparserSource(session=session).fetch('https://example.com/feed.xml')


if __name__ == '__main__':
    unittest.main()
