"""
RSS/Atom feed collectors. Uses feedparser.

Simple: fetch feeds, extract entries, dedup by link. FeedCollector holds
the shared logic; the Reddit and arXiv collectors are feed collectors with
their own feed lists and item shaping.
"""

import logging
from abc import abstractmethod

import feedparser
import requests

from collectors.base import (
    Collector,
    CollectionError,
    bounded,
    deadline_passed,
    entry_published,
    strip_html,
)
from config.settings import Config, ConfigError
from filters.relevance import is_relevant, relevance_score
from models import CollectedItem

log = logging.getLogger(__name__)


class FeedCollector(Collector):
    """Collects from a list of feeds. Subclasses provide feed_urls()."""

    per_feed: int = 10
    # Keep only entries matching the AI keyword list
    require_keywords: bool = True

    @abstractmethod
    def feed_urls(self) -> list[str]:
        ...

    def initialize(self) -> None:
        if not self.feed_urls():
            raise ConfigError(f"{self.label}: no feeds configured")

    def collect(self, limit: int | None = None, deadline: float | None = None) -> list[CollectedItem]:
        feeds = self.feed_urls()
        items: list[CollectedItem] = []
        seen: set[str] = set()
        failures = 0

        with self._new_session() as session:
            for feed_url in feeds:
                if limit is not None and len(items) >= limit:
                    break
                if deadline_passed(deadline):
                    log.warning(f"{self.label}: deadline reached, skipping remaining feeds")
                    break
                try:
                    entries = self._fetch_feed(session, feed_url, deadline)
                except (requests.RequestException, CollectionError) as e:
                    log.warning(f"Feed error for {feed_url}: {e}")
                    failures += 1
                    continue

                for item in entries:
                    if item.url in seen:
                        continue
                    seen.add(item.url)
                    items.append(item)

        if failures and failures == len(feeds):
            raise CollectionError(f"all {len(feeds)} feeds failed")

        return bounded(items, limit)

    def _fetch_feed(
        self, session: requests.Session, feed_url: str, deadline: float | None = None
    ) -> list[CollectedItem]:
        """Fetch and parse a single feed, return matching entries."""
        resp = session.get(feed_url, timeout=self._request_timeout(deadline))
        if resp.status_code != 200:
            raise CollectionError(f"HTTP {resp.status_code}")

        feed = feedparser.parse(resp.content)
        if feed.bozo and not feed.entries:
            raise CollectionError(f"unparseable feed: {feed.get('bozo_exception')}")

        feed_title = feed.feed.get("title", feed_url) if feed.feed else feed_url
        items = []

        for entry in feed.entries[:self.per_feed]:
            link = entry.get("link", "")
            title = " ".join(entry.get("title", "").split())
            if not link or not title:
                continue

            # Prefer summary, fall back to content
            body = entry.get("summary", "")
            if not body and entry.get("content"):
                body = entry.content[0].get("value", "")
            body = strip_html(body)

            if self.require_keywords and not is_relevant(f"{title} {body}", self.config.ai_keywords):
                continue

            items.append(self._to_item(entry, title, link, body, feed_title, feed_url))

        return items

    def _to_item(self, entry, title: str, link: str, body: str,
                 feed_title: str, feed_url: str) -> CollectedItem:
        return CollectedItem(
            title=title,
            url=link,
            source=self.key,
            summary=body,
            published_at=entry_published(entry),
            relevance_score=relevance_score(title, body, self.config.ai_keywords),
            author=entry.get("author", "") or feed_title,
            metadata={
                "feed_url": feed_url,
                "feed_title": feed_title,
                "tags": [t.get("term", "") for t in entry.get("tags", []) if t.get("term")],
            },
        )


class RSSCollector(FeedCollector):
    key = "rss"
    label = "RSS Feeds"

    def __init__(self, config: Config):
        super().__init__(config)
        self.per_feed = config.rss_per_feed

    def feed_urls(self) -> list[str]:
        return self.config.rss_feeds
