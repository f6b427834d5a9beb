"""
Hacker News collector. Uses the official Firebase API.

Strategy:
- Merge top and best story ids, dedup, keep the first N
- Fetch each story, keep AI-related ones above a score threshold
- No scraping, no auth required
"""

import logging
from datetime import datetime, timezone

import requests

from collectors.base import Collector, CollectionError, bounded, deadline_passed
from config.settings import Config
from filters.relevance import is_relevant, relevance_score
from models import CollectedItem

log = logging.getLogger(__name__)

HN_API = "https://hacker-news.firebaseio.com/v0"


class HackerNewsCollector(Collector):
    key = "hackernews"
    label = "Hacker News"

    def __init__(self, config: Config):
        super().__init__(config)
        self._max_stories = config.hn_max_stories
        self._min_score = config.hn_min_score
        self._keywords = config.ai_keywords

    def collect(self, limit: int | None = None, deadline: float | None = None) -> list[CollectedItem]:
        items: list[CollectedItem] = []

        with self._new_session() as session:
            story_ids = self._story_ids(session, deadline)
            if not story_ids:
                raise CollectionError("no story ids returned")

            for story_id in story_ids:
                if limit is not None and len(items) >= limit:
                    break
                if deadline_passed(deadline):
                    log.warning(f"HN: deadline reached after {len(items)} items")
                    break
                try:
                    item = self._fetch_story(session, story_id, deadline)
                except requests.RequestException as e:
                    log.debug(f"HN story {story_id} skipped: {e}")
                    continue
                if item:
                    items.append(item)

        return bounded(items, limit)

    def _story_ids(self, session: requests.Session, deadline: float | None = None) -> list[int]:
        """Top stories first, then best stories not already listed."""
        ids: list[int] = []
        seen: set[int] = set()
        for feed in ("topstories", "beststories"):
            try:
                feed_ids = self._get_json(session, f"{HN_API}/{feed}.json", deadline=deadline) or []
            except (requests.RequestException, CollectionError) as e:
                log.warning(f"HN {feed} error: {e}")
                continue
            for story_id in feed_ids:
                if story_id not in seen:
                    seen.add(story_id)
                    ids.append(story_id)
        return ids[:self._max_stories]

    def _fetch_story(
        self, session: requests.Session, story_id: int, deadline: float | None = None
    ) -> CollectedItem | None:
        """Fetch a single story and convert it if it meets criteria."""
        resp = session.get(f"{HN_API}/item/{story_id}.json", timeout=self._request_timeout(deadline))
        if resp.status_code != 200:
            return None

        story = resp.json()
        if not story or story.get("type") != "story" or not story.get("title"):
            return None

        points = story.get("score", 0)
        if points < self._min_score:
            return None

        title = story["title"]
        text = story.get("text", "") or ""
        if not is_relevant(f"{title} {text}", self._keywords):
            return None

        hn_url = f"https://news.ycombinator.com/item?id={story_id}"
        comments = story.get("descendants", 0)
        published = None
        if story.get("time"):
            published = datetime.fromtimestamp(story["time"], tz=timezone.utc)

        return CollectedItem(
            title=title,
            url=story.get("url") or hn_url,
            source=self.key,
            summary=text or f"{title}. Score: {points}, Comments: {comments}",
            published_at=published,
            relevance_score=relevance_score(title, text, self._keywords, engagement=points),
            author=story.get("by", ""),
            metadata={
                "hn_id": story_id,
                "score": points,
                "comments": comments,
                "hn_url": hn_url,
            },
        )
