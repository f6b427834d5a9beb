"""
Dev.to collector. Public articles API, no key required.

Pulls the most recent articles per configured tag, dedups across tags.
"""

import logging
from datetime import datetime

import requests

from collectors.base import Collector, CollectionError, bounded, deadline_passed, strip_html
from config.settings import Config
from filters.relevance import relevance_score
from models import CollectedItem

log = logging.getLogger(__name__)

DEVTO_API = "https://dev.to/api/articles"


class DevToCollector(Collector):
    key = "devto"
    label = "Dev.to"

    def __init__(self, config: Config):
        super().__init__(config)
        self._tags = config.devto_tags
        self._per_tag = config.devto_per_tag
        self._keywords = config.ai_keywords

    def collect(self, limit: int | None = None, deadline: float | None = None) -> list[CollectedItem]:
        items: list[CollectedItem] = []
        seen: set[int] = set()
        failures = 0
        per_page = self._per_tag if limit is None else max(1, min(self._per_tag, limit))

        with self._new_session() as session:
            for tag in self._tags:
                if deadline_passed(deadline):
                    log.warning("Dev.to: deadline reached, skipping remaining tags")
                    break
                try:
                    articles = self._get_json(
                        session, DEVTO_API,
                        params={"tag": tag, "per_page": per_page, "top": 7},
                        deadline=deadline,
                    )
                except (requests.RequestException, CollectionError) as e:
                    log.warning(f"Dev.to error for tag '{tag}': {e}")
                    failures += 1
                    continue

                for article in articles:
                    article_id = article.get("id")
                    if article_id in seen or not article.get("url"):
                        continue
                    seen.add(article_id)
                    items.append(self._to_item(article, tag))

        if failures and failures == len(self._tags):
            raise CollectionError("all Dev.to requests failed")

        return bounded(items, limit)

    def _to_item(self, article: dict, tag: str) -> CollectedItem:
        title = article.get("title", "")
        description = strip_html(article.get("description", ""))
        reactions = article.get("public_reactions_count", 0) or 0

        published = None
        if article.get("published_at"):
            published = datetime.fromisoformat(article["published_at"].replace("Z", "+00:00"))

        return CollectedItem(
            title=title,
            url=article["url"],
            source=self.key,
            summary=description,
            published_at=published,
            relevance_score=relevance_score(title, description, self._keywords, engagement=reactions),
            author=(article.get("user") or {}).get("name", ""),
            metadata={
                "devto_id": article.get("id"),
                "reactions": reactions,
                "comments": article.get("comments_count", 0),
                "reading_time": article.get("reading_time_minutes"),
                "tags": article.get("tag_list") or [tag],
            },
        )
