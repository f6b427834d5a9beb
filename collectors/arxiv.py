"""
arXiv collector. Daily cs.AI listing feed.

Titles carry line breaks and abstracts carry an "arXiv:XXXX Announce Type"
preamble; both are cleaned before scoring.
"""

import re
from dataclasses import replace

from collectors.rss import FeedCollector
from config.settings import Config
from models import CollectedItem

_PAPER_ID = re.compile(r"/(?:abs|pdf)/(\d{4}\.\d{4,5})")
_ANNOUNCE = re.compile(r"^arXiv:\S+\s+Announce Type:\s*\S+\s*(Abstract:)?\s*", re.IGNORECASE)


def clean_abstract(text: str) -> str:
    return _ANNOUNCE.sub("", text).strip()


class ArxivCollector(FeedCollector):
    key = "arxiv"
    label = "ArXiv"
    require_keywords = False

    def __init__(self, config: Config):
        super().__init__(config)
        self.per_feed = config.arxiv_max_items
        self._feed = config.arxiv_feed

    def feed_urls(self) -> list[str]:
        return [self._feed]

    def _to_item(self, entry, title, link, body, feed_title, feed_url) -> CollectedItem:
        abstract = clean_abstract(body)
        match = _PAPER_ID.search(link)
        base = super()._to_item(entry, title, link, abstract, feed_title, feed_url)
        return replace(
            base,
            author=entry.get("author", "") or "arXiv authors",
            metadata={
                **base.metadata,
                "paper_id": match.group(1) if match else None,
                "type": "research_paper",
                "tags": ["research", "arxiv"],
            },
        )
