"""
Reddit collector. Hot posts per subreddit via the public .rss endpoints.
No OAuth app needed.
"""

from dataclasses import replace

from collectors.rss import FeedCollector
from config.settings import Config
from models import CollectedItem

REDDIT_RSS = "https://www.reddit.com/r/{subreddit}/hot/.rss"


class RedditCollector(FeedCollector):
    key = "reddit"
    label = "Reddit"
    # Subreddits are already topical
    require_keywords = False

    def __init__(self, config: Config):
        super().__init__(config)
        self.per_feed = config.reddit_per_subreddit
        self._subreddits = config.reddit_subreddits

    def feed_urls(self) -> list[str]:
        return [REDDIT_RSS.format(subreddit=s) for s in self._subreddits]

    def _to_item(self, entry, title, link, body, feed_title, feed_url) -> CollectedItem:
        item = super()._to_item(entry, title, link, body, feed_title, feed_url)
        subreddit = feed_url.split("/r/", 1)[1].split("/", 1)[0]
        return replace(
            item,
            metadata={**item.metadata, "subreddit": subreddit, "tags": ["reddit", subreddit]},
        )
