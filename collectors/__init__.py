from collectors.analysis import AIAnalysisCollector
from collectors.arxiv import ArxivCollector
from collectors.base import Collector, CollectionError
from collectors.devto import DevToCollector
from collectors.github import GitHubTrendingCollector
from collectors.hackernews import HackerNewsCollector
from collectors.reddit import RedditCollector
from collectors.registry import SourceRegistry, UnknownSourceError, build_registry
from collectors.rss import FeedCollector, RSSCollector

__all__ = [
    "AIAnalysisCollector",
    "ArxivCollector",
    "Collector",
    "CollectionError",
    "DevToCollector",
    "FeedCollector",
    "GitHubTrendingCollector",
    "HackerNewsCollector",
    "RedditCollector",
    "RSSCollector",
    "SourceRegistry",
    "UnknownSourceError",
    "build_registry",
]
