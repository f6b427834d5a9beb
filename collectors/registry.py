"""
Source registry. Maps source key -> collector instance.

Resolved once at startup. Order is significant: it is the dispatch order
of a collection run and the tie-break when the global cap truncates.
"""

import logging
from typing import Iterable

from collectors.analysis import AIAnalysisCollector
from collectors.arxiv import ArxivCollector
from collectors.base import Collector
from collectors.devto import DevToCollector
from collectors.github import GitHubTrendingCollector
from collectors.hackernews import HackerNewsCollector
from collectors.reddit import RedditCollector
from collectors.rss import RSSCollector
from config.settings import Config, ConfigError
from llm.provider import LLMProvider
from models import SourceDescriptor

log = logging.getLogger(__name__)

# Sources that need nothing but config
SIMPLE_COLLECTORS: dict[str, type[Collector]] = {
    cls.key: cls
    for cls in (
        HackerNewsCollector,
        GitHubTrendingCollector,
        DevToCollector,
        RedditCollector,
        ArxivCollector,
        RSSCollector,
    )
}


class UnknownSourceError(ConfigError):
    """Raised for a source key that is not registered."""

    def __init__(self, key: str, known: Iterable[str]):
        self.key = key
        known = sorted(known)
        super().__init__(f"Unknown source '{key}'. Known sources: {', '.join(known) or '(none)'}")


class SourceRegistry:
    def __init__(self, collectors: Iterable[Collector]):
        self._collectors: dict[str, Collector] = {}
        for collector in collectors:
            if not collector.key or not collector.label:
                raise ConfigError(f"{collector!r} has no key/label")
            if collector.key in self._collectors:
                raise ConfigError(f"Duplicate source key '{collector.key}'")
            self._collectors[collector.key] = collector
        self._initialized = False

    def __len__(self) -> int:
        return len(self._collectors)

    def __contains__(self, key: str) -> bool:
        return key in self._collectors

    def keys(self) -> list[str]:
        return list(self._collectors)

    def descriptors(self) -> list[SourceDescriptor]:
        return [c.descriptor for c in self._collectors.values()]

    def get(self, key: str) -> Collector:
        try:
            return self._collectors[key]
        except KeyError:
            raise UnknownSourceError(key, self._collectors) from None

    def initialize(self) -> None:
        """Warm every collector once. Safe to call again."""
        if self._initialized:
            return
        for collector in self._collectors.values():
            collector.initialize()
        self._initialized = True

    @property
    def initialized(self) -> bool:
        return self._initialized


def build_registry(config: Config, llm: LLMProvider | None = None) -> SourceRegistry:
    """
    Build the registry from config.sources, in that order.

    The analysis source needs an LLM; without one it is left out with a
    warning rather than failing the whole registry.
    """
    collectors: list[Collector] = []
    for key in config.sources:
        if key == AIAnalysisCollector.key:
            if llm is None:
                log.warning(f"Source '{key}' needs an LLM provider; not registered")
                continue
            collectors.append(AIAnalysisCollector(config, llm))
        elif key in SIMPLE_COLLECTORS:
            collectors.append(SIMPLE_COLLECTORS[key](config))
        else:
            raise UnknownSourceError(key, list(SIMPLE_COLLECTORS) + [AIAnalysisCollector.key])

    if not collectors:
        raise ConfigError("No sources configured. Set RADAR_SOURCES.")

    return SourceRegistry(collectors)
