"""
Base collector interface. All collectors must implement this.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from time import mktime

import requests

from config.settings import Config
from models import CollectedItem, SourceDescriptor

log = logging.getLogger(__name__)

# Floor for a request timeout shortened by a deadline
MIN_REQUEST_TIMEOUT = 1.0


class CollectionError(Exception):
    """Raised by a collector when its upstream is unusable."""
    pass


class Collector(ABC):
    """
    A collector pulls the current items of one source.

    Contract:
    - collect() is read-only against the upstream. No writes, no persistence.
    - collect(limit) returns at most `limit` items when limit is given.
      Upstream order is preserved (most recent/relevant first).
    - Failures raise. The orchestrator turns them into per-source errors.
    - collect(limit, deadline) stops issuing requests once the deadline
      (a time.monotonic() value) has passed and returns what it has. Each
      request is also shortened to end near the deadline.
    - initialize() is idempotent and cheap to call twice.
    """

    key: str = ""
    label: str = ""

    def __init__(self, config: Config):
        self.config = config
        self._timeout = config.http_timeout

    @property
    def descriptor(self) -> SourceDescriptor:
        return SourceDescriptor(key=self.key, label=self.label)

    def initialize(self) -> None:
        """Warm per-source configuration. Default: nothing to do."""
        return None

    @abstractmethod
    def collect(self, limit: int | None = None, deadline: float | None = None) -> list[CollectedItem]:
        """Fetch the source's current items, at most `limit` of them."""
        ...

    def _new_session(self) -> requests.Session:
        session = requests.Session()
        session.headers["User-Agent"] = self.config.user_agent
        return session

    def _request_timeout(self, deadline: float | None) -> float:
        """HTTP timeout for the next request, cut down to the time left."""
        left = time_left(deadline)
        if left is None:
            return self._timeout
        return max(MIN_REQUEST_TIMEOUT, min(self._timeout, left))

    def _get_json(
        self,
        session: requests.Session,
        url: str,
        params: dict | None = None,
        deadline: float | None = None,
    ):
        """GET and decode JSON. Non-2xx raises CollectionError."""
        resp = session.get(url, params=params, timeout=self._request_timeout(deadline))
        if resp.status_code != 200:
            raise CollectionError(f"{url}: HTTP {resp.status_code}")
        return resp.json()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.key})"


def time_left(deadline: float | None) -> float | None:
    """Seconds until deadline. None when there is no deadline."""
    if deadline is None:
        return None
    return deadline - time.monotonic()


def deadline_passed(deadline: float | None) -> bool:
    return deadline is not None and time.monotonic() >= deadline


def bounded(items: list, limit: int | None) -> list:
    """Truncate to limit, preserving order. None means unbounded."""
    if limit is None:
        return items
    return items[:max(0, limit)]


def strip_html(text: str, max_len: int = 3000) -> str:
    """Crude tag strip + whitespace collapse. Sufficient for summaries."""
    text = re.sub(r"<[^>]+>", " ", text or "")
    text = re.sub(r"\s+", " ", text).strip()
    if len(text) > max_len:
        text = text[:max_len] + " [truncated]"
    return text


def entry_published(entry) -> datetime | None:
    """Published (or updated) time of a feedparser entry, UTC."""
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    try:
        return datetime.fromtimestamp(mktime(parsed), tz=timezone.utc)
    except (ValueError, OverflowError, TypeError):
        return None
