"""
Shared fixtures: stub collectors and temporary config/storage.
"""

import sys
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from collectors.base import Collector, bounded
from collectors.registry import SourceRegistry
from config.settings import Config
from models import CollectedItem
from storage.db import Storage

FIXED_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_items(key: str, n: int, start: int = 0) -> list[CollectedItem]:
    return [
        CollectedItem(
            title=f"{key} item {i}",
            url=f"https://{key}.example.com/{i}",
            source=key,
            summary=f"Summary of {key} item {i}",
            published_at=FIXED_TIME,
            relevance_score=5.0,
        )
        for i in range(start, start + n)
    ]


class StubCollector(Collector):
    """
    Collector returning canned items. Optionally raises, or blocks until
    `release` is set. With honor_deadline it stops blocking at its deadline.
    """

    def __init__(
        self,
        key: str,
        count: int = 0,
        label: str | None = None,
        error: Exception | None = None,
        items: list | None = None,
        release: threading.Event | None = None,
        honor_deadline: bool = False,
    ):
        super().__init__(Config())
        self.key = key
        self.label = label or key.upper()
        self._items = items if items is not None else make_items(key, count)
        self._error = error
        self._release = release
        self._honor_deadline = honor_deadline
        self.calls: list[int | None] = []
        self.deadlines: list[float | None] = []
        self.finished = threading.Event()
        self.init_calls = 0

    def initialize(self):
        self.init_calls += 1

    def collect(self, limit=None, deadline=None):
        self.calls.append(limit)
        self.deadlines.append(deadline)
        try:
            if self._release is not None:
                wait = 5
                if self._honor_deadline and deadline is not None:
                    wait = max(0.0, deadline - time.monotonic())
                self._release.wait(timeout=wait)
            if self._error is not None:
                raise self._error
            return bounded(list(self._items), limit)
        finally:
            self.finished.set()


@pytest.fixture
def config(tmp_path):
    return Config(db_path=tmp_path / "radar.db", cron_secret="")


@pytest.fixture
def tmp_storage(tmp_path):
    """Temporary Storage instance."""
    storage = Storage(tmp_path / "test.db")
    yield storage
    storage.close()


@pytest.fixture
def scenario_registry():
    """A=30, B=40, C fails, D=10."""
    return SourceRegistry([
        StubCollector("a", 30, label="Alpha"),
        StubCollector("b", 40, label="Beta"),
        StubCollector("c", label="Gamma", error=RuntimeError("upstream 503")),
        StubCollector("d", 10, label="Delta"),
    ])
