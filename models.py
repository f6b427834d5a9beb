"""
Core data types. No behavior, just shapes.

JSON produced by to_dict() is the wire format used by the HTTP API and the
progress stream, so keys are camelCase.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar
from urllib.parse import urlparse


@dataclass(frozen=True)
class SourceDescriptor:
    """A registered source: stable key plus display label."""
    key: str
    label: str

    def to_dict(self) -> dict:
        return {"key": self.key, "label": self.label}


@dataclass(frozen=True)
class CollectedItem:
    """A single piece of collected content, normalized across sources."""
    title: str
    url: str
    source: str                         # source key, never reassigned
    summary: str = ""
    published_at: datetime | None = None
    relevance_score: float | None = None    # 0-10
    author: str = ""
    metadata: dict = field(default_factory=dict)

    @property
    def domain(self) -> str:
        return urlparse(self.url).netloc.lower().removeprefix("www.")

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "summary": self.summary,
            "publishedAt": self.published_at.isoformat() if self.published_at else None,
            "relevanceScore": self.relevance_score,
            "author": self.author,
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        return f"CollectedItem({self.source}, {self.title[:50]})"


@dataclass(frozen=True)
class AggregateResult:
    """Merged, capped output of one collection run."""
    total_collected: int
    by_source: dict[str, int]
    items: list[CollectedItem]
    errors: list[str]

    def to_dict(self) -> dict:
        return {
            "totalCollected": self.total_collected,
            "bySource": dict(self.by_source),
            "items": [item.to_dict() for item in self.items],
            "errors": list(self.errors),
        }


# ── Progress events ──
# One record type per lifecycle transition of a collection run.


@dataclass(frozen=True)
class StartEvent:
    type: ClassVar[str] = "start"
    total_sources: int
    sources: list[SourceDescriptor]

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "totalSources": self.total_sources,
            "sources": [s.to_dict() for s in self.sources],
            "progress": 0,
            "message": f"Collecting from {self.total_sources} sources",
        }


@dataclass(frozen=True)
class SourceStartEvent:
    type: ClassVar[str] = "source_start"
    source: str
    key: str
    completed_sources: int
    progress: int

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "source": self.source,
            "key": self.key,
            "completedSources": self.completed_sources,
            "progress": self.progress,
        }


@dataclass(frozen=True)
class SourceCompleteEvent:
    type: ClassVar[str] = "source_complete"
    source: str
    key: str
    items_collected: int
    total_collected: int
    completed_sources: int
    progress: int
    message: str | None = None

    def to_dict(self) -> dict:
        d = {
            "type": self.type,
            "source": self.source,
            "key": self.key,
            "itemsCollected": self.items_collected,
            "totalCollected": self.total_collected,
            "completedSources": self.completed_sources,
            "progress": self.progress,
        }
        if self.message:
            d["message"] = self.message
        return d


@dataclass(frozen=True)
class SourceErrorEvent:
    type: ClassVar[str] = "source_error"
    source: str
    key: str
    error: str
    completed_sources: int
    progress: int

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "source": self.source,
            "key": self.key,
            "error": self.error,
            "completedSources": self.completed_sources,
            "progress": self.progress,
        }


@dataclass(frozen=True)
class CompleteEvent:
    type: ClassVar[str] = "complete"
    result: AggregateResult
    completed_sources: int

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            **self.result.to_dict(),
            "completedSources": self.completed_sources,
            "progress": 100,
            "message": f"Collected {self.result.total_collected} items",
        }


ProgressEvent = StartEvent | SourceStartEvent | SourceCompleteEvent | SourceErrorEvent | CompleteEvent


# ── Stored records ──

EVIDENCE_STATUSES = ("pending", "approved", "rejected")
ARTICLE_STATUSES = ("draft", "needs_improvement", "review", "approved", "published")


@dataclass
class Evidence:
    """A collected item as persisted for editorial review."""
    title: str
    url: str
    source: str
    domain: str = ""
    summary: str = ""
    published_at: str | None = None
    quotes: list[str] = field(default_factory=list)
    stats: list[str] = field(default_factory=list)
    scores: dict = field(default_factory=dict)
    status: str = "pending"
    tags: list[str] = field(default_factory=list)
    id: int | None = None

    @classmethod
    def from_item(cls, item: CollectedItem) -> "Evidence":
        scores = {}
        if item.relevance_score is not None:
            scores["relevance"] = item.relevance_score
        return cls(
            title=item.title,
            url=item.url,
            source=item.source,
            domain=item.domain,
            summary=item.summary,
            published_at=item.published_at.isoformat() if item.published_at else None,
            scores=scores,
            tags=list(item.metadata.get("tags", [])),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "source": self.source,
            "domain": self.domain,
            "summary": self.summary,
            "publishedAt": self.published_at,
            "quotes": self.quotes,
            "stats": self.stats,
            "scores": self.scores,
            "status": self.status,
            "tags": self.tags,
        }


@dataclass
class Article:
    """An LLM-drafted article."""
    title: str
    content: str
    seo: dict = field(default_factory=dict)
    quality: dict = field(default_factory=dict)
    status: str = "draft"
    evidence_ids: list[int] = field(default_factory=list)
    id: int | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "seo": self.seo,
            "quality": self.quality,
            "status": self.status,
            "evidenceIds": self.evidence_ids,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class LogEntry:
    level: str          # "info" | "warning" | "error"
    component: str
    message: str
    details: dict = field(default_factory=dict)
