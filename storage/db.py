"""
SQLite storage. One file, one connection, no ORM.

Tables:
- evidence: collected items kept for editorial review
- articles: LLM-drafted articles with SEO and quality data
- system_logs: run records (collection runs, generation runs, failures)

A Storage instance belongs to the thread that created it. The HTTP layer
opens one per request; the orchestrator never touches storage.
"""

import hashlib
import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from models import (
    ARTICLE_STATUSES,
    EVIDENCE_STATUSES,
    AggregateResult,
    Article,
    Evidence,
    LogEntry,
)

LOG_LEVELS = ("debug", "info", "warning", "error")


def _url_hash(url: str) -> str:
    return hashlib.sha256(url.strip().encode()).hexdigest()[:16]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Storage:
    def __init__(self, db_path: Path):
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.row_factory = sqlite3.Row
        self._migrate()

    def _migrate(self):
        """Create tables if they don't exist. No migration framework needed."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS evidence (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                url_hash TEXT NOT NULL UNIQUE,
                source TEXT NOT NULL,
                title TEXT NOT NULL,
                url TEXT NOT NULL,
                domain TEXT NOT NULL DEFAULT '',
                summary TEXT NOT NULL DEFAULT '',
                published_at TEXT,
                quotes TEXT NOT NULL DEFAULT '[]',
                stats TEXT NOT NULL DEFAULT '[]',
                scores TEXT NOT NULL DEFAULT '{}',
                status TEXT NOT NULL DEFAULT 'pending',
                tags TEXT NOT NULL DEFAULT '[]',
                collected_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_evidence_status
                ON evidence(status);
            CREATE INDEX IF NOT EXISTS idx_evidence_source
                ON evidence(source);
            CREATE INDEX IF NOT EXISTS idx_evidence_collected
                ON evidence(collected_at);

            CREATE TABLE IF NOT EXISTS articles (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                content TEXT NOT NULL,
                seo TEXT NOT NULL DEFAULT '{}',
                quality TEXT NOT NULL DEFAULT '{}',
                status TEXT NOT NULL DEFAULT 'draft',
                evidence_ids TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_articles_status
                ON articles(status);

            CREATE TABLE IF NOT EXISTS system_logs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                level TEXT NOT NULL,
                component TEXT NOT NULL,
                message TEXT NOT NULL,
                details TEXT NOT NULL DEFAULT '{}',
                created_at TEXT NOT NULL
            );
        """)
        self._conn.commit()

    # ── Evidence ──

    def insert_evidence(self, evidence: Evidence) -> int | None:
        """
        Insert evidence. Returns the new id, or None if the URL is already stored.
        Duplicates are ignored.
        """
        if evidence.status not in EVIDENCE_STATUSES:
            raise ValueError(f"Invalid evidence status: {evidence.status}")
        cursor = self._conn.execute(
            """INSERT OR IGNORE INTO evidence
               (url_hash, source, title, url, domain, summary, published_at,
                quotes, stats, scores, status, tags, collected_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                _url_hash(evidence.url),
                evidence.source,
                evidence.title,
                evidence.url,
                evidence.domain,
                evidence.summary,
                evidence.published_at,
                json.dumps(evidence.quotes),
                json.dumps(evidence.stats),
                json.dumps(evidence.scores),
                evidence.status,
                json.dumps(evidence.tags),
                _now(),
            ),
        )
        self._conn.commit()
        if cursor.rowcount == 0:
            return None
        return cursor.lastrowid

    def save_collection(self, result: AggregateResult) -> int:
        """Store a run's items as pending evidence. Returns count of new rows."""
        new_count = 0
        for item in result.items:
            if self.insert_evidence(Evidence.from_item(item)) is not None:
                new_count += 1
        return new_count

    def get_evidence(self, evidence_id: int) -> Evidence | None:
        row = self._conn.execute(
            "SELECT * FROM evidence WHERE id = ?", (evidence_id,)
        ).fetchone()
        return self._row_to_evidence(row) if row else None

    def get_evidence_many(self, ids: list[int]) -> list[Evidence]:
        if not ids:
            return []
        placeholders = ", ".join("?" for _ in ids)
        rows = self._conn.execute(
            f"SELECT * FROM evidence WHERE id IN ({placeholders}) ORDER BY id", list(ids)
        ).fetchall()
        return [self._row_to_evidence(r) for r in rows]

    def list_evidence(
        self,
        status: str | None = None,
        source: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Evidence], int]:
        """Query evidence with filters. Returns (rows, total_count)."""
        conditions = ["1 = 1"]
        params: list = []

        if status:
            conditions.append("status = ?")
            params.append(status)
        if source:
            conditions.append("source = ?")
            params.append(source)

        where = " AND ".join(conditions)

        total = self._conn.execute(
            f"SELECT COUNT(*) FROM evidence WHERE {where}", params
        ).fetchone()[0]

        rows = self._conn.execute(
            f"SELECT * FROM evidence WHERE {where} "
            f"ORDER BY collected_at DESC, id DESC "
            f"LIMIT ? OFFSET ?",
            params + [limit, offset],
        ).fetchall()

        return [self._row_to_evidence(r) for r in rows], total

    def set_evidence_status(self, evidence_id: int, status: str) -> bool:
        """Approve/reject. Returns False if no such evidence."""
        if status not in EVIDENCE_STATUSES:
            raise ValueError(f"Invalid evidence status: {status}")
        cursor = self._conn.execute(
            "UPDATE evidence SET status = ? WHERE id = ?", (status, evidence_id)
        )
        self._conn.commit()
        return cursor.rowcount > 0

    def _row_to_evidence(self, row: sqlite3.Row) -> Evidence:
        return Evidence(
            id=row["id"],
            title=row["title"],
            url=row["url"],
            source=row["source"],
            domain=row["domain"],
            summary=row["summary"],
            published_at=row["published_at"],
            quotes=json.loads(row["quotes"]),
            stats=json.loads(row["stats"]),
            scores=json.loads(row["scores"]),
            status=row["status"],
            tags=json.loads(row["tags"]),
        )

    # ── Articles ──

    def insert_article(self, article: Article) -> int:
        if article.status not in ARTICLE_STATUSES:
            raise ValueError(f"Invalid article status: {article.status}")
        created = article.created_at.isoformat()
        cursor = self._conn.execute(
            """INSERT INTO articles
               (title, content, seo, quality, status, evidence_ids, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                article.title,
                article.content,
                json.dumps(article.seo),
                json.dumps(article.quality),
                article.status,
                json.dumps(article.evidence_ids),
                created,
                created,
            ),
        )
        self._conn.commit()
        article.id = cursor.lastrowid
        return article.id

    def get_article(self, article_id: int) -> Article | None:
        row = self._conn.execute(
            "SELECT * FROM articles WHERE id = ?", (article_id,)
        ).fetchone()
        return self._row_to_article(row) if row else None

    def list_articles(
        self,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Article], int]:
        where, params = ("status = ?", [status]) if status else ("1 = 1", [])
        total = self._conn.execute(
            f"SELECT COUNT(*) FROM articles WHERE {where}", params
        ).fetchone()[0]
        rows = self._conn.execute(
            f"SELECT * FROM articles WHERE {where} "
            f"ORDER BY created_at DESC, id DESC LIMIT ? OFFSET ?",
            params + [limit, offset],
        ).fetchall()
        return [self._row_to_article(r) for r in rows], total

    UPDATABLE_ARTICLE_FIELDS = ("title", "content", "seo", "quality", "status")

    def update_article(self, article_id: int, **fields) -> Article | None:
        """
        Update selected fields. Returns the updated article, None if missing.
        Unknown fields, wrongly typed values or an invalid status raise
        ValueError.
        """
        unknown = set(fields) - set(self.UPDATABLE_ARTICLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update article fields: {', '.join(sorted(unknown))}")
        if "status" in fields and fields["status"] not in ARTICLE_STATUSES:
            raise ValueError(f"Invalid article status: {fields['status']}")
        for name in ("title", "content"):
            if name in fields and (not isinstance(fields[name], str) or not fields[name].strip()):
                raise ValueError(f"Article {name} must be a non-empty string")
        for name in ("seo", "quality"):
            if name in fields and not isinstance(fields[name], dict):
                raise ValueError(f"Article {name} must be an object")

        if fields:
            assignments = []
            params: list = []
            for name, value in fields.items():
                assignments.append(f"{name} = ?")
                params.append(json.dumps(value) if name in ("seo", "quality") else value)
            assignments.append("updated_at = ?")
            params.append(_now())
            self._conn.execute(
                f"UPDATE articles SET {', '.join(assignments)} WHERE id = ?",
                params + [article_id],
            )
            self._conn.commit()

        return self.get_article(article_id)

    def _row_to_article(self, row: sqlite3.Row) -> Article:
        return Article(
            id=row["id"],
            title=row["title"],
            content=row["content"],
            seo=json.loads(row["seo"]),
            quality=json.loads(row["quality"]),
            status=row["status"],
            evidence_ids=json.loads(row["evidence_ids"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    # ── Logs ──

    def log(self, level: str, component: str, message: str, details: dict | None = None):
        """Record a log entry for later inspection via the API."""
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {level}")
        self._conn.execute(
            "INSERT INTO system_logs (level, component, message, details, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (level, component, message, json.dumps(details or {}, default=str), _now()),
        )
        self._conn.commit()

    def get_logs(self, limit: int = 50, level: str | None = None) -> list[LogEntry]:
        query = "SELECT level, component, message, details FROM system_logs"
        params: list = []
        if level:
            query += " WHERE level = ?"
            params.append(level)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        return [
            LogEntry(
                level=row["level"],
                component=row["component"],
                message=row["message"],
                details=json.loads(row["details"]),
            )
            for row in self._conn.execute(query, params)
        ]

    def get_stats(self) -> dict:
        """Basic stats for the dashboard and the CLI."""
        total = self._conn.execute("SELECT COUNT(*) FROM evidence").fetchone()[0]
        by_source = {
            row[0]: row[1]
            for row in self._conn.execute(
                "SELECT source, COUNT(*) FROM evidence GROUP BY source"
            )
        }
        by_status = {
            row[0]: row[1]
            for row in self._conn.execute(
                "SELECT status, COUNT(*) FROM evidence GROUP BY status"
            )
        }
        articles = self._conn.execute("SELECT COUNT(*) FROM articles").fetchone()[0]
        latest = self._conn.execute("SELECT MAX(collected_at) FROM evidence").fetchone()[0]
        return {
            "total_evidence": total,
            "by_source": by_source,
            "by_status": by_status,
            "total_articles": articles,
            "latest_collection": latest,
        }

    def close(self):
        self._conn.close()
