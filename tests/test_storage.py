"""
Tests for SQLite storage: evidence, articles, logs, stats.
"""

import pytest

from models import AggregateResult, Article, Evidence

from conftest import make_items


def _result(*groups) -> AggregateResult:
    items = [item for group in groups for item in group]
    by_source: dict[str, int] = {}
    for item in items:
        by_source[item.source] = by_source.get(item.source, 0) + 1
    return AggregateResult(len(items), by_source, items, [])


# ──────────────────────────────────────────────
# Evidence
# ──────────────────────────────────────────────

class TestEvidence:
    def test_save_collection(self, tmp_storage):
        new = tmp_storage.save_collection(_result(make_items("hackernews", 3), make_items("rss", 2)))
        assert new == 5

        rows, total = tmp_storage.list_evidence()
        assert total == 5
        assert all(ev.status == "pending" for ev in rows)

    def test_duplicate_urls_ignored(self, tmp_storage):
        tmp_storage.save_collection(_result(make_items("rss", 3)))
        new = tmp_storage.save_collection(_result(make_items("rss", 4)))

        assert new == 1
        assert tmp_storage.list_evidence()[1] == 4

    def test_round_trip_fields(self, tmp_storage):
        item = make_items("devto", 1)[0]
        evidence_id = tmp_storage.insert_evidence(Evidence.from_item(item))
        ev = tmp_storage.get_evidence(evidence_id)

        assert ev.id == evidence_id
        assert ev.url == item.url
        assert ev.domain == "devto.example.com"
        assert ev.scores == {"relevance": 5.0}
        assert ev.published_at == item.published_at.isoformat()

    def test_filters_and_pagination(self, tmp_storage):
        tmp_storage.save_collection(_result(make_items("github", 6), make_items("arxiv", 2)))

        rows, total = tmp_storage.list_evidence(source="github", limit=4, offset=0)
        assert total == 6
        assert len(rows) == 4
        assert all(ev.source == "github" for ev in rows)

        rows, _ = tmp_storage.list_evidence(source="github", limit=4, offset=4)
        assert len(rows) == 2

    def test_set_status(self, tmp_storage):
        evidence_id = tmp_storage.insert_evidence(Evidence.from_item(make_items("rss", 1)[0]))

        assert tmp_storage.set_evidence_status(evidence_id, "approved") is True
        approved, total = tmp_storage.list_evidence(status="approved")
        assert total == 1
        assert approved[0].id == evidence_id

    def test_set_status_missing(self, tmp_storage):
        assert tmp_storage.set_evidence_status(999, "approved") is False

    def test_set_status_invalid(self, tmp_storage):
        with pytest.raises(ValueError):
            tmp_storage.set_evidence_status(1, "maybe")

    def test_get_missing(self, tmp_storage):
        assert tmp_storage.get_evidence(42) is None

    def test_get_many(self, tmp_storage):
        tmp_storage.save_collection(_result(make_items("rss", 3)))
        rows = tmp_storage.get_evidence_many([3, 1])
        assert [ev.id for ev in rows] == [1, 3]


# ──────────────────────────────────────────────
# Articles
# ──────────────────────────────────────────────

class TestArticles:
    def _article(self, **overrides):
        fields = {
            "title": "What agents mean for CRM",
            "content": "## Intro\nText.",
            "seo": {"keywords": ["agents"]},
            "quality": {"total": 71},
            "evidence_ids": [1, 2],
        }
        fields.update(overrides)
        return Article(**fields)

    def test_insert_and_get(self, tmp_storage):
        article_id = tmp_storage.insert_article(self._article())
        article = tmp_storage.get_article(article_id)

        assert article.title == "What agents mean for CRM"
        assert article.seo == {"keywords": ["agents"]}
        assert article.evidence_ids == [1, 2]
        assert article.status == "draft"

    def test_update(self, tmp_storage):
        article_id = tmp_storage.insert_article(self._article())
        article = tmp_storage.update_article(article_id, status="review", quality={"total": 80})

        assert article.status == "review"
        assert article.quality == {"total": 80}

    def test_update_missing(self, tmp_storage):
        assert tmp_storage.update_article(5, title="x") is None

    def test_update_rejects_bad_fields(self, tmp_storage):
        article_id = tmp_storage.insert_article(self._article())
        with pytest.raises(ValueError):
            tmp_storage.update_article(article_id, evidence_ids=[9])
        with pytest.raises(ValueError):
            tmp_storage.update_article(article_id, status="archived")

    def test_update_rejects_wrong_types(self, tmp_storage):
        article_id = tmp_storage.insert_article(self._article())
        for fields in ({"title": {"text": "x"}}, {"title": None}, {"content": "  "}, {"seo": ["a"]}):
            with pytest.raises(ValueError):
                tmp_storage.update_article(article_id, **fields)
        assert tmp_storage.get_article(article_id).title == "What agents mean for CRM"

    def test_insert_rejects_bad_status(self, tmp_storage):
        with pytest.raises(ValueError):
            tmp_storage.insert_article(self._article(status="archived"))

    def test_list_by_status(self, tmp_storage):
        tmp_storage.insert_article(self._article())
        tmp_storage.insert_article(self._article(status="published"))

        rows, total = tmp_storage.list_articles(status="published")
        assert total == 1
        assert rows[0].status == "published"


# ──────────────────────────────────────────────
# Logs and stats
# ──────────────────────────────────────────────

class TestLogsAndStats:
    def test_logs_newest_first(self, tmp_storage):
        tmp_storage.log("info", "api", "first")
        tmp_storage.log("error", "api", "second", {"error": "boom"})

        logs = tmp_storage.get_logs()
        assert [entry.message for entry in logs] == ["second", "first"]
        assert logs[0].details == {"error": "boom"}

        errors = tmp_storage.get_logs(level="error")
        assert len(errors) == 1

    def test_invalid_level(self, tmp_storage):
        with pytest.raises(ValueError):
            tmp_storage.log("loud", "api", "x")

    def test_stats(self, tmp_storage):
        tmp_storage.save_collection(_result(make_items("rss", 2), make_items("github", 1)))
        tmp_storage.set_evidence_status(1, "approved")

        stats = tmp_storage.get_stats()
        assert stats["total_evidence"] == 3
        assert stats["by_source"] == {"rss": 2, "github": 1}
        assert stats["by_status"] == {"approved": 1, "pending": 2}
        assert stats["total_articles"] == 0
        assert stats["latest_collection"] is not None

    def test_empty_stats(self, tmp_storage):
        stats = tmp_storage.get_stats()
        assert stats["total_evidence"] == 0
        assert stats["latest_collection"] is None
