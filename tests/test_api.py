"""
Tests for the HTTP API: batch collection, progress stream, evidence review,
articles, auth and validation.
"""

import json
import sqlite3

import pytest

from api.server import create_app, sse_frame
from collectors.registry import SourceRegistry
from models import Evidence, SourceDescriptor, StartEvent
from orchestrator.engine import CollectionOrchestrator
from storage.db import Storage

from conftest import StubCollector, make_items
from test_synthesizer import DRAFT, REVIEW, ScriptedLLM
from synthesizer.engine import ArticleWriter


def _orchestrator() -> CollectionOrchestrator:
    registry = SourceRegistry([
        StubCollector("a", 30, label="Alpha"),
        StubCollector("b", 40, label="Beta"),
        StubCollector("c", label="Gamma", error=RuntimeError("upstream 503")),
        StubCollector("d", 10, label="Delta"),
    ])
    return CollectionOrchestrator(registry, max_items=50)


def _parse_sse(body: str) -> list[dict]:
    frames = body.split("\n\n")
    assert frames[-1] == ""
    events = []
    for frame in frames[:-1]:
        assert frame.startswith("data: ")
        events.append(json.loads(frame[len("data: "):]))
    return events


@pytest.fixture
def app(config):
    app = create_app(config, orchestrator=_orchestrator())
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def seeded(config):
    """Three pending evidence rows."""
    storage = Storage(config.db_path)
    for item in make_items("rss", 3):
        storage.insert_evidence(Evidence.from_item(item))
    storage.close()


# ──────────────────────────────────────────────
# SSE framing
# ──────────────────────────────────────────────

class TestSseFrame:
    def test_frame(self):
        event = StartEvent(total_sources=1, sources=[SourceDescriptor("a", "Alpha")])
        frame = sse_frame(event)

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[6:-2])["type"] == "start"


# ──────────────────────────────────────────────
# Collection
# ──────────────────────────────────────────────

class TestCollect:
    def test_sources(self, client):
        data = client.get("/api/sources").get_json()
        assert [s["key"] for s in data["sources"]] == ["a", "b", "c", "d"]
        assert data["maxItems"] == 50

    def test_batch(self, client):
        resp = client.get("/api/collect")
        assert resp.status_code == 200
        data = resp.get_json()

        assert data["success"] is True
        assert data["totalCollected"] == 50
        assert data["bySource"] == {"a": 30, "b": 20, "c": 0, "d": 0}
        assert data["errors"] == ["Gamma collection failed: upstream 503"]
        assert len(data["items"]) == 50
        assert data["newEvidence"] == 50
        assert "timestamp" in data

    def test_batch_is_persisted_and_logged(self, client, config):
        client.post("/api/collect")

        storage = Storage(config.db_path)
        try:
            assert storage.list_evidence()[1] == 50
            assert storage.get_logs()[0].message == "Data collection completed via API"
        finally:
            storage.close()

    def test_single_source_from_body(self, client):
        data = client.post("/api/collect", json={"source": "d"}).get_json()
        assert data["totalCollected"] == 10
        assert data["bySource"] == {"d": 10}

    def test_single_source_failure(self, client):
        data = client.get("/api/collect?source=c").get_json()
        assert data["totalCollected"] == 0
        assert data["errors"] == ["Gamma collection failed: upstream 503"]

    def test_unknown_source(self, client):
        resp = client.get("/api/collect?source=nope")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_non_object_body(self, client):
        resp = client.post("/api/collect", json=["d"])
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_unparseable_body(self, client):
        resp = client.post("/api/collect", data="{not json", content_type="application/json")
        assert resp.status_code == 400

    def test_non_string_source(self, client):
        assert client.post("/api/collect", json={"source": ["d"]}).status_code == 400

    def test_empty_post_collects_everything(self, client):
        data = client.post("/api/collect").get_json()
        assert data["totalCollected"] == 50

    def test_storage_failure_keeps_payload(self, client, monkeypatch):
        def broken(self, result):
            raise sqlite3.OperationalError("disk I/O error")
        monkeypatch.setattr(Storage, "save_collection", broken)

        resp = client.get("/api/collect")
        assert resp.status_code == 500
        data = resp.get_json()
        assert data["success"] is False
        assert "disk I/O error" in data["error"]
        assert data["totalCollected"] == 50
        assert len(data["items"]) == 50


class TestCronSecret:
    @pytest.fixture
    def secured(self, config):
        config.cron_secret = "s3cret"
        app = create_app(config, orchestrator=_orchestrator())
        with app.test_client() as client:
            yield client

    def test_missing_token(self, secured):
        assert secured.get("/api/collect").status_code == 401

    def test_wrong_token(self, secured):
        resp = secured.get("/api/collect", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_right_token(self, secured):
        resp = secured.get("/api/collect", headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200

    def test_stream_requires_token(self, secured):
        assert secured.get("/api/collect-with-progress").status_code == 401


class TestProgressStream:
    def test_stream(self, client):
        resp = client.get("/api/collect-with-progress")
        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"
        assert resp.headers["Cache-Control"] == "no-cache"

        events = _parse_sse(resp.get_data(as_text=True))
        assert events[0]["type"] == "start"
        assert events[0]["totalSources"] == 4
        assert events[-1]["type"] == "complete"
        assert events[-1]["totalCollected"] == 50
        assert sum(e["type"] == "complete" for e in events) == 1

        completed = [
            e["completedSources"] for e in events
            if e["type"] in ("source_complete", "source_error")
        ]
        assert completed == [1, 2, 3, 4]

    def test_stream_persists(self, client, config):
        client.get("/api/collect-with-progress").get_data()

        storage = Storage(config.db_path)
        try:
            assert storage.get_stats()["total_evidence"] == 50
        finally:
            storage.close()


# ──────────────────────────────────────────────
# Evidence
# ──────────────────────────────────────────────

class TestEvidenceAPI:
    def test_list(self, client, seeded):
        data = client.get("/api/evidence?limit=2").get_json()
        assert data["total"] == 3
        assert len(data["evidence"]) == 2
        assert data["evidence"][0]["status"] == "pending"

    def test_invalid_limit(self, client):
        resp = client.get("/api/evidence?limit=abc")
        assert resp.status_code == 400
        assert "limit" in resp.get_json()["error"]

    def test_invalid_status(self, client):
        assert client.get("/api/evidence?status=maybe").status_code == 400

    def test_get(self, client, seeded):
        data = client.get("/api/evidence/1").get_json()
        assert data["id"] == 1
        assert data["source"] == "rss"

    def test_get_missing(self, client):
        assert client.get("/api/evidence/99").status_code == 404

    def test_approve_and_reject(self, client, seeded):
        data = client.post("/api/evidence/1/approve").get_json()
        assert data["evidence"]["status"] == "approved"

        data = client.post("/api/evidence/2/reject").get_json()
        assert data["evidence"]["status"] == "rejected"

        approved = client.get("/api/evidence?status=approved").get_json()
        assert [ev["id"] for ev in approved["evidence"]] == [1]

    def test_approve_missing(self, client):
        assert client.post("/api/evidence/99/approve").status_code == 404


# ──────────────────────────────────────────────
# Articles
# ──────────────────────────────────────────────

class TestArticlesAPI:
    @pytest.fixture
    def writer_client(self, config, seeded):
        writer = ArticleWriter(ScriptedLLM(DRAFT, REVIEW))
        app = create_app(config, orchestrator=_orchestrator(), writer=writer)
        with app.test_client() as client:
            yield client

    def test_generate_needs_llm(self, client, seeded):
        assert client.post("/api/articles/generate", json={}).status_code == 503

    def test_generate_needs_approved_evidence(self, writer_client):
        assert writer_client.post("/api/articles/generate", json={}).status_code == 400

    def test_generate_from_ids(self, writer_client):
        resp = writer_client.post("/api/articles/generate", json={"evidenceIds": [1, 2]})
        assert resp.status_code == 201
        article = resp.get_json()["article"]
        assert article["title"] == "CRM agents are here"
        assert article["evidenceIds"] == [1, 2]
        assert article["quality"]["total"] == 72
        assert article["status"] == "review"

    def test_generate_non_object_body(self, writer_client):
        resp = writer_client.post("/api/articles/generate", json=[1, 2])
        assert resp.status_code == 400

    def test_generate_bad_ids(self, writer_client):
        resp = writer_client.post("/api/articles/generate", json={"evidenceIds": "1,2"})
        assert resp.status_code == 400

    def test_generate_from_approved(self, writer_client):
        writer_client.post("/api/evidence/3/approve")
        resp = writer_client.post("/api/articles/generate", json={})
        assert resp.status_code == 201
        assert resp.get_json()["article"]["evidenceIds"] == [3]

    def test_list_get_patch(self, writer_client):
        writer_client.post("/api/articles/generate", json={"evidenceIds": [1]})

        listing = writer_client.get("/api/articles").get_json()
        assert listing["total"] == 1
        article_id = listing["articles"][0]["id"]

        assert writer_client.get(f"/api/articles/{article_id}").get_json()["status"] == "review"

        resp = writer_client.patch(f"/api/articles/{article_id}", json={"status": "published"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "published"

    def test_patch_validation(self, writer_client):
        writer_client.post("/api/articles/generate", json={"evidenceIds": [1]})

        assert writer_client.patch("/api/articles/1", json={"status": "gone"}).status_code == 400
        assert writer_client.patch("/api/articles/1", json={"id": 5}).status_code == 400
        assert writer_client.patch("/api/articles/1", data="x").status_code == 400
        assert writer_client.patch("/api/articles/9", json={"title": "x"}).status_code == 404

    def test_patch_wrong_types(self, writer_client):
        writer_client.post("/api/articles/generate", json={"evidenceIds": [1]})

        for body in ({"title": {"a": 1}}, {"title": None}, {"content": ""}, {"seo": "x"}, {"status": None}):
            resp = writer_client.patch("/api/articles/1", json=body)
            assert resp.status_code == 400, body
            assert "Storage error" not in resp.get_json()["error"]

    def test_get_missing(self, client):
        assert client.get("/api/articles/9").status_code == 404


# ──────────────────────────────────────────────
# Dashboard
# ──────────────────────────────────────────────

class TestDashboard:
    def test_stats(self, client, seeded):
        data = client.get("/api/stats").get_json()
        assert data["total_evidence"] == 3
        assert data["by_status"] == {"pending": 3}

    def test_logs(self, client):
        client.get("/api/collect")
        data = client.get("/api/logs?limit=5").get_json()
        assert data["logs"][0]["component"] == "api"

    def test_logs_invalid_limit(self, client):
        assert client.get("/api/logs?limit=x").status_code == 400

    def test_index(self, client):
        data = client.get("/").get_json()
        assert "/api/collect" in data["endpoints"]
