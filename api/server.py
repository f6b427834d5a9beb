"""
HTTP API for the radar dashboard and for scheduled collection.

Collection runs go through the orchestrator; results are persisted here,
after the run, so a storage failure never loses the collected payload.

Run: python main.py serve
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from flask import Flask, Response, g, jsonify, request, send_from_directory, stream_with_context

from collectors.registry import build_registry
from config.settings import Config
from llm.factory import optional_provider
from models import (
    ARTICLE_STATUSES,
    EVIDENCE_STATUSES,
    AggregateResult,
    CompleteEvent,
    ProgressEvent,
)
from orchestrator.engine import CollectionOrchestrator
from storage.db import Storage
from synthesizer.engine import ArticleWriter

log = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

MAX_PAGE_SIZE = 200


def sse_frame(event: ProgressEvent) -> str:
    """One server-sent event: a data line holding the JSON event, then a blank line."""
    return f"data: {json.dumps(event.to_dict())}\n\n"


def _parse_int(value: str | None, default: int, name: str) -> tuple[int, str | None]:
    """Parse an integer query param. Returns (value, error_message)."""
    if value is None:
        return default, None
    try:
        return int(value), None
    except (ValueError, TypeError):
        return default, f"Invalid value for '{name}': expected integer, got '{value}'"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app(
    config: Config,
    orchestrator: CollectionOrchestrator | None = None,
    writer: ArticleWriter | None = None,
    static_folder: Path | None = None,
):
    """
    Build the app. The orchestrator and writer are built from config unless
    given; tests pass stubs. The writer is None when no LLM is configured.
    """
    if orchestrator is None:
        llm = optional_provider(config)
        orchestrator = CollectionOrchestrator.from_config(config, build_registry(config, llm))
        if writer is None and llm is not None:
            writer = ArticleWriter.from_config(llm, config)
    orchestrator.initialize()

    if static_folder and static_folder.exists():
        app = Flask(__name__, static_folder=str(static_folder), static_url_path="")
    else:
        app = Flask(__name__)

    # ── CORS for development ──
    @app.after_request
    def add_cors(response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type, Authorization"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, OPTIONS"
        return response

    def get_storage() -> Storage:
        """One Storage per request; SQLite connections stay on their thread."""
        if "storage" not in g:
            g.storage = Storage(config.db_path)
        return g.storage

    @app.teardown_appcontext
    def close_storage(exc):
        storage = g.pop("storage", None)
        if storage is not None:
            storage.close()

    @app.errorhandler(sqlite3.Error)
    def storage_error(e):
        log.error(f"Storage error: {e}")
        return jsonify({"error": f"Storage error: {e}"}), 500

    def authorized() -> bool:
        if not config.cron_secret:
            return True
        return request.headers.get("Authorization") == f"Bearer {config.cron_secret}"

    def page_params(default_limit: int = 50) -> tuple[int, int, str | None]:
        limit, err = _parse_int(request.args.get("limit"), default_limit, "limit")
        if err:
            return 0, 0, err
        offset, err = _parse_int(request.args.get("offset"), 0, "offset")
        if err:
            return 0, 0, err
        if limit < 1 or offset < 0:
            return 0, 0, "limit must be >= 1 and offset must be >= 0"
        return min(limit, MAX_PAGE_SIZE), offset, None

    def json_object_body() -> tuple[dict, str | None]:
        """Request body as a dict. An empty body is {}; anything else that
        is not a JSON object is an error."""
        if not request.get_data():
            return {}, None
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return {}, "Expected a JSON object body"
        return body, None

    # ── Collection ──

    @app.route("/api/sources")
    def list_sources():
        return jsonify({
            "sources": [{"key": d.key, "label": d.label} for d in orchestrator.sources],
            "maxItems": orchestrator.max_items,
        })

    @app.route("/api/collect", methods=["GET", "POST"])
    def collect():
        if not authorized():
            return jsonify({"success": False, "error": "Unauthorized"}), 401

        source = request.args.get("source")
        if request.method == "POST" and not source:
            body, err = json_object_body()
            if err:
                return jsonify({"success": False, "error": err}), 400
            source = body.get("source")
            if source is not None and not isinstance(source, str):
                return jsonify({"success": False, "error": "source must be a string"}), 400

        if source:
            if source not in {d.key for d in orchestrator.sources}:
                return jsonify({
                    "success": False,
                    "error": f"Unknown source '{source}'",
                }), 400
            result = orchestrator.collect_source(source)
        else:
            result = orchestrator.collect_all()

        payload = {"success": True, **result.to_dict(), "timestamp": _timestamp()}

        try:
            storage = get_storage()
            new_count = storage.save_collection(result)
            storage.log("info", "api", "Data collection completed via API", {
                "source": source,
                "totalCollected": result.total_collected,
                "bySource": result.by_source,
                "errors": result.errors,
                "newEvidence": new_count,
            })
        except sqlite3.Error as e:
            log.error(f"Collected {result.total_collected} items but could not store them: {e}")
            payload["success"] = False
            payload["error"] = f"Storage error: {e}"
            return jsonify(payload), 500

        payload["newEvidence"] = new_count
        return jsonify(payload)

    @app.route("/api/collect-with-progress")
    def collect_with_progress():
        if not authorized():
            return jsonify({"success": False, "error": "Unauthorized"}), 401

        def generate():
            events = orchestrator.stream()
            try:
                for event in events:
                    yield sse_frame(event)
                    if isinstance(event, CompleteEvent):
                        persist_streamed(event.result)
            finally:
                events.close()

        return Response(
            stream_with_context(generate()),
            mimetype="text/event-stream",
            headers=SSE_HEADERS,
        )

    def persist_streamed(result: AggregateResult):
        """The stream has already told the client everything; storage errors are logged only."""
        storage = Storage(config.db_path)
        try:
            new_count = storage.save_collection(result)
            storage.log("info", "api", "Streamed collection completed", {
                "totalCollected": result.total_collected,
                "bySource": result.by_source,
                "errors": result.errors,
                "newEvidence": new_count,
            })
        except sqlite3.Error as e:
            log.error(f"Could not store streamed collection: {e}")
        finally:
            storage.close()

    # ── Evidence ──

    @app.route("/api/evidence")
    def list_evidence():
        limit, offset, err = page_params()
        if err:
            return jsonify({"error": err}), 400

        status = request.args.get("status")
        if status and status not in EVIDENCE_STATUSES:
            return jsonify({"error": f"status must be one of {', '.join(EVIDENCE_STATUSES)}"}), 400

        rows, total = get_storage().list_evidence(
            status=status,
            source=request.args.get("source"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "evidence": [ev.to_dict() for ev in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        })

    @app.route("/api/evidence/<int:evidence_id>")
    def get_evidence(evidence_id):
        evidence = get_storage().get_evidence(evidence_id)
        if evidence is None:
            return jsonify({"error": "Evidence not found"}), 404
        return jsonify(evidence.to_dict())

    def set_status(evidence_id: int, status: str):
        storage = get_storage()
        if not storage.set_evidence_status(evidence_id, status):
            return jsonify({"error": "Evidence not found"}), 404
        storage.log("info", "review", f"Evidence {evidence_id} {status}")
        return jsonify({"success": True, "evidence": storage.get_evidence(evidence_id).to_dict()})

    @app.route("/api/evidence/<int:evidence_id>/approve", methods=["POST"])
    def approve_evidence(evidence_id):
        return set_status(evidence_id, "approved")

    @app.route("/api/evidence/<int:evidence_id>/reject", methods=["POST"])
    def reject_evidence(evidence_id):
        return set_status(evidence_id, "rejected")

    # ── Articles ──

    @app.route("/api/articles")
    def list_articles():
        limit, offset, err = page_params()
        if err:
            return jsonify({"error": err}), 400

        status = request.args.get("status")
        if status and status not in ARTICLE_STATUSES:
            return jsonify({"error": f"status must be one of {', '.join(ARTICLE_STATUSES)}"}), 400

        rows, total = get_storage().list_articles(status=status, limit=limit, offset=offset)
        return jsonify({
            "articles": [a.to_dict() for a in rows],
            "total": total,
            "limit": limit,
            "offset": offset,
        })

    @app.route("/api/articles/<int:article_id>")
    def get_article(article_id):
        article = get_storage().get_article(article_id)
        if article is None:
            return jsonify({"error": "Article not found"}), 404
        return jsonify(article.to_dict())

    @app.route("/api/articles/<int:article_id>", methods=["PATCH"])
    def update_article(article_id):
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Expected a JSON object body"}), 400
        unknown = set(body) - set(Storage.UPDATABLE_ARTICLE_FIELDS)
        if unknown:
            return jsonify({"error": f"Cannot update article fields: {', '.join(sorted(unknown))}"}), 400
        try:
            article = get_storage().update_article(article_id, **body)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        if article is None:
            return jsonify({"error": "Article not found"}), 404
        return jsonify(article.to_dict())

    @app.route("/api/articles/generate", methods=["POST"])
    def generate_article():
        if writer is None:
            return jsonify({"error": "No LLM provider configured"}), 503

        body, err = json_object_body()
        if err:
            return jsonify({"error": err}), 400
        storage = get_storage()

        ids = body.get("evidenceIds")
        if ids is not None:
            if not isinstance(ids, list) or not all(isinstance(i, int) for i in ids):
                return jsonify({"error": "evidenceIds must be a list of integers"}), 400
            evidence = storage.get_evidence_many(ids)
        else:
            limit = body.get("limit", 5)
            if not isinstance(limit, int) or limit < 1:
                return jsonify({"error": "limit must be a positive integer"}), 400
            evidence, _ = storage.list_evidence(status="approved", limit=min(limit, 20))

        if not evidence:
            return jsonify({"error": "No evidence available to write from"}), 400

        article = writer.generate(evidence)
        if article is None:
            storage.log("error", "writer", "Article generation failed", {
                "evidenceIds": [ev.id for ev in evidence],
            })
            return jsonify({"error": "Article generation failed"}), 502

        storage.insert_article(article)
        storage.log("info", "writer", f"Article {article.id} drafted ({article.status})", {
            "quality": article.quality.get("total"),
            "status": article.status,
        })
        return jsonify({"success": True, "article": article.to_dict()}), 201

    # ── Dashboard ──

    @app.route("/api/stats")
    def get_stats():
        return jsonify(get_storage().get_stats())

    @app.route("/api/logs")
    def get_logs():
        limit, err = _parse_int(request.args.get("limit"), 50, "limit")
        if err:
            return jsonify({"error": err}), 400
        entries = get_storage().get_logs(
            limit=max(1, min(limit, MAX_PAGE_SIZE)),
            level=request.args.get("level"),
        )
        return jsonify({"logs": [
            {"level": e.level, "component": e.component, "message": e.message, "details": e.details}
            for e in entries
        ]})

    # ── Static file serving (production) ──

    @app.route("/")
    def serve_index():
        if static_folder and static_folder.exists():
            return send_from_directory(str(static_folder), "index.html")
        return jsonify({
            "message": "content-radar API",
            "endpoints": [
                "/api/sources",
                "/api/collect",
                "/api/collect-with-progress",
                "/api/evidence",
                "/api/articles",
                "/api/stats",
                "/api/logs",
            ],
        })

    return app
