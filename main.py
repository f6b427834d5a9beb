#!/usr/bin/env python3
"""
content-radar: AI news collection and article drafting.

Usage:
    python main.py sources                  # List registered sources
    python main.py collect                  # Collect from all sources and store
    python main.py collect --source github  # One source only
    python main.py collect --json           # Print the result as JSON
    python main.py stream                   # Collect with live progress
    python main.py generate                 # Draft an article from approved evidence
    python main.py stats                    # Show evidence stats
    python main.py serve                    # Start the API server
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from collectors.registry import build_registry
from config.settings import ConfigError, load_config
from delivery.output import deliver_article, deliver_progress, deliver_result
from llm.factory import create_provider, optional_provider
from llm.provider import LLMError
from models import AggregateResult, CompleteEvent
from orchestrator.engine import CollectionOrchestrator
from storage.db import Storage
from synthesizer.engine import ArticleWriter


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_orchestrator(config) -> CollectionOrchestrator:
    registry = build_registry(config, optional_provider(config))
    orchestrator = CollectionOrchestrator.from_config(config, registry)
    orchestrator.initialize()
    return orchestrator


def cmd_sources(config):
    """Print the registry in dispatch order."""
    orchestrator = build_orchestrator(config)
    print(f"{len(orchestrator.sources)} sources (cap {orchestrator.max_items} items per run):")
    for desc in orchestrator.sources:
        print(f"  {desc.key:<14} {desc.label}")


def _store(config, result: AggregateResult, component: str) -> int:
    storage = Storage(config.db_path)
    try:
        new_count = storage.save_collection(result)
        storage.log("info", component, "Data collection completed via CLI", {
            "totalCollected": result.total_collected,
            "bySource": result.by_source,
            "errors": result.errors,
            "newEvidence": new_count,
        })
        return new_count
    finally:
        storage.close()


def cmd_collect(config, source: str | None, as_json: bool, save: bool) -> AggregateResult:
    """Run a batch collection and store the items as pending evidence."""
    orchestrator = build_orchestrator(config)

    if source:
        result = orchestrator.collect_source(source)
    else:
        result = orchestrator.collect_all()

    new_count = _store(config, result, "cli") if save else None

    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        deliver_result(result, new_count)
    return result


def cmd_stream(config, save: bool):
    """Same run as collect, printing progress as each source finishes."""
    orchestrator = build_orchestrator(config)
    result = None
    for event in orchestrator.stream():
        deliver_progress(event)
        if isinstance(event, CompleteEvent):
            result = event.result

    if save and result is not None:
        new_count = _store(config, result, "cli")
        print(f"{new_count} new evidence rows stored")


def cmd_generate(config, storage, limit: int):
    """Draft, score and store an article from approved evidence."""
    writer = ArticleWriter.from_config(create_provider(config), config)

    evidence, _ = storage.list_evidence(status="approved", limit=limit)
    if not evidence:
        print("No approved evidence. Approve some via the API first.")
        return

    article = writer.generate(evidence)
    if article is None:
        storage.log("error", "writer", "Article generation failed", {
            "evidenceIds": [ev.id for ev in evidence],
        })
        print("Error: article generation failed.", file=sys.stderr)
        sys.exit(1)

    storage.insert_article(article)
    deliver_article(article)


def cmd_stats(config, storage):
    """Print evidence stats."""
    stats = storage.get_stats()
    print(f"Total evidence: {stats['total_evidence']}")
    for source, count in stats["by_source"].items():
        print(f"  {source}: {count}")
    for status, count in stats["by_status"].items():
        print(f"  [{status}] {count}")
    print(f"Articles: {stats['total_articles']}")
    if stats["latest_collection"]:
        print(f"Latest collection: {stats['latest_collection']}")


def cmd_serve(config, args):
    """Start the API server."""
    from api.server import create_app

    static_folder = Path(__file__).parent / "web" / "dist"
    if not static_folder.exists():
        static_folder = None
        print("No built frontend found. API-only mode.")

    app = create_app(config, static_folder=static_folder)
    print(f"Starting server at http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=args.verbose, threaded=True)


def cli(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="radar",
        description="Collect AI news from many sources and draft articles from it",
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command", help="Command to run")

    sub.add_parser("sources", parents=[common], help="List registered sources")

    collect_parser = sub.add_parser("collect", parents=[common], help="Collect from all sources")
    collect_parser.add_argument("--source", type=str, default=None, help="Only this source key")
    collect_parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    collect_parser.add_argument("--no-save", action="store_true", help="Do not store the items")

    stream_parser = sub.add_parser("stream", parents=[common], help="Collect with live progress")
    stream_parser.add_argument("--no-save", action="store_true", help="Do not store the items")

    generate_parser = sub.add_parser(
        "generate", parents=[common],
        help="Draft an article from approved evidence",
    )
    generate_parser.add_argument(
        "--limit", type=int, default=5,
        help="Approved evidence items to write from (default 5)",
    )

    sub.add_parser("stats", parents=[common], help="Show evidence stats")

    serve_parser = sub.add_parser("serve", parents=[common], help="Start the API server")
    serve_parser.add_argument("--port", type=int, default=5002, help="Port (default 5002)")
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Host (default 127.0.0.1)")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)
    config = load_config()

    try:
        match args.command:
            case "sources":
                cmd_sources(config)
            case "collect":
                cmd_collect(config, args.source, args.json, save=not args.no_save)
            case "stream":
                cmd_stream(config, save=not args.no_save)
            case "serve":
                cmd_serve(config, args)
            case "generate" | "stats":
                storage = Storage(config.db_path)
                try:
                    if args.command == "generate":
                        cmd_generate(config, storage, args.limit)
                    else:
                        cmd_stats(config, storage)
                finally:
                    storage.close()
            case _:
                parser.print_help()
    except (ConfigError, LLMError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    cli()
