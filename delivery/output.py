"""
Terminal output. Progress lines while a run streams, then a summary.
"""

from models import (
    AggregateResult,
    Article,
    CompleteEvent,
    ProgressEvent,
    SourceCompleteEvent,
    SourceErrorEvent,
    SourceStartEvent,
    StartEvent,
)

SEPARATOR = "─" * 60


def format_progress(event: ProgressEvent) -> str:
    """One line per event, prefixed with the overall percentage."""
    match event:
        case StartEvent():
            labels = ", ".join(d.label for d in event.sources)
            text = f"Collecting from {event.total_sources} sources: {labels}"
        case SourceStartEvent():
            text = f"{event.source}: started"
        case SourceCompleteEvent():
            text = f"{event.source}: {event.items_collected} items (total {event.total_collected})"
            if event.message:
                text += f" - {event.message}"
        case SourceErrorEvent():
            text = event.error
        case CompleteEvent():
            text = f"Done. {summary_line(event.result)}"
        case _:
            raise TypeError(f"Not a progress event: {event!r}")
    return f"[{event.to_dict()['progress']:>3}%] {text}"


def summary_line(result: AggregateResult) -> str:
    return f"{result.total_collected} items collected, {len(result.errors)} sources failed"


def deliver_progress(event: ProgressEvent):
    print(format_progress(event), flush=True)


def deliver_result(result: AggregateResult, new_count: int | None = None):
    """Per-source table, then failures, then the summary line."""
    print(f"\n{SEPARATOR}")
    print("  COLLECTION RESULT")
    print(SEPARATOR)
    for key, count in result.by_source.items():
        print(f"  {key:<16} {count:>4}")
    if result.errors:
        print()
        for error in result.errors:
            print(f"  ! {error}")
    print(SEPARATOR)
    print(f"  {summary_line(result)}")
    if new_count is not None:
        print(f"  {new_count} new evidence rows stored")
    print(SEPARATOR)


def deliver_article(article: Article):
    """Print a drafted article with its quality scores."""
    quality = article.quality or {}
    print(f"\n{SEPARATOR}")
    print(f"  {article.title}")
    if article.id is not None:
        print(f"  article #{article.id} ({article.status})")
    if quality:
        print(
            f"  quality {quality.get('total', 0)}/100 "
            f"(seo {quality.get('seo', 0)}, readability {quality.get('readability', 0)}, "
            f"accuracy {quality.get('accuracy', 0)})"
        )
    print(SEPARATOR)
    print()
    print(article.content)
    print()
    if quality.get("improvements"):
        print("Improvements:")
        for line in quality["improvements"]:
            print(f"  - {line}")
    print(SEPARATOR)
