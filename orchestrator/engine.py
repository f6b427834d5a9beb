"""
Collection orchestrator. Runs every registered collector concurrently,
applies the global item cap, and reports progress as it goes.

Threading model:
- One pool task per source. At most max_workers collectors in flight;
  the next source (registry order) is dispatched as soon as one finishes.
- Collector threads only return their items through their future. All
  counting, truncation and merging happens in the thread driving stream(),
  so there is no shared mutable state and no lock.
- The remaining capacity is read immediately before a source is dispatched.
  Sources dispatched together all see the same value, so their combined
  output may exceed the cap; the final assembly truncates it back.
- A source that runs past source_timeout is reported as failed and its
  late result is discarded. The deadline is passed into collect(), so the
  collector itself stops making requests shortly after it.
"""

import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Iterator

from collectors.registry import SourceRegistry
from config.settings import Config, ConfigError
from models import (
    AggregateResult,
    CollectedItem,
    CompleteEvent,
    ProgressEvent,
    SourceCompleteEvent,
    SourceDescriptor,
    SourceErrorEvent,
    SourceStartEvent,
    StartEvent,
)

log = logging.getLogger(__name__)


class NotInitializedError(RuntimeError):
    """Collection attempted before initialize()."""
    pass


def progress_percent(completed: int, total: int) -> int:
    """Integer percentage, halves rounded up."""
    if total <= 0:
        return 100
    return int(completed * 100 / total + 0.5)


def failure_message(label: str, cause: BaseException | str) -> str:
    if isinstance(cause, BaseException):
        cause = str(cause) or type(cause).__name__
    return f"{label} collection failed: {cause}"


class CollectionOrchestrator:
    def __init__(
        self,
        registry: SourceRegistry,
        max_items: int = 50,
        source_timeout: float = 20.0,
        max_workers: int = 8,
    ):
        if max_items < 0:
            raise ConfigError(f"max_items must be >= 0, got {max_items}")
        if source_timeout <= 0:
            raise ConfigError(f"source_timeout must be > 0, got {source_timeout}")
        self._registry = registry
        self._max_items = max_items
        self._source_timeout = source_timeout
        self._max_workers = max(1, max_workers)
        self._initialized = False

    @classmethod
    def from_config(cls, config: Config, registry: SourceRegistry) -> "CollectionOrchestrator":
        return cls(
            registry,
            max_items=config.max_items,
            source_timeout=config.source_timeout,
            max_workers=config.max_workers,
        )

    @property
    def max_items(self) -> int:
        return self._max_items

    @property
    def sources(self) -> list[SourceDescriptor]:
        return self._registry.descriptors()

    def initialize(self) -> None:
        """Warm per-source configuration. Idempotent."""
        if self._initialized:
            return
        self._registry.initialize()
        self._initialized = True

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError(
                "CollectionOrchestrator.initialize() must be called before collecting"
            )

    def collect_from_source(self, key: str) -> list[CollectedItem]:
        """
        Run one collector and return its raw output. Not capped.
        Unknown keys raise UnknownSourceError; collector errors propagate.
        """
        self._require_initialized()
        collector = self._registry.get(key)
        return collector.collect()

    def collect_source(self, key: str) -> AggregateResult:
        """
        One source with collect_all() semantics: capped, timed out after
        source_timeout, failure reported in errors. Unknown keys still raise
        UnknownSourceError.
        """
        self._require_initialized()
        collector = self._registry.get(key)
        return self._result(self._run([collector.descriptor]))

    def collect_all(self) -> AggregateResult:
        """Run every source and return the aggregate. Never raises for a source failure."""
        return self._result(self.stream())

    @staticmethod
    def _result(events: Iterator[ProgressEvent]) -> AggregateResult:
        result = None
        for event in events:
            if isinstance(event, CompleteEvent):
                result = event.result
        return result

    def stream(self) -> Iterator[ProgressEvent]:
        """
        Same run as collect_all(), yielding a progress event per transition:
        start, then source_start + (source_complete | source_error) per
        source, then exactly one complete.

        Closing the iterator early is not an error. In-flight collectors
        run on until their deadline at most and their results are dropped.
        """
        self._require_initialized()
        return self._run(self._registry.descriptors())

    def _run(self, descriptors: list[SourceDescriptor]) -> Iterator[ProgressEvent]:
        total = len(descriptors)
        started = time.monotonic()
        log.info(f"Starting collection: {total} sources, cap={self._max_items}")

        yield StartEvent(total_sources=total, sources=descriptors)

        results: dict[str, list[CollectedItem]] = {}
        errors: list[str] = []
        collected = 0
        completed = 0
        queue = deque(descriptors)
        in_flight: dict[Future, tuple[SourceDescriptor, int, float]] = {}

        # Sized so a timed-out collector never blocks a later dispatch.
        executor = ThreadPoolExecutor(max_workers=max(1, total), thread_name_prefix="collect")
        try:
            while queue or in_flight:
                while queue and len(in_flight) < self._max_workers:
                    desc = queue.popleft()
                    remaining = self._max_items - collected
                    yield SourceStartEvent(
                        source=desc.label,
                        key=desc.key,
                        completed_sources=completed,
                        progress=progress_percent(completed, total),
                    )

                    if remaining <= 0:
                        results[desc.key] = []
                        completed += 1
                        log.info(f"{desc.key}: skipped, cap of {self._max_items} reached")
                        yield SourceCompleteEvent(
                            source=desc.label,
                            key=desc.key,
                            items_collected=0,
                            total_collected=collected,
                            completed_sources=completed,
                            progress=progress_percent(completed, total),
                            message=f"Cap of {self._max_items} items reached",
                        )
                        continue

                    collector = self._registry.get(desc.key)
                    deadline = time.monotonic() + self._source_timeout
                    future = executor.submit(collector.collect, remaining, deadline=deadline)
                    in_flight[future] = (desc, remaining, deadline)

                if not in_flight:
                    continue

                next_deadline = min(d for _, _, d in in_flight.values())
                done, _ = wait(
                    in_flight,
                    timeout=max(0.0, next_deadline - time.monotonic()),
                    return_when=FIRST_COMPLETED,
                )
                now = time.monotonic()

                for future in list(in_flight):
                    desc, remaining, deadline = in_flight[future]

                    if future in done:
                        del in_flight[future]
                        try:
                            raw = future.result()
                        except Exception as e:
                            error = failure_message(desc.label, e)
                        else:
                            error = None
                    elif deadline <= now:
                        del in_flight[future]
                        future.cancel()
                        error = failure_message(
                            desc.label, f"timed out after {self._source_timeout:g}s"
                        )
                    else:
                        continue

                    completed += 1
                    if error:
                        log.warning(error)
                        results[desc.key] = []
                        errors.append(error)
                        yield SourceErrorEvent(
                            source=desc.label,
                            key=desc.key,
                            error=error,
                            completed_sources=completed,
                            progress=progress_percent(completed, total),
                        )
                        continue

                    accepted = self._accept(desc, raw, remaining)
                    results[desc.key] = accepted
                    collected = min(self._max_items, collected + len(accepted))
                    log.info(f"{desc.key}: {len(accepted)} items")
                    yield SourceCompleteEvent(
                        source=desc.label,
                        key=desc.key,
                        items_collected=len(accepted),
                        total_collected=collected,
                        completed_sources=completed,
                        progress=progress_percent(completed, total),
                        message=(
                            f"Cap of {self._max_items} items reached"
                            if collected >= self._max_items else None
                        ),
                    )

            result = self._assemble(descriptors, results, errors)
            log.info(
                f"Collection finished in {time.monotonic() - started:.1f}s: "
                f"{result.total_collected} items, {len(result.errors)} failed sources"
            )
            yield CompleteEvent(result=result, completed_sources=completed)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _accept(self, desc: SourceDescriptor, raw, remaining: int) -> list[CollectedItem]:
        """Keep this source's own items, in collector order, up to remaining."""
        accepted = []
        for item in raw or []:
            if len(accepted) >= remaining:
                break
            if not isinstance(item, CollectedItem) or item.source != desc.key:
                log.warning(f"{desc.key}: dropped item not attributed to this source: {item!r}")
                continue
            accepted.append(item)
        return accepted

    def _assemble(
        self,
        descriptors: list[SourceDescriptor],
        results: dict[str, list[CollectedItem]],
        errors: list[str],
    ) -> AggregateResult:
        """
        Merge in registry order, truncate to the cap, count per source.
        Registry order is the tie-break when sources together overshoot.
        """
        merged = [item for desc in descriptors for item in results.get(desc.key, [])]
        final = merged[:self._max_items]

        by_source = {desc.key: 0 for desc in descriptors}
        for item in final:
            by_source[item.source] += 1

        return AggregateResult(
            total_collected=len(final),
            by_source=by_source,
            items=final,
            errors=list(errors),
        )
