"""Scheduler that drives the collect-then-write tick loop."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from .collector.base import BaseCollector
from .errors import CollectionError
from .samples import Sample
from .store.writer import BatchWriter

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """Outcome of a single tick."""

    timestamp: datetime
    samples: int = 0
    failed: list[str] = field(default_factory=list)
    written: bool = False


class Scheduler:
    """Runs every collector once per tick and hands the samples to the writer.

    Collectors of one tick run concurrently on a thread pool and share one
    timestamp captured at tick start. A collector that raises or exceeds
    *collector_timeout* contributes nothing to that tick. Ticks never
    overlap: if a tick overruns the interval the next one starts as soon as
    it finishes. :meth:`stop` is honored at the next tick boundary.
    """

    def __init__(
        self,
        collectors: Sequence[BaseCollector],
        writer: BatchWriter,
        interval_seconds: float = 60.0,
        collector_timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._collectors = list(collectors)
        self._writer = writer
        self._interval = interval_seconds
        self._timeout = collector_timeout
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._executor = ThreadPoolExecutor(
            max_workers=max(len(self._collectors), 1) * 2,
            thread_name_prefix="collector",
        )
        self._pending: dict[str, Future] = {}
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def collectors(self) -> list[BaseCollector]:
        return list(self._collectors)

    def collect_once(self, timestamp: datetime) -> tuple[list[Sample], list[str]]:
        """Run all collectors for one tick; returns samples and failed collector names."""
        futures: dict[str, Future] = {}
        failed: list[str] = []
        for collector in self._collectors:
            previous = self._pending.get(collector.name)
            if previous is not None and not previous.done():
                logger.warning("Collector %s is still busy with an earlier tick, skipping", collector.name)
                failed.append(collector.name)
                continue
            if previous is not None and not previous.cancelled() and previous.exception() is not None:
                logger.warning(
                    "Collector %s failed after timing out in an earlier tick: %s",
                    collector.name, previous.exception(),
                )
            futures[collector.name] = self._pending[collector.name] = self._executor.submit(
                collector.collect, timestamp,
            )

        if futures:
            wait(futures.values(), timeout=self._timeout)

        samples: list[Sample] = []
        for name, future in futures.items():
            if not future.done():
                logger.warning("Collector %s timed out after %.1fs", name, self._timeout)
                failed.append(name)
                continue
            try:
                samples.extend(future.result())
            except CollectionError as exc:
                logger.warning("Collector %s failed: %s", name, exc)
                failed.append(name)
            except Exception:
                logger.exception("Collector %s failed", name)
                failed.append(name)
            else:
                self._pending.pop(name, None)
        return samples, failed

    def tick(self) -> TickReport:
        """Collect from every collector and write the result."""
        timestamp = self._clock()
        samples, failed = self.collect_once(timestamp)
        report = TickReport(timestamp=timestamp, samples=len(samples), failed=failed)
        report.written = self._writer.write(samples)
        logger.debug(
            "Tick %s: %d samples, %d failed collectors, written=%s",
            timestamp.isoformat(), report.samples, len(failed), report.written,
        )
        return report

    def run_forever(self) -> None:
        """Tick at the configured interval until :meth:`stop` is called."""
        logger.info("Scheduler running (interval=%.1fs, collectors=%d)", self._interval, len(self._collectors))
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                self.tick()
            except Exception:
                logger.exception("Tick failed")
            elapsed = time.monotonic() - started
            if elapsed >= self._interval:
                logger.warning("Tick took %.1fs, longer than the %.1fs interval", elapsed, self._interval)
            self._stop_event.wait(max(self._interval - elapsed, 0.0))
        logger.info("Scheduler stopped")

    def start(self) -> None:
        """Start ticking in the background."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="scheduler", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Request a stop and wait for the in-flight tick to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
            self._thread = None

    def close(self) -> None:
        """Stop, then release collector resources and worker threads."""
        self.stop()
        self._executor.shutdown(wait=False, cancel_futures=True)
        for collector in self._collectors:
            try:
                collector.close()
            except Exception:
                logger.exception("Failed to close collector %s", collector.name)
