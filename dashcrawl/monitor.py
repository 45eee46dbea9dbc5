"""
Crawl Monitor
=============
Run-time metrics for the dashboard crawler.

Tracks:
- Terminal task states (extracted / skipped / failed)
- Links discovered and enqueued
- Per-phase timing (pace wait, navigate, extract)
- Worker utilization

All methods use an asyncio.Lock for safe concurrent access.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_REPORT_INTERVAL_SEC = 10.0


@dataclass
class PageTiming:
    """Timing breakdown for a single task."""
    url: str = ""
    wait_ms: float = 0.0
    navigate_ms: float = 0.0
    extract_ms: float = 0.0
    total_ms: float = 0.0
    word_count: int = 0
    link_count: int = 0
    status: str = "extracted"   # extracted | skipped | failed


@dataclass
class CrawlMetrics:
    """Snapshot of all crawler metrics at a point in time."""
    pages_extracted: int = 0
    pages_skipped: int = 0
    pages_failed: int = 0
    links_discovered: int = 0
    links_enqueued: int = 0
    active_workers: int = 0
    max_workers: int = 0
    total_words: int = 0
    avg_page_ms: float = 0.0
    avg_navigate_ms: float = 0.0
    avg_wait_ms: float = 0.0
    p95_page_ms: float = 0.0
    elapsed_sec: float = 0.0
    stop_reason: str = ""

    @property
    def pages_total(self) -> int:
        return self.pages_extracted + self.pages_skipped + self.pages_failed


class CrawlMonitor:
    """
    Async-safe monitor for the crawler.

    Usage::

        monitor = CrawlMonitor(max_workers=4)
        await monitor.start()
        await monitor.record_page(PageTiming(url=url, status="extracted"))
        metrics = await monitor.snapshot()
        await monitor.stop("completed")
    """

    def __init__(self, max_workers: int = 4, report_interval: float = _REPORT_INTERVAL_SEC):
        self._lock = asyncio.Lock()
        self._start_time: float = 0.0
        self._max_workers = max_workers
        self._report_interval = report_interval

        self._extracted = 0
        self._skipped = 0
        self._failed = 0
        self._links_discovered = 0
        self._links_enqueued = 0
        self._total_words = 0
        self._active_workers = 0

        # Keep the last 1000 timings for averages / percentile
        self._page_timings: deque = deque(maxlen=1000)

        self._reporter_task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_reason = ""

    async def start(self) -> None:
        """Start the monitor and periodic reporter."""
        self._start_time = time.monotonic()
        self._running = True
        if self._report_interval > 0:
            self._reporter_task = asyncio.create_task(self._reporter_loop())

    async def stop(self, reason: str = "completed") -> None:
        self._running = False
        self._stop_reason = reason
        if self._reporter_task:
            self._reporter_task.cancel()
            try:
                await self._reporter_task
            except asyncio.CancelledError:
                pass
            self._reporter_task = None

    async def record_page(self, timing: PageTiming) -> None:
        """Record a task that reached a terminal state."""
        async with self._lock:
            if timing.status == "extracted":
                self._extracted += 1
                self._total_words += timing.word_count
            elif timing.status == "skipped":
                self._skipped += 1
            else:
                self._failed += 1
            self._links_discovered += timing.link_count
            self._page_timings.append(timing)

    async def record_skip(self) -> None:
        """Record an exclusion skip that never reached navigation."""
        async with self._lock:
            self._skipped += 1

    async def record_enqueue(self, count: int = 1) -> None:
        async with self._lock:
            self._links_enqueued += count

    async def worker_started(self) -> None:
        async with self._lock:
            self._active_workers += 1

    async def worker_finished(self) -> None:
        async with self._lock:
            self._active_workers = max(0, self._active_workers - 1)

    async def snapshot(self) -> CrawlMetrics:
        """Take a consistent snapshot of all metrics."""
        now = time.monotonic()
        async with self._lock:
            elapsed = now - self._start_time if self._start_time else 0.0

            timings = [t.total_ms for t in self._page_timings if t.total_ms > 0]
            avg_page = sum(timings) / len(timings) if timings else 0.0
            nav_times = [t.navigate_ms for t in self._page_timings if t.navigate_ms > 0]
            avg_nav = sum(nav_times) / len(nav_times) if nav_times else 0.0
            waits = [t.wait_ms for t in self._page_timings]
            avg_wait = sum(waits) / len(waits) if waits else 0.0

            p95 = 0.0
            if timings:
                sorted_t = sorted(timings)
                idx = int(len(sorted_t) * 0.95)
                p95 = sorted_t[min(idx, len(sorted_t) - 1)]

            return CrawlMetrics(
                pages_extracted=self._extracted,
                pages_skipped=self._skipped,
                pages_failed=self._failed,
                links_discovered=self._links_discovered,
                links_enqueued=self._links_enqueued,
                active_workers=self._active_workers,
                max_workers=self._max_workers,
                total_words=self._total_words,
                avg_page_ms=round(avg_page, 1),
                avg_navigate_ms=round(avg_nav, 1),
                avg_wait_ms=round(avg_wait, 1),
                p95_page_ms=round(p95, 1),
                elapsed_sec=round(elapsed, 2),
                stop_reason=self._stop_reason,
            )

    async def _reporter_loop(self) -> None:
        """Periodically log progress."""
        while self._running:
            await asyncio.sleep(self._report_interval)
            if not self._running:
                break
            m = await self.snapshot()
            logger.info(
                f"[MONITOR] "
                f"ok={m.pages_extracted} "
                f"skip={m.pages_skipped} "
                f"fail={m.pages_failed} "
                f"workers={m.active_workers}/{m.max_workers} "
                f"avg={m.avg_page_ms:.0f}ms "
                f"elapsed={m.elapsed_sec:.0f}s"
            )

    def format_summary(self, metrics: CrawlMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 65,
            "  CRAWL SUMMARY",
            "=" * 65,
            f"  Pages extracted:     {metrics.pages_extracted}",
            f"  Pages skipped:       {metrics.pages_skipped} (excluded/redirected/duplicate)",
            f"  Pages failed:        {metrics.pages_failed}",
            f"  Links discovered:    {metrics.links_discovered}",
            f"  Links enqueued:      {metrics.links_enqueued}",
            "-" * 65,
            f"  Avg page time:       {metrics.avg_page_ms:.0f} ms",
            f"  Avg navigate time:   {metrics.avg_navigate_ms:.0f} ms",
            f"  Avg pacing wait:     {metrics.avg_wait_ms:.0f} ms",
            f"  P95 page time:       {metrics.p95_page_ms:.0f} ms",
            f"  Workers:             {metrics.max_workers}",
            f"  Total words:         {metrics.total_words:,}",
            "-" * 65,
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            f"  Stop reason:         {metrics.stop_reason}",
            "=" * 65,
        ]
        return "\n".join(lines)
