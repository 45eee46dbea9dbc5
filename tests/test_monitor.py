"""
Tests for monitor.py — counters and summary rendering.
"""

import pytest

from dashcrawl.monitor import CrawlMetrics, CrawlMonitor, PageTiming


class TestCrawlMonitor:

    @pytest.mark.asyncio
    async def test_counts_terminal_states(self):
        monitor = CrawlMonitor(max_workers=2, report_interval=0)
        await monitor.start()
        await monitor.record_page(PageTiming(url="a", total_ms=100, word_count=10, link_count=3))
        await monitor.record_page(PageTiming(url="b", total_ms=300, status="failed"))
        await monitor.record_page(PageTiming(url="c", status="skipped"))
        await monitor.record_skip()
        await monitor.record_enqueue(4)
        await monitor.stop("Queue exhausted")

        m = await monitor.snapshot()
        assert (m.pages_extracted, m.pages_skipped, m.pages_failed) == (1, 2, 1)
        assert m.pages_total == 4
        assert m.total_words == 10
        assert m.links_discovered == 3
        assert m.links_enqueued == 4
        assert m.avg_page_ms == 200.0
        assert m.stop_reason == "Queue exhausted"

    @pytest.mark.asyncio
    async def test_worker_gauge_never_negative(self):
        monitor = CrawlMonitor(report_interval=0)
        await monitor.worker_started()
        await monitor.worker_finished()
        await monitor.worker_finished()
        assert (await monitor.snapshot()).active_workers == 0

    @pytest.mark.asyncio
    async def test_reporter_task_cancelled_on_stop(self):
        monitor = CrawlMonitor(report_interval=60)
        await monitor.start()
        assert monitor._reporter_task is not None
        await monitor.stop()
        assert monitor._reporter_task is None

    def test_format_summary(self):
        monitor = CrawlMonitor(max_workers=4)
        text = monitor.format_summary(CrawlMetrics(pages_extracted=5, max_workers=4, stop_reason="done"))
        assert "CRAWL SUMMARY" in text
        assert "Pages extracted:     5" in text
        assert "Stop reason:         done" in text

