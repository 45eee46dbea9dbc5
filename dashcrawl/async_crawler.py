"""
Async Dashboard Crawler
=======================
Frontier controller: drives an authenticated crawl of one dashboard to
completion within a page budget.

Architecture:
- Single browser session (cookie re-applied before every navigation)
- asyncio.Queue frontier owned by ``Frontier`` (dedup + budget under one lock)
- N worker coroutines, one page per task
- Per-registrable-domain pacing via ``DomainPacer``
- Each loaded page: snapshot → sanitize → extract → format → sink
- CrawlMonitor for real-time metrics

Per-task errors are isolated: the task is marked ``FAILED`` and the
workers keep going.  Reaching the budget stops scheduling; tasks already
navigating finish normally and whatever is still queued is drained
without navigation.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from .auth import CookieAuthenticator
from .browser import LINK_SCRIPT, BrowserSession, PageHandle, PlaywrightBrowser
from .errors import BudgetExhausted, ExtractionError, NavigationError
from .extractor import extract
from .formatter import format_for_llm
from .frontier import Frontier
from .models import CrawlTask, PageOutput, TaskState
from .monitor import CrawlMonitor, PageTiming
from .run_config import CrawlerRunConfig
from .sanitizer import parse_html, sanitize
from .scope_filter import ScopeFilter
from .sinks import MemorySink, Sink
from .utils import DomainPacer, URLNormalizer

logger = logging.getLogger(__name__)


@dataclass
class CrawlResult:
    """Result of a dashboard crawl."""
    outputs: List[PageOutput] = field(default_factory=list)
    stats: Dict = field(default_factory=dict)
    errors: List[Dict] = field(default_factory=list)
    visited: FrozenSet[str] = frozenset()

    @property
    def records(self):
        return [o.record for o in self.outputs]


class DashboardCrawler:
    """
    Authenticated same-site crawler with a worker pool.

    Usage::

        config = CrawlerRunConfig(seed_url=..., cookie_name=..., cookie_value=...)
        crawler = DashboardCrawler(config, sink=DatasetSink("storage/datasets/default"))
        result = await crawler.crawl()

        # Or from sync code:
        result = crawler.run()
    """

    def __init__(
        self,
        config: CrawlerRunConfig,
        browser: Optional[BrowserSession] = None,
        sink: Optional[Sink] = None,
        report_interval: float = 10.0,
    ):
        self.config = config
        self.browser = browser
        self.sink = sink if sink is not None else MemorySink()
        self.url_normalizer = URLNormalizer()
        self.monitor = CrawlMonitor(
            max_workers=config.max_workers, report_interval=report_interval
        )

        # State (reset per crawl)
        self._scope_filter: Optional[ScopeFilter] = None
        self._frontier: Optional[Frontier] = None
        self._authenticator: Optional[CookieAuthenticator] = None
        self._pacer: Optional[DomainPacer] = None
        self._outputs: List[PageOutput] = []
        self._errors: List[Dict] = []
        self._limit_logged = False

    # ------------------------------------------------------------------
    # Sync entry point
    # ------------------------------------------------------------------

    def run(self) -> CrawlResult:
        """Sync wrapper — run the async crawl from synchronous code."""
        return asyncio.run(self.crawl())

    # ------------------------------------------------------------------
    # Main async crawl
    # ------------------------------------------------------------------

    async def crawl(self) -> CrawlResult:
        """
        Crawl from the seed URL until the queue drains or the budget is spent.

        Raises:
            ConfigurationError: before any browser is started, if the
                configuration is invalid
        """
        self.config.validate()

        self._outputs = []
        self._errors = []
        self._limit_logged = False

        seed_url = self.config.seed_url
        self._scope_filter = ScopeFilter(
            root_url=seed_url,
            exclude_patterns=self.config.exclude_patterns,
        )
        self._scope_filter.log_scope()
        self._frontier = Frontier(self._scope_filter, max_pages=self.config.max_pages)
        self._authenticator = CookieAuthenticator(self.config.session_cookie())
        self._pacer = DomainPacer(self.config.same_domain_delay)

        logger.info("=" * 65)
        logger.info("DASHBOARD CRAWL STARTED")
        logger.info(f"Seed URL: {seed_url}")
        logger.info(f"Scope: {self._scope_filter.scope_description}")
        logger.info(f"Workers: {self.config.max_workers}")
        logger.info(f"Limits: max_pages={self.config.max_pages}, delay={self.config.same_domain_delay}s/domain")
        logger.info(f"Timeouts: nav {self.config.nav_timeout_ms}ms, idle {self.config.idle_timeout_ms}ms")
        logger.info("=" * 65)

        owns_browser = self.browser is None
        if owns_browser:
            self.browser = PlaywrightBrowser(self.config.to_browser_options())
        await self.browser.start()
        await self.monitor.start()

        stop_reason = "completed"
        workers: List[asyncio.Task] = []
        try:
            seed = self._normalize(seed_url) or self._scope_filter.clean(seed_url) or seed_url
            seed_state = await self._frontier.offer(seed)
            if seed_state == TaskState.QUEUED:
                await self.monitor.record_enqueue(1)
            elif seed_state == TaskState.SKIPPED:
                await self.monitor.record_skip()

            workers = [
                asyncio.create_task(self._worker(i))
                for i in range(self.config.max_workers)
            ]
            await self._frontier.join()

            if self._limit_logged or self._frontier.exhausted:
                stop_reason = f"MAX_PAGES budget reached ({self.config.max_pages})"
            else:
                stop_reason = "Queue exhausted"
        finally:
            for w in workers:
                w.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            await self.monitor.stop(stop_reason)
            try:
                await self.browser.close()
            except Exception as e:
                logger.error(f"Error closing browser: {e}")
            if owns_browser:
                self.browser = None

        metrics = await self.monitor.snapshot()
        frontier = self._frontier
        stats = {
            'pages_extracted': frontier.count(TaskState.EXTRACTED),
            'pages_skipped': frontier.count(TaskState.SKIPPED),
            'pages_failed': frontier.count(TaskState.FAILED),
            'pages_total': frontier.terminal_tasks,
            'max_pages': self.config.max_pages,
            'links_discovered': metrics.links_discovered,
            'links_enqueued': metrics.links_enqueued,
            'total_words': metrics.total_words,
            'avg_page_ms': metrics.avg_page_ms,
            'p95_page_ms': metrics.p95_page_ms,
            'elapsed_sec': metrics.elapsed_sec,
            'workers': self.config.max_workers,
            'stop_reason': stop_reason,
            'scope': self._scope_filter.scope_description,
        }

        logger.info("\n" + self.monitor.format_summary(metrics))

        return CrawlResult(
            outputs=list(self._outputs),
            stats=stats,
            errors=list(self._errors),
            visited=frontier.visited,
        )

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _worker(self, worker_id: int) -> None:
        """Worker coroutine — pulls tasks from the frontier until cancelled."""
        while True:
            task = await self._frontier.next_task()
            try:
                await self._handle(task)
            except Exception as e:
                logger.error(f"[WORKER-{worker_id}] Unexpected error: {e}", exc_info=True)
            finally:
                self._frontier.task_done()

    async def _handle(self, task: CrawlTask) -> None:
        try:
            claimed = await self._frontier.claim(task)
        except BudgetExhausted as e:
            if not self._limit_logged:
                self._limit_logged = True
                logger.info(f"[LIMIT] {e} — draining queue without navigation")
            logger.debug(f"[LIMIT] Dropping {task.url[:70]}")
            return

        if not claimed:
            logger.debug(f"[SKIP] {task.url[:70]} — already handled via redirect")
            return

        await self.monitor.worker_started()
        try:
            timing = await self._visit(task)
        finally:
            await self.monitor.worker_finished()
        await self.monitor.record_page(timing)

    async def _visit(self, task: CrawlTask) -> PageTiming:
        """
        Navigate one claimed task to a terminal state.

        ``Frontier.finish`` is called exactly once and the page is always
        closed, whatever happens in between.
        """
        timing = PageTiming(url=task.url)
        started = time.monotonic()
        state = TaskState.FAILED
        page: Optional[PageHandle] = None
        final_url = task.url
        links: List[str] = []

        try:
            await self._authenticator.apply(self.browser, task.url)
            timing.wait_ms = round(await self._pacer.wait(task.url) * 1000, 1)

            nav_start = time.monotonic()
            logger.info(f"Crawling: {task.url[:80]}")
            page = await self.browser.navigate(task.url, self.config.nav_timeout_ms)
            await self.browser.wait_for_network_idle(page, self.config.idle_timeout_ms)
            timing.navigate_ms = round((time.monotonic() - nav_start) * 1000, 1)

            final_url = self._normalize(page.url) or self._scope_filter.clean(page.url) or task.url
            if final_url != task.url:
                skip_reason = await self._check_redirect(task, final_url)
                if skip_reason:
                    logger.info(f"[SKIP] {task.url[:70]} — {skip_reason}")
                    state = TaskState.SKIPPED
                    return timing

            extract_start = time.monotonic()
            output, links = await self._capture(page, task, final_url)
            timing.extract_ms = round((time.monotonic() - extract_start) * 1000, 1)

            self.sink.push(output)
            self._outputs.append(output)
            state = TaskState.EXTRACTED
            timing.word_count = output.record.word_count
            timing.link_count = len(links)
            logger.info(
                f"[OK] {final_url[:70]} "
                f"({timing.word_count} words, {len(links)} links)"
            )

        except (NavigationError, ExtractionError) as e:
            logger.warning(f"[FAILED] {task.url[:70]}: {e.message}")
            self._errors.append({'url': task.url, 'error': e.message, 'type': type(e).__name__})
        except Exception as e:
            logger.error(f"[FAILED] {task.url[:70]}: {type(e).__name__}: {e}", exc_info=True)
            self._errors.append({'url': task.url, 'error': str(e), 'type': type(e).__name__})
        finally:
            if page is not None:
                await self._close_page(page)
            await self._frontier.finish(task, state)
            timing.status = state.value
            timing.total_ms = round((time.monotonic() - started) * 1000, 1)

        if state == TaskState.EXTRACTED:
            await self._enqueue_links(links, final_url)
        return timing

    async def _check_redirect(self, task: CrawlTask, final_url: str) -> Optional[str]:
        """Reason to skip a redirected task, or ``None`` if it may proceed."""
        if not self._scope_filter.in_site(final_url):
            return f"redirected off-site to {final_url[:70]}"
        if self._scope_filter.is_excluded(final_url):
            return f"redirected to excluded {final_url[:70]}"
        if not await self._frontier.adopt_redirect(task, final_url):
            return f"redirect target {final_url[:70]} already crawled"
        return None

    async def _capture(
        self, page: PageHandle, task: CrawlTask, final_url: str
    ) -> Tuple[PageOutput, List[str]]:
        """Snapshot the loaded page and run it through sanitize → extract → format."""
        # Links come from the live DOM, before sanitization touches anything
        hrefs = await self.browser.evaluate(page, LINK_SCRIPT) or []
        title = await page.title()
        html = await page.content()

        document = parse_html(html)
        cleaned = sanitize(document, url=final_url)
        record = extract(document, title=title, url=final_url)
        formatted = format_for_llm(record)

        output = PageOutput(
            title=record.title,
            url=final_url,
            html=cleaned,
            record=record,
            formatted=formatted,
            discovered_from=task.discovered_from,
        )
        return output, [h for h in hrefs if isinstance(h, str)]

    async def _enqueue_links(self, hrefs: List[str], base_url: str) -> None:
        """Offer every same-site link on the page to the frontier."""
        enqueued = 0
        seen = set()
        for href in hrefs:
            url = self._normalize(href, base_url)
            if not url or url in seen or not self._scope_filter.in_site(url):
                continue
            seen.add(url)
            state = await self._frontier.offer(url, discovered_from=base_url)
            if state == TaskState.QUEUED:
                enqueued += 1
            elif state == TaskState.SKIPPED:
                await self.monitor.record_skip()
        if enqueued:
            await self.monitor.record_enqueue(enqueued)
            logger.debug(f"[QUEUE] +{enqueued} from {base_url[:70]} (pending={self._frontier.pending})")

    def _normalize(self, url: str, base_url: Optional[str] = None) -> Optional[str]:
        """Frontier key for *url*: the seed, page links and redirect targets all go through here."""
        normalized = self.url_normalizer.normalize(url, base_url)
        return self._scope_filter.clean(normalized) if normalized else None

    @staticmethod
    async def _close_page(page: PageHandle) -> None:
        try:
            await page.close()
        except Exception as e:
            logger.debug(f"Error closing page: {e}")
