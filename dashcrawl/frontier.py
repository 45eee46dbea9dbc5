"""
Crawl Frontier
==============
Single owner of the shared crawl state: the pending queue, the state of
every URL ever seen, and the page budget.

Every read-modify-write goes through one ``asyncio.Lock``, so two
workers can never both queue or both navigate the same canonical URL,
whatever the pool size.

Budget accounting is per *task*: a task reserves a slot when it is
claimed for navigation (or when an excluded link is recorded as
``SKIPPED``) and the slot becomes terminal when the task finishes.
``terminal + in_flight`` never exceeds ``max_pages``.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Dict, FrozenSet, Optional

from .errors import BudgetExhausted
from .models import CrawlTask, TaskState
from .scope_filter import ScopeFilter

logger = logging.getLogger(__name__)


class Frontier:
    """
    Deduplicated, budget-bounded crawl queue.

    Usage::

        frontier = Frontier(scope_filter, max_pages=100)
        await frontier.offer(seed_url)
        task = await frontier.next_task()
        await frontier.claim(task)          # may raise BudgetExhausted
        ...
        await frontier.finish(task, TaskState.EXTRACTED)
        frontier.task_done()
    """

    def __init__(self, scope_filter: ScopeFilter, max_pages: int = 100):
        self.scope_filter = scope_filter
        self.max_pages = max_pages

        self._queue: asyncio.Queue = asyncio.Queue()
        self._lock = asyncio.Lock()
        self._states: Dict[str, TaskState] = {}
        # task URL -> final URL it redirected to and now owns
        self._aliases: Dict[str, str] = {}
        self._counts: Counter = Counter()
        self._in_flight = 0

    # ------------------------------------------------------------------
    # Queue side
    # ------------------------------------------------------------------

    async def offer(self, url: str, discovered_from: Optional[str] = None) -> Optional[TaskState]:
        """
        Consider a canonical, in-site URL for crawling.

        Returns:
            ``QUEUED`` if a task was enqueued, ``SKIPPED`` if the URL matches
            an exclusion pattern (recorded as terminal), ``None`` if it was
            already seen or the budget is fully committed.
        """
        async with self._lock:
            if url in self._states:
                return None
            if self._committed >= self.max_pages:
                return None

            if self.scope_filter.is_excluded(url):
                self._states[url] = TaskState.SKIPPED
                self._counts[TaskState.SKIPPED] += 1
                logger.info(f"[SKIP] {url[:80]} — matches exclusion pattern")
                return TaskState.SKIPPED

            self._states[url] = TaskState.QUEUED
            self._queue.put_nowait(CrawlTask(url=url, discovered_from=discovered_from))
            return TaskState.QUEUED

    async def next_task(self) -> CrawlTask:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every queued task has been consumed."""
        await self._queue.join()

    # ------------------------------------------------------------------
    # Task lifecycle
    # ------------------------------------------------------------------

    async def claim(self, task: CrawlTask) -> bool:
        """
        Move *task* from ``QUEUED`` to ``NAVIGATING`` and reserve a budget slot.

        Returns:
            False if the URL is no longer queued (a redirect already
            consumed it).

        Raises:
            BudgetExhausted: if every budget slot is taken
        """
        async with self._lock:
            if self._states.get(task.url) != TaskState.QUEUED:
                return False
            if self._committed >= self.max_pages:
                raise BudgetExhausted(self.max_pages)
            self._states[task.url] = TaskState.NAVIGATING
            self._in_flight += 1
            return True

    async def adopt_redirect(self, task: CrawlTask, final_url: str) -> bool:
        """
        Let *task* take ownership of the URL it was redirected to.

        Returns:
            False if *final_url* is already being navigated or finished by
            another task (the caller should skip this one as a duplicate).
        """
        if final_url == task.url:
            return True
        async with self._lock:
            state = self._states.get(final_url)
            if state is not None and state != TaskState.QUEUED:
                return False
            # A queued copy becomes a no-op when it is dequeued
            self._states[final_url] = TaskState.NAVIGATING
            self._aliases[task.url] = final_url
            return True

    async def finish(self, task: CrawlTask, state: TaskState) -> None:
        """Record the terminal state of a claimed task and release its slot."""
        if not state.is_terminal:
            raise ValueError(f"{state} is not a terminal state")
        async with self._lock:
            self._states[task.url] = state
            alias = self._aliases.pop(task.url, None)
            if alias is not None:
                self._states[alias] = state
            self._counts[state] += 1
            self._in_flight = max(0, self._in_flight - 1)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def _committed(self) -> int:
        return sum(self._counts.values()) + self._in_flight

    @property
    def exhausted(self) -> bool:
        return self._committed >= self.max_pages

    @property
    def visited(self) -> FrozenSet[str]:
        """URLs that reached a terminal state."""
        return frozenset(u for u, s in self._states.items() if s.is_terminal)

    def state_of(self, url: str) -> Optional[TaskState]:
        return self._states.get(url)

    def count(self, state: TaskState) -> int:
        return self._counts[state]

    @property
    def terminal_tasks(self) -> int:
        return sum(self._counts.values())

    @property
    def pending(self) -> int:
        return self._queue.qsize()
