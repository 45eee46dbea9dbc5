"""
Tests for frontier.py — dedup, exclusion, budget and redirect ownership.
"""

import asyncio

import pytest

from dashcrawl.errors import BudgetExhausted
from dashcrawl.frontier import Frontier
from dashcrawl.models import CrawlTask, TaskState
from dashcrawl.scope_filter import ScopeFilter

SEED = "https://app.example.com/"


def _frontier(max_pages=100, exclude=()):
    return Frontier(ScopeFilter(root_url=SEED, exclude_patterns=list(exclude)), max_pages=max_pages)


class TestOffer:

    @pytest.mark.asyncio
    async def test_first_offer_queues(self):
        f = _frontier()
        assert await f.offer(SEED) == TaskState.QUEUED
        assert f.pending == 1
        assert f.state_of(SEED) == TaskState.QUEUED

    @pytest.mark.asyncio
    async def test_duplicate_offer_ignored(self):
        f = _frontier()
        await f.offer(SEED)
        assert await f.offer(SEED) is None
        assert f.pending == 1

    @pytest.mark.asyncio
    async def test_concurrent_offers_queue_once(self):
        f = _frontier()
        results = await asyncio.gather(*(f.offer(SEED + "events") for _ in range(20)))
        assert results.count(TaskState.QUEUED) == 1
        assert f.pending == 1

    @pytest.mark.asyncio
    async def test_excluded_recorded_as_skipped(self):
        f = _frontier(exclude=[r"/logout"])
        assert await f.offer(SEED + "logout") == TaskState.SKIPPED
        assert f.pending == 0
        assert f.count(TaskState.SKIPPED) == 1
        assert SEED + "logout" in f.visited
        # never offered again
        assert await f.offer(SEED + "logout") is None

    @pytest.mark.asyncio
    async def test_offer_refused_once_budget_committed(self):
        f = _frontier(max_pages=1, exclude=[r"/x"])
        assert await f.offer(SEED + "x") == TaskState.SKIPPED
        assert await f.offer(SEED + "y") is None


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_claim_and_finish(self):
        f = _frontier()
        await f.offer(SEED)
        task = await f.next_task()
        assert await f.claim(task)
        assert f.state_of(SEED) == TaskState.NAVIGATING
        await f.finish(task, TaskState.EXTRACTED)
        f.task_done()
        assert f.state_of(SEED) == TaskState.EXTRACTED
        assert f.count(TaskState.EXTRACTED) == 1
        assert f.visited == frozenset({SEED})

    @pytest.mark.asyncio
    async def test_finish_requires_terminal_state(self):
        f = _frontier()
        with pytest.raises(ValueError):
            await f.finish(CrawlTask(SEED), TaskState.QUEUED)

    @pytest.mark.asyncio
    async def test_claim_raises_when_budget_committed(self):
        f = _frontier(max_pages=1)
        await f.offer(SEED)
        await f.offer(SEED + "a")
        first = await f.next_task()
        second = await f.next_task()
        assert await f.claim(first)
        with pytest.raises(BudgetExhausted):
            await f.claim(second)
        await f.finish(first, TaskState.FAILED)
        assert f.exhausted
        assert f.terminal_tasks == 1

    @pytest.mark.asyncio
    async def test_in_flight_counts_against_budget(self):
        """Two claims with one slot: only one may navigate."""
        f = _frontier(max_pages=1)
        await f.offer(SEED)
        await f.offer(SEED + "a")
        tasks = [await f.next_task(), await f.next_task()]

        async def try_claim(t):
            try:
                return await f.claim(t)
            except BudgetExhausted:
                return False

        results = await asyncio.gather(*(try_claim(t) for t in tasks))
        assert results.count(True) == 1


class TestRedirects:

    @pytest.mark.asyncio
    async def test_redirect_adopts_unseen_target(self):
        f = _frontier()
        await f.offer(SEED + "old")
        task = await f.next_task()
        await f.claim(task)
        assert await f.adopt_redirect(task, SEED + "new")
        await f.finish(task, TaskState.EXTRACTED)
        assert f.state_of(SEED + "new") == TaskState.EXTRACTED
        assert await f.offer(SEED + "new") is None
        assert f.count(TaskState.EXTRACTED) == 1

    @pytest.mark.asyncio
    async def test_queued_target_becomes_noop(self):
        f = _frontier()
        await f.offer(SEED + "old")
        await f.offer(SEED + "new")
        old = await f.next_task()
        await f.claim(old)
        assert await f.adopt_redirect(old, SEED + "new")
        queued_copy = await f.next_task()
        assert queued_copy.url == SEED + "new"
        assert await f.claim(queued_copy) is False

    @pytest.mark.asyncio
    async def test_redirect_to_finished_url_refused(self):
        f = _frontier()
        await f.offer(SEED)
        await f.offer(SEED + "alias")
        first = await f.next_task()
        await f.claim(first)
        await f.finish(first, TaskState.EXTRACTED)
        alias = await f.next_task()
        await f.claim(alias)
        assert await f.adopt_redirect(alias, SEED) is False

    @pytest.mark.asyncio
    async def test_same_url_redirect_is_noop(self):
        f = _frontier()
        await f.offer(SEED)
        task = await f.next_task()
        await f.claim(task)
        assert await f.adopt_redirect(task, SEED)
