"""
Tests for the background pipeline scheduler.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from wakenet.scheduler import PipelineScheduler, seconds_until_next_minute


def test_seconds_until_next_minute():
    assert 0 < seconds_until_next_minute() <= 60


class TestPipelineScheduler:
    @pytest.mark.asyncio
    async def test_start_runs_jobs_and_stop_cancels(self, test_db, dispatcher):
        poll = AsyncMock(return_value={})
        drain = AsyncMock(return_value={})
        with patch("wakenet.scheduler.poll_due_feeds", poll), \
                patch("wakenet.scheduler.drain_queue", drain):
            scheduler = PipelineScheduler(test_db, dispatcher, poll_interval=60, drain_interval=60)
            await scheduler.start()
            assert scheduler.running
            await asyncio.sleep(0.05)
            await scheduler.stop()

        assert not scheduler.running
        poll.assert_awaited_once_with(test_db, dispatcher)
        drain.assert_awaited_once_with(test_db, dispatcher)

    @pytest.mark.asyncio
    async def test_failing_job_does_not_end_loop(self, test_db, dispatcher):
        calls = []

        async def flaky(db, dispatcher):
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            return {}

        poll = AsyncMock(side_effect=flaky)
        with patch("wakenet.scheduler.poll_due_feeds", poll), \
                patch("wakenet.scheduler.drain_queue", AsyncMock(return_value={})):
            scheduler = PipelineScheduler(test_db, dispatcher, poll_interval=0.01, drain_interval=60)
            await scheduler.start()
            await asyncio.sleep(0.1)
            await scheduler.stop()

        assert poll.await_count >= 2

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self, test_db, dispatcher):
        with patch("wakenet.scheduler.poll_due_feeds", AsyncMock(return_value={})), \
                patch("wakenet.scheduler.drain_queue", AsyncMock(return_value={})):
            scheduler = PipelineScheduler(test_db, dispatcher, poll_interval=60, drain_interval=60)
            await scheduler.start()
            tasks = list(scheduler._tasks)
            await scheduler.start()
            assert scheduler._tasks == tasks
            await scheduler.stop()
