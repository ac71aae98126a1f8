"""
Pipeline scheduler.

Background asyncio tasks that poll due feeds, drain the rate-limit queue
and send daily digests. Disabled by default; deployments with an external
cron call the /jobs endpoints instead.
"""

import asyncio
import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Awaitable, Callable

from .config import config
from .database.converters import utc_now
from .tasks import drain_queue, poll_due_feeds, send_digests

if TYPE_CHECKING:
    from .database import Database
    from .delivery import WebhookDispatcher


logger = logging.getLogger(__name__)


def seconds_until_next_minute() -> float:
    now = utc_now()
    next_minute = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
    return (next_minute - now).total_seconds()


class PipelineScheduler:
    """
    Runs the periodic jobs on their own loops.

    Feeds are polled and the queue drained on fixed intervals; digests are
    sent at every UTC minute boundary, matching minute-precise schedules.

    Each loop survives errors in a single run; only stop() ends it.
    """

    def __init__(
        self,
        db: "Database",
        dispatcher: "WebhookDispatcher",
        poll_interval: int | None = None,
        drain_interval: int | None = None,
    ):
        self.db = db
        self.dispatcher = dispatcher
        self._poll_interval = poll_interval or config.POLL_INTERVAL_SECONDS
        self._drain_interval = drain_interval or config.DRAIN_INTERVAL_SECONDS
        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        """Start the job loops."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._loop("poll", self._poll_interval, self._poll)),
            asyncio.create_task(self._loop("drain", self._drain_interval, self._drain)),
            asyncio.create_task(self._digest_loop()),
        ]
        logger.info(
            f"Pipeline scheduler started (poll every {self._poll_interval}s, "
            f"drain every {self._drain_interval}s, digests each minute)"
        )

    async def stop(self):
        """Stop the job loops."""
        self._running = False

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []

        logger.info("Pipeline scheduler stopped")

    async def _poll(self):
        await poll_due_feeds(self.db, self.dispatcher)

    async def _drain(self):
        await drain_queue(self.db, self.dispatcher)

    async def _loop(self, name: str, interval: int, job: Callable[[], Awaitable[None]]):
        while self._running:
            try:
                await job()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in {name} loop: {e}")

            await asyncio.sleep(interval)

    async def _digest_loop(self):
        # Digest schedules are minute-precise, so wake at each minute boundary
        while self._running:
            await asyncio.sleep(seconds_until_next_minute())
            try:
                await send_digests(self.db, self.dispatcher)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.exception(f"Error in digest loop: {e}")
