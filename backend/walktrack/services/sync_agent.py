"""
Sync Agent
==========

This is the BRAIN of the step-tracking client!

WHAT IT DOES:
------------
1. Samples the step counter every few seconds (default: 5s)
2. Tries to drain the pending queue to the server (default: every 15s)
3. Keeps a running "today's steps" total, re-read from the device every minute
4. Drains immediately when the app comes to the foreground or the user
   hits "sync now"
5. Builds chart data for the dashboard from what the server has stored

The queue itself (and all of its rules) lives in OfflineQueueEngine.
This class just decides WHEN things happen.

SCHEDULED JOBS:
--------------
    sample               every SAMPLE_INTERVAL seconds
    drain                every SYNC_INTERVAL seconds
    refresh_today_steps  every TODAY_REFRESH_INTERVAL seconds

All jobs run on the same event loop as the API, so they never run in
parallel with each other. They only interleave at network calls.
"""

import logging
import sys
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

# Configure logging for the sync agent
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)

from walktrack.models import ChartResponse, DrainResult, SyncStatusResponse
from walktrack.services.aggregation import chart_points, get_range_config
from walktrack.services.errors import SourceUnavailable
from walktrack.services.offline_queue import OfflineQueueEngine
from walktrack.services.steps_api import StepsApiClient
from walktrack.utils.time_utils import start_of_day, utcnow


class SyncAgent:
    """
    Runs the offline queue on a timer and answers questions about it.
    """

    # How many pending entries the status shows
    RECENT_PENDING_LIMIT = 5

    def __init__(
        self,
        engine: OfflineQueueEngine,
        api_client: StepsApiClient,
        sample_interval: int = 5,
        sync_interval: int = 15,
        today_refresh_interval: int = 60,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Set up the agent.

        Args:
            engine: The offline queue (already wired to its collaborators)
            api_client: Server client, used for charts and closed on shutdown
            sample_interval: Seconds between step counter samples
            sync_interval: Seconds between drain attempts
            today_refresh_interval: Seconds between "today's steps" re-reads
            clock: Returns "now" as an aware UTC datetime
        """
        self.engine = engine
        self.api_client = api_client
        self.sample_interval = sample_interval
        self.sync_interval = sync_interval
        self.today_refresh_interval = today_refresh_interval
        self._clock = clock or utcnow

        self.today_steps = 0

        # This is the scheduler - it runs jobs on a timer.
        # It's started in start(), once there's an event loop to run on.
        self.scheduler = AsyncIOScheduler()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self):
        """Load the queue, take a first reading, try a first sync, start the timers."""
        await self.engine.start()

        # Only count steps from now on
        self.engine.reset_sample_window(self._clock())
        await self.refresh_today_steps()

        await self.engine.drain()

        self._add_interval_job(self.sample, "sample", self.sample_interval)
        self._add_interval_job(self._drain_job, "drain", self.sync_interval)
        self._add_interval_job(self.refresh_today_steps, "refresh_today_steps", self.today_refresh_interval)
        self.scheduler.start()

        logger.info(
            f"[{self.engine.subject_id}] Sync agent started "
            f"(sample: {self.sample_interval}s, sync: {self.sync_interval}s, "
            f"pending: {self.engine.pending_count})"
        )

    def _add_interval_job(self, callback, job_id: str, seconds: int):
        self.scheduler.add_job(
            callback,
            trigger=IntervalTrigger(seconds=seconds),
            id=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    async def shutdown(self):
        """Clean up when the agent is shutting down."""
        try:
            # Shutdown scheduler gracefully
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}", exc_info=True)

        try:
            # Save the queue one last time
            await self.engine.close()
        except Exception as e:
            logger.error(f"Error saving pending entries during shutdown: {e}", exc_info=True)

        # Close HTTP clients (ensure they're closed even if one fails)
        clients_to_close = [
            ("step_counter", self.engine.source),
            ("steps_api", self.api_client),
        ]

        for client_name, client in clients_to_close:
            close = getattr(client, "close", None)
            if close is None:
                continue
            try:
                await close()
                logger.debug(f"Closed {client_name} client")
            except Exception as e:
                logger.error(f"Error closing {client_name} client: {e}", exc_info=True)

    # =========================================================================
    # JOBS
    # =========================================================================

    async def sample(self):
        """Read the step counter and queue whatever came in."""
        measurement = await self.engine.sample(self._clock())
        if measurement is not None:
            self.today_steps += measurement.count
            logger.debug(f"[{self.engine.subject_id}] +{measurement.count} steps (today: {self.today_steps})")

    async def refresh_today_steps(self):
        """Re-read today's total from the device; keep the old value if it's unavailable."""
        now = self._clock()
        try:
            self.today_steps = await self.engine.source.read_count(start_of_day(now), now)
        except SourceUnavailable as e:
            logger.warning(f"[{self.engine.subject_id}] Unable to read daily steps: {e}")

    async def _drain_job(self):
        await self.engine.drain()

    # =========================================================================
    # TRIGGERS
    # =========================================================================

    async def on_foreground(self) -> DrainResult:
        """The app just became active again - try to sync."""
        logger.info(f"[{self.engine.subject_id}] App became active, syncing")
        return await self.engine.drain()

    async def sync_now(self) -> DrainResult:
        """The user pressed "sync now"."""
        logger.info(f"[{self.engine.subject_id}] Manual sync requested")
        return await self.engine.drain()

    # =========================================================================
    # STATUS & CHARTS
    # =========================================================================

    def status(self) -> SyncStatusResponse:
        """Current queue state, for the status screen."""
        pending = self.engine.pending
        recent = list(reversed(pending[-self.RECENT_PENDING_LIMIT:]))
        return SyncStatusResponse(
            state=self.engine.state,
            pending_count=len(pending),
            last_sync=self.engine.last_sync_timestamp,
            today_steps=self.today_steps,
            recent_pending=recent,
        )

    async def chart(self, range_key: str) -> ChartResponse:
        """
        Chart data for a dashboard range, built from what the server stored.

        Raises:
            InvalidArgument: Unknown range key
            Rejected / TransportFailure: The server couldn't be asked
        """
        config = get_range_config(range_key)
        now = self._clock()
        readings = await self.api_client.fetch_step_readings(
            self.engine.subject_id,
            start=now - config.duration,
            end=now,
        )
        return chart_points(readings, range_key, now)
