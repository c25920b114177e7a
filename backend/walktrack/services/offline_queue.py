"""
Offline Queue Engine
====================

This is the heart of the agent: it remembers every step count until the
server has it.

WHAT IT DOES:
------------
1. Samples the step counter for the window since the last sample
2. Appends positive counts to a pending queue (oldest first)
3. Mirrors the queue to disk after every change (write-behind, never awaited)
4. Drains the queue to the server, one entry at a time, in order

THE DATA FLOW:
-------------
    Step Counter
         |
         | sample()
         v
    [Pending Queue] ----(write-behind)----> [Queue File]
         |
         | drain()  (every 15s, on foreground, on "sync now")
         v
    [WalkTrack Server]

DRAIN RULES:
-----------
- Empty queue: state goes IDLE, nothing else happens
- Already SYNCING: the running pass owns the queue, this call is a no-op
- Server unreachable: state goes OFFLINE, queue untouched
- First rejection or network error: stop right there. Entries delivered
  before it are removed, everything from the failed one onwards stays.
  State goes ERROR. Newer data is never sent ahead of an older failure.
- Pass cancelled midway: same as a failure (delivered prefix removed,
  state ERROR), so the next trigger can run again
- Everything delivered: queue empty, last_sync updated, state IDLE

KNOWN APPROXIMATIONS:
--------------------
- When the step counter is unavailable the sample window isn't advanced,
  so the next sample re-reads an overlapping window and may double count.
- An entry the server keeps rejecting blocks the queue. There is no
  dead-letter queue and no skip-and-continue.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from walktrack.models import DEFAULT_USER_ID, DrainResult, Measurement, SyncState
from walktrack.services.errors import PersistenceFailure, Rejected, SourceUnavailable, TransportFailure
from walktrack.utils.time_utils import utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# COLLABORATORS
# =============================================================================

class SampleSource(Protocol):
    async def read_count(self, start: datetime, end: datetime) -> int:
        """Steps taken in [start, end). Raises SourceUnavailable."""
        ...


class QueueStore(Protocol):
    async def load(self) -> list[Measurement]:
        """The saved queue, or an empty list if there is none."""
        ...

    async def save(self, queue: Sequence[Measurement]) -> None:
        """Replace the saved queue. Raises PersistenceFailure."""
        ...


class ConnectivityProbe(Protocol):
    async def is_connected(self) -> bool:
        ...


class RemoteSink(Protocol):
    async def submit(self, measurement: Measurement) -> None:
        """Deliver one entry. Raises Rejected or TransportFailure."""
        ...


# =============================================================================
# THE ENGINE
# =============================================================================

class OfflineQueueEngine:
    """
    Owns the pending queue and the sync state for the lifetime of the agent.

    HOW TO USE:
    ----------
    engine = OfflineQueueEngine(source, store, probe, sink, subject_id="default")
    await engine.start()          # load saved queue, start the disk writer

    await engine.sample()         # read the step counter, queue the delta
    result = await engine.drain() # push what we have to the server

    await engine.close()          # final save before exit
    """

    def __init__(
        self,
        source: SampleSource,
        store: QueueStore,
        probe: ConnectivityProbe,
        sink: RemoteSink,
        subject_id: str = DEFAULT_USER_ID,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Set up the engine.

        Args:
            source: Where step counts come from
            store: Where the pending queue is mirrored
            probe: Tells us whether the server is reachable
            sink: Where pending entries are delivered
            subject_id: The user every measurement is tagged with
            clock: Returns "now" as an aware UTC datetime (tests pass a fake)
        """
        self.source = source
        self.store = store
        self.probe = probe
        self.sink = sink
        self.subject_id = subject_id
        self._clock = clock or utcnow

        self._pending: list[Measurement] = []
        self._state = SyncState.IDLE
        self._last_sync: Optional[datetime] = None
        self._last_sample: datetime = self._clock()

        # Snapshots waiting for the disk writer, oldest first
        self._writes: asyncio.Queue = asyncio.Queue()
        self._writer: Optional[asyncio.Task] = None

    # =========================================================================
    # READ-ONLY STATE
    # =========================================================================

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def pending(self) -> tuple[Measurement, ...]:
        return tuple(self._pending)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def last_sync_timestamp(self) -> Optional[datetime]:
        return self._last_sync

    @property
    def last_sample_timestamp(self) -> datetime:
        return self._last_sample

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self):
        """Seed the queue from disk and start the write-behind task."""
        try:
            saved = await self.store.load()
        except Exception as e:
            logger.error(f"[{self.subject_id}] Failed to load cached entries: {e}")
            saved = []

        if saved:
            self._pending = list(saved) + self._pending
            logger.info(f"[{self.subject_id}] Loaded {len(saved)} pending entries from disk")

        if self._writer is None:
            self._writer = asyncio.create_task(self._write_behind())

    async def flush(self):
        """Wait until every queued snapshot has been written (or has failed)."""
        if self._writer is None:
            return
        await self._writes.join()

    async def close(self):
        """Stop the writer and make one last best-effort save."""
        if self._writer is not None:
            await self.flush()
            self._writer.cancel()
            try:
                await self._writer
            except asyncio.CancelledError:
                pass
            self._writer = None

        try:
            await self.store.save(list(self._pending))
        except Exception as e:
            logger.error(f"[{self.subject_id}] Final save of pending entries failed: {e}")

    def reset_sample_window(self, now: Optional[datetime] = None):
        """Start counting from ``now``; steps before it are never sampled."""
        self._last_sample = now or self._clock()

    # =========================================================================
    # ENQUEUE & SAMPLE
    # =========================================================================

    def enqueue(self, measurement: Measurement) -> bool:
        """
        Append a measurement to the pending queue.

        Zero counts are dropped silently. The disk write is handed to the
        background writer; this call never waits for it.

        Returns:
            True if the measurement was queued
        """
        if measurement.count <= 0:
            logger.debug(f"[{self.subject_id}] Dropping zero-count sample at {measurement.observed_at}")
            return False

        self._pending.append(measurement)
        self._schedule_write()
        return True

    async def sample(self, now: Optional[datetime] = None) -> Optional[Measurement]:
        """
        Read the step counter for [last sample, now) and queue the result.

        The window always advances on a successful read, even for zero steps,
        so the same steps are never counted twice. On a failed read it does
        not advance.

        Returns:
            The measurement that was queued, or None
        """
        now = now or self._clock()
        window_start = self._last_sample

        try:
            count = await self.source.read_count(window_start, now)
        except SourceUnavailable as e:
            logger.warning(f"[{self.subject_id}] Failed to sample step count: {e}")
            return None
        except Exception as e:
            logger.error(f"[{self.subject_id}] Unexpected error sampling step count: {e}", exc_info=True)
            return None

        self._last_sample = now

        if count <= 0:
            return None

        measurement = Measurement(subject_id=self.subject_id, count=count, observed_at=now)
        self.enqueue(measurement)
        return measurement

    # =========================================================================
    # DRAIN
    # =========================================================================

    async def drain(self) -> DrainResult:
        """
        Deliver pending entries to the server, oldest first.

        Never raises; every failure ends up in ``state`` and the logs.
        """
        if self._state == SyncState.SYNCING:
            logger.debug(f"[{self.subject_id}] Drain already in progress, skipping")
            return DrainResult(state=self._state)

        if not self._pending:
            self._state = SyncState.IDLE
            return DrainResult(state=self._state)

        # Claim the queue before the first await so concurrent triggers coalesce
        self._state = SyncState.SYNCING
        attempted = 0
        delivered = 0

        try:
            try:
                connected = await self.probe.is_connected()
            except Exception as e:
                logger.warning(f"[{self.subject_id}] Connectivity check failed: {e}")
                connected = False

            if not connected:
                self._state = SyncState.OFFLINE
                logger.info(f"[{self.subject_id}] Offline - {len(self._pending)} entries waiting")
                return DrainResult(state=self._state)

            for measurement in list(self._pending):
                attempted += 1
                try:
                    await self.sink.submit(measurement)
                except Rejected as e:
                    logger.warning(f"[{self.subject_id}] Failed to sync entry - HTTP {e.status_code}: {e.body}")
                    self._state = SyncState.ERROR
                    break
                except TransportFailure as e:
                    logger.warning(f"[{self.subject_id}] Network error while syncing: {e}")
                    self._state = SyncState.ERROR
                    break
                except Exception as e:
                    logger.error(f"[{self.subject_id}] Unexpected error while syncing: {e}", exc_info=True)
                    self._state = SyncState.ERROR
                    break
                delivered += 1
            else:
                self._last_sync = self._clock()
                self._state = SyncState.IDLE
                logger.info(f"[{self.subject_id}] Synced {delivered} entries")
        finally:
            if delivered:
                # Only this pass removes entries, and appends go to the end,
                # so the first `delivered` entries are exactly the ones sent.
                del self._pending[:delivered]
                self._schedule_write()

            if self._state == SyncState.SYNCING:
                # Pass was interrupted (cancelled); let the next trigger retry
                logger.warning(f"[{self.subject_id}] Sync interrupted after {delivered} entries")
                self._state = SyncState.ERROR

        return DrainResult(attempted=attempted, delivered=delivered, state=self._state)

    # =========================================================================
    # WRITE-BEHIND PERSISTENCE
    # =========================================================================

    def _schedule_write(self):
        self._writes.put_nowait(list(self._pending))

    async def _write_behind(self):
        """Save queue snapshots in order, skipping straight to the newest one."""
        while True:
            snapshot = await self._writes.get()
            taken = 1
            while not self._writes.empty():
                snapshot = self._writes.get_nowait()
                taken += 1

            try:
                await self.store.save(snapshot)
                logger.debug(f"[{self.subject_id}] Saved {len(snapshot)} pending entries")
            except PersistenceFailure as e:
                logger.warning(f"[{self.subject_id}] Failed to persist pending entries: {e}")
            except Exception as e:
                logger.error(f"[{self.subject_id}] Error persisting pending entries: {e}", exc_info=True)
            finally:
                for _ in range(taken):
                    self._writes.task_done()
