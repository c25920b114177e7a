"""
Services Package
================

These are the "workers" that do the actual work.

- OfflineQueueEngine: Holds pending step counts until the server has them
- JsonFileQueueStore: Keeps the pending queue on disk
- StepCounterService: Reads step counts from the pedometer
- StepsApiClient: Talks to the WalkTrack server
- SyncAgent: The boss that runs the queue on a timer
- StepReadingStore: The server's JSON-file database
- aggregation: Buckets measurements for summaries and charts
"""

from .errors import (
    WalkTrackError,
    SourceUnavailable,
    PersistenceFailure,
    Rejected,
    TransportFailure,
    InvalidArgument,
)
from .aggregation import aggregate, summarise_hourly, chart_points, RANGE_CONFIG
from .offline_queue import OfflineQueueEngine
from .queue_store import JsonFileQueueStore
from .step_counter import StepCounterService
from .steps_api import StepsApiClient
from .step_store import StepReadingStore
from .sync_agent import SyncAgent

__all__ = [
    "WalkTrackError",
    "SourceUnavailable",
    "PersistenceFailure",
    "Rejected",
    "TransportFailure",
    "InvalidArgument",
    "aggregate",
    "summarise_hourly",
    "chart_points",
    "RANGE_CONFIG",
    "OfflineQueueEngine",
    "JsonFileQueueStore",
    "StepCounterService",
    "StepsApiClient",
    "StepReadingStore",
    "SyncAgent",
]
