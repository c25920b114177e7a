"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from walktrack.models import Measurement, SyncState
"""

from .steps import (
    DEFAULT_USER_ID,

    # What the queue holds and the aggregator produces
    Measurement,
    Bucket,

    # What the agent sends to the server
    CreateStepReadingRequest,

    # What the server sends back
    StepReadingRecord,
    CreatedResponse,
    StepReadingListResponse,
    SummaryBucket,
    SummaryResponse,
)
from .sync import (
    SyncState,
    DrainResult,
    SyncStatusResponse,
    SyncNowResponse,
    ChartPoint,
    ChartResponse,
)

__all__ = [
    "DEFAULT_USER_ID",
    "Measurement",
    "Bucket",
    "CreateStepReadingRequest",
    "StepReadingRecord",
    "CreatedResponse",
    "StepReadingListResponse",
    "SummaryBucket",
    "SummaryResponse",
    "SyncState",
    "DrainResult",
    "SyncStatusResponse",
    "SyncNowResponse",
    "ChartPoint",
    "ChartResponse",
]
