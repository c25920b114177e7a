"""
Sync Models
===========
Models describing the state of the agent's offline queue, and what the
agent's local API returns.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from walktrack.models.steps import Measurement


# =============================================================================
# ENUMS
# =============================================================================

class SyncState(str, Enum):
    """
    Current state of the offline queue.

    Status Flow:
    - IDLE: Nothing in flight (queue may still hold entries)
    - SYNCING: A drain pass owns the queue right now
    - OFFLINE: Last drain found no connection to the server
    - ERROR: Last drain stopped on a rejected or failed submission

    Every trigger retries from OFFLINE and ERROR; there is no terminal state.
    """
    IDLE = "idle"
    SYNCING = "syncing"
    OFFLINE = "offline"
    ERROR = "error"


# =============================================================================
# RESULTS
# =============================================================================

class DrainResult(BaseModel):
    """Outcome of one drain pass."""
    attempted: int = Field(0, description="Submissions made in this pass")
    delivered: int = Field(0, description="Entries accepted and removed from the queue")
    state: SyncState = Field(..., description="Queue state after the pass")


class SyncStatusResponse(BaseModel):
    """
    What the agent shows about itself.

    Returned by GET /api/sync/status
    """
    state: SyncState
    pending_count: int = Field(..., description="Entries waiting to be delivered")
    last_sync: Optional[datetime] = Field(None, description="Last fully successful drain")
    today_steps: int = Field(0, description="Steps counted since midnight (UTC)")
    recent_pending: list[Measurement] = Field(
        default_factory=list,
        description="Up to five newest pending entries, newest first",
    )


class SyncNowResponse(BaseModel):
    """Returned by the manual and foreground sync triggers."""
    result: DrainResult
    status: SyncStatusResponse


# =============================================================================
# CHART MODELS
# =============================================================================

class ChartPoint(BaseModel):
    """One point of the step chart: bucket start and step total."""
    x: datetime
    y: int


class ChartResponse(BaseModel):
    """
    Chart data for one of the dashboard ranges (1h, 6h, 1d, 7d).

    Returned by GET /api/sync/chart
    """
    range: str = Field(..., description="Range key, e.g. '1d'")
    label: str = Field(..., description="Human-readable range, e.g. 'Last day'")
    bucket_seconds: int = Field(..., description="Width of each point's bucket")
    points: list[ChartPoint] = Field(default_factory=list)
    total_steps: int = 0
    average_per_bucket: int = 0
    suggested_max: Optional[int] = Field(None, description="Y axis hint (max + 10)")
