"""
Steps API Router
================

Where the agent drops off step readings and the dashboard picks them up.

ALL ENDPOINTS:
-------------
POST   /api/steps          - Store one reading
GET    /api/steps          - List readings (userId, from, to, limit)
GET    /api/steps/summary  - Hourly totals (userId, from, to)

QUERY PARAMETERS:
----------------
userId  - whose steps (default: "default")
from    - ISO-8601, inclusive
to      - ISO-8601, inclusive
limit   - 1..1000, keeps the oldest N
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from walktrack.models import (
    DEFAULT_USER_ID,
    CreateStepReadingRequest,
    CreatedResponse,
    StepReadingListResponse,
    SummaryResponse,
)
from walktrack.services.step_readings import (
    create_step_reading,
    query_step_readings,
    summarise_step_readings,
)


# Create the router - this groups all our step endpoints together
router = APIRouter(prefix="/api/steps", tags=["steps"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

_step_store = None  # This gets set when the app starts


def set_step_store(store):
    """Called when the app starts to give us the step store."""
    global _step_store
    _step_store = store


def get_step_store():
    """Get the step store for use in endpoints."""
    if _step_store is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _step_store


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=CreatedResponse, status_code=201)
async def create_step(
    request: CreateStepReadingRequest,
    store = Depends(get_step_store)
):
    """
    Store one step reading.

    Send us:
    - userId: Whose steps (optional, defaults to "default")
    - steps: How many (0 or more)
    - takenAt: When (ISO-8601)
    """
    record = create_step_reading(store, request)
    return CreatedResponse(id=record.id)


@router.get("", response_model=StepReadingListResponse)
async def list_steps(
    user_id: str = Query(DEFAULT_USER_ID, alias="userId"),
    from_: Optional[datetime] = Query(None, alias="from"),
    to: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    store = Depends(get_step_store)
):
    """Readings for one user, oldest first."""
    records = query_step_readings(store, user_id.strip(), start=from_, end=to, limit=limit)
    return StepReadingListResponse(count=len(records), data=records)


@router.get("/summary", response_model=SummaryResponse)
async def summarise_steps(
    user_id: str = Query(DEFAULT_USER_ID, alias="userId"),
    from_: Optional[datetime] = Query(None, alias="from"),
    to: Optional[datetime] = Query(None),
    store = Depends(get_step_store)
):
    """Hourly step totals for one user."""
    buckets = summarise_step_readings(store, user_id.strip(), start=from_, end=to)
    return SummaryResponse(count=len(buckets), data=buckets)
