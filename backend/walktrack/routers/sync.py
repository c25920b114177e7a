"""
Sync API Router
===============

The agent's local API - what a status screen or dashboard talks to.

ALL ENDPOINTS:
-------------
GET    /api/sync/status      - Queue state, pending count, last sync, today's steps
POST   /api/sync/now         - "Sync now" button
POST   /api/sync/foreground  - The app just became active
GET    /api/sync/chart       - Chart points for a range (1h, 6h, 1d, 7d)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from walktrack.models import ChartResponse, SyncNowResponse, SyncStatusResponse
from walktrack.services.errors import InvalidArgument, Rejected, TransportFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

_sync_agent = None  # This gets set when the agent starts


def set_sync_agent(agent):
    """Called when the agent starts to give us the SyncAgent."""
    global _sync_agent
    _sync_agent = agent


def get_sync_agent():
    """Get the sync agent for use in endpoints."""
    if _sync_agent is None:
        raise HTTPException(status_code=500, detail="Agent not fully started yet")
    return _sync_agent


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/status", response_model=SyncStatusResponse)
async def get_status(agent = Depends(get_sync_agent)):
    """What the queue is doing right now."""
    return agent.status()


@router.post("/now", response_model=SyncNowResponse)
async def sync_now(agent = Depends(get_sync_agent)):
    """
    Push everything pending to the server right now.

    Always answers 200 - look at result.state to see how it went
    (idle, offline, error).
    """
    result = await agent.sync_now()
    return SyncNowResponse(result=result, status=agent.status())


@router.post("/foreground", response_model=SyncNowResponse)
async def foreground(agent = Depends(get_sync_agent)):
    """Tell the agent the app is active again (triggers a sync)."""
    result = await agent.on_foreground()
    return SyncNowResponse(result=result, status=agent.status())


@router.get("/chart", response_model=ChartResponse)
async def get_chart(
    range_key: str = Query("1d", alias="range", description="1h, 6h, 1d or 7d"),
    agent = Depends(get_sync_agent)
):
    """Step chart for the chosen range, bucketed on this side."""
    try:
        return await agent.chart(range_key)
    except InvalidArgument as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (Rejected, TransportFailure) as e:
        logger.warning(f"Failed to load steps for chart: {e}")
        raise HTTPException(status_code=502, detail=f"Unable to load data: {e}")
