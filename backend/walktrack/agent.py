"""
WalkTrack - Step Agent
======================
The step-tracking client: counts steps, queues them while offline, and
syncs them to the WalkTrack server when it can.

ARCHITECTURE:
    [Step Counter] --sample--> [This Agent] --POST /api/steps--> [WalkTrack Server]
                                    |
                                    v
                          [pending-entries.json]

    The agent also serves a small local API (status, sync now, charts)
    for whatever screen sits in front of it.

HOW TO RUN:
    # Copy environment config
    cp backend/env.example.txt .env
    # Edit .env with your settings

    # Run the agent
    uvicorn walktrack.agent:app --port 8001
"""

import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from walktrack.routers import set_sync_agent, sync_router
from walktrack.services import (
    JsonFileQueueStore,
    OfflineQueueEngine,
    StepCounterService,
    StepsApiClient,
    SyncAgent,
)
from walktrack.utils.time_utils import to_iso, utcnow


# Load environment variables from .env file
load_dotenv()


# =============================================================================
# CONFIGURATION
# =============================================================================

class Config:
    """
    Agent configuration loaded from environment variables.

    Environment Variables:
        API_BASE_URL: Where the WalkTrack server lives
        STEP_COUNTER_URL: Where the step counter device lives
        WALKTRACK_USER_ID: Whose steps these are (default: "default")
        QUEUE_FILE: Where pending entries are kept between restarts
        SAMPLE_INTERVAL: Seconds between step counter samples (default: 5)
        SYNC_INTERVAL: Seconds between sync attempts (default: 15)
        TODAY_REFRESH_INTERVAL: Seconds between "today's steps" re-reads (default: 60)
        REQUEST_TIMEOUT: Seconds to wait for any HTTP request (default: 10)
    """

    API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:4000")

    STEP_COUNTER_URL = os.getenv("STEP_COUNTER_URL", "http://localhost:8080")

    USER_ID = os.getenv("WALKTRACK_USER_ID", "default")

    QUEUE_FILE = os.getenv("QUEUE_FILE", "data/pending-entries.json")

    SAMPLE_INTERVAL = int(os.getenv("SAMPLE_INTERVAL", "5"))
    SYNC_INTERVAL = int(os.getenv("SYNC_INTERVAL", "15"))
    TODAY_REFRESH_INTERVAL = int(os.getenv("TODAY_REFRESH_INTERVAL", "60"))

    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Agent lifespan handler.

    STARTUP:
        1. Create the HTTP clients (server + step counter)
        2. Build the offline queue and the sync agent
        3. Inject the agent into the router
        4. Start sampling and syncing

    SHUTDOWN:
        1. Stop the timers
        2. Save the pending queue one last time
        3. Close HTTP clients
    """
    # ========== STARTUP ==========
    print("=" * 60)
    print("WALKTRACK AGENT - Starting")
    print("=" * 60)

    api_client = StepsApiClient(Config.API_BASE_URL, request_timeout=Config.REQUEST_TIMEOUT)
    step_counter = StepCounterService(Config.STEP_COUNTER_URL, request_timeout=Config.REQUEST_TIMEOUT)

    engine = OfflineQueueEngine(
        source=step_counter,
        store=JsonFileQueueStore(Config.QUEUE_FILE),
        probe=api_client,
        sink=api_client,
        subject_id=Config.USER_ID,
    )

    agent = SyncAgent(
        engine=engine,
        api_client=api_client,
        sample_interval=Config.SAMPLE_INTERVAL,
        sync_interval=Config.SYNC_INTERVAL,
        today_refresh_interval=Config.TODAY_REFRESH_INTERVAL,
    )

    set_sync_agent(agent)
    await agent.start()

    print(f"User: {Config.USER_ID}")
    print(f"Server: {Config.API_BASE_URL}")
    print(f"Step counter: {Config.STEP_COUNTER_URL}")
    print(f"Queue file: {Config.QUEUE_FILE} ({engine.pending_count} pending)")
    print(f"Sample every {Config.SAMPLE_INTERVAL}s, sync every {Config.SYNC_INTERVAL}s")
    print("=" * 60)

    yield  # Agent runs here

    # ========== SHUTDOWN ==========
    print()
    print("Shutting down...")
    await agent.shutdown()
    set_sync_agent(None)
    print("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="WalkTrack Agent",
    description="Local API of the WalkTrack step agent: sync status, manual sync, charts.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(sync_router)


@app.get("/health", summary="Health Check")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": to_iso(utcnow())
    }
