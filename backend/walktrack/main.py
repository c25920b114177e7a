"""
WalkTrack - Server API
======================
FastAPI application that stores step readings and serves them back.

ARCHITECTURE:
    [Step Agent] --POST /api/steps--> [This Server] ---> [step-readings.json]
                                            ^
                                            |
    [Dashboard] --GET /api/steps(/summary)--+

HOW TO RUN:
    # Install dependencies
    pip install -e .

    # Copy environment config
    cp backend/env.example.txt .env
    # Edit .env with your settings

    # Run the server
    uvicorn walktrack.main:app --reload --port 4000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:4000/docs
    - ReDoc: http://localhost:4000/redoc
"""

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from walktrack.routers import set_step_store, steps_router
from walktrack.services import StepReadingStore
from walktrack.utils.time_utils import to_iso, utcnow


# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

class Config:
    """
    Server configuration loaded from environment variables.

    Environment Variables:
        PORT: Port to listen on (default: 4000)
        DATA_FILE: Where step readings are stored (default: data/step-readings.json)
        FRONTEND_URL: URL of the dashboard for CORS
    """

    PORT = int(os.getenv("PORT", "4000"))

    DATA_FILE = os.getenv("DATA_FILE", "data/step-readings.json")

    # Frontend URL for CORS
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Allowed CORS origins
    CORS_ORIGINS = [
        FRONTEND_URL,
        "http://localhost:5173",    # Vite dev server
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Open the step reading store
        2. Inject it into the router
    """
    # ========== STARTUP ==========
    print("=" * 60)
    print("WALKTRACK SERVER - Starting")
    print("=" * 60)

    store = StepReadingStore(Config.DATA_FILE)
    set_step_store(store)

    print(f"Data file: {Config.DATA_FILE}")
    print(f"CORS origins: {len(Config.CORS_ORIGINS)} configured")
    print(f"API Documentation: http://localhost:{Config.PORT}/docs")
    print("=" * 60)

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    print()
    print("Shutting down...")
    set_step_store(None)
    print("Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="WalkTrack API",
    description="""
## Overview

Stores step readings uploaded by the WalkTrack agent and serves them to the dashboard.

## Endpoints

| Method | Path | What it does |
|--------|------|--------------|
| POST | /api/steps | Store a reading `{userId, steps, takenAt}` |
| GET | /api/steps | List readings (`userId`, `from`, `to`, `limit`) |
| GET | /api/steps/summary | Hourly totals (`userId`, `from`, `to`) |
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Bad input is a 400 with a list of what was wrong."""
    issues = [
        {
            "path": [str(part) for part in error.get("loc", ())],
            "message": error.get("msg", ""),
            "code": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation error", "issues": issues})


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    """Anything else is a 500 without the stack trace."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Unexpected error"})


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(steps_router)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get(
    "/",
    summary="API Information",
    description="Get basic API information and available endpoints."
)
async def root():
    """Root endpoint with API overview."""
    return {
        "name": "WalkTrack API",
        "version": "1.0.0",
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        },
        "endpoints": {
            "create": "POST /api/steps",
            "list": "GET /api/steps",
            "summary": "GET /api/steps/summary",
            "health": "GET /health"
        }
    }


@app.get(
    "/health",
    summary="Health Check",
    description="Check if the server is running."
)
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": to_iso(utcnow())
    }
