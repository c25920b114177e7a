"""
Steps API Client
================

The agent's way of talking to the WalkTrack server.

WHAT THIS DOES:
--------------
1. Delivers one pending measurement at a time (POST /api/steps)
2. Checks whether the server is reachable (GET /health)
3. Pulls stored readings back for charting (GET /api/steps)

All httpx errors are turned into Rejected / TransportFailure here, so
nothing above this layer has to know we use HTTP.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx
from pydantic import ValidationError

from walktrack.models import Measurement
from walktrack.services.errors import Rejected, TransportFailure
from walktrack.utils.time_utils import to_iso

logger = logging.getLogger(__name__)


class StepsApiClient:
    """
    HTTP client for the WalkTrack server.

    HOW TO USE:
    ----------
    client = StepsApiClient("http://localhost:4000")

    if await client.is_connected():
        await client.submit(measurement)   # raises Rejected / TransportFailure

    readings = await client.fetch_step_readings("default", start, end)
    await client.close()
    """

    def __init__(
        self,
        base_url: str,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Set up the client.

        Args:
            base_url: Where the server lives (like "http://localhost:4000")
            request_timeout: Seconds to wait for any single request
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        # One client for everything so connections get reused
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=request_timeout,
            transport=transport,
        )

    async def submit(self, measurement: Measurement) -> None:
        """
        Deliver one measurement.

        Raises:
            Rejected: The server answered with a non-2xx status
            TransportFailure: No answer (connection refused, timeout, ...)
        """
        try:
            response = await self.http_client.post("/api/steps", json=measurement.to_wire())
        except httpx.TimeoutException as e:
            raise TransportFailure(f"Request to {self.base_url} timed out") from e
        except httpx.TransportError as e:
            raise TransportFailure(f"Cannot connect to {self.base_url}: {e}") from e

        if not response.is_success:
            raise Rejected(response.status_code, response.text[:500])

        logger.debug(f"Delivered {measurement.count} steps taken at {to_iso(measurement.observed_at)}")

    async def is_connected(self) -> bool:
        """True if the server answers its health check."""
        try:
            response = await self.http_client.get("/health")
        except httpx.HTTPError as e:
            logger.debug(f"Health check against {self.base_url} failed: {e}")
            return False
        return response.is_success

    async def fetch_step_readings(
        self,
        user_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> list[Measurement]:
        """
        Get stored readings for a user, oldest first.

        Raises:
            Rejected: The server answered with a non-2xx status, or with
                a body we can't read
            TransportFailure: No answer
        """
        params = {"userId": user_id}
        if start is not None:
            params["from"] = to_iso(start)
        if end is not None:
            params["to"] = to_iso(end)
        if limit:
            params["limit"] = str(limit)

        try:
            response = await self.http_client.get("/api/steps", params=params)
        except httpx.TransportError as e:
            raise TransportFailure(f"Failed to load steps from {self.base_url}: {e}") from e

        if not response.is_success:
            raise Rejected(response.status_code, response.text[:500])

        try:
            payload = response.json()
            return [Measurement.from_wire(row) for row in payload.get("data", [])]
        except (ValueError, AttributeError, ValidationError) as e:
            raise Rejected(response.status_code, f"Unreadable step readings: {e}"[:500]) from e

    async def close(self):
        """Clean up when we're done."""
        await self.http_client.aclose()
