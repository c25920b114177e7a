"""
Step Counter Service
====================

Reads step counts from a pedometer on the local network.

HOW THE STEP COUNTER WORKS:
--------------------------
The device serves step counts over plain HTTP. Ask it for a window and
it tells you how many steps were taken inside it:

    GET http://<host>/steps?from=2026-01-06T03:00:00.000Z&to=2026-01-06T03:00:05.000Z

    {"steps": 12}

No password needed - as long as you're on the same network as the device.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from walktrack.services.errors import SourceUnavailable
from walktrack.utils.time_utils import to_iso

logger = logging.getLogger(__name__)


class StepCounterService:
    """
    Sample source backed by the step counter's HTTP endpoint.

    Every problem (device off, wrong address, garbage response) comes out
    as SourceUnavailable. The queue engine retries on the next sample.
    """

    def __init__(
        self,
        base_url: str,
        request_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Set up the service.

        Args:
            base_url: The device's address (like "http://192.168.1.120")
            request_timeout: How long to wait for the device (seconds)
            transport: Custom httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=request_timeout,
            transport=transport,
        )

    async def read_count(self, start: datetime, end: datetime) -> int:
        """
        Steps taken in [start, end).

        Raises:
            SourceUnavailable: The device didn't give us a usable answer
        """
        params = {"from": to_iso(start), "to": to_iso(end)}
        try:
            response = await self.http_client.get("/steps", params=params)
            response.raise_for_status()
            steps = int(response.json()["steps"])
        except httpx.TimeoutException as e:
            raise SourceUnavailable(f"Step counter at {self.base_url} timed out") from e
        except httpx.HTTPStatusError as e:
            raise SourceUnavailable(f"Step counter returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"Cannot connect to step counter at {self.base_url}: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise SourceUnavailable(f"Unexpected step counter response: {e}") from e

        if steps < 0:
            logger.warning(f"Step counter reported {steps} steps, treating as 0")
            return 0
        return steps

    async def close(self):
        """Clean up when we're done."""
        await self.http_client.aclose()
