"""
Manual end-to-end check against a running WalkTrack server.

Usage:
    uvicorn walktrack.main:app --port 4000
    python backend/scripts/smoke_check.py [base_url]
"""

import asyncio
import sys
from datetime import datetime, timezone

import httpx

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:4000"


async def smoke_check():
    async with httpx.AsyncClient(base_url=BASE_URL, timeout=10.0) as client:
        print("Checking health...")
        try:
            response = await client.get("/health")
            print(f"Health Status: {response.status_code}")
            print(f"Body: {response.text}")
        except httpx.HTTPError as e:
            print(f"Health Error: {e}")
            return

        print("\nPosting a sample reading...")
        reading = {
            "userId": "default",
            "steps": 42,
            "takenAt": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        }
        try:
            response = await client.post("/api/steps", json=reading)
            print(f"POST Status: {response.status_code}")
            print(f"Body: {response.text}")
        except httpx.HTTPError as e:
            print(f"POST Error: {e}")

        print("\nFetching readings...")
        try:
            response = await client.get("/api/steps", params={"userId": "default", "limit": 5})
            print(f"GET Status: {response.status_code}")
            payload = response.json()
            print(f"Count: {payload.get('count')}")
            for row in payload.get("data", []):
                print(f"  #{row['id']}: {row['steps']} steps at {row['takenAt']}")
        except (httpx.HTTPError, ValueError) as e:
            print(f"GET Error: {e}")


if __name__ == "__main__":
    asyncio.run(smoke_check())
