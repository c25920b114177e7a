"""
Step Models
===========
Pydantic models for step measurements, stored readings and aggregated buckets.

This module defines the data structures shared by the agent and the server:
- Measurement: one timestamped step count, as observed on the device
- Bucket: a fixed-width time window with a step total
- Request/response models for the REST server

WIRE FORMAT:
    A Measurement crossing the network looks like this:
    {
        "userId": "default",
        "steps": 42,
        "takenAt": "2026-01-06T03:00:00.000Z"
    }

    Python code uses the snake_case names (subject_id, count, observed_at);
    the camelCase aliases are only for JSON.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from walktrack.utils.time_utils import ensure_utc


DEFAULT_USER_ID = "default"


# =============================================================================
# MEASUREMENTS
# =============================================================================

class Measurement(BaseModel):
    """
    One step count observation.

    Created by the offline queue when the step counter reports a positive
    delta. Never mutated; removed from the pending queue only after the
    server has accepted it.

    Fields:
        subject_id: Who took the steps (wire name: userId)
        count: Steps taken in the sample window (wire name: steps)
        observed_at: End of the sample window (wire name: takenAt)
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    subject_id: str = Field(
        DEFAULT_USER_ID,
        alias="userId",
        min_length=1,
        description="User identifier",
    )
    count: int = Field(..., alias="steps", ge=0, description="Number of steps")
    observed_at: datetime = Field(..., alias="takenAt", description="When the steps were counted")

    @field_validator("observed_at")
    @classmethod
    def _normalize_observed_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    def to_wire(self) -> dict:
        """Convert to the JSON wire format (userId, steps, takenAt)."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_wire(cls, payload: dict) -> "Measurement":
        """Build a Measurement from the JSON wire format."""
        return cls.model_validate(payload)


class Bucket(BaseModel):
    """
    A fixed-width time window with the total steps observed inside it.

    Covers the half-open interval [start, end). Produced only by the
    aggregation engine and never persisted.
    """
    model_config = ConfigDict(frozen=True)

    start: datetime = Field(..., description="Inclusive start of the bucket")
    end: datetime = Field(..., description="Exclusive end of the bucket")
    total: int = Field(..., ge=0, description="Total steps in the bucket")
    subject_id: Optional[str] = Field(None, description="Set when bucketed per user")


# =============================================================================
# REQUEST MODELS - What the agent sends to the server
# =============================================================================

class CreateStepReadingRequest(BaseModel):
    """
    Request body for storing a new step reading.

    Example Request:
        POST /api/steps
        {
            "userId": "default",
            "steps": 120,
            "takenAt": "2026-01-06T03:00:00.000Z"
        }
    """
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    user_id: str = Field(
        DEFAULT_USER_ID,
        alias="userId",
        min_length=1,
        description="User identifier (defaults to 'default')",
        examples=["default"],
    )
    steps: int = Field(..., ge=0, strict=True, description="Number of steps", examples=[120])
    taken_at: datetime = Field(
        ...,
        alias="takenAt",
        description="ISO-8601 timestamp of the reading",
        examples=["2026-01-06T03:00:00.000Z"],
    )

    @field_validator("taken_at")
    @classmethod
    def _normalize_taken_at(cls, value: datetime) -> datetime:
        return ensure_utc(value)


# =============================================================================
# RESPONSE MODELS - What the server sends back
# =============================================================================

class StepReadingRecord(BaseModel):
    """A step reading as stored by the server."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Sequential record id")
    user_id: str = Field(..., alias="userId")
    steps: int = Field(..., ge=0)
    taken_at: datetime = Field(..., alias="takenAt")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    def to_measurement(self) -> Measurement:
        return Measurement(subject_id=self.user_id, count=self.steps, observed_at=self.taken_at)


class CreatedResponse(BaseModel):
    """Returned by POST /api/steps."""
    id: str
    message: str = "Step reading stored"


class StepReadingListResponse(BaseModel):
    """Returned by GET /api/steps."""
    count: int
    data: list[StepReadingRecord]


class SummaryBucket(BaseModel):
    """
    One hour of steps for the server-side summary.

    The bucket is keyed implicitly by its UTC hour/day/month/year, so the
    dashboard doesn't need to parse ``start`` to label it.
    """
    model_config = ConfigDict(populate_by_name=True)

    start: datetime
    end: datetime
    total_steps: int = Field(..., alias="totalSteps")
    hour: int = Field(..., ge=0, le=23)
    day: int = Field(..., ge=1, le=31)
    month: int = Field(..., ge=1, le=12)
    year: int


class SummaryResponse(BaseModel):
    """Returned by GET /api/steps/summary."""
    count: int
    data: list[SummaryBucket]
