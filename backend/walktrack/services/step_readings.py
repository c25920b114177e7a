"""
Step Readings
=============

What the server does with step rows: store them, filter them, and
summarise them per hour.
"""

from datetime import datetime
from typing import Optional

from walktrack.models import CreateStepReadingRequest, StepReadingRecord, SummaryBucket
from walktrack.services.aggregation import summarise_hourly
from walktrack.services.step_store import StepReadingStore
from walktrack.utils.time_utils import ensure_utc, to_iso


def create_step_reading(store: StepReadingStore, request: CreateStepReadingRequest) -> StepReadingRecord:
    """Store a validated reading and return the stored record."""
    row = store.insert(
        user_id=request.user_id,
        steps=request.steps,
        taken_at=to_iso(request.taken_at),
    )
    return StepReadingRecord.model_validate(row)


def query_step_readings(
    store: StepReadingStore,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> list[StepReadingRecord]:
    """
    Readings for one user, oldest first.

    Both ``start`` and ``end`` are inclusive. ``limit`` keeps the oldest N.
    """
    start = ensure_utc(start) if start is not None else None
    end = ensure_utc(end) if end is not None else None

    records = []
    for row in store.list_all():
        if row["userId"] != user_id:
            continue
        record = StepReadingRecord.model_validate(row)
        if start is not None and record.taken_at < start:
            continue
        if end is not None and record.taken_at > end:
            continue
        records.append(record)

    records.sort(key=lambda record: record.taken_at)

    if limit is not None:
        records = records[:limit]
    return records


def summarise_step_readings(
    store: StepReadingStore,
    user_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[SummaryBucket]:
    """Hourly totals for one user over the same filter as the list endpoint."""
    records = query_step_readings(store, user_id, start=start, end=end)
    return summarise_hourly(record.to_measurement() for record in records)
