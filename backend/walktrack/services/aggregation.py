"""
Aggregation Service
===================

Turns a pile of step measurements into time buckets.

HOW BUCKETING WORKS:
-------------------
Every measurement lands in the bucket

    start = EPOCH + floor((observed_at - EPOCH) / width) * width

so bucket boundaries are anchored to the Unix epoch, not to whatever
range you asked for. Ask for "last hour" now and again in five minutes
and the 5-minute buckets still line up.

Buckets are half-open: [start, start + width). A measurement exactly on
a boundary belongs to the bucket that starts there.

Empty buckets are NOT generated. If nobody walked between 02:00 and 03:00
there's simply no bucket for it; zero-filling is the chart's job.

USED BY:
-------
- The server's /api/steps/summary endpoint (hourly, per user)
- The agent's chart endpoint (dashboard ranges 1h/6h/1d/7d)
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional, Union

from walktrack.models import Bucket, ChartPoint, ChartResponse, Measurement, SummaryBucket
from walktrack.services.errors import InvalidArgument
from walktrack.utils.time_utils import EPOCH, ensure_utc


TimeRange = tuple[Optional[datetime], Optional[datetime]]


# =============================================================================
# DASHBOARD RANGES
# =============================================================================

@dataclass(frozen=True)
class RangeConfig:
    label: str
    duration: timedelta
    bucket: timedelta


RANGE_CONFIG: dict[str, RangeConfig] = {
    "1h": RangeConfig("Last hour", timedelta(hours=1), timedelta(minutes=5)),
    "6h": RangeConfig("Last 6 hours", timedelta(hours=6), timedelta(minutes=15)),
    "1d": RangeConfig("Last day", timedelta(days=1), timedelta(hours=1)),
    "7d": RangeConfig("Last 7 days", timedelta(days=7), timedelta(days=1)),
}


def get_range_config(range_key: str) -> RangeConfig:
    """Look up a dashboard range, e.g. "1d"."""
    try:
        return RANGE_CONFIG[range_key]
    except KeyError:
        raise InvalidArgument(
            f"Unknown range '{range_key}'. Expected one of: {', '.join(RANGE_CONFIG)}"
        ) from None


# =============================================================================
# CORE AGGREGATION
# =============================================================================

def _as_width(bucket_width: Union[timedelta, int, float]) -> timedelta:
    if isinstance(bucket_width, timedelta):
        width = bucket_width
    elif isinstance(bucket_width, (int, float)) and not isinstance(bucket_width, bool):
        width = timedelta(seconds=bucket_width)
    else:
        raise InvalidArgument(f"Bucket width must be a duration, got {bucket_width!r}")

    if width <= timedelta(0):
        raise InvalidArgument(f"Bucket width must be positive, got {width}")
    return width


def bucket_start(observed_at: datetime, bucket_width: Union[timedelta, int, float]) -> datetime:
    """Start of the epoch-anchored bucket containing ``observed_at``."""
    width = _as_width(bucket_width)
    offset = ensure_utc(observed_at) - EPOCH
    return EPOCH + (offset // width) * width


def aggregate(
    measurements: Iterable[Measurement],
    bucket_width: Union[timedelta, int, float],
    time_range: Optional[TimeRange] = None,
    by_subject: bool = False,
) -> list[Bucket]:
    """
    Group measurements into fixed-width time buckets.

    Args:
        measurements: Any order, any mix of users
        bucket_width: A timedelta (or seconds). Must be > 0.
        time_range: Optional half-open (from, to); either end may be None
        by_subject: Keep one bucket per (user, start) instead of per start

    Returns:
        Buckets sorted by start (then user), empty windows omitted.

    Raises:
        InvalidArgument: bucket_width is zero, negative or not a duration
    """
    width = _as_width(bucket_width)

    range_from, range_to = time_range if time_range is not None else (None, None)
    if range_from is not None:
        range_from = ensure_utc(range_from)
    if range_to is not None:
        range_to = ensure_utc(range_to)

    totals: dict[tuple[str, datetime], int] = {}
    for measurement in measurements:
        observed_at = ensure_utc(measurement.observed_at)
        if range_from is not None and observed_at < range_from:
            continue
        if range_to is not None and observed_at >= range_to:
            continue

        start = EPOCH + ((observed_at - EPOCH) // width) * width
        subject = measurement.subject_id if by_subject else ""
        key = (subject, start)
        totals[key] = totals.get(key, 0) + measurement.count

    ordered = sorted(totals.items(), key=lambda item: (item[0][1], item[0][0]))
    return [
        Bucket(
            start=start,
            end=start + width,
            total=total,
            subject_id=subject if by_subject else None,
        )
        for (subject, start), total in ordered
    ]


# =============================================================================
# SERVER SUMMARY
# =============================================================================

def summarise_hourly(measurements: Iterable[Measurement]) -> list[SummaryBucket]:
    """
    Hourly per-user totals, labelled with their UTC hour/day/month/year.
    """
    buckets = aggregate(measurements, timedelta(hours=1), by_subject=True)
    return [
        SummaryBucket(
            start=bucket.start,
            end=bucket.end,
            total_steps=bucket.total,
            hour=bucket.start.hour,
            day=bucket.start.day,
            month=bucket.start.month,
            year=bucket.start.year,
        )
        for bucket in buckets
    ]


# =============================================================================
# DASHBOARD CHART
# =============================================================================

def chart_points(measurements: Iterable[Measurement], range_key: str, now: datetime) -> ChartResponse:
    """
    Build the dashboard chart for one range, ending at ``now``.

    Only measurements inside [now - duration, now] are counted.
    """
    config = get_range_config(range_key)
    now = ensure_utc(now)
    window = (now - config.duration, now + timedelta(microseconds=1))

    buckets = aggregate(measurements, config.bucket, time_range=window)
    points = [ChartPoint(x=bucket.start, y=bucket.total) for bucket in buckets]

    total_steps = sum(point.y for point in points)
    # Round half up
    average = math.floor(total_steps / len(points) + 0.5) if points else 0
    suggested_max = max(point.y for point in points) + 10 if points else None

    return ChartResponse(
        range=range_key,
        label=config.label,
        bucket_seconds=int(config.bucket.total_seconds()),
        points=points,
        total_steps=total_steps,
        average_per_bucket=average,
        suggested_max=suggested_max,
    )
