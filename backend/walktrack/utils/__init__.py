"""
Utility modules for the WalkTrack backend.
"""

from walktrack.utils.time_utils import (
    EPOCH,
    utcnow,
    ensure_utc,
    to_iso,
    start_of_day,
)

__all__ = [
    "EPOCH",
    "utcnow",
    "ensure_utc",
    "to_iso",
    "start_of_day",
]
