"""
WalkTrack Errors
================

Everything that can go wrong at the edges of the sync engine.

Collaborators (step counter, queue file, server client) raise these so
the engine never has to know about httpx or OSError. The engine catches
them, logs them, and turns them into a SyncState. None of them is fatal.

    SourceUnavailable   - step counter didn't answer (retry next sample)
    PersistenceFailure  - couldn't write the queue file (memory stays authoritative)
    Rejected            - server answered with a non-2xx status
    TransportFailure    - server didn't answer at all
    InvalidArgument     - caller bug (e.g. a zero bucket width), never retried
"""


class WalkTrackError(Exception):
    """Base class for all WalkTrack errors."""


class SourceUnavailable(WalkTrackError):
    """The step counter could not be read."""


class PersistenceFailure(WalkTrackError):
    """The pending queue could not be written to disk."""


class Rejected(WalkTrackError):
    """The server responded, but not with a success status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code}: {body}" if body else f"HTTP {status_code}")


class TransportFailure(WalkTrackError):
    """The server could not be reached (no response)."""


class InvalidArgument(WalkTrackError, ValueError):
    """A caller passed something that can never work."""
