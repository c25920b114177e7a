"""
Step Reading Store
==================

The server's database, which is just a JSON file.

Rows look like this (the same shape the API returns):

    {
        "id": "17",
        "userId": "default",
        "steps": 42,
        "takenAt": "2026-01-06T03:00:00.000Z",
        "createdAt": "2026-01-06T03:00:01.250Z",
        "updatedAt": "2026-01-06T03:00:01.250Z"
    }

HOW IT WORKS:
------------
- The file is loaded lazily the first time anyone touches the store
- Every insert rewrites the whole file (atomic write: temp file + rename)
- Ids are sequential numbers stored as strings; after a restart we carry
  on from the highest id in the file
- A corrupt file is backed up and the store starts fresh
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Union

from walktrack.utils.time_utils import to_iso, utcnow

logger = logging.getLogger(__name__)


class StepReadingStore:
    """JSON-file backed list of step reading rows."""

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)
        self._records: list[dict] = []
        self._next_id = 1
        self._loaded = False

    # =========================================================================
    # DATABASE PERSISTENCE
    # =========================================================================

    def _ensure_loaded(self):
        if self._loaded:
            return

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        if self.file_path.exists():
            try:
                with open(self.file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)

                self._records = [
                    {
                        "id": str(item["id"]),
                        "userId": item["userId"],
                        "steps": int(item["steps"]),
                        "takenAt": item["takenAt"],
                        "createdAt": item["createdAt"],
                        "updatedAt": item["updatedAt"],
                    }
                    for item in data
                ]
                self._next_id = self._max_id(self._records) + 1
                logger.info(f"Loaded {len(self._records)} step readings from {self.file_path}")
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to read step data store, starting fresh: {e}")
                self._backup_corrupt_file()
                self._records = []
                self._next_id = 1
        else:
            logger.info(f"No existing step data found at {self.file_path}")

        self._loaded = True

    def _persist(self):
        temp_file = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(self._records, f, indent=2, ensure_ascii=False)
        temp_file.replace(self.file_path)
        logger.debug(f"Saved {len(self._records)} step readings")

    def _backup_corrupt_file(self):
        backup_path = self.file_path.with_suffix(self.file_path.suffix + ".backup")
        try:
            shutil.copy2(self.file_path, backup_path)
            logger.warning(f"Corrupted step data backed up to {backup_path}")
        except OSError as backup_err:
            logger.error(f"Failed to backup corrupted step data: {backup_err}")

    @staticmethod
    def _max_id(records: list[dict]) -> int:
        highest = 0
        for record in records:
            try:
                highest = max(highest, int(record["id"]))
            except (TypeError, ValueError):
                continue
        return highest

    # =========================================================================
    # ROWS
    # =========================================================================

    def insert(self, user_id: str, steps: int, taken_at: str) -> dict:
        """
        Store a new reading and return the full row.

        Args:
            user_id: Who took the steps
            steps: How many
            taken_at: ISO-8601 timestamp of the reading
        """
        self._ensure_loaded()
        now = to_iso(utcnow())
        record = {
            "id": str(self._next_id),
            "userId": user_id,
            "steps": steps,
            "takenAt": taken_at,
            "createdAt": now,
            "updatedAt": now,
        }
        self._records.append(record)
        try:
            self._persist()
        except OSError as e:
            # Memory must not hold a row the file doesn't
            self._records.pop()
            logger.error(f"Failed to save step reading for {user_id}: {e}")
            raise
        self._next_id += 1
        return dict(record)

    def list_all(self) -> list[dict]:
        """All rows, in insertion order (copies)."""
        self._ensure_loaded()
        return [dict(record) for record in self._records]

    def replace_all(self, records: list[dict]):
        """Swap the whole table (used for imports and test setup)."""
        self._ensure_loaded()
        self._records = [dict(record) for record in records]
        self._next_id = self._max_id(self._records) + 1
        self._persist()
