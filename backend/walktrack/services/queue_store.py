"""
Queue Store
===========

Keeps a copy of the agent's pending queue on disk so it survives restarts.

The file is a plain JSON array in the same shape the server accepts:

    [
        {"userId": "default", "steps": 42, "takenAt": "2026-01-06T03:00:00.000Z"},
        ...
    ]

It is read once at startup and then only ever overwritten.
"""

import asyncio
import json
import logging
import shutil
from pathlib import Path
from typing import Sequence, Union

from pydantic import ValidationError

from walktrack.models import Measurement
from walktrack.services.errors import PersistenceFailure

logger = logging.getLogger(__name__)


class JsonFileQueueStore:
    """
    File-backed slot for the pending queue.

    Writes are atomic (temp file + rename), so a crash mid-write leaves
    the previous queue intact.
    """

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)

    async def load(self) -> list[Measurement]:
        """Read the saved queue; missing or corrupt files load as empty."""
        return await asyncio.to_thread(self._read)

    async def save(self, queue: Sequence[Measurement]) -> None:
        """Replace the saved queue. Raises PersistenceFailure on disk errors."""
        payload = [measurement.to_wire() for measurement in queue]
        await asyncio.to_thread(self._write, payload)

    def _read(self) -> list[Measurement]:
        if not self.file_path.exists():
            logger.info(f"No pending queue found at {self.file_path}")
            return []

        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error parsing pending queue JSON: {e}")
            self._backup_corrupt_file()
            return []
        except OSError as e:
            logger.error(f"Error reading pending queue: {e}")
            return []

        entries = []
        for index, item in enumerate(data):
            try:
                entries.append(Measurement.from_wire(item))
            except ValidationError as e:
                logger.error(f"Skipping invalid pending entry #{index}: {e}")
        return entries

    def _write(self, payload: list[dict]) -> None:
        temp_file = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.file_path)
        except OSError as e:
            raise PersistenceFailure(f"Could not write {self.file_path}: {e}") from e

    def _backup_corrupt_file(self):
        backup_path = self.file_path.with_suffix(self.file_path.suffix + ".backup")
        try:
            shutil.copy2(self.file_path, backup_path)
            logger.warning(f"Corrupted pending queue backed up to {backup_path}")
        except OSError as backup_err:
            logger.error(f"Failed to backup corrupted pending queue: {backup_err}")
