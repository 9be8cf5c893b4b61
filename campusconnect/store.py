"""JSON file persistence with one array of records per entity."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger("campusconnect.store")

Record = Dict[str, Any]


class Entity(str, Enum):
    USERS = "users"
    REQUESTS = "requests"
    FEEDBACK = "feedback"
    ANNOUNCEMENTS = "announcements"

    @property
    def filename(self) -> str:
        return f"{self.value}.json"


class RecordStore:
    """Reads and replaces whole entity files.

    ``read`` never raises: unreadable or malformed files are logged and treated
    as empty. ``write`` replaces the file atomically and reports failure through
    its return value. Callers doing read-modify-write hold :meth:`locked` for the
    entity across both calls.
    """

    def __init__(self, data_dir: Path) -> None:
        self._data_dir = data_dir
        self._locks: Dict[Entity, threading.RLock] = {entity: threading.RLock() for entity in Entity}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, entity: Entity) -> Path:
        return self._data_dir / entity.filename

    def initialize(self) -> None:
        """Create the data directory and an empty array file for each entity."""

        self._data_dir.mkdir(parents=True, exist_ok=True)
        for entity in Entity:
            with self.locked(entity):
                if not self.path_for(entity).exists():
                    if not self.write(entity, []):
                        raise OSError(f"Unable to initialise {self.path_for(entity)}")
                    logger.info("Created empty %s store at %s", entity.value, self.path_for(entity))

    @contextmanager
    def locked(self, entity: Entity) -> Iterator[None]:
        with self._locks[entity]:
            yield

    def read(self, entity: Entity) -> List[Record]:
        path = self.path_for(entity)
        with self.locked(entity):
            try:
                with path.open("r", encoding="utf-8") as handle:
                    data = json.load(handle)
            except FileNotFoundError:
                return []
            except (OSError, ValueError) as exc:
                logger.error("Error reading %s: %s", path, exc)
                return []

        if not isinstance(data, list):
            logger.error("Error reading %s: expected a JSON array, found %s", path, type(data).__name__)
            return []
        records = [record for record in data if isinstance(record, dict)]
        skipped = len(data) - len(records)
        if skipped:
            logger.warning(
                "Skipping %d non-object element(s) in %s; they will be dropped on the next write", skipped, path
            )
        return records

    def write(self, entity: Entity, records: List[Record]) -> bool:
        path = self.path_for(entity)
        with self.locked(entity):
            tmp_name: Optional[str] = None
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    "w",
                    encoding="utf-8",
                    dir=path.parent,
                    prefix=f".{entity.value}.",
                    suffix=".tmp",
                    delete=False,
                ) as handle:
                    tmp_name = handle.name
                    json.dump(records, handle, indent=2)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, path)
            except (OSError, TypeError, ValueError) as exc:
                logger.error("Error writing %s: %s", path, exc)
                if tmp_name is not None:
                    try:
                        os.unlink(tmp_name)
                    except FileNotFoundError:
                        pass
                return False
        return True


__all__ = ["Entity", "Record", "RecordStore"]
