"""
Insert-only persistence for assessment snapshots.

Snapshots are an audit trail: they are appended and never updated or
deleted. Writes go through a single lock per store so concurrent sessions
append whole records.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Union

from app.services.risk_assessment.models import AssessmentSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore(ABC):
    @abstractmethod
    async def insert(self, snapshot: AssessmentSnapshot) -> str:
        """Persist a snapshot and return its id."""

    @abstractmethod
    async def list_snapshots(self) -> List[AssessmentSnapshot]:
        """All snapshots in insertion order."""


class InMemorySnapshotStore(SnapshotStore):
    def __init__(self):
        self._snapshots: List[AssessmentSnapshot] = []
        self._lock = asyncio.Lock()

    async def insert(self, snapshot: AssessmentSnapshot) -> str:
        async with self._lock:
            self._snapshots.append(snapshot.model_copy(deep=True))
        return snapshot.id

    async def list_snapshots(self) -> List[AssessmentSnapshot]:
        return [s.model_copy(deep=True) for s in self._snapshots]


class JsonLinesSnapshotStore(SnapshotStore):
    """One JSON document per line, appended. File I/O runs in a worker thread."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def insert(self, snapshot: AssessmentSnapshot) -> str:
        line = json.dumps(snapshot.model_dump(mode="json"))
        async with self._lock:
            await asyncio.to_thread(self._append_line, line)
        logger.info("Snapshot recorded", extra={"snapshot_id": snapshot.id, "path": str(self.path)})
        return snapshot.id

    async def list_snapshots(self) -> List[AssessmentSnapshot]:
        return await asyncio.to_thread(self._read_all)

    def _append_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line + "\n")

    def _read_all(self) -> List[AssessmentSnapshot]:
        if not self.path.exists():
            return []
        snapshots = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    snapshots.append(AssessmentSnapshot.model_validate_json(line))
        return snapshots
