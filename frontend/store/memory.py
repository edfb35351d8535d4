"""
Memory record store.

In-process dictionary. Fast and simple for development and tests.
"""

import asyncio
from typing import Dict, List, Optional

from core.models.records import WorkRecord
from core.ports.record_store import RecordStore


class MemoryRecordStore(RecordStore):
    def __init__(self, prefix: str = "record") -> None:
        super().__init__(prefix)
        self._records: Dict[str, WorkRecord] = {}
        self._lock = asyncio.Lock()

    async def get(self, record_id) -> Optional[WorkRecord]:
        async with self._lock:
            return self._records.get(self.key(record_id))

    async def set(self, record: WorkRecord) -> None:
        async with self._lock:
            self._records[self.key(record.id)] = record

    async def list_all(self) -> List[WorkRecord]:
        async with self._lock:
            return list(self._records.values())

    async def flush(self) -> None:
        async with self._lock:
            self._records.clear()

    async def ping(self) -> bool:
        return True
