"""
Record store interface.

All record store implementations (memory, redis) must implement this
interface. Records are keyed ``<prefix>:<id>``.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from core.models.records import WorkRecord


class RecordStore(ABC):
    """
    Abstract base class for record stores.
    """

    def __init__(self, prefix: str = "record") -> None:
        self.prefix = prefix

    def key(self, record_id) -> str:
        return f"{self.prefix}:{record_id}"

    @abstractmethod
    async def get(self, record_id) -> Optional[WorkRecord]:
        """Get a record by id, None when absent."""
        pass

    @abstractmethod
    async def set(self, record: WorkRecord) -> None:
        """Store a record under its id."""
        pass

    @abstractmethod
    async def list_all(self) -> List[WorkRecord]:
        """Get every stored record."""
        pass

    @abstractmethod
    async def flush(self) -> None:
        """Remove every record."""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check the store is reachable."""
        pass

    async def populate(self, records: Iterable[WorkRecord]) -> int:
        count = 0
        for record in records:
            await self.set(record)
            count += 1
        return count

    async def close(self) -> None:
        pass
