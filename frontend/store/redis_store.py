"""
Redis record store.

Each record is a JSON string under ``<prefix>:<id>``.
"""

import json
from typing import Iterable, List, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from core.models.records import WorkRecord
from core.ports.record_store import RecordStore
from infra.logger import get_logger

log = get_logger("frontend.store.redis")


class RedisRecordStore(RecordStore):
    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        password: Optional[str] = None,
        db: int = 0,
        prefix: str = "record",
        client: Optional[aioredis.Redis] = None,
    ) -> None:
        super().__init__(prefix)
        self._client = client or aioredis.Redis(
            host=host,
            port=port,
            password=password or None,
            db=db,
            decode_responses=True,
        )

    async def get(self, record_id) -> Optional[WorkRecord]:
        raw = await self._client.get(self.key(record_id))
        return WorkRecord.from_dict(json.loads(raw)) if raw else None

    async def set(self, record: WorkRecord) -> None:
        await self._client.set(self.key(record.id), json.dumps(record.to_dict()))

    async def populate(self, records: Iterable[WorkRecord]) -> int:
        count = 0
        async with self._client.pipeline(transaction=False) as pipe:
            for record in records:
                pipe.set(self.key(record.id), json.dumps(record.to_dict()))
                count += 1
            await pipe.execute()
        return count

    async def list_all(self) -> List[WorkRecord]:
        records = []
        async for key in self._client.scan_iter(match=f"{self.prefix}:*"):
            raw = await self._client.get(key)
            if raw:
                records.append(WorkRecord.from_dict(json.loads(raw)))
        return records

    async def flush(self) -> None:
        keys = [key async for key in self._client.scan_iter(match=f"{self.prefix}:*")]
        if keys:
            await self._client.delete(*keys)
        log.info("store.redis.flushed", prefix=self.prefix, deleted=len(keys))

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError as e:
            log.warning("store.redis.ping_failed", error=str(e), error_type=type(e).__name__)
            return False

    async def close(self) -> None:
        await self._client.aclose()
