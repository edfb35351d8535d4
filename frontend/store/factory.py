"""
Record store factory.

Supports memory and Redis stores.
"""

from typing import Optional

from core.ports.record_store import RecordStore
from infra.logger import get_logger
from frontend.config import StoreConfig, store as store_config
from frontend.store.memory import MemoryRecordStore
from frontend.store.redis_store import RedisRecordStore

log = get_logger("frontend.store.factory")


class RecordStoreFactory:
    """Factory for creating record store instances."""

    @staticmethod
    def create(config: Optional[StoreConfig] = None) -> RecordStore:
        config = config or store_config
        log.info("store.factory.config", **config.to_dict_public())
        store_type = config.STORE_TYPE.lower() if isinstance(config.STORE_TYPE, str) else config.STORE_TYPE

        match store_type:
            case "redis":
                return RedisRecordStore(
                    host=config.REDIS_HOST,
                    port=config.REDIS_PORT,
                    password=config.REDIS_PASSWORD,
                    db=config.REDIS_DB,
                    prefix=config.RECORD_PREFIX,
                )
            case None | "mem" | "memory" | "in-memory":
                return MemoryRecordStore(prefix=config.RECORD_PREFIX)
            case _:
                raise ValueError(
                    f"Unsupported store type: {config.STORE_TYPE!r}. "
                    f"Supported values: 'redis', 'mem', 'memory', 'in-memory', None"
                )


_store_instance: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Get or create the record store instance."""
    global _store_instance
    if _store_instance is None:
        _store_instance = RecordStoreFactory.create()
    return _store_instance
