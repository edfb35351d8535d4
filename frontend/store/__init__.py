"""
Record store adapters.

Provides implementations of ``core.ports.RecordStore``.
"""

from frontend.store.factory import RecordStoreFactory, get_record_store
from frontend.store.memory import MemoryRecordStore
from frontend.store.redis_store import RedisRecordStore

__all__ = [
    "MemoryRecordStore",
    "RecordStoreFactory",
    "RedisRecordStore",
    "get_record_store",
]
