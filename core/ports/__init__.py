from core.ports.record_store import RecordStore

__all__ = ["RecordStore"]
