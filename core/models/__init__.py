from core.models.records import ResultRecord, WorkRecord

__all__ = ["ResultRecord", "WorkRecord"]
