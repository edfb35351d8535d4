import json
from dataclasses import asdict, dataclass
from typing import Any, Dict


def _encode(data: Dict[str, Any]) -> bytes:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class WorkRecord:
    """A number to test, as produced by the record store."""
    id: Any
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> bytes:
        return _encode(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WorkRecord":
        return cls(id=data["id"], value=data["value"])


@dataclass(frozen=True)
class ResultRecord:
    """Verdict for one WorkRecord. ``id`` and ``value`` are echoed unchanged."""
    id: Any
    value: str
    prime: bool

    @classmethod
    def for_work(cls, work: WorkRecord, prime: bool) -> "ResultRecord":
        return cls(id=work.id, value=work.value, prime=prime)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> bytes:
        return _encode(self.to_dict())

    @classmethod
    def from_json(cls, payload: bytes) -> "ResultRecord":
        data = json.loads(payload.decode("utf-8"))
        return cls(id=data["id"], value=data["value"], prime=bool(data["prime"]))
