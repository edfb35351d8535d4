import asyncio
import time
from typing import Any, Dict, Optional


class HealthFlag:
    """
    Readiness of one long-running component.

    Not-ready carries a short reason (the component's current state) so that
    a health endpoint can say why, not only whether.
    """

    def __init__(self, reason: str = "starting") -> None:
        self._ready = asyncio.Event()
        self._reason: Optional[str] = reason
        self._since = time.monotonic()

    def set_ready(self) -> None:
        self._ready.set()
        self._reason = None
        self._since = time.monotonic()

    def set_not_ready(self, reason: str = "stopped") -> None:
        self._ready.clear()
        self._reason = reason
        self._since = time.monotonic()

    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def snapshot(self) -> Dict[str, Any]:
        return {
            "ready": self.is_ready(),
            "reason": self._reason,
            "for_seconds": round(time.monotonic() - self._since, 3),
        }

    async def wait_ready(self, timeout: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout)
            return True
        except asyncio.TimeoutError:
            return False
