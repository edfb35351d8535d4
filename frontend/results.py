from typing import List

from core.models.records import ResultRecord
from infra.logger import get_logger
from infra.mq import OpenMode, Session

log = get_logger("frontend.results")


class ResultReader:
    """Drains verdicts from the outbound queue without waiting."""

    def __init__(self, session: Session, queue_name: str) -> None:
        self.session = session
        self.queue_name = queue_name

    async def drain(self, limit: int) -> List[ResultRecord]:
        results: List[ResultRecord] = []
        handle = await self.session.open(self.queue_name, OpenMode.INPUT)
        async with handle:
            while len(results) < limit:
                payload = await handle.receive(0)
                if payload is None:
                    break
                try:
                    results.append(ResultRecord.from_json(payload))
                except (ValueError, KeyError, TypeError) as e:
                    log.warning("results.message.skipped", error=str(e), size=len(payload))
        return results
