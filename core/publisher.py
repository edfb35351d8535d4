import asyncio
from typing import Iterable, Optional, Union

from infra.exceptions import PublishError
from infra.logger import get_logger
from infra.mq import OpenMode, QueueHandle, Session
from core.models.records import ResultRecord, WorkRecord

log = get_logger("core.publisher")

Record = Union[WorkRecord, ResultRecord]


class RecordPublisher:
    """
    Publishes records as UTF-8 JSON on one queue.

    Without a handle every publish opens its own output handle and closes it
    afterwards. ``persistent`` binds the publisher to an already open handle
    instead, which is how the worker posts replies.
    """

    def __init__(
        self,
        session: Session,
        queue_name: str,
        handle: Optional[QueueHandle] = None,
        max_concurrency: Optional[int] = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be positive")
        self.session = session
        self.queue_name = queue_name
        self._handle = handle
        self._limit = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    @classmethod
    def persistent(cls, handle: QueueHandle) -> "RecordPublisher":
        if not handle.mode.can_publish:
            raise ValueError(f"queue {handle.name!r} is not open for output")
        return cls(handle.session, handle.name, handle=handle)

    async def publish(self, record: Record) -> None:
        payload = record.to_json()
        if self._handle is not None:
            await self._handle.publish(payload)
            return

        handle = await self.session.open(self.queue_name, OpenMode.OUTPUT)
        async with handle:
            await handle.publish(payload)

    async def publish_all(self, records: Iterable[Record]) -> int:
        """
        Publish every record concurrently and return how many were sent.

        Fan-out is unbounded unless ``max_concurrency`` was given. Every
        publish runs to completion before this returns; if any failed, a
        ``PublishError`` reports how many.
        """
        records = list(records)
        outcomes = await asyncio.gather(
            *(self._publish_limited(record) for record in records),
            return_exceptions=True,
        )

        failures = []
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome

        sent = len(records) - len(failures)
        if failures:
            log.error(
                "publisher.bulk.failed",
                queue=self.queue_name,
                sent=sent,
                failed=len(failures),
                error=str(failures[0]),
                error_type=type(failures[0]).__name__,
            )
            raise PublishError(
                f"{len(failures)} of {len(records)} publishes to {self.queue_name} failed"
            ) from failures[0]

        log.info("publisher.bulk.sent", queue=self.queue_name, count=sent)
        return sent

    async def _publish_limited(self, record: Record) -> None:
        if self._limit is None:
            await self.publish(record)
            return
        async with self._limit:
            await self.publish(record)
