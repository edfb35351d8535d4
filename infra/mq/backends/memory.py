"""
Memory broker backend.

In-process queues with the same contract as a real queue manager. Fast and
simple for development, tests and single-process runs.
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from infra.exceptions import (
    AuthorizationError,
    PublishError,
    QueueManagerUnknownError,
    QueueOpenError,
    ReceiveFault,
    ServiceUnavailableError,
)
from infra.mq.backends.base import BrokerBackend
from infra.mq.types import BrokerTarget, Credentials, OpenMode

DEFAULT_QUEUES = ("DEV.QUEUE.1", "DEV.QUEUE.2")


@dataclass
class MemoryConnection:
    id: int
    queue_manager: str
    user: str
    open: bool = True


@dataclass
class MemoryQueue:
    connection: MemoryConnection
    name: str
    mode: OpenMode
    open: bool = True


class MemoryBroker(BrokerBackend):
    """
    In-process queue manager.

    ``users`` maps user to password; None accepts any credentials. Setting
    ``available`` to False makes new connections fail as unreachable.
    """

    name = "memory"

    def __init__(
        self,
        queue_manager: str = "QM1",
        queues: Iterable[str] = DEFAULT_QUEUES,
        users: Optional[Dict[str, str]] = None,
        auto_create: bool = False,
    ) -> None:
        self.queue_manager = queue_manager
        self.users = users
        self.auto_create = auto_create
        self.available = True
        self._queues: Dict[str, asyncio.Queue] = {name: asyncio.Queue() for name in queues}
        self._ids = itertools.count(1)

    # === Administration ===

    def declare_queue(self, name: str) -> None:
        self._queues.setdefault(name, asyncio.Queue())

    def depth(self, name: str) -> int:
        return self._queues[name].qsize()

    # === Connections ===

    async def connect(self, target: BrokerTarget, credentials: Credentials) -> MemoryConnection:
        await asyncio.sleep(0)
        if not self.available:
            raise ServiceUnavailableError(f"{target.conn_name}: connection refused")
        if target.queue_manager != self.queue_manager:
            raise QueueManagerUnknownError(
                f"queue manager {target.queue_manager!r} not found at {target.conn_name}"
            )
        if self.users is not None and self.users.get(credentials.user) != credentials.password:
            raise AuthorizationError(f"user {credentials.user!r} not authorized")
        return MemoryConnection(
            id=next(self._ids),
            queue_manager=self.queue_manager,
            user=credentials.user,
        )

    async def disconnect(self, connection: MemoryConnection) -> None:
        connection.open = False

    # === Queues ===

    async def open_queue(self, connection: MemoryConnection, queue_name: str, mode: OpenMode) -> MemoryQueue:
        await asyncio.sleep(0)
        if not connection.open:
            raise QueueOpenError(f"connection {connection.id} is closed")
        if queue_name not in self._queues:
            if not self.auto_create:
                raise QueueOpenError(f"unknown queue {queue_name!r}")
            self.declare_queue(queue_name)
        return MemoryQueue(connection=connection, name=queue_name, mode=mode)

    async def close_queue(self, queue: MemoryQueue) -> None:
        queue.open = False

    # === Messages ===

    async def put(self, queue: MemoryQueue, payload: bytes) -> None:
        if not (queue.open and queue.connection.open):
            raise PublishError(f"queue {queue.name!r} is not open")
        if not queue.mode.can_publish:
            raise PublishError(f"queue {queue.name!r} not opened for output")
        self._queues[queue.name].put_nowait(bytes(payload))
        await asyncio.sleep(0)

    async def get(self, queue: MemoryQueue, wait_ms: int) -> Optional[bytes]:
        if not (queue.open and queue.connection.open):
            raise ReceiveFault(f"queue {queue.name!r} is not open")
        if not queue.mode.can_receive:
            raise ReceiveFault(f"queue {queue.name!r} not opened for input")

        messages = self._queues[queue.name]
        if wait_ms <= 0:
            await asyncio.sleep(0)
            try:
                return messages.get_nowait()
            except asyncio.QueueEmpty:
                return None
        try:
            return await asyncio.wait_for(messages.get(), wait_ms / 1000)
        except asyncio.TimeoutError:
            return None
