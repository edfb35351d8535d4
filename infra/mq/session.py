"""
Broker sessions and queue handles.

``ConnectionManager.connect`` is one shot: it either returns a live
``Session`` or raises the underlying ``BrokerConnectionError``. Retrying is the
caller's business.
"""

from typing import Any, List, Optional

from infra.exceptions import (
    BrokerConnectionError,
    PublishError,
    QueueOpenError,
    ReceiveFault,
)
from infra.logger import get_logger
from infra.mq.backends.base import BrokerBackend
from infra.mq.types import BrokerTarget, Credentials, OpenMode

log = get_logger("infra.mq.session")


class QueueHandle:
    """A queue opened under one session with a fixed mode."""

    def __init__(self, session: "Session", name: str, mode: OpenMode, raw: Any) -> None:
        self.session = session
        self.name = name
        self.mode = mode
        self._raw = raw
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed and self.session.is_open

    async def publish(self, payload: bytes) -> None:
        if not self.mode.can_publish:
            raise PublishError(f"queue {self.name!r} opened for {self.mode.value}")
        if not self.is_open:
            raise PublishError(f"queue {self.name!r} is closed")
        await self.session.backend.put(self._raw, payload)

    async def receive(self, wait_ms: int) -> Optional[bytes]:
        """Bounded receive. None means the wait window passed with no message."""
        if not self.mode.can_receive:
            raise ReceiveFault(f"queue {self.name!r} opened for {self.mode.value}")
        if not self.is_open:
            raise ReceiveFault(f"queue {self.name!r} is closed")
        return await self.session.backend.get(self._raw, wait_ms)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.session._forget(self)
        if self.session.is_open:
            await self.session.backend.close_queue(self._raw)

    async def __aenter__(self) -> "QueueHandle":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"QueueHandle({self.name!r}, {self.mode.value}, {state})"


class Session:
    """One authenticated connection to a queue manager."""

    def __init__(
        self,
        backend: BrokerBackend,
        target: BrokerTarget,
        user: str,
        connection: Any,
    ) -> None:
        self.backend = backend
        self.target = target
        self.user = user
        self._connection = connection
        self._handles: List[QueueHandle] = []
        self._open = True

    @property
    def queue_manager(self) -> str:
        return self.target.queue_manager

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def handles(self) -> List[QueueHandle]:
        return list(self._handles)

    async def open(self, queue_name: str, mode: OpenMode) -> QueueHandle:
        if not self._open:
            raise QueueOpenError(f"session to {self.queue_manager} is disconnected")
        raw = await self.backend.open_queue(self._connection, queue_name, mode)
        handle = QueueHandle(self, queue_name, mode, raw)
        self._handles.append(handle)
        log.debug("mq.queue.opened", queue=queue_name, mode=mode.value)
        return handle

    async def disconnect(self) -> None:
        """Close every handle still open, then drop the connection. Idempotent."""
        if not self._open:
            return
        for handle in list(self._handles):
            await handle.close()
        self._open = False
        await self.backend.disconnect(self._connection)
        log.info("mq.session.closed", queue_manager=self.queue_manager)

    def _forget(self, handle: QueueHandle) -> None:
        if handle in self._handles:
            self._handles.remove(handle)

    def __repr__(self) -> str:
        state = "open" if self._open else "closed"
        return (
            f"Session({self.queue_manager!r}, channel={self.target.channel!r}, "
            f"conn_name={self.target.conn_name!r}, {state})"
        )


class ConnectionManager:
    """Creates sessions against one broker backend. Used by both roles."""

    def __init__(self, backend: BrokerBackend) -> None:
        self.backend = backend

    async def connect(self, target: BrokerTarget, credentials: Credentials) -> Session:
        try:
            connection = await self.backend.connect(target, credentials)
        except BrokerConnectionError as e:
            log.error(
                "mq.connect.failed",
                queue_manager=target.queue_manager,
                channel=target.channel,
                conn_name=target.conn_name,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        log.info(
            "mq.session.established",
            backend=self.backend.name,
            queue_manager=target.queue_manager,
            channel=target.channel,
            conn_name=target.conn_name,
            user=credentials.user,
        )
        return Session(self.backend, target, credentials.user, connection)

    async def disconnect(self, session: Session) -> None:
        await session.disconnect()
