"""
Base broker backend interface.

All broker implementations (IBM MQ, in-memory, etc.) must implement this
interface. Connection and queue objects returned by a backend are opaque to
callers; only the backend that created them understands them.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from infra.mq.types import BrokerTarget, Credentials, OpenMode


class BrokerBackend(ABC):
    """
    Abstract base class for broker implementations.

    Failures are reported with the types from ``infra.exceptions``.
    """

    name: str = "broker"

    # === Connections ===

    @abstractmethod
    async def connect(self, target: BrokerTarget, credentials: Credentials) -> Any:
        """Open an authenticated connection. Raises BrokerConnectionError."""
        pass

    @abstractmethod
    async def disconnect(self, connection: Any) -> None:
        """Release the connection."""
        pass

    # === Queues ===

    @abstractmethod
    async def open_queue(self, connection: Any, queue_name: str, mode: OpenMode) -> Any:
        """Open a queue on a connection. Raises QueueOpenError."""
        pass

    @abstractmethod
    async def close_queue(self, queue: Any) -> None:
        """Close an open queue."""
        pass

    # === Messages ===

    @abstractmethod
    async def put(self, queue: Any, payload: bytes) -> None:
        """Put one message outside any syncpoint. Raises PublishError."""
        pass

    @abstractmethod
    async def get(self, queue: Any, wait_ms: int) -> Optional[bytes]:
        """
        Get one message, waiting at most ``wait_ms``.

        Returns None when nothing arrived in the window. Raises ReceiveFault
        for anything else.
        """
        pass
