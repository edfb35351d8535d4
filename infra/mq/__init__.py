"""
Message broker access.

Backends are created through ``infra.mq.factory``; everything else talks to
``ConnectionManager``, ``Session`` and ``QueueHandle``.
"""

from infra.mq.backends.base import BrokerBackend
from infra.mq.backends.memory import MemoryBroker
from infra.mq.session import ConnectionManager, QueueHandle, Session
from infra.mq.types import BrokerTarget, Credentials, OpenMode

__all__ = [
    "BrokerBackend",
    "BrokerTarget",
    "ConnectionManager",
    "Credentials",
    "MemoryBroker",
    "OpenMode",
    "QueueHandle",
    "Session",
]
