"""
Broker backends.

The IBM MQ backend is not imported here: it needs the native MQ client.
"""

from infra.mq.backends.base import BrokerBackend
from infra.mq.backends.memory import MemoryBroker

__all__ = ["BrokerBackend", "MemoryBroker"]
