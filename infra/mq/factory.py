"""
Broker backend factory.

Supports IBM MQ and in-memory backends.
"""

from typing import Optional

from infra.config.broker import BrokerConfig, broker as broker_config
from infra.logger import get_logger
from infra.mq.backends.base import BrokerBackend
from infra.mq.backends.memory import MemoryBroker

log = get_logger("infra.mq.factory")


class BrokerFactory:
    """Factory for creating broker backends."""

    @staticmethod
    def create(config: Optional[BrokerConfig] = None) -> BrokerBackend:
        config = config or broker_config
        log.info("broker.factory.config", **config.to_dict_public())
        backend = config.BACKEND.lower() if isinstance(config.BACKEND, str) else config.BACKEND

        match backend:
            case "ibmmq" | "mq" | "ibm-mq":
                # pymqi needs the native MQ client; only import it when asked for
                from infra.mq.backends.ibmmq import IbmMqBackend

                return IbmMqBackend()
            case "mem" | "memory" | "in-memory":
                return MemoryBroker(
                    queue_manager=config.QMGR,
                    queues=(config.INPUT_QUEUE, config.OUTPUT_QUEUE),
                )
            case _:
                raise ValueError(
                    f"Unsupported broker backend: {config.BACKEND!r}. "
                    f"Supported values: 'ibmmq', 'mq', 'ibm-mq', 'mem', 'memory', 'in-memory'"
                )


_backend_instance: Optional[BrokerBackend] = None


def get_backend() -> BrokerBackend:
    """
    Get or create the process-wide broker backend.

    The front end and an embedded consumer share it, which is what lets the
    memory backend carry messages between them.
    """
    global _backend_instance
    if _backend_instance is None:
        _backend_instance = BrokerFactory.create()
    return _backend_instance
