"""Config constants for services."""

from .broker import BrokerConfig, broker, parse_connname
from .endpoints import Frontend
from .timeouts import Timeouts

__all__ = ["BrokerConfig", "broker", "parse_connname", "Frontend", "Timeouts"]
