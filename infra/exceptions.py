"""
Broker and message errors.

Backends translate client library failures into these types so that the
callers only ever deal with one taxonomy.
"""


class BrokerError(RuntimeError):
    """Base class for broker operation failures after a session exists."""
    pass


class BrokerConnectionError(ConnectionError):
    """Session could not be established."""
    pass


class AuthorizationError(BrokerConnectionError):
    """Authentication/authorization rejected by the queue manager."""
    pass


class ServiceUnavailableError(BrokerConnectionError):
    """Broker endpoint is unreachable or not accepting connections."""
    pass


class QueueManagerUnknownError(BrokerConnectionError):
    """The requested queue manager does not exist at the endpoint."""
    pass


class QueueOpenError(BrokerError):
    """Queue is missing, access was denied, or the session is gone."""
    pass


class PublishError(BrokerError):
    """Message was not accepted by the broker."""
    pass


class ReceiveFault(BrokerError):
    """Unexpected broker failure during a receive (not an empty queue)."""
    pass


class MessageValidationError(ValueError):
    """Inbound payload is not a usable work record."""
    pass
