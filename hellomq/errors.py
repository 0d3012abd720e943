from __future__ import annotations

from ansq.tcp.exceptions import ConnectionClosedError, NSQException

# What the ansq client raises for an unreachable, closed or failing nsqd.
BROKER_ERRORS = (OSError, NSQException, ConnectionClosedError)


class HelloMQError(Exception):
    pass


class ProducerError(HelloMQError):
    """Fatal publisher failure; main() logs it and exits non-zero."""


class BrokerConnectionError(ProducerError):
    """nsqd unreachable or the handshake was rejected."""


class PublishError(ProducerError):
    """nsqd rejected a message or the connection dropped mid-publish."""


class RouteError(HelloMQError):
    """A route points at a handler that cannot be resolved."""
