from __future__ import annotations

import asyncio
import enum
import logging
import sys
from typing import Any, Awaitable, Callable, Optional

import ansq

from .config import Settings
from .errors import BROKER_ERRORS, BrokerConnectionError, ProducerError, PublishError
from .logging_config import setup_logging

log = logging.getLogger("hellomq.producer")

PAYLOAD_PREFIX = "hello => "

ConnectFn = Callable[..., Awaitable[Any]]


def format_payload(n: int) -> bytes:
    return f"{PAYLOAD_PREFIX}{n}".encode("utf-8")


class ProducerState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    FINISHED = "finished"


class Producer:
    """One nsqd TCP connection used for sequential, acknowledged publishes.

    States only move forward: DISCONNECTED -> CONNECTED -> FINISHED.
    """

    def __init__(self, settings: Settings, connect: ConnectFn = ansq.open_connection) -> None:
        self.settings = settings
        self._connect = connect
        self._conn: Optional[Any] = None
        self.state = ProducerState.DISCONNECTED

    async def start(self) -> None:
        if self.state is not ProducerState.DISCONNECTED:
            raise BrokerConnectionError(f"cannot connect from state {self.state.value}")
        try:
            conn = await self._connect(
                host=self.settings.nsqd_host,
                port=self.settings.nsqd_port,
                connection_options=ansq.ConnectionOptions(auto_reconnect=False),
            )
        except BROKER_ERRORS as exc:
            raise BrokerConnectionError(f"connect to {self.settings.nsqd_tcp_address} failed: {exc}") from exc
        # ansq closes the connection instead of raising when IDENTIFY is refused
        if conn.is_closed:
            raise BrokerConnectionError(f"handshake with {self.settings.nsqd_tcp_address} rejected")
        self._conn = conn
        self.state = ProducerState.CONNECTED
        log.info("Producer connected to %s", self.settings.nsqd_tcp_address)

    async def publish(self, topic: str, payload: bytes) -> None:
        if not topic:
            raise ValueError("topic must be non-empty")
        if self.state is not ProducerState.CONNECTED or self._conn is None:
            raise PublishError(f"cannot publish to {topic!r} while {self.state.value}")
        try:
            response = await self._conn.pub(topic, payload)
        except BROKER_ERRORS as exc:
            raise PublishError(f"publish to {topic!r} failed: {exc}") from exc
        if not response.is_ok:
            raise PublishError(f"publish to {topic!r} rejected: {response}")

    async def stop(self) -> None:
        if self.state is ProducerState.FINISHED:
            return
        conn, self._conn = self._conn, None
        self.state = ProducerState.FINISHED
        if conn is not None:
            await conn.close()
        log.info("Producer stopped")


async def run(settings: Settings, producer: Optional[Producer] = None) -> None:
    """Publish ``settings.message_count`` messages in order, failing fast.

    Errors propagate to the caller without closing the connection; stop() runs
    only after every publish has succeeded.
    """
    if producer is None:
        producer = Producer(settings)
    await producer.start()
    for n in range(1, settings.message_count + 1):
        payload = format_payload(n)
        log.info("sending message %d ...", n)
        await producer.publish(settings.topic, payload)
        log.info("done message %d", n)
    await producer.stop()


def main() -> None:
    settings = Settings()
    setup_logging(settings)
    try:
        asyncio.run(run(settings))
    except ProducerError as exc:
        log.critical("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
