from __future__ import annotations

import asyncio
from typing import Any, List, Optional

import pytest

from hellomq.config import Settings


class FakeResponse:
    def __init__(self, is_ok: bool = True) -> None:
        self.is_ok = is_ok

    def __repr__(self) -> str:
        return f"<FakeResponse is_ok:{self.is_ok}>"


class FakeConnection:
    def __init__(self, events: List[Any], fail_on: Optional[int] = None, error: Optional[BaseException] = None,
                 reject_on: Optional[int] = None, is_closed: bool = False) -> None:
        self.events = events
        self.fail_on = fail_on
        self.error = error
        self.reject_on = reject_on
        self.is_closed = is_closed
        self.published: List[tuple] = []
        self.closed = 0

    async def pub(self, topic: str, message: bytes) -> FakeResponse:
        n = len(self.published) + 1
        self.events.append(("begin", n))
        await asyncio.sleep(0)
        if n == self.fail_on:
            self.events.append(("error", n))
            raise self.error
        self.published.append((topic, message))
        self.events.append(("end", n))
        return FakeResponse(is_ok=n != self.reject_on)

    async def close(self) -> None:
        self.closed += 1
        self.events.append(("close", None))


class FakeBroker:
    """Stands in for ansq.open_connection."""

    def __init__(self, connect_error: Optional[BaseException] = None, **conn_kwargs: Any) -> None:
        self.events: List[Any] = []
        self.connect_error = connect_error
        self.conn_kwargs = conn_kwargs
        self.connects: List[dict] = []
        self.connection: Optional[FakeConnection] = None

    async def __call__(self, **kwargs: Any) -> FakeConnection:
        self.connects.append(kwargs)
        if self.connect_error is not None:
            raise self.connect_error
        self.connection = FakeConnection(self.events, **self.conn_kwargs)
        return self.connection


class FakeMessage:
    def __init__(self, body: bytes) -> None:
        self.body = body
        self.finished = False
        self.requeued = False

    async def fin(self) -> None:
        self.finished = True

    async def req(self) -> None:
        self.requeued = True


class FakeReader:
    def __init__(self, topic: str, channel: str, bodies: List[bytes]) -> None:
        self.topic = topic
        self.channel = channel
        self.delivered: List[FakeMessage] = []
        self._bodies = list(bodies)
        self.closed = False

    async def messages(self):
        for body in self._bodies:
            message = FakeMessage(body)
            self.delivered.append(message)
            yield message

    async def close(self) -> None:
        self.closed = True


class FakeReaderFactory:
    """Stands in for ansq.create_reader."""

    def __init__(self, bodies: Optional[dict] = None, error: Optional[BaseException] = None) -> None:
        self.bodies = bodies or {}
        self.error = error
        self.readers: List[FakeReader] = []
        self.calls: List[dict] = []

    async def __call__(self, topic: str, channel: str, **kwargs: Any) -> FakeReader:
        self.calls.append(dict(topic=topic, channel=channel, **kwargs))
        if self.error is not None:
            raise self.error
        reader = FakeReader(topic, channel, self.bodies.get(topic, []))
        self.readers.append(reader)
        return reader


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    for key in ("NSQD_TCP_ADDRESS", "TOPIC", "MESSAGE_COUNT", "CHANNEL", "MAX_MESSAGES", "LOG_LEVEL"):
        monkeypatch.delenv(f"HELLOMQ_{key}", raising=False)
    return Settings(_env_file=None)
