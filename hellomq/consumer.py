from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

import ansq

from .config import Settings
from .errors import BROKER_ERRORS, BrokerConnectionError, HelloMQError
from .logging_config import setup_logging
from .routes import HelloWorld, Route, RouteSet

log = logging.getLogger("hellomq.consumer")

ReaderFactory = Callable[..., Awaitable[Any]]


class Listener:
    """Reads one topic/channel and hands every message to the routes for it."""

    def __init__(
        self,
        topic: str,
        channel: str,
        routes: List[Route],
        settings: Settings,
        reader_factory: ReaderFactory = ansq.create_reader,
    ) -> None:
        self.topic = topic
        self.channel = channel
        self.routes = routes
        self.settings = settings
        self._reader_factory = reader_factory
        self._reader: Optional[Any] = None
        self.handled = 0
        self.failed = 0

    async def run(self) -> None:
        try:
            self._reader = await self._reader_factory(
                topic=self.topic,
                channel=self.channel,
                nsqd_tcp_addresses=[self.settings.nsqd_tcp_address],
            )
        except BROKER_ERRORS as exc:
            raise BrokerConnectionError(
                f"subscribe {self.topic}/{self.channel} on {self.settings.nsqd_tcp_address} failed: {exc}"
            ) from exc
        log.info("Listening on %s/%s", self.topic, self.channel)
        limit = self.settings.max_messages
        async for message in self._reader.messages():
            await self._dispatch(message)
            if limit is not None and self.handled + self.failed >= limit:
                break

    async def _dispatch(self, message: Any) -> None:
        try:
            for route in self.routes:
                result = route.handler().respond(message.body)
                if inspect.isawaitable(result):
                    await result
        except Exception:
            self.failed += 1
            log.exception("Handler failed on %s/%s; requeueing", self.topic, self.channel)
            await message.req()
            return
        self.handled += 1
        await message.fin()

    async def close(self) -> None:
        reader, self._reader = self._reader, None
        if reader is not None:
            await reader.close()


class Consumer:
    def __init__(self, settings: Settings, reader_factory: ReaderFactory = ansq.create_reader) -> None:
        self.settings = settings
        self._reader_factory = reader_factory
        self.routes = RouteSet(default_channel=settings.channel)
        self.listeners: List[Listener] = []
        self._tasks: List[asyncio.Task] = []

    def draw(self, fn: Callable[[RouteSet], None]) -> "Consumer":
        self.routes.draw(fn)
        return self

    def _group(self) -> Dict[Tuple[str, str], List[Route]]:
        groups: Dict[Tuple[str, str], List[Route]] = {}
        for routes in self.routes.collection().values():
            for route in routes:
                groups.setdefault((route.topic, route.channel), []).append(route)
        return groups

    async def start(self) -> None:
        groups = self._group()
        if not groups:
            raise HelloMQError("no routes drawn")
        self.listeners = [
            Listener(topic, channel, routes, self.settings, reader_factory=self._reader_factory)
            for (topic, channel), routes in groups.items()
        ]
        self._tasks = [
            asyncio.create_task(listener.run(), name=f"hellomq-listener-{listener.topic}-{listener.channel}")
            for listener in self.listeners
        ]
        await asyncio.gather(*self._tasks)

    async def shutdown(self) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        # the first failure already propagated out of start()
        await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        for listener in self.listeners:
            try:
                await listener.close()
            except BROKER_ERRORS:
                log.exception("Error closing listener %s/%s", listener.topic, listener.channel)
        log.info("Consumer stopped")

    async def serve(self) -> None:
        try:
            await self.start()
        finally:
            await self.shutdown()


def main() -> None:
    settings = Settings()
    setup_logging(settings)
    consumer = Consumer(settings).draw(lambda r: r.topic(settings.topic, to=HelloWorld))
    try:
        asyncio.run(consumer.serve())
    except HelloMQError as exc:
        log.critical("%s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    main()
