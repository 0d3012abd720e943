from __future__ import annotations

import importlib
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Union

from .errors import RouteError

log = logging.getLogger("hellomq.routes")

HandlerRef = Union[type, str]


def resolve_handler(ref: HandlerRef) -> type:
    """Accept a class, or a "pkg.module:Class" / "pkg.module.Class" path."""
    if isinstance(ref, type):
        return ref
    if not isinstance(ref, str) or not ref:
        raise RouteError(f"invalid handler reference: {ref!r}")
    if ":" in ref:
        module_name, _, attr = ref.partition(":")
    else:
        module_name, _, attr = ref.rpartition(".")
    if not module_name or not attr:
        raise RouteError(f"handler reference needs a module: {ref!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RouteError(f"cannot import {module_name!r} for handler {ref!r}") from exc
    handler = getattr(module, attr, None)
    if not isinstance(handler, type):
        raise RouteError(f"{ref!r} is not a class")
    if not callable(getattr(handler, "respond", None)):
        raise RouteError(f"{ref!r} has no respond() method")
    return handler


@dataclass
class Route:
    topic: str
    handler: type
    channel: str


class RouteSet:
    def __init__(self, default_channel: str) -> None:
        self.default_channel = default_channel
        self._routes: Dict[str, List[Route]] = {}

    def topic(self, name: str, to: Optional[HandlerRef] = None, channel: Optional[str] = None) -> Route:
        if not name:
            raise RouteError("topic must be a non-empty string")
        if to is None:
            raise RouteError(f"topic {name!r} has no handler")
        route = Route(topic=name, handler=resolve_handler(to), channel=channel or self.default_channel)
        self._routes.setdefault(name, []).append(route)
        log.debug("Route %s/%s -> %s", route.topic, route.channel, route.handler.__name__)
        return route

    def draw(self, fn: Callable[["RouteSet"], None]) -> "RouteSet":
        fn(self)
        return self

    def collection(self) -> Dict[str, List[Route]]:
        return {name: list(routes) for name, routes in self._routes.items()}


class HelloWorld:
    def respond(self, message: bytes) -> None:
        log.info("%s", message.decode("utf-8", errors="replace"))
