from __future__ import annotations

import re
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# nsqd accepts the same pattern for topic and channel names
NAME_RE = re.compile(r"^[.a-zA-Z0-9_\-]{2,64}(#ephemeral)?$")


def split_address(address: str) -> Tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not host or not port.isdigit():
        raise ValueError(f"address must be host:port, got {address!r}")
    return host, int(port)


class Settings(BaseSettings):
    # nsqd TCP endpoint
    nsqd_tcp_address: str = "127.0.0.1:4150"

    # Producer
    topic: str = "hello"
    message_count: int = Field(default=10, ge=1)

    # Consumer
    channel: str = "hello"
    max_messages: Optional[int] = Field(default=None, ge=1)  # None: run until stopped

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "HELLOMQ_"
        env_file = ".env"
        extra = "ignore"

    @field_validator("nsqd_tcp_address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        split_address(v)
        return v

    @field_validator("topic", "channel")
    @classmethod
    def _check_name(cls, v: str) -> str:
        if not NAME_RE.match(v):
            raise ValueError(f"{v!r} is not a valid nsq name (2-64 of [.a-zA-Z0-9_-], optional #ephemeral)")
        return v

    @property
    def nsqd_host(self) -> str:
        return split_address(self.nsqd_tcp_address)[0]

    @property
    def nsqd_port(self) -> int:
        return split_address(self.nsqd_tcp_address)[1]
