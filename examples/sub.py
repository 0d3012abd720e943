#!/usr/bin/env python3
import asyncio
import sys

from hellomq.config import Settings
from hellomq.consumer import Consumer
from hellomq.logging_config import setup_logging
from hellomq.routes import HelloWorld


def main():
    topic = sys.argv[1] if len(sys.argv) > 1 else "hello"
    settings = Settings(topic=topic)
    setup_logging(settings)
    consumer = Consumer(settings).draw(lambda r: r.topic(topic, to=HelloWorld))
    print(f"SUB connected to {settings.nsqd_tcp_address}, topic='{topic}' channel='{settings.channel}'")
    try:
        asyncio.run(consumer.serve())
    except KeyboardInterrupt:
        pass

if __name__ == "__main__":
    main()
