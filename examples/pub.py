#!/usr/bin/env python3
import asyncio
import logging
import sys

import ansq

NSQD_HOST = "127.0.0.1"
NSQD_PORT = 4150

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
log = logging.getLogger("hellomq.examples.pub")


async def main():
    nsq = await ansq.open_connection(host=NSQD_HOST, port=NSQD_PORT)
    for i in range(1, 11):
        log.info("sending message %d ...", i)
        response = await nsq.pub("hello", f"hello => {i}".encode())
        if not response.is_ok:
            log.critical("message %d rejected: %s", i, response)
            sys.exit(1)
        log.info("done message %d", i)
    await nsq.close()

if __name__ == "__main__":
    asyncio.run(main())
