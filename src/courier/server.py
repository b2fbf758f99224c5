"""Protean Engine runner for the courier domain.

Processes events asynchronously in production: the outbox processor
publishes to the broker and stream subscriptions feed the projectors and
event handlers.

Usage:
    python -m courier.server
"""

import asyncio

from protean.server.engine import Engine

from courier.domain import courier, logger


async def run():
    courier.init()
    logger.info("Starting courier engine", domain=courier.name)
    await Engine(courier).run()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
