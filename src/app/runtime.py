"""Async runtime harness that ties the feed client, dispatcher and consumers together."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from contextlib import suppress
from pathlib import Path
from typing import Iterable

from dotenv import load_dotenv

from common import EventBus, FeedSettings, load_settings, setup_logging
from common.logging import level_from_name
from ingest import SmartStreamClient, SubscriptionTable, TickDispatcher
from smartstream import Tick

logger = logging.getLogger(__name__)


def build_subscriptions(settings: FeedSettings) -> SubscriptionTable:
    table = SubscriptionTable()
    for entry in settings.subscriptions:
        if not entry.tokens:
            logger.warning(
                "Subscription for %s/%s lists no tokens; skipping",
                entry.exchange.name,
                entry.mode.name,
            )
            continue
        table.add(entry.mode, entry.exchange, entry.tokens)
    return table


class FeedRuntime:
    """Run the streaming client until SIGINT/SIGTERM and log each tick."""

    def __init__(self, config_path: Path, queue_size: int = 10_000) -> None:
        self.config_path = config_path
        self.queue_size = queue_size
        self._stop_event = asyncio.Event()

    async def run(self) -> None:
        load_dotenv()
        settings = load_settings(self.config_path)

        setup_logging(level_from_name(settings.logging.level), settings.logging.file)
        layout = settings.packet_layout()
        logger.info(
            "Starting feed runtime",
            extra={"config": str(self.config_path), "layout": layout.version},
        )

        bus: EventBus[Tick] = EventBus()
        ticks = bus.subscribe(maxsize=self.queue_size)
        subscriptions = build_subscriptions(settings)
        if not len(subscriptions):
            logger.warning("No instruments configured; runtime will idle")

        dispatcher = TickDispatcher(
            bus,
            subscriptions,
            layout=layout,
            framed=settings.feed.framed,
        )
        client = SmartStreamClient(dispatcher, settings.feed)
        await client.start()

        consumer_task = asyncio.create_task(self._consume(ticks), name="tick-consumer")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError):
                loop.add_signal_handler(sig, self._stop_event.set)

        try:
            await self._stop_event.wait()
        finally:
            await client.stop()
            consumer_task.cancel()
            with suppress(asyncio.CancelledError):
                await consumer_task
            await bus.close()
            logger.info(
                "Feed runtime stopped",
                extra={"stats": vars(dispatcher.stats), "dropped": bus.dropped},
            )

    async def _consume(self, queue: asyncio.Queue[Tick]) -> None:
        while True:
            tick = await queue.get()
            try:
                logger.info(
                    "%s %s ltp=%.2f",
                    tick.mode.name,
                    tick.instrument,
                    tick.last_traded_price,
                )
            finally:
                queue.task_done()

    def stop(self) -> None:
        self._stop_event.set()


async def run_feed(config_path: str) -> None:
    runtime = FeedRuntime(Path(config_path))
    await runtime.run()


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Stream and decode SmartStream market data")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to YAML configuration file",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    asyncio.run(run_feed(args.config))


if __name__ == "__main__":  # pragma: no cover - CLI execution path
    main()
