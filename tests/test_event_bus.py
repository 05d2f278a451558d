"""Unit tests for the in-memory event bus."""

from __future__ import annotations

import asyncio
import importlib.util
from pathlib import Path


def _load_event_bus() -> type:
    root = Path(__file__).resolve().parents[1]
    module_path = root / "src" / "common" / "bus.py"
    spec = importlib.util.spec_from_file_location("common.bus", module_path)
    assert spec and spec.loader
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)  # type: ignore[arg-type]
    return module.EventBus


EventBus = _load_event_bus()


def test_publish_fans_out_to_all_subscribers() -> None:
    async def _run() -> None:
        bus: EventBus[int] = EventBus()
        queue_a = bus.subscribe()
        queue_b = bus.subscribe()

        await bus.publish(1)

        assert await asyncio.wait_for(queue_a.get(), timeout=0.1) == 1
        assert await asyncio.wait_for(queue_b.get(), timeout=0.1) == 1

    asyncio.run(_run())


def test_unsubscribe_prevents_future_messages() -> None:
    async def _run() -> None:
        bus: EventBus[int] = EventBus()
        queue = bus.subscribe()
        bus.unsubscribe(queue)

        await bus.publish(2)

        assert queue.empty()
        assert bus.subscriber_count == 0

    asyncio.run(_run())


def test_full_queue_drops_oldest_item() -> None:
    async def _run() -> None:
        bus: EventBus[int] = EventBus()
        queue = bus.subscribe(maxsize=2)

        for item in (1, 2, 3):
            bus.publish_nowait(item)

        assert [queue.get_nowait(), queue.get_nowait()] == [2, 3]
        assert bus.dropped == 1

    asyncio.run(_run())


def test_close_drains_pending_items() -> None:
    async def _run() -> None:
        bus: EventBus[int] = EventBus()
        queue = bus.subscribe()
        bus.publish_nowait(5)

        await bus.close()

        assert queue.empty()
        assert bus.subscriber_count == 0

    asyncio.run(_run())
