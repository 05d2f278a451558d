"""Route decoded ticks to the bus and failures to a single error callback."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Callable, Optional

from common import EventBus
from smartstream import (
    DEFAULT_LAYOUT,
    DecodeError,
    ErrorCategory,
    ErrorKind,
    FeedError,
    FeedErrorEvent,
    PacketLayout,
    Tick,
    frame,
    resolve_header,
)
from smartstream.decoder import decode_payload, select_mode

from .subscriptions import SubscriptionTable

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[FeedErrorEvent], None]


def log_feed_error(event: FeedErrorEvent) -> None:
    """Default error callback: each category gets its own log level."""

    if event.category is ErrorCategory.GENERIC:
        logger.error(
            "Feed handler failed: %s",
            event.diagnostic,
            exc_info=event.error,
        )
    elif event.category is ErrorCategory.PROTOCOL:
        kind = event.kind.value if event.kind else "unknown"
        logger.warning(
            "Dropped feed data (%s): %s",
            kind,
            event.diagnostic,
            extra={"packet_index": event.packet_index},
        )
    else:
        logger.info("Feed message: %s", event.diagnostic)


@dataclass
class DispatchStats:
    messages: int = 0
    ticks: int = 0
    empty_slots: int = 0
    packet_errors: int = 0
    message_errors: int = 0


class TickDispatcher:
    """Frame, decode and publish every packet of incoming feed messages.

    A failing packet is reported on its own and never stops the rest of its
    message. A framing failure drops the whole message.
    """

    def __init__(
        self,
        bus: EventBus[Tick],
        subscriptions: SubscriptionTable,
        *,
        layout: PacketLayout = DEFAULT_LAYOUT,
        framed: bool = False,
        on_error: ErrorCallback = log_feed_error,
    ) -> None:
        self.bus = bus
        self.subscriptions = subscriptions
        self.layout = layout
        self.framed = framed
        self.on_error = on_error
        self.stats = DispatchStats()

    def _packets(self, message: bytes) -> Iterator[bytes]:
        if self.framed:
            return frame(message)
        return iter((bytes(message),))

    def decode_packet(self, packet: bytes) -> Optional[Tick]:
        """Decode one packet using the subscribed mode of its instrument.

        Self-describing layouts take the mode from the packet itself.
        Returns ``None`` for unused (empty token) slots.
        """

        header = resolve_header(packet)
        if header.instrument.is_empty:
            return None
        mode = None
        if not self.layout.self_describing:
            mode = self.subscriptions.mode_for(header.instrument)
            if mode is None:
                raise DecodeError(
                    ErrorKind.UNKNOWN_MODE,
                    f"no subscription for {header.instrument}",
                )
        selected = select_mode(header.indicator, mode, self.layout)
        return decode_payload(packet, header.instrument, selected, self.layout)

    def handle_message(self, message: bytes) -> list[Tick]:
        """Decode ``message`` and publish its ticks in packet order."""

        self.stats.messages += 1
        try:
            packets = self._packets(message)
        except FeedError as exc:
            self.stats.message_errors += 1
            self._report(FeedErrorEvent.from_exception(exc))
            return []

        ticks: list[Tick] = []
        for index, packet in enumerate(packets):
            try:
                tick = self.decode_packet(packet)
            except Exception as exc:
                self.stats.packet_errors += 1
                self._report(FeedErrorEvent.from_exception(exc, packet_index=index))
                continue
            if tick is None:
                self.stats.empty_slots += 1
                continue
            ticks.append(tick)
            self.bus.publish_nowait(tick)
        self.stats.ticks += len(ticks)
        return ticks

    def report_text(self, message: str) -> None:
        """Forward a plain diagnostic string from the transport."""

        self._report(FeedErrorEvent.from_message(message))

    def report_exception(self, exc: BaseException) -> None:
        self._report(FeedErrorEvent.from_exception(exc))

    def _report(self, event: FeedErrorEvent) -> None:
        try:
            self.on_error(event)
        except Exception:  # pragma: no cover - logged for operators
            logger.exception("Error callback raised while reporting %s", event.category.value)


__all__ = ["DispatchStats", "ErrorCallback", "TickDispatcher", "log_feed_error"]
