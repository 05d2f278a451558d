"""Offline decoder for captured feed messages.

Reads one hex-encoded message per line (blank lines and ``#`` comments are
skipped) and prints each decoded tick as JSON.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, Iterator, Optional, TextIO

from common import EventBus, setup_logging
from ingest import SubscriptionTable, TickDispatcher
from smartstream import LAYOUTS, ErrorCategory, FeedErrorEvent, SubscriptionMode, Tick

logger = logging.getLogger(__name__)


class _ModeForAll(SubscriptionTable):
    """Subscription table answering one fixed mode for every instrument."""

    def __init__(self, mode: SubscriptionMode) -> None:
        super().__init__()
        self._fixed = mode

    def mode_for(self, instrument: object) -> SubscriptionMode:  # type: ignore[override]
        return self._fixed


def read_messages(lines: Iterable[str]) -> Iterator[tuple[int, bytes | str]]:
    """Yield ``(line_number, bytes)`` or ``(line_number, error text)``."""

    for number, line in enumerate(lines, start=1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        try:
            yield number, bytes.fromhex(text)
        except ValueError as exc:
            yield number, f"line {number}: not hex ({exc})"


def replay(
    lines: Iterable[str],
    mode: SubscriptionMode,
    *,
    layout_version: int = 1,
    framed: bool = False,
    out: Optional[TextIO] = None,
) -> int:
    """Decode ``lines`` and write tick JSON to ``out`` (default stdout); return the error count."""

    out = out or sys.stdout
    errors: list[FeedErrorEvent] = []

    def _on_error(event: FeedErrorEvent) -> None:
        errors.append(event)
        if event.category is ErrorCategory.PROTOCOL:
            logger.warning("%s", event.diagnostic)
        else:
            logger.error("%s", event.diagnostic)

    bus: EventBus[Tick] = EventBus()
    dispatcher = TickDispatcher(
        bus,
        _ModeForAll(mode),
        layout=LAYOUTS[layout_version],
        framed=framed,
        on_error=_on_error,
    )
    for _, message in read_messages(lines):
        if isinstance(message, str):
            dispatcher.report_text(message)
            continue
        for tick in dispatcher.handle_message(message):
            out.write(tick.model_dump_json() + "\n")
    return len(errors)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Decode captured SmartStream messages")
    parser.add_argument("path", help="File with one hex message per line, '-' for stdin")
    parser.add_argument(
        "--mode",
        default="ltp",
        help="Subscription mode for caller-supplied layouts (ltp, quote, snap_quote)",
    )
    parser.add_argument(
        "--layout",
        type=int,
        default=1,
        choices=sorted(LAYOUTS),
        help="Packet layout version",
    )
    parser.add_argument(
        "--framed",
        action="store_true",
        help="Messages carry a packet count and length prefixes",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(to_file=False)
    mode = SubscriptionMode.parse(args.mode)
    if args.path == "-":
        failures = replay(sys.stdin, mode, layout_version=args.layout, framed=args.framed)
    else:
        with Path(args.path).open() as handle:
            failures = replay(handle, mode, layout_version=args.layout, framed=args.framed)
    if failures:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
