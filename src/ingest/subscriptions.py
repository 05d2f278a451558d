"""Per-instrument subscription modes and the control messages that set them."""

from __future__ import annotations

import time
from collections import defaultdict
from typing import Any, Iterable, Optional

from smartstream import ExchangeType, InstrumentToken, SubscriptionMode

ACTION_SUBSCRIBE = 1
ACTION_UNSUBSCRIBE = 0


class SubscriptionTable:
    """Mode bookkeeping keyed by :class:`InstrumentToken`.

    Subscribing an instrument again under another mode replaces the old
    mode; the feed sends one packet layout per instrument.
    """

    def __init__(self) -> None:
        self._modes: dict[InstrumentToken, SubscriptionMode] = {}

    def __len__(self) -> int:
        return len(self._modes)

    def __contains__(self, instrument: object) -> bool:
        return instrument in self._modes

    def add(
        self, mode: object, exchange: object, tokens: Iterable[str]
    ) -> list[InstrumentToken]:
        parsed_mode = SubscriptionMode.parse(mode)
        parsed_exchange = ExchangeType.parse(exchange)
        added: list[InstrumentToken] = []
        for token in tokens:
            instrument = InstrumentToken(parsed_exchange, str(token))
            self._modes[instrument] = parsed_mode
            added.append(instrument)
        return added

    def remove(self, instruments: Iterable[InstrumentToken]) -> None:
        for instrument in instruments:
            self._modes.pop(instrument, None)

    def mode_for(self, instrument: InstrumentToken) -> Optional[SubscriptionMode]:
        return self._modes.get(instrument)

    def instruments(self) -> list[InstrumentToken]:
        return sorted(self._modes)

    def _grouped(
        self, instruments: Iterable[InstrumentToken]
    ) -> dict[SubscriptionMode, dict[ExchangeType, list[str]]]:
        grouped: dict[SubscriptionMode, dict[ExchangeType, list[str]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for instrument in sorted(instruments):
            mode = self._modes.get(instrument)
            if mode is None:
                continue
            grouped[mode][instrument.exchange].append(instrument.token)
        return grouped

    def _requests(
        self, action: int, instruments: Optional[Iterable[InstrumentToken]]
    ) -> list[dict[str, Any]]:
        targets = self._modes if instruments is None else instruments
        requests = []
        for mode, by_exchange in sorted(self._grouped(targets).items()):
            requests.append(
                {
                    "correlationID": _correlation_id(),
                    "action": action,
                    "params": {
                        "mode": int(mode),
                        "tokenList": [
                            {"exchangeType": int(exchange), "tokens": tokens}
                            for exchange, tokens in sorted(by_exchange.items())
                        ],
                    },
                }
            )
        return requests

    def subscribe_requests(
        self, instruments: Optional[Iterable[InstrumentToken]] = None
    ) -> list[dict[str, Any]]:
        """One subscribe message per mode, covering ``instruments`` (default all)."""

        return self._requests(ACTION_SUBSCRIBE, instruments)

    def unsubscribe_requests(
        self, instruments: Optional[Iterable[InstrumentToken]] = None
    ) -> list[dict[str, Any]]:
        return self._requests(ACTION_UNSUBSCRIBE, instruments)


def _correlation_id() -> str:
    # correlationID is a fixed 10 character field.
    return f"{int(time.time() * 1000) % 10**10:010d}"


__all__ = ["ACTION_SUBSCRIBE", "ACTION_UNSUBSCRIBE", "SubscriptionTable"]
