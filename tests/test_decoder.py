"""Unit tests for packet header resolution and tick decoding."""

from __future__ import annotations

import struct
from datetime import datetime, timezone

import pytest

pytest.importorskip("pydantic")

from pydantic import TypeAdapter, ValidationError

from smartstream import (
    DecodeError,
    ErrorKind,
    ExchangeType,
    InstrumentToken,
    LTPTick,
    QuoteTick,
    SnapQuoteTick,
    SubscriptionMode,
    Tick,
    decode,
    encode,
    resolve_header,
)
from smartstream.layouts import LAYOUT_V1, LAYOUT_V2

QUOTE_VALUES = {
    "last_traded_price": 10004,
    "last_traded_quantity": 25,
    "average_traded_price": 9990,
    "volume_traded_today": 1_250_000,
    "total_buy_quantity": 50_000,
    "total_sell_quantity": 42_000,
    "open_price": 9900,
    "high_price": 10100,
    "low_price": 9850,
    "close_price": 9875,
    "last_trade_time": 1_700_000_000,
}

BID_PRICES = [9990, 10000, 9980, 9995, 9985]
ASK_PRICES = [10010, 10005, 10020, 10015, 10025]


def _levels(prices: list[int]) -> list[dict[str, int]]:
    return [
        {"quantity": 100 * (index + 1), "price": price, "orders": index + 2}
        for index, price in enumerate(prices)
    ]


def _snap_packet(layout=LAYOUT_V1) -> bytes:
    return encode(
        SubscriptionMode.SNAP_QUOTE,
        1,
        "3045",
        QUOTE_VALUES,
        layout=layout,
        bids=_levels(BID_PRICES),
        asks=_levels(ASK_PRICES),
    )


def test_ltp_scenario_from_raw_bytes() -> None:
    packet = bytes([0x01, 0x01]) + b"3045" + b"\x00" * 21 + bytes([0x00, 0x00, 0x27, 0x14])

    tick = decode(packet, SubscriptionMode.LTP)

    assert isinstance(tick, LTPTick)
    assert tick.instrument == InstrumentToken(ExchangeType.NSE_CM, "3045")
    assert tick.instrument.exchange is ExchangeType.NSE_CM
    assert tick.last_traded_price == 100.04
    assert tick.exchange_timestamp is None


@pytest.mark.parametrize("cents", [0, 1, 99, 10004, -250, 2**31 - 1, -(2**31)])
def test_ltp_price_is_scaled_by_one_hundred(cents: int) -> None:
    packet = bytes([1, 1]) + b"\x00" * 25 + struct.pack(">i", cents)

    tick = decode(packet, "ltp")

    assert tick.last_traded_price == cents / 100


def test_every_unknown_exchange_byte_is_rejected() -> None:
    known = {member.value for member in ExchangeType}
    for value in range(256):
        if value in known:
            continue
        packet = bytes([1, value]) + b"3045".ljust(25, b"\x00") + struct.pack(">i", 100)
        with pytest.raises(DecodeError) as excinfo:
            decode(packet, SubscriptionMode.LTP)
        assert excinfo.value.kind is ErrorKind.UNKNOWN_EXCHANGE


def test_token_padding_is_stripped() -> None:
    empty = resolve_header(bytes([1, 1]) + b"\x00" * 25)
    padded = resolve_header(bytes([1, 1]) + b"3045" + b"\x00" * 21)

    assert empty.instrument.token == ""
    assert empty.instrument.is_empty
    assert padded.instrument.token == "3045"
    assert padded.indicator == 1


def test_header_shorter_than_27_bytes_is_short_packet() -> None:
    with pytest.raises(DecodeError) as excinfo:
        decode(bytes([1, 1]) + b"3045", SubscriptionMode.LTP)
    assert excinfo.value.kind is ErrorKind.SHORT_PACKET


def test_ltp_payload_shorter_than_price_is_short_packet() -> None:
    packet = bytes([1, 1]) + b"\x00" * 25 + b"\x00\x27"
    with pytest.raises(DecodeError) as excinfo:
        decode(packet, SubscriptionMode.LTP)
    assert excinfo.value.kind is ErrorKind.SHORT_PACKET


def test_oversized_payload_is_a_length_mismatch() -> None:
    packet = encode(SubscriptionMode.LTP, 1, "3045", {"last_traded_price": 100})
    with pytest.raises(DecodeError) as excinfo:
        decode(packet + b"\x00", SubscriptionMode.LTP)
    assert excinfo.value.kind is ErrorKind.PAYLOAD_LENGTH_MISMATCH


def test_ltp_never_accepts_the_change_trailer() -> None:
    packet = encode(SubscriptionMode.LTP, 1, "3045", {"last_traded_price": 100})
    with pytest.raises(DecodeError) as excinfo:
        decode(packet + b"\x00" * 8, SubscriptionMode.LTP)
    assert excinfo.value.kind is ErrorKind.PAYLOAD_LENGTH_MISMATCH


def test_missing_mode_for_caller_supplied_layout() -> None:
    packet = encode(SubscriptionMode.LTP, 1, "3045", {"last_traded_price": 100})
    with pytest.raises(DecodeError) as excinfo:
        decode(packet)
    assert excinfo.value.kind is ErrorKind.UNKNOWN_MODE


def test_unknown_mode_name_is_rejected() -> None:
    packet = encode(SubscriptionMode.LTP, 1, "3045", {"last_traded_price": 100})
    with pytest.raises(DecodeError) as excinfo:
        decode(packet, "full")
    assert excinfo.value.kind is ErrorKind.UNKNOWN_MODE


def test_quote_fields_decode_in_order() -> None:
    packet = encode(SubscriptionMode.QUOTE, 3, "500325", QUOTE_VALUES)
    assert len(packet) == 83

    tick = decode(packet, SubscriptionMode.QUOTE)

    assert isinstance(tick, QuoteTick)
    assert tick.instrument == InstrumentToken(ExchangeType.BSE_CM, "500325")
    assert tick.last_traded_price == 100.04
    assert tick.last_traded_quantity == 25
    assert tick.average_traded_price == 99.9
    assert tick.volume_traded_today == 1_250_000
    assert tick.total_buy_quantity == 50_000
    assert tick.total_sell_quantity == 42_000
    assert (tick.open_price, tick.high_price, tick.low_price, tick.close_price) == (
        99.0,
        101.0,
        98.5,
        98.75,
    )
    assert tick.last_trade_time == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert tick.net_change is None
    assert tick.percent_change is None


def test_quote_with_change_trailer() -> None:
    values = dict(QUOTE_VALUES, net_change=129, percent_change=131)
    packet = encode(SubscriptionMode.QUOTE, 1, "3045", values)
    assert len(packet) == 91

    tick = decode(packet, SubscriptionMode.QUOTE)

    assert tick.net_change == 1.29
    assert tick.percent_change == 1.31


def test_snap_quote_ladders_keep_wire_order() -> None:
    tick = decode(_snap_packet(), SubscriptionMode.SNAP_QUOTE)

    assert isinstance(tick, SnapQuoteTick)
    assert [level.price * 100 for level in tick.best_bids] == pytest.approx(BID_PRICES)
    assert [level.price * 100 for level in tick.best_asks] == pytest.approx(ASK_PRICES)
    assert tick.best_bids[0].quantity == 100
    assert tick.best_bids[0].orders == 2
    assert tick.best_asks[4].quantity == 500
    assert tick.best_asks[4].orders == 6
    assert tick.close_price == 98.75


def test_snap_quote_depth_uses_quantity_price_orders_order() -> None:
    packet = _snap_packet()
    first_bid = packet[83:93]

    assert struct.unpack(">iih", first_bid) == (100, BID_PRICES[0], 2)


def test_snap_quote_with_four_bid_levels_is_short_packet() -> None:
    packet = _snap_packet()[: 83 + 4 * 10]

    with pytest.raises(DecodeError) as excinfo:
        decode(packet, SubscriptionMode.SNAP_QUOTE)
    assert excinfo.value.kind is ErrorKind.SHORT_PACKET


def test_self_describing_layout_reads_mode_from_packet() -> None:
    values = dict(QUOTE_VALUES, sequence_number=42, exchange_timestamp=1_700_000_000_500)
    packet = encode(SubscriptionMode.QUOTE, 2, "35003", values, layout=LAYOUT_V2)
    assert len(packet) == 99

    tick = decode(packet, layout=LAYOUT_V2)

    assert isinstance(tick, QuoteTick)
    assert tick.instrument.exchange is ExchangeType.NSE_FO
    assert tick.sequence_number == 42
    assert tick.exchange_timestamp == datetime(
        2023, 11, 14, 22, 13, 20, 500_000, tzinfo=timezone.utc
    )


def test_self_describing_snap_quote() -> None:
    tick = decode(_snap_packet(LAYOUT_V2), SubscriptionMode.SNAP_QUOTE, layout=LAYOUT_V2)

    assert isinstance(tick, SnapQuoteTick)
    assert len(tick.best_bids) == len(tick.best_asks) == 5


def test_self_describing_layout_rejects_disagreeing_caller_mode() -> None:
    packet = encode(SubscriptionMode.LTP, 1, "3045", {"last_traded_price": 1}, layout=LAYOUT_V2)

    with pytest.raises(DecodeError) as excinfo:
        decode(packet, SubscriptionMode.QUOTE, layout=LAYOUT_V2)
    assert excinfo.value.kind is ErrorKind.MODE_MISMATCH


def test_self_describing_layout_rejects_unknown_indicator() -> None:
    packet = encode(
        SubscriptionMode.LTP, 1, "3045", {"last_traded_price": 1}, layout=LAYOUT_V2, indicator=9
    )

    with pytest.raises(DecodeError) as excinfo:
        decode(packet, layout=LAYOUT_V2)
    assert excinfo.value.kind is ErrorKind.UNKNOWN_MODE


def test_ticks_are_immutable_tagged_variants() -> None:
    tick = decode(encode(SubscriptionMode.QUOTE, 1, "3045", QUOTE_VALUES), "quote")

    with pytest.raises(ValidationError):
        tick.last_traded_price = 1.0  # type: ignore[misc]

    restored = TypeAdapter(Tick).validate_python(tick.model_dump())
    assert isinstance(restored, QuoteTick)
    assert restored.model_dump() == tick.model_dump()


def test_instrument_tokens_order_by_exchange_then_token() -> None:
    tokens = [
        InstrumentToken(ExchangeType.BSE_CM, "1"),
        InstrumentToken(ExchangeType.NSE_CM, "3045"),
        InstrumentToken(ExchangeType.NSE_CM, "2885"),
    ]

    assert sorted(tokens) == [tokens[2], tokens[1], tokens[0]]
    assert InstrumentToken(ExchangeType.NSE_CM, "3045") == tokens[1]
    assert len({*tokens, InstrumentToken(ExchangeType.NSE_CM, "3045")}) == 3


@pytest.mark.parametrize("millis", [2**62, -(2**62)])
def test_unrepresentable_exchange_timestamp_is_decode_error(millis: int) -> None:
    packet = encode(
        SubscriptionMode.LTP,
        1,
        "3045",
        {"last_traded_price": 10004, "exchange_timestamp": millis},
        layout=LAYOUT_V2,
    )
    assert len(packet) == 47

    with pytest.raises(DecodeError) as excinfo:
        decode(packet, layout=LAYOUT_V2)
    assert excinfo.value.kind is ErrorKind.FIELD_OUT_OF_RANGE
    assert "exchange_timestamp" in excinfo.value.detail
