"""Decode one packet into a tick variant."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from .errors import DecodeError, ErrorKind
from .instruments import HEADER_SIZE, encode_header, resolve_header
from .layouts import DEFAULT_LAYOUT, FieldSpec, PacketLayout
from .models import (
    DepthLevel,
    InstrumentToken,
    LTPTick,
    QuoteTick,
    SnapQuoteTick,
    SubscriptionMode,
    Tick,
)


def select_mode(
    indicator: int, mode: object, layout: PacketLayout
) -> SubscriptionMode:
    """Pick the subscription mode a packet decodes under."""

    if not layout.self_describing:
        if mode is None:
            raise DecodeError(
                ErrorKind.UNKNOWN_MODE,
                f"layout v{layout.version} needs the subscription mode from the caller",
            )
        return SubscriptionMode.parse(mode)

    packet_mode = SubscriptionMode.parse(indicator)
    if mode is None:
        return packet_mode
    expected = SubscriptionMode.parse(mode)
    if expected is not packet_mode:
        raise DecodeError(
            ErrorKind.MODE_MISMATCH,
            f"packet says {packet_mode.name}, caller expected {expected.name}",
        )
    return packet_mode


def _check_length(size: int, mode: SubscriptionMode, layout: PacketLayout) -> bool:
    """Return True when the optional change trailer is present."""

    expected = layout.packet_size(mode)
    if size == expected:
        return False
    if size < expected:
        raise DecodeError(
            ErrorKind.SHORT_PACKET,
            f"{mode.name} packet needs {expected} bytes, got {size}",
        )
    if layout.has_trailer(mode) and size == layout.packet_size(mode, with_trailer=True):
        return True
    raise DecodeError(
        ErrorKind.PAYLOAD_LENGTH_MISMATCH,
        f"{mode.name} packet should be {expected} bytes, got {size}",
    )


def _convert(specs: Sequence[FieldSpec], raw: Sequence[int]) -> dict[str, Any]:
    return {spec.name: spec.convert(value) for spec, value in zip(specs, raw)}


def _ladder(
    specs: Sequence[FieldSpec], raw: Sequence[int], levels: int
) -> tuple[DepthLevel, ...]:
    width = len(specs)
    return tuple(
        DepthLevel(**_convert(specs, raw[index * width : (index + 1) * width]))
        for index in range(levels)
    )


def decode(
    packet: bytes,
    mode: object = None,
    *,
    layout: PacketLayout = DEFAULT_LAYOUT,
) -> Tick:
    """Decode ``packet`` into an :class:`LTPTick`, :class:`QuoteTick` or
    :class:`SnapQuoteTick`.

    ``mode`` is required for layouts whose first byte is not the mode
    selector. Raises :class:`DecodeError` for any protocol violation.
    """

    header = resolve_header(packet)
    selected = select_mode(header.indicator, mode, layout)
    return decode_payload(packet, header.instrument, selected, layout)


def decode_payload(
    packet: bytes,
    instrument: InstrumentToken,
    mode: SubscriptionMode,
    layout: PacketLayout = DEFAULT_LAYOUT,
) -> Tick:
    """Decode the mode-specific part of an already resolved packet."""

    has_trailer = _check_length(len(packet), mode, layout)
    payload = layout.payload_struct(mode)
    raw = payload.unpack_from(packet, HEADER_SIZE)

    specs = layout.fields_for(mode)
    scalar_count = len(layout.preamble) + len(layout.ltp)
    if mode is not SubscriptionMode.LTP:
        scalar_count += len(layout.quote)
    values = _convert(specs[:scalar_count], raw[:scalar_count])
    values["instrument"] = instrument

    if mode is SubscriptionMode.LTP:
        return LTPTick(**values)

    if has_trailer:
        trailer = layout.trailer_struct.unpack_from(packet, HEADER_SIZE + payload.size)
        values.update(_convert(layout.change, trailer))

    if mode is SubscriptionMode.QUOTE:
        return QuoteTick(**values)

    depth = raw[scalar_count:]
    half = len(layout.depth_level) * layout.depth_levels
    return SnapQuoteTick(
        best_bids=_ladder(layout.depth_level, depth[:half], layout.depth_levels),
        best_asks=_ladder(layout.depth_level, depth[half:], layout.depth_levels),
        **values,
    )


def encode(
    mode: SubscriptionMode,
    exchange: int,
    token: str,
    values: dict[str, int],
    *,
    layout: PacketLayout = DEFAULT_LAYOUT,
    bids: Optional[Sequence[dict[str, int]]] = None,
    asks: Optional[Sequence[dict[str, int]]] = None,
    indicator: Optional[int] = None,
) -> bytes:
    """Build a packet from raw wire integers; the inverse of :func:`decode`.

    ``values`` holds raw integers keyed by field name (prices already in
    hundredths). Change fields are written only when every one is supplied.
    """

    if indicator is None:
        indicator = int(mode)
    specs = layout.fields_for(mode)
    scalar_count = len(specs)
    raw: list[int] = []
    if mode is SubscriptionMode.SNAP_QUOTE:
        scalar_count -= len(layout.depth_level) * 2 * layout.depth_levels
        ladders = list(bids or ()) + list(asks or ())
        if len(ladders) != 2 * layout.depth_levels:
            raise ValueError(f"need {layout.depth_levels} bid and ask levels")
    else:
        ladders = []
    raw.extend(values.get(spec.name, 0) for spec in specs[:scalar_count])
    for level in ladders:
        raw.extend(level[spec.name] for spec in layout.depth_level)

    body = layout.payload_struct(mode).pack(*raw)
    if layout.has_trailer(mode) and all(spec.name in values for spec in layout.change):
        body += layout.trailer_struct.pack(*(values[spec.name] for spec in layout.change))
    return encode_header(indicator, exchange, token) + body


__all__ = ["decode", "decode_payload", "encode", "select_mode"]
