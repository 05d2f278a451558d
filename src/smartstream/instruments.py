"""Decode the mode-independent packet header into an instrument identity."""

from __future__ import annotations

from typing import NamedTuple

from .errors import DecodeError, ErrorKind
from .models import ExchangeType, InstrumentToken

INDICATOR_OFFSET = 0
EXCHANGE_OFFSET = 1
TOKEN_OFFSET = 2
TOKEN_WIDTH = 25
HEADER_SIZE = TOKEN_OFFSET + TOKEN_WIDTH


class PacketHeader(NamedTuple):
    indicator: int
    instrument: InstrumentToken


def decode_token(raw: bytes) -> str:
    """Strip trailing NUL padding and decode the rest as text.

    An all-padding field is an unused slot and decodes to ``""``.
    """

    return raw.rstrip(b"\x00").decode("utf-8", errors="replace")


def resolve_header(packet: bytes) -> PacketHeader:
    """Read indicator, exchange and token from the first 27 bytes."""

    if len(packet) < HEADER_SIZE:
        raise DecodeError(
            ErrorKind.SHORT_PACKET,
            f"header needs {HEADER_SIZE} bytes, got {len(packet)}",
        )
    exchange = ExchangeType.from_wire(packet[EXCHANGE_OFFSET])
    token = decode_token(bytes(packet[TOKEN_OFFSET:HEADER_SIZE]))
    return PacketHeader(packet[INDICATOR_OFFSET], InstrumentToken(exchange, token))


def encode_header(indicator: int, exchange: int, token: str) -> bytes:
    raw = token.encode("utf-8")
    if len(raw) > TOKEN_WIDTH:
        raise ValueError(f"token {token!r} longer than {TOKEN_WIDTH} bytes")
    return bytes((indicator, exchange)) + raw.ljust(TOKEN_WIDTH, b"\x00")


__all__ = [
    "HEADER_SIZE",
    "PacketHeader",
    "TOKEN_WIDTH",
    "decode_token",
    "encode_header",
    "resolve_header",
]
