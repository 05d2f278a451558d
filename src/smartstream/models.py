"""Value types produced by the tick decoder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import DecodeError, ErrorKind

DEPTH_LEVELS = 5


class ExchangeType(IntEnum):
    """Exchange segments known to the feed, keyed by their wire byte."""

    NSE_CM = 1
    NSE_FO = 2
    BSE_CM = 3
    BSE_FO = 4
    MCX_FO = 5
    NCX_FO = 7
    CDE_FO = 13

    @classmethod
    def from_wire(cls, value: int) -> "ExchangeType":
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(
                ErrorKind.UNKNOWN_EXCHANGE, f"exchange byte 0x{value:02x}"
            ) from None

    @classmethod
    def parse(cls, value: object) -> "ExchangeType":
        """Accept a member, a wire int or a member name such as ``"nse_cm"``."""

        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls.from_wire(value)
        name = str(value).strip().upper()
        try:
            return cls[name]
        except KeyError:
            raise DecodeError(ErrorKind.UNKNOWN_EXCHANGE, f"exchange {value!r}") from None


class SubscriptionMode(IntEnum):
    """Subscription mode; fixes which tick variant a packet decodes to."""

    LTP = 1
    QUOTE = 2
    SNAP_QUOTE = 3

    @classmethod
    def parse(cls, value: object) -> "SubscriptionMode":
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                raise DecodeError(ErrorKind.UNKNOWN_MODE, f"mode {value!r}") from None
        name = str(value).strip().upper().replace("-", "_")
        if name == "SNAPQUOTE":
            name = "SNAP_QUOTE"
        try:
            return cls[name]
        except KeyError:
            raise DecodeError(ErrorKind.UNKNOWN_MODE, f"mode {value!r}") from None


@dataclass(frozen=True, order=True)
class InstrumentToken:
    """Exchange plus token text; the routing key for ticks."""

    exchange: ExchangeType
    token: str

    @property
    def is_empty(self) -> bool:
        return not self.token

    def __str__(self) -> str:
        return f"{self.exchange.name}:{self.token}"


class DepthLevel(BaseModel):
    """One price level of the order book ladder."""

    model_config = ConfigDict(frozen=True)

    price: float
    quantity: int
    orders: int


class _TickFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    instrument: InstrumentToken = Field(..., description="Exchange and token")
    last_traded_price: float = Field(..., description="LTP in currency units")
    exchange_timestamp: Optional[datetime] = Field(
        None, description="Exchange timestamp when the layout carries one"
    )
    sequence_number: Optional[int] = Field(
        None, description="Feed sequence number when the layout carries one"
    )


class _QuoteFields(_TickFields):
    last_traded_quantity: int
    average_traded_price: float
    volume_traded_today: int
    total_buy_quantity: int
    total_sell_quantity: int
    open_price: float
    high_price: float
    low_price: float
    close_price: float
    last_trade_time: datetime
    net_change: Optional[float] = Field(
        None, description="Change against close, only when the payload carries it"
    )
    percent_change: Optional[float] = Field(
        None, description="Percent change against close, only when carried"
    )


class LTPTick(_TickFields):
    mode: Literal[SubscriptionMode.LTP] = SubscriptionMode.LTP


class QuoteTick(_QuoteFields):
    mode: Literal[SubscriptionMode.QUOTE] = SubscriptionMode.QUOTE


class SnapQuoteTick(_QuoteFields):
    """Quote plus five best bid and ask levels, kept in wire order."""

    mode: Literal[SubscriptionMode.SNAP_QUOTE] = SubscriptionMode.SNAP_QUOTE
    best_bids: tuple[DepthLevel, ...] = Field(
        ..., min_length=DEPTH_LEVELS, max_length=DEPTH_LEVELS
    )
    best_asks: tuple[DepthLevel, ...] = Field(
        ..., min_length=DEPTH_LEVELS, max_length=DEPTH_LEVELS
    )


Tick = Annotated[Union[LTPTick, QuoteTick, SnapQuoteTick], Field(discriminator="mode")]


__all__ = [
    "DEPTH_LEVELS",
    "DepthLevel",
    "ExchangeType",
    "InstrumentToken",
    "LTPTick",
    "QuoteTick",
    "SnapQuoteTick",
    "SubscriptionMode",
    "Tick",
]
