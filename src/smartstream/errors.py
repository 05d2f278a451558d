"""Error family raised by the framer and decoder, plus the outward error event."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    """Discriminant carried by every :class:`FeedError`."""

    INVALID_PACKET_COUNT = "invalid_packet_count"
    TRUNCATED_MESSAGE = "truncated_message"
    TRAILING_BYTES = "trailing_bytes"
    UNKNOWN_EXCHANGE = "unknown_exchange"
    SHORT_PACKET = "short_packet"
    UNKNOWN_MODE = "unknown_mode"
    PAYLOAD_LENGTH_MISMATCH = "payload_length_mismatch"
    MODE_MISMATCH = "mode_mismatch"
    FIELD_OUT_OF_RANGE = "field_out_of_range"


class FeedError(Exception):
    """Base class for protocol violations found while reading the feed."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(f"{kind.value}: {detail}" if detail else kind.value)


class FrameError(FeedError):
    """A transport message could not be split into packets."""


class DecodeError(FeedError):
    """A single packet could not be decoded into a tick."""


class ErrorCategory(str, Enum):
    """Reporting channel for :class:`FeedErrorEvent`."""

    GENERIC = "generic"
    PROTOCOL = "protocol"
    MESSAGE = "message"


class FeedErrorEvent(BaseModel):
    """Single error record handed to the subscriber's error callback."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    category: ErrorCategory = Field(..., description="Reporting channel")
    kind: Optional[ErrorKind] = Field(
        None, description="Protocol error kind when category is protocol"
    )
    diagnostic: str = Field("", description="Free-form human readable detail")
    packet_index: Optional[int] = Field(
        None, description="Position of the failing packet inside its message"
    )
    error: Optional[BaseException] = Field(
        None, exclude=True, description="Original exception, if any"
    )

    @classmethod
    def from_exception(
        cls, exc: BaseException, packet_index: Optional[int] = None
    ) -> "FeedErrorEvent":
        if isinstance(exc, FeedError):
            return cls(
                category=ErrorCategory.PROTOCOL,
                kind=exc.kind,
                diagnostic=str(exc),
                packet_index=packet_index,
                error=exc,
            )
        return cls(
            category=ErrorCategory.GENERIC,
            diagnostic=f"{type(exc).__name__}: {exc}",
            packet_index=packet_index,
            error=exc,
        )

    @classmethod
    def from_message(cls, message: str) -> "FeedErrorEvent":
        return cls(category=ErrorCategory.MESSAGE, diagnostic=message)


__all__ = [
    "DecodeError",
    "ErrorCategory",
    "ErrorKind",
    "FeedError",
    "FeedErrorEvent",
    "FrameError",
]
