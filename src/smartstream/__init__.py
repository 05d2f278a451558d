"""Binary market-data codec for the SmartStream feed.

The package is pure: it performs no I/O and never logs. ``frame`` splits a
transport message into packets and ``decode`` turns a packet into a tick.
"""

from .decoder import decode, encode  # noqa: F401
from .errors import (  # noqa: F401
    DecodeError,
    ErrorCategory,
    ErrorKind,
    FeedError,
    FeedErrorEvent,
    FrameError,
)
from .framer import encode_frame, frame  # noqa: F401
from .instruments import PacketHeader, resolve_header  # noqa: F401
from .layouts import (  # noqa: F401
    DEFAULT_LAYOUT,
    LAYOUTS,
    FieldKind,
    FieldSpec,
    PacketLayout,
    layout_from_mapping,
    resolve_layout,
)
from .models import (  # noqa: F401
    DepthLevel,
    ExchangeType,
    InstrumentToken,
    LTPTick,
    QuoteTick,
    SnapQuoteTick,
    SubscriptionMode,
    Tick,
)

__all__ = [
    "DEFAULT_LAYOUT",
    "DecodeError",
    "DepthLevel",
    "ErrorCategory",
    "ErrorKind",
    "ExchangeType",
    "FeedError",
    "FeedErrorEvent",
    "FieldKind",
    "FieldSpec",
    "FrameError",
    "InstrumentToken",
    "LAYOUTS",
    "LTPTick",
    "PacketHeader",
    "PacketLayout",
    "QuoteTick",
    "SnapQuoteTick",
    "SubscriptionMode",
    "Tick",
    "decode",
    "encode",
    "encode_frame",
    "frame",
    "layout_from_mapping",
    "resolve_header",
    "resolve_layout",
]
