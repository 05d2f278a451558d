"""Versioned packet layouts.

A :class:`PacketLayout` lists, per subscription mode, the fixed-width fields
that follow the 27-byte header. Feed revisions are added as new layouts
(either in :data:`LAYOUTS` or from configuration through
:func:`layout_from_mapping`) rather than by editing the decoder.

Every shipped layout is big-endian and integer only. Price fields are
integers in hundredths of a currency unit.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from .errors import DecodeError, ErrorKind
from .instruments import HEADER_SIZE
from .models import DEPTH_LEVELS, SubscriptionMode

PRICE_SCALE = 100

_INTEGER_CODES = frozenset("bBhHiIqQ")
_BYTE_ORDERS = {"big": ">", "little": "<", ">": ">", "<": "<", "!": ">"}

PREAMBLE_FIELDS = frozenset({"sequence_number", "exchange_timestamp"})
LTP_FIELDS = frozenset({"last_traded_price"})
QUOTE_FIELDS = frozenset(
    {
        "last_traded_quantity",
        "average_traded_price",
        "volume_traded_today",
        "total_buy_quantity",
        "total_sell_quantity",
        "open_price",
        "high_price",
        "low_price",
        "close_price",
        "last_trade_time",
    }
)
DEPTH_FIELDS = frozenset({"price", "quantity", "orders"})
CHANGE_FIELDS = frozenset({"net_change", "percent_change"})


class FieldKind(str, Enum):
    PRICE = "price"
    COUNT = "count"
    EPOCH_SECONDS = "epoch_seconds"
    EPOCH_MILLIS = "epoch_millis"


@dataclass(frozen=True)
class FieldSpec:
    """One fixed-width integer field and how to interpret it."""

    name: str
    code: str
    kind: FieldKind = FieldKind.COUNT

    def __post_init__(self) -> None:
        if self.code not in _INTEGER_CODES:
            raise ValueError(f"field {self.name!r}: unsupported struct code {self.code!r}")
        object.__setattr__(self, "kind", FieldKind(self.kind))

    def convert(self, raw: int) -> Any:
        if self.kind is FieldKind.PRICE:
            return raw / PRICE_SCALE
        if self.kind is FieldKind.COUNT:
            return raw
        seconds = raw if self.kind is FieldKind.EPOCH_SECONDS else raw / 1000
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise DecodeError(
                ErrorKind.FIELD_OUT_OF_RANGE,
                f"{self.name}={raw} is not a representable {self.kind.value} timestamp",
            ) from None


def _check_names(
    section: str,
    fields: tuple[FieldSpec, ...],
    allowed: frozenset[str],
    required: frozenset[str],
) -> None:
    names = [spec.name for spec in fields]
    if len(set(names)) != len(names):
        raise ValueError(f"{section}: duplicate field names {names}")
    unknown = set(names) - allowed
    if unknown:
        raise ValueError(f"{section}: unknown fields {sorted(unknown)}")
    missing = required - set(names)
    if missing:
        raise ValueError(f"{section}: missing fields {sorted(missing)}")


@dataclass(frozen=True)
class PacketLayout:
    """Field layout of one feed revision."""

    version: int
    self_describing: bool
    ltp: tuple[FieldSpec, ...]
    quote: tuple[FieldSpec, ...]
    depth_level: tuple[FieldSpec, ...]
    preamble: tuple[FieldSpec, ...] = ()
    change: tuple[FieldSpec, ...] = ()
    byte_order: str = ">"
    depth_levels: int = DEPTH_LEVELS
    _structs: dict[SubscriptionMode, struct.Struct] = field(
        init=False, repr=False, compare=False
    )
    _trailer: struct.Struct = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.byte_order not in _BYTE_ORDERS:
            raise ValueError(f"unsupported byte order {self.byte_order!r}")
        object.__setattr__(self, "byte_order", _BYTE_ORDERS[self.byte_order])
        if self.depth_levels != DEPTH_LEVELS:
            raise ValueError(f"depth ladder is fixed at {DEPTH_LEVELS} levels")
        _check_names("preamble", self.preamble, PREAMBLE_FIELDS, frozenset())
        _check_names("ltp", self.ltp, LTP_FIELDS, LTP_FIELDS)
        _check_names("quote", self.quote, QUOTE_FIELDS, QUOTE_FIELDS)
        _check_names("depth_level", self.depth_level, DEPTH_FIELDS, DEPTH_FIELDS)
        _check_names("change", self.change, CHANGE_FIELDS, frozenset())

        structs = {
            mode: struct.Struct(
                self.byte_order + "".join(spec.code for spec in self.fields_for(mode))
            )
            for mode in SubscriptionMode
        }
        object.__setattr__(self, "_structs", structs)
        trailer = struct.Struct(self.byte_order + "".join(spec.code for spec in self.change))
        object.__setattr__(self, "_trailer", trailer)

    def fields_for(self, mode: SubscriptionMode) -> tuple[FieldSpec, ...]:
        """Fields after the header for ``mode``, depth levels expanded."""

        fields = self.preamble + self.ltp
        if mode is SubscriptionMode.LTP:
            return fields
        fields += self.quote
        if mode is SubscriptionMode.SNAP_QUOTE:
            fields += self.depth_level * (2 * self.depth_levels)
        return fields

    def payload_struct(self, mode: SubscriptionMode) -> struct.Struct:
        return self._structs[mode]

    @property
    def trailer_struct(self) -> struct.Struct:
        return self._trailer

    def has_trailer(self, mode: SubscriptionMode) -> bool:
        return bool(self.change) and mode is not SubscriptionMode.LTP

    def packet_size(self, mode: SubscriptionMode, *, with_trailer: bool = False) -> int:
        size = HEADER_SIZE + self._structs[mode].size
        if with_trailer and self.has_trailer(mode):
            size += self._trailer.size
        return size


def _price(name: str, code: str = "i") -> FieldSpec:
    return FieldSpec(name, code, FieldKind.PRICE)


def _count(name: str, code: str = "i") -> FieldSpec:
    return FieldSpec(name, code, FieldKind.COUNT)


_QUOTE_V1 = (
    _count("last_traded_quantity"),
    _price("average_traded_price"),
    _count("volume_traded_today", "q"),
    _count("total_buy_quantity", "q"),
    _count("total_sell_quantity", "q"),
    _price("open_price"),
    _price("high_price"),
    _price("low_price"),
    _price("close_price"),
    FieldSpec("last_trade_time", "i", FieldKind.EPOCH_SECONDS),
)

LAYOUT_V1 = PacketLayout(
    version=1,
    self_describing=False,
    ltp=(_price("last_traded_price"),),
    quote=_QUOTE_V1,
    depth_level=(_count("quantity"), _price("price"), _count("orders", "h")),
    change=(_price("net_change"), _price("percent_change")),
)

LAYOUT_V2 = replace(
    LAYOUT_V1,
    version=2,
    self_describing=True,
    preamble=(
        _count("sequence_number", "q"),
        FieldSpec("exchange_timestamp", "q", FieldKind.EPOCH_MILLIS),
    ),
)

LAYOUTS: dict[int, PacketLayout] = {layout.version: layout for layout in (LAYOUT_V1, LAYOUT_V2)}
DEFAULT_LAYOUT = LAYOUT_V1


def _fields_from(raw: object, section: str) -> tuple[FieldSpec, ...]:
    if not isinstance(raw, (list, tuple)):
        raise ValueError(f"{section}: expected a list of fields, got {type(raw).__name__}")
    fields: list[FieldSpec] = []
    for item in raw:
        if not isinstance(item, Mapping) or "name" not in item or "code" not in item:
            raise ValueError(f"{section}: each field needs 'name' and 'code', got {item!r}")
        fields.append(
            FieldSpec(str(item["name"]), str(item["code"]), item.get("kind", FieldKind.COUNT))
        )
    return tuple(fields)


def layout_from_mapping(data: Mapping[str, Any]) -> PacketLayout:
    """Build a layout from configuration.

    ``extends`` names a registered version whose sections are reused for any
    section the mapping does not spell out.
    """

    if "version" not in data:
        raise ValueError("layout mapping needs a 'version'")
    version = int(data["version"])
    sections = ("ltp", "quote", "depth_level", "preamble", "change")

    base_version = data.get("extends")
    if base_version is None and not any(key in data for key in sections):
        if version not in LAYOUTS:
            raise ValueError(f"unknown layout version {version}")
        return LAYOUTS[version]

    overrides: dict[str, Any] = {
        key: _fields_from(data[key], key) for key in sections if key in data
    }
    if "self_describing" in data:
        overrides["self_describing"] = bool(data["self_describing"])
    if "byte_order" in data:
        overrides["byte_order"] = str(data["byte_order"])

    if base_version is not None:
        base = LAYOUTS.get(int(base_version))
        if base is None:
            raise ValueError(f"layout extends unknown version {base_version}")
        return replace(base, version=version, **overrides)

    missing = [key for key in ("ltp", "quote", "depth_level") if key not in overrides]
    if missing:
        raise ValueError(f"layout {version} is missing sections {missing}")
    return PacketLayout(
        version=version,
        self_describing=overrides.pop("self_describing", False),
        **overrides,
    )


def resolve_layout(value: object) -> PacketLayout:
    """Turn a config value (version int or mapping) into a layout."""

    if isinstance(value, PacketLayout):
        return value
    if value is None:
        return DEFAULT_LAYOUT
    if isinstance(value, Mapping):
        return layout_from_mapping(value)
    version = int(value)  # type: ignore[call-overload]
    if version not in LAYOUTS:
        raise ValueError(f"unknown layout version {version}")
    return LAYOUTS[version]


__all__ = [
    "DEFAULT_LAYOUT",
    "FieldKind",
    "FieldSpec",
    "LAYOUTS",
    "LAYOUT_V1",
    "LAYOUT_V2",
    "PRICE_SCALE",
    "PacketLayout",
    "layout_from_mapping",
    "resolve_layout",
]
