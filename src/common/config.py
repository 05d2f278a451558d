"""Configuration helpers for loading YAML files with environment expansion."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from smartstream import ExchangeType, FeedError, PacketLayout, SubscriptionMode, resolve_layout

DEFAULT_FEED_URL = "wss://smartapisocket.angelone.in/smart-stream"


def load_config(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Load a YAML configuration file and expand environment variables.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Parsed configuration dictionary. Returns an empty dict if the file is
        empty.
    """

    config_path = Path(path)
    raw_text = config_path.read_text()
    expanded = os.path.expandvars(raw_text)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, Mapping):
        raise ValueError(f"Config root must be a mapping, got {type(data)!r}")
    return dict(data)


class ConnectionSettings(BaseModel):
    """Websocket endpoint and the credentials sent as handshake headers."""

    url: str = Field(DEFAULT_FEED_URL, description="Streaming websocket URL")
    api_key: str = Field("", description="x-api-key header")
    client_code: str = Field("", description="x-client-code header")
    feed_token: str = Field("", description="x-feed-token header")
    authorization: str = Field("", description="Bearer token for the Authorization header")
    heartbeat_seconds: float = Field(30.0, gt=0, description="Interval between text pings")
    framed: bool = Field(
        False, description="Messages carry a packet count and length prefixes"
    )


class SubscriptionSettings(BaseModel):
    mode: SubscriptionMode
    exchange: ExchangeType
    tokens: list[str] = Field(default_factory=list)

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, value: object) -> SubscriptionMode:
        try:
            return SubscriptionMode.parse(value)
        except FeedError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("exchange", mode="before")
    @classmethod
    def _parse_exchange(cls, value: object) -> ExchangeType:
        try:
            return ExchangeType.parse(value)
        except FeedError as exc:
            raise ValueError(str(exc)) from exc

    @field_validator("tokens", mode="before")
    @classmethod
    def _stringify_tokens(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        return [str(token).strip() for token in value if str(token).strip()]  # type: ignore[union-attr]


class LoggingSettings(BaseModel):
    level: str = "INFO"
    file: Optional[Path] = None


class FeedSettings(BaseModel):
    """Validated view of the runtime configuration file."""

    feed: ConnectionSettings = Field(default_factory=ConnectionSettings)
    layout: Any = Field(None, description="Layout version or a layout mapping")
    subscriptions: list[SubscriptionSettings] = Field(default_factory=list)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def packet_layout(self) -> PacketLayout:
        return resolve_layout(self.layout)


def load_settings(path: str | os.PathLike[str]) -> FeedSettings:
    """Load and validate the YAML configuration at ``path``."""

    return FeedSettings.model_validate(load_config(path))


__all__ = [
    "ConnectionSettings",
    "FeedSettings",
    "LoggingSettings",
    "SubscriptionSettings",
    "load_config",
    "load_settings",
]
