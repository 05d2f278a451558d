"""Common utilities shared across the feed client."""

from .bus import EventBus  # noqa: F401
from .config import FeedSettings, load_config, load_settings  # noqa: F401
from .logging import setup_logging  # noqa: F401

__all__ = [
    "EventBus",
    "FeedSettings",
    "load_config",
    "load_settings",
    "setup_logging",
]
