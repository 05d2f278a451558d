"""Streaming collaborators around the tick codec.

Modules in this package connect to the feed, keep the per-instrument
subscription modes and push decoded ticks into the shared event bus.
"""

from .base import BackoffConfig, IngestClient  # noqa: F401
from .dispatcher import DispatchStats, TickDispatcher, log_feed_error  # noqa: F401
from .smartstream import SmartStreamClient  # noqa: F401
from .subscriptions import SubscriptionTable  # noqa: F401

__all__ = [
    "BackoffConfig",
    "DispatchStats",
    "IngestClient",
    "SmartStreamClient",
    "SubscriptionTable",
    "TickDispatcher",
    "log_feed_error",
]
