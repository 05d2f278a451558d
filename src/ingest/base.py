"""Reconnect loop shared by streaming clients."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Callable, Optional


logger = logging.getLogger(__name__)


@dataclass
class BackoffConfig:
    """Configuration for exponential backoff between reconnect attempts."""

    initial: float = 1.0
    maximum: float = 30.0
    multiplier: float = 2.0

    def delays(self) -> Iterator[float]:
        delay = self.initial
        while True:
            yield delay
            delay = min(delay * self.multiplier, self.maximum)


class IngestClient(ABC):
    """Start/stop lifecycle around a connect/run/disconnect cycle."""

    def __init__(
        self,
        name: str,
        backoff: Optional[BackoffConfig] = None,
        on_failure: Optional[Callable[[BaseException], None]] = None,
    ) -> None:
        self.name = name
        self._backoff = backoff or BackoffConfig()
        self._on_failure = on_failure
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def start(self) -> None:
        """Start the client loop in a background task."""

        if self._task and not self._task.done():
            logger.debug("%s already running", self.name)
            return

        self._stopped.clear()
        self._task = asyncio.create_task(self._run_with_retries(), name=f"{self.name}-loop")

    async def stop(self) -> None:
        """Signal the client to stop and wait for the background task."""

        self._stopped.set()
        if self._task:
            await self._task

    async def _run_with_retries(self) -> None:
        delays = self._backoff.delays()
        while not self._stopped.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:  # pragma: no cover - cooperative shutdown
                raise
            except Exception as exc:
                logger.exception("%s errored: %s", self.name, exc)
                if self._on_failure is not None:
                    self._on_failure(exc)
            else:
                # A clean session resets the backoff schedule.
                delays = self._backoff.delays()
            if self._stopped.is_set():
                break
            delay = next(delays)
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        logger.info("%s stopped", self.name)

    @abstractmethod
    async def run_once(self) -> None:
        """Implement one full connect/run/disconnect cycle."""


__all__ = ["BackoffConfig", "IngestClient"]
