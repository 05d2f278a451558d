"""SmartStream websocket client feeding binary messages to the dispatcher."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import aiohttp

from common.config import ConnectionSettings

from .base import BackoffConfig, IngestClient
from .dispatcher import TickDispatcher

logger = logging.getLogger(__name__)

PING = "ping"
PONG = "pong"
IDLE_SECONDS = 5.0


class SmartStreamClient(IngestClient):
    """Subscribe to the configured instruments and decode every binary frame."""

    def __init__(
        self,
        dispatcher: TickDispatcher,
        connection: ConnectionSettings,
        session: aiohttp.ClientSession | None = None,
        backoff: Optional[BackoffConfig] = None,
    ) -> None:
        super().__init__(
            name="smartstream",
            backoff=backoff,
            on_failure=dispatcher.report_exception,
        )
        self.dispatcher = dispatcher
        self.connection = connection
        self._session = session

    def handshake_headers(self) -> dict[str, str]:
        headers = {
            "x-api-key": self.connection.api_key,
            "x-client-code": self.connection.client_code,
            "x-feed-token": self.connection.feed_token,
        }
        if self.connection.authorization:
            headers["Authorization"] = self.connection.authorization
        return {key: value for key, value in headers.items() if value}

    async def run_once(self) -> None:
        if not len(self.dispatcher.subscriptions):
            logger.warning("SmartStream client started without subscriptions; sleeping")
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=IDLE_SECONDS)
            except asyncio.TimeoutError:
                pass
            return

        session = self._session or aiohttp.ClientSession()
        try:
            async with session.ws_connect(
                self.connection.url, headers=self.handshake_headers()
            ) as ws:
                for request in self.dispatcher.subscriptions.subscribe_requests():
                    await ws.send_json(request)
                logger.info(
                    "Subscribed to %d SmartStream instruments",
                    len(self.dispatcher.subscriptions),
                )

                heartbeat = asyncio.create_task(self._heartbeat(ws), name="smartstream-ping")
                closer = asyncio.create_task(self._close_on_stop(ws), name="smartstream-stop")
                try:
                    async for msg in ws:
                        if msg.type == aiohttp.WSMsgType.BINARY:
                            self.dispatcher.handle_message(msg.data)
                        elif msg.type == aiohttp.WSMsgType.TEXT:
                            self._handle_text(msg.data)
                        elif msg.type in (aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                            logger.warning("SmartStream websocket closed: %s", msg)
                            break
                finally:
                    for task in (heartbeat, closer):
                        task.cancel()
                    await asyncio.gather(heartbeat, closer, return_exceptions=True)
        finally:
            if self._session is None:
                await session.close()

    def _handle_text(self, raw: str) -> None:
        if raw.strip().lower() == PONG:
            return

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            self.dispatcher.report_text(raw)
            return

        if isinstance(payload, dict) and payload.get("errorCode"):
            self.dispatcher.report_text(
                f"{payload.get('errorCode')}: {payload.get('errorMessage', '')}"
                f" (correlationID={payload.get('correlationID', '')})"
            )
            return
        logger.debug("Unhandled SmartStream text frame: %s", raw)

    async def _heartbeat(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        while not ws.closed:
            await asyncio.sleep(self.connection.heartbeat_seconds)
            try:
                await ws.send_str(PING)
            except (aiohttp.ClientError, ConnectionResetError) as exc:
                # The receive loop sees the close and ends the session.
                logger.debug("SmartStream ping failed: %s", exc)
                return

    async def _close_on_stop(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        await self._stopped.wait()
        await ws.close()


__all__ = ["SmartStreamClient"]
