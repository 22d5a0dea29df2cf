"""Hyperliquid public websocket transport for live trades."""

from __future__ import annotations

import json
import logging

import aiohttp

from .interface import FeedTransport

logger = logging.getLogger(__name__)

HYPERLIQUID_WS_URL = "wss://api.hyperliquid.xyz/ws"

_END_OF_STREAM = {aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED}


class HyperliquidTransport(FeedTransport):
    """FeedTransport over the Hyperliquid websocket API.

    Owns its own aiohttp ClientSession so a closed transport leaves nothing
    behind. No connect timeout is applied: a pending handshake keeps the
    dashboard in the "connecting" state until it resolves either way.
    """

    def __init__(self, url: str = HYPERLIQUID_WS_URL, heartbeat: float = 20.0) -> None:
        self._url = url
        self._heartbeat = heartbeat
        self._session: aiohttp.ClientSession | None = None
        self._ws: aiohttp.ClientWebSocketResponse | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        self._session = aiohttp.ClientSession()
        try:
            self._ws = await self._session.ws_connect(self._url, heartbeat=self._heartbeat)
        except Exception:
            await self._session.close()
            self._session = None
            raise
        logger.debug("Hyperliquid websocket connected: %s", self._url)

    async def send(self, frame: dict) -> None:
        if not self.is_open:
            raise ConnectionError("websocket is not open")
        await self._ws.send_str(json.dumps(frame))

    async def receive(self) -> str | None:
        ws = self._ws
        if ws is None:
            return None
        while True:
            msg = await ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                return msg.data
            if msg.type == aiohttp.WSMsgType.ERROR:
                logger.warning("Hyperliquid websocket error: %s", ws.exception())
                return None
            if msg.type in _END_OF_STREAM:
                return None
            # Binary, ping and pong frames carry no trades

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        session, self._session = self._session, None
        if ws is not None and not ws.closed:
            await ws.close()
        if session is not None:
            await session.close()
