"""Connection lifecycle for a single trade subscription."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from .interface import FeedTransport
from .models import ConnectionStatus

logger = logging.getLogger(__name__)

MessageCallback = Callable[[int, str], None]
StateCallback = Callable[[int, "ConnectionState"], None]


class ConnectionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"

    @property
    def status(self) -> ConnectionStatus:
        if self is ConnectionState.OPEN:
            return ConnectionStatus.CONNECTED
        if self is ConnectionState.CONNECTING:
            return ConnectionStatus.CONNECTING
        return ConnectionStatus.DISCONNECTED


def control_frame(method: str, asset: str) -> dict:
    """Build a subscribe/unsubscribe frame for the trades channel."""
    return {"method": method, "subscription": {"type": "trades", "coin": asset}}


class FeedConnection:
    """One transport, one asset, one pass through Idle -> Connecting -> Open -> Closed.

    Every callback carries the connection's generation so the owner can drop
    anything that arrives from a superseded connection. close() detaches the
    callbacks before its first await, so once it has been called no further
    message from this connection is delivered.

    There is no automatic reconnect. A closed connection cannot be restarted;
    the owner builds a new one.
    """

    def __init__(
        self,
        transport: FeedTransport,
        asset: str,
        generation: int,
        on_message: MessageCallback,
        on_state: StateCallback | None = None,
    ) -> None:
        self._transport = transport
        self._asset = asset
        self._generation = generation
        self._on_message: MessageCallback | None = on_message
        self._on_state: StateCallback | None = on_state
        self._state = ConnectionState.IDLE
        self._task: asyncio.Task | None = None

    @property
    def asset(self) -> str:
        return self._asset

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def status(self) -> ConnectionStatus:
        return self._state.status

    async def start(self) -> None:
        """Begin connecting in the background. Returns without waiting for the handshake."""
        if self._state is not ConnectionState.IDLE:
            raise RuntimeError(f"connection for {self._asset} already {self._state.value}")
        self._set_state(ConnectionState.CONNECTING)
        self._task = asyncio.create_task(self._run(), name=f"trade-feed-{self._asset}-{self._generation}")

    async def close(self) -> None:
        """Tear down: unsubscribe if still open, stop reading, close the transport.

        Safe to call multiple times and from any state.
        """
        self._on_message = None
        self._on_state = None

        if self._state is ConnectionState.OPEN and self._transport.is_open:
            await self._send_control("unsubscribe")

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None

        await self._transport.close()
        if self._state is not ConnectionState.CLOSED:
            self._state = ConnectionState.CLOSED
            logger.info("Trade feed closed for %s (generation %d)", self._asset, self._generation)

    # --- Internal ---

    async def _run(self) -> None:
        try:
            await self._transport.connect()
        except Exception as e:
            logger.warning("Trade feed connect failed for %s: %s", self._asset, e)
            self._set_state(ConnectionState.CLOSED)
            return

        self._set_state(ConnectionState.OPEN)
        logger.info("Trade feed open for %s (generation %d)", self._asset, self._generation)
        if not await self._send_control("subscribe"):
            await self._transport.close()
            self._set_state(ConnectionState.CLOSED)
            return

        try:
            while True:
                raw = await self._transport.receive()
                if raw is None:
                    logger.info("Trade feed for %s ended by remote", self._asset)
                    break
                self._dispatch(raw)
        except Exception as e:
            logger.warning("Trade feed transport error for %s: %s", self._asset, e)

        await self._transport.close()
        self._set_state(ConnectionState.CLOSED)

    def _dispatch(self, raw: str) -> None:
        handler = self._on_message
        if handler is None:
            return
        try:
            handler(self._generation, raw)
        except Exception:
            logger.exception("Trade frame handler failed for %s", self._asset)

    async def _send_control(self, method: str) -> bool:
        try:
            await self._transport.send(control_frame(method, self._asset))
            return True
        except Exception as e:
            logger.warning("Trade feed %s for %s failed: %s", method, self._asset, e)
            return False

    def _set_state(self, state: ConnectionState) -> None:
        self._state = state
        callback = self._on_state
        if callback is not None:
            callback(self._generation, state)
