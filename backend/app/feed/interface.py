"""Abstract interface for trade feed transports."""

from __future__ import annotations

from abc import ABC, abstractmethod


class FeedTransport(ABC):
    """Contract for a single streaming connection to a trade feed.

    A transport is single-use: FeedConnection drives exactly one
    connect/receive/close cycle on it, and a fresh transport is created for
    every asset switch. Transports know nothing about assets or trades;
    they move JSON control frames out and raw text frames in.

    Lifecycle:
        transport = transport_factory()
        await transport.connect()
        await transport.send({"method": "subscribe", ...})
        while (raw := await transport.receive()) is not None:
            ...
        await transport.close()
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Raises on handshake failure."""

    @abstractmethod
    async def send(self, frame: dict) -> None:
        """Send a JSON control frame. Raises if the connection is unusable."""

    @abstractmethod
    async def receive(self) -> str | None:
        """Wait for the next inbound text frame.

        Returns None once the stream has ended (remote close, transport
        error, or local close()). Must never return None and later resume.
        """

    @abstractmethod
    async def close(self) -> None:
        """Release the connection. Safe to call multiple times."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """True while frames can still be sent."""
