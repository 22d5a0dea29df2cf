"""Fixtures for trade feed tests.

Provides an in-memory FeedTransport so connection and session lifecycles can
be driven deterministically without a network.
"""

import asyncio
import json

import pytest

from app.feed.interface import FeedTransport


class FakeTransport(FeedTransport):
    """Scriptable transport that records every send and close in order."""

    def __init__(self, fail_connect: bool = False, connect_gate: asyncio.Event | None = None) -> None:
        self.fail_connect = fail_connect
        self.connect_gate = connect_gate
        self.events: list[tuple] = []
        self._open = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def sent(self) -> list[dict]:
        return [event[1] for event in self.events if event[0] == "send"]

    @property
    def closed(self) -> bool:
        return ("close",) in self.events

    async def connect(self) -> None:
        if self.connect_gate is not None:
            await self.connect_gate.wait()
        if self.fail_connect:
            raise ConnectionError("handshake refused")
        self._open = True

    async def send(self, frame: dict) -> None:
        if not self._open:
            raise ConnectionError("not open")
        self.events.append(("send", frame))

    async def receive(self) -> str | None:
        return await self._inbox.get()

    async def close(self) -> None:
        self._open = False
        self.events.append(("close",))
        self._inbox.put_nowait(None)

    def push(self, message) -> None:
        """Queue an inbound frame; dicts are JSON-encoded."""
        self._inbox.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def push_trades(self, records: list[dict]) -> None:
        self.push({"channel": "trades", "data": records})

    def drop(self) -> None:
        """Simulate the remote end closing the connection."""
        self._open = False
        self._inbox.put_nowait(None)


class FakeTransportFactory:
    """Transport factory that keeps every transport it builds."""

    def __init__(self, **transport_kwargs) -> None:
        self.transport_kwargs = transport_kwargs
        self.created: list[FakeTransport] = []

    def __call__(self) -> FakeTransport:
        transport = FakeTransport(**self.transport_kwargs)
        self.created.append(transport)
        return transport

    @property
    def latest(self) -> FakeTransport:
        return self.created[-1]


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def settle():
    """Let background reader tasks run until they block again."""

    async def _settle(rounds: int = 10) -> None:
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_transport_cls():
    return FakeTransport
