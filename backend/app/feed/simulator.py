"""GBM-based trade simulator for running the dashboard offline."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import random
import time
from collections import deque

import numpy as np

from .assets import ASSET_PARAMS, DEFAULT_PARAMS, SEED_PRICES
from .interface import FeedTransport

logger = logging.getLogger(__name__)


class TradeSimulator:
    """Geometric Brownian Motion price walk that emits Hyperliquid-shaped trades.

    Math:
        S(t+dt) = S(t) * exp((mu - sigma^2/2) * dt + sigma * sqrt(dt) * Z)

    Crypto trades around the clock, so dt is a fraction of a calendar year
    rather than a trading year. Each trade in a batch advances the walk by
    one step.
    """

    SECONDS_PER_YEAR = 365 * 24 * 3600
    DEFAULT_DT = 0.5 / SECONDS_PER_YEAR

    def __init__(
        self,
        asset: str,
        dt: float = DEFAULT_DT,
        event_probability: float = 0.001,
        max_batch: int = 4,
    ) -> None:
        self.asset = asset
        self._dt = dt
        self._event_prob = event_probability
        self._max_batch = max_batch
        self._price = SEED_PRICES.get(asset, random.uniform(1.0, 100.0))
        self._params = ASSET_PARAMS.get(asset, dict(DEFAULT_PARAMS))
        self._next_tid = random.randint(10**14, 10**15)

    @property
    def price(self) -> float:
        return self._price

    def step(self) -> float:
        """Advance the price by one time step and return it."""
        mu = self._params["mu"]
        sigma = self._params["sigma"]
        drift = (mu - 0.5 * sigma**2) * self._dt
        diffusion = sigma * math.sqrt(self._dt) * np.random.standard_normal()
        self._price *= math.exp(drift + diffusion)

        # Rare jump, about one every few minutes at 2 batches/sec
        if random.random() < self._event_prob:
            shock = random.uniform(0.005, 0.02) * random.choice([-1, 1])
            self._price *= 1 + shock
            logger.debug("Simulated jump on %s: %.2f%%", self.asset, shock * 100)

        return self._price

    def next_batch(self, now_ms: int | None = None) -> list[dict]:
        """Generate 1..max_batch trades, newest first, as raw feed records."""
        now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
        count = random.randint(1, self._max_batch)
        batch = [self._make_trade(now_ms) for _ in range(count)]
        batch.reverse()
        return batch

    # --- Internals ---

    def _make_trade(self, now_ms: int) -> dict:
        price = self.step()
        size = float(np.random.exponential(self._params["typical_size"]))
        tid = self._next_tid
        self._next_tid += 1
        return {
            "coin": self.asset,
            "side": random.choice(["B", "A"]),
            "px": self._format_price(price),
            "sz": f"{max(size, 1e-4):.4f}",
            "hash": "0x" + f"{random.getrandbits(256):064x}",
            "time": now_ms,
            "tid": tid,
            "users": [self._random_address(), self._random_address()],
        }

    @staticmethod
    def _format_price(price: float) -> str:
        """Five significant figures, like the exchange's tick sizes."""
        decimals = max(0, 4 - int(math.floor(math.log10(price)))) if price > 0 else 4
        return f"{price:.{decimals}f}"

    @staticmethod
    def _random_address() -> str:
        return "0x" + f"{random.getrandbits(160):040x}"


class SimulatorTransport(FeedTransport):
    """FeedTransport backed by TradeSimulator.

    Mirrors the real feed's behaviour: a subscribe frame is acknowledged with
    a subscriptionResponse, then a trades frame is produced every
    `update_interval` seconds until unsubscribe or close.
    """

    def __init__(self, update_interval: float = 0.5, event_probability: float = 0.001) -> None:
        self._interval = update_interval
        self._event_prob = event_probability
        self._open = False
        self._closed = asyncio.Event()
        self._pending: deque[str] = deque()
        self._sim: TradeSimulator | None = None

    @property
    def is_open(self) -> bool:
        return self._open

    async def connect(self) -> None:
        if self._closed.is_set():
            raise ConnectionError("simulator transport already closed")
        self._open = True
        logger.debug("Simulator transport connected")

    async def send(self, frame: dict) -> None:
        if not self._open:
            raise ConnectionError("simulator transport is not open")
        method = frame.get("method")
        subscription = frame.get("subscription", {})
        if method == "subscribe" and subscription.get("type") == "trades":
            self._sim = TradeSimulator(subscription["coin"], event_probability=self._event_prob)
            self._pending.append(json.dumps({"channel": "subscriptionResponse", "data": frame}))
            logger.info("Simulator: streaming trades for %s", subscription["coin"])
        elif method == "unsubscribe":
            self._sim = None
            logger.info("Simulator: stopped trades for %s", subscription.get("coin"))

    async def receive(self) -> str | None:
        while self._open:
            if self._pending:
                return self._pending.popleft()
            try:
                await asyncio.wait_for(self._closed.wait(), timeout=self._interval)
                return None
            except asyncio.TimeoutError:
                pass
            if self._open and self._sim is not None:
                return json.dumps({"channel": "trades", "data": self._sim.next_batch()})
        return None

    async def close(self) -> None:
        self._open = False
        self._sim = None
        self._closed.set()
