"""Bounded in-memory windows over the live trade stream."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable, Iterator

import numpy as np

from .models import PriceSample, SparkBar, Trade

TRADE_BUFFER_CAPACITY = 100
PRICE_HISTORY_CAPACITY = 20


class TradeBuffer:
    """Most-recent-first buffer of the latest trades for the active asset.

    Owned by a single DashboardSession and only touched from the event loop,
    so no locking is needed. Trade ids are not deduplicated: a redelivered
    trade is stored again.
    """

    def __init__(self, capacity: int = TRADE_BUFFER_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._trades: list[Trade] = []

    def extend(self, batch: Iterable[Trade]) -> None:
        """Prepend a newest-first batch and drop anything past capacity."""
        self._trades = [*batch, *self._trades][: self._capacity]

    def clear(self) -> None:
        self._trades = []

    def snapshot(self) -> tuple[Trade, ...]:
        """Newest-first copy of the buffer."""
        return tuple(self._trades)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._trades)

    def __iter__(self) -> Iterator[Trade]:
        return iter(list(self._trades))


class PriceHistory:
    """Oldest-first window of recent price observations for the sparkline."""

    def __init__(self, capacity: int = PRICE_HISTORY_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._samples: deque[PriceSample] = deque(maxlen=capacity)

    def append(self, sample: PriceSample) -> None:
        """Add the newest observation; the oldest falls off once full."""
        self._samples.append(sample)

    def clear(self) -> None:
        self._samples.clear()

    def samples(self) -> tuple[PriceSample, ...]:
        return tuple(self._samples)

    def prices(self) -> list[float]:
        return [s.price for s in self._samples]

    @property
    def capacity(self) -> int:
        return self._samples.maxlen or 0

    def sparkline(self) -> list[SparkBar]:
        """Bars scaled to the min/max of the current window (0-100).

        A flat window uses a unit range so every bar gets height 0.
        A bar is "up" when its price is >= its predecessor's and "down"
        otherwise. The first bar has no predecessor, so its flag is None
        rather than down.
        """
        if not self._samples:
            return []

        prices = np.asarray(self.prices(), dtype=float)
        low = prices.min()
        price_range = float(prices.max() - low) or 1.0
        heights = (prices - low) / price_range * 100

        bars: list[SparkBar] = []
        for idx, price in enumerate(prices):
            is_up = None if idx == 0 else bool(price >= prices[idx - 1])
            bars.append(SparkBar(price=float(price), height=round(float(heights[idx]), 4), is_up=is_up))
        return bars

    def __len__(self) -> int:
        return len(self._samples)
