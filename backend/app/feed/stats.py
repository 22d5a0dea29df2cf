"""Summary statistics derived from the trade buffer."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from .models import AggregateStats, Trade

# Placeholder for "no price observed yet"
PRICE_SENTINEL = 0.0


def percent_change(current: float, previous: float) -> float:
    """Percentage move from previous to current. 0.0 until a previous price exists."""
    if previous == PRICE_SENTINEL:
        return 0.0
    return (current - previous) / previous * 100


def compute_stats(trades: Sequence[Trade], current_price: float, previous_price: float) -> AggregateStats:
    """Recompute all statistics from scratch over the given buffer.

    The buffer is capped, so a full pass on every batch is cheap and there is
    no running state to drift. High/low default to 0 on an empty buffer.
    """
    if not trades:
        return AggregateStats.empty()

    n = len(trades)
    prices = np.fromiter((t.price for t in trades), dtype=float, count=n)
    sizes = np.fromiter((t.size for t in trades), dtype=float, count=n)
    buy_count = sum(1 for t in trades if t.is_buy)

    return AggregateStats(
        buy_count=buy_count,
        sell_count=n - buy_count,
        total_volume=float(np.dot(prices, sizes)),
        high=float(prices.max()),
        low=float(prices.min()),
        percent_change=percent_change(current_price, previous_price),
    )
