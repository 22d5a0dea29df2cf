"""Data models for the trade feed."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

_TRADE_FIELDS = ("coin", "side", "px", "sz", "hash", "time", "tid", "users")


class Side(str, Enum):
    """Aggressor side as reported by the feed."""

    BUY = "B"
    SELL = "A"  # Hyperliquid reports sells as the ask side


class ConnectionStatus(str, Enum):
    """Connectivity as shown in the dashboard header."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True, slots=True)
class Trade:
    """Immutable trade exactly as received from the feed.

    Price and size are kept as the feed's decimal strings so they can be
    displayed verbatim; numeric views are exposed as properties.
    """

    coin: str
    side: Side
    px: str
    sz: str
    hash: str
    time: int  # Unix milliseconds
    tid: int
    users: tuple[str, str]

    @classmethod
    def from_dict(cls, payload: Any) -> Trade:
        """Build a Trade from a raw feed record. Raises ValueError if malformed."""
        if not isinstance(payload, dict):
            raise ValueError(f"trade record must be an object, got {type(payload).__name__}")
        missing = [name for name in _TRADE_FIELDS if name not in payload]
        if missing:
            raise ValueError(f"trade record missing fields: {', '.join(missing)}")

        try:
            side = Side(payload["side"])
        except ValueError:
            raise ValueError(f"unknown trade side {payload['side']!r}") from None

        px = str(payload["px"])
        sz = str(payload["sz"])
        try:
            price = float(px)
            size = float(sz)
            time_ms = int(payload["time"])
            tid = int(payload["tid"])
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"non-numeric trade field: {e}") from None
        if not (math.isfinite(price) and math.isfinite(size)):
            raise ValueError(f"non-finite trade price or size: px={px!r} sz={sz!r}")

        users = payload["users"]
        if not isinstance(users, (list, tuple)) or len(users) != 2:
            raise ValueError("trade users must be a pair")

        return cls(
            coin=str(payload["coin"]),
            side=side,
            px=px,
            sz=sz,
            hash=str(payload["hash"]),
            time=time_ms,
            tid=tid,
            users=(str(users[0]), str(users[1])),
        )

    @property
    def price(self) -> float:
        return float(self.px)

    @property
    def size(self) -> float:
        return float(self.sz)

    @property
    def notional(self) -> float:
        """Traded value in quote currency (price * size)."""
        return self.price * self.size

    @property
    def is_buy(self) -> bool:
        return self.side is Side.BUY

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "coin": self.coin,
            "side": self.side.value,
            "px": self.px,
            "sz": self.sz,
            "hash": self.hash,
            "time": self.time,
            "tid": self.tid,
            "users": list(self.users),
            "notional": round(self.notional, 2),
        }


@dataclass(frozen=True, slots=True)
class PriceSample:
    """One observation in the price history window."""

    price: float
    tid: int
    timestamp: int  # Unix milliseconds

    def to_dict(self) -> dict:
        return {"price": self.price, "tid": self.tid, "timestamp": self.timestamp}


@dataclass(frozen=True, slots=True)
class SparkBar:
    """A single sparkline bar. Height is a percentage of the window's range."""

    price: float
    height: float
    is_up: bool | None  # None for the first bar, which has no predecessor

    def to_dict(self) -> dict:
        return {"price": self.price, "height": self.height, "is_up": self.is_up}


@dataclass(frozen=True, slots=True)
class AggregateStats:
    """Summary statistics over the current trade buffer."""

    buy_count: int
    sell_count: int
    total_volume: float
    high: float
    low: float
    percent_change: float

    @classmethod
    def empty(cls) -> AggregateStats:
        return cls(buy_count=0, sell_count=0, total_volume=0.0, high=0.0, low=0.0, percent_change=0.0)

    @property
    def total_trades(self) -> int:
        return self.buy_count + self.sell_count

    @property
    def buy_pressure(self) -> float:
        """Share of buys in percent. Neutral 50 before any trade arrives."""
        if self.total_trades == 0:
            return 50.0
        return self.buy_count / self.total_trades * 100

    @property
    def sell_pressure(self) -> float:
        return 100 - self.buy_pressure

    def to_dict(self) -> dict:
        return {
            "buy_count": self.buy_count,
            "sell_count": self.sell_count,
            "total_volume": self.total_volume,
            "high": self.high,
            "low": self.low,
            "percent_change": self.percent_change,
            "buy_pressure": self.buy_pressure,
            "sell_pressure": self.sell_pressure,
        }
