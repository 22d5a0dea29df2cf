"""Dashboard session: one active asset, its live trades and derived state."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .assets import DEFAULT_ASSET, normalize_asset
from .buffers import PRICE_HISTORY_CAPACITY, TRADE_BUFFER_CAPACITY, PriceHistory, TradeBuffer
from .connection import ConnectionState, FeedConnection
from .interface import FeedTransport
from .models import AggregateStats, ConnectionStatus, PriceSample, SparkBar, Trade
from .stats import PRICE_SENTINEL, compute_stats

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], FeedTransport]


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    """Read-only view of everything the presentation layer renders."""

    asset: str
    status: ConnectionStatus
    trades: tuple[Trade, ...]
    current_price: float
    previous_price: float
    stats: AggregateStats
    price_history: tuple[PriceSample, ...]
    sparkline: tuple[SparkBar, ...]
    version: int

    @property
    def price_change_percent(self) -> float:
        return self.stats.percent_change

    def to_dict(self, trade_limit: int | None = None) -> dict:
        """Serialize for JSON / SSE transmission. trade_limit caps the trade list."""
        trades = self.trades if trade_limit is None else self.trades[:trade_limit]
        return {
            "asset": self.asset,
            "status": self.status.value,
            "current_price": self.current_price,
            "previous_price": self.previous_price,
            "price_change_percent": self.price_change_percent,
            "stats": self.stats.to_dict(),
            "trade_count": len(self.trades),
            "trades": [t.to_dict() for t in trades],
            "price_history": [s.to_dict() for s in self.price_history],
            "sparkline": [b.to_dict() for b in self.sparkline],
            "version": self.version,
        }


class DashboardSession:
    """Controller owning the feed connection and all per-asset state.

    All mutation happens on the event loop in response to feed events or
    set_asset(); there is no locking around the buffers. Switching assets is
    the only cancellation path: the old connection is detached and torn down
    and every buffer is reset before the new connection is started, and each
    connection is tagged with a generation so a late frame from a superseded
    one is discarded.

    Lifecycle:
        session = DashboardSession(transport_factory)
        await session.start()
        await session.set_asset("ETH")
        snapshot = session.snapshot()
        await session.stop()
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        asset: str = DEFAULT_ASSET,
        trade_capacity: int = TRADE_BUFFER_CAPACITY,
        price_capacity: int = PRICE_HISTORY_CAPACITY,
    ) -> None:
        self._transport_factory = transport_factory
        self._asset = normalize_asset(asset)
        self._trades = TradeBuffer(trade_capacity)
        self._history = PriceHistory(price_capacity)
        self._current_price = PRICE_SENTINEL
        self._previous_price = PRICE_SENTINEL
        self._stats = AggregateStats.empty()
        self._connection: FeedConnection | None = None
        self._generation = 0
        self._switch_lock = asyncio.Lock()
        self._version = 0  # Bumped on every observable change

    # --- Public API ---

    async def start(self) -> None:
        """Connect to the feed for the current asset."""
        await self.set_asset(self._asset)

    async def stop(self) -> None:
        """Tear down the active connection. Safe to call multiple times."""
        async with self._switch_lock:
            await self._teardown()

    async def set_asset(self, symbol: str) -> None:
        """Switch the dashboard to another asset.

        Reassigning the current asset restarts its subscription, which is how
        a dropped connection is recovered. Raises ValueError for unknown symbols.
        """
        asset = normalize_asset(symbol)
        async with self._switch_lock:
            await self._teardown()
            self._asset = asset
            self._reset()

            connection = FeedConnection(
                transport=self._transport_factory(),
                asset=asset,
                generation=self._generation,
                on_message=self.handle_frame,
                on_state=self._handle_state,
            )
            self._connection = connection
            await connection.start()
            logger.info("Dashboard subscribed to %s (generation %d)", asset, self._generation)

    def handle_frame(self, generation: int, raw: str) -> None:
        """Apply one inbound feed frame. Malformed frames are logged and dropped."""
        if generation != self._generation:
            logger.debug("Dropping frame from stale generation %d", generation)
            return

        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning("Dropping unparseable frame: %s", e)
            return

        if not isinstance(message, dict) or message.get("channel") != "trades":
            logger.debug("Ignoring non-trade frame: %.120s", raw)
            return

        records = message.get("data")
        if not isinstance(records, list):
            logger.warning("Dropping trades frame without a trade list")
            return

        try:
            batch = [Trade.from_dict(record) for record in records]
        except ValueError as e:
            logger.warning("Dropping malformed trades frame: %s", e)
            return

        self.apply_batch(batch)

    def apply_batch(self, batch: list[Trade]) -> None:
        """Admit a newest-first batch of trades for the active asset."""
        if not batch:
            return

        self._trades.extend(batch)
        newest = batch[0]
        self._previous_price = self._current_price
        self._current_price = newest.price
        self._history.append(PriceSample(price=newest.price, tid=newest.tid, timestamp=newest.time))
        self._recompute()
        logger.debug("Admitted %d %s trades, last px %s", len(batch), self._asset, newest.px)

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            asset=self._asset,
            status=self.status,
            trades=self._trades.snapshot(),
            current_price=self._current_price,
            previous_price=self._previous_price,
            stats=self._stats,
            price_history=self._history.samples(),
            sparkline=tuple(self._history.sparkline()),
            version=self._version,
        )

    @property
    def asset(self) -> str:
        return self._asset

    @property
    def status(self) -> ConnectionStatus:
        if self._connection is None:
            return ConnectionStatus.DISCONNECTED
        return self._connection.status

    @property
    def trades(self) -> tuple[Trade, ...]:
        return self._trades.snapshot()

    @property
    def current_price(self) -> float:
        return self._current_price

    @property
    def previous_price(self) -> float:
        return self._previous_price

    @property
    def price_change_percent(self) -> float:
        return self._stats.percent_change

    @property
    def stats(self) -> AggregateStats:
        return self._stats

    @property
    def price_history(self) -> tuple[PriceSample, ...]:
        return self._history.samples()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def version(self) -> int:
        """Monotonic change counter. Useful for SSE change detection."""
        return self._version

    # --- Internal ---

    async def _teardown(self) -> None:
        # Bump first so anything still in flight is stale before the first await
        self._generation += 1
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.close()
            self._version += 1

    def _reset(self) -> None:
        self._trades.clear()
        self._history.clear()
        self._current_price = PRICE_SENTINEL
        self._previous_price = PRICE_SENTINEL
        self._stats = AggregateStats.empty()
        self._version += 1

    def _recompute(self) -> None:
        self._stats = compute_stats(self._trades.snapshot(), self._current_price, self._previous_price)
        self._version += 1

    def _handle_state(self, generation: int, state: ConnectionState) -> None:
        if generation != self._generation:
            return
        logger.info("Trade feed for %s is %s", self._asset, state.status.value)
        self._version += 1
