"""Tests for DashboardSession."""

import json

import pytest

from app.feed.assets import DEFAULT_ASSET
from app.feed.connection import control_frame
from app.feed.models import ConnectionStatus
from app.feed.session import DashboardSession
from app.feed.stats import PRICE_SENTINEL


class TestDashboardSessionState:
    """Synchronous tests that feed batches without a connection."""

    def test_initial_state(self, transport_factory):
        """Test that a new session is empty and disconnected."""
        session = DashboardSession(transport_factory)
        snapshot = session.snapshot()
        assert snapshot.asset == DEFAULT_ASSET
        assert snapshot.status is ConnectionStatus.DISCONNECTED
        assert snapshot.trades == ()
        assert snapshot.current_price == PRICE_SENTINEL
        assert snapshot.previous_price == PRICE_SENTINEL
        assert snapshot.stats.buy_pressure == 50.0
        assert snapshot.sparkline == ()
        assert transport_factory.created == []

    def test_unknown_initial_asset_rejected(self, transport_factory):
        """Test that the constructor validates the asset."""
        with pytest.raises(ValueError):
            DashboardSession(transport_factory, asset="NOPE")

    def test_two_batches(self, transport_factory, make_trade):
        """Test the buy-then-sell example end to end."""
        session = DashboardSession(transport_factory)
        session.apply_batch([make_trade(px="10", sz="2", side="B", tid=1)])
        session.apply_batch([make_trade(px="12", sz="1", side="A", tid=2)])

        stats = session.stats
        assert stats.buy_count == 1
        assert stats.sell_count == 1
        assert stats.total_volume == pytest.approx(32.0)
        assert stats.high == 12.0
        assert stats.low == 10.0
        assert session.price_change_percent == pytest.approx(20.0)
        assert session.current_price == 12.0
        assert session.previous_price == 10.0

    def test_first_batch_has_no_change(self, transport_factory, make_trade):
        """Test that the first observation reports zero change."""
        session = DashboardSession(transport_factory)
        session.apply_batch([make_trade(px="25")])
        assert session.previous_price == PRICE_SENTINEL
        assert session.price_change_percent == 0.0

    def test_price_from_newest_trade_only(self, transport_factory, make_trade):
        """Test that only the first (newest) trade of a batch moves the price."""
        session = DashboardSession(transport_factory)
        session.apply_batch([make_trade(px="11", tid=3), make_trade(px="99", tid=2), make_trade(px="1", tid=1)])

        assert session.current_price == 11.0
        assert [s.tid for s in session.price_history] == [3]
        assert [t.tid for t in session.trades] == [3, 2, 1]

    def test_empty_batch_is_noop(self, transport_factory):
        """Test that an empty batch changes nothing."""
        session = DashboardSession(transport_factory)
        version = session.version
        session.apply_batch([])
        assert session.version == version
        assert session.price_history == ()

    def test_windows_stay_bounded(self, transport_factory, make_trade):
        """Test both windows under a long stream."""
        session = DashboardSession(transport_factory)
        for tid in range(1, 251):
            session.apply_batch([make_trade(px=str(100 + tid % 7), tid=tid)])

        assert len(session.trades) == 100
        assert session.trades[0].tid == 250
        assert len(session.price_history) == 20
        assert [s.tid for s in session.price_history] == list(range(231, 251))
        assert session.stats.buy_count + session.stats.sell_count == 100

    def test_out_of_range_numbers_dropped(self, transport_factory, trade_record):
        """Test that overflowing ids and non-finite prices drop the frame without raising."""
        session = DashboardSession(transport_factory)
        generation = session.generation
        overflow = json.dumps({"channel": "trades", "data": [trade_record(tid=1)]}).replace(
            '"time": 1700000000000', '"time": 1e400'
        )
        assert "1e400" in overflow

        session.handle_frame(generation, overflow)
        session.handle_frame(generation, json.dumps({"channel": "trades", "data": [trade_record(px="NaN")]}))
        session.handle_frame(generation, json.dumps({"channel": "trades", "data": [trade_record(px="Infinity")]}))

        assert session.trades == ()
        assert session.stats.high == 0.0
        assert session.current_price == PRICE_SENTINEL

    def test_snapshot_to_dict(self, transport_factory, make_trade):
        """Test snapshot serialization with a trade limit."""
        session = DashboardSession(transport_factory)
        session.apply_batch([make_trade(tid=tid) for tid in range(30, 0, -1)])

        result = session.snapshot().to_dict(trade_limit=20)
        assert result["asset"] == "HYPE"
        assert result["status"] == "disconnected"
        assert result["trade_count"] == 30
        assert len(result["trades"]) == 20
        assert result["trades"][0]["tid"] == 30
        assert result["stats"]["buy_count"] == 30
        assert len(result["sparkline"]) == 1


@pytest.mark.asyncio
class TestDashboardSessionFeed:
    """Session tests driven through the fake transport."""

    async def test_start_subscribes_default_asset(self, transport_factory, settle):
        """Test that start() opens one connection and subscribes."""
        session = DashboardSession(transport_factory)
        await session.start()
        assert session.status is ConnectionStatus.CONNECTING

        await settle()
        assert session.status is ConnectionStatus.CONNECTED
        assert len(transport_factory.created) == 1
        assert transport_factory.latest.sent == [control_frame("subscribe", "HYPE")]

        await session.stop()

    async def test_trade_frames_applied(self, transport_factory, trade_record, settle):
        """Test that trade frames from the feed update the session."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()

        transport = transport_factory.latest
        transport.push_trades([trade_record(px="10", sz="2", side="B", tid=1)])
        transport.push_trades([trade_record(px="12", sz="1", side="A", tid=2)])
        await settle()

        assert [t.tid for t in session.trades] == [2, 1]
        assert session.stats.total_volume == pytest.approx(32.0)
        assert session.price_change_percent == pytest.approx(20.0)

        await session.stop()

    async def test_asset_switch_resets_everything(self, transport_factory, trade_record, settle):
        """Test that switching assets clears all state before the new feed starts."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        transport_factory.latest.push_trades([trade_record(px="10", tid=1)])
        transport_factory.latest.push_trades([trade_record(px="12", tid=2)])
        await settle()
        assert len(session.trades) == 2

        await session.set_asset("eth")

        assert session.asset == "ETH"
        assert session.trades == ()
        assert session.price_history == ()
        assert session.current_price == PRICE_SENTINEL
        assert session.previous_price == PRICE_SENTINEL
        assert session.stats.total_trades == 0
        assert session.stats.high == 0.0
        assert session.stats.low == 0.0
        assert session.price_change_percent == 0.0

        await session.stop()

    async def test_asset_switch_unsubscribes_old_and_subscribes_new(self, transport_factory, settle):
        """Test that the old socket unsubscribes and closes before a new one is used."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        old = transport_factory.latest

        await session.set_asset("BTC")
        await settle()
        new = transport_factory.latest

        assert new is not old
        assert old.events == [
            ("send", control_frame("subscribe", "HYPE")),
            ("send", control_frame("unsubscribe", "HYPE")),
            ("close",),
        ]
        assert new.sent == [control_frame("subscribe", "BTC")]

        await session.stop()

    async def test_stale_generation_dropped(self, transport_factory, trade_record, settle):
        """Test that frames tagged with a superseded generation never land."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        stale_generation = session.generation

        await session.set_asset("SOL")
        session.handle_frame(
            stale_generation,
            json.dumps({"channel": "trades", "data": [trade_record(coin="HYPE", px="40")]}),
        )

        assert session.trades == ()
        assert session.current_price == PRICE_SENTINEL
        await session.stop()

    async def test_malformed_frames_dropped(self, transport_factory, trade_record, settle):
        """Test that bad frames are dropped without touching state or the stream."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        transport = transport_factory.latest

        bad_side = trade_record(side="X", tid=9)
        missing_px = trade_record(tid=8)
        del missing_px["px"]

        transport.push("{not json")
        transport.push({"channel": "trades", "data": "nope"})
        transport.push_trades([trade_record(tid=10), bad_side])
        transport.push_trades([missing_px])
        transport.push({"channel": "subscriptionResponse", "data": {"method": "subscribe"}})
        transport.push(["a", "list"])
        await settle()

        assert session.trades == ()
        assert session.status is ConnectionStatus.CONNECTED

        transport.push_trades([trade_record(tid=11)])
        await settle()
        assert [t.tid for t in session.trades] == [11]

        await session.stop()

    async def test_unknown_asset_keeps_current_subscription(self, transport_factory, trade_record, settle):
        """Test that an invalid selection raises and changes nothing."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        transport_factory.latest.push_trades([trade_record(tid=1)])
        await settle()

        with pytest.raises(ValueError):
            await session.set_asset("NOPE")

        assert session.asset == "HYPE"
        assert len(session.trades) == 1
        assert len(transport_factory.created) == 1
        assert session.status is ConnectionStatus.CONNECTED

        await session.stop()

    async def test_remote_close_shows_disconnected(self, transport_factory, settle):
        """Test that a dropped feed is reported and not retried."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()

        transport_factory.latest.drop()
        await settle()

        assert session.status is ConnectionStatus.DISCONNECTED
        assert len(transport_factory.created) == 1
        await session.stop()

    async def test_reselecting_asset_reconnects(self, transport_factory, settle):
        """Test that reassigning the same asset restarts the connection."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        transport_factory.latest.drop()
        await settle()

        await session.set_asset("HYPE")
        await settle()

        assert len(transport_factory.created) == 2
        assert session.status is ConnectionStatus.CONNECTED
        await session.stop()

    async def test_stop(self, transport_factory, settle):
        """Test that stop() unsubscribes, closes and is idempotent."""
        session = DashboardSession(transport_factory)
        await session.start()
        await settle()
        transport = transport_factory.latest

        await session.stop()
        await session.stop()

        assert session.status is ConnectionStatus.DISCONNECTED
        assert transport.sent[-1] == control_frame("unsubscribe", "HYPE")
        assert transport.closed

    async def test_version_changes_on_updates(self, transport_factory, trade_record, settle):
        """Test that the version counter moves on every observable change."""
        session = DashboardSession(transport_factory)
        v0 = session.version
        await session.start()
        await settle()
        v1 = session.version
        assert v1 > v0

        transport_factory.latest.push_trades([trade_record(tid=1)])
        await settle()
        assert session.version > v1

        await session.stop()
