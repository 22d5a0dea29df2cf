"""Factories wiring the dashboard session to a trade feed transport."""

from __future__ import annotations

import logging
import os

from .assets import DEFAULT_ASSET
from .session import DashboardSession, TransportFactory

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def create_transport_factory() -> TransportFactory:
    """Choose the trade feed transport from environment variables.

    - TRADE_FEED_SIMULATOR truthy → SimulatorTransport (offline GBM trades)
    - Otherwise → HyperliquidTransport, at TRADE_FEED_URL if set

    Returns a zero-argument callable; every call builds a fresh, unconnected
    transport because each asset switch runs a full connection cycle.
    """
    use_simulator = os.environ.get("TRADE_FEED_SIMULATOR", "").strip().lower() in _TRUTHY

    if use_simulator:
        from .simulator import SimulatorTransport

        logger.info("Trade feed: GBM simulator")
        return SimulatorTransport
    else:
        from .hyperliquid_client import HYPERLIQUID_WS_URL, HyperliquidTransport

        url = os.environ.get("TRADE_FEED_URL", "").strip() or HYPERLIQUID_WS_URL
        logger.info("Trade feed: websocket %s", url)
        return lambda: HyperliquidTransport(url=url)


def create_dashboard_session() -> DashboardSession:
    """Build an unstarted session for DASHBOARD_ASSET (default HYPE).

    Caller must await session.start().
    """
    asset = os.environ.get("DASHBOARD_ASSET", "").strip() or DEFAULT_ASSET
    return DashboardSession(transport_factory=create_transport_factory(), asset=asset)
