"""Live trade feed subsystem for the market dashboard.

Public API:
    Trade, AggregateStats, PriceSample - Immutable feed and derived records
    DashboardSession    - Owns the subscription and all per-asset state
    DashboardSnapshot   - Read-only view handed to the presentation layer
    FeedTransport       - Abstract interface for feed connections
    create_dashboard_session - Factory that selects live feed or simulator
    create_dashboard_router  - FastAPI router factory for HTTP + SSE endpoints
"""

from .factory import create_dashboard_session, create_transport_factory
from .interface import FeedTransport
from .models import AggregateStats, ConnectionStatus, PriceSample, Side, Trade
from .session import DashboardSession, DashboardSnapshot
from .stream import create_dashboard_router

__all__ = [
    "AggregateStats",
    "ConnectionStatus",
    "DashboardSession",
    "DashboardSnapshot",
    "FeedTransport",
    "PriceSample",
    "Side",
    "Trade",
    "create_dashboard_router",
    "create_dashboard_session",
    "create_transport_factory",
]
