"""HTTP and SSE endpoints exposing the dashboard session."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from .assets import SUPPORTED_ASSETS
from .session import DashboardSession

logger = logging.getLogger(__name__)

# The trade feed panel only shows the newest trades
FEED_TRADE_LIMIT = 20


class AssetSelection(BaseModel):
    asset: str


def create_dashboard_router(session: DashboardSession) -> APIRouter:
    """Create the dashboard router bound to a session.

    This factory pattern lets us inject the session without globals.
    """
    router = APIRouter(prefix="/api", tags=["dashboard"])

    @router.get("/dashboard")
    async def get_dashboard() -> dict:
        """Current snapshot: status, prices, stats, sparkline and recent trades."""
        return session.snapshot().to_dict(trade_limit=FEED_TRADE_LIMIT)

    @router.get("/dashboard/assets")
    async def list_assets() -> dict:
        return {"assets": list(SUPPORTED_ASSETS), "selected": session.asset}

    @router.put("/dashboard/asset")
    async def select_asset(selection: AssetSelection) -> dict:
        """Switch the dashboard to another asset and restart the subscription."""
        try:
            await session.set_asset(selection.asset)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return session.snapshot().to_dict(trade_limit=FEED_TRADE_LIMIT)

    @router.get("/stream/dashboard")
    async def stream_dashboard(request: Request) -> StreamingResponse:
        """SSE endpoint for live dashboard updates.

        Emits a full snapshot whenever the session's version changes,
        checked every ~250ms:

            data: {"asset": "HYPE", "status": "connected", "stats": {...}, ...}

        Includes a retry directive so the browser auto-reconnects on
        disconnection (EventSource built-in behavior).
        """
        return StreamingResponse(
            _generate_events(session, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    session: DashboardSession,
    request: Request,
    interval: float = 0.25,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted dashboard snapshots.

    Stops when the client disconnects (detected via request.is_disconnected()).
    """
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s", client_ip)

    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = session.version
            if current_version != last_version:
                last_version = current_version
                payload = json.dumps(session.snapshot().to_dict(trade_limit=FEED_TRADE_LIMIT))
                yield f"data: {payload}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
