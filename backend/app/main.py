"""FastAPI application serving the live trade dashboard."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .feed import DashboardSession, create_dashboard_router, create_dashboard_session


def create_app(session: DashboardSession | None = None) -> FastAPI:
    """Build the app. The session is started and stopped with the app lifespan."""
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    session = session or create_dashboard_session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await session.start()
        try:
            yield
        finally:
            await session.stop()

    app = FastAPI(title="Trade Dashboard", lifespan=lifespan)
    app.state.session = session
    app.include_router(create_dashboard_router(session))
    return app
