from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport

from papertrade.api.routes import analytics, health
from papertrade.domain.services.config_engine import AnalyticsConfig
from papertrade.main import init_app_state, register_exception_handlers


@pytest.fixture()
async def app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(health.router, tags=["Health"])
    app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])

    # Fresh quote cache per test, default thresholds
    init_app_state(app, AnalyticsConfig())
    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
