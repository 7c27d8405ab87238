"""
FastAPI Main Application
Analytics routes plus the optional quote refresh scheduler
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from papertrade.api.routes import analytics, health
from papertrade.config import settings
from papertrade.core.logging import setup_logging
from papertrade.domain.errors import AnalyticsError
from papertrade.domain.services.analytics_pipeline import AnalyticsPipeline
from papertrade.domain.services.config_engine import AnalyticsConfig, ConfigEngine
from papertrade.infrastructure.market_data.quote_store import QuoteCache
from papertrade.infrastructure.market_data.yfinance_provider import YFinanceQuoteSource
from papertrade.realtime.runtime import RefreshRuntime
from papertrade.scheduler.scheduler import shutdown_scheduler, start_scheduler

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def load_analytics_config() -> AnalyticsConfig:
    config_path = Path(settings.ANALYTICS_CONFIG_PATH)
    if not config_path.is_absolute():
        config_path = Path(__file__).resolve().parent.parent / config_path
    config_engine = ConfigEngine(config_path)
    config_engine.load_all()
    return config_engine.analytics


def init_app_state(app: FastAPI, config: AnalyticsConfig) -> None:
    """Attach the shared quote cache and pipeline to the application"""
    app.state.analytics_config = config
    app.state.quote_cache = QuoteCache(
        freshness_window=config.freshness_window,
        max_future_skew=config.max_future_skew,
    )
    app.state.pipeline = AnalyticsPipeline(config)
    app.state.refresh_runtime = None


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AnalyticsError)
    async def analytics_error_handler(request: Request, exc: AnalyticsError):
        logger.warning("Rejected request %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=422,
            content={
                "error": True,
                "error_code": exc.error_code,
                "message": exc.message,
                "symbol": exc.symbol,
            },
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager
    """
    logger.info("🚀 Starting paper-trading analytics")

    config = load_analytics_config()
    init_app_state(app, config)
    logger.info(
        "✅ Analytics config loaded | overweight>%s%% freshness=%ss",
        config.overweight_threshold_pct,
        int(config.freshness_window.total_seconds()),
    )

    if settings.REFRESH_ENABLED:
        runtime = RefreshRuntime(
            quote_cache=app.state.quote_cache,
            quote_source=YFinanceQuoteSource(symbol_suffix=settings.YF_SYMBOL_SUFFIX),
            pipeline=app.state.pipeline,
            quote_expiry=config.quote_expiry,
        )
        app.state.refresh_runtime = runtime
        start_scheduler(
            runtime,
            interval_seconds=settings.REFRESH_INTERVAL_SECONDS,
            timezone_name=settings.TIMEZONE,
        )

    yield

    shutdown_scheduler()
    logger.info("🛑 Paper-trading analytics stopped")


app = FastAPI(
    title="Paper Trading Analytics",
    description="Portfolio valuation & analytics engine",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(health.router, tags=["Health"])
app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["Analytics"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "papertrade.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
    )
