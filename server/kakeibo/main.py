"""Kakeibo FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, get_settings
from .errors import KakeiboError
from .log import configure_logging
from .routers import (
    stats_router,
    auth_router,
    transactions_router,
    categories_router,
    budgets_router,
    assets_router,
    reports_router,
)
from .services.backend import BackendClient
from .services.cache import create_cache
from .services.database import FinanceRepository
from .services.finance import FinanceService
from .services.performance import PerformanceMonitor, Thresholds

logger = structlog.get_logger(__name__)


def create_app(settings: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Each app owns its own query cache, backend client and performance
    monitor; routes reach them through app.state.
    """
    settings = settings or get_settings()

    monitor = PerformanceMonitor(
        Thresholds(
            slow_query=settings.slow_query_threshold,
            very_slow_query=settings.very_slow_query_threshold,
            slow_network=settings.slow_network_threshold,
            very_slow_network=settings.very_slow_network_threshold,
        )
    )
    cache = create_cache(default_ttl=settings.default_cache_ttl, max_entries=settings.cache_max_entries)
    backend = BackendClient(settings, client=http_client, monitor=monitor)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("kakeibo_starting", version=__version__, backend_configured=settings.backend_configured)
        yield
        await backend.aclose()
        logger.info("kakeibo_stopped")

    app = FastAPI(
        title="Kakeibo",
        description="Personal-finance dashboard: transactions, budgets, assets and reports",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.monitor = monitor
    app.state.query_cache = cache
    app.state.backend = backend
    app.state.finance = FinanceService(FinanceRepository(backend), cache, settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(KakeiboError)
    async def handle_kakeibo_error(request: Request, exc: KakeiboError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_response().model_dump())

    # Include routers with /api prefix
    app.include_router(stats_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(transactions_router, prefix="/api")
    app.include_router(categories_router, prefix="/api")
    app.include_router(budgets_router, prefix="/api")
    app.include_router(assets_router, prefix="/api")
    app.include_router(reports_router, prefix="/api")

    return app


def run():
    """Run the server."""
    settings = get_settings()
    configure_logging(settings.log_level, json=settings.log_json)
    logger.info("kakeibo_listening", url=f"http://localhost:{settings.port}")
    uvicorn.run(
        "kakeibo.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
