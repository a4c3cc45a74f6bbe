"""
TickerStream Price Backend - FastAPI Application
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tickerstream.api.routes import admin, prices, tickers
from tickerstream.config import settings
from tickerstream.logger import logger
from tickerstream.services.price_service import PriceService, build_price_service


def create_app(price_service: Optional[PriceService] = None) -> FastAPI:
    """Build the application.

    Args:
        price_service: Pre-built service (tests inject one backed by a fake
            browser). Defaults to a Playwright-backed service from settings.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
        logger.info(f"Debug mode: {settings.DEBUG}")

        service = price_service or build_price_service(settings)
        app.state.price_service = service
        if settings.BROWSER.launch_on_startup:
            if not await service.start():
                logger.critical("Browser unavailable at startup; /health reports degraded")
        logger.success("Application startup complete")

        yield

        # Shutdown
        logger.info("Shutting down application...")
        await service.stop()
        logger.success("Application shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Live crypto ticker prices scraped from a browser, streamed over SSE",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.API.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tickers.router)
    app.include_router(prices.router)
    app.include_router(admin.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "docs": "/docs",
            "redoc": "/redoc",
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint; degraded once the browser cannot be relaunched"""
        service: Optional[PriceService] = getattr(app.state, "price_service", None)
        healthy = service is None or service.healthy
        return {
            "status": "healthy" if healthy else "degraded",
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "error": None if healthy else service.supervisor.last_fatal_error,
        }

    return app


app = create_app()

