"""
FastAPI application for the Slotbook scheduling API

Availability, booking lifecycle and multi-day series endpoints
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from slotbook import __version__
from slotbook.api.v1.router import api_v1_router
from slotbook.config.settings import get_settings
from slotbook.core.exceptions import register_exception_handlers
from slotbook.core.middleware import correlation_id_middleware, request_logging_middleware
from slotbook.core.monitoring import health_router
from slotbook.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    routes = [route for route in app.routes if isinstance(route, APIRoute)]
    logger.info(f"{settings.APP_NAME} starting up with {len(routes)} routes")
    for route in sorted(routes, key=lambda r: r.path):
        logger.debug(f"  {','.join(sorted(route.methods)):8} {route.path} ({route.name})")

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="Availability and appointment booking for service businesses",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # The last middleware registered runs first, so the correlation id is
    # set before the request is logged
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": __version__,
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "slotbook.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
