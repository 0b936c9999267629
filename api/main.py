"""
Event Ticketing Checkout API - Main Application.

FastAPI application with CORS enabled for frontend communication.

Run with:
    uvicorn api.main:app --reload
"""

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.errors import checkout_error_handler, unexpected_error_handler
from config import Settings, load_settings
from domain.errors import CheckoutError
from services.container import ServiceContainer, build_container

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Build the application.

    Settings come from the environment unless given; the container is built
    from settings unless given (tests pass one over in-memory stores).
    """
    if container is not None:
        settings = container.settings
    settings = settings or load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Event Ticketing Checkout API",
        description="REST API for selling event tickets: orders, checkout and producer event management",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.container = container or build_container(settings)

    # Configure CORS - Allow all origins for development
    # TODO: Restrict origins once the frontend domain is fixed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "event-ticketing-checkout-api",
            "store_backend": settings.store_backend,
        }

    from api.routers import checkout, events, orders

    app.include_router(orders.router, prefix="/api/v1", tags=["Orders"])
    app.include_router(events.router, prefix="/api/v1", tags=["Events"])
    app.include_router(checkout.router, prefix="/api/v1", tags=["Checkout"])

    logger.info("API ready (backend=%s)", settings.store_backend)
    return app


_app: Optional[FastAPI] = None


def get_app() -> FastAPI:
    """The process-wide application, built on first use."""
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name: str):
    # `uvicorn api.main:app` resolves here; importing reads no settings.
    if name == "app":
        return get_app()
    raise AttributeError(name)
