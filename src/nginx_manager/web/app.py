"""
FastAPI application for nginx-manager.

Runs on localhost only (127.0.0.1): the API can rewrite and reload the
nginx configuration and must not be exposed.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nginx_manager import __version__
from nginx_manager.config import Settings, load_settings
from nginx_manager.web.routes import realtime, sites, traffic
from nginx_manager.web.services import Services, build_services

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to build services from. Loaded from the
            environment when omitted.
        services: Pre-built services (tests pass fakes here).
    """
    if services is None:
        services = build_services(settings or load_settings())

    app = FastAPI(
        title="nginx-manager",
        description="Site configuration, access-log analytics and live metrics for nginx",
        version=__version__,
        docs_url="/api/docs",
        redoc_url=None,
    )
    app.state.services = services

    # CORS - restrict to localhost only
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://127.0.0.1:*", "http://localhost:*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(sites.router, prefix="/api", tags=["sites"])
    app.include_router(traffic.router, prefix="/api", tags=["traffic"])
    app.include_router(realtime.router, prefix="/api", tags=["realtime"])

    @app.on_event("shutdown")
    async def cleanup() -> None:
        """Stop the metrics sampling loop on shutdown."""
        app.state.services.hub.close()

    return app


def run_server(host: str = "127.0.0.1", port: int = 8765, settings: Settings | None = None) -> None:
    """Run the FastAPI server with uvicorn.

    Args:
        host: Bind address. MUST be 127.0.0.1 for security.
        port: Port to listen on.
        settings: Settings for the application.
    """
    import uvicorn

    # Security: Force localhost binding
    if host != "127.0.0.1":
        logger.warning("Forcing bind to 127.0.0.1 (localhost only), ignoring %s", host)
        host = "127.0.0.1"

    logger.info("Starting nginx-manager API at http://%s:%s/api/docs", host, port)
    uvicorn.run(create_app(settings), host=host, port=port, log_level="info")
