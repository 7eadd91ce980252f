"""
FastAPI OAuth Proxy Application Factory
=======================================

This is the main entry point for the proxy that lets browser clients talk to
an external OAuth provider without tripping over CORS.

Architecture:
    Browser → OAuth Proxy (this service) → OAuth Provider

Routers:
    - /proxy/oauth/token : Token exchange (POST)
    - /proxy/user-info   : User profile lookup (GET)
    - /health            : Health check endpoint

Environment Variables:
    - OAUTH_TOKEN_URL: Provider token endpoint
    - USER_INFO_URL: Provider user-info endpoint
    - UPSTREAM_TIMEOUT_SECONDS: Upstream call timeout (default: 30)
    - PROXY_HOST / PROXY_PORT: Listener address (default: 0.0.0.0:8080)
    - LOG_LEVEL: Logging level (default: INFO)

Running the Service:
    Development:
        uvicorn oauth_proxy.app.main:app --reload --port 8080

    Production:
        oauth-proxy
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import httpx
import uvicorn
from fastapi import FastAPI

from .config import ENV_FILE, Settings, get_settings, validate_configuration
from .proxy import proxy_router

SERVICE_NAME = "oauth-proxy"

logger = logging.getLogger("oauth_proxy.main")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def log_configuration(settings: Settings) -> None:
    """Log startup diagnostics: missing .env file and configuration problems."""
    if not os.path.exists(ENV_FILE):
        logger.warning(f"{ENV_FILE} file not found, falling back to environment variables")

    report = validate_configuration(settings)
    for warning in report["warnings"]:
        logger.warning(warning)
    for error in report["errors"]:
        logger.error(error)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Log configuration diagnostics
        - Create the shared upstream HTTP client (unless one was injected)

    Shutdown:
        - Close the upstream client created here
    """
    settings: Settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)
    log_configuration(settings)

    owns_client = getattr(app.state, "upstream_client", None) is None
    if owns_client:
        app.state.upstream_client = httpx.AsyncClient(
            timeout=httpx.Timeout(settings.UPSTREAM_TIMEOUT_SECONDS)
        )

    logger.info(
        "OAuth proxy started",
        extra={
            "service": SERVICE_NAME,
            "token_url": settings.OAUTH_TOKEN_URL,
            "user_info_url": settings.USER_INFO_URL,
        }
    )

    yield

    logger.info("Shutting down OAuth proxy")
    if owns_client:
        await app.state.upstream_client.aclose()
        app.state.upstream_client = None


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Args:
        settings: Configuration to bind to the app (loaded from the
            environment when omitted)

    Returns:
        FastAPI: Configured application instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="OAuth Proxy",
        description="CORS-enabled proxy for an external OAuth provider's token and user-info endpoints",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.upstream_client = None

    app.include_router(
        proxy_router,
        prefix="/proxy",
        tags=["OAuth Proxy"]
    )

    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
        }

    return app


# Create app instance for uvicorn
app = create_app()


def run() -> None:
    """
    Serve the application with uvicorn.

    uvicorn exits the process with a non-zero status if the port cannot be bound.
    """
    settings = app.state.settings
    setup_logging(settings.LOG_LEVEL)
    logger.info(f"Server starting on {settings.PROXY_HOST}:{settings.PROXY_PORT}")

    uvicorn.run(
        app,
        host=settings.PROXY_HOST,
        port=settings.PROXY_PORT,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
