"""Health API for the custodial wallet service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from solcustody.api.routes import health
from solcustody.config import get_settings
from solcustody.context import get_context

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared context on startup and close its clients on shutdown."""
    context = get_context()
    logger.info(f"API using signer {context.signer!r}")
    try:
        yield
    finally:
        await context.close()


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Solcustody API",
        description="Custodial Solana wallet service health and status",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.debug,
    )

    # Browsers only reach the API in debug setups
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.include_router(health.router, tags=["Health"])

    return app
