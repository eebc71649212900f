"""
FastAPI application entry point for the Campaign Intelligence API.

Configures logging and CORS, manages the database pool lifecycle and
registers the credential, account and sync routers.

Run locally:
    uvicorn campaign_intel.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from campaign_intel import __version__
from campaign_intel.api import accounts_router, credentials_router, sync_router
from campaign_intel.core.config import get_settings
from campaign_intel.core.database import close_db, init_db
from campaign_intel.core.store import PostgresStore


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the database pool (and create missing tables when
    ``auto_create_schema`` is set) on startup and close it on shutdown.

    A failed pool init is logged and startup continues: /health must answer
    even when the store is down, and the pool is created lazily on first use.
    """
    logger.info("Campaign Intelligence API starting")
    try:
        pool = await init_db()
        if get_settings().auto_create_schema:
            await PostgresStore(pool).init_schema()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")

    yield

    logger.info("Campaign Intelligence API shutting down")
    try:
        await close_db()
    except Exception as e:
        logger.error(f"Error closing database pool: {e}")


app = FastAPI(
    title="Campaign Intelligence API",
    version=__version__,
    description=(
        "Syncs hourly ad performance per linked ad account and returns "
        "projections, optimization recommendations and an executive summary."
    ),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(credentials_router, prefix="/credentials", tags=["credentials"])
app.include_router(accounts_router, prefix="/accounts", tags=["accounts"])
app.include_router(sync_router, prefix="/sync", tags=["sync"])


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring and load balancer probes."""
    return {"status": "healthy"}


@app.get("/")
async def root():
    return {
        "name": "Campaign Intelligence API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "campaign_intel.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
