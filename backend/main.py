"""
DocHub FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend import db
from backend.config import settings
from backend.repos.memory_store import MemoryStore
from backend.repos.postgres_store import PostgresStore
from backend.routes import auth_routes, resources, sections, ws

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Pick the document store (Postgres when DATABASE_URL is set, else in-memory)
    - Close the store and the database pool on shutdown
    """
    # Startup
    if settings.DATABASE_URL:
        pool = await db.init_pool()
        app.state.store = PostgresStore(pool)
        logger.info("Database pool initialized")
    else:
        app.state.store = MemoryStore()
        logger.warning("DATABASE_URL not set, using in-memory store")

    yield

    # Shutdown
    await app.state.store.close()
    await db.close_pool()
    logger.info("Document store closed")


app = FastAPI(
    title="DocHub",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(auth_routes.router)
app.include_router(sections.router)
app.include_router(resources.router)
app.include_router(ws.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
