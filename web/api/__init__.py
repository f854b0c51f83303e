"""FastAPI backend for the Seven Bridge web UI."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from web.api.routes import games
from web.api.session_manager import session_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - stop every table's timers on shutdown."""
    logger.info("Seven Bridge API starting")
    yield
    for summary in session_manager.list_sessions():
        session_manager.delete_session(summary["id"])
    logger.info("Seven Bridge API stopped")


app = FastAPI(
    title="Seven Bridge API",
    description="API for playing Seven Bridge against AI opponents",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for frontend
cors_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
]

# Add production frontend URL if set
prod_url = os.environ.get("FRONTEND_URL")
if prod_url:
    cors_origins.append(prod_url)

logger.info(f"CORS origins configured: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(games.router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "tables": len(session_manager.list_sessions())}
