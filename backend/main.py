"""
Festival Importer API

FastAPI backend for detecting duplicate festivals and importing
festival records into the database.

Usage:
    uvicorn main:app --reload
"""

# Load environment variables from .env file FIRST
from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import Config

# Configure logging from environment
logging.basicConfig(
    level=getattr(logging, Config.log_level(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)
logger.info(f"Starting with LOG_LEVEL={Config.log_level()}, DEV_MODE={Config.is_dev()}")

from app.db import ConnectionPool, ensure_schema
from app.routes import festivals_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown."""
    # Startup: migrate, then open the pool
    db_path = Config.database_path()
    ensure_schema(db_path)
    pool = ConnectionPool(db_path)
    await pool.open()
    app.state.pool = pool
    logger.info("Service ready to handle requests")
    yield
    # Shutdown
    await pool.close()
    app.state.pool = None


app = FastAPI(
    title="Festival Importer API",
    description="Detect duplicate festivals and import festival data",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def warmup_middleware(request: Request, call_next):
    """Return 503 with retry hint if the pool is not open yet."""
    # Always allow health checks (for probes) and root
    if request.url.path in ("/health", "/", "/docs", "/openapi.json"):
        return await call_next(request)

    if getattr(request.app.state, "pool", None) is None:
        return JSONResponse(
            status_code=503,
            content={
                "error": "Service warming up",
                "message": "The server is starting up. Please retry in a few seconds.",
                "retry_after": 10,
            },
            headers={"Retry-After": "10"},
        )

    return await call_next(request)


# Include routers
app.include_router(festivals_router, tags=["festivals"])


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Festival Importer API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health(request: Request):
    """Health check endpoint for container probes."""
    pool = getattr(request.app.state, "pool", None)
    database = await pool.ping() if pool is not None else False
    return {"status": "healthy", "database": database}
