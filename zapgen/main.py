"""
zapgen - Main Application Entry Point

FastAPI application exposing loaded packages and template generation for
imported user sessions.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any
import logging

from fastapi import FastAPI

from zapgen import __version__
from zapgen.api.routes import generation
from zapgen.config import settings
from zapgen.connectors import sqlite_pool
from zapgen.db import db_api

# Configure logging
# **IMPORTANT**: Use uvicorn's colored "LEVEL:" format for ALL loggers.
from uvicorn.logging import DefaultFormatter

console_handler = logging.StreamHandler()
console_handler.setFormatter(DefaultFormatter(fmt="%(levelprefix)s %(asctime)s - %(message)s", use_colors=True))

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    handlers=[console_handler],
)

logger = logging.getLogger(__name__)


async def _preload_packages(pool: sqlite_pool.SqliteConnectionPool) -> None:
    """Load the configured ZCL and template metafiles, if any."""
    if settings.ZCL_METAFILE:
        from zapgen.zcl.zcl_loader import load_zcl

        ctx = await load_zcl(pool, settings.ZCL_METAFILE)
        logger.info(f"📦 ZCL package {ctx.package_id} loaded from {ctx.path}")

    if settings.TEMPLATE_METAFILE:
        from zapgen.generator.generation_engine import load_templates

        ctx = await load_templates(pool, settings.TEMPLATE_METAFILE)
        logger.info(f"📦 Template package {ctx.package_id} loaded from {ctx.path}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting zapgen...")
    logger.info(f"📊 Debug mode: {settings.APP_DEBUG}")

    pool = sqlite_pool.get_default_pool()
    await pool.initialize()
    await db_api.load_schema(pool, Path(settings.SCHEMA_FILE))
    logger.info(f"✅ Database ready: {settings.DATABASE_PATH}")

    try:
        await _preload_packages(pool)
    except Exception as e:
        # The API stays usable for packages already in the database.
        logger.error(f"❌ Failed to preload packages: {e}")

    yield

    logger.info("🛑 Shutting down zapgen...")
    await sqlite_pool.close_default_pool()
    logger.info("👋 Shutdown complete")


app = FastAPI(
    title="zapgen",
    description="Template helpers and code generation for ZCL device configurations",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
)

app.include_router(generation.router, prefix="/api", tags=["generation"])


@app.get("/health")
async def health_check():
    """
    Health check endpoint for monitoring.

    Returns:
        dict: Service health status and version information
    """
    health_status: dict[str, Any] = {
        "status": "healthy",
        "service": "zapgen",
        "version": __version__,
        "environment": "development" if settings.APP_DEBUG else "production",
        "checks": {},
    }

    try:
        pool = sqlite_pool.get_default_pool()
        is_healthy = await pool.is_healthy()
        health_status["checks"]["database"] = {
            "status": "healthy" if is_healthy else "unhealthy",
            "path": pool.database,
        }
        if not is_healthy:
            health_status["status"] = "degraded"
    except Exception as e:
        health_status["checks"]["database"] = {"status": "unhealthy", "error": str(e)}
        health_status["status"] = "degraded"

    return health_status


if __name__ == "__main__":
    import uvicorn

    # **IMPORTANT**: log_config=None prevents uvicorn from overriding our logging setup.
    uvicorn.run(
        "zapgen.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.APP_RELOAD,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )
