"""FastAPI application factory for the module RAG backend."""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.engine import make_url

from app.config import Settings, get_settings
from app.infrastructure.database import EMBEDDING_DIMENSIONS, Base, engine
from app.infrastructure.dependencies import close_embedding_provider
from app.infrastructure.logging.log_config import setup_logging
from app.presentation.api.router import router as api_router

logger = logging.getLogger(__name__)


async def _create_database_if_missing(settings: Settings) -> None:
    """Issue ``CREATE DATABASE`` through the ``postgres`` maintenance database.

    Best-effort: managed databases usually refuse this, and then the
    configured database is expected to exist already.
    """
    import asyncpg

    url = make_url(settings.database_url)
    db_name = url.database
    if not db_name:
        return

    maintenance_dsn = url.set(drivername="postgresql", database="postgres").render_as_string(
        hide_password=False
    )
    try:
        conn = await asyncpg.connect(maintenance_dsn)
    except Exception as exc:
        logger.warning("Could not reach maintenance database to check '%s': %s", db_name, exc)
        return

    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name):
            logger.debug("Database '%s' already exists", db_name)
            return
        # Not allowed inside a transaction block
        await conn.execute(f'CREATE DATABASE "{db_name}"')
        logger.info("Created database '%s'", db_name)
    except Exception as exc:
        logger.warning("Could not create database '%s': %s", db_name, exc)
    finally:
        await conn.close()


async def _prepare_schema() -> None:
    """Enable pgvector and create the resource and chunk tables."""
    async with engine.begin() as conn:
        await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)


def _check_embedding_config(settings: Settings) -> None:
    if settings.embedding_dimensions != EMBEDDING_DIMENSIONS:
        logger.error(
            "EMBEDDING_DIMENSIONS=%d but the chunk store holds %d-d vectors; "
            "every ingestion and retrieval will fail until they agree.",
            settings.embedding_dimensions,
            EMBEDDING_DIMENSIONS,
        )
    if not settings.openrouter_api_key.strip():
        logger.warning("OPENROUTER_API_KEY is not configured; ingestion and retrieval will fail.")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup: database, schema, blob directory, config sanity. Shutdown: HTTP and database pools."""
    settings = get_settings()
    setup_logging()

    await _create_database_if_missing(settings)
    await _prepare_schema()

    if settings.blob_backend == "local":
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)

    _check_embedding_config(settings)
    logger.info(
        "Module RAG backend ready (env=%s, blobs=%s, model=%s)",
        settings.app_env,
        settings.blob_backend,
        settings.embedding_model,
    )

    yield

    await close_embedding_provider()
    await engine.dispose()


def create_app() -> FastAPI:
    """Build the FastAPI application with CORS and the versioned API router."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_title,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8020,
        reload=True,
    )
