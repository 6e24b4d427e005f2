"""FastAPI dependency injection — wires infrastructure to application layer."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.application.interfaces import BlobStorage
from app.application.services import (
    ContextFormatter,
    EmbeddingService,
    ResourceLockRegistry,
    ResourceProcessingService,
    ResourceSweepService,
    RetrievalService,
    TextChunker,
)
from app.infrastructure.database.session import async_session_factory, get_db_session
from app.infrastructure.database.repositories import (
    PgChunkRepository,
    SQLAlchemyResourceRepository,
)
from app.infrastructure.extractors.multi_format_text_extractor import MultiFormatTextExtractor
from app.infrastructure.openrouter import OpenRouterEmbeddingProvider
from app.infrastructure.storage.http_blob_storage import HttpBlobStorage
from app.infrastructure.storage.local_file_storage import LocalBlobStorage

# One registry per process so every request and sweep worker shares the same locks.
_lock_registry = ResourceLockRegistry()


def get_lock_registry() -> ResourceLockRegistry:
    return _lock_registry


# Built on first use and shared by every request so embedding calls reuse pooled connections.
_embedding_http_client: httpx.AsyncClient | None = None
_embedding_provider: OpenRouterEmbeddingProvider | None = None


def get_embedding_provider(settings: Settings | None = None) -> OpenRouterEmbeddingProvider:
    """The process-wide OpenRouter provider and its shared HTTP client."""
    global _embedding_http_client, _embedding_provider
    if _embedding_provider is None:
        settings = settings or get_settings()
        _embedding_http_client = httpx.AsyncClient(timeout=settings.embedding_timeout_seconds)
        _embedding_provider = OpenRouterEmbeddingProvider(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            app_name=settings.openrouter_app_name,
            model=settings.embedding_model,
            model_dimensions=settings.embedding_dimensions,
            timeout=settings.embedding_timeout_seconds,
            http_client=_embedding_http_client,
        )
    return _embedding_provider


async def close_embedding_provider() -> None:
    """Close the shared HTTP client; the next request builds a fresh provider."""
    global _embedding_http_client, _embedding_provider
    if _embedding_http_client is not None:
        await _embedding_http_client.aclose()
    _embedding_http_client = None
    _embedding_provider = None


def build_blob_storage(settings: Settings) -> BlobStorage:
    """Select the blob backend configured for this deployment."""
    if settings.blob_backend == "http":
        return HttpBlobStorage(
            base_url=settings.blob_base_url,
            timeout=settings.download_timeout_seconds,
        )
    if settings.blob_backend == "local":
        return LocalBlobStorage(upload_dir=settings.upload_dir)
    raise ValueError(f"Unknown blob backend: {settings.blob_backend!r}")


def build_embedding_service(settings: Settings, expected_dimensions: int) -> EmbeddingService:
    """Embedding service over the shared provider, checked against the store's vector width."""
    return EmbeddingService(
        get_embedding_provider(settings),
        expected_dimensions=expected_dimensions,
        batch_size=settings.embedding_batch_size,
        max_concurrency=settings.embedding_max_concurrency,
        max_attempts=settings.embedding_max_attempts,
        retry_initial_seconds=settings.embedding_retry_initial_seconds,
        retry_max_seconds=settings.embedding_retry_max_seconds,
        timeout_seconds=settings.embedding_timeout_seconds,
    )


def build_processing_service(session: AsyncSession) -> ResourceProcessingService:
    """Assemble the ingestion pipeline on top of one database session."""
    settings = get_settings()
    chunk_repository = PgChunkRepository(session)

    return ResourceProcessingService(
        resource_repository=SQLAlchemyResourceRepository(session),
        chunk_repository=chunk_repository,
        blob_storage=build_blob_storage(settings),
        text_extractor=MultiFormatTextExtractor(),
        chunker=TextChunker(chunk_size=settings.chunk_size, chunk_overlap=settings.chunk_overlap),
        embedding_service=build_embedding_service(settings, chunk_repository.dimensions),
        lock_registry=_lock_registry,
        download_timeout=settings.download_timeout_seconds,
        extraction_timeout=settings.extraction_timeout_seconds,
    )


@asynccontextmanager
async def processing_scope() -> AsyncIterator[ResourceProcessingService]:
    """One unit of work: a fresh session, committed when the resource is done."""
    async with async_session_factory() as session:
        try:
            yield build_processing_service(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_resource_processing_service(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[ResourceProcessingService, None]:
    """Provides a ResourceProcessingService bound to the request's session."""
    yield build_processing_service(session)


async def get_resource_sweep_service(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[ResourceSweepService, None]:
    """Provides a ResourceSweepService; each swept resource gets its own session."""
    settings = get_settings()
    yield ResourceSweepService(
        resource_repository=SQLAlchemyResourceRepository(session),
        processor_scope=processing_scope,
        concurrency=settings.sweep_concurrency,
        batch_limit=settings.sweep_batch_limit,
        stale_after_seconds=settings.processing_stale_after_seconds,
    )


async def get_retrieval_service(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[RetrievalService, None]:
    """Provides a RetrievalService over the chunk store."""
    settings = get_settings()
    chunk_repository = PgChunkRepository(session)
    yield RetrievalService(
        embedding_service=build_embedding_service(settings, chunk_repository.dimensions),
        chunk_repository=chunk_repository,
        default_k=settings.retrieval_top_k,
        min_score=settings.retrieval_min_score,
    )


async def get_chunk_repository(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[PgChunkRepository, None]:
    yield PgChunkRepository(session)


async def get_resource_repository(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[SQLAlchemyResourceRepository, None]:
    yield SQLAlchemyResourceRepository(session)


def get_context_formatter() -> ContextFormatter:
    return ContextFormatter(max_chars=get_settings().context_max_chars)
