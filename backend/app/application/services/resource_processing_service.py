"""Resource processing service — orchestrates the ingestion pipeline for one resource."""

import asyncio
import logging
import mimetypes
import time
import uuid
from collections.abc import Awaitable
from typing import TypeVar

from app.application.interfaces import (
    BlobStorage,
    ChunkRepository,
    ResourceRepository,
    TextExtractor,
)
from app.application.services.embedding_service import EmbeddingService
from app.application.services.resource_locks import ResourceLockRegistry
from app.application.services.text_chunker import TextChunker
from app.domain.entities import (
    IngestionOutcome,
    ProcessingStatus,
    Resource,
    ResourceChunk,
)
from app.domain.exceptions import (
    BlobDownloadError,
    EmbeddingConfigurationError,
    EmbeddingProviderError,
    EntityNotFoundError,
    ExtractionFailedError,
    NotProcessableError,
    StepTimeoutError,
    StorageError,
)
from app.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("ResourceProcessingService")

_T = TypeVar("_T")

# Failures the pipeline anticipates; anything else is logged with a traceback.
_EXPECTED_FAILURES = (
    BlobDownloadError,
    NotProcessableError,
    EmbeddingConfigurationError,
    EmbeddingProviderError,
    StepTimeoutError,
    StorageError,
)


class ResourceProcessingService:
    """Application service that runs Download → Extract → Chunk → Embed → Store.

    No partial commits: the resource's stored chunk set is replaced only
    after the complete new chunk+vector set exists. Every failure is caught
    here, recorded on the resource, and reported as a failed outcome.
    """

    def __init__(
        self,
        resource_repository: ResourceRepository,
        chunk_repository: ChunkRepository,
        blob_storage: BlobStorage,
        text_extractor: TextExtractor,
        chunker: TextChunker,
        embedding_service: EmbeddingService,
        *,
        lock_registry: ResourceLockRegistry | None = None,
        download_timeout: float = 60.0,
        extraction_timeout: float = 120.0,
    ):
        self._resource_repo = resource_repository
        self._chunk_repo = chunk_repository
        self._blobs = blob_storage
        self._extractor = text_extractor
        self._chunker = chunker
        self._embedder = embedding_service
        self._locks = lock_registry or ResourceLockRegistry()
        self._download_timeout = download_timeout
        self._extraction_timeout = extraction_timeout

    # ── Public Operations ────────────────────────────────────────────

    async def process_resource(self, resource_id: str) -> bool:
        """Process one resource. Returns True when it ends up processed."""
        outcome = await self.ingest(resource_id)
        return outcome.succeeded

    async def ingest(self, resource_id: str) -> IngestionOutcome:
        """Process one resource and report the detailed outcome."""
        async with self._locks.hold(resource_id):
            return await self._ingest_locked(resource_id)

    async def upload_resource(
        self,
        content: bytes,
        filename: str,
        *,
        title: str | None = None,
        media_type: str | None = None,
        module_id: str | None = None,
        owner_id: str | None = None,
    ) -> tuple[Resource, IngestionOutcome]:
        """Store an uploaded file, register the resource and run the upload hook."""
        plog.separator(f"Upload: {filename}")
        plog.step_start(PipelineStage.UPLOAD, f"Received file '{filename}'", size_bytes=len(content))

        stored = await self._blobs.upload(content, filename)
        resource = Resource(
            id=str(uuid.uuid4()),
            title=title or filename,
            media_type=media_type or stored.media_type or mimetypes.guess_type(filename)[0] or "application/octet-stream",
            blob_ref=stored.blob_ref,
            module_id=module_id,
            owner_id=owner_id,
            file_size=stored.file_size,
        )
        resource = await self._resource_repo.create(resource)
        plog.detail("Resource record created", id=resource.id, blob_ref=stored.blob_ref)

        outcome = await self.ingest(resource.id)
        refreshed = await self._resource_repo.get_by_id(resource.id)
        return refreshed or resource, outcome

    async def delete_resource(self, resource_id: str) -> bool:
        """Delete a resource, all of its chunks, and its blob.

        Returns True if the resource was found and deleted, False if not found.
        """
        async with self._locks.hold(resource_id):
            resource = await self._resource_repo.get_by_id(resource_id)
            if resource is None:
                plog.step_error(PipelineStage.ERROR, f"Resource not found for deletion: {resource_id}")
                return False

            removed_chunks = await self._chunk_repo.delete_by_resource(resource_id)
            await self._resource_repo.delete(resource_id)

        if resource.blob_ref:
            try:
                await self._blobs.delete(resource.blob_ref)
            except Exception as e:
                # Orphaned blobs are harmless to retrieval; the record is gone.
                logger.warning("Could not remove blob %s: %s", resource.blob_ref, e)

        plog.step_complete(
            PipelineStage.COMPLETE,
            f"Deleted '{resource.title}'",
            resource_id=resource_id,
            chunks_removed=removed_chunks,
        )
        return True

    # ── Internal Pipeline ────────────────────────────────────────────

    async def _ingest_locked(self, resource_id: str) -> IngestionOutcome:
        start = time.monotonic()

        resource = await self._resource_repo.get_by_id(resource_id)
        if resource is None:
            error = EntityNotFoundError("Resource", resource_id)
            plog.step_error(PipelineStage.ERROR, str(error))
            return IngestionOutcome(resource_id=resource_id, succeeded=False, error=str(error))

        plog.separator(f"Processing: {resource.title}")

        if not resource.is_processable:
            error = NotProcessableError(resource_id, "no blob reference")
            plog.step_error(PipelineStage.ERROR, str(error))
            await self._record_failure(resource, str(error))
            return IngestionOutcome(
                resource_id=resource_id,
                succeeded=False,
                status=resource.status,
                error=str(error),
            )

        try:
            resource.begin_attempt()
            await self._resource_repo.update(resource)
            chunk_count = await self._run_steps(resource_id, resource)
            resource.mark_processed(chunk_count)
            await self._resource_repo.update(resource)
        except Exception as e:
            return await self._fail(resource_id, resource, e, start)

        duration_ms = int((time.monotonic() - start) * 1000)
        plog.step_complete(
            PipelineStage.COMPLETE,
            f"Processed '{resource.title}'",
            chunks=chunk_count,
            duration_ms=duration_ms,
        )
        return IngestionOutcome(
            resource_id=resource_id,
            succeeded=True,
            status=resource.status,
            chunk_count=chunk_count,
            duration_ms=duration_ms,
        )

    async def _run_steps(self, resource_id: str, resource: Resource) -> int:
        """Run every pipeline step and swap in the new chunk set. Returns its size."""
        blob_ref = resource.blob_ref
        if not blob_ref:
            raise NotProcessableError(resource_id, "no blob reference")

        with plog.timed_step(PipelineStage.DOWNLOAD, f"Downloading '{blob_ref}'"):
            content = await self._with_timeout(
                self._blobs.download(blob_ref), "download", self._download_timeout,
            )
        plog.stats(size_bytes=len(content))

        with plog.timed_step(PipelineStage.TEXT_EXTRACTION, f"Extracting text ({resource.media_type})"):
            extraction = await self._with_timeout(
                self._extractor.extract(content, resource.media_type, filename=blob_ref),
                "extraction",
                self._extraction_timeout,
            )
        if extraction.failed:
            raise ExtractionFailedError(resource.media_type, extraction.error or "unreadable content")

        if extraction.is_empty:
            plog.detail("No text extracted — indexing nothing", resource_id=resource_id)
            resource.advance(ProcessingStatus.STORING)
            return await self._chunk_repo.replace_chunks(resource_id, [])

        resource.advance(ProcessingStatus.CHUNKING)
        texts = self._chunker.split(extraction.text)
        plog.stats(chars_extracted=len(extraction.text), chunks=len(texts), kind=extraction.kind.value)

        resource.advance(ProcessingStatus.EMBEDDING)
        with plog.timed_step(PipelineStage.EMBEDDING, f"Embedding {len(texts)} chunks"):
            vectors = await self._embedder.embed(texts)

        chunks = [
            ResourceChunk(
                resource_id=resource_id,
                chunk_index=index,
                content=text,
                embedding=vector,
                metadata={
                    "index": index,
                    "length": len(text),
                    "resource_title": resource.title,
                    "resource_type": resource.media_type,
                },
            )
            for index, (text, vector) in enumerate(zip(texts, vectors, strict=True))
        ]

        resource.advance(ProcessingStatus.STORING)
        with plog.timed_step(PipelineStage.STORAGE, f"Replacing chunk set ({len(chunks)} chunks)"):
            return await self._chunk_repo.replace_chunks(resource_id, chunks)

    async def _fail(
        self, resource_id: str, resource: Resource, error: Exception, start: float
    ) -> IngestionOutcome:
        """Record a failed attempt; the stored chunk set is left untouched."""
        systemic = bool(getattr(error, "systemic", False))

        if isinstance(error, ExtractionFailedError):
            plog.step_warning(PipelineStage.TEXT_EXTRACTION, f"Skipping '{resource.title}': {error}")
        else:
            plog.step_error(PipelineStage.ERROR, f"Pipeline failed for '{resource.title}'", error=error)
            if not isinstance(error, _EXPECTED_FAILURES):
                logger.exception("Unexpected ingestion failure for resource %s", resource_id)

        message = f"{type(error).__name__}: {error}"
        await self._record_failure(resource, message)

        return IngestionOutcome(
            resource_id=resource_id,
            succeeded=False,
            status=resource.status,
            error=message,
            systemic=systemic,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    async def _record_failure(self, resource: Resource, message: str) -> None:
        resource.mark_failed(message)
        try:
            await self._resource_repo.update(resource)
        except Exception:
            logger.exception("Could not record failure for resource %s", resource.id)

    @staticmethod
    async def _with_timeout(awaitable: Awaitable[_T], step: str, timeout: float) -> _T:
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError:
            raise StepTimeoutError(step, timeout) from None
