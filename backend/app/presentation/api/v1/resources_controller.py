"""Resources API controller — upload, (re)process, inspect and delete resources."""

import logging

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status

from app.application.schemas.resources import (
    ChunkPreviewSchema,
    IngestionOutcomeSchema,
    ResourceChunksSchema,
    ResourceSchema,
    ResourceUploadResultSchema,
)
from app.application.services.resource_processing_service import ResourceProcessingService
from app.config import get_settings
from app.domain.entities import IngestionOutcome, Resource
from app.infrastructure.database.repositories import PgChunkRepository, SQLAlchemyResourceRepository
from app.infrastructure.dependencies import (
    get_chunk_repository,
    get_resource_processing_service,
    get_resource_repository,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources", tags=["resources"])

_PREVIEW_CHARS = 200


# ── Helpers ──────────────────────────────────────────────────────────

def _to_schema(resource: Resource) -> ResourceSchema:
    return ResourceSchema(
        id=resource.id,
        title=resource.title,
        media_type=resource.media_type,
        blob_ref=resource.blob_ref,
        module_id=resource.module_id,
        owner_id=resource.owner_id,
        file_size=resource.file_size,
        status=resource.status.value,
        chunk_count=resource.chunk_count,
        last_attempt_at=resource.last_attempt_at.isoformat() if resource.last_attempt_at else None,
        processed_at=resource.processed_at.isoformat() if resource.processed_at else None,
        error_message=resource.error_message,
        created_at=resource.created_at.isoformat(),
    )


def _to_outcome_schema(outcome: IngestionOutcome) -> IngestionOutcomeSchema:
    return IngestionOutcomeSchema(
        resource_id=outcome.resource_id,
        succeeded=outcome.succeeded,
        status=outcome.status.value if outcome.status else None,
        chunk_count=outcome.chunk_count,
        error=outcome.error,
        duration_ms=outcome.duration_ms,
    )


# ── Endpoints ────────────────────────────────────────────────────────

@router.post("", response_model=ResourceUploadResultSchema, status_code=status.HTTP_201_CREATED)
async def upload_resource(
    file: UploadFile,
    title: str | None = Form(None),
    module_id: str | None = Form(None),
    owner_id: str | None = Form(None),
    service: ResourceProcessingService = Depends(get_resource_processing_service),
):
    """Upload a file, register it as a resource and index it."""
    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")

    max_bytes = get_settings().max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds {get_settings().max_upload_size_mb} MB",
        )

    resource, outcome = await service.upload_resource(
        content,
        file.filename or "untitled",
        title=title,
        media_type=file.content_type if file.content_type != "application/octet-stream" else None,
        module_id=module_id,
        owner_id=owner_id,
    )
    return ResourceUploadResultSchema(
        resource=_to_schema(resource),
        outcome=_to_outcome_schema(outcome),
    )


@router.get("/{resource_id}", response_model=ResourceSchema)
async def get_resource(
    resource_id: str,
    repository: SQLAlchemyResourceRepository = Depends(get_resource_repository),
):
    """Get a resource and its ingestion state."""
    resource = await repository.get_by_id(resource_id)
    if resource is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")
    return _to_schema(resource)


@router.post("/{resource_id}/process", response_model=IngestionOutcomeSchema)
async def process_resource(
    resource_id: str,
    service: ResourceProcessingService = Depends(get_resource_processing_service),
):
    """Run (or re-run) the ingestion pipeline for one resource."""
    outcome = await service.ingest(resource_id)
    if not outcome.succeeded and outcome.status is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")
    return _to_outcome_schema(outcome)


@router.get("/{resource_id}/chunks", response_model=ResourceChunksSchema)
async def get_resource_chunks(
    resource_id: str,
    repository: SQLAlchemyResourceRepository = Depends(get_resource_repository),
    chunk_repository: PgChunkRepository = Depends(get_chunk_repository),
):
    """List a resource's stored chunks (previews only)."""
    if await repository.get_by_id(resource_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")

    chunks = await chunk_repository.get_by_resource(resource_id)
    return ResourceChunksSchema(
        resource_id=resource_id,
        chunk_count=len(chunks),
        chunks=[
            ChunkPreviewSchema(
                chunk_index=c.chunk_index,
                length=len(c.content),
                preview=c.content[:_PREVIEW_CHARS],
                metadata=c.metadata,
            )
            for c in chunks
        ],
    )


@router.delete("/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource(
    resource_id: str,
    service: ResourceProcessingService = Depends(get_resource_processing_service),
):
    """Delete a resource — removes its chunks, its record and its stored file."""
    deleted = await service.delete_resource(resource_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found")
