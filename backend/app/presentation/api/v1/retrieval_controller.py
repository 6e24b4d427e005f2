"""Retrieval API controller — ranked chunks and prompt context for a query."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from app.application.schemas.retrieval import (
    RetrievalRequest,
    RetrievalResponse,
    RetrievedChunkSchema,
)
from app.application.services.context_formatter import ContextFormatter
from app.application.services.retrieval_service import RetrievalService
from app.domain.exceptions import EmbeddingConfigurationError, EmbeddingProviderError
from app.infrastructure.dependencies import get_context_formatter, get_retrieval_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/retrieval", tags=["retrieval"])


@router.post("", response_model=RetrievalResponse)
async def retrieve(
    request: RetrievalRequest,
    service: RetrievalService = Depends(get_retrieval_service),
    formatter: ContextFormatter = Depends(get_context_formatter),
):
    """Rank stored chunks against ``query``, optionally scoped to one module."""
    try:
        chunks = await service.retrieve(request.query, module_id=request.module_id, k=request.k)
    except (EmbeddingProviderError, EmbeddingConfigurationError, SQLAlchemyError) as e:
        logger.exception("Retrieval failed for module %s", request.module_id)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Retrieval failed: {e}",
        )

    return RetrievalResponse(
        chunks=[
            RetrievedChunkSchema(
                resource_id=c.resource_id,
                resource_title=c.resource_title,
                text=c.text,
                score=c.score,
                chunk_index=c.chunk_index,
                metadata=c.metadata,
            )
            for c in chunks
        ],
        context=formatter.build_prompt_section(chunks),
    )
