"""Retrieval service — ranks stored chunks against a live query."""

import logging

from app.application.interfaces.chunk_repository import ChunkRepository
from app.application.services.embedding_service import EmbeddingService
from app.domain.entities.retrieval import RetrievedChunk
from app.infrastructure.logging.colored_logger import PipelineLogger, PipelineStage

logger = logging.getLogger(__name__)
plog = PipelineLogger("RetrievalService")

_DEFAULT_TOP_K = 3


class RetrievalService:
    """Application service: query + optional module scope → ranked chunks.

    Failures of the query embedding or the store propagate to the caller;
    an empty list always means "nothing relevant is indexed", never
    "retrieval broke".
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        chunk_repository: ChunkRepository,
        *,
        default_k: int = _DEFAULT_TOP_K,
        min_score: float | None = None,
    ):
        self._embedder = embedding_service
        self._chunk_repo = chunk_repository
        self._default_k = default_k
        self._min_score = min_score

    async def retrieve(
        self,
        query: str,
        module_id: str | None = None,
        k: int | None = None,
    ) -> list[RetrievedChunk]:
        """Return at most ``k`` chunks ranked by similarity to ``query``."""
        limit = self._default_k if k is None else k
        if limit < 1:
            raise ValueError("k must be at least 1")

        if not query or not query.strip():
            return []

        query_embedding = await self._embedder.embed_one(query.strip())
        results = await self._chunk_repo.search_similar(
            query_embedding,
            module_id=module_id,
            limit=limit,
        )

        ranked = [
            RetrievedChunk(
                resource_id=r.resource_id,
                resource_title=r.resource_title,
                text=r.chunk.content,
                score=r.similarity,
                chunk_index=r.chunk.chunk_index,
                metadata=dict(r.chunk.metadata),
            )
            for r in results
            if self._min_score is None or r.similarity >= self._min_score
        ]

        plog.stats(
            scope=module_id or "all",
            requested=limit,
            returned=len(ranked),
            top_score=f"{ranked[0].score:.3f}" if ranked else "-",
        )
        return ranked[:limit]
