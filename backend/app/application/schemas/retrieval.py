"""Pydantic schemas for the retrieval endpoint."""

from typing import Any

from pydantic import BaseModel, Field


class RetrievalRequest(BaseModel):
    query: str
    module_id: str | None = None
    k: int | None = Field(default=None, ge=1, le=50)


class RetrievedChunkSchema(BaseModel):
    resource_id: str
    resource_title: str
    text: str
    score: float
    chunk_index: int
    metadata: dict[str, Any] = {}


class RetrievalResponse(BaseModel):
    """Ranked chunks plus the formatted context block ready for a prompt."""
    chunks: list[RetrievedChunkSchema]
    context: str
