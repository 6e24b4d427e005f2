"""Domain value objects for query-time retrieval."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class RetrievedChunk:
    """A stored chunk ranked against a live query."""

    resource_id: str
    resource_title: str
    text: str
    score: float  # cosine similarity, higher is closer
    chunk_index: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)
