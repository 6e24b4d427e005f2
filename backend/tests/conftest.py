"""Shared in-memory fakes and fixtures for the ingestion and retrieval tests."""

import asyncio
import hashlib
import math
import re
import uuid
from dataclasses import replace
from datetime import datetime

import pytest

from app.application.interfaces import (
    BlobStorage,
    ChunkRepository,
    EmbeddingProvider,
    ResourceRepository,
    StoredBlob,
    VectorSearchResult,
)
from app.application.services import (
    EmbeddingService,
    ResourceLockRegistry,
    ResourceProcessingService,
    RetrievalService,
    TextChunker,
)
from app.domain.entities import ProcessingStatus, Resource, ResourceChunk
from app.domain.exceptions import BlobDownloadError, StorageError
from app.infrastructure.extractors.multi_format_text_extractor import MultiFormatTextExtractor

TEST_DIMENSIONS = 256

_TOKEN = re.compile(r"[a-z0-9']+")


# ── Fake Repositories ────────────────────────────────────────────────

class FakeResourceRepository(ResourceRepository):
    """In-memory resource repository. Hands out copies, like a real database."""

    def __init__(self):
        self._resources: dict[str, Resource] = {}
        self.fail_updates: Exception | None = None

    async def get_by_id(self, resource_id: str) -> Resource | None:
        resource = self._resources.get(resource_id)
        return replace(resource) if resource else None

    async def create(self, resource: Resource) -> Resource:
        if not resource.id:
            resource.id = str(uuid.uuid4())
        self._resources[resource.id] = replace(resource)
        return resource

    async def update(self, resource: Resource) -> Resource:
        if self.fail_updates is not None:
            raise self.fail_updates
        if resource.id not in self._resources:
            raise ValueError(f"Resource with id {resource.id} not found")
        self._resources[resource.id] = replace(resource)
        return resource

    async def delete(self, resource_id: str) -> bool:
        return self._resources.pop(resource_id, None) is not None

    async def list_unprocessed(
        self,
        *,
        stale_before: datetime | None = None,
        limit: int | None = None,
    ) -> list[Resource]:
        def eligible(r: Resource) -> bool:
            if not r.is_processable:
                return False
            if r.status in (ProcessingStatus.UNPROCESSED, ProcessingStatus.FAILED):
                return True
            return (
                stale_before is not None
                and r.status.in_flight
                and (r.last_attempt_at is None or r.last_attempt_at < stale_before)
            )

        found = sorted(
            (replace(r) for r in self._resources.values() if eligible(r)),
            key=lambda r: (r.created_at, r.id),
        )
        return found[:limit] if limit is not None else found

    def stored(self, resource_id: str) -> Resource:
        return self._resources[resource_id]


class InMemoryChunkRepository(ChunkRepository):
    """Chunk store with the same all-or-nothing replace and ranking rules as pgvector."""

    def __init__(self, resources: FakeResourceRepository, dimensions: int = TEST_DIMENSIONS):
        self._resources = resources
        self._dimensions = dimensions
        self._chunks: dict[str, list[ResourceChunk]] = {}
        self._lock = asyncio.Lock()
        self.fail_on_replace: Exception | None = None
        self.replace_calls = 0
        self.concurrent_writers = 0
        self.max_concurrent_writers = 0

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def replace_chunks(self, resource_id: str, chunks: list[ResourceChunk]) -> int:
        self.replace_calls += 1
        self.concurrent_writers += 1
        self.max_concurrent_writers = max(self.max_concurrent_writers, self.concurrent_writers)
        try:
            await asyncio.sleep(0)
            if self.fail_on_replace is not None:
                raise StorageError(resource_id, str(self.fail_on_replace))
            for expected, chunk in enumerate(sorted(chunks, key=lambda c: c.chunk_index)):
                if chunk.chunk_index != expected:
                    raise StorageError(resource_id, "chunk indexes must be contiguous from 0")
                if len(chunk.embedding) != self._dimensions:
                    raise StorageError(resource_id, "wrong embedding dimensionality")
            async with self._lock:
                self._chunks[resource_id] = [replace(c) for c in chunks]
            return len(chunks)
        finally:
            self.concurrent_writers -= 1

    async def delete_by_resource(self, resource_id: str) -> int:
        async with self._lock:
            return len(self._chunks.pop(resource_id, []))

    async def get_by_resource(self, resource_id: str) -> list[ResourceChunk]:
        return sorted(self._chunks.get(resource_id, []), key=lambda c: c.chunk_index)

    async def count_by_resource(self, resource_id: str) -> int:
        return len(self._chunks.get(resource_id, []))

    async def search_similar(
        self,
        query_embedding: list[float],
        *,
        module_id: str | None = None,
        limit: int = 3,
    ) -> list[VectorSearchResult]:
        scored = []
        for resource_id, chunks in self._chunks.items():
            resource = self._resources._resources.get(resource_id)
            if resource is None:
                continue
            if module_id is not None and resource.module_id != module_id:
                continue
            for chunk in chunks:
                similarity = cosine(query_embedding, chunk.embedding)
                scored.append((similarity, resource, chunk))

        scored.sort(key=lambda s: (-s[0], s[1].created_at, s[1].id, s[2].chunk_index))
        return [
            VectorSearchResult(
                chunk=chunk,
                similarity=similarity,
                resource_id=resource.id,
                resource_title=resource.title,
                media_type=resource.media_type,
                module_id=resource.module_id,
            )
            for similarity, resource, chunk in scored[:limit]
        ]

    def seed(self, resource_id: str, count: int) -> None:
        """Store ``count`` placeholder chunks without going through the pipeline."""
        self._chunks[resource_id] = [
            ResourceChunk(
                resource_id=resource_id,
                chunk_index=i,
                content=f"seed chunk {i}",
                embedding=[1.0] + [0.0] * (self._dimensions - 1),
            )
            for i in range(count)
        ]


# ── Fake Blob Storage ────────────────────────────────────────────────

class FakeBlobStorage(BlobStorage):
    def __init__(self):
        self.blobs: dict[str, bytes] = {}
        self.download_delay: float = 0.0
        self.fail_deletes = False

    def put(self, blob_ref: str, content: bytes) -> str:
        self.blobs[blob_ref] = content
        return blob_ref

    async def upload(self, content: bytes, filename: str) -> StoredBlob:
        blob_ref = f"files/{uuid.uuid4().hex}_{filename}"
        self.blobs[blob_ref] = content
        return StoredBlob(
            blob_ref=blob_ref,
            filename=filename,
            file_size=len(content),
            media_type="text/plain" if filename.endswith(".txt") else "application/octet-stream",
        )

    async def download(self, blob_ref: str) -> bytes:
        if self.download_delay:
            await asyncio.sleep(self.download_delay)
        if blob_ref not in self.blobs:
            raise BlobDownloadError(blob_ref, "file not found")
        return self.blobs[blob_ref]

    async def delete(self, blob_ref: str) -> bool:
        if self.fail_deletes:
            raise OSError("blob store unavailable")
        return self.blobs.pop(blob_ref, None) is not None


# ── Fake Embedding Provider ──────────────────────────────────────────

def hash_embedding(text: str, dimensions: int = TEST_DIMENSIONS) -> list[float]:
    """Deterministic bag-of-words vector: texts sharing words point the same way."""
    vector = [0.0] * dimensions
    for token in _TOKEN.findall(text.lower()):
        digest = hashlib.md5(token.encode("utf-8")).digest()
        index = int.from_bytes(digest[:4], "big") % dimensions
        vector[index] += 1.0
    norm = math.sqrt(sum(v * v for v in vector))
    if norm == 0:
        vector[0] = 1.0
        return vector
    return [v / norm for v in vector]


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeEmbeddingProvider(EmbeddingProvider):
    """Hashing embedder. ``errors`` are raised, in order, by the next calls."""

    name = "fake"

    def __init__(self, dimensions: int = TEST_DIMENSIONS):
        self._dimensions = dimensions
        self.calls: list[list[str]] = []
        self.errors: list[Exception] = []
        self.delay: float = 0.0

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.errors:
            raise self.errors.pop(0)
        return [hash_embedding(t, self._dimensions) for t in texts]


# ── Fixtures ─────────────────────────────────────────────────────────

@pytest.fixture
def resource_repo():
    return FakeResourceRepository()


@pytest.fixture
def chunk_repo(resource_repo):
    return InMemoryChunkRepository(resource_repo)


@pytest.fixture
def blob_storage():
    return FakeBlobStorage()


@pytest.fixture
def provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def embedding_service(provider):
    return EmbeddingService(
        provider,
        expected_dimensions=TEST_DIMENSIONS,
        max_attempts=3,
        retry_initial_seconds=0,
        retry_max_seconds=0,
        timeout_seconds=5,
    )


@pytest.fixture
def lock_registry():
    return ResourceLockRegistry()


@pytest.fixture
def processor(resource_repo, chunk_repo, blob_storage, embedding_service, lock_registry):
    return ResourceProcessingService(
        resource_repository=resource_repo,
        chunk_repository=chunk_repo,
        blob_storage=blob_storage,
        text_extractor=MultiFormatTextExtractor(),
        chunker=TextChunker(chunk_size=1000, chunk_overlap=200),
        embedding_service=embedding_service,
        lock_registry=lock_registry,
        download_timeout=2,
        extraction_timeout=10,
    )


@pytest.fixture
def retrieval_service(embedding_service, chunk_repo):
    return RetrievalService(embedding_service, chunk_repo, default_k=3)


@pytest.fixture
def add_resource(resource_repo, blob_storage):
    """Register a resource whose blob holds ``content``; returns its id."""

    async def _add(
        content: bytes | None,
        *,
        title: str = "Notes",
        media_type: str = "text/plain",
        module_id: str | None = "physics",
        status: ProcessingStatus = ProcessingStatus.UNPROCESSED,
    ) -> str:
        resource_id = str(uuid.uuid4())
        blob_ref = None
        if content is not None:
            blob_ref = blob_storage.put(f"files/{resource_id}", content)
        await resource_repo.create(
            Resource(
                id=resource_id,
                title=title,
                media_type=media_type,
                blob_ref=blob_ref,
                module_id=module_id,
                status=status,
            )
        )
        return resource_id

    return _add
