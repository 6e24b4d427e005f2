"""Embedding service — batched, order-preserving embedding generation.

This is an application service that coordinates:
1. Splitting a list of texts into fixed-size provider batches
2. Dispatching batches with bounded concurrency, retrying transient failures
3. Validating and reassembling the vectors in input order
"""

import asyncio
import logging
import time

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from app.application.interfaces.embedding_provider import EmbeddingProvider
from app.domain.exceptions import (
    EmbeddingConfigurationError,
    EmbeddingErrorKind,
    EmbeddingProviderError,
)

logger = logging.getLogger(__name__)

# ── Batching constants ──────────────────────────────────────────────
_DEFAULT_BATCH_SIZE = 10
_DEFAULT_MAX_CONCURRENCY = 2
_DEFAULT_MAX_ATTEMPTS = 4
_DEFAULT_TIMEOUT_SECONDS = 60.0


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, EmbeddingProviderError) and exc.retryable


class EmbeddingService:
    """Application service for turning texts into vectors via an EmbeddingProvider.

    Output order always mirrors input order. A failure in any batch fails
    the whole call; callers never see a partial result.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        *,
        expected_dimensions: int | None = None,
        batch_size: int = _DEFAULT_BATCH_SIZE,
        max_concurrency: int = _DEFAULT_MAX_CONCURRENCY,
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
        retry_initial_seconds: float = 1.0,
        retry_max_seconds: float = 20.0,
        timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        if expected_dimensions is not None and embedding_provider.dimensions != expected_dimensions:
            raise EmbeddingConfigurationError(
                expected=expected_dimensions,
                actual=embedding_provider.dimensions,
                source=embedding_provider.name,
            )

        self._provider = embedding_provider
        self._dimensions = expected_dimensions or embedding_provider.dimensions
        self._batch_size = batch_size
        self._max_concurrency = max_concurrency
        self._max_attempts = max(1, max_attempts)
        self._retry_initial = retry_initial_seconds
        self._retry_max = retry_max_seconds
        self._timeout = timeout_seconds

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed an ordered list of texts; ``result[i]`` belongs to ``texts[i]``."""
        if not texts:
            return []

        start = time.monotonic()
        batches = [
            texts[offset : offset + self._batch_size]
            for offset in range(0, len(texts), self._batch_size)
        ]
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _run(index: int, batch: list[str]) -> list[list[float]]:
            async with semaphore:
                return await self._embed_batch(batch, batch_index=index)

        tasks = [asyncio.create_task(_run(i, batch)) for i, batch in enumerate(batches)]
        try:
            batch_results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        vectors = [vector for batch in batch_results for vector in batch]

        logger.info(
            "Embedded %d texts in %d batches (%dms)",
            len(texts),
            len(batches),
            int((time.monotonic() - start) * 1000),
        )
        return vectors

    async def embed_one(self, text: str) -> list[float]:
        """Embed a single query text."""
        vectors = await self._call_with_retry(
            lambda: self._provider.generate_query_embedding(text),
            label="query",
            single=True,
        )
        return vectors[0]

    async def _embed_batch(self, batch: list[str], *, batch_index: int) -> list[list[float]]:
        vectors = await self._call_with_retry(
            lambda: self._provider.generate_embeddings(batch),
            label=f"batch {batch_index}",
        )
        if len(vectors) != len(batch):
            raise EmbeddingProviderError(
                self._provider.name,
                EmbeddingErrorKind.MALFORMED_RESPONSE,
                f"expected {len(batch)} vectors, got {len(vectors)}",
            )
        return vectors

    async def _call_with_retry(self, call, *, label: str, single: bool = False) -> list[list[float]]:
        """Invoke a provider call with a timeout and bounded exponential backoff."""

        def _log_retry(state: RetryCallState) -> None:
            exc = state.outcome.exception() if state.outcome else None
            logger.warning(
                "Embedding %s failed (attempt %d/%d), retrying: %s",
                label,
                state.attempt_number,
                self._max_attempts,
                exc,
            )

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential_jitter(multiplier=self._retry_initial, max=self._retry_max),
            retry=retry_if_exception(_is_retryable),
            before_sleep=_log_retry,
            reraise=True,
        )

        async for attempt in retrying:
            with attempt:
                try:
                    result = await asyncio.wait_for(call(), timeout=self._timeout)
                except asyncio.TimeoutError:
                    raise EmbeddingProviderError(
                        self._provider.name,
                        EmbeddingErrorKind.TIMEOUT,
                        f"no response within {self._timeout:g}s",
                    ) from None

        vectors = [result] if single else result
        self._check_dimensions(vectors)
        return vectors

    def _check_dimensions(self, vectors: list[list[float]]) -> None:
        for vector in vectors:
            if len(vector) != self._dimensions:
                raise EmbeddingConfigurationError(
                    expected=self._dimensions,
                    actual=len(vector),
                    source=self._provider.name,
                )
