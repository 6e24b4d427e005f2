"""OpenRouter embedding provider — POSTs to an OpenAI-compatible ``/embeddings``.

Default model: google/gemini-embedding-001, asked for 768-d vectors so they
fit the chunk store's column.
"""

import logging
from typing import Any

import httpx

from app.application.interfaces.embedding_provider import EmbeddingProvider
from app.domain.exceptions import EmbeddingErrorKind, EmbeddingProviderError

logger = logging.getLogger(__name__)

# nomic-embed-text models expect a task prefix on every input
_NOMIC_PREFIXES = {"document": "search_document: ", "query": "search_query: "}

_STATUS_KINDS: dict[int, EmbeddingErrorKind] = {
    400: EmbeddingErrorKind.BAD_REQUEST,
    401: EmbeddingErrorKind.AUTH,
    402: EmbeddingErrorKind.QUOTA,
    403: EmbeddingErrorKind.AUTH,
    408: EmbeddingErrorKind.TIMEOUT,
    413: EmbeddingErrorKind.BAD_REQUEST,
    422: EmbeddingErrorKind.BAD_REQUEST,
    429: EmbeddingErrorKind.RATE_LIMIT,
}


def classify_status(status_code: int) -> EmbeddingErrorKind:
    """Map a non-200 HTTP status to an embedding failure kind."""
    if status_code in _STATUS_KINDS:
        return _STATUS_KINDS[status_code]
    return EmbeddingErrorKind.SERVER if status_code >= 500 else EmbeddingErrorKind.BAD_REQUEST


class OpenRouterEmbeddingProvider(EmbeddingProvider):
    """Infrastructure adapter for the OpenRouter ``/embeddings`` API.

    Every failure surfaces as an ``EmbeddingProviderError`` whose ``kind``
    tells the caller whether to retry (rate limit, 5xx, timeouts, transport)
    or give up (auth, quota, bad request, malformed payload).
    """

    name = "openrouter"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        app_name: str = "Module RAG",
        model: str = "google/gemini-embedding-001",
        model_dimensions: int = 768,
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._api_key = api_key
        self._endpoint = f"{base_url.rstrip('/')}/embeddings"
        self._app_name = app_name
        self._model = model
        self._dimensions = model_dimensions
        self._timeout = timeout
        self._http_client = http_client

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model

    async def generate_embeddings(self, texts: list[str]) -> list[list[float]]:
        """Embed document chunks, one vector per text in input order."""
        return await self._embed(texts, task="document")

    async def generate_query_embedding(self, query: str) -> list[float]:
        """Embed a search query (nomic models get the query prefix)."""
        vectors = await self._embed([query], task="query")
        return vectors[0]

    async def _embed(self, texts: list[str], *, task: str) -> list[list[float]]:
        if not texts:
            return []
        if not self._api_key:
            raise EmbeddingProviderError(self.name, EmbeddingErrorKind.AUTH, "no API key configured")

        prefix = _NOMIC_PREFIXES[task] if "nomic" in self._model.lower() else ""
        payload: dict[str, Any] = {
            "model": self._model,
            "input": [f"{prefix}{t}" for t in texts],
            "dimensions": self._dimensions,
        }

        response = await self._post(payload)
        if response.status_code != 200:
            body = response.text[:500]
            logger.error("Embedding API error %d: %s", response.status_code, body)
            raise EmbeddingProviderError(
                self.name,
                classify_status(response.status_code),
                body or response.reason_phrase,
                status_code=response.status_code,
            )

        vectors = self._parse_vectors(response)
        logger.info(
            "Generated %d embeddings (model=%s, dims=%d)",
            len(vectors),
            self._model,
            len(vectors[0]) if vectors else 0,
        )
        return vectors

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        """Send one request, translating httpx transport failures."""
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            "X-Title": self._app_name,
        }
        client = self._http_client or httpx.AsyncClient(timeout=self._timeout)
        try:
            return await client.post(self._endpoint, headers=headers, json=payload)
        except httpx.TimeoutException as e:
            raise EmbeddingProviderError(
                self.name, EmbeddingErrorKind.TIMEOUT, str(e) or "request timed out"
            ) from e
        except httpx.TransportError as e:
            raise EmbeddingProviderError(
                self.name, EmbeddingErrorKind.TRANSPORT, str(e) or type(e).__name__
            ) from e
        finally:
            if self._http_client is None:
                await client.aclose()

    def _parse_vectors(self, response: httpx.Response) -> list[list[float]]:
        """Pull the vectors out of an OpenAI-style payload, ordered by ``index``."""
        try:
            items = sorted(response.json()["data"], key=lambda item: item.get("index", 0))
            return [[float(v) for v in item["embedding"]] for item in items]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            # Some gateways answer 200 with an {"error": ...} body.
            raise EmbeddingProviderError(
                self.name,
                EmbeddingErrorKind.MALFORMED_RESPONSE,
                f"unexpected payload: {response.text[:200]}",
            ) from e
