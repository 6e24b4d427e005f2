"""Unit tests for the OpenRouterEmbeddingProvider."""

import json

import httpx
import pytest

from app.domain.exceptions import EmbeddingErrorKind, EmbeddingProviderError
from app.infrastructure.openrouter import OpenRouterEmbeddingProvider, classify_status


# ── Helpers ──


def _embeddings_response(vectors: list[list[float]], shuffled: bool = False) -> dict:
    items = [{"object": "embedding", "index": i, "embedding": v} for i, v in enumerate(vectors)]
    if shuffled:
        items.reverse()
    return {"object": "list", "data": items, "model": "google/gemini-embedding-001"}


def _provider(handler, **kwargs) -> OpenRouterEmbeddingProvider:
    kwargs.setdefault("api_key", "test-key")
    kwargs.setdefault("model_dimensions", 3)
    return OpenRouterEmbeddingProvider(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        **kwargs,
    )


# ── Tests ──


@pytest.mark.asyncio
async def test_generate_embeddings_returns_vectors_in_input_order():
    """Vectors are re-sorted by index even if the API answers out of order."""
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_embeddings_response([[1, 0, 0], [0, 1, 0]], shuffled=True))

    result = await _provider(handler).generate_embeddings(["first", "second"])

    assert result == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
    request = seen[0]
    assert request.url.path.endswith("/embeddings")
    assert request.headers["Authorization"] == "Bearer test-key"
    payload = json.loads(request.content)
    assert payload == {
        "model": "google/gemini-embedding-001",
        "input": ["first", "second"],
        "dimensions": 3,
    }


@pytest.mark.asyncio
async def test_nomic_models_get_task_prefixes():
    inputs: list[list[str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        texts = json.loads(request.content)["input"]
        inputs.append(texts)
        return httpx.Response(200, json=_embeddings_response([[0.5, 0.5, 0.0]] * len(texts)))

    provider = _provider(handler, model="nomic-ai/nomic-embed-text-v1.5")
    await provider.generate_embeddings(["chunk text"])
    await provider.generate_query_embedding("a question")

    assert inputs == [["search_document: chunk text"], ["search_query: a question"]]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (401, EmbeddingErrorKind.AUTH),
        (402, EmbeddingErrorKind.QUOTA),
        (429, EmbeddingErrorKind.RATE_LIMIT),
        (503, EmbeddingErrorKind.SERVER),
        (400, EmbeddingErrorKind.BAD_REQUEST),
    ],
)
async def test_http_errors_are_classified(status, kind):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"error": {"code": status, "message": "nope"}})

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await _provider(handler).generate_embeddings(["text"])

    assert exc_info.value.kind == kind
    assert exc_info.value.status_code == status
    assert exc_info.value.provider == "openrouter"


@pytest.mark.asyncio
async def test_error_body_with_200_is_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"message": "model overloaded"}})

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await _provider(handler).generate_embeddings(["text"])

    assert exc_info.value.kind == EmbeddingErrorKind.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await _provider(handler).generate_embeddings(["text"])

    assert exc_info.value.kind == EmbeddingErrorKind.TRANSPORT
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_read_timeout_is_timeout_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await _provider(handler).generate_embeddings(["text"])

    assert exc_info.value.kind == EmbeddingErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_missing_api_key_is_auth_error():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    with pytest.raises(EmbeddingProviderError) as exc_info:
        await _provider(handler, api_key="").generate_embeddings(["text"])

    assert exc_info.value.kind == EmbeddingErrorKind.AUTH
    assert exc_info.value.systemic


@pytest.mark.asyncio
async def test_empty_input_skips_the_request():
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover
        raise AssertionError("no request expected")

    assert await _provider(handler).generate_embeddings([]) == []


@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (403, EmbeddingErrorKind.AUTH),
        (408, EmbeddingErrorKind.TIMEOUT),
        (413, EmbeddingErrorKind.BAD_REQUEST),
        (500, EmbeddingErrorKind.SERVER),
        (418, EmbeddingErrorKind.BAD_REQUEST),
    ],
)
def test_classify_status(status, kind):
    assert classify_status(status) == kind
