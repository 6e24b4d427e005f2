"""Domain-specific exceptions — framework-independent."""

from enum import Enum


class EntityNotFoundError(Exception):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: int | str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with id '{entity_id}' not found")


class NotProcessableError(Exception):
    """Raised when a resource cannot enter the ingestion pipeline at all.

    Terminal: the sweep never selects such a resource again.
    """

    def __init__(self, resource_id: str, reason: str):
        self.resource_id = resource_id
        self.reason = reason
        super().__init__(f"Resource '{resource_id}' is not processable: {reason}")


class BlobDownloadError(Exception):
    """Raised when the blob behind a resource cannot be fetched."""

    def __init__(self, blob_ref: str, message: str):
        self.blob_ref = blob_ref
        self.message = message
        super().__init__(f"Could not download blob '{blob_ref}': {message}")


class ExtractionFailedError(Exception):
    """Raised when a blob's content is corrupt or cannot be parsed."""

    def __init__(self, media_type: str, message: str):
        self.media_type = media_type
        self.message = message
        super().__init__(f"Text extraction failed for {media_type}: {message}")


class EmbeddingErrorKind(str, Enum):
    """Failure classes reported by an embedding provider."""

    AUTH = "auth"
    QUOTA = "quota"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    BAD_REQUEST = "bad_request"
    MALFORMED_RESPONSE = "malformed_response"


_RETRYABLE_KINDS = frozenset({
    EmbeddingErrorKind.RATE_LIMIT,
    EmbeddingErrorKind.SERVER,
    EmbeddingErrorKind.TIMEOUT,
    EmbeddingErrorKind.TRANSPORT,
})
_SYSTEMIC_KINDS = frozenset({
    EmbeddingErrorKind.AUTH,
    EmbeddingErrorKind.QUOTA,
})


class EmbeddingProviderError(Exception):
    """Raised when an embedding provider call fails.

    Provider-agnostic. ``retryable`` errors may succeed on a later call;
    ``systemic`` errors will fail identically for every resource.
    """

    def __init__(
        self,
        provider: str,
        kind: EmbeddingErrorKind,
        message: str,
        status_code: int | None = None,
    ):
        self.provider = provider
        self.kind = kind
        self.message = message
        self.status_code = status_code
        status = f" {status_code}" if status_code is not None else ""
        super().__init__(f"[{provider}] {kind.value}{status}: {message}")

    @property
    def retryable(self) -> bool:
        return self.kind in _RETRYABLE_KINDS

    @property
    def systemic(self) -> bool:
        return self.kind in _SYSTEMIC_KINDS


class EmbeddingConfigurationError(Exception):
    """Raised when the embedding model and the chunk store disagree on vector width."""

    systemic = True

    def __init__(self, expected: int, actual: int, source: str = "provider"):
        self.expected = expected
        self.actual = actual
        self.source = source
        super().__init__(
            f"Embedding dimensionality mismatch: store expects {expected}, {source} produces {actual}"
        )


class StorageError(Exception):
    """Raised when the chunk store cannot write a resource's replacement chunk set."""

    def __init__(self, resource_id: str, message: str):
        self.resource_id = resource_id
        self.message = message
        super().__init__(f"Chunk storage failed for resource '{resource_id}': {message}")


class StepTimeoutError(Exception):
    """Raised when an external call inside the pipeline exceeds its time budget."""

    def __init__(self, step: str, timeout_seconds: float):
        self.step = step
        self.timeout_seconds = timeout_seconds
        super().__init__(f"{step} timed out after {timeout_seconds:g}s")
