"""Abstract interface (port) for the external blob store holding uploaded files."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class StoredBlob:
    """Result of uploading a single blob."""

    blob_ref: str
    filename: str
    file_size: int
    media_type: str


class BlobStorage(ABC):
    """Port for blob upload/download — implemented in the infrastructure layer."""

    @abstractmethod
    async def upload(self, content: bytes, filename: str) -> StoredBlob:
        """Store ``content`` and return a reference that ``download`` accepts."""
        ...

    @abstractmethod
    async def download(self, blob_ref: str) -> bytes:
        """Fetch the bytes behind ``blob_ref``.

        Raises:
            BlobDownloadError: if the blob is missing or unreachable.
        """
        ...

    @abstractmethod
    async def delete(self, blob_ref: str) -> bool:
        """Remove a blob. Returns False if it did not exist."""
        ...
