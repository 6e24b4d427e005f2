"""HTTP blob storage — resources whose files live behind URLs (object stores, CDNs).

Blob references are either absolute URLs or keys relative to ``base_url``.
"""

import logging
import uuid
from pathlib import Path

import httpx

from app.application.interfaces.blob_storage import BlobStorage, StoredBlob
from app.domain.exceptions import BlobDownloadError
from app.infrastructure.storage.local_file_storage import guess_media_type

logger = logging.getLogger(__name__)


class HttpBlobStorage(BlobStorage):
    """Infrastructure adapter that reads and writes blobs over plain HTTP.

    Uploads are ``PUT`` to ``<base_url>/files/<key>``; deletes are ``DELETE``
    on the same URL. Downloads follow redirects so pre-signed URLs work.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=self._timeout, follow_redirects=True)

    def _url_for(self, blob_ref: str) -> str:
        if blob_ref.startswith(("http://", "https://")):
            return blob_ref
        if not self._base_url:
            raise BlobDownloadError(blob_ref, "relative reference but no blob base URL configured")
        return f"{self._base_url}/{blob_ref.lstrip('/')}"

    async def upload(self, content: bytes, filename: str) -> StoredBlob:
        media_type = guess_media_type(filename)
        key = f"files/{uuid.uuid4().hex}{Path(filename).suffix}"
        url = self._url_for(key)

        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.put(url, content=content, headers={"Content-Type": media_type})
            response.raise_for_status()
        finally:
            if should_close:
                await client.aclose()

        logger.info("Uploaded blob %s (%d bytes)", url, len(content))
        return StoredBlob(blob_ref=url, filename=filename, file_size=len(content), media_type=media_type)

    async def download(self, blob_ref: str) -> bytes:
        url = self._url_for(blob_ref)
        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.get(url)
        except httpx.HTTPError as e:
            raise BlobDownloadError(blob_ref, str(e) or type(e).__name__) from e
        finally:
            if should_close:
                await client.aclose()

        if response.status_code != 200:
            raise BlobDownloadError(blob_ref, f"HTTP {response.status_code}")
        return response.content

    async def delete(self, blob_ref: str) -> bool:
        url = self._url_for(blob_ref)
        client = await self._get_client()
        should_close = self._http_client is None
        try:
            response = await client.delete(url)
        finally:
            if should_close:
                await client.aclose()

        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True
