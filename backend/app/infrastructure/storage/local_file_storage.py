"""Local filesystem blob storage for uploaded resource files.

Storage layout:
    <upload_dir>/files/<stem>_<YYYYMMDD_HHmmss>_<suffix>.<ext>

The blob reference handed back to callers is the path relative to
``upload_dir`` (e.g. ``files/notes_20240101_120000_ab12cd.pdf``).
"""

import logging
import mimetypes
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

from app.application.interfaces.blob_storage import BlobStorage, StoredBlob
from app.domain.exceptions import BlobDownloadError

logger = logging.getLogger(__name__)


def _datetime_stamp() -> str:
    """Return a UTC datetime stamp suitable for filenames: YYYYMMDD_HHmmss."""
    return datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")


def _sanitise(name: str, max_len: int = 80) -> str:
    """Replace non-word characters with underscores and truncate."""
    return re.sub(r"[^\w\-]", "_", name)[:max_len].strip("_") or "unnamed"


def guess_media_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


class LocalBlobStorage(BlobStorage):
    """Infrastructure adapter for blob storage on the local filesystem."""

    def __init__(self, upload_dir: str):
        self._upload_dir = Path(upload_dir).resolve()
        self._upload_dir.mkdir(parents=True, exist_ok=True)

    async def upload(self, content: bytes, filename: str) -> StoredBlob:
        """Store an uploaded file in ``<upload_dir>/files/``.

        The filename is augmented with a UTC datetime stamp and a short random
        suffix to avoid collisions.
        """
        files_dir = self._upload_dir / "files"
        files_dir.mkdir(parents=True, exist_ok=True)

        stem = Path(filename).stem
        suffix = Path(filename).suffix  # includes the dot
        stamped_name = f"{_sanitise(stem)}_{_datetime_stamp()}_{uuid.uuid4().hex[:6]}{suffix}"

        dest_path = files_dir / stamped_name
        dest_path.write_bytes(content)

        logger.info("Stored file: %s (%d bytes)", dest_path, len(content))

        return StoredBlob(
            blob_ref=dest_path.relative_to(self._upload_dir).as_posix(),
            filename=stamped_name,
            file_size=len(content),
            media_type=guess_media_type(filename),
        )

    async def download(self, blob_ref: str) -> bytes:
        path = self._resolve(blob_ref)
        if not path.is_file():
            raise BlobDownloadError(blob_ref, "file not found")
        try:
            return path.read_bytes()
        except OSError as e:
            raise BlobDownloadError(blob_ref, str(e)) from e

    async def delete(self, blob_ref: str) -> bool:
        """Delete a stored file from disk.

        Returns True if successfully deleted, False if not found.
        """
        path = self._resolve(blob_ref)
        if not path.exists():
            return False

        path.unlink(missing_ok=True)
        logger.info("Deleted file from disk: %s", path)
        return True

    def _resolve(self, blob_ref: str) -> Path:
        """Map a blob reference to a path, refusing anything outside upload_dir."""
        path = (self._upload_dir / blob_ref).resolve()
        if not path.is_relative_to(self._upload_dir):
            raise BlobDownloadError(blob_ref, "reference escapes the upload directory")
        return path
