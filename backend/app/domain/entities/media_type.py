"""Closed classification of declared media types into extractable formats."""

from enum import Enum
from pathlib import PurePosixPath


class MediaTypeKind(str, Enum):
    """Format families the text extractor knows how to read.

    ``UNKNOWN`` is an explicit variant: it is handled by a best-effort
    UTF-8 decode rather than by falling through a chain of string checks.
    """

    PDF = "pdf"
    WORD = "word"
    SPREADSHEET = "spreadsheet"
    PLAIN_TEXT = "plain_text"
    MARKDOWN = "markdown"
    CSV = "csv"
    HTML = "html"
    JSON = "json"
    UNKNOWN = "unknown"

    @classmethod
    def detect(cls, media_type: str | None, filename: str | None = None) -> "MediaTypeKind":
        """Classify a declared MIME type, falling back to the file extension.

        Parameters such as ``; charset=utf-8`` are ignored. Generic types
        (``application/octet-stream``, empty) defer to the extension.
        """
        mime = (media_type or "").split(";", 1)[0].strip().lower()

        kind = _MIME_KINDS.get(mime)
        if kind is not None:
            return kind

        if mime.endswith("+json"):
            return cls.JSON
        if mime.endswith("+xml") and "html" in mime:
            return cls.HTML

        if filename:
            suffix = PurePosixPath(filename.split("?", 1)[0]).suffix.lower()
            kind = _EXTENSION_KINDS.get(suffix)
            if kind is not None:
                return kind

        if mime.startswith("text/"):
            return cls.PLAIN_TEXT
        return cls.UNKNOWN


_MIME_KINDS: dict[str, MediaTypeKind] = {
    "application/pdf": MediaTypeKind.PDF,
    "application/x-pdf": MediaTypeKind.PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": MediaTypeKind.WORD,
    "application/vnd.ms-word.document.macroenabled.12": MediaTypeKind.WORD,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": MediaTypeKind.SPREADSHEET,
    "text/plain": MediaTypeKind.PLAIN_TEXT,
    "text/markdown": MediaTypeKind.MARKDOWN,
    "text/x-markdown": MediaTypeKind.MARKDOWN,
    "text/csv": MediaTypeKind.CSV,
    "text/html": MediaTypeKind.HTML,
    "application/xhtml+xml": MediaTypeKind.HTML,
    "application/json": MediaTypeKind.JSON,
    "text/json": MediaTypeKind.JSON,
}

_EXTENSION_KINDS: dict[str, MediaTypeKind] = {
    ".pdf": MediaTypeKind.PDF,
    ".docx": MediaTypeKind.WORD,
    ".docm": MediaTypeKind.WORD,
    ".xlsx": MediaTypeKind.SPREADSHEET,
    ".txt": MediaTypeKind.PLAIN_TEXT,
    ".text": MediaTypeKind.PLAIN_TEXT,
    ".md": MediaTypeKind.MARKDOWN,
    ".markdown": MediaTypeKind.MARKDOWN,
    ".csv": MediaTypeKind.CSV,
    ".html": MediaTypeKind.HTML,
    ".htm": MediaTypeKind.HTML,
    ".json": MediaTypeKind.JSON,
}
