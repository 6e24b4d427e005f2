"""Multi-format text extractor — extracts text from PDF, DOCX, XLSX, HTML, JSON and plain text."""

import asyncio
import json
import logging
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from io import BytesIO

from app.application.interfaces.text_extractor import TextExtractionResult, TextExtractor
from app.domain.entities.media_type import MediaTypeKind

logger = logging.getLogger(__name__)


@contextmanager
def _temporary_file(content: bytes, suffix: str) -> Iterator[str]:
    """Write ``content`` to a named temp file and delete it on every exit path."""
    fd, path = tempfile.mkstemp(prefix="rag_extract_", suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(content)
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not delete temp file %s: %s", path, exc)


class MultiFormatTextExtractor(TextExtractor):
    """Infrastructure adapter that extracts text from various file formats.

    Implements the TextExtractor interface using format-specific libraries:
    - PDF: PyMuPDF (fitz), read from a temporary file
    - DOCX: python-docx, read from a temporary file
    - XLSX: openpyxl
    - HTML: BeautifulSoup
    - JSON: pretty-printed
    - TXT/CSV/MD: built-in decoding
    - Unknown: best-effort UTF-8 decode
    """

    # Declared MIME types that have a dedicated handler
    _SUPPORTED_TYPES: tuple[str, ...] = (
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/plain",
        "text/csv",
        "text/markdown",
        "text/html",
        "application/json",
    )

    def __init__(self) -> None:
        # Exhaustive: every MediaTypeKind has exactly one handler.
        self._handlers: dict[MediaTypeKind, Callable[[bytes], tuple[str, int | None]]] = {
            MediaTypeKind.PDF: self._extract_pdf,
            MediaTypeKind.WORD: self._extract_docx,
            MediaTypeKind.SPREADSHEET: self._extract_xlsx,
            MediaTypeKind.PLAIN_TEXT: self._extract_text,
            MediaTypeKind.MARKDOWN: self._extract_text,
            MediaTypeKind.CSV: self._extract_text,
            MediaTypeKind.HTML: self._extract_html,
            MediaTypeKind.JSON: self._extract_json,
            MediaTypeKind.UNKNOWN: self._extract_unknown,
        }

    def can_extract(self, media_type: str) -> bool:
        """Check if this extractor has a dedicated handler for the MIME type."""
        return MediaTypeKind.detect(media_type) is not MediaTypeKind.UNKNOWN

    def supported_types(self) -> list[str]:
        """Return the MIME types with a dedicated handler."""
        return list(self._SUPPORTED_TYPES)

    async def extract(
        self,
        content: bytes,
        media_type: str,
        filename: str | None = None,
    ) -> TextExtractionResult:
        """Extract text from raw blob content.

        Parsing runs in a worker thread. Corrupt or unreadable content never
        raises: the result has empty text and ``error`` set.
        """
        kind = MediaTypeKind.detect(media_type, filename)
        handler = self._handlers[kind]

        if kind is MediaTypeKind.UNKNOWN:
            logger.warning(
                "Unsupported media type '%s' (%s) — decoding as plain text",
                media_type,
                filename or "unnamed",
            )

        try:
            text, page_count = await asyncio.to_thread(handler, content)
        except Exception as exc:
            logger.warning(
                "Could not extract text from %s (%s): %s: %s",
                filename or "blob",
                kind.value,
                type(exc).__name__,
                exc,
            )
            return TextExtractionResult(
                text="",
                kind=kind,
                error=f"{type(exc).__name__}: {exc}",
            )

        logger.info(
            "Extracted %d characters from %s (%s)",
            len(text),
            filename or "blob",
            kind.value,
        )
        return TextExtractionResult(text=text, kind=kind, page_count=page_count)

    # ── Format-specific handlers (run in a worker thread) ────────────

    def _extract_pdf(self, content: bytes) -> tuple[str, int | None]:
        """Extract text from PDF using PyMuPDF."""
        import fitz  # PyMuPDF

        with _temporary_file(content, ".pdf") as path:
            doc = fitz.open(path)
            try:
                page_count = doc.page_count
                if page_count == 0:
                    raise ValueError("PDF has no pages")
                pages: list[str] = []
                for page_num, page in enumerate(doc):
                    text = page.get_text("text")
                    if text.strip():
                        pages.append(text)
                    else:
                        logger.debug("Page %d has no text layer", page_num + 1)
            finally:
                doc.close()

        if not pages:
            logger.warning("PDF has no extractable text — may be a scan")
        return "\n\n".join(pages), page_count

    def _extract_docx(self, content: bytes) -> tuple[str, int | None]:
        """Extract text from DOCX using python-docx."""
        from docx import Document

        with _temporary_file(content, ".docx") as path:
            doc = Document(path)

        parts: list[str] = [para.text for para in doc.paragraphs if para.text.strip()]

        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))

        return "\n\n".join(parts), None

    def _extract_xlsx(self, content: bytes) -> tuple[str, int | None]:
        """Extract text from XLSX using openpyxl."""
        from openpyxl import load_workbook

        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
        parts: list[str] = []
        sheet_count = len(wb.sheetnames)
        try:
            for sheet_name in wb.sheetnames:
                ws = wb[sheet_name]
                parts.append(f"--- Sheet: {sheet_name} ---")

                for row in ws.iter_rows(values_only=True):
                    cells = [str(cell) for cell in row if cell is not None]
                    if cells:
                        parts.append(" | ".join(cells))
        finally:
            wb.close()

        return "\n".join(parts), sheet_count

    def _extract_html(self, content: bytes) -> tuple[str, int | None]:
        """Strip markup from HTML, dropping scripts and styles."""
        from bs4 import BeautifulSoup

        soup = BeautifulSoup(_decode(content), "html.parser")
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        lines = (line.strip() for line in soup.get_text("\n").splitlines())
        return "\n".join(line for line in lines if line), None

    def _extract_json(self, content: bytes) -> tuple[str, int | None]:
        """Pretty-print JSON; malformed JSON is kept as raw text."""
        raw = _decode(content)
        try:
            return json.dumps(json.loads(raw), indent=2, ensure_ascii=False), None
        except json.JSONDecodeError:
            logger.debug("Invalid JSON — indexing raw text")
            return raw, None

    def _extract_text(self, content: bytes) -> tuple[str, int | None]:
        """Extract text from plain text files (TXT, CSV, MD)."""
        return _decode(content), None

    def _extract_unknown(self, content: bytes) -> tuple[str, int | None]:
        """Best-effort UTF-8 decode for types without a handler."""
        return content.decode("utf-8", errors="replace").replace("\x00", ""), None


def _decode(content: bytes) -> str:
    """Decode text content — UTF-8 (BOM-aware) first, then latin-1."""
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        return content.decode("latin-1")
