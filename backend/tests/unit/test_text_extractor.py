"""Unit tests for MultiFormatTextExtractor."""

import json
import tempfile
from io import BytesIO

import pytest

from app.domain.entities import MediaTypeKind
from app.infrastructure.extractors.multi_format_text_extractor import MultiFormatTextExtractor

DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def extractor():
    return MultiFormatTextExtractor()


def _pdf_bytes(*pages: str) -> bytes:
    import fitz

    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def _docx_bytes() -> bytes:
    from docx import Document

    doc = Document()
    doc.add_paragraph("Kinematics describes motion.")
    doc.add_paragraph("   ")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "velocity"
    table.rows[0].cells[1].text = "m/s"
    buffer = BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


def _xlsx_bytes() -> bytes:
    from openpyxl import Workbook

    wb = Workbook()
    ws = wb.active
    ws.title = "Constants"
    ws.append(["g", 9.81])
    ws.append([None, None])
    ws.append(["c", 299792458])
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


# ── Text formats ──


@pytest.mark.asyncio
async def test_plain_text_strips_utf8_bom(extractor):
    result = await extractor.extract("\ufeffCafé notes".encode("utf-8"), "text/plain")

    assert result.text == "Café notes"
    assert result.kind == MediaTypeKind.PLAIN_TEXT
    assert not result.failed


@pytest.mark.asyncio
async def test_plain_text_falls_back_to_latin1(extractor):
    result = await extractor.extract("Café".encode("latin-1"), "text/plain; charset=iso-8859-1")

    assert result.text == "Café"


@pytest.mark.asyncio
async def test_html_drops_scripts_and_markup(extractor):
    html = b"<html><head><script>var x = 1;</script><style>p {}</style></head>" \
           b"<body><h1>Optics</h1><p>Light bends.</p></body></html>"

    result = await extractor.extract(html, "text/html")

    assert result.text == "Optics\nLight bends."


@pytest.mark.asyncio
async def test_json_is_pretty_printed(extractor):
    result = await extractor.extract(b'{"topic":"waves","order":2}', "application/json")

    assert result.text == json.dumps({"topic": "waves", "order": 2}, indent=2)


@pytest.mark.asyncio
async def test_invalid_json_is_kept_as_raw_text(extractor):
    result = await extractor.extract(b"{not json", "application/json")

    assert result.text == "{not json"
    assert not result.failed


@pytest.mark.asyncio
async def test_unknown_type_is_decoded_best_effort(extractor):
    result = await extractor.extract(b"abc\x00def\xff", "application/x-custom")

    assert result.kind == MediaTypeKind.UNKNOWN
    assert result.text == "abcdef\ufffd"


@pytest.mark.asyncio
async def test_generic_type_uses_filename_extension(extractor):
    result = await extractor.extract(b"# Heading", "application/octet-stream", filename="files/notes.md")

    assert result.kind == MediaTypeKind.MARKDOWN
    assert result.text == "# Heading"


# ── Binary formats ──


@pytest.mark.asyncio
async def test_pdf_text_is_extracted_per_page(extractor):
    result = await extractor.extract(_pdf_bytes("Newton first law", "Second page"), "application/pdf")

    assert result.page_count == 2
    assert "Newton first law" in result.text
    assert "Second page" in result.text
    assert not result.failed


@pytest.mark.asyncio
async def test_corrupt_pdf_reports_an_error(extractor):
    result = await extractor.extract(b"definitely not a pdf", "application/pdf")

    assert result.failed
    assert result.text == ""
    assert result.kind == MediaTypeKind.PDF


@pytest.mark.asyncio
async def test_docx_paragraphs_and_tables(extractor):
    result = await extractor.extract(_docx_bytes(), DOCX)

    assert result.text == "Kinematics describes motion.\n\nvelocity | m/s"


@pytest.mark.asyncio
async def test_xlsx_rows_are_joined_per_sheet(extractor):
    result = await extractor.extract(_xlsx_bytes(), XLSX)

    assert result.page_count == 1
    assert result.text == "--- Sheet: Constants ---\ng | 9.81\nc | 299792458"


@pytest.mark.asyncio
async def test_temporary_files_are_removed(extractor, tmp_path, monkeypatch):
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))

    await extractor.extract(_pdf_bytes("cleanup"), "application/pdf")
    await extractor.extract(b"broken", "application/pdf")
    await extractor.extract(_docx_bytes(), DOCX)

    assert list(tmp_path.glob("rag_extract_*")) == []


def test_can_extract(extractor):
    assert extractor.can_extract("application/pdf")
    assert extractor.can_extract("text/markdown")
    assert not extractor.can_extract("application/msword")
    assert "application/json" in extractor.supported_types()
