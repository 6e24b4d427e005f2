"""Unit tests for MediaTypeKind.detect."""

import pytest

from app.domain.entities import MediaTypeKind


@pytest.mark.parametrize(
    ("media_type", "filename", "expected"),
    [
        ("application/pdf", None, MediaTypeKind.PDF),
        ("APPLICATION/PDF", None, MediaTypeKind.PDF),
        ("text/plain; charset=utf-8", None, MediaTypeKind.PLAIN_TEXT),
        ("text/markdown", None, MediaTypeKind.MARKDOWN),
        ("text/csv", None, MediaTypeKind.CSV),
        ("application/ld+json", None, MediaTypeKind.JSON),
        ("application/xhtml+xml", None, MediaTypeKind.HTML),
        ("application/octet-stream", "slides.PDF", MediaTypeKind.PDF),
        ("", "sheet.xlsx", MediaTypeKind.SPREADSHEET),
        (None, "report.docx?sig=abc", MediaTypeKind.WORD),
        ("text/x-rst", None, MediaTypeKind.PLAIN_TEXT),
        ("application/msword", "legacy.doc", MediaTypeKind.UNKNOWN),
        ("image/png", None, MediaTypeKind.UNKNOWN),
    ],
)
def test_detect(media_type, filename, expected):
    assert MediaTypeKind.detect(media_type, filename) is expected


def test_declared_type_wins_over_extension():
    assert MediaTypeKind.detect("text/html", "page.txt") is MediaTypeKind.HTML
