"""Tests for DocumentExtractor.

Tests cover:
- PDF syntax scrubbing of parser output
- Raw byte fallback for unparseable PDFs
- DOCX paragraphs and tables via python-docx
- UTF-8 decoding for everything else
- Multi-file concatenation
"""

import io

import docx
import pytest

from claimcheck.ingest.document_extractor import (
    MAX_FALLBACK_LINES,
    DocumentExtractor,
    clean_pdf_fallback,
    clean_pdf_parsed_text,
)
from claimcheck.pipeline.schemas import UploadedFile


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture
def extractor():
    return DocumentExtractor()


@pytest.fixture
def docx_bytes() -> bytes:
    document = docx.Document()
    document.add_paragraph("The Eiffel Tower was completed in 1889.")
    document.add_paragraph("   ")
    document.add_paragraph("It is located in Paris, France.")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Height"
    table.cell(0, 1).text = "330 m"
    table.cell(1, 0).text = "Architect"
    table.cell(1, 1).text = "Stephen Sauvestre"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


BROKEN_PDF = (
    b"%PDF-1.4\n"
    b"1 0 obj\n"
    b"<< /Type /Catalog /Pages 2 0 R >>\n"
    b"endobj\n"
    b"BT /F1 12 Tf 72 712 Td (Hello) Tj ET\n"
    b"Quarterly revenue grew by twelve percent in 2024\n"
    b"\x00\x01\x02 binary noise \xff\xfe\n"
    b"Operating margin improved to eighteen percent\n"
    b"trailer\n"
    b"%%EOF\n"
)


# ── Cleaners ─────────────────────────────────────────────────────────────


class TestCleaners:
    def test_parsed_text_drops_pdf_syntax(self):
        text = "%PDF-1.7\nAnnual report summary\n12 0 obj\nab\nendobj\nRevenue grew in every region"
        assert clean_pdf_parsed_text(text) == "Annual report summary\nRevenue grew in every region"

    def test_parsed_text_requires_a_word(self):
        assert clean_pdf_parsed_text("12 34 56\n---\nok\nReal words here") == "Real words here"

    def test_parsed_text_handles_none(self):
        assert clean_pdf_parsed_text(None) == ""

    def test_fallback_recovers_printable_lines(self):
        assert clean_pdf_fallback(BROKEN_PDF) == (
            "Quarterly revenue grew by twelve percent in 2024\n"
            "binary noise\n"
            "Operating margin improved to eighteen percent"
        )

    def test_fallback_caps_lines(self):
        raw = b"\n".join(b"Line with words number %d" % i for i in range(MAX_FALLBACK_LINES + 50))
        assert len(clean_pdf_fallback(raw).split("\n")) == MAX_FALLBACK_LINES

    def test_fallback_drops_overlong_lines(self):
        raw = b"Short readable line\n" + b"word " * 400
        assert clean_pdf_fallback(raw) == "Short readable line"


# ── Dispatch ─────────────────────────────────────────────────────────────


class TestDispatch:
    def test_type_detection(self, extractor):
        assert extractor.is_pdf("report.PDF")
        assert extractor.is_pdf("upload", "application/pdf")
        assert not extractor.is_pdf("notes.txt", "text/plain")
        assert extractor.is_docx("memo.docx")
        assert extractor.is_docx(
            "upload",
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        )
        assert not extractor.is_docx("memo.doc", "application/msword")

    def test_plain_text_is_utf8_decoded(self, extractor):
        content = "Café prices rose 3% in Zürich.".encode("utf-8")
        assert extractor.extract("notes.txt", content, "text/plain") == "Café prices rose 3% in Zürich."

    def test_invalid_utf8_is_replaced(self, extractor):
        assert extractor.extract("blob.bin", b"ok \xff done") == "ok \ufffd done"

    def test_docx_paragraphs_and_tables(self, extractor, docx_bytes):
        text = extractor.extract("facts.docx", docx_bytes)
        assert text == (
            "The Eiffel Tower was completed in 1889.\n"
            "It is located in Paris, France.\n"
            "Height\t330 m\n"
            "Architect\tStephen Sauvestre"
        )

    def test_broken_docx_yields_empty(self, extractor):
        assert extractor.extract("broken.docx", b"not a zip file") == ""

    def test_broken_pdf_uses_byte_fallback(self, extractor):
        text = extractor.extract("scan.pdf", BROKEN_PDF, "application/pdf")
        assert "Quarterly revenue grew by twelve percent in 2024" in text
        assert "endobj" not in text

    def test_parsed_pdf_text_is_cleaned(self, extractor, monkeypatch):
        monkeypatch.setattr(
            extractor,
            "parse_pdf",
            lambda content: "%PDF-1.4\nThe committee approved the budget for 2025\nendstream",
        )
        assert extractor.extract_pdf(b"%PDF-1.4") == "The committee approved the budget for 2025"

    def test_sparse_parsed_pdf_falls_back_to_bytes(self, extractor, monkeypatch):
        monkeypatch.setattr(extractor, "parse_pdf", lambda content: "Tiny")
        raw = b"%PDF-1.4\nMeeting minutes from the March board session\n%%EOF"
        assert extractor.extract_pdf(raw) == "Meeting minutes from the March board session"

    def test_extract_many_joins_with_blank_line(self, extractor):
        files = [
            UploadedFile(filename="a.txt", content=b"First document text", content_type="text/plain"),
            UploadedFile(filename="b.md", content=b"Second document text"),
        ]
        assert extractor.extract_many(files) == "First document text\n\nSecond document text"
