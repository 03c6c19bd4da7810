"""Document-to-text extraction for uploaded files.

PDFs go through pypdfium2 (best text quality), then pdfplumber (better on
tables). Parsed text is scrubbed of leftover PDF syntax, and when parsing
yields next to nothing the raw bytes are mined for printable text lines.
DOCX files go through python-docx. Anything else is decoded as UTF-8.

Extraction is best effort: it never raises, a broken file just yields
little or no text.
"""

import io
import re
from typing import Iterable, Optional

import docx
import pdfplumber
import pypdfium2 as pdfium

from claimcheck.config.logging import get_logger

MIN_PARSED_PDF_CHARS = 20
MAX_FALLBACK_LINES = 2000

_LINE_BREAK = re.compile(r"\r?\n")
_HAS_WORD = re.compile(r"[A-Za-z]{3,}")
_NON_PRINTABLE = re.compile(r"[^\x09\x0A\x0D\x20-\x7E]")

# PDF object syntax that survives raw byte scraping
_RAW_PDF_TOKEN = re.compile(
    r"^(%PDF-|\d+\s+\d+\s+obj\b|endobj\b|stream\b|endstream\b|xref\b|trailer\b|startxref\b"
    r"|%%EOF|\s*<<?\s*/|\s*\[|\s*\]|\s*BT\b|\s*ET\b)",
    re.IGNORECASE,
)
# Tokens a text parser occasionally leaves behind
_PARSED_PDF_TOKEN = re.compile(
    r"^(%PDF-|\d+\s+\d+\s+obj\b|endobj\b|stream\b|endstream\b|xref\b|trailer\b|startxref\b"
    r"|%%EOF|<<?\s*/|BT\b|ET\b)",
    re.IGNORECASE,
)

_DOCX_MIME = re.compile(r"officedocument\.wordprocessingml\.document|docx$", re.IGNORECASE)


def _keep_lines(lines: Iterable[str], max_length: int, drop: re.Pattern) -> list[str]:
    kept = []
    for line in lines:
        line = line.strip()
        if not 3 <= len(line) <= max_length:
            continue
        if not _HAS_WORD.search(line) or drop.search(line):
            continue
        kept.append(line)
    return kept


def clean_pdf_parsed_text(text: str) -> str:
    """Remove PDF syntax lines and fragments from parser output."""
    lines = _LINE_BREAK.split(str(text or ""))
    return "\n".join(_keep_lines(lines, 1000, _PARSED_PDF_TOKEN))


def clean_pdf_fallback(raw: bytes) -> str:
    """Heuristic text recovery from raw PDF bytes when parsing fails."""
    ascii_text = _NON_PRINTABLE.sub(" ", raw.decode("latin-1"))
    kept = _keep_lines(_LINE_BREAK.split(ascii_text), 800, _RAW_PDF_TOKEN)
    return "\n".join(kept[:MAX_FALLBACK_LINES])


class DocumentExtractor:
    """Turns uploaded file bytes into plain text."""

    def __init__(self) -> None:
        self.logger = get_logger("DocumentExtractor")

    def is_pdf(self, filename: str, content_type: Optional[str] = None) -> bool:
        return (content_type or "").lower().endswith("pdf") or filename.lower().endswith(".pdf")

    def is_docx(self, filename: str, content_type: Optional[str] = None) -> bool:
        return bool(_DOCX_MIME.search(content_type or "")) or filename.lower().endswith(".docx")

    def parse_pdf(self, pdf_bytes: bytes) -> str:
        """Raw text from a PDF via pypdfium2, then pdfplumber. Empty on failure."""
        try:
            pdf = pdfium.PdfDocument(pdf_bytes)
            try:
                parts = []
                for page in pdf:
                    text_page = page.get_textpage()
                    page_text = text_page.get_text_range()
                    if page_text:
                        parts.append(page_text)
                    text_page.close()
                    page.close()
            finally:
                pdf.close()
            text = "\n\n".join(parts)
            if len(text.strip()) >= MIN_PARSED_PDF_CHARS:
                self.logger.debug("PDF parsed with pypdfium2", text_length=len(text))
                return text
        except Exception as e:
            self.logger.debug("pypdfium2 failed, trying pdfplumber", error=str(e))

        try:
            parts = []
            with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
                for page in pdf.pages:
                    page_text = page.extract_text()
                    if page_text:
                        parts.append(page_text)
                    for table in page.extract_tables():
                        if table:
                            parts.append(
                                "\n".join(
                                    "\t".join(str(cell) if cell else "" for cell in row)
                                    for row in table
                                )
                            )
            text = "\n\n".join(parts)
            self.logger.debug("PDF parsed with pdfplumber", text_length=len(text))
            return text
        except Exception as e:
            self.logger.warning("PDF parsing failed with all extractors", error=str(e))
            return ""

    def extract_pdf(self, pdf_bytes: bytes) -> str:
        cleaned = clean_pdf_parsed_text(self.parse_pdf(pdf_bytes))
        if len(cleaned.strip()) < MIN_PARSED_PDF_CHARS:
            self.logger.info("Parsed PDF text too sparse, using byte fallback")
            cleaned = clean_pdf_fallback(pdf_bytes)
        return cleaned

    def extract_docx(self, docx_bytes: bytes) -> str:
        try:
            document = docx.Document(io.BytesIO(docx_bytes))
        except Exception as e:
            self.logger.warning("DOCX parsing failed", error=str(e))
            return ""
        parts = [p.text for p in document.paragraphs if p.text.strip()]
        for table in document.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells]
                if any(cells):
                    parts.append("\t".join(cells))
        return "\n".join(parts)

    def extract(self, filename: str, content: bytes, content_type: Optional[str] = None) -> str:
        """Text of one file, dispatched on content type and extension."""
        filename = filename or ""
        if self.is_pdf(filename, content_type):
            text = self.extract_pdf(content)
        elif self.is_docx(filename, content_type):
            text = self.extract_docx(content)
        else:
            text = content.decode("utf-8", errors="replace")
        self.logger.debug("File extracted", filename=filename, bytes=len(content), chars=len(text))
        return text

    def extract_many(self, files: Iterable) -> str:
        """Concatenate the text of several uploads, blank-line separated.

        Each item needs ``filename``, ``content`` and ``content_type``
        attributes (see pipeline.schemas.UploadedFile).
        """
        return "\n\n".join(
            self.extract(f.filename, f.content, f.content_type) for f in files
        )
