"""Text extractors — one per supported MIME type.

Adding a format means subclassing :class:`TextExtractor` and registering
the instance in :data:`EXTRACTORS`; nothing else dispatches on MIME type.
"""

from __future__ import annotations

import io
import logging
import zipfile
from abc import ABC, abstractmethod

import docx
from pypdf import PdfReader

from rag_ingest.errors import ParseFailure, UnsupportedFormat
from rag_ingest.models import UploadedFile

logger = logging.getLogger(__name__)

PDF = "application/pdf"
PLAIN_TEXT = "text/plain"
MARKDOWN = "text/markdown"
MSWORD = "application/msword"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class TextExtractor(ABC):
    """Turn the raw bytes of one document format into plain text."""

    #: Human-readable format name used in error messages.
    format_name: str = "document"

    def extract(self, content: bytes) -> str:
        """Return the document's text, raising :class:`ParseFailure` on bad bytes."""
        try:
            return self._extract(content)
        except ParseFailure:
            raise
        except Exception as exc:
            raise ParseFailure(f"Could not parse {self.format_name}: {exc}") from exc

    @abstractmethod
    def _extract(self, content: bytes) -> str:
        ...


class PlainTextExtractor(TextExtractor):
    format_name = "plain text"

    def _extract(self, content: bytes) -> str:
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ParseFailure(f"{self.format_name.capitalize()} is not valid UTF-8: {exc}") from exc


class MarkdownExtractor(PlainTextExtractor):
    """Markdown is indexed verbatim — markup is kept for context."""

    format_name = "markdown"


class PdfExtractor(TextExtractor):
    format_name = "PDF"

    def _extract(self, content: bytes) -> str:
        reader = PdfReader(io.BytesIO(content))
        pages = [page.extract_text() or "" for page in reader.pages]
        logger.debug("Extracted %d PDF pages", len(pages))
        return "\n".join(pages).strip()


class WordExtractor(TextExtractor):
    """Word documents via python-docx (OOXML only)."""

    format_name = "Word document"

    def _extract(self, content: bytes) -> str:
        if not zipfile.is_zipfile(io.BytesIO(content)):
            raise ParseFailure("Legacy binary .doc is not supported; save the file as .docx")

        document = docx.Document(io.BytesIO(content))
        parts = [p.text for p in document.paragraphs]
        for table in document.tables:
            for row in table.rows:
                parts.append("\t".join(cell.text for cell in row.cells))
        return "\n".join(parts).strip()


EXTRACTORS: dict[str, TextExtractor] = {
    PDF: PdfExtractor(),
    PLAIN_TEXT: PlainTextExtractor(),
    MARKDOWN: MarkdownExtractor(),
    MSWORD: WordExtractor(),
    DOCX: WordExtractor(),
}

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset(EXTRACTORS)


def is_supported(mime_type: str) -> bool:
    return mime_type in EXTRACTORS


def get_extractor(mime_type: str) -> TextExtractor:
    """Return the extractor registered for *mime_type*.

    Raises
    ------
    UnsupportedFormat
        When no extractor handles the type.
    """
    try:
        return EXTRACTORS[mime_type]
    except KeyError:
        raise UnsupportedFormat(mime_type) from None


def extract_text(file: UploadedFile) -> str:
    """Extract the plain text of *file* according to its declared MIME type."""
    return get_extractor(file.mime_type).extract(file.content)
