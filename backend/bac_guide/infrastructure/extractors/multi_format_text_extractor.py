"""Multi-format text extractor: extracts text from PDF, DOCX and plain text."""

import logging
import mimetypes
from pathlib import Path

from bac_guide.application.interfaces.text_extractor import TextExtractor
from bac_guide.domain.exceptions import ExtractionFailure

logger = logging.getLogger(__name__)

# mimetypes depends on the host's mime.types; pin the formats we read
_EXTENSION_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".md": "text/markdown",
    ".markdown": "text/markdown",
}


class MultiFormatTextExtractor(TextExtractor):
    """Infrastructure adapter that extracts text from the guide documents.

    Implements the TextExtractor interface using format-specific libraries:
    - PDF: PyMuPDF (fitz)
    - DOCX: python-docx
    - TXT/CSV/MD: built-in
    """

    # Format → handler method mapping
    _HANDLERS: dict[str, str] = {
        "application/pdf": "_extract_pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": "_extract_docx",
        "text/plain": "_extract_text",
        "text/csv": "_extract_text",
        "text/markdown": "_extract_text",
    }

    @staticmethod
    def _guess_type(file_path: str) -> str:
        suffix = Path(file_path).suffix.lower()
        if suffix in _EXTENSION_TYPES:
            return _EXTENSION_TYPES[suffix]
        return mimetypes.guess_type(file_path)[0] or "application/octet-stream"

    def supports(self, file_path: str) -> bool:
        """Check if this extractor supports the file's type (by extension)."""
        return self._guess_type(file_path) in self._HANDLERS

    async def extract_text(self, file_path: str) -> str:
        """Extract text from a file at the given path.

        Returns:
            Extracted text content ("" for a PDF without a text layer).

        Raises:
            ExtractionFailure: If the file is missing, unsupported or cannot be parsed.
        """
        path = Path(file_path)
        if not path.is_file():
            raise ExtractionFailure(file_path, "file not found")

        mime_type = self._guess_type(file_path)
        handler_name = self._HANDLERS.get(mime_type)
        if handler_name is None:
            raise ExtractionFailure(file_path, f"unsupported file type: {mime_type}")

        handler = getattr(self, handler_name)
        try:
            text = await handler(file_path)
        except ExtractionFailure:
            raise
        except Exception as exc:
            raise ExtractionFailure(file_path, f"{type(exc).__name__}: {exc}") from exc

        logger.info(
            "Extracted %d characters from %s (%s)",
            len(text),
            path.name,
            mime_type,
        )
        return text

    # ── Format-specific handlers ─────────────────────────────────────

    async def _extract_pdf(self, file_path: str) -> str:
        """Extract text from PDF using PyMuPDF, pages in document order."""
        import fitz  # PyMuPDF

        pages: list[str] = []
        with fitz.open(file_path) as doc:
            for page_num, page in enumerate(doc):
                text = page.get_text("text")
                if text.strip():
                    pages.append(text)
                else:
                    logger.debug("Page %d appears to be scanned (no text layer)", page_num + 1)

        if not pages:
            logger.warning("PDF has no extractable text (scanned?): %s", file_path)
            return ""

        return "\n\n".join(pages)

    async def _extract_docx(self, file_path: str) -> str:
        """Extract text from DOCX using python-docx."""
        from docx import Document

        doc = Document(file_path)
        parts: list[str] = []

        for para in doc.paragraphs:
            if para.text.strip():
                parts.append(para.text)

        # Score tables are usually laid out as Word tables
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    parts.append(" | ".join(cells))

        return "\n".join(parts)

    async def _extract_text(self, file_path: str) -> str:
        """Extract text from plain text files (TXT, CSV, MD)."""
        path = Path(file_path)
        # Try UTF-8 first, then fall back to latin-1
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            return path.read_text(encoding="latin-1")
