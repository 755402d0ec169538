"""Text extraction from in-memory PDF documents using PyMuPDF."""

import logging
from typing import List

import fitz  # PyMuPDF

from testgen.exceptions import ExtractionException

logger = logging.getLogger(__name__)

# get_text("dict") block types
_TEXT_BLOCK = 0


class PDFTextExtractor:
    """Service for turning PDF bytes into ordered page text."""

    def extract(self, data: bytes) -> List[str]:
        """
        Extract the text of every page, in document order.

        Text runs are kept in content-stream order and joined by single
        spaces; each non-empty page ends with a newline. Image-only pages
        produce an empty string.

        Args:
            data: Raw PDF bytes

        Returns:
            One string per page

        Raises:
            ExtractionException: If the bytes are not a readable PDF
        """
        doc = self._open(data)
        try:
            return [self._page_text(page) for page in doc]
        finally:
            doc.close()

    def extract_text(self, data: bytes) -> str:
        """Extract the whole document as a single string."""
        return "".join(self.extract(data))

    def _open(self, data: bytes) -> "fitz.Document":
        if not data:
            raise ExtractionException("PDF is empty", details={"size_bytes": 0})

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise ExtractionException(
                f"Could not open PDF: {e}", details={"size_bytes": len(data)}
            ) from e

        if doc.needs_pass or doc.is_encrypted:
            doc.close()
            raise ExtractionException("PDF is encrypted")
        if not doc.is_pdf or doc.page_count == 0:
            doc.close()
            raise ExtractionException("Document has no PDF pages")
        return doc

    @staticmethod
    def _page_text(page: "fitz.Page") -> str:
        # sort=False keeps the order the content stream presents the runs in
        page_dict = page.get_text("dict", sort=False)
        runs = []
        for block in page_dict.get("blocks", []):
            if block.get("type") != _TEXT_BLOCK:
                continue
            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    runs.append(span.get("text", ""))

        if not runs:
            logger.debug(f"Page {page.number + 1} has no extractable text")
            return ""
        return " ".join(runs) + "\n"
