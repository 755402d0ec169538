"""Merges the text of a document batch into one bounded block."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, List, Optional

from testgen.config import settings
from testgen.db.models import Document
from testgen.exceptions import AggregationException, RequestValidationException
from testgen.models.generation_models import AggregatedContent
from testgen.services.pdf_extractor import PDFTextExtractor

logger = logging.getLogger(__name__)

DOCUMENT_SEPARATOR = "\n"


class ContentAggregator:
    """
    Builds AggregatedContent from a batch of documents.

    Documents without cached text are fetched and extracted in parallel on a
    ThreadPoolExecutor; results are recombined in batch order. A document that
    cannot be read is skipped; the batch only fails when no usable text remains.
    """

    def __init__(
        self,
        extractor: PDFTextExtractor,
        fetch_bytes: Callable[[Document], bytes],
        max_workers: Optional[int] = None,
        min_chars: Optional[int] = None,
        max_documents: Optional[int] = None,
    ):
        """
        Initialize content aggregator.

        Args:
            extractor: PDF text extractor
            fetch_bytes: Returns the raw bytes of a document; must not touch the DB session
            max_workers: Maximum number of concurrent extractions
            min_chars: Minimum combined text length
            max_documents: Maximum batch size
        """
        self.extractor = extractor
        self.fetch_bytes = fetch_bytes
        self.max_workers = max_workers or settings.extraction_max_workers
        self.min_chars = min_chars or settings.min_content_chars
        self.max_documents = max_documents or settings.max_documents_per_batch

    def check_batch_size(self, size: int) -> None:
        """
        Reject oversized or empty batches before any extraction work.

        Raises:
            RequestValidationException: If the batch size is out of range
        """
        if size < 1:
            raise RequestValidationException("At least one document is required")
        if size > self.max_documents:
            raise RequestValidationException(
                f"Too many documents: {size} (maximum {self.max_documents})",
                details={"documents": size, "max_documents": self.max_documents},
            )

    def aggregate(self, documents: List[Document]) -> AggregatedContent:
        """
        Merge per-document text in batch order.

        Freshly extracted text is written to Document.extracted_text; the
        caller is responsible for committing it.

        Args:
            documents: Ordered batch of documents

        Returns:
            Aggregated text and the names of the documents that contributed

        Raises:
            RequestValidationException: If the batch is empty or too large
            AggregationException: If the combined text is below the threshold
        """
        self.check_batch_size(len(documents))

        pending = [doc for doc in documents if doc.extracted_text is None]
        extracted = self._extract_all(pending)

        parts: List[str] = []
        source_names: List[str] = []
        for document in documents:
            if document.extracted_text is not None:
                text = document.extracted_text
            elif document.id in extracted:
                text = extracted[document.id]
                document.extracted_text = text
            else:
                # extraction failed, already logged
                continue

            if not text.strip():
                logger.warning(
                    f"Document {document.id} ({document.original_name}) has no extractable text, skipping"
                )
                continue

            parts.append(text + DOCUMENT_SEPARATOR)
            source_names.append(document.original_name)

        content = AggregatedContent.from_parts("".join(parts), source_names)
        logger.info(
            f"Aggregated {len(source_names)}/{len(documents)} document(s), "
            f"{content.total_chars} chars"
        )

        if content.total_chars < self.min_chars:
            raise AggregationException(
                f"Insufficient content: {content.total_chars} characters "
                f"(minimum {self.min_chars})",
                details={
                    "total_chars": content.total_chars,
                    "documents": len(documents),
                    "usable_documents": len(source_names),
                },
            )
        return content

    def _extract_all(self, documents: List[Document]) -> Dict[str, str]:
        if not documents:
            return {}

        results: Dict[str, str] = {}
        workers = min(self.max_workers, len(documents))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures: List[tuple[Document, Future]] = [
                (doc, executor.submit(self._extract_one, doc)) for doc in documents
            ]
            for document, future in futures:
                try:
                    results[document.id] = future.result()
                except Exception as e:
                    logger.warning(
                        f"Skipping document {document.id} ({document.original_name}): {e}",
                        extra={"document_id": document.id, "error_type": type(e).__name__},
                    )
        return results

    def _extract_one(self, document: Document) -> str:
        data = self.fetch_bytes(document)
        pages = self.extractor.extract(data)
        empty_pages = sum(1 for page in pages if not page)
        if empty_pages:
            logger.info(
                f"Document {document.id}: {empty_pages}/{len(pages)} page(s) without text"
            )
        return "".join(pages)
