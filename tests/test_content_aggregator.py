"""Unit tests for content aggregation."""

import threading
from unittest.mock import MagicMock

import pytest

from conftest import BIOLOGY_LINES, HISTORY_LINES, build_pdf
from testgen.db.models import Document
from testgen.exceptions import AggregationException, RequestValidationException
from testgen.services.content_aggregator import DOCUMENT_SEPARATOR, ContentAggregator
from testgen.services.pdf_extractor import PDFTextExtractor


def make_document(doc_id, name, extracted_text=None):
    return Document(
        id=doc_id,
        owner_id="user_1",
        original_name=name,
        storage_path=f"user_1/{doc_id}.pdf",
        extracted_text=extracted_text,
    )


@pytest.fixture
def blobs(biology_pdf, history_pdf):
    return {
        "doc_bio": biology_pdf,
        "doc_hist": history_pdf,
        "doc_bad": b"%PDF-1.4 garbage that does not parse",
        "doc_blank": build_pdf([[]]),
    }


@pytest.fixture
def aggregator(blobs):
    return ContentAggregator(
        PDFTextExtractor(),
        fetch_bytes=lambda doc: blobs[doc.id],
        max_workers=4,
        min_chars=100,
        max_documents=5,
    )


def test_aggregate_keeps_batch_order(aggregator):
    documents = [
        make_document("doc_hist", "historia.pdf"),
        make_document("doc_bio", "biologia.pdf"),
    ]

    content = aggregator.aggregate(documents)

    assert content.source_names == ["historia.pdf", "biologia.pdf"]
    assert content.text.index(HISTORY_LINES[0]) < content.text.index(BIOLOGY_LINES[0])
    assert content.total_chars == len(content.text)
    assert content.text.endswith(DOCUMENT_SEPARATOR)


def test_aggregate_caches_extracted_text(aggregator):
    document = make_document("doc_bio", "biologia.pdf")

    aggregator.aggregate([document])

    assert BIOLOGY_LINES[0] in document.extracted_text


def test_cached_text_is_reused():
    cached = "Cached lecture text about thermodynamics and entropy. " * 3
    fetch = MagicMock()
    aggregator = ContentAggregator(PDFTextExtractor(), fetch_bytes=fetch)

    content = aggregator.aggregate([make_document("doc_1", "cached.pdf", cached)])

    fetch.assert_not_called()
    assert content.text == cached + DOCUMENT_SEPARATOR
    assert content.source_names == ["cached.pdf"]


def test_corrupt_document_is_skipped(aggregator):
    documents = [
        make_document("doc_bad", "roto.pdf"),
        make_document("doc_bio", "biologia.pdf"),
    ]

    content = aggregator.aggregate(documents)

    assert content.source_names == ["biologia.pdf"]
    assert documents[0].extracted_text is None


def test_blank_document_is_skipped(aggregator):
    documents = [
        make_document("doc_blank", "escaneado.pdf"),
        make_document("doc_bio", "biologia.pdf"),
    ]

    content = aggregator.aggregate(documents)

    assert content.source_names == ["biologia.pdf"]


def test_missing_blob_is_skipped(blobs):
    def fetch(doc):
        if doc.id == "doc_gone":
            raise FileNotFoundError("Stored file not found")
        return blobs[doc.id]

    aggregator = ContentAggregator(PDFTextExtractor(), fetch_bytes=fetch)
    content = aggregator.aggregate(
        [make_document("doc_gone", "perdido.pdf"), make_document("doc_bio", "biologia.pdf")]
    )

    assert content.source_names == ["biologia.pdf"]


def test_all_documents_failing_raises(aggregator):
    with pytest.raises(AggregationException) as exc_info:
        aggregator.aggregate(
            [make_document("doc_bad", "roto.pdf"), make_document("doc_blank", "vacio.pdf")]
        )
    assert exc_info.value.reason == "insufficient-content"


def test_short_content_raises():
    aggregator = ContentAggregator(PDFTextExtractor(), fetch_bytes=MagicMock())
    with pytest.raises(AggregationException) as exc_info:
        aggregator.aggregate([make_document("doc_1", "corto.pdf", "Too short.")])
    assert exc_info.value.details["total_chars"] == len("Too short.") + 1


def test_threshold_is_inclusive():
    text = "x" * 99  # plus separator makes exactly 100
    aggregator = ContentAggregator(PDFTextExtractor(), fetch_bytes=MagicMock(), min_chars=100)

    content = aggregator.aggregate([make_document("doc_1", "justo.pdf", text)])

    assert content.total_chars == 100


def test_oversized_batch_rejected_before_extraction():
    fetch = MagicMock()
    aggregator = ContentAggregator(PDFTextExtractor(), fetch_bytes=fetch, max_documents=2)
    documents = [make_document(f"doc_{i}", f"{i}.pdf") for i in range(3)]

    with pytest.raises(RequestValidationException):
        aggregator.aggregate(documents)
    fetch.assert_not_called()


def test_empty_batch_rejected(aggregator):
    with pytest.raises(RequestValidationException):
        aggregator.aggregate([])


def test_extractions_run_concurrently(biology_pdf):
    """Both fetches must be in flight at once, or the barrier times out."""
    barrier = threading.Barrier(2, timeout=5)

    def fetch(doc):
        barrier.wait()
        return biology_pdf

    aggregator = ContentAggregator(PDFTextExtractor(), fetch_bytes=fetch, max_workers=2)
    content = aggregator.aggregate(
        [make_document("doc_a", "a.pdf"), make_document("doc_b", "b.pdf")]
    )

    assert content.source_names == ["a.pdf", "b.pdf"]
