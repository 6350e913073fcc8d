"""Unit tests for the batch indexer."""

import threading
from unittest.mock import MagicMock

import pytest

from docingest.exceptions import VectorStoreError
from docingest.indexer import BatchIndexer, partition, truncate_content
from docingest.models import ArticleMetadata, ArticleType, Document, DocumentKind


def make_docs(count, content="# Doc\n\nBody"):
    return [
        Document(
            id=f"https://example.com/a/answer/{i}",
            content=content,
            kind=DocumentKind.ADMIN_DOCS,
            url=f"https://example.com/a/answer/{i}",
            title=f"Doc {i}",
            metadata=ArticleMetadata(ArticleType.ANSWER, str(i)),
        )
        for i in range(count)
    ]


class RecordingStore:
    """Vector store double that records upserts and fails selected ids."""

    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.calls = []
        self.lock = threading.Lock()

    def upsert(self, id, text, metadata):
        with self.lock:
            self.calls.append((id, text, metadata))
        if id in self.fail_ids:
            raise VectorStoreError(f"rejected {id}", status_code=400)

    def query(self, text, top_k, include_metadata=True):
        return []


class TestTruncateContent:
    """Tests for truncate_content function."""

    def test_short_content_unchanged(self):
        assert truncate_content("hello", 10) == "hello"

    def test_truncates_to_byte_ceiling(self):
        content = "a" * 2_000_000
        truncated = truncate_content(content)
        assert len(truncated.encode("utf-8")) == 1_048_576

    def test_drops_split_multibyte_character(self):
        content = "é" * 10  # 2 bytes each
        truncated = truncate_content(content, 5)
        assert truncated == "éé"
        assert len(truncated.encode("utf-8")) <= 5


class TestPartition:
    """Tests for partition function."""

    def test_batches_in_order(self):
        docs = make_docs(5)
        batches = partition(docs, 2)
        assert [len(b) for b in batches] == [2, 2, 1]
        assert [d for b in batches for d in b] == docs

    def test_rejects_zero_batch_size(self):
        with pytest.raises(ValueError):
            partition(make_docs(1), 0)


class TestBatchIndexer:
    """Tests for BatchIndexer class."""

    def test_indexes_all_documents(self):
        store = RecordingStore()
        report = BatchIndexer(store, batch_size=2).index_all(make_docs(5))

        assert report.ok
        assert report.attempted == 5
        assert report.succeeded == 5
        assert report.batches == 3
        assert len(store.calls) == 5

    def test_single_failure_is_isolated(self):
        docs = make_docs(10)
        store = RecordingStore(fail_ids={docs[3].id})

        report = BatchIndexer(store, batch_size=10).index_all(docs)

        assert len(store.calls) == 10
        assert report.succeeded == 9
        assert report.failed == 1
        assert report.failures[0].document_id == docs[3].id
        assert "rejected" in report.failures[0].error

    def test_failed_batch_does_not_stop_later_batches(self):
        docs = make_docs(4)
        store = RecordingStore(fail_ids={docs[0].id, docs[1].id})

        report = BatchIndexer(store, batch_size=2).index_all(docs)

        assert report.batches == 2
        assert report.succeeded == 2
        assert {c[0] for c in store.calls} == {d.id for d in docs}

    def test_batches_run_sequentially(self):
        docs = make_docs(6)
        order = []
        lock = threading.Lock()

        def upsert(id, text, metadata):
            with lock:
                order.append(id)

        store = MagicMock()
        store.upsert.side_effect = upsert

        BatchIndexer(store, batch_size=3).index_all(docs)

        first_batch = {d.id for d in docs[:3]}
        assert set(order[:3]) == first_batch
        assert set(order[3:]) == {d.id for d in docs[3:]}

    def test_truncates_oversized_content_before_upsert(self):
        store = RecordingStore()
        docs = make_docs(1, content="x" * 2_000_000)

        BatchIndexer(store).index_all(docs)

        _, text, _ = store.calls[0]
        assert len(text.encode("utf-8")) == 1_048_576

    def test_upserts_flattened_metadata(self):
        store = RecordingStore()
        doc = make_docs(1)[0]

        BatchIndexer(store).index_all([doc])

        doc_id, text, metadata = store.calls[0]
        assert doc_id == doc.id
        assert text == doc.content
        assert metadata == {
            "kind": "admin-docs",
            "title": "Doc 0",
            "url": doc.url,
            "articleType": "answer",
            "articleId": "0",
        }

    def test_empty_input(self):
        store = RecordingStore()
        report = BatchIndexer(store).index_all([])
        assert report.attempted == 0
        assert report.ok
        assert store.calls == []
        assert report.finished_at is not None

    def test_unexpected_exception_recorded(self):
        store = MagicMock()
        store.upsert.side_effect = RuntimeError("socket closed")

        report = BatchIndexer(store, batch_size=5).index_all(make_docs(2))

        assert report.failed == 2
        assert all(f.error == "socket closed" for f in report.failures)

    def test_rejects_zero_batch_size(self):
        with pytest.raises(ValueError):
            BatchIndexer(RecordingStore(), batch_size=0)
