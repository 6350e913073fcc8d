"""
Batch indexer for persisting documents to the vector store.

Documents are split into fixed-size batches. Within a batch every upsert
runs concurrently and the whole batch settles (success or failure) before
the next one starts. A failed upsert is recorded in the report; it never
cancels sibling upserts or later batches.
"""

import logging
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from datetime import UTC, datetime

from docingest import constants
from docingest.logging_utils import log_summary
from docingest.models import Document, IndexFailure, IndexReport
from docingest.vector_store import VectorStore

logger = logging.getLogger(__name__)


def truncate_content(content: str, max_bytes: int = constants.MAX_DATA_SIZE) -> str:
    """
    Truncate content to at most ``max_bytes`` of UTF-8.

    Takes the byte prefix; a multi-byte character cut at the boundary is dropped.
    """
    encoded = content.encode("utf-8")
    if len(encoded) <= max_bytes:
        return content
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def partition(documents: Sequence[Document], batch_size: int) -> list[list[Document]]:
    """Split documents into consecutive batches of ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    return [list(documents[i : i + batch_size]) for i in range(0, len(documents), batch_size)]


class BatchIndexer:
    """
    Upserts documents batch by batch with per-document failure isolation.

    Usage:
        indexer = BatchIndexer(store, batch_size=100)
        report = indexer.index_all(documents)
        if not report.ok:
            ...
    """

    def __init__(
        self,
        store: VectorStore,
        batch_size: int = constants.BATCH_SIZE,
        max_workers: int | None = None,
        max_data_size: int = constants.MAX_DATA_SIZE,
    ):
        """
        Args:
            store: Vector store capability
            batch_size: Documents per batch
            max_workers: Concurrent upserts within a batch (default: batch_size)
            max_data_size: Content ceiling in bytes, enforced before every upsert
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.store = store
        self.batch_size = batch_size
        self.max_workers = max_workers or batch_size
        self.max_data_size = max_data_size

    def index_all(self, documents: Sequence[Document]) -> IndexReport:
        """
        Upsert every document and report the outcome.

        Args:
            documents: Documents to persist

        Returns:
            IndexReport with attempted, succeeded and per-failure detail
        """
        start = time.monotonic()
        report = IndexReport()

        if not documents:
            logger.info("No documents to process.")
            report.finished_at = datetime.now(UTC)
            return report

        batches = partition(documents, self.batch_size)
        logger.info(
            f"Processing {len(documents)} documents in {len(batches)} batches "
            f"of up to {self.batch_size} documents each..."
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            for number, batch in enumerate(batches, start=1):
                failures = self._index_batch(executor, batch)

                report.batches += 1
                report.attempted += len(batch)
                report.succeeded += len(batch) - len(failures)
                report.failures.extend(failures)

                if failures:
                    logger.warning(f"Batch {number}/{len(batches)}: {len(failures)}/{len(batch)} failed")
                    for failure in failures:
                        logger.error(f"  Failed {failure.document_id}: {failure.error}")
                else:
                    logger.info(f"Batch {number}/{len(batches)} completed successfully")

        report.finished_at = datetime.now(UTC)
        logger.info(
            log_summary(
                "index_all",
                success=report.ok,
                duration_ms=(time.monotonic() - start) * 1000,
                item_count=report.attempted,
                succeeded=report.succeeded,
                failed=report.failed,
                batches=report.batches,
            )
        )
        return report

    def _index_batch(self, executor: ThreadPoolExecutor, batch: list[Document]) -> list[IndexFailure]:
        """Submit every upsert in the batch and wait for all of them to settle."""
        futures = {executor.submit(self._upsert, doc): doc for doc in batch}
        wait(futures)

        failures = []
        for future, doc in futures.items():
            error = future.exception()
            if error is not None:
                failures.append(IndexFailure(document_id=doc.id, title=doc.title, error=str(error)))
        return failures

    def _upsert(self, document: Document) -> None:
        logger.debug(f"  Working on: {document.title}")
        self.store.upsert(
            document.id,
            truncate_content(document.content, self.max_data_size),
            document.to_vector_metadata(),
        )
