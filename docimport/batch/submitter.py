"""
Adaptive batch submission.

Submits a batch through a caller-supplied callback in windows, halving the
window when the store rejects it for size and reusing the last accepted
window size for the rest of the batch.
"""

from collections.abc import Callable, Sequence
from typing import Any

from docimport.core.errors import ProcessedCountMismatchError
from docimport.observability.logger import get_logger
from docimport.observability.metrics import (
    batch_splits_total,
    batches_submitted_total,
    documents_imported_total,
    increment_counter,
    set_gauge,
    working_batch_size,
)
from docimport.store.base import is_size_limit_error

logger = get_logger(__name__)

SubmitFunc = Callable[[Sequence[Any]], Any]


class AdaptiveBatchSubmitter:
    """
    Drives a submit callback over consecutive windows of a batch.

    Windows are contiguous slices in input order. A window rejected with a
    size limit error is halved and retried from the same start; any other
    error, or a size limit error on a single document, is raised as is.
    """

    def __init__(self, submit: SubmitFunc, collection: str = ""):
        """
        Initialize submitter.

        Args:
            submit: Callback inserting one window; raises on failure
            collection: Collection name used for logging and metrics
        """
        self.submit = submit
        self.collection = collection
        self.splits = 0
        self.working_size: int | None = None

    def submit_all(self, documents: Sequence[Any]) -> int:
        """
        Submit every document of the batch.

        Args:
            documents: Batch of documents, in order

        Returns:
            Number of documents submitted

        Raises:
            ProcessedCountMismatchError: If the windows do not cover the batch
            Exception: The first error the callback raised that splitting cannot fix
        """
        total = len(documents)
        first, last = 0, total
        processed = 0

        while first < total:
            window = documents[first:last]
            try:
                self.submit(window)
            except Exception as e:
                increment_counter(batches_submitted_total, collection=self.collection, status="error")

                if is_size_limit_error(e) and last - first > 1:
                    last = first + (last - first) // 2
                    self.splits += 1
                    increment_counter(batch_splits_total, collection=self.collection)
                    logger.debug(
                        f"Reducing batch size. first={first}, last={last}, len={total}",
                        extra={"collection": self.collection},
                    )
                    continue

                if last - first == 1:
                    logger.debug(
                        f"Failed to process document at index {first}",
                        extra={"collection": self.collection, "document": str(documents[first])},
                    )
                raise

            size = last - first
            processed += len(window)
            self.working_size = size

            increment_counter(batches_submitted_total, collection=self.collection, status="success")
            increment_counter(documents_imported_total, len(window), collection=self.collection)
            set_gauge(working_batch_size, size, collection=self.collection)
            logger.debug(
                f"Succeeded batch. first={first}, last={last}, len={total}",
                extra={"collection": self.collection},
            )

            first = last
            last = min(first + size, total)

        if processed != total:
            raise ProcessedCountMismatchError(processed, total)

        return processed
