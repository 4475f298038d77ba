"""
Import pipeline orchestration.

Coordinates the flow: describe collection → for each batch, submit
adaptively → insert with schema inference
"""

import time
from collections.abc import Iterable, Sequence
from typing import Any

from docimport.core.errors import CollectionExistsError
from docimport.core.models import ImportOptions, Schema
from docimport.core.schema import RawDocument, schema_from_json
from docimport.observability.logger import get_logger, log_operation
from docimport.store.base import CollectionStore, CollectionStoreError, ErrorKind

from .orchestrator import ImportOrchestrator
from .submitter import AdaptiveBatchSubmitter

logger = get_logger(__name__)


class ImportPipeline:
    """
    Imports a sequence of document batches into one collection.

    Flow:
    1. Describe the collection and load its schema
    2. Refuse existing collections unless appending
    3. Submit each batch in order, splitting on size limits
    4. Infer and push the schema whenever the store rejects documents
    """

    def __init__(self, store: CollectionStore, options: ImportOptions | None = None):
        """
        Initialize import pipeline.

        Args:
            store: Collection store receiving documents
            options: Import options
        """
        self.store = store
        self.options = options or ImportOptions()

    def load_schema(self, collection: str) -> Schema:
        """
        Get the starting schema for an import.

        Args:
            collection: Collection name

        Returns:
            Schema of the existing collection, or an empty schema

        Raises:
            CollectionExistsError: If the collection exists and append is off
            CollectionStoreError: If describing the collection fails
        """
        try:
            schema_json = self.store.describe_collection(collection)
        except CollectionStoreError as e:
            if e.kind == ErrorKind.NOT_FOUND:
                logger.info(f"Collection '{collection}' does not exist yet")
                return Schema(name=collection)
            raise

        if not self.options.append:
            raise CollectionExistsError(collection)

        schema = schema_from_json(schema_json)
        schema.name = collection
        logger.info(
            f"Appending to collection '{collection}'",
            extra={"collection": collection, "fields": len(schema.fields)},
        )
        return schema

    def run(self, collection: str, batches: Iterable[Sequence[RawDocument]]) -> dict[str, Any]:
        """
        Import all batches into a collection.

        Args:
            collection: Target collection name
            batches: Batches of documents, consumed in order

        Returns:
            Dictionary with import results:
            - collection: Collection name
            - total_documents: Documents inserted
            - batches: Non-empty batches processed
            - schema_updates: Schemas pushed to the store
            - null_cleanups: Batches retried after null cleanup
            - batch_splits: Times a window was halved
            - duration_seconds: Wall time of the import
        """
        start_time = time.time()

        with log_operation("Import documents", logger=logger, collection=collection):
            schema = self.load_schema(collection)

            orchestrator = ImportOrchestrator(self.store, collection, schema, self.options)
            submitter = AdaptiveBatchSubmitter(orchestrator.import_batch, collection=collection)

            total_documents = 0
            batch_count = 0
            for batch in batches:
                if not batch:
                    continue

                total_documents += submitter.submit_all(batch)
                batch_count += 1
                logger.debug(
                    f"Imported batch {batch_count} ({len(batch)} documents)",
                    extra={"collection": collection},
                )

        return {
            "collection": collection,
            "total_documents": total_documents,
            "batches": batch_count,
            "schema_updates": orchestrator.schema_updates,
            "null_cleanups": orchestrator.null_cleanups,
            "batch_splits": submitter.splits,
            "duration_seconds": round(time.time() - start_time, 3),
        }
