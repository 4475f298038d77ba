"""
Import orchestration for one batch of documents.

Flow: insert → (on missing collection or rejected documents) infer and push
the schema → insert again → strip null values and empty arrays → insert a
final time.
"""

import copy
from collections.abc import Sequence
from typing import Any

from docimport.core.errors import ImportStage, ImportStageError, InvalidDocumentError, SchemaInferenceError
from docimport.core.models import ImportOptions, Schema
from docimport.core.schema import (
    RawDocument,
    SchemaInferrer,
    decode_literal_document,
    dumps_document,
    schema_to_json,
)
from docimport.observability.logger import get_logger
from docimport.observability.metrics import (
    increment_counter,
    insert_duration_seconds,
    insert_errors_total,
    null_cleanups_total,
    schema_updates_total,
    track_duration,
)
from docimport.store.base import CollectionStore, CollectionStoreError, ErrorKind

logger = get_logger(__name__)

# Store failures that a schema update can fix
SCHEMA_ERROR_KINDS = frozenset({ErrorKind.NOT_FOUND, ErrorKind.INVALID_ARGUMENT})


def _remove_empty_values(document: dict[str, Any], prefix: str = "") -> None:
    for name in list(document):
        value = document[name]
        if isinstance(value, dict):
            _remove_empty_values(value, prefix + name + ".")
        elif isinstance(value, list) and not value:
            logger.debug(f"Removed empty array '{prefix}{name}'")
            del document[name]
        elif value is None:
            logger.debug(f"Removed empty value '{prefix}{name}'")
            del document[name]


def cleanup_null_values(document: RawDocument) -> str:
    """
    Remove null values and empty arrays from a document.

    Nested objects are cleaned recursively; array elements are left as is.
    All remaining values, numbers included, are written back unchanged.

    Args:
        document: Raw JSON text or decoded object

    Returns:
        The cleaned document as JSON text

    Raises:
        InvalidDocumentError: If the document is not a JSON object
    """
    if isinstance(document, dict):
        data = copy.deepcopy(document)
    else:
        data = decode_literal_document(document)

    _remove_empty_values(data)

    try:
        return dumps_document(data)
    except ValueError as e:
        raise InvalidDocumentError(f"invalid JSON document: {e}") from e


class ImportOrchestrator:
    """
    Inserts batches into one collection, evolving its schema on demand.

    The schema passed in is owned by the orchestrator for the duration of
    the import and is broadened in place as batches reveal new fields.
    """

    def __init__(
        self,
        store: CollectionStore,
        collection: str,
        schema: Schema,
        options: ImportOptions | None = None,
    ):
        """
        Initialize import orchestrator.

        Args:
            store: Collection store receiving documents
            collection: Target collection name
            schema: Starting schema (empty or described from the store)
            options: Import options
        """
        self.store = store
        self.collection = collection
        self.schema = schema
        self.options = options or ImportOptions()
        self.inferrer = SchemaInferrer(self.options.inference)

        self.schema_updates = 0
        self.null_cleanups = 0

    def _insert(self, documents: Sequence[RawDocument]) -> int:
        try:
            with track_duration(insert_duration_seconds, collection=self.collection):
                return self.store.insert(self.collection, documents)
        except CollectionStoreError as e:
            increment_counter(insert_errors_total, collection=self.collection, kind=e.kind.value)
            raise

    def _can_evolve(self, error: CollectionStoreError) -> bool:
        return self.options.auto_create and error.kind in SCHEMA_ERROR_KINDS

    def evolve_schema(self, documents: Sequence[RawDocument]) -> None:
        """
        Infer the schema from a batch and push it to the store.

        Raises:
            ImportStageError: At the schema inference or schema update stage
        """
        depth = self.options.inference_depth or len(documents)

        try:
            self.inferrer.infer(
                self.schema,
                self.collection,
                documents,
                primary_key=self.options.primary_key,
                auto_generate=self.options.autogenerate,
                depth=depth,
            )
        except SchemaInferenceError as e:
            raise ImportStageError(ImportStage.SCHEMA_INFERENCE, e) from e

        schema_json = schema_to_json(self.schema)
        logger.debug(
            f"Pushing schema for collection '{self.collection}'",
            extra={"collection": self.collection, "schema": schema_json},
        )

        try:
            self.store.create_or_update_collection(self.collection, schema_json)
        except CollectionStoreError as e:
            raise ImportStageError(ImportStage.SCHEMA_UPDATE, e) from e

        self.schema_updates += 1
        increment_counter(schema_updates_total, collection=self.collection)

    def import_batch(self, documents: Sequence[RawDocument]) -> int:
        """
        Insert a batch, evolving the schema and cleaning documents as needed.

        Args:
            documents: Batch of documents

        Returns:
            Number of documents inserted

        Raises:
            ImportStageError: With the stage and the store error of the last attempt
        """
        try:
            return self._insert(documents)
        except CollectionStoreError as e:
            if not self._can_evolve(e):
                raise ImportStageError(ImportStage.INITIAL_INSERT, e) from e
            logger.debug(
                f"Initial insert rejected ({e.kind.value}), inferring schema",
                extra={"collection": self.collection},
            )

        self.evolve_schema(documents)

        try:
            return self._insert(documents)
        except CollectionStoreError as e:
            if not self.options.cleanup_null_values:
                raise ImportStageError(ImportStage.INSERT_AFTER_SCHEMA_UPDATE, e) from e
            logger.debug(
                f"Insert after schema update rejected ({e.kind.value}), removing null values",
                extra={"collection": self.collection},
            )

        try:
            cleaned = [cleanup_null_values(doc) for doc in documents]
        except InvalidDocumentError as e:
            raise ImportStageError(ImportStage.INSERT_AFTER_CLEANUP, e) from e

        self.null_cleanups += 1
        increment_counter(null_cleanups_total, collection=self.collection)

        try:
            return self._insert(cleaned)
        except CollectionStoreError as e:
            raise ImportStageError(ImportStage.INSERT_AFTER_CLEANUP, e) from e
