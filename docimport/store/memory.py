"""
In-memory collection store.

Keeps collections and documents in process memory; used for dry runs
and tests. Applies the same insert checks as the PostgreSQL store.
"""

from collections.abc import Sequence
from typing import Any

from docimport.core.models import Schema
from docimport.core.schema import (
    RawDocument,
    SchemaEvolutionError,
    check_schema_update,
    schema_from_json,
    schema_to_json,
)
from docimport.observability.logger import get_logger

from .base import CollectionStore, CollectionStoreError, ErrorKind
from .validation import DEFAULT_MAX_DOCUMENT_SIZE, DEFAULT_MAX_TRANSACTION_SIZE, InsertValidator

logger = get_logger(__name__)


def parse_schema_json(collection: str, schema_json: str | bytes) -> Schema:
    """
    Parse a wire schema received by a store.

    Raises:
        CollectionStoreError: INVALID_ARGUMENT if the schema is malformed
    """
    try:
        schema = schema_from_json(schema_json)
    except ValueError as e:
        raise CollectionStoreError(ErrorKind.INVALID_ARGUMENT, f"invalid schema: {e}") from e

    schema.name = collection
    return schema


class InMemoryCollectionStore(CollectionStore):
    """
    Collection store backed by dictionaries.

    Inserts are all-or-nothing per batch.
    """

    def __init__(
        self,
        max_document_size: int = DEFAULT_MAX_DOCUMENT_SIZE,
        max_transaction_size: int = DEFAULT_MAX_TRANSACTION_SIZE,
    ):
        """
        Initialize in-memory store.

        Args:
            max_document_size: Maximum encoded document size in bytes
            max_transaction_size: Maximum encoded batch size in bytes
        """
        self.validator = InsertValidator(max_document_size, max_transaction_size)
        self.schemas: dict[str, Schema] = {}
        self.documents: dict[str, dict[str, dict[str, Any]]] = {}

    def _get_schema(self, collection: str) -> Schema:
        schema = self.schemas.get(collection)
        if schema is None:
            raise CollectionStoreError(ErrorKind.NOT_FOUND, f"collection doesn't exist: {collection}")
        return schema

    def insert(self, collection: str, documents: Sequence[RawDocument]) -> int:
        schema = self._get_schema(collection)
        prepared = self.validator.prepare_batch(schema, documents)

        stored = self.documents.setdefault(collection, {})
        for doc in prepared:
            if doc.key in stored:
                raise CollectionStoreError(ErrorKind.ALREADY_EXISTS, f"duplicate key {doc.key}")

        for doc in prepared:
            stored[doc.key] = {**doc.data, **doc.generated}

        return len(prepared)

    def create_or_update_collection(self, collection: str, schema_json: str) -> None:
        schema = parse_schema_json(collection, schema_json)

        existing = self.schemas.get(collection)
        if existing is not None:
            try:
                check_schema_update(existing, schema)
            except SchemaEvolutionError as e:
                raise CollectionStoreError(ErrorKind.INVALID_ARGUMENT, str(e)) from e

        self.schemas[collection] = schema
        self.documents.setdefault(collection, {})
        logger.debug(f"Stored schema for collection '{collection}'")

    def describe_collection(self, collection: str) -> str:
        return schema_to_json(self._get_schema(collection))

    def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """All stored documents of a collection, in insertion order."""
        self._get_schema(collection)
        return list(self.documents.get(collection, {}).values())
