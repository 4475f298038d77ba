"""
PostgreSQL collection store.

Collections and their schemas live in ``docimport_collection``; documents
are stored as JSONB in ``docimport_document`` keyed by primary key.
Each insert batch is written in a single transaction.
"""

import json
from collections.abc import Sequence
from typing import Any

import psycopg
from psycopg import errors as pg_errors

from docimport.core.schema import RawDocument, SchemaEvolutionError, check_schema_update, schema_to_json
from docimport.observability.logger import get_logger

from .base import CollectionStore, CollectionStoreError, ErrorKind
from .connection import DatabaseConnectionPool
from .memory import parse_schema_json
from .validation import DEFAULT_MAX_DOCUMENT_SIZE, DEFAULT_MAX_TRANSACTION_SIZE, InsertValidator

logger = get_logger(__name__)

CREATE_COLLECTION_TABLE = """
    CREATE TABLE IF NOT EXISTS docimport_collection (
        name TEXT PRIMARY KEY,
        schema JSONB NOT NULL,
        version INTEGER NOT NULL DEFAULT 1,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
"""

CREATE_DOCUMENT_TABLE = """
    CREATE TABLE IF NOT EXISTS docimport_document (
        collection TEXT NOT NULL REFERENCES docimport_collection (name) ON DELETE CASCADE,
        doc_key TEXT NOT NULL,
        data JSONB NOT NULL,
        inserted_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        PRIMARY KEY (collection, doc_key)
    )
"""

SELECT_SCHEMA = """
    SELECT schema::text AS schema_json, version
    FROM docimport_collection
    WHERE name = %s
"""


def _translate_error(error: psycopg.Error, operation: str) -> CollectionStoreError:
    if isinstance(error, pg_errors.UniqueViolation):
        return CollectionStoreError(ErrorKind.ALREADY_EXISTS, f"{operation}: duplicate key")
    if isinstance(error, pg_errors.QueryCanceled):
        return CollectionStoreError(ErrorKind.DEADLINE_EXCEEDED, f"{operation}: deadline exceeded")
    if isinstance(error, (pg_errors.InvalidTextRepresentation, pg_errors.DataException)):
        return CollectionStoreError(ErrorKind.INVALID_ARGUMENT, f"{operation}: {error}")
    return CollectionStoreError.from_message(f"{operation}: {error}")


class PostgresCollectionStore(CollectionStore):
    """
    Collection store persisting to PostgreSQL through a connection pool.
    """

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        max_document_size: int = DEFAULT_MAX_DOCUMENT_SIZE,
        max_transaction_size: int = DEFAULT_MAX_TRANSACTION_SIZE,
    ):
        """
        Initialize PostgreSQL store.

        Args:
            pool: Open database connection pool
            max_document_size: Maximum encoded document size in bytes
            max_transaction_size: Maximum encoded batch size in bytes
        """
        self.pool = pool
        self.validator = InsertValidator(max_document_size, max_transaction_size)

    def initialize(self) -> None:
        """Create the store tables if they do not exist."""
        self.pool.execute_command(CREATE_COLLECTION_TABLE)
        self.pool.execute_command(CREATE_DOCUMENT_TABLE)

    def insert(self, collection: str, documents: Sequence[RawDocument]) -> int:
        try:
            with self.pool.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(SELECT_SCHEMA + " FOR SHARE", (collection,))
                    row = cur.fetchone()
                    if row is None:
                        raise CollectionStoreError(
                            ErrorKind.NOT_FOUND, f"collection doesn't exist: {collection}"
                        )

                    schema = parse_schema_json(collection, row["schema_json"])
                    prepared = self.validator.prepare_batch(schema, documents)

                    cur.executemany(
                        """
                        INSERT INTO docimport_document (collection, doc_key, data)
                        VALUES (%s, %s, %s::jsonb || %s::jsonb)
                        """,
                        [
                            (collection, doc.key, doc.raw.decode("utf-8"), json.dumps(doc.generated))
                            for doc in prepared
                        ],
                    )
                conn.commit()
        except psycopg.Error as e:
            raise _translate_error(e, "insert documents") from e

        return len(prepared)

    def create_or_update_collection(self, collection: str, schema_json: str) -> None:
        schema = parse_schema_json(collection, schema_json)

        try:
            with self.pool.get_connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(SELECT_SCHEMA + " FOR UPDATE", (collection,))
                    row = cur.fetchone()
                    if row is not None:
                        existing = parse_schema_json(collection, row["schema_json"])
                        try:
                            check_schema_update(existing, schema)
                        except SchemaEvolutionError as e:
                            raise CollectionStoreError(ErrorKind.INVALID_ARGUMENT, str(e)) from e

                    cur.execute(
                        """
                        INSERT INTO docimport_collection (name, schema)
                        VALUES (%s, %s::jsonb)
                        ON CONFLICT (name) DO UPDATE SET
                            schema = EXCLUDED.schema,
                            version = docimport_collection.version + 1,
                            updated_at = now()
                        """,
                        (collection, schema_to_json(schema)),
                    )
                conn.commit()
        except psycopg.Error as e:
            raise _translate_error(e, "create or update collection") from e

        logger.debug(f"Stored schema for collection '{collection}'")

    def describe_collection(self, collection: str) -> str:
        try:
            rows = self.pool.execute_query(SELECT_SCHEMA, (collection,))
        except psycopg.Error as e:
            raise _translate_error(e, "describe collection") from e

        if not rows:
            raise CollectionStoreError(ErrorKind.NOT_FOUND, f"collection doesn't exist: {collection}")

        return rows[0]["schema_json"]

    def get_schema_version(self, collection: str) -> int | None:
        """Number of times the collection schema has been written, None if missing."""
        rows = self.pool.execute_query(SELECT_SCHEMA, (collection,))
        return rows[0]["version"] if rows else None

    def list_documents(self, collection: str) -> list[dict[str, Any]]:
        """All stored documents of a collection, in insertion order."""
        rows = self.pool.execute_query(
            """
            SELECT data FROM docimport_document
            WHERE collection = %s
            ORDER BY inserted_at, doc_key
            """,
            (collection,),
        )
        return [row["data"] for row in rows]

    def close(self) -> None:
        self.pool.close()
