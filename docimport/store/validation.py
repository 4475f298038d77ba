"""
Insert-time checks shared by collection store implementations.

Enforces size limits, checks documents against the collection schema and
fills auto-generated primary key values.
"""

import itertools
import time
import uuid
from collections.abc import Sequence
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, NamedTuple

from docimport.core.errors import InvalidDocumentError
from docimport.core.models import FieldFormat, FieldType, Schema, SchemaField
from docimport.core.schema import RawDocument, decode_document, dumps_document
from docimport.core.schema.types import INT64_MAX, INT64_MIN, parse_base64, parse_date_time, parse_uuid

from .base import DOCUMENT_EXCEEDS_LIMIT, TRANSACTION_EXCEEDS_LIMIT, CollectionStoreError, ErrorKind

DEFAULT_MAX_DOCUMENT_SIZE = 100 * 1024
DEFAULT_MAX_TRANSACTION_SIZE = 10 * 1024 * 1024

FORMAT_CHECKS = {
    FieldFormat.UUID: parse_uuid,
    FieldFormat.DATE_TIME: parse_date_time,
    FieldFormat.BYTE: parse_base64,
}


class PreparedDocument(NamedTuple):
    """A document that passed all insert checks."""

    key: str
    raw: bytes
    data: dict[str, Any]
    generated: dict[str, Any]


def encode_document(document: RawDocument) -> bytes:
    """
    Get the encoded form of a document.

    Raw text is kept byte for byte; decoded objects are serialized.

    Raises:
        ValueError: If a decoded object cannot be serialized
    """
    if isinstance(document, bytes):
        return document
    if isinstance(document, str):
        return document.encode("utf-8")
    return dumps_document(document).encode("utf-8")


def _invalid(message: str) -> CollectionStoreError:
    return CollectionStoreError(ErrorKind.INVALID_ARGUMENT, message)


class InsertValidator:
    """
    Validates insert batches against size limits and a collection schema.
    """

    def __init__(
        self,
        max_document_size: int = DEFAULT_MAX_DOCUMENT_SIZE,
        max_transaction_size: int = DEFAULT_MAX_TRANSACTION_SIZE,
    ):
        """
        Initialize validator.

        Args:
            max_document_size: Maximum encoded size of one document in bytes
            max_transaction_size: Maximum encoded size of one insert batch in bytes
        """
        self.max_document_size = max_document_size
        self.max_transaction_size = max_transaction_size
        self._sequence = itertools.count(time.time_ns() // 1000)

    def check_limits(self, encoded: Sequence[bytes]) -> None:
        """
        Enforce document and transaction size limits.

        Raises:
            CollectionStoreError: SIZE_LIMIT_EXCEEDED
        """
        total = 0
        for raw in encoded:
            if len(raw) > self.max_document_size:
                raise CollectionStoreError(ErrorKind.SIZE_LIMIT_EXCEEDED, DOCUMENT_EXCEEDS_LIMIT)
            total += len(raw)

        if total > self.max_transaction_size:
            raise CollectionStoreError(ErrorKind.SIZE_LIMIT_EXCEEDED, TRANSACTION_EXCEEDS_LIMIT)

    def validate(self, schema: Schema, document: dict[str, Any]) -> None:
        """
        Check a decoded document against the schema.

        Unknown fields, type mismatches and string format mismatches are
        rejected; null is accepted for any known field.

        Raises:
            CollectionStoreError: INVALID_ARGUMENT
        """
        self._check_object("", document, schema.fields)

    def _check_object(self, prefix: str, document: dict[str, Any], fields: dict[str, SchemaField]) -> None:
        for name, value in document.items():
            path = prefix + name
            field = fields.get(name)
            if field is None:
                raise _invalid(f"unknown field '{path}'")
            self._check_value(path, value, field)

    def _check_value(self, path: str, value: Any, field: SchemaField) -> None:
        if value is None:
            return

        is_number = isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)

        if field.type == FieldType.INTEGER:
            valid = is_number and isinstance(value, int) and INT64_MIN <= value <= INT64_MAX
        elif field.type == FieldType.NUMBER:
            valid = is_number
        elif field.type == FieldType.BOOLEAN:
            valid = isinstance(value, bool)
        elif field.type == FieldType.STRING:
            valid = isinstance(value, str)
            check = FORMAT_CHECKS.get(field.format)
            if valid and check is not None and not check(value):
                raise _invalid(f"field '{path}' is not a valid {field.format.value} string")
        elif field.type == FieldType.ARRAY:
            valid = isinstance(value, list)
            if valid and field.items is not None:
                for item in value:
                    self._check_value(path + "[]", item, field.items)
        else:
            valid = isinstance(value, dict)
            if valid:
                self._check_object(path + ".", value, field.fields or {})

        if not valid:
            raise _invalid(
                f"field '{path}' expected {field.type.value}, got {type(value).__name__}"
            )

    def _generate_value(self, name: str, field: SchemaField) -> Any:
        if field.type == FieldType.INTEGER:
            return next(self._sequence)
        if field.type == FieldType.STRING and field.format == FieldFormat.DATE_TIME:
            return datetime.now(timezone.utc).isoformat()
        if field.type == FieldType.STRING:
            return str(uuid.uuid4())
        raise _invalid(f"field '{name}' of type {field.type.value} cannot be auto-generated")

    def generate_keys(self, schema: Schema, document: dict[str, Any]) -> dict[str, Any]:
        """
        Produce values for missing auto-generated primary key fields.

        Returns:
            Generated values keyed by field name

        Raises:
            CollectionStoreError: INVALID_ARGUMENT if a required key is missing
        """
        generated = {}
        for name in schema.primary_key or ():
            if document.get(name) is not None:
                continue

            field = schema.fields.get(name)
            if field is None or not field.auto_generate:
                raise _invalid(f"missing primary key field '{name}'")

            generated[name] = self._generate_value(name, field)

        return generated

    def prepare_batch(self, schema: Schema, documents: Sequence[RawDocument]) -> list[PreparedDocument]:
        """
        Run all insert checks over a batch.

        Order: size limits, decoding, schema validation, key generation.
        Duplicate keys inside the batch are rejected.

        Returns:
            Prepared documents in input order

        Raises:
            CollectionStoreError: SIZE_LIMIT_EXCEEDED, INVALID_ARGUMENT or ALREADY_EXISTS
        """
        try:
            encoded = [encode_document(doc) for doc in documents]
        except ValueError as e:
            raise _invalid(f"invalid JSON document: {e}") from e
        self.check_limits(encoded)

        prepared = []
        seen_keys = set()
        for raw, document in zip(encoded, documents):
            try:
                data = decode_document(document)
            except InvalidDocumentError as e:
                raise _invalid(str(e)) from e

            self.validate(schema, data)
            generated = self.generate_keys(schema, data)
            key = self.document_key(schema, {**data, **generated})

            if key in seen_keys:
                raise CollectionStoreError(ErrorKind.ALREADY_EXISTS, f"duplicate key {key}")
            seen_keys.add(key)

            prepared.append(PreparedDocument(key=key, raw=raw, data=data, generated=generated))

        return prepared

    @staticmethod
    def document_key(schema: Schema, document: dict[str, Any]) -> str:
        """Primary key of a document as a JSON array, or a random key if unset."""
        if not schema.primary_key:
            return str(uuid.uuid4())
        return dumps_document([document.get(name) for name in schema.primary_key])
