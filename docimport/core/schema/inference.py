"""
Schema inference for batches of schema-less JSON documents.

Builds or extends a Schema from the first ``depth`` documents of a batch
and applies primary key defaulting.
"""

import json
from collections.abc import Sequence
from decimal import Decimal
from typing import Any, Union

from docimport.core.errors import InvalidDocumentError
from docimport.core.models import FieldFormat, InferenceOptions, Schema
from docimport.observability.logger import get_logger

from .accumulator import merge_fields

logger = get_logger(__name__)

# A document as read from the source: raw JSON text or an already decoded object
RawDocument = Union[str, bytes, dict[str, Any]]

IMPLICIT_PRIMARY_KEY = "id"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant: {name}")


class NumberLiteral:
    """A JSON number kept as the exact text it was written with."""

    __slots__ = ("text",)

    def __init__(self, text: str):
        self.text = text

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NumberLiteral):
            return NotImplemented
        return self.text == other.text

    def __hash__(self) -> int:
        return hash(self.text)

    def __repr__(self) -> str:
        return f"NumberLiteral({self.text!r})"


def _load_object(document: str | bytes, **number_hooks) -> dict[str, Any]:
    try:
        decoded = json.loads(document, parse_constant=_reject_constant, **number_hooks)
    except (ValueError, TypeError) as e:
        raise InvalidDocumentError(f"invalid JSON document: {e}") from e

    if not isinstance(decoded, dict):
        raise InvalidDocumentError(
            f"expected JSON object, got {type(decoded).__name__}"
        )

    return decoded


def decode_document(document: RawDocument) -> dict[str, Any]:
    """
    Decode one document into a JSON object.

    Fractional numbers are decoded as Decimal so integer and number
    literals stay distinguishable and nothing is lost to float rounding.

    Args:
        document: Raw JSON text or an already decoded object

    Returns:
        Decoded JSON object

    Raises:
        InvalidDocumentError: If the document is not a JSON object
    """
    if isinstance(document, dict):
        return document

    return _load_object(document, parse_float=Decimal)


def decode_literal_document(document: str | bytes) -> dict[str, Any]:
    """
    Decode one document keeping every number as a NumberLiteral.

    Used to rewrite documents without changing the numbers they carry.

    Raises:
        InvalidDocumentError: If the document is not a JSON object
    """
    return _load_object(document, parse_int=NumberLiteral, parse_float=NumberLiteral)


def dumps_document(value: Any) -> str:
    """
    Serialize a decoded document to JSON text.

    NumberLiteral values are written back verbatim and Decimal values in
    their exact decimal form, so a number literal never turns into an
    integer literal or loses digits.

    Raises:
        ValueError: If the value holds a non-finite number or an unsupported type
    """
    if isinstance(value, dict):
        items = (f"{json.dumps(str(name))}: {dumps_document(item)}" for name, item in value.items())
        return "{" + ", ".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(dumps_document(item) for item in value) + "]"
    if isinstance(value, NumberLiteral):
        return value.text
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"non-finite number: {value}")
        return str(value)
    try:
        return json.dumps(value, allow_nan=False)
    except TypeError as e:
        raise ValueError(str(e)) from e


class SchemaInferrer:
    """
    Infers a collection schema from sample documents.

    The same Schema instance is meant to be passed to successive calls so
    later batches progressively broaden it.
    """

    def __init__(self, options: InferenceOptions | None = None):
        """
        Initialize schema inferrer.

        Args:
            options: Content sniffing switches
        """
        self.options = options or InferenceOptions()

    def infer(
        self,
        schema: Schema,
        name: str,
        documents: Sequence[RawDocument],
        primary_key: Sequence[str] | None = None,
        auto_generate: Sequence[str] | None = None,
        depth: int = 0,
    ) -> Schema:
        """
        Build or extend a schema from a batch of documents.

        The schema is updated in place and returned. On error the
        mutations made before the failing document are kept, so callers
        needing atomicity must discard the schema.

        Args:
            schema: Schema to extend
            name: Collection name
            documents: Batch of documents
            primary_key: Explicit primary key; overrides any prior value when non-empty
            auto_generate: Top-level field names to flag as auto-generated
            depth: Maximum documents to examine (0 examines all)

        Returns:
            The updated schema

        Raises:
            SchemaInferenceError: On the first document that cannot be merged
        """
        schema.name = name
        if primary_key:
            schema.primary_key = list(primary_key)

        auto_generate_names = frozenset(auto_generate or ())
        limit = len(documents) if depth == 0 else min(depth, len(documents))

        for document in documents[:limit]:
            merge_fields(
                schema.fields,
                decode_document(document),
                auto_generate=auto_generate_names,
                options=self.options,
            )

        self._apply_implicit_primary_key(schema)

        logger.debug(
            f"Inferred schema for '{name}' from {limit} documents",
            extra={"collection": name, "fields": len(schema.fields)},
        )

        return schema

    def _apply_implicit_primary_key(self, schema: Schema) -> None:
        """Use a top-level uuid ``id`` field as auto-generated primary key."""
        field = schema.fields.get(IMPLICIT_PRIMARY_KEY)
        if schema.primary_key is None and field is not None and field.format == FieldFormat.UUID:
            field.auto_generate = True
            schema.primary_key = [IMPLICIT_PRIMARY_KEY]
