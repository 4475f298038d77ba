"""
Collection store contract.

The importer talks to a schema-bound document store through this
interface. Implementations report failures as CollectionStoreError with a
structured ErrorKind so callers match on kind rather than message text.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from enum import Enum

from docimport.core.schema import RawDocument

DOCUMENT_EXCEEDS_LIMIT = "document exceeds limit"
TRANSACTION_EXCEEDS_LIMIT = "transaction exceeds limit"

SIZE_LIMIT_MESSAGES = (DOCUMENT_EXCEEDS_LIMIT, TRANSACTION_EXCEEDS_LIMIT)


class ErrorKind(str, Enum):
    """Classification of collection store failures."""

    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    SIZE_LIMIT_EXCEEDED = "size_limit_exceeded"
    ALREADY_EXISTS = "already_exists"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    OTHER = "other"


class CollectionStoreError(Exception):
    """Raised by collection store operations."""

    def __init__(self, kind: ErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(message)

    @classmethod
    def from_message(cls, message: str, default: ErrorKind = ErrorKind.OTHER) -> "CollectionStoreError":
        """
        Build an error from a store message, recognizing the size limit texts.

        Args:
            message: Error text reported by the store
            default: Kind used for unrecognized messages

        Returns:
            CollectionStoreError
        """
        if message in SIZE_LIMIT_MESSAGES:
            return cls(ErrorKind.SIZE_LIMIT_EXCEEDED, message)
        return cls(default, message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind={self.kind.value}, message={self.message!r})"


def is_size_limit_error(error: BaseException | None) -> bool:
    """
    Check whether an error, or any error it was raised from, is a size limit failure.

    Args:
        error: Exception to inspect

    Returns:
        True for SIZE_LIMIT_EXCEEDED collection store errors
    """
    seen = set()
    while error is not None and id(error) not in seen:
        if isinstance(error, CollectionStoreError):
            return error.kind == ErrorKind.SIZE_LIMIT_EXCEEDED
        seen.add(id(error))
        error = error.__cause__

    return False


class CollectionStore(ABC):
    """
    Abstract base class for collection stores.

    All calls are blocking; implementations enforce their own deadline
    and report it as DEADLINE_EXCEEDED.
    """

    @abstractmethod
    def insert(self, collection: str, documents: Sequence[RawDocument]) -> int:
        """
        Insert a batch of documents.

        Args:
            collection: Collection name
            documents: Documents to insert, in order

        Returns:
            Number of documents inserted

        Raises:
            CollectionStoreError: NOT_FOUND if the collection does not exist,
                SIZE_LIMIT_EXCEEDED if a document or the batch is too large,
                INVALID_ARGUMENT if a document does not match the schema
        """
        pass

    @abstractmethod
    def create_or_update_collection(self, collection: str, schema_json: str) -> None:
        """
        Create a collection or update its schema.

        Args:
            collection: Collection name
            schema_json: Schema in wire format

        Raises:
            CollectionStoreError: INVALID_ARGUMENT if the schema is malformed
                or the update is not backward compatible
        """
        pass

    @abstractmethod
    def describe_collection(self, collection: str) -> str:
        """
        Get the schema of a collection.

        Args:
            collection: Collection name

        Returns:
            Schema in wire format

        Raises:
            CollectionStoreError: NOT_FOUND if the collection does not exist
        """
        pass

    def close(self) -> None:
        """Release resources held by the store."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
