"""
Collection store contract and implementations.
"""

from .base import (
    DOCUMENT_EXCEEDS_LIMIT,
    TRANSACTION_EXCEEDS_LIMIT,
    CollectionStore,
    CollectionStoreError,
    ErrorKind,
    is_size_limit_error,
)
from .memory import InMemoryCollectionStore
from .validation import InsertValidator

__all__ = [
    "CollectionStore",
    "CollectionStoreError",
    "ErrorKind",
    "DOCUMENT_EXCEEDS_LIMIT",
    "TRANSACTION_EXCEEDS_LIMIT",
    "is_size_limit_error",
    "InMemoryCollectionStore",
    "InsertValidator",
]
