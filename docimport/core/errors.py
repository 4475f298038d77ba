"""
Error taxonomy for schema inference and the import flow.
"""

from enum import Enum


class SchemaInferenceError(Exception):
    """Base class for errors raised while inferring a schema."""
    pass


class UnsupportedTypeError(SchemaInferenceError):
    """Raised when a JSON value's shape cannot be classified."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"unsupported type: kind='{kind}'")


class IncompatibleSchemaError(SchemaInferenceError):
    """Raised when two observations of one field cannot be merged."""

    def __init__(
        self,
        field_name: str,
        old_type: str,
        old_format: str,
        new_type: str,
        new_format: str,
    ):
        self.field_name = field_name
        self.old_type = str(getattr(old_type, "value", old_type))
        self.old_format = str(getattr(old_format, "value", old_format))
        self.new_type = str(getattr(new_type, "value", new_type))
        self.new_format = str(getattr(new_format, "value", new_format))
        super().__init__(
            f"incompatible schema field: {field_name}, "
            f"old type: '{self.old_type}:{self.old_format}', "
            f"new type: '{self.new_type}:{self.new_format}'"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, IncompatibleSchemaError):
            return NotImplemented
        return self.args == other.args

    def __hash__(self) -> int:
        return hash(self.args)


class InvalidDocumentError(SchemaInferenceError):
    """Raised when a document is not valid JSON or not a JSON object."""
    pass


class ProcessedCountMismatchError(RuntimeError):
    """
    Internal consistency fault in the adaptive batch submitter.

    Signals a defect in the splitting logic, never bad input. It is not
    retried and must not be swallowed.
    """

    def __init__(self, processed: int, expected: int):
        self.processed = processed
        self.expected = expected
        super().__init__(
            f"not all documents processed: processed {processed}, expected {expected}"
        )


class CollectionExistsError(Exception):
    """Raised when importing into an existing collection without append."""

    def __init__(self, collection: str):
        self.collection = collection
        super().__init__(
            f"collection '{collection}' exists. "
            f"use --append if you need to add documents to existing collection"
        )


class ImportStage(str, Enum):
    """Stage of the import orchestrator at which a failure occurred."""

    INITIAL_INSERT = "initial insert"
    SCHEMA_INFERENCE = "schema inference"
    SCHEMA_UPDATE = "schema update"
    INSERT_AFTER_SCHEMA_UPDATE = "insert after schema update"
    INSERT_AFTER_CLEANUP = "insert after cleanup"


class ImportStageError(Exception):
    """
    Final error of an import attempt together with the stage it occurred in.

    The underlying error is available as ``cause`` and ``__cause__``.
    """

    def __init__(self, stage: ImportStage, cause: BaseException):
        self.stage = stage
        self.cause = cause
        super().__init__(f"import documents ({stage.value}): {cause}")
