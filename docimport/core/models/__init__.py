"""
Core data models for the document import pipeline.

All models use Pydantic for runtime validation and type safety.
"""

from .import_options import ImportOptions, InferenceOptions
from .schema import FieldFormat, FieldType, Schema, SchemaField

__all__ = [
    "FieldType",
    "FieldFormat",
    "SchemaField",
    "Schema",
    "InferenceOptions",
    "ImportOptions",
]
