"""
Schema inference, widening, wire format and evolution checks.
"""

from .accumulator import merge_fields
from .evolution import SchemaEvolutionError, check_schema_update, detect_schema_changes
from .inference import (
    NumberLiteral,
    RawDocument,
    SchemaInferrer,
    decode_document,
    decode_literal_document,
    dumps_document,
)
from .types import extend_type, translate_type
from .wire import dict_to_schema, schema_from_json, schema_to_dict, schema_to_json

__all__ = [
    "translate_type",
    "extend_type",
    "merge_fields",
    "SchemaInferrer",
    "RawDocument",
    "decode_document",
    "decode_literal_document",
    "dumps_document",
    "NumberLiteral",
    "schema_to_dict",
    "dict_to_schema",
    "schema_to_json",
    "schema_from_json",
    "detect_schema_changes",
    "check_schema_update",
    "SchemaEvolutionError",
]
