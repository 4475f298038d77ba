"""
Field accumulator: merges one document's structure into a schema.

The merge is a recursive tree walk over decoded JSON. It mutates the
target ``fields`` map in place; on error, changes made up to that point
are kept.
"""

from collections.abc import Collection

from docimport.core.errors import IncompatibleSchemaError
from docimport.core.models import FieldFormat, FieldType, InferenceOptions, SchemaField
from docimport.observability.logger import get_logger

from .types import extend_type, translate_type

logger = get_logger(__name__)


def _merge_object(
    name: str,
    existing: SchemaField | None,
    field: SchemaField,
    values: dict,
    options: InferenceOptions | None,
) -> None:
    """Recurse into an object value, reusing the nested fields of an existing object."""
    if existing is None:
        field.fields = {}
    elif existing.type == FieldType.OBJECT:
        field.fields = existing.fields if existing.fields is not None else {}
    else:
        logger.debug(
            "object converted to primitive",
            extra={"field_name": name, "old_type": existing.type.value},
        )
        raise IncompatibleSchemaError(name, existing.type, existing.format, field.type, FieldFormat.NONE)

    merge_fields(field.fields, values, options=options)


def _merge_array(
    name: str,
    existing: SchemaField | None,
    field: SchemaField,
    values: list,
    options: InferenceOptions | None,
) -> None:
    """Extend a running element type across all elements of an array value."""
    if existing is not None and existing.type != FieldType.ARRAY:
        logger.debug(
            "array converted to primitive",
            extra={"field_name": name, "old_type": existing.type.value},
        )
        raise IncompatibleSchemaError(name, existing.type, existing.format, field.type, FieldFormat.NONE)

    if existing is not None:
        field.items = existing.items

    for value in values:
        if value is None:
            continue

        item_type, item_format = translate_type(value, field.items, options)

        if field.items is None:
            field.items = SchemaField(type=item_type, format=item_format)

        field.items.type, field.items.format = extend_type(
            name, field.items.type, field.items.format, item_type, item_format
        )

        if item_type == FieldType.OBJECT:
            logger.debug("detected array of objects", extra={"field_name": name})
            _merge_object(name, field.items, field.items, value, options)
            if not field.items.fields:
                field.items = None
        elif item_type == FieldType.ARRAY:
            _merge_array(name, field.items, field.items, value, options)
            if field.items.items is None:
                field.items = None


def merge_fields(
    fields: dict[str, SchemaField],
    document: dict,
    auto_generate: Collection[str] = (),
    options: InferenceOptions | None = None,
) -> None:
    """
    Merge the key/value pairs of one decoded document into a fields map.

    - null values are skipped
    - empty objects and empty arrays contribute nothing
    - scalars are translated and widened against an existing field
    - objects and arrays recurse into nested structure

    Args:
        fields: Fields map to update in place
        document: Decoded JSON object
        auto_generate: Names to flag as auto-generated
        options: Content sniffing switches

    Raises:
        IncompatibleSchemaError: If a value cannot be merged with the recorded field
        UnsupportedTypeError: If a value cannot be classified
    """
    for name, value in document.items():
        if value is None:
            continue

        existing = fields.get(name)
        field_type, field_format = translate_type(value, existing, options)
        field = SchemaField(type=field_type, format=field_format)

        if field_type == FieldType.OBJECT:
            if not value:
                continue
            _merge_object(name, existing, field, value, options)
            if not field.fields:
                continue
        elif field_type == FieldType.ARRAY:
            if not value:
                continue
            _merge_array(name, existing, field, value, options)
            if field.items is None:
                continue
        elif existing is not None:
            field.type, field.format = extend_type(
                name, existing.type, existing.format, field_type, field_format
            )

        if name in auto_generate or (existing is not None and existing.auto_generate):
            field.auto_generate = True

        fields[name] = field
