"""
Schema wire format.

Converts between the Schema model and the JSON-Schema-like document the
collection store accepts:

    {"title": "users",
     "properties": {"id": {"type": "string", "format": "uuid", "autoGenerate": true}},
     "primary_key": ["id"]}
"""

import json
from typing import Any

from docimport.core.models import FieldFormat, FieldType, Schema, SchemaField


def field_to_dict(field: SchemaField) -> dict[str, Any]:
    """
    Convert a SchemaField to its wire representation.

    Args:
        field: Schema field

    Returns:
        Dictionary with ``type`` and the optional ``format``, ``items``,
        ``properties`` and ``autoGenerate`` keys
    """
    result: dict[str, Any] = {"type": field.type.value}

    if field.format != FieldFormat.NONE:
        result["format"] = field.format.value
    if field.items is not None:
        result["items"] = field_to_dict(field.items)
    if field.fields is not None:
        result["properties"] = {
            name: field_to_dict(nested) for name, nested in field.fields.items()
        }
    if field.auto_generate:
        result["autoGenerate"] = True

    return result


def dict_to_field(field_dict: dict[str, Any]) -> SchemaField:
    """
    Convert a wire field definition to a SchemaField.

    Args:
        field_dict: Field definition

    Returns:
        SchemaField

    Raises:
        ValueError: If the type or format is not recognized
    """
    if not isinstance(field_dict, dict):
        raise ValueError(f"field definition must be an object, got {type(field_dict).__name__}")

    try:
        field_type = FieldType(field_dict["type"])
        field_format = FieldFormat(field_dict.get("format") or "")
    except KeyError as e:
        raise ValueError(f"field definition is missing {e}") from e

    field = SchemaField(
        type=field_type,
        format=field_format,
        auto_generate=bool(field_dict.get("autoGenerate", False)),
    )

    if "items" in field_dict and field_dict["items"] is not None:
        field.items = dict_to_field(field_dict["items"])
    if "properties" in field_dict and field_dict["properties"] is not None:
        field.fields = {
            name: dict_to_field(nested) for name, nested in field_dict["properties"].items()
        }
    elif field_type == FieldType.OBJECT:
        field.fields = {}

    return field


def schema_to_dict(schema: Schema) -> dict[str, Any]:
    """
    Convert a Schema to its wire representation.

    Args:
        schema: Schema model

    Returns:
        Dictionary with ``title``, ``properties`` and, when set, ``primary_key``
    """
    result: dict[str, Any] = {
        "title": schema.name,
        "properties": {name: field_to_dict(field) for name, field in schema.fields.items()},
    }
    if schema.primary_key:
        result["primary_key"] = list(schema.primary_key)

    return result


def dict_to_schema(schema_dict: dict[str, Any]) -> Schema:
    """
    Convert a wire schema document to a Schema.

    Args:
        schema_dict: Wire schema

    Returns:
        Schema model

    Raises:
        ValueError: If a field definition is invalid
    """
    properties = schema_dict.get("properties") or {}

    return Schema(
        name=schema_dict.get("title", ""),
        fields={name: dict_to_field(field) for name, field in properties.items()},
        primary_key=list(schema_dict["primary_key"]) if schema_dict.get("primary_key") else None,
    )


def schema_to_json(schema: Schema) -> str:
    """Serialize a Schema to wire JSON."""
    return json.dumps(schema_to_dict(schema))


def schema_from_json(data: str | bytes) -> Schema:
    """
    Deserialize wire JSON into a Schema.

    Raises:
        ValueError: If the document is not valid JSON or not a valid schema
    """
    schema_dict = json.loads(data)
    if not isinstance(schema_dict, dict):
        raise ValueError("schema must be a JSON object")
    return dict_to_schema(schema_dict)
