"""
Schema and SchemaField models describing the structure of a collection.
"""

from enum import Enum

from pydantic import BaseModel, Field


class FieldType(str, Enum):
    """JSON-Schema-like field types understood by the collection store."""

    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"
    NUMBER = "number"
    ARRAY = "array"
    OBJECT = "object"


class FieldFormat(str, Enum):
    """Refinements of the string type detected by content sniffing."""

    NONE = ""
    BYTE = "byte"
    DATE_TIME = "date-time"
    UUID = "uuid"


class SchemaField(BaseModel):
    """
    One schema entry.

    Attributes:
        type: Field type
        format: String refinement (only meaningful for type=string)
        fields: Nested fields, present iff type=object
        items: Element description, present iff type=array
        auto_generate: Value is produced by the store rather than the caller
    """

    type: FieldType
    format: FieldFormat = FieldFormat.NONE
    fields: dict[str, "SchemaField"] | None = None
    items: "SchemaField | None" = None
    auto_generate: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "type": "array",
                "items": {
                    "type": "object",
                    "fields": {
                        "id": {"type": "string", "format": "uuid"},
                        "price": {"type": "number"},
                    },
                },
            }
        }


class Schema(BaseModel):
    """
    Named, mutable structural description of a collection's documents.

    A Schema is owned by a single import run and is mutated in place by
    the field accumulator; it is not safe for concurrent use.

    Attributes:
        name: Collection name
        fields: Top-level fields keyed by name
        primary_key: Ordered primary key field names, None if unset
    """

    name: str = ""
    fields: dict[str, SchemaField] = Field(default_factory=dict)
    primary_key: list[str] | None = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "users",
                "fields": {
                    "id": {"type": "string", "format": "uuid", "auto_generate": True},
                    "name": {"type": "string"},
                },
                "primary_key": ["id"],
            }
        }


SchemaField.model_rebuild()
