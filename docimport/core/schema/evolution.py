"""
Schema change detection.

Compares a stored schema with a proposed one so a store can accept
backward compatible evolution (new fields, type widening) and reject
breaking changes.
"""

from typing import Any

from docimport.core.models import FieldFormat, FieldType, Schema, SchemaField
from docimport.observability.logger import get_logger

logger = get_logger(__name__)


class SchemaEvolutionError(Exception):
    """Raised when a proposed schema would break existing documents."""
    pass


def is_compatible_type_change(old: SchemaField, new: SchemaField) -> bool:
    """
    Check whether a field may change from ``old`` to ``new``.

    Only the widenings produced by inference are compatible:
    integer -> number and a formatted string -> plain string.

    Args:
        old: Stored field
        new: Proposed field

    Returns:
        True if the change is compatible
    """
    if old.type == new.type and old.format == new.format:
        return True

    if old.type == FieldType.INTEGER and new.type == FieldType.NUMBER:
        return True

    return (
        old.type == FieldType.STRING
        and new.type == FieldType.STRING
        and new.format == FieldFormat.NONE
    )


def _compare_fields(
    old_fields: dict[str, SchemaField],
    new_fields: dict[str, SchemaField],
    prefix: str,
    changes: dict[str, Any],
) -> None:
    for name in new_fields:
        if name not in old_fields:
            changes["added_fields"].append(prefix + name)

    for name, old_field in old_fields.items():
        path = prefix + name

        new_field = new_fields.get(name)
        if new_field is None:
            changes["removed_fields"].append(path)
            changes["has_breaking_changes"] = True
            continue

        if old_field.type != new_field.type or old_field.format != new_field.format:
            compatible = is_compatible_type_change(old_field, new_field)
            changes["type_changes"].append({
                "field": path,
                "old_type": f"{old_field.type.value}:{old_field.format.value}",
                "new_type": f"{new_field.type.value}:{new_field.format.value}",
                "compatible": compatible,
            })
            if not compatible:
                changes["has_breaking_changes"] = True
            continue

        if old_field.type == FieldType.OBJECT:
            _compare_fields(old_field.fields or {}, new_field.fields or {}, path + ".", changes)
        elif old_field.type == FieldType.ARRAY and old_field.items is not None:
            if new_field.items is None:
                changes["removed_fields"].append(path + "[]")
                changes["has_breaking_changes"] = True
            else:
                _compare_fields({"[]": old_field.items}, {"[]": new_field.items}, path, changes)


def detect_schema_changes(old_schema: Schema, new_schema: Schema) -> dict[str, Any]:
    """
    Detect all changes between two schemas.

    Nested fields are reported with dotted paths, array elements with a
    ``[]`` suffix.

    Args:
        old_schema: Stored schema
        new_schema: Proposed schema

    Returns:
        Dictionary with detected changes
    """
    changes: dict[str, Any] = {
        "added_fields": [],
        "removed_fields": [],
        "type_changes": [],
        "primary_key_changed": False,
        "has_breaking_changes": False,
    }

    _compare_fields(old_schema.fields, new_schema.fields, "", changes)

    if old_schema.primary_key and new_schema.primary_key != old_schema.primary_key:
        changes["primary_key_changed"] = True
        changes["has_breaking_changes"] = True

    return changes


def check_schema_update(old_schema: Schema, new_schema: Schema) -> dict[str, Any]:
    """
    Validate a proposed schema update.

    Args:
        old_schema: Stored schema
        new_schema: Proposed schema

    Returns:
        Detected changes

    Raises:
        SchemaEvolutionError: If the update contains breaking changes
    """
    changes = detect_schema_changes(old_schema, new_schema)

    if changes["has_breaking_changes"]:
        logger.error(
            f"Breaking schema changes detected for '{old_schema.name}'",
            extra={"changes": changes},
        )
        raise SchemaEvolutionError(
            f"breaking schema change for collection '{old_schema.name}': "
            f"removed={changes['removed_fields']}, "
            f"type_changes={[c for c in changes['type_changes'] if not c['compatible']]}, "
            f"primary_key_changed={changes['primary_key_changed']}"
        )

    if changes["added_fields"] or changes["type_changes"]:
        logger.info(
            f"Schema evolved for '{old_schema.name}': "
            f"{len(changes['added_fields'])} added, {len(changes['type_changes'])} widened"
        )

    return changes
