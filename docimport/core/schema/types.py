"""
Type translation and widening for inferred schema fields.

translate_type() classifies a single decoded JSON value into a
(type, format) pair; extend_type() merges a newly observed pair into the
pair already recorded for the same field.
"""

import base64
import binascii
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from docimport.core.errors import IncompatibleSchemaError, UnsupportedTypeError
from docimport.core.models import FieldFormat, FieldType, InferenceOptions, SchemaField
from docimport.observability.logger import get_logger

logger = get_logger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

DEFAULT_OPTIONS = InferenceOptions()

# RFC 3339 date-time with optional fractional seconds
RFC3339_PATTERN = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(Z|[+-](\d{2}):(\d{2}))$"
)

# Canonical 8-4-4-4-12 form, optionally in braces or behind a urn:uuid: prefix, or 32 bare hex digits
_HEX_UUID = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
UUID_PATTERN = re.compile(
    rf"(?:urn:uuid:)?{_HEX_UUID}|\{{{_HEX_UUID}\}}|[0-9a-f]{{32}}",
    re.IGNORECASE,
)

# Formats a plain string may be widened from
RELAXABLE_FORMATS = (FieldFormat.BYTE, FieldFormat.UUID, FieldFormat.DATE_TIME)


def parse_date_time(value: str) -> bool:
    """
    Check whether a string is an RFC 3339 timestamp.

    Args:
        value: Candidate string

    Returns:
        True if the string parses as a valid RFC 3339 date-time
    """
    match = RFC3339_PATTERN.fullmatch(value)
    if not match:
        return False

    year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
    try:
        tz = timezone.utc
        if match.group(8) != "Z":
            offset_hours, offset_minutes = int(match.group(9)), int(match.group(10))
            if offset_hours > 23 or offset_minutes > 59:
                return False
            tz = timezone(timedelta(hours=offset_hours, minutes=offset_minutes))
        datetime(year, month, day, hour, minute, second, tzinfo=tz)
    except ValueError:
        return False

    return True


def parse_uuid(value: str) -> bool:
    """Check whether a string is a UUID in one of the accepted textual forms."""
    return UUID_PATTERN.fullmatch(value) is not None


def parse_base64(value: str) -> bool:
    """Check whether a non-empty string decodes as standard, padded base64."""
    if not value:
        return False
    try:
        base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def _need_narrowing(detect: bool, existing: SchemaField | None, field_format: FieldFormat) -> bool:
    return detect or (existing is not None and existing.format == field_format)


def _translate_number(
    value: int | float | Decimal,
    existing: SchemaField | None,
    options: InferenceOptions,
) -> tuple[FieldType, FieldFormat]:
    if isinstance(value, int) and INT64_MIN <= value <= INT64_MAX:
        if options.detect_integers or (existing is not None and existing.type == FieldType.INTEGER):
            return FieldType.INTEGER, FieldFormat.NONE

    return FieldType.NUMBER, FieldFormat.NONE


def _translate_string(
    value: str,
    existing: SchemaField | None,
    options: InferenceOptions,
) -> tuple[FieldType, FieldFormat]:
    # First matching detector wins
    if parse_date_time(value) and _need_narrowing(options.detect_times, existing, FieldFormat.DATE_TIME):
        return FieldType.STRING, FieldFormat.DATE_TIME

    if parse_uuid(value) and _need_narrowing(options.detect_uuids, existing, FieldFormat.UUID):
        return FieldType.STRING, FieldFormat.UUID

    if _need_narrowing(options.detect_byte_arrays, existing, FieldFormat.BYTE) and parse_base64(value):
        return FieldType.STRING, FieldFormat.BYTE

    return FieldType.STRING, FieldFormat.NONE


def translate_type(
    value: object,
    existing: SchemaField | None = None,
    options: InferenceOptions | None = None,
) -> tuple[FieldType, FieldFormat]:
    """
    Classify a decoded JSON value.

    Args:
        value: Value decoded with parse_float=Decimal (null is not accepted)
        existing: Field already recorded for the same path, if any
        options: Content sniffing switches

    Returns:
        Tuple of (type, format)

    Raises:
        UnsupportedTypeError: If the value is not a JSON shape we can classify
    """
    options = options or DEFAULT_OPTIONS

    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return FieldType.BOOLEAN, FieldFormat.NONE
    elif isinstance(value, (int, float, Decimal)):
        return _translate_number(value, existing, options)
    elif isinstance(value, str):
        return _translate_string(value, existing, options)
    elif isinstance(value, list):
        return FieldType.ARRAY, FieldFormat.NONE
    elif isinstance(value, dict):
        return FieldType.OBJECT, FieldFormat.NONE
    elif value is None:
        raise UnsupportedTypeError("null")
    else:
        raise UnsupportedTypeError(type(value).__name__)


def _extend_string_type(
    old_format: FieldFormat,
    new_format: FieldFormat,
) -> FieldFormat | None:
    if new_format == FieldFormat.NONE and old_format in RELAXABLE_FORMATS:
        # Relax a sniffed format to generic string
        return new_format
    if old_format == FieldFormat.NONE and new_format in RELAXABLE_FORMATS:
        # Never narrow a plain string
        return old_format
    return None


def extend_type(
    name: str,
    old_type: FieldType,
    old_format: FieldFormat,
    new_type: FieldType,
    new_format: FieldFormat,
) -> tuple[FieldType, FieldFormat]:
    """
    Merge a newly observed (type, format) into the recorded one.

    Widening rules:
    - integer and number merge to number, in either order
    - a string format (byte, uuid, date-time) relaxes to plain string
      once a plain string is observed, and a plain string is never narrowed

    Args:
        name: Field name, used in the error
        old_type: Recorded type
        old_format: Recorded format
        new_type: Observed type
        new_format: Observed format

    Returns:
        Tuple of merged (type, format)

    Raises:
        IncompatibleSchemaError: If the observations cannot be reconciled
    """
    if old_type == FieldType.INTEGER and new_type == FieldType.NUMBER:
        return new_type, new_format

    if old_type == FieldType.NUMBER and new_type == FieldType.INTEGER:
        return old_type, old_format

    if old_type == FieldType.STRING and new_type == FieldType.STRING and new_format != old_format:
        merged_format = _extend_string_type(old_format, new_format)
        if merged_format is not None:
            return FieldType.STRING, merged_format

    if new_type == old_type and new_format == old_format:
        return new_type, new_format

    logger.debug(
        "incompatible schema",
        extra={
            "field_name": name,
            "old_type": str(old_type.value),
            "old_format": str(old_format.value),
            "new_type": str(new_type.value),
            "new_format": str(new_format.value),
        },
    )

    raise IncompatibleSchemaError(name, old_type, old_format, new_type, new_format)
