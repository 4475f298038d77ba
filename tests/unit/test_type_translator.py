"""Unit tests for JSON value classification and type widening."""

from decimal import Decimal

import pytest

from docimport.core.errors import IncompatibleSchemaError, UnsupportedTypeError
from docimport.core.models import FieldFormat, FieldType, InferenceOptions, SchemaField
from docimport.core.schema.types import (
    extend_type,
    parse_base64,
    parse_date_time,
    parse_uuid,
    translate_type,
)

UUID_VALUE = "1ed6ff32-4c0f-4553-9cd3-a2ea3d58e9d1"
TIME_VALUE = "2022-11-04T16:17:23.967964263-07:00"
BASE64_VALUE = "cGVlay1hLWJvbwo="


class TestTranslateType:
    """Test classification of single JSON values."""

    @pytest.mark.parametrize("value, expected", [
        (1, (FieldType.INTEGER, FieldFormat.NONE)),
        (Decimal("1.5"), (FieldType.NUMBER, FieldFormat.NONE)),
        (1.5, (FieldType.NUMBER, FieldFormat.NONE)),
        (True, (FieldType.BOOLEAN, FieldFormat.NONE)),
        (False, (FieldType.BOOLEAN, FieldFormat.NONE)),
        (TIME_VALUE, (FieldType.STRING, FieldFormat.DATE_TIME)),
        (UUID_VALUE, (FieldType.STRING, FieldFormat.UUID)),
        (BASE64_VALUE, (FieldType.STRING, FieldFormat.BYTE)),
        ("hello", (FieldType.STRING, FieldFormat.NONE)),
        ([1, 2], (FieldType.ARRAY, FieldFormat.NONE)),
        ({"a": 1}, (FieldType.OBJECT, FieldFormat.NONE)),
    ])
    def test_scalar_and_container_types(self, value, expected):
        """Test each JSON shape maps to its (type, format) pair."""
        assert translate_type(value) == expected

    def test_exponent_literal_is_number(self):
        """Test that 1e2 decoded as Decimal is a number, not an integer."""
        assert translate_type(Decimal("1E+2")) == (FieldType.NUMBER, FieldFormat.NONE)

    def test_integer_outside_int64_is_number(self):
        """Test that integers beyond 64 bits widen to number."""
        assert translate_type(2 ** 63) == (FieldType.NUMBER, FieldFormat.NONE)
        assert translate_type(-(2 ** 63)) == (FieldType.INTEGER, FieldFormat.NONE)

    def test_null_is_unsupported(self):
        """Test that null must be skipped by callers."""
        with pytest.raises(UnsupportedTypeError) as exc_info:
            translate_type(None)

        assert exc_info.value.kind == "null"

    def test_unknown_python_type_is_unsupported(self):
        """Test that values outside the JSON model are rejected with their kind."""
        with pytest.raises(UnsupportedTypeError) as exc_info:
            translate_type({1, 2})

        assert "set" in str(exc_info.value)

    def test_date_time_wins_over_other_formats(self):
        """Test that sniffing resolves to the first matching detector."""
        assert translate_type("2023-01-01T00:00:00Z") == (FieldType.STRING, FieldFormat.DATE_TIME)

    def test_uuid_wins_over_base64(self):
        """Test that 32 hex characters are a uuid even though they decode as base64."""
        value = "1ed6ff324c0f45539cd3a2ea3d58e9d1"
        assert parse_base64(value)
        assert translate_type(value) == (FieldType.STRING, FieldFormat.UUID)

    def test_loose_hex_strings_are_not_uuids(self):
        assert translate_type("aaaa_aaaa_aaaa_aaaa_aaaa_aaaa_aa") == (FieldType.STRING, FieldFormat.NONE)
        assert translate_type("-".join("123456789abcdef0123456789abcdef0")) == (FieldType.STRING, FieldFormat.NONE)


class TestDetectionOptions:
    """Test that disabled detectors keep already narrowed fields narrowed."""

    def test_disabled_uuid_detection(self):
        """Test that a uuid is a plain string when detection is off."""
        options = InferenceOptions(detect_uuids=False)
        assert translate_type(UUID_VALUE, options=options) == (FieldType.STRING, FieldFormat.NONE)

    def test_disabled_detection_keeps_existing_format(self):
        """Test that an existing uuid field still classifies uuids."""
        options = InferenceOptions(detect_uuids=False)
        existing = SchemaField(type=FieldType.STRING, format=FieldFormat.UUID)

        assert translate_type(UUID_VALUE, existing, options) == (FieldType.STRING, FieldFormat.UUID)

    def test_disabled_time_detection(self):
        """Test that a timestamp is a plain string when detection is off."""
        options = InferenceOptions(detect_times=False)
        assert translate_type(TIME_VALUE, options=options) == (FieldType.STRING, FieldFormat.NONE)

    def test_disabled_byte_detection(self):
        """Test that base64 text is a plain string when detection is off."""
        options = InferenceOptions(detect_byte_arrays=False)
        assert translate_type(BASE64_VALUE, options=options) == (FieldType.STRING, FieldFormat.NONE)

    def test_disabled_integer_detection(self):
        """Test that integers classify as number unless the field is already integer."""
        options = InferenceOptions(detect_integers=False)
        existing = SchemaField(type=FieldType.INTEGER)

        assert translate_type(1, options=options) == (FieldType.NUMBER, FieldFormat.NONE)
        assert translate_type(1, existing, options) == (FieldType.INTEGER, FieldFormat.NONE)


class TestFormatParsers:
    """Test the string sniffing helpers."""

    @pytest.mark.parametrize("value", [
        "2022-11-04T16:17:23Z",
        "2022-11-04T16:17:23.5+05:30",
        TIME_VALUE,
    ])
    def test_valid_date_times(self, value):
        assert parse_date_time(value)

    @pytest.mark.parametrize("value", [
        "2022-11-04",
        "2022-13-04T16:17:23Z",
        "2022-02-30T16:17:23Z",
        "2022-11-04T25:17:23Z",
        "2022-11-04T16:17:23",
        "20221104T16172396796426307:00",
    ])
    def test_invalid_date_times(self, value):
        assert not parse_date_time(value)

    @pytest.mark.parametrize("value", [
        UUID_VALUE,
        UUID_VALUE.upper(),
        "{" + UUID_VALUE + "}",
        "urn:uuid:" + UUID_VALUE,
        "1ed6ff324c0f45539cd3a2ea3d58e9d1",
    ])
    def test_valid_uuids(self, value):
        assert parse_uuid(value)

    @pytest.mark.parametrize("value", [
        "str9cd3a2ea3d58e9d1",
        " aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa",
        "+1111111111111111111111111111111",
        "aaaa_aaaa_aaaa_aaaa_aaaa_aaaa_aa",
        "-".join("123456789abcdef0123456789abcdef0"),
        "1ed6ff32-4c0f4553-9cd3-a2ea3d58e9d1-",
        "{1ed6ff324c0f45539cd3a2ea3d58e9d1}",
        UUID_VALUE + "\n",
        "urn:uuid:" + UUID_VALUE + "0",
    ])
    def test_invalid_uuids(self, value):
        assert not parse_uuid(value)

    def test_date_time_with_trailing_newline(self):
        assert not parse_date_time("2022-11-04T16:17:23Z\n")

    @pytest.mark.parametrize("value, expected", [
        (BASE64_VALUE, True),
        ("YQ==", True),
        ("", False),
        ("YQ", False),
        ("not_base64", False),
        ("notbase64", False),
    ])
    def test_base64_parser(self, value, expected):
        assert parse_base64(value) is expected


class TestExtendType:
    """Test widening of recorded types by new observations."""

    def test_exact_match_is_unchanged(self):
        """Test identical pairs merge to themselves."""
        assert extend_type("f", FieldType.STRING, FieldFormat.UUID, FieldType.STRING, FieldFormat.UUID) == (
            FieldType.STRING, FieldFormat.UUID,
        )

    def test_integer_then_number(self):
        """Test integer widens to number."""
        assert extend_type("f", FieldType.INTEGER, FieldFormat.NONE, FieldType.NUMBER, FieldFormat.NONE) == (
            FieldType.NUMBER, FieldFormat.NONE,
        )

    def test_number_then_integer(self):
        """Test number stays number when an integer follows."""
        assert extend_type("f", FieldType.NUMBER, FieldFormat.NONE, FieldType.INTEGER, FieldFormat.NONE) == (
            FieldType.NUMBER, FieldFormat.NONE,
        )

    @pytest.mark.parametrize("old_format", [FieldFormat.BYTE, FieldFormat.UUID, FieldFormat.DATE_TIME])
    def test_format_relaxes_to_plain_string(self, old_format):
        """Test a sniffed format degrades once a plain string is seen."""
        assert extend_type("f", FieldType.STRING, old_format, FieldType.STRING, FieldFormat.NONE) == (
            FieldType.STRING, FieldFormat.NONE,
        )

    @pytest.mark.parametrize("new_format", [FieldFormat.BYTE, FieldFormat.UUID, FieldFormat.DATE_TIME])
    def test_plain_string_is_never_narrowed(self, new_format):
        """Test a plain string keeps its empty format."""
        assert extend_type("f", FieldType.STRING, FieldFormat.NONE, FieldType.STRING, new_format) == (
            FieldType.STRING, FieldFormat.NONE,
        )

    def test_integer_then_uuid_is_incompatible(self):
        """Test the error carries the field name and both pairs."""
        with pytest.raises(IncompatibleSchemaError) as exc_info:
            extend_type("field", FieldType.INTEGER, FieldFormat.NONE, FieldType.STRING, FieldFormat.UUID)

        assert exc_info.value == IncompatibleSchemaError("field", "integer", "", "string", "uuid")
        assert exc_info.value.field_name == "field"
        assert str(exc_info.value) == (
            "incompatible schema field: field, old type: 'integer:', new type: 'string:uuid'"
        )

    def test_different_formats_are_incompatible(self):
        """Test that two distinct sniffed formats do not merge."""
        with pytest.raises(IncompatibleSchemaError):
            extend_type("f", FieldType.STRING, FieldFormat.UUID, FieldType.STRING, FieldFormat.BYTE)

    def test_boolean_and_integer_are_incompatible(self):
        with pytest.raises(IncompatibleSchemaError):
            extend_type("f", FieldType.BOOLEAN, FieldFormat.NONE, FieldType.INTEGER, FieldFormat.NONE)
