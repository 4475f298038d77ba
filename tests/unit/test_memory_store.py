"""Unit tests for the in-memory collection store and shared insert checks."""

import json
import uuid
from decimal import Decimal

import pytest

from docimport.core.models import FieldFormat, FieldType, Schema, SchemaField
from docimport.core.schema import schema_from_json, schema_to_json
from docimport.store import (
    CollectionStoreError,
    ErrorKind,
    InMemoryCollectionStore,
    InsertValidator,
    is_size_limit_error,
)
from docimport.store.validation import encode_document


def users_schema() -> str:
    schema = Schema(
        name="users",
        fields={
            "id": SchemaField(type=FieldType.INTEGER),
            "name": SchemaField(type=FieldType.STRING),
            "score": SchemaField(type=FieldType.NUMBER),
            "uid": SchemaField(type=FieldType.STRING, format=FieldFormat.UUID),
            "address": SchemaField(type=FieldType.OBJECT, fields={"city": SchemaField(type=FieldType.STRING)}),
            "tags": SchemaField(type=FieldType.ARRAY, items=SchemaField(type=FieldType.STRING)),
        },
        primary_key=["id"],
    )
    return schema_to_json(schema)


@pytest.fixture
def users_store(memory_store) -> InMemoryCollectionStore:
    memory_store.create_or_update_collection("users", users_schema())
    return memory_store


class TestCollectionStoreError:
    """Test error classification helpers."""

    @pytest.mark.parametrize("message", ["document exceeds limit", "transaction exceeds limit"])
    def test_size_limit_messages(self, message):
        error = CollectionStoreError.from_message(message)

        assert error.kind == ErrorKind.SIZE_LIMIT_EXCEEDED
        assert is_size_limit_error(error)

    def test_other_message(self):
        error = CollectionStoreError.from_message("document exceeds quota")

        assert error.kind == ErrorKind.OTHER
        assert not is_size_limit_error(error)

    def test_cause_chain(self):
        cause = CollectionStoreError(ErrorKind.SIZE_LIMIT_EXCEEDED, "document exceeds limit")
        try:
            try:
                raise cause
            except CollectionStoreError as e:
                raise RuntimeError("wrapped") from e
        except RuntimeError as wrapped:
            assert is_size_limit_error(wrapped)

    def test_non_store_error(self):
        assert not is_size_limit_error(ValueError("document exceeds limit"))
        assert not is_size_limit_error(None)


class TestInMemoryCollectionStore:
    """Tests for InMemoryCollectionStore"""

    def test_insert_into_missing_collection(self, memory_store):
        with pytest.raises(CollectionStoreError) as exc_info:
            memory_store.insert("users", ['{"id": 1}'])

        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_describe_missing_collection(self, memory_store):
        with pytest.raises(CollectionStoreError) as exc_info:
            memory_store.describe_collection("users")

        assert exc_info.value.kind == ErrorKind.NOT_FOUND

    def test_create_and_describe(self, users_store):
        schema = schema_from_json(users_store.describe_collection("users"))

        assert schema.name == "users"
        assert schema.primary_key == ["id"]
        assert set(schema.fields) == {"id", "name", "score", "uid", "address", "tags"}

    def test_insert_valid_documents(self, users_store):
        docs = [
            '{"id": 1, "name": "a", "score": 1.5, "address": {"city": "Lisbon"}, "tags": ["x"]}',
            {"id": 2, "name": None, "score": 3, "uid": str(uuid.uuid4())},
        ]

        assert users_store.insert("users", docs) == 2
        stored = users_store.list_documents("users")
        assert [doc["id"] for doc in stored] == [1, 2]
        assert stored[0]["score"] == 1.5

    @pytest.mark.parametrize("doc", [
        '{"id": 1, "unknown": 1}',
        '{"id": 1, "address": {"zip": 1000}}',
        '{"id": "1"}',
        '{"id": 1.5}',
        '{"id": true}',
        '{"id": 1, "score": "high"}',
        '{"id": 1, "uid": "not-a-uuid"}',
        '{"id": 1, "tags": [1]}',
        '{"id": 1, "address": "Lisbon"}',
        '{"name": "no key"}',
        '[1, 2]',
        '{"id": 1,',
    ])
    def test_invalid_documents(self, users_store, doc):
        with pytest.raises(CollectionStoreError) as exc_info:
            users_store.insert("users", [doc])

        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT
        assert users_store.list_documents("users") == []

    def test_batch_is_all_or_nothing(self, users_store):
        with pytest.raises(CollectionStoreError):
            users_store.insert("users", ['{"id": 1}', '{"id": 2, "bad": 1}'])

        assert users_store.list_documents("users") == []

    def test_duplicate_key_in_batch(self, users_store):
        with pytest.raises(CollectionStoreError) as exc_info:
            users_store.insert("users", ['{"id": 1}', '{"id": 1}'])

        assert exc_info.value.kind == ErrorKind.ALREADY_EXISTS

    def test_duplicate_key_across_batches(self, users_store):
        users_store.insert("users", ['{"id": 1}'])

        with pytest.raises(CollectionStoreError) as exc_info:
            users_store.insert("users", ['{"id": 1}'])

        assert exc_info.value.kind == ErrorKind.ALREADY_EXISTS

    def test_document_size_limit(self, small_store):
        small_store.create_or_update_collection("users", users_schema())

        with pytest.raises(CollectionStoreError) as exc_info:
            small_store.insert("users", [json.dumps({"id": 1, "name": "x" * 100})])

        assert exc_info.value.kind == ErrorKind.SIZE_LIMIT_EXCEEDED
        assert exc_info.value.message == "document exceeds limit"

    def test_transaction_size_limit(self, small_store):
        small_store.create_or_update_collection("users", users_schema())
        docs = [json.dumps({"id": i, "name": "x" * 30}) for i in range(6)]

        with pytest.raises(CollectionStoreError) as exc_info:
            small_store.insert("users", docs)

        assert exc_info.value.message == "transaction exceeds limit"

    def test_size_checked_before_schema(self, small_store):
        """Test that limits are enforced before documents are validated."""
        small_store.create_or_update_collection("users", users_schema())

        with pytest.raises(CollectionStoreError) as exc_info:
            small_store.insert("users", [json.dumps({"unknown": "x" * 100})])

        assert exc_info.value.kind == ErrorKind.SIZE_LIMIT_EXCEEDED

    def test_auto_generated_uuid_key(self, memory_store):
        schema = Schema(
            fields={"id": SchemaField(type=FieldType.STRING, format=FieldFormat.UUID, auto_generate=True)},
            primary_key=["id"],
        )
        memory_store.create_or_update_collection("events", schema_to_json(schema))

        memory_store.insert("events", ["{}", "{}"])

        ids = [doc["id"] for doc in memory_store.list_documents("events")]
        assert len(set(ids)) == 2
        assert all(uuid.UUID(value) for value in ids)

    def test_auto_generated_integer_key(self, memory_store):
        schema = Schema(
            fields={"seq": SchemaField(type=FieldType.INTEGER, auto_generate=True)},
            primary_key=["seq"],
        )
        memory_store.create_or_update_collection("events", schema_to_json(schema))

        memory_store.insert("events", ["{}", "{}", '{"seq": null}'])

        seqs = [doc["seq"] for doc in memory_store.list_documents("events")]
        assert seqs == sorted(seqs)
        assert len(set(seqs)) == 3

    def test_compatible_schema_update(self, users_store):
        users_store.insert("users", ['{"id": 1, "score": 2}'])

        schema = schema_from_json(users_schema())
        schema.fields["id"] = SchemaField(type=FieldType.NUMBER)
        schema.fields["email"] = SchemaField(type=FieldType.STRING)
        users_store.create_or_update_collection("users", schema_to_json(schema))

        users_store.insert("users", ['{"id": 2.5, "email": "a@b"}'])
        assert len(users_store.list_documents("users")) == 2

    def test_breaking_schema_update(self, users_store):
        schema = schema_from_json(users_schema())
        del schema.fields["name"]

        with pytest.raises(CollectionStoreError) as exc_info:
            users_store.create_or_update_collection("users", schema_to_json(schema))

        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_malformed_schema(self, memory_store):
        with pytest.raises(CollectionStoreError) as exc_info:
            memory_store.create_or_update_collection("users", '{"properties": {"a": {"type": "date"}}}')

        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_collection_name_comes_from_argument(self, memory_store):
        memory_store.create_or_update_collection("orders", users_schema())

        assert schema_from_json(memory_store.describe_collection("orders")).name == "orders"


class TestInsertValidator:
    """Tests for InsertValidator key handling"""

    def test_document_key_without_primary_key_is_unique(self):
        schema = Schema(fields={"a": SchemaField(type=FieldType.INTEGER)})

        assert InsertValidator.document_key(schema, {"a": 1}) != InsertValidator.document_key(schema, {"a": 1})

    def test_composite_document_key(self):
        schema = Schema(primary_key=["a", "b"])

        assert InsertValidator.document_key(schema, {"a": 1, "b": "x"}) == '[1, "x"]'

    def test_non_generatable_type(self):
        schema = Schema(
            fields={"flag": SchemaField(type=FieldType.BOOLEAN, auto_generate=True)},
            primary_key=["flag"],
        )

        with pytest.raises(CollectionStoreError) as exc_info:
            InsertValidator().generate_keys(schema, {})

        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT

    def test_decoded_numbers_encoded_exactly(self):
        assert encode_document({"a": Decimal("2.0"), "b": Decimal("1E+400"), "c": 3}) == b'{"a": 2.0, "b": 1E+400, "c": 3}'

    def test_non_finite_decoded_number(self):
        schema = Schema(fields={"a": SchemaField(type=FieldType.NUMBER)})

        with pytest.raises(CollectionStoreError) as exc_info:
            InsertValidator().prepare_batch(schema, [{"a": Decimal("Infinity")}])

        assert exc_info.value.kind == ErrorKind.INVALID_ARGUMENT
