import pytest

from columnload.schema import (
    DataType,
    Field,
    RecordBatch,
    Schema,
    SchemaMergeError,
    TableColumn,
    TableSchema,
)


def test_names_and_field_lookup():
    schema = Schema(
        (Field("a", DataType.INT64), Field("b", DataType.UTF8, nullable=False))
    )
    assert schema.names() == ["a", "b"]
    assert schema.field("b") == Field("b", DataType.UTF8, False)
    assert len(schema) == 2


def test_field_lookup_missing_raises():
    schema = Schema((Field("a", DataType.INT64),))
    with pytest.raises(KeyError):
        schema.field("missing")


def test_merge_appends_new_fields_in_order():
    left = Schema((Field("a", DataType.INT64),))
    right = Schema((Field("b", DataType.FLOAT64), Field("a", DataType.INT64)))
    merged = left.merge(right)
    assert merged.names() == ["a", "b"]
    assert merged.field("b").data_type is DataType.FLOAT64


def test_merge_null_takes_other_type():
    left = Schema((Field("a", DataType.NULL, nullable=False),))
    right = Schema((Field("a", DataType.UTF8, nullable=False),))
    assert left.merge(right).field("a") == Field("a", DataType.UTF8, True)
    assert right.merge(left).field("a") == Field("a", DataType.UTF8, True)


def test_merge_nullable_is_union():
    left = Schema((Field("a", DataType.INT64, nullable=False),))
    right = Schema((Field("a", DataType.INT64, nullable=True),))
    assert left.merge(right).field("a").nullable is True
    assert left.merge(left).field("a").nullable is False


def test_merge_conflicting_types_raises():
    left = Schema((Field("a", DataType.INT64),))
    right = Schema((Field("a", DataType.UTF8),))
    with pytest.raises(SchemaMergeError):
        left.merge(right)


def test_merge_struct_children():
    left = Schema(
        (Field("s", DataType.STRUCT, children=(Field("x", DataType.INT64),)),)
    )
    right = Schema(
        (Field("s", DataType.STRUCT, children=(Field("y", DataType.UTF8),)),)
    )
    merged = left.merge(right).field("s")
    assert [c.name for c in merged.children] == ["x", "y"]


def test_merge_is_identity_on_same_schema():
    schema = Schema((Field("a", DataType.INT64), Field("b", DataType.BOOLEAN)))
    assert schema.merge(schema) == schema


def test_table_schema_to_schema():
    table_schema = TableSchema(
        (
            TableColumn("float_column", DataType.FLOAT64),
            TableColumn("integer_column", DataType.INT64, nullable=False),
        )
    )
    assert table_schema.to_schema() == Schema(
        (
            Field("float_column", DataType.FLOAT64, True),
            Field("integer_column", DataType.INT64, False),
        )
    )


def test_record_batch_access():
    schema = Schema((Field("a", DataType.INT64), Field("b", DataType.UTF8)))
    batch = RecordBatch(schema, ([1, 2, 3], ["x", None, "z"]))
    assert batch.num_rows == 3
    assert batch.num_columns == 2
    assert batch.column(0) == (1, 2, 3)
    assert batch.column_by_name("b") == ("x", None, "z")
    assert batch.column_by_name("nope") is None


def test_record_batch_rejects_column_count_mismatch():
    schema = Schema((Field("a", DataType.INT64),))
    with pytest.raises(ValueError):
        RecordBatch(schema, ([1], [2]))


def test_record_batch_rejects_unequal_lengths():
    schema = Schema((Field("a", DataType.INT64), Field("b", DataType.INT64)))
    with pytest.raises(ValueError):
        RecordBatch(schema, ([1, 2], [1]))


def test_data_type_display():
    schema = TableSchema(
        (
            TableColumn("ts", DataType.TIMESTAMP_SECOND),
            TableColumn("name", DataType.UTF8),
        )
    ).to_schema()
    assert str(schema.field("ts").data_type) == "Timestamp(Second, None)"
    assert str(schema.field("name").data_type) == "Utf8"