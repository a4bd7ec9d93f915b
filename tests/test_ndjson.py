import io
import json

import pytest

from columnload.ndjson import (
    NdJsonError,
    infer_ndjson_schema,
    load_ndjson_table,
    read_ndjson,
)
from columnload.schema import DataType, Field, Schema, TableColumn, TableSchema


def _ndjson(rows):
    return "".join(json.dumps(r) + "\n" for r in rows)


def test_infer_schema_skips_blank_lines():
    lines = ['{"a": 1, "b": "x"}\n', "\n", '{"a": 2, "c": [1, 2]}\n']
    schema = infer_ndjson_schema(lines)
    assert schema.names() == ["a", "b", "c"]
    assert schema.field("a").data_type is DataType.INT64
    assert schema.field("b").data_type is DataType.UTF8
    assert schema.field("c") == Field(
        "c", DataType.LIST, True, (Field("item", DataType.INT64),)
    )


def test_infer_schema_invalid_line():
    with pytest.raises(NdJsonError, match="Failed to infer NDJSON schema"):
        infer_ndjson_schema(['{"a": 1}', "{oops"])


def test_read_ndjson_splits_into_batches():
    stream = io.StringIO(_ndjson([{"id": i} for i in range(5)]))
    schema = Schema((Field("id", DataType.INT64),))
    batches = read_ndjson(stream, schema, 2)
    assert [b.num_rows for b in batches] == [2, 2, 1]
    assert [v for b in batches for v in b.column(0)] == [0, 1, 2, 3, 4]


def test_read_ndjson_empty_stream():
    schema = Schema((Field("id", DataType.INT64),))
    assert read_ndjson(io.StringIO(""), schema, 10) == []


def test_read_ndjson_rejects_bad_batch_size():
    with pytest.raises(ValueError, match="batch_size"):
        read_ndjson(io.StringIO('{"id": 1}\n'), Schema(), 0)


def test_read_ndjson_type_mismatch():
    schema = TableSchema((TableColumn("id", DataType.BOOLEAN),))
    with pytest.raises(NdJsonError, match="Failed to collect arrow record batches"):
        read_ndjson(io.StringIO('{"id": 3}\n'), schema)


def test_load_ndjson_file(tmp_path):
    rows = [{"flight_number": i, "name": f"launch {i}", "upcoming": False} for i in range(3)]
    path = tmp_path / "launches.ndjson"
    path.write_text(_ndjson(rows))
    schema, partitions = load_ndjson_table(str(path))
    assert sorted(schema.names()) == ["flight_number", "name", "upcoming"]
    assert len(partitions) == 1
    assert partitions[0][0].column_by_name("name") == ("launch 0", "launch 1", "launch 2")


def test_load_ndjson_directory_merges_schema(tmp_path):
    (tmp_path / "a.jsonl").write_text(_ndjson([{"a": 1}]))
    (tmp_path / "b.jsonl").write_text(_ndjson([{"a": None, "b": "x"}, {"a": 4}]))
    schema, partitions = load_ndjson_table(tmp_path, batch_size=1)
    assert schema.names() == ["a", "b"]
    assert schema.field("a").data_type is DataType.INT64
    assert [len(p) for p in partitions] == [1, 2]
    assert partitions[1][1].column_by_name("a") == (4,)
    assert partitions[0][0].column_by_name("b") == (None,)


def test_load_ndjson_with_provided_schema(tmp_path):
    path = tmp_path / "data.ndjson"
    path.write_text(_ndjson([{"a": "7", "ignored": 1}]))
    schema = TableSchema((TableColumn("a", DataType.INT64),))
    resolved, partitions = load_ndjson_table(path, schema)
    assert resolved.names() == ["a"]
    assert partitions[0][0].columns == ((7,),)


def test_load_ndjson_no_files(tmp_path):
    with pytest.raises(NdJsonError, match="Found empty NDJSON schema"):
        load_ndjson_table(tmp_path)


def test_load_ndjson_conflicting_files(tmp_path):
    (tmp_path / "a.ndjson").write_text(_ndjson([{"a": 1}]))
    (tmp_path / "b.ndjson").write_text(_ndjson([{"a": "text"}]))
    with pytest.raises(NdJsonError, match="Failed to infer NDJSON schema"):
        load_ndjson_table(tmp_path)