"""Load newline-delimited JSON files into record batches."""

from __future__ import annotations

import json
from functools import reduce
from itertools import islice
from typing import Any, Iterable, Iterator

from columnload.json_table import (
    JsonTableError,
    PathInput,
    _as_schema,
    _source_files,
    infer_json_schema,
    rows_to_record_batch,
)
from columnload.schema import RecordBatch, Schema, SchemaMergeError, TableSchema

DEFAULT_BATCH_SIZE = 8192


class NdJsonError(ValueError):
    """Raised when newline-delimited JSON cannot be turned into a table."""


def _parse_lines(lines: Iterable[Any]) -> Iterator[Any]:
    for line in lines:
        text = line.strip()
        if text:
            yield json.loads(text)


def _chunks(rows: Iterator[Any], size: int) -> Iterator[list[Any]]:
    while True:
        chunk = list(islice(rows, size))
        if not chunk:
            return
        yield chunk


def infer_ndjson_schema(lines: Iterable[Any]) -> Schema:
    """Infer a schema from lines each holding one JSON object; blank lines are skipped."""
    try:
        return infer_json_schema(_parse_lines(lines))
    except (JsonTableError, json.JSONDecodeError) as exc:
        raise NdJsonError(f"Failed to infer NDJSON schema: {exc}") from exc


def read_ndjson(
    stream: Iterable[Any],
    schema: Schema | TableSchema,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> list[RecordBatch]:
    """Decode lines into record batches holding at most ``batch_size`` rows each."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    resolved = _as_schema(schema)
    try:
        return [
            rows_to_record_batch(chunk, resolved)
            for chunk in _chunks(_parse_lines(stream), batch_size)
        ]
    except (JsonTableError, json.JSONDecodeError) as exc:
        raise NdJsonError(f"Failed to collect arrow record batches: {exc}") from exc


def load_ndjson_table(
    paths: PathInput,
    schema: Schema | TableSchema | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> tuple[Schema, list[list[RecordBatch]]]:
    """Load every file as one partition; infer and merge the schema when none is given."""
    files = _source_files(paths)
    if schema is None:
        inferred = []
        for path in files:
            with open(path, encoding="utf-8") as handle:
                inferred.append(infer_ndjson_schema(handle))
        if not inferred:
            raise NdJsonError("Found empty NDJSON schema")
        try:
            resolved = reduce(Schema.merge, inferred)
        except SchemaMergeError as exc:
            raise NdJsonError(f"Failed to infer NDJSON schema: {exc}") from exc
    else:
        resolved = _as_schema(schema)

    partitions = []
    for path in files:
        with open(path, encoding="utf-8") as handle:
            partitions.append(read_ndjson(handle, resolved, batch_size))
    return resolved, partitions