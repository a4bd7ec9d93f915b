"""Load JSON documents that hold arrays of rows into record batches."""

from __future__ import annotations

import calendar
import json
import math
import os
import re
from dataclasses import dataclass, field as dc_field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Union

from columnload.schema import DataType, Field, RecordBatch, Schema, TableSchema

PathInput = Union[str, "os.PathLike[str]", Iterable[Union[str, "os.PathLike[str]"]]]

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_ARRAY_INDEX = re.compile(r"0|[1-9][0-9]*")
_INT_TEXT = re.compile(r"[+-]?[0-9]+", re.ASCII)
_FLOAT_TEXT = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)",
    re.ASCII | re.IGNORECASE,
)
_INT_RANGES = {
    DataType.INT16: (-(2**15), 2**15 - 1),
    DataType.INT32: (-(2**31), 2**31 - 1),
    DataType.INT64: (_I64_MIN, _I64_MAX),
    DataType.UINT16: (0, 2**16 - 1),
}
_FLOAT_TYPES = frozenset({DataType.FLOAT16, DataType.FLOAT32, DataType.FLOAT64})
_EPOCH_DATE = date(1970, 1, 1)


class JsonTableError(ValueError):
    """Raised when JSON data cannot be turned into a table."""


def _source_files(paths: PathInput) -> list[Path]:
    """Expand paths into files; a directory contributes its files in name order."""
    if isinstance(paths, (str, os.PathLike)):
        paths = [paths]
    files: list[Path] = []
    for path in map(Path, paths):
        if path.is_dir():
            files.extend(sorted(child for child in path.iterdir() if child.is_file()))
        else:
            files.append(path)
    return files


def _as_schema(schema: Schema | TableSchema) -> Schema:
    return schema.to_schema() if isinstance(schema, TableSchema) else schema


def resolve_pointer(document: Any, pointer: str) -> Any:
    """Return the value a JSON pointer refers to; raise when it refers to nothing."""
    if pointer == "":
        return document
    if not pointer.startswith("/"):
        raise JsonTableError(f"Invalid json pointer: {pointer}")
    target = document
    for raw in pointer.split("/")[1:]:
        key = raw.replace("~1", "/").replace("~0", "~")
        if isinstance(target, dict):
            if key not in target:
                raise JsonTableError(f"Invalid json pointer: {pointer}")
            target = target[key]
        elif isinstance(target, list):
            if not _ARRAY_INDEX.fullmatch(key) or int(key) >= len(target):
                raise JsonTableError(f"Invalid json pointer: {pointer}")
            target = target[int(key)]
        else:
            raise JsonTableError(f"Invalid json pointer: {pointer}")
    return target


@dataclass
class _Scalars:
    types: set[DataType] = dc_field(default_factory=set)


@dataclass
class _Array:
    item: Any = None


@dataclass
class _Object:
    members: dict[str, Any] = dc_field(default_factory=dict)


def _scalar_type(value: Any) -> DataType:
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, int):
        return DataType.INT64 if _I64_MIN <= value <= _I64_MAX else DataType.FLOAT64
    if isinstance(value, float):
        return DataType.FLOAT64
    return DataType.UTF8


def _incompatible(value: Any) -> JsonTableError:
    return JsonTableError(
        f"Failed to infer schema: incompatible type found for value {value!r}"
    )


def _observe(current: Any, value: Any) -> Any:
    if value is None:
        return current
    if isinstance(value, dict):
        if current is None:
            current = _Object()
        elif not isinstance(current, _Object):
            raise _incompatible(value)
        for name, member in value.items():
            current.members[name] = _observe(current.members.get(name), member)
        return current
    if isinstance(value, list):
        if current is None:
            current = _Array()
        elif isinstance(current, _Scalars):
            current = _Array(current)
        elif not isinstance(current, _Array):
            raise _incompatible(value)
        for item in value:
            current.item = _observe(current.item, item)
        return current
    scalar = _scalar_type(value)
    if current is None:
        return _Scalars({scalar})
    if isinstance(current, _Scalars):
        current.types.add(scalar)
        return current
    if isinstance(current, _Array):
        current.item = _observe(current.item, value)
        return current
    raise _incompatible(value)


def _coerce_scalars(types: set[DataType]) -> DataType:
    if len(types) == 1:
        return next(iter(types))
    if types <= {DataType.INT64, DataType.FLOAT64}:
        return DataType.FLOAT64
    return DataType.UTF8


def _to_field(name: str, inferred: Any) -> Field:
    if inferred is None:
        return Field(name, DataType.NULL, True)
    if isinstance(inferred, _Scalars):
        return Field(name, _coerce_scalars(inferred.types), True)
    if isinstance(inferred, _Array):
        return Field(name, DataType.LIST, True, (_to_field("item", inferred.item),))
    return Field(
        name,
        DataType.STRUCT,
        True,
        tuple(_to_field(k, v) for k, v in inferred.members.items()),
    )


def infer_json_schema(rows: Iterable[Any]) -> Schema:
    """Infer a schema from JSON objects, keeping fields in order of first sight."""
    record = _Object()
    for row in rows:
        if not isinstance(row, dict):
            raise JsonTableError(
                f"Failed to infer schema: expected JSON record to be an object, found {row!r}"
            )
        _observe(record, row)
    return Schema(tuple(_to_field(k, v) for k, v in record.members.items()))


def json_partition_to_rows(document: Any, pointer: str | None = None) -> list[Any]:
    """Return the array of rows in a document, optionally below a JSON pointer."""
    target = resolve_pointer(document, pointer) if pointer is not None else document
    if not isinstance(target, list):
        raise JsonTableError(f"{pointer if pointer is not None else 'JSON data'} is not an array")
    return list(target)


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str) and _INT_TEXT.fullmatch(value):
        return int(value)
    return None


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _FLOAT_TEXT.fullmatch(value):
        return float(value)
    return None


def _parse_datetime(text: str) -> datetime | None:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _temporal(value: Any, data_type: DataType) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if not isinstance(value, str) or data_type is DataType.DURATION_SECOND:
        return None
    if data_type is DataType.DATE32:
        try:
            return (date.fromisoformat(value) - _EPOCH_DATE).days
        except ValueError:
            return None
    parsed = _parse_datetime(value)
    if parsed is None:
        return None
    seconds = calendar.timegm(parsed.timetuple())
    if data_type is DataType.DATE64:
        return seconds * 1000 + parsed.microsecond // 1000
    return seconds


def _mismatch(field: Field, value: Any) -> JsonTableError:
    return JsonTableError(
        f"Failed to serialize objects: expected {field.data_type} for column "
        f"{field.name}, got {value!r}"
    )


def _decode(value: Any, field: Field) -> Any:
    if value is None:
        if not field.nullable:
            raise JsonTableError(
                f"Failed to serialize objects: column {field.name} is not nullable but got null"
            )
        return None
    data_type = field.data_type
    if data_type is DataType.BOOLEAN:
        if isinstance(value, bool):
            return value
    elif data_type in _INT_RANGES:
        number = _to_int(value)
        low, high = _INT_RANGES[data_type]
        if number is not None and low <= number <= high:
            return number
    elif data_type in _FLOAT_TYPES:
        real = _to_float(value)
        if real is not None:
            return real
    elif data_type is DataType.UTF8:
        if isinstance(value, str):
            return value
    elif data_type in (
        DataType.TIMESTAMP_SECOND,
        DataType.DATE32,
        DataType.DATE64,
        DataType.DURATION_SECOND,
    ):
        number = _temporal(value, data_type)
        if number is not None:
            return number
    elif data_type is DataType.LIST:
        if isinstance(value, list) and field.children:
            return [_decode(item, field.children[0]) for item in value]
    elif data_type is DataType.STRUCT:
        if isinstance(value, dict):
            return {c.name: _decode(value.get(c.name), c) for c in field.children}
    raise _mismatch(field, value)


def _array_row_to_object(row: Any, schema: Schema) -> dict[str, Any]:
    record: dict[str, Any] = {}
    for index, field in enumerate(schema.fields):
        if not isinstance(row, list) or index >= len(row):
            raise JsonTableError(
                f"Array encoded JSON row missing column {index}: {row!r}"
            )
        record[field.name] = row[index]
    return record


def rows_to_record_batch(
    rows: Iterable[Any],
    schema: Schema | TableSchema | None = None,
    array_encoded: bool = False,
) -> RecordBatch:
    """Decode JSON rows into one record batch, inferring the schema when none is given."""
    rows = list(rows)
    if schema is None:
        if array_encoded:
            raise JsonTableError("Array encoded option requires manually specified schema")
        resolved = infer_json_schema(rows)
    else:
        resolved = _as_schema(schema)

    if array_encoded:
        objects = [_array_row_to_object(row, resolved) for row in rows]
    else:
        for row in rows:
            if not isinstance(row, dict):
                raise JsonTableError(
                    f"Failed to serialize objects: expected a JSON object, got {row!r}"
                )
        objects = rows

    if not objects:
        raise JsonTableError("No item found in JSON rows")

    columns = tuple(
        tuple(_decode(obj.get(f.name), f) for obj in objects) for f in resolved.fields
    )
    return RecordBatch(resolved, columns)


def _read_document(path: Path) -> Any:
    try:
        with open(path, "rb") as handle:
            return json.load(handle)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise JsonTableError(f"Failed to deserialize JSON: {exc}") from exc


def load_json_table(
    paths: PathInput,
    pointer: str | None = None,
    array_encoded: bool = False,
    schema: Schema | TableSchema | None = None,
) -> tuple[Schema, list[list[RecordBatch]]]:
    """Load every JSON file as one partition and return the merged schema and partitions."""
    if array_encoded and schema is None:
        raise JsonTableError("Array encoded option requires manually specified schema")

    merged: Schema | None = None
    partitions: list[list[RecordBatch]] = []
    for path in _source_files(paths):
        rows = json_partition_to_rows(_read_document(path), pointer)
        if not rows:
            if pointer is not None:
                raise JsonTableError(f"{pointer} points to an empty array")
            raise JsonTableError("JSON data is an empty array")
        batch = rows_to_record_batch(rows, schema, array_encoded)
        if merged is None or merged == batch.schema:
            merged = batch.schema
        else:
            merged = merged.merge(batch.schema)
        partitions.append([batch])

    if merged is None:
        raise JsonTableError("Failed to load schema")
    return merged, partitions