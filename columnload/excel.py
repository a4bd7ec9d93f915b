"""Schema inference and record batch construction for spreadsheet ranges."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Sequence

from columnload.excel_range import Cell, CellKind, ExcelError, ExcelRange, ExcelSubrange
from columnload.schema import DataType, Field, RecordBatch, Schema, TableSchema

_SUPPORTED_CONFIG_TYPES = frozenset(
    {
        DataType.BOOLEAN,
        DataType.INT64,
        DataType.FLOAT64,
        DataType.DURATION_SECOND,
        DataType.DATE32,
        DataType.DATE64,
        DataType.NULL,
        DataType.UTF8,
        DataType.TIMESTAMP_SECOND,
    }
)

_CELL_TYPES = {
    CellKind.INT: DataType.INT64,
    CellKind.FLOAT: DataType.FLOAT64,
    CellKind.STRING: DataType.UTF8,
    CellKind.BOOL: DataType.BOOLEAN,
    CellKind.DATETIME: DataType.TIMESTAMP_SECOND,
    CellKind.DATETIME_ISO: DataType.TIMESTAMP_SECOND,
    CellKind.DURATION: DataType.DURATION_SECOND,
    CellKind.DURATION_ISO: DataType.DURATION_SECOND,
    CellKind.EMPTY: DataType.NULL,
}


class IncorrectSchemaError(ExcelError):
    """Raised when a configured schema cannot be used for a spreadsheet."""


@dataclass(frozen=True)
class ExcelOptions:
    """Options that select the sheet and the window of cells to load."""

    sheet_name: str | None = None
    rows_range_start: int | None = None
    rows_range_end: int | None = None
    columns_range_start: int | None = None
    columns_range_end: int | None = None
    schema_inference_lines: int | None = None


def infer_value_type(cell: Cell) -> DataType:
    """Return the column type a single cell suggests."""
    if cell.kind is CellKind.ERROR:
        raise ExcelError(f"Failed to load Excel: {cell.value}")
    return _CELL_TYPES[cell.kind]


def infer_schema_from_data(rows: Iterable[Sequence[Cell]]) -> Schema:
    """Infer a schema from a header row followed by data rows."""
    row_iter = iter(rows)
    header = next(row_iter, None)
    if header is None:
        raise ExcelError("Failed to infer schema for empty excel table")

    col_names: list[str] = []
    for i, cell in enumerate(header):
        name = cell.get_string()
        if name is None:
            raise ExcelError(f"The {i}th column name is empty")
        col_names.append(name)

    col_types: dict[str, DataType] = {}
    for row in row_iter:
        for i, cell in enumerate(row):
            if i >= len(col_names):
                raise ExcelError(
                    "Failed to infer schema. Number of values in row is more "
                    "then column names."
                )
            name = col_names[i]
            col_type = infer_value_type(cell)
            current = col_types.get(name)
            if current is None:
                col_types[name] = col_type
            elif current is not col_type and current is DataType.NULL:
                col_types[name] = col_type
            elif current is not col_type and col_type is not DataType.NULL:
                col_types[name] = DataType.UTF8

    return Schema(
        tuple(
            Field(name.replace(" ", "_"), col_types.get(name, DataType.UTF8), True)
            for name in col_names
        )
    )


def infer_schema_from_config(table_schema: TableSchema) -> Schema:
    """Validate a configured schema against the types spreadsheets can hold."""
    unsupported = ", ".join(
        c.name for c in table_schema.columns if c.data_type not in _SUPPORTED_CONFIG_TYPES
    )
    if unsupported:
        raise IncorrectSchemaError(
            "Configured schema for excel file contains unsupported data types in "
            f"columns {unsupported}. Supported datatype: Boolean, Int64, Float64, "
            "Date32, Date64, !Timestamp [Second, null], !Duration [Second], Null, Utf8"
        )
    return table_schema.to_schema()


def infer_schema(
    excel_range: ExcelRange,
    options: ExcelOptions,
    table_schema: TableSchema | None,
) -> Schema:
    """Use the configured schema if given, otherwise infer one from the data."""
    if table_schema is not None:
        return infer_schema_from_config(table_schema)

    if options.schema_inference_lines is not None:
        last_row = options.schema_inference_lines + (options.rows_range_start or 0)
    else:
        last_row = options.rows_range_end

    rows = ExcelSubrange(
        excel_range,
        options.rows_range_start,
        last_row,
        options.columns_range_start,
        options.columns_range_end,
    )
    return infer_schema_from_data(rows)


def _require_empty(cell: Cell, field_name: str) -> None:
    if not cell.is_empty():
        raise ExcelError(f"Incorrect value {cell!r} in column {field_name}")
    return None


def _epoch_seconds(dt: datetime) -> int:
    return calendar.timegm(dt.timetuple())


def _duration_seconds(delta: timedelta) -> int:
    seconds = delta.days * 86_400 + delta.seconds
    if seconds < 0 and delta.microseconds:
        seconds += 1
    return seconds


def _trunc_div(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b > 0) else -q


def _to_timestamp(cell: Cell) -> int | None:
    dt = cell.as_datetime()
    return None if dt is None else _epoch_seconds(dt)


def _to_date64(cell: Cell) -> int | None:
    dt = cell.as_datetime()
    return None if dt is None else _epoch_seconds(dt) * 1000 + dt.microsecond // 1000


def _to_date32(cell: Cell) -> int | None:
    dt = cell.as_datetime()
    return None if dt is None else _trunc_div(_epoch_seconds(dt), 86_400)


def _to_duration(cell: Cell) -> int | None:
    delta = cell.as_duration()
    return None if delta is None else _duration_seconds(delta)


_STRICT_CONVERTERS: dict[DataType, Callable[[Cell], Any]] = {
    DataType.BOOLEAN: Cell.get_bool,
    DataType.INT64: Cell.get_int,
    DataType.FLOAT64: Cell.get_float,
    DataType.DURATION_SECOND: _to_duration,
    DataType.TIMESTAMP_SECOND: _to_timestamp,
    DataType.DATE64: _to_date64,
    DataType.DATE32: _to_date32,
}


def _column_values(
    rows: ExcelSubrange, index: int, field: Field
) -> tuple[Any, ...]:
    data_type = field.data_type
    if data_type is DataType.NULL:
        return (None,) * rows.size()

    if data_type is DataType.UTF8:
        return tuple(
            row[index].to_text() if index < len(row) else None for row in rows
        )

    converter = _STRICT_CONVERTERS.get(data_type)
    if converter is None:
        raise ExcelError(f"Unsupported data type for excel table {data_type}")

    values = []
    for row in rows:
        if index >= len(row):
            values.append(None)
            continue
        cell = row[index]
        value = converter(cell)
        if value is None:
            _require_empty(cell, field.name)
        values.append(value)
    return tuple(values)


def excel_range_to_record_batch(
    excel_range: ExcelRange, options: ExcelOptions, schema: Schema
) -> RecordBatch:
    """Convert the data rows of a range (header skipped) into a record batch."""
    first_data_row = (
        options.rows_range_start + 1 if options.rows_range_start is not None else 1
    )
    columns = []
    for index, field in enumerate(schema.fields):
        rows = ExcelSubrange(
            excel_range,
            first_data_row,
            options.rows_range_end,
            options.columns_range_start,
            options.columns_range_end,
        )
        columns.append(_column_values(rows, index, field))

    try:
        return RecordBatch(schema, tuple(columns))
    except ValueError as exc:
        raise ExcelError(f"Failed to create record batch: {exc}") from exc