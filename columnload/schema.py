"""Column types, schemas and in-memory record batches."""

from __future__ import annotations

from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence


class DataType(Enum):
    """Logical column types understood by the table loaders.

    ``LIST`` and ``STRUCT`` are container types: their element or member
    fields are carried in :attr:`Field.children`.
    """

    NULL = "Null"
    BOOLEAN = "Boolean"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    UINT16 = "UInt16"
    FLOAT16 = "Float16"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    UTF8 = "Utf8"
    DATE32 = "Date32"
    DATE64 = "Date64"
    TIMESTAMP_SECOND = "Timestamp(Second, None)"
    DURATION_SECOND = "Duration(Second)"
    LIST = "List"
    STRUCT = "Struct"

    def __str__(self) -> str:
        return self.value


class SchemaMergeError(ValueError):
    """Raised when two schemas hold incompatible definitions of a field."""


@dataclass(frozen=True)
class Field:
    """A named, typed column; nested types keep their members in ``children``."""

    name: str
    data_type: DataType
    nullable: bool = True
    children: tuple[Field, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "children", tuple(self.children))

    def _merge(self, other: Field) -> Field:
        if self.name != other.name:
            raise SchemaMergeError(
                f"Fail to merge field {self.name!r} with field {other.name!r}"
            )
        nullable = self.nullable or other.nullable
        if other.data_type is DataType.NULL:
            return Field(self.name, self.data_type, True, self.children)
        if self.data_type is DataType.NULL:
            return Field(self.name, other.data_type, True, other.children)
        if self.data_type is DataType.STRUCT and other.data_type is DataType.STRUCT:
            merged = _merge_fields(self.children, other.children)
            return Field(self.name, DataType.STRUCT, nullable, merged)
        if self.data_type is not other.data_type or self.children != other.children:
            raise SchemaMergeError(
                f"Fail to merge schema field {self.name!r} because the from "
                f"data_type = {other.data_type} does not equal {self.data_type}"
            )
        return Field(self.name, self.data_type, nullable, self.children)


def _merge_fields(
    left: Sequence[Field], right: Sequence[Field]
) -> tuple[Field, ...]:
    merged = list(left)
    positions = {f.name: i for i, f in enumerate(merged)}
    for incoming in right:
        pos = positions.get(incoming.name)
        if pos is None:
            positions[incoming.name] = len(merged)
            merged.append(incoming)
        else:
            merged[pos] = merged[pos]._merge(incoming)
    return tuple(merged)


@dataclass(frozen=True)
class Schema:
    """An ordered collection of fields."""

    fields: tuple[Field, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def names(self) -> list[str]:
        """Return the field names in order."""
        return [f.name for f in self.fields]

    def field(self, name: str) -> Field:
        """Return the field called ``name``; raise KeyError when absent."""
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)

    def merge(self, other: Schema) -> Schema:
        """Combine two schemas, appending new fields and reconciling shared ones."""
        return Schema(_merge_fields(self.fields, other.fields))


@dataclass(frozen=True)
class TableColumn:
    """A column as declared in table configuration."""

    name: str
    data_type: DataType
    nullable: bool = True


@dataclass(frozen=True)
class TableSchema:
    """A user-declared table schema."""

    columns: tuple[TableColumn, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "columns", tuple(self.columns))

    def to_schema(self) -> Schema:
        """Convert the declared columns to a :class:`Schema`."""
        return Schema(
            tuple(Field(c.name, c.data_type, c.nullable) for c in self.columns)
        )


@dataclass(frozen=True)
class RecordBatch:
    """Equal-length columns of values described by a schema."""

    schema: Schema
    columns: tuple[tuple[Any, ...], ...] = dc_field(default=())

    def __post_init__(self) -> None:
        columns = tuple(tuple(c) for c in self.columns)
        if len(columns) != len(self.schema.fields):
            raise ValueError(
                f"number of columns({len(columns)}) must match number of "
                f"fields({len(self.schema.fields)}) in schema"
            )
        lengths = {len(c) for c in columns}
        if len(lengths) > 1:
            raise ValueError("all columns in a record batch must have the same length")
        object.__setattr__(self, "columns", columns)

    @classmethod
    def _from_columns(
        cls, schema: Schema, columns: Iterable[Iterable[Any]]
    ) -> RecordBatch:
        return cls(schema, tuple(tuple(c) for c in columns))

    @property
    def num_rows(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    @property
    def num_columns(self) -> int:
        return len(self.columns)

    def column(self, index: int) -> tuple[Any, ...]:
        """Return the column at ``index``."""
        return self.columns[index]

    def column_by_name(self, name: str) -> tuple[Any, ...] | None:
        """Return the column called ``name``, or None when there is none."""
        for f, values in zip(self.schema.fields, self.columns):
            if f.name == name:
                return values
        return None