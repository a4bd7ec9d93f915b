# columnload

`columnload` turns tabular data into typed, column-oriented record batches.
It can infer a schema from the data, or it can follow a schema you give it.

It reads these sources:

- **Spreadsheet ranges** (`columnload.excel_range`, `columnload.excel`):
  cells of a sheet, held in memory as an `ExcelRange`.
- **Google Sheets** (`columnload.google_sheets`): sheet values fetched from
  the Sheets API with a bearer token.
- **JSON documents** (`columnload.json_table`): arrays of objects, or arrays
  of arrays together with a schema. A JSON pointer can select where the
  array sits in the document.
- **Newline-delimited JSON** (`columnload.ndjson`): one object per line.

## Installation

```
pip install columnload
```

## Schemas and record batches

`columnload.schema` defines the types that every loader returns:

- `DataType` lists the column types: `NULL`, `BOOLEAN`, the integer and
  float types, `UTF8`, `DATE32`, `DATE64`, `TIMESTAMP_SECOND`,
  `DURATION_SECOND`, and the container types `LIST` and `STRUCT`.
- `Field` holds a name, a type, a nullable flag, and `children` for nested
  types.
- `Schema` is an ordered tuple of fields:
  - `names()` lists the field names.
  - `field(name)` looks up a field and raises `KeyError` if there is none.
  - `merge(other)` appends new fields and reconciles fields that both
    schemas share. A `NULL` field takes the other side's type, and structs
    are merged member by member. Any other conflict raises
    `SchemaMergeError`.
- `TableColumn` and `TableSchema` describe a schema you configure by hand.
  `TableSchema.to_schema()` converts it to a `Schema`.
- `RecordBatch` pairs a schema with one tuple of values per column, and
  checks that the columns are consistent. It has `num_rows`, `num_columns`,
  `column(index)` and `column_by_name(name)`; the last returns `None` when
  no column has that name.

## Spreadsheet ranges

Build a range from sparse `((row, column), Cell)` pairs, then turn it into
a batch. The first row of the window is the header.

```python
from columnload.excel_range import Cell, CellKind, ExcelRange
from columnload.excel import ExcelOptions, infer_schema, excel_range_to_record_batch

sheet = ExcelRange.from_sparse([
    ((0, 0), Cell(CellKind.STRING, "city")),
    ((0, 1), Cell(CellKind.STRING, "lat")),
    ((1, 0), Cell(CellKind.STRING, "Leeds")),
    ((1, 1), Cell(CellKind.FLOAT, 53.8)),
])
options = ExcelOptions()
schema = infer_schema(sheet, options, None)
batch = excel_range_to_record_batch(sheet, options, schema)
batch.column_by_name("lat")  # (53.8,)
```

Schema inference works as follows:

- Each header cell must be a string. Spaces in column names become
  underscores.
- Empty cells do not decide a column's type.
- A column whose cells hold more than one non-empty type becomes `UTF8`.
- An error cell raises `ExcelError`.
- `DateTime` cells are spreadsheet serial numbers and load as Unix seconds.
  `Duration` cells load as whole seconds.

`ExcelOptions` sets the window that is loaded:

- `rows_range_start`, `rows_range_end`, `columns_range_start` and
  `columns_range_end` pick the rows and columns.
- `schema_inference_lines` limits how many rows are read to infer the
  schema.
- `sheet_name` records which sheet the range came from.

`ExcelSubrange` iterates over such a window directly.

When you pass a `TableSchema` to `infer_schema`, it is validated by
`infer_schema_from_config`. That function raises `IncorrectSchemaError` if
the schema uses a type that spreadsheet cells cannot hold.

## Google Sheets

```python
from columnload.google_sheets import SheetsClient

client = SheetsClient(token="token")
batch = client.load_record_batch(
    "https://docs.google.com/spreadsheets/d/<spreadsheet-id>/edit#gid=0"
)
```

When you give no sheet title, the client looks one up from the spreadsheet
metadata. It takes the sheet named by `#gid=<id>` in the URI, or else the
sheet at index 0.

Each cell is typed by the first type it fits, tried in this order: integer,
float, boolean (`true` or `false`, in any case), string. A column's types
are then coerced together; integers and floats combine to float, and any
other mix becomes string. Rows may be shorter than the header, and the
missing cells become `None`.

The steps are also available as separate functions:

- `sheet_values_to_record_batch`
- `infer_schema`
- `spreadsheet_id_from_uri`
- `sheet_id_from_fragment`
- `select_sheet_title`
- `values_url`

Failures raise `SheetsError`. A `requests`-compatible `session` can be passed
to `SheetsClient`.

## JSON and NDJSON

```python
from columnload.json_table import load_json_table
from columnload.ndjson import load_ndjson_table

schema, partitions = load_json_table("launches.json")
schema, partitions = load_ndjson_table("launches.ndjson", batch_size=1024)
```

`paths` can be one path or several. A directory contributes the files it
holds, in name order. Each file becomes one partition.

For JSON:

- The schema of each file is inferred, and the schemas are merged.
- `pointer` selects the array inside the document.
- `array_encoded=True` reads rows that are arrays. It requires a schema.
- An empty array, a pointer that leads nowhere, or a value that is not an
  array raises `JsonTableError`.

Lower-level helpers: `resolve_pointer`, `json_partition_to_rows`,
`infer_json_schema` and `rows_to_record_batch`.

For NDJSON:

- Blank lines are skipped.
- `read_ndjson` splits a stream into batches of at most `batch_size` rows.
  The default is 8192.
- `infer_ndjson_schema` infers a schema from lines.
- Problems raise `NdJsonError`.

## What this package does not do

- It does not open workbook files (`.xlsx`, `.ods`). You build an
  `ExcelRange` from cells that you have read yourself.
- It does not obtain Google API tokens. `SheetsClient` needs a bearer token
  that you already have.
- JSON and NDJSON sources must be local files or streams. Nothing is fetched
  over HTTP.
- There is no query engine, server or command-line tool. The loaders return
  schemas and record batches only.