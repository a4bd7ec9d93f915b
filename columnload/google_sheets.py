"""Load Google Sheets values into record batches through the Sheets API."""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence
from urllib.parse import urlsplit

import requests

from columnload.schema import DataType, Field, RecordBatch, Schema

API_BASE = "https://sheets.googleapis.com/v4/spreadsheets"

_SHEET_URI = re.compile(r"https://docs.google.com/spreadsheets/d/(.+)")
_INT = re.compile(r"[+-]?[0-9]+", re.ASCII)
_UINT = re.compile(r"\+?[0-9]+", re.ASCII)
_FLOAT = re.compile(
    r"[+-]?(?:inf|infinity|nan|(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:e[+-]?[0-9]+)?)",
    re.ASCII | re.IGNORECASE,
)
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


class SheetsError(ValueError):
    """Raised when a Google Sheet cannot be fetched or converted."""


def _parse_i64(value: str) -> int | None:
    if not _INT.fullmatch(value):
        return None
    number = int(value)
    return number if _I64_MIN <= number <= _I64_MAX else None


def _parse_f64(value: str) -> float | None:
    if not _FLOAT.fullmatch(value):
        return None
    return float(value)


def infer_value_type(value: str) -> DataType:
    """Return the column type suggested by a single cell's text."""
    if _parse_i64(value) is not None:
        return DataType.INT64
    if _parse_f64(value) is not None:
        return DataType.FLOAT64
    if value.lower() in ("true", "false"):
        return DataType.BOOLEAN
    return DataType.UTF8


def coerce_type(left: DataType, right: DataType) -> DataType:
    """Return the narrowest type able to hold values of both types."""
    pair = {left, right}
    if left is right and left in (
        DataType.BOOLEAN,
        DataType.DATE32,
        DataType.DATE64,
        DataType.INT64,
        DataType.FLOAT64,
    ):
        return left
    if pair == {DataType.DATE32, DataType.DATE64}:
        return DataType.DATE64
    if pair == {DataType.INT64, DataType.FLOAT64}:
        return DataType.FLOAT64
    return DataType.UTF8


def infer_schema(rows: Sequence[Sequence[str]]) -> Schema:
    """Infer a schema from a header row followed by data rows."""
    if not rows:
        raise SheetsError("Googlesheet is empty")
    col_names = list(rows[0])
    col_types: dict[str, dict[DataType, None]] = {}

    for row in rows[1:]:
        if len(row) > len(col_names):
            raise SheetsError(
                f"Row has {len(row)} values but only {len(col_names)} column names"
            )
        for name, value in zip(col_names, row):
            col_types.setdefault(name, {})[infer_value_type(value)] = None

    fields = []
    for name in col_names:
        types = list(col_types.get(name) or {DataType.UTF8: None})
        data_type = types[0]
        for other in types[1:]:
            data_type = coerce_type(data_type, other)
        fields.append(Field(name.replace(" ", "_"), data_type, True))
    return Schema(tuple(fields))


def parse_boolean(value: str) -> bool:
    """Return True for ``true`` in any ASCII letter case, False otherwise."""
    return value.isascii() and value.lower() == "true"


def _column(rows: Sequence[Sequence[str]], index: int, data_type: DataType) -> list[Any]:
    values: list[Any] = []
    for row in rows:
        if index >= len(row):
            values.append(None)
            continue
        text = row[index]
        if data_type is DataType.BOOLEAN:
            values.append(parse_boolean(text))
        elif data_type is DataType.INT64:
            number = _parse_i64(text)
            if number is None:
                raise SheetsError(f"Expect int64 value, got: {text}")
            values.append(number)
        elif data_type is DataType.FLOAT64:
            real = _parse_f64(text)
            if real is None:
                raise SheetsError(f"Expect float64 value, got: {text}")
            values.append(real)
        else:
            values.append(text)
    return values


def sheet_values_to_record_batch(values: Sequence[Sequence[str]]) -> RecordBatch:
    """Convert sheet values (header row first) into a record batch."""
    schema = infer_schema(values)
    data_rows = values[1:]
    columns = [
        _column(data_rows, index, field.data_type)
        for index, field in enumerate(schema.fields)
    ]
    try:
        return RecordBatch(schema, tuple(tuple(c) for c in columns))
    except ValueError as exc:
        raise SheetsError(f"Failed to create record batch: {exc}") from exc


def spreadsheet_id_from_uri(uri: str) -> str:
    """Extract the spreadsheet id from a Google Sheets document URI."""
    if _SHEET_URI.search(uri) is None:
        raise SheetsError(f"Invalid URI: {uri}")
    segments = urlsplit(uri).path.split("/")[1:]
    if len(segments) < 3 or not segments[2]:
        raise SheetsError(f"Invalid URI: {uri}")
    return segments[2]


def sheet_id_from_fragment(uri: str) -> int | None:
    """Return the sheet id given as ``#gid=<id>`` in the URI, if any."""
    fragment = urlsplit(uri).fragment
    if not fragment and "#" not in uri:
        return None
    parts = fragment.split("=")
    if len(parts) != 2 or parts[0] != "gid":
        return None
    if not _UINT.fullmatch(parts[1]):
        return None
    return int(parts[1])


def _sheet_properties(spreadsheet: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    try:
        sheets = spreadsheet["sheets"]
        properties = [sheet["properties"] for sheet in sheets]
        for prop in properties:
            prop["sheetId"], prop["title"], prop["index"]
    except (KeyError, TypeError) as exc:
        raise SheetsError(f"Failed to parse API response: {exc}") from exc
    return properties


def select_sheet_title(spreadsheet: Mapping[str, Any], uri: str) -> str:
    """Pick the sheet named by the URI fragment, or the first sheet."""
    properties = _sheet_properties(spreadsheet)
    sheet_id = sheet_id_from_fragment(uri)
    if sheet_id is not None:
        for prop in properties:
            if prop["sheetId"] == sheet_id:
                return prop["title"]
        raise SheetsError(f"Invalid sheet id: {sheet_id}")
    for prop in properties:
        if prop["index"] == 0:
            return prop["title"]
    raise SheetsError("Googlesheet is empty")


def values_url(spreadsheet_id: str, sheet_title: str) -> str:
    """Return the API URL for the values of one sheet."""
    return f"{API_BASE}/{spreadsheet_id}/values/{sheet_title}"


class SheetsClient:
    """Fetches spreadsheets from the Sheets API with a bearer token."""

    def __init__(self, token: str, session: Any = None) -> None:
        if not token:
            raise SheetsError("Oauth2 token not found")
        self.token = token
        self.session = session if session is not None else requests.Session()

    def _get_json(self, url: str, failure: str) -> Any:
        try:
            response = self.session.get(
                url, headers={"Authorization": f"Bearer {self.token}"}
            )
        except requests.RequestException as exc:
            raise SheetsError(f"Failed to send API request: {exc}") from exc
        try:
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SheetsError(f"{failure}: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise SheetsError(f"Failed to parse API response: {exc}") from exc

    def resolve_sheet_title(self, uri: str) -> str:
        """Look up the title of the sheet that ``uri`` refers to."""
        spreadsheet_id = spreadsheet_id_from_uri(uri)
        spreadsheet = self._get_json(
            f"{API_BASE}/{spreadsheet_id}", "Failed to resolve sheet title"
        )
        if not isinstance(spreadsheet, Mapping):
            raise SheetsError("Failed to parse API response: expected an object")
        return select_sheet_title(spreadsheet, uri)

    def fetch_values(self, url: str) -> list[list[str]]:
        """Fetch the cell values of a sheet as rows of strings."""
        body = self._get_json(url, "Failed to load sheet value from API")
        try:
            body["range"], body["majorDimension"]
            values = body["values"]
        except (KeyError, TypeError) as exc:
            raise SheetsError(f"Failed to parse API response: {exc}") from exc
        if not isinstance(values, list) or not all(
            isinstance(row, list) and all(isinstance(v, str) for v in row)
            for row in values
        ):
            raise SheetsError("Failed to parse API response: values must be rows of strings")
        return values

    def load_record_batch(self, uri: str, sheet_title: str | None = None) -> RecordBatch:
        """Load a whole sheet as a record batch."""
        spreadsheet_id = spreadsheet_id_from_uri(uri)
        title = sheet_title if sheet_title is not None else self.resolve_sheet_title(uri)
        values = self.fetch_values(values_url(spreadsheet_id, title))
        return sheet_values_to_record_batch(values)