"""Load spreadsheet ranges, Google Sheets values, JSON and NDJSON data into typed record batches."""

__version__ = "0.1.0"
__all__ = ["schema", "excel_range", "excel", "google_sheets", "json_table", "ndjson"]