"""Spreadsheet cells, dense cell ranges and row/column windows over them."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Iterator

_UNIX_EPOCH = datetime(1970, 1, 1)
_MS_PER_DAY = 86_400_000

_ISO_DURATION = re.compile(
    r"^P(?:(?P<d>\d+(?:\.\d+)?)D)?"
    r"(?:T(?:(?P<h>\d+(?:\.\d+)?)H)?(?:(?P<m>\d+(?:\.\d+)?)M)?(?:(?P<s>\d+(?:\.\d+)?)S)?)?$"
)


class ExcelError(ValueError):
    """Raised when spreadsheet data cannot be loaded."""


class CellKind(Enum):
    INT = "Int"
    FLOAT = "Float"
    STRING = "String"
    BOOL = "Bool"
    DATETIME = "DateTime"
    DATETIME_ISO = "DateTimeIso"
    DURATION = "Duration"
    DURATION_ISO = "DurationIso"
    ERROR = "Error"
    EMPTY = "Empty"


def _serial_to_datetime(serial: float) -> datetime | None:
    days = serial - 25568.0 if serial < 60.0 else serial - 25569.0
    try:
        return _UNIX_EPOCH + timedelta(milliseconds=round(days * _MS_PER_DAY))
    except (OverflowError, ValueError):
        return None


def _days_to_duration(days: float) -> timedelta | None:
    try:
        return timedelta(milliseconds=round(days * _MS_PER_DAY))
    except (OverflowError, ValueError):
        return None


def _parse_iso_duration(text: str) -> timedelta | None:
    match = _ISO_DURATION.match(text)
    if match is None or not any(match.groupdict().values()):
        return None
    parts = {k: float(v) if v else 0.0 for k, v in match.groupdict().items()}
    return timedelta(
        days=parts["d"], hours=parts["h"], minutes=parts["m"], seconds=parts["s"]
    )


def _format_float(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


def _format_datetime(dt: datetime) -> str:
    text = (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )
    if dt.microsecond:
        if dt.microsecond % 1000 == 0:
            text += f".{dt.microsecond // 1000:03d}"
        else:
            text += f".{dt.microsecond:06d}"
    return text


def _format_duration(delta: timedelta) -> str:
    total_us = (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds
    sign = "-" if total_us < 0 else ""
    total_us = abs(total_us)
    secs, micros = divmod(total_us, 1_000_000)
    days, secs = divmod(secs, 86_400)
    has_date = days != 0
    has_time = secs != 0 or micros != 0 or not has_date
    text = f"{sign}P"
    if has_date:
        text += f"{days}D"
    if has_time:
        if micros == 0:
            text += f"T{secs}S"
        elif micros % 1000 == 0:
            text += f"T{secs}.{micros // 1000:03d}S"
        else:
            text += f"T{secs}.{micros:06d}S"
    return text


@dataclass(frozen=True)
class Cell:
    """A single spreadsheet value tagged with its kind."""

    kind: CellKind
    value: Any = None

    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    def get_string(self) -> str | None:
        return self.value if self.kind is CellKind.STRING else None

    def get_bool(self) -> bool | None:
        return self.value if self.kind is CellKind.BOOL else None

    def get_int(self) -> int | None:
        return self.value if self.kind is CellKind.INT else None

    def get_float(self) -> float | None:
        return self.value if self.kind is CellKind.FLOAT else None

    def as_datetime(self) -> datetime | None:
        """Interpret the cell as a naive date and time, if it can be."""
        if self.kind in (CellKind.INT, CellKind.FLOAT, CellKind.DATETIME):
            return _serial_to_datetime(float(self.value))
        if self.kind is CellKind.DATETIME_ISO:
            if "T" not in self.value:
                return None
            try:
                return datetime.fromisoformat(self.value)
            except ValueError:
                return None
        return None

    def as_duration(self) -> timedelta | None:
        """Interpret the cell as a duration, if it can be."""
        if self.kind in (CellKind.INT, CellKind.FLOAT, CellKind.DURATION):
            return _days_to_duration(float(self.value))
        if self.kind is CellKind.DURATION_ISO:
            return _parse_iso_duration(self.value)
        return None

    def to_text(self) -> str | None:
        """Render the cell as text; empty cells give None."""
        kind = self.kind
        if kind is CellKind.BOOL:
            return "true" if self.value else "false"
        if kind is CellKind.INT:
            return str(self.value)
        if kind is CellKind.FLOAT:
            return _format_float(float(self.value))
        if kind is CellKind.STRING:
            return self.value
        if kind in (CellKind.DATETIME, CellKind.DATETIME_ISO):
            dt = self.as_datetime()
            return None if dt is None else _format_datetime(dt)
        if kind in (CellKind.DURATION, CellKind.DURATION_ISO):
            delta = self.as_duration()
            return None if delta is None else _format_duration(delta)
        if kind is CellKind.ERROR:
            return str(self.value)
        return None


_EMPTY = Cell(CellKind.EMPTY)


class ExcelRange:
    """A dense rectangle of cells anchored at an absolute start position."""

    def __init__(
        self,
        start: tuple[int, int] | None = None,
        rows: Iterable[Iterable[Cell]] = (),
    ) -> None:
        self._start = start
        self._rows = [tuple(r) for r in rows]

    @classmethod
    def from_sparse(cls, cells: Iterable[tuple[tuple[int, int], Cell]]) -> ExcelRange:
        """Build a range from ``((row, col), cell)`` pairs; later pairs win."""
        placed = list(cells)
        if not placed:
            return cls()
        row_start = min(pos[0] for pos, _ in placed)
        row_end = max(pos[0] for pos, _ in placed)
        col_start = min(pos[1] for pos, _ in placed)
        col_end = max(pos[1] for pos, _ in placed)
        width = col_end - col_start + 1
        grid = [[_EMPTY] * width for _ in range(row_end - row_start + 1)]
        for (row, col), cell in placed:
            grid[row - row_start][col - col_start] = cell
        return cls((row_start, col_start), grid)

    def end(self) -> tuple[int, int] | None:
        """Absolute position of the last cell, or None for an empty range."""
        if self._start is None or not self._rows:
            return None
        return (
            self._start[0] + len(self._rows) - 1,
            self._start[1] + len(self._rows[0]) - 1,
        )

    def rows(self) -> Iterator[tuple[Cell, ...]]:
        return iter(self._rows)


class ExcelSubrange:
    """Iterates over a window of rows and columns of an :class:`ExcelRange`."""

    def __init__(
        self,
        excel_range: ExcelRange,
        rows_range_start: int | None = None,
        rows_range_end: int | None = None,
        columns_range_start: int | None = None,
        columns_range_end: int | None = None,
    ) -> None:
        start = rows_range_start or 0
        if rows_range_end is None:
            end = excel_range.end()
            if end is None:
                raise ExcelError("Cannot determine the last row of an empty range")
            rows_range_end = end[0]
        total = rows_range_end - start + 1
        if total < 0:
            raise ExcelError(
                f"Rows range end {rows_range_end} is before rows range start {start}"
            )
        self._rows = excel_range.rows()
        for _ in range(start):
            if next(self._rows, None) is None:
                break
        self._col_start = columns_range_start or 0
        self._col_end = columns_range_end
        self._total = total
        self._current = 0

    def size(self) -> int:
        return self._total

    def __iter__(self) -> ExcelSubrange:
        return self

    def __next__(self) -> tuple[Cell, ...]:
        if self._current >= self._total:
            raise StopIteration
        self._current += 1
        row = next(self._rows)
        last = len(row) - 1
        if self._col_end is not None:
            last = min(self._col_end, last)
        return row[self._col_start : last + 1]