from datetime import datetime, timedelta

import pytest

from columnload.excel_range import (
    Cell,
    CellKind,
    ExcelError,
    ExcelRange,
    ExcelSubrange,
)


def i(v):
    return Cell(CellKind.INT, v)


def f(v):
    return Cell(CellKind.FLOAT, v)


def b(v):
    return Cell(CellKind.BOOL, v)


EMPTY = Cell(CellKind.EMPTY)


@pytest.fixture
def sample_range():
    return ExcelRange.from_sparse(
        [
            ((0, 0), i(0)),
            ((0, 1), b(True)),
            ((0, 2), f(0.333)),
            ((1, 0), i(1)),
            ((1, 1), b(False)),
            ((1, 2), f(1.333)),
            ((2, 0), i(2)),
            ((2, 1), EMPTY),
            ((2, 2), f(2.333)),
            ((3, 0), i(3)),
            ((3, 1), b(True)),
            ((3, 2), f(3.333)),
        ]
    )


def test_subrange_full_iteration(sample_range):
    sub = ExcelSubrange(sample_range)
    assert sub.size() == 4
    assert next(sub) == (i(0), b(True), f(0.333))
    assert next(sub) == (i(1), b(False), f(1.333))
    assert next(sub) == (i(2), EMPTY, f(2.333))
    assert next(sub) == (i(3), b(True), f(3.333))
    assert next(sub, None) is None


def test_subrange_window(sample_range):
    sub = ExcelSubrange(sample_range, 1, 2, 1, 1)
    assert sub.size() == 2
    assert list(sub) == [(b(False),), (EMPTY,)]


def test_subrange_of_empty_range_raises():
    with pytest.raises(ExcelError):
        ExcelSubrange(ExcelRange.from_sparse([]))


def test_empty_range_has_no_end():
    r = ExcelRange.from_sparse([])
    assert r.end() is None
    assert list(r.rows()) == []


def test_from_sparse_later_cell_wins_and_fills_gaps():
    r = ExcelRange.from_sparse(
        [
            ((0, 0), Cell(CellKind.STRING, "test_column")),
            ((1, 0), i(0)),
            ((2, 0), EMPTY),
            ((2, 0), f(0.5)),
            ((1, 2), i(7)),
        ]
    )
    assert r.end() == (2, 2)
    rows = list(r.rows())
    assert rows[2][0] == f(0.5)
    assert rows[0][1] == EMPTY
    assert all(len(row) == 3 for row in rows)


def test_datetime_serial_conversion():
    assert Cell(CellKind.DATETIME, 44986.12).as_datetime() == datetime(2023, 3, 1, 2, 52, 48)
    assert Cell(CellKind.DATETIME, 44900.12).as_datetime() == datetime(2022, 12, 5, 2, 52, 48)


def test_datetime_iso_conversion():
    cell = Cell(CellKind.DATETIME_ISO, "2023-03-01T02:52:48")
    assert cell.as_datetime() == datetime(2023, 3, 1, 2, 52, 48)
    assert Cell(CellKind.DATETIME_ISO, "test").as_datetime() is None


def test_duration_conversion():
    assert Cell(CellKind.DURATION, 1.5).as_duration() == timedelta(days=1.5)
    assert Cell(CellKind.DURATION_ISO, "PT1H").as_duration() == timedelta(hours=1)
    assert Cell(CellKind.DURATION_ISO, "test").as_duration() is None
    assert Cell(CellKind.STRING, "x").as_duration() is None


def test_typed_getters():
    assert i(5).get_int() == 5
    assert i(5).get_float() is None
    assert f(1.5).get_float() == 1.5
    assert b(True).get_bool() is True
    assert Cell(CellKind.STRING, "int_column").get_string() == "int_column"
    assert EMPTY.get_string() is None
    assert EMPTY.is_empty() is True
    assert i(0).is_empty() is False


def test_to_text():
    assert f(1.1).to_text() == "1.1"
    assert i(1).to_text() == "1"
    assert f(2.0).to_text() == "2"
    assert b(True).to_text() == "true"
    assert b(False).to_text() == "false"
    assert EMPTY.to_text() is None
    assert Cell(CellKind.STRING, "foo").to_text() == "foo"
    assert Cell(CellKind.DATETIME, 44986.12).to_text() == "2023-03-01 02:52:48"
    assert Cell(CellKind.DURATION_ISO, "PT1H").to_text() == "PT3600S"
    assert Cell(CellKind.ERROR, "#N/A").to_text() == "#N/A"