"""Shared test fixtures for ingestkit-sheets tests.

Provides a default config, an isolated ``ResourceGuard``, stub formula
evaluators, factory fixtures that build .xlsx files with openpyxl, and
xlrd stand-ins for legacy .xls workbooks.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import openpyxl
import pytest
import xlrd

from ingestkit_sheets.config import SheetReaderConfig
from ingestkit_sheets.guard import ResourceGuard


class StubEvaluator:
    """Formula evaluator returning canned results keyed by cell coordinate.

    Coordinates not in *results* evaluate to ``None``.  Every evaluated
    coordinate is recorded on ``calls``.
    """

    def __init__(self, results: dict[str, Any] | None = None) -> None:
        self.results = results or {}
        self.calls: list[str] = []
        self.closed = False

    def evaluate(self, cell: Any) -> Any | None:
        coordinate = getattr(cell, "coordinate", None)
        self.calls.append(coordinate)
        return self.results.get(coordinate)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def stub_evaluator() -> StubEvaluator:
    return StubEvaluator()


@pytest.fixture()
def work_dir(tmp_path: Path) -> Path:
    """Directory used for private copies, separate from the source files."""
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture()
def default_config(work_dir: Path) -> SheetReaderConfig:
    """Return a SheetReaderConfig whose private copies land in ``work_dir``."""
    return SheetReaderConfig(temp_dir=str(work_dir))


@pytest.fixture()
def guard() -> ResourceGuard:
    """Return a fresh guard so tests never touch the process-wide registry."""
    return ResourceGuard()


@pytest.fixture()
def make_xlsx(tmp_path: Path):
    """Factory fixture: write rows (one list per sheet) to an .xlsx and return its path.

    ``sheets`` maps sheet title to rows.  A row of ``None`` leaves that row
    unwritten; ``None`` inside a row leaves that cell unwritten.
    """

    def _write(
        sheets: dict[str, list[list[Any] | None]],
        filename: str = "fixture.xlsx",
    ) -> str:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for title, rows in sheets.items():
            ws = wb.create_sheet(title)
            for row_number, row in enumerate(rows, start=1):
                if row is None:
                    continue
                for column_number, value in enumerate(row, start=1):
                    if value is not None:
                        ws.cell(row=row_number, column=column_number, value=value)
        file_path = tmp_path / filename
        wb.save(file_path)
        wb.close()
        return str(file_path)

    return _write


@pytest.fixture()
def people_xlsx(make_xlsx) -> str:
    """Header row plus one data row."""
    return make_xlsx(
        {
            "People": [
                ["Name", "Age", "Active"],
                ["Alice", 30, True],
            ]
        },
        filename="people.xlsx",
    )


# OLE2 magic bytes used by .xls files
_OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"


class FakeXlrdSheet:
    """Stand-in for an ``xlrd.sheet.Sheet`` built from rows of ``(ctype, value)`` pairs.

    Rows keep their own lengths, so ``row_len`` varies the way it does for
    ragged sheets.
    """

    def __init__(self, name: str, rows: list[list[tuple[int, Any]]]) -> None:
        self.name = name
        self._rows = [[xlrd.sheet.Cell(ctype, value) for ctype, value in row] for row in rows]
        self.nrows = len(self._rows)
        self.ncols = max((len(row) for row in self._rows), default=0)

    def row_len(self, rowx: int) -> int:
        return len(self._rows[rowx])

    def cell(self, rowx: int, colx: int):
        return self._rows[rowx][colx]


def fake_xlrd_book(*sheets: FakeXlrdSheet, datemode: int = 0) -> MagicMock:
    """Return a mock xlrd Book holding *sheets*."""
    book = MagicMock()
    book.datemode = datemode
    book.sheets.return_value = list(sheets)
    return book


@pytest.fixture()
def tmp_xls_file(tmp_path: Path):
    """Factory fixture to write binary content to a .xls file and return the path."""

    def _write(content: bytes | None = None, filename: str = "legacy.xls") -> str:
        file_path = tmp_path / filename
        if content is None:
            # OLE2 header plus padding: passes the signature check, not a real workbook
            content = _OLE2_MAGIC + b"\x00" * 504
        file_path.write_bytes(content)
        return str(file_path)

    return _write
