"""Legacy ``.xls`` (BIFF) workbooks decoded with xlrd.

xlrd exposes each cell as a ``(ctype, value)`` pair.  ``XlsWorkbook``,
``XlsSheet`` and ``XlsCell`` present them through the part of the openpyxl
interface the reader uses (``worksheets``, ``iter_rows``, ``value`` and
``data_type``), so rows of either format take the same path through
:mod:`ingestkit_sheets.rows` and :mod:`ingestkit_sheets.coercion`.

BIFF files store the last computed result of every formula and xlrd
returns that result in place of the formula.  Cells of an ``.xls`` sheet
therefore never classify as formulas and never reach the evaluator.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import xlrd  # type: ignore[import-untyped]
from openpyxl.utils import get_column_letter
from xlrd.biffh import error_text_from_code  # type: ignore[import-untyped]

from ingestkit_sheets.models import CellKind

logger = logging.getLogger("ingestkit_sheets")

XLS_EXTENSIONS = frozenset({".xls"})

_KIND_BY_CTYPE: dict[int, CellKind] = {
    xlrd.XL_CELL_EMPTY: CellKind.BLANK,
    xlrd.XL_CELL_BLANK: CellKind.BLANK,
    xlrd.XL_CELL_TEXT: CellKind.STRING,
    xlrd.XL_CELL_NUMBER: CellKind.NUMERIC,
    xlrd.XL_CELL_DATE: CellKind.NUMERIC,
    xlrd.XL_CELL_BOOLEAN: CellKind.BOOLEAN,
    xlrd.XL_CELL_ERROR: CellKind.ERROR,
}


def is_xls_path(path: str) -> bool:
    """Return ``True`` if *path* names a legacy ``.xls`` workbook."""
    return any(path.lower().endswith(ext) for ext in XLS_EXTENSIONS)


def cell_kind(ctype: int) -> CellKind | None:
    """Map an xlrd ``XL_CELL_*`` type onto a :class:`CellKind`."""
    return _KIND_BY_CTYPE.get(ctype)


def _convert(cell: Any, datemode: int) -> tuple[Any, str]:
    """Return ``(value, openpyxl data_type)`` for an xlrd cell."""
    kind = cell_kind(cell.ctype)
    if kind is CellKind.BLANK:
        return None, "n"
    if kind is CellKind.STRING:
        return cell.value, "s"
    if kind is CellKind.BOOLEAN:
        return bool(cell.value), "b"
    if kind is CellKind.ERROR:
        return error_text_from_code.get(cell.value, "#ERR!"), "e"

    value = cell.value
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(value, datemode), "d"
        except Exception as exc:
            logger.warning(
                "ingestkit_sheets | date conversion failed: %s | falling back to number",
                exc,
            )
    # xlrd stores every number as a float
    if isinstance(value, float) and value.is_integer():
        return int(value), "n"
    return value, "n"


class XlsCell:
    """One cell of an :class:`XlsSheet`, shaped like an openpyxl cell."""

    __slots__ = ("parent", "row", "column", "value", "data_type")

    def __init__(
        self, parent: XlsSheet, row: int, column: int, value: Any, data_type: str
    ) -> None:
        self.parent = parent
        self.row = row
        self.column = column
        self.value = value
        self.data_type = data_type

    @property
    def coordinate(self) -> str:
        return f"{get_column_letter(self.column)}{self.row}"

    def __repr__(self) -> str:
        return f"<XlsCell {self.parent.title!r}.{self.coordinate}>"


class XlsSheet:
    """An xlrd sheet addressed with openpyxl's one-based rows and columns.

    Like openpyxl, an empty sheet still reports one row and one column.
    """

    def __init__(self, sheet: Any, datemode: int) -> None:
        self._sheet = sheet
        self._datemode = datemode
        self.title: str = sheet.name

    @property
    def max_row(self) -> int:
        return max(self._sheet.nrows, 1)

    @property
    def max_column(self) -> int:
        return max(self._sheet.ncols, 1)

    def cell(self, row: int, column: int) -> XlsCell:
        row_index, column_index = row - 1, column - 1
        if (
            0 <= row_index < self._sheet.nrows
            and 0 <= column_index < self._sheet.row_len(row_index)
        ):
            value, data_type = _convert(
                self._sheet.cell(row_index, column_index), self._datemode
            )
        else:
            value, data_type = None, "n"
        return XlsCell(self, row, column, value, data_type)

    def iter_rows(
        self,
        min_row: int | None = None,
        max_row: int | None = None,
        min_col: int | None = None,
        max_col: int | None = None,
        values_only: bool = False,
    ) -> Iterator[tuple[Any, ...]]:
        first_col = min_col or 1
        last_col = max_col or self.max_column
        for row in range(min_row or 1, (max_row or self.max_row) + 1):
            cells = tuple(
                self.cell(row, column) for column in range(first_col, last_col + 1)
            )
            if values_only:
                yield tuple(cell.value for cell in cells)
            else:
                yield cells


class XlsWorkbook:
    """The worksheets of an xlrd book, in workbook order."""

    def __init__(self, book: Any) -> None:
        self._book = book
        self.worksheets = [XlsSheet(sheet, book.datemode) for sheet in book.sheets()]

    @property
    def sheetnames(self) -> list[str]:
        return [sheet.title for sheet in self.worksheets]

    def close(self) -> None:
        self._book.release_resources()


def load_xls_workbook(file_path: str) -> XlsWorkbook:
    """Decode the ``.xls`` file at *file_path*.

    Raises:
        xlrd.XLRDError: If the file is not a readable BIFF workbook.
    """
    return XlsWorkbook(xlrd.open_workbook(file_path))
