"""Formula evaluation backed by the values cached in the workbook file.

openpyxl does not compute formulas.  Spreadsheet applications store the last
computed result next to each formula, and openpyxl exposes those results
when a workbook is loaded with ``data_only=True``.  ``CachedValueEvaluator``
resolves a formula cell to the cell at the same coordinate in that cached
view.
"""

from __future__ import annotations

import logging
from typing import Any

import openpyxl
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

logger = logging.getLogger("ingestkit_sheets")


class CachedValueEvaluator:
    """Resolve formula cells to their cached results.

    The cached-value workbook is loaded lazily on the first evaluation, so
    sheets without formulas never pay for a second decode.  A formula whose
    cached result is missing (for example a file written by a library that
    does not compute formulas) evaluates to ``None``.

    Parameters
    ----------
    file_path:
        Path of the workbook to read cached values from.
    sheet_index:
        Worksheet used when a cell does not name its own sheet.
    """

    def __init__(self, file_path: str, sheet_index: int = 0) -> None:
        self._file_path = file_path
        self._sheet_index = sheet_index
        self._workbook: Workbook | None = None

    def evaluate(self, cell: Any) -> Any | None:
        sheet = self._cached_sheet_for(cell)
        cached = sheet.cell(row=cell.row, column=cell.column)
        if cached.value is None:
            return None
        return cached

    def close(self) -> None:
        """Release the cached-value workbook.  Safe to call repeatedly."""
        workbook, self._workbook = self._workbook, None
        if workbook is not None:
            workbook.close()

    def _cached_sheet_for(self, cell: Any) -> Worksheet:
        if self._workbook is None:
            logger.debug(
                "ingestkit_sheets | file=%s | loading cached formula values",
                self._file_path,
            )
            self._workbook = openpyxl.load_workbook(self._file_path, data_only=True)

        title = getattr(getattr(cell, "parent", None), "title", None)
        if title is not None and title in self._workbook.sheetnames:
            return self._workbook[title]
        return self._workbook.worksheets[self._sheet_index]
