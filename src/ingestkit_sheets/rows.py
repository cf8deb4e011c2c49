"""Fixed-width row materialization over a worksheet.

Works on openpyxl worksheets and on the legacy ``.xls`` sheets from
:mod:`ingestkit_sheets.xls`.  Row indices are zero-based throughout; the
one-based row numbers of the decoders never leave this module.

openpyxl recomputes ``max_row`` and ``max_column`` by scanning every cell,
so callers reading many rows pass the bounds they computed once.
"""

from __future__ import annotations

from typing import Any

from ingestkit_sheets.coercion import DEFAULT_MAX_FORMULA_DEPTH, cell_to_string
from ingestkit_sheets.errors import RowOutOfRangeError
from ingestkit_sheets.protocols import FormulaEvaluator, RowSource


def last_row_index(sheet: RowSource) -> int:
    """Return the zero-based index of the highest row in *sheet*."""
    return sheet.max_row - 1


def column_bound(sheet: RowSource) -> int:
    """Return the number of columns to fetch per row (at least one)."""
    return max(sheet.max_column, 1)


def blank_row(row_size: int) -> list[str]:
    return [""] * row_size


def fetch_row(
    sheet: RowSource,
    row_index: int,
    *,
    last_row: int | None = None,
    max_column: int | None = None,
) -> tuple[Any, ...] | None:
    """Return the cells of row *row_index*, or ``None`` if the row holds no values.

    The returned tuple starts at column A.  *last_row* and *max_column*
    default to the sheet's current bounds.

    Raises:
        RowOutOfRangeError: If *row_index* is negative or past the last row.
    """
    last = last_row_index(sheet) if last_row is None else last_row
    if row_index < 0 or row_index > last:
        raise RowOutOfRangeError(
            f"Row index {row_index} is outside the sheet's rows [0, {last}].",
            row_index=row_index,
        )

    row_number = row_index + 1
    for cells in sheet.iter_rows(
        min_row=row_number,
        max_row=row_number,
        min_col=1,
        max_col=column_bound(sheet) if max_column is None else max_column,
    ):
        if any(cell.value is not None for cell in cells):
            return cells
    return None


def physical_cell_count(sheet: RowSource, row_index: int) -> int:
    """Count the cells of row *row_index* that hold a value."""
    cells = fetch_row(sheet, row_index)
    if cells is None:
        return 0
    return sum(1 for cell in cells if cell.value is not None)


def materialize_row(
    sheet: RowSource,
    row_index: int,
    row_size: int,
    evaluator: FormulaEvaluator,
    *,
    date_format: str | None = None,
    max_depth: int = DEFAULT_MAX_FORMULA_DEPTH,
    last_row: int | None = None,
    max_column: int | None = None,
) -> list[str]:
    """Render row *row_index* as exactly *row_size* strings.

    Cells missing from the row are rendered as blanks; cells beyond
    *row_size* are ignored.  A row with no values at all yields
    *row_size* empty strings.

    Raises:
        RowOutOfRangeError: If *row_index* is negative or past the last row.
    """
    cells = fetch_row(sheet, row_index, last_row=last_row, max_column=max_column)
    if cells is None:
        return blank_row(row_size)

    values: list[str] = []
    for column in range(row_size):
        cell = cells[column] if column < len(cells) else None
        values.append(
            cell_to_string(
                cell,
                evaluator,
                date_format=date_format,
                max_depth=max_depth,
            )
        )
    return values
