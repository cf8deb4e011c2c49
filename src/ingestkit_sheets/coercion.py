"""Cell-to-string coercion for openpyxl cells.

Every cell kind the reader can meet (blank, string, boolean, error, formula,
numeric/date) is rendered into a single canonical string.  Formula cells are
resolved through a :class:`~ingestkit_sheets.protocols.FormulaEvaluator` and
the resulting cell is coerced recursively.
"""

from __future__ import annotations

import datetime
import decimal
import logging
from typing import Any

from openpyxl.worksheet.formula import ArrayFormula, DataTableFormula

from ingestkit_sheets.errors import ErrorCode
from ingestkit_sheets.models import CellKind
from ingestkit_sheets.protocols import FormulaEvaluator

logger = logging.getLogger("ingestkit_sheets")

DEFAULT_MAX_FORMULA_DEPTH = 8

_NUMERIC_TYPES = (
    int,
    float,
    decimal.Decimal,
    datetime.datetime,
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


def classify_cell(cell: Any) -> CellKind | None:
    """Return the :class:`CellKind` of *cell*, or ``None`` if it is unrecognized.

    A missing cell (``None``) and a cell without a value are both ``BLANK``.
    """
    if cell is None:
        return CellKind.BLANK

    value = getattr(cell, "value", None)
    if isinstance(value, (ArrayFormula, DataTableFormula)):
        return CellKind.FORMULA
    if value is None:
        return CellKind.BLANK

    data_type = getattr(cell, "data_type", None)
    if data_type == "f":
        return CellKind.FORMULA
    if data_type == "e":
        return CellKind.ERROR
    # bool is a subclass of int, so it must be tested first
    if isinstance(value, bool):
        return CellKind.BOOLEAN
    if isinstance(value, str):
        return CellKind.STRING
    if isinstance(value, _NUMERIC_TYPES):
        return CellKind.NUMERIC
    return None


def _render_numeric(value: Any, date_format: str | None) -> str:
    if date_format and isinstance(
        value, (datetime.datetime, datetime.date, datetime.time)
    ):
        return value.strftime(date_format)
    return str(value)


def cell_to_string(
    cell: Any,
    evaluator: FormulaEvaluator,
    *,
    date_format: str | None = None,
    max_depth: int = DEFAULT_MAX_FORMULA_DEPTH,
    _depth: int = 0,
) -> str:
    """Render *cell* as a string.

    Args:
        cell: An openpyxl cell (or any object exposing ``value`` and
            ``data_type``).  ``None`` stands for a missing cell.
        evaluator: Resolves formula cells to the cell holding their result.
        date_format: Optional ``strftime`` pattern for date/time values.
            When unset, ``str()`` of the value is used.
        max_depth: Maximum number of nested formula resolutions.

    Returns:
        The canonical string form.  Errors raised by *evaluator* propagate
        unchanged.
    """
    if _depth > max_depth:
        logger.warning(
            "ingestkit_sheets | code=%s | detail=formula resolution exceeded depth %d at %s",
            ErrorCode.W_FORMULA_DEPTH_EXCEEDED.value,
            max_depth,
            getattr(cell, "coordinate", "?"),
        )
        return ""

    kind = classify_cell(cell)

    if kind is CellKind.BLANK:
        return ""
    if kind is CellKind.STRING:
        return cell.value
    if kind is CellKind.BOOLEAN:
        return "true" if cell.value else "false"
    if kind is CellKind.ERROR:
        return "ERROR: " + str(cell.value)
    if kind is CellKind.NUMERIC:
        return _render_numeric(cell.value, date_format)
    if kind is CellKind.FORMULA:
        result = evaluator.evaluate(cell)
        if result is None:
            return ""
        return cell_to_string(
            result,
            evaluator,
            date_format=date_format,
            max_depth=max_depth,
            _depth=_depth + 1,
        )
    return str(cell)
