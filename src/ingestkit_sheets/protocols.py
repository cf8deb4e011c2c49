"""Collaborator protocols for the ingestkit-sheets reader.

Defines the structural-subtyping interfaces for the formula-evaluation
capability, the private-copy factory, and the worksheet rows are read
from.  All protocols are ``@runtime_checkable`` so callers can optionally
verify conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class FormulaEvaluator(Protocol):
    """Interface for resolving a formula cell to the cell holding its result."""

    def evaluate(self, cell: Any) -> Any | None:
        """Return the resulting cell for *cell*, or ``None`` if there is no result."""
        ...


@runtime_checkable
class TempFileFactory(Protocol):
    """Interface for creating the private working copy of a source file."""

    def __call__(self, original_path: str, temp_dir: str | None = None) -> str:
        """Copy *original_path* to a new, distinct path and return that path."""
        ...


@runtime_checkable
class RowSource(Protocol):
    """The slice of the openpyxl ``Worksheet`` interface the row reader uses.

    Implemented by openpyxl worksheets and by
    :class:`ingestkit_sheets.xls.XlsSheet`.
    """

    title: str

    @property
    def max_row(self) -> int: ...

    @property
    def max_column(self) -> int: ...

    def iter_rows(
        self,
        min_row: int | None = None,
        max_row: int | None = None,
        min_col: int | None = None,
        max_col: int | None = None,
        values_only: bool = False,
    ) -> Any: ...
